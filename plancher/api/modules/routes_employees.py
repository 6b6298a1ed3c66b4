# routes_employees.py
# Staff directory: admins create employees; any signed-in user can list
# employees and admins (messaging contact lists).

import sqlite3
import logging

from flask import Blueprint, jsonify, request, g

from plancher.api.modules import request_data
from plancher.agents.notify_agent import validate_secteur
from plancher.core import db
from plancher.core.errors import ValidationError
from plancher.core.security import require_role, hash_password, ROLE_ADMIN

log = logging.getLogger("plancher.employees")

bp = Blueprint("employees", __name__)


@bp.route("/api/employees", methods=["POST"])
@require_role(ROLE_ADMIN)
def api_employee_create():
    """Create an employee. email / password optional (no password = cannot log in)."""
    data = request_data()
    nom, prenom, secteur = data.get("nom"), data.get("prenom"), data.get("secteur")
    if not nom or not prenom or not secteur:
        raise ValidationError("nom, prenom, secteur required")
    email, password = data.get("email"), data.get("password")
    if email is not None and not isinstance(email, str):
        raise ValidationError("invalid email")
    if password is not None and not isinstance(password, str):
        raise ValidationError("invalid password")
    validate_secteur(secteur)

    try:
        emp = db.create_employee(nom, prenom, secteur, email=email or None,
                                 mdp_hash=hash_password(password) if password else None,
                                 adminref=g.identity.id)
    except sqlite3.IntegrityError:
        raise ValidationError("email already in use")
    return jsonify(emp), 201


@bp.route("/api/employees")
@require_role()
def api_employees():
    """All employees, newest first. ?secteur=finance filters."""
    return jsonify(db.list_employees(request.args.get("secteur") or None))


@bp.route("/api/admin/list")
@require_role()
def api_admin_list():
    return jsonify(db.list_admins())
