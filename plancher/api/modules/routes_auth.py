# routes_auth.py
# Logins (admin, employee, unified) and "who am I" for both roles.

import logging

from flask import Blueprint, jsonify, g

from plancher.api.modules import request_data
from plancher.core import db
from plancher.core.errors import ValidationError, AuthError, NotFoundError
from plancher.core.security import (
    require_role, rate_limit, check_password, admin_token, employee_token,
    ROLE_ADMIN, ROLE_EMPLOYEE,
)

log = logging.getLogger("plancher.auth")

bp = Blueprint("auth", __name__)


def _credentials():
    data = request_data()
    email, password = data.get("email"), data.get("password")
    if not email or not password:
        raise ValidationError("email and password required")
    return email, password


def _admin_public(admin: dict) -> dict:
    return {k: admin.get(k) for k in ("id", "nom", "prenom", "email")}


def _employee_public(emp: dict) -> dict:
    return {k: emp.get(k) for k in ("id", "nom", "prenom", "email", "secteur")}


def _check_admin(email, password):
    admin = db.get_admin_by_email(email)
    if admin and check_password(password, admin.get("mdp_hash")):
        return admin
    return None


def _check_employee(email, password):
    emp = db.get_employee_by_email(email)
    if emp and check_password(password, emp.get("mdp_hash")):
        return emp
    return None


@bp.route("/api/auth/login", methods=["POST"])
@rate_limit("auth")
def api_admin_login():
    email, password = _credentials()
    admin = _check_admin(email, password)
    if not admin:
        log.warning("Admin login failed for %s", email)
        raise AuthError("Invalid credentials")
    log.info("Admin login: %s", email, extra={"admin_id": admin["id"]})
    return jsonify({"token": admin_token(admin), "admin": _admin_public(admin)})


@bp.route("/api/employee/login", methods=["POST"])
@rate_limit("auth")
def api_employee_login():
    email, password = _credentials()
    emp = _check_employee(email, password)
    if not emp:
        log.warning("Employee login failed for %s", email)
        raise AuthError("Invalid credentials")
    log.info("Employee login: %s", email, extra={"employee_id": emp["id"]})
    return jsonify({"token": employee_token(emp), "employee": _employee_public(emp)})


@bp.route("/api/login", methods=["POST"])
@rate_limit("auth")
def api_login():
    """Unified login: admin credentials first, then employee."""
    email, password = _credentials()
    admin = _check_admin(email, password)
    if admin:
        return jsonify({"token": admin_token(admin), "role": ROLE_ADMIN,
                        "user": _admin_public(admin)})
    emp = _check_employee(email, password)
    if emp:
        return jsonify({"token": employee_token(emp), "role": ROLE_EMPLOYEE,
                        "user": _employee_public(emp)})
    log.warning("Login failed for %s", email)
    raise AuthError("Invalid credentials")


@bp.route("/api/admin/me")
@require_role(ROLE_ADMIN)
def api_admin_me():
    admin = db.get_admin(g.identity.id)
    if not admin:
        raise NotFoundError()
    return jsonify(admin)


@bp.route("/api/employee/me")
@require_role(ROLE_EMPLOYEE)
def api_employee_me():
    emp = db.get_employee(g.identity.id)
    if not emp:
        raise NotFoundError()
    return jsonify(emp)
