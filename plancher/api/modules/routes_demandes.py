# routes_demandes.py
# Demande workflow: create (employee / anonymous AI quote), list, devis PDF,
# signed PDF upload, date-range export.

import re
import math
import logging

from flask import Blueprint, jsonify, request, g

from plancher.api.modules import request_data
from plancher.core import db, paths, uploads
from plancher.core.errors import ValidationError
from plancher.core.security import require_role, rate_limit, ROLE_ADMIN, ROLE_EMPLOYEE
from plancher.forms import quote_generator, signed_pdf

log = logging.getLogger("plancher.demandes")

bp = Blueprint("demandes", __name__)

_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _demande_fields(data: dict) -> dict:
    """Validate the required demande fields. prix may be 0 but not missing."""
    nom, prenom, type_projet = data.get("nom"), data.get("prenom"), data.get("type_projet")
    prix = data.get("prix")
    if not nom or not prenom or not type_projet or prix is None or prix == "":
        raise ValidationError("nom, prenom, type_projet, prix required")
    try:
        prix = float(prix)
    except (TypeError, ValueError):
        raise ValidationError("invalid prix")
    if not math.isfinite(prix):
        raise ValidationError("invalid prix")
    return {"nom": nom, "prenom": prenom, "type_projet": type_projet, "prix": prix,
            "telephone": data.get("telephone") or None}


# ═══════════════════════════════════════════════════════════════════════════════
# Create / list
# ═══════════════════════════════════════════════════════════════════════════════

@bp.route("/api/demandes", methods=["POST"])
@require_role(ROLE_EMPLOYEE)
def api_demande_create():
    """JSON or multipart; optional plan_jpg image file. statut always starts encours."""
    fields = _demande_fields(request_data())
    plan = request.files.get("plan_jpg")
    if plan and plan.filename:
        name = uploads.save_upload(plan)
        fields["plan_jpg"] = uploads.publish_plan(name, plan.filename, remove_source=True)
    d = db.create_demande(**fields)
    log.info("Demande %s created by employee %s", d["iddemande"], g.identity.id,
             extra={"demande_id": d["iddemande"], "employee_id": g.identity.id})
    return jsonify(d), 201


@bp.route("/api/ai/request-quote", methods=["POST"])
@rate_limit("upload")
def api_request_quote():
    """Anonymous demande from the estimator chat. plan_jpg must be a /planjpg/ path."""
    data = request_data()
    fields = _demande_fields(data)
    plan_jpg = data.get("plan_jpg")
    if isinstance(plan_jpg, str) and plan_jpg.strip():
        if not plan_jpg.startswith(paths.PLAN_URL):
            raise ValidationError("invalid plan_jpg path")
        fields["plan_jpg"] = plan_jpg
    d = db.create_demande(**fields)
    return jsonify(d), 201


@bp.route("/api/demandes")
@require_role(ROLE_EMPLOYEE)
def api_demandes():
    return jsonify(db.list_demandes())


@bp.route("/api/admin/demandes")
@require_role(ROLE_ADMIN)
def api_admin_demandes():
    return jsonify(db.list_demandes())


# ═══════════════════════════════════════════════════════════════════════════════
# PDFs
# ═══════════════════════════════════════════════════════════════════════════════

@bp.route("/api/demandes/<int:iddemande>/pdf", methods=["POST"])
@require_role()
def api_demande_pdf(iddemande):
    """(Re)generate the devis. Overwrites pdfs/<id>.pdf."""
    return jsonify({"pdf": quote_generator.generate_for_demande(iddemande)})


@bp.route("/api/admin/demandes/<int:iddemande>/upload-pdf", methods=["POST"])
@require_role(ROLE_ADMIN)
def api_admin_upload_signed(iddemande):
    data = request_data()
    return jsonify(signed_pdf.store_signed_pdf(iddemande, data.get("base64"), ROLE_ADMIN))


@bp.route("/api/demandes/<int:iddemande>/upload-pdf", methods=["POST"])
@require_role(ROLE_EMPLOYEE)
def api_employee_upload_signed(iddemande):
    data = request_data()
    return jsonify(signed_pdf.store_signed_pdf(iddemande, data.get("base64"), ROLE_EMPLOYEE))


@bp.route("/api/admin/export")
@require_role(ROLE_ADMIN)
def api_admin_export():
    """Devis links for demandes created between ?from and ?to (YYYY-MM-DD, inclusive)."""
    date_from, date_to = request.args.get("from", ""), request.args.get("to", "")
    if not date_from or not date_to:
        raise ValidationError("from and to (YYYY-MM-DD) required")
    if not _DATE.match(date_from) or not _DATE.match(date_to):
        raise ValidationError("from and to must be YYYY-MM-DD")
    return jsonify({"items": quote_generator.export_links(date_from, date_to)})
