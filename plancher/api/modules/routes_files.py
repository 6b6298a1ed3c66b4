# routes_files.py
# Static mounts for stored files, plan image upload, health check.

import logging

from flask import Blueprint, jsonify, request, send_from_directory

from plancher.core import db, paths, uploads
from plancher.core.errors import ValidationError
from plancher.core.security import rate_limit

log = logging.getLogger("plancher.files")

bp = Blueprint("files", __name__)

# URL prefix → paths attribute (read at request time)
MOUNTS = {
    "uploads": "UPLOAD_DIR",
    "pdfs": "PDF_DIR",
    "pdfsigne": "SIGNED_PDF_DIR",
    "planjpg": "PLAN_DIR",
    "asset": "ASSET_DIR",
}


@bp.route("/<any(uploads, pdfs, pdfsigne, planjpg, asset):mount>/<path:filename>")
def serve_file(mount, filename):
    return send_from_directory(getattr(paths, MOUNTS[mount]), filename)


@bp.route("/api/plan/upload", methods=["POST"])
@rate_limit("upload")
def api_plan_upload():
    """multipart 'plan' image → {"plan_jpg": "/planjpg/<name>"}"""
    plan = request.files.get("plan")
    if not plan or not plan.filename:
        raise ValidationError("plan file required")
    name = uploads.save_upload(plan)
    public = uploads.publish_plan(name, plan.filename, remove_source=True)
    log.info("Plan uploaded: %s", public)
    return jsonify({"plan_jpg": public})


@bp.route("/api/health")
def api_health():
    try:
        counts = db.table_counts()
        return jsonify({"ok": True, "db": "ok", "tables": counts})
    except Exception as e:
        log.error("Health check DB error: %s", e)
        return jsonify({"ok": False, "db": "error", "error": str(e)}), 503
