# routes_ai.py
# AI assistant: plan vision analysis, public estimator chat, admin chat.

import logging

from flask import Blueprint, jsonify, request, g

from plancher.api.modules import request_data
from plancher.agents import assistant
from plancher.core.security import require_role, rate_limit, ROLE_ADMIN

log = logging.getLogger("plancher.ai")

bp = Blueprint("ai", __name__)


@bp.route("/api/ai/vision", methods=["POST"])
@rate_limit("ai")
def api_ai_vision():
    """multipart: images (1..8 jpg/jpeg/png), optional prompt."""
    files = request.files.getlist("images")
    return jsonify(assistant.vision(files, request.form.get("prompt")))


@bp.route("/api/ai/chat", methods=["POST"])
@rate_limit("ai")
def api_ai_chat():
    data = request_data()
    return jsonify(assistant.chat(data.get("messages"), data.get("visionContext")))


@bp.route("/api/admin/ai/chat", methods=["POST"])
@require_role(ROLE_ADMIN)
def api_admin_ai_chat():
    data = request_data()
    return jsonify(assistant.admin_chat(g.identity.id, data.get("messages"),
                                        request.host_url))
