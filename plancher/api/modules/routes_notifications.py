# routes_notifications.py
# Sector broadcasts, both inboxes, read / take, reply threads.

import logging

from flask import Blueprint, jsonify, request, g

from plancher.api.modules import request_data
from plancher.agents import notify_agent
from plancher.core import db
from plancher.core.errors import ValidationError, NotFoundError
from plancher.core.security import require_role, ROLE_ADMIN, ROLE_EMPLOYEE

log = logging.getLogger("plancher.notifications")

bp = Blueprint("notifications", __name__)


def _reply_body() -> str:
    body = request_data().get("body")
    if not body or not str(body).strip():
        raise ValidationError("body required")
    return str(body)


# ═══════════════════════════════════════════════════════════════════════════════
# Admin side
# ═══════════════════════════════════════════════════════════════════════════════

@bp.route("/api/admin/notify", methods=["POST"])
@require_role(ROLE_ADMIN)
def api_admin_notify():
    data = request_data()
    count = notify_agent.broadcast_to_sector(
        data.get("secteur"), data.get("title"), data.get("body_html"), g.identity.id)
    return jsonify({"ok": True, "count": count})


@bp.route("/api/admin/notifications")
@require_role(ROLE_ADMIN)
def api_admin_notifications():
    """Latest 200 notifications with their employee. ?secteur= filters."""
    secteur = request.args.get("secteur") or None
    return jsonify(db.list_notifications_admin(secteur))


@bp.route("/api/admin/notifications/<notification_id>/replies")
@require_role(ROLE_ADMIN)
def api_admin_replies(notification_id):
    if not db.get_notification(notification_id):
        raise NotFoundError()
    return jsonify(db.list_replies(notification_id))


@bp.route("/api/admin/notifications/<notification_id>/replies", methods=["POST"])
@require_role(ROLE_ADMIN)
def api_admin_reply(notification_id):
    body = _reply_body()
    if not db.get_notification(notification_id):
        raise NotFoundError()
    reply = db.add_reply(notification_id, ROLE_ADMIN, body, admin_id=g.identity.id)
    return jsonify({"ok": True, "id": reply["id"]}), 201


# ═══════════════════════════════════════════════════════════════════════════════
# Employee side (lookups scoped to the caller)
# ═══════════════════════════════════════════════════════════════════════════════

@bp.route("/api/employee/notifications")
@require_role(ROLE_EMPLOYEE)
def api_employee_notifications():
    return jsonify(db.list_notifications_employee(g.identity.id))


def _mark(notification_id, field):
    if not db.mark_notification(notification_id, g.identity.id, field):
        raise NotFoundError()
    return jsonify({"ok": True})


@bp.route("/api/employee/notifications/<notification_id>/read", methods=["POST"])
@require_role(ROLE_EMPLOYEE)
def api_employee_notification_read(notification_id):
    return _mark(notification_id, "read_at")


@bp.route("/api/employee/notifications/<notification_id>/take", methods=["POST"])
@require_role(ROLE_EMPLOYEE)
def api_employee_notification_take(notification_id):
    return _mark(notification_id, "taken_at")


@bp.route("/api/employee/notifications/<notification_id>/replies")
@require_role(ROLE_EMPLOYEE)
def api_employee_replies(notification_id):
    if not db.get_notification_for_employee(notification_id, g.identity.id):
        raise NotFoundError()
    return jsonify(db.list_replies(notification_id))


@bp.route("/api/employee/notifications/<notification_id>/replies", methods=["POST"])
@require_role(ROLE_EMPLOYEE)
def api_employee_reply(notification_id):
    body = _reply_body()
    if not db.get_notification_for_employee(notification_id, g.identity.id):
        raise NotFoundError()
    reply = db.add_reply(notification_id, ROLE_EMPLOYEE, body, employee_id=g.identity.id)
    return jsonify({"ok": True, "id": reply["id"]}), 201
