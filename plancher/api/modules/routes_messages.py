# routes_messages.py
# Direct messages. Contacts are addressed as "admin_<id>" or "employee_<id>";
# a bare id (or any other prefix) means an employee.

import logging

from flask import Blueprint, jsonify, g

from plancher.api.modules import request_data
from plancher.core import db
from plancher.core.errors import ValidationError
from plancher.core.security import require_role, ROLE_ADMIN, ROLE_EMPLOYEE

log = logging.getLogger("plancher.messages")

bp = Blueprint("messages", __name__)


def parse_contact(contact_id: str):
    """'admin_<id>' → ('admin', id); anything else → ('employee', id)."""
    contact_id = str(contact_id or "").strip()
    prefix, sep, rest = contact_id.partition("_")
    if not sep:
        return ROLE_EMPLOYEE, contact_id
    if prefix == ROLE_ADMIN:
        return ROLE_ADMIN, rest
    return ROLE_EMPLOYEE, rest


def _send(sender_role: str):
    data = request_data()
    recipient, content = data.get("recipient_id"), data.get("content")
    if not recipient or not content:
        raise ValidationError("recipient_id and content required")
    recipient_type, recipient_id = parse_contact(recipient)
    if not recipient_id:
        raise ValidationError("invalid recipient_id")
    msg = db.add_message(g.identity.id, sender_role, recipient_id, recipient_type,
                         str(content))
    log.debug("Message %s: %s_%s → %s_%s", msg["id"], sender_role, g.identity.id,
              recipient_type, recipient_id)
    return jsonify(msg), 201


def _conversation(me_role: str, contact_id: str):
    other_type, other_id = parse_contact(contact_id)
    return jsonify(db.conversation(g.identity.id, me_role, other_id, other_type))


@bp.route("/api/messages/<contact_id>")
@require_role(ROLE_EMPLOYEE)
def api_employee_conversation(contact_id):
    return _conversation(ROLE_EMPLOYEE, contact_id)


@bp.route("/api/messages", methods=["POST"])
@require_role(ROLE_EMPLOYEE)
def api_employee_send():
    return _send(ROLE_EMPLOYEE)


@bp.route("/api/admin/messages/<contact_id>")
@require_role(ROLE_ADMIN)
def api_admin_conversation(contact_id):
    return _conversation(ROLE_ADMIN, contact_id)


@bp.route("/api/admin/messages", methods=["POST"])
@require_role(ROLE_ADMIN)
def api_admin_send():
    return _send(ROLE_ADMIN)
