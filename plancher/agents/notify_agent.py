"""
notify_agent.py — Sector broadcast notifications for Zalagh Plancher

An admin (or the admin assistant) sends one HTML notice to every employee of
a sector. Each employee gets their own notification row, which they can mark
read / taken and reply to.

  ┌───────────────┬────────────────────────────────────────┐
  │ Sender        │ Title                                  │
  ├───────────────┼────────────────────────────────────────┤
  │ admin form    │ free text from the admin               │
  │ assistant     │ "Liens de devis (<from> → <to>)"       │
  │ assistant     │ "Instruction" (custom text)            │
  │ assistant     │ "Notification" (links only)            │
  └───────────────┴────────────────────────────────────────┘
"""

import logging

from plancher.core import db
from plancher.core.errors import ValidationError

log = logging.getLogger("plancher.notify")


def validate_secteur(secteur: str) -> str:
    if secteur not in db.SECTEURS:
        raise ValidationError("invalid secteur")
    return secteur


def broadcast_to_sector(secteur: str, title: str, body_html: str,
                        admin_id: str = None) -> int:
    """
    Central sector dispatcher. Creates one notification per employee of the
    sector and returns how many were created (0 for an empty sector).
    """
    if not secteur or not title or not body_html:
        raise ValidationError("secteur, title and body_html required")
    if not all(isinstance(v, str) for v in (secteur, title, body_html)):
        raise ValidationError("secteur, title and body_html must be strings")
    validate_secteur(secteur)

    count = db.insert_notifications_for_sector(secteur, title, body_html, admin_id)
    log.info("Broadcast '%s' to %s: %d recipient(s)", title[:60], secteur, count,
             extra={"secteur": secteur, "count": count, "admin_id": admin_id})
    return count
