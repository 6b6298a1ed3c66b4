"""
intents.py — Rule table for the admin assistant

The last admin message is lowercased and matched against RULES in order;
the first rule whose patterns all match decides the intent. Fields are then
extracted from the message (date range, sector, custom text). No rule
matching means "chat": the message goes to the model.

  quote_links    "liens des devis du 01/03/2025 au 31/03/2025 et envoie à finance"
  sector_notify  "envoie une notification à chantier message: RDV 8h"
"""

import re
from datetime import datetime, timedelta, timezone

QUOTE_LINKS = "quote_links"
SECTOR_NOTIFY = "sector_notify"
CHAT = "chat"

DEFAULT_RANGE_DAYS = 30

_DATE_TOKEN = re.compile(r"\d{4}-\d{2}-\d{2}|\d{2}/\d{2}/\d{4}")
_ISO = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
_FR = re.compile(r"\b(\d{2})/(\d{2})/(\d{4})\b")
_SEND_TO_SECTOR = re.compile(r"(envoy|send).*\b(finance|chantier|production)\b")
_SECTOR = re.compile(r"(finance|chantier|production)")
_CUSTOM_TEXT = re.compile(r"(?:message|instr(?:uction)?|texte)\s*:\s*([\s\S]+)", re.IGNORECASE)

RULES = [
    {"intent": QUOTE_LINKS,
     "patterns": [re.compile(r"(télécharg|telecharg|lien|liens).*(devis|pdf)")]},
    {"intent": SECTOR_NOTIFY,
     "patterns": [re.compile(r"(notif|notification|envoi|envoy\w*)"), _SECTOR]},
]


class Intent:
    """Outcome of matching one admin message against RULES."""

    def __init__(self, name, date_from=None, date_to=None, secteur=None,
                 custom_text=None):
        self.name = name
        self.date_from = date_from
        self.date_to = date_to
        self.secteur = secteur
        self.custom_text = custom_text

    @property
    def has_range(self) -> bool:
        return bool(self.date_from and self.date_to)

    def to_dict(self) -> dict:
        return {"intent": self.name, "from": self.date_from, "to": self.date_to,
                "secteur": self.secteur, "custom_text": self.custom_text}

    def __repr__(self):
        return f"Intent({self.to_dict()!r})"


def parse_date_token(token: str):
    """'YYYY-MM-DD' or 'DD/MM/YYYY' → 'YYYY-MM-DD', anything else → None."""
    token = (token or "").strip()
    m = _ISO.search(token)
    if m:
        return f"{m.group(1)}-{m.group(2)}-{m.group(3)}"
    m = _FR.search(token)
    if m:
        return f"{m.group(3)}-{m.group(2)}-{m.group(1)}"
    return None


def explicit_date_range(text: str):
    """(from, to) from the first two date tokens, or (None, None)."""
    tokens = _DATE_TOKEN.findall(text or "")
    if len(tokens) < 2:
        return None, None
    start, end = parse_date_token(tokens[0]), parse_date_token(tokens[1])
    if not start or not end:
        return None, None
    return start, end


def default_date_range(today=None):
    """Trailing window ending today (UTC)."""
    today = today or datetime.now(timezone.utc).date()
    start = today - timedelta(days=DEFAULT_RANGE_DAYS)
    return start.isoformat(), today.isoformat()


def extract_date_range(text: str, today=None):
    start, end = explicit_date_range(text)
    if start and end:
        return start, end
    return default_date_range(today)


def match_rule(lowered: str):
    for rule in RULES:
        if all(p.search(lowered) for p in rule["patterns"]):
            return rule["intent"]
    return CHAT


def detect_intent(message: str, today=None) -> Intent:
    """Classify one admin message and pull out the fields its intent needs."""
    original = "" if message is None else str(message)
    lowered = original.lower()
    name = match_rule(lowered)

    if name == QUOTE_LINKS:
        start, end = extract_date_range(lowered, today)
        send = _SEND_TO_SECTOR.search(lowered)
        return Intent(QUOTE_LINKS, start, end, secteur=send.group(2) if send else None)

    if name == SECTOR_NOTIFY:
        secteur = _SECTOR.search(lowered).group(1)
        custom = _CUSTOM_TEXT.search(original)
        start, end = explicit_date_range(lowered)
        return Intent(SECTOR_NOTIFY, start, end, secteur=secteur,
                      custom_text=custom.group(1).strip() if custom else None)

    return Intent(CHAT)
