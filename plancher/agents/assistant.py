"""
assistant.py — AI assistant flows (vision, public chat, admin chat)

  vision      plan images → Gemini analysis + volume / cost estimate
  chat        public estimator chat, optional vision context
  admin_chat  rule-table intents first (quote links, sector notices),
              otherwise Gemini with live demande stats in the preamble

The price per m³ is fixed; the model is told never to change it.
"""

import logging

from plancher.core import db, uploads
from plancher.core.errors import ValidationError
from plancher.agents import gemini_client, intents, notify_agent
from plancher.forms import quote_generator

log = logging.getLogger("plancher.assistant")

MAX_IMAGES = 8
PRICE_PER_M3 = gemini_client.PRICE_PER_M3

DEFAULT_VISION_PROMPT = (
    "Analyse ces plans béton (images) en français et extrais dimensions, "
    "épaisseur, surfaces, volume total en m3 et hypothèses."
)
VISION_FORMAT_RULES = (
    "Règles de formatage: réponds en français, commence par un court titre en "
    "<strong>, puis liste à puces; insère des sauts de ligne <br/> entre sections; "
    "mets les nombres clés en <strong>. Si possible, fournis UNE ligne JSON: "
    '{"volume_m3": nombre}.'
)
CHAT_PREAMBLE = (
    f"Tu es un assistant expert pour Zalagh Plancher (entreprise de béton). "
    f"Prix fixe: {PRICE_PER_M3} DH par m³. Réponds en français et applique ces "
    "règles de formatage: \n- Titre court en <strong>\n- Réponse en listes à puces "
    "si possible\n- Sauts de ligne avec <br/> entre sections\n- Mots/nombres clés "
    'en <strong>\n- Si calcul de volume: ajoute UNE ligne JSON: {"volume_m3": nombre}\n'
    "Ne change jamais le prix par m³."
)
ADMIN_PREAMBLE = (
    "Tu es l'assistant business de Zalagh Plancher. Adresse-toi à l'administrateur "
    "{nom} {prenom}. Réponds en français et applique ces règles: \n- Titre court en "
    "<strong>\n- Listes à puces quand pertinent\n- Sauts de ligne avec <br/>\n- "
    "Mots/nombres clés en <strong>\n- Quand on te demande des LIENS DEVIS: retourne "
    "aussi un fragment HTML avec des <a> cliquables.\n- Si on demande d'envoyer les "
    "devis au service finance: répond OK et propose une période; le serveur "
    "s'occupera de la notification. {stats}"
)
NO_QUOTES = "Aucun devis trouvé pour cette période."
AUTO_FOOTER = ('<div style="margin-top:6px;color:#64748b;">Message automatique: '
               "liens de devis envoyés par l'assistant admin.</div>")


def _require_messages(messages) -> list:
    if not isinstance(messages, list) or not messages:
        raise ValidationError("messages array required")
    return messages


def _last_content(messages: list) -> str:
    last = messages[-1]
    if isinstance(last, dict):
        content = last.get("content")
        return "" if content is None else str(content)
    return str(last)


# ══════════════════════════════════════════════════════════════════════════════
# VISION
# ══════════════════════════════════════════════════════════════════════════════

def vision(files: list, prompt: str = None) -> dict:
    """Analyse 1..8 plan images. Each image is also kept under planjpg/."""
    files = [f for f in (files or []) if f and f.filename]
    if not files:
        raise ValidationError("at least one image required")
    if len(files) > MAX_IMAGES:
        raise ValidationError(f"at most {MAX_IMAGES} images")
    for f in files:
        if not uploads.is_allowed_image(f.filename):
            raise ValidationError("Only images (jpg,jpeg,png)")
    # nothing is written to uploads/ or planjpg/ without a key
    gemini_client.require_api_key()

    prompt = prompt or DEFAULT_VISION_PROMPT
    parts = [gemini_client.text_part(f"{prompt}\n{VISION_FORMAT_RULES}")]
    plan_paths = []
    saved = []
    try:
        for f in files:
            name = uploads.save_upload(f)
            saved.append(name)
            data = uploads.read_upload(name)
            plan_paths.append(uploads.publish_plan(name, f.filename))
            parts.append(gemini_client.image_part(data, f.mimetype or "image/jpeg"))

        response = gemini_client.generate_content([{"role": "user", "parts": parts}])
    finally:
        for name in saved:
            uploads.discard_upload(name)

    text = gemini_client.extract_text(response)
    volume = gemini_client.extract_volume(text)
    log.info("Vision analysis on %d image(s): volume=%s", len(files), volume)
    return {
        "text": text,
        "volume_m3": volume,
        "price_per_m3": PRICE_PER_M3,
        "estimated_cost_dh": gemini_client.estimate_cost(volume),
        "plan_jpgs": plan_paths,
        "plan_jpg": plan_paths[0] if plan_paths else None,
    }


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC CHAT
# ══════════════════════════════════════════════════════════════════════════════

def _vision_summary(ctx: dict) -> str:
    def _or(value, fallback):
        return fallback if value is None else value
    return (f"Vision analysis summary: {ctx.get('text') or ''}\n"
            f"Volume(m3): {_or(ctx.get('volume_m3'), 'unknown')}; "
            f"Price/m3: {_or(ctx.get('price_per_m3'), PRICE_PER_M3)}; "
            f"Estimated cost(DH): {_or(ctx.get('estimated_cost_dh'), 'unknown')}")


def chat(messages, vision_context: dict = None) -> dict:
    messages = _require_messages(messages)
    preamble = CHAT_PREAMBLE
    if isinstance(vision_context, dict) and vision_context:
        preamble += "\n" + _vision_summary(vision_context)
    contents = [{"role": "user", "parts": [gemini_client.text_part(preamble)]}]
    contents += gemini_client.to_contents(messages)
    response = gemini_client.generate_content(contents, "Gemini chat failed")
    return {"text": gemini_client.extract_text(response)}


# ══════════════════════════════════════════════════════════════════════════════
# ADMIN CHAT
# ══════════════════════════════════════════════════════════════════════════════

def _links_html(links: list, base_url: str, date_from: str, date_to: str) -> str:
    if links:
        items = "".join(
            f'<div>• <a href="{base_url}{r["pdf_path"]}" target="_blank" '
            f'rel="noopener">{r["iddemande"]}</a></div>' for r in links)
    else:
        items = f"<div>{NO_QUOTES}</div>"
    return (f'<div><strong>Liens de téléchargement des devis</strong> '
            f'<span style="color:#6b7280">({date_from} → {date_to})</span></div>{items}')


def _links_text(links: list, base_url: str, date_from: str, date_to: str) -> str:
    if links:
        listing = "\n".join(f"• {base_url}{r['pdf_path']} (ID {r['iddemande']})" for r in links)
    else:
        listing = NO_QUOTES
    return (f"Voici les liens de téléchargement des devis pour la période "
            f"{date_from} → {date_to} :\n{listing}")


def _stats_text() -> str:
    stats = db.demande_stats()
    recent = " | ".join(f"{r['iddemande']} {r['nom']} {r['prenom']} "
                        f"{quote_generator.format_prix(r['prix'])}DH {r['statut']}"
                        for r in stats["recent"])
    monthly = " / ".join(f"{m['month']}:{quote_generator.format_prix(m['total_prix'])}DH"
                         for m in stats["monthly"])
    return (f"Stats: Demandes totales={stats['total']}. Dernières demandes: {recent}. "
            f"Totaux mensuels: {monthly}.")


def _handle_quote_links(intent, base_url: str, admin_id: str) -> dict:
    links = quote_generator.export_links(intent.date_from, intent.date_to)
    html = _links_html(links, base_url, intent.date_from, intent.date_to)
    result = {"text": _links_text(links, base_url, intent.date_from, intent.date_to),
              "html": html}
    if intent.secteur:
        count = notify_agent.broadcast_to_sector(
            intent.secteur, f"Liens de devis ({intent.date_from} → {intent.date_to})",
            html + AUTO_FOOTER, admin_id)
        result["notified"] = count
    return result


def _handle_sector_notify(intent, base_url: str, admin_id: str) -> dict:
    html_parts = []
    if intent.custom_text:
        html_parts.append(f'<div style="margin-bottom:8px;">{intent.custom_text}</div>')
    if intent.has_range:
        links = quote_generator.export_links(intent.date_from, intent.date_to)
        html_parts.append(_links_html(links, base_url, intent.date_from, intent.date_to))
    if not html_parts:
        html_parts.append("<div>(Aucun contenu à diffuser)</div>")

    title = "Instruction" if intent.custom_text else "Notification"
    count = notify_agent.broadcast_to_sector(intent.secteur, title, "".join(html_parts),
                                             admin_id)
    text = f"Notification envoyée au secteur {intent.secteur} ({count} destinataires)."
    return {"text": text, "html": f"<div><strong>{text}</strong></div>"}


def admin_chat(admin_id: str, messages, base_url: str) -> dict:
    """Admin assistant turn. base_url prefixes PDF links (no trailing slash)."""
    messages = _require_messages(messages)
    base_url = (base_url or "").rstrip("/")
    intent = intents.detect_intent(_last_content(messages))
    log.info("Admin assistant intent: %s", intent.name, extra={"admin_id": admin_id})

    if intent.name == intents.QUOTE_LINKS:
        return _handle_quote_links(intent, base_url, admin_id)
    if intent.name == intents.SECTOR_NOTIFY:
        return _handle_sector_notify(intent, base_url, admin_id)

    admin = db.get_admin(admin_id) or {}
    preamble = ADMIN_PREAMBLE.format(nom=admin.get("nom", ""),
                                     prenom=admin.get("prenom", ""),
                                     stats=_stats_text())
    contents = [{"role": "user", "parts": [gemini_client.text_part(preamble)]}]
    contents += gemini_client.to_contents(messages)
    response = gemini_client.generate_content(contents, "Gemini admin chat failed")
    return {"text": gemini_client.extract_text(response)}
