"""
Zalagh Plancher Quote PDF Generator
===================================
Fixed-layout devis for a demande, drawn directly on a reportlab canvas.

Layout:
  - Page 1: logo + company title, client block, one-row estimate table,
    indicative total, reference-price disclaimer, footer
  - Page 2 (only when the demande's plan image resolves to a file):
    "Plan du projet" with the image fitted inside 500 x 700 pt

Plan image failures are logged and the devis is produced without page 2.
"""

import os
import logging
from typing import Optional

from reportlab.lib.pagesizes import letter
from reportlab.lib.colors import HexColor
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from plancher.core import db, paths, uploads
from plancher.core.errors import NotFoundError

log = logging.getLogger("plancher.quote_gen")

# ═══════════════════════════════════════════════════════════════════════════════
# COLORS
# ═══════════════════════════════════════════════════════════════════════════════
BRAND   = HexColor("#0d47a1")   # title + table header text
INK     = HexColor("#1f2937")   # body text
RULE    = HexColor("#e5e7eb")   # rules + table border
HDR_BG  = HexColor("#f3f4f6")   # table header fill
TOTAL   = HexColor("#0b7a42")   # total line
MUTED   = HexColor("#6b7280")   # disclaimer + footer

COMPANY = "Zalagh Plancher"
SUBTITLE = "Devis / Demande"
LINE_LABEL = "Estimation fourniture béton prêt à l'emploi"
PRICE_PER_M3 = 150
DISCLAIMER = (f"Prix unitaire de référence: {PRICE_PER_M3} DH / m³. "
              "Valable sous réserve de confirmation et conditions de chantier.")
FOOTER = "Zalagh Plancher — Devis généré automatiquement"
PLAN_FIT = (500, 700)

LOGO_NAMES = ("téléchargement.jpg", "logo.png", "logo.jpg", "logo.jpeg")


def _find_logo() -> Optional[str]:
    """First logo file found under asset/."""
    for name in LOGO_NAMES:
        p = os.path.join(paths.ASSET_DIR, name)
        if os.path.exists(p):
            return p
    return None


def format_prix(prix) -> str:
    if prix is None:
        return ""
    try:
        value = float(prix)
    except (TypeError, ValueError):
        return str(prix)
    return str(int(value)) if value.is_integer() else f"{value:.2f}"


def _load_plan(plan_ref: str):
    """ImageReader for the demande's plan, or None if missing/unreadable."""
    plan_path = uploads.resolve_plan_path(plan_ref)
    if not plan_path:
        if plan_ref:
            log.info("Plan image %s not found on disk, skipping page 2", plan_ref)
        return None
    try:
        img = ImageReader(plan_path)
        img.getSize()
        return img
    except Exception as e:
        log.warning("Plan image load failed (%s): %s", plan_path, e)
        return None


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN PDF GENERATOR
# ═══════════════════════════════════════════════════════════════════════════════

def render_demande_pdf(demande: dict, output_path: str) -> dict:
    """
    Render the devis for one demande row to output_path.

    demande keys:
        iddemande, nom, prenom, telephone?, type_projet, prix, statut, plan_jpg?

    Returns {"ok", "path", "pages"}.
    """
    # ── Page constants ─────────────────────────────────────────────────────────
    W, H = letter
    ML = 50        # left margin
    MR = 545       # right edge
    UW = MR - ML   # 495 usable
    COLS = (300, 100, 100)

    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    c = canvas.Canvas(output_path, pagesize=letter)
    c.setTitle(f"{COMPANY} — Devis {demande.get('iddemande')}")
    c.setAuthor(COMPANY)

    # layout positions are measured from the top of the page
    def Y(top_y):
        return H - top_y

    def text(x, yt, txt, font="Helvetica", size=11, color=INK, align="left"):
        c.setFont(font, size)
        c.setFillColor(color)
        s = str(txt) if txt is not None else ""
        rl_y = Y(yt)
        if align == "center":
            c.drawCentredString(x, rl_y, s)
        else:
            c.drawString(x, rl_y, s)

    def rule(yt, color=RULE):
        c.setStrokeColor(color)
        c.setLineWidth(1)
        c.line(ML, Y(yt), MR, Y(yt))

    def footer():
        rule(760)
        text(ML + UW / 2, 774, FOOTER, size=9, color=MUTED, align="center")

    # ── Header ────────────────────────────────────────────────────────────────
    logo_path = _find_logo()
    if logo_path:
        try:
            c.drawImage(ImageReader(logo_path), ML, Y(40) - 48, width=48, height=48,
                        preserveAspectRatio=True, mask="auto")
        except Exception as e:
            log.warning("Logo load failed: %s", e)

    text(110, 62, COMPANY, "Helvetica-Bold", 18, BRAND)
    text(110, 80, SUBTITLE, size=10)
    rule(95)

    # ── Client block ──────────────────────────────────────────────────────────
    ty = 130
    lines = [
        f"N° Demande: {demande.get('iddemande')}",
        f"Client: {demande.get('nom', '')} {demande.get('prenom', '')}",
    ]
    if demande.get("telephone"):
        lines.append(f"Téléphone: {demande['telephone']}")
    lines.append(f"Type de projet: {demande.get('type_projet', '')}")
    lines.append(f"Statut: {demande.get('statut', '')}")
    for line in lines:
        text(ML, ty, line, size=12)
        ty += 17

    # ── Estimate table ────────────────────────────────────────────────────────
    ty += 12
    c.setFillColor(HDR_BG)
    c.setStrokeColor(RULE)
    c.rect(ML, Y(ty) - 20, UW, 20, fill=1, stroke=1)
    headers = ("Désignation", "Qté/Unité", "Montant (DH)")
    cx = ML
    for name, cw in zip(headers, COLS):
        text(cx + 8, ty + 14, name, "Helvetica-Bold", 11, BRAND)
        cx += cw
    ty += 24

    prix = format_prix(demande.get("prix"))
    text(ML + 8, ty + 11, LINE_LABEL)
    text(ML + COLS[0] + 8, ty + 11, "-")
    text(ML + COLS[0] + COLS[1] + 8, ty + 11, prix)
    ty += 18
    rule(ty)

    ty += 10
    text(ML + COLS[0] + COLS[1] - 92, ty + 12, f"Total TTC (indicatif): {prix} DH",
         "Helvetica-Bold", 12, TOTAL)
    ty += 24
    text(ML, ty + 9, DISCLAIMER, size=9, color=MUTED)

    footer()
    pages = 1

    # ── Plan page ─────────────────────────────────────────────────────────────
    plan = _load_plan(demande.get("plan_jpg"))
    if plan is not None:
        try:
            c.showPage()
            pages += 1
            text(ML, 66, "Plan du projet", "Helvetica-Bold", 16, BRAND)
            iw, ih = plan.getSize()
            scale = min(PLAN_FIT[0] / iw, PLAN_FIT[1] / ih)
            dw, dh = iw * scale, ih * scale
            # centered in the area between the title and the footer rule
            top, bottom = 85, 755
            dh_top = top + max(0, (bottom - top - dh) / 2)
            c.drawImage(plan, ML + (UW - dw) / 2, Y(dh_top) - dh, width=dw, height=dh,
                        preserveAspectRatio=True, mask="auto")
            footer()
        except Exception as e:
            log.warning("Plan page render failed for demande %s: %s",
                        demande.get("iddemande"), e)

    c.save()
    log.info("Devis %s rendered (%d page%s) → %s", demande.get("iddemande"),
             pages, "s" if pages > 1 else "", output_path,
             extra={"demande_id": demande.get("iddemande")})
    return {"ok": True, "path": output_path, "pages": pages}


# ═══════════════════════════════════════════════════════════════════════════════
# DEMANDE WRAPPERS
# ═══════════════════════════════════════════════════════════════════════════════

def generate_for_demande(iddemande: int) -> str:
    """Render pdfs/<id>.pdf, store its public path on the row, return it.

    Regeneration overwrites the same file.
    """
    d = db.get_demande(iddemande)
    if not d:
        raise NotFoundError("Not found")
    out = os.path.join(paths.PDF_DIR, f"{d['iddemande']}.pdf")
    render_demande_pdf(d, out)
    public = f"{paths.PDF_URL}{d['iddemande']}.pdf"
    db.set_demande_pdf(d["iddemande"], public)
    return public


def export_links(date_from: str, date_to: str) -> list:
    """Demandes created in [from, to] with a devis, generating missing ones first."""
    for d in db.demandes_between(date_from, date_to):
        if not d.get("pdf_path"):
            try:
                generate_for_demande(d["iddemande"])
            except Exception as e:
                log.error("Devis generation failed for demande %s: %s", d["iddemande"], e)
    return [d for d in db.demandes_between(date_from, date_to) if d.get("pdf_path")]
