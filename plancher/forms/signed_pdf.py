"""Signed devis upload: decode a base64 PDF and mark the demande delivered."""

import os
import re
import base64
import binascii
import logging

from plancher.core import db, paths
from plancher.core.errors import ValidationError, NotFoundError

log = logging.getLogger("plancher.signed_pdf")

# file name suffix per uploader role
SUFFIXES = {
    "admin": "uploaded",
    "employee": "signed-by-emp",
}

_DATA_URL = re.compile(r"^data:[^;,]*;base64,", re.IGNORECASE)
_WS = re.compile(r"\s+")


def decode_base64(payload) -> bytes:
    if not payload or not isinstance(payload, str):
        raise ValidationError("missing base64")
    cleaned = _WS.sub("", _DATA_URL.sub("", payload.strip()))
    try:
        data = base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("invalid base64")
    if not data:
        raise ValidationError("missing base64")
    return data


def store_signed_pdf(iddemande: int, payload: str, uploader: str) -> dict:
    """Write pdfsigne/<id>-<suffix>.pdf and flip the demande to 'livré'.

    The bytes are stored as given; they are not checked to be a PDF.
    """
    suffix = SUFFIXES.get(uploader)
    if suffix is None:
        raise ValueError(f"unknown uploader role: {uploader}")
    data = decode_base64(payload)
    if not db.get_demande(iddemande):
        raise NotFoundError("Not found")

    name = f"{iddemande}-{suffix}.pdf"
    os.makedirs(paths.SIGNED_PDF_DIR, exist_ok=True)
    with open(os.path.join(paths.SIGNED_PDF_DIR, name), "wb") as f:
        f.write(data)

    public = paths.SIGNED_PDF_URL + name
    db.mark_demande_signed(iddemande, public)
    log.info("Signed devis stored for demande %s by %s (%d bytes)",
             iddemande, uploader, len(data), extra={"demande_id": iddemande})
    return {"pdf_signe": public, "statut": db.STATUT_LIVRE}
