"""
plancher/core/paths.py — Centralized Path Configuration

Single source of truth for every directory the service reads or writes.
Modules access these as attributes (``paths.PDF_DIR``) so the layout can be
redirected at runtime.

Layout under DATA_DIR:
    plancher.db   SQLite database
    uploads/      raw multipart uploads (temporary for AI vision)
    pdfs/         generated quote PDFs            → /pdfs/<id>.pdf
    pdfsigne/     signed PDFs uploaded back       → /pdfsigne/<name>
    planjpg/      plan images kept with demandes  → /planjpg/<name>
    logs/         rotating JSON log
"""

import os
import logging

log = logging.getLogger("plancher.paths")

# ── Project Root ──────────────────────────────────────────────────────────────
_THIS_FILE = os.path.abspath(__file__)
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(_THIS_FILE)))


def _resolve_data_dir() -> str:
    """PLANCHER_DATA_DIR env → project data/ directory."""
    env_dir = os.environ.get("PLANCHER_DATA_DIR", "")
    if env_dir:
        return env_dir
    return os.path.join(PROJECT_ROOT, "data")


DATA_DIR = _resolve_data_dir()

# ── Core Directories ─────────────────────────────────────────────────────────
UPLOAD_DIR = os.path.join(DATA_DIR, "uploads")
PDF_DIR = os.path.join(DATA_DIR, "pdfs")
SIGNED_PDF_DIR = os.path.join(DATA_DIR, "pdfsigne")
PLAN_DIR = os.path.join(DATA_DIR, "planjpg")
LOG_DIR = os.path.join(DATA_DIR, "logs")
ASSET_DIR = os.path.join(PROJECT_ROOT, "asset")

# ── Public URL prefixes (static mounts) ──────────────────────────────────────
UPLOAD_URL = "/uploads/"
PDF_URL = "/pdfs/"
SIGNED_PDF_URL = "/pdfsigne/"
PLAN_URL = "/planjpg/"
ASSET_URL = "/asset/"


def managed_dirs() -> dict:
    """Directories the service writes to, keyed by name."""
    return {
        "DATA_DIR": DATA_DIR,
        "UPLOAD_DIR": UPLOAD_DIR,
        "PDF_DIR": PDF_DIR,
        "SIGNED_PDF_DIR": SIGNED_PDF_DIR,
        "PLAN_DIR": PLAN_DIR,
        "LOG_DIR": LOG_DIR,
    }


def ensure_dirs():
    for d in managed_dirs().values():
        os.makedirs(d, exist_ok=True)


def validate_paths() -> dict:
    """Runtime validation — call at app startup to catch path issues early.

    Returns:
        {"ok": bool, "errors": [str], "warnings": [str], "resolved": {name: path}}
    """
    result = {"ok": True, "errors": [], "warnings": [], "resolved": {}}

    for name, path in managed_dirs().items():
        result["resolved"][name] = path
        if not os.path.isdir(path):
            result["errors"].append(f"{name} not found: {path}")
            result["ok"] = False
            continue
        test_file = os.path.join(path, ".write_test")
        try:
            with open(test_file, "w") as f:
                f.write("ok")
            os.remove(test_file)
        except OSError as e:
            result["errors"].append(f"{name} not writable: {e}")
            result["ok"] = False

    result["resolved"]["ASSET_DIR"] = ASSET_DIR
    if not os.path.isdir(ASSET_DIR):
        result["warnings"].append(f"ASSET_DIR not found: {ASSET_DIR} (quotes render without logo)")

    return result
