"""
Image upload storage.

Multipart images land in uploads/ as ``<epoch-ms>_<sanitized name>``; plan
images that must outlive the request are copied into planjpg/ and referenced
by their public ``/planjpg/<name>`` path.
"""

import os
import re
import time
import shutil
import logging

from plancher.core import paths
from plancher.core.errors import ValidationError

log = logging.getLogger("plancher.uploads")

ALLOWED_EXTENSIONS = (".jpg", ".jpeg", ".png")
_UNSAFE = re.compile(r"[^a-zA-Z0-9_.-]")


def safe_filename(name: str) -> str:
    return _UNSAFE.sub("_", name or "")


def timestamped_name(original: str, directory: str = None) -> str:
    """``<epoch-ms>_<safe>``, bumped by a millisecond if already taken in directory."""
    safe = safe_filename(original) or "plan.jpg"
    ts = int(time.time() * 1000)
    name = f"{ts}_{safe}"
    while directory and os.path.exists(os.path.join(directory, name)):
        ts += 1
        name = f"{ts}_{safe}"
    return name


def is_allowed_image(filename: str) -> bool:
    return bool(filename) and filename.lower().endswith(ALLOWED_EXTENSIONS)


def save_upload(file_storage) -> str:
    """Save a werkzeug FileStorage under uploads/. Returns the stored file name."""
    if not file_storage or not file_storage.filename:
        raise ValidationError("file required")
    if not is_allowed_image(file_storage.filename):
        raise ValidationError("Only images (jpg,jpeg,png)")
    os.makedirs(paths.UPLOAD_DIR, exist_ok=True)
    name = timestamped_name(file_storage.filename, paths.UPLOAD_DIR)
    file_storage.save(os.path.join(paths.UPLOAD_DIR, name))
    log.debug("Upload saved: %s", name)
    return name


def read_upload(upload_name: str) -> bytes:
    with open(os.path.join(paths.UPLOAD_DIR, upload_name), "rb") as f:
        return f.read()


def publish_plan(upload_name: str, original: str = None, remove_source: bool = False) -> str:
    """Copy an uploaded image into planjpg/. Returns its public /planjpg/ path."""
    src = os.path.join(paths.UPLOAD_DIR, upload_name)
    os.makedirs(paths.PLAN_DIR, exist_ok=True)
    final_name = timestamped_name(original or upload_name, paths.PLAN_DIR)
    shutil.copyfile(src, os.path.join(paths.PLAN_DIR, final_name))
    if remove_source:
        discard_upload(upload_name)
    return paths.PLAN_URL + final_name


def discard_upload(upload_name: str):
    try:
        os.remove(os.path.join(paths.UPLOAD_DIR, upload_name))
    except OSError as e:
        log.warning("Could not remove temp upload %s: %s", upload_name, e)


def resolve_plan_path(plan_ref: str) -> str | None:
    """Map a stored plan reference to a file on disk, or None.

    ``/planjpg/<name>`` (or ``planjpg/<name>``) resolves under the plan dir;
    anything else is a file name under uploads/.
    """
    if not plan_ref:
        return None
    if os.path.isabs(plan_ref) and not plan_ref.startswith(paths.PLAN_URL):
        return plan_ref if os.path.isfile(plan_ref) else None
    rel = plan_ref.lstrip("/")
    if rel.startswith("planjpg/"):
        candidate = os.path.join(paths.PLAN_DIR, os.path.basename(rel))
    else:
        candidate = os.path.join(paths.UPLOAD_DIR, os.path.basename(rel))
    return candidate if os.path.isfile(candidate) else None
