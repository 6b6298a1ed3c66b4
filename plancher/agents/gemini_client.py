"""
gemini_client.py — Gemini generateContent over plain HTTP

No SDK: one POST per call to
  https://generativelanguage.googleapis.com/v1beta/models/<model>:generateContent?key=<key>
with {"contents": [{"role": "user"|"model", "parts": [...]}]}.

Parts are {"text": str} or {"inlineData": {"mimeType": str, "data": <base64>}}.
"""

import re
import base64
import logging

import requests

from plancher.core import secrets
from plancher.core.errors import ApiError, UpstreamError

log = logging.getLogger("plancher.gemini")

API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
TIMEOUT = 60

PRICE_PER_M3 = 150
_VOLUME_RE = re.compile(r'\{\s*"volume_m3"\s*:\s*([0-9]+(?:\.[0-9]+)?)\s*}')


def text_part(text: str) -> dict:
    return {"text": text}


def image_part(data: bytes, mime_type: str = "image/jpeg") -> dict:
    return {"inlineData": {"mimeType": mime_type or "image/jpeg",
                           "data": base64.b64encode(data).decode("ascii")}}


def to_contents(messages: list) -> list:
    """Chat history → contents; 'assistant' becomes 'model', anything else 'user'."""
    contents = []
    for m in messages:
        m = m if isinstance(m, dict) else {"content": m}
        role = "model" if m.get("role") == "assistant" else "user"
        content = m.get("content")
        contents.append({"role": role, "parts": [text_part("" if content is None else str(content))]})
    return contents


def require_api_key() -> str:
    api_key = secrets.get_key("gemini_api_key")
    if not api_key:
        log.error("GEMINI_API_KEY is not set")
        raise ApiError("Missing GEMINI_API_KEY")
    return api_key


def generate_content(contents: list, error_label: str = "Gemini request failed") -> dict:
    """POST contents to the configured model and return the decoded JSON body."""
    api_key = require_api_key()

    model = secrets.get_key("gemini_model")
    url = f"{API_BASE}/{model}:generateContent"
    resp = requests.post(url, params={"key": api_key}, json={"contents": contents},
                         timeout=TIMEOUT)
    if not resp.ok:
        log.error("Gemini API error %s: %s", resp.status_code, resp.text[:500])
        raise UpstreamError(error_label, status=resp.status_code, details=resp.text)
    return resp.json()


def extract_text(response: dict) -> str:
    """Text of the first candidate's parts joined by newlines, '' if absent."""
    try:
        parts = response["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    return "\n".join(p.get("text", "") for p in parts if isinstance(p, dict))


def extract_volume(text: str):
    """Volume from a {"volume_m3": n} line in model output, None if absent."""
    match = _VOLUME_RE.search(text or "")
    if not match:
        return None
    return float(match.group(1))


def estimate_cost(volume_m3):
    if volume_m3 is None:
        return None
    return volume_m3 * PRICE_PER_M3
