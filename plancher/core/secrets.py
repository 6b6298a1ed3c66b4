"""
secrets.py — Centralized secret and settings registry

Single source of truth for every env-driven setting the service reads.

Env vars:
  JWT_SECRET              — HMAC secret used to sign bearer tokens
  JWT_EXPIRES_HOURS       — Bearer token lifetime (hours)
  DEFAULT_ADMIN_PASSWORD  — Password given to seeded admins that have none
  GEMINI_API_KEY          — Generative Language API key (AI assistant)
  GEMINI_MODEL            — Model used for vision + chat
  PORT                    — Listening port

Security:
  - Values are never logged in full (masked to first 8 chars)
  - Health/startup report shows which keys are set, not their values
"""

import os
import logging

log = logging.getLogger("plancher.secrets")

# ─── Secret Definitions ─────────────────────────────────────────────────────

_REGISTRY = {
    "jwt_secret": {
        "env": "JWT_SECRET",
        "required": True,
        "desc": "HMAC secret for bearer tokens",
        "consumers": ["auth"],
        "default": "dev-secret",
        "sensitive": True,
    },
    "jwt_expires_hours": {
        "env": "JWT_EXPIRES_HOURS",
        "required": False,
        "desc": "Bearer token lifetime in hours",
        "consumers": ["auth"],
        "default": "8",
    },
    "default_admin_password": {
        "env": "DEFAULT_ADMIN_PASSWORD",
        "required": False,
        "desc": "Password assigned to seeded admins lacking one",
        "consumers": ["db"],
        "default": "admin123",
        "sensitive": True,
    },
    "gemini_api_key": {
        "env": "GEMINI_API_KEY",
        "required": False,
        "desc": "Generative Language API key — vision + chat assistant",
        "consumers": ["assistant"],
        "sensitive": True,
    },
    "gemini_model": {
        "env": "GEMINI_MODEL",
        "required": False,
        "desc": "Gemini model name",
        "consumers": ["assistant"],
        "default": "gemini-2.0-flash",
    },
    "port": {
        "env": "PORT",
        "required": False,
        "desc": "HTTP listening port",
        "consumers": ["server"],
        "default": "8080",
    },
}


# ─── Public API ──────────────────────────────────────────────────────────────

def get_key(name: str) -> str:
    """Get a setting by registry name. Returns empty string if not set."""
    entry = _REGISTRY.get(name)
    if not entry:
        log.warning("Unknown secret requested: %s", name)
        return ""

    val = os.environ.get(entry["env"], "")
    if not val and "default" in entry:
        val = entry["default"]
    return val


def get_int(name: str, fallback: int = 0) -> int:
    try:
        return int(get_key(name))
    except (TypeError, ValueError):
        return fallback


def using_default(name: str) -> bool:
    """True when the registry default is in effect (env var unset)."""
    entry = _REGISTRY.get(name, {})
    return "default" in entry and not os.environ.get(entry.get("env", ""))


def mask(value: str) -> str:
    """Mask a secret for safe logging. Shows first 8 chars."""
    if not value:
        return "(not set)"
    if len(value) <= 12:
        return value[:4] + "****"
    return value[:8] + "****" + f"({len(value)} chars)"


def validate_all() -> dict:
    """Validate all settings. Returns status report."""
    results = {}
    warnings = []
    for name, entry in _REGISTRY.items():
        val = get_key(name)
        is_set = bool(val)
        results[name] = {
            "set": is_set,
            "env": entry["env"],
            "desc": entry["desc"],
            "masked": mask(val) if not entry.get("sensitive") else ("set" if is_set else "not set"),
            "required": entry.get("required", False),
            "consumers": entry["consumers"],
            "default_in_use": using_default(name),
        }
        if entry.get("required") and not is_set:
            warnings.append(f"REQUIRED secret missing: {entry['env']} ({entry['desc']})")
        if entry.get("sensitive") and entry.get("required") and using_default(name):
            warnings.append(f"{entry['env']} is using the built-in default — set it in production")

    return {
        "secrets": results,
        "total": len(results),
        "set": sum(1 for r in results.values() if r["set"]),
        "missing": sum(1 for r in results.values() if not r["set"]),
        "warnings": warnings,
    }


def startup_check():
    """Run on startup. Logs warnings for missing critical secrets."""
    report = validate_all()
    log.info("Secrets: %d/%d configured", report["set"], report["total"])
    for w in report["warnings"]:
        log.warning("SECRET: %s", w)
    if not report["secrets"]["gemini_api_key"]["set"]:
        log.warning("GEMINI_API_KEY not set — AI assistant endpoints will return 500")
    return report
