"""
plancher/core/startup_checks.py — Runtime Self-Test on App Boot

Runs once when the app starts:

  1. Paths — every data directory exists and is writable
  2. Schema — all six tables present in the SQLite file
  3. Secrets — JWT secret / Gemini key configured
  4. Routes — blueprints registered, no duplicate endpoints

Failures are logged, never raised; the app still boots.
"""

import logging

log = logging.getLogger("plancher.startup")


def run_startup_checks(app=None) -> dict:
    """Run all startup validation checks. Call from app.py after blueprint registration.

    Returns:
        {"passed": int, "failed": int, "warnings": int, "details": [...]}
    """
    results = {"passed": 0, "failed": 0, "warnings": 0, "details": []}

    def _pass(msg):
        results["passed"] += 1
        results["details"].append(("PASS", msg))
        log.info("✅ %s", msg)

    def _fail(msg):
        results["failed"] += 1
        results["details"].append(("FAIL", msg))
        log.error("❌ STARTUP CHECK FAILED: %s", msg)

    def _warn(msg):
        results["warnings"] += 1
        results["details"].append(("WARN", msg))
        log.warning("⚠️  %s", msg)

    # ── 1. Path Validation ────────────────────────────────────────────────────
    try:
        from plancher.core import paths
        path_result = paths.validate_paths()
        if path_result["ok"]:
            _pass(f"All paths valid (DATA_DIR={paths.DATA_DIR})")
        else:
            for err in path_result["errors"]:
                _fail(err)
        for warn in path_result.get("warnings", []):
            _warn(warn)
    except Exception as e:
        _fail(f"Path validation error: {e}")

    # ── 2. Schema ─────────────────────────────────────────────────────────────
    try:
        from plancher.core import db
        present = set(db.existing_tables())
        missing = [t for t in db.TABLES if t not in present]
        if missing:
            _fail(f"Missing tables: {', '.join(missing)}")
        else:
            _pass(f"All {len(db.TABLES)} tables present")
    except Exception as e:
        _fail(f"Schema check error: {e}")

    # ── 3. Secrets ────────────────────────────────────────────────────────────
    try:
        from plancher.core import secrets
        report = secrets.startup_check()
        if report["secrets"]["jwt_secret"]["default_in_use"]:
            _warn("JWT_SECRET not set — tokens signed with the development default")
        else:
            _pass("JWT_SECRET configured")
        if report["secrets"]["gemini_api_key"]["set"]:
            _pass("GEMINI_API_KEY configured")
        else:
            _warn("GEMINI_API_KEY not set — AI endpoints disabled")
    except Exception as e:
        _warn(f"Secrets check skipped: {e}")

    # ── 4. Route Integrity (if app provided) ──────────────────────────────────
    if app:
        try:
            rules = [r for r in app.url_map.iter_rules()
                     if r.endpoint and not r.endpoint.startswith("static")]
            _pass(f"Flask routes registered: {len(rules)}")
            endpoints = [r.endpoint for r in rules]
            dupes = set(e for e in endpoints if endpoints.count(e) > 1)
            if dupes:
                _fail(f"Duplicate route endpoints: {dupes}")
        except Exception as e:
            _warn(f"Route check skipped: {e}")

    # ── Summary ──────────────────────────────────────────────────────────────
    total = results["passed"] + results["failed"] + results["warnings"]
    if results["failed"] > 0:
        log.error("STARTUP: %d/%d checks FAILED — app may not work correctly",
                  results["failed"], total)
    else:
        log.info("STARTUP: All %d checks passed (%d warnings)",
                 results["passed"], results["warnings"])

    return results
