#!/usr/bin/env python3
"""
Zalagh Plancher — Application Entry Point
Creates the Flask app and registers every API blueprint.
"""

import os
import time
import logging

from flask import Flask, request

from logging_config import setup_logging

MAX_UPLOAD_MB = 25


def create_app():
    """Application factory."""
    setup_logging()
    log = logging.getLogger("plancher")

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_MB * 1024 * 1024
    app.json.ensure_ascii = False

    # ── Data directories ──────────────────────────────────────────────────────
    from plancher.core import paths
    paths.ensure_dirs()

    # ── Persistent database init + admin seed ─────────────────────────────────
    try:
        from plancher.core import db, secrets
        from plancher.core.security import hash_password
        result = db.startup(hash_password(secrets.get_key("default_admin_password")))
        log.info("DB: %s | demandes=%s employees=%s admins=%s",
                 result["db_path"],
                 result["stats"].get("demande", 0),
                 result["stats"].get("employee", 0),
                 result["stats"].get("admin", 0))
    except Exception as e:
        log.warning("DB init skipped: %s", e)

    # ── Blueprints + error handlers ───────────────────────────────────────────
    from plancher.api import register_blueprints
    from plancher.core.errors import register_error_handlers
    register_blueprints(app)
    register_error_handlers(app)

    # ── Security middleware (headers, CORS) ───────────────────────────────────
    try:
        from plancher.core.security import init_security
        init_security(app)
    except Exception as e:
        log.warning("Security init skipped: %s", e)

    # ── Request-level structured logging ──────────────────────────────────────
    @app.before_request
    def _log_request_start():
        request._start_time = time.time()

    @app.after_request
    def _log_request_end(response):
        if hasattr(request, "_start_time"):
            duration_ms = round((time.time() - request._start_time) * 1000, 1)
            if request.path != "/api/health":
                log.info("%s %s → %d (%.0fms)",
                         request.method, request.path, response.status_code, duration_ms,
                         extra={"route": request.path, "method": request.method,
                                "status": response.status_code, "duration_ms": duration_ms})
        return response

    # ── Runtime self-test ─────────────────────────────────────────────────────
    try:
        from plancher.core.startup_checks import run_startup_checks
        with app.app_context():
            checks = run_startup_checks(app)
            if checks["failed"] > 0:
                log.error("STARTUP: %d checks FAILED — review logs", checks["failed"])
    except Exception as e:
        log.warning("Startup checks skipped: %s", e)

    return app


# For gunicorn: gunicorn app:app
app = create_app()

if __name__ == "__main__":
    from plancher.core import secrets
    port = secrets.get_int("port", 8080)
    app.run(host="0.0.0.0", port=port, debug=False)
