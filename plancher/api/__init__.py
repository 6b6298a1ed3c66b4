"""
HTTP surface — one blueprint per area, registered by register_blueprints().
"""

import logging

log = logging.getLogger("plancher.api")


def register_blueprints(app):
    from plancher.api.modules import (
        routes_auth, routes_employees, routes_demandes, routes_notifications,
        routes_messages, routes_ai, routes_files, routes_guide,
    )
    modules = [routes_auth, routes_employees, routes_demandes, routes_notifications,
               routes_messages, routes_ai, routes_files, routes_guide]
    for mod in modules:
        app.register_blueprint(mod.bp)
    log.info("Registered %d blueprints", len(modules))
    return [m.bp.name for m in modules]
