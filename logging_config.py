"""
Logging for the Zalagh Plancher API.

setup_logging() is called once by create_app(). Every record handled inside a
Flask request is stamped with the route, the method and the caller (role + id
from g.identity) by RequestContextFilter, so the JSON file log can be filtered
per employee or per admin without parsing messages.

Env:
    LOG_LEVEL    DEBUG / INFO / WARNING ... (default INFO)
    LOG_FORMAT   "json" for JSON console lines (file log is always JSON)
    LOG_DIR      overrides <PLANCHER_DATA_DIR>/logs
"""
import logging
import logging.handlers
import os
import json
from datetime import datetime, timezone

from flask import g, has_request_context, request

DATA_DIR = os.environ.get("PLANCHER_DATA_DIR", os.path.join(os.path.dirname(__file__), "data"))
LOG_DIR = os.environ.get("LOG_DIR") or os.path.join(DATA_DIR, "logs")

# Fields copied from `extra={...}` into JSON lines
EXTRA_FIELDS = (
    "route", "method", "status", "duration_ms",
    "role", "actor_id", "demande_id", "employee_id", "admin_id",
    "secteur", "count", "intent",
)

MAX_LOG_BYTES = 5_000_000
LOG_BACKUPS = 5


class RequestContextFilter(logging.Filter):
    """Adds route/method/role/actor_id to records emitted during a request."""

    def filter(self, record):
        if not has_request_context():
            return True
        if not hasattr(record, "route"):
            record.route = request.path
        if not hasattr(record, "method"):
            record.method = request.method
        identity = g.get("identity")
        if identity is not None:
            if not hasattr(record, "role"):
                record.role = identity.role
            if not hasattr(record, "actor_id"):
                record.actor_id = identity.id
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record):
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """One colored line per record: `12:03:44 W plancher.auth [admin:3] msg`."""
    COLORS = {
        "DEBUG": "\033[36m", "INFO": "\033[32m",
        "WARNING": "\033[33m", "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.now().strftime("%H:%M:%S")
        who = ""
        if getattr(record, "role", None):
            who = f" [{record.role}:{getattr(record, 'actor_id', '?')}]"
        line = (f"{color}{ts} {record.levelname[0]} {record.name}{who} "
                f"{record.getMessage()}{self.RESET}")
        if record.exc_info and record.exc_info[0]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _rotating(path, level=logging.NOTSET):
    fh = logging.handlers.RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES,
                                              backupCount=LOG_BACKUPS, encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(JSONFormatter())
    return fh


def setup_logging(level=None, json_logs=None, log_dir=None):
    """
    Configure the root logger: console + plancher.log + errors.log.

    Args:
        level: Override log level (default: LOG_LEVEL env or INFO)
        json_logs: JSON console lines (default: LOG_FORMAT=json)
        log_dir: Directory for the rotating logs (default: LOG_DIR)
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO").upper()
    if json_logs is None:
        json_logs = os.environ.get("LOG_FORMAT", "").lower() == "json"
    log_dir = log_dir or LOG_DIR

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    for h in list(root.handlers):
        root.removeHandler(h)
        if isinstance(h, logging.FileHandler):
            h.close()

    context = RequestContextFilter()
    handlers = [logging.StreamHandler()]
    handlers[0].setFormatter(JSONFormatter() if json_logs else ConsoleFormatter())

    try:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(_rotating(os.path.join(log_dir, "plancher.log")))
        handlers.append(_rotating(os.path.join(log_dir, "errors.log"), logging.ERROR))
    except OSError as e:
        logging.getLogger("plancher").warning("File logging disabled (%s): %s", log_dir, e)

    for h in handlers:
        h.addFilter(context)
        root.addHandler(h)

    for name in ("urllib3", "werkzeug", "PIL", "reportlab"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("plancher").info("Logging initialized (level=%s, json=%s, dir=%s)",
                                       level, json_logs, log_dir)
