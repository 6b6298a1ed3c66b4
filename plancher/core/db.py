"""
plancher/core/db.py — SQLite Database Layer

One file under PLANCHER_DATA_DIR holds all structured data. Every access goes
through get_db(), a locked connection with WAL mode and foreign keys on.
Queries are plain parameterized SQL; rows come back as dicts.

TABLES:
  admin               — back-office administrators (seeded, never created via API)
  employee            — staff, one sector each (finance / chantier / production)
  demande             — customer project requests + quote / signed PDF paths
  notification        — one row per employee per admin broadcast
  notification_reply  — append-only thread under a notification
  message             — direct messages (employee ↔ employee, employee ↔ admin)
"""

import os
import uuid
import sqlite3
import logging
import threading
from datetime import datetime, timezone
from contextlib import contextmanager

from plancher.core import paths

log = logging.getLogger("plancher.db")

DB_PATH = os.path.join(paths.DATA_DIR, "plancher.db")

SECTEURS = ("finance", "chantier", "production")
STATUT_ENCOURS = "encours"
STATUT_LIVRE = "livré"

SEED_ADMINS = [
    {"nom": "Zalagh", "prenom": "Khalid", "email": "khalid@gmail.com"},
    {"nom": "Lahlou", "prenom": "Ahmed", "email": "lahlou@gmail.com"},
]

TABLES = ["admin", "employee", "demande", "notification",
          "notification_reply", "message"]

_db_lock = threading.Lock()


# ── Connection factory ────────────────────────────────────────────────────────
@contextmanager
def get_db():
    """Thread-safe SQLite connection, committed on success, rolled back on error."""
    with _db_lock:
        conn = sqlite3.connect(DB_PATH, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


def now_iso() -> str:
    """UTC timestamp, millisecond precision, comparable as text."""
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="milliseconds")


def _new_id() -> str:
    return uuid.uuid4().hex


# ── Schema ────────────────────────────────────────────────────────────────────
SCHEMA = """
CREATE TABLE IF NOT EXISTS admin (
    id          TEXT PRIMARY KEY,
    nom         TEXT NOT NULL,
    prenom      TEXT NOT NULL,
    email       TEXT UNIQUE NOT NULL,
    mdp_hash    TEXT,
    created_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS employee (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    nom         TEXT NOT NULL,
    prenom      TEXT NOT NULL,
    secteur     TEXT NOT NULL CHECK (secteur IN ('finance','chantier','production')),
    email       TEXT UNIQUE,
    mdp_hash    TEXT,
    adminref    TEXT REFERENCES admin(id),
    created_at  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_employee_secteur ON employee(secteur);

CREATE TABLE IF NOT EXISTS demande (
    iddemande       INTEGER PRIMARY KEY AUTOINCREMENT,
    nom             TEXT NOT NULL,
    prenom          TEXT NOT NULL,
    telephone       TEXT,
    type_projet     TEXT NOT NULL,
    plan_jpg        TEXT,
    prix            REAL NOT NULL,
    statut          TEXT NOT NULL DEFAULT 'encours'
                    CHECK (statut IN ('encours','livré')),
    pdf_path        TEXT,
    pdf_signe_path  TEXT,
    created_at      TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_demande_created ON demande(created_at);

CREATE TABLE IF NOT EXISTS notification (
    id                TEXT PRIMARY KEY,
    employee_id       INTEGER NOT NULL REFERENCES employee(id) ON DELETE CASCADE,
    title             TEXT NOT NULL,
    body_html         TEXT NOT NULL,
    created_by_admin  TEXT REFERENCES admin(id),
    created_at        TEXT NOT NULL,
    read_at           TEXT,
    taken_at          TEXT
);
CREATE INDEX IF NOT EXISTS idx_notification_employee ON notification(employee_id);

CREATE TABLE IF NOT EXISTS notification_reply (
    id                  TEXT PRIMARY KEY,
    notification_id     TEXT NOT NULL REFERENCES notification(id) ON DELETE CASCADE,
    sender_type         TEXT NOT NULL CHECK (sender_type IN ('employee','admin')),
    sender_employee_id  INTEGER,
    sender_admin_id     TEXT,
    body                TEXT NOT NULL,
    created_at          TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_reply_notification ON notification_reply(notification_id);

CREATE TABLE IF NOT EXISTS message (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    sender_id       TEXT NOT NULL,
    sender_type     TEXT NOT NULL CHECK (sender_type IN ('employee','admin')),
    recipient_id    TEXT NOT NULL,
    recipient_type  TEXT NOT NULL CHECK (recipient_type IN ('employee','admin')),
    content         TEXT NOT NULL,
    created_at      TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_message_pair ON message(sender_id, recipient_id);
"""


def init_db():
    """Create all tables if they don't exist. Safe to call multiple times."""
    os.makedirs(os.path.dirname(DB_PATH), exist_ok=True)
    with get_db() as conn:
        conn.executescript(SCHEMA)
    log.info("DB initialized at %s", DB_PATH)
    return True


def seed_admins(default_password_hash: str) -> int:
    """Insert the seeded admins and give a password to any that lack one.

    Returns the number of admins whose password was set.
    """
    with get_db() as conn:
        for a in SEED_ADMINS:
            conn.execute(
                "INSERT OR IGNORE INTO admin (id, nom, prenom, email, mdp_hash, created_at) "
                "VALUES (?,?,?,?,NULL,?)",
                (_new_id(), a["nom"], a["prenom"], a["email"], now_iso()))
        emails = [a["email"] for a in SEED_ADMINS]
        cur = conn.execute(
            f"UPDATE admin SET mdp_hash=? WHERE email IN ({','.join('?' * len(emails))}) "
            "AND (mdp_hash IS NULL OR mdp_hash='')",
            [default_password_hash] + emails)
        updated = cur.rowcount
    if updated:
        log.info("Default password set on %d seeded admin(s)", updated)
    return updated


def table_counts() -> dict:
    """Row counts for every table — used by /api/health and startup checks."""
    counts = {}
    with get_db() as conn:
        for table in TABLES:
            try:
                counts[table] = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            except sqlite3.OperationalError:
                counts[table] = None
    return counts


def existing_tables() -> list:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    return sorted(r["name"] for r in rows)


def startup(default_password_hash: str) -> dict:
    """Initialize DB and seed admins. Call once at app start."""
    init_db()
    seeded = seed_admins(default_password_hash)
    counts = table_counts()
    log.info("DB ready: %s", counts)
    return {"ok": True, "db_path": DB_PATH, "stats": counts, "admins_seeded": seeded}


def _rows(rows) -> list:
    return [dict(r) for r in rows]


def _one(row):
    return dict(row) if row else None


# ── Admins ────────────────────────────────────────────────────────────────────
def get_admin(admin_id: str) -> dict | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT id, nom, prenom, email, created_at FROM admin WHERE id=?",
            (admin_id,)).fetchone()
    return _one(row)


def get_admin_by_email(email: str) -> dict | None:
    """Full admin row including mdp_hash — for login only."""
    with get_db() as conn:
        row = conn.execute("SELECT * FROM admin WHERE email=?", (email,)).fetchone()
    return _one(row)


def list_admins() -> list:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT id, nom, prenom, email FROM admin ORDER BY nom").fetchall()
    return _rows(rows)


# ── Employees ─────────────────────────────────────────────────────────────────
_EMPLOYEE_PUBLIC = "id, nom, prenom, secteur, email, adminref, created_at"


def create_employee(nom: str, prenom: str, secteur: str, email: str = None,
                    mdp_hash: str = None, adminref: str = None) -> dict:
    with get_db() as conn:
        cur = conn.execute(
            "INSERT INTO employee (nom, prenom, secteur, email, mdp_hash, adminref, created_at) "
            "VALUES (?,?,?,?,?,?,?)",
            (nom, prenom, secteur, email or None, mdp_hash, adminref, now_iso()))
        row = conn.execute(f"SELECT {_EMPLOYEE_PUBLIC} FROM employee WHERE id=?",
                           (cur.lastrowid,)).fetchone()
    log.info("Employee %s created in %s", row["id"], secteur,
             extra={"employee_id": row["id"], "secteur": secteur})
    return dict(row)


def get_employee(employee_id: int) -> dict | None:
    with get_db() as conn:
        row = conn.execute(f"SELECT {_EMPLOYEE_PUBLIC} FROM employee WHERE id=?",
                           (employee_id,)).fetchone()
    return _one(row)


def get_employee_by_email(email: str) -> dict | None:
    """Full employee row including mdp_hash — for login only."""
    with get_db() as conn:
        row = conn.execute("SELECT * FROM employee WHERE email=?", (email,)).fetchone()
    return _one(row)


def list_employees(secteur: str = None) -> list:
    with get_db() as conn:
        if secteur:
            rows = conn.execute(
                f"SELECT {_EMPLOYEE_PUBLIC} FROM employee WHERE secteur=? ORDER BY id DESC",
                (secteur,)).fetchall()
        else:
            rows = conn.execute(
                f"SELECT {_EMPLOYEE_PUBLIC} FROM employee ORDER BY id DESC").fetchall()
    return _rows(rows)


# ── Demandes ──────────────────────────────────────────────────────────────────
def create_demande(nom: str, prenom: str, type_projet: str, prix: float,
                   telephone: str = None, plan_jpg: str = None) -> dict:
    """Insert a demande. New rows always start 'encours'."""
    with get_db() as conn:
        cur = conn.execute(
            "INSERT INTO demande (nom, prenom, telephone, type_projet, plan_jpg, prix, statut, created_at) "
            "VALUES (?,?,?,?,?,?,?,?)",
            (nom, prenom, telephone or None, type_projet, plan_jpg, prix,
             STATUT_ENCOURS, now_iso()))
        row = conn.execute("SELECT * FROM demande WHERE iddemande=?",
                           (cur.lastrowid,)).fetchone()
    log.info("Demande %s created (%s)", row["iddemande"], type_projet,
             extra={"demande_id": row["iddemande"]})
    return dict(row)


def get_demande(iddemande: int) -> dict | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM demande WHERE iddemande=?",
                           (iddemande,)).fetchone()
    return _one(row)


def list_demandes(limit: int = None) -> list:
    """All demandes, newest first."""
    with get_db() as conn:
        if limit:
            rows = conn.execute(
                "SELECT * FROM demande ORDER BY created_at DESC, iddemande DESC LIMIT ?",
                (limit,)).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM demande ORDER BY created_at DESC, iddemande DESC").fetchall()
    return _rows(rows)


def set_demande_pdf(iddemande: int, pdf_path: str) -> bool:
    with get_db() as conn:
        cur = conn.execute("UPDATE demande SET pdf_path=? WHERE iddemande=?",
                           (pdf_path, iddemande))
    return cur.rowcount > 0


def mark_demande_signed(iddemande: int, pdf_signe_path: str) -> bool:
    """Record the signed PDF and flip statut to 'livré' in one statement.

    This is the only writer of pdf_signe_path, so statut == 'livré' exactly
    when a signed path is present.
    """
    with get_db() as conn:
        cur = conn.execute(
            "UPDATE demande SET pdf_signe_path=?, statut=? WHERE iddemande=?",
            (pdf_signe_path, STATUT_LIVRE, iddemande))
    return cur.rowcount > 0


def demandes_between(date_from: str, date_to: str) -> list:
    """iddemande + pdf_path for demandes created in [from, to] (dates inclusive)."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT iddemande, pdf_path FROM demande "
            "WHERE date(created_at) BETWEEN date(?) AND date(?) "
            "ORDER BY created_at ASC, iddemande ASC",
            (date_from, date_to)).fetchall()
    return _rows(rows)


def demande_stats(recent: int = 10, months: int = 6) -> dict:
    """Total count, most recent demandes and monthly price totals."""
    with get_db() as conn:
        total = conn.execute("SELECT COUNT(*) FROM demande").fetchone()[0]
        last = conn.execute(
            "SELECT iddemande, nom, prenom, telephone, prix, statut, created_at "
            "FROM demande ORDER BY created_at DESC, iddemande DESC LIMIT ?",
            (recent,)).fetchall()
        monthly = conn.execute(
            "SELECT strftime('%Y-%m', created_at) AS month, SUM(prix) AS total_prix "
            "FROM demande GROUP BY month ORDER BY month DESC LIMIT ?",
            (months,)).fetchall()
    return {"total": total, "recent": _rows(last), "monthly": _rows(monthly)}


# ── Notifications ─────────────────────────────────────────────────────────────
def insert_notifications_for_sector(secteur: str, title: str, body_html: str,
                                    admin_id: str = None) -> int:
    """One notification per employee of the sector. Returns the row count.

    Runs inside a single connection so the fan-out commits or rolls back whole.
    """
    created = now_iso()
    with get_db() as conn:
        emps = conn.execute("SELECT id FROM employee WHERE secteur=?",
                            (secteur,)).fetchall()
        for e in emps:
            conn.execute(
                "INSERT INTO notification (id, employee_id, title, body_html, "
                "created_by_admin, created_at) VALUES (?,?,?,?,?,?)",
                (_new_id(), e["id"], title, body_html, admin_id, created))
    return len(emps)


def list_notifications_admin(secteur: str = None, limit: int = 200) -> list:
    q = ("SELECT n.id, n.employee_id, e.nom, e.prenom, e.secteur, n.title, "
         "n.body_html, n.created_at, n.read_at, n.taken_at "
         "FROM notification n JOIN employee e ON e.id = n.employee_id")
    params = []
    if secteur:
        q += " WHERE e.secteur=?"
        params.append(secteur)
    q += " ORDER BY n.created_at DESC LIMIT ?"
    params.append(limit)
    with get_db() as conn:
        rows = conn.execute(q, params).fetchall()
    return _rows(rows)


def list_notifications_employee(employee_id: int) -> list:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT n.id, n.title, n.body_html, n.created_at, n.read_at, n.taken_at, "
            "n.created_by_admin, a.nom AS admin_nom, a.prenom AS admin_prenom "
            "FROM notification n LEFT JOIN admin a ON a.id = n.created_by_admin "
            "WHERE n.employee_id=? ORDER BY n.created_at DESC",
            (employee_id,)).fetchall()
    return _rows(rows)


def get_notification(notification_id: str) -> dict | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM notification WHERE id=?",
                           (notification_id,)).fetchone()
    return _one(row)


def get_notification_for_employee(notification_id: str, employee_id: int) -> dict | None:
    """The notification only if it belongs to this employee."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM notification WHERE id=? AND employee_id=?",
            (notification_id, employee_id)).fetchone()
    return _one(row)


def mark_notification(notification_id: str, employee_id: int, field: str) -> int:
    """Stamp read_at or taken_at on the caller's notification. Returns rowcount."""
    if field not in ("read_at", "taken_at"):
        raise ValueError(f"cannot mark {field}")
    with get_db() as conn:
        cur = conn.execute(
            f"UPDATE notification SET {field}=? WHERE id=? AND employee_id=?",
            (now_iso(), notification_id, employee_id))
    return cur.rowcount


def list_replies(notification_id: str) -> list:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT id, sender_type, body, created_at FROM notification_reply "
            "WHERE notification_id=? ORDER BY created_at ASC, rowid ASC",
            (notification_id,)).fetchall()
    return _rows(rows)


def add_reply(notification_id: str, sender_type: str, body: str,
              employee_id: int = None, admin_id: str = None) -> dict:
    reply = {
        "id": _new_id(),
        "notification_id": notification_id,
        "sender_type": sender_type,
        "sender_employee_id": employee_id if sender_type == "employee" else None,
        "sender_admin_id": admin_id if sender_type == "admin" else None,
        "body": body,
        "created_at": now_iso(),
    }
    with get_db() as conn:
        conn.execute(
            "INSERT INTO notification_reply (id, notification_id, sender_type, "
            "sender_employee_id, sender_admin_id, body, created_at) VALUES (?,?,?,?,?,?,?)",
            (reply["id"], notification_id, sender_type, reply["sender_employee_id"],
             reply["sender_admin_id"], body, reply["created_at"]))
    return reply


# ── Direct messages ───────────────────────────────────────────────────────────
def add_message(sender_id, sender_type: str, recipient_id, recipient_type: str,
                content: str) -> dict:
    with get_db() as conn:
        cur = conn.execute(
            "INSERT INTO message (sender_id, sender_type, recipient_id, recipient_type, "
            "content, created_at) VALUES (?,?,?,?,?,?)",
            (str(sender_id), sender_type, str(recipient_id), recipient_type,
             content, now_iso()))
        row = conn.execute("SELECT * FROM message WHERE id=?",
                           (cur.lastrowid,)).fetchone()
    return dict(row)


def conversation(me_id, me_type: str, other_id, other_type: str) -> list:
    """Both directions of the (me, other) channel, oldest first, with sender_name."""
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT m.*,
                   CASE WHEN m.sender_type = 'employee'
                        THEN e.nom || ' ' || e.prenom
                        ELSE a.nom || ' ' || a.prenom
                   END AS sender_name
            FROM message m
            LEFT JOIN employee e ON m.sender_type = 'employee'
                                 AND CAST(e.id AS TEXT) = m.sender_id
            LEFT JOIN admin a ON m.sender_type = 'admin' AND a.id = m.sender_id
            WHERE (m.sender_id = ? AND m.sender_type = ?
                   AND m.recipient_id = ? AND m.recipient_type = ?)
               OR (m.sender_id = ? AND m.sender_type = ?
                   AND m.recipient_id = ? AND m.recipient_type = ?)
            ORDER BY m.created_at ASC, m.id ASC
            """,
            (str(me_id), me_type, str(other_id), other_type,
             str(other_id), other_type, str(me_id), me_type)).fetchall()
    return _rows(rows)
