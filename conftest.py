"""
Shared pytest fixtures for the Zalagh Plancher test suite.

Every test gets its own data directory (SQLite file, uploads, PDFs) and a
fresh Flask app. Gemini is never called: tests that need it use the
``gemini`` fixture, which replaces requests.post with a recorder.
"""
import io
import os
import sys
import tempfile
import pytest

# Point module-level paths at a scratch dir before anything imports them.
os.environ.setdefault("PLANCHER_DATA_DIR", tempfile.mkdtemp(prefix="plancher-test-"))

_PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

ADMIN_EMAIL = "khalid@gmail.com"
ADMIN_PASSWORD = "admin123"
EMPLOYEE_PASSWORD = "secret123"


# ── Temp data directory (per-test isolation) ──────────────────────────────────

@pytest.fixture(autouse=True)
def temp_data_dir(tmp_path, monkeypatch):
    """Redirect every data directory and the DB file to an isolated tmp dir."""
    from plancher.core import paths, db

    data = str(tmp_path / "data")
    monkeypatch.setattr(paths, "DATA_DIR", data)
    monkeypatch.setattr(paths, "UPLOAD_DIR", os.path.join(data, "uploads"))
    monkeypatch.setattr(paths, "PDF_DIR", os.path.join(data, "pdfs"))
    monkeypatch.setattr(paths, "SIGNED_PDF_DIR", os.path.join(data, "pdfsigne"))
    monkeypatch.setattr(paths, "PLAN_DIR", os.path.join(data, "planjpg"))
    monkeypatch.setattr(paths, "LOG_DIR", os.path.join(data, "logs"))
    monkeypatch.setattr(paths, "ASSET_DIR", str(tmp_path / "asset"))
    monkeypatch.setattr(db, "DB_PATH", os.path.join(data, "plancher.db"))

    monkeypatch.setenv("DEFAULT_ADMIN_PASSWORD", ADMIN_PASSWORD)
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("DISABLE_RATE_LIMIT", "true")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    paths.ensure_dirs()
    db.init_db()
    return data


# ── Flask test client ─────────────────────────────────────────────────────────

class AuthenticatedClient:
    """Wraps Flask test client to add a Bearer token to every request."""
    def __init__(self, client, headers):
        self._client = client
        self._headers = headers

    def get(self, *args, **kwargs):
        kwargs.setdefault("headers", {}).update(self._headers)
        return self._client.get(*args, **kwargs)

    def post(self, *args, **kwargs):
        kwargs.setdefault("headers", {}).update(self._headers)
        return self._client.post(*args, **kwargs)


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def app(temp_data_dir):
    """Create Flask app configured for testing (seeds the default admins)."""
    from app import create_app
    application = create_app()
    application.config["TESTING"] = True
    return application


@pytest.fixture
def anon_client(app):
    """Unauthenticated test client."""
    return app.test_client()


@pytest.fixture
def admin(app):
    from plancher.core import db
    return db.get_admin_by_email(ADMIN_EMAIL)


@pytest.fixture
def admin_headers(admin):
    from plancher.core.security import admin_token
    return bearer(admin_token(admin))


@pytest.fixture
def admin_client(app, admin_headers):
    return AuthenticatedClient(app.test_client(), admin_headers)


# ── Seed helpers ──────────────────────────────────────────────────────────────

@pytest.fixture
def make_employee(app, admin):
    """Factory: make_employee("finance", email=...) → employee row (with password)."""
    from plancher.core import db
    from plancher.core.security import hash_password
    counter = {"n": 0}

    def _make(secteur="finance", email=None, nom="Alami", prenom=None,
              password=EMPLOYEE_PASSWORD):
        counter["n"] += 1
        email = email or f"emp{counter['n']}.{secteur}@zalagh.ma"
        return db.create_employee(nom, prenom or f"Emp{counter['n']}", secteur,
                                  email=email,
                                  mdp_hash=hash_password(password) if password else None,
                                  adminref=admin["id"])
    return _make


@pytest.fixture
def employee(make_employee):
    return make_employee("finance", email="yassine@zalagh.ma", nom="Bennani", prenom="Yassine")


@pytest.fixture
def employee_headers(employee):
    from plancher.core.security import employee_token
    return bearer(employee_token(employee))


@pytest.fixture
def employee_client(app, employee_headers):
    return AuthenticatedClient(app.test_client(), employee_headers)


@pytest.fixture
def make_demande(app):
    """Factory: make_demande(prix=1500, plan_jpg=None) → demande row."""
    from plancher.core import db

    def _make(nom="Idrissi", prenom="Karim", type_projet="Dalle", prix=1500,
              telephone="0612345678", plan_jpg=None):
        return db.create_demande(nom, prenom, type_projet, prix,
                                 telephone=telephone, plan_jpg=plan_jpg)
    return _make


def _image_bytes(fmt="PNG", size=(120, 80)):
    from PIL import Image
    buf = io.BytesIO()
    Image.new("RGB", size, (200, 120, 40)).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def plan_png():
    return _image_bytes("PNG")


@pytest.fixture
def plan_on_disk(temp_data_dir, plan_png):
    """A plan image already published under planjpg/. Returns its public path."""
    from plancher.core import paths
    name = "1700000000000_plan.png"
    with open(os.path.join(paths.PLAN_DIR, name), "wb") as f:
        f.write(plan_png)
    return paths.PLAN_URL + name


# ── Gemini stub ───────────────────────────────────────────────────────────────

class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        return self._payload


class GeminiStub:
    """Records every generateContent call and answers with canned text."""
    def __init__(self):
        self.calls = []
        self.reply = "<strong>Analyse</strong>"
        self.status_code = 200
        self.error_body = ""

    def __call__(self, url, params=None, json=None, timeout=None, **kwargs):
        self.calls.append({"url": url, "params": params, "json": json, "timeout": timeout})
        if self.status_code >= 300:
            return FakeResponse(self.status_code, text=self.error_body)
        return FakeResponse(200, {
            "candidates": [{"content": {"parts": [{"text": self.reply}]}}]
        })


@pytest.fixture
def gemini(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "test-gemini-key")
    stub = GeminiStub()
    monkeypatch.setattr("plancher.agents.gemini_client.requests.post", stub)
    return stub
