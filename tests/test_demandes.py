"""Tests for the demande workflow: create, list, devis PDF, signed upload, export."""

import io
import os
import base64
from datetime import datetime, timezone

import pytest
from pypdf import PdfReader

from plancher.core import db, paths, uploads
from plancher.core.errors import ValidationError, NotFoundError
from plancher.forms import quote_generator, signed_pdf


DEMANDE = {"nom": "Idrissi", "prenom": "Karim", "type_projet": "Dalle",
           "prix": 1500, "telephone": "0612345678"}


def _today():
    return datetime.now(timezone.utc).date().isoformat()


def _pages(public_path):
    local = os.path.join(paths.PDF_DIR, os.path.basename(public_path))
    return len(PdfReader(local).pages)


# ═══════════════════════════════════════════════════════════════════════════════
# Create
# ═══════════════════════════════════════════════════════════════════════════════

class TestCreateDemande:
    def test_employee_creates_demande(self, employee_client):
        r = employee_client.post("/api/demandes", json=DEMANDE)
        assert r.status_code == 201
        d = r.get_json()
        assert d["iddemande"] >= 1
        assert d["statut"] == "encours"
        assert d["pdf_path"] is None
        assert d["pdf_signe_path"] is None
        assert d["prix"] == 1500

    def test_client_statut_is_ignored(self, employee_client):
        r = employee_client.post("/api/demandes", json={**DEMANDE, "statut": "livré"})
        assert r.get_json()["statut"] == "encours"

    def test_zero_prix_accepted(self, employee_client):
        r = employee_client.post("/api/demandes", json={**DEMANDE, "prix": 0})
        assert r.status_code == 201
        assert r.get_json()["prix"] == 0

    @pytest.mark.parametrize("missing", ["nom", "prenom", "type_projet", "prix"])
    def test_missing_field_rejected(self, employee_client, missing):
        body = dict(DEMANDE)
        body.pop(missing)
        r = employee_client.post("/api/demandes", json=body)
        assert r.status_code == 400
        assert r.get_json()["error"] == "nom, prenom, type_projet, prix required"

    def test_non_numeric_prix_rejected(self, employee_client):
        r = employee_client.post("/api/demandes", json={**DEMANDE, "prix": "beaucoup"})
        assert r.status_code == 400
        assert r.get_json()["error"] == "invalid prix"

    @pytest.mark.parametrize("prix", ["nan", "inf", "-Infinity"])
    def test_non_finite_prix_rejected(self, employee_client, prix):
        r = employee_client.post("/api/demandes", json={**DEMANDE, "prix": prix})
        assert r.status_code == 400
        assert r.get_json()["error"] == "invalid prix"
        assert db.list_demandes() == []

    def test_requires_token(self, anon_client):
        r = anon_client.post("/api/demandes", json=DEMANDE)
        assert r.status_code == 401

    def test_admin_token_forbidden(self, admin_client):
        r = admin_client.post("/api/demandes", json=DEMANDE)
        assert r.status_code == 403

    def test_multipart_plan_is_published(self, employee_client, plan_png):
        data = {k: str(v) for k, v in DEMANDE.items()}
        data["plan_jpg"] = (io.BytesIO(plan_png), "plan etage.png")
        r = employee_client.post("/api/demandes", data=data,
                                 content_type="multipart/form-data")
        assert r.status_code == 201
        plan = r.get_json()["plan_jpg"]
        assert plan.startswith("/planjpg/")
        assert plan.endswith("_plan_etage.png")
        assert os.path.isfile(os.path.join(paths.PLAN_DIR, os.path.basename(plan)))
        assert os.listdir(paths.UPLOAD_DIR) == []

    def test_multipart_rejects_non_image(self, employee_client):
        data = {k: str(v) for k, v in DEMANDE.items()}
        data["plan_jpg"] = (io.BytesIO(b"%PDF"), "plan.pdf")
        r = employee_client.post("/api/demandes", data=data,
                                 content_type="multipart/form-data")
        assert r.status_code == 400


class TestRequestQuote:
    def test_anonymous_request_with_plan(self, anon_client):
        r = anon_client.post("/api/ai/request-quote",
                             json={**DEMANDE, "plan_jpg": "/planjpg/1700000000000_a.png"})
        assert r.status_code == 201
        d = r.get_json()
        assert d["plan_jpg"] == "/planjpg/1700000000000_a.png"
        assert d["statut"] == "encours"

    def test_plan_outside_planjpg_rejected(self, anon_client):
        r = anon_client.post("/api/ai/request-quote",
                             json={**DEMANDE, "plan_jpg": "/uploads/../plancher.db"})
        assert r.status_code == 400
        assert r.get_json()["error"] == "invalid plan_jpg path"

    def test_without_plan(self, anon_client):
        r = anon_client.post("/api/ai/request-quote", json=DEMANDE)
        assert r.status_code == 201
        assert r.get_json()["plan_jpg"] is None

    def test_missing_fields(self, anon_client):
        r = anon_client.post("/api/ai/request-quote", json={"nom": "X"})
        assert r.status_code == 400


# ═══════════════════════════════════════════════════════════════════════════════
# List
# ═══════════════════════════════════════════════════════════════════════════════

class TestListDemandes:
    def test_newest_first(self, employee_client, make_demande):
        first = make_demande(nom="Premier")
        second = make_demande(nom="Second")
        rows = employee_client.get("/api/demandes").get_json()
        assert [r["iddemande"] for r in rows] == [second["iddemande"], first["iddemande"]]

    def test_admin_sees_same_list(self, admin_client, make_demande):
        make_demande()
        rows = admin_client.get("/api/admin/demandes").get_json()
        assert len(rows) == 1

    def test_employee_cannot_use_admin_list(self, employee_client):
        assert employee_client.get("/api/admin/demandes").status_code == 403


# ═══════════════════════════════════════════════════════════════════════════════
# Devis PDF
# ═══════════════════════════════════════════════════════════════════════════════

class TestDevisPdf:
    def test_generate_without_plan_is_one_page(self, employee_client, make_demande):
        d = make_demande()
        r = employee_client.post(f"/api/demandes/{d['iddemande']}/pdf")
        assert r.status_code == 200
        pdf = r.get_json()["pdf"]
        assert pdf == f"/pdfs/{d['iddemande']}.pdf"
        assert _pages(pdf) == 1
        assert db.get_demande(d["iddemande"])["pdf_path"] == pdf

    def test_plan_adds_second_page(self, admin_client, make_demande, plan_on_disk):
        d = make_demande(plan_jpg=plan_on_disk)
        pdf = admin_client.post(f"/api/demandes/{d['iddemande']}/pdf").get_json()["pdf"]
        assert _pages(pdf) == 2

    def test_missing_plan_file_stays_one_page(self, admin_client, make_demande):
        d = make_demande(plan_jpg="/planjpg/gone.png")
        pdf = admin_client.post(f"/api/demandes/{d['iddemande']}/pdf").get_json()["pdf"]
        assert _pages(pdf) == 1

    def test_pdf_carries_client_details(self, make_demande):
        d = make_demande(nom="Tazi", prix=2400.5)
        pdf = quote_generator.generate_for_demande(d["iddemande"])
        local = os.path.join(paths.PDF_DIR, os.path.basename(pdf))
        content = PdfReader(local).pages[0].extract_text()
        assert "Zalagh Plancher" in content
        assert "Tazi" in content
        assert "2400.50" in content

    def test_regenerate_overwrites_same_path(self, employee_client, make_demande):
        d = make_demande()
        first = employee_client.post(f"/api/demandes/{d['iddemande']}/pdf").get_json()["pdf"]
        second = employee_client.post(f"/api/demandes/{d['iddemande']}/pdf").get_json()["pdf"]
        assert first == second
        assert os.listdir(paths.PDF_DIR) == [f"{d['iddemande']}.pdf"]

    def test_unknown_demande_404(self, employee_client):
        r = employee_client.post("/api/demandes/999/pdf")
        assert r.status_code == 404
        assert r.get_json()["error"] == "Not found"

    def test_requires_token(self, anon_client, make_demande):
        d = make_demande()
        assert anon_client.post(f"/api/demandes/{d['iddemande']}/pdf").status_code == 401

    def test_generated_pdf_is_served(self, employee_client, anon_client, make_demande):
        d = make_demande()
        pdf = employee_client.post(f"/api/demandes/{d['iddemande']}/pdf").get_json()["pdf"]
        r = anon_client.get(pdf)
        assert r.status_code == 200
        assert r.data.startswith(b"%PDF")


class TestFormatPrix:
    def test_whole_number(self):
        assert quote_generator.format_prix(1500.0) == "1500"

    def test_decimals(self):
        assert quote_generator.format_prix(99.5) == "99.50"

    def test_none(self):
        assert quote_generator.format_prix(None) == ""


# ═══════════════════════════════════════════════════════════════════════════════
# Signed PDF upload
# ═══════════════════════════════════════════════════════════════════════════════

SIGNED_BYTES = b"%PDF-1.4\n% signed devis\n%%EOF\n"


class TestSignedUpload:
    def test_admin_upload_marks_livre(self, admin_client, make_demande):
        d = make_demande()
        payload = base64.b64encode(SIGNED_BYTES).decode()
        r = admin_client.post(f"/api/admin/demandes/{d['iddemande']}/upload-pdf",
                              json={"base64": payload})
        assert r.status_code == 200
        body = r.get_json()
        assert body == {"pdf_signe": f"/pdfsigne/{d['iddemande']}-uploaded.pdf",
                        "statut": "livré"}
        stored = os.path.join(paths.SIGNED_PDF_DIR, f"{d['iddemande']}-uploaded.pdf")
        with open(stored, "rb") as f:
            assert f.read() == SIGNED_BYTES
        row = db.get_demande(d["iddemande"])
        assert row["statut"] == "livré"
        assert row["pdf_signe_path"] == body["pdf_signe"]

    def test_employee_upload_suffix(self, employee_client, make_demande):
        d = make_demande()
        payload = "data:application/pdf;base64," + base64.b64encode(SIGNED_BYTES).decode()
        r = employee_client.post(f"/api/demandes/{d['iddemande']}/upload-pdf",
                                 json={"base64": payload})
        assert r.status_code == 200
        assert r.get_json()["pdf_signe"].endswith("-signed-by-emp.pdf")

    def test_invalid_base64(self, admin_client, make_demande):
        d = make_demande()
        r = admin_client.post(f"/api/admin/demandes/{d['iddemande']}/upload-pdf",
                              json={"base64": "@@not base64@@"})
        assert r.status_code == 400
        assert r.get_json()["error"] == "invalid base64"
        assert db.get_demande(d["iddemande"])["statut"] == "encours"

    def test_missing_base64(self, admin_client, make_demande):
        d = make_demande()
        r = admin_client.post(f"/api/admin/demandes/{d['iddemande']}/upload-pdf", json={})
        assert r.status_code == 400
        assert r.get_json()["error"] == "missing base64"

    def test_unknown_demande(self, admin_client):
        payload = base64.b64encode(SIGNED_BYTES).decode()
        r = admin_client.post("/api/admin/demandes/404/upload-pdf", json={"base64": payload})
        assert r.status_code == 404
        assert os.listdir(paths.SIGNED_PDF_DIR) == []

    def test_employee_cannot_use_admin_route(self, employee_client, make_demande):
        d = make_demande()
        r = employee_client.post(f"/api/admin/demandes/{d['iddemande']}/upload-pdf",
                                 json={"base64": "AAAA"})
        assert r.status_code == 403


class TestDecodeBase64:
    def test_strips_whitespace(self):
        encoded = base64.b64encode(SIGNED_BYTES).decode()
        wrapped = "\n".join(encoded[i:i + 8] for i in range(0, len(encoded), 8))
        assert signed_pdf.decode_base64(wrapped) == SIGNED_BYTES

    def test_rejects_non_string(self):
        with pytest.raises(ValidationError):
            signed_pdf.decode_base64(1234)

    def test_store_unknown_demande(self):
        with pytest.raises(NotFoundError):
            signed_pdf.store_signed_pdf(77, base64.b64encode(b"x").decode(), "admin")


# ═══════════════════════════════════════════════════════════════════════════════
# Export
# ═══════════════════════════════════════════════════════════════════════════════

class TestExport:
    def test_missing_range(self, admin_client):
        r = admin_client.get("/api/admin/export?from=2025-01-01")
        assert r.status_code == 400
        assert r.get_json()["error"] == "from and to (YYYY-MM-DD) required"

    def test_bad_date_format(self, admin_client):
        r = admin_client.get("/api/admin/export?from=01/01/2025&to=31/01/2025")
        assert r.status_code == 400

    def test_generates_missing_devis(self, admin_client, make_demande):
        a = make_demande()
        b = make_demande()
        today = _today()
        r = admin_client.get(f"/api/admin/export?from={today}&to={today}")
        assert r.status_code == 200
        items = r.get_json()["items"]
        assert [i["iddemande"] for i in items] == [a["iddemande"], b["iddemande"]]
        assert all(i["pdf_path"] == f"/pdfs/{i['iddemande']}.pdf" for i in items)
        assert sorted(os.listdir(paths.PDF_DIR)) == sorted(
            f"{i['iddemande']}.pdf" for i in items)

    def test_range_outside_creation_dates(self, admin_client, make_demande):
        make_demande()
        r = admin_client.get("/api/admin/export?from=2001-01-01&to=2001-12-31")
        assert r.get_json()["items"] == []

    def test_admin_only(self, employee_client):
        today = _today()
        assert employee_client.get(
            f"/api/admin/export?from={today}&to={today}").status_code == 403


# ═══════════════════════════════════════════════════════════════════════════════
# Upload storage helpers
# ═══════════════════════════════════════════════════════════════════════════════

class TestUploads:
    def test_safe_filename(self):
        assert uploads.safe_filename("mon plan (1).jpg") == "mon_plan__1_.jpg"

    def test_timestamped_name_bumps_on_collision(self, tmp_path):
        first = uploads.timestamped_name("a.png", str(tmp_path))
        (tmp_path / first).write_bytes(b"x")
        second = uploads.timestamped_name("a.png", str(tmp_path))
        assert first != second
        assert second.endswith("_a.png")

    def test_is_allowed_image(self):
        assert uploads.is_allowed_image("PLAN.JPG")
        assert not uploads.is_allowed_image("plan.gif")
        assert not uploads.is_allowed_image("")

    def test_resolve_plan_path(self, plan_on_disk):
        resolved = uploads.resolve_plan_path(plan_on_disk)
        assert resolved == os.path.join(paths.PLAN_DIR, os.path.basename(plan_on_disk))
        assert uploads.resolve_plan_path(plan_on_disk.lstrip("/")) == resolved
        assert uploads.resolve_plan_path("/planjpg/missing.png") is None
        assert uploads.resolve_plan_path(None) is None

    def test_resolve_bare_upload_name(self, plan_png):
        with open(os.path.join(paths.UPLOAD_DIR, "legacy.png"), "wb") as f:
            f.write(plan_png)
        assert uploads.resolve_plan_path("legacy.png") == os.path.join(
            paths.UPLOAD_DIR, "legacy.png")
