"""Tests for direct messages between employees and admins."""

import pytest

from plancher.api.modules.routes_messages import parse_contact
from plancher.core import db
from plancher.core.security import employee_token


def bearer(emp):
    return {"Authorization": f"Bearer {employee_token(emp)}"}


class TestParseContact:
    def test_admin_prefix(self):
        assert parse_contact("admin_ab12") == ("admin", "ab12")

    def test_employee_prefix(self):
        assert parse_contact("employee_7") == ("employee", "7")

    def test_bare_id_is_employee(self):
        assert parse_contact("7") == ("employee", "7")

    def test_unknown_prefix_is_employee(self):
        assert parse_contact("staff_9") == ("employee", "9")


@pytest.fixture
def colleague(make_employee):
    return make_employee("chantier", nom="Chraibi", prenom="Sara")


# ═══════════════════════════════════════════════════════════════════════════════
# Employee ↔ employee
# ═══════════════════════════════════════════════════════════════════════════════

class TestEmployeeMessages:
    def test_send_and_read_both_sides(self, app, employee_client, employee, colleague):
        r = employee_client.post("/api/messages",
                                 json={"recipient_id": f"employee_{colleague['id']}",
                                       "content": "Salut Sara"})
        assert r.status_code == 201
        msg = r.get_json()
        assert msg["sender_id"] == str(employee["id"])
        assert msg["recipient_type"] == "employee"

        c = app.test_client()
        c.post("/api/messages", json={"recipient_id": str(employee["id"]),
                                      "content": "Bonjour"},
               headers=bearer(colleague))

        mine = employee_client.get(f"/api/messages/{colleague['id']}").get_json()
        assert [m["content"] for m in mine] == ["Salut Sara", "Bonjour"]
        assert [m["sender_name"] for m in mine] == ["Bennani Yassine", "Chraibi Sara"]

        theirs = c.get(f"/api/messages/employee_{employee['id']}",
                       headers=bearer(colleague)).get_json()
        assert [m["id"] for m in theirs] == [m["id"] for m in mine]

    def test_third_party_sees_nothing(self, app, employee_client, colleague, make_employee):
        employee_client.post("/api/messages", json={"recipient_id": str(colleague["id"]),
                                                    "content": "privé"})
        outsider = make_employee("production")
        c = app.test_client()
        rows = c.get(f"/api/messages/{colleague['id']}",
                     headers=bearer(outsider)).get_json()
        assert rows == []

    def test_missing_fields(self, employee_client):
        r = employee_client.post("/api/messages", json={"recipient_id": "3"})
        assert r.status_code == 400
        assert r.get_json()["error"] == "recipient_id and content required"

    def test_requires_employee(self, admin_client):
        assert admin_client.get("/api/messages/1").status_code == 403


# ═══════════════════════════════════════════════════════════════════════════════
# Employee ↔ admin
# ═══════════════════════════════════════════════════════════════════════════════

class TestAdminMessages:
    def test_employee_writes_admin(self, employee_client, admin_client, admin, employee):
        r = employee_client.post("/api/messages", json={"recipient_id": f"admin_{admin['id']}",
                                                        "content": "Question devis"})
        assert r.status_code == 201
        assert r.get_json()["recipient_type"] == "admin"

        r = admin_client.post("/api/admin/messages",
                              json={"recipient_id": f"employee_{employee['id']}",
                                    "content": "Réponse"})
        assert r.status_code == 201
        assert r.get_json()["sender_type"] == "admin"

        thread = admin_client.get(f"/api/admin/messages/employee_{employee['id']}").get_json()
        assert [(m["sender_type"], m["content"]) for m in thread] == [
            ("employee", "Question devis"), ("admin", "Réponse")]
        assert thread[1]["sender_name"] == "Zalagh Khalid"

        same = employee_client.get(f"/api/messages/admin_{admin['id']}").get_json()
        assert [m["id"] for m in same] == [m["id"] for m in thread]

    def test_employee_and_admin_channels_are_separate(self, employee, admin):
        db.add_message(employee["id"], "employee", admin["id"], "admin", "to admin")
        assert db.conversation(employee["id"], "employee", admin["id"], "employee") == []
