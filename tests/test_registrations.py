"""
Tests for public registration and verification routes
"""
import pytest

from services.verification import NOT_FOUND_MESSAGE, NOT_ISSUED_MESSAGE


def publish(client, admin_headers, **form):
    form.setdefault("title", "Campus Tournament")
    created = client.post("/api/admin/forms", json=form, headers=admin_headers)
    assert created.status_code == 200, created.text
    form_id = created.json()["id"]
    assert client.post(f"/api/admin/forms/{form_id}/publish", headers=admin_headers).status_code == 200
    return form_id


class TestRegister:
    """Test the public registration endpoint"""

    def test_register_with_default_form(self, client, valid_submission):
        """Test registering when no form is published"""
        response = client.post("/api/register", json=valid_submission())
        assert response.status_code == 200
        data = response.json()
        assert data["id"].startswith("REG")
        assert len(data["id"]) == 7
        assert data["formId"] is None
        assert data["groupSize"] == 2
        assert data["maxScans"] == 2
        assert data["scans"] == 0
        assert data["hasQR"] is False
        assert data["status"] == "pending"
        assert len(data["teamMembers"]) == 2

    def test_validation_errors(self, client, valid_submission):
        response = client.post("/api/register", json=valid_submission(email="bad", teamMembers=[]))
        assert response.status_code == 400
        body = response.json()
        assert body["detail"] == "Validation failed"
        assert body["errors"]["email"] == "Invalid email address"
        assert body["errors"]["teamMembers"] == "At least one team member is required"

    def test_non_object_body(self, client):
        response = client.post("/api/register", json=["REG1234"])
        assert response.status_code == 400
        assert "body" in response.json()["errors"]

    def test_register_against_published_form(self, client, admin_headers, valid_submission):
        """Test the published form's custom fields and scan policy apply"""
        form_id = publish(
            client,
            admin_headers,
            customFields=[{"id": "field_uid", "type": "text", "label": "In-Game UID", "required": True}],
            scanPolicy="single",
        )

        missing = client.post("/api/register", json=valid_submission())
        assert missing.status_code == 400
        assert missing.json()["errors"] == {"field_uid": "In-Game UID is required"}

        response = client.post(
            "/api/register",
            json=valid_submission(groupSize=3, customFieldData={"field_uid": "551234"}),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["formId"] == form_id
        assert data["groupSize"] == 3
        assert data["maxScans"] == 1
        assert data["customFieldData"] == {"field_uid": "551234"}

    def test_ticket_id_collision_is_retried(self, client, valid_submission, monkeypatch):
        ids = iter(["REG1234", "REG1234", "REG5678"])
        monkeypatch.setattr("services.registration_store.generate_ticket_id", lambda: next(ids))

        first = client.post("/api/register", json=valid_submission())
        second = client.post("/api/register", json=valid_submission())
        assert first.json()["id"] == "REG1234"
        assert second.json()["id"] == "REG5678"


class TestPublishedForm:

    def test_no_published_form(self, client):
        response = client.get("/api/published-form")
        assert response.status_code == 200
        assert response.json() is None

    def test_published_form(self, client, admin_headers):
        form_id = publish(client, admin_headers, title="Hackathon")
        data = client.get("/api/published-form").json()
        assert data["id"] == form_id
        assert data["title"] == "Hackathon"
        assert data["isPublished"] is True


class TestVerify:
    """Test the gate verification endpoint"""

    def test_missing_ticket_id(self, client):
        assert client.get("/api/verify").status_code == 400
        assert client.get("/api/verify", params={"t": "  "}).status_code == 400

    def test_unknown_ticket(self, client):
        response = client.get("/api/verify", params={"t": "REG0000"})
        assert response.status_code == 200
        assert response.json() == {"valid": False, "message": NOT_FOUND_MESSAGE}

    def test_ticket_without_qr(self, client, valid_submission):
        registration = client.post("/api/register", json=valid_submission()).json()
        response = client.get("/api/verify", params={"t": registration["id"]})
        data = response.json()
        assert data["valid"] is False
        assert data["message"] == NOT_ISSUED_MESSAGE
        assert data["registration"]["status"] == "pending"

    def test_scan_until_exhausted(self, client, admin_headers, valid_submission):
        registration = client.post("/api/register", json=valid_submission()).json()
        ticket_id = registration["id"]
        assert client.post(f"/api/admin/generate-qr/{ticket_id}", headers=admin_headers).status_code == 200

        first = client.get("/api/verify", params={"t": ticket_id}).json()
        assert first["valid"] is True
        assert first["message"] == "Entry granted. 1 entry remaining."
        assert first["registration"] == {
            "id": ticket_id,
            "name": "Asha Verma",
            "organization": "Allahabad University",
            "groupSize": 2,
            "scansUsed": 1,
            "maxScans": 2,
            "status": "active",
        }

        second = client.get("/api/verify", params={"t": ticket_id}).json()
        assert second["valid"] is True
        assert second["registration"]["status"] == "exhausted"

        third = client.get("/api/verify", params={"t": ticket_id}).json()
        assert third["valid"] is False
        assert third["message"] == "Maximum entries reached. No entries remaining."
        assert third["registration"]["scansUsed"] == 2

    @pytest.mark.parametrize("ticket_id", ["REG1234 ", " REG1234"])
    def test_ticket_id_is_trimmed(self, client, ticket_id):
        response = client.get("/api/verify", params={"t": ticket_id})
        assert response.json()["message"] == NOT_FOUND_MESSAGE
