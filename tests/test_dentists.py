"""
Tests for dentist provisioning and application review.
"""
import pytest

from dental_lab.models.dentist import DentistApplication, DentistProfile
from dental_lab.models.enums import ApplicationStatus, DentistStatus
from dental_lab.models.user import User
from dental_lab.schemas.dentist import ApplicationReview
from dental_lab.services import dentist_service
from dental_lab.services.dentist_service import DentistService


@pytest.fixture
def dentist_payload() -> dict:
    return {
        "email": "Dr.New@Example.com",
        "firstName": "Nadia",
        "lastName": "Molar",
        "licenseNumber": "DDS-1001",
        "specialization": "Orthodontics",
        "clinic": "Bright Teeth",
        "clinicEmail": "",
    }


@pytest.fixture
def new_dentist(client, admin_headers, dentist_payload) -> dict:
    response = client.post("/api/dentists", json=dentist_payload, headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def review(client, headers, application_id, status, notes=None):
    return client.put(
        f"/api/dentists/applications/{application_id}/review",
        json={"status": status, "notes": notes},
        headers=headers,
    )


class TestCreateDentist:
    def test_creates_user_profile_and_application(self, db, new_dentist):
        assert new_dentist["status"] == "PENDING_VERIFICATION"
        assert new_dentist["clinicEmail"] is None
        assert new_dentist["user"]["email"] == "dr.new@example.com"
        assert new_dentist["user"]["roles"] == ["dentist"]
        assert [a["status"] for a in new_dentist["applications"]] == ["SUBMITTED"]
        assert db.query(User).filter(User.email == "dr.new@example.com").one().password == ""

    def test_provisioned_dentist_cannot_log_in(self, client, new_dentist):
        response = client.post("/api/auth/login", json={"email": "dr.new@example.com", "password": "anything"})

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIALS"

    def test_duplicate_email(self, client, admin_headers, new_dentist, dentist_payload):
        dentist_payload["licenseNumber"] = "DDS-2002"

        response = client.post("/api/dentists", json=dentist_payload, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "USER_EXISTS"

    def test_duplicate_license(self, client, db, admin_headers, new_dentist, dentist_payload):
        dentist_payload["email"] = "other@example.com"

        response = client.post("/api/dentists", json=dentist_payload, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "LICENSE_EXISTS"
        assert db.query(User).filter(User.email == "other@example.com").count() == 0

    def test_requires_admin(self, client, staff_headers, dentist_payload):
        response = client.post("/api/dentists", json=dentist_payload, headers=staff_headers)

        assert response.status_code == 403


class TestReview:
    @pytest.mark.parametrize("outcome, profile_status", [
        ("APPROVED", "VERIFIED"),
        ("REJECTED", "INACTIVE"),
        ("UNDER_REVIEW", "PENDING_VERIFICATION"),
    ])
    def test_outcome_moves_the_profile(self, client, admin_headers, admin_user, new_dentist, outcome, profile_status):
        application_id = new_dentist["applications"][0]["id"]

        response = review(client, admin_headers, application_id, outcome, "Checked license")

        assert response.status_code == 200
        application = response.json()["data"]
        assert application["status"] == outcome
        assert application["reviewedBy"] == admin_user.id
        assert application["reviewedDate"] is not None

        profile = client.get(f"/api/dentists/{new_dentist['id']}", headers=admin_headers).json()["data"]
        assert profile["status"] == profile_status
        if outcome == "APPROVED":
            assert profile["verifiedBy"] == admin_user.id
            assert profile["verificationDate"] is not None
        else:
            assert profile["verifiedBy"] is None

    def test_submitted_is_not_a_decision(self, client, admin_headers, new_dentist):
        response = review(client, admin_headers, new_dentist["applications"][0]["id"], "SUBMITTED")

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_unknown_application(self, client, admin_headers):
        response = review(client, admin_headers, "missing", "APPROVED")

        assert response.status_code == 404
        assert response.json()["code"] == "APPLICATION_NOT_FOUND"

    def test_failed_review_keeps_nothing(self, db, admin_user, dentist, monkeypatch):
        application_id = dentist.applications[0].id
        # No profile status for the outcome: the second write fails
        monkeypatch.setattr(dentist_service, "REVIEW_OUTCOMES", {})

        with pytest.raises(KeyError):
            DentistService(db).review_application(
                application_id, admin_user.id, ApplicationReview(status=ApplicationStatus.REJECTED)
            )

        db.expire_all()
        application = db.get(DentistApplication, application_id)
        assert application.status == ApplicationStatus.SUBMITTED
        assert application.reviewed_by is None
        assert db.get(DentistProfile, dentist.id).status == DentistStatus.VERIFIED

    def test_applications_can_be_filtered(self, client, admin_headers, dentist, new_dentist):
        review(client, admin_headers, new_dentist["applications"][0]["id"], "APPROVED")

        page = client.get(
            "/api/dentists/applications", params={"status": "SUBMITTED"}, headers=admin_headers
        ).json()["data"]

        assert [a["dentistId"] for a in page["data"]] == [dentist.id]


def test_list_search_and_update(client, admin_headers, staff_headers, dentist, new_dentist):
    page = client.get("/api/dentists", params={"search": "molar"}, headers=staff_headers).json()["data"]
    assert [d["id"] for d in page["data"]] == [new_dentist["id"]]

    response = client.put(
        f"/api/dentists/{new_dentist['id']}",
        json={"clinic": "Brighter Teeth", "phone": "555-0100"},
        headers=admin_headers,
    )
    data = response.json()["data"]
    assert data["clinic"] == "Brighter Teeth"
    assert data["user"]["phone"] == "555-0100"


def test_deactivate(client, db, admin_headers, dentist):
    response = client.delete(f"/api/dentists/{dentist.id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "INACTIVE"
    db.expire_all()
    assert db.get(User, dentist.user_id).is_active is False


def test_unknown_dentist(client, staff_headers):
    response = client.get("/api/dentists/missing", headers=staff_headers)

    assert response.status_code == 404
    assert response.json()["code"] == "DENTIST_NOT_FOUND"


@pytest.mark.parametrize("field", ["firstName", "lastName"])
def test_names_cannot_be_nulled(client, admin_headers, dentist, field):
    response = client.put(f"/api/dentists/{dentist.id}", json={field: None}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"
