"""
Tests for case lifecycle, notes and attachments.
"""
import re
from pathlib import Path

import pytest

from dental_lab.models.case import Case, CaseNote
from dental_lab.models.workflow import WorkflowStage

CASE_NUMBER = re.compile(r"^CASE-[0-9A-Z]+-[0-9A-F]{8}$")


class TestCreateCase:
    def test_new_case_is_received(self, created_case, staff_user, dentist):
        assert CASE_NUMBER.match(created_case["caseNumber"])
        assert created_case["status"] == "RECEIVED"
        assert created_case["priority"] == "HIGH"
        assert created_case["dentistId"] == dentist.id
        assert created_case["createdById"] == staff_user.id
        assert created_case["completedDate"] is None

    def test_priority_defaults_to_medium(self, client, staff_headers, case_payload):
        case_payload.pop("priority")

        response = client.post("/api/cases", json=case_payload, headers=staff_headers)

        assert response.status_code == 201
        assert response.json()["data"]["priority"] == "MEDIUM"

    def test_case_numbers_differ(self, client, staff_headers, case_payload):
        numbers = {
            client.post("/api/cases", json=case_payload, headers=staff_headers).json()["data"]["caseNumber"]
            for _ in range(3)
        }
        assert len(numbers) == 3

    def test_unknown_dentist(self, client, db, staff_headers, case_payload):
        case_payload["dentistId"] = "missing"

        response = client.post("/api/cases", json=case_payload, headers=staff_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "DENTIST_NOT_FOUND"
        assert db.query(Case).count() == 0

    def test_missing_patient_name(self, client, staff_headers, case_payload):
        case_payload.pop("patientName")

        response = client.post("/api/cases", json=case_payload, headers=staff_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_unknown_assignee(self, client, staff_headers, case_payload):
        case_payload["assignedToId"] = "nobody"

        response = client.post("/api/cases", json=case_payload, headers=staff_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"


class TestUpdateCase:
    def test_completion_stamps_date_and_notifies_dentist(self, client, staff_headers, created_case, email_service):
        url = f"/api/cases/{created_case['id']}"

        response = client.put(url, json={"status": "COMPLETED"}, headers=staff_headers)

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["status"] == "COMPLETED"
        assert data["completedDate"] is not None
        assert email_service.outbox[-1]["to"] == "dr.smile@example.com"
        assert created_case["caseNumber"] in email_service.outbox[-1]["subject"] + email_service.outbox[-1]["html"]

    def test_any_status_may_follow_any_other(self, client, staff_headers, created_case):
        url = f"/api/cases/{created_case['id']}"

        client.put(url, json={"status": "DELIVERED"}, headers=staff_headers)
        response = client.put(url, json={"status": "RECEIVED"}, headers=staff_headers)

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "RECEIVED"

    def test_partial_update_keeps_other_fields(self, client, staff_headers, created_case):
        response = client.put(
            f"/api/cases/{created_case['id']}", json={"description": "Bridge 13-15"}, headers=staff_headers
        )

        data = response.json()["data"]
        assert data["description"] == "Bridge 13-15"
        assert data["patientName"] == created_case["patientName"]
        assert data["priority"] == created_case["priority"]

    def test_assignment_notifies_the_assignee(self, client, staff_headers, staff_user, created_case, email_service):
        response = client.put(
            f"/api/cases/{created_case['id']}", json={"assignedToId": staff_user.id}, headers=staff_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["assignedToId"] == staff_user.id
        assert [m["to"] for m in email_service.outbox] == ["tech@example.com"]

    def test_patient_name_is_escaped_in_emails(self, client, staff_headers, staff_user, case_payload, email_service):
        case_payload["patientName"] = "<script>alert(1)</script>"
        case = client.post("/api/cases", json=case_payload, headers=staff_headers).json()["data"]

        client.put(f"/api/cases/{case['id']}", json={"assignedToId": staff_user.id}, headers=staff_headers)

        html = email_service.outbox[-1]["html"]
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
        assert "<script>" not in html

    def test_email_failure_does_not_fail_the_update(self, client, staff_headers, created_case, email_service):
        email_service.fail = True

        response = client.put(f"/api/cases/{created_case['id']}", json={"status": "COMPLETED"}, headers=staff_headers)

        assert response.status_code == 200

    @pytest.mark.parametrize("field", ["patientName", "priority", "status"])
    def test_required_fields_cannot_be_nulled(self, client, staff_headers, created_case, field):
        url = f"/api/cases/{created_case['id']}"

        response = client.put(url, json={field: None}, headers=staff_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"
        data = client.get(url, headers=staff_headers).json()["data"]
        assert data["status"] == "RECEIVED"
        assert data["patientName"] == created_case["patientName"]

    def test_optional_fields_can_be_cleared(self, client, staff_headers, created_case):
        response = client.put(
            f"/api/cases/{created_case['id']}", json={"description": None}, headers=staff_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["description"] is None

    def test_unknown_case(self, client, staff_headers):
        response = client.put("/api/cases/missing", json={"status": "COMPLETED"}, headers=staff_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "CASE_NOT_FOUND"


class TestListAndSearch:
    def test_filters_and_pagination(self, client, staff_headers, case_payload):
        for priority in ("LOW", "HIGH", "HIGH"):
            client.post("/api/cases", json={**case_payload, "priority": priority}, headers=staff_headers)

        response = client.get("/api/cases", params={"priority": "HIGH", "limit": 1}, headers=staff_headers)

        page = response.json()["data"]
        assert len(page["data"]) == 1
        assert page["pagination"] == {"total": 2, "page": 1, "limit": 1, "pages": 2}

    def test_out_of_range_paging_is_clamped(self, client, staff_headers, created_case):
        response = client.get("/api/cases", params={"page": 0, "limit": 1000}, headers=staff_headers)

        pagination = response.json()["data"]["pagination"]
        assert pagination["page"] == 1
        assert pagination["limit"] == 100

    def test_search_matches_patient_name(self, client, staff_headers, created_case):
        response = client.get("/api/cases/search", params={"q": "jane"}, headers=staff_headers)

        ids = [c["id"] for c in response.json()["data"]["data"]]
        assert ids == [created_case["id"]]

    def test_search_requires_a_term(self, client, staff_headers):
        response = client.get("/api/cases/search", params={"q": "  "}, headers=staff_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_SEARCH_TERM"


class TestNotes:
    def test_internal_notes_are_hidden_by_default(self, client, staff_headers, created_case):
        url = f"/api/cases/{created_case['id']}/notes"
        client.post(url, json={"content": "Shade A2 confirmed"}, headers=staff_headers)
        client.post(url, json={"content": "Margin looks short", "isInternal": True}, headers=staff_headers)

        public = client.get(url, headers=staff_headers).json()["data"]
        everything = client.get(url, params={"includeInternal": "true"}, headers=staff_headers).json()["data"]

        assert [n["content"] for n in public] == ["Shade A2 confirmed"]
        assert len(everything) == 2

    def test_note_on_unknown_case(self, client, staff_headers):
        response = client.post("/api/cases/missing/notes", json={"content": "x"}, headers=staff_headers)

        assert response.status_code == 404


class TestFiles:
    def upload(self, client, headers, case_id, name="scan.pdf", content_type="application/pdf"):
        return client.post(
            f"/api/cases/{case_id}/files",
            files={"file": (name, b"%PDF-1.4 test scan", content_type)},
            headers=headers,
        )

    def test_upload_list_url_and_delete(self, client, staff_headers, created_case, storage_service):
        case_id = created_case["id"]

        response = self.upload(client, staff_headers, case_id)
        assert response.status_code == 201
        case_file = response.json()["data"]
        assert case_file["filename"] == "scan.pdf"
        assert case_file["fileSize"] == len(b"%PDF-1.4 test scan")
        assert case_file["storageKey"].startswith(f"cases/{case_id}/")
        stored = Path(storage_service.upload_dir) / case_file["storageKey"]
        assert stored.exists()

        files = client.get(f"/api/cases/{case_id}/files", headers=staff_headers).json()["data"]
        assert [f["id"] for f in files] == [case_file["id"]]

        url = client.get(f"/api/cases/{case_id}/files/{case_file['id']}/url", headers=staff_headers).json()["data"]
        assert url["url"].endswith(case_file["storageKey"])
        assert url["expiresIn"] > 0

        deleted = client.delete(f"/api/cases/{case_id}/files/{case_file['id']}", headers=staff_headers)
        assert deleted.status_code == 200
        assert not stored.exists()

    def test_disallowed_type_is_rejected(self, client, staff_headers, created_case):
        response = self.upload(client, staff_headers, created_case["id"], "run.exe", "application/x-msdownload")

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FILE_TYPE"

    def test_unknown_file(self, client, staff_headers, created_case):
        response = client.get(f"/api/cases/{created_case['id']}/files/missing/url", headers=staff_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "FILE_NOT_FOUND"


class TestDeleteCase:
    def test_staff_cannot_delete(self, client, staff_headers, created_case):
        response = client.delete(f"/api/cases/{created_case['id']}", headers=staff_headers)

        assert response.status_code == 403

    def test_delete_cascades_to_children(self, client, db, admin_headers, staff_headers, created_case, storage_service):
        case_id = created_case["id"]
        client.post(f"/api/cases/{case_id}/notes", json={"content": "note"}, headers=staff_headers)
        client.post(
            f"/api/workflow/case/{case_id}/stages",
            json={"stageName": "Design", "sequence": 1},
            headers=staff_headers,
        )
        key = client.post(
            f"/api/cases/{case_id}/files",
            files={"file": ("scan.pdf", b"%PDF", "application/pdf")},
            headers=staff_headers,
        ).json()["data"]["storageKey"]

        response = client.delete(f"/api/cases/{case_id}", headers=admin_headers)

        assert response.status_code == 200
        assert client.get(f"/api/cases/{case_id}", headers=staff_headers).status_code == 404
        db.expire_all()
        assert db.query(CaseNote).count() == 0
        assert db.query(WorkflowStage).count() == 0
        assert not (Path(storage_service.upload_dir) / key).exists()


def test_case_detail_includes_children(client, staff_headers, created_case):
    case_id = created_case["id"]
    for sequence, name in ((2, "Milling"), (1, "Design")):
        client.post(
            f"/api/workflow/case/{case_id}/stages",
            json={"stageName": name, "sequence": sequence},
            headers=staff_headers,
        )

    detail = client.get(f"/api/cases/{case_id}", headers=staff_headers).json()["data"]

    assert [s["stageName"] for s in detail["stages"]] == ["Design", "Milling"]
    assert detail["files"] == []
    assert detail["notes"] == []
