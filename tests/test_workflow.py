"""
Tests for workflow stages and progress statistics.
"""
import pytest


@pytest.fixture
def add_stage(client, staff_headers, created_case):
    def _add_stage(name, sequence, **extra):
        response = client.post(
            f"/api/workflow/case/{created_case['id']}/stages",
            json={"stageName": name, "sequence": sequence, **extra},
            headers=staff_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _add_stage


def test_new_stage_is_pending(add_stage):
    stage = add_stage("Design", 1)

    assert stage["status"] == "PENDING"
    assert stage["startedAt"] is None
    assert stage["completedAt"] is None


def test_stages_are_listed_by_sequence(client, staff_headers, created_case, add_stage):
    add_stage("Finishing", 3)
    add_stage("Design", 1)
    add_stage("Milling", 2)

    response = client.get(f"/api/workflow/case/{created_case['id']}", headers=staff_headers)

    assert [s["stageName"] for s in response.json()["data"]] == ["Design", "Milling", "Finishing"]


def test_sequence_must_be_positive(client, staff_headers, created_case):
    response = client.post(
        f"/api/workflow/case/{created_case['id']}/stages",
        json={"stageName": "Design", "sequence": 0},
        headers=staff_headers,
    )

    assert response.status_code == 400


def test_stage_for_unknown_case(client, staff_headers):
    response = client.post(
        "/api/workflow/case/missing/stages", json={"stageName": "Design", "sequence": 1}, headers=staff_headers
    )

    assert response.status_code == 404
    assert response.json()["code"] == "CASE_NOT_FOUND"


def test_started_at_is_only_stamped_once(client, staff_headers, add_stage):
    stage = add_stage("Design", 1)
    url = f"/api/workflow/stages/{stage['id']}"

    first = client.put(url, json={"status": "IN_PROGRESS"}, headers=staff_headers).json()["data"]
    client.put(url, json={"status": "BLOCKED"}, headers=staff_headers)
    again = client.put(url, json={"status": "IN_PROGRESS"}, headers=staff_headers).json()["data"]

    assert first["startedAt"] is not None
    assert again["startedAt"] == first["startedAt"]


def test_complete_is_idempotent(client, staff_headers, add_stage):
    stage = add_stage("Design", 1)
    url = f"/api/workflow/stages/{stage['id']}/complete"

    first = client.put(url, json={"notes": "Approved by dentist"}, headers=staff_headers)
    second = client.put(url, json={}, headers=staff_headers)

    assert first.status_code == second.status_code == 200
    data = second.json()["data"]
    assert data["status"] == "COMPLETED"
    assert data["completedAt"] is not None
    assert data["notes"] == "Approved by dentist"


def test_stage_status_does_not_touch_case_status(client, staff_headers, created_case, add_stage):
    stage = add_stage("Design", 1)

    client.put(f"/api/workflow/stages/{stage['id']}/complete", json={}, headers=staff_headers)

    case = client.get(f"/api/cases/{created_case['id']}", headers=staff_headers).json()["data"]
    assert case["status"] == "RECEIVED"


def test_unknown_stage(client, staff_headers):
    response = client.get("/api/workflow/stages/missing", headers=staff_headers)

    assert response.status_code == 404
    assert response.json()["code"] == "STAGE_NOT_FOUND"


def test_delete_stage(client, staff_headers, add_stage):
    stage = add_stage("Design", 1)

    assert client.delete(f"/api/workflow/stages/{stage['id']}", headers=staff_headers).status_code == 200
    assert client.get(f"/api/workflow/stages/{stage['id']}", headers=staff_headers).status_code == 404


class TestStats:
    def test_empty_workflow(self, client, staff_headers, created_case):
        stats = client.get(f"/api/workflow/case/{created_case['id']}/stats", headers=staff_headers).json()["data"]

        assert stats["total"] == 0
        assert stats["progress"] == 0

    def test_counts_and_progress(self, client, staff_headers, created_case, add_stage):
        stages = [add_stage(f"Stage {n}", n) for n in range(1, 4)]
        client.put(f"/api/workflow/stages/{stages[0]['id']}/complete", json={}, headers=staff_headers)
        client.put(f"/api/workflow/stages/{stages[1]['id']}", json={"status": "IN_PROGRESS"}, headers=staff_headers)

        stats = client.get(f"/api/workflow/case/{created_case['id']}/stats", headers=staff_headers).json()["data"]

        assert stats == {
            "total": 3, "pending": 1, "inProgress": 1, "completed": 1,
            "blocked": 0, "skipped": 0, "progress": 33,
        }

    def test_progress_rounds_half_up(self, client, staff_headers, created_case, add_stage):
        stages = [add_stage(f"Stage {n}", n) for n in range(1, 9)]
        client.put(f"/api/workflow/stages/{stages[0]['id']}/complete", json={}, headers=staff_headers)

        stats = client.get(f"/api/workflow/case/{created_case['id']}/stats", headers=staff_headers).json()["data"]

        # 1 of 8 is 12.5%
        assert stats["progress"] == 13


def test_stage_assignee_must_exist(client, staff_headers, created_case):
    response = client.post(
        f"/api/workflow/case/{created_case['id']}/stages",
        json={"stageName": "Design", "sequence": 1, "assignedTo": "nobody"},
        headers=staff_headers,
    )

    assert response.status_code == 404
    assert response.json()["code"] == "USER_NOT_FOUND"


def test_stage_can_be_assigned_to_existing_user(client, staff_headers, staff_user, add_stage):
    stage = add_stage("Design", 1)
    url = f"/api/workflow/stages/{stage['id']}"

    missing = client.put(url, json={"assignedTo": "nobody"}, headers=staff_headers)
    assigned = client.put(url, json={"assignedTo": staff_user.id}, headers=staff_headers)

    assert missing.status_code == 404
    assert missing.json()["code"] == "USER_NOT_FOUND"
    assert assigned.status_code == 200
    assert assigned.json()["data"]["assignedTo"] == staff_user.id


@pytest.mark.parametrize("field", ["stageName", "sequence", "status"])
def test_required_stage_fields_cannot_be_nulled(client, staff_headers, add_stage, field):
    stage = add_stage("Design", 1)

    response = client.put(f"/api/workflow/stages/{stage['id']}", json={field: None}, headers=staff_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"
    fetched = client.get(f"/api/workflow/stages/{stage['id']}", headers=staff_headers).json()["data"]
    assert fetched["status"] == "PENDING"
