"""
Tests for user, role and permission administration.
"""
import pytest

from dental_lab.core.exceptions import DomainRuleError
from dental_lab.models.user import Role
from dental_lab.services.user_service import UserService


def role_id(db, name):
    return db.query(Role).filter(Role.name == name).one().id


class TestUsers:
    def test_create_user_with_roles(self, client, db, admin_headers):
        response = client.post("/api/users", headers=admin_headers, json={
            "email": "clerk@example.com",
            "password": "secret1",
            "firstName": "Cora",
            "lastName": "Clerk",
            "roleIds": [role_id(db, "staff")],
        })

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["roles"] == ["staff"]
        assert "password" not in data

    def test_duplicate_email(self, client, admin_headers, admin_user):
        response = client.post("/api/users", headers=admin_headers, json={
            "email": admin_user.email, "password": "secret1", "firstName": "A", "lastName": "B",
        })

        assert response.status_code == 400
        assert response.json()["code"] == "EMAIL_ALREADY_EXISTS"

    def test_unknown_role(self, client, admin_headers):
        response = client.post("/api/users", headers=admin_headers, json={
            "email": "x@example.com", "password": "secret1", "firstName": "A", "lastName": "B",
            "roleIds": ["missing"],
        })

        assert response.status_code == 404
        assert response.json()["code"] == "ROLE_NOT_FOUND"

    def test_role_ids_replace_the_role_set(self, client, db, admin_headers, make_user):
        user = make_user(roles=("USER", "staff"))

        response = client.put(f"/api/users/{user.id}", headers=admin_headers, json={
            "roleIds": [role_id(db, "dentist")],
        })

        assert response.json()["data"]["roles"] == ["dentist"]

    def test_search_and_deactivate(self, client, admin_headers, make_user):
        user = make_user(email="findme@example.com")

        found = client.get("/api/users/search", params={"q": "findme"}, headers=admin_headers).json()["data"]
        deactivated = client.delete(f"/api/users/{user.id}", headers=admin_headers).json()["data"]

        assert [u["id"] for u in found["data"]] == [user.id]
        assert deactivated["isActive"] is False

    def test_unknown_user(self, client, admin_headers):
        response = client.get("/api/users/missing", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"

    def test_is_active_cannot_be_nulled(self, client, admin_headers, make_user):
        user = make_user()

        response = client.put(f"/api/users/{user.id}", headers=admin_headers, json={"isActive": None})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestRoles:
    def test_create_role_with_permissions(self, client, admin_headers):
        permissions = client.get("/api/users/permissions", headers=admin_headers).json()["data"]
        names = [p["name"] for p in permissions]
        assert names == sorted(names)

        response = client.post("/api/users/roles", headers=admin_headers, json={
            "name": "auditor",
            "description": "Read-only billing access",
            "permissionIds": [permissions[0]["id"]],
        })

        assert response.status_code == 201
        assert [p["id"] for p in response.json()["data"]["permissions"]] == [permissions[0]["id"]]

    def test_duplicate_role(self, client, admin_headers):
        response = client.post("/api/users/roles", headers=admin_headers, json={"name": "staff"})

        assert response.status_code == 400
        assert response.json()["code"] == "ROLE_ALREADY_EXISTS"

    def test_unknown_permission(self, client, admin_headers):
        response = client.post("/api/users/roles", headers=admin_headers, json={
            "name": "auditor", "permissionIds": ["missing"],
        })

        assert response.status_code == 404
        assert response.json()["code"] == "PERMISSION_NOT_FOUND"

    def test_role_in_use_cannot_be_deleted(self, client, db, admin_headers, staff_user):
        staff_role = role_id(db, "staff")

        response = client.delete(f"/api/users/roles/{staff_role}", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "ROLE_HAS_USERS"
        assert client.get(f"/api/users/roles/{staff_role}", headers=admin_headers).status_code == 200

    def test_role_in_use_is_a_domain_rule_violation(self, db, staff_user):
        with pytest.raises(DomainRuleError) as exc:
            UserService(db).delete_role(role_id(db, "staff"))

        assert exc.value.code == "ROLE_HAS_USERS"
        assert exc.value.details == {"assignedUsers": 1}

    def test_unused_role_can_be_deleted(self, client, admin_headers):
        created = client.post("/api/users/roles", headers=admin_headers, json={"name": "temp"}).json()["data"]

        response = client.delete(f"/api/users/roles/{created['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert client.get(f"/api/users/roles/{created['id']}", headers=admin_headers).status_code == 404

    def test_role_name_cannot_be_nulled(self, client, db, admin_headers):
        response = client.put(f"/api/users/roles/{role_id(db, 'staff')}", headers=admin_headers, json={"name": None})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"
