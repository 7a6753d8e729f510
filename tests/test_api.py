"""Employee HTTP surface — routing, role guards, envelopes and RFC 7807
error bodies. Rule details are covered at the service level in
test_employees.py / test_hierarchy_moves.py.
"""

from __future__ import annotations

import uuid

from hrms.common.constants import PositionKind
from hrms.org.models import Department, Employee
from tests.conftest import auth_headers_for, reload


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"


class TestEmployeeReadEndpoints:
    async def test_list_is_paginated(self, client, org, ceo_headers):
        resp = await client.get(
            "/api/v1/employees", params={"page_size": 4, "sort": "name"}, headers=ceo_headers,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert [e["name"] for e in body["data"]] == ["Alice", "Bob", "Carol", "Chief Exec"]
        assert body["meta"]["total"] == 9
        assert body["meta"]["total_pages"] == 3

    async def test_list_search(self, client, org, ceo_headers):
        resp = await client.get(
            "/api/v1/employees", params={"search": "FRANK"}, headers=ceo_headers,
        )
        assert [e["email"] for e in resp.json()["data"]] == ["frank@company.com"]

    async def test_list_forbidden_for_non_ceo(self, client, org):
        headers = await auth_headers_for(org.alice)
        resp = await client.get("/api/v1/employees", headers=headers)
        assert resp.status_code == 403
        body = resp.json()
        assert body["status"] == 403
        assert body["type"].endswith("/forbidden")
        assert body["instance"] == "/api/v1/employees"

    async def test_unknown_sort_field(self, client, org, ceo_headers):
        resp = await client.get(
            "/api/v1/employees", params={"sort": "password_hash2"}, headers=ceo_headers,
        )
        assert resp.status_code == 422

    async def test_get_employee(self, client, org):
        headers = await auth_headers_for(org.alice)
        resp = await client.get(f"/api/v1/employees/{org.ivan.id}", headers=headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["manager_name"] == "Dave"
        assert data["department_name"] == "Engineering"
        assert "password_hash" not in data

    async def test_get_employee_outside_scope(self, client, org):
        headers = await auth_headers_for(org.erin)
        resp = await client.get(f"/api/v1/employees/{org.grace.id}", headers=headers)
        assert resp.status_code == 403

    async def test_get_unknown_employee(self, client, org, ceo_headers):
        resp = await client.get(f"/api/v1/employees/{uuid.uuid4()}", headers=ceo_headers)
        assert resp.status_code == 404
        assert resp.headers["content-type"].startswith("application/problem+json")

    async def test_invalid_uuid(self, client, org, ceo_headers):
        resp = await client.get("/api/v1/employees/not-a-uuid", headers=ceo_headers)
        assert resp.status_code == 422

    async def test_profile_and_reportings(self, client, org):
        headers = await auth_headers_for(org.dave)
        profile = await client.get("/api/v1/employees/profile", headers=headers)
        assert profile.status_code == 200
        assert profile.json()["data"]["id"] == str(org.dave.id)

        reports = await client.get("/api/v1/employees/reportings", headers=headers)
        assert [r["name"] for r in reports.json()["data"]] == ["Ivan"]

    async def test_by_department_and_manager(self, client, org):
        headers = await auth_headers_for(org.bob)
        resp = await client.get(
            f"/api/v1/employees/department/{org.marketing.id}", headers=headers,
        )
        assert {e["name"] for e in resp.json()["data"]} == {"Bob", "Frank"}

        resp = await client.get(f"/api/v1/employees/manager/{org.bob.id}", headers=headers)
        assert [e["name"] for e in resp.json()["data"]] == ["Frank"]

        resp = await client.get(
            f"/api/v1/employees/department/{org.sales.id}", headers=headers,
        )
        assert resp.status_code == 403

    async def test_org_chart(self, client, org, ceo_headers):
        resp = await client.get("/api/v1/employees/org-chart", headers=ceo_headers)
        assert resp.status_code == 200
        roots = resp.json()["data"]
        assert len(roots) == 1
        assert roots[0]["position"] == PositionKind.ceo.value
        assert len(roots[0]["children"]) == 3


class TestEmployeeWriteEndpoints:
    async def test_create(self, client, org, ceo_headers):
        resp = await client.post(
            "/api/v1/employees",
            json={
                "name": "Hank",
                "email": "hank@company.com",
                "password": "s3cret-pass",
                "department_id": str(org.sales.id),
                "manager_id": str(org.grace.id),
            },
            headers=ceo_headers,
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "Employee created successfully."
        assert body["data"]["manager_name"] == "Grace"

    async def test_create_requires_admin_role(self, client, org):
        headers = await auth_headers_for(org.erin)
        resp = await client.post(
            "/api/v1/employees",
            json={
                "name": "Hank",
                "email": "hank@company.com",
                "password": "s3cret-pass",
                "department_id": str(org.engineering.id),
                "manager_id": str(org.erin.id),
            },
            headers=headers,
        )
        assert resp.status_code == 403

    async def test_create_body_validation(self, client, org, ceo_headers):
        resp = await client.post(
            "/api/v1/employees",
            json={"name": "Hank", "email": "not-an-email", "password": "short"},
            headers=ceo_headers,
        )
        assert resp.status_code == 422
        errors = resp.json()["errors"]
        assert "email" in errors
        assert "password" in errors

    async def test_rule_violation_is_422(self, client, org, ceo_headers):
        resp = await client.post(
            "/api/v1/employees",
            json={
                "name": "Hank",
                "email": "hank@company.com",
                "password": "s3cret-pass",
                "department_id": str(org.sales.id),
                "manager_id": str(org.frank.id),
            },
            headers=ceo_headers,
        )
        assert resp.status_code == 422
        assert resp.json()["errors"]["manager_id"]

    async def test_put_and_patch(self, client, org, ceo_headers):
        resp = await client.put(
            f"/api/v1/employees/{org.grace.id}",
            json={"name": "Grace H.", "email": "grace.h@company.com", "role": "EMPLOYEE"},
            headers=ceo_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["email"] == "grace.h@company.com"

        resp = await client.patch(
            f"/api/v1/employees/{org.grace.id}",
            json={"name": "Grace Hopper"},
            headers=ceo_headers,
        )
        assert resp.json()["data"]["name"] == "Grace Hopper"
        assert resp.json()["data"]["email"] == "grace.h@company.com"

    async def test_patch_structural_field_rejected(self, client, org, ceo_headers):
        resp = await client.patch(
            f"/api/v1/employees/{org.grace.id}",
            json={"manager_id": str(org.ceo.id)},
            headers=ceo_headers,
        )
        assert resp.status_code == 422

    async def test_assign_manager(self, client, org):
        headers = await auth_headers_for(org.alice)
        resp = await client.put(
            f"/api/v1/employees/{org.ivan.id}/manager/{org.erin.id}", headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["manager_id"] == str(org.erin.id)

        ivan = await reload(Employee, org.ivan.id)
        assert ivan.manager_id == org.erin.id

    async def test_move(self, client, org, ceo_headers):
        resp = await client.put(
            f"/api/v1/employees/{org.erin.id}/move",
            json={"department_id": str(org.sales.id), "manager_id": str(org.carol.id)},
            headers=ceo_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["department_name"] == "Sales"

    async def test_delete(self, client, org, ceo_headers):
        resp = await client.delete(f"/api/v1/employees/{org.frank.id}", headers=ceo_headers)
        assert resp.status_code == 200
        assert await reload(Employee, org.frank.id) is None

    async def test_delete_self_forbidden(self, client, org):
        headers = await auth_headers_for(org.dave)
        resp = await client.delete(f"/api/v1/employees/{org.dave.id}", headers=headers)
        assert resp.status_code == 403


class TestDepartmentHeadMoveEndpoint:
    async def test_move_without_replacement(self, client, org, ceo_headers):
        resp = await client.put(
            f"/api/v1/employees/department-heads/{org.bob.id}/move",
            json={"new_department_id": str(org.sales.id)},
            headers=ceo_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["department_id"] == str(org.sales.id)

        marketing = await reload(Department, org.marketing.id)
        carol = await reload(Employee, org.carol.id)
        assert marketing.head_employee_id is None
        assert carol.manager_id == org.bob.id

    async def test_move_with_replacement(self, client, org, ceo_headers):
        resp = await client.put(
            f"/api/v1/employees/department-heads/{org.bob.id}/move",
            json={
                "new_department_id": str(org.sales.id),
                "replacement_head_employee_id": str(org.frank.id),
            },
            headers=ceo_headers,
        )
        assert resp.status_code == 200

        marketing = await reload(Department, org.marketing.id)
        frank = await reload(Employee, org.frank.id)
        assert marketing.head_employee_id == org.frank.id
        assert frank.position_kind == PositionKind.department_head

    async def test_rejected_move_changes_nothing(self, client, org, ceo_headers):
        resp = await client.put(
            f"/api/v1/employees/department-heads/{org.bob.id}/move",
            json={
                "new_department_id": str(org.sales.id),
                "replacement_head_employee_id": str(org.erin.id),
            },
            headers=ceo_headers,
        )
        assert resp.status_code == 422

        sales = await reload(Department, org.sales.id)
        bob = await reload(Employee, org.bob.id)
        assert sales.head_employee_id == org.carol.id
        assert bob.department_id == org.marketing.id

    async def test_head_cannot_move_heads(self, client, org):
        headers = await auth_headers_for(org.alice)
        resp = await client.put(
            f"/api/v1/employees/department-heads/{org.bob.id}/move",
            json={"new_department_id": str(org.sales.id)},
            headers=headers,
        )
        assert resp.status_code == 403
