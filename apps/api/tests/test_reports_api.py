"""HTTP tests for the saved report and schedule endpoints."""

import uuid

import pytest

from report_engine.db.enums import Role
from report_engine.services.report_executor import (
    ReportExecutorError,
    ReportExecutorTimeoutError,
)

REPORT_BODY = {
    "name": "Open cases",
    "entity_type": "cases",
    "columns": ["referenceNumber", "status", "createdAt"],
    "filters": [
        {
            "logic": "AND",
            "conditions": [
                {"field": "status", "operator": "eq", "value": "NEW"},
                {"field": "severity", "operator": "eq", "value": "HIGH"},
            ],
        }
    ],
}


async def create_report(client, **overrides):
    response = await client.post("/reports", json={**REPORT_BODY, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


class TestAuthGates:
    async def test_requires_session(self, client):
        response = await client.get("/reports")
        assert response.status_code == 401

    async def test_mutation_requires_csrf_header(self, client_factory, test_auth):
        async with client_factory(test_auth, csrf=False) as c:
            response = await c.post("/reports", json=REPORT_BODY)
        assert response.status_code == 403

    async def test_read_only_role_cannot_create(
        self, client_factory, test_org, user_factory, auth_factory
    ):
        reader = user_factory(test_org, Role.READ_ONLY)
        async with client_factory(auth_factory(reader, test_org)) as c:
            assert (await c.get("/reports")).status_code == 200
            assert (await c.post("/reports", json=REPORT_BODY)).status_code == 403

    async def test_policy_author_cannot_delete(
        self, authed_client, client_factory, test_org, user_factory, auth_factory
    ):
        report = await create_report(authed_client)
        author = user_factory(test_org, Role.POLICY_AUTHOR)
        async with client_factory(auth_factory(author, test_org)) as c:
            response = await c.delete(f"/reports/{report['id']}")
        assert response.status_code == 403


class TestFields:
    async def test_grouped_catalog(self, authed_client):
        response = await authed_client.get("/reports/fields/cases")
        assert response.status_code == 200
        body = response.json()
        assert body["entity_type"] == "cases"
        assert body["field_groups"][0]["group_name"] == "Case Details"
        assert body["total_fields"] == sum(len(g["fields"]) for g in body["field_groups"])
        status = next(
            f for g in body["field_groups"] for f in g["fields"] if f["id"] == "status"
        )
        assert status["type"] == "enum"
        assert "NEW" in status["enum_values"]

    async def test_unknown_entity_type_is_empty(self, authed_client):
        response = await authed_client.get("/reports/fields/widgets")
        assert response.status_code == 200
        assert response.json()["field_groups"] == []
        assert response.json()["total_fields"] == 0


class TestCrud:
    async def test_create_and_get(self, authed_client, test_user):
        created = await create_report(authed_client)
        assert created["visibility"] == "PRIVATE"
        assert created["created_by_name"] == "Test User"

        response = await authed_client.get(f"/reports/{created['id']}")
        assert response.status_code == 200
        assert response.json()["filters"] == REPORT_BODY["filters"]

    async def test_invalid_entity_type_is_400(self, authed_client):
        response = await authed_client.post("/reports", json={**REPORT_BODY, "entity_type": "widgets"})
        assert response.status_code == 400
        assert "widgets" in response.json()["detail"]

    async def test_invalid_column_is_400(self, authed_client):
        response = await authed_client.post("/reports", json={**REPORT_BODY, "columns": ["nope"]})
        assert response.status_code == 400
        assert "nope" in response.json()["detail"]

    async def test_missing_name_is_422(self, authed_client):
        body = {k: v for k, v in REPORT_BODY.items() if k != "name"}
        response = await authed_client.post("/reports", json=body)
        assert response.status_code == 422

    async def test_get_unknown_is_404(self, authed_client):
        response = await authed_client.get(f"/reports/{uuid.uuid4()}")
        assert response.status_code == 404

    async def test_list_envelope(self, authed_client):
        await create_report(authed_client)
        await create_report(authed_client, name="Second")
        response = await authed_client.get("/reports", params={"page": 1, "page_size": 1})
        body = response.json()
        assert response.status_code == 200
        assert body["total"] == 2
        assert body["page"] == 1
        assert body["page_size"] == 1
        assert len(body["data"]) == 1

    async def test_page_size_capped(self, authed_client):
        response = await authed_client.get("/reports", params={"page_size": 500})
        assert response.status_code == 422

    async def test_update(self, authed_client):
        created = await create_report(authed_client)
        response = await authed_client.put(
            f"/reports/{created['id']}", json={"name": "Renamed", "visibility": "TEAM"}
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert response.json()["visibility"] == "TEAM"
        assert response.json()["columns"] == REPORT_BODY["columns"]

    async def test_update_by_non_owner_is_403(
        self, authed_client, client_factory, test_org, user_factory, auth_factory
    ):
        created = await create_report(authed_client, visibility="EVERYONE")
        other = user_factory(test_org, Role.COMPLIANCE_OFFICER)
        async with client_factory(auth_factory(other, test_org)) as c:
            response = await c.put(f"/reports/{created['id']}", json={"name": "Mine now"})
        assert response.status_code == 403

    async def test_delete(self, authed_client):
        created = await create_report(authed_client)
        assert (await authed_client.delete(f"/reports/{created['id']}")).status_code == 204
        assert (await authed_client.get(f"/reports/{created['id']}")).status_code == 404

    async def test_templates(self, authed_client):
        await create_report(authed_client, is_template=True, template_category="executive")
        await create_report(authed_client, name="Not a template")
        response = await authed_client.get("/reports/templates")
        assert response.status_code == 200
        assert [t["name"] for t in response.json()] == ["Open cases"]

    async def test_other_tenant_sees_404(
        self, authed_client, client_factory, org_factory, user_factory, auth_factory
    ):
        created = await create_report(authed_client, visibility="EVERYONE")
        other_org = org_factory()
        outsider = user_factory(other_org, Role.SYSTEM_ADMIN)
        async with client_factory(auth_factory(outsider, other_org)) as c:
            assert (await c.get(f"/reports/{created['id']}")).status_code == 404
            assert (await c.post(f"/reports/{created['id']}/run", json={})).status_code == 404
            assert (await c.post(f"/reports/{created['id']}/favorite")).status_code == 404
            assert (await c.get("/reports")).json()["total"] == 0


class TestActions:
    async def test_duplicate(self, authed_client):
        created = await create_report(authed_client, visibility="TEAM")
        response = await authed_client.post(f"/reports/{created['id']}/duplicate")
        assert response.status_code == 201
        copy = response.json()
        assert copy["name"] == "Open cases (Copy)"
        assert copy["visibility"] == "PRIVATE"
        assert copy["id"] != created["id"]

    async def test_favorite_toggles(self, authed_client):
        created = await create_report(authed_client)
        first = await authed_client.post(f"/reports/{created['id']}/favorite")
        second = await authed_client.post(f"/reports/{created['id']}/favorite")
        assert first.json() == {"is_favorite": True}
        assert second.json() == {"is_favorite": False}

    async def test_export_stub(self, authed_client):
        created = await create_report(authed_client)
        response = await authed_client.post(
            f"/reports/{created['id']}/export", json={"format": "PDF"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "PENDING"
        assert body["job_id"].startswith(f"export-{created['id']}-")
        assert body["download_url"] is None

    async def test_export_missing_report(self, authed_client):
        response = await authed_client.post(f"/reports/{uuid.uuid4()}/export", json={})
        assert response.status_code == 404


class TestRun:
    async def test_run_passes_flat_filters_and_records_stats(self, authed_client, fake_executor):
        created = await create_report(authed_client)
        response = await authed_client.post(f"/reports/{created['id']}/run", json={})
        assert response.status_code == 200
        assert response.json()["total_count"] == 42

        config, _ = fake_executor.calls[0]
        assert [(f.field, f.value) for f in config.filters] == [
            ("status", "NEW"),
            ("severity", "HIGH"),
        ]

        refreshed = (await authed_client.get(f"/reports/{created['id']}")).json()
        assert refreshed["last_run_row_count"] == 42
        assert refreshed["last_run_at"] is not None

    async def test_run_without_body(self, authed_client, fake_executor):
        created = await create_report(authed_client)
        response = await authed_client.post(f"/reports/{created['id']}/run")
        assert response.status_code == 200
        assert fake_executor.calls[0][0].limit == 1000

    async def test_bad_date_range_is_400(self, authed_client):
        created = await create_report(authed_client)
        response = await authed_client.post(
            f"/reports/{created['id']}/run", json={"date_range_start": "yesterday"}
        )
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "error, status",
        [(ReportExecutorError("down"), 502), (ReportExecutorTimeoutError("slow"), 504)],
    )
    async def test_executor_failures(self, authed_client, fake_executor, error, status):
        created = await create_report(authed_client)
        fake_executor.error = error
        response = await authed_client.post(f"/reports/{created['id']}/run", json={})
        assert response.status_code == status

        refreshed = (await authed_client.get(f"/reports/{created['id']}")).json()
        assert refreshed["last_run_at"] is None

    async def test_limit_above_max_is_422(self, authed_client):
        created = await create_report(authed_client)
        response = await authed_client.post(
            f"/reports/{created['id']}/run", json={"limit": 50000}
        )
        assert response.status_code == 422


class TestScheduleEndpoints:
    SCHEDULE = {
        "format": "EXCEL",
        "schedule_type": "DAILY",
        "time": "07:15",
        "recipients": ["cco@example.com"],
    }

    async def test_lifecycle(self, authed_client):
        report = await create_report(authed_client)
        base = f"/reports/{report['id']}/schedule"

        created = await authed_client.post(base, json=self.SCHEDULE)
        assert created.status_code == 201
        assert created.json()["format"] == "EXCEL"

        duplicate = await authed_client.post(base, json=self.SCHEDULE)
        assert duplicate.status_code == 404
        assert "update" in duplicate.json()["detail"]

        assert (await authed_client.get(base)).status_code == 200
        updated = await authed_client.put(base, json={"time": "18:00"})
        assert updated.json()["schedule_config"]["time"] == "18:00"

        paused = await authed_client.post(f"{base}/pause")
        assert paused.json()["is_active"] is False
        resumed = await authed_client.post(f"{base}/resume")
        assert resumed.json()["is_active"] is True

        run = await authed_client.post(f"{base}/run-now")
        assert run.status_code == 202
        assert run.json()["status"] == "PENDING"

        assert (await authed_client.delete(base)).status_code == 204
        assert (await authed_client.get(base)).status_code == 404
        assert (await authed_client.get(f"/reports/{report['id']}")).json()[
            "scheduled_export_id"
        ] is None

    async def test_missing_report(self, authed_client):
        response = await authed_client.post(
            f"/reports/{uuid.uuid4()}/schedule", json=self.SCHEDULE
        )
        assert response.status_code == 404

    async def test_invalid_time_is_422(self, authed_client):
        report = await create_report(authed_client)
        response = await authed_client.post(
            f"/reports/{report['id']}/schedule", json={**self.SCHEDULE, "time": "25:00"}
        )
        assert response.status_code == 422

    async def test_partial_failure_surfaces_schedule_id(self, authed_client, monkeypatch):
        from sqlalchemy.exc import SQLAlchemyError

        from report_engine.services import audit_service

        report = await create_report(authed_client)

        def fail(*args, **kwargs):
            raise SQLAlchemyError("link write failed")

        monkeypatch.setattr(audit_service, "log_event", fail)
        response = await authed_client.post(
            f"/reports/{report['id']}/schedule", json=self.SCHEDULE
        )
        assert response.status_code == 500
        assert uuid.UUID(response.json()["detail"]["schedule_id"])


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
