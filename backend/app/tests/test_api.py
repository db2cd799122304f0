from unittest import mock

import pytest
from django.db import OperationalError

from app.models.care_log import CareLog
from app.models.task import Task
from app.tests.conftest import utc


def headers(principal_id="agent-1", role="agent", team="team-a", **extra):
    return {
        "HTTP_X_PRINCIPAL_ID": principal_id,
        "HTTP_X_PRINCIPAL_ROLE": role,
        "HTTP_X_TEAM_ID": team,
        **extra,
    }


AGENT = headers()
OTHER_AGENT = headers("agent-2", team="team-b")
MANAGER = headers("manager-1", role="manager")


@pytest.mark.django_db
class TestPrincipalHeaders:

    def test_missing_headers(self, client):
        assert client.get("/api/tasks/").status_code == 401

    def test_unknown_role(self, client):
        assert client.get("/api/tasks/", **headers(role="intern")).status_code == 401

    def test_unknown_time_zone(self, client):
        response = client.get("/api/tasks/", **headers(HTTP_X_TIME_ZONE="Mars/Olympus"))
        assert response.status_code == 401


@pytest.mark.django_db
class TestContractsApi:

    def test_create_contract_generates_schedule(self, client, care_settings, django_capture_on_commit_callbacks):
        payload = {
            "parent_name": "Grace Chen",
            "student_name": "Ivy Chen",
            "phone": "0912000101",
            "product": "English 1:1",
            "start_date": "2025-01-01",
        }
        with mock.patch("django_q.tasks.async_task", side_effect=RuntimeError("no broker")):
            with django_capture_on_commit_callbacks(execute=True):
                response = client.post("/api/contracts/", payload, content_type="application/json", **AGENT)

        assert response.status_code == 201
        body = response.json()
        assert body["contract_no"] == "20250101-001"
        assert body["owner_id"] == "agent-1"
        assert Task.objects.filter(contract_id=body["id"]).count() == 5

    def test_create_contract_validation(self, client, care_settings):
        response = client.post(
            "/api/contracts/", {"student_name": "Ivy", "start_date": "not-a-date"},
            content_type="application/json", **AGENT,
        )
        assert response.status_code == 400
        assert "start_date" in response.json()

    def test_store_outage_is_a_generic_failure(self, client, care_settings):
        payload = {
            "parent_name": "Grace Chen", "student_name": "Ivy Chen", "phone": "0912000101",
            "product": "English 1:1", "start_date": "2025-01-01",
        }
        with mock.patch(
            "app.services.contract_service.create_contract", side_effect=OperationalError("down"),
        ) as create:
            response = client.post("/api/contracts/", payload, content_type="application/json", **AGENT)

        assert response.status_code == 503
        assert create.call_count == care_settings.CARE_STORE_RETRY_ATTEMPTS

    def test_list_is_scoped(self, client, make_contract):
        mine = make_contract(owner="agent-1")
        make_contract(owner="agent-2", team="team-b")

        body = client.get("/api/contracts/", **AGENT).json()
        assert [c["id"] for c in body] == [str(mine.id)]

    def test_invisible_contract_is_not_found(self, client, scheduled_contract):
        contract, _ = scheduled_contract
        assert client.get(f"/api/contracts/{contract.id}", **OTHER_AGENT).status_code == 404
        assert client.get(f"/api/contracts/{contract.id}", **MANAGER).status_code == 200

    def test_patch_contact_and_status(self, client, make_contract):
        contract = make_contract()
        response = client.patch(
            f"/api/contracts/{contract.id}", {"phone": "0987654321", "status": "risk"},
            content_type="application/json", **AGENT,
        )
        assert response.status_code == 200
        assert response.json()["phone"] == "0987654321"
        assert response.json()["status"] == "risk"

    def test_timeline_order(self, client, scheduled_contract):
        contract, tasks = scheduled_contract
        asc = client.get(f"/api/contracts/{contract.id}/timeline", **AGENT).json()
        desc = client.get(f"/api/contracts/{contract.id}/timeline?order=desc", **AGENT).json()

        assert asc[0]["id"] == str(tasks[0].id)
        assert [e["id"] for e in desc] == [e["id"] for e in reversed(asc)]

    def test_care_logs(self, client, scheduled_contract):
        contract, _ = scheduled_contract
        response = client.post(
            f"/api/contracts/{contract.id}/care-logs",
            {"content": "Parent asked about the holiday schedule", "occurred_at": "2025-01-03"},
            content_type="application/json", **headers(HTTP_X_PRINCIPAL_NAME="Amy"),
        )
        assert response.status_code == 201
        assert response.json()["author_name"] == "Amy"

        logs = client.get(f"/api/contracts/{contract.id}/care-logs", **AGENT).json()
        assert len(logs) == 1
        assert CareLog.objects.count() == 1

    def test_ad_hoc_task_and_preview(self, client, scheduled_contract):
        contract, tasks = scheduled_contract
        response = client.post(
            f"/api/contracts/{contract.id}/tasks", {"due_date": "2025-01-05", "note": "Check homework"},
            content_type="application/json", **AGENT,
        )
        assert response.status_code == 201
        assert response.json()["kind"] == "ad_hoc"

        preview = client.get(f"/api/contracts/{contract.id}/schedule-preview", **AGENT).json()
        assert preview["system_task"]["id"] == str(tasks[0].id)
        assert preview["manual_tasks"] == []


@pytest.mark.django_db
class TestTasksApi:

    def test_list_pending_tasks(self, client, scheduled_contract):
        body = client.get("/api/tasks/", **AGENT).json()
        assert len(body) == 5
        assert [t["due_date"][:10] for t in body] == [
            "2025-01-01", "2025-01-08", "2025-02-01", "2025-03-01", "2025-04-01",
        ]

    def test_other_agent_sees_nothing(self, client, scheduled_contract):
        assert client.get("/api/tasks/", **OTHER_AGENT).json() == []

    def test_complete_connected(self, client, scheduled_contract):
        _, tasks = scheduled_contract
        response = client.post(
            f"/api/tasks/{tasks[0].id}/complete",
            {"outcome": "connected", "note": "Welcome call", "next_contact_date": "2025-01-15"},
            content_type="application/json", **AGENT,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["task"]["status"] == "completed"
        assert body["task"]["completed_by"] == "agent-1"
        assert body["follow_up"]["due_date"].startswith("2025-01-15")

    def test_complete_busy_requires_date(self, client, scheduled_contract):
        _, tasks = scheduled_contract
        response = client.post(
            f"/api/tasks/{tasks[1].id}/complete", {"outcome": "busy"},
            content_type="application/json", **AGENT,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "A follow-up date is required for outcome 'busy'"

    def test_complete_twice_conflicts(self, client, scheduled_contract):
        _, tasks = scheduled_contract
        url = f"/api/tasks/{tasks[0].id}/complete"
        payload = {"outcome": "connected"}
        assert client.post(url, payload, content_type="application/json", **AGENT).status_code == 200
        assert client.post(url, payload, content_type="application/json", **AGENT).status_code == 409

    def test_complete_invisible_task(self, client, scheduled_contract):
        _, tasks = scheduled_contract
        response = client.post(
            f"/api/tasks/{tasks[0].id}/complete", {"outcome": "connected"},
            content_type="application/json", **OTHER_AGENT,
        )
        assert response.status_code == 404

    @pytest.mark.parametrize("query", ["within_days=soon", "within_days=-1", "limit=abc", "status=done"])
    def test_bad_list_params_are_rejected(self, client, scheduled_contract, query):
        response = client.get(f"/api/tasks/?{query}", **AGENT)
        assert response.status_code == 400

    def test_within_days_window(self, client, scheduled_contract):
        with mock.patch("app.api.tasks.utcnow", return_value=utc(2025, 1, 5, 12)):
            body = client.get("/api/tasks/?within_days=3", **AGENT).json()
        assert [t["kind"] for t in body] == ["onboarding", "first_lesson"]
        assert [t["display_status"] for t in body] == ["overdue", "pending"]

    def test_due_today_flag(self, client, scheduled_contract):
        with mock.patch("app.api.tasks.utcnow", return_value=utc(2025, 1, 8, 9)):
            body = client.get("/api/tasks/", **AGENT).json()
        assert [t["due_today"] for t in body] == [False, True, False, False, False]


@pytest.mark.django_db
class TestContractEditAtomicity:

    def test_failed_status_write_rolls_back_contact_edit(self, client, make_contract, care_settings):
        contract = make_contract()
        with mock.patch(
            "app.services.contract_service.change_contract_status", side_effect=OperationalError("down"),
        ) as change_status:
            response = client.patch(
                f"/api/contracts/{contract.id}", {"phone": "0987654321", "status": "risk"},
                content_type="application/json", **AGENT,
            )

        assert response.status_code == 503
        assert change_status.call_count == care_settings.CARE_STORE_RETRY_ATTEMPTS
        contract.refresh_from_db()
        assert contract.phone == "0912000000"
        assert contract.status == "active"

    def test_bad_contract_list_params_are_rejected(self, client, make_contract):
        assert client.get("/api/contracts/?offset=-3", **AGENT).status_code == 400


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_no_static_or_template_stack(settings):
    assert "django.contrib.staticfiles" not in settings.INSTALLED_APPS
    assert not hasattr(settings, "STATIC_URL") or settings.STATIC_URL is None
