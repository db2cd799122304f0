from io import StringIO

import pytest
from django.core.management import call_command
from django_q.models import Schedule

from app.models.contract import Contract
from app.models.task import Task
from app.services.task_generator import on_contract_created


@pytest.mark.django_db
def test_setup_schedule_sweep_is_idempotent():
    out = StringIO()
    call_command("setup_schedule_sweep", stdout=out)
    call_command("setup_schedule_sweep", "--minutes", "30", stdout=out)

    schedule = Schedule.objects.get(name="care_ensure_schedules")
    assert Schedule.objects.filter(name="care_ensure_schedules").count() == 1
    assert schedule.func == "app.services.task_generator.ensure_care_schedules"
    assert schedule.minutes == 30
    assert "Updated periodic task" in out.getvalue()


@pytest.mark.django_db
class TestMigrateLegacyTasks:

    @pytest.fixture
    def legacy_contract(self, make_contract):
        contract = make_contract(owner="", legacy_agent_id="agent-9")
        on_contract_created(contract)
        Task.objects.filter(contract=contract, kind="onboarding").update(kind="newbie")
        Task.objects.filter(contract=contract, kind="periodic").update(kind="monthly_care")
        return contract

    def test_copies_owner_and_renames_kinds(self, legacy_contract):
        out = StringIO()
        call_command("migrate_legacy_tasks", stdout=out)

        legacy_contract.refresh_from_db()
        assert legacy_contract.owner_id == "agent-9"
        assert set(Task.objects.values_list("owner_id", flat=True)) == {"agent-9"}
        assert Task.objects.filter(kind="onboarding").count() == 1
        assert Task.objects.filter(kind="periodic").count() == 3
        assert not Task.objects.filter(kind__in=["newbie", "monthly_care"]).exists()
        assert "1 contracts and 5 tasks" in out.getvalue()

    def test_dry_run_writes_nothing(self, legacy_contract):
        out = StringIO()
        call_command("migrate_legacy_tasks", "--dry-run", stdout=out)

        assert Contract.objects.get(id=legacy_contract.id).owner_id == ""
        assert Task.objects.filter(kind="newbie").count() == 1
        assert "Would migrate" in out.getvalue()

    def test_leaves_owned_rows_alone(self, make_contract):
        contract = make_contract(owner="agent-1", legacy_agent_id="agent-9")
        call_command("migrate_legacy_tasks", stdout=StringIO())

        contract.refresh_from_db()
        assert contract.owner_id == "agent-1"
