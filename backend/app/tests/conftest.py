from datetime import datetime, timezone

import pytest

from app.models.contract import Contract
from app.principal import Principal
from app.services.task_generator import on_contract_created


def utc(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def agent():
    return Principal(id="agent-1", role="agent", team_id="team-a", name="Amy")


@pytest.fixture
def other_agent():
    return Principal(id="agent-2", role="agent", team_id="team-b", name="Ben")


@pytest.fixture
def manager():
    return Principal(id="manager-1", role="manager", team_id="team-a")


@pytest.fixture
def director():
    return Principal(id="director-1", role="director")


@pytest.fixture
def care_settings(settings):
    settings.CARE_SCHEDULE_POLICY = "months"
    settings.CARE_PERIODIC_MONTHS = 3
    settings.CARE_TIME_ZONE = "UTC"
    settings.CARE_STORE_RETRY_DELAY_SECONDS = 0
    return settings


@pytest.fixture
def make_contract(db, care_settings):
    counter = {"n": 0}

    def _make(owner="agent-1", team="team-a", start=None, **fields):
        counter["n"] += 1
        start = start or utc(2025, 1, 1)
        defaults = {
            "contract_no": f"20250101-{counter['n']:03d}",
            "owner_id": owner,
            "team_id": team,
            "parent_name": "Grace Chen",
            "student_name": f"Student {counter['n']}",
            "phone": "0912000000",
            "product": "English 1:1",
            "start_date": start,
            "onboarding_date": start,
            "first_lesson_date": utc(2025, 1, 8) if start == utc(2025, 1, 1) else start,
            "schedule_policy": "months",
        }
        defaults.update(fields)
        return Contract.objects.create(**defaults)

    return _make


@pytest.fixture
def scheduled_contract(make_contract):
    """The 2025-01-01 contract with its five generated tasks."""
    contract = make_contract()
    tasks = on_contract_created(contract)
    return contract, tasks
