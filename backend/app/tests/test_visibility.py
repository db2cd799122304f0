import pytest
from django.db.models import Q

from app.models.contract import Contract
from app.models.task import Task
from app.principal import Principal, normalize_role
from app.services.care_queries import visible_contract_or_none, visible_task_or_none
from app.services.task_generator import on_contract_created
from app.services.visibility import legacy_visibility_predicate, scope_queryset, visibility_predicate


def test_predicates_per_role(agent, manager, director):
    assert visibility_predicate(agent) == Q(owner_id="agent-1")
    assert visibility_predicate(manager) == Q(team_id="team-a")
    assert visibility_predicate(director) == Q()


def test_legacy_predicate_only_for_agents(agent, manager):
    assert legacy_visibility_predicate(agent) == Q(owner_id="") & Q(legacy_agent_id="agent-1")
    assert legacy_visibility_predicate(manager) is None


def test_sales_role_is_an_agent():
    assert normalize_role("Sales") == "agent"
    assert Principal(id="u1", role="sales").role == "agent"


def test_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        Principal(id="u1", role="intern")


@pytest.mark.django_db
class TestScopeQueryset:

    @pytest.fixture
    def tasks(self, make_contract):
        mine = make_contract(owner="agent-1", team="team-a")
        teammate = make_contract(owner="agent-3", team="team-a")
        elsewhere = make_contract(owner="agent-2", team="team-b")
        for contract in (mine, teammate, elsewhere):
            on_contract_created(contract)
        return mine, teammate, elsewhere

    def test_agent_sees_only_own_tasks(self, tasks, agent):
        mine, _, _ = tasks
        visible = scope_queryset(Task.objects.all(), agent)
        assert visible.count() == 5
        assert set(visible.values_list("contract_id", flat=True)) == {mine.id}

    def test_manager_sees_team(self, tasks, manager):
        mine, teammate, _ = tasks
        visible = scope_queryset(Task.objects.all(), manager)
        assert set(visible.values_list("contract_id", flat=True)) == {mine.id, teammate.id}

    def test_director_sees_everything(self, tasks, director):
        assert scope_queryset(Task.objects.all(), director).count() == 15

    def test_same_rule_applies_to_contracts(self, tasks, other_agent):
        _, _, elsewhere = tasks
        assert list(scope_queryset(Contract.objects.all(), other_agent)) == [elsewhere]

    def test_agent_falls_back_to_legacy_owner(self, make_contract, agent):
        legacy = make_contract(owner="", legacy_agent_id="agent-1")
        on_contract_created(legacy)

        visible = scope_queryset(Task.objects.all(), agent)
        assert visible.count() == 5

    def test_no_fallback_when_scoped_rows_exist(self, make_contract, agent):
        on_contract_created(make_contract(owner="agent-1"))
        on_contract_created(make_contract(owner="", legacy_agent_id="agent-1"))

        assert scope_queryset(Task.objects.all(), agent).count() == 5

    def test_manager_never_uses_legacy_field(self, make_contract, manager):
        on_contract_created(make_contract(owner="", team="team-z", legacy_agent_id="manager-1"))
        assert scope_queryset(Task.objects.all(), manager).count() == 0

    def test_legacy_id_on_an_owned_row_grants_nothing(self, make_contract, agent):
        contract = make_contract(owner="agent-2", team="team-b", legacy_agent_id="agent-1")
        tasks = on_contract_created(contract)

        assert scope_queryset(Task.objects.all(), agent).count() == 0
        assert visible_task_or_none(tasks[0].id, agent) is None
        assert visible_contract_or_none(contract.id, agent) is None
