"""
Care Task Generator

When a contract is created, its whole care schedule is laid out up front:

1. Onboarding care      — due on the onboarding date
2. First lesson care    — due on the first lesson date
3. Periodic care 1..N   — anchored on the start date (T+0), either
                          T + k calendar months ("months" policy) or
                          T + d_k days ("fixed_days" policy)

Delivery of the "contract created" event is at-least-once (django-q job,
plus a sweep for jobs that never ran), so generation must be idempotent.
Each generated task gets a UUIDv5 id derived from (contract, kind, index)
and the batch is inserted with conflicts ignored: a second run inserts
nothing and never overwrites a task that has already been worked.

- build_task_batch()          — pure; the unsaved batch for a contract
- on_contract_created()       — persist the batch atomically
- dispatch_contract_created() — enqueue the job after commit
- generate_tasks_for_contract() — django-q entrypoint
- ensure_care_schedules()     — periodic sweep; safety net for lost jobs
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q

from app.exceptions import ContractNotFound
from app.models.contract import Contract
from app.models.task import Task
from app.utils import add_months, care_time_zone, utcnow

logger = logging.getLogger(__name__)

MONTHS = "months"
FIXED_DAYS = "fixed_days"
SCHEDULE_POLICIES = {MONTHS, FIXED_DAYS}

# Fixed namespace so that generated ids are stable across processes and deploys
TASK_ID_NAMESPACE = uuid.UUID("6f1c1d1e-8a7b-4f0e-9a55-3c2b7d9e4a10")

TASK_TITLES = {
    "onboarding": "Onboarding care",
    "first_lesson": "First lesson care",
    "periodic": "Periodic care",
    "ad_hoc": "General care",
}


# ─── Schedule policy ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SchedulePolicy:
    kind: str = MONTHS
    months: int = 24
    day_offsets: tuple[int, ...] = (20, 40, 60, 120, 180, 240)

    def __post_init__(self):
        if self.kind not in SCHEDULE_POLICIES:
            raise ValueError(f"Unknown schedule policy '{self.kind}'")

    @classmethod
    def from_settings(cls, kind: str | None = None, months: int | None = None) -> "SchedulePolicy":
        return cls(
            kind=kind or settings.CARE_SCHEDULE_POLICY,
            months=months or settings.CARE_PERIODIC_MONTHS,
            day_offsets=tuple(settings.CARE_PERIODIC_DAY_OFFSETS),
        )

    @classmethod
    def for_contract(cls, contract: Contract) -> "SchedulePolicy":
        """
        The policy snapshotted on the contract. Contracts recorded before the
        snapshot existed take the current settings for the missing parts until
        snapshot_policy() pins them.
        """
        current = cls.from_settings(kind=contract.schedule_policy)
        offsets = contract.periodic_day_offsets
        return cls(
            kind=contract.schedule_policy,
            months=contract.product_cycle or current.months,
            day_offsets=tuple(offsets) if offsets is not None else current.day_offsets,
        )

    def snapshot_fields(self) -> dict:
        return {"product_cycle": self.months, "periodic_day_offsets": list(self.day_offsets)}

    def periodic_due_dates(self, anchor: datetime) -> list[datetime]:
        # Month math runs on the local wall clock so T+0 keeps its calendar day
        local_anchor = anchor.astimezone(care_time_zone()) if anchor.tzinfo else anchor
        if self.kind == MONTHS:
            return [add_months(local_anchor, k) for k in range(1, self.months + 1)]
        return [local_anchor + timedelta(days=days) for days in self.day_offsets]


def snapshot_policy(contract: Contract) -> None:
    """Pin the resolved policy on a contract that does not carry it yet."""
    if contract.product_cycle and contract.periodic_day_offsets is not None:
        return
    fields = SchedulePolicy.for_contract(contract).snapshot_fields()
    for field, value in fields.items():
        setattr(contract, field, value)
    contract.save(update_fields=[*fields, "updated_at"])
    logger.info("Pinned schedule policy on contract %s: %s", contract.id, fields)


def generated_task_id(contract_id, kind: str, index: int) -> uuid.UUID:
    return uuid.uuid5(TASK_ID_NAMESPACE, f"{contract_id}:{kind}:{index}")


# ─── Batch construction ──────────────────────────────────────────────────────

def build_task_batch(contract: Contract, policy: SchedulePolicy | None = None) -> list[Task]:
    """Return the ordered, unsaved initial task batch for a contract."""
    policy = policy or SchedulePolicy.for_contract(contract)

    slots = [
        ("onboarding", 0, contract.onboarding_date, TASK_TITLES["onboarding"]),
        ("first_lesson", 0, contract.first_lesson_date, TASK_TITLES["first_lesson"]),
    ]
    for k, due in enumerate(policy.periodic_due_dates(contract.start_date), start=1):
        slots.append(("periodic", k, due, f"{TASK_TITLES['periodic']} {k}"))

    return [
        Task(
            id=generated_task_id(contract.id, kind, index),
            contract=contract,
            owner_id=contract.owner_id,
            team_id=contract.team_id,
            legacy_agent_id=contract.legacy_agent_id,
            kind=kind,
            sequence_index=index,
            title=title,
            client_name=contract.student_name,
            due_date=due,
            is_completed=False,
            status="pending",
            is_system_generated=True,
        )
        for kind, index, due, title in slots
    ]


# ─── Persistence ─────────────────────────────────────────────────────────────

def on_contract_created(contract: Contract) -> list[Task]:
    """
    Handle a "contract created" event: persist the initial batch and return it.

    The insert is all-or-nothing. Rows that already exist (earlier delivery of
    the same event) are left untouched and returned as stored.
    """
    with transaction.atomic():
        snapshot_policy(contract)
        batch = build_task_batch(contract)
        Task.objects.bulk_create(batch, ignore_conflicts=True)

    order = {task.id: position for position, task in enumerate(batch)}
    persisted = sorted(
        Task.objects.filter(id__in=order.keys()),
        key=lambda task: order[task.id],
    )
    logger.info(
        "Care schedule for contract %s: %d tasks (%s policy)",
        contract.id, len(persisted), contract.schedule_policy,
    )
    return persisted


def generate_tasks_for_contract(contract_id: str) -> str:
    """
    django-q job for the "contract created" event.

    Accepts contract_id as a string (django-q serializes task args as JSON).
    Raising lets django-q record the failure and retry the whole batch.
    """
    contract = Contract.objects.filter(id=contract_id).first()
    if contract is None:
        raise ContractNotFound(f"Contract {contract_id} not found")
    tasks = on_contract_created(contract)
    return f"scheduled ({len(tasks)} tasks)"


def dispatch_contract_created(contract_id) -> None:
    """
    Publish the "contract created" event. Call inside the creating transaction;
    the job is only enqueued once that transaction commits.
    """
    transaction.on_commit(lambda: _enqueue_generation(str(contract_id)))


def _enqueue_generation(contract_id: str) -> None:
    try:
        from django_q.tasks import async_task
        async_task(
            "app.services.task_generator.generate_tasks_for_contract",
            contract_id,
            task_name=f"contract_created_{contract_id}",
            q_options={"timeout": 60},
        )
    except Exception:
        # Inline run is idempotent with any later worker run
        logger.warning(
            "django-q not available; generating care schedule inline for contract %s",
            contract_id, exc_info=True,
        )
        generate_tasks_for_contract(contract_id)


# ─── Periodic sweep: safety net ──────────────────────────────────────────────

def ensure_care_schedules() -> str:
    """
    Runs on a django-q Schedule. Finds recent active contracts whose
    system-generated task count is short of their plan and regenerates them.

    This catches events whose job was lost (worker restart, broker hiccup,
    partial batch that failed mid-write).
    """
    cutoff = utcnow() - timedelta(days=settings.CARE_SWEEP_LOOKBACK_DAYS)
    contracts = (
        Contract.objects
        .filter(status="active", created_at__gte=cutoff)
        .annotate(generated=Count("tasks", filter=Q(tasks__is_system_generated=True)))
    )

    repaired = 0
    for contract in contracts:
        if contract.generated >= len(build_task_batch(contract)):
            continue
        try:
            on_contract_created(contract)
            repaired += 1
        except Exception:
            logger.exception("Failed to regenerate care schedule for contract %s", contract.id)

    return f"sweep complete: {repaired} schedules repaired"
