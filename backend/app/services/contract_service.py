"""
Contract commands — the write side used by sales agents.

create_contract() records a signed deal and publishes the "contract created"
event that lays out the care schedule. Afterwards a contract only changes
through contact-info edits and status transitions; its start date is fixed.
"""
import logging
from datetime import datetime, timedelta

from django.conf import settings
from django.db import IntegrityError, transaction

from app.exceptions import ContractNotFound
from app.models.care_log import CareLog
from app.models.contract import Contract
from app.models.task import Task
from app.principal import Principal
from app.services.task_generator import TASK_TITLES, SchedulePolicy, dispatch_contract_created
from app.utils import local_day, utcnow

logger = logging.getLogger(__name__)

CONTACT_FIELDS = ("phone", "email", "line_id")
CONTRACT_STATUSES = {"active", "risk", "finished"}

# Two agents closing deals on the same day can race for the same number
CONTRACT_NO_ATTEMPTS = 5


def get_contract(contract_id) -> Contract:
    try:
        return Contract.objects.get(id=contract_id)
    except Contract.DoesNotExist:
        raise ContractNotFound(f"Contract {contract_id} not found")


def create_contract(data: dict, principal: Principal) -> Contract:
    """
    Record a signed contract owned by the principal.

    onboarding_date defaults to the start date and first_lesson_date to one
    week after it. The care schedule is generated after commit.
    """
    fields = dict(data)
    start = fields.pop("start_date")
    onboarding = fields.pop("onboarding_date", None) or start
    first_lesson = fields.pop("first_lesson_date", None) or (
        start + timedelta(days=settings.CARE_FIRST_LESSON_OFFSET_DAYS)
    )
    # Redelivered events must rebuild the same plan whatever the settings are by then
    policy = SchedulePolicy.from_settings(months=fields.pop("product_cycle", None))
    fields.update(policy.snapshot_fields())

    for attempt in range(1, CONTRACT_NO_ATTEMPTS + 1):
        contract_no = _next_contract_no(start)
        try:
            with transaction.atomic():
                contract = Contract.objects.create(
                    contract_no=contract_no,
                    owner_id=principal.id,
                    team_id=principal.team_id,
                    start_date=start,
                    onboarding_date=onboarding,
                    first_lesson_date=first_lesson,
                    schedule_policy=policy.kind,
                    status="active",
                    **fields,
                )
                dispatch_contract_created(contract.id)
        except IntegrityError:
            logger.warning("Contract number %s taken (attempt %d)", contract_no, attempt)
            continue

        logger.info("Contract %s (%s) created by %s", contract.id, contract.contract_no, principal.id)
        return contract

    raise IntegrityError(f"Could not allocate a contract number for {local_day(start)}")


def _next_contract_no(start: datetime) -> str:
    prefix = local_day(start).strftime("%Y%m%d")
    last = (
        Contract.objects
        .filter(contract_no__startswith=f"{prefix}-")
        .order_by("-contract_no")
        .values_list("contract_no", flat=True)
        .first()
    )
    sequence = int(last.rsplit("-", 1)[1]) + 1 if last else 1
    return f"{prefix}-{sequence:03d}"


def update_contract_contact(contract_id, changes: dict) -> Contract:
    """Edit phone / email / LINE id. Any other key is ignored."""
    contract = get_contract(contract_id)
    updated = [f for f in CONTACT_FIELDS if f in changes and changes[f] != getattr(contract, f)]
    if not updated:
        return contract

    for field in updated:
        setattr(contract, field, changes[field])
    contract.save(update_fields=[*updated, "updated_at"])
    logger.info("Contract %s contact updated: %s", contract.id, ", ".join(updated))
    return contract


def change_contract_status(contract_id, status: str) -> Contract:
    if status not in CONTRACT_STATUSES:
        raise ValueError(f"Unknown contract status '{status}'")
    contract = get_contract(contract_id)
    if contract.status != status:
        old_status = contract.status
        contract.status = status
        contract.save(update_fields=["status", "updated_at"])
        logger.info("Contract %s status: %s -> %s", contract.id, old_status, status)
    return contract


def edit_contract(contract_id, changes: dict) -> Contract:
    """Contact edits and an optional status change, committed together."""
    with transaction.atomic():
        contract = update_contract_contact(contract_id, changes)
        if "status" in changes:
            contract = change_contract_status(contract_id, changes["status"])
    return contract


def create_ad_hoc_task(contract_id, due_date: datetime, note: str = "") -> Task:
    """Insert a manual care task for an out-of-band follow-up, bypassing the generator."""
    contract = get_contract(contract_id)
    task = Task.objects.create(
        contract=contract,
        owner_id=contract.owner_id,
        team_id=contract.team_id,
        legacy_agent_id=contract.legacy_agent_id,
        kind="ad_hoc",
        title=TASK_TITLES["ad_hoc"],
        client_name=contract.student_name,
        due_date=due_date,
        note=note or None,
        is_system_generated=False,
    )
    logger.info("Ad-hoc task %s for contract %s due %s", task.id, contract.id, due_date.isoformat())
    return task


def record_care_log(
    contract_id,
    content: str,
    outcome: str = "connected",
    occurred_at: datetime | None = None,
    author: Principal | None = None,
    renewal_likely: bool = False,
    referral_likely: bool = False,
) -> CareLog:
    contract = get_contract(contract_id)
    return CareLog.objects.create(
        contract=contract,
        occurred_at=occurred_at or utcnow(),
        outcome=outcome,
        content=content,
        author_id=author.id if author else None,
        author_name=(author.name or author.id) if author else None,
        renewal_likely=renewal_likely,
        referral_likely=referral_likely,
    )
