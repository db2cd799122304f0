"""
Completion Resolver

Applies a completion report to a care task. The task state machine is small:

    pending ──connected──────────────▶ completed   (terminal)
    pending ──no_answer / busy───────▶ pending     (rescheduled in place)

Connected:
  - the task closes with the outcome, note and service tag
  - a next contact date (unless suppressed) books exactly one ad-hoc follow-up
  - renewal / referral tags are copied onto the contract afterwards

No answer / busy:
  - the next contact date is mandatory and becomes the task's new due date
  - no new row is created; the task is its own follow-up

Concurrency: the row is locked for update and the write is a compare-and-swap
on (version, is_completed), so two completions racing on the same task can
never both succeed and never book two follow-ups. The task update, follow-up
insert and contract tags commit together.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

from django.db import transaction
from django.db.models import F

from app.exceptions import (
    CompletionValidationError,
    ConcurrentCompletion,
    TaskAlreadyCompleted,
    TaskNotFound,
)
from app.models.contract import Contract
from app.models.task import Task
from app.utils import utcnow

logger = logging.getLogger(__name__)

CONNECTED = "connected"
NO_ANSWER = "no_answer"
BUSY = "busy"
OUTCOMES = {CONNECTED, NO_ANSWER, BUSY}
SERVICE_TAGS = {"normal", "needs_help", "complaint"}
ISSUE_SERVICE_TAGS = {"needs_help", "complaint"}

FOLLOW_UP_PREFIXES = {
    "onboarding": "Onboarding follow-up",
    "first_lesson": "First lesson follow-up",
    "periodic": "Periodic care follow-up",
    "ad_hoc": "General care",
}


@dataclass
class CompletionReport:
    outcome: str
    note: str = ""
    service_tag: str = "normal"
    next_contact_date: datetime | None = None
    suppress_follow_up: bool = False
    renewal_likely: bool = False
    referral_likely: bool = False
    completed_by: str | None = None

    def validate(self) -> None:
        if self.outcome not in OUTCOMES:
            raise CompletionValidationError(f"Unknown call outcome '{self.outcome}'")
        if self.service_tag not in SERVICE_TAGS:
            raise CompletionValidationError(f"Unknown service tag '{self.service_tag}'")
        if self.outcome != CONNECTED and self.next_contact_date is None:
            raise CompletionValidationError(
                f"A follow-up date is required for outcome '{self.outcome}'"
            )


@dataclass
class CompletionResult:
    task: Task
    follow_up: Task | None = None
    rescheduled: bool = False

    def to_dict(self) -> dict:
        return {
            "task_id": str(self.task.id),
            "status": self.task.status,
            "is_completed": self.task.is_completed,
            "due_date": self.task.due_date.isoformat(),
            "rescheduled": self.rescheduled,
            "follow_up_task_id": str(self.follow_up.id) if self.follow_up else None,
        }


def complete_task(task_id, report: CompletionReport, now: datetime | None = None) -> CompletionResult:
    """
    Resolve a completion report against a task.

    Raises CompletionValidationError, TaskNotFound, TaskAlreadyCompleted or
    ConcurrentCompletion; in every error case nothing is written.
    """
    report.validate()
    now = now or utcnow()

    with transaction.atomic():
        try:
            task = Task.objects.select_for_update().select_related("contract").get(id=task_id)
        except Task.DoesNotExist:
            raise TaskNotFound(f"Task {task_id} not found")

        if task.is_completed:
            raise TaskAlreadyCompleted(f"Task {task_id} is already completed")

        changes = {
            "outcome": report.outcome,
            "note": report.note,
            "service_tag": report.service_tag,
            "updated_at": now,
        }
        if report.outcome == CONNECTED:
            changes.update(
                is_completed=True,
                status="completed",
                completed_at=now,
                completed_by=report.completed_by,
            )
        else:
            changes["due_date"] = report.next_contact_date

        # Compare-and-swap: only the holder of the version we read may write
        updated = (
            Task.objects
            .filter(id=task.id, version=task.version, is_completed=False)
            .update(version=F("version") + 1, **changes)
        )
        if updated != 1:
            raise ConcurrentCompletion(f"Task {task_id} was completed by someone else")

        task.refresh_from_db()

        follow_up = None
        if report.outcome == CONNECTED:
            if report.next_contact_date is not None and not report.suppress_follow_up:
                follow_up = _create_follow_up(task, report)
            _apply_contract_tags(task.contract, report)

    if follow_up:
        logger.info(
            "Task %s completed; follow-up %s booked for %s",
            task.id, follow_up.id, follow_up.due_date.isoformat(),
        )
    elif report.outcome == CONNECTED:
        logger.info("Task %s completed", task.id)
    else:
        logger.info(
            "Task %s rescheduled to %s after %s",
            task.id, task.due_date.isoformat(), report.outcome,
        )

    return CompletionResult(task=task, follow_up=follow_up, rescheduled=report.outcome != CONNECTED)


def _create_follow_up(task: Task, report: CompletionReport) -> Task:
    contract = task.contract
    if report.service_tag in ISSUE_SERVICE_TAGS:
        prefix = "Issue follow-up"
    else:
        prefix = FOLLOW_UP_PREFIXES.get(task.kind, "Next care")

    return Task.objects.create(
        contract=contract,
        owner_id=contract.owner_id,
        team_id=contract.team_id,
        legacy_agent_id=contract.legacy_agent_id,
        kind="ad_hoc",
        sequence_index=None,
        title=f"[{prefix}] {contract.student_name}",
        client_name=contract.student_name,
        due_date=report.next_contact_date,
        is_system_generated=False,
    )


def _apply_contract_tags(contract: Contract, report: CompletionReport) -> None:
    """Raise the contract's high-value flags. Tags are only ever set, never cleared here."""
    updates = {}
    if report.renewal_likely and not contract.renewal_likely:
        updates["renewal_likely"] = True
    if report.referral_likely and not contract.referral_likely:
        updates["referral_likely"] = True
    if not updates:
        return

    for field, value in updates.items():
        setattr(contract, field, value)
    contract.save(update_fields=[*updates, "updated_at"])
