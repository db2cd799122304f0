"""
Read-side queries consumed by the presentation layer. Every list is scoped
through the visibility filter.
"""
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from django.db.models import QuerySet

from app.models.care_log import CareLog
from app.models.contract import Contract
from app.models.task import Task
from app.principal import Principal
from app.services.visibility import scope_queryset
from app.utils import care_time_zone, local_day, start_of_local_day, utcnow

TASK_SORT_FIELDS = {"due_date", "-due_date", "created_at", "-created_at"}


def list_tasks(
    principal: Principal,
    status: str | None = "pending",
    within_days: int | None = None,
    sort: str = "due_date",
    now: datetime | None = None,
) -> QuerySet:
    """
    Tasks visible to the principal.

    within_days=N is the dashboard window: everything due up to the end of
    today + N local days, which includes every older task still pending.
    """
    queryset = Task.objects.all()
    if status:
        queryset = queryset.filter(status=status)
    if within_days is not None:
        tz = care_time_zone(principal.time_zone)
        last_day = local_day(now or utcnow(), tz) + timedelta(days=within_days)
        queryset = queryset.filter(due_date__lt=start_of_local_day(last_day + timedelta(days=1), tz))

    if sort not in TASK_SORT_FIELDS:
        sort = "due_date"
    tiebreak = "-id" if sort.startswith("-") else "id"
    return scope_queryset(queryset, principal).order_by(sort, tiebreak)


def list_contracts(principal: Principal, status: str | None = None) -> QuerySet:
    queryset = Contract.objects.all()
    if status:
        queryset = queryset.filter(status=status)
    return scope_queryset(queryset, principal).order_by("-start_date", "id")


def list_care_logs(contract_id) -> QuerySet:
    return CareLog.objects.filter(contract_id=contract_id).order_by("-occurred_at", "id")


def schedule_preview(contract_id) -> dict:
    """
    What comes next for a contract: the next pending system task, and the
    pending manual tasks that will happen before it.
    """
    pending = Task.objects.filter(contract_id=contract_id, status="pending").order_by("due_date", "id")
    system_task = pending.filter(is_system_generated=True).first()

    manual = pending.filter(is_system_generated=False)
    if system_task is not None:
        manual = manual.filter(due_date__lt=system_task.due_date)

    return {
        "manual_tasks": list(manual),
        "system_task": system_task,
    }


def visible_task_or_none(task_id, principal: Principal) -> Task | None:
    return scope_queryset(Task.objects.filter(id=task_id), principal).first()


def visible_contract_or_none(contract_id, principal: Principal) -> Contract | None:
    return scope_queryset(Contract.objects.filter(id=contract_id), principal).first()


def principal_time_zone(principal: Principal) -> ZoneInfo:
    return care_time_zone(principal.time_zone)
