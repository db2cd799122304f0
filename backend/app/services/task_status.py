"""
Task Status Classifier

Derives the display status of a care task from its due date, completion flag
and the current time. Everything is compared by calendar day in the care
time zone: a task due at 23:59 today is still "pending", never "overdue".
"""
from datetime import datetime
from zoneinfo import ZoneInfo

from app.utils import local_day, utcnow

COMPLETED = "completed"
OVERDUE = "overdue"
PENDING = "pending"


def classify_task(task, now: datetime | None = None, tz: ZoneInfo | None = None) -> str:
    """Return "completed", "overdue" or "pending" for a task-like object."""
    if task.is_completed:
        return COMPLETED
    today = local_day(now or utcnow(), tz)
    if local_day(task.due_date, tz) < today:
        return OVERDUE
    return PENDING


def is_due_today(task, now: datetime | None = None, tz: ZoneInfo | None = None) -> bool:
    if task.is_completed:
        return False
    return local_day(task.due_date, tz) == local_day(now or utcnow(), tz)


def completed_late(task, tz: ZoneInfo | None = None) -> bool:
    """True when the task was closed on a later calendar day than it was due."""
    if not task.is_completed or not task.completed_at:
        return False
    return local_day(task.completed_at, tz) > local_day(task.due_date, tz)
