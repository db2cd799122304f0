"""
Care Timeline

A contract's care history lives in two places: task rows (scheduled and
manual touchpoints) and care log rows (contacts journaled without a task).
Both are wrapped as events (TaskEvent | LogEvent) and projected into one
TimelineEntry shape so the page renders a single list.

Ordering must be total so that rendering and pagination are reproducible:
  1. event time — due date, else completion / occurrence, else creation
  2. kind priority — onboarding < first lesson < periodic < ad-hoc / log
  3. source — task rows before care logs
  4. id
Newest-first is the exact reverse of oldest-first.
"""
from dataclasses import dataclass, field
from datetime import datetime
from zoneinfo import ZoneInfo

from app.models.care_log import CareLog
from app.models.task import Task
from app.services import task_status
from app.utils import utcnow

KIND_PRIORITY = {
    "onboarding": 1,
    "first_lesson": 2,
    "periodic": 3,
    "ad_hoc": 4,
    "care_log": 4,
}

# Kind names written by earlier versions of the app
LEGACY_KIND_NAMES = {
    "newbie": "onboarding",
    "newcomer": "onboarding",
    "novice_care": "onboarding",
    "first_class": "first_lesson",
    "system": "periodic",
    "monthly_care": "periodic",
    "general": "ad_hoc",
}

_SOURCE_RANK = {"task": 0, "care_log": 1}


def normalize_task_kind(kind: str) -> str:
    return LEGACY_KIND_NAMES.get(kind, kind)


@dataclass
class TimelineEntry:
    id: str
    source: str  # "task" | "care_log"
    date: datetime
    kind: str
    status: str
    content: str
    author: str
    tags: list[str] = field(default_factory=list)
    completed_late: bool = False

    def sort_key(self) -> tuple:
        return (self.date, KIND_PRIORITY.get(self.kind, 99), _SOURCE_RANK[self.source], self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source": self.source,
            "date": self.date.isoformat(),
            "kind": self.kind,
            "status": self.status,
            "content": self.content,
            "author": self.author,
            "tags": self.tags,
            "completed_late": self.completed_late,
        }


@dataclass(frozen=True)
class TaskEvent:
    task: Task

    def project(self, now: datetime, tz: ZoneInfo | None) -> TimelineEntry:
        task = self.task
        if task.is_completed:
            author = task.completed_by or task.owner_id
        else:
            author = "system" if task.is_system_generated else task.owner_id
        return TimelineEntry(
            id=str(task.id),
            source="task",
            date=task.due_date or task.completed_at or task.created_at,
            kind=normalize_task_kind(task.kind),
            status=task_status.classify_task(task, now, tz),
            content=task.note or task.title or "",
            author=author or "",
            completed_late=task_status.completed_late(task, tz),
        )


@dataclass(frozen=True)
class LogEvent:
    log: CareLog

    def project(self, now: datetime, tz: ZoneInfo | None) -> TimelineEntry:
        log = self.log
        tags = []
        if log.renewal_likely:
            tags.append("renewal_likely")
        if log.referral_likely:
            tags.append("referral_likely")
        return TimelineEntry(
            id=str(log.id),
            source="care_log",
            date=log.occurred_at or log.created_at,
            kind="care_log",
            status=log.outcome,
            content=log.content,
            author=log.author_name or log.author_id or "",
            tags=tags,
        )


def merge_timeline(
    tasks,
    care_logs,
    newest_first: bool = False,
    now: datetime | None = None,
    tz: ZoneInfo | None = None,
) -> list[TimelineEntry]:
    """Merge task rows and care log rows into one totally ordered list."""
    now = now or utcnow()
    events = [TaskEvent(task) for task in tasks] + [LogEvent(log) for log in care_logs]
    entries = [event.project(now, tz) for event in events]
    entries.sort(key=TimelineEntry.sort_key, reverse=newest_first)
    return entries


def contract_timeline(
    contract_id,
    newest_first: bool = False,
    now: datetime | None = None,
    tz: ZoneInfo | None = None,
) -> list[TimelineEntry]:
    tasks = Task.objects.filter(contract_id=contract_id)
    care_logs = CareLog.objects.filter(contract_id=contract_id)
    return merge_timeline(tasks, care_logs, newest_first=newest_first, now=now, tz=tz)
