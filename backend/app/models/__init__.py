from app.models.contract import Contract
from app.models.task import Task
from app.models.care_log import CareLog

__all__ = ["Contract", "Task", "CareLog"]
