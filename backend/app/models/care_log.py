import uuid
from django.db import models

from app.models.task import OUTCOME_CHOICES


class CareLog(models.Model):
    """
    Append-only journal entry for a manual contact that has no task row behind it.
    Care logs and tasks together make up a contract's care timeline.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    contract = models.ForeignKey("Contract", on_delete=models.PROTECT, related_name="care_logs")

    occurred_at = models.DateTimeField()
    outcome = models.CharField(max_length=20, choices=OUTCOME_CHOICES, default="connected")
    content = models.TextField(blank=True, default="")

    author_id = models.CharField(max_length=128, null=True, blank=True)
    author_name = models.CharField(max_length=200, null=True, blank=True)

    renewal_likely = models.BooleanField(default=False)
    referral_likely = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "care_logs"
        ordering = ["-occurred_at"]
        indexes = [
            models.Index(fields=["contract", "-occurred_at"], name="idx_carelog_contract_date"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Care logs are append-only and cannot be modified")
        super().save(*args, **kwargs)

    def __str__(self):
        return f"care log ({self.outcome}) for contract={self.contract_id} at {self.occurred_at}"
