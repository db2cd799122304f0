import uuid
from django.db import models

TASK_KIND_CHOICES = [
    ("onboarding", "Onboarding care"),
    ("first_lesson", "First lesson care"),
    ("periodic", "Periodic care"),
    ("ad_hoc", "General care"),
]
TASK_STATUS_CHOICES = [("pending", "Pending"), ("completed", "Completed")]
OUTCOME_CHOICES = [("connected", "Connected"), ("no_answer", "No answer"), ("busy", "Busy")]
SERVICE_TAG_CHOICES = [("normal", "Normal"), ("needs_help", "Needs help"), ("complaint", "Complaint")]


class Task(models.Model):
    """
    A scheduled care touchpoint with the customer of a contract.

    System-generated tasks get a deterministic id derived from
    (contract, kind, sequence_index) so that redelivered "contract created"
    events can never insert a second copy. Manually created tasks (ad-hoc and
    follow-ups) use random ids and have no sequence index.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    contract = models.ForeignKey("Contract", on_delete=models.PROTECT, related_name="tasks")

    # Ownership (copied from the contract)
    owner_id = models.CharField(max_length=128, db_index=True)
    team_id = models.CharField(max_length=64, db_index=True)
    legacy_agent_id = models.CharField(max_length=128, null=True, blank=True, db_index=True)

    kind = models.CharField(max_length=20, choices=TASK_KIND_CHOICES)
    sequence_index = models.IntegerField(null=True, blank=True)
    title = models.CharField(max_length=200, blank=True, default="")
    client_name = models.CharField(max_length=200, blank=True, default="")

    due_date = models.DateTimeField(db_index=True)

    is_completed = models.BooleanField(default=False)
    status = models.CharField(max_length=20, choices=TASK_STATUS_CHOICES, default="pending")
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.CharField(max_length=128, null=True, blank=True)

    # Last completion report
    outcome = models.CharField(max_length=20, choices=OUTCOME_CHOICES, null=True, blank=True)
    service_tag = models.CharField(max_length=20, choices=SERVICE_TAG_CHOICES, null=True, blank=True)
    note = models.TextField(null=True, blank=True)

    is_system_generated = models.BooleanField(default=True)

    # Bumped on every completion write; used as the compare-and-swap token
    version = models.IntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "tasks"
        ordering = ["due_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["contract", "kind", "sequence_index"],
                condition=models.Q(is_system_generated=True),
                name="uniq_generated_task_slot",
            ),
        ]
        indexes = [
            models.Index(fields=["owner_id", "status", "due_date"], name="idx_task_owner_status_due"),
            models.Index(fields=["team_id", "status", "due_date"], name="idx_task_team_status_due"),
            models.Index(fields=["contract", "due_date"], name="idx_task_contract_due"),
        ]

    def __str__(self):
        return f"{self.kind}#{self.sequence_index} due {self.due_date:%Y-%m-%d} ({self.status}) contract={self.contract_id}"
