import uuid
from django.db import models

CONTRACT_KIND_CHOICES = [("new", "New"), ("renewal", "Renewal")]
CONTRACT_STATUS_CHOICES = [("active", "Active"), ("risk", "Risk"), ("finished", "Finished")]
SCHEDULE_POLICY_CHOICES = [("months", "Monthly"), ("fixed_days", "Fixed day offsets")]


class Contract(models.Model):
    """
    A signed customer engagement. Every care task and care log hangs off a contract,
    and the start date (T+0) anchors the whole care schedule.

    Contracts are never deleted; they move through active → risk → finished.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    contract_no = models.CharField(max_length=20, unique=True)  # e.g. "20251215-001"

    # Ownership
    owner_id = models.CharField(max_length=128, db_index=True)
    team_id = models.CharField(max_length=64, db_index=True)
    # Written by the first generation of the app before owner_id existed
    legacy_agent_id = models.CharField(max_length=128, null=True, blank=True, db_index=True)

    # Customer identity
    parent_name = models.CharField(max_length=200)
    student_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=30)
    email = models.EmailField(null=True, blank=True)
    line_id = models.CharField(max_length=100, null=True, blank=True)

    # Deal
    product = models.CharField(max_length=100)
    contract_kind = models.CharField(max_length=20, choices=CONTRACT_KIND_CHOICES, default="new")
    payment_method = models.CharField(max_length=50, null=True, blank=True)
    source = models.CharField(max_length=100, null=True, blank=True)
    note = models.TextField(null=True, blank=True)

    # Schedule anchors (start_date is immutable once created)
    start_date = models.DateTimeField()
    onboarding_date = models.DateTimeField()
    first_lesson_date = models.DateTimeField()

    # Periodic schedule snapshot taken at creation, so redelivery regenerates the same plan
    product_cycle = models.IntegerField(null=True, blank=True)  # months of periodic care
    schedule_policy = models.CharField(max_length=20, choices=SCHEDULE_POLICY_CHOICES, default="months")
    periodic_day_offsets = models.JSONField(null=True, blank=True)  # e.g. [20, 40, 60] for fixed_days

    status = models.CharField(max_length=20, choices=CONTRACT_STATUS_CHOICES, default="active")

    # High-value tags set from connected care calls
    renewal_likely = models.BooleanField(default=False)
    referral_likely = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "contracts"
        ordering = ["-start_date"]
        indexes = [
            models.Index(fields=["owner_id", "-start_date"], name="idx_contract_owner_start"),
            models.Index(fields=["team_id", "-start_date"], name="idx_contract_team_start"),
        ]

    def __str__(self):
        return f"{self.contract_no} {self.student_name} ({self.status})"
