"""
DRF serializers for API request/response validation.
Separates API contract from DB models.
"""
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import serializers

from app.models import Contract, Task, CareLog
from app.services import task_status
from app.utils import care_time_zone, start_of_local_day


class CareDateTimeField(serializers.Field):
    """
    Accepts a plain date ("2025-01-08") or a full ISO datetime.
    Plain dates become local midnight in the care time zone.
    """

    default_error_messages = {
        "invalid": "Enter a date (YYYY-MM-DD) or an ISO 8601 datetime.",
    }

    def to_internal_value(self, data):
        if not isinstance(data, str):
            self.fail("invalid")
        value = data.strip()
        try:
            parsed = parse_datetime(value) if "T" in value or " " in value else None
            if parsed is None:
                day = parse_date(value)
                if day is None:
                    self.fail("invalid")
                return start_of_local_day(day, care_time_zone())
        except ValueError:
            self.fail("invalid")
        if timezone.is_naive(parsed):
            parsed = timezone.make_aware(parsed, care_time_zone())
        return parsed

    def to_representation(self, value):
        return value.isoformat() if value else None


# ─── Query Serializers ───────────────────────────────────────────────────────

class ListQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, min_value=1)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)


class ContractListQuerySerializer(ListQuerySerializer):
    status = serializers.ChoiceField(required=False, choices=['active', 'risk', 'finished'])


class TaskListQuerySerializer(ListQuerySerializer):
    status = serializers.ChoiceField(required=False, choices=['pending', 'completed', 'all'], default='pending')
    within_days = serializers.IntegerField(required=False, min_value=0)
    sort = serializers.ChoiceField(
        required=False, choices=['due_date', '-due_date', 'created_at', '-created_at'], default='due_date',
    )


# ─── Contract Serializers ────────────────────────────────────────────────────

class ContractCreateSerializer(serializers.ModelSerializer):
    start_date = CareDateTimeField()
    onboarding_date = CareDateTimeField(required=False, allow_null=True)
    first_lesson_date = CareDateTimeField(required=False, allow_null=True)

    class Meta:
        model = Contract
        fields = [
            'parent_name', 'student_name', 'phone', 'email', 'line_id',
            'product', 'contract_kind', 'payment_method', 'source', 'note',
            'start_date', 'onboarding_date', 'first_lesson_date', 'product_cycle',
        ]

    def validate_product_cycle(self, value):
        if value is not None and value < 1:
            raise serializers.ValidationError("product_cycle must be at least one month.")
        return value


class ContractUpdateSerializer(serializers.Serializer):
    """Contact edits and status changes only — start_date is immutable."""
    phone = serializers.CharField(required=False, max_length=30)
    email = serializers.EmailField(required=False, allow_null=True, allow_blank=True)
    line_id = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=100)
    status = serializers.ChoiceField(required=False, choices=['active', 'risk', 'finished'])


class ContractSerializer(serializers.ModelSerializer):
    class Meta:
        model = Contract
        fields = '__all__'


class ContractSummarySerializer(serializers.ModelSerializer):
    """Lightweight contract listing for the customers page."""
    class Meta:
        model = Contract
        fields = [
            'id', 'contract_no', 'student_name', 'parent_name', 'phone',
            'product', 'contract_kind', 'status', 'start_date',
            'owner_id', 'team_id', 'renewal_likely', 'referral_likely',
        ]


# ─── Task Serializers ────────────────────────────────────────────────────────

class TaskSerializer(serializers.ModelSerializer):
    display_status = serializers.SerializerMethodField()
    due_today = serializers.SerializerMethodField()

    class Meta:
        model = Task
        fields = [
            'id', 'contract_id', 'owner_id', 'team_id', 'kind', 'sequence_index',
            'title', 'client_name', 'due_date', 'is_completed', 'status',
            'completed_at', 'completed_by', 'outcome', 'service_tag', 'note',
            'is_system_generated', 'display_status', 'due_today', 'created_at',
        ]

    def get_display_status(self, task):
        return task_status.classify_task(
            task, self.context.get("now"), self.context.get("tz"),
        )

    def get_due_today(self, task):
        return task_status.is_due_today(task, self.context.get("now"), self.context.get("tz"))


class TaskCompletionSerializer(serializers.Serializer):
    """Payload to report the outcome of a care call."""
    outcome = serializers.ChoiceField(choices=['connected', 'no_answer', 'busy'])
    note = serializers.CharField(required=False, allow_blank=True, default="")
    service_tag = serializers.ChoiceField(
        choices=['normal', 'needs_help', 'complaint'], required=False, default="normal",
    )
    next_contact_date = CareDateTimeField(required=False, allow_null=True)
    suppress_follow_up = serializers.BooleanField(required=False, default=False)
    renewal_likely = serializers.BooleanField(required=False, default=False)
    referral_likely = serializers.BooleanField(required=False, default=False)


class AdHocTaskCreateSerializer(serializers.Serializer):
    due_date = CareDateTimeField()
    note = serializers.CharField(required=False, allow_blank=True, default="")


# ─── Care Log Serializers ────────────────────────────────────────────────────

class CareLogCreateSerializer(serializers.Serializer):
    content = serializers.CharField(allow_blank=True)
    outcome = serializers.ChoiceField(choices=['connected', 'no_answer', 'busy'], required=False, default="connected")
    occurred_at = CareDateTimeField(required=False, allow_null=True)
    renewal_likely = serializers.BooleanField(required=False, default=False)
    referral_likely = serializers.BooleanField(required=False, default=False)


class CareLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = CareLog
        fields = [
            'id', 'contract_id', 'occurred_at', 'outcome', 'content',
            'author_id', 'author_name', 'renewal_likely', 'referral_likely',
            'created_at',
        ]
