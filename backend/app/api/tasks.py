"""
Task API — the care to-do list and the completion entrypoint.
"""
import logging

from django.db import DatabaseError
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from app.api.principal import MissingPrincipal, error_response, get_principal, not_found, unauthorized
from app.exceptions import CareDeskError
from app.serializers import TaskCompletionSerializer, TaskListQuerySerializer, TaskSerializer
from app.services import care_queries
from app.services.completion_resolver import CompletionReport, complete_task
from app.utils import run_with_store_retry, utcnow

logger = logging.getLogger(__name__)


class TaskListView(APIView):
    """
    Tasks visible to the principal.

    Query params:
      status       pending (default) | completed | all
      within_days  dashboard window: due up to today + N days (overdue included)
      sort         due_date (default) | -due_date | created_at | -created_at
    """

    def get(self, request):
        try:
            principal = get_principal(request)
        except MissingPrincipal as e:
            return unauthorized(e)

        query = TaskListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        now = utcnow()

        queryset = care_queries.list_tasks(
            principal,
            status=None if params["status"] == "all" else params["status"],
            within_days=params.get("within_days"),
            sort=params["sort"],
            now=now,
        )

        limit = min(params.get("limit", 100), 500)
        offset = params["offset"]
        queryset = queryset[offset:offset + limit]

        context = {"now": now, "tz": care_queries.principal_time_zone(principal)}
        return Response(TaskSerializer(queryset, many=True, context=context).data)


class TaskDetailView(APIView):

    def get(self, request, task_id):
        try:
            principal = get_principal(request)
        except MissingPrincipal as e:
            return unauthorized(e)

        task = care_queries.visible_task_or_none(task_id, principal)
        if not task:
            return not_found("Task")
        context = {"tz": care_queries.principal_time_zone(principal)}
        return Response(TaskSerializer(task, context=context).data)


class TaskCompleteView(APIView):
    """Report the outcome of a care call against a task."""

    def post(self, request, task_id):
        """
        connected          → task closes; optional next_contact_date books a follow-up
        no_answer / busy   → next_contact_date is required; task is rescheduled in place
        """
        try:
            principal = get_principal(request)
        except MissingPrincipal as e:
            return unauthorized(e)

        if not care_queries.visible_task_or_none(task_id, principal):
            return not_found("Task")

        serializer = TaskCompletionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = CompletionReport(completed_by=principal.id, **serializer.validated_data)

        try:
            result = run_with_store_retry(complete_task, task_id, report)
        except CareDeskError as e:
            return error_response(e)
        except DatabaseError:
            logger.exception("Completion of task %s failed", task_id)
            return Response(
                {"detail": "The service is temporarily unavailable. Please try again."},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )

        context = {"tz": care_queries.principal_time_zone(principal)}
        return Response(
            {
                **result.to_dict(),
                "task": TaskSerializer(result.task, context=context).data,
                "follow_up": TaskSerializer(result.follow_up, context=context).data if result.follow_up else None,
            },
            status=status.HTTP_200_OK,
        )
