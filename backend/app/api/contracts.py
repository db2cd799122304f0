"""
Contract API — customer records, their care timeline and manual care entries.

Every read and write is scoped by the visibility filter: a contract the
principal cannot see answers 404, exactly like one that does not exist.
"""
import logging

from django.db import DatabaseError
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from app.api.principal import MissingPrincipal, error_response, get_principal, not_found, unauthorized
from app.exceptions import CareDeskError
from app.serializers import (
    AdHocTaskCreateSerializer, CareLogCreateSerializer, CareLogSerializer,
    ContractCreateSerializer, ContractListQuerySerializer, ContractSerializer, ContractSummarySerializer,
    ContractUpdateSerializer, TaskSerializer,
)
from app.services import care_queries, contract_service
from app.services.timeline import contract_timeline
from app.utils import run_with_store_retry, utcnow

logger = logging.getLogger(__name__)


def _store_unavailable():
    return Response(
        {"detail": "The service is temporarily unavailable. Please try again."},
        status=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


class ContractListCreateView(APIView):
    """List visible contracts and record new ones."""

    def get(self, request):
        try:
            principal = get_principal(request)
        except MissingPrincipal as e:
            return unauthorized(e)

        query = ContractListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        queryset = care_queries.list_contracts(principal, status=params.get("status"))

        limit = min(params.get("limit", 50), 200)
        offset = params["offset"]
        queryset = queryset[offset:offset + limit]

        return Response(ContractSummarySerializer(queryset, many=True).data)

    def post(self, request):
        """Record a signed contract. Its care schedule is generated after commit."""
        try:
            principal = get_principal(request)
        except MissingPrincipal as e:
            return unauthorized(e)

        serializer = ContractCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            contract = run_with_store_retry(
                contract_service.create_contract, serializer.validated_data, principal,
            )
        except DatabaseError:
            logger.exception("Contract creation failed for %s", principal.id)
            return _store_unavailable()

        return Response(ContractSerializer(contract).data, status=status.HTTP_201_CREATED)


class ContractDetailView(APIView):
    """Contract detail, contact edits and status changes."""

    def get(self, request, contract_id):
        try:
            principal = get_principal(request)
        except MissingPrincipal as e:
            return unauthorized(e)

        contract = care_queries.visible_contract_or_none(contract_id, principal)
        if not contract:
            return not_found("Contract")
        return Response(ContractSerializer(contract).data)

    def patch(self, request, contract_id):
        try:
            principal = get_principal(request)
        except MissingPrincipal as e:
            return unauthorized(e)

        if not care_queries.visible_contract_or_none(contract_id, principal):
            return not_found("Contract")

        serializer = ContractUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        try:
            contract = run_with_store_retry(
                contract_service.edit_contract, contract_id, serializer.validated_data,
            )
        except CareDeskError as e:
            return error_response(e)
        except DatabaseError:
            logger.exception("Contract edit failed for %s", contract_id)
            return _store_unavailable()

        return Response(ContractSerializer(contract).data)


class ContractTimelineView(APIView):
    """Merged task + care log history for one contract."""

    def get(self, request, contract_id):
        try:
            principal = get_principal(request)
        except MissingPrincipal as e:
            return unauthorized(e)

        if not care_queries.visible_contract_or_none(contract_id, principal):
            return not_found("Contract")

        newest_first = request.query_params.get("order", "asc") == "desc"
        entries = contract_timeline(
            contract_id,
            newest_first=newest_first,
            now=utcnow(),
            tz=care_queries.principal_time_zone(principal),
        )
        return Response([entry.to_dict() for entry in entries])


class ContractCareLogsView(APIView):
    """Care logs of a contract (append-only)."""

    def get(self, request, contract_id):
        try:
            principal = get_principal(request)
        except MissingPrincipal as e:
            return unauthorized(e)

        if not care_queries.visible_contract_or_none(contract_id, principal):
            return not_found("Contract")
        logs = care_queries.list_care_logs(contract_id)
        return Response(CareLogSerializer(logs, many=True).data)

    def post(self, request, contract_id):
        try:
            principal = get_principal(request)
        except MissingPrincipal as e:
            return unauthorized(e)

        if not care_queries.visible_contract_or_none(contract_id, principal):
            return not_found("Contract")

        serializer = CareLogCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            log = run_with_store_retry(
                contract_service.record_care_log,
                contract_id,
                data["content"],
                outcome=data["outcome"],
                occurred_at=data.get("occurred_at"),
                author=principal,
                renewal_likely=data["renewal_likely"],
                referral_likely=data["referral_likely"],
            )
        except CareDeskError as e:
            return error_response(e)
        except DatabaseError:
            logger.exception("Care log write failed for contract %s", contract_id)
            return _store_unavailable()

        return Response(CareLogSerializer(log).data, status=status.HTTP_201_CREATED)


class ContractTasksView(APIView):
    """Manually insert a care task for a contract."""

    def post(self, request, contract_id):
        try:
            principal = get_principal(request)
        except MissingPrincipal as e:
            return unauthorized(e)

        if not care_queries.visible_contract_or_none(contract_id, principal):
            return not_found("Contract")

        serializer = AdHocTaskCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            task = run_with_store_retry(
                contract_service.create_ad_hoc_task, contract_id, data["due_date"], data["note"],
            )
        except CareDeskError as e:
            return error_response(e)
        except DatabaseError:
            logger.exception("Ad-hoc task creation failed for contract %s", contract_id)
            return _store_unavailable()

        context = {"tz": care_queries.principal_time_zone(principal)}
        return Response(TaskSerializer(task, context=context).data, status=status.HTTP_201_CREATED)


class SchedulePreviewView(APIView):
    """Upcoming manual stops before the next system care task."""

    def get(self, request, contract_id):
        try:
            principal = get_principal(request)
        except MissingPrincipal as e:
            return unauthorized(e)

        if not care_queries.visible_contract_or_none(contract_id, principal):
            return not_found("Contract")

        preview = care_queries.schedule_preview(contract_id)
        context = {"tz": care_queries.principal_time_zone(principal)}
        system_task = preview["system_task"]
        return Response({
            "manual_tasks": TaskSerializer(preview["manual_tasks"], many=True, context=context).data,
            "system_task": TaskSerializer(system_task, context=context).data if system_task else None,
        })
