"""
Principal resolution and shared error responses for the API views.

The auth collaborator sits in front of this service and forwards the signed-in
user as headers; we only read them.
"""
from zoneinfo import ZoneInfoNotFoundError

from rest_framework import status
from rest_framework.response import Response

from app.exceptions import CareDeskError
from app.principal import Principal
from app.utils import care_time_zone

PRINCIPAL_HEADERS = {
    "id": "HTTP_X_PRINCIPAL_ID",
    "role": "HTTP_X_PRINCIPAL_ROLE",
    "team_id": "HTTP_X_TEAM_ID",
    "name": "HTTP_X_PRINCIPAL_NAME",
    "time_zone": "HTTP_X_TIME_ZONE",
}


class MissingPrincipal(Exception):
    pass


def get_principal(request) -> Principal:
    meta = request.META
    principal_id = meta.get(PRINCIPAL_HEADERS["id"], "").strip()
    role = meta.get(PRINCIPAL_HEADERS["role"], "").strip()
    if not principal_id or not role:
        raise MissingPrincipal("X-Principal-Id and X-Principal-Role headers are required")
    time_zone = meta.get(PRINCIPAL_HEADERS["time_zone"], "").strip() or None
    try:
        if time_zone:
            care_time_zone(time_zone)
        return Principal(
            id=principal_id,
            role=role,
            team_id=meta.get(PRINCIPAL_HEADERS["team_id"], "").strip(),
            name=meta.get(PRINCIPAL_HEADERS["name"], "").strip(),
            time_zone=time_zone,
        )
    except (ValueError, ZoneInfoNotFoundError) as e:
        raise MissingPrincipal(str(e))


def unauthorized(exc: MissingPrincipal) -> Response:
    return Response({"detail": str(exc)}, status=status.HTTP_401_UNAUTHORIZED)


def error_response(exc: CareDeskError) -> Response:
    return Response({"detail": exc.message}, status=exc.status_code)


def not_found(what: str) -> Response:
    return Response({"detail": f"{what} not found"}, status=status.HTTP_404_NOT_FOUND)
