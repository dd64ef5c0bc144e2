import time
from typing import Any, Dict, Mapping, Type, TypeVar

import structlog
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from rest_framework import serializers, status
from rest_framework.response import Response

from modules.core.exceptions import (
    DomainError,
    Forbidden,
    NotFound,
    TransactionConflict,
)

logger = structlog.get_logger(__name__)

D = TypeVar("D", bound=BaseModel)


def build_dto(dto_class: Type[D], data: Mapping[str, Any]) -> D:
    """Build a service DTO from serializer output.

    Raises:
        serializers.ValidationError: the DTO rejected the payload (HTTP 400).
    """
    try:
        return dto_class.model_validate(dict(data))
    except PydanticValidationError as exc:
        raise serializers.ValidationError(
            {"detail": [error["msg"] for error in exc.errors()]}
        ) from exc


def domain_error_response(exc: DomainError | TransactionConflict) -> Response:
    """Translate a service-layer error into an HTTP response."""
    if isinstance(exc, TransactionConflict):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, NotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, Forbidden):
        code = status.HTTP_403_FORBIDDEN
    else:
        code = status.HTTP_400_BAD_REQUEST
    logger.info("api.domain_error", error=type(exc).__name__, status_code=code)
    return Response({"detail": str(exc)}, status=code)


def health_check(request: HttpRequest) -> JsonResponse:
    services: Dict[str, Dict[str, Any]] = {}
    overall_healthy = True

    try:
        start = time.monotonic()
        conn = connections["default"]
        conn.ensure_connection()
        with conn.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        services["database"] = {
            "status": "up",
            "response_time_ms": round((time.monotonic() - start) * 1000, 2),
        }
    except Exception:
        services["database"] = {"status": "down"}
        overall_healthy = False
        logger.error("health_check.database_down")

    status_code = 200 if overall_healthy else 503
    logger.info(
        "health_check.completed", status="healthy" if overall_healthy else "unhealthy"
    )

    return JsonResponse(
        {
            "status": "healthy" if overall_healthy else "unhealthy",
            "timestamp": timezone.now().isoformat(),
            "services": services,
        },
        status=status_code,
    )
