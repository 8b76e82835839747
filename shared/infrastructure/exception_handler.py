"""DRF exception handler mapping domain errors to HTTP responses."""

from __future__ import annotations

import logging

from rest_framework import status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler as drf_exception_handler  # type: ignore

from shared.domain.exceptions import (
    ConflictError,
    DomainError,
    ImmutableError,
    NoOpenPeriodError,
    NotFoundError,
    PartialReversalError,
    RemoteFailure,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (PartialReversalError, status.HTTP_207_MULTI_STATUS),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ImmutableError, status.HTTP_409_CONFLICT),
    (NoOpenPeriodError, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (RemoteFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: DomainError) -> int:
    for error_class, http_status in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return http_status
    return status.HTTP_400_BAD_REQUEST


def domain_exception_handler(exc, context):
    """Render DomainError as ``{"code", "detail", "context"}``; defer the rest to DRF."""

    if isinstance(exc, DomainError):
        http_status = status_for(exc)
        view = context.get("view")
        logger.warning(
            f"{type(exc).__name__} in {type(view).__name__ if view else 'view'}: {exc.message}"
        )
        return Response(exc.to_dict(), status=http_status)
    return drf_exception_handler(exc, context)
