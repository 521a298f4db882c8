"""
API error types and the DRF exception handler that renders them.

Every failure leaves the API as ``{"error": {"message": ..., "status": ...}}``.
"""

import logging

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


# ==============================================================================
# Error kinds
# ==============================================================================

class ReservationServiceError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Bad request"
    default_code = "bad_request"


class ValidationError(ReservationServiceError):
    default_detail = "Invalid request"
    default_code = "invalid"


class NoTableAvailable(ReservationServiceError):
    default_detail = "No available table for this party size"
    default_code = "no_table_available"


class TableConflict(ReservationServiceError):
    default_detail = "Table is already reserved for this time"
    default_code = "table_conflict"


class NotFound(ReservationServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"
    default_code = "not_found"


class InternalError(ReservationServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"
    default_code = "internal_error"


# ==============================================================================
# Rendering
# ==============================================================================

def error_payload(message, status_code):
    return {"error": {"message": message, "status": status_code}}


def flatten_detail(detail) -> str:
    """Collapse DRF's nested error detail into a single readable message."""
    if isinstance(detail, dict):
        if "detail" in detail:
            return flatten_detail(detail["detail"])
        parts = []
        for field, errors in detail.items():
            message = flatten_detail(errors)
            parts.append(message if field == "non_field_errors" else f"{field}: {message}")
        return "; ".join(parts)
    if isinstance(detail, (list, tuple)):
        return " ".join(flatten_detail(item) for item in detail)
    return str(detail)


def api_exception_handler(exc, context):
    """
    DRF ``EXCEPTION_HANDLER`` hook.

    Known errors keep their status code; anything DRF does not recognize is
    logged with its traceback and reported as a 500.
    """
    if isinstance(exc, Http404):
        exc = NotFound()

    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.error(
            f"Unhandled error in {view.__class__.__name__ if view else 'API'}: {exc}",
            exc_info=exc,
        )
        error = InternalError()
        return Response(
            error_payload(str(error.detail), error.status_code),
            status=error.status_code,
        )

    response.data = error_payload(flatten_detail(response.data), response.status_code)
    return response
