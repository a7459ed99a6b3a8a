"""Centralized error handling for the presentation layer."""

from typing import Final

from fastapi import Request, status
from fastapi.responses import HTMLResponse

from ..domain.exceptions import (
    DomainError,
    PermissionDeniedError,
    RecordNotFoundError,
    RelationNotFoundError,
    ValidationError,
)
from ..request_utils import is_htmx_request
from ..templating import templates

STATUS_CODES: Final[dict[type[DomainError], int]] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    RecordNotFoundError: status.HTTP_404_NOT_FOUND,
    RelationNotFoundError: status.HTTP_404_NOT_FOUND,
}


class ErrorFormatter:
    """Formats errors for consistent user experience."""

    @staticmethod
    def format_user_friendly_message(error: Exception) -> str:
        if isinstance(error, ValidationError):
            return str(error) or "Please check your input and try again."
        if isinstance(error, PermissionDeniedError):
            return "You are not allowed to do that."
        if isinstance(error, RecordNotFoundError | RelationNotFoundError):
            return str(error) or "The requested record does not exist."
        return "Something went wrong. Please try again."


def status_for(error: Exception) -> int:
    for cls in type(error).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def render_error_response(
    request: Request, message: str, status_code: int = 500
) -> HTMLResponse:
    """Full error page, or a small fragment when HTMX asked."""
    template = "fragments/error.html" if is_htmx_request(request) else "error.html"
    return templates.TemplateResponse(
        request,
        template,
        {"status_code": status_code, "message": message},
        status_code=status_code,
    )


def handle_domain_error(error: DomainError, request: Request) -> HTMLResponse:
    """Convert domain errors to an error page with the matching status."""
    return render_error_response(
        request,
        ErrorFormatter.format_user_friendly_message(error),
        status_code=status_for(error),
    )

