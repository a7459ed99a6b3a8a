"""Utilities for handling FastAPI requests."""

from fastapi import Request


def is_htmx_request(request: Request) -> bool:
    """Check if request is an HTMX request.

    Args:
        request: FastAPI request object

    Returns:
        True if request contains HX-Request header, False otherwise
    """
    return "HX-Request" in request.headers


def get_current_user(request: Request) -> str | None:
    """Return the user name sent in the ``user`` cookie, if any.

    User identification is a plain string, as in the rest of the panel.
    """
    user = request.cookies.get("user")
    if user:
        user = user.strip()
    return user or None


def get_list_param(request: Request, name: str) -> list[str]:
    """Collect a repeated query parameter such as ``ids[]``."""
    return [value for value in request.query_params.getlist(name) if value != ""]
