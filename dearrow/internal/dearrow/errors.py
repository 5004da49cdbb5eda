"""
Failure mapping for the DeArrow network boundary.

Every failure is logged once, tagged with the video it concerns, and turned
into the ``FetchError`` that all callers waiting on that video receive.
"""
import asyncio
from typing import Any

from aiohttp import ClientError
from pydantic import ValidationError

from dearrow.internal.dearrow.models import FetchError, FetchErrorKind
from dearrow.util.log import logger


def classify_failure(error: BaseException) -> FetchErrorKind:
    """Map an exception raised while fetching branding to its error kind."""
    if isinstance(error, FetchError):
        return error.kind
    # aiohttp's timeout errors are ClientErrors too; timeout wins
    if isinstance(error, asyncio.TimeoutError):
        return FetchErrorKind.TIMEOUT
    if isinstance(error, ClientError):
        return FetchErrorKind.NETWORK
    # json.JSONDecodeError and pydantic.ValidationError
    if isinstance(error, ValueError):
        return FetchErrorKind.MALFORMED_RESPONSE
    return FetchErrorKind.NETWORK


def branding_failure(
    error: BaseException,
    video_id: str,
    operation: str,
    message: str | None = None,
    kind: FetchErrorKind | None = None,
    **context: Any
) -> FetchError:
    """
    Log a failed branding lookup and build the error delivered to its waiters.

    Args:
        error: The caught exception
        video_id: Video whose lookup failed
        operation: What was being attempted (e.g., "HTTP request", "parse response")
        message: Message for the FetchError; defaults to the exception text
        kind: Force an error kind instead of classifying ``error``
        **context: Additional context to log (e.g., timeout=...)

    Example:
        try:
            data = await response.json(content_type=None)
        except ValueError as e:
            raise branding_failure(e, video_id, "parse response") from e
    """
    kind = kind or classify_failure(error)
    if isinstance(error, ValidationError):
        context["error_count"] = error.error_count()

    # Timeouts are expected while the service is under load
    log = logger.warning if kind is FetchErrorKind.TIMEOUT else logger.error
    log(
        f"DeArrow {operation} failed",
        video_id=video_id,
        kind=kind.value,
        error=str(error),
        error_type=type(error).__name__,
        **context
    )
    return FetchError(kind, message or str(error) or kind.value, identifier=video_id)
