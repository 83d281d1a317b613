"""
Envelope translation for CMS responses.

Turns the CMS ``{data, meta}`` / ``{error}`` JSON wrapper into either a
ResourceEnvelope or a raised CmsError carrying the best-effort status.
"""

from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..models import ErrorBody, ErrorEnvelope, ResourceEnvelope

DEFAULT_ERROR_MESSAGE = "An unknown error occurred"
NETWORK_ERROR_STATUS = 500
NETWORK_ERROR_MESSAGE = "Failed to connect to API"
BAD_GATEWAY_STATUS = 502


class CmsError(Exception):
    """
    Failure reported by (or while reaching) the CMS.

    Attributes:
        status: HTTP status to relay to the caller
        message: Human-readable message
        name: Error class name from the CMS, or NetworkError
        details: Optional structured details from the CMS
    """

    def __init__(
        self,
        status: int,
        message: str,
        name: str = "ApiError",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status = status
        self.message = message
        self.name = name
        self.details = details

    def __repr__(self) -> str:
        return f"CmsError(status={self.status}, name={self.name!r}, message={self.message!r})"


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def _error_body(status_code: int, body: Any) -> ErrorBody:
    raw = body.get("error") if isinstance(body, dict) else None
    if not isinstance(raw, dict):
        raw = {}

    try:
        return ErrorEnvelope.model_validate({
            "error": {
                "status": raw.get("status") or status_code,
                "name": raw.get("name") or "ApiError",
                "message": raw.get("message") or DEFAULT_ERROR_MESSAGE,
                "details": raw.get("details") or None,
            },
        }).error
    except ValidationError:
        message = raw.get("message")
        return ErrorBody(
            status=status_code,
            message=message if isinstance(message, str) and message else DEFAULT_ERROR_MESSAGE,
        )


def error_from_response(status_code: int, body: Any) -> CmsError:
    """
    Build a CmsError from a non-2xx response.

    ``error.status`` / ``error.message`` win when the body carries them;
    otherwise the HTTP status and a generic message are used.
    """
    error = _error_body(status_code, body)
    return CmsError(
        status=error.status,
        message=error.message,
        name=error.name,
        details=error.details,
    )


def network_error(exc: Optional[BaseException] = None) -> CmsError:
    """CmsError used when no response was received at all."""
    return CmsError(
        status=NETWORK_ERROR_STATUS,
        message=NETWORK_ERROR_MESSAGE,
        name="NetworkError",
        details={"reason": type(exc).__name__} if exc is not None else None,
    )


def unwrap_envelope(status_code: int, body: Any) -> ResourceEnvelope:
    """
    Normalize a CMS response.

    Args:
        status_code: HTTP status of the response
        body: Parsed JSON body (or text when not JSON)

    Returns:
        ResourceEnvelope whose ``data`` is the envelope's data, or the whole
        body when the response is not wrapped (e.g. ``/auth/local``)

    Raises:
        CmsError: On any non-2xx status, or 502 when ``meta`` is malformed
    """
    if not is_success(status_code):
        raise error_from_response(status_code, body)

    if not (isinstance(body, dict) and "data" in body):
        return ResourceEnvelope(data=body)

    try:
        return ResourceEnvelope(data=body["data"], meta=body.get("meta"))
    except ValidationError as e:
        raise CmsError(
            status=BAD_GATEWAY_STATUS,
            message="Unexpected response metadata from CMS",
            name="BadGateway",
            details={"fields": [".".join(str(part) for part in err["loc"]) for err in e.errors()]},
        ) from e
