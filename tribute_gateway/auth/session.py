"""
Session Credential Module
=========================

Locates, stores and clears the CMS bearer token for a request.

The token itself is issued and verified by the CMS. The gateway only carries
it: in the httpOnly session cookie for browsers, or in an
``Authorization: Bearer`` header for API callers. The only local check is an
unverified peek at the ``exp`` claim so obviously expired JWTs are dropped
without a round trip.
"""

import logging
import time
from typing import Optional, Protocol

import jwt
from fastapi import Depends, HTTPException, Request, Response, status
from jwt.exceptions import InvalidTokenError

from ..config import Settings
from ..dependencies import get_app_settings

logger = logging.getLogger(__name__)

AUTH_REQUIRED_MESSAGE = "Authentication required"


# =============================================================================
# Token helpers
# =============================================================================

def extract_token_from_header(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header.

    Returns None for a missing or malformed header; authentication is then
    decided by whoever demands a token.
    """
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]


def token_is_expired(token: str, now: Optional[float] = None) -> bool:
    """
    True when ``token`` is a decodable JWT whose ``exp`` lies in the past.

    The signature is not verified (the CMS owns the key). Opaque tokens and
    JWTs without ``exp`` are never considered expired.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except InvalidTokenError:
        return False

    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return False

    return exp <= (time.time() if now is None else now)


def usable_token(token: Optional[str]) -> Optional[str]:
    """Return ``token`` unless it is empty or a known-expired JWT."""
    if not token:
        return None
    if token_is_expired(token):
        logger.debug("Dropping expired session token")
        return None
    return token


# =============================================================================
# Session stores
# =============================================================================

class SessionStore(Protocol):
    """Where the bearer token lives between calls."""

    def get(self) -> Optional[str]:
        ...

    def set(self, token: str, max_age: Optional[int] = None) -> None:
        ...

    def clear(self) -> None:
        ...


class MemorySessionStore:
    """Process-local store for client-side use (one instance per client)."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str, max_age: Optional[int] = None) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


def set_session_cookie(response: Response, token: str, settings: Settings, max_age: Optional[int] = None) -> None:
    """
    Write the session cookie.

    httpOnly, SameSite=Strict, path ``/``; Secure in production.
    """
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.session_cookie_max_age if max_age is None else max_age,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
    )


class CookieSessionStore:
    """
    Request-scoped store backed by the session cookie.

    Reads come from the incoming request; writes go to the outgoing response.
    """

    def __init__(self, request: Request, response: Response, settings: Settings):
        self.request = request
        self.response = response
        self.settings = settings
        self._token = request.cookies.get(settings.SESSION_COOKIE_NAME)

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str, max_age: Optional[int] = None) -> None:
        self._token = token
        set_session_cookie(self.response, token, self.settings, max_age)

    def clear(self) -> None:
        self._token = None
        clear_session_cookie(self.response, self.settings)


# =============================================================================
# Token resolution
# =============================================================================

def resolve_token(
    request: Request,
    settings: Settings,
    explicit: Optional[str] = None,
) -> Optional[str]:
    """
    Find the bearer token for ``request``.

    Order: session cookie, then ``Authorization`` header, then ``explicit``.
    Expired JWTs are skipped.
    """
    candidates = (
        request.cookies.get(settings.SESSION_COOKIE_NAME),
        extract_token_from_header(request.headers.get("authorization")),
        explicit,
    )
    for candidate in candidates:
        token = usable_token(candidate)
        if token:
            return token
    return None


# =============================================================================
# FastAPI Dependencies
# =============================================================================

async def optional_token(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> Optional[str]:
    """Token if the caller has one; public reads forward it when present."""
    return resolve_token(request, settings)


async def require_token(token: Optional[str] = Depends(optional_token)) -> str:
    """
    Token or 401.

    Raised before any upstream call is made.
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=AUTH_REQUIRED_MESSAGE,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


def get_session_store(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
) -> CookieSessionStore:
    return CookieSessionStore(request, response, settings)
