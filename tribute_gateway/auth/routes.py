"""
Authentication routes.

The browser never sees the CMS token: login, registration and password reset
store it in the httpOnly session cookie and answer with the user only.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse, RedirectResponse

from ..cms.api import AuthAPI
from ..cms.envelope import CmsError
from ..config import Settings
from ..dependencies import get_app_settings, get_auth_api
from ..forms import (
    ForgotPasswordForm,
    LoginForm,
    PageLoginForm,
    RegisterForm,
    ResetPasswordForm,
    parse_form,
    validate_form,
)
from ..models import SessionUser
from .session import CookieSessionStore, get_session_store, require_token
from .store import AuthStore

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}
DEFAULT_REDIRECT = "/dashboard"
LOGIN_FAILED_MESSAGE = "Invalid credentials. Please try again."


# =============================================================================
# Router Setup
# =============================================================================

auth_router = APIRouter(
    prefix="/api/auth",
    tags=["authentication"],
)

login_router = APIRouter(tags=["authentication"])


def get_auth_store(
    api: AuthAPI = Depends(get_auth_api),
    session: CookieSessionStore = Depends(get_session_store),
) -> AuthStore:
    return AuthStore(api, session)


def _user_payload(user: Any) -> Dict[str, Any]:
    return {"user": user.model_dump(exclude_none=True), "success": True}


# =============================================================================
# Login / Registration
# =============================================================================

@auth_router.post("")
async def login(
    payload: Optional[Dict[str, Any]] = Body(None),
    store: AuthStore = Depends(get_auth_store),
    settings: Settings = Depends(get_app_settings),
):
    """
    Log in against the CMS and store the token in the session cookie.

    Body: ``{"identifier": ..., "password": ...}``
    """
    form = parse_form(LoginForm, payload or {})
    user = await store.login(form.identifier, form.password, settings.session_cookie_max_age)
    logger.info("User logged in", extra={"user_id": user.id})
    return _user_payload(user)


@auth_router.post("/register")
async def register(
    payload: Optional[Dict[str, Any]] = Body(None),
    store: AuthStore = Depends(get_auth_store),
    settings: Settings = Depends(get_app_settings),
):
    form = parse_form(RegisterForm, payload or {})
    user = await store.register(form.username, form.email, form.password, settings.session_cookie_max_age)
    logger.info("User registered", extra={"user_id": user.id})
    return _user_payload(user)


# =============================================================================
# Session status
# =============================================================================

@auth_router.api_route("/check", methods=["GET", "POST"])
async def check(store: AuthStore = Depends(get_auth_store)):
    """
    Report whether the session cookie belongs to a logged-in user.

    Never fails: any problem reads as "not authenticated" and drops the cookie.
    """
    user = await store.initialize()
    if user is None:
        return {"authenticated": False, "user": None}
    return {"authenticated": True, "user": SessionUser.from_user(user).model_dump(exclude_none=True)}


@auth_router.api_route("/logout", methods=["GET", "POST"])
async def logout(store: AuthStore = Depends(get_auth_store)):
    store.logout()
    return {"success": True}


@auth_router.get("/me")
async def me(
    response: Response,
    token: str = Depends(require_token),
    api: AuthAPI = Depends(get_auth_api),
):
    user = await api.get_current_user(token)
    response.headers.update(NO_CACHE_HEADERS)
    return user.model_dump(exclude_none=True)


# =============================================================================
# Password recovery
# =============================================================================

@auth_router.post("/forgot-password")
async def forgot_password(
    response: Response,
    payload: Optional[Dict[str, Any]] = Body(None),
    api: AuthAPI = Depends(get_auth_api),
):
    form = parse_form(ForgotPasswordForm, payload or {})
    result = await api.forgot_password(form.email)
    response.headers.update(NO_CACHE_HEADERS)
    return result


@auth_router.post("/reset-password")
async def reset_password(
    response: Response,
    payload: Optional[Dict[str, Any]] = Body(None),
    api: AuthAPI = Depends(get_auth_api),
    session: CookieSessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
):
    form = parse_form(ResetPasswordForm, payload or {})
    result = await api.reset_password(form.password, form.passwordConfirmation, form.code)
    session.set(result.jwt, settings.session_cookie_max_age)
    response.headers.update(NO_CACHE_HEADERS)
    return _user_payload(result.user)


# =============================================================================
# HTML form login
# =============================================================================

def _safe_redirect(target: Optional[str]) -> str:
    """Only same-site absolute paths are followed."""
    if not target or not target.startswith("/") or target.startswith("//"):
        return DEFAULT_REDIRECT
    return target


@login_router.post("/login")
async def page_login(
    request: Request,
    redirect_to: Optional[str] = Query(None, alias="redirectTo"),
    api: AuthAPI = Depends(get_auth_api),
    settings: Settings = Depends(get_app_settings),
):
    """
    Login form submission.

    Success: 303 to ``redirectTo`` (default /dashboard) with the session
    cookie set; 30 days with "remember me", 1 day otherwise.
    Failure: ``{"errors": {field: message}, "email": ...}``.
    """
    data = await request.form()
    fields = {key: value for key, value in data.items() if isinstance(value, str)}
    email = fields.get("email", "")

    form, errors = validate_form(PageLoginForm, fields)
    if form is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "errors": {field: messages[0] for field, messages in errors.items()},
                "email": email,
            },
        )

    redirect = RedirectResponse(url=_safe_redirect(redirect_to), status_code=status.HTTP_303_SEE_OTHER)
    store = AuthStore(api, CookieSessionStore(request, redirect, settings))
    max_age = settings.remember_me_max_age if form.remember_me else settings.login_max_age

    try:
        await store.login(form.email, form.password, max_age)
    except CmsError as e:
        logger.warning("Form login failed", extra={"status_code": e.status})
        return JSONResponse(
            status_code=e.status or status.HTTP_400_BAD_REQUEST,
            content={"errors": {"form": e.message or LOGIN_FAILED_MESSAGE}, "email": email},
        )

    return redirect


__all__ = ["auth_router", "login_router", "get_auth_store"]
