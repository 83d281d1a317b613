"""
Authentication state container.

One AuthStore per client. It keeps the current user plus loading/error flags
and delegates token persistence to an injected SessionStore, so the same
code runs against a cookie (server side) or memory (scripts, tests).
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..cms.api import AuthAPI
from ..cms.envelope import CmsError
from ..models import User
from .session import SessionStore, usable_token

logger = logging.getLogger(__name__)

DEFAULT_LOGIN_PATH = "/login"


class LoginRequired(Exception):
    """Raised by ``require_auth``; ``redirect_to`` is where to send the user."""

    def __init__(self, redirect_to: str = DEFAULT_LOGIN_PATH):
        super().__init__(f"Authentication required, redirect to {redirect_to}")
        self.redirect_to = redirect_to


@dataclass
class AuthState:
    user: Optional[User] = None
    loading: bool = False
    error: Optional[str] = None


class AuthStore:
    """
    Explicit actions over AuthState.

    Every action that talks to the CMS toggles ``loading``, resets ``error``
    on entry and records the failure message before re-raising.
    """

    def __init__(self, api: AuthAPI, session: SessionStore):
        self.api = api
        self.session = session
        self.state = AuthState()

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def token(self) -> Optional[str]:
        return self.session.get()

    @property
    def current_user(self) -> Optional[User]:
        return self.state.user

    @property
    def is_authenticated(self) -> bool:
        return self.state.user is not None and bool(self.token)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def initialize(self) -> Optional[User]:
        """
        Restore the user from a stored token.

        An expired or rejected token is cleared and the store stays logged out.
        """
        token = usable_token(self.session.get())
        if not token:
            if self.session.get():
                self.session.clear()
            return None

        try:
            return await self.fetch_current_user()
        except CmsError:
            self.session.clear()
            self.state.user = None
            return None

    async def fetch_current_user(self) -> User:
        token = self.session.get()
        if not token:
            self.state.error = "Not authenticated"
            raise LoginRequired()

        self._begin()
        try:
            user = await self.api.get_current_user(token)
        except CmsError as e:
            self.state.error = e.message or "Failed to load user"
            raise
        finally:
            self.state.loading = False

        self.state.user = user
        return user

    async def login(self, identifier: str, password: str, max_age: Optional[int] = None) -> User:
        self._begin()
        try:
            result = await self.api.login(identifier, password)
        except CmsError as e:
            self.state.error = e.message or "Login failed"
            logger.info("Login rejected", extra={"status_code": e.status})
            raise
        finally:
            self.state.loading = False

        self.session.set(result.jwt, max_age)
        self.state.user = result.user
        return result.user

    async def register(self, username: str, email: str, password: str, max_age: Optional[int] = None) -> User:
        self._begin()
        try:
            result = await self.api.register(username, email, password)
        except CmsError as e:
            self.state.error = e.message or "Registration failed"
            raise
        finally:
            self.state.loading = False

        self.session.set(result.jwt, max_age)
        self.state.user = result.user
        return result.user

    def logout(self) -> None:
        self.session.clear()
        self.state = AuthState()

    def require_auth(self, redirect_to: str = DEFAULT_LOGIN_PATH) -> User:
        """
        Return the current user.

        Raises:
            LoginRequired: When nobody is logged in
        """
        if not self.is_authenticated:
            raise LoginRequired(redirect_to)
        return self.state.user

    def _begin(self) -> None:
        self.state.loading = True
        self.state.error = None
