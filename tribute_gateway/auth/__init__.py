"""
Authentication Package

This package carries the CMS bearer token for the gateway and exposes the
authentication routes.

Key responsibilities:
- Locating the token (session cookie, Authorization header)
- Storing/clearing it in the httpOnly session cookie
- Login, registration, session check, logout and password recovery routes
- The AuthStore state container used by the routes and by client code

Modules:
- routes: /api/auth/* endpoints and the /login form handler
- session: token lookup, session stores and FastAPI dependencies
- store: AuthState / AuthStore

The authentication flow:
1. Client posts credentials to /api/auth
2. Gateway forwards them to the CMS (/auth/local)
3. The returned JWT goes into the session cookie; the body carries the user
4. Subsequent /api/* requests forward the cookie's token as a Bearer header
"""

from .routes import auth_router, login_router
from .session import MemorySessionStore, SessionStore
from .store import AuthStore, LoginRequired

__all__ = [
    "auth_router",
    "login_router",
    "AuthStore",
    "LoginRequired",
    "MemorySessionStore",
    "SessionStore",
]
