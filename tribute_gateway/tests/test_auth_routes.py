"""
Unit Tests for Authentication Routes
====================================

Tests for tribute_gateway/auth/routes.py

Test Coverage:
--------------
1. Login/registration set the session cookie and never return the JWT
2. Validation failures stop before the CMS is contacted
3. Session check, logout and /me behavior
4. Password recovery
5. HTML form login redirects and cookie lifetimes
"""

import time

import jwt
from fastapi import status

SECONDS_PER_DAY = 24 * 60 * 60


def set_cookie_header(response) -> str:
    return response.headers.get("set-cookie", "")


# ============================================================================
# Login / Registration
# ============================================================================

def test_login_sets_cookie_and_hides_jwt(client, cms, auth_response):
    cms.on("POST", "/auth/local", json_body=auth_response)

    response = client.post("/api/auth", json={"identifier": "jane_doe", "password": "Secret123"})

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["user"]["username"] == "jane_doe"
    assert "cms-token-abc" not in response.text
    assert "jwt" not in body

    cookie = set_cookie_header(response)
    assert "jwt=cms-token-abc" in cookie
    assert "HttpOnly" in cookie
    assert f"Max-Age={7 * SECONDS_PER_DAY}" in cookie
    assert "SameSite=strict" in cookie
    assert "Path=/" in cookie
    assert "Secure" not in cookie

    assert cms.last_json() == {"identifier": "jane_doe", "password": "Secret123"}


def test_login_validation_makes_no_upstream_call(client, cms):
    response = client.post("/api/auth", json={"identifier": "jane_doe"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {
        "error": "Validation failed",
        "errors": {"password": ["Password is required"]},
    }
    assert cms.calls == []


def test_login_relays_upstream_error(client, cms):
    cms.on(
        "POST",
        "/auth/local",
        status_code=400,
        json_body={"data": None, "error": {"status": 400, "name": "ValidationError", "message": "Invalid identifier or password"}},
    )

    response = client.post("/api/auth", json={"identifier": "jane_doe", "password": "wrong"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid identifier or password"}
    assert "jwt=" not in set_cookie_header(response)


def test_register_short_password_makes_no_upstream_call(client, cms):
    response = client.post(
        "/api/auth/register",
        json={"username": "jane_doe", "email": "jane@tributestream.com", "password": "abc"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"]["password"] == ["Password must be at least 8 characters"]
    assert cms.calls == []


def test_register_sets_cookie(client, cms, auth_response):
    cms.on("POST", "/auth/local/register", json_body=auth_response)

    response = client.post(
        "/api/auth/register",
        json={"username": "jane_doe", "email": "jane@tributestream.com", "password": "Secret123"},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["user"]["email"] == "jane@tributestream.com"
    assert "jwt=cms-token-abc" in set_cookie_header(response)
    assert "cms-token-abc" not in response.text


# ============================================================================
# Session status
# ============================================================================

def test_check_without_cookie_is_local(client, cms):
    response = client.get("/api/auth/check")

    assert response.json() == {"authenticated": False, "user": None}
    assert cms.calls == []


def test_check_with_valid_cookie(client, cms, cms_user):
    cms.on("GET", "/users/me", json_body=cms_user)
    client.cookies.set("jwt", "cms-token-abc")

    response = client.post("/api/auth/check")

    assert response.json()["authenticated"] is True
    assert response.json()["user"]["id"] == "7"
    assert response.json()["user"]["name"] == "jane_doe"
    assert cms.last.headers["Authorization"] == "Bearer cms-token-abc"


def test_check_with_rejected_cookie_clears_it(client, cms):
    cms.on("GET", "/users/me", status_code=401, json_body={"error": {"status": 401, "message": "Invalid token"}})
    client.cookies.set("jwt", "stale-token")

    response = client.get("/api/auth/check")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"authenticated": False, "user": None}
    assert 'jwt=""' in set_cookie_header(response) or "Max-Age=0" in set_cookie_header(response)


def test_check_with_expired_jwt_skips_upstream(client, cms):
    expired = jwt.encode({"sub": "7", "exp": int(time.time()) - 60}, "cms-signing-key-used-only-in-tests-0123456789", algorithm="HS256")
    client.cookies.set("jwt", expired)

    response = client.get("/api/auth/check")

    assert response.json() == {"authenticated": False, "user": None}
    assert cms.calls == []


def test_logout_always_clears_cookie(client, cms):
    for method in (client.get, client.post):
        response = method("/api/auth/logout")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"success": True}
        assert "Max-Age=0" in set_cookie_header(response)

    assert cms.calls == []


def test_me_requires_token(client, cms):
    response = client.get("/api/auth/me")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Authentication required"}
    assert cms.calls == []


def test_me_accepts_bearer_header(client, cms, cms_user):
    cms.on("GET", "/users/me", json_body=cms_user)

    response = client.get("/api/auth/me", headers={"Authorization": "Bearer header-token"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["username"] == "jane_doe"
    assert response.headers["Cache-Control"].startswith("no-store")
    assert cms.last.headers["Authorization"] == "Bearer header-token"


def test_me_upstream_401_clears_cookie(client, cms):
    cms.on("GET", "/users/me", status_code=401, json_body={"error": {"status": 401, "message": "Invalid token"}})
    client.cookies.set("jwt", "stale-token")

    response = client.get("/api/auth/me")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Invalid token"}
    assert "Max-Age=0" in set_cookie_header(response)


# ============================================================================
# Password recovery
# ============================================================================

def test_forgot_password(client, cms):
    cms.on("POST", "/auth/forgot-password", json_body={"ok": True})

    response = client.post("/api/auth/forgot-password", json={"email": "jane@tributestream.com"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"ok": True}
    assert cms.last_json() == {"email": "jane@tributestream.com"}


def test_forgot_password_invalid_email(client, cms):
    response = client.post("/api/auth/forgot-password", json={"email": "nope"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["errors"] == {"email": ["Invalid email address"]}
    assert cms.calls == []


def test_reset_password_sets_cookie(client, cms, auth_response):
    cms.on("POST", "/auth/reset-password", json_body=auth_response)

    response = client.post(
        "/api/auth/reset-password",
        json={"password": "Secret123", "passwordConfirmation": "Secret123", "code": "reset-code"},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["success"] is True
    assert "jwt=cms-token-abc" in set_cookie_header(response)
    assert cms.last_json()["passwordConfirmation"] == "Secret123"


# ============================================================================
# HTML form login
# ============================================================================

def test_page_login_redirects_with_remember_me(client, cms, auth_response):
    cms.on("POST", "/auth/local", json_body=auth_response)

    response = client.post(
        "/login?redirectTo=/tributes/new",
        data={"email": "jane@tributestream.com", "password": "secret", "remember-me": "on"},
        follow_redirects=False,
    )

    assert response.status_code == status.HTTP_303_SEE_OTHER
    assert response.headers["location"] == "/tributes/new"
    cookie = set_cookie_header(response)
    assert "jwt=cms-token-abc" in cookie
    assert f"Max-Age={30 * SECONDS_PER_DAY}" in cookie
    assert cms.last_json() == {"identifier": "jane@tributestream.com", "password": "secret"}


def test_page_login_default_redirect_and_short_cookie(client, cms, auth_response):
    cms.on("POST", "/auth/local", json_body=auth_response)

    response = client.post(
        "/login?redirectTo=//evil.test",
        data={"email": "jane@tributestream.com", "password": "secret"},
        follow_redirects=False,
    )

    assert response.status_code == status.HTTP_303_SEE_OTHER
    assert response.headers["location"] == "/dashboard"
    assert f"Max-Age={SECONDS_PER_DAY}" in set_cookie_header(response)


def test_page_login_validation_errors(client, cms):
    response = client.post("/login", data={"email": "jane", "password": ""}, follow_redirects=False)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {
        "errors": {
            "email": "Please enter a valid email address",
            "password": "Password is required",
        },
        "email": "jane",
    }
    assert cms.calls == []


def test_page_login_upstream_failure(client, cms):
    cms.on(
        "POST",
        "/auth/local",
        status_code=400,
        json_body={"error": {"status": 400, "message": "Invalid identifier or password"}},
    )

    response = client.post(
        "/login",
        data={"email": "jane@tributestream.com", "password": "wrong-pass"},
        follow_redirects=False,
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {
        "errors": {"form": "Invalid identifier or password"},
        "email": "jane@tributestream.com",
    }
