"""
Unit Tests for Form Validation
==============================

Tests for tribute_gateway/forms.py
"""

import pytest

from tribute_gateway.forms import (
    FormValidationError,
    FuneralHomeFilter,
    FuneralHomeForm,
    FuneralHomeUpdateForm,
    LoginForm,
    PageLoginForm,
    RegisterForm,
    ResetPasswordForm,
    TributeFilter,
    TributeForm,
    parse_form,
    validate_form,
)


def test_login_requires_both_fields():
    form, errors = validate_form(LoginForm, {})

    assert form is None
    assert errors == {
        "identifier": ["Email or username is required"],
        "password": ["Password is required"],
    }


def test_login_rejects_empty_strings():
    _, errors = validate_form(LoginForm, {"identifier": "", "password": "x"})
    assert errors == {"identifier": ["Email or username is required"]}


def test_register_short_password():
    _, errors = validate_form(
        RegisterForm,
        {"username": "jane_doe", "email": "jane@tributestream.com", "password": "abc"},
    )
    assert errors == {"password": ["Password must be at least 8 characters"]}


@pytest.mark.parametrize(
    "password, message",
    [
        ("secret123", "Password must contain at least one uppercase letter"),
        ("SECRET123", "Password must contain at least one lowercase letter"),
        ("SecretPass", "Password must contain at least one number"),
    ],
)
def test_register_password_rules(password, message):
    _, errors = validate_form(
        RegisterForm,
        {"username": "jane_doe", "email": "jane@tributestream.com", "password": password},
    )
    assert errors["password"] == [message]


def test_register_username_and_email_rules():
    _, errors = validate_form(
        RegisterForm,
        {"username": "jane doe!", "email": "not-an-email", "password": "Secret123"},
    )

    assert errors["username"] == ["Username can only contain letters, numbers, and underscores"]
    assert errors["email"] == ["Invalid email address"]


def test_register_valid():
    form, errors = validate_form(
        RegisterForm,
        {"username": "jane_doe", "email": "jane@tributestream.com", "password": "Secret123"},
    )
    assert errors == {}
    assert form.username == "jane_doe"


def test_reset_password_confirmation_must_match():
    _, errors = validate_form(
        ResetPasswordForm,
        {"password": "Secret123", "passwordConfirmation": "Secret124", "code": "abc"},
    )
    assert errors == {"passwordConfirmation": ["Passwords don't match"]}


def test_page_login_form():
    form, errors = validate_form(
        PageLoginForm,
        {"email": "jane@tributestream.com", "password": "secret", "remember-me": "on"},
    )
    assert errors == {}
    assert form.remember_me is True

    _, errors = validate_form(PageLoginForm, {"email": "jane", "password": "abc"})
    assert errors == {
        "email": ["Please enter a valid email address"],
        "password": ["Password must be at least 6 characters"],
    }


def test_funeral_home_formats():
    _, errors = validate_form(
        FuneralHomeForm,
        {"name": "Acme", "address": "1 Main St", "state": "Texas", "zipCode": "123", "phoneNumber": "555"},
    )
    assert errors == {
        "state": ["Please use two-letter state code"],
        "zipCode": ["Invalid zip code format"],
        "phoneNumber": ["Invalid phone number format"],
    }


@pytest.mark.parametrize("phone", ["(555) 555-5555", "555-555-5555", "5555555555"])
def test_funeral_home_phone_formats(phone):
    form, errors = validate_form(FuneralHomeForm, {"name": "Acme", "address": "1 Main St", "phoneNumber": phone})
    assert errors == {}
    assert form.phoneNumber == phone


def test_funeral_home_update_is_partial():
    form = parse_form(FuneralHomeUpdateForm, {"city": "Austin"})
    assert form.model_dump(exclude_unset=True) == {"city": "Austin"}


def test_tribute_slug_and_status():
    _, errors = validate_form(TributeForm, {"name": "John", "slug": "John Smith", "status": "hidden"})

    assert errors["slug"] == ["Slug must contain only lowercase letters, numbers, and hyphens"]
    assert "status" in errors


def test_parse_form_raises_with_field_errors():
    with pytest.raises(FormValidationError) as exc_info:
        parse_form(TributeForm, {"slug": "john-smith"})

    assert exc_info.value.errors == {"name": ["Name is required"]}
    assert exc_info.value.message == "Validation failed"


def test_filter_shortcuts():
    filters = FuneralHomeFilter(city="Austin", state="TX").to_filters()
    assert filters == {"city": {"$eq": "Austin"}, "state": {"$eq": "TX"}}


def test_relation_shortcut_matches_related_id():
    filters = parse_form(TributeFilter, {"owner": "5", "status": "published"}).to_filters()
    assert filters == {"owner": {"id": {"$eq": 5}}, "status": {"$eq": "published"}}
