"""
Form validation schemas.

Every inbound payload is checked here before the CMS is contacted. A failed
check produces a field -> messages mapping and the request stops at 400.
"""

import re
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from .models import TributeStatus

F = TypeVar("F", bound="FormModel")

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
ZIP_CODE_RE = re.compile(r"^\d{5}(-\d{4})?$")
PHONE_RE = re.compile(r"^\(\d{3}\) \d{3}-\d{4}$|^\d{3}-\d{3}-\d{4}$|^\d{10}$")
SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
SIMPLE_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class FormValidationError(Exception):
    """Raised when a payload fails its form schema; carries per-field messages."""

    def __init__(self, errors: Dict[str, List[str]], message: str = "Validation failed"):
        super().__init__(message)
        self.message = message
        self.errors = errors


class FormModel(BaseModel):
    """Base for form schemas; ``required_messages`` customizes missing-field errors."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=False)

    required_messages: ClassVar[Dict[str, str]] = {}


# ============================================================================
# Shared checks
# ============================================================================

def _require(value: str, message: str) -> str:
    if not value:
        raise ValueError(message)
    return value


def _check_email(value: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise ValueError("Invalid email address")
    return value


def _check_password(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not re.search(r"[A-Z]", value):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", value):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", value):
        raise ValueError("Password must contain at least one number")
    return value


# ============================================================================
# Auth forms
# ============================================================================

class LoginForm(FormModel):
    required_messages: ClassVar[Dict[str, str]] = {
        "identifier": "Email or username is required",
        "password": "Password is required",
    }

    identifier: str
    password: str

    @field_validator("identifier")
    @classmethod
    def identifier_present(cls, v: str) -> str:
        return _require(v, "Email or username is required")

    @field_validator("password")
    @classmethod
    def password_present(cls, v: str) -> str:
        return _require(v, "Password is required")


class RegisterForm(FormModel):
    required_messages: ClassVar[Dict[str, str]] = {
        "username": "Username is required",
        "email": "Email is required",
        "password": "Password is required",
    }

    username: str
    email: str
    password: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters")
        if len(v) > 50:
            raise ValueError("Username must be less than 50 characters")
        if not USERNAME_RE.match(v):
            raise ValueError("Username can only contain letters, numbers, and underscores")
        return v

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)


class ForgotPasswordForm(FormModel):
    required_messages: ClassVar[Dict[str, str]] = {"email": "Email is required"}

    email: str

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v: str) -> str:
        return _check_email(v)


class ResetPasswordForm(FormModel):
    required_messages: ClassVar[Dict[str, str]] = {
        "password": "Password is required",
        "passwordConfirmation": "Password confirmation is required",
        "code": "Reset code is required",
    }

    password: str
    passwordConfirmation: str
    code: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("passwordConfirmation")
    @classmethod
    def passwords_match(cls, v: str, info: ValidationInfo) -> str:
        password = info.data.get("password")
        if password is not None and v != password:
            raise ValueError("Passwords don't match")
        return v


class PageLoginForm(FormModel):
    """HTML login form (email + password + remember-me checkbox)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    required_messages: ClassVar[Dict[str, str]] = {
        "email": "Email is required",
        "password": "Password is required",
    }

    email: str
    password: str
    remember_me: bool = Field(False, alias="remember-me")

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v: str) -> str:
        _require(v, "Email is required")
        if not SIMPLE_EMAIL_RE.match(v):
            raise ValueError("Please enter a valid email address")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        _require(v, "Password is required")
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v

    @field_validator("remember_me", mode="before")
    @classmethod
    def checkbox(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.lower() in ("on", "true", "1", "yes")
        return v


# ============================================================================
# Content forms
# ============================================================================

class _FuneralHomeRules(FormModel):
    @field_validator("name", check_fields=False)
    @classmethod
    def name_present(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _require(v, "Funeral home name is required")

    @field_validator("address", check_fields=False)
    @classmethod
    def address_present(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _require(v, "Address is required")

    @field_validator("state", check_fields=False)
    @classmethod
    def two_letter_state(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > 2:
            raise ValueError("Please use two-letter state code")
        return v

    @field_validator("zipCode", check_fields=False)
    @classmethod
    def zip_code_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not ZIP_CODE_RE.match(v):
            raise ValueError("Invalid zip code format")
        return v

    @field_validator("phoneNumber", check_fields=False)
    @classmethod
    def phone_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not PHONE_RE.match(v):
            raise ValueError("Invalid phone number format")
        return v


class FuneralHomeForm(_FuneralHomeRules):
    required_messages: ClassVar[Dict[str, str]] = {
        "name": "Name is required",
        "address": "Address is required",
    }

    name: str
    address: str
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    phoneNumber: Optional[str] = None
    directors: Optional[List[int]] = None


class FuneralHomeUpdateForm(_FuneralHomeRules):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    phoneNumber: Optional[str] = None
    directors: Optional[List[int]] = None


class _TributeRules(FormModel):
    @field_validator("name", check_fields=False)
    @classmethod
    def name_present(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _require(v, "Tribute name is required")

    @field_validator("slug", check_fields=False)
    @classmethod
    def slug_format(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        _require(v, "Slug is required")
        if not SLUG_RE.match(v):
            raise ValueError("Slug must contain only lowercase letters, numbers, and hyphens")
        return v


class TributeForm(_TributeRules):
    required_messages: ClassVar[Dict[str, str]] = {
        "name": "Name is required",
        "slug": "Slug is required",
    }

    name: str
    slug: str
    description: Optional[str] = None
    status: Optional[TributeStatus] = None
    owner: Optional[int] = None


class TributeUpdateForm(_TributeRules):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TributeStatus] = None
    owner: Optional[int] = None


class UploadForm(FormModel):
    """Non-file fields of a multipart upload."""
    refId: Optional[str] = None
    ref: Optional[str] = None
    field: Optional[str] = None
    path: Optional[str] = None


# ============================================================================
# Filter shortcuts (?name=...&city=... on list routes)
# ============================================================================

class _FilterForm(FormModel):
    # Shortcuts naming a relation; the CMS matches those on the related id.
    relation_fields: ClassVar[Tuple[str, ...]] = ()

    def to_filters(self) -> Dict[str, Any]:
        """``{field: {"$eq": value}}`` per shortcut; relations match ``{field: {"id": {"$eq": value}}}``."""
        filters: Dict[str, Any] = {}
        for name, value in self.model_dump(exclude_none=True).items():
            if name in self.relation_fields:
                filters[name] = {"id": {"$eq": value}}
            else:
                filters[name] = {"$eq": value}
        return filters


class FuneralHomeFilter(_FilterForm):
    name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None


class TributeFilter(_FilterForm):
    relation_fields = ("owner",)

    name: Optional[str] = None
    slug: Optional[str] = None
    status: Optional[TributeStatus] = None
    owner: Optional[int] = None


# ============================================================================
# Validation entry points
# ============================================================================

def field_errors(exc: ValidationError, schema: Optional[Type[FormModel]] = None) -> Dict[str, List[str]]:
    """
    Convert a pydantic ValidationError into ``{field: [messages]}``.

    Missing fields use the schema's ``required_messages`` when available.
    """
    required = schema.required_messages if schema is not None else {}
    errors: Dict[str, List[str]] = {}

    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field = loc[0] if loc else "form"

        if err.get("type") == "missing":
            message = required.get(field, f"{field} is required")
        else:
            message = err.get("msg", "Invalid value")
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]

        errors.setdefault(field, []).append(message)

    return errors


def validate_form(schema: Type[F], data: Mapping[str, Any]) -> Tuple[Optional[F], Dict[str, List[str]]]:
    """
    Validate ``data`` against ``schema`` without raising.

    Returns:
        ``(form, {})`` on success, ``(None, errors)`` on failure
    """
    try:
        return schema.model_validate(dict(data)), {}
    except ValidationError as e:
        return None, field_errors(e, schema)


def parse_form(schema: Type[F], data: Mapping[str, Any]) -> F:
    """
    Validate ``data`` against ``schema``.

    Raises:
        FormValidationError: With the field -> messages mapping
    """
    form, errors = validate_form(schema, data)
    if form is None:
        raise FormValidationError(errors)
    return form
