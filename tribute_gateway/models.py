"""
Data Models Module

This module defines Pydantic models mirroring the records and the JSON
envelope produced by the upstream CMS.

Models are organized by functional area:
- Envelope models ({data, meta} success and {error} failure)
- Query descriptor models (pagination, sort, filters, fields, populate)
- Authentication models (users, roles, auth responses)
- Content models (funeral homes, directors, tributes, uploaded files)
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Envelope Models
# ============================================================================

class PaginationMeta(BaseModel):
    """
    Pagination block returned in ``meta.pagination``.

    Page-based requests get page/pageSize/pageCount, offset requests get
    start/limit; ``total`` is absent when ``withCount`` is false.
    """
    model_config = ConfigDict(extra="allow")

    page: Optional[int] = None
    pageSize: Optional[int] = None
    pageCount: Optional[int] = None
    start: Optional[int] = None
    limit: Optional[int] = None
    total: Optional[int] = None


class Meta(BaseModel):
    """Envelope metadata; the CMS may add arbitrary keys next to pagination."""
    model_config = ConfigDict(extra="allow")

    pagination: Optional[PaginationMeta] = None


class ResourceEnvelope(BaseModel):
    """Successful CMS response: ``{data, meta}``."""
    data: Any = Field(None, description="Unwrapped resource or list of resources")
    meta: Optional[Meta] = Field(None, description="Envelope metadata")


class ErrorBody(BaseModel):
    """The ``error`` object of a failed CMS response."""
    status: int = Field(..., description="HTTP status reported by the CMS")
    name: str = Field("ApiError", description="Error class name")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")


class ErrorEnvelope(BaseModel):
    """Failed CMS response: ``{error}``."""
    data: None = None
    error: ErrorBody


# ============================================================================
# Query Descriptor Models
# ============================================================================

class Pagination(BaseModel):
    """Page-based or offset-based pagination request."""
    page: Optional[int] = Field(None, ge=1)
    pageSize: Optional[int] = Field(None, ge=1)
    withCount: Optional[bool] = None
    start: Optional[int] = Field(None, ge=0)
    limit: Optional[int] = None


class QueryDescriptor(BaseModel):
    """
    Structured query translated to CMS query-string parameters.

    No local semantics: nothing here is evaluated by the gateway.
    """
    pagination: Optional[Pagination] = None
    sort: Optional[List[str]] = None
    filters: Optional[Dict[str, Any]] = None
    fields: Optional[List[str]] = None
    populate: Optional[Union[List[str], Dict[str, Any]]] = None

    def to_params(self) -> Dict[str, Any]:
        """Plain dict form, dropping unset parts."""
        return self.model_dump(exclude_none=True)


# ============================================================================
# Authentication Models
# ============================================================================

class Role(BaseModel):
    """Role attached to a CMS user."""
    id: int
    name: str
    description: Optional[str] = None
    type: Optional[str] = None


class User(BaseModel):
    """User record as returned by the CMS (read-only here)."""
    model_config = ConfigDict(extra="allow")

    id: int = Field(..., description="CMS user identifier")
    username: str = Field(..., description="Login name")
    email: str = Field(..., description="User email address")
    provider: Optional[str] = None
    confirmed: Optional[bool] = None
    blocked: Optional[bool] = None
    role: Optional[Role] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class SessionUser(BaseModel):
    """User shape exposed to the site; ``name`` mirrors the username."""
    id: str
    name: str
    email: str
    username: str
    confirmed: Optional[bool] = None
    blocked: Optional[bool] = None
    role: Optional[Role] = None

    @classmethod
    def from_user(cls, user: User) -> "SessionUser":
        return cls(
            id=str(user.id),
            name=user.username,
            email=user.email,
            username=user.username,
            confirmed=user.confirmed,
            blocked=user.blocked,
            role=user.role,
        )


class AuthResponse(BaseModel):
    """Response of ``/auth/local`` and ``/auth/local/register``."""
    jwt: str = Field(..., description="CMS bearer token")
    user: User


# ============================================================================
# Content Models
# ============================================================================

class Director(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None


class FuneralHome(BaseModel):
    id: int
    name: str
    address: str
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    phoneNumber: Optional[str] = None
    directors: Optional[List[Director]] = None


TributeStatus = Literal["draft", "published", "archived"]


class Tribute(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    status: Optional[TributeStatus] = None
    owner: Optional[User] = None


class FileInfo(BaseModel):
    """Metadata of a file stored by the CMS upload plugin."""
    model_config = ConfigDict(extra="allow")

    id: int
    name: str
    alternativeText: Optional[str] = None
    caption: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    formats: Optional[Dict[str, Any]] = None
    hash: str
    ext: Optional[str] = None
    mime: str
    size: float
    url: str
    previewUrl: Optional[str] = None
    provider: str
    provider_metadata: Optional[Dict[str, Any]] = None
    createdAt: str
    updatedAt: str
