"""
Resource APIs of the CMS: auth, collections and uploads.

Each method is a single CmsClient call against one fixed endpoint.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from ..models import AuthResponse, QueryDescriptor, ResourceEnvelope, User
from .client import CmsClient, UploadFiles
from .envelope import CmsError

M = TypeVar("M", bound=BaseModel)
ResourceId = Union[int, str]

FUNERAL_HOMES_ENDPOINT = "/funeral-homes"
TRIBUTES_ENDPOINT = "/tributes"
UPLOAD_ENDPOINT = "/upload"


def _parse(model: Type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise CmsError(
            status=502,
            message=f"Unexpected response from CMS for {model.__name__}",
            name="BadGateway",
            details={"fields": [".".join(str(part) for part in err["loc"]) for err in e.errors()]},
        ) from e


class AuthAPI:
    """Authentication endpoints (``/auth/*`` and ``/users/me``)."""

    def __init__(self, client: CmsClient):
        self.client = client

    async def login(self, identifier: str, password: str) -> AuthResponse:
        envelope = await self.client.post(
            "/auth/local", {"identifier": identifier, "password": password}
        )
        return _parse(AuthResponse, envelope.data)

    async def register(self, username: str, email: str, password: str) -> AuthResponse:
        envelope = await self.client.post(
            "/auth/local/register",
            {"username": username, "email": email, "password": password},
        )
        return _parse(AuthResponse, envelope.data)

    async def forgot_password(self, email: str) -> Dict[str, Any]:
        envelope = await self.client.post("/auth/forgot-password", {"email": email})
        return envelope.data if isinstance(envelope.data, dict) else {"ok": True}

    async def reset_password(self, password: str, password_confirmation: str, code: str) -> AuthResponse:
        envelope = await self.client.post(
            "/auth/reset-password",
            {
                "password": password,
                "passwordConfirmation": password_confirmation,
                "code": code,
            },
        )
        return _parse(AuthResponse, envelope.data)

    async def get_current_user(self, token: str) -> User:
        envelope = await self.client.get("/users/me", token=token)
        return _parse(User, envelope.data)


class CollectionAPI:
    """
    CRUD over one CMS collection type.

    Create/update bodies are wrapped as ``{"data": attributes}`` the way the
    CMS expects them.
    """

    def __init__(self, client: CmsClient, endpoint: str):
        self.client = client
        self.endpoint = endpoint

    def _item(self, resource_id: ResourceId) -> str:
        return f"{self.endpoint}/{resource_id}"

    async def list(self, token: Optional[str] = None, query: Optional[QueryDescriptor] = None) -> ResourceEnvelope:
        return await self.client.get(self.endpoint, token=token, query=query)

    async def get(
        self,
        resource_id: ResourceId,
        token: Optional[str] = None,
        query: Optional[QueryDescriptor] = None,
    ) -> ResourceEnvelope:
        return await self.client.get(self._item(resource_id), token=token, query=query)

    async def create(self, attributes: Dict[str, Any], token: str) -> ResourceEnvelope:
        return await self.client.post(self.endpoint, {"data": attributes}, token=token)

    async def update(self, resource_id: ResourceId, attributes: Dict[str, Any], token: str) -> ResourceEnvelope:
        return await self.client.put(self._item(resource_id), {"data": attributes}, token=token)

    async def delete(self, resource_id: ResourceId, token: str) -> ResourceEnvelope:
        return await self.client.delete(self._item(resource_id), token=token)


def funeral_homes(client: CmsClient) -> CollectionAPI:
    return CollectionAPI(client, FUNERAL_HOMES_ENDPOINT)


def tributes(client: CmsClient) -> CollectionAPI:
    return CollectionAPI(client, TRIBUTES_ENDPOINT)


class FileAPI:
    """Upload plugin endpoints."""

    def __init__(self, client: CmsClient):
        self.client = client

    async def upload(
        self,
        files: UploadFiles,
        token: str,
        refId: Optional[ResourceId] = None,
        ref: Optional[str] = None,
        field: Optional[str] = None,
        path: Optional[str] = None,
    ) -> ResourceEnvelope:
        """
        Upload one or more files, optionally linking them to an entry.

        Args:
            files: ``[("files", (filename, content, content_type)), ...]``
            token: Bearer token (uploads always require one)
            refId: ID of the entry to link the files to
            ref: Model name of the entry
            field: Field of the entry
            path: Storage folder
        """
        extra = {"refId": refId, "ref": ref, "field": field, "path": path}
        form = {key: str(value) for key, value in extra.items() if value is not None}
        return await self.client.request(
            "POST", UPLOAD_ENDPOINT, token=token, files=files, data=form or None
        )

    async def get_info(self, file_id: ResourceId, token: Optional[str] = None) -> ResourceEnvelope:
        return await self.client.get(f"{UPLOAD_ENDPOINT}/files/{file_id}", token=token)

    async def list_files(self, token: Optional[str] = None) -> ResourceEnvelope:
        return await self.client.get(f"{UPLOAD_ENDPOINT}/files", token=token)

    async def delete(self, file_id: ResourceId, token: str) -> ResourceEnvelope:
        return await self.client.delete(f"{UPLOAD_ENDPOINT}/files/{file_id}", token=token)


__all__ = [
    "AuthAPI",
    "CollectionAPI",
    "FileAPI",
    "funeral_homes",
    "tributes",
    "FUNERAL_HOMES_ENDPOINT",
    "TRIBUTES_ENDPOINT",
    "UPLOAD_ENDPOINT",
]
