"""
Proxy Routes - Collection and Upload Forwarding
===============================================

Thin handlers that forward site requests to the CMS collections.

Request handling:
-----------------
1. Resolve the bearer token (cookie or Authorization header)
2. Writes without a token stop here with 401
3. Bodies are validated with the matching form; failures stop here with 400
4. Exactly one CMS call is made; its envelope is returned as ``{data, meta}``

Endpoints:
----------
- GET/POST /api/funeral-homes, GET/PUT/DELETE /api/funeral-homes/{id}
- GET/POST /api/tributes, GET/PUT/DELETE /api/tributes/{id}
- POST/GET /api/upload, GET/DELETE /api/upload/files/{id}
"""

import logging
from typing import Any, Callable, Dict, Optional, Type

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from ..auth.session import optional_token, require_token
from ..cms.api import CollectionAPI, FileAPI, funeral_homes, tributes
from ..cms.client import CmsClient, UploadFiles
from ..cms.query import parse_query_params
from ..dependencies import get_cms_client, get_file_api
from ..forms import (
    FormModel,
    FormValidationError,
    FuneralHomeFilter,
    FuneralHomeForm,
    FuneralHomeUpdateForm,
    TributeFilter,
    TributeForm,
    TributeUpdateForm,
    UploadForm,
    field_errors,
    parse_form,
)
from ..models import QueryDescriptor, ResourceEnvelope

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


# ============================================================================
# Helpers
# ============================================================================

def envelope_payload(envelope: ResourceEnvelope) -> Dict[str, Any]:
    """``{data, meta}`` with meta passed through as sent, omitted when absent."""
    payload: Dict[str, Any] = {"data": envelope.data}
    if envelope.meta is not None:
        payload["meta"] = envelope.meta.model_dump(exclude_unset=True)
    return payload


def query_descriptor(request: Request) -> QueryDescriptor:
    """
    Dependency parsing the URL query into a QueryDescriptor.

    Raises:
        FormValidationError: If pagination values are not valid integers
    """
    try:
        return parse_query_params(request.query_params.multi_items())
    except ValidationError as e:
        raise FormValidationError(field_errors(e))


def _with_filter_shortcuts(
    descriptor: QueryDescriptor,
    request: Request,
    filter_form: Type[FormModel],
) -> QueryDescriptor:
    """Fold ``?name=...`` style shortcuts into ``filters`` (explicit filters win)."""
    shortcuts = parse_form(filter_form, dict(request.query_params)).to_filters()
    if not shortcuts:
        return descriptor
    merged = {**shortcuts, **(descriptor.filters or {})}
    return descriptor.model_copy(update={"filters": merged})


def _item_query(descriptor: QueryDescriptor) -> QueryDescriptor:
    """Single-item reads only forward ``fields`` and ``populate``."""
    return QueryDescriptor(fields=descriptor.fields, populate=descriptor.populate)


# ============================================================================
# Collection routes
# ============================================================================

def build_collection_router(
    prefix: str,
    api_factory: Callable[[CmsClient], CollectionAPI],
    create_form: Type[FormModel],
    update_form: Type[FormModel],
    filter_form: Type[FormModel],
    label: str,
) -> APIRouter:
    """
    Router with list/create/get/update/delete for one CMS collection.

    Args:
        prefix: Route prefix, e.g. "/api/funeral-homes"
        api_factory: Builds the CollectionAPI from a CmsClient
        create_form: Schema for POST bodies
        update_form: Schema for PUT bodies (partial)
        filter_form: Schema for ``?field=value`` filter shortcuts
        label: Resource name used in logs
    """
    router = APIRouter(prefix=prefix, tags=[label])

    def get_api(client: CmsClient = Depends(get_cms_client)) -> CollectionAPI:
        return api_factory(client)

    @router.get("")
    async def list_items(
        request: Request,
        descriptor: QueryDescriptor = Depends(query_descriptor),
        token: Optional[str] = Depends(optional_token),
        api: CollectionAPI = Depends(get_api),
    ):
        descriptor = _with_filter_shortcuts(descriptor, request, filter_form)
        return envelope_payload(await api.list(token=token, query=descriptor))

    @router.post("")
    async def create_item(
        payload: Optional[Dict[str, Any]] = Body(None),
        token: str = Depends(require_token),
        api: CollectionAPI = Depends(get_api),
    ):
        form = parse_form(create_form, payload or {})
        envelope = await api.create(form.model_dump(exclude_none=True), token=token)
        logger.info(f"Created {label}", extra={"resource": label})
        return envelope_payload(envelope)

    @router.get("/{item_id}")
    async def get_item(
        item_id: str,
        descriptor: QueryDescriptor = Depends(query_descriptor),
        token: Optional[str] = Depends(optional_token),
        api: CollectionAPI = Depends(get_api),
    ):
        return envelope_payload(await api.get(item_id, token=token, query=_item_query(descriptor)))

    @router.put("/{item_id}")
    async def update_item(
        item_id: str,
        payload: Optional[Dict[str, Any]] = Body(None),
        token: str = Depends(require_token),
        api: CollectionAPI = Depends(get_api),
    ):
        form = parse_form(update_form, payload or {})
        envelope = await api.update(item_id, form.model_dump(exclude_unset=True), token=token)
        logger.info(f"Updated {label}", extra={"resource": label, "resource_id": item_id})
        return envelope_payload(envelope)

    @router.delete("/{item_id}")
    async def delete_item(
        item_id: str,
        token: str = Depends(require_token),
        api: CollectionAPI = Depends(get_api),
    ):
        envelope = await api.delete(item_id, token=token)
        logger.info(f"Deleted {label}", extra={"resource": label, "resource_id": item_id})
        return envelope_payload(envelope)

    return router


funeral_homes_router = build_collection_router(
    "/api/funeral-homes",
    funeral_homes,
    FuneralHomeForm,
    FuneralHomeUpdateForm,
    FuneralHomeFilter,
    "funeral-homes",
)

tributes_router = build_collection_router(
    "/api/tributes",
    tributes,
    TributeForm,
    TributeUpdateForm,
    TributeFilter,
    "tributes",
)


# ============================================================================
# Upload routes
# ============================================================================

upload_router = APIRouter(prefix="/api/upload", tags=["upload"])


@upload_router.post("")
async def upload_files(
    request: Request,
    token: str = Depends(require_token),
    api: FileAPI = Depends(get_file_api),
):
    """
    Forward a multipart upload.

    Form fields: ``files`` (one or more), optional ``refId``, ``ref``,
    ``field`` and ``path``.
    """
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" not in content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Multipart form data is required",
        )

    data = await request.form()
    uploads = data.getlist("files")
    if not uploads:
        raise FormValidationError({"files": ["No files provided"]})
    if not all(isinstance(item, UploadFile) for item in uploads):
        raise FormValidationError({"files": ["Invalid files in request"]})

    form = parse_form(
        UploadForm,
        {key: value for key, value in data.items() if isinstance(value, str)},
    )

    files: UploadFiles = []
    for item in uploads:
        content = await item.read()
        files.append(("files", (item.filename or "upload", content, item.content_type or DEFAULT_CONTENT_TYPE)))

    logger.info("Uploading files", extra={"file_count": len(files)})
    envelope = await api.upload(
        files,
        token=token,
        refId=form.refId,
        ref=form.ref,
        field=form.field,
        path=form.path,
    )
    return envelope_payload(envelope)


@upload_router.get("")
async def list_or_get_files(
    file_id: Optional[str] = Query(None, alias="id"),
    token: Optional[str] = Depends(optional_token),
    api: FileAPI = Depends(get_file_api),
):
    if file_id:
        return envelope_payload(await api.get_info(file_id, token=token))
    return envelope_payload(await api.list_files(token=token))


@upload_router.get("/files/{file_id}")
async def get_file(
    file_id: str,
    token: Optional[str] = Depends(optional_token),
    api: FileAPI = Depends(get_file_api),
):
    return envelope_payload(await api.get_info(file_id, token=token))


@upload_router.delete("/files/{file_id}")
async def delete_file(
    file_id: str,
    token: str = Depends(require_token),
    api: FileAPI = Depends(get_file_api),
):
    envelope = await api.delete(file_id, token=token)
    logger.info("Deleted file", extra={"resource_id": file_id})
    return envelope_payload(envelope)
