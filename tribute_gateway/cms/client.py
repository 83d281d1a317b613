"""
CMS HTTP client - one request in, one response out.

The gateway never retries and never caches: every call here maps to exactly
one outbound request against the configured CMS base URL.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import httpx

from ..config import Settings
from ..models import QueryDescriptor, ResourceEnvelope
from .envelope import is_success, network_error, unwrap_envelope
from .query import build_query_params

logger = logging.getLogger(__name__)

# Fixed timeout, not configurable.
UPSTREAM_TIMEOUT = httpx.Timeout(30.0, connect=10.0)

QueryParams = Optional[Union[QueryDescriptor, Mapping[str, Any]]]
UploadFiles = List[Tuple[str, Tuple[str, bytes, str]]]


def build_http_client(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """
    Create the ``httpx.AsyncClient`` used to reach the CMS.

    Args:
        settings: Application settings (provides the base URL)
        transport: Optional transport override (tests use ``httpx.MockTransport``)
    """
    return httpx.AsyncClient(
        base_url=settings.cms_api_url_str,
        timeout=UPSTREAM_TIMEOUT,
        transport=transport,
        headers={"Accept": "application/json"},
    )


@dataclass
class UpstreamResponse:
    """Raw outcome of a CMS call: HTTP status plus parsed body."""
    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return is_success(self.status_code)


def _parse_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


class CmsClient:
    """
    Thin forwarder over an injected ``httpx.AsyncClient``.

    ``send`` returns the raw status/body; ``request`` and the verb helpers
    additionally run the envelope translator.
    """

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    async def send(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        json: Any = None,
        query: QueryParams = None,
        files: Optional[UploadFiles] = None,
        data: Optional[Dict[str, str]] = None,
    ) -> UpstreamResponse:
        """
        Perform one HTTP call against the CMS.

        Args:
            method: HTTP verb
            path: Path relative to the CMS base URL (e.g. "/funeral-homes")
            token: Bearer token to attach, if any
            json: JSON body
            query: Query descriptor serialized into the URL
            files: Multipart files; disables the JSON content-type
            data: Extra multipart form fields

        Returns:
            UpstreamResponse with status and parsed body

        Raises:
            CmsError: Status 500 NetworkError if no response was received
        """
        headers: Dict[str, str] = {}
        if files is None:
            headers["Content-Type"] = "application/json"
        if token:
            headers["Authorization"] = f"Bearer {token}"

        params = build_query_params(query) or None

        try:
            response = await self._http.request(
                method,
                path,
                params=params,
                json=json,
                files=files,
                data=data,
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error(
                f"CMS request failed: {e!r}",
                extra={"method": method, "path": path},
            )
            raise network_error(e) from e

        body = _parse_body(response)

        logger.debug(
            "CMS responded",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "authenticated": bool(token),
            },
        )

        return UpstreamResponse(status_code=response.status_code, body=body)

    async def request(self, method: str, path: str, **kwargs: Any) -> ResourceEnvelope:
        """send() followed by envelope translation (raises CmsError on failure)."""
        upstream = await self.send(method, path, **kwargs)
        if not upstream.ok:
            logger.warning(
                f"CMS returned {upstream.status_code}",
                extra={"method": method, "path": path},
            )
        return unwrap_envelope(upstream.status_code, upstream.body)

    async def get(self, path: str, *, token: Optional[str] = None, query: QueryParams = None) -> ResourceEnvelope:
        return await self.request("GET", path, token=token, query=query)

    async def post(self, path: str, body: Any = None, *, token: Optional[str] = None) -> ResourceEnvelope:
        return await self.request("POST", path, token=token, json=body)

    async def put(self, path: str, body: Any = None, *, token: Optional[str] = None) -> ResourceEnvelope:
        return await self.request("PUT", path, token=token, json=body)

    async def delete(self, path: str, *, token: Optional[str] = None) -> ResourceEnvelope:
        return await self.request("DELETE", path, token=token)
