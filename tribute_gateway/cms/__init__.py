"""
CMS Package
===========

Everything that talks to the upstream headless CMS.

Main Components:
----------------
- client.py: CmsClient, one outbound request per call, bearer token attached
- query.py: query descriptor <-> query-string translation
- envelope.py: {data, meta} / {error} normalization and CmsError
- api.py: auth, collection and upload endpoints built on CmsClient

Usage:
------
    from tribute_gateway.cms import CmsClient, AuthAPI
    auth = AuthAPI(CmsClient(http_client))
    result = await auth.login("jane", "Secret123")
"""

from .api import AuthAPI, CollectionAPI, FileAPI, funeral_homes, tributes
from .client import CmsClient, UpstreamResponse, build_http_client
from .envelope import CmsError, unwrap_envelope
from .query import build_query_params, build_query_string, parse_query_params

__all__ = [
    "AuthAPI",
    "CollectionAPI",
    "FileAPI",
    "funeral_homes",
    "tributes",
    "CmsClient",
    "UpstreamResponse",
    "build_http_client",
    "CmsError",
    "unwrap_envelope",
    "build_query_params",
    "build_query_string",
    "parse_query_params",
]
