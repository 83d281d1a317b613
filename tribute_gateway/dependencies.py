from fastapi import HTTPException, Request, status

from .cms.api import AuthAPI, FileAPI
from .cms.client import CmsClient
from .config import Settings


def get_app_settings(request: Request) -> Settings:
    """Settings attached to the application at startup."""
    return request.app.state.settings


def get_cms_client(request: Request) -> CmsClient:
    """
    CmsClient over the shared httpx client created in the lifespan.
    """
    http_client = getattr(request.app.state, "http_client", None)
    if http_client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="CMS client not initialized",
        )
    return CmsClient(http_client)


def get_auth_api(request: Request) -> AuthAPI:
    return AuthAPI(get_cms_client(request))


def get_file_api(request: Request) -> FileAPI:
    return FileAPI(get_cms_client(request))
