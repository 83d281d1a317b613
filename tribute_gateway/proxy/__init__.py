"""
Proxy Package

Forwarding routes for the CMS collections (funeral homes, tributes) and the
upload plugin.
"""

from .routes import funeral_homes_router, tributes_router, upload_router

__all__ = ["funeral_homes_router", "tributes_router", "upload_router"]
