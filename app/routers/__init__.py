"""HTTP routers package."""

from .download_router import (
    ERROR_RESPONSES,
    client_identifier,
    create_download_router,
    error_response,
)
from .health_router import create_health_router
from .web_router import create_web_router, mount_web_ui

__all__ = [
    "ERROR_RESPONSES",
    "client_identifier",
    "create_download_router",
    "create_health_router",
    "create_web_router",
    "error_response",
    "mount_web_ui",
]
