"""API routers."""

from workspace_files.routers.attachments import router as attachments_router
from workspace_files.routers.files import router as files_router
from workspace_files.routers.health import router as health_router

__all__ = [
    "health_router",
    "files_router",
    "attachments_router",
]
