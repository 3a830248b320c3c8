"""Static download form.

The page lives in ``app/static`` and is served under ``/web/``; the site root
redirects there.
"""

from pathlib import Path

from fastapi import APIRouter, FastAPI
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"
WEB_PREFIX = "/web"


def create_web_router() -> APIRouter:
    """Create the router redirecting ``/`` to the form page."""
    router = APIRouter(tags=["web"], include_in_schema=False)

    @router.get("/")
    async def index() -> RedirectResponse:
        return RedirectResponse(url=f"{WEB_PREFIX}/", status_code=307)

    return router


def mount_web_ui(app: FastAPI) -> None:
    """Register the form page and its redirect on ``app``."""
    app.mount(WEB_PREFIX, StaticFiles(directory=STATIC_DIR, html=True), name="web")
    app.include_router(create_web_router())
