"""FastAPI API endpoints under /api.

Endpoint groups: settings, reference data (locations, sorcerers), curses,
requests, missions, audit. Lifecycle errors are mapped to HTTP statuses in
common.http_error; the error body is the Failure payload (kind, code, message).
"""

from fastapi import APIRouter

from .audit import router as audit_router
from .curses import router as curses_router
from .missions import router as missions_router
from .reference import router as reference_router
from .requests import router as requests_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(reference_router)
router.include_router(curses_router)
router.include_router(requests_router)
router.include_router(missions_router)
router.include_router(audit_router)
