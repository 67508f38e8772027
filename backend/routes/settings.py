"""Health check and settings endpoints."""

from fastapi import APIRouter

from backend.config import get_config, update_config

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings")
async def get_settings():
    """Get global app settings (page sizes, default actor role, audit switch)."""
    return get_config()


@router.patch("/settings")
async def update_settings(body: dict):
    """Update global app settings (partial merge, unknown keys ignored)."""
    return update_config(body)
