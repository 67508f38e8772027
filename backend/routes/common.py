"""Helpers shared by the route modules: error translation and the actor role."""

from fastapi import Header, HTTPException

from backend.config import get_config
from mission_desk.errors import LifecycleError

STATUS_BY_CODE: dict[str, int] = {
    "not_found": 404,
    "invalid_transition": 409,
    "precondition_failed": 400,
    "conflicting_active_work": 409,
    "persistence_failure": 500,
}


def http_error(e: LifecycleError) -> HTTPException:
    return HTTPException(STATUS_BY_CODE[e.code], e.to_failure().model_dump())


def actor_role(x_actor_role: str | None = Header(None)) -> str:
    """Caller-declared role from X-Actor-Role, used only for audit entries."""
    return x_actor_role or get_config()["default_actor_role"]
