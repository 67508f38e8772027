"""Request endpoints.

PATCH /requests/{id} takes a target state and runs the matching operation:
  pending → being_handled        assign a sorcerer (sorcerer_id + urgency)
  being_handled → being_handled  change the sorcerer or the urgency (one of them);
                                 both together is a new assignment and gets 409
  being_handled → pending        withdraw
  being_handled → handled        close
"""

from fastapi import APIRouter, Depends, HTTPException

from backend import services
from backend.config import page_size
from mission_desk import lifecycle
from mission_desk.errors import LifecycleError

from .common import actor_role, http_error
from .models import RequestTransitionBody

router = APIRouter()


@router.get("/requests")
async def list_requests(cursor: int | None = None, limit: int | None = None):
    return services.store().list_page("requests", cursor, page_size(limit))


@router.get("/requests/{request_id}")
async def get_request(request_id: int):
    request = services.store().get_request(request_id)
    if not request:
        raise HTTPException(404, "Request not found")
    return request


@router.get("/requests/{request_id}/assignments")
async def list_assignments(request_id: int):
    """Every sorcerer assignment of a request, finished missions included."""
    store = services.store()
    if not store.get_request(request_id):
        raise HTTPException(404, "Request not found")
    return store.get_assignments_for_request(request_id)


@router.patch("/requests/{request_id}")
async def transition_request(
    request_id: int, body: RequestTransitionBody, role: str = Depends(actor_role)
):
    try:
        return lifecycle.transition_request(
            services.store(),
            request_id,
            body.state,
            sorcerer_id=body.sorcerer_id,
            urgency=body.urgency,
            audit=services.audit_sink(role),
        )
    except LifecycleError as e:
        raise http_error(e) from e


@router.delete("/requests/{request_id}")
async def delete_request(request_id: int, role: str = Depends(actor_role)):
    """Delete a request. Its open mission is canceled and kept for history."""
    try:
        return lifecycle.delete_request(
            services.store(), request_id, audit=services.audit_sink(role)
        )
    except LifecycleError as e:
        raise http_error(e) from e
