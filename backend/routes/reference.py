"""Location and sorcerer lookups used when assigning and deploying."""

from fastapi import APIRouter, HTTPException

from backend import services

from .models import CreateLocation, CreateSorcerer

router = APIRouter()


@router.get("/locations")
async def list_locations():
    return services.store().list_locations()


@router.post("/locations", status_code=201)
async def create_location(body: CreateLocation):
    return services.store().create_location(body.name)


@router.get("/sorcerers")
async def list_sorcerers():
    return services.store().list_sorcerers()


@router.post("/sorcerers", status_code=201)
async def create_sorcerer(body: CreateSorcerer):
    return services.store().create_sorcerer(
        body.name, grade=body.grade, experience=body.experience, status=body.status
    )


@router.get("/sorcerers/{sorcerer_id}")
async def get_sorcerer(sorcerer_id: int):
    sorcerer = services.store().get_sorcerer(sorcerer_id)
    if not sorcerer:
        raise HTTPException(404, "Sorcerer not found")
    return sorcerer
