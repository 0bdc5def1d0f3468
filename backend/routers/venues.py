from fastapi import APIRouter, Depends, HTTPException, status

from core.auth import current_hospital_user
from db.inventory.store import InventoryStore, get_inventory_store
from db.stores import AppointmentStore, get_appointment_store
from db.users import User
from schemas.inventory import InventoryOut, VenueCreate, VenueOut

router = APIRouter()


@router.post("", response_model=InventoryOut, status_code=status.HTTP_201_CREATED)
async def register_venue(
    payload: VenueCreate,
    user: User = Depends(current_hospital_user),
    store: InventoryStore = Depends(get_inventory_store),
):
    """Register the signed-in hospital as a venue; every blood type starts at 0."""
    record = await store.register_venue(
        user.id,
        name=payload.name,
        address=payload.address,
        kind=payload.kind,
        latitude=payload.lat,
        longitude=payload.lng,
    )
    return InventoryOut.from_record(record)


@router.get("/me", response_model=VenueOut)
async def get_my_venue(
    user: User = Depends(current_hospital_user),
    store: AppointmentStore = Depends(get_appointment_store),
):
    venue = await store.get_venue(user.id)
    if not venue:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Venue not found")
    return venue
