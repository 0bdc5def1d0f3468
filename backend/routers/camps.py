from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from datetime import date

from core.auth import current_active_user, current_organizer_user
from core.camps import upcoming_camps
from db.stores import CampStore, get_camp_store
from db.users import User
from schemas.camps import CampCreate, CampRead

router = APIRouter()


@router.get("", response_model=List[CampRead])
async def list_upcoming_camps(
    today: Optional[date] = Query(None, description="Override the cut-off date (defaults to the server's today)"),
    store: CampStore = Depends(get_camp_store),
    user: User = Depends(current_active_user),
):
    camps = await store.list()
    return [CampRead.from_model(c) for c in upcoming_camps(camps, today)]


@router.post("", response_model=CampRead, status_code=status.HTTP_201_CREATED)
async def create_camp(
    payload: CampCreate,
    store: CampStore = Depends(get_camp_store),
    user: User = Depends(current_organizer_user),
):
    camp = await store.add(user.id, payload.to_fields())
    return CampRead.from_model(camp)
