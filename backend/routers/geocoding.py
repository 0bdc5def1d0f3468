import asyncio
import logging
from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, ValidationError as PayloadError

from core.auth import current_active_user, user_from_socket_token
from core.errors import DashboardError
from core.geocoding import GeocodingService, LocationPicker, PickedLocation
from db.users import User
from schemas.geocoding import PickedLocationRead

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache
def get_geocoding_service() -> GeocodingService:
    return GeocodingService()


@router.get("/search", response_model=List[PickedLocationRead])
async def search_location(
    q: str = Query(..., min_length=1),
    limit: int = Query(5, ge=1, le=10),
    geocoding: GeocodingService = Depends(get_geocoding_service),
    user: User = Depends(current_active_user),
):
    return await geocoding.search(q, limit=limit)


@router.get("/reverse", response_model=PickedLocationRead)
async def reverse_location(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    geocoding: GeocodingService = Depends(get_geocoding_service),
    user: User = Depends(current_active_user),
):
    return await geocoding.reverse(lat, lng)


class PickerEvent(BaseModel):
    """A map event: ``click``/``drag`` carry a point, ``search`` carries a chosen result."""
    type: str
    lat: float
    lng: float
    address: Optional[str] = None


@router.websocket("/picker")
async def location_picker(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    geocoding: GeocodingService = Depends(get_geocoding_service),
):
    """
    Map picker channel. Each click/drag is resolved concurrently; replies for
    points the user has already moved away from are never sent.
    """
    user = await user_from_socket_token(token)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await websocket.accept()

    picker = LocationPicker(geocoding)
    pending = set()

    async def _send(location: PickedLocation):
        await websocket.send_json(PickedLocationRead.model_validate(location).model_dump())

    async def _resolve(lat: float, lng: float):
        try:
            picked = await picker.pick(lat, lng)
        except DashboardError as e:
            await websocket.send_json({"error": e.message})
            return
        if picked is not None:
            await _send(picked)

    try:
        while True:
            raw = await websocket.receive_json()
            try:
                event = PickerEvent.model_validate(raw)
            except PayloadError as e:
                await websocket.send_json({"error": str(e)})
                continue

            if event.type == "search":
                await _send(picker.choose(PickedLocation(lat=event.lat, lng=event.lng, address=event.address or "")))
            elif event.type in ("click", "drag"):
                task = asyncio.create_task(_resolve(event.lat, event.lng))
                pending.add(task)
                task.add_done_callback(pending.discard)
            else:
                await websocket.send_json({"error": f"Unknown event type {event.type!r}"})
    except WebSocketDisconnect:
        logger.debug("Location picker closed for user %s", user.id)
    finally:
        for task in pending:
            task.cancel()
