import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from core.auth import current_hospital_user, has_role, user_from_socket_token
from core.errors import DashboardError
from db.inventory.store import InventoryStore, get_inventory_store, open_subscription
from db.users import ROLE_HOSPITAL, User
from schemas.inventory import InventoryOut, StockAdjust, StockMovementOut

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=InventoryOut)
async def get_inventory(
    user: User = Depends(current_hospital_user),
    store: InventoryStore = Depends(get_inventory_store),
):
    record = await store.get(user.id)
    return InventoryOut.from_record(record)


@router.post("/adjust", response_model=InventoryOut)
async def adjust_stock(
    payload: StockAdjust,
    user: User = Depends(current_hospital_user),
    store: InventoryStore = Depends(get_inventory_store),
):
    """Manual +/- on one blood type (the stock card buttons)."""
    record = await store.update_stock(user.id, payload.blood_type, payload.change, user_id=user.id)
    return InventoryOut.from_record(record)


@router.get("/movements", response_model=List[StockMovementOut])
async def list_movements(
    limit: int = Query(100, ge=1, le=500),
    user: User = Depends(current_hospital_user),
    store: InventoryStore = Depends(get_inventory_store),
):
    return await store.list_movements(user.id, limit=limit)


@router.websocket("/live")
async def inventory_live(websocket: WebSocket, token: Optional[str] = Query(None)):
    """
    Live stock feed for the signed-in venue.

    Sends the current inventory first, then one message per committed change
    until the client disconnects. No database session stays open meanwhile.
    """
    user = await user_from_socket_token(token)
    if user is None or not has_role(user, ROLE_HOSPITAL):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        queue: asyncio.Queue = asyncio.Queue()
        subscription = await open_subscription(user.id, queue.put_nowait)
    except DashboardError as e:
        logger.warning("Live inventory refused for %s: %s", user.id, e.message)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    async def _push():
        while True:
            record = await queue.get()
            await websocket.send_json(InventoryOut.from_record(record).model_dump(mode="json"))

    await websocket.accept()
    with subscription:
        await websocket.send_json(InventoryOut.from_record(subscription.snapshot).model_dump(mode="json"))
        pusher = asyncio.create_task(_push())
        try:
            # Incoming messages are ignored; receiving is how we notice the client leaving
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug("Live inventory closed for venue %s", user.id)
        finally:
            pusher.cancel()
            await _reap(pusher, user.id)


async def _reap(pusher: asyncio.Task, venue_id) -> None:
    try:
        await pusher
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.exception("Live inventory push failed for venue %s", venue_id)
