from fastapi import APIRouter, Depends, Query
from typing import Optional

from core.appointments import view_appointments
from core.auth import current_hospital_user
from db.inventory.store import InventoryStore, get_inventory_store
from db.stores import AppointmentStore, get_appointment_store
from db.users import User
from routers.appointments import serialize_schedule
from schemas.appointments import ScheduleView
from schemas.dashboard import DashboardRead
from schemas.inventory import InventoryOut

router = APIRouter()


@router.get("", response_model=DashboardRead)
async def get_dashboard(
    view: ScheduleView = Query("active"),
    q: Optional[str] = Query(None),
    user: User = Depends(current_hospital_user),
    inventory: InventoryStore = Depends(get_inventory_store),
    appointments: AppointmentStore = Depends(get_appointment_store),
):
    """Venue header, the stock grid and the filtered schedule in one response."""
    record = await inventory.get(user.id)
    schedule = view_appointments(await appointments.list_by_venue(user.id), view, q)
    return DashboardRead(
        inventory=InventoryOut.from_record(record),
        view=view,
        search=q or "",
        schedule=serialize_schedule(schedule),
    )
