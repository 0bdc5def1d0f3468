from pydantic import BaseModel
from typing import List

from schemas.appointments import ScheduleDayRead
from schemas.inventory import InventoryOut


class DashboardRead(BaseModel):
    inventory: InventoryOut
    view: str
    search: str
    schedule: List[ScheduleDayRead]
