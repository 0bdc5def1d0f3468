"""
Pytest fixtures: in-memory stores that follow the SQL stores' contracts, and
an API client wired to them through FastAPI dependency overrides.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Optional

import pytest

from core.appointments import STATUS_COMPLETED, STATUS_NO_SHOW, STATUS_SCHEDULED
from core.blood import BloodType
from core.errors import InvalidStateTransition, NotFoundError, ValidationError
from core.stock import InventoryRecord, apply_delta, empty_stock
from core.subscriptions import InventoryBroker


@dataclass
class FakeAppointment:
    donor_name: str
    date: str
    status: str = STATUS_SCHEDULED
    time_slot: str = "09:00 - 10:00"
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    donor_id: uuid.UUID = field(default_factory=uuid.uuid4)
    venue_id: Optional[uuid.UUID] = None
    confirmed_blood_type: Optional[str] = None
    completed_at: Optional[datetime] = None


@dataclass
class FakeCamp:
    camp_name: str
    date: str
    organizer_name: str = "Red Cross NY"
    contact: str = "+1 234 567 8900"
    address: str = "123 Main St"
    start_time: Optional[str] = "09:00"
    end_time: Optional[str] = "15:00"
    latitude: float = 40.7128
    longitude: float = -74.006
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    organizer_id: Optional[uuid.UUID] = None


class FakeInventoryStore:
    def __init__(self, broker: Optional[InventoryBroker] = None):
        self.broker = broker or InventoryBroker()
        self.records = {}
        self.deltas = []

    def seed(self, venue_id, name="City General", **counts):
        stock = empty_stock()
        for label, n in counts.items():
            stock[BloodType.parse(label.replace("_pos", "+").replace("_neg", "-"))] = n
        self.records[venue_id] = InventoryRecord(
            venue_id=venue_id,
            blood_stock=stock,
            last_updated=datetime(2024, 6, 1, tzinfo=timezone.utc),
            venue_name=name,
            address="1 Main St",
        )
        return self.records[venue_id]

    async def get(self, venue_id):
        if venue_id not in self.records:
            raise NotFoundError("Venue inventory not found")
        return self.records[venue_id]

    async def register_venue(self, venue_id, *, name, address=None, **kwargs):
        if venue_id in self.records:
            raise ValidationError("Venue is already registered")
        return self.seed(venue_id, name=name)

    async def stage_delta(self, venue_id, blood_type, delta, **kwargs):
        updated = apply_delta(await self.get(venue_id), blood_type, delta)
        self.records[venue_id] = updated
        self.deltas.append((venue_id, BloodType.parse(blood_type), delta))
        return updated

    async def update_stock(self, venue_id, blood_type, delta, *, user_id=None):
        updated = await self.stage_delta(venue_id, blood_type, delta)
        self.publish(updated)
        return updated

    async def subscribe(self, venue_id, callback):
        return self.broker.subscribe(venue_id, await self.get(venue_id), callback)

    def publish(self, record):
        self.broker.publish(record.venue_id, record)

    async def list_movements(self, venue_id, limit=100):
        return []


class FakeAppointmentStore:
    def __init__(self, inventory: FakeInventoryStore):
        self.inventory = inventory
        self.appointments = {}
        self.venues = {}
        self.complete_calls = []

    def add(self, appt: FakeAppointment) -> FakeAppointment:
        self.appointments[appt.id] = appt
        return appt

    def add_venue(self, venue_id, name="City General", kind="hospital"):
        self.venues[venue_id] = SimpleNamespace(id=venue_id, name=name, kind=kind)
        return self.venues[venue_id]

    async def list_by_venue(self, venue_id):
        return [a for a in self.appointments.values() if a.venue_id == venue_id]

    async def get(self, appt_id):
        return self.appointments.get(appt_id)

    async def get_venue(self, venue_id):
        return self.venues.get(venue_id)

    async def book(self, *, donor_id, donor_name, venue_id, on, time_slot):
        if venue_id not in self.venues:
            raise NotFoundError("Venue not found")
        return self.add(FakeAppointment(donor_name=donor_name, date=on.isoformat(), donor_id=donor_id, venue_id=venue_id, time_slot=time_slot))

    async def complete(self, appt_id, *, venue_id, confirmed_type, donor_id, venue_name=None, venue_kind=None, user_id=None):
        self.complete_calls.append((appt_id, confirmed_type))
        appt = self.appointments[appt_id]
        if appt.status != STATUS_SCHEDULED:
            raise InvalidStateTransition("Appointment is no longer scheduled")
        inventory = await self.inventory.stage_delta(venue_id, confirmed_type, 1)
        appt.status = STATUS_COMPLETED
        appt.confirmed_blood_type = BloodType.parse(confirmed_type).value
        appt.completed_at = datetime.now(timezone.utc)
        self.inventory.publish(inventory)
        return appt, inventory

    async def mark_no_show(self, appt_id):
        appt = self.appointments[appt_id]
        if appt.status != STATUS_SCHEDULED:
            raise InvalidStateTransition("Appointment is no longer scheduled")
        appt.status = STATUS_NO_SHOW
        return appt


class FakeCampStore:
    def __init__(self):
        self.camps = []

    async def add(self, organizer_id, fields):
        camp = FakeCamp(organizer_id=organizer_id, **fields)
        self.camps.append(camp)
        return camp

    async def list(self):
        return list(self.camps)


def make_user(role: str, name: str = "Test User"):
    user_id = uuid.uuid4()
    return SimpleNamespace(
        id=user_id,
        email=f"{role}@example.com",
        display_name=name,
        label=name,
        role=role,
        is_active=True,
        is_superuser=False,
        is_verified=True,
    )


@pytest.fixture
def inventory_store():
    return FakeInventoryStore()


@pytest.fixture
def appointment_store(inventory_store):
    return FakeAppointmentStore(inventory_store)


@pytest.fixture
def camp_store():
    return FakeCampStore()


@pytest.fixture
def hospital_user():
    return make_user("hospital", "City General")


@pytest.fixture
def venue(hospital_user, inventory_store, appointment_store):
    """A registered venue owned by ``hospital_user`` with a little stock."""
    inventory_store.seed(hospital_user.id, A_pos=6, O_pos=4, O_neg=0)
    return appointment_store.add_venue(hospital_user.id)


@pytest.fixture
def api(inventory_store, appointment_store, camp_store, hospital_user):
    """TestClient acting as ``hospital_user``; set ``api.user`` to switch identity."""
    from fastapi.testclient import TestClient

    from core.auth import current_active_user
    from db.inventory.store import get_inventory_store
    from db.stores import get_appointment_store, get_camp_store
    from main import app

    client = TestClient(app)
    client.user = hospital_user

    app.dependency_overrides[current_active_user] = lambda: client.user
    app.dependency_overrides[get_inventory_store] = lambda: inventory_store
    app.dependency_overrides[get_appointment_store] = lambda: appointment_store
    app.dependency_overrides[get_camp_store] = lambda: camp_store
    yield client
    app.dependency_overrides.clear()
