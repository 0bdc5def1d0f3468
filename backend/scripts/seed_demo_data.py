import asyncio
import sys
from datetime import date, time, timedelta
from pathlib import Path

"""
Seed demo data (users, a hospital venue with stock, appointments, camps) into the Postgres DB.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`

Every demo account uses the password "demo-password".
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import select

from core.blood import BloodType
from db.appointment import Appointment
from db.camp import DonationCamp
from db.database import async_session_maker, create_db_and_tables
from db.inventory.store import InventoryStore
from db.users import ROLE_DONOR, ROLE_HOSPITAL, ROLE_ORGANIZER, User
from db.venue import Venue

from fastapi_users.password import PasswordHelper


password_helper = PasswordHelper()
DEMO_PASSWORD = "demo-password"

DEMO_STOCK = {
    BloodType.A_POS: 12,
    BloodType.A_NEG: 3,
    BloodType.B_POS: 7,
    BloodType.O_POS: 15,
    BloodType.O_NEG: 1,
}

DEMO_DONORS = ["Jane Doe", "John Smith", "Janet Lee", "Ravi Kumar"]


async def get_or_create_user(session, email: str, role: str, display_name: str) -> User:
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        email=email,
        hashed_password=password_helper.hash(DEMO_PASSWORD),
        is_active=True,
        is_superuser=False,
        is_verified=True,
        role=role,
        display_name=display_name,
    )
    session.add(user)
    await session.flush()
    return user


async def main() -> None:
    await create_db_and_tables()
    today = date.today()

    async with async_session_maker() as session:
        hospital = await get_or_create_user(session, "hospital@example.com", ROLE_HOSPITAL, "City General")
        organizer = await get_or_create_user(session, "organizer@example.com", ROLE_ORGANIZER, "Red Cross NY")
        donors = [
            await get_or_create_user(session, f"donor{i}@example.com", ROLE_DONOR, name)
            for i, name in enumerate(DEMO_DONORS, start=1)
        ]
        await session.commit()

        store = InventoryStore(session)
        if not await session.get(Venue, hospital.id):
            await store.register_venue(hospital.id, name="City General Hospital", address="1 Main St, New York")
            for bt, units in DEMO_STOCK.items():
                await store.update_stock(hospital.id, bt, units, user_id=hospital.id)

        existing = await session.execute(select(Appointment).where(Appointment.venue_id == hospital.id))
        if not existing.scalars().first():
            for i, donor in enumerate(donors):
                session.add(
                    Appointment(
                        donor_id=donor.id,
                        donor_name=donor.display_name,
                        venue_id=hospital.id,
                        date=today + timedelta(days=i % 2),
                        time_slot=f"{9 + i}:00 - {10 + i}:00",
                    )
                )

        camps = await session.execute(select(DonationCamp).where(DonationCamp.organizer_id == organizer.id))
        if not camps.scalars().first():
            for offset, name in [(-3, "Spring Drive"), (2, "City Center Blood Drive"), (9, "Campus Donation Day")]:
                session.add(
                    DonationCamp(
                        organizer_id=organizer.id,
                        camp_name=name,
                        organizer_name="Red Cross NY",
                        contact="+1 234 567 8900",
                        address="123 Main St, New York",
                        date=today + timedelta(days=offset),
                        start_time=time(9, 0),
                        end_time=time(15, 0),
                        latitude=40.7128,
                        longitude=-74.0060,
                    )
                )
        await session.commit()

    print("Seeded demo data. Sign in with any *@example.com account and password:", DEMO_PASSWORD)


if __name__ == "__main__":
    asyncio.run(main())
