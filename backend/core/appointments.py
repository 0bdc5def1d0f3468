"""
Appointment workflow: status transitions and the schedule projection.

    scheduled --complete--> completed
    scheduled --no-show---> no-show

Both targets are terminal. Completing an appointment is the one place where two
entities change together: the store marks the appointment completed and adds
exactly one unit of the confirmed blood type to the venue's stock in the same
transaction, so a second completion must be rejected rather than ignored.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_type
from typing import Iterable, List, Optional

from core.blood import BloodType
from core.errors import InvalidStateTransition, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

STATUS_SCHEDULED = "scheduled"
STATUS_COMPLETED = "completed"
STATUS_NO_SHOW = "no-show"

TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_NO_SHOW})

VIEW_ACTIVE = "active"
VIEW_PAST = "past"


def check_transition(current: str, target: str) -> None:
    if target not in TERMINAL_STATUSES:
        raise InvalidStateTransition(f"Cannot move an appointment to {target!r}")
    if current != STATUS_SCHEDULED:
        raise InvalidStateTransition(
            f"Appointment is already {current}; only scheduled appointments can be marked {target}"
        )


async def complete_appointment(store, appt, confirmed_blood_type, venue):
    """
    Mark ``appt`` completed at ``venue`` and record one donated unit.

    ``store`` is an appointment store; its ``complete`` call performs the status
    change, the donation record and the +1 stock increment atomically. Returns
    the ``(appointment, inventory)`` pair the store reports.
    """
    check_transition(appt.status, STATUS_COMPLETED)
    blood_type = BloodType.parse(confirmed_blood_type)

    result = await store.complete(
        appt.id,
        venue_id=venue.id,
        confirmed_type=blood_type,
        donor_id=appt.donor_id,
        venue_name=venue.name,
        venue_kind=venue.kind,
    )
    logger.info("Appointment %s completed at venue %s (%s)", appt.id, venue.id, blood_type.value)
    return result


async def mark_no_show(store, appt_id):
    appt = await store.get(appt_id)
    if appt is None:
        raise NotFoundError("Appointment not found")
    check_transition(appt.status, STATUS_NO_SHOW)

    updated = await store.mark_no_show(appt_id)
    logger.info("Appointment %s marked no-show", appt_id)
    return updated


@dataclass
class ScheduleDay:
    date: str
    appointments: list


def iso_date(value) -> str:
    if isinstance(value, date_type):
        return value.isoformat()
    return str(value or "")


def view_appointments(appointments: Iterable, view: str = VIEW_ACTIVE, search_term: Optional[str] = "") -> List[ScheduleDay]:
    """
    Filter by view and donor name, then group by date (ascending).

    Appointments keep their incoming order within a day.
    """
    if view not in (VIEW_ACTIVE, VIEW_PAST):
        raise ValidationError(f"Unknown view {view!r}; expected 'active' or 'past'")

    needle = (search_term or "").lower()
    grouped: dict = {}
    for appt in appointments:
        is_active = appt.status == STATUS_SCHEDULED
        if (view == VIEW_ACTIVE) != is_active:
            continue
        if needle not in (appt.donor_name or "").lower():
            continue
        grouped.setdefault(iso_date(appt.date), []).append(appt)

    return [ScheduleDay(date=d, appointments=grouped[d]) for d in sorted(grouped)]
