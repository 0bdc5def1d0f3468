from datetime import date
from typing import Iterable, List, Optional, Union

from core.appointments import iso_date


def upcoming_camps(camps: Iterable, today: Optional[Union[date, str]] = None) -> List:
    """Camps dated today or later, earliest first."""
    cutoff = iso_date(today or date.today())
    upcoming = [c for c in camps if iso_date(c.date) >= cutoff]
    return sorted(upcoming, key=lambda c: iso_date(c.date))
