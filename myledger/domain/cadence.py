"""Date arithmetic for recurrence cadences"""

import logging
from datetime import date, timedelta
from typing import Optional, assert_never

from myledger.config import settings
from myledger.domain.models import Cadence, CustomDays, Monthly, Weekly, Yearly
from myledger.utils.date_utils import clamp_day, shift_month

logger = logging.getLogger(__name__)


def step_days(cadence: Cadence) -> Optional[int]:
    """
    Fixed step in days for day-based cadences.

    Returns None for calendar cadences (monthly/yearly) and for a custom
    interval that is not a positive integer.
    """
    match cadence:
        case Weekly():
            return 7
        case CustomDays(every_days=every_days):
            if isinstance(every_days, int) and every_days > 0:
                return every_days
            return None
        case Monthly() | Yearly():
            return None
        case _:
            assert_never(cadence)


def nth_occurrence(anchor: date, cadence: Cadence, n: int) -> Optional[date]:
    """The n-th occurrence (0 = anchor) of a cadence, calendar cadences clamped"""
    match cadence:
        case Monthly():
            year, month = shift_month(anchor.year, anchor.month, n)
            return clamp_day(year, month, anchor.day)
        case Yearly():
            return clamp_day(anchor.year + n, anchor.month, anchor.day)
        case Weekly() | CustomDays():
            step = step_days(cadence)
            if step is None:
                return None
            return anchor + timedelta(days=step * n)
        case _:
            assert_never(cadence)


def next_occurrence_on_or_after(
    anchor: date,
    cadence: Cadence,
    reference: date,
    max_steps: Optional[int] = None,
) -> Optional[date]:
    """
    First occurrence of `cadence` anchored at `anchor` that is >= `reference`.

    Walks forward from the anchor one step at a time. The walk is bounded by
    `max_steps` (settings.projection_max_steps by default); running out of
    steps returns None and logs a warning. Monthly/yearly dates reuse the
    anchor's day clamped to the target month, so anchor day 31 lands on the
    30th of a 30-day month, and never fall before the anchor.

    Returns:
        The occurrence date, or None for an invalid cadence or cap exhaustion
    """
    if max_steps is None:
        max_steps = settings.projection_max_steps

    if nth_occurrence(anchor, cadence, 0) is None:
        return None

    for n in range(max_steps + 1):
        candidate = nth_occurrence(anchor, cadence, n)
        if candidate >= reference:
            return candidate

    logger.warning(
        "Cadence projection hit the iteration cap",
        extra={
            "anchor": anchor.isoformat(),
            "cadence": cadence.name,
            "reference": reference.isoformat(),
            "max_steps": max_steps,
        },
    )
    return None
