"""Projection of recurring obligations onto calendar months"""

import logging
from datetime import date, timedelta
from typing import List, Optional, assert_never

from myledger.config import settings
from myledger.domain.cadence import nth_occurrence, step_days
from myledger.domain.models import CustomDays, Monthly, RecurringObligation, Weekly, Yearly
from myledger.utils.date_utils import clamp_day, month_bounds, month_key, parse_month_key

logger = logging.getLogger(__name__)


def occurrences_in_month(
    obligation: RecurringObligation,
    month_key_: str,
    max_steps: Optional[int] = None,
) -> List[date]:
    """
    Due dates of `obligation` inside a "YYYY-MM" month.

    - Months before the anchor's month are empty (the bill did not exist yet)
    - Monthly: one date, the anchor's day clamped to the month
    - Yearly: one date in the anchor's month, none otherwise
    - Weekly / custom days: every occurrence in the month, increasing

    An invalid custom interval yields no dates rather than an error.
    """
    anchor = obligation.first_payment_date
    if month_key_ < month_key(anchor):
        return []

    year, month = parse_month_key(month_key_)
    cadence = obligation.cadence

    match cadence:
        case Monthly():
            return [max(clamp_day(year, month, anchor.day), anchor)]
        case Yearly():
            if month != anchor.month:
                return []
            return [max(clamp_day(year, month, anchor.day), anchor)]
        case Weekly() | CustomDays():
            start, end = month_bounds(month_key_)
            return occurrences_between(obligation, start, end, max_steps=max_steps)
        case _:
            assert_never(cadence)


def occurrences_between(
    obligation: RecurringObligation,
    start: date,
    end: date,
    max_steps: Optional[int] = None,
) -> List[date]:
    """
    Every occurrence in [start, end] (inclusive), in increasing order.

    Day-based cadences jump straight to the last occurrence before `start`
    and step from there; calendar cadences step month by month. Both walks
    stop after `max_steps` steps.
    """
    if max_steps is None:
        max_steps = settings.projection_max_steps

    anchor = obligation.first_payment_date
    cadence = obligation.cadence
    if end < anchor or end < start:
        return []

    step = step_days(cadence)
    index = 0
    if step is not None:
        cursor = anchor + timedelta(days=step * max(0, (start - anchor).days // step))
    elif isinstance(cadence, Monthly):
        index = max(0, (start.year - anchor.year) * 12 + start.month - anchor.month - 1)
        cursor = nth_occurrence(anchor, cadence, index)
    elif isinstance(cadence, Yearly):
        index = max(0, start.year - anchor.year - 1)
        cursor = nth_occurrence(anchor, cadence, index)
    else:
        # custom interval that is not a positive integer
        return []

    dates: List[date] = []
    steps = 0
    while cursor <= end:
        if cursor >= start:
            dates.append(cursor)
        if steps >= max_steps:
            logger.warning(
                "Occurrence walk hit the iteration cap",
                extra={"obligation_id": obligation.id, "max_steps": max_steps},
            )
            break
        steps += 1
        if step is not None:
            cursor = cursor + timedelta(days=step)
        else:
            index += 1
            cursor = nth_occurrence(anchor, cadence, index)
    return dates
