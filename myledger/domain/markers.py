"""
Idempotency markers written into ledger memos.

Formats (pipe separated, dates ISO):
    AUTO_BILL|<obligation_id>|<due_date>
    AUTO_LOAN|<loan_id>|<period>|<due_date>
    LOAN_SETTLE|<loan_id>|<settled_on>|<remaining_before>

A posting is detected by exact memo match, so a marker must be stable for the
same (record, occurrence) across recomputation.
"""

from datetime import date
from decimal import Decimal
from typing import List, NamedTuple, Optional

BILL_PREFIX = "AUTO_BILL"
LOAN_PAYMENT_PREFIX = "AUTO_LOAN"
LOAN_SETTLEMENT_PREFIX = "LOAN_SETTLE"

SEPARATOR = "|"


class ParsedMarker(NamedTuple):
    kind: str
    record_id: str
    fields: List[str]


def bill_marker(obligation_id: str, due_date: date) -> str:
    return SEPARATOR.join([BILL_PREFIX, obligation_id, due_date.isoformat()])


def loan_payment_marker(loan_id: str, period: int, due_date: date) -> str:
    return SEPARATOR.join([LOAN_PAYMENT_PREFIX, loan_id, str(period), due_date.isoformat()])


def loan_settlement_marker(loan_id: str, settled_on: date, remaining_before: Decimal) -> str:
    return SEPARATOR.join([LOAN_SETTLEMENT_PREFIX, loan_id, settled_on.isoformat(), str(remaining_before)])


def parse_marker(memo: Optional[str]) -> Optional[ParsedMarker]:
    """Split a memo written by this module; None for any other memo"""
    if not memo:
        return None
    parts = memo.split(SEPARATOR)
    if len(parts) < 3 or parts[0] not in (BILL_PREFIX, LOAN_PAYMENT_PREFIX, LOAN_SETTLEMENT_PREFIX):
        return None
    return ParsedMarker(kind=parts[0], record_id=parts[1], fields=parts[2:])
