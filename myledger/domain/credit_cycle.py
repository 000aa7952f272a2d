"""Credit card billing windows"""

from datetime import date
from decimal import Decimal

from myledger.domain.models import BillingWindow, CreditCardCycleMeta
from myledger.domain.ports import LedgerStore
from myledger.utils.date_utils import day_in_month, prev_month_key


def cycle_range_for_due_month(due_month_key: str, meta: CreditCardCycleMeta) -> BillingWindow:
    """
    Billing window whose statement is paid in `due_month_key`.

    A cycle whose start day is after its end day wraps: it starts in the
    month before the due month and ends in the due month. Both boundary days
    are clamped to the length of their own month.

    Example:
        "2025-03", start 25 / end 10 -> 2025-02-25 .. 2025-03-10
    """
    start_month = prev_month_key(due_month_key) if meta.wraps else due_month_key
    return BillingWindow(
        start=day_in_month(start_month, meta.cycle_start_day),
        end=day_in_month(due_month_key, meta.cycle_end_day),
    )


def payment_due_date(due_month_key: str, meta: CreditCardCycleMeta) -> date:
    return day_in_month(due_month_key, meta.payment_day)


def statement_total(
    ledger: LedgerStore,
    account_id: str,
    due_month_key: str,
    meta: CreditCardCycleMeta,
) -> Decimal:
    """Sum of card expenses charged inside the window billed in `due_month_key`"""
    window = cycle_range_for_due_month(due_month_key, meta)
    transactions = ledger.list_transactions(account_id=account_id, start=window.start, end=window.end)
    return sum((t.amount for t in transactions if t.type == "expense"), Decimal("0"))
