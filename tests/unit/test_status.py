"""Unit tests for occurrence status resolution"""

from datetime import date
from decimal import Decimal
from myledger.domain.markers import bill_marker
from myledger.domain.models import ObligationStatus
from myledger.domain.status import StatusResolver, resolve_status

AMOUNT = Decimal("17000")
TODAY = date(2025, 3, 10)


def test_past_month_is_paid():
    status, pending = resolve_status(date(2025, 2, 2), TODAY, AMOUNT, Decimal("0"), marker_posted=False)
    assert status == ObligationStatus.PAID
    assert pending is False


def test_future_month_is_scheduled():
    status, _ = resolve_status(date(2025, 4, 2), TODAY, AMOUNT, Decimal("0"), marker_posted=False)
    assert status == ObligationStatus.SCHEDULED


def test_current_month_not_yet_due_is_scheduled():
    status, _ = resolve_status(date(2025, 3, 20), TODAY, AMOUNT, Decimal("0"), marker_posted=True)
    assert status == ObligationStatus.SCHEDULED


def test_due_today_with_marker_is_paid():
    status, pending = resolve_status(TODAY, TODAY, AMOUNT, Decimal("0"), marker_posted=True)
    assert status == ObligationStatus.PAID
    assert pending is False


def test_balance_heuristic_marks_pending_post():
    """Enough balance counts as paid even before the ledger has the posting"""
    status, pending = resolve_status(date(2025, 3, 2), TODAY, AMOUNT, Decimal("17000"), marker_posted=False)
    assert status == ObligationStatus.PAID
    assert pending is True


def test_insufficient_balance_is_overdue():
    status, pending = resolve_status(date(2025, 3, 2), TODAY, AMOUNT, Decimal("16999"), marker_posted=False)
    assert status == ObligationStatus.OVERDUE
    assert pending is False


def test_missing_account_counts_as_zero_balance():
    status, _ = resolve_status(date(2025, 3, 2), TODAY, AMOUNT, None, marker_posted=False)
    assert status == ObligationStatus.OVERDUE


def test_resolver_uses_ledger_markers(rent, ledger, accounts):
    """Status is derived from the ledger on every call, never stored"""
    accounts.balances["acc_main"] = Decimal("0")
    resolver = StatusResolver(ledger, accounts)

    [occurrence] = resolver.occurrences_for_month(rent, "2025-01", date(2025, 1, 5))
    assert occurrence.due_date == date(2025, 1, 2)
    assert occurrence.status == ObligationStatus.OVERDUE
    assert occurrence.account_name == "Account acc_main"

    ledger.create_transaction(
        type="expense",
        amount=rent.amount,
        category_id=None,
        account_id="acc_main",
        date=date(2025, 1, 2),
        memo=bill_marker(rent.id, date(2025, 1, 2)),
    )

    [occurrence] = resolver.occurrences_for_month(rent, "2025-01", date(2025, 1, 5))
    assert occurrence.status == ObligationStatus.PAID
    assert occurrence.pending_post is False
