"""Unit tests for credit card billing windows"""

from datetime import date
from decimal import Decimal
from myledger.domain.credit_cycle import cycle_range_for_due_month, payment_due_date, statement_total
from myledger.domain.models import BillingWindow, CreditCardCycleMeta


def test_wrapping_cycle_starts_in_previous_month():
    meta = CreditCardCycleMeta(payment_day=14, cycle_start_day=25, cycle_end_day=10)

    window = cycle_range_for_due_month("2025-03", meta)

    assert window == BillingWindow(start=date(2025, 2, 25), end=date(2025, 3, 10))


def test_wrapping_cycle_across_year_boundary():
    meta = CreditCardCycleMeta(payment_day=14, cycle_start_day=15, cycle_end_day=14)

    window = cycle_range_for_due_month("2025-01", meta)

    assert window.start == date(2024, 12, 15)
    assert window.end == date(2025, 1, 14)


def test_calendar_month_cycle():
    meta = CreditCardCycleMeta(payment_day=25, cycle_start_day=1, cycle_end_day=31)

    window = cycle_range_for_due_month("2025-02", meta)

    assert window.start == date(2025, 2, 1)
    assert window.end == date(2025, 2, 28)


def test_boundary_days_clamped_to_their_own_month():
    """Start day 31 in February lands on the 28th; end day 30 in March stays 30"""
    meta = CreditCardCycleMeta(payment_day=31, cycle_start_day=31, cycle_end_day=30)

    window = cycle_range_for_due_month("2025-03", meta)

    assert window.start == date(2025, 2, 28)
    assert window.end == date(2025, 3, 30)
    assert payment_due_date("2025-04", meta) == date(2025, 4, 30)


def test_statement_total_sums_expenses_inside_window(ledger, accounts):
    accounts.balances["card_1"] = Decimal("0")
    meta = CreditCardCycleMeta(payment_day=14, cycle_start_day=25, cycle_end_day=10)
    charges = [
        (date(2025, 2, 24), "expense", "1000"),  # previous window
        (date(2025, 2, 25), "expense", "2000"),
        (date(2025, 3, 10), "expense", "3000"),
        (date(2025, 3, 5), "income", "500"),  # refund is not a charge
        (date(2025, 3, 11), "expense", "4000"),  # next window
    ]
    for day, kind, amount in charges:
        ledger.create_transaction(
            type=kind,
            amount=Decimal(amount),
            category_id=None,
            account_id="card_1",
            date=day,
            memo=None,
        )

    assert statement_total(ledger, "card_1", "2025-03", meta) == Decimal("5000")
