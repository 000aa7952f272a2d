"""Unit tests for ledger memo markers"""

from datetime import date
from decimal import Decimal
from myledger.domain.markers import (
    BILL_PREFIX,
    LOAN_SETTLEMENT_PREFIX,
    bill_marker,
    loan_payment_marker,
    loan_settlement_marker,
    parse_marker,
)


def test_marker_formats():
    assert bill_marker("ob_1", date(2025, 1, 2)) == "AUTO_BILL|ob_1|2025-01-02"
    assert loan_payment_marker("loan_1", 3, date(2025, 3, 25)) == "AUTO_LOAN|loan_1|3|2025-03-25"
    assert (
        loan_settlement_marker("loan_1", date(2025, 2, 1), Decimal("12000000"))
        == "LOAN_SETTLE|loan_1|2025-02-01|12000000"
    )


def test_parse_marker():
    parsed = parse_marker("AUTO_BILL|ob_1|2025-01-02")
    assert parsed.kind == BILL_PREFIX
    assert parsed.record_id == "ob_1"
    assert parsed.fields == ["2025-01-02"]

    parsed = parse_marker("LOAN_SETTLE|loan_1|2025-02-01|500")
    assert parsed.kind == LOAN_SETTLEMENT_PREFIX
    assert parsed.fields == ["2025-02-01", "500"]


def test_parse_marker_ignores_user_memos():
    assert parse_marker(None) is None
    assert parse_marker("") is None
    assert parse_marker("dinner with friends") is None
    assert parse_marker("AUTO_BILL|only-two") is None
