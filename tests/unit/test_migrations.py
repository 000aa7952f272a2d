"""Unit tests for versioned record migration"""

import pytest
from datetime import date
from decimal import Decimal
from myledger.domain.exceptions import SchemaMigrationError
from myledger.domain.migrations import (
    card_meta_from_record,
    load_obligations,
    migrate_card_meta_record,
    migrate_obligation_record,
    obligation_from_record,
)
from myledger.domain.models import CustomDays, Monthly, ObligationGroup
from myledger.domain.projection import occurrences_in_month


def test_v1_single_due_date_becomes_monthly():
    obligation = obligation_from_record(
        {"id": "b1", "name": "Internet", "dueDate": "2024-03-15", "amount": 33000, "status": "paid"}
    )

    assert obligation.cadence == Monthly()
    assert obligation.first_payment_date == date(2024, 3, 15)
    assert obligation.group == ObligationGroup.LIVING
    assert obligation.amount == Decimal("33000")
    assert obligation.account_id == ""


def test_v2_start_month_with_day_clamped():
    obligation = obligation_from_record(
        {
            "id": "b2",
            "name": "Phone",
            "amount": "45000",
            "accountId": "acc_main",
            "startMonth": "2024-02",
            "dayOfMonth": 31,
        }
    )

    assert obligation.first_payment_date == date(2024, 2, 29)
    assert obligation.account_id == "acc_main"


def test_current_version_is_normalized():
    record = migrate_obligation_record(
        {
            "id": "b3",
            "name": "Pilates",
            "group": "custom",
            "groupLabel": "Health",
            "amount": "12.7",
            "cadence": "custom_days",
            "customEveryDays": "14",
            "firstPaymentDate": "2025-01-03T00:00:00",
            "accountId": "acc_main",
        }
    )

    assert record["firstPaymentDate"] == "2025-01-03"
    assert record["customEveryDays"] == 14
    assert record["amount"] == "13"
    assert record["categoryId"] is None


def test_custom_cadence_survives_round_trip():
    obligation = obligation_from_record(
        {
            "id": "b4",
            "name": "Water filter",
            "group": "utility",
            "amount": 9000,
            "cadence": "custom_days",
            "customEveryDays": 90,
            "firstPaymentDate": "2025-01-10",
            "accountId": "acc_main",
        }
    )
    assert obligation.cadence == CustomDays(90)


@pytest.mark.parametrize("every_days", [0, -7, 0.5, "0"])
def test_malformed_custom_interval_is_never_due(every_days):
    obligation = obligation_from_record(
        {
            "id": "b5",
            "name": "Broken reminder",
            "group": "living",
            "amount": 1000,
            "cadence": "custom_days",
            "customEveryDays": every_days,
            "firstPaymentDate": "2025-01-01",
            "accountId": "acc_main",
        }
    )

    assert obligation.cadence.every_days <= 0
    assert occurrences_in_month(obligation, "2025-01") == []


def test_interval_dropped_for_calendar_cadence():
    record = migrate_obligation_record(
        {
            "id": "b6",
            "name": "Rent",
            "group": "living",
            "amount": 17000,
            "cadence": "monthly",
            "customEveryDays": 3,
            "firstPaymentDate": "2025-01-02",
        }
    )
    assert record["customEveryDays"] is None


@pytest.mark.parametrize(
    "record",
    [
        {"foo": "bar"},
        {"id": "x", "name": "No schedule"},
        {"name": "No id", "dueDate": "2024-01-01"},
        {"id": "x", "name": "Bad group", "group": "pets", "cadence": "monthly", "firstPaymentDate": "2025-01-01"},
        {"id": "x", "name": "Bad cadence", "group": "living", "cadence": "hourly", "firstPaymentDate": "2025-01-01"},
    ],
)
def test_unrecoverable_records_raise(record):
    with pytest.raises(SchemaMigrationError):
        migrate_obligation_record(record)


def test_load_obligations_drops_bad_records():
    obligations = load_obligations(
        [
            {"id": "b1", "name": "Internet", "dueDate": "2024-03-15", "amount": 33000},
            "not a record",
            {"foo": "bar"},
        ]
    )

    assert [o.id for o in obligations] == ["b1"]


def test_card_meta_v1_statement_day():
    """A legacy statement day becomes the end of a cycle starting the next day"""
    meta = card_meta_from_record({"kind": "credit_card", "paymentDay": 14, "statementDay": 25, "withdrawAccountId": "acc_main"})

    assert meta.cycle_end_day == 25
    assert meta.cycle_start_day == 26
    assert meta.credit_limit == Decimal("0")
    assert meta.withdraw_account_id == "acc_main"


def test_card_meta_v1_month_end_statement_day():
    record = migrate_card_meta_record({"kind": "credit_card", "paymentDay": 14, "statementDay": 31})

    assert record["cycleStartDay"] == 1
    assert record["cycleEndDay"] == 31


def test_card_meta_v2_days_clamped():
    meta = card_meta_from_record(
        {"kind": "credit_card", "paymentDay": 40, "cycleStartDay": 0, "cycleEndDay": "15", "creditLimit": "3000000"}
    )

    assert meta.payment_day == 31
    assert meta.cycle_start_day == 1
    assert meta.cycle_end_day == 15
    assert meta.credit_limit == Decimal("3000000")


def test_card_meta_rejects_other_account_kinds():
    with pytest.raises(SchemaMigrationError):
        migrate_card_meta_record({"kind": "bank", "paymentDay": 14, "statementDay": 25})
