"""
Versioned migration of persisted obligation and card-meta records.

Each schema version has a detector and an upcast to the next version;
`MigrationChain.migrate` upcasts until the current version and then
normalises. Records are plain dicts in their stored (camelCase) shape.

Obligation records:
    v1  {id, name, dueDate, amount, status}
    v2  {id, name, amount, accountId, startMonth, dayOfMonth}   monthly only
    v3  {id, name, group, groupLabel, amount, cadence, customEveryDays,
         firstPaymentDate, accountId, categoryId}

Card meta records:
    v1  {kind, paymentDay, statementDay, withdrawAccountId, creditLimit?}
    v2  {kind, paymentDay, cycleStartDay, cycleEndDay, withdrawAccountId, creditLimit}
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from myledger.domain.exceptions import SchemaMigrationError
from myledger.domain.models import (
    CADENCE_NAMES,
    CreditCardCycleMeta,
    ObligationGroup,
    RecurringObligation,
    cadence_from_fields,
)
from myledger.utils.date_utils import clamp_day, parse_month_key
from myledger.utils.money import to_money

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


@dataclass(frozen=True)
class SchemaVersion:
    version: int
    detect: Callable[[Mapping[str, Any]], bool]
    upcast: Optional[Callable[[Record], Record]] = None  # None for the current version


class MigrationChain:
    """Applies upcasts one version at a time until the current schema"""

    def __init__(
        self,
        name: str,
        versions: Sequence[SchemaVersion],
        normalize: Callable[[Record], Record],
    ):
        self.name = name
        # newest first: a record carrying fields of several versions is the newest it matches
        self.versions = sorted(versions, key=lambda v: v.version, reverse=True)
        self.current_version = self.versions[0].version
        self.normalize = normalize

    def detect_version(self, record: Mapping[str, Any]) -> int:
        for schema in self.versions:
            if schema.detect(record):
                return schema.version
        raise SchemaMigrationError(f"{self.name}: record matches no known schema version")

    def migrate(self, record: Mapping[str, Any]) -> Record:
        if not isinstance(record, Mapping):
            raise SchemaMigrationError(f"{self.name}: record is not an object")

        current = dict(record)
        version = self.detect_version(current)
        by_version = {schema.version: schema for schema in self.versions}

        while version != self.current_version:
            current = by_version[version].upcast(current)
            next_version = self.detect_version(current)
            if next_version <= version:
                raise SchemaMigrationError(f"{self.name}: upcast from v{version} did not advance")
            version = next_version

        return self.normalize(current)


def _money_or_zero(value: Any) -> Decimal:
    try:
        amount = to_money(value if value is not None else 0)
    except (InvalidOperation, TypeError, ValueError):
        return Decimal("0")
    return amount if amount.is_finite() else Decimal("0")


def _clamp_day_of_month(value: Any, default: int = 1) -> int:
    try:
        day = int(float(value))
    except (TypeError, ValueError):
        day = default
    return max(1, min(31, day))


def _require_identity(record: Mapping[str, Any]) -> None:
    if not record.get("id") or not record.get("name"):
        raise SchemaMigrationError("record is missing id or name")


# Obligations

def _is_obligation_v3(record: Mapping[str, Any]) -> bool:
    return bool(record.get("firstPaymentDate") and record.get("cadence") and record.get("group"))


def _is_obligation_v2(record: Mapping[str, Any]) -> bool:
    return len(str(record.get("startMonth") or "")[:7]) == 7


def _is_obligation_v1(record: Mapping[str, Any]) -> bool:
    return bool(record.get("dueDate"))


def _obligation_v1_to_v2(record: Record) -> Record:
    _require_identity(record)
    due = str(record["dueDate"])[:10]
    return {
        "id": record["id"],
        "name": record["name"],
        "amount": record.get("amount", 0),
        "accountId": record.get("accountId", ""),
        "categoryId": record.get("categoryId"),
        "startMonth": due[:7],
        "dayOfMonth": due[8:10] or 1,
    }


def _obligation_v2_to_v3(record: Record) -> Record:
    _require_identity(record)
    start_month = str(record["startMonth"])[:7]
    try:
        year, month = parse_month_key(start_month)
    except ValueError as e:
        raise SchemaMigrationError(f"invalid startMonth {start_month!r}") from e
    day = _clamp_day_of_month(record.get("dayOfMonth", record.get("day", 1)))
    return {
        "id": record["id"],
        "name": record["name"],
        "group": ObligationGroup.LIVING.value,
        "groupLabel": None,
        "amount": record.get("amount", 0),
        "cadence": "monthly",
        "customEveryDays": None,
        "firstPaymentDate": clamp_day(year, month, day).isoformat(),
        "accountId": record.get("accountId", ""),
        "categoryId": record.get("categoryId"),
    }


def _normalize_obligation(record: Record) -> Record:
    _require_identity(record)
    cadence = str(record["cadence"])
    if cadence not in CADENCE_NAMES:
        raise SchemaMigrationError(f"unknown cadence {cadence!r}")
    try:
        group = ObligationGroup(record["group"]).value
    except ValueError as e:
        raise SchemaMigrationError(f"unknown group {record['group']!r}") from e
    try:
        first_payment = date.fromisoformat(str(record["firstPaymentDate"])[:10]).isoformat()
    except ValueError as e:
        raise SchemaMigrationError(f"invalid firstPaymentDate {record['firstPaymentDate']!r}") from e

    # a non-positive interval is kept so the obligation projects to nothing
    every_days = record.get("customEveryDays") if cadence == "custom_days" else None
    if every_days is not None:
        try:
            every_days = int(float(every_days))
        except (TypeError, ValueError):
            every_days = None

    return {
        "id": str(record["id"]),
        "name": str(record["name"]),
        "group": group,
        "groupLabel": None if record.get("groupLabel") is None else str(record["groupLabel"]),
        "amount": str(_money_or_zero(record.get("amount"))),
        "cadence": cadence,
        "customEveryDays": every_days,
        "firstPaymentDate": first_payment,
        "accountId": str(record.get("accountId") or ""),
        "categoryId": None if record.get("categoryId") is None else str(record["categoryId"]),
    }


obligation_chain = MigrationChain(
    "obligation",
    [
        SchemaVersion(1, _is_obligation_v1, _obligation_v1_to_v2),
        SchemaVersion(2, _is_obligation_v2, _obligation_v2_to_v3),
        SchemaVersion(3, _is_obligation_v3),
    ],
    normalize=_normalize_obligation,
)


def migrate_obligation_record(record: Mapping[str, Any]) -> Record:
    return obligation_chain.migrate(record)


def obligation_from_record(record: Mapping[str, Any]) -> RecurringObligation:
    """Migrate a stored record of any known version into a RecurringObligation"""
    current = migrate_obligation_record(record)
    return RecurringObligation(
        id=current["id"],
        name=current["name"],
        group=ObligationGroup(current["group"]),
        group_label=current["groupLabel"],
        amount=Decimal(current["amount"]),
        cadence=cadence_from_fields(current["cadence"], current["customEveryDays"]),
        first_payment_date=date.fromisoformat(current["firstPaymentDate"]),
        account_id=current["accountId"],
        category_id=current["categoryId"],
    )


def load_obligations(records: Iterable[Any]) -> List[RecurringObligation]:
    """Migrate a stored list, dropping records that cannot be recovered"""
    obligations = []
    for record in records:
        try:
            obligations.append(obligation_from_record(record))
        except SchemaMigrationError as e:
            logger.warning(f"Dropping unreadable obligation record: {e}")
    return obligations


# Credit card meta

def _is_card_meta_v2(record: Mapping[str, Any]) -> bool:
    return "cycleStartDay" in record and "cycleEndDay" in record


def _is_card_meta_v1(record: Mapping[str, Any]) -> bool:
    return "statementDay" in record


def _card_meta_v1_to_v2(record: Record) -> Record:
    end_day = _clamp_day_of_month(record["statementDay"])
    upgraded = {k: v for k, v in record.items() if k != "statementDay"}
    upgraded["cycleEndDay"] = end_day
    upgraded["cycleStartDay"] = 1 if end_day == 31 else end_day + 1
    upgraded.setdefault("creditLimit", 0)
    return upgraded


def _normalize_card_meta(record: Record) -> Record:
    if record.get("kind", "credit_card") != "credit_card":
        raise SchemaMigrationError(f"not a credit card meta record: kind={record.get('kind')!r}")
    return {
        "kind": "credit_card",
        "paymentDay": _clamp_day_of_month(record.get("paymentDay")),
        "cycleStartDay": _clamp_day_of_month(record.get("cycleStartDay")),
        "cycleEndDay": _clamp_day_of_month(record.get("cycleEndDay")),
        "withdrawAccountId": str(record.get("withdrawAccountId") or ""),
        "creditLimit": str(_money_or_zero(record.get("creditLimit"))),
    }


card_meta_chain = MigrationChain(
    "card_meta",
    [
        SchemaVersion(1, _is_card_meta_v1, _card_meta_v1_to_v2),
        SchemaVersion(2, _is_card_meta_v2),
    ],
    normalize=_normalize_card_meta,
)


def migrate_card_meta_record(record: Mapping[str, Any]) -> Record:
    return card_meta_chain.migrate(record)


def card_meta_from_record(record: Mapping[str, Any]) -> CreditCardCycleMeta:
    current = migrate_card_meta_record(record)
    return CreditCardCycleMeta(
        payment_day=current["paymentDay"],
        cycle_start_day=current["cycleStartDay"],
        cycle_end_day=current["cycleEndDay"],
        credit_limit=Decimal(current["creditLimit"]),
        withdraw_account_id=current["withdrawAccountId"],
    )
