"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple, Union


# Cadence: closed set of recurrence rules

@dataclass(frozen=True)
class Weekly:
    name = "weekly"


@dataclass(frozen=True)
class Monthly:
    name = "monthly"


@dataclass(frozen=True)
class Yearly:
    name = "yearly"


@dataclass(frozen=True)
class CustomDays:
    every_days: int
    name = "custom_days"


Cadence = Union[Weekly, Monthly, Yearly, CustomDays]

CADENCE_NAMES = ("weekly", "monthly", "yearly", "custom_days")


def cadence_from_fields(name: str, every_days: Optional[int] = None) -> Cadence:
    """
    Build a Cadence from its persisted representation.

    A non-positive or missing interval is kept as-is on CustomDays; projection
    treats it as "never due" instead of failing here.
    """
    if name == "weekly":
        return Weekly()
    if name == "monthly":
        return Monthly()
    if name == "yearly":
        return Yearly()
    if name == "custom_days":
        return CustomDays(every_days=int(every_days or 0))
    raise ValueError(f"Unknown cadence: {name!r}")


class ObligationGroup(str, Enum):
    """Category group a bill is filed under"""

    LIVING = "living"
    UTILITY = "utility"
    SUBSCRIPTION = "subscription"
    CUSTOM = "custom"


GROUP_CATEGORY_NAMES = {
    ObligationGroup.LIVING: "Living",
    ObligationGroup.UTILITY: "Utilities",
    ObligationGroup.SUBSCRIPTION: "Subscriptions",
}


class ObligationStatus(str, Enum):
    SCHEDULED = "scheduled"
    PAID = "paid"
    OVERDUE = "overdue"


class RepaymentType(str, Enum):
    """Loan repayment structure, fixed for the loan's lifetime"""

    AMORTIZED = "amortized"
    INTEREST_ONLY = "interest_only"
    PRINCIPAL_EQUAL = "principal_equal"


@dataclass
class RecurringObligation:
    """User-defined recurring bill"""

    id: str
    name: str
    group: ObligationGroup
    amount: Decimal
    cadence: Cadence
    first_payment_date: date  # anchor, never moves
    account_id: str
    group_label: Optional[str] = None  # required when group is CUSTOM
    category_id: Optional[str] = None

    @property
    def group_name(self) -> str:
        """Display name of the parent category for this bill's group"""
        if self.group == ObligationGroup.CUSTOM:
            return (self.group_label or "").strip() or "Other"
        return GROUP_CATEGORY_NAMES[self.group]


@dataclass
class ObligationOccurrence:
    """One dated instance of an obligation (derived, never persisted)"""

    obligation: RecurringObligation
    due_date: date
    status: ObligationStatus
    account_name: Optional[str] = None
    pending_post: bool = False  # paid only by the balance heuristic, not yet in the ledger


@dataclass
class Loan:
    """Loan with its mutable repayment state"""

    id: str
    name: str
    principal: Decimal
    annual_rate: Decimal  # percent, e.g. Decimal("4.5")
    term_months: int
    start_date: date
    due_day: int
    account_id: str
    repayment_type: RepaymentType
    remaining_principal: Decimal
    monthly_payment: Decimal
    paid_months: int = 0
    next_due_date: Optional[date] = None
    settled_at: Optional[date] = None
    category_id: Optional[str] = None

    @property
    def is_settled(self) -> bool:
        return self.next_due_date is None


@dataclass
class LoanPayment:
    """One scheduled loan period split into principal and interest"""

    period: int  # 1-based
    due_date: date
    payment: Decimal
    principal_portion: Decimal
    interest_portion: Decimal
    remaining_after: Decimal


@dataclass
class CreditCardCycleMeta:
    """Statement cycle configuration attached to a credit card account"""

    payment_day: int
    cycle_start_day: int
    cycle_end_day: int
    credit_limit: Decimal = Decimal("0")
    withdraw_account_id: str = ""

    @property
    def wraps(self) -> bool:
        return self.cycle_start_day > self.cycle_end_day


@dataclass
class BillingWindow:
    start: date
    end: date


@dataclass
class LedgerTransaction:
    """Ledger entry as seen by the scheduler"""

    id: str
    type: str  # "expense" or "income"
    amount: Decimal
    account_id: Optional[str]
    date: date
    memo: Optional[str] = None
    category_id: Optional[str] = None


# failure reason when the paying account no longer exists
ACCOUNT_MISSING = "account missing"


@dataclass
class PostingResult:
    """Outcome of one autopay / loan-advance run"""

    transaction_ids: List[str] = field(default_factory=list)
    skipped: List[date] = field(default_factory=list)
    failures: List[Tuple[date, str]] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failures)
