"""Pydantic schemas for API request/response validation"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, model_validator

from myledger.domain.models import (
    CreditCardCycleMeta,
    Loan,
    LoanPayment,
    ObligationGroup,
    ObligationOccurrence,
    PostingResult,
    RecurringObligation,
    RepaymentType,
)

MONTH_KEY_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


def check_obligation_fields(
    cadence: str,
    custom_every_days: Optional[int],
    group: ObligationGroup,
    group_label: Optional[str],
) -> None:
    """Interval only with custom_days, label only with the custom group"""
    if (cadence == "custom_days") != (custom_every_days is not None):
        raise ValueError("custom_every_days is required exactly when cadence is custom_days")
    if custom_every_days is not None and custom_every_days <= 0:
        raise ValueError("custom_every_days must be a positive integer")
    has_label = bool(group_label and group_label.strip())
    if (group == ObligationGroup.CUSTOM) != has_label:
        raise ValueError("group_label is required exactly when group is custom")


class ObligationCreateRequest(BaseModel):
    """Request body for POST /v1/bills"""

    name: str = Field(..., min_length=1)
    group: ObligationGroup
    group_label: Optional[str] = None
    amount: Decimal = Field(..., gt=0)
    cadence: Literal["weekly", "monthly", "yearly", "custom_days"]
    custom_every_days: Optional[int] = None
    first_payment_date: date
    account_id: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_conditional_fields(self) -> "ObligationCreateRequest":
        check_obligation_fields(self.cadence, self.custom_every_days, self.group, self.group_label)
        return self


class ObligationUpdateRequest(BaseModel):
    """Request body for PUT /v1/bills/{id}; omitted fields keep their value"""

    name: Optional[str] = Field(None, min_length=1)
    group: Optional[ObligationGroup] = None
    group_label: Optional[str] = None
    amount: Optional[Decimal] = Field(None, gt=0)
    cadence: Optional[Literal["weekly", "monthly", "yearly", "custom_days"]] = None
    custom_every_days: Optional[int] = None
    first_payment_date: Optional[date] = None
    account_id: Optional[str] = Field(None, min_length=1)


class ObligationSchema(BaseModel):
    id: str
    name: str
    group: ObligationGroup
    group_label: Optional[str] = None
    amount: Decimal
    cadence: str
    custom_every_days: Optional[int] = None
    first_payment_date: date
    account_id: str
    category_id: Optional[str] = None

    @classmethod
    def from_domain(cls, obligation: RecurringObligation) -> "ObligationSchema":
        return cls(
            id=obligation.id,
            name=obligation.name,
            group=obligation.group,
            group_label=obligation.group_label,
            amount=obligation.amount,
            cadence=obligation.cadence.name,
            custom_every_days=getattr(obligation.cadence, "every_days", None),
            first_payment_date=obligation.first_payment_date,
            account_id=obligation.account_id,
            category_id=obligation.category_id,
        )


class OccurrenceSchema(BaseModel):
    """Single dated bill in a month view"""

    obligation_id: str
    name: str
    amount: Decimal
    due_date: date
    status: str
    pending_post: bool
    account_name: Optional[str] = None

    @classmethod
    def from_domain(cls, occurrence: ObligationOccurrence) -> "OccurrenceSchema":
        return cls(
            obligation_id=occurrence.obligation.id,
            name=occurrence.obligation.name,
            amount=occurrence.obligation.amount,
            due_date=occurrence.due_date,
            status=occurrence.status.value,
            pending_post=occurrence.pending_post,
            account_name=occurrence.account_name,
        )


class MonthBillsResponse(BaseModel):
    """Response for GET /v1/bills"""

    month: str
    occurrences: List[OccurrenceSchema]


class PostingFailureSchema(BaseModel):
    due_date: date
    reason: str


class PostingResultSchema(BaseModel):
    transaction_ids: List[str]
    skipped: List[date]
    failures: List[PostingFailureSchema]
    partial: bool

    @classmethod
    def from_domain(cls, result: PostingResult) -> "PostingResultSchema":
        return cls(
            transaction_ids=result.transaction_ids,
            skipped=result.skipped,
            failures=[PostingFailureSchema(due_date=d, reason=r) for d, r in result.failures],
            partial=result.partial,
        )


class AutopayResponse(BaseModel):
    """Response for POST /v1/bills/autopay"""

    through_date: date
    results: Dict[str, PostingResultSchema]  # keyed by obligation id
    partial: bool


class ImportRequest(BaseModel):
    """Legacy client-side bill records, any schema version"""

    records: List[Dict[str, Any]]


class ImportResponse(BaseModel):
    imported: List[ObligationSchema]
    rejected: int


class LoanCreateRequest(BaseModel):
    """Request body for POST /v1/loans"""

    name: str = Field(..., min_length=1)
    principal: Decimal = Field(..., gt=0)
    annual_rate: Decimal = Field(..., ge=0)
    term_months: int = Field(..., gt=0)
    start_date: date
    due_day: int = Field(..., ge=1, le=31)
    account_id: str = Field(..., min_length=1)
    category_id: Optional[str] = None
    repayment_type: RepaymentType = RepaymentType.AMORTIZED


class LoanUpdateRequest(BaseModel):
    """Request body for PUT /v1/loans/{id}; omitted fields keep their value"""

    name: Optional[str] = Field(None, min_length=1)
    principal: Optional[Decimal] = Field(None, gt=0)
    annual_rate: Optional[Decimal] = Field(None, ge=0)
    term_months: Optional[int] = Field(None, gt=0)
    start_date: Optional[date] = None
    due_day: Optional[int] = Field(None, ge=1, le=31)
    account_id: Optional[str] = Field(None, min_length=1)
    category_id: Optional[str] = None
    repayment_type: Optional[RepaymentType] = None


class LoanSettleRequest(BaseModel):
    settled_on: date
    amount: Optional[Decimal] = Field(None, gt=0)  # defaults to the whole remaining principal
    account_id: Optional[str] = None


class LoanPaymentSchema(BaseModel):
    period: int
    due_date: date
    payment: Decimal
    principal_portion: Decimal
    interest_portion: Decimal
    remaining_after: Decimal

    @classmethod
    def from_domain(cls, payment: LoanPayment) -> "LoanPaymentSchema":
        return cls(**payment.__dict__)


class LoanResponse(BaseModel):
    """Loan terms, state and the projected remaining schedule"""

    id: str
    name: str
    principal: Decimal
    annual_rate: Decimal
    term_months: int
    start_date: date
    due_day: int
    account_id: str
    category_id: Optional[str] = None
    repayment_type: RepaymentType
    remaining_principal: Decimal
    monthly_payment: Decimal
    paid_months: int
    next_due_date: Optional[date] = None
    settled_at: Optional[date] = None
    schedule: List[LoanPaymentSchema] = []

    @classmethod
    def from_domain(cls, loan: Loan, schedule: List[LoanPayment]) -> "LoanResponse":
        return cls(
            **{k: v for k, v in loan.__dict__.items()},
            schedule=[LoanPaymentSchema.from_domain(p) for p in schedule],
        )


class LoanUpdateResponse(BaseModel):
    loan: LoanResponse
    posting: PostingResultSchema


class CardMetaSchema(BaseModel):
    payment_day: int
    cycle_start_day: int
    cycle_end_day: int
    credit_limit: Decimal
    withdraw_account_id: str

    @classmethod
    def from_domain(cls, meta: CreditCardCycleMeta) -> "CardMetaSchema":
        return cls(**meta.__dict__)


class AccountCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    kind: str = "bank"
    balance: Decimal = Decimal("0")


class AccountResponse(BaseModel):
    id: str
    name: str
    kind: str
    balance: Decimal
    card_meta: Optional[CardMetaSchema] = None


class BillingCycleResponse(BaseModel):
    """Response for GET /v1/accounts/{id}/billing-cycle"""

    account_id: str
    due_month: str
    start: date
    end: date
    payment_due_date: date
    statement_total: Decimal
