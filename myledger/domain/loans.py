"""Loan repayment schedules: amortized, interest-only and principal-equal"""

import dataclasses
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, assert_never

from myledger.domain.exceptions import InvalidLoanTermsError, LedgerWriteError
from myledger.domain.markers import loan_payment_marker, loan_settlement_marker
from myledger.domain.models import ACCOUNT_MISSING, Loan, LoanPayment, PostingResult, RepaymentType
from myledger.domain.ports import AccountStore, LedgerStore
from myledger.utils.date_utils import add_months_keep_day, clamp_day
from myledger.utils.money import MoneyInput, to_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Every month has a 28th; later due days would drift
MAX_DUE_DAY = 28


def monthly_rate(annual_rate: Decimal) -> Decimal:
    """Monthly interest rate from an annual percentage (4.5 -> 0.00375)"""
    return Decimal(annual_rate) / 12 / 100


def effective_due_day(due_day: int) -> int:
    return max(1, min(MAX_DUE_DAY, int(due_day or 1)))


def first_due_date(start_date: date, due_day: int) -> date:
    """First due day on or after the start date"""
    candidate = clamp_day(start_date.year, start_date.month, effective_due_day(due_day))
    if candidate < start_date:
        return add_months_keep_day(start_date, effective_due_day(due_day))
    return candidate


def calculate_monthly_payment(
    principal: Decimal,
    annual_rate: Decimal,
    term_months: int,
    repayment_type: RepaymentType,
) -> Decimal:
    """
    First-period payment for a fresh loan, rounded once to the minor unit.

    amortized:       P * r / (1 - (1 + r)^-n), or P / n when r == 0
    interest_only:   P * r (principal is repaid as a balloon at term end)
    principal_equal: P / n + P * r (decreases as the balance shrinks)
    """
    r = monthly_rate(annual_rate)
    match repayment_type:
        case RepaymentType.AMORTIZED:
            if r == 0:
                return to_money(principal / term_months)
            return to_money(principal * r / (1 - (1 + r) ** -term_months))
        case RepaymentType.INTEREST_ONLY:
            return to_money(principal * r)
        case RepaymentType.PRINCIPAL_EQUAL:
            return to_money(principal / term_months + principal * r)
        case _:
            assert_never(repayment_type)


def _validate_terms(principal: Decimal, rate: Decimal, term_months: int, due_day: int) -> None:
    if principal <= 0:
        raise InvalidLoanTermsError("Principal must be positive")
    if rate < 0:
        raise InvalidLoanTermsError("Interest rate cannot be negative")
    if term_months <= 0:
        raise InvalidLoanTermsError("Term must be at least one month")
    if not 1 <= due_day <= 31:
        raise InvalidLoanTermsError("Due day must be between 1 and 31")


def open_loan(
    *,
    id: str,
    name: str,
    principal: MoneyInput,
    annual_rate: MoneyInput,
    term_months: int,
    start_date: date,
    due_day: int,
    account_id: str,
    repayment_type: RepaymentType,
    category_id: Optional[str] = None,
) -> Loan:
    """
    Create a loan with its full schedule state.

    Raises:
        InvalidLoanTermsError: principal <= 0, negative rate, term <= 0 or due day outside 1-31
    """
    principal = to_money(principal)
    rate = Decimal(str(annual_rate))
    _validate_terms(principal, rate, term_months, due_day)

    loan = Loan(
        id=id,
        name=name,
        principal=principal,
        annual_rate=rate,
        term_months=term_months,
        start_date=start_date,
        due_day=due_day,
        account_id=account_id,
        repayment_type=repayment_type,
        remaining_principal=principal,
        monthly_payment=calculate_monthly_payment(principal, rate, term_months, repayment_type),
        paid_months=0,
        next_due_date=first_due_date(start_date, due_day),
        category_id=category_id,
    )
    _refresh_monthly_payment(loan)
    return loan


def update_terms(
    loan: Loan,
    *,
    name: Optional[str] = None,
    principal: Optional[MoneyInput] = None,
    annual_rate: Optional[MoneyInput] = None,
    term_months: Optional[int] = None,
    start_date: Optional[date] = None,
    due_day: Optional[int] = None,
    account_id: Optional[str] = None,
    repayment_type: Optional[RepaymentType] = None,
    category_id: Optional[str] = None,
) -> Loan:
    """
    Edit a loan in place, keeping the periods already paid.

    Omitted fields keep their value. The next due date is rebuilt from the
    new start date and due day, skipping `paid_months` periods, so a period
    that was posted is never due again. A new principal rescales the
    remaining balance to the share of the term still unpaid (interest-only
    keeps the whole principal outstanding). The first-period payment is
    recomputed and a settled loan with periods left is reopened.

    Raises:
        InvalidLoanTermsError: the merged terms are invalid; the loan is unchanged
    """
    new_principal = loan.principal if principal is None else to_money(principal)
    rate = loan.annual_rate if annual_rate is None else Decimal(str(annual_rate))
    term = loan.term_months if term_months is None else term_months
    day = loan.due_day if due_day is None else due_day
    start = loan.start_date if start_date is None else start_date
    kind = loan.repayment_type if repayment_type is None else repayment_type
    _validate_terms(new_principal, rate, term, day)

    if new_principal != loan.principal:
        if kind == RepaymentType.INTEREST_ONLY:
            loan.remaining_principal = new_principal
        else:
            repaid_share = Decimal(min(loan.paid_months, term)) / term
            loan.remaining_principal = max(to_money(new_principal - new_principal * repaid_share), ZERO)

    if name is not None:
        loan.name = name
    if account_id is not None:
        loan.account_id = account_id
    if category_id is not None:
        loan.category_id = category_id
    loan.principal = new_principal
    loan.annual_rate = rate
    loan.term_months = term
    loan.due_day = day
    loan.start_date = start
    loan.repayment_type = kind
    loan.monthly_payment = calculate_monthly_payment(new_principal, rate, term, kind)

    last_paid_due = None
    next_due = first_due_date(start, day)
    for _ in range(loan.paid_months):
        last_paid_due = next_due
        next_due = add_months_keep_day(next_due, effective_due_day(day))

    if loan.paid_months >= term or loan.remaining_principal == 0:
        _mark_settled(loan, loan.settled_at or last_paid_due or start)
        return loan

    loan.next_due_date = next_due
    loan.settled_at = None
    _refresh_monthly_payment(loan)
    return loan


def compute_period_payment(loan: Loan) -> Optional[LoanPayment]:
    """
    Split the next scheduled payment into principal and interest.

    The final period, and any period whose principal would exceed the
    balance, pays off the exact remainder so the balance lands on zero.

    Returns:
        The next LoanPayment, or None for a settled loan
    """
    if loan.next_due_date is None:
        return None

    remaining = loan.remaining_principal
    period = loan.paid_months + 1
    is_final = period >= loan.term_months
    interest = to_money(remaining * monthly_rate(loan.annual_rate))

    match loan.repayment_type:
        case RepaymentType.AMORTIZED:
            principal_portion = max(loan.monthly_payment - interest, ZERO)
            if is_final or principal_portion > remaining:
                principal_portion = remaining
        case RepaymentType.INTEREST_ONLY:
            principal_portion = remaining if is_final else ZERO
        case RepaymentType.PRINCIPAL_EQUAL:
            periods_left = loan.term_months - loan.paid_months
            principal_portion = remaining if is_final else min(to_money(remaining / periods_left), remaining)
        case _:
            assert_never(loan.repayment_type)

    return LoanPayment(
        period=period,
        due_date=loan.next_due_date,
        payment=principal_portion + interest,
        principal_portion=principal_portion,
        interest_portion=interest,
        remaining_after=remaining - principal_portion,
    )


def apply_payment(loan: Loan, payment: LoanPayment) -> None:
    """Advance loan state past one scheduled period"""
    loan.paid_months += 1
    loan.remaining_principal = max(loan.remaining_principal - payment.principal_portion, ZERO)

    if loan.remaining_principal == 0 or loan.paid_months >= loan.term_months:
        _mark_settled(loan, payment.due_date)
        return

    loan.next_due_date = add_months_keep_day(payment.due_date, effective_due_day(loan.due_day))
    _refresh_monthly_payment(loan)


def build_schedule(loan: Loan) -> List[LoanPayment]:
    """Project the remaining periods without touching the loan"""
    projected = dataclasses.replace(loan)
    schedule = []
    while projected.next_due_date is not None and projected.paid_months < projected.term_months:
        payment = compute_period_payment(projected)
        schedule.append(payment)
        apply_payment(projected, payment)
    return schedule


def _mark_settled(loan: Loan, settled_on: date) -> None:
    loan.next_due_date = None
    loan.settled_at = settled_on
    loan.monthly_payment = ZERO


def _refresh_monthly_payment(loan: Loan) -> None:
    # amortized keeps the payment fixed at creation
    if loan.repayment_type != RepaymentType.AMORTIZED:
        loan.monthly_payment = compute_period_payment(loan).payment


class LoanScheduleEngine:
    """Posts loan payments into the ledger and keeps loan state in step"""

    def __init__(self, ledger: LedgerStore, accounts: AccountStore):
        self.ledger = ledger
        self.accounts = accounts

    def advance_due_payments(self, loan: Loan, through_date: date) -> PostingResult:
        """
        Post every scheduled payment due on or before `through_date`.

        Each period is posted once, keyed by the AUTO_LOAN marker; an existing
        marker means the ledger write already happened and only loan state
        advances. Zero payments (interest-only at 0%) advance without posting.
        A ledger failure stops the advance at that period.
        """
        result = PostingResult()
        if loan.next_due_date is None or loan.next_due_date > through_date:
            return result

        if self.accounts.get_balance(loan.account_id) is None:
            logger.warning(
                "Loan advance blocked: paying account not found",
                extra={"loan_id": loan.id, "account_id": loan.account_id},
            )
            result.failures.append((loan.next_due_date, ACCOUNT_MISSING))
            return result

        while loan.next_due_date is not None and loan.next_due_date <= through_date:
            payment = compute_period_payment(loan)

            if payment.payment > 0:
                marker = loan_payment_marker(loan.id, payment.period, payment.due_date)
                if self.ledger.find_by_memo(marker) is not None:
                    result.skipped.append(payment.due_date)
                else:
                    try:
                        transaction = self.ledger.create_transaction(
                            type="expense",
                            amount=payment.payment,
                            category_id=loan.category_id,
                            account_id=loan.account_id,
                            date=payment.due_date,
                            memo=marker,
                        )
                    except LedgerWriteError as e:
                        logger.error(
                            f"Loan payment posting failed: {e}",
                            extra={"loan_id": loan.id, "period": payment.period},
                        )
                        result.failures.append((payment.due_date, str(e)))
                        break
                    result.transaction_ids.append(transaction.id)

            apply_payment(loan, payment)

        return result

    def settle(
        self,
        loan: Loan,
        settled_on: date,
        amount: Optional[MoneyInput] = None,
        account_id: Optional[str] = None,
    ) -> PostingResult:
        """
        Early or partial payoff.

        Periods due on or before `settled_on` are posted first, so the payoff
        applies to the balance left after them; if that catch-up fails the
        settlement is not attempted. The amount defaults to the whole
        remaining principal and is clamped to it. A full payoff settles the
        loan; a partial one leaves the schedule running on the smaller
        balance (amortized keeps its fixed payment and finishes sooner, the
        other types recompute). Settlement is extra principal, so
        paid_months only moves with the catch-up.

        Raises:
            LedgerWriteError: the payoff transaction could not be recorded
        """
        result = self.advance_due_payments(loan, settled_on)
        if result.failures:
            return result

        remaining_before = loan.remaining_principal
        if loan.next_due_date is None or remaining_before <= 0:
            return result

        pay = remaining_before if amount is None else min(max(to_money(amount), ZERO), remaining_before)
        if pay <= 0:
            return result

        pay_account = account_id or loan.account_id
        if self.accounts.get_balance(pay_account) is None:
            result.failures.append((settled_on, ACCOUNT_MISSING))
            return result

        marker = loan_settlement_marker(loan.id, settled_on, remaining_before)
        if self.ledger.find_by_memo(marker) is None:
            transaction = self.ledger.create_transaction(
                type="expense",
                amount=pay,
                category_id=loan.category_id,
                account_id=pay_account,
                date=settled_on,
                memo=marker,
            )
            result.transaction_ids.append(transaction.id)
        else:
            result.skipped.append(settled_on)

        loan.remaining_principal = remaining_before - pay
        if loan.remaining_principal == 0:
            _mark_settled(loan, settled_on)
        else:
            _refresh_monthly_payment(loan)
        return result
