"""Loan endpoints: create, inspect, edit terms, advance due payments, settle"""

import logging
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session

from myledger.api.dependencies import get_loan_engine, get_request_id, get_today
from myledger.api.v1.schemas import (
    LoanCreateRequest,
    LoanResponse,
    LoanSettleRequest,
    LoanUpdateRequest,
    LoanUpdateResponse,
    PostingResultSchema,
)
from myledger.domain.exceptions import InvalidLoanTermsError, LedgerWriteError
from myledger.domain.loans import LoanScheduleEngine, build_schedule, open_loan, update_terms
from myledger.domain.models import ACCOUNT_MISSING, Loan
from myledger.infrastructure.database.models import new_id
from myledger.infrastructure.database.repositories import (
    AccountRepository,
    CategoryRepository,
    LoanRepository,
)
from myledger.infrastructure.database.session import get_db
from myledger.infrastructure.observability.logging import log_loan_update
from myledger.infrastructure.observability.metrics import record_loan_postings

router = APIRouter()

LOAN_CATEGORY_GROUP = "Loans"


def _get_loan_or_404(repo: LoanRepository, loan_id: str) -> Loan:
    loan = repo.get(loan_id)
    if loan is None:
        raise HTTPException(status_code=404, detail="Loan not found")
    return loan


@router.post("/loans", response_model=LoanResponse, status_code=201)
def create_loan(request_body: LoanCreateRequest, db: Session = Depends(get_db)):
    """Open a loan and return it with its projected schedule"""
    if AccountRepository(db).get_account(request_body.account_id) is None:
        raise HTTPException(status_code=404, detail="Account not found")

    category_id = request_body.category_id or CategoryRepository(db).ensure_leaf_category(
        LOAN_CATEGORY_GROUP, request_body.name
    )
    try:
        loan = open_loan(
            id=new_id(),
            name=request_body.name,
            principal=request_body.principal,
            annual_rate=request_body.annual_rate,
            term_months=request_body.term_months,
            start_date=request_body.start_date,
            due_day=request_body.due_day,
            account_id=request_body.account_id,
            repayment_type=request_body.repayment_type,
            category_id=category_id,
        )
    except InvalidLoanTermsError as e:
        db.rollback()
        raise HTTPException(status_code=422, detail=str(e))

    LoanRepository(db).save(loan)
    db.commit()
    return LoanResponse.from_domain(loan, build_schedule(loan))


@router.get("/loans", response_model=List[LoanResponse])
def list_loans(db: Session = Depends(get_db)):
    """All loans, without schedules"""
    return [LoanResponse.from_domain(loan, []) for loan in LoanRepository(db).list_all()]


@router.get("/loans/{loan_id}", response_model=LoanResponse)
def get_loan(loan_id: str, db: Session = Depends(get_db)):
    loan = _get_loan_or_404(LoanRepository(db), loan_id)
    return LoanResponse.from_domain(loan, build_schedule(loan))


@router.put("/loans/{loan_id}", response_model=LoanResponse)
def update_loan(loan_id: str, request_body: LoanUpdateRequest, request: Request, db: Session = Depends(get_db)):
    """
    Edit loan terms; omitted fields keep their value.

    Periods already paid stay paid: the schedule resumes after them on the
    new terms.
    """
    repo = LoanRepository(db)
    loan = _get_loan_or_404(repo, loan_id)

    changes = request_body.model_dump(exclude_unset=True)
    if "account_id" in changes and AccountRepository(db).get_account(changes["account_id"]) is None:
        raise HTTPException(status_code=404, detail="Account not found")

    try:
        update_terms(loan, **changes)
    except InvalidLoanTermsError as e:
        raise HTTPException(status_code=422, detail=str(e))

    repo.save(loan)
    db.commit()

    logging.info(
        "Loan terms updated",
        extra={
            "request_id": get_request_id(request),
            "loan_id": loan.id,
            "fields": sorted(changes),
            "remaining_principal": str(loan.remaining_principal),
            "next_due_date": loan.next_due_date.isoformat() if loan.next_due_date else None,
        },
    )
    return LoanResponse.from_domain(loan, build_schedule(loan))


@router.post("/loans/{loan_id}/advance", response_model=LoanUpdateResponse)
def advance_loan(
    loan_id: str,
    request: Request,
    through: Optional[date] = Query(None, description="Post payments due up to this date, defaults to today"),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
    engine: LoanScheduleEngine = Depends(get_loan_engine),
):
    """
    Post every scheduled payment due through the given date.

    Periods posted before a ledger failure stay posted and the loan state
    is saved up to them; the failure shows in the posting result.
    """
    repo = LoanRepository(db)
    loan = _get_loan_or_404(repo, loan_id)

    result = engine.advance_due_payments(loan, through or today)
    repo.save(loan)
    db.commit()

    record_loan_postings(loan.repayment_type.value, "scheduled", result)
    log_loan_update(
        get_request_id(request),
        loan.id,
        "advance",
        result,
        str(loan.remaining_principal),
        loan.paid_months,
    )
    return LoanUpdateResponse(
        loan=LoanResponse.from_domain(loan, build_schedule(loan)),
        posting=PostingResultSchema.from_domain(result),
    )


@router.post("/loans/{loan_id}/settle", response_model=LoanUpdateResponse)
def settle_loan(
    loan_id: str,
    request_body: LoanSettleRequest,
    request: Request,
    db: Session = Depends(get_db),
    engine: LoanScheduleEngine = Depends(get_loan_engine),
):
    """
    Early payoff, full by default or partial when an amount is given.

    Periods already due by the settlement date are posted first; nothing is
    recorded when any of those postings fails.
    """
    request_id = get_request_id(request)
    repo = LoanRepository(db)
    loan = _get_loan_or_404(repo, loan_id)

    try:
        result = engine.settle(
            loan,
            request_body.settled_on,
            amount=request_body.amount,
            account_id=request_body.account_id,
        )
    except LedgerWriteError as e:
        db.rollback()
        logging.error(
            f"Loan settlement failed: {e}",
            extra={"request_id": request_id, "loan_id": loan_id},
        )
        raise HTTPException(status_code=503, detail="Ledger unavailable, settlement not recorded")

    if result.failures:
        db.rollback()
        reasons = [reason for _, reason in result.failures]
        if ACCOUNT_MISSING in reasons:
            raise HTTPException(status_code=404, detail="Paying account not found")
        logging.error(
            f"Loan settlement stopped, due periods could not be posted: {reasons}",
            extra={"request_id": request_id, "loan_id": loan_id},
        )
        raise HTTPException(status_code=503, detail="Ledger unavailable, settlement not recorded")

    repo.save(loan)
    db.commit()

    record_loan_postings(loan.repayment_type.value, "settlement", result)
    log_loan_update(
        request_id,
        loan.id,
        "settle",
        result,
        str(loan.remaining_principal),
        loan.paid_months,
    )
    return LoanUpdateResponse(
        loan=LoanResponse.from_domain(loan, build_schedule(loan)),
        posting=PostingResultSchema.from_domain(result),
    )


@router.delete("/loans/{loan_id}", status_code=204)
def delete_loan(loan_id: str, db: Session = Depends(get_db)):
    """Remove a loan; its posted payments stay in the ledger"""
    if not LoanRepository(db).delete(loan_id):
        raise HTTPException(status_code=404, detail="Loan not found")
    db.commit()
    return Response(status_code=204)
