"""Account endpoints: creation, credit card cycle meta and billing windows"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from myledger.api.v1.schemas import (
    MONTH_KEY_PATTERN,
    AccountCreateRequest,
    AccountResponse,
    BillingCycleResponse,
    CardMetaSchema,
)
from myledger.domain.credit_cycle import cycle_range_for_due_month, payment_due_date, statement_total
from myledger.domain.exceptions import SchemaMigrationError
from myledger.infrastructure.database.repositories import AccountRepository, LedgerRepository
from myledger.infrastructure.database.session import get_db
from myledger.utils.money import to_money

router = APIRouter()


def _account_response(repo: AccountRepository, account) -> AccountResponse:
    meta = repo.get_card_meta(account.id)
    return AccountResponse(
        id=account.id,
        name=account.name,
        kind=account.kind,
        balance=to_money(account.balance),
        card_meta=CardMetaSchema.from_domain(meta) if meta else None,
    )


@router.post("/accounts", response_model=AccountResponse, status_code=201)
def create_account(request_body: AccountCreateRequest, db: Session = Depends(get_db)):
    repo = AccountRepository(db)
    account = repo.create_account(request_body.name, request_body.kind, to_money(request_body.balance))
    db.commit()
    return _account_response(repo, account)


@router.get("/accounts/{account_id}", response_model=AccountResponse)
def get_account(account_id: str, db: Session = Depends(get_db)):
    repo = AccountRepository(db)
    account = repo.get_account(account_id)
    if account is None:
        raise HTTPException(status_code=404, detail="Account not found")
    return _account_response(repo, account)


@router.put("/accounts/{account_id}/card-meta", response_model=CardMetaSchema)
def put_card_meta(account_id: str, record: Dict[str, Any], db: Session = Depends(get_db)):
    """
    Store credit card cycle meta.

    Accepts the record in any known schema version (a legacy single
    statementDay included) and stores it migrated to the current one.
    """
    repo = AccountRepository(db)
    account = repo.get_account(account_id)
    if account is None:
        raise HTTPException(status_code=404, detail="Account not found")

    try:
        meta = repo.save_card_meta(account, record)
    except SchemaMigrationError as e:
        db.rollback()
        raise HTTPException(status_code=422, detail=str(e))

    db.commit()
    return CardMetaSchema.from_domain(meta)


@router.get("/accounts/{account_id}/billing-cycle", response_model=BillingCycleResponse)
def get_billing_cycle(
    account_id: str,
    due_month: str = Query(..., pattern=MONTH_KEY_PATTERN, description="YYYY-MM of the payment"),
    db: Session = Depends(get_db),
):
    """Usage window billed in `due_month`, its payment date and charged total"""
    meta = AccountRepository(db).get_card_meta(account_id)
    if meta is None:
        raise HTTPException(status_code=404, detail="No credit card meta for this account")

    window = cycle_range_for_due_month(due_month, meta)
    return BillingCycleResponse(
        account_id=account_id,
        due_month=due_month,
        start=window.start,
        end=window.end,
        payment_due_date=payment_due_date(due_month, meta),
        statement_total=statement_total(LedgerRepository(db), account_id, due_month, meta),
    )
