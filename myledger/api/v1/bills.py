"""Recurring bills: month view, autopay, definitions and legacy import"""

import logging
import time
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session

from myledger.api.dependencies import get_autopay_poster, get_request_id, get_status_resolver, get_today
from myledger.api.v1.schemas import (
    MONTH_KEY_PATTERN,
    AutopayResponse,
    ImportRequest,
    ImportResponse,
    MonthBillsResponse,
    ObligationCreateRequest,
    ObligationSchema,
    ObligationUpdateRequest,
    OccurrenceSchema,
    PostingResultSchema,
    check_obligation_fields,
)
from myledger.domain.autopay import AutopayPoster
from myledger.domain.migrations import load_obligations
from myledger.domain.models import ObligationGroup, RecurringObligation, cadence_from_fields
from myledger.domain.status import StatusResolver
from myledger.infrastructure.database.models import new_id
from myledger.infrastructure.database.repositories import (
    AccountRepository,
    CategoryRepository,
    ObligationRepository,
)
from myledger.infrastructure.database.session import get_db
from myledger.infrastructure.observability.logging import log_autopay_run
from myledger.infrastructure.observability.metrics import record_autopay
from myledger.utils.date_utils import month_key
from myledger.utils.money import to_money

router = APIRouter()


@router.post("/bills", response_model=ObligationSchema, status_code=201)
def create_bill(request_body: ObligationCreateRequest, db: Session = Depends(get_db)):
    """Register a recurring bill and link it to its expense category"""
    if AccountRepository(db).get_account(request_body.account_id) is None:
        raise HTTPException(status_code=404, detail="Account not found")

    obligation = RecurringObligation(
        id=new_id(),
        name=request_body.name,
        group=request_body.group,
        group_label=request_body.group_label,
        amount=to_money(request_body.amount),
        cadence=cadence_from_fields(request_body.cadence, request_body.custom_every_days),
        first_payment_date=request_body.first_payment_date,
        account_id=request_body.account_id,
    )
    obligation.category_id = CategoryRepository(db).ensure_leaf_category(obligation.group_name, obligation.name)

    ObligationRepository(db).save(obligation)
    db.commit()
    return ObligationSchema.from_domain(obligation)


@router.put("/bills/{bill_id}", response_model=ObligationSchema)
def update_bill(bill_id: str, request_body: ObligationUpdateRequest, db: Session = Depends(get_db)):
    """
    Edit a bill definition; omitted fields keep their value.

    Renaming or regrouping links the bill to the matching expense category.
    Transactions already posted keep their category.
    """
    repo = ObligationRepository(db)
    obligation = repo.get(bill_id)
    if obligation is None:
        raise HTTPException(status_code=404, detail="Bill not found")

    changes = request_body.model_dump(exclude_unset=True)
    group = changes.get("group", obligation.group)
    group_label = changes.get("group_label", obligation.group_label)
    if group != ObligationGroup.CUSTOM and "group_label" not in changes:
        group_label = None
    cadence = changes.get("cadence", obligation.cadence.name)
    every_days = changes.get("custom_every_days", getattr(obligation.cadence, "every_days", None))
    if cadence != "custom_days" and "custom_every_days" not in changes:
        every_days = None
    try:
        check_obligation_fields(cadence, every_days, group, group_label)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    account_id = changes.get("account_id", obligation.account_id)
    if AccountRepository(db).get_account(account_id) is None:
        raise HTTPException(status_code=404, detail="Account not found")

    previous_category = (obligation.group_name, obligation.name)
    obligation.name = changes.get("name", obligation.name)
    obligation.group = group
    obligation.group_label = group_label
    obligation.amount = to_money(changes.get("amount", obligation.amount))
    obligation.cadence = cadence_from_fields(cadence, every_days)
    obligation.first_payment_date = changes.get("first_payment_date", obligation.first_payment_date)
    obligation.account_id = account_id
    if obligation.category_id is None or (obligation.group_name, obligation.name) != previous_category:
        obligation.category_id = CategoryRepository(db).ensure_leaf_category(obligation.group_name, obligation.name)

    repo.save(obligation)
    db.commit()
    return ObligationSchema.from_domain(obligation)


@router.get("/bills", response_model=MonthBillsResponse)
def get_month_bills(
    month: Optional[str] = Query(None, pattern=MONTH_KEY_PATTERN, description="YYYY-MM, defaults to current month"),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
    resolver: StatusResolver = Depends(get_status_resolver),
):
    """
    Every bill occurrence of a month with its derived status.

    Status is recomputed on each call from the ledger and account balance;
    nothing here writes.
    """
    month = month or month_key(today)
    occurrences = []
    for obligation in ObligationRepository(db).list_all():
        occurrences.extend(resolver.occurrences_for_month(obligation, month, today))
    occurrences.sort(key=lambda o: (o.due_date, o.obligation.name))

    return MonthBillsResponse(
        month=month,
        occurrences=[OccurrenceSchema.from_domain(o) for o in occurrences],
    )


@router.post("/bills/autopay", response_model=AutopayResponse)
def run_autopay(
    request: Request,
    through: Optional[date] = Query(None, description="Post occurrences due up to this date, defaults to today"),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
    poster: AutopayPoster = Depends(get_autopay_poster),
):
    """
    Post past-due occurrences of the current month for every bill.

    Safe to call on every page load: already-posted occurrences are skipped.
    A failed occurrence does not undo the ones that posted. A `through`
    date after today is capped at today.
    """
    request_id = get_request_id(request)
    through_date = min(through, today) if through else today
    repo = ObligationRepository(db)

    results = {}
    for obligation in repo.list_all():
        start_time = time.time()
        result = poster.post_due_occurrences(obligation, through_date)
        # category may have been linked during posting
        repo.save(obligation)
        results[obligation.id] = result

        record_autopay(result)
        log_autopay_run(request_id, obligation.id, result, (time.time() - start_time) * 1000)

    db.commit()

    return AutopayResponse(
        through_date=through_date,
        results={k: PostingResultSchema.from_domain(v) for k, v in results.items()},
        partial=any(r.partial for r in results.values()),
    )


@router.post("/bills/import", response_model=ImportResponse)
def import_bills(request_body: ImportRequest, request: Request, db: Session = Depends(get_db)):
    """Import client-side bill records of any known schema version"""
    obligations = load_obligations(request_body.records)
    repo = ObligationRepository(db)
    for obligation in obligations:
        repo.save(obligation)
    db.commit()

    rejected = len(request_body.records) - len(obligations)
    if rejected:
        logging.warning(
            f"Rejected {rejected} unreadable bill records",
            extra={"request_id": get_request_id(request)},
        )
    return ImportResponse(
        imported=[ObligationSchema.from_domain(o) for o in obligations],
        rejected=rejected,
    )


@router.delete("/bills/{bill_id}", status_code=204)
def delete_bill(bill_id: str, db: Session = Depends(get_db)):
    """Remove a bill definition; transactions it already posted are kept"""
    if not ObligationRepository(db).delete(bill_id):
        raise HTTPException(status_code=404, detail="Bill not found")
    db.commit()
    return Response(status_code=204)
