"""Dependency injection for FastAPI endpoints"""

from datetime import date
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from myledger.domain.autopay import AutopayPoster
from myledger.domain.loans import LoanScheduleEngine
from myledger.domain.status import StatusResolver
from myledger.infrastructure.database.repositories import (
    AccountRepository,
    CategoryRepository,
    LedgerRepository,
)
from myledger.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_today() -> date:
    """Reference date for status and posting; overridden in tests"""
    return date.today()


def get_status_resolver(db: Session = Depends(get_db)) -> StatusResolver:
    return StatusResolver(LedgerRepository(db), AccountRepository(db))


def get_autopay_poster(db: Session = Depends(get_db)) -> AutopayPoster:
    return AutopayPoster(LedgerRepository(db), AccountRepository(db), CategoryRepository(db))


def get_loan_engine(db: Session = Depends(get_db)) -> LoanScheduleEngine:
    return LoanScheduleEngine(LedgerRepository(db), AccountRepository(db))
