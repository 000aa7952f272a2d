"""Pytest fixtures for testing"""

import itertools
import pytest
from datetime import date
from decimal import Decimal
from typing import Dict, Generator, List, Optional, Set, Tuple
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from myledger.api.dependencies import get_today
from myledger.api.main import create_app
from myledger.infrastructure.database.models import Base
from myledger.infrastructure.database.session import get_db
from myledger.domain.exceptions import LedgerWriteError
from myledger.domain.models import LedgerTransaction, Monthly, ObligationGroup, RecurringObligation


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Reference "today" for API tests
TODAY = date(2025, 1, 5)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database and a fixed today"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    return TestClient(app)


class FakeLedger:
    """In-memory ledger; `fail_dates` makes postings on those dates raise"""

    def __init__(self, accounts: Optional["FakeAccounts"] = None):
        self.transactions: List[LedgerTransaction] = []
        self.fail_dates: Set[date] = set()
        self.accounts = accounts
        self._ids = itertools.count(1)

    def list_transactions(self, account_id=None, start=None, end=None) -> List[LedgerTransaction]:
        return [
            t
            for t in self.transactions
            if (account_id is None or t.account_id == account_id)
            and (start is None or t.date >= start)
            and (end is None or t.date <= end)
        ]

    def find_by_memo(self, memo: str) -> Optional[LedgerTransaction]:
        return next((t for t in self.transactions if t.memo == memo), None)

    def create_transaction(self, *, type, amount, category_id, account_id, date, memo) -> LedgerTransaction:
        if date in self.fail_dates:
            raise LedgerWriteError(f"ledger unavailable on {date.isoformat()}")
        transaction = LedgerTransaction(
            id=f"tx_{next(self._ids)}",
            type=type,
            amount=amount,
            account_id=account_id,
            date=date,
            memo=memo,
            category_id=category_id,
        )
        self.transactions.append(transaction)
        if self.accounts is not None and account_id in self.accounts.balances:
            delta = -amount if type == "expense" else amount
            self.accounts.balances[account_id] += delta
        return transaction


class FakeAccounts:
    def __init__(self, balances: Optional[Dict[str, Decimal]] = None):
        self.balances: Dict[str, Decimal] = dict(balances or {})

    def get_balance(self, account_id: str) -> Optional[Decimal]:
        return self.balances.get(account_id)

    def get_account_name(self, account_id: str) -> Optional[str]:
        return f"Account {account_id}" if account_id in self.balances else None


class FakeCategories:
    def __init__(self):
        self.created: Dict[Tuple[str, str], str] = {}
        self.unavailable = False

    def ensure_leaf_category(self, group_name: str, leaf_name: str) -> str:
        if self.unavailable:
            raise LedgerWriteError("category store unavailable")
        key = (group_name, leaf_name)
        if key not in self.created:
            self.created[key] = f"cat_{len(self.created) + 1}"
        return self.created[key]


@pytest.fixture
def accounts() -> FakeAccounts:
    return FakeAccounts({"acc_main": Decimal("1000000")})


@pytest.fixture
def ledger(accounts: FakeAccounts) -> FakeLedger:
    return FakeLedger(accounts)


@pytest.fixture
def categories() -> FakeCategories:
    return FakeCategories()


@pytest.fixture
def rent() -> RecurringObligation:
    """Monthly bill anchored on the 2nd"""
    return RecurringObligation(
        id="ob_rent",
        name="Rent",
        group=ObligationGroup.LIVING,
        amount=Decimal("17000"),
        cadence=Monthly(),
        first_payment_date=date(2025, 1, 2),
        account_id="acc_main",
    )
