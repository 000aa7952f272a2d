"""Data access layer: SQLAlchemy implementations of the scheduler's stores"""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from myledger.domain import models as domain
from myledger.domain.exceptions import LedgerWriteError
from myledger.domain.migrations import card_meta_from_record, migrate_card_meta_record
from myledger.utils.money import to_money
from myledger.infrastructure.database.models import (
    Account,
    Category,
    LedgerTransaction,
    Loan,
    RecurringObligation,
)


def _to_domain_transaction(row: LedgerTransaction) -> domain.LedgerTransaction:
    return domain.LedgerTransaction(
        id=row.id,
        type=row.type,
        amount=to_money(row.amount),
        account_id=row.account_id,
        date=row.date,
        memo=row.memo,
        category_id=row.category_id,
    )


def _plain_rate(value) -> Decimal:
    """Drop the column scale: 6.0000 -> 6, 4.5000 -> 4.5 (never 1E+1)"""
    rate = Decimal(value)
    return rate.quantize(Decimal(1)) if rate == rate.to_integral_value() else rate.normalize()


class LedgerRepository:
    """Ledger store; posting an expense/income also moves the account balance"""

    def __init__(self, db: Session):
        self.db = db

    def list_transactions(
        self,
        account_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[domain.LedgerTransaction]:
        query = self.db.query(LedgerTransaction)
        if account_id is not None:
            query = query.filter(LedgerTransaction.account_id == account_id)
        if start is not None:
            query = query.filter(LedgerTransaction.date >= start)
        if end is not None:
            query = query.filter(LedgerTransaction.date <= end)
        rows = query.order_by(LedgerTransaction.date, LedgerTransaction.created_at).all()
        return [_to_domain_transaction(row) for row in rows]

    def find_by_memo(self, memo: str) -> Optional[domain.LedgerTransaction]:
        row = self.db.query(LedgerTransaction).filter(LedgerTransaction.memo == memo).first()
        return _to_domain_transaction(row) if row else None

    def create_transaction(
        self,
        *,
        type: str,
        amount: Decimal,
        category_id: Optional[str],
        account_id: str,
        date: date,
        memo: str,
    ) -> domain.LedgerTransaction:
        """
        Record a transaction and adjust the account balance.

        Runs in a savepoint so a failed write leaves earlier postings of the
        same session intact.

        Raises:
            LedgerWriteError: on any database error
        """
        try:
            with self.db.begin_nested():
                row = LedgerTransaction(
                    type=type,
                    amount=amount,
                    category_id=category_id,
                    account_id=account_id,
                    date=date,
                    memo=memo,
                )
                self.db.add(row)
                account = self.db.get(Account, account_id)
                if account is not None:
                    delta = -amount if type == "expense" else amount
                    account.balance = Decimal(account.balance) + delta
                self.db.flush()
        except SQLAlchemyError as e:
            raise LedgerWriteError(f"Could not record transaction {memo!r}: {e}") from e
        return _to_domain_transaction(row)


class AccountRepository:
    """Account store"""

    def __init__(self, db: Session):
        self.db = db

    def create_account(self, name: str, kind: str = "bank", balance: Decimal = Decimal("0")) -> Account:
        account = Account(name=name, kind=kind, balance=balance)
        self.db.add(account)
        self.db.flush()
        return account

    def get_account(self, account_id: str) -> Optional[Account]:
        if not account_id:
            return None
        return self.db.get(Account, account_id)

    def get_balance(self, account_id: str) -> Optional[Decimal]:
        account = self.get_account(account_id)
        return to_money(account.balance) if account else None

    def get_account_name(self, account_id: str) -> Optional[str]:
        account = self.get_account(account_id)
        return account.name if account else None

    def get_card_meta(self, account_id: str) -> Optional[domain.CreditCardCycleMeta]:
        """Card cycle meta, migrated from whichever schema version was stored"""
        account = self.get_account(account_id)
        if account is None or not account.card_meta:
            return None
        return card_meta_from_record(account.card_meta)

    def save_card_meta(self, account: Account, record: dict) -> domain.CreditCardCycleMeta:
        """Store card meta in the current schema version"""
        current = migrate_card_meta_record(record)
        account.card_meta = current
        account.kind = "credit_card"
        self.db.flush()
        return card_meta_from_record(current)


class CategoryRepository:
    """Category store"""

    def __init__(self, db: Session):
        self.db = db

    def _get_or_create(self, name: str, parent_id: Optional[str]) -> Category:
        category = (
            self.db.query(Category)
            .filter(Category.name == name, Category.type == "expense", Category.parent_id == parent_id)
            .first()
        )
        if category is None:
            category = Category(name=name, type="expense", parent_id=parent_id)
            self.db.add(category)
            self.db.flush()
        return category

    def ensure_leaf_category(self, group_name: str, leaf_name: str) -> str:
        """
        Id of the `leaf_name` expense category under `group_name`, creating both as needed.

        Raises:
            LedgerWriteError: on any database error
        """
        try:
            with self.db.begin_nested():
                parent = self._get_or_create(group_name, None)
                leaf = self._get_or_create(leaf_name, parent.id)
        except SQLAlchemyError as e:
            raise LedgerWriteError(f"Could not resolve category {group_name}/{leaf_name}: {e}") from e
        return leaf.id


class ObligationRepository:
    """Repository for recurring bill definitions"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def to_domain(row: RecurringObligation) -> domain.RecurringObligation:
        return domain.RecurringObligation(
            id=row.id,
            name=row.name,
            group=domain.ObligationGroup(row.group),
            group_label=row.group_label,
            amount=to_money(row.amount),
            cadence=domain.cadence_from_fields(row.cadence, row.custom_every_days),
            first_payment_date=row.first_payment_date,
            account_id=row.account_id,
            category_id=row.category_id,
        )

    def save(self, obligation: domain.RecurringObligation) -> RecurringObligation:
        """Insert or update from the domain object"""
        row = self.db.get(RecurringObligation, obligation.id)
        if row is None:
            row = RecurringObligation(id=obligation.id)
            self.db.add(row)
        row.name = obligation.name
        row.group = obligation.group.value
        row.group_label = obligation.group_label
        row.amount = obligation.amount
        row.cadence = obligation.cadence.name
        row.custom_every_days = getattr(obligation.cadence, "every_days", None)
        row.first_payment_date = obligation.first_payment_date
        row.account_id = obligation.account_id
        row.category_id = obligation.category_id
        self.db.flush()
        return row

    def get(self, obligation_id: str) -> Optional[domain.RecurringObligation]:
        row = self.db.get(RecurringObligation, obligation_id)
        return self.to_domain(row) if row else None

    def list_all(self) -> List[domain.RecurringObligation]:
        rows = self.db.query(RecurringObligation).order_by(RecurringObligation.created_at).all()
        return [self.to_domain(row) for row in rows]

    def delete(self, obligation_id: str) -> bool:
        """Remove the definition; posted transactions stay in the ledger"""
        row = self.db.get(RecurringObligation, obligation_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.flush()
        return True


class LoanRepository:
    """Repository for loans"""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def to_domain(row: Loan) -> domain.Loan:
        return domain.Loan(
            id=row.id,
            name=row.name,
            principal=to_money(row.principal),
            annual_rate=_plain_rate(row.annual_rate),
            term_months=row.term_months,
            start_date=row.start_date,
            due_day=row.due_day,
            account_id=row.account_id,
            category_id=row.category_id,
            repayment_type=domain.RepaymentType(row.repayment_type),
            remaining_principal=to_money(row.remaining_principal),
            monthly_payment=to_money(row.monthly_payment),
            paid_months=row.paid_months,
            next_due_date=row.next_due_date,
            settled_at=row.settled_at,
        )

    def save(self, loan: domain.Loan) -> Loan:
        row = self.db.get(Loan, loan.id)
        if row is None:
            row = Loan(id=loan.id)
            self.db.add(row)
        row.name = loan.name
        row.principal = loan.principal
        row.annual_rate = loan.annual_rate
        row.term_months = loan.term_months
        row.start_date = loan.start_date
        row.due_day = loan.due_day
        row.account_id = loan.account_id
        row.category_id = loan.category_id
        row.repayment_type = loan.repayment_type.value
        row.remaining_principal = loan.remaining_principal
        row.monthly_payment = loan.monthly_payment
        row.paid_months = loan.paid_months
        row.next_due_date = loan.next_due_date
        row.settled_at = loan.settled_at
        self.db.flush()
        return row

    def get(self, loan_id: str) -> Optional[domain.Loan]:
        row = self.db.get(Loan, loan_id)
        return self.to_domain(row) if row else None

    def list_all(self) -> List[domain.Loan]:
        rows = self.db.query(Loan).order_by(Loan.created_at).all()
        return [self.to_domain(row) for row in rows]

    def delete(self, loan_id: str) -> bool:
        row = self.db.get(Loan, loan_id)
        if row is None:
            return False
        self.db.delete(row)
        self.db.flush()
        return True
