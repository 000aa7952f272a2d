"""SQLAlchemy ORM models for accounts, categories, the ledger, bills and loans"""

import uuid
from sqlalchemy import Column, String, Date, DateTime, Integer, Numeric, ForeignKey, Text, JSON
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class Account(Base):
    """Paying account; credit cards carry their cycle meta as stored JSON"""

    __tablename__ = "account"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(Text, nullable=False)
    kind = Column(Text, nullable=False, default="bank")  # bank | cash | debit_card | credit_card
    balance = Column(Numeric(18, 4), nullable=False, default=0)
    card_meta = Column(JSON, nullable=True)  # any known schema version, migrated on load
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Category(Base):
    """Expense/income category; leaves hang under a group-level parent"""

    __tablename__ = "category"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(Text, nullable=False)
    type = Column(Text, nullable=False, default="expense")
    parent_id = Column(String(36), ForeignKey("category.id", ondelete="SET NULL"), nullable=True)

    parent = relationship("Category", remote_side=[id])


class LedgerTransaction(Base):
    """Posted ledger entry; scheduler postings carry a marker in `memo`"""

    __tablename__ = "ledger_transaction"

    id = Column(String(36), primary_key=True, default=new_id)
    type = Column(Text, nullable=False)
    amount = Column(Numeric(18, 4), nullable=False)
    category_id = Column(String(36), ForeignKey("category.id", ondelete="SET NULL"), nullable=True)
    account_id = Column(String(36), ForeignKey("account.id", ondelete="SET NULL"), nullable=True, index=True)
    date = Column(Date, nullable=False, index=True)
    memo = Column(Text, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class RecurringObligation(Base):
    """Recurring bill definition"""

    __tablename__ = "recurring_obligation"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(Text, nullable=False)
    group = Column(Text, nullable=False)
    group_label = Column(Text, nullable=True)
    amount = Column(Numeric(18, 4), nullable=False)
    cadence = Column(Text, nullable=False)
    custom_every_days = Column(Integer, nullable=True)
    first_payment_date = Column(Date, nullable=False)
    account_id = Column(String(36), nullable=False)
    category_id = Column(String(36), ForeignKey("category.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Loan(Base):
    """Loan terms plus mutable repayment state"""

    __tablename__ = "loan"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(Text, nullable=False)
    principal = Column(Numeric(18, 4), nullable=False)
    annual_rate = Column(Numeric(9, 4), nullable=False)
    term_months = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    due_day = Column(Integer, nullable=False)
    account_id = Column(String(36), nullable=False)
    category_id = Column(String(36), ForeignKey("category.id", ondelete="SET NULL"), nullable=True)
    repayment_type = Column(Text, nullable=False)
    remaining_principal = Column(Numeric(18, 4), nullable=False)
    monthly_payment = Column(Numeric(18, 4), nullable=False)
    paid_months = Column(Integer, nullable=False, default=0)
    next_due_date = Column(Date, nullable=True)
    settled_at = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
