"""Collaborator contracts the scheduling core reads from and writes to"""

from datetime import date
from decimal import Decimal
from typing import List, Optional, Protocol

from myledger.domain.models import LedgerTransaction


class LedgerStore(Protocol):
    """Transaction ledger; creating a transaction also moves the account balance"""

    def list_transactions(
        self,
        account_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[LedgerTransaction]:  # pragma: no cover - interface
        ...

    def find_by_memo(self, memo: str) -> Optional[LedgerTransaction]:  # pragma: no cover - interface
        ...

    def create_transaction(
        self,
        *,
        type: str,
        amount: Decimal,
        category_id: Optional[str],
        account_id: str,
        date: date,
        memo: str,
    ) -> LedgerTransaction:  # pragma: no cover - interface
        ...


class AccountStore(Protocol):
    def get_balance(self, account_id: str) -> Optional[Decimal]:  # pragma: no cover - interface
        """Current balance, or None when the account does not exist"""
        ...

    def get_account_name(self, account_id: str) -> Optional[str]:  # pragma: no cover - interface
        ...


class CategoryStore(Protocol):
    def ensure_leaf_category(self, group_name: str, leaf_name: str) -> str:  # pragma: no cover - interface
        """Return the id of expense category `leaf_name` under `group_name`, creating both if needed"""
        ...
