"""Automatic posting of past-due recurring bills into the ledger"""

import logging
from datetime import date

from myledger.domain.exceptions import LedgerWriteError
from myledger.domain.markers import bill_marker
from myledger.domain.models import ACCOUNT_MISSING, PostingResult, RecurringObligation
from myledger.domain.ports import AccountStore, CategoryStore, LedgerStore
from myledger.domain.projection import occurrences_between

logger = logging.getLogger(__name__)


class AutopayPoster:
    """Posts one expense transaction per past-due occurrence, at most once"""

    def __init__(self, ledger: LedgerStore, accounts: AccountStore, categories: CategoryStore):
        self.ledger = ledger
        self.accounts = accounts
        self.categories = categories

    def post_due_occurrences(self, obligation: RecurringObligation, through_date: date) -> PostingResult:
        """
        Post every unposted occurrence of the current month up to `through_date`.

        Occurrences of earlier months are never posted retroactively. Each
        posting carries the AUTO_BILL marker in its memo and is skipped when
        a transaction with that exact memo already exists, so repeated calls
        never duplicate. A failure on one occurrence is recorded and the
        remaining occurrences are still attempted.
        """
        result = PostingResult()
        month_start = through_date.replace(day=1)
        due_dates = occurrences_between(obligation, month_start, through_date)
        if not due_dates:
            return result

        if self.accounts.get_balance(obligation.account_id) is None:
            logger.warning(
                "Autopay blocked: paying account not found",
                extra={"obligation_id": obligation.id, "account_id": obligation.account_id},
            )
            result.failures.extend((due, ACCOUNT_MISSING) for due in due_dates)
            return result

        for due_date in due_dates:
            marker = bill_marker(obligation.id, due_date)
            if self.ledger.find_by_memo(marker) is not None:
                result.skipped.append(due_date)
                continue

            try:
                category_id = self._ensure_category(obligation)
                transaction = self.ledger.create_transaction(
                    type="expense",
                    amount=obligation.amount,
                    category_id=category_id,
                    account_id=obligation.account_id,
                    date=due_date,
                    memo=marker,
                )
            except LedgerWriteError as e:
                logger.error(
                    f"Autopay posting failed: {e}",
                    extra={"obligation_id": obligation.id, "due_date": due_date.isoformat()},
                )
                result.failures.append((due_date, str(e)))
                continue

            result.transaction_ids.append(transaction.id)

        return result

    def _ensure_category(self, obligation: RecurringObligation) -> str:
        """Link the obligation to its leaf expense category, creating it on first use"""
        if obligation.category_id is None:
            obligation.category_id = self.categories.ensure_leaf_category(
                obligation.group_name, obligation.name
            )
        return obligation.category_id
