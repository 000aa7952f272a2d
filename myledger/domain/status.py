"""Payment status of obligation occurrences"""

from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from myledger.domain.markers import bill_marker
from myledger.domain.models import ObligationOccurrence, ObligationStatus, RecurringObligation
from myledger.domain.ports import AccountStore, LedgerStore
from myledger.domain.projection import occurrences_in_month
from myledger.utils.date_utils import month_key


def resolve_status(
    due_date: date,
    today: date,
    amount: Decimal,
    balance: Optional[Decimal],
    marker_posted: bool,
) -> Tuple[ObligationStatus, bool]:
    """
    Derive the status of one occurrence.

    Resolution order:
    1. Occurrence month before today's month: paid (historical months are settled)
    2. Occurrence month after today's month: scheduled
    3. Current month, due date still ahead: scheduled
    4. Marker found in the ledger: paid
    5. Balance covers the amount: paid, pending post
    6. Otherwise: overdue

    A missing account (balance None) counts as a zero balance.

    Returns:
        (status, pending_post)
    """
    occurrence_month = month_key(due_date)
    current_month = month_key(today)

    if occurrence_month < current_month:
        return ObligationStatus.PAID, False
    if occurrence_month > current_month:
        return ObligationStatus.SCHEDULED, False
    if today < due_date:
        return ObligationStatus.SCHEDULED, False
    if marker_posted:
        return ObligationStatus.PAID, False

    if (balance if balance is not None else Decimal("0")) >= amount:
        return ObligationStatus.PAID, True
    return ObligationStatus.OVERDUE, False


class StatusResolver:
    """Builds dated, status-resolved occurrences from the ledger and account stores"""

    def __init__(self, ledger: LedgerStore, accounts: AccountStore):
        self.ledger = ledger
        self.accounts = accounts

    def is_posted(self, obligation: RecurringObligation, due_date: date) -> bool:
        return self.ledger.find_by_memo(bill_marker(obligation.id, due_date)) is not None

    def occurrences_for_month(
        self,
        obligation: RecurringObligation,
        month_key_: str,
        today: date,
    ) -> List[ObligationOccurrence]:
        balance = self.accounts.get_balance(obligation.account_id)
        account_name = self.accounts.get_account_name(obligation.account_id)

        occurrences = []
        for due_date in occurrences_in_month(obligation, month_key_):
            status, pending = resolve_status(
                due_date,
                today,
                obligation.amount,
                balance,
                marker_posted=self.is_posted(obligation, due_date),
            )
            occurrences.append(
                ObligationOccurrence(
                    obligation=obligation,
                    due_date=due_date,
                    status=status,
                    account_name=account_name,
                    pending_post=pending,
                )
            )
        return occurrences
