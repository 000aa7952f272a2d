"""Decimal money helpers"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from myledger.config import settings

MoneyInput = Union[Decimal, int, float, str]


def to_money(value: MoneyInput, places: Optional[int] = None) -> Decimal:
    """
    Quantize to the ledger's minor unit (half-up).

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    """
    if isinstance(value, float):
        value = str(value)
    quantum = settings.money_quantum if places is None else Decimal(1).scaleb(-places)
    return Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)
