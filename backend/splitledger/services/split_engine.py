"""
Split strategies: how an expense amount divides among the members who owe it.
"""
from decimal import Decimal
from typing import Dict, List
from splitledger.core.exceptions import ValidationError
from splitledger.core.money import split_evenly


class SplitStrategy:
    """Base class for split strategies."""
    name = "base"

    def allocate(self, amount: Decimal, debtor_ids: List[int]) -> Dict[int, Decimal]:
        """
        Return {debtor_id: share}. Shares must sum to `amount` exactly.
        An empty debtor list means nobody owes anything.
        """
        raise NotImplementedError


class EqualSplit(SplitStrategy):
    """
    Divide evenly among the debtors.
    Each share is floored to the cent; the residual cents go to the debtor
    with the lowest id so the shares always add back up to the amount.
    """
    name = "equal"

    def allocate(self, amount: Decimal, debtor_ids: List[int]) -> Dict[int, Decimal]:
        ordered = sorted(set(debtor_ids))
        return dict(zip(ordered, split_evenly(amount, len(ordered))))


SPLIT_STRATEGIES = {
    EqualSplit.name: EqualSplit(),
}


def get_split_strategy(name: str) -> SplitStrategy:
    strategy = SPLIT_STRATEGIES.get(name)
    if strategy is None:
        raise ValidationError(f"Unknown split strategy '{name}'")
    return strategy
