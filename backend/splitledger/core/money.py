"""
Fixed-point currency helpers.

All ledger amounts are Decimals quantized to the currency's minor unit.
"""
from decimal import Decimal, InvalidOperation, ROUND_CEILING, ROUND_DOWN, getcontext
from typing import List, Union
from splitledger.core.exceptions import ValidationError

getcontext().prec = 28
CENTS = Decimal("0.01")
ZERO = Decimal("0.00")
# Money columns are Numeric(15, 2)
MAX_INTEGER_DIGITS = 13


def to_money(value: Union[str, int, float, Decimal], field: str = "amount") -> Decimal:
    """
    Parse a value into an exact cent amount.
    Floats go through str() so 0.1 stays 0.1. Anything finer than one cent
    is rejected rather than rounded.
    """
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} is not a valid amount", details={"value": str(value)})
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite amount")
    if abs(amount) >= Decimal(10) ** MAX_INTEGER_DIGITS:
        raise ValidationError(
            f"{field} is too large",
            details={"max_integer_digits": MAX_INTEGER_DIGITS}
        )
    try:
        exact = amount.quantize(CENTS, rounding=ROUND_DOWN)
    except InvalidOperation:
        raise ValidationError(f"{field} is not a valid amount", details={"value": str(value)})
    if amount != exact:
        raise ValidationError(f"{field} has more precision than the currency allows")
    return exact


def quantize_down(d: Decimal) -> Decimal:
    return d.quantize(CENTS, rounding=ROUND_DOWN)


def quantize_up(d: Decimal) -> Decimal:
    return d.quantize(CENTS, rounding=ROUND_CEILING)


def split_evenly(amount: Decimal, parts: int) -> List[Decimal]:
    """
    Split amount into `parts` cent amounts that sum exactly to amount.
    Each part gets the floored share; the residual cents all go to index 0.
    """
    if parts <= 0:
        return []
    share = quantize_down(amount / parts)
    shares = [share] * parts
    shares[0] = amount - share * (parts - 1)
    return shares
