"""
Tests for currency helpers.
"""
import pytest
from decimal import Decimal
from splitledger.core.exceptions import ValidationError
from splitledger.core.money import quantize_up, split_evenly, to_money


def test_to_money_accepts_exact_cents():
    assert to_money("12.5") == Decimal("12.50")
    assert to_money(300) == Decimal("300.00")
    assert to_money(0.1) == Decimal("0.10")


def test_to_money_rejects_sub_cent_amounts():
    with pytest.raises(ValidationError):
        to_money("10.005")


@pytest.mark.parametrize("value", ["1e27", "1000000000000000000000000000", "10000000000000", "-10000000000000"])
def test_to_money_rejects_amounts_too_large_for_the_ledger(value):
    with pytest.raises(ValidationError):
        to_money(value)


def test_to_money_accepts_largest_storable_amount():
    assert to_money("9999999999999.99") == Decimal("9999999999999.99")


def test_to_money_rejects_garbage():
    with pytest.raises(ValidationError):
        to_money("ten pesos")
    with pytest.raises(ValidationError):
        to_money("NaN")


def test_quantize_up_rounds_toward_ceiling():
    assert quantize_up(Decimal("100") / 3) == Decimal("33.34")
    assert quantize_up(Decimal("33.33")) == Decimal("33.33")


def test_split_evenly_gives_residual_to_first_part():
    assert split_evenly(Decimal("100.00"), 3) == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]


def test_split_evenly_single_cent_over_many_parts():
    parts = split_evenly(Decimal("0.01"), 23)
    assert parts[0] == Decimal("0.01")
    assert all(p == Decimal("0.00") for p in parts[1:])
    assert sum(parts) == Decimal("0.01")


def test_split_evenly_no_parts():
    assert split_evenly(Decimal("5.00"), 0) == []
