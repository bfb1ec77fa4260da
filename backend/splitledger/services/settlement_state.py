"""
Settlement lifecycle as tagged states.

A settlement row stores status, method, proof and paid_at in nullable columns;
this module reads them into exactly one of Pending, Unconfirmed or Paid so the
transition rules only ever see legal combinations.

    pending --submit--> unconfirmed --approve--> paid
       ^                     |
       +-------reject--------+
    pending / unconfirmed --close_by_agreement--> paid
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union
from splitledger.core.exceptions import InvalidState, ValidationError
from splitledger.models.settlement import Settlement, SettlementStatus, PaymentMethod

SUBMITTABLE_METHODS = (PaymentMethod.CASH, PaymentMethod.GCASH)


@dataclass(frozen=True)
class Pending:
    status = SettlementStatus.PENDING


@dataclass(frozen=True)
class Unconfirmed:
    method: PaymentMethod
    proof: Optional[str] = None
    status = SettlementStatus.UNCONFIRMED


@dataclass(frozen=True)
class Paid:
    method: PaymentMethod
    paid_at: datetime
    proof: Optional[str] = None
    status = SettlementStatus.PAID


SettlementState = Union[Pending, Unconfirmed, Paid]


def state_of(settlement: Settlement) -> SettlementState:
    """Read the row's columns into its tagged state."""
    if settlement.status == SettlementStatus.PENDING:
        return Pending()
    if settlement.status == SettlementStatus.UNCONFIRMED:
        return Unconfirmed(method=settlement.payment_method, proof=settlement.proof_reference)
    return Paid(
        method=settlement.payment_method or PaymentMethod.NONE,
        paid_at=settlement.paid_at,
        proof=settlement.proof_reference,
    )


def apply_state(settlement: Settlement, state: SettlementState) -> None:
    """Write a tagged state back onto the row's columns."""
    settlement.status = state.status
    if isinstance(state, Pending):
        settlement.payment_method = None
        settlement.proof_reference = None
        settlement.paid_at = None
    elif isinstance(state, Unconfirmed):
        settlement.payment_method = state.method
        settlement.proof_reference = state.proof
        settlement.paid_at = None
    else:
        settlement.payment_method = state.method
        settlement.proof_reference = state.proof
        settlement.paid_at = state.paid_at


def submit(state: SettlementState, method: PaymentMethod, proof: Optional[str] = None) -> Unconfirmed:
    """Debtor claims payment."""
    if not isinstance(state, Pending):
        raise InvalidState(f"Cannot submit payment for a settlement that is {state.status.value}")
    if method not in SUBMITTABLE_METHODS:
        raise ValidationError(f"Payment method must be one of: {', '.join(m.value for m in SUBMITTABLE_METHODS)}")
    proof = proof.strip() if proof else None
    if method == PaymentMethod.GCASH and not proof:
        raise ValidationError("GCash payments require a proof of payment")
    return Unconfirmed(method=method, proof=proof)


def approve(state: SettlementState, now: datetime) -> Paid:
    """Creditor confirms the claimed payment."""
    if not isinstance(state, Unconfirmed):
        raise InvalidState(f"Cannot verify a settlement that is {state.status.value}")
    return Paid(method=state.method, proof=state.proof, paid_at=now)


def reject(state: SettlementState) -> Pending:
    """Creditor disputes the claimed payment; the debtor must resubmit."""
    if not isinstance(state, Unconfirmed):
        raise InvalidState(f"Cannot reject a settlement that is {state.status.value}")
    return Pending()


def close_by_agreement(state: SettlementState, now: datetime) -> Paid:
    """Netting closes an open settlement without a cash transfer."""
    if isinstance(state, Paid):
        raise InvalidState("Settlement is already paid")
    return Paid(method=PaymentMethod.NONE, paid_at=now)
