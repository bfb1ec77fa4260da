"""
Settlement service: payment submission, verification and derived balances.
"""
import logging
from decimal import Decimal
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session, joinedload
from splitledger.core.cache import LedgerCache, NullCache, cache_keys
from splitledger.core.clock import Clock, system_clock
from splitledger.core.config import settings
from splitledger.core.exceptions import Forbidden, InvalidState, NotFound, ValidationError
from splitledger.core.money import ZERO
from splitledger.db.session import transaction
from splitledger.models.expense import Expense
from splitledger.models.settlement import Settlement, SettlementStatus, PaymentMethod, OPEN_STATUSES
from splitledger.schemas.settlement import BatchPaymentResult, SkippedSettlement, TeamBalances, ScheduleItem
from splitledger.services import settlement_state
from splitledger.services.activity_service import log_activity
from splitledger.services.team_service import get_team

logger = logging.getLogger(__name__)


def _live_settlements(db: Session):
    """Settlements that are not tombstoned and whose expense is not tombstoned."""
    return db.query(Settlement).join(Expense, Expense.id == Settlement.expense_id).filter(
        Settlement.deleted_at.is_(None),
        Expense.deleted_at.is_(None)
    )


def get_settlement(db: Session, settlement_id: int) -> Settlement:
    """Get a live settlement or raise NotFound."""
    settlement = _live_settlements(db).options(
        joinedload(Settlement.expense)
    ).filter(Settlement.id == settlement_id).first()
    if not settlement:
        raise NotFound("Settlement not found")
    return settlement


def list_team_settlements(db: Session, team_id: int, status: Optional[SettlementStatus] = None) -> List[Settlement]:
    get_team(db, team_id)
    query = _live_settlements(db).options(joinedload(Settlement.expense)).filter(Expense.team_id == team_id)
    if status is not None:
        query = query.filter(Settlement.status == status)
    return query.order_by(Settlement.id.desc()).all()


def _parse_method(method) -> PaymentMethod:
    if isinstance(method, PaymentMethod):
        return method
    try:
        return PaymentMethod(str(method).lower())
    except ValueError:
        raise ValidationError(f"Unknown payment method '{method}'")


def _submit_one(db: Session, settlement: Settlement, member_id: int, method: PaymentMethod, proof_uri: Optional[str]) -> None:
    if settlement.owed_by != member_id:
        raise Forbidden("Only the person who owes can submit a payment")
    new_state = settlement_state.submit(settlement_state.state_of(settlement), method, proof_uri)
    settlement_state.apply_state(settlement, new_state)
    log_activity(
        db, settlement.expense.team_id, member_id, "SUBMITTED_PAYMENT",
        f"Submitted {method.value} payment of {settings.CURRENCY} {settlement.amount_owed} "
        f"for '{settlement.expense.description}'"
    )


def submit_payment(
    db: Session,
    settlement_id: int,
    member_id: int,
    method,
    proof_uri: Optional[str] = None,
    cache: LedgerCache = None
) -> Settlement:
    """Debtor marks a pending settlement as paid; it waits for the creditor's verification."""
    method = _parse_method(method)
    settlement = get_settlement(db, settlement_id)

    with transaction(db):
        _submit_one(db, settlement, member_id, method, proof_uri)
    (cache or NullCache()).invalidate_team(settlement.expense.team_id, [settlement.owed_by, settlement.owed_to])
    db.refresh(settlement)
    logger.info(f"Settlement {settlement_id} submitted by {member_id} via {method.value}")
    return settlement


def submit_batch_payment(
    db: Session,
    settlement_ids: Iterable[int],
    member_id: int,
    method,
    proof_uri: Optional[str] = None,
    cache: LedgerCache = None
) -> BatchPaymentResult:
    """
    Submit one payment for several settlements. Each id is checked on its own;
    ineligible ones are reported in `skipped` and the rest commit together.
    """
    method = _parse_method(method)
    ids = list(dict.fromkeys(settlement_ids))
    if not ids:
        raise ValidationError("No settlements selected")
    # Input errors apply to the whole batch, so check them before any row
    settlement_state.submit(settlement_state.Pending(), method, proof_uri)

    found = {
        s.id: s for s in _live_settlements(db).options(
            joinedload(Settlement.expense)
        ).filter(Settlement.id.in_(ids)).all()
    }
    result = BatchPaymentResult()
    touched = []

    with transaction(db):
        for settlement_id in ids:
            settlement = found.get(settlement_id)
            if settlement is None:
                result.skipped.append(SkippedSettlement(settlement_id=settlement_id, reason="not_found"))
                continue
            try:
                _submit_one(db, settlement, member_id, method, proof_uri)
            except Forbidden:
                result.skipped.append(SkippedSettlement(settlement_id=settlement_id, reason="forbidden"))
                continue
            except InvalidState:
                result.skipped.append(SkippedSettlement(settlement_id=settlement_id, reason="invalid_state"))
                continue
            result.succeeded.append(settlement_id)
            touched.append(settlement)

    cache = cache or NullCache()
    for settlement in touched:
        cache.invalidate_team(settlement.expense.team_id, [settlement.owed_by, settlement.owed_to])
    logger.info(
        f"Batch payment by {member_id}: {len(result.succeeded)} submitted, {len(result.skipped)} skipped"
    )
    return result


def verify_payment(
    db: Session,
    settlement_id: int,
    member_id: int,
    accept: bool,
    clock: Clock = system_clock,
    cache: LedgerCache = None
) -> Settlement:
    """
    Creditor confirms (paid) or rejects (back to pending, proof cleared) a
    submitted payment. A concurrent verifier that commits first wins; the
    other gets StaleDataError.
    """
    settlement = get_settlement(db, settlement_id)
    if settlement.owed_to != member_id:
        raise Forbidden("Only the person who is owed can verify this payment")

    state = settlement_state.state_of(settlement)
    with transaction(db):
        if accept:
            new_state = settlement_state.approve(state, clock.now())
            action = "VERIFIED_PAYMENT"
        else:
            new_state = settlement_state.reject(state)
            action = "REJECTED_PAYMENT"
        settlement_state.apply_state(settlement, new_state)
        db.flush()
        log_activity(
            db, settlement.expense.team_id, member_id, action,
            f"{'Confirmed' if accept else 'Rejected'} payment of {settings.CURRENCY} "
            f"{settlement.amount_owed} for '{settlement.expense.description}'"
        )
    (cache or NullCache()).invalidate_team(settlement.expense.team_id, [settlement.owed_by, settlement.owed_to])
    db.refresh(settlement)
    logger.info(f"Settlement {settlement_id} {'verified' if accept else 'rejected'} by {member_id}")
    return settlement


def get_team_balances(
    db: Session,
    team_id: int,
    member_id: int,
    cache: LedgerCache = None
) -> TeamBalances:
    """What a member owes and is owed across open settlements, served through the cache."""
    get_team(db, team_id)
    cache = cache or NullCache()

    def fetch():
        rows = _live_settlements(db).with_entities(
            Settlement.owed_by, Settlement.amount_owed, Expense.paid_by
        ).filter(
            Expense.team_id == team_id,
            Settlement.status.in_(OPEN_STATUSES)
        ).all()

        you_owe = ZERO
        owed_to_you = ZERO
        creditors = set()
        debtors = set()
        for owed_by, amount_owed, paid_by in rows:
            if owed_by == member_id:
                you_owe += Decimal(amount_owed)
                creditors.add(paid_by)
            elif paid_by == member_id:
                owed_to_you += Decimal(amount_owed)
                debtors.add(owed_by)

        return TeamBalances(
            team_id=team_id,
            member_id=member_id,
            you_owe=you_owe,
            owed_to_you=owed_to_you,
            you_owe_count=len(creditors),
            owed_to_you_count=len(debtors),
        ).model_dump(mode="json")

    data = cache.cached(cache_keys.team_balances(team_id, member_id), fetch, settings.CACHE_TTL_BALANCES)
    return TeamBalances(**data)


def get_payment_schedule(db: Session, team_id: int, member_id: int) -> List[ScheduleItem]:
    """Open monthly-plan installments owed by a member, earliest deadline first."""
    get_team(db, team_id)
    settlements = _live_settlements(db).options(joinedload(Settlement.expense)).filter(
        Expense.team_id == team_id,
        Expense.is_monthly.is_(True),
        Settlement.owed_by == member_id,
        Settlement.status.in_(OPEN_STATUSES)
    ).order_by(Expense.deadline, Settlement.id).all()

    return [
        ScheduleItem(
            settlement_id=s.id,
            expense_id=s.expense_id,
            description=s.expense.description,
            amount_owed=s.amount_owed,
            status=s.status,
            owed_to=s.owed_to,
            deadline=s.expense.deadline,
            month_number=s.expense.month_number,
            total_months=s.expense.total_months,
        )
        for s in settlements
    ]
