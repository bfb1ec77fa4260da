"""
Mutual-debt detection and the two-party settlement agreement protocol.

Detection is a pure read producing netting candidates. An agreement freezes
the exact settlement ids and per-direction totals at proposal time; accepting
it re-reads those rows and closes all of them together, or none.
"""
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List
from sqlalchemy.orm import Session, joinedload
from splitledger.core.cache import LedgerCache, NullCache
from splitledger.core.clock import Clock, system_clock
from splitledger.core.config import settings
from splitledger.core.exceptions import (
    AgreementStaleError, Forbidden, InvalidState, NotFound, StaleDataError, ValidationError
)
from splitledger.core.money import ZERO, to_money
from splitledger.db.session import transaction
from splitledger.models.agreement import SettlementAgreement, SettlementAgreementItem, AgreementStatus
from splitledger.models.expense import Expense
from splitledger.models.settlement import Settlement, OPEN_STATUSES
from splitledger.schemas.agreement import MutualDebt
from splitledger.services import settlement_state
from splitledger.services.activity_service import log_activity
from splitledger.services.team_service import get_team, require_member

logger = logging.getLogger(__name__)


def _open_settlements_query(db: Session, team_id: int):
    return db.query(Settlement).join(Expense, Expense.id == Settlement.expense_id).filter(
        Expense.team_id == team_id,
        Expense.deleted_at.is_(None),
        Settlement.deleted_at.is_(None),
        Settlement.status.in_(OPEN_STATUSES)
    )


def detect_mutual_debts(db: Session, team_id: int, member_id: int) -> List[MutualDebt]:
    """
    Find counterparts with open debts in both directions.
    Members owed in only one direction are left out since there is nothing to net.
    """
    get_team(db, team_id)
    rows = _open_settlements_query(db, team_id).with_entities(
        Settlement.id, Settlement.owed_by, Settlement.amount_owed, Expense.paid_by
    ).filter(
        (Settlement.owed_by == member_id) | (Expense.paid_by == member_id)
    ).order_by(Settlement.id).all()

    i_owe: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    they_owe: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    my_ids: Dict[int, List[int]] = defaultdict(list)
    their_ids: Dict[int, List[int]] = defaultdict(list)

    for settlement_id, owed_by, amount_owed, paid_by in rows:
        if owed_by == paid_by:
            continue
        if owed_by == member_id:
            i_owe[paid_by] += Decimal(amount_owed)
            my_ids[paid_by].append(settlement_id)
        else:
            they_owe[owed_by] += Decimal(amount_owed)
            their_ids[owed_by].append(settlement_id)

    mutual = []
    for counterpart_id in sorted(set(my_ids) & set(their_ids)):
        mutual.append(MutualDebt(
            counterpart_id=counterpart_id,
            i_owe=i_owe[counterpart_id],
            they_owe=they_owe[counterpart_id],
            net_amount=they_owe[counterpart_id] - i_owe[counterpart_id],
            my_settlement_ids=my_ids[counterpart_id],
            their_settlement_ids=their_ids[counterpart_id],
        ))
    return mutual


def get_agreement(db: Session, agreement_id: int) -> SettlementAgreement:
    agreement = db.query(SettlementAgreement).options(
        joinedload(SettlementAgreement.items)
    ).filter(SettlementAgreement.id == agreement_id).first()
    if not agreement:
        raise NotFound("Settlement agreement not found")
    return agreement


def list_pending_agreements(db: Session, team_id: int, member_id: int) -> List[SettlementAgreement]:
    """Pending agreements the member proposed or has to answer."""
    get_team(db, team_id)
    return db.query(SettlementAgreement).options(
        joinedload(SettlementAgreement.items)
    ).filter(
        SettlementAgreement.team_id == team_id,
        SettlementAgreement.status == AgreementStatus.PENDING,
        (SettlementAgreement.proposer_id == member_id) | (SettlementAgreement.responder_id == member_id)
    ).order_by(SettlementAgreement.proposed_at.desc(), SettlementAgreement.id.desc()).all()


def _direction_totals(settlements: Iterable[Settlement], proposer_id: int, responder_id: int):
    """Sum open amounts per direction, rejecting any row outside the pair."""
    proposer_total = ZERO
    responder_total = ZERO
    for settlement in settlements:
        debtor, creditor = settlement.owed_by, settlement.owed_to
        if debtor == proposer_id and creditor == responder_id:
            proposer_total += settlement.amount_owed
        elif debtor == responder_id and creditor == proposer_id:
            responder_total += settlement.amount_owed
        else:
            raise StaleDataError(
                f"Settlement {settlement.id} is not between the two members",
                details={"settlement_id": settlement.id}
            )
    return proposer_total, responder_total


def propose_settlement_agreement(
    db: Session,
    team_id: int,
    proposer_id: int,
    responder_id: int,
    proposer_owes,
    responder_owes,
    settlement_ids: Iterable[int],
    clock: Clock = system_clock
) -> SettlementAgreement:
    """
    Propose cancelling mutual debts with `responder_id`.
    Every referenced settlement must still be open and between the two members,
    and the recorded totals must match them; otherwise the caller's detection
    snapshot is stale.
    """
    proposer_owes = to_money(proposer_owes, "proposer_owes")
    responder_owes = to_money(responder_owes, "responder_owes")
    if proposer_id == responder_id:
        raise ValidationError("Cannot propose an agreement with yourself")
    ids = sorted(set(settlement_ids))
    if not ids:
        raise ValidationError("No settlements selected")

    get_team(db, team_id)
    require_member(db, team_id, proposer_id)
    try:
        require_member(db, team_id, responder_id)
    except Forbidden:
        raise ValidationError("Responder is not a member of this team")

    settlements = _open_settlements_query(db, team_id).options(
        joinedload(Settlement.expense)
    ).filter(Settlement.id.in_(ids)).all()
    missing = sorted(set(ids) - {s.id for s in settlements})
    if missing:
        raise StaleDataError("Some settlements are no longer open", details={"settlement_ids": missing})

    proposer_total, responder_total = _direction_totals(settlements, proposer_id, responder_id)
    if proposer_total == ZERO or responder_total == ZERO:
        raise ValidationError("An agreement needs open debts in both directions")
    if proposer_total != proposer_owes or responder_total != responder_owes:
        raise StaleDataError(
            "Debt totals changed since they were detected",
            details={"proposer_owes": str(proposer_total), "responder_owes": str(responder_total)}
        )

    with transaction(db):
        agreement = SettlementAgreement(
            team_id=team_id,
            proposer_id=proposer_id,
            responder_id=responder_id,
            proposer_owes=proposer_owes,
            responder_owes=responder_owes,
            status=AgreementStatus.PENDING,
            proposed_at=clock.now(),
        )
        agreement.items = [SettlementAgreementItem(settlement_id=settlement_id) for settlement_id in ids]
        db.add(agreement)
        log_activity(
            db, team_id, proposer_id, "PROPOSED_AGREEMENT",
            f"Proposed to cancel {settings.CURRENCY} {min(proposer_owes, responder_owes)} of mutual debt"
        )
    db.refresh(agreement)
    logger.info(f"Agreement {agreement.id} proposed by {proposer_id} to {responder_id} over {len(ids)} settlements")
    return agreement


def respond_to_settlement_agreement(
    db: Session,
    agreement_id: int,
    member_id: int,
    accept: bool,
    clock: Clock = system_clock,
    cache: LedgerCache = None
) -> SettlementAgreement:
    """
    Accept or reject a pending agreement. Acceptance closes every referenced
    settlement as paid without a cash transfer; if any of them is no longer
    open, nothing changes and the agreement stays pending.
    """
    agreement = get_agreement(db, agreement_id)
    if agreement.responder_id != member_id:
        raise Forbidden("Only the responder can answer this agreement")
    if agreement.status != AgreementStatus.PENDING:
        raise InvalidState(f"Agreement is already {agreement.status.value}")

    now = clock.now()
    ids = agreement.settlement_ids
    try:
        with transaction(db):
            if accept:
                _close_settlements(db, agreement, ids, now)
                agreement.status = AgreementStatus.ACCEPTED
                action = "ACCEPTED_AGREEMENT"
            else:
                agreement.status = AgreementStatus.REJECTED
                action = "REJECTED_AGREEMENT"
            agreement.responded_at = now
            log_activity(db, agreement.team_id, member_id, action, f"Agreement #{agreement.id} {agreement.status.value}")
    except StaleDataError as e:
        if isinstance(e, AgreementStaleError):
            raise
        raise AgreementStaleError("Agreement settlements changed while responding; re-propose") from e

    (cache or NullCache()).invalidate_team(agreement.team_id, [agreement.proposer_id, agreement.responder_id])
    db.refresh(agreement)
    logger.info(f"Agreement {agreement_id} {agreement.status.value} by {member_id}")
    return agreement


def _close_settlements(db: Session, agreement: SettlementAgreement, ids: List[int], now) -> None:
    # Re-read from the store; the proposal-time snapshot is not trusted
    settlements = db.query(Settlement).populate_existing().options(
        joinedload(Settlement.expense)
    ).filter(Settlement.id.in_(ids)).all()

    still_open = [s for s in settlements if s.is_open and s.expense.deleted_at is None]
    if len(still_open) != len(ids):
        closed = sorted(set(ids) - {s.id for s in still_open})
        logger.warning(f"Agreement {agreement.id} is stale: settlements {closed} are no longer open")
        raise AgreementStaleError(
            "Some settlements were paid or removed since the agreement was proposed",
            details={"settlement_ids": closed}
        )

    proposer_total, responder_total = _direction_totals(still_open, agreement.proposer_id, agreement.responder_id)
    if proposer_total + responder_total != agreement.proposer_owes + agreement.responder_owes:
        raise AgreementStaleError("Settlement amounts no longer match the agreement")

    for settlement in still_open:
        new_state = settlement_state.close_by_agreement(settlement_state.state_of(settlement), now)
        settlement_state.apply_state(settlement, new_state)
        settlement.agreement_id = agreement.id
    db.flush()
