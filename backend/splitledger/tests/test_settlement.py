"""
Tests for payment submission, verification and balances.
"""
import pytest
from decimal import Decimal
from splitledger.core.cache import cache_keys
from splitledger.core.exceptions import Forbidden, InvalidState, NotFound, StaleDataError, ValidationError
from splitledger.models.settlement import SettlementStatus, PaymentMethod
from splitledger.services import expense_service, settlement_service


@pytest.fixture
def expense(db, team, members, clock):
    ana = members[0]
    return expense_service.record_expense(db, team.id, ana.id, "300", "Printing", "printing", clock=clock)


def _settlement_of(expense, member):
    return next(s for s in expense.settlements if s.owed_by == member.id)


def test_submit_then_verify(db, expense, members, clock):
    ana, ben, _ = members
    settlement = _settlement_of(expense, ben)

    submitted = settlement_service.submit_payment(db, settlement.id, ben.id, PaymentMethod.CASH)
    assert submitted.status == SettlementStatus.UNCONFIRMED
    assert submitted.payment_method == PaymentMethod.CASH

    verified = settlement_service.verify_payment(db, settlement.id, ana.id, True, clock=clock)
    assert verified.status == SettlementStatus.PAID
    assert verified.paid_at == clock.now()


def test_only_debtor_can_submit(db, expense, members):
    ana, ben, cai = members
    with pytest.raises(Forbidden):
        settlement_service.submit_payment(db, _settlement_of(expense, ben).id, cai.id, "cash")


def test_gcash_requires_proof(db, expense, members):
    ben = members[1]
    with pytest.raises(ValidationError):
        settlement_service.submit_payment(db, _settlement_of(expense, ben).id, ben.id, "gcash")


def test_verify_pending_is_invalid_state(db, expense, members, clock):
    ana, ben, _ = members
    with pytest.raises(InvalidState):
        settlement_service.verify_payment(db, _settlement_of(expense, ben).id, ana.id, True, clock=clock)


def test_only_creditor_can_verify(db, expense, members, clock):
    ana, ben, cai = members
    settlement = _settlement_of(expense, ben)
    settlement_service.submit_payment(db, settlement.id, ben.id, "cash")
    with pytest.raises(Forbidden):
        settlement_service.verify_payment(db, settlement.id, ben.id, True, clock=clock)
    with pytest.raises(Forbidden):
        settlement_service.verify_payment(db, settlement.id, cai.id, True, clock=clock)


def test_submit_on_paid_is_invalid_state(db, expense, members, clock):
    ana, ben, _ = members
    settlement = _settlement_of(expense, ben)
    settlement_service.submit_payment(db, settlement.id, ben.id, "cash")
    settlement_service.verify_payment(db, settlement.id, ana.id, True, clock=clock)

    with pytest.raises(InvalidState):
        settlement_service.submit_payment(db, settlement.id, ben.id, "cash")
    with pytest.raises(InvalidState):
        settlement_service.submit_payment(db, settlement.id, ben.id, "gcash", "proof://again")


def test_double_submit_is_invalid_state(db, expense, members):
    ben = members[1]
    settlement = _settlement_of(expense, ben)
    settlement_service.submit_payment(db, settlement.id, ben.id, "cash")
    with pytest.raises(InvalidState):
        settlement_service.submit_payment(db, settlement.id, ben.id, "cash")


def test_rejection_cycles_always_return_to_clean_pending(db, expense, members, clock):
    ana, ben, _ = members
    settlement = _settlement_of(expense, ben)

    for attempt in range(3):
        settlement_service.submit_payment(db, settlement.id, ben.id, "gcash", f"https://proof/{attempt}")
        rejected = settlement_service.verify_payment(db, settlement.id, ana.id, False, clock=clock)
        assert rejected.status == SettlementStatus.PENDING
        assert rejected.payment_method is None
        assert rejected.proof_reference is None
        assert rejected.paid_at is None


def test_unknown_or_deleted_settlement_is_not_found(db, expense, members, clock):
    ana, ben, _ = members
    with pytest.raises(NotFound):
        settlement_service.submit_payment(db, 9999, ben.id, "cash")

    settlement_id = _settlement_of(expense, ben).id
    expense_service.delete_expense(db, expense.id, ana.id, clock=clock)
    with pytest.raises(NotFound):
        settlement_service.submit_payment(db, settlement_id, ben.id, "cash")


def test_batch_payment_reports_skipped(db, team, expense, members, clock):
    ana, ben, cai = members
    second = expense_service.record_expense(db, team.id, ana.id, "60", "Paper", clock=clock)
    first_id = _settlement_of(expense, ben).id
    second_id = _settlement_of(second, ben).id
    cai_id = _settlement_of(expense, cai).id
    settlement_service.submit_payment(db, second_id, ben.id, "cash")

    result = settlement_service.submit_batch_payment(
        db, [first_id, second_id, cai_id, 4242, first_id], ben.id, "gcash", "https://proof/batch"
    )

    assert result.succeeded == [first_id]
    assert {(s.settlement_id, s.reason) for s in result.skipped} == {
        (second_id, "invalid_state"),
        (cai_id, "forbidden"),
        (4242, "not_found"),
    }
    first = settlement_service.get_settlement(db, first_id)
    assert first.status == SettlementStatus.UNCONFIRMED
    assert first.proof_reference == "https://proof/batch"
    assert settlement_service.get_settlement(db, cai_id).status == SettlementStatus.PENDING


def test_batch_payment_validates_input_up_front(db, expense, members):
    ben = members[1]
    with pytest.raises(ValidationError):
        settlement_service.submit_batch_payment(db, [], ben.id, "cash")
    with pytest.raises(ValidationError):
        settlement_service.submit_batch_payment(db, [_settlement_of(expense, ben).id], ben.id, "gcash")
    assert settlement_service.get_settlement(db, _settlement_of(expense, ben).id).status == SettlementStatus.PENDING


def test_concurrent_verification_has_one_winner(session_factory, db, expense, members, clock):
    ana, ben, _ = members
    settlement_id = _settlement_of(expense, ben).id
    settlement_service.submit_payment(db, settlement_id, ben.id, "cash")

    first, second = session_factory(), session_factory()
    try:
        # Both requests read the unconfirmed row before either writes
        settlement_service.get_settlement(first, settlement_id)
        settlement_service.get_settlement(second, settlement_id)

        settlement_service.verify_payment(second, settlement_id, ana.id, True, clock=clock)
        with pytest.raises(StaleDataError):
            settlement_service.verify_payment(first, settlement_id, ana.id, False, clock=clock)
    finally:
        first.close()
        second.close()

    db.expire_all()
    assert settlement_service.get_settlement(db, settlement_id).status == SettlementStatus.PAID


def test_balances_use_cache_and_are_invalidated(db, team, expense, members, clock, cache):
    ana, ben, _ = members
    balances = settlement_service.get_team_balances(db, team.id, ana.id, cache=cache)
    assert balances.owed_to_you == Decimal("300.00")
    assert balances.owed_to_you_count == 2
    assert cache.get(cache_keys.team_balances(team.id, ana.id)) is not None

    ben_balances = settlement_service.get_team_balances(db, team.id, ben.id, cache=cache)
    assert ben_balances.you_owe == Decimal("150.00")
    assert ben_balances.you_owe_count == 1

    settlement_id = _settlement_of(expense, ben).id
    settlement_service.submit_payment(db, settlement_id, ben.id, "cash", cache=cache)
    settlement_service.verify_payment(db, settlement_id, ana.id, True, clock=clock, cache=cache)
    assert cache.get(cache_keys.team_balances(team.id, ana.id)) is None

    balances = settlement_service.get_team_balances(db, team.id, ana.id, cache=cache)
    assert balances.owed_to_you == Decimal("150.00")
    assert balances.owed_to_you_count == 1


def test_list_team_settlements_filters_by_status(db, team, expense, members):
    ben = members[1]
    settlement_service.submit_payment(db, _settlement_of(expense, ben).id, ben.id, "cash")
    unconfirmed = settlement_service.list_team_settlements(db, team.id, SettlementStatus.UNCONFIRMED)
    assert [s.owed_by for s in unconfirmed] == [ben.id]
    assert len(settlement_service.list_team_settlements(db, team.id)) == 2
