"""
Tests for the monthly plan amortizer.
"""
import pytest
from datetime import date
from decimal import Decimal
from splitledger.core.exceptions import ValidationError
from splitledger.models.expense import Expense
from splitledger.services import expense_service, settlement_service, team_service
from splitledger.services.expense_service import next_deadline, plan_deadlines, plan_installments


def test_installments_round_up_and_shrink_last_month():
    assert plan_installments(Decimal("100.00"), 3) == [Decimal("33.34"), Decimal("33.34"), Decimal("33.32")]


@pytest.mark.parametrize("total,months", [
    ("100.00", 3),
    ("1000.00", 7),
    ("24.00", 24),
    ("12345.67", 11),
    ("5.00", 1),
])
def test_installments_sum_to_total(total, months):
    installments = plan_installments(Decimal(total), months)
    assert len(installments) == months
    assert sum(installments) == Decimal(total)
    assert all(i > 0 for i in installments)


def test_installments_reject_total_too_small_for_months():
    # ceil(1.00 / 24) = 0.05, and 23 * 0.05 already exceeds the total
    with pytest.raises(ValidationError):
        plan_installments(Decimal("1.00"), 24)


def test_next_deadline_is_strictly_after():
    assert next_deadline(date(2026, 1, 15), 20) == date(2026, 1, 20)
    assert next_deadline(date(2026, 1, 20), 20) == date(2026, 2, 20)
    assert next_deadline(date(2026, 12, 25), 5) == date(2027, 1, 5)


def test_deadlines_clamp_to_short_months():
    assert plan_deadlines(date(2026, 1, 15), 31, 4) == [
        date(2026, 1, 31),
        date(2026, 2, 28),
        date(2026, 3, 31),
        date(2026, 4, 30),
    ]


def test_deadlines_handle_leap_february():
    assert plan_deadlines(date(2028, 1, 31), 30, 2) == [date(2028, 2, 29), date(2028, 3, 30)]


def test_create_monthly_expense(db, team, members, clock):
    ana, ben, cai = members
    result = expense_service.create_monthly_expense(
        db, team.id, ana.id, "1000", 3, 10, "Laptop", "supplies", clock=clock
    )

    expenses = result.expenses
    assert [e.month_number for e in expenses] == [1, 2, 3]
    assert all(e.is_monthly and e.total_months == 3 and e.deadline_day == 10 for e in expenses)
    assert [e.amount for e in expenses] == [Decimal("333.34"), Decimal("333.34"), Decimal("333.32")]
    assert sum(e.amount for e in expenses) == Decimal("1000.00")
    # Clock is 2026-01-15, so the first 10th strictly after it is in February
    assert [e.deadline for e in expenses] == [date(2026, 2, 10), date(2026, 3, 10), date(2026, 4, 10)]
    assert expenses[0].description == "Laptop (Month 1/3)"

    for expense in expenses:
        assert len(expense.settlements) == 2
        assert sum(s.amount_owed for s in expense.settlements) == expense.amount

    # 333.34 / 2 rounded up
    assert result.per_participant_amount == Decimal("166.67")


def test_per_participant_amount_is_zero_when_alone(db, make_user, clock):
    solo = make_user("Solo")
    team = team_service.create_team(db, "Solo", solo.id, clock=clock)
    result = expense_service.create_monthly_expense(db, team.id, solo.id, "300", 3, 1, "Rent", clock=clock)
    assert result.per_participant_amount == Decimal("0.00")
    assert all(e.settlements == [] for e in result.expenses)


@pytest.mark.parametrize("months,day", [(0, 10), (25, 10), (3, 0), (3, 32)])
def test_create_monthly_expense_rejects_out_of_range(db, team, members, clock, months, day):
    with pytest.raises(ValidationError):
        expense_service.create_monthly_expense(db, team.id, members[0].id, "600", months, day, "Plan", clock=clock)
    assert db.query(Expense).count() == 0


@pytest.mark.parametrize("total", ["0", "1e27"])
def test_create_monthly_expense_rejects_bad_total(db, team, members, clock, total):
    with pytest.raises(ValidationError):
        expense_service.create_monthly_expense(db, team.id, members[0].id, total, 3, 10, "Plan", clock=clock)


def test_payment_schedule_lists_open_installments(db, team, members, clock):
    ana, ben, _ = members
    expense_service.create_monthly_expense(db, team.id, ana.id, "600", 3, 5, "Subscription", clock=clock)
    expense_service.record_expense(db, team.id, ana.id, "30", "One-off", clock=clock)

    schedule = settlement_service.get_payment_schedule(db, team.id, ben.id)
    assert [item.month_number for item in schedule] == [1, 2, 3]
    assert [item.deadline for item in schedule] == sorted(item.deadline for item in schedule)
    assert all(item.owed_to == ana.id for item in schedule)

    settlement_service.submit_payment(db, schedule[0].settlement_id, ben.id, "cash")
    settlement_service.verify_payment(db, schedule[0].settlement_id, ana.id, True, clock=clock)
    assert [item.month_number for item in settlement_service.get_payment_schedule(db, team.id, ben.id)] == [2, 3]
