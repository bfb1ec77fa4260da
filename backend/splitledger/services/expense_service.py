"""
Expense service: recording expenses, splitting them into settlements and
amortizing lump sums into monthly plans.
"""
import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Union
from sqlalchemy.orm import Session
from splitledger.core.cache import LedgerCache, NullCache
from splitledger.core.clock import Clock, system_clock
from splitledger.core.config import settings
from splitledger.core.exceptions import Forbidden, NotFound, ValidationError
from splitledger.core.money import ZERO, quantize_up, to_money
from splitledger.db.session import transaction
from splitledger.models.expense import Expense, ExpenseCategory
from splitledger.models.settlement import Settlement, SettlementStatus, PaymentMethod
from splitledger.services.activity_service import log_activity
from splitledger.services.split_engine import EqualSplit, SplitStrategy, get_split_strategy
from splitledger.services.team_service import cascade_soft_delete, get_active_member_ids, get_team, require_member

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 500


@dataclass
class MonthlyPlanResult:
    """Expenses created for a plan plus the per-member preview amount."""
    expenses: List[Expense]
    per_participant_amount: Decimal


def _validate_amount(amount, field: str = "amount") -> Decimal:
    value = to_money(amount, field)
    if value <= 0:
        raise ValidationError(f"{field} must be positive")
    return value


def _validate_description(description: Optional[str]) -> str:
    if description is None or not description.strip():
        raise ValidationError("Description is required")
    description = description.strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError("Description is too long")
    return description


def _validate_category(category: Union[str, ExpenseCategory, None]) -> ExpenseCategory:
    if category is None:
        return ExpenseCategory.OTHER
    if isinstance(category, ExpenseCategory):
        return category
    try:
        return ExpenseCategory(str(category).lower())
    except ValueError:
        allowed = ", ".join(c.value for c in ExpenseCategory)
        raise ValidationError(f"Category must be one of: {allowed}")


def _add_expense_with_settlements(
    db: Session,
    team_id: int,
    payer_id: int,
    amount: Decimal,
    description: str,
    category: ExpenseCategory,
    member_ids: List[int],
    strategy: SplitStrategy,
    now: datetime,
    **plan_fields
) -> Expense:
    """Stage one expense and one settlement per non-payer member. Caller commits."""
    expense = Expense(
        team_id=team_id,
        paid_by=payer_id,
        amount=amount,
        currency=settings.CURRENCY,
        description=description,
        category=category,
        created_at=now,
        **plan_fields
    )
    db.add(expense)
    db.flush()

    debtor_ids = [member_id for member_id in member_ids if member_id != payer_id]
    shares = strategy.allocate(amount, debtor_ids)
    if sum(shares.values(), ZERO) != (amount if shares else ZERO):
        raise ValidationError("Split strategy did not conserve the expense amount")

    for debtor_id, share in shares.items():
        settlement = Settlement(
            expense_id=expense.id,
            owed_by=debtor_id,
            amount_owed=share,
            status=SettlementStatus.PENDING,
        )
        if share == ZERO:
            # Nothing owed; record it as settled so it never shows as open debt
            settlement.status = SettlementStatus.PAID
            settlement.payment_method = PaymentMethod.NONE
            settlement.paid_at = now
        db.add(settlement)
    return expense


def record_expense(
    db: Session,
    team_id: int,
    payer_id: int,
    amount,
    description: str,
    category=None,
    note: Optional[str] = None,
    split_strategy: Union[str, SplitStrategy, None] = None,
    clock: Clock = system_clock,
    cache: LedgerCache = None
) -> Expense:
    """
    Record an expense paid by `payer_id` and create one pending settlement for
    every other active member of the team, all in one transaction.
    `split_strategy` is a SplitStrategy or a registered strategy name.
    """
    if isinstance(split_strategy, str):
        split_strategy = get_split_strategy(split_strategy)
    amount = _validate_amount(amount)
    description = _validate_description(description)
    category = _validate_category(category)
    get_team(db, team_id)
    require_member(db, team_id, payer_id)

    member_ids = get_active_member_ids(db, team_id)
    with transaction(db):
        expense = _add_expense_with_settlements(
            db, team_id, payer_id, amount, description, category,
            member_ids, split_strategy or EqualSplit(), clock.now(),
        )
        expense.note = note
        log_activity(
            db, team_id, payer_id, "ADDED_EXPENSE",
            f"Added expense '{description}' for {settings.CURRENCY} {amount}"
        )
    (cache or NullCache()).invalidate_team(team_id, member_ids)
    db.refresh(expense)
    logger.info(f"Recorded expense {expense.id} of {amount} in team {team_id} with {len(expense.settlements)} settlements")
    return expense


def plan_installments(total: Decimal, months: int) -> List[Decimal]:
    """
    Installments for a monthly plan: ceil(total / months) per month, with the
    final month reduced so the installments sum to total exactly.
    """
    installment = quantize_up(total / months)
    final = total - installment * (months - 1)
    if final <= 0:
        raise ValidationError(
            f"Total of {total} is too small to spread over {months} months",
            details={"installment": str(installment)}
        )
    return [installment] * (months - 1) + [final]


def _clamped_date(year: int, month: int, day: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def next_deadline(after: date, deadline_day: int) -> date:
    """First date strictly after `after` falling on deadline_day (clamped to month end)."""
    candidate = _clamped_date(after.year, after.month, deadline_day)
    if candidate > after:
        return candidate
    if after.month == 12:
        return _clamped_date(after.year + 1, 1, deadline_day)
    return _clamped_date(after.year, after.month + 1, deadline_day)


def plan_deadlines(start: date, deadline_day: int, months: int) -> List[date]:
    deadlines = []
    current = start
    for _ in range(months):
        current = next_deadline(current, deadline_day)
        deadlines.append(current)
    return deadlines


def create_monthly_expense(
    db: Session,
    team_id: int,
    payer_id: int,
    total_amount,
    number_of_months: int,
    deadline_day: int,
    description: str,
    category=None,
    clock: Clock = system_clock,
    cache: LedgerCache = None
) -> MonthlyPlanResult:
    """
    Amortize a lump sum into `number_of_months` dated installment expenses,
    each split like a regular expense. All months commit together.
    """
    total = _validate_amount(total_amount, "total_amount")
    if not isinstance(number_of_months, int) or not 1 <= number_of_months <= settings.MAX_PLAN_MONTHS:
        raise ValidationError(f"Number of months must be between 1 and {settings.MAX_PLAN_MONTHS}")
    if not isinstance(deadline_day, int) or not 1 <= deadline_day <= 31:
        raise ValidationError("Deadline day must be between 1 and 31")
    description = _validate_description(description)
    category = _validate_category(category)
    get_team(db, team_id)
    require_member(db, team_id, payer_id)

    installments = plan_installments(total, number_of_months)
    deadlines = plan_deadlines(clock.today(), deadline_day, number_of_months)
    member_ids = get_active_member_ids(db, team_id)
    strategy = EqualSplit()
    now = clock.now()

    expenses = []
    with transaction(db):
        for month, (amount, deadline) in enumerate(zip(installments, deadlines), start=1):
            expenses.append(_add_expense_with_settlements(
                db, team_id, payer_id, amount,
                f"{description} (Month {month}/{number_of_months})",
                category, member_ids, strategy, now,
                is_monthly=True,
                month_number=month,
                total_months=number_of_months,
                deadline=deadline,
                deadline_day=deadline_day,
            ))
        log_activity(
            db, team_id, payer_id, "ADDED_MONTHLY_PLAN",
            f"Added monthly plan '{description}' for {settings.CURRENCY} {total} over {number_of_months} months"
        )
    (cache or NullCache()).invalidate_team(team_id, member_ids)

    debtor_count = len([m for m in member_ids if m != payer_id])
    per_participant = quantize_up(installments[0] / debtor_count) if debtor_count else ZERO
    for expense in expenses:
        db.refresh(expense)
    logger.info(f"Created {number_of_months}-month plan of {total} in team {team_id}")
    return MonthlyPlanResult(expenses=expenses, per_participant_amount=per_participant)


def get_expense(db: Session, expense_id: int) -> Expense:
    """Get a live expense or raise NotFound."""
    expense = db.query(Expense).filter(
        Expense.id == expense_id,
        Expense.deleted_at.is_(None)
    ).first()
    if not expense:
        raise NotFound("Expense not found")
    return expense


def list_team_expenses(db: Session, team_id: int) -> List[Expense]:
    get_team(db, team_id)
    return db.query(Expense).filter(
        Expense.team_id == team_id,
        Expense.deleted_at.is_(None)
    ).order_by(Expense.created_at.desc(), Expense.id.desc()).all()


def update_expense_details(
    db: Session,
    expense_id: int,
    caller_id: int,
    description: Optional[str] = None,
    note: Optional[str] = None
) -> Expense:
    """Edit description and note. Amount and payer are immutable."""
    expense = get_expense(db, expense_id)
    if expense.paid_by != caller_id:
        raise Forbidden("Only the payer can edit this expense")
    if description is None and note is None:
        raise ValidationError("Nothing to update")

    with transaction(db):
        if description is not None:
            expense.description = _validate_description(description)
        if note is not None:
            expense.note = note
        log_activity(db, expense.team_id, caller_id, "UPDATED_EXPENSE", f"Updated expense '{expense.description}'")
    db.refresh(expense)
    return expense


def delete_expense(
    db: Session,
    expense_id: int,
    caller_id: int,
    clock: Clock = system_clock,
    cache: LedgerCache = None
) -> Dict[str, int]:
    """Soft-delete an expense and cascade the tombstone to its settlements."""
    expense = get_expense(db, expense_id)
    if expense.paid_by != caller_id:
        raise Forbidden("Only the payer can delete this expense")

    team_id = expense.team_id
    affected = [expense.paid_by] + [s.owed_by for s in expense.settlements]
    with transaction(db):
        touched = cascade_soft_delete(db, expense, clock.now())
        log_activity(db, team_id, caller_id, "DELETED_EXPENSE", f"Deleted expense '{expense.description}'")
    (cache or NullCache()).invalidate_team(team_id, affected)
    logger.info(f"Deleted expense {expense_id} and {touched} settlements")
    return {"expense_id": expense_id, "settlements_deleted": touched}
