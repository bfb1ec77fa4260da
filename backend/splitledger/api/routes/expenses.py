"""
Expense management routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from splitledger.db.session import get_db
from splitledger.models.user import User
from splitledger.schemas.expense import (
    ExpenseCreate, ExpenseResponse, ExpenseUpdate, MonthlyExpenseCreate, MonthlyPlanResponse
)
from splitledger.core.cache import LedgerCache
from splitledger.core.clock import Clock
from splitledger.core.utils import format_response
from splitledger.api.dependencies import get_current_member, get_cache, get_clock
from splitledger.services import expense_service
from splitledger.services.team_service import require_member

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.post("/team/{team_id}", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    team_id: int,
    expense_data: ExpenseCreate,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    cache: LedgerCache = Depends(get_cache),
    clock: Clock = Depends(get_clock)
):
    """Record an expense paid by the caller and split it among the team."""
    return expense_service.record_expense(
        db,
        team_id=team_id,
        payer_id=current_user.id,
        amount=expense_data.amount,
        description=expense_data.description,
        category=expense_data.category,
        note=expense_data.note,
        split_strategy=expense_data.split_strategy,
        clock=clock,
        cache=cache
    )


@router.post("/team/{team_id}/monthly", response_model=MonthlyPlanResponse, status_code=status.HTTP_201_CREATED)
async def create_monthly_expense(
    team_id: int,
    plan_data: MonthlyExpenseCreate,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    cache: LedgerCache = Depends(get_cache),
    clock: Clock = Depends(get_clock)
):
    """Spread a lump sum over monthly installment expenses."""
    result = expense_service.create_monthly_expense(
        db,
        team_id=team_id,
        payer_id=current_user.id,
        total_amount=plan_data.total_amount,
        number_of_months=plan_data.number_of_months,
        deadline_day=plan_data.deadline_day,
        description=plan_data.description,
        category=plan_data.category,
        clock=clock,
        cache=cache
    )
    return MonthlyPlanResponse(
        expenses=[ExpenseResponse.model_validate(e) for e in result.expenses],
        per_participant_amount=result.per_participant_amount
    )


@router.get("/team/{team_id}", response_model=List[ExpenseResponse])
async def list_expenses(
    team_id: int,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """List a team's expenses, newest first."""
    require_member(db, team_id, current_user.id)
    return expense_service.list_team_expenses(db, team_id)


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: int,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Get expense with its settlements."""
    expense = expense_service.get_expense(db, expense_id)
    require_member(db, expense.team_id, current_user.id)
    return expense


@router.patch("/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: int,
    expense_data: ExpenseUpdate,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Edit description or note."""
    return expense_service.update_expense_details(
        db,
        expense_id=expense_id,
        caller_id=current_user.id,
        description=expense_data.description,
        note=expense_data.note
    )


@router.delete("/{expense_id}")
async def delete_expense(
    expense_id: int,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db),
    cache: LedgerCache = Depends(get_cache),
    clock: Clock = Depends(get_clock)
):
    """Soft-delete an expense and its settlements."""
    result = expense_service.delete_expense(db, expense_id, current_user.id, clock=clock, cache=cache)
    return format_response(result, message="Expense deleted")
