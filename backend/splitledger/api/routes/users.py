"""
User directory routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from splitledger.db.session import get_db
from splitledger.schemas.team import UserCreate, UserResponse
from splitledger.models.user import User
from splitledger.api.dependencies import get_current_member
from splitledger.services.team_service import create_user, get_user

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserCreate,
    db: Session = Depends(get_db)
):
    """Add a user to the member directory."""
    return create_user(db, user_data.name, user_data.email, user_data.gcash_number)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_member)
):
    """Get current user information."""
    return current_user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_by_id(
    user_id: int,
    current_user: User = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Get user by ID."""
    return get_user(db, user_id)
