"""
Pydantic schemas for Team and member entities.
"""
from pydantic import BaseModel, EmailStr
from typing import List, Optional
from datetime import datetime


class UserCreate(BaseModel):
    """Schema for registering a member."""
    name: str
    email: EmailStr
    gcash_number: Optional[str] = None


class UserResponse(BaseModel):
    """Schema for user response."""
    id: int
    name: str
    email: EmailStr
    gcash_number: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True


class TeamCreate(BaseModel):
    """Schema for team creation."""
    name: str


class TeamResponse(BaseModel):
    """Schema for team response."""
    id: int
    name: str
    code: str
    created_at: datetime

    class Config:
        from_attributes = True


class MemberAdd(BaseModel):
    """Schema for adding a member to a team."""
    user_id: int


class TeamJoin(BaseModel):
    """Schema for joining a team by invite code."""
    code: str


class TeamMemberResponse(BaseModel):
    """Schema for team member response."""
    id: int
    name: str
    email: str
    gcash_number: Optional[str] = None
    is_creator: bool


class ActivityLogResponse(BaseModel):
    """Schema for activity log response."""
    id: int
    user_id: int
    action: str
    details: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
