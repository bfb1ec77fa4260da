"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from splitledger.api.routes import (
    users, teams, expenses, settlements, agreements
)

api_router = APIRouter()

# Include all route modules
api_router.include_router(users.router)
api_router.include_router(teams.router)
api_router.include_router(expenses.router)
api_router.include_router(settlements.router)
api_router.include_router(agreements.router)
