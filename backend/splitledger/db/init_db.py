"""
Database initialization script.
"""
from splitledger.db.session import init_db

# Import all models so SQLAlchemy can register them
from splitledger.models import (
    User, Team, TeamMember, Expense, Settlement,
    SettlementAgreement, SettlementAgreementItem, ActivityLog
)

if __name__ == "__main__":
    print("Initializing database...")
    init_db()
    print("Database initialized successfully!")
