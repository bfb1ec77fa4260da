"""Models package - Import all models for SQLAlchemy registration."""
from splitledger.models.user import User
from splitledger.models.team import Team, TeamMember
from splitledger.models.expense import Expense, ExpenseCategory
from splitledger.models.settlement import Settlement, SettlementStatus, PaymentMethod, OPEN_STATUSES
from splitledger.models.agreement import SettlementAgreement, SettlementAgreementItem, AgreementStatus
from splitledger.models.activity import ActivityLog

__all__ = [
    "User",
    "Team",
    "TeamMember",
    "Expense",
    "ExpenseCategory",
    "Settlement",
    "SettlementStatus",
    "PaymentMethod",
    "OPEN_STATUSES",
    "SettlementAgreement",
    "SettlementAgreementItem",
    "AgreementStatus",
    "ActivityLog",
]
