"""
Settlement model: one member's owed share of one expense.
"""
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Integer, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from splitledger.db.base import BaseModel
import enum


class SettlementStatus(str, enum.Enum):
    """Settlement status enumeration."""
    PENDING = "pending"
    UNCONFIRMED = "unconfirmed"
    PAID = "paid"


class PaymentMethod(str, enum.Enum):
    """How a settlement was (or is claimed to be) paid."""
    NONE = "none"  # Nothing moved: zero share or closed by agreement
    CASH = "cash"
    GCASH = "gcash"


OPEN_STATUSES = (SettlementStatus.PENDING, SettlementStatus.UNCONFIRMED)


class Settlement(BaseModel):
    """Debt of `owed_by` towards the payer of `expense`."""
    __tablename__ = "settlements"

    expense_id = Column(Integer, ForeignKey("expenses.id"), nullable=False, index=True)
    owed_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount_owed = Column(Numeric(15, 2), nullable=False)
    status = Column(SQLEnum(SettlementStatus), default=SettlementStatus.PENDING, nullable=False, index=True)
    payment_method = Column(SQLEnum(PaymentMethod), nullable=True)
    proof_reference = Column(String(1000), nullable=True)
    paid_at = Column(DateTime, nullable=True)
    agreement_id = Column(Integer, ForeignKey("settlement_agreements.id"), nullable=True, index=True)
    deleted_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False)

    # Relationships
    expense = relationship("Expense", back_populates="settlements")
    debtor = relationship("User", foreign_keys=[owed_by])
    agreement = relationship("SettlementAgreement", foreign_keys=[agreement_id])

    __table_args__ = (
        UniqueConstraint('expense_id', 'owed_by', name='uq_expense_debtor_settlement'),
    )
    # Every UPDATE checks and bumps `version`; a concurrent writer loses with StaleDataError
    __mapper_args__ = {"version_id_col": version}

    @property
    def owed_to(self) -> int:
        return self.expense.paid_by

    @property
    def is_open(self) -> bool:
        return self.deleted_at is None and self.status in OPEN_STATUSES
