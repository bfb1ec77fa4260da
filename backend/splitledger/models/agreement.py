"""
Settlement agreement model for netting mutual debts.
"""
from sqlalchemy import Column, Numeric, DateTime, ForeignKey, Integer, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from splitledger.db.base import BaseModel
import enum


class AgreementStatus(str, enum.Enum):
    """Agreement status enumeration."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class SettlementAgreement(BaseModel):
    """Proposal by one member to cancel mutual debts with another."""
    __tablename__ = "settlement_agreements"

    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    proposer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    responder_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    proposer_owes = Column(Numeric(15, 2), nullable=False)
    responder_owes = Column(Numeric(15, 2), nullable=False)
    status = Column(SQLEnum(AgreementStatus), default=AgreementStatus.PENDING, nullable=False, index=True)
    proposed_at = Column(DateTime, nullable=False)
    responded_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False)

    # Relationships
    items = relationship("SettlementAgreementItem", back_populates="agreement", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}

    @property
    def settlement_ids(self):
        return sorted(item.settlement_id for item in self.items)

    @property
    def net_amount(self):
        """What the responder still owes the proposer after netting (negative: proposer owes)."""
        return self.responder_owes - self.proposer_owes


class SettlementAgreementItem(BaseModel):
    """Junction table: the exact settlements an agreement will close."""
    __tablename__ = "settlement_agreement_items"

    agreement_id = Column(Integer, ForeignKey("settlement_agreements.id"), nullable=False, index=True)
    settlement_id = Column(Integer, ForeignKey("settlements.id"), nullable=False, index=True)

    # Relationships
    agreement = relationship("SettlementAgreement", back_populates="items")
    settlement = relationship("Settlement")

    __table_args__ = (
        UniqueConstraint('agreement_id', 'settlement_id', name='uq_agreement_settlement'),
    )
