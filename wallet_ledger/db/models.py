"""SQLAlchemy ORM models."""
import uuid
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from wallet_ledger.infrastructure.database.base import Base

MONEY = Numeric(14, 2)


def generate_uuid() -> str:
    return str(uuid.uuid4())


class Agent(Base):
    __tablename__ = "agents"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    full_name = Column(String(150))
    # Denormalized projection of the ledger, rewritten by the balance synchronizer
    wallet_balance = Column(MONEY, nullable=False, default=0)
    balance_synced_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    transactions = relationship("WalletTransaction", back_populates="agent")
    topup_requests = relationship("TopupRequest", back_populates="agent")


class TopupRequest(Base):
    __tablename__ = "topup_requests"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_topup_requests_amount_positive"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    agent_id = Column(String(36), ForeignKey("agents.id"), nullable=False, index=True)
    amount = Column(MONEY, nullable=False)
    status = Column(String(20), nullable=False, default="pending")  # pending, approved, rejected
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    approved_at = Column(DateTime(timezone=True))
    approved_by = Column(String(36))
    resolved_at = Column(DateTime(timezone=True))
    resolved_by = Column(String(36))

    agent = relationship("Agent", back_populates="topup_requests")


class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_wallet_transactions_amount_positive"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    agent_id = Column(String(36), ForeignKey("agents.id"), nullable=False, index=True)
    topup_request_id = Column(
        String(36), ForeignKey("topup_requests.id", ondelete="SET NULL"), unique=True, nullable=True
    )
    amount = Column(MONEY, nullable=False)
    kind = Column(String(30), nullable=False)
    direction = Column(String(10))  # credit, debit; admin_adjustment only
    status = Column(String(20), nullable=False, default="pending", index=True)
    description = Column(String(255), nullable=False)
    reference_code = Column(String(64), nullable=False, unique=True)
    payment_method = Column(String(20))
    admin_notes = Column(Text)
    admin_id = Column(String(36))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    processed_at = Column(DateTime(timezone=True))

    agent = relationship("Agent", back_populates="transactions")
