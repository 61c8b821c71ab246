"""CreditTransaction model: immutable log of charges, bypasses and cycle resets."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import JSONB, UUID

from ghoste.db.base import Base


class CreditTransaction(Base):
    __tablename__ = "credit_transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(255), nullable=False, index=True)
    feature_key = Column(String(100), nullable=False)

    credits_used = Column(Integer, nullable=False)
    balance_before = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)

    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
