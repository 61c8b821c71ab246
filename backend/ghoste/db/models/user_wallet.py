"""UserWallet model: per-user plan tier and credit balance."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from ghoste.db.base import Base


class UserWallet(Base):
    __tablename__ = "user_wallets"

    user_id = Column(String(255), primary_key=True)

    # operator | growth | scale
    plan = Column(String(50), nullable=False, default="operator")

    monthly_credits = Column(Integer, nullable=False, default=30_000)
    credits_remaining = Column(Integer, nullable=False, default=30_000)
    credits_used = Column(Integer, nullable=False, default=0)

    cycle_start = Column(DateTime(timezone=True), nullable=False)
    cycle_end = Column(DateTime(timezone=True), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
