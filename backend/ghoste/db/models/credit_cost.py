"""CreditCost model: credits charged per feature key."""

from sqlalchemy import Column, Integer, String, Text

from ghoste.db.base import Base


class CreditCost(Base):
    __tablename__ = "credit_costs"

    feature_key = Column(String(100), primary_key=True)
    credit_cost = Column(Integer, nullable=False, default=0)  # 0 = always allowed
    description = Column(Text, nullable=True)
