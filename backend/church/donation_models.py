from sqlalchemy import Column, Integer, String, Text, DateTime
from .database import Base
from .clock import utcnow


class Donation(Base):
    __tablename__ = 'donations'
    id = Column(Integer, primary_key=True, index=True)
    amount = Column(Integer, nullable=False)  # whole currency units
    name = Column(String(200), nullable=False)
    email = Column(String(200), nullable=False)
    message = Column(Text, nullable=True)
    payment_intent_id = Column(String(255), nullable=False, index=True)  # pi_... or manual-bank-transfer
    status = Column(String(20), nullable=False, default='pending')  # pending, succeeded, failed
    created_at = Column(DateTime, nullable=False, default=utcnow)
