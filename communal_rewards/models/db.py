"""SQLAlchemy database models for events, wallets and transactions"""
from datetime import datetime
from sqlalchemy import Column, String, Float, Boolean, DateTime
from sqlalchemy.orm import declarative_base

from communal_rewards.models.event import new_id

Base = declarative_base()

class UserWallet(Base):
    """
    Wallet address bound to an application user.
    Overwritten whenever the user connects a different wallet.
    """
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True)
    email = Column(String, nullable=False, default='')
    wallet_address = Column(String(42), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

class Profile(Base):
    """
    Per-user profile with accumulated earnings and the admin flag.
    """
    __tablename__ = 'profiles'

    id = Column(String(36), primary_key=True)
    email = Column(String, nullable=False, default='')
    total_earnings = Column(Float, nullable=False, default=0.0)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

class EventRecord(Base):
    """
    Logged community event with its score and token amount.
    Score fields are written once at creation; only is_redeemed changes later.
    """
    __tablename__ = 'events'

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    event_name = Column(String, nullable=False)
    metric_1 = Column(Float, nullable=False)
    metric_2 = Column(Float, nullable=False)
    calculated_score = Column(Float, nullable=False)
    calculated_token_amount = Column(Float, nullable=False)
    is_redeemed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

class TransactionReceipt(Base):
    """
    Settlement receipt for a redeemed event.
    event_id is deliberately not unique; the redeemed flag is the only gate.
    """
    __tablename__ = 'transactions'

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    event_id = Column(String(36), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    transaction_hash = Column(String(66), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
