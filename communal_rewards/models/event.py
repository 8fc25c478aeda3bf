"""Domain models for events, wallet bindings and settlement receipts"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
import uuid


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Event:
    """One community participation record"""
    user_id: str
    event_name: str
    metric_1: float
    metric_2: float
    calculated_score: float
    calculated_token_amount: float
    is_redeemed: bool = False
    id: str = field(default_factory=new_id)
    created_at: Optional[datetime] = None


@dataclass
class TransactionRecord:
    """Settlement receipt for a redeemed event"""
    user_id: str
    event_id: str
    amount: float
    transaction_hash: str
    id: str = field(default_factory=new_id)
    created_at: Optional[datetime] = None


@dataclass
class WalletBinding:
    """Wallet address a user connected"""
    user_id: str
    wallet_address: str
    email: str = ''


@dataclass
class Confirmation:
    """On-chain confirmation of a submitted transfer"""
    transaction_hash: str
    block_number: int
