"""RedemptionResult model definition"""
from enum import Enum
from typing import Optional
from pydantic import BaseModel

class RedemptionStatus(str, Enum):
    REDEEMED = "redeemed"
    FAILED = "failed"
    NEEDS_RECONCILIATION = "needs_reconciliation"

class RedemptionResult(BaseModel):
    """
    Outcome of settling one event, returned to the admin caller.

    Attributes:
        event_id: The event that was settled
        status: redeemed, failed (nothing changed anywhere) or
            needs_reconciliation (tokens moved on-chain, local records did not
            follow)
        error_code: Machine readable error code when not redeemed
        message: Human readable outcome
        transaction_hash: On-chain reference when a transfer was confirmed
        block_number: Block the transfer was confirmed in
        amount: Token amount (display units)
        revert_reason: Contract revert reason, if the contract rejected it
    """
    event_id: str
    status: RedemptionStatus
    error_code: Optional[str] = None
    message: str = ""
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    amount: Optional[float] = None
    revert_reason: Optional[str] = None

    @property
    def needs_reconciliation(self) -> bool:
        return self.status == RedemptionStatus.NEEDS_RECONCILIATION
