"""Error taxonomy for scoring and redemption"""
from typing import Optional


class RewardsError(Exception):
    """Base exception for communal rewards errors"""
    code = "rewards_error"


class InvalidInput(RewardsError):
    """Rejected user input: negative, missing or non-numeric metrics, bad addresses"""
    code = "invalid_input"


class Unauthorized(RewardsError):
    """Caller is not allowed to perform an admin action"""
    code = "unauthorized"


class RecordStoreError(RewardsError):
    """Record store read or write failed"""
    code = "record_store_error"


class RedemptionError(RewardsError):
    """
    Base class for redemption failures.

    confirmed_on_chain is True only when tokens have already moved, which
    means local bookkeeping is behind the chain.
    """
    code = "redemption_error"
    confirmed_on_chain = False

    def __init__(self, message: str, event_id: Optional[str] = None):
        super().__init__(message)
        self.event_id = event_id


class EventNotFound(RedemptionError):
    code = "event_not_found"


class AlreadyRedeemed(RedemptionError):
    code = "already_redeemed"


class NothingToRedeem(RedemptionError):
    code = "nothing_to_redeem"


class UnboundWallet(RedemptionError):
    """User has no wallet address bound; no on-chain action was taken"""
    code = "unbound_wallet"


class NetworkRejected(RedemptionError):
    """Submission rejected before execution: wrong network, gas, signing, transport"""
    code = "network_rejected"


class ContractReverted(RedemptionError):
    """Contract execution reverted; reason holds the revert message if known"""
    code = "contract_reverted"

    def __init__(self, message: str, reason: Optional[str] = None,
                 event_id: Optional[str] = None,
                 transaction_hash: Optional[str] = None):
        super().__init__(message, event_id)
        self.reason = reason
        self.transaction_hash = transaction_hash


class RecordPersistFailure(RedemptionError):
    """
    Transfer confirmed on-chain but the receipt or redeemed flag was not saved.

    The transfer cannot be undone. The event stays unredeemed locally and has
    to be reconciled by hand against transaction_hash.
    """
    code = "record_persist_failure"
    confirmed_on_chain = True

    def __init__(self, message: str, event_id: str, transaction_hash: str,
                 block_number: Optional[int] = None,
                 receipt_saved: bool = False):
        super().__init__(message, event_id)
        self.transaction_hash = transaction_hash
        self.block_number = block_number
        self.receipt_saved = receipt_saved
