"""Event redemption: on-chain reward transfer followed by local bookkeeping"""
import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Protocol, Tuple

from communal_rewards.errors import (
    AlreadyRedeemed,
    ContractReverted,
    EventNotFound,
    InvalidInput,
    NothingToRedeem,
    RecordPersistFailure,
    RecordStoreError,
    RedemptionError,
    UnboundWallet,
)
from communal_rewards.models.event import Confirmation, Event, TransactionRecord
from communal_rewards.models.redemption import RedemptionResult, RedemptionStatus

logger = logging.getLogger(__name__)

TOKEN_DECIMALS = 18


class RecordStore(Protocol):
    def get_event(self, event_id: str) -> Optional[Event]: ...
    def get_events_for_user(self, user_id: str) -> List[Event]: ...
    def get_wallet_binding(self, user_id: str) -> Optional[str]: ...
    def insert_transaction_record(self, record: TransactionRecord) -> TransactionRecord: ...
    def mark_event_redeemed(self, event_id: str) -> bool: ...


class TransferSubmitter(Protocol):
    def submit_transfer(self, to_address: str, amount: int, reason: str) -> str: ...
    def await_confirmation(self, transaction_hash: str) -> Confirmation: ...


def to_base_units(amount: float, decimals: int = TOKEN_DECIMALS) -> int:
    """
    Scale a display amount to the token's smallest unit.

    Goes through the decimal string form so 5.5 becomes exactly
    5500000000000000000 rather than whatever the binary float holds.
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise InvalidInput(f"Token amount {amount!r} is not a number")
    if not value.is_finite() or value < 0:
        raise InvalidInput(f"Token amount {amount!r} must be a finite non-negative number")
    return int(value.scaleb(decimals).to_integral_value())


def redemption_reason(event: Event) -> str:
    return f"Event: {event.event_name}"


class RedemptionCoordinator:
    """
    Settles a single event: resolve wallet, transfer on-chain, wait for the
    receipt, record the transaction, mark the event redeemed.

    Holds no state between calls. Authorization is the caller's job. Two
    calls racing on the same event can both pass the redeemed check and both
    pay out; the compare-and-set on the redeemed flag only makes the second
    one visible as a RecordPersistFailure.
    """

    def __init__(self, store: RecordStore, submitter: TransferSubmitter,
                 decimals: int = TOKEN_DECIMALS):
        self.store = store
        self.submitter = submitter
        self.decimals = decimals

    def _load(self, event: Event) -> Event:
        current = self.store.get_event(event.id)
        if current is None:
            raise EventNotFound(f"Event {event.id} does not exist", event.id)
        return current

    def _resolve_wallet(self, event: Event) -> str:
        address = self.store.get_wallet_binding(event.user_id)
        if not address:
            raise UnboundWallet(f"User {event.user_id} has not connected a wallet", event.id)
        return address

    def redeem(self, event: Event) -> TransactionRecord:
        """
        Transfer the event's token amount to the user's bound wallet and record it.

        Raises:
            EventNotFound, AlreadyRedeemed, NothingToRedeem, UnboundWallet:
                preconditions failed, nothing was submitted
            RecordStoreError: the event or wallet could not be read
            NetworkRejected, ContractReverted: the transfer did not happen
            RecordPersistFailure: the transfer happened but local records
                were not fully updated
        """
        record, _ = self._redeem(event)
        return record

    def _redeem(self, event: Event) -> Tuple[TransactionRecord, Confirmation]:
        event = self._load(event)
        if event.is_redeemed:
            raise AlreadyRedeemed(f"Event {event.id} has already been redeemed", event.id)
        if not event.calculated_token_amount or event.calculated_token_amount <= 0:
            raise NothingToRedeem(f"Event {event.id} has no tokens to redeem", event.id)

        address = self._resolve_wallet(event)
        amount = to_base_units(event.calculated_token_amount, self.decimals)

        logger.info(
            f"Redeeming event {event.id}: {event.calculated_token_amount} tokens to {address}"
        )
        try:
            tx_hash = self.submitter.submit_transfer(address, amount, redemption_reason(event))
            confirmation = self.submitter.await_confirmation(tx_hash)
        except RedemptionError as e:
            e.event_id = e.event_id or event.id
            logger.error(f"Redemption of event {event.id} aborted: {e}")
            raise

        record = TransactionRecord(
            user_id=event.user_id,
            event_id=event.id,
            amount=event.calculated_token_amount,
            transaction_hash=confirmation.transaction_hash
        )
        try:
            record = self.store.insert_transaction_record(record)
        except Exception as e:
            raise self._persist_failure(event, confirmation, f"saving transaction record failed: {e}", False) from e

        try:
            marked = self.store.mark_event_redeemed(event.id)
        except Exception as e:
            raise self._persist_failure(event, confirmation, f"marking event redeemed failed: {e}", True) from e
        if not marked:
            raise self._persist_failure(
                event, confirmation,
                "event was already marked redeemed by a concurrent redemption; "
                "this transfer is a duplicate payout", True
            )

        logger.info(f"Event {event.id} redeemed in transaction {confirmation.transaction_hash}")
        return record, confirmation

    def _persist_failure(self, event: Event, confirmation: Confirmation,
                         detail: str, receipt_saved: bool) -> RecordPersistFailure:
        message = (
            f"Tokens for event {event.id} were transferred in {confirmation.transaction_hash} "
            f"(block {confirmation.block_number}) but {detail}. Manual reconciliation required."
        )
        logger.critical(message)
        return RecordPersistFailure(
            message,
            event_id=event.id,
            transaction_hash=confirmation.transaction_hash,
            block_number=confirmation.block_number,
            receipt_saved=receipt_saved
        )

    def settle(self, event: Event) -> RedemptionResult:
        """Redeem and report the outcome as a RedemptionResult instead of raising"""
        try:
            record, confirmation = self._redeem(event)
        except RecordPersistFailure as e:
            return RedemptionResult(
                event_id=event.id,
                status=RedemptionStatus.NEEDS_RECONCILIATION,
                error_code=e.code,
                message=str(e),
                transaction_hash=e.transaction_hash,
                block_number=e.block_number,
                amount=event.calculated_token_amount
            )
        except ContractReverted as e:
            return RedemptionResult(
                event_id=event.id,
                status=RedemptionStatus.FAILED,
                error_code=e.code,
                message=str(e),
                transaction_hash=e.transaction_hash,
                amount=event.calculated_token_amount,
                revert_reason=e.reason
            )
        except (RedemptionError, InvalidInput, RecordStoreError) as e:
            return RedemptionResult(
                event_id=event.id,
                status=RedemptionStatus.FAILED,
                error_code=e.code,
                message=str(e),
                amount=event.calculated_token_amount
            )

        return RedemptionResult(
            event_id=event.id,
            status=RedemptionStatus.REDEEMED,
            message=f"{record.amount} tokens transferred to user",
            transaction_hash=record.transaction_hash,
            block_number=confirmation.block_number,
            amount=record.amount
        )
