"""Database storage service for events, wallets and transactions"""
import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from communal_rewards.errors import RecordStoreError
from communal_rewards.models.db import UserWallet, Profile, EventRecord, TransactionReceipt
from communal_rewards.models.event import Event, TransactionRecord, WalletBinding

logger = logging.getLogger(__name__)


def _to_event(row: EventRecord) -> Event:
    return Event(
        id=row.id,
        user_id=row.user_id,
        event_name=row.event_name,
        metric_1=row.metric_1,
        metric_2=row.metric_2,
        calculated_score=row.calculated_score,
        calculated_token_amount=row.calculated_token_amount,
        is_redeemed=bool(row.is_redeemed),
        created_at=row.created_at
    )


def _to_transaction(row: TransactionReceipt) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        user_id=row.user_id,
        event_id=row.event_id,
        amount=row.amount,
        transaction_hash=row.transaction_hash,
        created_at=row.created_at
    )


class StorageService:
    """Handles all database operations"""

    def __init__(self, session: Session):
        if not session:
            raise ValueError("Database session is required")
        self.session = session

    def _write_failed(self, action: str, e: Exception) -> RecordStoreError:
        self.session.rollback()
        logger.error(f"Database error {action}: {e}")
        return RecordStoreError(f"Failed {action}: {e}")

    def get_event(self, event_id: str) -> Optional[Event]:
        """Fetch a single event by id"""
        try:
            row = self.session.get(EventRecord, event_id)
            return _to_event(row) if row else None
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching event {event_id}: {e}")
            raise RecordStoreError(f"Failed fetching event {event_id}: {e}")

    def get_events_for_user(self, user_id: str) -> List[Event]:
        """All events logged by a user, newest first"""
        try:
            rows = self.session.query(EventRecord).filter_by(
                user_id=user_id
            ).order_by(EventRecord.created_at.desc()).all()
            return [_to_event(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching events for {user_id}: {e}")
            raise RecordStoreError(f"Failed fetching events for {user_id}: {e}")

    def get_all_events(self) -> List[Event]:
        """Every event, newest first"""
        try:
            rows = self.session.query(EventRecord).order_by(EventRecord.created_at.desc()).all()
            return [_to_event(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching events: {e}")
            raise RecordStoreError(f"Failed fetching events: {e}")

    def insert_event(self, event: Event) -> Event:
        """Store a newly scored event"""
        row = EventRecord(
            id=event.id,
            user_id=event.user_id,
            event_name=event.event_name,
            metric_1=event.metric_1,
            metric_2=event.metric_2,
            calculated_score=event.calculated_score,
            calculated_token_amount=event.calculated_token_amount,
            is_redeemed=event.is_redeemed
        )
        try:
            self.session.add(row)
            self.session.commit()
            logger.info(f"Stored event {row.id} for user {event.user_id}")
            return _to_event(row)
        except SQLAlchemyError as e:
            raise self._write_failed(f"storing event for {event.user_id}", e)

    def get_wallet_binding(self, user_id: str) -> Optional[str]:
        """Wallet address bound to a user, or None"""
        try:
            row = self.session.get(UserWallet, user_id)
            return row.wallet_address if row and row.wallet_address else None
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching wallet for {user_id}: {e}")
            raise RecordStoreError(f"Failed fetching wallet for {user_id}: {e}")

    def bind_wallet(self, binding: WalletBinding) -> None:
        """Create or overwrite a user's wallet binding"""
        try:
            row = self.session.get(UserWallet, binding.user_id)
            if row:
                row.wallet_address = binding.wallet_address
                if binding.email:
                    row.email = binding.email
            else:
                self.session.add(UserWallet(
                    id=binding.user_id,
                    email=binding.email,
                    wallet_address=binding.wallet_address
                ))
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._write_failed(f"binding wallet for {binding.user_id}", e)

    def insert_transaction_record(self, record: TransactionRecord) -> TransactionRecord:
        """Store a settlement receipt"""
        row = TransactionReceipt(
            id=record.id,
            user_id=record.user_id,
            event_id=record.event_id,
            amount=record.amount,
            transaction_hash=record.transaction_hash
        )
        try:
            self.session.add(row)
            self.session.commit()
            return _to_transaction(row)
        except SQLAlchemyError as e:
            raise self._write_failed(f"storing transaction for event {record.event_id}", e)

    def get_transactions_for_event(self, event_id: str) -> List[TransactionRecord]:
        """Settlement receipts recorded against an event"""
        try:
            rows = self.session.query(TransactionReceipt).filter_by(
                event_id=event_id
            ).order_by(TransactionReceipt.created_at).all()
            return [_to_transaction(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching transactions for {event_id}: {e}")
            raise RecordStoreError(f"Failed fetching transactions for {event_id}: {e}")

    def mark_event_redeemed(self, event_id: str) -> bool:
        """
        Flip is_redeemed from false to true.

        Returns False when no unredeemed row matched, i.e. the event is missing
        or another redemption already finalized it.
        """
        try:
            updated = self.session.query(EventRecord).filter_by(
                id=event_id, is_redeemed=False
            ).update({EventRecord.is_redeemed: True}, synchronize_session=False)
            self.session.commit()
            return updated == 1
        except SQLAlchemyError as e:
            raise self._write_failed(f"marking event {event_id} redeemed", e)

    def add_earnings(self, user_id: str, email: str, amount: float) -> None:
        """Add a token amount to the user's running total, creating the profile if needed"""
        try:
            profile = self.session.get(Profile, user_id)
            if profile:
                profile.total_earnings = (profile.total_earnings or 0.0) + amount
            else:
                self.session.add(Profile(id=user_id, email=email, total_earnings=amount))
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._write_failed(f"updating earnings for {user_id}", e)

    def get_total_earnings(self, user_id: str) -> float:
        try:
            profile = self.session.get(Profile, user_id)
            return profile.total_earnings if profile else 0.0
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching profile {user_id}: {e}")
            raise RecordStoreError(f"Failed fetching profile {user_id}: {e}")

    def is_admin(self, user_id: str) -> bool:
        """Whether the user's profile carries the admin flag"""
        try:
            profile = self.session.get(Profile, user_id)
            return bool(profile and profile.is_admin)
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching profile {user_id}: {e}")
            raise RecordStoreError(f"Failed fetching profile {user_id}: {e}")

    def set_admin(self, user_id: str, email: str = '', is_admin: bool = True) -> None:
        """Grant or revoke the admin flag"""
        try:
            profile = self.session.get(Profile, user_id)
            if profile:
                profile.is_admin = is_admin
            else:
                self.session.add(Profile(id=user_id, email=email, is_admin=is_admin))
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._write_failed(f"updating admin flag for {user_id}", e)
