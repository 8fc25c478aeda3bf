"""Admin dashboard operations: browse events and settle rewards"""
import logging
from dataclasses import dataclass
from typing import List

from communal_rewards.errors import EventNotFound
from communal_rewards.models.event import Event, TransactionRecord
from communal_rewards.models.redemption import RedemptionResult
from communal_rewards.redemption import RedemptionCoordinator
from communal_rewards.services.auth import AuthorizationGate

logger = logging.getLogger(__name__)


@dataclass
class EventDetails:
    """An event together with the transactions recorded against it"""
    event: Event
    transactions: List[TransactionRecord]


class AdminService:
    """Admin-only views over events; every call passes the authorization gate first"""

    def __init__(self, store, gate: AuthorizationGate, coordinator: RedemptionCoordinator):
        self.store = store
        self.gate = gate
        self.coordinator = coordinator

    def list_events(self, admin_id: str) -> List[Event]:
        self.gate.require_admin(admin_id)
        return self.store.get_all_events()

    def event_details(self, admin_id: str, event_id: str) -> EventDetails:
        self.gate.require_admin(admin_id)
        event = self.store.get_event(event_id)
        if event is None:
            raise EventNotFound(f"Event {event_id} does not exist", event_id)
        return EventDetails(
            event=event,
            transactions=self.store.get_transactions_for_event(event_id)
        )

    def redeem_event(self, admin_id: str, event_id: str) -> RedemptionResult:
        """
        Settle one event for an administrator.

        Unauthorized and unknown events raise; every redemption outcome,
        including a transfer that needs reconciliation, comes back as a
        RedemptionResult.
        """
        self.gate.require_admin(admin_id)
        event = self.store.get_event(event_id)
        if event is None:
            raise EventNotFound(f"Event {event_id} does not exist", event_id)

        logger.info(f"Admin {admin_id} redeeming event {event_id}")
        result = self.coordinator.settle(event)
        if result.needs_reconciliation:
            logger.critical(
                f"Event {event_id} needs manual reconciliation against {result.transaction_hash}"
            )
        return result
