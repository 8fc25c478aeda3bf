import logging
import math
from dataclasses import dataclass
from typing import Any, List

from communal_rewards.errors import InvalidInput, RecordStoreError
from communal_rewards.models.event import Event
from communal_rewards.scoring import EventScorer, ScoreBreakdown, round_for_storage

logger = logging.getLogger(__name__)


def parse_metric(name: str, value: Any) -> float:
    """Coerce a submitted metric to a finite non-negative float"""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInput(f"{name} is required")
    if isinstance(value, bool):
        raise InvalidInput(f"{name} must be a number")
    try:
        metric = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{name} must be a number, got {value!r}")
    if not math.isfinite(metric):
        raise InvalidInput(f"{name} must be finite")
    if metric < 0:
        raise InvalidInput(f"{name} must not be negative")
    return metric


@dataclass
class EventSummary:
    event_count: int
    total_earnings: float
    average_score: float


class EventService:
    """Service for logging and listing community events"""

    def __init__(self, store, scorer: EventScorer = None):
        if not store:
            raise ValueError("Record store is required")
        self.store = store
        self.scorer = scorer or EventScorer()

    def preview(self, metric1: Any, metric2: Any) -> ScoreBreakdown:
        """Score submitted metrics without storing anything"""
        return self.scorer.breakdown(
            parse_metric("metric_1", metric1),
            parse_metric("metric_2", metric2)
        )

    def create_event(self, user_id: str, email: str, event_name: str,
                     metric1: Any, metric2: Any) -> Event:
        """
        Validate, score and store a new event, then credit the user's earnings.

        Raises:
            InvalidInput: If the name or metrics are rejected; nothing is stored
            RecordStoreError: If the event could not be stored
        """
        if not user_id:
            raise InvalidInput("user_id is required")
        if not isinstance(event_name, str) or not event_name.strip():
            raise InvalidInput("event_name is required")
        m1 = parse_metric("metric_1", metric1)
        m2 = parse_metric("metric_2", metric2)

        result = self.scorer.score_for_storage(m1, m2)
        event = self.store.insert_event(Event(
            user_id=user_id,
            event_name=event_name.strip(),
            metric_1=round_for_storage(m1),
            metric_2=round_for_storage(m2),
            calculated_score=result.score,
            calculated_token_amount=result.token_amount,
            is_redeemed=False
        ))
        logger.info(
            f"Event {event.id} scored {event.calculated_score} for {event.calculated_token_amount} tokens"
        )

        # The event stands even when the running total cannot be updated
        try:
            self.store.add_earnings(user_id, email or '', result.token_amount)
        except RecordStoreError as e:
            logger.error(f"Error updating earnings for {user_id}: {e}")

        return event

    def list_events(self, user_id: str) -> List[Event]:
        return self.store.get_events_for_user(user_id)

    def summary(self, user_id: str) -> EventSummary:
        """Per-user dashboard totals; average_score is 0.0 for a user with no events"""
        events = self.store.get_events_for_user(user_id)
        average = sum(e.calculated_score for e in events) / len(events) if events else 0.0
        return EventSummary(
            event_count=len(events),
            total_earnings=self.store.get_total_earnings(user_id),
            average_score=average
        )
