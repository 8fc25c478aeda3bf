from unittest.mock import patch

import pytest

from communal_rewards.errors import InvalidInput, RecordStoreError
from communal_rewards.services.events import EventService, parse_metric


@pytest.fixture()
def service(store):
    return EventService(store)


def test_create_event_scores_and_stores(service, store):
    event = service.create_event("alice", "alice@example.com", "Beach cleanup", "50", 50)

    assert event.calculated_score == 55.0
    assert event.calculated_token_amount == 5.5
    assert event.is_redeemed is False
    assert store.get_event(event.id).event_name == "Beach cleanup"


def test_create_event_rounds_to_two_decimals(service):
    event = service.create_event("alice", "", "Workshop", 33.333, 12.5)

    assert event.metric_1 == 33.33
    assert event.metric_2 == 12.5
    assert event.calculated_score == round(event.calculated_score, 2)
    assert event.calculated_token_amount == round(event.calculated_token_amount, 2)


def test_create_event_credits_earnings(service, store):
    service.create_event("alice", "alice@example.com", "One", 100, 0)
    service.create_event("alice", "alice@example.com", "Two", 50, 50)

    assert store.get_total_earnings("alice") == pytest.approx(12.1)


def test_earnings_failure_keeps_event(service, store):
    with patch.object(store, "add_earnings", side_effect=RecordStoreError("profiles locked")):
        event = service.create_event("alice", "", "Meetup", 10, 10)

    assert store.get_event(event.id) is not None


@pytest.mark.parametrize("metric1, metric2", [
    (-1, 10),
    (10, -0.01),
    ("abc", 10),
    (None, 10),
    ("", 10),
    ("   ", 10),
    (float("nan"), 10),
    (float("inf"), 10),
    (True, 10),
])
def test_invalid_metrics_are_rejected_before_storing(service, store, metric1, metric2):
    with pytest.raises(InvalidInput):
        service.create_event("alice", "", "Bad", metric1, metric2)

    assert store.get_events_for_user("alice") == []


@pytest.mark.parametrize("name", ["", "   ", None])
def test_event_name_required(service, name):
    with pytest.raises(InvalidInput):
        service.create_event("alice", "", name, 1, 1)


def test_preview_does_not_store(service, store):
    breakdown = service.preview("100", "0")

    assert breakdown.score == pytest.approx(66.0)
    assert store.get_all_events() == []


def test_list_events(service):
    first = service.create_event("alice", "", "One", 1, 1)
    service.create_event("bob", "", "Two", 1, 1)

    assert [e.id for e in service.list_events("alice")] == [first.id]


def test_parse_metric_accepts_numeric_strings():
    assert parse_metric("metric_1", " 12.5 ") == 12.5
    assert parse_metric("metric_1", 0) == 0.0


def test_event_name_must_be_text(service, store):
    with pytest.raises(InvalidInput):
        service.create_event("alice", "", 42, 1, 1)
    assert store.get_events_for_user("alice") == []


def test_summary(service):
    service.create_event("alice", "", "One", 100, 0)
    service.create_event("alice", "", "Two", 50, 50)
    service.create_event("bob", "", "Other", 10, 10)

    summary = service.summary("alice")

    assert summary.event_count == 2
    assert summary.total_earnings == pytest.approx(12.1)
    assert summary.average_score == pytest.approx(60.5)


def test_summary_without_events(service):
    summary = service.summary("nobody")

    assert summary.event_count == 0
    assert summary.total_earnings == 0.0
    assert summary.average_score == 0.0
