from unittest.mock import MagicMock, patch

import pytest
import requests

from communal_rewards.errors import RecordStoreError
from communal_rewards.models.event import TransactionRecord, WalletBinding
from communal_rewards.services.supabase import SupabaseStore

EVENT_ROW = {
    'id': 'evt-1',
    'user_id': 'alice',
    'event_name': 'Beach cleanup',
    'metric_1': 50,
    'metric_2': 50,
    'calculated_score': 55,
    'calculated_token_amount': 5.5,
    'is_redeemed': False,
    'created_at': '2025-01-02T03:04:05.123456+00:00',
}


def _response(rows):
    response = MagicMock()
    response.json.return_value = rows
    response.content = b'[]' if rows is not None else b''
    return response


@pytest.fixture()
def http():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture()
def store(http):
    return SupabaseStore("https://project.supabase.co/", "service-key", session=http)


def test_auth_headers(http, store):
    assert http.headers['apikey'] == 'service-key'
    assert http.headers['Authorization'] == 'Bearer service-key'
    assert store.base_url == "https://project.supabase.co/rest/v1"


def test_requires_credentials():
    with pytest.raises(ValueError):
        SupabaseStore("", "key")


def test_get_event(http, store):
    http.get.return_value = _response([EVENT_ROW])

    event = store.get_event('evt-1')

    assert event.event_name == 'Beach cleanup'
    assert event.calculated_token_amount == 5.5
    assert event.created_at.year == 2025
    http.get.assert_called_once_with(
        "https://project.supabase.co/rest/v1/events",
        params={'id': 'eq.evt-1', 'select': '*'},
        timeout=10.0
    )


def test_get_event_missing(http, store):
    http.get.return_value = _response([])

    assert store.get_event('nope') is None


def test_wallet_binding(http, store):
    http.get.return_value = _response([{'wallet_address': '0xabc'}])
    assert store.get_wallet_binding('alice') == '0xabc'

    http.get.return_value = _response([{'wallet_address': None}])
    assert store.get_wallet_binding('alice') is None


def test_mark_event_redeemed_is_conditional(http, store):
    http.request.return_value = _response([dict(EVENT_ROW, is_redeemed=True)])

    assert store.mark_event_redeemed('evt-1') is True
    args, kwargs = http.request.call_args
    assert args == ('PATCH', "https://project.supabase.co/rest/v1/events")
    assert kwargs['params'] == {'id': 'eq.evt-1', 'is_redeemed': 'eq.false'}
    assert kwargs['json'] == {'is_redeemed': True}


def test_mark_event_redeemed_no_match(http, store):
    http.request.return_value = _response([])

    assert store.mark_event_redeemed('evt-1') is False


def test_insert_transaction_record(http, store):
    record = TransactionRecord(user_id='alice', event_id='evt-1', amount=5.5, transaction_hash='0xabc')
    http.request.return_value = _response([{
        'id': record.id, 'user_id': 'alice', 'event_id': 'evt-1',
        'amount': 5.5, 'transaction_hash': '0xabc', 'created_at': None,
    }])

    saved = store.insert_transaction_record(record)

    assert saved.transaction_hash == '0xabc'
    assert http.request.call_args.kwargs['json']['event_id'] == 'evt-1'


@patch('communal_rewards.services.supabase.time.sleep')
def test_reads_are_retried(sleep, http, store):
    http.get.side_effect = [requests.ConnectionError("reset"), _response([EVENT_ROW])]

    assert store.get_event('evt-1') is not None
    assert http.get.call_count == 2
    sleep.assert_called_once_with(1)


@patch('communal_rewards.services.supabase.time.sleep')
def test_reads_give_up_after_three_attempts(sleep, http, store):
    http.get.side_effect = requests.ConnectionError("down")

    with pytest.raises(RecordStoreError):
        store.get_events_for_user('alice')
    assert http.get.call_count == 3


def test_writes_are_not_retried(http, store):
    http.request.side_effect = requests.HTTPError("409 Conflict")

    with pytest.raises(RecordStoreError):
        store.mark_event_redeemed('evt-1')
    assert http.request.call_count == 1


def test_is_admin(http, store):
    http.get.return_value = _response([{'is_Admin': True}])
    assert store.is_admin('root') is True

    http.get.return_value = _response([])
    assert store.is_admin('nobody') is False


def test_bind_wallet_without_email_keeps_stored_email(http, store):
    store.bind_wallet(WalletBinding(user_id='alice', wallet_address='0xabc'))

    assert http.request.call_args.kwargs['json'] == {'id': 'alice', 'wallet_address': '0xabc'}
    assert 'merge-duplicates' in http.request.call_args.kwargs['headers']['Prefer']


def test_bind_wallet_with_email(http, store):
    store.bind_wallet(WalletBinding(user_id='alice', wallet_address='0xabc', email='alice@example.com'))

    assert http.request.call_args.kwargs['json']['email'] == 'alice@example.com'


def test_add_earnings_accumulates_without_blanking_email(http, store):
    http.get.return_value = _response([{'total_earnings': 1.0}])

    store.add_earnings('alice', '', 2.0)

    assert http.request.call_args.kwargs['json'] == {'id': 'alice', 'total_earnings': 3.0}


def test_get_total_earnings(http, store):
    http.get.return_value = _response([{'total_earnings': '4.25'}])
    assert store.get_total_earnings('alice') == 4.25

    http.get.return_value = _response([])
    assert store.get_total_earnings('nobody') == 0.0
