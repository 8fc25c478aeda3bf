"""Supabase record store over the PostgREST HTTP API"""
import logging
import time
from datetime import datetime
from typing import Dict, List, Optional, Any

import requests

from communal_rewards.errors import RecordStoreError
from communal_rewards.models.event import Event, TransactionRecord, WalletBinding

logger = logging.getLogger(__name__)

READ_ATTEMPTS = 3


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


def _to_event(row: Dict[str, Any]) -> Event:
    return Event(
        id=row['id'],
        user_id=row['user_id'],
        event_name=row['event_name'],
        metric_1=float(row['metric_1']),
        metric_2=float(row['metric_2']),
        calculated_score=float(row['calculated_score']),
        calculated_token_amount=float(row['calculated_token_amount'] or 0),
        is_redeemed=bool(row.get('is_redeemed')),
        created_at=_parse_timestamp(row.get('created_at'))
    )


def _to_transaction(row: Dict[str, Any]) -> TransactionRecord:
    return TransactionRecord(
        id=row['id'],
        user_id=row['user_id'],
        event_id=row['event_id'],
        amount=float(row['amount']),
        transaction_hash=row['transaction_hash'],
        created_at=_parse_timestamp(row.get('created_at'))
    )


class SupabaseStore:
    """Record store backed by Supabase tables, using the service role key"""

    def __init__(self, url: str, service_key: str, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        if not url or not service_key:
            raise ValueError("Supabase URL and service key are required")
        self.base_url = f"{url.rstrip('/')}/rest/v1"
        self.timeout = timeout
        self.http = session or requests.Session()
        self.http.headers.update({
            'apikey': service_key,
            'Authorization': f'Bearer {service_key}',
            'Content-Type': 'application/json',
            'Accept': 'application/json'
        })

    def _read(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        """GET rows with retries"""
        for attempt in range(READ_ATTEMPTS):
            try:
                response = self.http.get(
                    f'{self.base_url}/{table}',
                    params=params,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.json()
            except requests.RequestException as e:
                if attempt == READ_ATTEMPTS - 1:
                    logger.error(f"Supabase read from {table} failed: {e}")
                    raise RecordStoreError(f"Failed reading {table}: {e}")
                logger.warning(f"Retrying request after error: {e}")
                time.sleep(1)
        return []

    def _write(self, method: str, table: str, payload: Dict[str, Any],
               params: Optional[Dict[str, str]] = None,
               prefer: str = 'return=representation') -> List[Dict[str, Any]]:
        """Single-shot write; writes are never retried"""
        try:
            response = self.http.request(
                method,
                f'{self.base_url}/{table}',
                params=params,
                json=payload,
                headers={'Prefer': prefer},
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json() if response.content else []
        except requests.RequestException as e:
            logger.error(f"Supabase {method} on {table} failed: {e}")
            raise RecordStoreError(f"Failed writing {table}: {e}")

    def get_event(self, event_id: str) -> Optional[Event]:
        rows = self._read('events', {'id': f'eq.{event_id}', 'select': '*'})
        return _to_event(rows[0]) if rows else None

    def get_events_for_user(self, user_id: str) -> List[Event]:
        rows = self._read('events', {
            'user_id': f'eq.{user_id}',
            'select': '*',
            'order': 'created_at.desc'
        })
        return [_to_event(row) for row in rows]

    def get_all_events(self) -> List[Event]:
        rows = self._read('events', {'select': '*', 'order': 'created_at.desc'})
        return [_to_event(row) for row in rows]

    def insert_event(self, event: Event) -> Event:
        rows = self._write('POST', 'events', {
            'id': event.id,
            'user_id': event.user_id,
            'event_name': event.event_name,
            'metric_1': event.metric_1,
            'metric_2': event.metric_2,
            'calculated_score': event.calculated_score,
            'calculated_token_amount': event.calculated_token_amount,
            'is_redeemed': event.is_redeemed
        })
        return _to_event(rows[0]) if rows else event

    def get_wallet_binding(self, user_id: str) -> Optional[str]:
        rows = self._read('users', {'id': f'eq.{user_id}', 'select': 'wallet_address'})
        if rows and rows[0].get('wallet_address'):
            return rows[0]['wallet_address']
        return None

    def bind_wallet(self, binding: WalletBinding) -> None:
        payload = {'id': binding.user_id, 'wallet_address': binding.wallet_address}
        if binding.email:
            payload['email'] = binding.email
        self._write('POST', 'users', payload, prefer='resolution=merge-duplicates,return=minimal')

    def insert_transaction_record(self, record: TransactionRecord) -> TransactionRecord:
        rows = self._write('POST', 'transactions', {
            'id': record.id,
            'user_id': record.user_id,
            'event_id': record.event_id,
            'amount': record.amount,
            'transaction_hash': record.transaction_hash
        })
        return _to_transaction(rows[0]) if rows else record

    def get_transactions_for_event(self, event_id: str) -> List[TransactionRecord]:
        rows = self._read('transactions', {
            'event_id': f'eq.{event_id}',
            'select': '*',
            'order': 'created_at.asc'
        })
        return [_to_transaction(row) for row in rows]

    def mark_event_redeemed(self, event_id: str) -> bool:
        """Conditional PATCH; only an unredeemed row is updated"""
        rows = self._write(
            'PATCH', 'events', {'is_redeemed': True},
            params={'id': f'eq.{event_id}', 'is_redeemed': 'eq.false'}
        )
        return len(rows) == 1

    def add_earnings(self, user_id: str, email: str, amount: float) -> None:
        payload = {'id': user_id, 'total_earnings': self.get_total_earnings(user_id) + amount}
        # merge-duplicates would blank a stored email
        if email:
            payload['email'] = email
        self._write('POST', 'profiles', payload, prefer='resolution=merge-duplicates,return=minimal')

    def get_total_earnings(self, user_id: str) -> float:
        rows = self._read('profiles', {'id': f'eq.{user_id}', 'select': 'total_earnings'})
        return float(rows[0].get('total_earnings') or 0) if rows else 0.0

    def is_admin(self, user_id: str) -> bool:
        rows = self._read('profiles', {'id': f'eq.{user_id}', 'select': 'is_Admin'})
        return bool(rows and rows[0].get('is_Admin'))
