"""Command line entry point for event logging and reward redemption"""
import argparse
import json
import logging
import sys
from contextlib import contextmanager
from dataclasses import asdict
from typing import Iterator, List, Optional

from communal_rewards.config import settings, Settings
from communal_rewards.db import db
from communal_rewards.redemption import RedemptionCoordinator
from communal_rewards.services.admin import AdminService
from communal_rewards.services.auth import AuthorizationGate
from communal_rewards.services.chain import TokenContract, Web3TransferSubmitter, build_web3
from communal_rewards.services.events import EventService
from communal_rewards.services.storage import StorageService
from communal_rewards.services.supabase import SupabaseStore
from communal_rewards.services.wallets import WalletService

logger = logging.getLogger(__name__)


@contextmanager
def open_store(config: Settings) -> Iterator:
    """Record store selected by RECORD_STORE; an SQL session is closed on exit"""
    if config.RECORD_STORE == 'supabase':
        yield SupabaseStore(config.SUPABASE_URL, config.SUPABASE_SERVICE_KEY)
        return
    if config.RECORD_STORE == 'sql':
        db.init()
        with db.session() as session:
            yield StorageService(session)
        return
    raise ValueError(f"Unknown RECORD_STORE: {config.RECORD_STORE}")


def _print(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_init_db(args, config: Settings) -> None:
    db.init()
    if args.admin:
        with db.session() as session:
            StorageService(session).set_admin(args.admin, args.email or '')
        logger.info(f"Granted admin to {args.admin}")


def cmd_add_event(args, config: Settings) -> None:
    with open_store(config) as store:
        event = EventService(store).create_event(args.user, args.email, args.name, args.metric1, args.metric2)
    _print(asdict(event))


def cmd_events(args, config: Settings) -> None:
    with open_store(config) as store:
        events = EventService(store).list_events(args.user)
    _print([asdict(event) for event in events])


def cmd_summary(args, config: Settings) -> None:
    with open_store(config) as store:
        summary = EventService(store).summary(args.user)
    _print(asdict(summary))


def cmd_connect_wallet(args, config: Settings) -> None:
    with open_store(config) as store:
        binding = WalletService(store).on_wallet_connected(args.user, args.email, args.address)
    _print(asdict(binding) if binding else {"unchanged": True})


def _admin_service(store, config: Settings, with_submitter: bool) -> AdminService:
    submitter = Web3TransferSubmitter.from_settings(config) if with_submitter else None
    coordinator = RedemptionCoordinator(store, submitter, decimals=config.TOKEN_DECIMALS)
    return AdminService(store, AuthorizationGate(store), coordinator)


def cmd_admin_events(args, config: Settings) -> None:
    with open_store(config) as store:
        events = _admin_service(store, config, with_submitter=False).list_events(args.admin)
    _print([asdict(event) for event in events])


def cmd_event_details(args, config: Settings) -> None:
    with open_store(config) as store:
        details = _admin_service(store, config, with_submitter=False).event_details(args.admin, args.event)
    _print(asdict(details))


def cmd_redeem(args, config: Settings) -> int:
    with open_store(config) as store:
        result = _admin_service(store, config, with_submitter=True).redeem_event(args.admin, args.event)
    _print(result.model_dump(mode='json'))
    return 0 if result.status.value == 'redeemed' else 1


def cmd_token_info(args, config: Settings) -> None:
    chain = config.chain_settings
    if not chain.rpc_url:
        raise ValueError("RPC_URL setting is required")
    token = TokenContract(build_web3(chain.rpc_url, chain.rpc_timeout), chain.token_address)
    decimals = token.decimals()
    info = {
        'address': token.address,
        'name': token.name(),
        'symbol': token.symbol(),
        'decimals': decimals,
        'total_supply': str(token.to_display(token.total_supply(), decimals)),
        'owner': token.owner(),
    }
    if args.account:
        info['balance'] = str(token.to_display(token.balance_of(args.account), decimals))
    _print(info)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='communal_rewards', description='Community event rewards')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('init-db', help='Create tables')
    p.add_argument('--admin', help='User ID to grant admin')
    p.add_argument('--email')
    p.set_defaults(func=cmd_init_db)

    p = sub.add_parser('add-event', help='Log an event and score it')
    p.add_argument('--user', required=True)
    p.add_argument('--email', default='')
    p.add_argument('--name', required=True)
    p.add_argument('--metric1', required=True)
    p.add_argument('--metric2', required=True)
    p.set_defaults(func=cmd_add_event)

    p = sub.add_parser('events', help="List a user's events")
    p.add_argument('--user', required=True)
    p.set_defaults(func=cmd_events)

    p = sub.add_parser('summary', help="Show a user's dashboard totals")
    p.add_argument('--user', required=True)
    p.set_defaults(func=cmd_summary)

    p = sub.add_parser('connect-wallet', help='Bind a wallet address to a user')
    p.add_argument('--user', required=True)
    p.add_argument('--email', default='')
    p.add_argument('--address', required=True)
    p.set_defaults(func=cmd_connect_wallet)

    p = sub.add_parser('admin-events', help='List all events (admin)')
    p.add_argument('--admin', required=True)
    p.set_defaults(func=cmd_admin_events)

    p = sub.add_parser('event-details', help='Show an event and its transactions (admin)')
    p.add_argument('--admin', required=True)
    p.add_argument('--event', required=True)
    p.set_defaults(func=cmd_event_details)

    p = sub.add_parser('redeem', help="Send an event's tokens to the user's wallet (admin)")
    p.add_argument('--admin', required=True)
    p.add_argument('--event', required=True)
    p.set_defaults(func=cmd_redeem)

    p = sub.add_parser('token-info', help='Show token details')
    p.add_argument('--account', help='Also show the balance of this address')
    p.set_defaults(func=cmd_token_info)

    return parser


def run(argv: Optional[List[str]] = None) -> None:
    """Parse arguments and run the selected command."""
    logging.basicConfig(level=settings.LOG_LEVEL, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    args = build_parser().parse_args(argv)
    try:
        status = args.func(args, settings)
    except Exception as e:
        logger.error(f"Error running {args.command}: {e}")
        sys.exit(1)
    finally:
        db.dispose()
    if status:
        sys.exit(status)


if __name__ == "__main__":
    run()
