"""Wallet binding: records the address a user connects"""
import logging
from typing import Optional

from web3 import Web3

from communal_rewards.errors import InvalidInput
from communal_rewards.models.event import WalletBinding

logger = logging.getLogger(__name__)


class WalletService:
    """Handles wallet connection transitions for users"""

    def __init__(self, store):
        if not store:
            raise ValueError("Record store is required")
        self.store = store

    def on_wallet_connected(self, user_id: str, email: str, address: str) -> Optional[WalletBinding]:
        """
        Handle a wallet becoming connected for a user.

        Call once per connection, not per render. Returns the new binding, or
        None when the same address was already bound.

        Raises:
            InvalidInput: If the address is not a valid EVM address
        """
        if not user_id:
            raise InvalidInput("user_id is required")
        if not address or not Web3.is_address(address):
            raise InvalidInput(f"Not a valid wallet address: {address!r}")

        checksummed = Web3.to_checksum_address(address)
        current = self.store.get_wallet_binding(user_id)
        if current and current.lower() == checksummed.lower():
            logger.debug(f"Wallet for {user_id} unchanged")
            return None

        binding = WalletBinding(user_id=user_id, wallet_address=checksummed, email=email or '')
        self.store.bind_wallet(binding)
        logger.info(f"Bound wallet {checksummed} to user {user_id}")
        return binding
