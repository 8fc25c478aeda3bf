"""Communal Score Token contract access and on-chain transfer submission"""
import logging
from decimal import Decimal
from typing import Optional

from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from communal_rewards.config import Settings
from communal_rewards.errors import ContractReverted, NetworkRejected
from communal_rewards.models.event import Confirmation

logger = logging.getLogger(__name__)

# Errors raised by web3, eth_account and the HTTP transport before a
# transaction is mined
TRANSPORT_ERRORS = (Web3Exception, ValueError, RequestException)

COMMUNAL_SCORE_TOKEN_ABI = [
    {
        "type": "function",
        "name": "redeem",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
            {"name": "reason", "type": "string"}
        ],
        "outputs": [],
        "stateMutability": "nonpayable"
    },
    {
        "type": "function",
        "name": "mint",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
            {"name": "reason", "type": "string"}
        ],
        "outputs": [],
        "stateMutability": "nonpayable"
    },
    {
        "type": "function",
        "name": "transfer",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "value", "type": "uint256"}
        ],
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable"
    },
    {
        "type": "function",
        "name": "balanceOf",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view"
    },
    {
        "type": "function",
        "name": "totalSupply",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view"
    },
    {
        "type": "function",
        "name": "name",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view"
    },
    {
        "type": "function",
        "name": "symbol",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view"
    },
    {
        "type": "function",
        "name": "decimals",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view"
    },
    {
        "type": "function",
        "name": "owner",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view"
    },
    {
        "type": "event",
        "name": "TokensRedeemed",
        "inputs": [
            {"name": "to", "type": "address", "indexed": True},
            {"name": "amount", "type": "uint256", "indexed": False},
            {"name": "reason", "type": "string", "indexed": False}
        ],
        "anonymous": False
    }
]


def revert_message(error: ContractLogicError) -> str:
    """Revert reason without the node's 'execution reverted' prefix"""
    message = getattr(error, 'message', None) or str(error)
    prefix = 'execution reverted: '
    if message.startswith(prefix):
        return message[len(prefix):]
    return message


def build_web3(rpc_url: str, timeout: float = 30.0) -> Web3:
    return Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))


class TokenContract:
    """Read access to the deployed token"""

    def __init__(self, w3: Web3, address: str, abi: Optional[list] = None):
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self.contract = w3.eth.contract(address=self.address, abi=abi or COMMUNAL_SCORE_TOKEN_ABI)

    @property
    def functions(self):
        return self.contract.functions

    def balance_of(self, account: str) -> int:
        return self.functions.balanceOf(Web3.to_checksum_address(account)).call()

    def total_supply(self) -> int:
        return self.functions.totalSupply().call()

    def decimals(self) -> int:
        return self.functions.decimals().call()

    def name(self) -> str:
        return self.functions.name().call()

    def symbol(self) -> str:
        return self.functions.symbol().call()

    def owner(self) -> str:
        return self.functions.owner().call()

    def to_display(self, amount: int, decimals: int = 18) -> Decimal:
        """Convert base units to display units"""
        return Decimal(amount) / (Decimal(10) ** decimals)


class Web3TransferSubmitter:
    """
    Signs and sends owner-only token calls, then waits for their receipts.

    Every call is signed locally with the owner's key and sent as a raw
    transaction. Nothing is retried.
    """

    def __init__(self, w3: Web3, token: TokenContract, private_key: str,
                 chain_id: int, receipt_timeout: float = 120.0,
                 poll_latency: float = 2.0):
        self.w3 = w3
        self.token = token
        self.account = w3.eth.account.from_key(private_key)
        self.chain_id = chain_id
        self.receipt_timeout = receipt_timeout
        self.poll_latency = poll_latency

    @classmethod
    def from_settings(cls, settings: Settings) -> 'Web3TransferSubmitter':
        chain = settings.chain_settings
        if not chain.rpc_url:
            raise ValueError("RPC_URL setting is required")
        if not chain.owner_private_key:
            raise ValueError("OWNER_PRIVATE_KEY setting is required")
        w3 = build_web3(chain.rpc_url, chain.rpc_timeout)
        return cls(
            w3,
            TokenContract(w3, chain.token_address),
            chain.owner_private_key,
            chain.chain_id,
            receipt_timeout=chain.receipt_timeout,
            poll_latency=chain.receipt_poll_latency
        )

    @property
    def owner_address(self) -> str:
        return self.account.address

    def _ensure_network(self) -> None:
        try:
            connected = self.w3.eth.chain_id
        except TRANSPORT_ERRORS as e:
            raise NetworkRejected(f"Could not reach RPC endpoint: {e}")
        if connected != self.chain_id:
            raise NetworkRejected(f"Connected to chain {connected}, expected {self.chain_id}")

    def _send(self, function, label: str) -> str:
        """Build, sign and send a contract call, returning the transaction hash"""
        self._ensure_network()
        try:
            tx = function.build_transaction({
                'from': self.account.address,
                'nonce': self.w3.eth.get_transaction_count(self.account.address, 'pending'),
                'chainId': self.chain_id,
            })
            signed = self.account.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except ContractLogicError as e:
            reason = revert_message(e)
            logger.error(f"{label} reverted during estimation: {reason}")
            raise ContractReverted(f"{label} reverted: {reason}", reason=reason)
        except TRANSPORT_ERRORS as e:
            logger.error(f"{label} rejected: {e}")
            raise NetworkRejected(f"{label} rejected: {e}")

        tx_hex = self.w3.to_hex(tx_hash)
        logger.info(f"Submitted {label}: {tx_hex}")
        return tx_hex

    def submit_transfer(self, to_address: str, amount: int, reason: str) -> str:
        """Send `amount` base units from the owner to `to_address` via redeem"""
        try:
            recipient = Web3.to_checksum_address(to_address)
        except ValueError as e:
            raise NetworkRejected(f"Invalid recipient address {to_address}: {e}")
        return self._send(self.token.functions.redeem(recipient, amount, reason), "redeem")

    def mint(self, to_address: str, amount: int, reason: str) -> str:
        """Mint `amount` base units to `to_address`"""
        try:
            recipient = Web3.to_checksum_address(to_address)
        except ValueError as e:
            raise NetworkRejected(f"Invalid recipient address {to_address}: {e}")
        return self._send(self.token.functions.mint(recipient, amount, reason), "mint")

    def await_confirmation(self, transaction_hash: str) -> Confirmation:
        """
        Wait until the transaction is mined.

        Raises:
            NetworkRejected: If the receipt did not arrive in time or the RPC failed
            ContractReverted: If the transaction was mined but reverted
        """
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                transaction_hash,
                timeout=self.receipt_timeout,
                poll_latency=self.poll_latency
            )
        except TimeExhausted:
            logger.error(f"No receipt for {transaction_hash} after {self.receipt_timeout}s")
            raise NetworkRejected(
                f"Transaction {transaction_hash} not confirmed within {self.receipt_timeout}s; "
                "check the explorer before retrying"
            )
        except TRANSPORT_ERRORS as e:
            logger.error(f"Waiting for {transaction_hash} failed: {e}")
            raise NetworkRejected(f"Waiting for {transaction_hash} failed: {e}")

        block_number = receipt['blockNumber']
        if receipt['status'] != 1:
            reason = self._replay_revert_reason(transaction_hash, block_number)
            logger.error(f"Transaction {transaction_hash} reverted in block {block_number}: {reason}")
            raise ContractReverted(
                f"Transaction {transaction_hash} reverted in block {block_number}",
                reason=reason,
                transaction_hash=transaction_hash
            )

        logger.info(f"Transaction {transaction_hash} confirmed in block {block_number}")
        return Confirmation(transaction_hash=transaction_hash, block_number=block_number)

    def _replay_revert_reason(self, transaction_hash: str, block_number: int) -> Optional[str]:
        """Re-run a reverted transaction as a call against the parent block"""
        try:
            tx = self.w3.eth.get_transaction(transaction_hash)
            self.w3.eth.call({
                'from': tx['from'],
                'to': tx['to'],
                'data': tx['input'],
            }, max(block_number - 1, 0))
        except ContractLogicError as e:
            return revert_message(e)
        except TRANSPORT_ERRORS as e:
            logger.warning(f"Could not replay {transaction_hash} for a revert reason: {e}")
        return None
