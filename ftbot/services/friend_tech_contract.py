"""
friend.tech Shares Contract Client

Reads key balances, submits sell orders and fetches Trade event logs
from the FriendtechSharesV1 contract on Base.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3
from web3.providers import AsyncHTTPProvider

from ftbot.config.config import FRIEND_TECH_CONTRACT_ADDRESS

logger = logging.getLogger(__name__)

FRIEND_TECH_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "", "type": "address"},
            {"internalType": "address", "name": "", "type": "address"}
        ],
        "name": "sharesBalance",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address", "name": "sharesSubject", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"}
        ],
        "name": "sellShares",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address", "name": "sharesSubject", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"}
        ],
        "name": "getSellPriceAfterFee",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": False, "internalType": "address", "name": "trader", "type": "address"},
            {"indexed": False, "internalType": "address", "name": "subject", "type": "address"},
            {"indexed": False, "internalType": "bool", "name": "isBuy", "type": "bool"},
            {"indexed": False, "internalType": "uint256", "name": "shareAmount", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "ethAmount", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "protocolEthAmount", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "subjectEthAmount", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "supply", "type": "uint256"}
        ],
        "name": "Trade",
        "type": "event"
    }
]


class ContractError(RuntimeError):
    """Raised when a contract write cannot be submitted."""


@dataclass
class TradeEvent:
    """Decoded Trade event."""
    trader: str
    subject: str
    is_buy: bool
    share_amount: int
    eth_amount: float
    protocol_eth_amount: float
    subject_eth_amount: float
    supply: int
    block_number: int = 0
    transaction_hash: str = ""
    log_index: int = 0

    @classmethod
    def from_log(cls, log) -> "TradeEvent":
        args = log["args"]
        tx_hash = log.get("transactionHash", b"")
        if isinstance(tx_hash, (bytes, bytearray)):
            tx_hash = Web3.to_hex(tx_hash)
        return cls(
            trader=args["trader"],
            subject=args["subject"],
            is_buy=bool(args["isBuy"]),
            share_amount=int(args["shareAmount"]),
            eth_amount=float(Web3.from_wei(args["ethAmount"], "ether")),
            protocol_eth_amount=float(Web3.from_wei(args["protocolEthAmount"], "ether")),
            subject_eth_amount=float(Web3.from_wei(args["subjectEthAmount"], "ether")),
            supply=int(args["supply"]),
            block_number=int(log.get("blockNumber", 0)),
            transaction_hash=tx_hash,
            log_index=int(log.get("logIndex", 0))
        )


class FriendTechContract:
    """Async web3 wrapper around the friend.tech shares contract."""

    def __init__(
        self,
        node_provider_url: str,
        private_key: Optional[str] = None,
        contract_address: str = FRIEND_TECH_CONTRACT_ADDRESS
    ):
        """
        Initialize contract client.

        Args:
            node_provider_url: JSON-RPC endpoint for Base
            private_key: Wallet key used to sign sells (read-only without it)
            contract_address: Shares contract address
        """
        self.w3 = AsyncWeb3(AsyncHTTPProvider(node_provider_url))
        self.account: Optional[LocalAccount] = Account.from_key(private_key) if private_key else None
        self.contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=FRIEND_TECH_ABI
        )

    async def close(self):
        await self.w3.provider.disconnect()

    async def block_number(self) -> int:
        return await self.w3.eth.block_number

    async def shares_balance(self, subject: str, holder: str) -> int:
        """Keys of `subject` held by `holder`."""
        value = await self.contract.functions.sharesBalance(
            Web3.to_checksum_address(subject),
            Web3.to_checksum_address(holder)
        ).call()
        return int(value)

    async def get_sell_price_after_fee(self, subject: str, amount: int) -> float:
        value = await self.contract.functions.getSellPriceAfterFee(
            Web3.to_checksum_address(subject), amount
        ).call()
        return float(Web3.from_wei(value, "ether"))

    async def sell_shares(self, subject: str, amount: int) -> str:
        """
        Sign and submit a sellShares transaction.

        Returns:
            Transaction hash as 0x-prefixed hex
        """
        if self.account is None:
            raise ContractError("Missing private key, cannot sell shares")
        if amount <= 0:
            raise ContractError(f"Sell amount must be positive, got {amount}")

        try:
            nonce = await self.w3.eth.get_transaction_count(self.account.address, "pending")
            tx = await self.contract.functions.sellShares(
                Web3.to_checksum_address(subject), amount
            ).build_transaction({
                "from": self.account.address,
                "nonce": nonce,
                "value": 0
            })
            signed = self.account.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            raise ContractError(f"sellShares({subject}, {amount}) failed: {e}") from e

        tx_hex = Web3.to_hex(tx_hash)
        logger.info("Submitted sellShares(%s, %d): %s", subject, amount, tx_hex)
        return tx_hex

    async def wait_for_transaction(self, tx_hash: str, timeout: float = 120.0) -> int:
        """Wait for a receipt and return its status (1 = success)."""
        receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        return int(receipt["status"])

    async def get_trade_events(self, from_block: int, to_block: int) -> list[TradeEvent]:
        """Fetch decoded Trade events in [from_block, to_block], in chain order."""
        logs = await self.contract.events.Trade.get_logs(from_block=from_block, to_block=to_block)
        events = [TradeEvent.from_log(log) for log in logs]
        events.sort(key=lambda e: (e.block_number, e.log_index))
        return events
