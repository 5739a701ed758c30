"""
Funding Transport
Submits the auto-compound reinvestment to the vault contract and waits for confirmation.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from eth_account import Account
from web3 import Web3

from infrastructure.errors import TransportError

logger = logging.getLogger(__name__)


VAULT_ABI = [
    {
        "inputs": [
            {"name": "_strategyId", "type": "uint256"},
            {"name": "_amount", "type": "uint256"}
        ],
        "name": "executeStrategy",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [{"name": "_strategyId", "type": "uint256"}],
        "name": "getStrategyBalance",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    }
]


@dataclass
class TransportReceipt:
    """Confirmed reinvestment transaction"""
    tx_ref: str
    confirmed_block: int


class FundingTransport(ABC):
    """Signs and submits one reinvestment transaction"""

    @abstractmethod
    async def submit(self, strategy_id: int, amount: float) -> TransportReceipt:
        """Raises TransportError on submission or confirmation failure"""
        ...


class UnconfiguredFundingTransport(FundingTransport):
    """Placeholder when no vault signing key is available"""

    async def submit(self, strategy_id: int, amount: float) -> TransportReceipt:
        raise TransportError("Vault signing key not configured")


def to_native_units(amount_usd: float) -> int:
    """1 USD of profit is treated as 1 token unit with 18 decimals"""
    return Web3.to_wei(f"{amount_usd:.4f}", "ether")


class VaultFundingTransport(FundingTransport):
    """
    Calls vault.executeStrategy(strategyId, amount) signed by the vault key.

    Usage:
        transport = VaultFundingTransport(w3, vault_address, private_key, chain_id=1)
        receipt = await transport.submit(1, 5.0)
    """

    GAS_LIMIT = 300000
    GAS_PRICE_BUFFER = 1.2

    def __init__(
        self,
        w3: Web3,
        vault_address: str,
        private_key: str,
        chain_id: int = 1,
        confirm_timeout: float = 120.0
    ):
        self.w3 = w3
        self.vault = w3.eth.contract(
            address=Web3.to_checksum_address(vault_address),
            abi=VAULT_ABI
        )
        self.account = Account.from_key(private_key)
        self.chain_id = chain_id
        self.confirm_timeout = confirm_timeout

    def _send_sync(self, strategy_id: int, amount_wei: int) -> str:
        nonce = self.w3.eth.get_transaction_count(self.account.address, 'latest')

        tx = self.vault.functions.executeStrategy(strategy_id, amount_wei).build_transaction({
            'from': self.account.address,
            'nonce': nonce,
            'gas': self.GAS_LIMIT,
            'gasPrice': int(self.w3.eth.gas_price * self.GAS_PRICE_BUFFER),
            'chainId': self.chain_id
        })

        signed = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return tx_hash.hex()

    def _wait_sync(self, tx_hash: str):
        return self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.confirm_timeout)

    async def submit(self, strategy_id: int, amount: float) -> TransportReceipt:
        loop = asyncio.get_running_loop()
        amount_wei = to_native_units(amount)

        try:
            tx_hash = await loop.run_in_executor(None, self._send_sync, strategy_id, amount_wei)
        except Exception as e:
            raise TransportError(f"Submission failed: {e}", original_error=e) from e

        logger.info(f"[VaultTransport] TX Hash: {tx_hash}")

        try:
            receipt = await loop.run_in_executor(None, self._wait_sync, tx_hash)
        except Exception as e:
            raise TransportError(f"Confirmation failed: {e}", tx_hash=tx_hash, original_error=e) from e

        if receipt.status != 1:
            raise TransportError("Transaction reverted", tx_hash=tx_hash)

        return TransportReceipt(tx_ref=tx_hash, confirmed_block=receipt.blockNumber)


class VaultBalanceReader:
    """
    Reads vault.getStrategyBalance(strategyId).

    Usage:
        reader = VaultBalanceReader(w3, vault_address)
        balance_wei = await reader.balance_of(1)
    """

    def __init__(self, w3: Web3, vault_address: str):
        self.vault = w3.eth.contract(
            address=Web3.to_checksum_address(vault_address),
            abi=VAULT_ABI
        )

    async def balance_of(self, strategy_id: int) -> int:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None, self.vault.functions.getStrategyBalance(strategy_id).call
            )
        except Exception as e:
            raise TransportError(f"Balance read failed: {e}", original_error=e) from e


def build_funding_transport(
    w3: Web3,
    vault_address: str,
    private_key: Optional[str],
    chain_id: int = 1,
    confirm_timeout: float = 120.0
) -> FundingTransport:
    if not private_key:
        logger.warning("[VaultTransport] No VAULT_PRIVATE_KEY - reinvestment disabled at transport level")
        return UnconfiguredFundingTransport()
    return VaultFundingTransport(w3, vault_address, private_key, chain_id, confirm_timeout)
