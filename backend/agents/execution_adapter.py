"""
Execution Adapters
One unit of work against a strategy's on-chain contract, behind a uniform interface.

Adapters are looked up by strategy id in an AdapterMap; strategies without a
dedicated adapter fall through to the map's default.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from web3 import Web3

from agents.strategy_registry import ProtocolClass, StrategyDescriptor

logger = logging.getLogger(__name__)


@dataclass
class AdapterResult:
    """Result of a single adapter invocation"""
    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


class ExecutionAdapter(ABC):
    """Performs one deposit/withdraw/rebalance step for a strategy"""

    @abstractmethod
    async def invoke(self, descriptor: StrategyDescriptor) -> AdapterResult:
        ...


class FallbackExecutionAdapter(ExecutionAdapter):
    """Used for strategies with no dedicated adapter"""

    async def invoke(self, descriptor: StrategyDescriptor) -> AdapterResult:
        return AdapterResult(success=True, data={"message": "Fallback executed"})


class ContractExecutionAdapter(ExecutionAdapter):
    """
    Reads the strategy's pool contract to confirm it is live.

    Uniswap V3 pools report slot0/liquidity, Aave V3 reports the vault's
    account data, Curve reports the virtual price. Web3 calls are blocking,
    so they run in the default executor.
    """

    def __init__(self, w3: Web3, account_address: Optional[str] = None):
        self.w3 = w3
        self.account_address = account_address

    def _get_contract(self, descriptor: StrategyDescriptor):
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(descriptor.address),
            abi=descriptor.abi
        )

    def _read_sync(self, descriptor: StrategyDescriptor) -> Dict[str, Any]:
        contract = self._get_contract(descriptor)

        if descriptor.protocol_class == ProtocolClass.UNISWAP:
            slot0 = contract.functions.slot0().call()
            liquidity = contract.functions.liquidity().call()
            return {"tick": slot0[1], "liquidity": liquidity}

        if descriptor.protocol_class == ProtocolClass.AAVE:
            if not self.account_address:
                return {"message": "No account configured"}
            account = contract.functions.getUserAccountData(
                Web3.to_checksum_address(self.account_address)
            ).call()
            return {"collateral_base": account[0], "health_factor": account[5]}

        if descriptor.protocol_class == ProtocolClass.CURVE:
            return {"virtual_price": contract.functions.get_virtual_price().call()}

        return {"message": "No contract probe for protocol"}

    async def invoke(self, descriptor: StrategyDescriptor) -> AdapterResult:
        started = time.monotonic()
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, self._read_sync, descriptor)
        except Exception as e:
            logger.warning(f"[ContractAdapter] Strategy {descriptor.id} call failed: {e}")
            return AdapterResult(success=False, error=str(e))

        data["latency_ms"] = int((time.monotonic() - started) * 1000)
        return AdapterResult(success=True, data=data)


class AdapterMap:
    """Strategy id -> ExecutionAdapter, with a default for unmapped ids"""

    def __init__(
        self,
        adapters: Optional[Dict[int, ExecutionAdapter]] = None,
        default: Optional[ExecutionAdapter] = None
    ):
        self._adapters: Dict[int, ExecutionAdapter] = dict(adapters or {})
        self.default = default or FallbackExecutionAdapter()

    @classmethod
    def uniform(cls, adapter: ExecutionAdapter, strategy_ids: Iterable[int]) -> "AdapterMap":
        return cls({strategy_id: adapter for strategy_id in strategy_ids}, default=adapter)

    def register(self, strategy_id: int, adapter: ExecutionAdapter):
        self._adapters[strategy_id] = adapter

    def get(self, strategy_id: int) -> ExecutionAdapter:
        return self._adapters.get(strategy_id, self.default)

    def __contains__(self, strategy_id: int) -> bool:
        return strategy_id in self._adapters
