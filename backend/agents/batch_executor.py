"""
Batch Executor
Invokes the execution adapter for every active strategy once per cycle.

Rate limiting is a fixed pause after every Nth invocation rather than a
token bucket: fleet size and burst ceiling are both fixed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from agents.execution_adapter import AdapterMap
from agents.fleet_ledger import FleetLedger
from agents.strategy_registry import StrategyDescriptor
from infrastructure.errors import AdapterError, error_tracker

logger = logging.getLogger(__name__)


@dataclass
class StrategyOutcome:
    """Outcome of one strategy invocation within a cycle"""
    id: int
    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[AdapterError] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {"id": self.id, "success": self.success}
        if self.success:
            result["data"] = self.data
        else:
            result["error"] = self.error.to_dict()["error"] if self.error else None
        return result


class BatchExecutor:
    """
    Usage:
        executor = BatchExecutor(ledger, adapters)
        outcomes = await executor.run_cycle()
        successful = sum(1 for o in outcomes if o.success)
    """

    def __init__(
        self,
        ledger: FleetLedger,
        adapters: AdapterMap,
        batch_size: int = 10,
        pause_seconds: float = 0.1,
        adapter_timeout: Optional[float] = 30.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.ledger = ledger
        self.adapters = adapters
        self.batch_size = batch_size
        self.pause_seconds = pause_seconds
        self.adapter_timeout = adapter_timeout
        self._sleep = sleep

    async def _invoke(self, descriptor: StrategyDescriptor) -> StrategyOutcome:
        adapter = self.adapters.get(descriptor.id)
        try:
            result = await asyncio.wait_for(adapter.invoke(descriptor), timeout=self.adapter_timeout)
        except asyncio.TimeoutError:
            error = AdapterError(descriptor.id, f"Adapter timed out after {self.adapter_timeout}s", timed_out=True)
            error_tracker.track(error, "batch_executor")
            return StrategyOutcome(id=descriptor.id, success=False, error=error)
        except Exception as e:
            error = AdapterError(descriptor.id, str(e) or type(e).__name__)
            error_tracker.track(error, "batch_executor")
            return StrategyOutcome(id=descriptor.id, success=False, error=error)

        if not result.success:
            return StrategyOutcome(
                id=descriptor.id,
                success=False,
                error=AdapterError(descriptor.id, result.error or "Adapter reported failure"),
            )
        return StrategyOutcome(id=descriptor.id, success=True, data=result.data)

    async def execute_one(self, descriptor: StrategyDescriptor) -> StrategyOutcome:
        """On-demand invocation outside the cycle; no pause, no guard"""
        outcome = await self._invoke(descriptor)
        if not outcome.success:
            logger.warning(f"[BatchExecutor] Strategy {descriptor.id} failed: {outcome.error}")
        return outcome

    async def run_cycle(self) -> List[StrategyOutcome]:
        """Invoke every non-failed-over strategy in registry order"""
        outcomes = []
        # Active set is fixed at cycle start
        active = [entry.descriptor for entry in self.ledger.active_entries()]

        for i, descriptor in enumerate(active):
            outcome = await self._invoke(descriptor)
            outcomes.append(outcome)

            if not outcome.success:
                logger.warning(f"[BatchExecutor] Strategy {descriptor.id} failed: {outcome.error}")

            # Rate limiting to avoid RPC throttling
            if i % self.batch_size == 0:
                await self._sleep(self.pause_seconds)

        return outcomes
