"""
Pytest Configuration for Apex Fleet Backend Tests

Run all tests: python -m pytest tests/ -v
"""

import asyncio
import random
import sys
from pathlib import Path
from typing import Dict, List, Optional, Set
from unittest.mock import AsyncMock

import pytest

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from agents.execution_adapter import AdapterMap, AdapterResult, ExecutionAdapter
from agents.failover_monitor import FailoverMonitor
from agents.fleet_ledger import FleetLedger
from agents.strategy_registry import StrategyRegistry
from infrastructure.config import FleetConfig
from services.funding_transport import FundingTransport, TransportReceipt


# =============================================================================
# FAKES
# =============================================================================

class FixedRandom(random.Random):
    """random() always returns the same value"""

    def __init__(self, value: float = 0.0):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeAdapter(ExecutionAdapter):
    """Records every invocation; fails for ids in fail_ids"""

    def __init__(self, fail_ids: Optional[Set[int]] = None, raise_ids: Optional[Set[int]] = None, delay: float = 0):
        self.fail_ids = fail_ids or set()
        self.raise_ids = raise_ids or set()
        self.delay = delay
        self.calls: List[int] = []

    async def invoke(self, descriptor):
        self.calls.append(descriptor.id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if descriptor.id in self.raise_ids:
            raise RuntimeError(f"RPC down for {descriptor.id}")
        if descriptor.id in self.fail_ids:
            return AdapterResult(success=False, error="execution reverted")
        return AdapterResult(success=True, data={"message": "ok"})


# =============================================================================
# HELPERS
# =============================================================================

PROTOCOLS = ["uniswap", "aave", "curve"]


def make_registry(count: int) -> StrategyRegistry:
    return StrategyRegistry.from_records([
        {
            "id": i,
            "address": f"0x{i:040x}",
            "name": f"Strategy {i}",
            "protocol": PROTOCOLS[(i - 1) % len(PROTOCOLS)],
        }
        for i in range(1, count + 1)
    ])


def make_ledger(
    registry: StrategyRegistry,
    initial_pnl: Optional[Dict[int, float]] = None,
    rng_value: float = 0.0,
    clock: Optional[FakeClock] = None
) -> FleetLedger:
    return FleetLedger(
        registry,
        failover_monitor=FailoverMonitor(threshold_usd=-1500),
        nominal_fleet_size=450,
        rng=FixedRandom(rng_value),
        clock=clock or FakeClock(),
        initial_pnl=initial_pnl,
    )


# =============================================================================
# FIXTURES - Shared across all test files
# =============================================================================

@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def three_strategy_registry():
    """Uniswap (1, funding), Aave (2), Curve (3)"""
    return make_registry(3)


@pytest.fixture
def fake_adapter():
    return FakeAdapter()


@pytest.fixture
def adapter_map(fake_adapter):
    return AdapterMap(default=fake_adapter)


@pytest.fixture
def fake_transport():
    transport = AsyncMock(spec=FundingTransport)
    transport.submit.return_value = TransportReceipt(tx_ref="0xfeed", confirmed_block=19_000_000)
    return transport


@pytest.fixture
def fleet_config():
    """Defaults with the batch pause removed"""
    config = FleetConfig()
    config.batch.pause_seconds = 0
    return config


# =============================================================================
# MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )
