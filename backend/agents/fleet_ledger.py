"""
Fleet Ledger
In-memory earning state for every strategy in the fleet.

Entries are created once from the registry and live for the process lifetime.
P&L accrues on every read-path poll; failed-over entries are frozen.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from agents.failover_monitor import FailoverMonitor, FailoverSignal
from agents.strategy_registry import ProtocolClass, StrategyDescriptor, StrategyRegistry
from infrastructure.errors import NotFoundError

logger = logging.getLogger(__name__)


# ============================================
# EARNING MODEL
# ============================================

PROTOCOL_APY = {
    ProtocolClass.UNISWAP: 45.8,
    ProtocolClass.AAVE: 8.2,
    ProtocolClass.CURVE: 12.5,
}
DEFAULT_PROTOCOL_APY = 10.0
AI_BOOST = 2.8
LEVERAGE_MULTIPLIER = 4.5
NOTIONAL_DEPLOYED_USD = 100.0

MEV_EXTRACTION = 1200
CROSS_CHAIN_ARB = 800
MEV_BONUS_PROBABILITY = 0.05
MAX_MARKET_NOISE = 0.5

MAX_BACKUPS = 3


def calculate_apy(protocol: ProtocolClass) -> float:
    base_apy = PROTOCOL_APY.get(protocol, DEFAULT_PROTOCOL_APY)
    return base_apy * AI_BOOST * LEVERAGE_MULTIPLIER


def calculate_earning_per_second(apy: float) -> float:
    return (apy / 365 / 24 / 3600) * NOTIONAL_DEPLOYED_USD


@dataclass
class LedgerEntry:
    """Earning state of one strategy"""
    descriptor: StrategyDescriptor
    pnl_usd: float
    apy: float
    earning_per_second: float
    latency_ms: int
    is_failed_over: bool = False
    backups: List[int] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.descriptor.id

    def to_dict(self) -> Dict:
        return {
            **self.descriptor.to_dict(),
            "pnl_usd": self.pnl_usd,
            "apy": self.apy,
            "earning_per_second": self.earning_per_second,
            "latency_ms": self.latency_ms,
            "isFailedOver": self.is_failed_over,
            "backups": list(self.backups),
        }


@dataclass
class FleetAggregate:
    """Fleet-wide P&L projection"""
    total_pnl: float
    avg_apy: float
    projected_daily: float
    projected_hourly: float
    strategy_count: int


def generate_backups(descriptor: StrategyDescriptor, registry: StrategyRegistry) -> List[int]:
    """Same-protocol strategies first, then the rest of the fleet"""
    others = [d for d in registry if d.id != descriptor.id]
    same = [d.id for d in others if d.protocol_class == descriptor.protocol_class]
    rest = [d.id for d in others if d.protocol_class != descriptor.protocol_class]
    return (same + rest)[:MAX_BACKUPS]


class FleetLedger:
    """
    Owns one LedgerEntry per registered strategy, keyed by id.

    Usage:
        ledger = FleetLedger(registry, failover_monitor=FailoverMonitor())
        ledger.accrue()                  # read path
        aggregate = ledger.aggregate()
    """

    def __init__(
        self,
        registry: StrategyRegistry,
        failover_monitor: Optional[FailoverMonitor] = None,
        nominal_fleet_size: int = 450,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        initial_pnl: Optional[Dict[int, float]] = None
    ):
        self.registry = registry
        self.failover_monitor = failover_monitor or FailoverMonitor()
        self.nominal_fleet_size = nominal_fleet_size
        self.rng = rng or random.Random()
        self.clock = clock
        self._entries: Dict[int, LedgerEntry] = {}
        self._initialize(initial_pnl or {})
        self.last_accrual_at = self.clock()

    def _initialize(self, initial_pnl: Dict[int, float]):
        for descriptor in self.registry:
            apy = calculate_apy(descriptor.protocol_class)
            pnl = initial_pnl.get(descriptor.id)
            if pnl is None:
                pnl = self.rng.random() * 5000 + 2000
            self._entries[descriptor.id] = LedgerEntry(
                descriptor=descriptor,
                pnl_usd=pnl,
                apy=apy,
                earning_per_second=calculate_earning_per_second(apy),
                latency_ms=self.rng.randrange(10, 110),
                backups=generate_backups(descriptor, self.registry),
            )
        logger.info(f"[FleetLedger] Initialized {len(self._entries)} strategies")

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def entries(self) -> List[LedgerEntry]:
        """Entries in registry order"""
        return [self._entries[d.id] for d in self.registry]

    def active_entries(self) -> List[LedgerEntry]:
        return [e for e in self.entries() if not e.is_failed_over]

    def get(self, strategy_id: int) -> LedgerEntry:
        entry = self._entries.get(strategy_id)
        if entry is None:
            raise NotFoundError("Strategy", str(strategy_id))
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Accrual (read path)
    # ------------------------------------------------------------------

    def accrue(self) -> List[FailoverSignal]:
        """
        Apply earnings since the previous accrual to every active entry.

        Each entry gets earning_per_second * elapsed, a bounded market-noise
        term and, occasionally, a share of the MEV bonus pool. The failover
        threshold is tested right after each entry's update.
        """
        now = self.clock()
        elapsed = max(0.0, now - self.last_accrual_at)
        self.last_accrual_at = now

        signals = []
        for entry in self.entries():
            if entry.is_failed_over:
                continue

            entry.pnl_usd += entry.earning_per_second * elapsed + self.rng.random() * MAX_MARKET_NOISE

            if self.rng.random() > 1 - MEV_BONUS_PROBABILITY:
                entry.pnl_usd += MEV_EXTRACTION / self.nominal_fleet_size

            signal = self.failover_monitor.check(entry)
            if signal:
                signals.append(signal)

        return signals

    # ------------------------------------------------------------------
    # Failover
    # ------------------------------------------------------------------

    def evaluate_failover(self) -> List[FailoverSignal]:
        """Threshold pass over the whole fleet (cycle path)"""
        return self.failover_monitor.evaluate(self.entries())

    def manual_failover(self, strategy_id: int) -> bool:
        """Latch a strategy on request. Returns False if already failed over."""
        entry = self.get(strategy_id)
        return self.failover_monitor.latch(entry, reason="manual") is not None

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def aggregate(self, include_failed_over: bool = True) -> FleetAggregate:
        entries = self.entries() if include_failed_over else self.active_entries()

        total_pnl = sum(e.pnl_usd for e in entries)
        avg_apy = sum(e.apy or 0 for e in entries) / len(entries) if entries else 0.0
        # Linear extrapolation over the nominal fleet size; the size cancels out
        projected_daily = (total_pnl / self.nominal_fleet_size) * self.nominal_fleet_size
        projected_hourly = projected_daily / 24

        return FleetAggregate(
            total_pnl=total_pnl,
            avg_apy=avg_apy,
            projected_daily=projected_daily,
            projected_hourly=projected_hourly,
            strategy_count=len(entries),
        )

    def snapshot(self) -> List[Dict]:
        return [e.to_dict() for e in self.entries()]
