"""
Failover Monitor
Detects strategies whose P&L has crossed the critical loss threshold and
latches them out of the active fleet.

The monitor only detects and signals. Re-parenting capital to the backup
strategy is the job of whoever subscribes to the signal.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional

if TYPE_CHECKING:
    from agents.fleet_ledger import LedgerEntry

logger = logging.getLogger(__name__)

CRITICAL_LOSS_THRESHOLD_USD = -1500.0


@dataclass
class FailoverSignal:
    """Emitted once per strategy when the latch closes"""
    failing_id: int
    backup_id: Optional[int]
    reason: str
    pnl_usd: float
    timestamp: datetime

    def to_dict(self):
        return {
            "failing_id": self.failing_id,
            "backup_id": self.backup_id,
            "reason": self.reason,
            "pnl_usd": round(self.pnl_usd, 2),
            "timestamp": self.timestamp.isoformat(),
        }


BackupSelector = Callable[["LedgerEntry"], Optional[int]]
FailoverListener = Callable[[FailoverSignal], None]


def first_backup_selector(entry: "LedgerEntry") -> Optional[int]:
    """Default policy: first listed backup candidate"""
    return entry.backups[0] if entry.backups else None


class FailoverMonitor:
    """
    One-way failover latch shared by the read path and the cycle path.

    Both paths apply the same threshold test, so concurrent checks on one
    entry can only ever close the latch, never reopen it.
    """

    def __init__(
        self,
        threshold_usd: float = CRITICAL_LOSS_THRESHOLD_USD,
        backup_selector: BackupSelector = first_backup_selector
    ):
        self.threshold_usd = threshold_usd
        self.backup_selector = backup_selector
        self._listeners: List[FailoverListener] = []
        self.signals: List[FailoverSignal] = []

    def subscribe(self, listener: FailoverListener):
        self._listeners.append(listener)

    def breaches_threshold(self, entry: "LedgerEntry") -> bool:
        return entry.pnl_usd < self.threshold_usd

    def check(self, entry: "LedgerEntry") -> Optional[FailoverSignal]:
        """Latch the entry if it is active and below threshold"""
        if entry.is_failed_over or not self.breaches_threshold(entry):
            return None
        return self.latch(entry, reason="loss_threshold")

    def evaluate(self, entries: Iterable["LedgerEntry"]) -> List[FailoverSignal]:
        """Check every entry, returning the signals for newly latched ones"""
        signals = []
        for entry in entries:
            signal = self.check(entry)
            if signal:
                signals.append(signal)
        return signals

    def latch(self, entry: "LedgerEntry", reason: str) -> Optional[FailoverSignal]:
        """Close the latch and notify listeners. No-op if already closed."""
        if entry.is_failed_over:
            return None

        entry.is_failed_over = True
        signal = FailoverSignal(
            failing_id=entry.id,
            backup_id=self.backup_selector(entry),
            reason=reason,
            pnl_usd=entry.pnl_usd,
            timestamp=datetime.now(),
        )
        self.signals.append(signal)

        logger.critical(
            f"[Failover] 🚨 Strategy {entry.id} failed over ({reason}), "
            f"P&L ${entry.pnl_usd:.2f}, backup {signal.backup_id}"
        )

        for listener in self._listeners:
            try:
                listener(signal)
            except Exception as e:
                logger.error(f"[Failover] Listener error for strategy {entry.id}: {e}")

        return signal
