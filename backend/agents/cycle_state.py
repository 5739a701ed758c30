"""
Cycle State
Process-wide execution state shared by the scheduler and the control endpoints.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CycleState:
    """
    Single instance, passed by reference.

    is_cycle_running is written only by the scheduler guard.
    is_auto_compound_enabled is written only by toggle_auto_compound().
    """
    is_cycle_running: bool = False
    is_auto_compound_enabled: bool = False
    last_cycle_aggregate_pnl: Optional[float] = None

    cycles_started: int = 0
    cycles_skipped: int = 0
    cycles_failed: int = 0
    last_cycle_started_at: Optional[datetime] = None
    last_cycle_finished_at: Optional[datetime] = None
    last_compound: Optional[Dict[str, Any]] = None

    def toggle_auto_compound(self) -> bool:
        """Flip the toggle and return the new state"""
        self.is_auto_compound_enabled = not self.is_auto_compound_enabled
        status = "enabled" if self.is_auto_compound_enabled else "disabled"
        logger.info(f"[CycleState] ♻️ Auto-Compounding {status} by request.")
        return self.is_auto_compound_enabled

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isCycleRunning": self.is_cycle_running,
            "isAutoCompoundingEnabled": self.is_auto_compound_enabled,
            "lastCycleAggregatePnl": self.last_cycle_aggregate_pnl,
            "cyclesStarted": self.cycles_started,
            "cyclesSkipped": self.cycles_skipped,
            "cyclesFailed": self.cycles_failed,
            "lastCycleStartedAt": self.last_cycle_started_at.isoformat() if self.last_cycle_started_at else None,
            "lastCycleFinishedAt": self.last_cycle_finished_at.isoformat() if self.last_cycle_finished_at else None,
            "lastCompound": self.last_compound,
        }
