"""
Fleet Orchestrator
The body of one automatic execution cycle.

Flow:
1. Invoke every active strategy (BatchExecutor)
2. Failover pass over the ledger
3. Aggregate active P&L
4. Auto-compound a share of projected earnings
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from agents.batch_executor import BatchExecutor, StrategyOutcome
from agents.cycle_state import CycleState
from agents.fleet_ledger import FleetLedger
from services.auto_compound_service import AutoCompoundController, CompoundOutcome

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    """Summary of one completed cycle"""
    outcomes: List[StrategyOutcome] = field(default_factory=list)
    failed_over_ids: List[int] = field(default_factory=list)
    aggregate_pnl: float = 0.0
    projected_daily: float = 0.0
    compound: Optional[CompoundOutcome] = None

    @property
    def successful(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "successful": self.successful,
            "failed": self.failed,
            "failedOverIds": self.failed_over_ids,
            "aggregatePnl": self.aggregate_pnl,
            "projectedDaily": self.projected_daily,
            "compound": self.compound.to_dict() if self.compound else None,
        }


class FleetOrchestrator:

    def __init__(
        self,
        ledger: FleetLedger,
        batch_executor: BatchExecutor,
        compound_controller: AutoCompoundController,
        state: CycleState
    ):
        self.ledger = ledger
        self.batch_executor = batch_executor
        self.compound_controller = compound_controller
        self.state = state
        self.last_report: Optional[CycleReport] = None

    async def execute_cycle(self) -> CycleReport:
        report = CycleReport()
        logger.info(f"[AutoExec] 🤖 AUTO-EXECUTING all {len(self.ledger)} strategies...")

        report.outcomes = await self.batch_executor.run_cycle()
        logger.info(
            f"[AutoExec] ✅ Auto-execution complete: "
            f"{report.successful}/{len(report.outcomes)} successful"
        )

        signals = self.ledger.evaluate_failover()
        report.failed_over_ids = [s.failing_id for s in signals]
        for signal in signals:
            logger.critical(f"[AutoExec] 🚨 CRITICAL: Strategy {signal.failing_id} needs failover!")

        aggregate = self.ledger.aggregate(include_failed_over=False)
        report.aggregate_pnl = aggregate.total_pnl
        report.projected_daily = aggregate.projected_daily
        self.state.last_cycle_aggregate_pnl = aggregate.total_pnl

        if self.state.is_auto_compound_enabled:
            outcome = await self.compound_controller.maybe_compound(aggregate.projected_daily)
            report.compound = outcome
            self.state.last_compound = outcome.to_dict()

            if outcome.committed:
                logger.info(f"[AutoExec] ✨ Reinvestment Success: {outcome.amount:.2f} USD compounded.")
            elif not outcome.is_too_small:
                logger.warning(f"[AutoExec] ⚠️ Auto-Compound Info: {outcome.reason}")

        self.last_report = report
        return report
