"""
Apex Fleet - Execution Agents

Fleet engine components:
- strategy_registry.py: Static fleet identities and contract ABIs
- execution_adapter.py: Per-strategy adapters keyed by id
- batch_executor.py: Rate-limited invocation of every active strategy
- fleet_ledger.py: In-memory P&L accrual and aggregation
- failover_monitor.py: Loss threshold latch and failover signals
- cycle_scheduler.py: Periodic cycle with single-flight guard
- fleet_orchestrator.py: Body of one automatic execution cycle
"""

from .strategy_registry import StrategyRegistry, StrategyDescriptor, ProtocolClass, get_default_registry
from .execution_adapter import ExecutionAdapter, AdapterResult, AdapterMap
from .failover_monitor import FailoverMonitor, FailoverSignal
from .fleet_ledger import FleetLedger, LedgerEntry, FleetAggregate
from .cycle_state import CycleState
from .batch_executor import BatchExecutor, StrategyOutcome
from .cycle_scheduler import CycleScheduler

__all__ = [
    "StrategyRegistry",
    "StrategyDescriptor",
    "ProtocolClass",
    "get_default_registry",
    "ExecutionAdapter",
    "AdapterResult",
    "AdapterMap",
    "FailoverMonitor",
    "FailoverSignal",
    "FleetLedger",
    "LedgerEntry",
    "FleetAggregate",
    "CycleState",
    "BatchExecutor",
    "StrategyOutcome",
    "CycleScheduler",
]
