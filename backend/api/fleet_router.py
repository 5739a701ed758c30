"""
Apex Fleet API Router
Read and control surface for the strategy fleet and auto-compounding
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel, Field
from web3 import Web3

from agents.fleet_ledger import CROSS_CHAIN_ARB, MEV_EXTRACTION
from infrastructure.errors import error_tracker
from services.fleet_service import get_fleet_engine

logger = logging.getLogger("FleetRouter")

router = APIRouter(prefix="/api/apex", tags=["Apex Fleet"])


# ============================================
# MODELS
# ============================================

class ManualFailoverRequest(BaseModel):
    strategy_id: int = Field(..., gt=0)


# ============================================
# READ
# ============================================

@router.get("/strategies/live")
async def get_live_strategies():
    """Accrue earnings since the last poll and return the fleet snapshot"""
    engine = get_fleet_engine()
    engine.ledger.accrue()
    aggregate = engine.ledger.aggregate()

    return {
        "strategies": engine.ledger.snapshot(),
        "totalPnL": aggregate.total_pnl,
        "avgAPY": f"{aggregate.avg_apy:.1f}",
        "projectedHourly": f"{aggregate.projected_hourly:.2f}",
        "projectedDaily": f"{aggregate.projected_daily:.2f}",
        "mevBonus": MEV_EXTRACTION,
        "arbBonus": CROSS_CHAIN_ARB,
        "isAutoCompoundingEnabled": engine.state.is_auto_compound_enabled,
    }


@router.get("/strategy/{strategy_id}")
async def get_strategy(strategy_id: int):
    """Single strategy ledger entry"""
    engine = get_fleet_engine()
    entry = engine.ledger.get(strategy_id)
    return {"success": True, "strategy": entry.to_dict()}


@router.get("/strategy/{strategy_id}/balance")
async def get_strategy_balance(strategy_id: int):
    """Vault-held balance for one strategy"""
    engine = get_fleet_engine()
    engine.registry.require(strategy_id)
    balance_wei = await engine.balance_reader.balance_of(strategy_id)
    return {
        "success": True,
        "strategyId": strategy_id,
        "balanceWei": str(balance_wei),
        "balance": str(Web3.from_wei(balance_wei, "ether")),
    }


@router.get("/status")
async def get_fleet_status():
    """Scheduler and cycle state"""
    engine = get_fleet_engine()
    last_report = engine.orchestrator.last_report
    return {
        "success": True,
        "strategyCount": len(engine.registry),
        "activeCount": len(engine.ledger.active_entries()),
        "schedulerActive": engine.scheduler.is_active,
        "periodSeconds": engine.scheduler.period,
        "cycle": engine.state.to_dict(),
        "lastCycle": last_report.to_dict() if last_report else None,
        "failovers": [s.to_dict() for s in engine.failover_monitor.signals],
        "autoCompound": engine.compound_controller.status(),
        "errors": error_tracker.get_stats(),
    }


# ============================================
# CONTROL
# ============================================

@router.post("/toggle-autocompound")
async def toggle_auto_compound():
    """Flip auto-compounding on/off"""
    engine = get_fleet_engine()
    enabled = engine.state.toggle_auto_compound()
    status = "enabled" if enabled else "disabled"
    return {
        "success": True,
        "isAutoCompoundingEnabled": enabled,
        "message": f"Auto-Compounding is now {status}.",
    }


@router.get("/autocompound-status")
async def get_auto_compound_status():
    engine = get_fleet_engine()
    return {
        "isAutoCompoundingEnabled": engine.state.is_auto_compound_enabled,
        "rate": engine.compound_controller.rate,
    }


@router.post("/manual-failover")
async def manual_failover(request: ManualFailoverRequest):
    """Latch a strategy out of the active fleet"""
    engine = get_fleet_engine()
    latched = engine.ledger.manual_failover(request.strategy_id)
    entry = engine.ledger.get(request.strategy_id)

    if latched:
        logger.info(f"Manual failover requested for strategy {request.strategy_id}")
    return {
        "success": True,
        "strategyId": request.strategy_id,
        "isFailedOver": entry.is_failed_over,
        "alreadyFailedOver": not latched,
        "backupId": entry.backups[0] if entry.backups else None,
    }


@router.post("/strategy/{strategy_id}/execute")
async def execute_strategy(strategy_id: int):
    """Invoke one strategy's adapter now, outside the cycle"""
    engine = get_fleet_engine()
    entry = engine.ledger.get(strategy_id)
    outcome = await engine.batch_executor.execute_one(entry.descriptor)
    return {"success": outcome.success, "result": outcome.to_dict()}


@router.post("/strategies/call-all")
async def call_all_strategies():
    """Run one full cycle now under the same guard as the scheduler"""
    engine = get_fleet_engine()
    ran = await engine.scheduler.trigger()
    if not ran:
        return {
            "success": False,
            "executed": False,
            "message": "Previous execution still running",
        }

    report = engine.orchestrator.last_report
    return {
        "success": True,
        "executed": True,
        "lastCycle": report.to_dict() if report else None,
    }
