"""
Fleet Service
Wires registry, ledger, adapters, compounding and the scheduler from configuration.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from agents.batch_executor import BatchExecutor
from agents.cycle_scheduler import CycleScheduler
from agents.cycle_state import CycleState
from agents.execution_adapter import AdapterMap, ContractExecutionAdapter
from agents.failover_monitor import FailoverMonitor
from agents.fleet_ledger import FleetLedger
from agents.fleet_orchestrator import FleetOrchestrator
from agents.strategy_registry import StrategyRegistry, get_default_registry
from infrastructure.config import FleetConfig, SecretsManager, get_config, get_secrets
from infrastructure.errors import ConfigurationError
from infrastructure.rpc import get_web3
from services.auto_compound_service import AutoCompoundController
from services.funding_transport import FundingTransport, VaultBalanceReader, build_funding_transport

logger = logging.getLogger(__name__)


@dataclass
class FleetEngine:
    """Every long-lived fleet component, constructed once at startup"""
    config: FleetConfig
    registry: StrategyRegistry
    state: CycleState
    ledger: FleetLedger
    failover_monitor: FailoverMonitor
    batch_executor: BatchExecutor
    compound_controller: AutoCompoundController
    orchestrator: FleetOrchestrator
    scheduler: CycleScheduler
    balance_reader: VaultBalanceReader


def validate_config(config: FleetConfig, registry: StrategyRegistry):
    """Raise ConfigurationError for anything the engine cannot run with"""
    if len(registry) == 0:
        raise ConfigurationError("Strategy registry is empty", "strategies")
    if config.compound.funding_strategy_id not in registry:
        raise ConfigurationError(
            f"Funding strategy {config.compound.funding_strategy_id} is not registered",
            "FUNDING_STRATEGY_ID"
        )
    if not 0 < config.compound.rate <= 1:
        raise ConfigurationError(f"Compound rate {config.compound.rate} must be in (0, 1]", "AUTO_COMPOUND_RATE")
    if config.compound.min_amount_usd < 0:
        raise ConfigurationError("Minimum compound amount cannot be negative", "MIN_COMPOUND_USD")
    if config.scheduler.period_seconds <= 0:
        raise ConfigurationError("Cycle period must be positive", "CYCLE_PERIOD_SECONDS")
    if config.scheduler.initial_delay_seconds < 0:
        raise ConfigurationError("Initial delay cannot be negative", "CYCLE_INITIAL_DELAY_SECONDS")
    if config.batch.batch_size <= 0:
        raise ConfigurationError("Batch size must be positive", "BATCH_SIZE")
    if config.ledger.nominal_fleet_size <= 0:
        raise ConfigurationError("Nominal fleet size must be positive", "NOMINAL_FLEET_SIZE")


def build_fleet_engine(
    config: Optional[FleetConfig] = None,
    secrets: Optional[SecretsManager] = None,
    registry: Optional[StrategyRegistry] = None,
    adapters: Optional[AdapterMap] = None,
    transport: Optional[FundingTransport] = None,
    ledger: Optional[FleetLedger] = None,
    balance_reader: Optional[VaultBalanceReader] = None
) -> FleetEngine:
    """
    Build the engine. Adapters, transport and balance reader default to the
    web3-backed implementations; tests pass fakes.
    """
    config = config or get_config()
    secrets = secrets or get_secrets()
    if registry is None:
        registry = ledger.registry if ledger else get_default_registry()

    validate_config(config, registry)

    w3 = None
    if adapters is None or transport is None or balance_reader is None:
        w3 = get_web3(config.blockchain.rpc_url)

    if adapters is None:
        adapters = AdapterMap(default=ContractExecutionAdapter(w3, account_address=config.blockchain.vault_address))

    if transport is None:
        private_key = secrets.get("VAULT_PRIVATE_KEY")
        if config.features.enable_auto_compound and not private_key:
            raise ConfigurationError("Auto-compound enabled but VAULT_PRIVATE_KEY is not set", "VAULT_PRIVATE_KEY")
        transport = build_funding_transport(
            w3,
            config.blockchain.vault_address,
            private_key,
            chain_id=config.blockchain.chain_id,
            confirm_timeout=config.blockchain.tx_confirm_timeout,
        )

    if balance_reader is None:
        balance_reader = VaultBalanceReader(w3, config.blockchain.vault_address)

    if ledger is None:
        failover_monitor = FailoverMonitor(threshold_usd=config.ledger.failover_threshold_usd)
        ledger = FleetLedger(
            registry,
            failover_monitor=failover_monitor,
            nominal_fleet_size=config.ledger.nominal_fleet_size,
        )

    state = CycleState(is_auto_compound_enabled=config.features.enable_auto_compound)

    batch_executor = BatchExecutor(
        ledger,
        adapters,
        batch_size=config.batch.batch_size,
        pause_seconds=config.batch.pause_seconds,
        adapter_timeout=config.batch.adapter_timeout,
    )
    compound_controller = AutoCompoundController(
        state,
        transport,
        funding_strategy_id=config.compound.funding_strategy_id,
        rate=config.compound.rate,
        min_amount=config.compound.min_amount_usd,
        # web3 bounds the receipt wait itself; this also covers submission
        submit_timeout=config.blockchain.tx_confirm_timeout * 2,
    )
    orchestrator = FleetOrchestrator(ledger, batch_executor, compound_controller, state)
    scheduler = CycleScheduler(
        orchestrator.execute_cycle,
        state,
        period=config.scheduler.period_seconds,
        initial_delay=config.scheduler.initial_delay_seconds,
    )

    logger.info(f"[FleetService] 🔗 Managing {len(registry)} strategy contracts")
    logger.info(f"[FleetService] 📍 Vault Contract: {config.blockchain.vault_address}")

    return FleetEngine(
        config=config,
        registry=registry,
        state=state,
        ledger=ledger,
        failover_monitor=ledger.failover_monitor,
        batch_executor=batch_executor,
        compound_controller=compound_controller,
        orchestrator=orchestrator,
        scheduler=scheduler,
        balance_reader=balance_reader,
    )


# Global instance
_fleet_engine: Optional[FleetEngine] = None


def get_fleet_engine() -> FleetEngine:
    """Get or create global FleetEngine instance"""
    global _fleet_engine
    if _fleet_engine is None:
        _fleet_engine = build_fleet_engine()
    return _fleet_engine


def set_fleet_engine(engine: Optional[FleetEngine]):
    """Replace the global engine (startup wiring and tests)"""
    global _fleet_engine
    _fleet_engine = engine
