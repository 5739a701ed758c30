"""
Configuration Management for Apex Fleet
Environment-based configuration with secrets handling and feature flags

Features:
- Environment-based config (dev/staging/prod)
- Secrets management
- Feature flags
- Startup validation
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger("Config")

load_dotenv(Path(__file__).parent.parent / ".env")


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, str(default)))


def _env_bool(name: str, default: bool) -> bool:
    return os.environ.get(name, "true" if default else "false").lower() == "true"


@dataclass
class BlockchainConfig:
    """Blockchain configuration"""
    rpc_url: str = "https://eth.llamarpc.com"
    chain_id: int = 1
    vault_address: str = "0x34edea47a7ce2947bff76d2df12b7df027fd9433"

    # Confirmation wait for the reinvestment transaction
    tx_confirm_timeout: float = 120.0


@dataclass
class SchedulerConfig:
    """Cycle scheduler configuration"""
    period_seconds: float = 60.0
    initial_delay_seconds: float = 5.0


@dataclass
class BatchConfig:
    """Batch executor configuration"""
    # Pause after every Nth invocation to avoid RPC throttling
    batch_size: int = 10
    pause_seconds: float = 0.1
    adapter_timeout: float = 30.0


@dataclass
class CompoundConfig:
    """Auto-compound configuration"""
    rate: float = 0.10  # 10% of daily projected earnings
    min_amount_usd: float = 1.00  # below this gas costs dominate
    funding_strategy_id: int = 1  # Uni V3 WETH/USDC is the re-deposit pool


@dataclass
class LedgerConfig:
    """Fleet ledger configuration"""
    failover_threshold_usd: float = -1500.0
    nominal_fleet_size: int = 450


@dataclass
class MonitoringConfig:
    """Monitoring configuration"""
    log_level: str = "INFO"
    sentry_dsn: Optional[str] = None


@dataclass
class FeatureFlags:
    """Feature flags for gradual rollout"""
    enable_auto_compound: bool = False
    enable_scheduler: bool = True


@dataclass
class FleetConfig:
    """Main application configuration"""
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True

    # Component configs
    blockchain: BlockchainConfig = field(default_factory=BlockchainConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    compound: CompoundConfig = field(default_factory=CompoundConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    features: FeatureFlags = field(default_factory=FeatureFlags)

    @classmethod
    def from_env(cls) -> "FleetConfig":
        """Create configuration from environment variables"""
        env = os.environ.get("APEX_ENV", "development").lower()

        config = cls(
            environment=Environment(env) if env in [e.value for e in Environment] else Environment.DEVELOPMENT,
            debug=_env_bool("DEBUG", True),
        )

        config.blockchain = BlockchainConfig(
            rpc_url=os.environ.get("ETH_RPC_URL", BlockchainConfig.rpc_url),
            chain_id=_env_int("CHAIN_ID", 1),
            vault_address=os.environ.get("VAULT_ADDRESS", BlockchainConfig.vault_address),
            tx_confirm_timeout=_env_float("TX_CONFIRM_TIMEOUT_SECONDS", 120.0),
        )

        config.scheduler = SchedulerConfig(
            period_seconds=_env_float("CYCLE_PERIOD_SECONDS", 60.0),
            initial_delay_seconds=_env_float("CYCLE_INITIAL_DELAY_SECONDS", 5.0),
        )

        config.batch = BatchConfig(
            batch_size=_env_int("BATCH_SIZE", 10),
            pause_seconds=_env_float("BATCH_PAUSE_SECONDS", 0.1),
            adapter_timeout=_env_float("ADAPTER_TIMEOUT_SECONDS", 30.0),
        )

        config.compound = CompoundConfig(
            rate=_env_float("AUTO_COMPOUND_RATE", 0.10),
            min_amount_usd=_env_float("MIN_COMPOUND_USD", 1.00),
            funding_strategy_id=_env_int("FUNDING_STRATEGY_ID", 1),
        )

        config.ledger = LedgerConfig(
            failover_threshold_usd=_env_float("FAILOVER_THRESHOLD_USD", -1500.0),
            nominal_fleet_size=_env_int("NOMINAL_FLEET_SIZE", 450),
        )

        config.monitoring = MonitoringConfig(
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            sentry_dsn=os.environ.get("SENTRY_DSN"),
        )

        config.features = FeatureFlags(
            enable_auto_compound=_env_bool("AUTO_COMPOUND_ENABLED", False),
            enable_scheduler=_env_bool("SCHEDULER_ENABLED", True),
        )

        # Production hardening
        if config.environment == Environment.PRODUCTION:
            config.debug = False
            config.monitoring.log_level = "WARNING"

        return config

    def to_dict(self) -> Dict:
        """Convert to dictionary (hiding secrets)"""
        def sanitize(obj):
            if isinstance(obj, dict):
                return {k: sanitize(v) for k, v in obj.items() if "key" not in k.lower() and "dsn" not in k.lower()}
            elif hasattr(obj, '__dataclass_fields__'):
                return sanitize({k: getattr(obj, k) for k in obj.__dataclass_fields__})
            elif isinstance(obj, Enum):
                return obj.value
            else:
                return obj

        return sanitize(self)


# ============================================
# SECRETS MANAGEMENT
# ============================================

class SecretsManager:
    """
    Manages secrets loaded from the environment.
    Values held here are never logged or returned by to_dict().
    """

    SECRET_KEYS = [
        "VAULT_PRIVATE_KEY",  # NEVER log this!
    ]

    def __init__(self):
        self._secrets: Dict[str, str] = {}
        self._load_from_env()

    def _load_from_env(self):
        """Load secrets from environment variables"""
        for key in self.SECRET_KEYS:
            value = os.environ.get(key)
            if value:
                self._secrets[key] = value

    def get(self, key: str, default: str = None) -> Optional[str]:
        """Get a secret value"""
        return self._secrets.get(key, default)


# ============================================
# GLOBAL INSTANCES
# ============================================

# Load configuration on module import
config = FleetConfig.from_env()
secrets = SecretsManager()

logger.info(f"Configuration loaded for environment: {config.environment.value}")


def get_config() -> FleetConfig:
    """Get the global configuration"""
    return config


def get_secrets() -> SecretsManager:
    """Get the secrets manager"""
    return secrets
