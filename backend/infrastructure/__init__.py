"""
Apex Fleet Infrastructure Module
Configuration, error handling and chain connectivity
"""

from .errors import (
    FleetError,
    NotFoundError,
    ConfigurationError,
    AdapterError,
    TransportError,
    ErrorCode,
    ErrorTracker,
    error_tracker,
    register_exception_handlers,
)

from .config import (
    FleetConfig,
    Environment,
    FeatureFlags,
    SecretsManager,
    config,
    secrets,
    get_config,
    get_secrets,
)

__all__ = [
    # Errors
    "FleetError",
    "NotFoundError",
    "ConfigurationError",
    "AdapterError",
    "TransportError",
    "ErrorCode",
    "ErrorTracker",
    "error_tracker",
    "register_exception_handlers",

    # Config
    "FleetConfig",
    "Environment",
    "FeatureFlags",
    "SecretsManager",
    "config",
    "secrets",
    "get_config",
    "get_secrets",
]
