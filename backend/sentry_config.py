"""
Sentry Error Monitoring Configuration
Error tracking for the Apex Fleet backend
"""
import logging
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

logger = logging.getLogger("Sentry")

SENSITIVE_KEYS = ['private_key', 'signature', 'password', 'api_key', 'secret', 'mnemonic', 'seed']


def filter_sensitive_data(event, hint):
    """Remove signing material from Sentry events."""
    if 'request' in event and 'data' in event['request']:
        data = event['request']['data']
        if isinstance(data, dict):
            for key in SENSITIVE_KEYS:
                if key in data:
                    data[key] = '[FILTERED]'

    if 'exception' in event and 'values' in event['exception']:
        for exc in event['exception']['values']:
            if 'value' in exc:
                for key in SENSITIVE_KEYS:
                    if key in exc['value'].lower():
                        exc['value'] = '[FILTERED - sensitive data]'

    return event


def init_sentry(dsn: Optional[str], environment: str = "development", release: str = "local") -> bool:
    """Initialize Sentry. Returns False when no DSN is configured."""
    if not dsn:
        logger.info("[Sentry] No SENTRY_DSN found - error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=0.2,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(),
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.WARNING
            ),
        ],
        before_send=filter_sensitive_data,
        send_default_pii=False,
        release=f"apex-fleet@{release}",
        ignore_errors=[
            ConnectionRefusedError,
            TimeoutError,
        ],
    )

    logger.info(f"[Sentry] ✓ Initialized for {environment} (release: {release[:8]})")
    return True


def capture_failover_breadcrumb(signal_dict: dict):
    """Breadcrumb for a strategy leaving the active fleet."""
    sentry_sdk.add_breadcrumb(
        category="failover",
        message=f"Strategy {signal_dict.get('failing_id')} failed over",
        level="warning",
        data=signal_dict
    )
