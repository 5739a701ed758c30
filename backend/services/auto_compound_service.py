"""
Auto-Compound Service
Reinvests a fraction of projected fleet earnings into the funding strategy.

Workflow:
1. Check the auto-compound toggle
2. amount = projected daily earnings * compound rate
3. Skip if below the minimum (gas would eat it)
4. Submit exactly one reinvestment to the funding strategy

No retries: a failed attempt is recomputed fresh on the next cycle.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from agents.cycle_state import CycleState
from infrastructure.errors import TransportError, error_tracker
from services.funding_transport import FundingTransport

logger = logging.getLogger(__name__)

REASON_DISABLED = "disabled"
REASON_TOO_SMALL = "too small"


@dataclass
class CompoundOutcome:
    """Result of one auto-compound attempt"""
    committed: bool
    amount: Optional[float] = None
    tx_ref: Optional[str] = None
    confirmed_block: Optional[int] = None
    reason: Optional[str] = None

    @property
    def is_too_small(self) -> bool:
        return not self.committed and self.reason == REASON_TOO_SMALL

    @property
    def is_disabled(self) -> bool:
        return not self.committed and self.reason == REASON_DISABLED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "committed": self.committed,
            "amount": self.amount,
            "txRef": self.tx_ref,
            "confirmedBlock": self.confirmed_block,
            "reason": self.reason,
        }


class AutoCompoundController:
    """
    Usage:
        controller = AutoCompoundController(state, transport, funding_strategy_id=1)
        outcome = await controller.maybe_compound(projected_daily)
        if outcome.committed:
            ...
    """

    def __init__(
        self,
        state: CycleState,
        transport: FundingTransport,
        funding_strategy_id: int,
        rate: float = 0.10,
        min_amount: float = 1.00,
        submit_timeout: Optional[float] = None
    ):
        self.state = state
        self.transport = transport
        self.funding_strategy_id = funding_strategy_id
        self.rate = rate
        self.min_amount = min_amount
        self.submit_timeout = submit_timeout

    async def maybe_compound(self, projected_earnings: float) -> CompoundOutcome:
        if not self.state.is_auto_compound_enabled:
            return CompoundOutcome(committed=False, reason=REASON_DISABLED)

        amount = projected_earnings * self.rate
        if amount < self.min_amount:
            return CompoundOutcome(committed=False, amount=amount, reason=REASON_TOO_SMALL)

        logger.info(
            f"[AutoCompound] ♻️ Attempting to deposit {amount:.2f} USD "
            f"({self.rate:.0%} of daily profit) into Strategy {self.funding_strategy_id}..."
        )

        try:
            # Cancelling here does not stop a web3 call already running in an
            # executor thread. submit_timeout must stay above the transport's
            # own receipt timeout so the thread finishes first.
            receipt = await asyncio.wait_for(
                self.transport.submit(self.funding_strategy_id, amount),
                timeout=self.submit_timeout
            )
        except asyncio.TimeoutError:
            reason = f"Transaction not confirmed within {self.submit_timeout}s"
            logger.error(f"[AutoCompound] ❌ {reason}")
            return CompoundOutcome(committed=False, amount=amount, reason=reason)
        except TransportError as e:
            error_tracker.track(e, "auto_compound")
            logger.error(f"[AutoCompound] ❌ Transaction failed: {e}")
            return CompoundOutcome(committed=False, amount=amount, reason=str(e))
        except Exception as e:
            error = TransportError(str(e) or type(e).__name__, original_error=e)
            error_tracker.track(error, "auto_compound")
            logger.error(f"[AutoCompound] ❌ Transaction failed: {error}")
            return CompoundOutcome(committed=False, amount=amount, reason=error.message)

        logger.info(f"[AutoCompound] ✅ Confirmed in block {receipt.confirmed_block}")
        return CompoundOutcome(
            committed=True,
            amount=amount,
            tx_ref=receipt.tx_ref,
            confirmed_block=receipt.confirmed_block,
        )

    def status(self) -> Dict[str, Any]:
        return {
            "isAutoCompoundingEnabled": self.state.is_auto_compound_enabled,
            "rate": self.rate,
            "minAmount": self.min_amount,
            "fundingStrategyId": self.funding_strategy_id,
        }
