"""
Cycle Scheduler
Fires the fleet cycle on a fixed period with a single-flight guard.

Ticks fire on the period whether or not the previous cycle has finished.
A tick that arrives while a cycle is still running is dropped, never queued.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Set

from agents.cycle_state import CycleState
from infrastructure.errors import error_tracker

logger = logging.getLogger(__name__)

CycleBody = Callable[[], Awaitable[Any]]


class CycleScheduler:
    """
    Owns the periodic ticker task.

    Usage:
        scheduler = CycleScheduler(orchestrator.execute_cycle, state, period=60, initial_delay=5)
        scheduler.start()
        ...
        await scheduler.stop()   # no new cycles, in-flight cycle awaited
    """

    def __init__(
        self,
        cycle_body: CycleBody,
        state: CycleState,
        period: float = 60.0,
        initial_delay: float = 5.0
    ):
        if period <= 0:
            raise ValueError("period must be positive")
        self.cycle_body = cycle_body
        self.state = state
        self.period = period
        self.initial_delay = initial_delay
        self.running = False
        self._ticker: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    async def trigger(self) -> bool:
        """
        Run one guarded cycle. Returns False if it was skipped because a
        previous cycle is still running.
        """
        if self.state.is_cycle_running:
            self.state.cycles_skipped += 1
            logger.info("[Scheduler] ⏳ Previous execution still running, skipping...")
            return False

        self.state.is_cycle_running = True
        self.state.cycles_started += 1
        self.state.last_cycle_started_at = datetime.now()
        try:
            await self.cycle_body()
        except Exception as e:
            self.state.cycles_failed += 1
            error_tracker.track(e, "cycle")
            logger.error(f"[Scheduler] ❌ Auto-execution failed: {e}")
        finally:
            self.state.is_cycle_running = False
            self.state.last_cycle_finished_at = datetime.now()
        return True

    def _fire(self):
        task = asyncio.create_task(self.trigger())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _tick_loop(self):
        await asyncio.sleep(self.initial_delay)
        while self.running:
            self._fire()
            await asyncio.sleep(self.period)

    def start(self) -> asyncio.Task:
        """Schedule the ticker on the running loop"""
        if self._ticker and not self._ticker.done():
            return self._ticker
        self.running = True
        self._ticker = asyncio.create_task(self._tick_loop())
        logger.info(
            f"[Scheduler] 🤖 Automatic execution enabled: every {self.period:g}s "
            f"(first run in {self.initial_delay:g}s)"
        )
        return self._ticker

    async def run_forever(self):
        """Start and block until stop() is called"""
        ticker = self.start()
        await asyncio.wait({ticker})

    async def stop(self):
        """Stop firing new cycles and wait for the in-flight one to settle"""
        self.running = False
        if self._ticker:
            self._ticker.cancel()
            try:
                await self._ticker
            except asyncio.CancelledError:
                pass
            self._ticker = None

        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
        logger.info("[Scheduler] Stopped")

    @property
    def is_active(self) -> bool:
        return self._ticker is not None and not self._ticker.done()
