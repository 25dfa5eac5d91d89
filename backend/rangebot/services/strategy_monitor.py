"""
Strategy Monitor Service

Background task that runs the range accumulation strategy on a fixed
period. A failing tick is logged and the loop keeps going; the next
scheduled tick is the retry.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from rangebot.constants import STRATEGY_INTERVAL_SECONDS
from rangebot.strategies.range_accumulation import RangeAccumulationStrategy

logger = logging.getLogger(__name__)


class StrategyMonitor:
    """Drives RangeAccumulationStrategy.tick() every interval_seconds"""

    def __init__(self, strategy: RangeAccumulationStrategy, interval_seconds: int = STRATEGY_INTERVAL_SECONDS):
        self.strategy = strategy
        self.interval_seconds = interval_seconds
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self.last_run: Optional[datetime] = None
        self.last_action: Optional[str] = None

    async def start(self):
        """Start the strategy monitor"""
        if not self.running:
            self.running = True
            self._stop_event = asyncio.Event()
            self.task = asyncio.create_task(self._monitor_loop())
            logger.info(f"✅ Strategy Monitor started (every {self.interval_seconds}s)")

    async def stop(self):
        """Stop the monitor; an in-flight tick runs to completion"""
        self.running = False
        self._stop_event.set()
        if self.task:
            await self.task
            self.task = None
        logger.info("🛑 Strategy Monitor stopped")

    async def _wait_interval(self) -> bool:
        """Sleep one interval; True if stop was requested meanwhile"""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def _monitor_loop(self):
        """Main loop - first tick fires one interval after start"""
        while self.running:
            if await self._wait_interval():
                break
            try:
                result = await self.strategy.tick("timer")
                self.last_action = result.action
            except Exception as e:
                logger.error(f"Error in strategy monitor loop: {e}", exc_info=True)
                self.last_action = "error"
            self.last_run = datetime.now(timezone.utc)

    def get_status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "interval_seconds": self.interval_seconds,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_action": self.last_action,
        }
