"""
Main spike detection service.
Runs token discovery, monitoring and cleanup as three independent cycles.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from data_sources import DexScreenerClient
from filters import TokenFilter
from models import SpikeAlert
from rate_limiter import RateLimiter
from retry import handle_api_error, retry_async
from spike_detector import SpikeDetector
from token_cache import TokenCache
from token_universe import TokenUniverse

logger = logging.getLogger("SpikeService")

BATCH_DELAY_SECONDS = 0.2


class SpikeDetectionService:
    def __init__(self, config: Dict[str, Any], client: DexScreenerClient, notifier,
                 token_cache: Optional[TokenCache] = None,
                 universe: Optional[TokenUniverse] = None,
                 token_filter: Optional[TokenFilter] = None,
                 rate_limiter: Optional[RateLimiter] = None,
                 clock: Callable[[], float] = time.time,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.config = config
        self.client = client
        self.notifier = notifier
        self.clock = clock
        self.sleep = sleep

        self.token_cache = token_cache or TokenCache(clock=clock)
        self.token_filter = token_filter or TokenFilter(config, clock=clock)
        self.universe = universe or TokenUniverse(client, self.token_filter, sleep=sleep)
        self.detector = SpikeDetector(self.token_cache, config, clock=clock)
        self.rate_limiter = rate_limiter or RateLimiter(
            config["RATE_LIMIT_MAX_REQUESTS"], config["RATE_LIMIT_WINDOW_SECONDS"], clock=clock, sleep=sleep
        )

        self.is_running = False
        self._timers: List[asyncio.Task] = []
        self._in_flight: Dict[str, asyncio.Task] = {}

    async def start(self):
        if self.is_running:
            logger.info("Service is already running")
            return

        self.is_running = True
        logger.info("🚀 Starting Spike Detection Service...")

        await self.discover_tokens()

        self._timers = [
            asyncio.create_task(self._timer("monitor", "POLLING_INTERVAL_SECONDS", self.monitor_tokens, True)),
            asyncio.create_task(self._timer("discovery", "DISCOVERY_INTERVAL_SECONDS", self.discover_tokens, False)),
            asyncio.create_task(self._timer("cleanup", "CLEANUP_INTERVAL_SECONDS", self.cleanup, False)),
        ]
        logger.info("✅ Spike Detection Service started successfully")

    async def stop(self):
        if not self.is_running:
            return

        self.is_running = False
        logger.info("🛑 Stopping Spike Detection Service...")

        for timer in self._timers:
            timer.cancel()
        await asyncio.gather(*self._timers, return_exceptions=True)
        self._timers = []

        # Cycles already running are allowed to finish their fetches and deliveries
        pending = [task for task in self._in_flight.values() if not task.done()]
        if pending:
            logger.info(f"Waiting for {len(pending)} running cycle(s) to finish...")
            await asyncio.gather(*pending, return_exceptions=True)

        logger.info("✅ Spike Detection Service stopped")

    async def _timer(self, name: str, interval_key: str, cycle: Callable[[], Awaitable[Any]],
                     run_immediately: bool):
        if not run_immediately:
            await self.sleep(self.config[interval_key])
        while self.is_running:
            self.trigger(name, cycle)
            await self.sleep(self.config[interval_key])

    def trigger(self, name: str, cycle: Callable[[], Awaitable[Any]]) -> Optional[asyncio.Task]:
        """
        Start one run of a cycle unless the previous run of that same cycle is
        still in flight. Different cycles may run at the same time.
        """
        running = self._in_flight.get(name)
        if running is not None and not running.done():
            logger.debug(f"[{name.upper()}] Previous run still in progress, skipping this tick")
            return None

        task = asyncio.create_task(self._guarded(name, cycle))
        self._in_flight[name] = task
        return task

    async def _guarded(self, name: str, cycle: Callable[[], Awaitable[Any]]):
        try:
            return await cycle()
        except Exception as e:
            logger.error(f"[{name.upper()}] Error in {name} cycle: {e}", exc_info=True)
            return None

    async def monitor_tokens(self) -> List[SpikeAlert]:
        if self.config.get("IS_PAUSED"):
            logger.debug("[MONITOR] Paused, skipping cycle")
            return []

        tracked = self.universe.members()
        if not tracked:
            logger.info("[MONITOR] No tokens tracked yet. Waiting for discovery...")
            return []

        logger.info(f"[MONITOR] 📊 Monitoring {len(tracked)} tokens for spikes...")

        batch_size = self.config["BATCH_SIZE"]
        batches = [tracked[i:i + batch_size] for i in range(0, len(tracked), batch_size)]
        all_alerts: List[SpikeAlert] = []

        for index, batch in enumerate(batches):
            context = f"monitor batch {index + 1}/{len(batches)}"
            try:
                await self.rate_limiter.wait_for_slot()
                pairs = await retry_async(
                    lambda: self.client.get_tokens(batch),
                    max_attempts=self.config["RETRY_MAX_ATTEMPTS"],
                    base_delay=self.config["RETRY_BASE_DELAY_SECONDS"],
                    on_error=lambda e, attempt: handle_api_error(e, context),
                    sleep=self.sleep,
                )
                self.rate_limiter.record_request()
            except Exception as e:
                logger.error(f"[MONITOR] Skipping {context} after retries: {e}")
                continue

            all_alerts.extend(self.detector.check_pairs(pairs))

            if index + 1 < len(batches):
                await self.sleep(BATCH_DELAY_SECONDS)

        if all_alerts:
            logger.info(f"[MONITOR] 🚨 Detected {len(all_alerts)} spike(s)!")
            await self.deliver_alerts(all_alerts)
        else:
            logger.info("[MONITOR] ✅ No spikes detected in this cycle")

        logger.info(f"[MONITOR] 📈 Stats: {len(tracked)} tokens tracked, "
                    f"{self.token_cache.count()} tokens with state")
        return all_alerts

    async def deliver_alerts(self, alerts: List[SpikeAlert]) -> int:
        """Send alerts one by one, spaced out to respect Telegram rate limits."""
        delivered = 0
        for index, alert in enumerate(alerts):
            try:
                if await self.notifier.deliver(alert):
                    delivered += 1
                else:
                    logger.warning(f"[ALERT] Delivery failed for {alert.symbol} {alert.tier.value}")
            except Exception as e:
                logger.error(f"[ALERT] Error delivering alert for {alert.symbol}: {e}")

            if index + 1 < len(alerts):
                await self.sleep(self.config.get("ALERT_DELAY_SECONDS", 0.5))
        return delivered

    async def discover_tokens(self) -> Tuple[List[str], int]:
        logger.info("[DISCOVERY] 🔍 Discovering new tokens...")

        # Search failures are retried and skipped inside discover()
        added = await self.universe.discover()
        logger.info(f"[DISCOVERY] ✅ Discovered {len(added)} new eligible tokens")

        removed = 0
        for address in self.universe.members():
            try:
                await self.rate_limiter.wait_for_slot()
                still_eligible = await self.universe.revalidate(address)
                self.rate_limiter.record_request()
            except Exception as e:
                logger.debug(f"[DISCOVERY] Skipping revalidation of {address}: {e}")
                continue
            if not still_eligible:
                removed += 1

        if removed:
            logger.info(f"[DISCOVERY] 🔄 Removed {removed} tokens that no longer meet criteria")
        return added, removed

    async def cleanup(self) -> List[str]:
        removed = self.token_cache.evict_stale(self.config["MAX_IDLE_HOURS"])
        logger.info(f"[CLEANUP] 🧹 Cleanup completed, {len(removed)} stale tokens removed")
        return removed

    def get_stats(self) -> Dict[str, Any]:
        return {
            "tracked_tokens": self.universe.count(),
            "tokens_with_state": self.token_cache.count(),
            "is_running": self.is_running,
            "is_paused": bool(self.config.get("IS_PAUSED")),
        }
