# Filename: performance_reporter.py

import asyncio
import logging
from typing import Awaitable, Callable

from filters import TokenFilter
from spike_service import SpikeDetectionService

logger = logging.getLogger("StatsReporter")


class StatsReporter:
    def __init__(self, service: SpikeDetectionService, token_filter: TokenFilter, notifier=None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.service = service
        self.token_filter = token_filter
        self.notifier = notifier
        self.sleep = sleep

    def format_report(self) -> str:
        stats = self.service.get_stats()
        filter_stats = self.token_filter.get_filter_statistics()
        status = "PAUSED" if stats["is_paused"] else "RUNNING"
        report = f"""
📊 *Bot Visibility Report*

*Tracked Tokens:* {stats['tracked_tokens']}
*Tokens With State:* {stats['tokens_with_state']}
*Status:* {status}

📉 *Filter Summary (since last report)*
- Source Failures: {filter_stats.get('source', 0)}
- Market Cap Failures: {filter_stats.get('market_cap', 0)}
- Price Failures: {filter_stats.get('price', 0)}
- Liquidity Failures: {filter_stats.get('liquidity', 0)}
- Age Failures: {filter_stats.get('age', 0)}
        """
        return report.strip()

    def build_report(self) -> str:
        """Build the report and reset the filter counters it covers."""
        message = self.format_report()
        self.token_filter.reset_filter_statistics()
        return message

    def publish(self, message: str):
        if self.notifier:
            self.notifier.send_markdown(message)
            logger.info("[STATS REPORT] Report sent.")
        else:
            logger.info("[STATS REPORT] \n" + message)

    async def run_loop(self):
        while True:
            await self.sleep(self.service.config.get("STATS_INTERVAL_SECONDS", 300))
            try:
                message = self.build_report()
                # Telegram delivery uses blocking requests
                await asyncio.to_thread(self.publish, message)
            except Exception as e:
                logger.error(f"[Reporter Error] Failed to send report: {e}")
