# Filename: main.py

import asyncio
import logging
import signal
import sys

from config import load_config, validate_config
from data_sources import DexScreenerClient
from errors import ConfigurationError
from performance_reporter import StatsReporter
from spike_service import SpikeDetectionService
from telegram_alert import LogNotifier, TelegramNotifier

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger("Main")


def build_notifier(config):
    if config.get("ENABLE_TELEGRAM"):
        return TelegramNotifier(config["TELEGRAM_BOT_TOKEN"], config["TELEGRAM_CHAT_ID"])
    logger.info("📭 Telegram disabled, alerts will only be logged")
    return LogNotifier()


async def run(config):
    notifier = build_notifier(config)
    client = DexScreenerClient(config)
    service = SpikeDetectionService(config, client, notifier)
    reporter = StatsReporter(service, service.token_filter, notifier=notifier)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers, Ctrl+C still raises KeyboardInterrupt
            pass

    reporter_task = None
    try:
        await service.start()
        reporter_task = asyncio.create_task(reporter.run_loop())
        logger.info("✅ Bot started successfully!")
        await stop_event.wait()
        logger.info("🛑 Shutdown requested...")
    finally:
        if reporter_task:
            reporter_task.cancel()
            await asyncio.gather(reporter_task, return_exceptions=True)
        await service.stop()
        await client.close()
        logger.info("✅ Shutdown complete")


def main():
    logger.info("🚀 Starting Solana Dormant Token Spike Detector...")

    config = load_config()
    try:
        validate_config(config)
    except ConfigurationError as e:
        logger.error(f"❌ Invalid configuration: {e}")
        sys.exit(1)

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        logger.info("❌ Bot stopped by user.")


if __name__ == "__main__":
    main()
