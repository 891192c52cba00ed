# Filename: telegram_alert.py

import asyncio
import logging
import os

import requests

from models import SpikeAlert
from notifier import format_spike_alert

logger = logging.getLogger("TelegramNotifier")


class TelegramNotifier:
    def __init__(self, bot_token: str = None, chat_id: str = None, timeout: float = 10):
        self.bot_token = bot_token or os.getenv("TELEGRAM_BOT_TOKEN", "")
        self.chat_id = chat_id or os.getenv("TELEGRAM_CHAT_ID", "")
        self.timeout = timeout

        if not self.bot_token or not self.chat_id:
            logger.error("[Telegram] Missing bot token or chat ID!")

    async def deliver(self, alert: SpikeAlert) -> bool:
        """
        Sends a formatted spike alert. requests is blocking, so the call runs in a
        worker thread to keep the event loop free.
        """
        return await asyncio.to_thread(self.send_markdown, format_spike_alert(alert))

    def send_markdown(self, text: str) -> bool:
        """
        Sends a raw Markdown message.
        """
        if not self.bot_token or not self.chat_id:
            return False

        url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "Markdown",
            "disable_web_page_preview": False
        }

        try:
            response = requests.post(url, data=payload, timeout=self.timeout)
            if response.status_code != 200:
                logger.error(f"[Telegram] Failed: {response.status_code} - {response.text}")
                return False
            logger.info("[Telegram] ✅ Message sent successfully.")
            return True
        except requests.RequestException as e:
            logger.error(f"[Telegram] Request exception: {e}")
            return False


class LogNotifier:
    """Used when Telegram is disabled, alerts only go to the log."""

    async def deliver(self, alert: SpikeAlert) -> bool:
        logger.info("[ALERT]\n" + format_spike_alert(alert))
        return True

    def send_markdown(self, text: str) -> bool:
        logger.info(text)
        return True
