# Filename: filters.py

import time
from typing import Any, Callable, Dict

from loguru import logger

from models import TokenPair


class TokenFilter:
    """
    Eligibility checks shared by discovery and revalidation.
    Thresholds are read from the config dict on every call.
    """

    def __init__(self, config: Dict[str, Any], clock: Callable[[], float] = time.time):
        self.config = config
        self.clock = clock
        self.filter_stats = {
            "source": 0,
            "market_cap": 0,
            "price": 0,
            "liquidity": 0,
            "age": 0
        }

    def apply_filters(self, pair: TokenPair) -> bool:
        if not self.source_filter(pair):
            self.filter_stats["source"] += 1
            return False

        if not self.market_cap_filter(pair):
            self.filter_stats["market_cap"] += 1
            return False

        if not self.price_filter(pair):
            self.filter_stats["price"] += 1
            return False

        if not self.liquidity_filter(pair):
            self.filter_stats["liquidity"] += 1
            return False

        if not self.age_filter(pair):
            self.filter_stats["age"] += 1
            return False

        return True

    def source_filter(self, pair: TokenPair) -> bool:
        if pair.source is None:
            logger.debug(f"[FILTER ❌] {pair.symbol}: Unverified source (dexId={pair.dex_id or '?'})")
            return False
        return True

    def market_cap_filter(self, pair: TokenPair) -> bool:
        if pair.fdv <= 0 or pair.fdv >= self.config["MAX_MARKET_CAP"]:
            logger.debug(f"[FILTER ❌] {pair.symbol}: Market cap (${pair.fdv:,.2f}) out of range.")
            return False
        return True

    def price_filter(self, pair: TokenPair) -> bool:
        if pair.price_usd <= 0:
            logger.debug(f"[FILTER ❌] {pair.symbol}: No price data.")
            return False
        return True

    def liquidity_filter(self, pair: TokenPair) -> bool:
        if pair.liquidity_usd < self.config["MIN_LIQUIDITY_USD"]:
            logger.debug(f"[FILTER ❌] {pair.symbol}: Liquidity too low (${pair.liquidity_usd:,.2f})")
            return False
        return True

    def age_filter(self, pair: TokenPair) -> bool:
        age_hours = pair.age_hours(self.clock())
        # Unknown creation time disables the age check
        if age_hours is None:
            return True
        if age_hours < self.config["MIN_TOKEN_AGE_HOURS"]:
            logger.debug(f"[FILTER ❌] {pair.symbol}: Too young ({age_hours:.1f}h)")
            return False
        return True

    def get_filter_statistics(self):
        return dict(self.filter_stats)

    def reset_filter_statistics(self):
        for key in self.filter_stats:
            self.filter_stats[key] = 0
