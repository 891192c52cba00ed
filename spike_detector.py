# Filename: spike_detector.py

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from dormancy_analyzer import describe_window, is_dormant
from models import Snapshot, SpikeAlert, Tier, TokenPair
from token_cache import TokenCache

logger = logging.getLogger("SpikeDetector")

TIER50_THRESHOLD = 50.0
TIER25_THRESHOLD = 25.0


class SpikeDetector:
    """
    Detects quiet-to-breakout transitions.

    Every (token, tier) pair is either armed or cooling. A cooling pair re-arms on
    its own once the cooldown has elapsed since its last alert, which is checked
    at evaluation time.
    """

    def __init__(self, token_cache: TokenCache, config: Dict[str, Any],
                 clock: Callable[[], float] = time.time):
        self.token_cache = token_cache
        self.config = config
        self.clock = clock

    def process_pair(self, pair: TokenPair, now: Optional[float] = None) -> Optional[SpikeAlert]:
        """Record the pair as a new snapshot and check it for a spike."""
        # Hard restriction: only Pump.fun or BONK tokens are ever tracked
        if pair.source is None:
            return None

        now = self.clock() if now is None else now

        # Dormancy is judged on the history before this snapshot
        was_dormant = self.was_dormant(pair.address, now)

        snapshot = Snapshot.from_pair(pair, now)
        self.token_cache.record(
            pair.address,
            snapshot,
            source=pair.source,
            symbol=pair.symbol,
            name=pair.name,
            pair_address=pair.pair_address,
            created_at=pair.pair_created_at,
        )

        return self.evaluate(pair, snapshot, was_dormant)

    def was_dormant(self, address: str, now: float) -> bool:
        window = self.token_cache.window(address, self.config["BASELINE_WINDOW_MINUTES"], now=now)
        dormant = is_dormant(
            window,
            volatility_threshold=self.config["DORMANT_VOLATILITY_THRESHOLD_PCT"],
            volume_threshold=self.config["DORMANT_VOLUME_THRESHOLD_USD"],
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"[DORMANCY] {address} dormant={dormant} {describe_window(window)}")
        return dormant

    def meets_basic_criteria(self, pair: TokenPair) -> bool:
        if pair.fdv >= self.config["MAX_MARKET_CAP"] or pair.fdv <= 0:
            return False
        if pair.price_usd <= 0:
            return False
        # Spam control: thin pools are ignored even when everything else qualifies
        if pair.liquidity_usd < self.config["MIN_LIQUIDITY_USD"]:
            return False
        return True

    def select_tier(self, price_change_5m: float) -> Optional[Tier]:
        if self.config["ALERT_THRESHOLD_50_ENABLED"] and price_change_5m >= TIER50_THRESHOLD:
            return Tier.TIER50
        if self.config["ALERT_THRESHOLD_25_ENABLED"] and TIER25_THRESHOLD <= price_change_5m < TIER50_THRESHOLD:
            return Tier.TIER25
        return None

    def is_armed(self, address: str, tier: Tier, now: float) -> bool:
        last_alert = self.token_cache.last_alert_at(address, tier)
        if last_alert is None:
            return True
        return now - last_alert >= self.config["ALERT_COOLDOWN_SECONDS"]

    def evaluate(self, pair: TokenPair, snapshot: Snapshot, was_dormant: bool) -> Optional[SpikeAlert]:
        if pair.source is None or not self.meets_basic_criteria(pair):
            return None

        if not was_dormant:
            return None

        # Provider's own 5m change, its window may be out of phase with our polling
        price_change_5m = pair.price_change_5m
        tier = self.select_tier(price_change_5m)
        if tier is None:
            return None

        now = snapshot.timestamp
        if not self.is_armed(pair.address, tier, now):
            logger.debug(f"[COOLDOWN] {pair.symbol} {tier.value} still cooling, alert suppressed")
            return None

        # Stamped before anyone gets to deliver the alert
        self.token_cache.record_alert(pair.address, tier, now)

        state = self.token_cache.get_state(pair.address)
        created_at = pair.pair_created_at if pair.pair_created_at is not None else (state.created_at if state else None)
        age_hours = (now - created_at) / 3600 if created_at is not None else 0.0

        alert = SpikeAlert(
            address=pair.address,
            symbol=pair.symbol,
            name=pair.name,
            source=pair.source,
            age_hours=age_hours,
            price_change_5m=price_change_5m,
            tier=tier,
            price=snapshot.price,
            market_cap=snapshot.market_cap,
            volume_5m=snapshot.volume_5m,
            liquidity=snapshot.liquidity,
            timestamp=now,
            pair_address=pair.pair_address,
            url=pair.dexscreener_url,
        )
        logger.info(f"🚨 {tier.label} spike on {pair.symbol} ({pair.address}): {price_change_5m:+.2f}% in 5m")
        return alert

    def check_pairs(self, pairs: Iterable[TokenPair], now: Optional[float] = None) -> List[SpikeAlert]:
        alerts = []
        for pair in pairs:
            try:
                alert = self.process_pair(pair, now=now)
            except Exception as e:
                logger.error(f"Error checking pair {pair.pair_address or pair.address}: {e}")
                continue
            if alert:
                alerts.append(alert)
        return alerts
