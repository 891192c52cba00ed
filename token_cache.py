# Filename: token_cache.py

import logging
import time
from collections import deque
from dataclasses import replace
from typing import Callable, Dict, List, Optional

from models import MAX_SNAPSHOTS_PER_TOKEN, Snapshot, Source, TokenState, Tier

logger = logging.getLogger("TokenCache")


class TokenCache:
    """
    Rolling snapshot history of every observed token.

    The cache is the only owner of the address -> TokenState mapping. Methods never
    await, so on the event loop each call is atomic for the token it touches.
    """

    def __init__(self, max_snapshots: int = MAX_SNAPSHOTS_PER_TOKEN,
                 clock: Callable[[], float] = time.time):
        self.max_snapshots = max_snapshots
        self.clock = clock
        self.cache: Dict[str, TokenState] = {}

    def record(self, address: str, snapshot: Snapshot, source: Optional[Source] = None,
               symbol: str = "", name: str = "", pair_address: str = "",
               created_at: Optional[float] = None) -> TokenState:
        state = self.cache.get(address)

        if state is None:
            if source is None:
                raise ValueError(f"refusing to track {address} without a verified source")
            now = self.clock()
            state = TokenState(
                address=address,
                source=source,
                created_at=created_at,
                first_seen_at=now,
                last_active_at=now,
                symbol=symbol,
                name=name,
                pair_address=pair_address,
                snapshots=deque(maxlen=self.max_snapshots),
            )
            self.cache[address] = state
            logger.debug(f"[CACHE] Tracking state for new token {address} ({source.value})")
        else:
            if state.source is None and source is not None:
                state.source = source
            if created_at is not None and state.created_at is None:
                state.created_at = created_at
            state.symbol = symbol or state.symbol
            state.name = name or state.name
            state.pair_address = pair_address or state.pair_address

        if state.snapshots and snapshot.timestamp < state.snapshots[-1].timestamp:
            logger.warning(f"[CACHE] Out of order snapshot for {address}, clamping timestamp")
            snapshot = replace(snapshot, timestamp=state.snapshots[-1].timestamp)

        # deque(maxlen) drops the oldest snapshot once full
        state.snapshots.append(snapshot)

        if snapshot.shows_activity():
            state.last_active_at = snapshot.timestamp

        return state

    def window(self, address: str, minutes: float, now: Optional[float] = None) -> List[Snapshot]:
        state = self.cache.get(address)
        if state is None:
            return []

        cutoff = (self.clock() if now is None else now) - minutes * 60
        recent = []
        for snapshot in reversed(state.snapshots):
            if snapshot.timestamp < cutoff:
                break
            recent.append(snapshot)
        recent.reverse()
        return recent

    def evict_stale(self, max_idle_hours: float, now: Optional[float] = None) -> List[str]:
        cutoff = (self.clock() if now is None else now) - max_idle_hours * 3600
        stale = [address for address, state in self.cache.items() if state.last_active_at < cutoff]
        for address in stale:
            del self.cache[address]
        if stale:
            logger.info(f"[CACHE] Removed {len(stale)} stale tokens")
        return stale

    def record_alert(self, address: str, tier: Tier, at: float):
        state = self.cache.get(address)
        if state is None:
            return
        previous = state.last_alert_at.get(tier)
        if previous is None or at > previous:
            state.last_alert_at[tier] = at

    def last_alert_at(self, address: str, tier: Tier) -> Optional[float]:
        state = self.cache.get(address)
        if state is None:
            return None
        return state.last_alert_at.get(tier)

    def get_state(self, address: str) -> Optional[TokenState]:
        return self.cache.get(address)

    def addresses(self) -> List[str]:
        return list(self.cache.keys())

    def count(self) -> int:
        return len(self.cache)
