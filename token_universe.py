# Filename: token_universe.py

import asyncio
import logging
from typing import Awaitable, Callable, List, Set

from data_sources import DexScreenerClient
from filters import TokenFilter
from models import Source
from retry import handle_api_error, retry_async

logger = logging.getLogger("TokenUniverse")

DISCOVERY_QUERIES = {
    Source.PUMPFUN: "pumpfun",
    Source.BONK: "bonk",
}
SEARCH_PAUSE_SECONDS = 0.5
SEARCH_RETRY_ATTEMPTS = 2
SEARCH_RETRY_BASE_DELAY = 2.0


class TokenUniverse:
    """
    The set of token addresses currently eligible for monitoring.

    Membership changes never touch the snapshot history, stale state is
    removed by the cleanup cycle only.
    """

    def __init__(self, client: DexScreenerClient, token_filter: TokenFilter,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.client = client
        self.token_filter = token_filter
        self.sleep = sleep
        self.tracked_tokens: Set[str] = set()

    async def discover(self) -> List[str]:
        """
        Search DexScreener once per launchpad and track every eligible token.
        A failing search is retried once, then skipped for this round.

        Returns:
            Addresses that were not tracked before
        """
        discovered = []

        for source, query in DISCOVERY_QUERIES.items():
            try:
                pairs = await retry_async(
                    lambda: self.client.search_pairs(query),
                    max_attempts=SEARCH_RETRY_ATTEMPTS,
                    base_delay=SEARCH_RETRY_BASE_DELAY,
                    on_error=lambda e, attempt: handle_api_error(e, f"search {query}"),
                    sleep=self.sleep,
                )
            except Exception as e:
                logger.error(f"[DISCOVERY] Error searching for {query} tokens: {e}")
                continue

            for pair in pairs:
                # The search is fuzzy, the dexId must confirm the launchpad
                if pair.source is not source or not self.token_filter.apply_filters(pair):
                    continue
                if self.add(pair.address):
                    discovered.append(pair.address)

            await self.sleep(SEARCH_PAUSE_SECONDS)

        logger.info(f"[DISCOVERY] {len(discovered)} new eligible tokens, {self.count()} tracked")
        return discovered

    async def revalidate(self, address: str) -> bool:
        """
        Re-check one tracked token against the filters, dropping it when no pair passes.
        Fetch errors propagate to the caller.
        """
        pairs = await self.client.get_token_pairs(address)
        if any(self.token_filter.apply_filters(pair) for pair in pairs):
            return True

        if self.remove(address):
            logger.info(f"[DISCOVERY] {address} no longer meets criteria, removed from universe")
        return False

    def members(self) -> List[str]:
        return list(self.tracked_tokens)

    def add(self, address: str) -> bool:
        if address in self.tracked_tokens:
            return False
        self.tracked_tokens.add(address)
        return True

    def remove(self, address: str) -> bool:
        if address not in self.tracked_tokens:
            return False
        self.tracked_tokens.discard(address)
        return True

    def contains(self, address: str) -> bool:
        return address in self.tracked_tokens

    def count(self) -> int:
        return len(self.tracked_tokens)
