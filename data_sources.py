"""
DexScreener data source for the spike detector.
Fetches Solana pairs and normalizes them into TokenPair records.
"""

import asyncio
import logging
import math
from typing import Any, Dict, Iterable, List, Optional

import aiohttp

from errors import RateLimitError, TransientFetchError, ValidationSkip
from models import Source, TokenPair

logger = logging.getLogger("data_sources")

SOLANA_CHAIN_ID = "solana"
MAX_ADDRESSES_PER_REQUEST = 30


def classify_source(dex_id: Optional[str]) -> Optional[Source]:
    """
    Map a DexScreener dexId to a launchpad.

    Returns:
        Source.PUMPFUN, Source.BONK, or None when the origin cannot be verified
    """
    dex_id = (dex_id or "").lower()
    if "pump" in dex_id:
        return Source.PUMPFUN
    if "bonk" in dex_id:
        return Source.BONK
    return None


def _to_float(value: Any) -> float:
    try:
        number = float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_pair(raw: Dict[str, Any]) -> TokenPair:
    """
    Normalize one raw DexScreener pair.

    Missing numeric fields default to 0, a missing creation time leaves
    pair_created_at as None. A missing address or price raises ValidationSkip.
    """
    if not isinstance(raw, dict):
        raise ValidationSkip(f"pair is not an object: {raw!r}")

    base_token = raw.get("baseToken") or {}
    address = (base_token.get("address") or "").strip()
    if not address:
        raise ValidationSkip("pair without base token address")

    price_text = raw.get("priceUsd")
    if price_text in (None, ""):
        raise ValidationSkip(f"pair for {address} without priceUsd")
    try:
        price_usd = float(price_text)
    except (TypeError, ValueError):
        raise ValidationSkip(f"pair for {address} has invalid priceUsd {price_text!r}")
    if not math.isfinite(price_usd):
        raise ValidationSkip(f"pair for {address} has non-finite priceUsd {price_text!r}")

    volume = raw.get("volume") or {}
    price_change = raw.get("priceChange") or {}
    liquidity = raw.get("liquidity") or {}
    created_ms = raw.get("pairCreatedAt")
    dex_id = raw.get("dexId") or ""

    return TokenPair(
        address=address,
        symbol=base_token.get("symbol") or "???",
        name=base_token.get("name") or "Unknown",
        price_usd=price_usd,
        fdv=_to_float(raw.get("fdv")),
        liquidity_usd=_to_float(liquidity.get("usd")),
        volume_5m=_to_float(volume.get("m5")),
        volume_24h=_to_float(volume.get("h24")),
        price_change_5m=_to_float(price_change.get("m5")),
        price_change_1h=_to_float(price_change.get("h1")),
        price_change_24h=_to_float(price_change.get("h24")),
        pair_address=raw.get("pairAddress") or "",
        dex_id=dex_id,
        chain_id=raw.get("chainId") or SOLANA_CHAIN_ID,
        url=raw.get("url") or "",
        pair_created_at=_to_float(created_ms) / 1000 if created_ms else None,
        source=classify_source(dex_id),
    )


def parse_pairs(raw_pairs: Iterable[Dict[str, Any]]) -> List[TokenPair]:
    """Normalize a list of raw pairs, dropping the malformed ones."""
    pairs = []
    for raw in raw_pairs or []:
        try:
            pair = parse_pair(raw)
        except ValidationSkip as e:
            logger.debug(f"[SKIP] Dropping malformed pair: {e}")
            continue
        if pair.chain_id != SOLANA_CHAIN_ID:
            continue
        pairs.append(pair)
    return pairs


def primary_pairs(pairs: Iterable[TokenPair]) -> List[TokenPair]:
    """
    Keep one pair per token, in first-seen order.

    The most liquid launchpad pair wins over any unverified pool, an unverified
    pair is only kept when the token has no launchpad pair at all.
    """
    best: Dict[str, TokenPair] = {}
    for pair in pairs:
        current = best.get(pair.address)
        if current is None or _pair_rank(pair) > _pair_rank(current):
            best[pair.address] = pair
    return list(best.values())


def _pair_rank(pair: TokenPair):
    return (pair.source is not None, pair.liquidity_usd)


class DexScreenerClient:
    """
    Thin async client for the DexScreener public API.
    All errors are mapped onto TransientFetchError / RateLimitError.
    """

    def __init__(self, config: Dict[str, Any], session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self.base_url = config.get("DEXSCREENER_BASE_URL", "https://api.dexscreener.com").rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=config.get("REQUEST_TIMEOUT_SECONDS", 15))
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self):
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        url = f"{self.base_url}{path}"
        session = await self._get_session()
        try:
            async with session.get(url, params=params) as response:
                if response.status in (429, 503):
                    raise RateLimitError(f"DexScreener rate limited ({response.status}) on {path}",
                                         status=response.status)
                if response.status != 200:
                    raise TransientFetchError(f"DexScreener returned {response.status} on {path}",
                                              status=response.status)
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientFetchError(f"DexScreener request failed on {path}: {e!r}") from e

    async def get_tokens(self, addresses: List[str]) -> List[TokenPair]:
        """
        Bulk lookup, one request for up to 30 addresses.

        Returns:
            The primary (highest liquidity) Solana pair of each token found
        """
        if not addresses:
            return []
        if len(addresses) > MAX_ADDRESSES_PER_REQUEST:
            raise ValueError(f"at most {MAX_ADDRESSES_PER_REQUEST} addresses per request")

        data = await self._get_json(f"/tokens/v1/{SOLANA_CHAIN_ID}/{','.join(addresses)}")
        raw_pairs = data if isinstance(data, list) else (data or {}).get("pairs") or []
        return primary_pairs(parse_pairs(raw_pairs))

    async def get_token_pairs(self, address: str) -> List[TokenPair]:
        data = await self._get_json(f"/token-pairs/v1/{SOLANA_CHAIN_ID}/{address}")
        raw_pairs = data if isinstance(data, list) else (data or {}).get("pairs") or []
        return parse_pairs(raw_pairs)

    async def search_pairs(self, query: str) -> List[TokenPair]:
        data = await self._get_json("/latest/dex/search", params={"q": query})
        if not data or "pairs" not in data:
            logger.warning(f"Invalid search response from DexScreener for {query!r}")
            return []
        pairs = parse_pairs(data["pairs"])
        logger.info(f"Found {len(pairs)} Solana pairs from DexScreener search {query!r}")
        return pairs
