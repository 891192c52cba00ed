# Filename: models.py

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, Optional

MAX_SNAPSHOTS_PER_TOKEN = 144  # 24 hours @ 10 min intervals


class Source(Enum):
    """Launchpads a token is allowed to come from."""
    PUMPFUN = "pumpfun"
    BONK = "bonk"


class Tier(Enum):
    TIER25 = "tier25"
    TIER50 = "tier50"

    @property
    def label(self) -> str:
        return "+50%" if self is Tier.TIER50 else "+25%"


@dataclass
class TokenPair:
    """
    TokenPair is a DexScreener pair normalized into the strict shape used by the
    detector. Numeric fields missing upstream are already defaulted to zero.
    """
    address: str                              # Base token mint address
    symbol: str
    name: str
    price_usd: float
    fdv: float                                # Fully Diluted Valuation (market cap)
    liquidity_usd: float
    volume_5m: float = 0.0
    volume_24h: float = 0.0
    price_change_5m: float = 0.0
    price_change_1h: float = 0.0
    price_change_24h: float = 0.0
    pair_address: str = ""
    dex_id: str = ""
    chain_id: str = "solana"
    url: str = ""
    pair_created_at: Optional[float] = None   # Unix seconds, None when unknown
    source: Optional[Source] = None

    def age_hours(self, now: float) -> Optional[float]:
        if self.pair_created_at is None:
            return None
        return (now - self.pair_created_at) / 3600

    @property
    def dexscreener_url(self) -> str:
        return self.url or f"https://dexscreener.com/solana/{self.pair_address}"


@dataclass(frozen=True)
class Snapshot:
    timestamp: float
    price: float
    market_cap: float
    volume_5m: float
    volume_24h: float
    liquidity: float
    price_change_5m: float
    price_change_24h: float

    @classmethod
    def from_pair(cls, pair: TokenPair, timestamp: float) -> "Snapshot":
        return cls(
            timestamp=timestamp,
            price=pair.price_usd,
            market_cap=pair.fdv,
            volume_5m=pair.volume_5m,
            volume_24h=pair.volume_24h,
            liquidity=pair.liquidity_usd,
            price_change_5m=pair.price_change_5m,
            price_change_24h=pair.price_change_24h,
        )

    def shows_activity(self) -> bool:
        return self.volume_5m > 0 or abs(self.price_change_5m) > 1


@dataclass
class TokenState:
    address: str
    source: Source
    created_at: Optional[float]
    first_seen_at: float
    last_active_at: float
    symbol: str = ""
    name: str = ""
    pair_address: str = ""
    snapshots: Deque[Snapshot] = field(default_factory=lambda: deque(maxlen=MAX_SNAPSHOTS_PER_TOKEN))
    last_alert_at: Dict[Tier, float] = field(default_factory=dict)


@dataclass
class SpikeAlert:
    address: str
    symbol: str
    name: str
    source: Source
    age_hours: float
    price_change_5m: float
    tier: Tier
    price: float
    market_cap: float
    volume_5m: float
    liquidity: float
    timestamp: float
    pair_address: str = ""
    url: str = ""
