import asyncio

import aiohttp
import pytest

from data_sources import DexScreenerClient, classify_source, parse_pair, parse_pairs, primary_pairs
from errors import RateLimitError, TransientFetchError, ValidationSkip
from models import Source


def raw_pair(**overrides):
    pair = {
        "chainId": "solana",
        "dexId": "pumpfun",
        "url": "https://dexscreener.com/solana/pair1",
        "pairAddress": "pair1",
        "baseToken": {"address": "Mint1", "name": "Dormant Dog", "symbol": "DDOG"},
        "priceUsd": "0.00004215",
        "volume": {"m5": 120.5, "h1": 800, "h24": 15000},
        "priceChange": {"m5": 31.2, "h1": 12.0, "h24": -4.5},
        "liquidity": {"usd": 5400.25},
        "fdv": 42150,
        "pairCreatedAt": 1_699_990_000_000,
    }
    pair.update(overrides)
    return pair


@pytest.mark.parametrize("dex_id, expected", [
    ("pumpfun", Source.PUMPFUN),
    ("pumpswap", Source.PUMPFUN),
    ("PumpFun", Source.PUMPFUN),
    ("bonk", Source.BONK),
    ("letsbonk", Source.BONK),
    ("raydium", None),
    ("", None),
    (None, None),
])
def test_classify_source(dex_id, expected):
    assert classify_source(dex_id) is expected


def test_parse_pair_normalizes_fields():
    pair = parse_pair(raw_pair())

    assert pair.address == "Mint1"
    assert pair.symbol == "DDOG"
    assert pair.price_usd == pytest.approx(0.00004215)
    assert pair.fdv == 42150
    assert pair.volume_5m == 120.5
    assert pair.volume_24h == 15000
    assert pair.price_change_5m == 31.2
    assert pair.price_change_1h == 12.0
    assert pair.liquidity_usd == 5400.25
    assert pair.pair_created_at == 1_699_990_000
    assert pair.source is Source.PUMPFUN


def test_missing_optional_fields_default():
    pair = parse_pair(raw_pair(volume=None, priceChange={}, liquidity=None, fdv=None, pairCreatedAt=None))

    assert pair.volume_5m == 0
    assert pair.price_change_5m == 0
    assert pair.liquidity_usd == 0
    assert pair.fdv == 0
    assert pair.pair_created_at is None


@pytest.mark.parametrize("overrides", [
    {"baseToken": {}},
    {"baseToken": None},
    {"priceUsd": None},
    {"priceUsd": ""},
    {"priceUsd": "not-a-number"},
    {"priceUsd": "NaN"},
    {"priceUsd": "inf"},
    {"priceUsd": "-Infinity"},
])
def test_missing_required_fields_raise_validation_skip(overrides):
    with pytest.raises(ValidationSkip):
        parse_pair(raw_pair(**overrides))


def test_parse_pairs_drops_bad_records_and_other_chains():
    raws = [
        raw_pair(),
        raw_pair(priceUsd=None),
        raw_pair(chainId="ethereum", baseToken={"address": "Eth1", "symbol": "E", "name": "E"}),
        "garbage",
        raw_pair(baseToken={"address": "Mint2", "symbol": "TWO", "name": "Two"}),
    ]
    assert [p.address for p in parse_pairs(raws)] == ["Mint1", "Mint2"]


def test_primary_pairs_keeps_most_liquid_pair_per_token():
    pairs = parse_pairs([
        raw_pair(pairAddress="low", liquidity={"usd": 100}),
        raw_pair(pairAddress="high", liquidity={"usd": 9000}),
        raw_pair(pairAddress="other", baseToken={"address": "Mint2", "symbol": "TWO", "name": "Two"}),
    ])

    primary = primary_pairs(pairs)
    assert [(p.address, p.pair_address) for p in primary] == [("Mint1", "high"), ("Mint2", "other")]


def test_primary_pairs_prefers_launchpad_pair_over_deeper_foreign_pool():
    pairs = parse_pairs([
        raw_pair(pairAddress="launch", dexId="pumpswap", liquidity={"usd": 5000}),
        raw_pair(pairAddress="migrated", dexId="raydium", liquidity={"usd": 9000}),
        raw_pair(pairAddress="foreign", dexId="orca", liquidity={"usd": 100},
                 baseToken={"address": "Mint2", "symbol": "TWO", "name": "Two"}),
        raw_pair(pairAddress="deeper", dexId="meteora", liquidity={"usd": 700},
                 baseToken={"address": "Mint2", "symbol": "TWO", "name": "Two"}),
    ])

    primary = primary_pairs(pairs)
    assert [(p.pair_address, p.source) for p in primary] == [("launch", Source.PUMPFUN), ("deeper", None)]


def test_non_finite_numbers_default_to_zero():
    pair = parse_pair(raw_pair(fdv="inf", liquidity={"usd": "NaN"}, volume={"m5": float("nan")}))

    assert (pair.fdv, pair.liquidity_usd, pair.volume_5m) == (0, 0, 0)


class FakeResponse:
    def __init__(self, status, payload):
        self.status = status
        self.payload = payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def json(self, content_type=None):
        return self.payload


class FakeSession:
    closed = False

    def __init__(self, status=200, payload=None, error=None):
        self.status = status
        self.payload = payload
        self.error = error
        self.requests = []

    def get(self, url, params=None):
        self.requests.append((url, params))
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status, self.payload)


def make_client(session):
    return DexScreenerClient({"DEXSCREENER_BASE_URL": "https://api.example.com/"}, session=session)


@pytest.mark.asyncio
async def test_get_tokens_uses_bulk_endpoint():
    session = FakeSession(payload=[raw_pair(), raw_pair(pairAddress="pair2", liquidity={"usd": 10})])
    pairs = await make_client(session).get_tokens(["Mint1", "Mint2"])

    assert session.requests == [("https://api.example.com/tokens/v1/solana/Mint1,Mint2", None)]
    assert [p.pair_address for p in pairs] == ["pair1"]


@pytest.mark.asyncio
async def test_get_tokens_keeps_launchpad_pair_of_migrated_token():
    session = FakeSession(payload=[
        raw_pair(pairAddress="launch", dexId="pumpswap", liquidity={"usd": 5000}),
        raw_pair(pairAddress="migrated", dexId="raydium", liquidity={"usd": 9000}),
    ])
    pairs = await make_client(session).get_tokens(["Mint1"])

    assert [(p.pair_address, p.source) for p in pairs] == [("launch", Source.PUMPFUN)]


@pytest.mark.asyncio
async def test_get_tokens_rejects_oversized_batches():
    client = make_client(FakeSession(payload=[]))
    assert await client.get_tokens([]) == []
    with pytest.raises(ValueError):
        await client.get_tokens([f"M{i}" for i in range(31)])


@pytest.mark.asyncio
async def test_search_pairs_passes_query():
    session = FakeSession(payload={"pairs": [raw_pair(), raw_pair(chainId="base")]})
    pairs = await make_client(session).search_pairs("bonk")

    assert session.requests == [("https://api.example.com/latest/dex/search", {"q": "bonk"})]
    assert len(pairs) == 1


@pytest.mark.asyncio
async def test_search_pairs_tolerates_empty_body():
    assert await make_client(FakeSession(payload={})).search_pairs("pumpfun") == []


@pytest.mark.asyncio
async def test_get_token_pairs_returns_every_solana_pair():
    session = FakeSession(payload=[raw_pair(), raw_pair(pairAddress="pair2")])
    pairs = await make_client(session).get_token_pairs("Mint1")

    assert session.requests[0][0] == "https://api.example.com/token-pairs/v1/solana/Mint1"
    assert len(pairs) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [429, 503])
async def test_throttling_statuses_raise_rate_limit(status):
    with pytest.raises(RateLimitError) as info:
        await make_client(FakeSession(status=status)).get_tokens(["Mint1"])
    assert info.value.status == status


@pytest.mark.asyncio
async def test_other_statuses_raise_transient_error():
    with pytest.raises(TransientFetchError) as info:
        await make_client(FakeSession(status=500)).get_tokens(["Mint1"])
    assert not isinstance(info.value, RateLimitError)
    assert info.value.status == 500


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [aiohttp.ClientConnectionError("reset"), asyncio.TimeoutError()])
async def test_network_failures_are_wrapped(error):
    with pytest.raises(TransientFetchError) as info:
        await make_client(FakeSession(error=error)).search_pairs("bonk")
    assert info.value.status is None
