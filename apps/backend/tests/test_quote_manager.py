import asyncio

import pytest

from conftest import FakeProvider, make_provider_error
from networth import redis_client
from networth.price.base import (
    InvalidRequestError, Quote, QuoteNotFoundError, QuoteUnavailableError,
)
from networth.price.manager import QuoteManager, clean_tickers


class GatedProvider(FakeProvider):
    """get_quote 會等待 gate 開啟後才回傳"""

    def __init__(self, name: str, prices: dict):
        super().__init__(name, prices)
        self.gate = asyncio.Event()

    async def get_quote(self, ticker: str):
        await self.gate.wait()
        return await super().get_quote(ticker)


def test_clean_tickers_keeps_order_and_drops_blanks():
    assert clean_tickers([" AAPL", "", "  ", "BTC-USD", "AAPL ", None]) == ["AAPL", "BTC-USD"]


def test_single_uses_primary(primary, fallback):
    primary.prices = {"AAPL": (190, 185)}
    manager = QuoteManager(primary, fallback)

    quote = asyncio.run(manager.single(" AAPL "))

    assert quote.ticker == "AAPL"
    assert quote.source == "primary"
    assert primary.calls == ["AAPL"]
    assert fallback.calls == []


def test_single_falls_back_when_primary_fails(primary, fallback):
    primary.prices = {"AAPL": make_provider_error("rate limited")}
    fallback.prices = {"AAPL": (191, 185)}
    manager = QuoteManager(primary, fallback)

    quote = asyncio.run(manager.single("AAPL"))

    assert quote.source == "fallback"
    assert str(quote.price) == "191"


def test_single_requires_ticker(primary, fallback):
    manager = QuoteManager(primary, fallback)

    with pytest.raises(InvalidRequestError):
        asyncio.run(manager.single("   "))
    assert primary.calls == []


def test_single_unavailable_carries_primary_details(primary, fallback):
    primary.prices = {"AAPL": make_provider_error("yfinance down")}
    fallback.prices = {"AAPL": make_provider_error("chart down")}
    manager = QuoteManager(primary, fallback)

    with pytest.raises(QuoteUnavailableError) as exc_info:
        asyncio.run(manager.single("AAPL"))

    assert str(exc_info.value) == "Failed to fetch price"
    assert exc_info.value.details == "yfinance down"


def test_single_not_found_when_every_source_misses(primary, fallback):
    manager = QuoteManager(primary, fallback)

    with pytest.raises(QuoteNotFoundError):
        asyncio.run(manager.single("NOPE"))
    assert primary.calls == ["NOPE"]
    assert fallback.calls == ["NOPE"]


def test_concurrent_requests_share_one_fetch(fallback):
    primary = GatedProvider("primary", {"AAPL": (190, 185)})
    manager = QuoteManager(primary, fallback)

    async def scenario():
        tasks = [asyncio.create_task(manager.single("AAPL")) for _ in range(3)]
        await asyncio.sleep(0)
        primary.gate.set()
        return await asyncio.gather(*tasks)

    quotes = asyncio.run(scenario())

    assert len(quotes) == 3
    assert all(q.ticker == "AAPL" for q in quotes)
    assert primary.calls == ["AAPL"]


def test_cached_quote_is_reused(primary, fallback, monkeypatch):
    monkeypatch.setattr(redis_client, "_memory_cache", {})
    primary.prices = {"TSLA": (250, 240)}
    manager = QuoteManager(primary, fallback, cache_ttl=60)

    async def scenario():
        first = await manager.single("TSLA")
        second = await manager.single("tsla")
        forced = await manager.single("TSLA", force_refresh=True)
        return first, second, forced

    first, second, forced = asyncio.run(scenario())

    assert first.price == second.price == forced.price
    assert primary.calls == ["TSLA", "TSLA"]


class PartialBatchProvider(FakeProvider):
    """批次查詢只回傳已知的標的，其餘略過"""

    async def get_quotes(self, tickers: list[str]) -> list[Quote]:
        self.batch_calls.append(list(tickers))
        return [await self.get_quote(t) for t in tickers if t in self.prices]


def test_batch_empty_input_makes_no_calls(primary, fallback):
    manager = QuoteManager(primary, fallback)

    assert asyncio.run(manager.batch([])).quotes == []
    assert asyncio.run(manager.batch(["", "  "])).quotes == []
    assert primary.batch_calls == []


def test_batch_uses_primary_once(primary, fallback):
    primary.prices = {"AAPL": (190, 185), "BTC-USD": (60000, 59000)}
    manager = QuoteManager(primary, fallback)

    result = asyncio.run(manager.batch(["AAPL", "BTC-USD", "AAPL"]))

    assert [q.ticker for q in result.quotes] == ["AAPL", "BTC-USD"]
    assert result.degraded is False
    assert primary.batch_calls == [["AAPL", "BTC-USD"]]
    assert fallback.calls == []


def test_batch_keeps_primary_quotes_and_fills_gaps_from_fallback(fallback):
    primary = PartialBatchProvider("primary", {"AAPL": (190, 185), "MSFT": (410, 400)})
    fallback.prices = {"TSLA": (250, 240)}
    manager = QuoteManager(primary, fallback)

    result = asyncio.run(manager.batch(["AAPL", "TSLA", "MSFT", "DELISTED"]))

    assert [q.ticker for q in result.quotes] == ["AAPL", "TSLA", "MSFT"]
    assert [q.source for q in result.quotes] == ["primary", "fallback", "primary"]
    assert sorted(fallback.calls) == ["DELISTED", "TSLA"]
    assert result.degraded is True


def test_batch_fallback_returns_partial_results(primary, fallback):
    primary.batch_error = make_provider_error("batch down")
    fallback.prices = {"AAPL": (190, 185), "MSFT": (410, 400)}
    manager = QuoteManager(primary, fallback)

    result = asyncio.run(manager.batch(["AAPL", "GONE", "MSFT"]))

    assert [q.ticker for q in result.quotes] == ["AAPL", "MSFT"]
    assert sorted(fallback.calls) == ["AAPL", "GONE", "MSFT"]
    assert result.degraded is True


def test_degraded_status_belongs_to_each_batch(fallback):
    primary = PartialBatchProvider("primary", {"AAPL": (190, 185)})
    manager = QuoteManager(primary, fallback)

    async def scenario():
        return await asyncio.gather(
            manager.batch(["AAPL", "GONE"]),
            manager.batch(["AAPL"]),
        )

    degraded, clean = asyncio.run(scenario())

    assert degraded.degraded is True
    assert clean.degraded is False


def test_batch_fails_when_fallback_returns_nothing(primary, fallback):
    primary.batch_error = make_provider_error("batch down")
    manager = QuoteManager(primary, fallback)

    with pytest.raises(QuoteUnavailableError) as exc_info:
        asyncio.run(manager.batch(["AAPL", "MSFT"]))

    assert str(exc_info.value) == "Batch fetch failed"
    assert exc_info.value.details == "batch down"


def test_close_releases_both_providers(primary, fallback):
    manager = QuoteManager(primary, fallback)

    asyncio.run(manager.close())

    assert primary.closed and fallback.closed
