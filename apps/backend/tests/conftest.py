"""
Pytest 共用 fixtures

非同步程式碼以 asyncio.run 驅動；報價來源一律以假的 Provider 取代，
不連外部網路。
"""

from contextlib import asynccontextmanager
from decimal import Decimal
from pathlib import Path

import pytest

from networth.config import Settings
from networth.database import build_engine, build_sessionmaker, init_db
from networth.price.base import (
    Quote, QuoteProvider, ProviderError, QuoteNotFoundError,
)
from networth.services.store import DocumentStore


class FakeProvider(QuoteProvider):
    """以字典設定報價的假 Provider"""

    def __init__(self, name: str, prices: dict | None = None, batch_error: Exception | None = None):
        self.name = name
        self.prices = prices or {}
        self.batch_error = batch_error
        self.calls: list[str] = []
        self.batch_calls: list[list[str]] = []
        self.closed = False

    async def get_quote(self, ticker: str) -> Quote:
        self.calls.append(ticker)
        value = self.prices.get(ticker)
        if value is None:
            raise QuoteNotFoundError(f"找不到 {ticker} 的報價")
        if isinstance(value, Exception):
            raise value
        price, prev_close = value
        return Quote(
            ticker=ticker.upper(),
            price=Decimal(str(price)),
            prev_close=Decimal(str(prev_close)),
            currency="USD",
            source=self.name,
        )

    async def get_quotes(self, tickers: list[str]) -> list[Quote]:
        self.batch_calls.append(list(tickers))
        if self.batch_error is not None:
            raise self.batch_error
        return await super().get_quotes(tickers)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        app_env="testing",
        debug=False,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        redis_url=None,
        price_cache_ttl=0,
    )


@asynccontextmanager
async def open_store(settings: Settings):
    """建立資料表並回傳 DocumentStore，離開時釋放連線"""
    engine = build_engine(settings)
    await init_db(engine)
    try:
        yield DocumentStore(build_sessionmaker(engine))
    finally:
        await engine.dispose()


@pytest.fixture
def store_factory(settings: Settings):
    """需在呼叫端的 event loop 內以 async with 使用"""
    return lambda: open_store(settings)


@pytest.fixture
def primary() -> FakeProvider:
    return FakeProvider("primary")


@pytest.fixture
def fallback() -> FakeProvider:
    return FakeProvider("fallback")


def make_provider_error(message: str = "boom") -> ProviderError:
    return ProviderError(message, details=message)
