"""
報價快取模組

封裝 Redis/記憶體快取邏輯，提供 TTL 控制。
"""

import logging
from datetime import datetime
from decimal import Decimal

from networth.price.base import Quote
from networth.redis_client import cache_get, cache_set

logger = logging.getLogger(__name__)

# 快取 Key 前綴
CACHE_PREFIX = "quote"


def _make_key(ticker: str) -> str:
    """產生快取 Key"""
    return f"{CACHE_PREFIX}:{ticker.strip().upper()}"


def _quote_to_dict(quote: Quote) -> dict:
    """將 Quote 轉為可序列化的 dict"""
    return {
        "ticker": quote.ticker,
        "price": str(quote.price),
        "prev_close": str(quote.prev_close),
        "currency": quote.currency,
        "timestamp": quote.timestamp.isoformat(),
        "source": quote.source,
    }


def _dict_to_quote(data: dict) -> Quote:
    """從 dict 還原 Quote"""
    return Quote(
        ticker=data["ticker"],
        price=Decimal(data["price"]),
        prev_close=Decimal(data["prev_close"]),
        currency=data["currency"],
        timestamp=datetime.fromisoformat(data["timestamp"]),
        source=data.get("source") or "cache",
    )


async def get_cached_quote(ticker: str) -> Quote | None:
    """從快取取得報價"""
    key = _make_key(ticker)
    data = await cache_get(key)
    if data:
        logger.debug("快取命中: %s", key)
        return _dict_to_quote(data)
    return None


async def set_cached_quote(ticker: str, quote: Quote, ttl: int | None = None) -> None:
    """將報價寫入快取"""
    key = _make_key(ticker)
    await cache_set(key, _quote_to_dict(quote), ttl=ttl)
    logger.debug("快取寫入: %s (TTL=%s)", key, ttl)
