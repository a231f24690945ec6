"""
報價管理器

統一入口，串接主要來源與備援來源：主要來源失敗時自動改走備援。
整合快取邏輯：先查快取，過期才呼叫 Provider 取得最新報價。
匯率同樣透過 single() 以虛擬代碼（如 KRW=X）取得。
"""

import asyncio
import logging
from dataclasses import dataclass

from networth.price.base import (
    Quote, QuoteProvider, InvalidRequestError,
    QuoteNotFoundError, QuoteUnavailableError,
)
from networth.price.cache import get_cached_quote, set_cached_quote

logger = logging.getLogger(__name__)


@dataclass
class QuoteBatch:
    """批次報價結果，degraded 表示有標的改由備援來源取得或缺漏"""
    quotes: list[Quote]
    degraded: bool = False


def clean_tickers(tickers: list[str]) -> list[str]:
    """去除空白、空字串與重複代碼，保留原始順序"""
    seen: set[str] = set()
    result: list[str] = []
    for ticker in tickers:
        symbol = (ticker or "").strip()
        if symbol and symbol not in seen:
            seen.add(symbol)
            result.append(symbol)
    return result


class QuoteManager:
    """
    報價管理器

    Provider 由外部建立後注入，程序啟動時建立一次、關閉時釋放。

    使用方式：
        manager = QuoteManager(YahooFinanceProvider(), YahooChartProvider())
        quote = await manager.single("AAPL")
        result = await manager.batch(["AAPL", "BTC-USD"])
    """

    def __init__(
        self,
        primary: QuoteProvider,
        fallback: QuoteProvider,
        cache_ttl: int = 0,
    ):
        self._primary = primary
        self._fallback = fallback
        self._cache_ttl = cache_ttl
        self._fetching: dict[str, asyncio.Future] = {}

    async def single(self, ticker: str, force_refresh: bool = False) -> Quote:
        """
        取得單一標的報價（含快取與備援邏輯）

        流程：
        1. 先查快取
        2. 快取過期 → 呼叫主要來源，失敗則改用備援來源
        3. 取得新報價後寫入快取

        Raises:
            InvalidRequestError: 未提供代碼
            QuoteNotFoundError: 所有來源皆查無此代碼
            QuoteUnavailableError: 所有來源皆失敗
        """
        symbol = (ticker or "").strip()
        if not symbol:
            raise InvalidRequestError("Ticker is required")

        # 1. 先查快取 (如果非強制更新)
        if self._cache_ttl > 0 and not force_refresh:
            cached = await get_cached_quote(symbol)
            if cached:
                return cached

        # Singleflight: 相同代碼的請求進行中時，直接等待該請求結果
        flight_key = symbol.upper()
        if flight_key in self._fetching:
            logger.info("等待進行中的報價請求: %s", symbol)
            return await asyncio.shield(self._fetching[flight_key])

        future = asyncio.get_running_loop().create_future()
        # 沒有其他等待者時，避免「例外未被取用」的警告
        future.add_done_callback(lambda f: f.cancelled() or f.exception())
        self._fetching[flight_key] = future

        try:
            quote = await self._fetch_single(symbol)
            if self._cache_ttl > 0:
                await set_cached_quote(symbol, quote, ttl=self._cache_ttl)
            future.set_result(quote)
            return quote
        except Exception as e:
            future.set_exception(e)
            raise
        finally:
            if not future.done():
                future.cancel()
            self._fetching.pop(flight_key, None)

    async def _fetch_single(self, symbol: str) -> Quote:
        try:
            return await self._primary.get_quote(symbol)
        except Exception as primary_error:
            logger.warning(
                "%s 取得 %s 報價失敗，改用 %s: %s",
                self._primary.name, symbol, self._fallback.name, primary_error,
            )
            try:
                return await self._fallback.get_quote(symbol)
            except Exception as fallback_error:
                logger.error("所有來源皆無法取得 %s 報價: %s", symbol, fallback_error)
                details = str(primary_error)
                if isinstance(primary_error, QuoteNotFoundError) and isinstance(
                    fallback_error, QuoteNotFoundError
                ):
                    raise QuoteNotFoundError(
                        f"找不到 {symbol} 的報價", details=details
                    ) from fallback_error
                raise QuoteUnavailableError(
                    "Failed to fetch price", details=details
                ) from fallback_error

    async def batch(self, tickers: list[str]) -> QuoteBatch:
        """
        批次取得報價

        主要來源一次查詢整批；主要來源失敗或缺少部分標的時，
        改用備援來源逐一並行查詢缺少的標的，個別失敗的標的直接略過。
        只要有一檔成功即視為成功，有缺漏或動用備援時標示 degraded。

        Args:
            tickers: 代碼列表，空列表直接回傳空結果

        Raises:
            QuoteUnavailableError: 所有來源皆無任何結果
        """
        symbols = clean_tickers(tickers)
        if not symbols:
            return QuoteBatch(quotes=[])

        primary_error: Exception | None = None
        try:
            quotes = await self._primary.get_quotes(symbols)
        except Exception as e:
            logger.warning("批次取得報價失敗，改用 %s 逐一查詢: %s", self._fallback.name, e)
            primary_error = e
            quotes = []

        found = {q.ticker.strip().upper() for q in quotes}
        missing = [s for s in symbols if s.upper() not in found]
        degraded = False
        if missing:
            if primary_error is None:
                logger.warning(
                    "%s 批次結果缺少 %d 檔，改用 %s 查詢",
                    self._primary.name, len(missing), self._fallback.name,
                )
            quotes = quotes + await self._fetch_each_from_fallback(missing)
            order = {s.upper(): i for i, s in enumerate(symbols)}
            quotes.sort(key=lambda q: order.get(q.ticker.strip().upper(), len(order)))
            degraded = True

        if not quotes:
            details = str(primary_error) if primary_error else None
            raise QuoteUnavailableError("Batch fetch failed", details=details) from primary_error

        if len(quotes) < len(symbols):
            logger.warning("批次報價部分完成: %d/%d 檔成功", len(quotes), len(symbols))

        if self._cache_ttl > 0:
            for quote in quotes:
                await set_cached_quote(quote.ticker, quote, ttl=self._cache_ttl)
        return QuoteBatch(quotes=quotes, degraded=degraded)

    async def _fetch_each_from_fallback(self, symbols: list[str]) -> list[Quote]:
        results = await asyncio.gather(
            *(self._fallback.get_quote(s) for s in symbols),
            return_exceptions=True,
        )

        quotes: list[Quote] = []
        for symbol, result in zip(symbols, results):
            if isinstance(result, BaseException):
                logger.warning("%s 取得 %s 報價失敗: %s", self._fallback.name, symbol, result)
                continue
            quotes.append(result)
        return quotes

    async def close(self):
        """關閉所有 Provider 的資源"""
        for provider in (self._primary, self._fallback):
            await provider.close()
