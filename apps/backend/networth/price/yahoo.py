"""
Yahoo Finance 主要報價提供者

透過 yfinance 取得股票、加密貨幣與匯率（如 KRW=X）的即時報價。
yfinance 為同步 API，需用 run_in_executor 包裝。
"""

import asyncio
import logging
import threading

import pandas as pd
import yfinance as yf

from networth.price.base import (
    QuoteProvider, Quote, QuoteNotFoundError, ProviderError, normalize_quote,
)

logger = logging.getLogger(__name__)


class YahooFinanceProvider(QuoteProvider):
    """
    yfinance 報價提供者

    yf.Ticker 建立時需取得 cookie / crumb，成本較高，
    因此同一程序內重複使用；某次呼叫失敗時只移除該標的，
    下次呼叫會重新建立，不會永久失效。
    """

    name = "yfinance"

    def __init__(self):
        self._tickers: dict[str, yf.Ticker] = {}
        self._lock = threading.Lock()
        self._download_lock = threading.Lock()

    def _get_ticker(self, symbol: str) -> yf.Ticker:
        with self._lock:
            ticker = self._tickers.get(symbol)
            if ticker is None:
                ticker = yf.Ticker(symbol)
                self._tickers[symbol] = ticker
            return ticker

    def _evict(self, symbol: str) -> None:
        with self._lock:
            self._tickers.pop(symbol, None)

    async def get_quote(self, ticker: str) -> Quote:
        """取得單一標的即時報價"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._fetch_quote, ticker)

    async def get_quotes(self, tickers: list[str]) -> list[Quote]:
        """
        批次取得報價

        以一次 yf.download 取得整批近 5 日收盤價，
        回傳所有可解析的標的；全部解析失敗才視為失敗。
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._fetch_batch, tickers)

    def _fetch_batch(self, tickers: list[str]) -> list[Quote]:
        """同步批次取得報價（在 executor 中執行）"""
        try:
            # yf.download 共用模組層級狀態，同時只允許一個下載
            with self._download_lock:
                data = yf.download(
                    tickers,
                    period="5d",
                    interval="1d",
                    group_by="ticker",
                    auto_adjust=False,
                    progress=False,
                    threads=False,
                )
        except Exception as e:
            raise ProviderError(f"Yahoo Finance 批次下載錯誤: {e}", details=str(e)) from e

        if data is None or data.empty:
            raise QuoteNotFoundError(f"找不到任何報價: {', '.join(tickers)}")

        quotes: list[Quote] = []
        for symbol in tickers:
            closes = _closes_for(data, symbol)
            if closes is None or closes.empty:
                logger.warning("yfinance 批次結果缺少 %s", symbol)
                continue
            payload = {
                "ticker": symbol,
                "price": float(closes.iloc[-1]),
                "prev_close": float(closes.iloc[-2]) if len(closes) > 1 else None,
            }
            try:
                quotes.append(normalize_quote(payload, self.name))
            except ProviderError as e:
                logger.warning("yfinance 批次結果無法解析 %s: %s", symbol, e)

        if not quotes:
            raise QuoteNotFoundError(f"找不到任何報價: {', '.join(tickers)}")
        return quotes

    def _fetch_quote(self, symbol: str) -> Quote:
        """同步取得報價（在 executor 中執行）"""
        try:
            info = self._get_ticker(symbol).fast_info
            payload = {
                "ticker": symbol,
                "price": info.last_price,
                "prev_close": info.previous_close,
                "currency": info.currency,
            }
            return normalize_quote(payload, self.name)
        except ProviderError:
            self._evict(symbol)
            raise
        except Exception as e:
            self._evict(symbol)
            if "not found" in str(e).lower() or isinstance(e, KeyError):
                raise QuoteNotFoundError(f"找不到 {symbol} 的報價", details=str(e)) from e
            raise ProviderError(f"Yahoo Finance 錯誤: {e}", details=str(e)) from e


def _closes_for(data: pd.DataFrame, symbol: str) -> pd.Series | None:
    """從 yf.download 結果取出單一標的的有效收盤價序列"""
    if isinstance(data.columns, pd.MultiIndex):
        # group_by='ticker' 時代碼位於第 0 層
        if symbol not in data.columns.get_level_values(0):
            return None
        frame = data.xs(symbol, level=0, axis=1)
    else:
        frame = data
    if "Close" not in frame.columns:
        return None
    return frame["Close"].dropna()
