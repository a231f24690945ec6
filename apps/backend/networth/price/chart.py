"""
Yahoo chart API 備援報價提供者

直接呼叫 v8 chart 端點取得最新價格，限制較寬鬆，
作為 yfinance 失敗時的備援來源。chart 端點不支援批次。
"""

import logging

import httpx

from networth.price.base import (
    QuoteProvider, Quote, QuoteNotFoundError, ProviderError, normalize_quote,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://query1.finance.yahoo.com"


class YahooChartProvider(QuoteProvider):
    """Yahoo v8 chart 備援報價提供者"""

    name = "yahoo_chart"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = "Mozilla/5.0",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            transport=transport,
        )

    async def get_quote(self, ticker: str) -> Quote:
        """取得單一標的報價"""
        logger.info("[Fallback] 以 chart API 取得 %s 報價...", ticker)
        try:
            response = await self._client.get(
                f"/v8/finance/chart/{ticker}",
                params={"interval": "1d", "range": "1d"},
            )
            if response.status_code == 404:
                raise QuoteNotFoundError(f"找不到 {ticker} 的報價")
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise ProviderError(f"Yahoo chart API 錯誤: {e}", details=str(e)) from e
        except ValueError as e:
            raise ProviderError(f"Yahoo chart API 回應無法解析: {e}", details=str(e)) from e

        results = (data.get("chart") or {}).get("result") or []
        if not results:
            raise QuoteNotFoundError(f"找不到 {ticker} 的報價")

        meta = results[0].get("meta") or {}
        payload = {
            "symbol": meta.get("symbol") or ticker,
            "price": meta.get("regularMarketPrice"),
            "prev_close": (
                meta.get("chartPreviousClose")
                or meta.get("previousClose")
                or meta.get("regularMarketPrice")
            ),
            "currency": meta.get("currency"),
        }
        return normalize_quote(payload, self.name)

    async def close(self):
        """關閉 HTTP Client"""
        await self._client.aclose()
