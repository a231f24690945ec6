"""
報價提供者抽象基礎類別

定義所有報價來源必須實作的介面、統一的 Quote 資料格式，
以及各來源回應的正規化步驟。
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any


@dataclass
class Quote:
    """統一報價資料（不落地儲存）"""
    ticker: str
    price: Decimal
    prev_close: Decimal
    currency: str
    timestamp: datetime = field(default_factory=datetime.now)
    source: str = ""

    @property
    def is_usable(self) -> bool:
        """price 為 0 代表沒有可用的即時資料"""
        return self.price > 0


class QuoteError(Exception):
    """報價錯誤基礎類別，details 保留原始失敗訊息"""

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.details = details


class InvalidRequestError(QuoteError):
    """缺少必要參數（ticker / tickers）"""
    pass


class ProviderError(QuoteError):
    """報價提供者錯誤（網路、格式錯誤等）"""
    pass


class QuoteNotFoundError(ProviderError):
    """找不到報價"""
    pass


class QuoteUnavailableError(QuoteError):
    """所有報價來源皆失敗"""
    pass


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def normalize_quote(payload: dict[str, Any], source: str) -> Quote:
    """
    將各來源的原始回應正規化為 Quote。

    ticker 與 symbol 兩種欄位名稱皆可接受；price 必須為數值，
    prev_close 缺少時以 price 代替。

    Raises:
        QuoteNotFoundError: 缺少 ticker 或 price
        ProviderError: price 不是數值
    """
    ticker = payload.get("ticker") or payload.get("symbol")
    if not ticker:
        raise QuoteNotFoundError(f"{source} 回應缺少代碼")

    raw_price = payload.get("price")
    if raw_price is None:
        raise QuoteNotFoundError(f"找不到 {ticker} 的報價")

    price = _to_decimal(raw_price)
    if price is None:
        raise ProviderError(f"{source} 回傳的 {ticker} 價格不是數值: {raw_price!r}")

    prev_close = _to_decimal(payload.get("prev_close"))
    if prev_close is None or prev_close == 0:
        prev_close = price

    return Quote(
        ticker=str(ticker).strip().upper(),
        price=price,
        prev_close=prev_close,
        currency=str(payload.get("currency") or "USD"),
        source=source,
    )


class QuoteProvider(ABC):
    """
    報價提供者抽象類別

    主要來源（yfinance）與備援來源（Yahoo chart API）
    必須繼承此類別並實作以下方法。
    """

    name: str = ""

    @abstractmethod
    async def get_quote(self, ticker: str) -> Quote:
        """
        取得指定標的的即時報價。

        Args:
            ticker: 標的代碼（如 AAPL, BTC-USD, KRW=X）

        Returns:
            Quote 物件

        Raises:
            QuoteNotFoundError: 找不到報價
            ProviderError: API 呼叫失敗
        """
        ...

    async def get_quotes(self, tickers: list[str]) -> list[Quote]:
        """
        批次取得報價

        預設逐一並行呼叫 get_quote，任一失敗即整批失敗。
        """
        return list(await asyncio.gather(*(self.get_quote(t) for t in tickers)))

    async def close(self) -> None:
        """釋放資源"""
        return None
