"""
報價 API Schema

對外輸出格式沿用 {ticker, price, prevClose, currency, symbol}。
"""

from pydantic import BaseModel, Field

from networth.price.base import Quote


class QuoteResponse(BaseModel):
    """單一標的報價"""
    ticker: str
    price: float
    prev_close: float = Field(serialization_alias="prevClose")
    currency: str
    symbol: str

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuoteResponse":
        return cls(
            ticker=quote.ticker,
            price=float(quote.price),
            prev_close=float(quote.prev_close),
            currency=quote.currency,
            symbol=quote.ticker,
        )


class QuoteErrorResponse(BaseModel):
    """報價錯誤回應"""
    error: str
    details: str | None = None
