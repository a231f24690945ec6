"""
報價查詢 API 路由

GET /price?ticker=AAPL      → 單一報價
GET /price?tickers=AAPL,MSFT → 批次報價（空清單回傳 []）
錯誤一律回傳 {error, details}。
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from networth.api.deps import get_quote_manager
from networth.price.base import (
    InvalidRequestError, QuoteNotFoundError, QuoteUnavailableError, QuoteError,
)
from networth.price.manager import QuoteManager
from networth.schemas.quote import QuoteErrorResponse, QuoteResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/price", tags=["報價"])


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=QuoteErrorResponse(error=error, details=details).model_dump(),
    )


def _status_for(e: QuoteError) -> int:
    if isinstance(e, InvalidRequestError):
        return 400
    if isinstance(e, QuoteNotFoundError):
        return 404
    if isinstance(e, QuoteUnavailableError):
        return 502
    return 500


@router.get("")
async def get_price(
    ticker: str | None = None,
    tickers: str | None = None,
    manager: QuoteManager = Depends(get_quote_manager),
):
    """
    取得即時報價

    主要來源失敗時自動改用備援來源，只有全部失敗才回傳錯誤。
    """
    if not ticker and tickers is None:
        return _error(400, "Ticker is required")

    try:
        if tickers is not None:
            result = await manager.batch(tickers.split(","))
            return [
                QuoteResponse.from_quote(q).model_dump(by_alias=True) for q in result.quotes
            ]

        quote = await manager.single(ticker)
        return QuoteResponse.from_quote(quote).model_dump(by_alias=True)
    except QuoteError as e:
        logger.error("取得報價失敗 (%s): %s", ticker or tickers, e)
        return _error(_status_for(e), str(e), e.details)
