"""
估值服務層

結合資產清單、即時報價與匯率，計算即時淨值、每日損益、
個別資產報酬率（ROI）與資產配置。

即時報價缺失時以帳面價值（amount）估值，並標示 basis=book，
讓呼叫端能分辨「今日無漲跌」與「沒有即時資料」。
"""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from networth.price.base import Quote
from networth.price.manager import QuoteBatch, QuoteManager
from networth.schemas.asset import Asset, AssetType, Currency
from networth.schemas.valuation import (
    AssetValuation, AllocationItem, GoalProgress,
    PortfolioSnapshot, ValuationBasis,
)
from networth.services.asset_repository import AssetRepository

logger = logging.getLogger(__name__)

# 圓餅圖各類別預設顏色
TYPE_COLORS: dict[AssetType, str] = {
    AssetType.CASH: "#22c55e",         # 綠色
    AssetType.STOCK: "#3b82f6",        # 藍色
    AssetType.CRYPTO: "#f59e0b",       # 琥珀色
    AssetType.REAL_ESTATE: "#8b5cf6",  # 紫色
}

ZERO = Decimal("0")
HUNDRED = Decimal("100")
PCT = Decimal("0.01")


def _pct(value: Decimal) -> Decimal:
    return value.quantize(PCT, rounding=ROUND_HALF_UP)


def ticker_key(ticker: str | None) -> str:
    """報價比對用的代碼（去空白、轉大寫）"""
    return (ticker or "").strip().upper()


def market_tickers(assets: list[Asset]) -> list[str]:
    """取出需要即時報價的不重複代碼"""
    tickers: list[str] = []
    for asset in assets:
        key = ticker_key(asset.ticker)
        if asset.type.is_market and key and key not in tickers:
            tickers.append(key)
    return tickers


def index_quotes(quotes: list[Quote]) -> dict[str, Quote]:
    return {ticker_key(q.ticker): q for q in quotes}


def match_quote(asset: Asset, quotes: dict[str, Quote]) -> Quote | None:
    """以代碼比對報價（不分大小寫、忽略前後空白）"""
    if not asset.type.is_market:
        return None
    key = ticker_key(asset.ticker)
    if not key:
        return None
    return quotes.get(key)


def compute_roi(asset: Asset, quote: Quote | None) -> Decimal | None:
    """
    計算報酬率 (%)

    - real_estate：(目前市價 - 買入價) / 買入價
    - stock / crypto：(即時價 - 買入價) / 買入價，需有即時報價、數量與買入價

    無法計算時回傳 None（與 0% 不同）。
    """
    purchase_price = asset.purchase_price or ZERO

    if asset.type == AssetType.REAL_ESTATE:
        if purchase_price == 0:
            return None
        current_price = asset.current_price or ZERO
        return _pct((current_price - purchase_price) / purchase_price * HUNDRED)

    if asset.type.is_market:
        if quote is None or not quote.is_usable:
            return None
        if not asset.quantity or purchase_price <= 0:
            return None
        return _pct((quote.price - purchase_price) / purchase_price * HUNDRED)

    return None


def value_asset(asset: Asset, quote: Quote | None, fx_rate: Decimal) -> AssetValuation:
    """
    計算單一資產即時估值

    只有 stock / crypto 且有正價格報價與數量時以即時價計算，
    USD 計價者乘上匯率；其他情況一律以帳面價值計算，當日損益為 0。
    """
    roi = compute_roi(asset, quote)

    if quote is not None and quote.is_usable and asset.quantity:
        multiplier = fx_rate if asset.currency == Currency.USD else Decimal("1")
        daily_change_pct = None
        if quote.prev_close > 0:
            daily_change_pct = _pct((quote.price - quote.prev_close) / quote.prev_close * HUNDRED)

        return AssetValuation(
            asset_id=asset.id,
            name=asset.name,
            type=asset.type,
            ticker=asset.ticker,
            value=quote.price * asset.quantity * multiplier,
            daily_change=(quote.price - quote.prev_close) * asset.quantity * multiplier,
            daily_change_pct=daily_change_pct,
            roi=roi,
            basis=ValuationBasis.LIVE,
            live_price=quote.price,
        )

    return AssetValuation(
        asset_id=asset.id,
        name=asset.name,
        type=asset.type,
        ticker=asset.ticker,
        value=asset.amount,
        roi=roi,
        basis=ValuationBasis.BOOK,
    )


def daily_percent(metric: Decimal, change: Decimal) -> Decimal:
    """以前一期數值為基準的當日漲跌幅 (%)，分母為 0 時回傳 0"""
    base = metric - change
    if base == 0:
        return _pct(ZERO)
    return _pct(change / base * HUNDRED)


def build_allocation(valuations: list[AssetValuation]) -> list[AllocationItem]:
    """依類型加總即時價值（不含負債），保留各類型首次出現的順序"""
    totals: dict[AssetType, Decimal] = {}
    for v in valuations:
        if v.type == AssetType.LOAN:
            continue
        totals[v.type] = totals.get(v.type, ZERO) + v.value

    grand_total = sum(totals.values(), ZERO)
    return [
        AllocationItem(
            type=asset_type,
            value=value,
            percentage=_pct(value / grand_total * HUNDRED) if grand_total > 0 else _pct(ZERO),
            color=TYPE_COLORS.get(asset_type),
        )
        for asset_type, value in totals.items()
    ]


def build_snapshot(
    assets: list[Asset],
    quotes: dict[str, Quote],
    fx_rate: Decimal,
    cycle: int = 0,
    quotes_degraded: bool = False,
) -> PortfolioSnapshot:
    """
    計算淨值快照

    總資產 = 非負債資產即時價值加總；總負債 = 負債帳面金額加總；
    淨值 = 總資產 - 總負債。
    """
    valuations = [value_asset(a, match_quote(a, quotes), fx_rate) for a in assets]

    total_assets = ZERO
    total_loans = ZERO
    daily_change_total = ZERO
    static_net_worth = ZERO

    for asset, valuation in zip(assets, valuations):
        if asset.type == AssetType.LOAN:
            total_loans += asset.amount
            static_net_worth -= asset.amount
        else:
            total_assets += valuation.value
            daily_change_total += valuation.daily_change
            static_net_worth += asset.amount

    net_worth = total_assets - total_loans

    return PortfolioSnapshot(
        cycle=cycle,
        fx_rate=fx_rate,
        total_assets=total_assets,
        total_loans=total_loans,
        net_worth=net_worth,
        static_net_worth=static_net_worth,
        daily_change_total=daily_change_total,
        daily_percent_total_assets=daily_percent(total_assets, daily_change_total),
        daily_percent_net_worth=daily_percent(net_worth, daily_change_total),
        quotes_degraded=quotes_degraded,
        allocation=build_allocation(valuations),
        valuations=valuations,
        computed_at=datetime.now(timezone.utc),
    )


def goal_progress(net_worth: Decimal, goal_amount: Decimal, nickname: str = "") -> GoalProgress:
    """財務目標進度：介於 0 ~ 100%，剩餘金額不為負"""
    if goal_amount > 0:
        progress = min(HUNDRED, max(ZERO, net_worth / goal_amount * HUNDRED))
    else:
        progress = HUNDRED if net_worth > 0 else ZERO

    return GoalProgress(
        nickname=nickname,
        goal_amount=goal_amount,
        net_worth=net_worth,
        progress_pct=_pct(progress),
        remaining=max(ZERO, goal_amount - net_worth),
    )


class ValuationService:
    """
    估值服務

    每次 refresh() 為一個估值週期：同時取得匯率與批次報價，
    重新計算快照後發布。週期可能重疊，只有比目前已發布者更新的週期
    才會覆蓋發布結果。
    """

    def __init__(
        self,
        repository: AssetRepository,
        quote_manager: QuoteManager,
        fx_ticker: str = "KRW=X",
        default_fx_rate: Decimal = Decimal("1400"),
    ):
        self._repository = repository
        self._quotes = quote_manager
        self._fx_ticker = fx_ticker
        self._fx_rate = default_fx_rate
        self._cycle_seq = 0
        self._published: PortfolioSnapshot | None = None

    @property
    def fx_rate(self) -> Decimal:
        """最近一次發布快照所用的匯率（KRW / USD）"""
        return self._fx_rate

    def snapshot(self) -> PortfolioSnapshot | None:
        """最近一次發布的快照"""
        return self._published

    async def refresh(self, force_refresh: bool = False) -> PortfolioSnapshot:
        """
        執行一個估值週期

        流程：
        1. 取得資產清單與需要報價的代碼
        2. 同時取得匯率與批次報價
        3. 匯率失敗沿用上次匯率；報價失敗以帳面價值估值
        4. 計算快照並發布
        """
        self._cycle_seq += 1
        cycle = self._cycle_seq

        assets = self._repository.snapshot()
        tickers = market_tickers(assets)

        fx_result, batch_result = await asyncio.gather(
            self._quotes.single(self._fx_ticker, force_refresh=force_refresh),
            self._quotes.batch(tickers),
            return_exceptions=True,
        )

        if isinstance(fx_result, BaseException):
            logger.warning("取得匯率失敗，沿用 %s: %s", self._fx_rate, fx_result)
            fx_rate = self._fx_rate
        elif fx_result.price > 0:
            fx_rate = fx_result.price
        else:
            logger.warning("匯率報價無效 (%s)，沿用 %s", fx_result.price, self._fx_rate)
            fx_rate = self._fx_rate

        if isinstance(batch_result, BaseException):
            logger.warning("批次報價失敗，全部以帳面價值估值: %s", batch_result)
            batch = QuoteBatch(quotes=[], degraded=bool(tickers))
        else:
            batch = batch_result

        snapshot = build_snapshot(
            assets, index_quotes(batch.quotes), fx_rate, cycle,
            quotes_degraded=batch.degraded,
        )
        self._publish(snapshot)

        logger.info(
            "估值週期 #%d 完成: 淨值 %s (報價 %d/%d, 匯率 %s)",
            cycle, snapshot.net_worth, len(batch.quotes), len(tickers), fx_rate,
        )
        return snapshot

    def _publish(self, snapshot: PortfolioSnapshot) -> None:
        """只發布比目前已發布者更新的週期，匯率隨快照一併生效"""
        if self._published is not None and snapshot.cycle <= self._published.cycle:
            logger.info(
                "捨棄過期的估值週期 #%d（已發布 #%d）",
                snapshot.cycle, self._published.cycle,
            )
            return
        self._published = snapshot
        self._fx_rate = snapshot.fx_rate
