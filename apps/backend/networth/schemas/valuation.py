"""
估值相關 Schema

定義單一資產估值、資產配置、淨值快照與目標進度的回應模型。
"""

import enum
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from networth.schemas.asset import AssetType


class ValuationBasis(str, enum.Enum):
    """估值依據：即時報價或帳面價值"""
    LIVE = "live"
    BOOK = "book"


class AssetValuation(BaseModel):
    """單一資產即時估值"""
    asset_id: str
    name: str
    type: AssetType
    ticker: str | None = None
    value: Decimal
    daily_change: Decimal = Decimal("0")
    daily_change_pct: Decimal | None = None
    roi: Decimal | None = None  # None 表示無法計算，與 0% 不同
    basis: ValuationBasis
    live_price: Decimal | None = None


class AllocationItem(BaseModel):
    """資產配置項目（圓餅圖用）"""
    type: AssetType
    value: Decimal
    percentage: Decimal
    color: str | None = None


class PortfolioSnapshot(BaseModel):
    """淨值快照"""
    cycle: int
    fx_rate: Decimal
    total_assets: Decimal
    total_loans: Decimal
    net_worth: Decimal
    static_net_worth: Decimal
    daily_change_total: Decimal
    daily_percent_total_assets: Decimal
    daily_percent_net_worth: Decimal
    quotes_degraded: bool = False  # 部分報價改由備援來源取得或缺漏
    allocation: list[AllocationItem]
    valuations: list[AssetValuation]
    computed_at: datetime


class GoalProgress(BaseModel):
    """財務目標進度"""
    nickname: str
    goal_amount: Decimal
    net_worth: Decimal
    progress_pct: Decimal
    remaining: Decimal
