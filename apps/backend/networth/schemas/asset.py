"""
資產相關 Schema

定義資產紀錄、新增草稿與表單輸入的資料模型。
金額欄位一律以 KRW 計價（amount 為帳面價值）。
"""

import enum
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class AssetType(str, enum.Enum):
    """資產類型列舉"""
    CASH = "cash"
    STOCK = "stock"
    CRYPTO = "crypto"
    REAL_ESTATE = "real_estate"
    LOAN = "loan"  # 負債

    @property
    def is_market(self) -> bool:
        """是否有市場即時報價"""
        return self in (AssetType.STOCK, AssetType.CRYPTO)


class Currency(str, enum.Enum):
    """輸入幣別"""
    KRW = "KRW"
    USD = "USD"


class AssetDraft(BaseModel):
    """新增資產草稿（尚未指派 id 與時間）"""
    name: str = Field(min_length=1, max_length=100)
    type: AssetType
    amount: Decimal = Decimal("0")
    currency: Currency = Currency.KRW
    purchase_price: Decimal | None = Field(default=None, alias="purchasePrice")
    current_price: Decimal | None = Field(default=None, alias="currentPrice")
    quantity: Decimal | None = None
    ticker: str | None = Field(default=None, max_length=30)
    category: str = "General"

    model_config = {"populate_by_name": True}


class Asset(AssetDraft):
    """資產紀錄"""
    id: str
    date: datetime


class AssetEntry(BaseModel):
    """
    使用者輸入的原始表單

    amount 只用於 cash / loan；其他類型由單價與數量推算帳面價值。
    """
    name: str = Field(min_length=1, max_length=100)
    type: AssetType
    currency: Currency = Currency.KRW
    amount: Decimal | None = Field(default=None, ge=0)
    purchase_price: Decimal | None = Field(default=None, alias="purchasePrice", ge=0)
    current_price: Decimal | None = Field(default=None, alias="currentPrice", ge=0)
    quantity: Decimal | None = Field(default=None, ge=0)
    ticker: str | None = Field(default=None, max_length=30)
    category: str = "General"

    model_config = {"populate_by_name": True}


class AssetAddResponse(BaseModel):
    """新增資產回應，merged 表示已併入既有紀錄"""
    asset: Asset
    merged: bool
