"""
資產儲存庫

記憶體中的有序資產清單（最新在前），支援合併新增、更新、刪除
與依類型查詢；每次異動後立即整份寫入持久化儲存。

合併規則：
- cash：相同名稱的紀錄金額相加
- stock / crypto：相同代碼的紀錄數量相加、買入價加權平均、帳面價值相加
- real_estate / loan：永不合併，每次新增一筆
"""

import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from networth.schemas.asset import Asset, AssetDraft, AssetEntry, AssetType, Currency
from networth.services.store import DocumentStore

logger = logging.getLogger(__name__)


class LookupStatus(str, enum.Enum):
    """以 id 查找紀錄的結果"""
    FOUND = "found"
    NOT_FOUND = "not_found"


@dataclass
class MutationResult:
    """更新 / 刪除的結果，NOT_FOUND 時 asset 為 None"""
    status: LookupStatus
    asset: Asset | None = None

    @property
    def found(self) -> bool:
        return self.status == LookupStatus.FOUND


@dataclass
class AddResult:
    """新增結果，merged 表示併入既有紀錄"""
    asset: Asset
    merged: bool


def _now() -> datetime:
    return datetime.now(timezone.utc)


# 首次啟動的示範資料
DEMO_ASSETS: list[dict] = [
    {"name": "Salary", "amount": Decimal("3500000"), "type": AssetType.CASH, "category": "Income"},
    {"name": "Bitcoin", "amount": Decimal("5500000"), "type": AssetType.CRYPTO, "category": "Invest"},
    {"name": "Apple Stock", "amount": Decimal("1200000"), "type": AssetType.STOCK, "category": "Invest"},
]


def build_draft(entry: AssetEntry, fx_rate: Decimal) -> AssetDraft:
    """
    將表單輸入換算為 KRW 帳面價值的資產草稿

    - cash / loan：輸入金額，USD 乘上匯率
    - real_estate：以目前市價為帳面價值（僅支援 KRW）
    - stock / crypto：買入價 × 數量，USD 乘上匯率
    """
    rate = fx_rate if entry.currency == Currency.USD else Decimal("1")

    if entry.type in (AssetType.CASH, AssetType.LOAN):
        amount = (entry.amount or Decimal("0")) * rate
    elif entry.type == AssetType.REAL_ESTATE:
        amount = entry.current_price or Decimal("0")
    else:
        amount = (entry.purchase_price or Decimal("0")) * (entry.quantity or Decimal("0")) * rate

    ticker = (entry.ticker or "").strip() or None

    return AssetDraft(
        name=entry.name,
        type=entry.type,
        amount=amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP),
        currency=entry.currency,
        purchase_price=entry.purchase_price or None,
        current_price=entry.current_price or None,
        quantity=entry.quantity or None,
        ticker=ticker if entry.type.is_market else None,
        category=entry.category,
    )


class AssetRepository:
    """
    資產儲存庫

    使用方式：
        repo = AssetRepository(store)
        await repo.load()
        result = await repo.add(draft)
        assets = repo.snapshot()
    """

    def __init__(self, store: DocumentStore, seed_demo: bool = True):
        self._store = store
        self._seed_demo = seed_demo
        self._assets: list[Asset] = []
        # 異動與寫入之間會 await，需以鎖保護
        self._lock = asyncio.Lock()

    async def load(self) -> None:
        """從持久化儲存載入；從未儲存過時寫入示範資料"""
        async with self._lock:
            stored = await self._store.load_assets()
            if stored is not None:
                self._assets = stored
                logger.info("資產清單已載入 (%d 筆)", len(stored))
                return

            self._assets = []
            if self._seed_demo:
                now = _now()
                self._assets = [
                    Asset(id=str(i), date=now, **data)
                    for i, data in enumerate(DEMO_ASSETS, start=1)
                ]
                logger.info("✅ 示範資產已寫入 (%d 筆)", len(self._assets))
            await self._store.save_assets(self._assets)

    def snapshot(self) -> list[Asset]:
        """取得所有資產（複本）"""
        return [a.model_copy(deep=True) for a in self._assets]

    def get(self, asset_id: str) -> Asset | None:
        for asset in self._assets:
            if asset.id == asset_id:
                return asset.model_copy(deep=True)
        return None

    def by_type(self, asset_type: AssetType) -> list[Asset]:
        """依類型篩選，保留原始順序"""
        return [a.model_copy(deep=True) for a in self._assets if a.type == asset_type]

    def net_worth(self) -> Decimal:
        """帳面淨值：負債相減，其餘相加（不含即時報價）"""
        total = Decimal("0")
        for asset in self._assets:
            if asset.type == AssetType.LOAN:
                total -= asset.amount
            else:
                total += asset.amount
        return total

    def _find_merge_target(self, draft: AssetDraft) -> int | None:
        for index, asset in enumerate(self._assets):
            if asset.type != draft.type:
                continue
            if draft.type == AssetType.CASH and asset.name == draft.name:
                return index
            if draft.type.is_market and draft.ticker and asset.ticker == draft.ticker:
                return index
        return None

    async def add(self, draft: AssetDraft) -> AddResult:
        """
        新增資產（自動合併）

        符合合併條件時取代既有紀錄，否則以新 id 插入清單最前面。
        """
        async with self._lock:
            index = self._find_merge_target(draft)

            if index is None:
                asset = Asset(id=uuid.uuid4().hex, date=_now(), **draft.model_dump())
                self._assets.insert(0, asset)
                merged = False
            else:
                existing = self._assets[index]
                if draft.type == AssetType.CASH:
                    asset = existing.model_copy(update={
                        "amount": existing.amount + draft.amount,
                        "date": _now(),
                    })
                else:
                    asset = existing.model_copy(update=_merge_position(existing, draft))
                self._assets[index] = asset
                merged = True
                logger.info("資產已合併: %s (%s)", asset.name, asset.type.value)

            await self._store.save_assets(self._assets)
            return AddResult(asset=asset.model_copy(deep=True), merged=merged)

    async def update(self, asset: Asset) -> MutationResult:
        """以 id 整筆取代；找不到時回傳 NOT_FOUND"""
        async with self._lock:
            for index, existing in enumerate(self._assets):
                if existing.id == asset.id:
                    self._assets[index] = asset.model_copy(deep=True)
                    await self._store.save_assets(self._assets)
                    return MutationResult(LookupStatus.FOUND, asset.model_copy(deep=True))

            logger.warning("更新失敗，找不到資產: %s", asset.id)
            return MutationResult(LookupStatus.NOT_FOUND)

    async def remove(self, asset_id: str) -> MutationResult:
        """刪除資產；找不到時回傳 NOT_FOUND"""
        async with self._lock:
            for index, existing in enumerate(self._assets):
                if existing.id == asset_id:
                    removed = self._assets.pop(index)
                    await self._store.save_assets(self._assets)
                    return MutationResult(LookupStatus.FOUND, removed)

            logger.warning("刪除失敗，找不到資產: %s", asset_id)
            return MutationResult(LookupStatus.NOT_FOUND)


def _merge_position(existing: Asset, draft: AssetDraft) -> dict:
    """股票 / 加密貨幣合併：數量相加、買入價依數量加權平均"""
    old_qty = existing.quantity or Decimal("0")
    new_qty = draft.quantity or Decimal("0")
    total_qty = old_qty + new_qty

    old_price = existing.purchase_price or Decimal("0")
    new_price = draft.purchase_price or Decimal("0")
    if total_qty > 0:
        avg_price = (old_price * old_qty + new_price * new_qty) / total_qty
    else:
        avg_price = Decimal("0")

    return {
        "quantity": total_qty,
        "purchase_price": avg_price,
        "amount": existing.amount + draft.amount,  # 帳面價值累加
        "date": _now(),
    }
