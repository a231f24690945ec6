"""
資產 API 路由

資產 CRUD：新增（自動合併）、更新、刪除、依類型查詢。
"""

import logging
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException

from networth.api.deps import get_repository, get_valuation_service
from networth.schemas.asset import Asset, AssetAddResponse, AssetEntry, AssetType
from networth.schemas.common import ApiResponse
from networth.services.asset_repository import AssetRepository, build_draft
from networth.services.valuation_service import ValuationService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/assets", tags=["資產"])


@router.get("", response_model=ApiResponse[list[Asset]])
async def list_assets(
    type: AssetType | None = None,
    repo: AssetRepository = Depends(get_repository),
):
    """取得所有資產，可依類型篩選（最新在前）"""
    assets = repo.by_type(type) if type else repo.snapshot()
    return ApiResponse(data=assets)


@router.get("/net-worth", response_model=ApiResponse[dict[str, Decimal]])
async def get_book_net_worth(repo: AssetRepository = Depends(get_repository)):
    """帳面淨值（不含即時報價，負債相減）"""
    return ApiResponse(data={"net_worth": repo.net_worth()})


@router.get("/{asset_id}", response_model=ApiResponse[Asset])
async def get_asset(asset_id: str, repo: AssetRepository = Depends(get_repository)):
    """取得單一資產"""
    asset = repo.get(asset_id)
    if not asset:
        raise HTTPException(status_code=404, detail="資產不存在")
    return ApiResponse(data=asset)


@router.post("", response_model=ApiResponse[AssetAddResponse])
async def create_asset(
    data: AssetEntry,
    repo: AssetRepository = Depends(get_repository),
    valuation: ValuationService = Depends(get_valuation_service),
):
    """
    新增資產

    以目前匯率將輸入換算為 KRW 帳面價值；
    相同名稱的現金、相同代碼的股票 / 加密貨幣會自動合併。
    """
    draft = build_draft(data, valuation.fx_rate)
    result = await repo.add(draft)
    return ApiResponse(
        data=AssetAddResponse(asset=result.asset, merged=result.merged),
        message="資產已合併" if result.merged else "資產已新增",
    )


@router.put("/{asset_id}", response_model=ApiResponse[Asset])
async def update_asset(
    asset_id: str,
    data: AssetEntry,
    repo: AssetRepository = Depends(get_repository),
    valuation: ValuationService = Depends(get_valuation_service),
):
    """更新資產（整筆取代，類型不可變更）"""
    existing = repo.get(asset_id)
    if not existing:
        raise HTTPException(status_code=404, detail="資產不存在")
    if data.type != existing.type:
        raise HTTPException(status_code=400, detail="資產類型不可變更")

    draft = build_draft(data, valuation.fx_rate)
    asset = Asset(id=existing.id, date=existing.date, **draft.model_dump())

    result = await repo.update(asset)
    if not result.found:
        raise HTTPException(status_code=404, detail="資產不存在")
    return ApiResponse(data=result.asset, message="資產已更新")


@router.delete("/{asset_id}", response_model=ApiResponse[None])
async def delete_asset(asset_id: str, repo: AssetRepository = Depends(get_repository)):
    """刪除資產"""
    result = await repo.remove(asset_id)
    if not result.found:
        raise HTTPException(status_code=404, detail="資產不存在")
    return ApiResponse(message="資產已刪除")
