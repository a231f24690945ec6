"""
儀表板 API 路由

即時淨值摘要、手動刷新、資產配置與財務目標進度。
"""

import logging

from fastapi import APIRouter, Depends

from networth.api.deps import get_user_settings_service, get_valuation_service
from networth.schemas.common import ApiResponse
from networth.schemas.valuation import AllocationItem, GoalProgress, PortfolioSnapshot
from networth.services.user_settings_service import UserSettingsService
from networth.services.valuation_service import ValuationService, goal_progress

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/dashboard", tags=["儀表板"])


async def _current_snapshot(service: ValuationService) -> PortfolioSnapshot:
    """取得已發布的快照，尚未發布時立即估值一次"""
    snapshot = service.snapshot()
    if snapshot is None:
        snapshot = await service.refresh()
    return snapshot


@router.get("/summary", response_model=ApiResponse[PortfolioSnapshot])
async def get_summary(service: ValuationService = Depends(get_valuation_service)):
    """
    取得即時淨值摘要

    回傳最近一次估值週期的結果，包含總資產、總負債、淨值、
    當日損益與每檔資產的估值依據（live / book）。
    """
    return ApiResponse(data=await _current_snapshot(service))


@router.post("/refresh", response_model=ApiResponse[PortfolioSnapshot])
async def refresh(service: ValuationService = Depends(get_valuation_service)):
    """手動刷新（繞過報價快取）"""
    snapshot = await service.refresh(force_refresh=True)
    return ApiResponse(data=snapshot, message="已重新估值")


@router.get("/allocation", response_model=ApiResponse[list[AllocationItem]])
async def get_allocation(service: ValuationService = Depends(get_valuation_service)):
    """資產配置（依類型加總即時價值，不含負債）"""
    snapshot = await _current_snapshot(service)
    return ApiResponse(data=snapshot.allocation)


@router.get("/goal", response_model=ApiResponse[GoalProgress])
async def get_goal_progress(
    service: ValuationService = Depends(get_valuation_service),
    settings_service: UserSettingsService = Depends(get_user_settings_service),
):
    """財務自由目標進度"""
    snapshot = await _current_snapshot(service)
    user_settings = settings_service.current
    return ApiResponse(data=goal_progress(
        snapshot.net_worth, user_settings.fire_goal, user_settings.nickname,
    ))
