"""
使用者設定 API 路由
"""

from fastapi import APIRouter, Depends

from networth.api.deps import get_user_settings_service
from networth.schemas.common import ApiResponse
from networth.schemas.settings import UserSettings, UserSettingsUpdate
from networth.services.user_settings_service import UserSettingsService

router = APIRouter(prefix="/settings", tags=["設定"])


@router.get("", response_model=ApiResponse[UserSettings])
async def get_user_settings(
    service: UserSettingsService = Depends(get_user_settings_service),
):
    """取得使用者設定"""
    return ApiResponse(data=service.current)


@router.put("", response_model=ApiResponse[UserSettings])
async def update_user_settings(
    data: UserSettingsUpdate,
    service: UserSettingsService = Depends(get_user_settings_service),
):
    """部分更新使用者設定"""
    return ApiResponse(data=await service.update(data), message="設定已更新")
