"""
API 路由集中註冊
"""

from fastapi import APIRouter

from networth.api.assets import router as assets_router
from networth.api.dashboard import router as dashboard_router
from networth.api.price import router as price_router
from networth.api.settings import router as settings_router

api_router = APIRouter(prefix="/api")
api_router.include_router(price_router)
api_router.include_router(assets_router)
api_router.include_router(dashboard_router)
api_router.include_router(settings_router)
