"""
FastAPI 依賴注入

服務實例於應用程式啟動時建立一次並掛在 app.state 上。
"""

from fastapi import Request

from networth.price.manager import QuoteManager
from networth.services.asset_repository import AssetRepository
from networth.services.user_settings_service import UserSettingsService
from networth.services.valuation_service import ValuationService


def get_quote_manager(request: Request) -> QuoteManager:
    return request.app.state.quote_manager


def get_repository(request: Request) -> AssetRepository:
    return request.app.state.repository


def get_valuation_service(request: Request) -> ValuationService:
    return request.app.state.valuation_service


def get_user_settings_service(request: Request) -> UserSettingsService:
    return request.app.state.user_settings_service
