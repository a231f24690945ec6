"""
NetWorth FastAPI 應用程式入口

包含 CORS 設定、全域錯誤處理中介軟體、
啟動事件（初始化資料庫、載入資產、建立報價管理器與估值排程）。
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from networth.api.router import api_router
from networth.config import Settings, get_settings
from networth.database import build_engine, build_sessionmaker, init_db
from networth.price.chart import YahooChartProvider
from networth.price.manager import QuoteManager
from networth.price.yahoo import YahooFinanceProvider
from networth.redis_client import close_redis
from networth.schemas.common import ErrorResponse
from networth.services.asset_repository import AssetRepository
from networth.services.store import DocumentStore
from networth.services.user_settings_service import UserSettingsService
from networth.services.valuation_service import ValuationService
from networth.worker import setup_worker, stop_worker

# 設定日誌
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_quote_manager(settings: Settings) -> QuoteManager:
    """建立報價管理器（主要來源 yfinance，備援 Yahoo chart API）"""
    return QuoteManager(
        primary=YahooFinanceProvider(),
        fallback=YahooChartProvider(
            base_url=settings.chart_base_url,
            user_agent=settings.user_agent,
            timeout=settings.quote_timeout,
        ),
        cache_ttl=settings.price_cache_ttl,
    )


def create_app(
    settings: Settings | None = None,
    quote_manager: QuoteManager | None = None,
    start_worker: bool = True,
) -> FastAPI:
    """
    建立 FastAPI 應用

    Args:
        settings: 設定，預設讀取環境變數
        quote_manager: 報價管理器，預設使用 Yahoo 來源（測試時可注入）
        start_worker: 是否啟動背景估值排程
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """應用程式生命週期管理"""
        # === 啟動時 ===
        logger.info("🚀 NetWorth API 啟動中...")
        logger.info("環境: %s", settings.app_env)

        engine = build_engine(settings)
        await init_db(engine)
        logger.info("✅ 資料庫初始化完成")

        store = DocumentStore(
            build_sessionmaker(engine),
            assets_key=settings.assets_key,
            settings_key=settings.settings_key,
        )
        repository = AssetRepository(store, seed_demo=settings.seed_demo_assets)
        await repository.load()

        user_settings_service = UserSettingsService(store)
        await user_settings_service.load()

        manager = quote_manager or build_quote_manager(settings)
        valuation_service = ValuationService(
            repository,
            manager,
            fx_ticker=settings.fx_ticker,
            default_fx_rate=settings.default_fx_rate,
        )

        app.state.repository = repository
        app.state.quote_manager = manager
        app.state.valuation_service = valuation_service
        app.state.user_settings_service = user_settings_service

        # 啟動背景估值排程器
        if start_worker:
            setup_worker(valuation_service, settings.refresh_interval_seconds)

        yield

        # === 關閉時 ===
        logger.info("NetWorth API 關閉中...")
        if start_worker:
            stop_worker()
        await manager.close()
        await close_redis()
        await engine.dispose()
        logger.info("👋 NetWorth API 已關閉")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="個人資產淨值追蹤 API",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # === CORS 中介軟體 ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # === 全域錯誤處理 ===

    @app.middleware("http")
    async def error_handling_middleware(request: Request, call_next):
        """
        全域錯誤處理與請求日誌中介軟體

        - 記錄每個請求的處理時間
        - 捕獲未預期的例外並回傳統一格式
        """
        start_time = time.time()

        try:
            response = await call_next(request)

            # 記錄請求日誌
            process_time = time.time() - start_time
            logger.info(
                "%s %s - %d (%.3fs)",
                request.method,
                request.url.path,
                response.status_code,
                process_time,
            )

            response.headers["X-Process-Time"] = f"{process_time:.3f}"
            return response

        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                "%s %s - 500 (%.3fs) Error: %s",
                request.method,
                request.url.path,
                process_time,
                str(e),
            )
            return JSONResponse(
                status_code=500,
                content=ErrorResponse(
                    error="Internal Server Error",
                    detail=str(e) if settings.is_development else None,
                ).model_dump(),
            )

    # === 註冊路由 ===
    app.include_router(api_router)

    # === 健康檢查 ===

    @app.get("/health", tags=["系統"])
    async def health_check():
        """API 健康檢查"""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.app_env,
        }

    return app


app = create_app()
