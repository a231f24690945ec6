"""
NetWorth 資料庫連線模組

支援 SQLAlchemy 2.0 async engine。
開發模式使用 SQLite，生產環境使用 PostgreSQL。
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from networth.config import Settings, get_settings


class Base(DeclarativeBase):
    """所有 ORM Model 的基礎類別"""
    pass


def build_engine(settings: Settings | None = None) -> AsyncEngine:
    """依照設定建立 async engine"""
    settings = settings or get_settings()

    # 根據資料庫類型調整引擎參數
    engine_kwargs: dict = {
        "echo": settings.debug and settings.is_development,
    }

    if settings.use_sqlite:
        # SQLite 需要特殊的 connect_args，允許跨執行緒存取
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        # PostgreSQL 連線池設定
        engine_kwargs.update({
            "pool_size": 5,
            "max_overflow": 5,
            "pool_pre_ping": True,
        })

    # 自動轉換資料庫 URL 為非同步驅動程式
    db_url = settings.database_url
    if db_url.startswith("postgresql://"):
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    return create_async_engine(db_url, **engine_kwargs)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """初始化資料庫（自動建立所有表）"""
    # 確保 ORM Model 已註冊到 metadata
    import networth.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
