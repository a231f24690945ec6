"""
NetWorth 後端設定模組

使用 Pydantic Settings 管理環境變數，自動驗證型別與預設值。
"""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """應用程式設定，透過環境變數或 .env 載入"""

    # === 應用程式 ===
    app_env: Literal["development", "production", "testing"] = "development"
    app_name: str = "NetWorth API"
    app_version: str = "0.1.0"
    debug: bool = True

    # === 資料庫 ===
    # 預設使用 SQLite（開發模式），生產環境切換為 PostgreSQL
    database_url: str = "sqlite+aiosqlite:///./networth.db"

    # 持久化文件的固定 Key
    assets_key: str = "my_wealth_assets"
    settings_key: str = "my_wealth_settings"
    seed_demo_assets: bool = True  # 首次啟動且無資料時寫入示範資產

    # === Redis ===
    redis_url: str | None = None  # None 時自動使用記憶體快取

    # === 報價 API ===
    price_cache_ttl: int = 30  # 秒，0 表示停用快取
    quote_timeout: float = 10.0
    chart_base_url: str = "https://query1.finance.yahoo.com"
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    )

    # === 匯率 ===
    fx_ticker: str = "KRW=X"  # 1 USD 換多少 KRW
    default_fx_rate: Decimal = Decimal("1400")

    # === 估值排程 ===
    refresh_interval_seconds: int = 60

    # === CORS ===
    cors_origins: list[str] = [
        "http://localhost:3000",
    ]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def use_sqlite(self) -> bool:
        """判斷是否使用 SQLite（開發模式）"""
        return "sqlite" in self.database_url


@lru_cache
def get_settings() -> Settings:
    """取得快取的設定實例"""
    return Settings()
