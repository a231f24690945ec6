"""
持久化儲存層

以固定 Key 將資產清單與使用者設定整份寫入 stored_documents 表。
每次寫入即整份取代（replace-all），讀取時整份載入（load-all）。
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from networth.models.stored_document import StoredDocument
from networth.schemas.asset import Asset
from networth.schemas.settings import UserSettings

logger = logging.getLogger(__name__)


class DocumentStore:
    """資產與設定的持久化儲存"""

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        assets_key: str = "my_wealth_assets",
        settings_key: str = "my_wealth_settings",
    ):
        self._sessionmaker = sessionmaker
        self.assets_key = assets_key
        self.settings_key = settings_key

    async def _read(self, key: str) -> Any | None:
        async with self._sessionmaker() as session:
            doc = await session.get(StoredDocument, key)
            return doc.payload if doc else None

    async def _write(self, key: str, payload: Any) -> None:
        async with self._sessionmaker() as session:
            try:
                doc = await session.get(StoredDocument, key)
                if doc:
                    doc.payload = payload
                else:
                    session.add(StoredDocument(key=key, payload=payload))
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def load_assets(self) -> list[Asset] | None:
        """載入資產清單；從未儲存過時回傳 None"""
        payload = await self._read(self.assets_key)
        if payload is None:
            return None
        return [Asset.model_validate(item) for item in payload]

    async def save_assets(self, assets: list[Asset]) -> None:
        """整份取代資產清單"""
        payload = [a.model_dump(mode="json", by_alias=True) for a in assets]
        await self._write(self.assets_key, payload)
        logger.debug("資產清單已寫入 (%d 筆)", len(assets))

    async def load_settings(self) -> UserSettings:
        """載入使用者設定；未儲存過時回傳預設值"""
        payload = await self._read(self.settings_key)
        if payload is None:
            return UserSettings()
        return UserSettings.model_validate(payload)

    async def save_settings(self, settings: UserSettings) -> None:
        """整份取代使用者設定"""
        await self._write(self.settings_key, settings.model_dump(mode="json", by_alias=True))
