"""
使用者設定服務

暱稱與財務自由目標金額，僅作為目標進度計算的唯讀輸入。
"""

import logging

from networth.schemas.settings import UserSettings, UserSettingsUpdate
from networth.services.store import DocumentStore

logger = logging.getLogger(__name__)


class UserSettingsService:
    """使用者設定讀寫"""

    def __init__(self, store: DocumentStore):
        self._store = store
        self._settings = UserSettings()

    @property
    def current(self) -> UserSettings:
        return self._settings.model_copy()

    async def load(self) -> UserSettings:
        self._settings = await self._store.load_settings()
        return self.current

    async def update(self, data: UserSettingsUpdate) -> UserSettings:
        """部分更新並寫入"""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        self._settings = self._settings.model_copy(update=changes)
        await self._store.save_settings(self._settings)
        logger.info("使用者設定已更新: %s", ", ".join(changes) or "無變更")
        return self.current
