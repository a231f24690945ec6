"""
持久化文件模型

以固定 Key 儲存整份 JSON 文件（資產清單、使用者設定），
每次寫入即整份取代。
"""

from datetime import datetime
from typing import Any

from sqlalchemy import String, DateTime, JSON, func
from sqlalchemy.orm import Mapped, mapped_column

from networth.database import Base


class StoredDocument(Base):
    __tablename__ = "stored_documents"

    key: Mapped[str] = mapped_column(
        String(100), primary_key=True,
        comment="文件固定識別碼",
    )
    payload: Mapped[Any] = mapped_column(
        JSON, nullable=False,
        comment="文件內容 JSON",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<StoredDocument {self.key}>"
