"""NetWorth ORM Models 套件"""

from networth.models.stored_document import StoredDocument

__all__ = [
    "StoredDocument",
]
