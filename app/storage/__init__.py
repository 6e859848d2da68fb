from typing import Optional
import logging

from app.config import Settings, settings as app_settings
from app.storage.base import Storage
from app.storage.memory import MemoryStorage
from app.storage.router import DemoAwareStorage, StorageBackend

logger = logging.getLogger(__name__)


def build_storage(settings: Settings) -> DemoAwareStorage:
    if settings.has_database:
        from app.storage.supabase_storage import SupabaseStorage
        from app.database.supabase_client import get_supabase

        logger.info("Using Supabase storage for persistent data")
        persistent: Storage = SupabaseStorage(get_supabase())
    else:
        logger.warning("No database configured, persistent data is kept in memory and lost on restart")
        persistent = MemoryStorage()
    return DemoAwareStorage(persistent, MemoryStorage())


class StorageProvider:
    _storage: Optional[DemoAwareStorage] = None

    @classmethod
    def get_storage(cls) -> DemoAwareStorage:
        if cls._storage is None:
            cls._storage = build_storage(app_settings)
        return cls._storage


def get_storage() -> DemoAwareStorage:
    return StorageProvider.get_storage()


__all__ = [
    "Storage", "MemoryStorage", "DemoAwareStorage", "StorageBackend",
    "build_storage", "get_storage",
]
