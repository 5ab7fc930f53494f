import logging

from app.core.config import settings
from app.storage.base import Storage

logger = logging.getLogger(__name__)

_storage: Storage | None = None


def build_storage(backend: str | None = None) -> Storage:
    """Instantiate the backend named by STORAGE_BACKEND ("database" or "memory")."""
    backend = (backend or settings.STORAGE_BACKEND).lower()
    if backend == "memory":
        from app.storage.memory import MemoryStorage
        return MemoryStorage()
    if backend == "database":
        from app.storage.database import DatabaseStorage
        return DatabaseStorage()
    raise ValueError(f"Unknown STORAGE_BACKEND '{backend}'. Expected 'database' or 'memory'.")


def set_storage(storage: Storage):
    global _storage
    _storage = storage


def get_storage() -> Storage:
    """
    FastAPI dependency returning the process-wide storage.
    Built on first use when app startup did not install one.
    """
    global _storage
    if _storage is None:
        _storage = build_storage()
        logger.info(f"🗄️ Storage backend: {type(_storage).__name__}")
    return _storage
