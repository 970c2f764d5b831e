"""FastAPI dependency providers for the store, catalogue and accounts."""

from functools import lru_cache

from fastapi import Depends

from .accounts.passwords import make_hasher
from .accounts.service import AccountService
from .catalog.store import CatalogStore
from .config import settings
from .storage import JsonFileBackend, MemoryBackend, Store


@lru_cache(maxsize=1)
def get_store() -> Store:
    if settings.STORAGE == "memory":
        return Store(MemoryBackend())
    return Store(JsonFileBackend(settings.DATA_DIR))


def get_catalog(store: Store = Depends(get_store)) -> CatalogStore:
    return CatalogStore(store, prefix=settings.KEY_PREFIX)


def get_accounts(store: Store = Depends(get_store)) -> AccountService:
    hasher = make_hasher(settings.PASSWORD_SCHEME, settings.BCRYPT_ROUNDS)
    return AccountService(store, hasher=hasher, prefix=settings.KEY_PREFIX)
