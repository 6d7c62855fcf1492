from naijaauto.store.repository import Repository, StoreConflictError

__all__ = ["Repository", "StoreConflictError"]
