"""Database package."""
from vault_worker.db.base import Base

__all__ = ["Base"]
