"""
Persistence layer: the ``Store`` interface and its implementations
"""

from roundup_api.repositories.base import RecordNotFound, Store, StoreError, UniqueViolation
from roundup_api.repositories.memory import InMemoryStore
from roundup_api.repositories.sql import SqlAlchemyStore

__all__ = [
    "InMemoryStore",
    "RecordNotFound",
    "SqlAlchemyStore",
    "Store",
    "StoreError",
    "UniqueViolation",
]
