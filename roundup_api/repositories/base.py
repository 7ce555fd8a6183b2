"""
Store interface shared by the SQL and in-memory implementations

Services only talk to ``Store``. Implementations report failures with the
typed errors below so that no caller depends on a particular database's
error codes.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Optional

from roundup_api.types import (
    OrganizationQuery,
    OrganizationRecord,
    Page,
    TransactionQuery,
    TransactionRecord,
    TransactionTotals,
)

ORGANIZATION_SORT_FIELDS = ("name", "created_at", "updated_at")
TRANSACTION_SORT_FIELDS = ("created_at", "original_amount", "rounded_amount", "donation_amount")


class StoreError(RuntimeError):
    """Unexpected storage failure"""


class UniqueViolation(StoreError):
    """A write collided with a unique constraint"""

    def __init__(self, field: str = "unknown", message: str | None = None):
        self.field = field
        super().__init__(message or f"Unique constraint violated on {field}")


class RecordNotFound(StoreError):
    """The row addressed by a write does not exist"""


class Store(ABC):
    """Persistence operations for organizations and their transactions"""

    async def init(self) -> None:
        """Prepare the backing storage"""

    async def close(self) -> None:
        """Release resources held by the store"""

    # Organizations
    @abstractmethod
    async def create_organization(
        self, *, name: str, api_key_hash: str, is_admin: bool = False
    ) -> OrganizationRecord:
        """Insert an organization; ``UniqueViolation`` on name, key or admin clash"""

    @abstractmethod
    async def get_organization(self, organization_id: str) -> Optional[OrganizationRecord]:
        ...

    @abstractmethod
    async def get_organization_by_api_key_hash(self, api_key_hash: str) -> Optional[OrganizationRecord]:
        ...

    @abstractmethod
    async def get_admin_organization(self) -> Optional[OrganizationRecord]:
        ...

    @abstractmethod
    async def update_organization(self, organization_id: str, *, name: str) -> OrganizationRecord:
        """Rename an organization; ``RecordNotFound`` or ``UniqueViolation``"""

    @abstractmethod
    async def list_organizations(self, query: OrganizationQuery) -> Page[OrganizationRecord]:
        ...

    @abstractmethod
    async def delete_organization(self, organization_id: str) -> None:
        """Delete an organization and all of its transactions in one unit of work"""

    # Transactions
    @abstractmethod
    async def create_transaction(
        self,
        *,
        organization_id: str,
        original_amount: Decimal,
        rounded_amount: Decimal,
        donation_amount: Decimal,
        metadata: Dict[str, Any],
    ) -> TransactionRecord:
        ...

    @abstractmethod
    async def get_transaction(
        self, transaction_id: str, organization_id: Optional[str] = None
    ) -> Optional[TransactionRecord]:
        """Fetch a transaction, restricted to ``organization_id`` when given"""

    @abstractmethod
    async def list_transactions(self, query: TransactionQuery) -> Page[TransactionRecord]:
        ...

    @abstractmethod
    async def summarize_transactions(self, query: TransactionQuery) -> TransactionTotals:
        """Count and donation sum over the query's scope and date range"""

    @abstractmethod
    async def update_transaction_metadata(
        self, transaction_id: str, metadata: Dict[str, Any]
    ) -> TransactionRecord:
        ...

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> None:
        ...
