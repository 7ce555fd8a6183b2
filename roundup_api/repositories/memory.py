"""
In-memory store used by the test-suite and for local experiments
"""

import copy
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4

from roundup_api.models.organization import utcnow
from roundup_api.repositories.base import (
    ORGANIZATION_SORT_FIELDS,
    TRANSACTION_SORT_FIELDS,
    RecordNotFound,
    Store,
    StoreError,
    UniqueViolation,
)
from roundup_api.types import (
    OrganizationQuery,
    OrganizationRecord,
    Page,
    SortOrder,
    TransactionQuery,
    TransactionRecord,
    TransactionTotals,
)


class InMemoryStore(Store):
    """Dictionary-backed store with the same constraints as the SQL schema"""

    def __init__(self):
        self.organizations: Dict[str, OrganizationRecord] = {}
        self.transactions: Dict[str, TransactionRecord] = {}

    # Organizations
    def _check_unique(self, *, name: str, api_key_hash: Optional[str] = None,
                      is_admin: bool = False, exclude_id: Optional[str] = None) -> None:
        for org in self.organizations.values():
            if org.id == exclude_id:
                continue
            if org.name == name:
                raise UniqueViolation("name")
            if api_key_hash is not None and org.api_key_hash == api_key_hash:
                raise UniqueViolation("api_key")
            if is_admin and org.is_admin:
                raise UniqueViolation("is_admin")

    async def create_organization(
        self, *, name: str, api_key_hash: str, is_admin: bool = False
    ) -> OrganizationRecord:
        self._check_unique(name=name, api_key_hash=api_key_hash, is_admin=is_admin)
        now = utcnow()
        record = OrganizationRecord(
            id=str(uuid4()),
            name=name,
            api_key_hash=api_key_hash,
            is_admin=is_admin,
            created_at=now,
            updated_at=now,
        )
        self.organizations[record.id] = record
        return record.model_copy()

    async def get_organization(self, organization_id: str) -> Optional[OrganizationRecord]:
        record = self.organizations.get(organization_id)
        return record.model_copy() if record else None

    async def get_organization_by_api_key_hash(self, api_key_hash: str) -> Optional[OrganizationRecord]:
        for org in self.organizations.values():
            if org.api_key_hash == api_key_hash:
                return org.model_copy()
        return None

    async def get_admin_organization(self) -> Optional[OrganizationRecord]:
        for org in self.organizations.values():
            if org.is_admin:
                return org.model_copy()
        return None

    async def update_organization(self, organization_id: str, *, name: str) -> OrganizationRecord:
        current = self.organizations.get(organization_id)
        if current is None:
            raise RecordNotFound(f"Organization {organization_id} not found")
        self._check_unique(name=name, exclude_id=organization_id)
        updated = current.model_copy(update={"name": name, "updated_at": utcnow()})
        self.organizations[organization_id] = updated
        return updated.model_copy()

    async def list_organizations(self, query: OrganizationQuery) -> Page[OrganizationRecord]:
        if query.sort_by not in ORGANIZATION_SORT_FIELDS:
            raise StoreError(f"Unsupported organization sort field: {query.sort_by}")

        matches = list(self.organizations.values())
        if query.search:
            needle = query.search.lower()
            matches = [org for org in matches if needle in org.name.lower()]

        matches.sort(key=lambda org: org.id)
        matches.sort(key=lambda org: getattr(org, query.sort_by), reverse=query.sort_order == SortOrder.DESC)
        return Page(items=self._slice(matches, query.page, query.limit), total=len(matches))

    async def delete_organization(self, organization_id: str) -> None:
        if organization_id not in self.organizations:
            raise RecordNotFound(f"Organization {organization_id} not found")
        remaining = {
            txn_id: txn for txn_id, txn in self.transactions.items()
            if txn.organization_id != organization_id
        }
        # Both collections are swapped together, there is no await in between
        self.transactions = remaining
        del self.organizations[organization_id]

    # Transactions
    async def create_transaction(
        self,
        *,
        organization_id: str,
        original_amount: Decimal,
        rounded_amount: Decimal,
        donation_amount: Decimal,
        metadata: Dict[str, Any],
    ) -> TransactionRecord:
        if organization_id not in self.organizations:
            raise StoreError(f"Organization {organization_id} does not exist")
        now = utcnow()
        record = TransactionRecord(
            id=str(uuid4()),
            organization_id=organization_id,
            original_amount=original_amount,
            rounded_amount=rounded_amount,
            donation_amount=donation_amount,
            metadata=copy.deepcopy(metadata),
            created_at=now,
            updated_at=now,
        )
        self.transactions[record.id] = record
        return record.model_copy(deep=True)

    async def get_transaction(
        self, transaction_id: str, organization_id: Optional[str] = None
    ) -> Optional[TransactionRecord]:
        record = self.transactions.get(transaction_id)
        if record is None:
            return None
        if organization_id is not None and record.organization_id != organization_id:
            return None
        return record.model_copy(deep=True)

    def _filter(self, query: TransactionQuery) -> List[TransactionRecord]:
        matches = []
        for txn in self.transactions.values():
            if query.organization_id is not None and txn.organization_id != query.organization_id:
                continue
            if query.start_date is not None and txn.created_at < query.start_date:
                continue
            if query.end_date is not None and txn.created_at > query.end_date:
                continue
            matches.append(txn)
        return matches

    @staticmethod
    def _slice(items: list, page: int, limit: int) -> list:
        start = (page - 1) * limit
        return [copy.deepcopy(item) for item in items[start:start + limit]]

    async def list_transactions(self, query: TransactionQuery) -> Page[TransactionRecord]:
        if query.sort_by not in TRANSACTION_SORT_FIELDS:
            raise StoreError(f"Unsupported transaction sort field: {query.sort_by}")

        matches = self._filter(query)
        matches.sort(key=lambda txn: txn.id)
        matches.sort(key=lambda txn: getattr(txn, query.sort_by), reverse=query.sort_order == SortOrder.DESC)
        return Page(items=self._slice(matches, query.page, query.limit), total=len(matches))

    async def summarize_transactions(self, query: TransactionQuery) -> TransactionTotals:
        matches = self._filter(query)
        return TransactionTotals(
            count=len(matches),
            donation_sum=sum((txn.donation_amount for txn in matches), Decimal("0")),
        )

    async def update_transaction_metadata(
        self, transaction_id: str, metadata: Dict[str, Any]
    ) -> TransactionRecord:
        current = self.transactions.get(transaction_id)
        if current is None:
            raise RecordNotFound(f"Transaction {transaction_id} not found")
        updated = current.model_copy(update={"metadata": copy.deepcopy(metadata), "updated_at": utcnow()})
        self.transactions[transaction_id] = updated
        return updated.model_copy(deep=True)

    async def delete_transaction(self, transaction_id: str) -> None:
        if self.transactions.pop(transaction_id, None) is None:
            raise RecordNotFound(f"Transaction {transaction_id} not found")
