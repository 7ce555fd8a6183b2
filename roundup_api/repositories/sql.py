"""
SQLAlchemy-backed store
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from roundup_api.core.database import build_engine, build_session_factory, init_db
from roundup_api.models.organization import Organization, utcnow
from roundup_api.models.transaction import Transaction
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


def _to_organization_record(row: Organization) -> OrganizationRecord:
    return OrganizationRecord(
        id=row.id,
        name=row.name,
        api_key_hash=row.api_key_hash,
        is_admin=bool(row.is_admin),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_transaction_record(row: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        organization_id=row.organization_id,
        original_amount=Decimal(row.original_amount),
        rounded_amount=Decimal(row.rounded_amount),
        donation_amount=Decimal(row.donation_amount),
        metadata=dict(row.metadata_ or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _unique_violation(error: IntegrityError) -> StoreError:
    """Translate a driver integrity error into a typed store error"""
    detail = str(error.orig).lower()
    if "unique" not in detail and "duplicate" not in detail:
        return StoreError(f"Integrity error: {error.orig}")
    if "api_key_hash" in detail:
        return UniqueViolation("api_key")
    if "is_admin" in detail or "single_admin" in detail:
        return UniqueViolation("is_admin")
    return UniqueViolation("name")


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlAlchemyStore(Store):
    """Store over an async SQLAlchemy engine"""

    def __init__(self, engine: AsyncEngine, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self.engine = engine
        self.session_factory = session_factory or build_session_factory(engine)

    @classmethod
    def from_url(cls, url: str, echo: bool = False) -> "SqlAlchemyStore":
        return cls(build_engine(url, echo=echo))

    async def init(self) -> None:
        await init_db(self.engine)

    async def close(self) -> None:
        await self.engine.dispose()

    # Organizations
    async def create_organization(
        self, *, name: str, api_key_hash: str, is_admin: bool = False
    ) -> OrganizationRecord:
        async with self.session_factory() as session:
            organization = Organization(name=name, api_key_hash=api_key_hash, is_admin=is_admin)
            session.add(organization)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise _unique_violation(e) from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise StoreError("Failed to create organization") from e
            await session.refresh(organization)
            return _to_organization_record(organization)

    async def _fetch_organization(self, statement: Select) -> Optional[OrganizationRecord]:
        async with self.session_factory() as session:
            try:
                result = await session.execute(statement)
            except SQLAlchemyError as e:
                raise StoreError("Failed to read organization") from e
            row = result.scalar_one_or_none()
            return _to_organization_record(row) if row is not None else None

    async def get_organization(self, organization_id: str) -> Optional[OrganizationRecord]:
        return await self._fetch_organization(
            select(Organization).where(Organization.id == organization_id)
        )

    async def get_organization_by_api_key_hash(self, api_key_hash: str) -> Optional[OrganizationRecord]:
        return await self._fetch_organization(
            select(Organization).where(Organization.api_key_hash == api_key_hash)
        )

    async def get_admin_organization(self) -> Optional[OrganizationRecord]:
        return await self._fetch_organization(
            select(Organization).where(Organization.is_admin.is_(True)).limit(1)
        )

    async def update_organization(self, organization_id: str, *, name: str) -> OrganizationRecord:
        async with self.session_factory() as session:
            organization = await session.get(Organization, organization_id)
            if organization is None:
                raise RecordNotFound(f"Organization {organization_id} not found")
            organization.name = name
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise _unique_violation(e) from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise StoreError("Failed to update organization") from e
            await session.refresh(organization)
            return _to_organization_record(organization)

    async def list_organizations(self, query: OrganizationQuery) -> Page[OrganizationRecord]:
        if query.sort_by not in ORGANIZATION_SORT_FIELDS:
            raise StoreError(f"Unsupported organization sort field: {query.sort_by}")

        conditions = []
        if query.search:
            conditions.append(Organization.name.ilike(f"%{_escape_like(query.search)}%", escape="\\"))

        sort_column = getattr(Organization, query.sort_by)
        ordering = sort_column.asc() if query.sort_order == SortOrder.ASC else sort_column.desc()

        async with self.session_factory() as session:
            try:
                total = await session.scalar(
                    select(func.count()).select_from(Organization).where(*conditions)
                )
                result = await session.execute(
                    select(Organization)
                    .where(*conditions)
                    .order_by(ordering, Organization.id)
                    .offset((query.page - 1) * query.limit)
                    .limit(query.limit)
                )
            except SQLAlchemyError as e:
                raise StoreError("Failed to list organizations") from e
            rows = result.scalars().all()
            return Page(items=[_to_organization_record(r) for r in rows], total=int(total or 0))

    async def delete_organization(self, organization_id: str) -> None:
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    exists = await session.scalar(
                        select(func.count()).select_from(Organization).where(Organization.id == organization_id)
                    )
                    if not exists:
                        raise RecordNotFound(f"Organization {organization_id} not found")
                    removed = await session.execute(
                        delete(Transaction).where(Transaction.organization_id == organization_id)
                    )
                    await session.execute(
                        delete(Organization).where(Organization.id == organization_id)
                    )
            except SQLAlchemyError as e:
                raise StoreError("Failed to delete organization") from e
            logger.info(
                f"Deleted organization {organization_id} and {removed.rowcount} transaction(s)"
            )

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
        async with self.session_factory() as session:
            transaction = Transaction(
                organization_id=organization_id,
                original_amount=original_amount,
                rounded_amount=rounded_amount,
                donation_amount=donation_amount,
                metadata_=metadata,
            )
            session.add(transaction)
            try:
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StoreError("Failed to create transaction") from e
            await session.refresh(transaction)
            return _to_transaction_record(transaction)

    async def get_transaction(
        self, transaction_id: str, organization_id: Optional[str] = None
    ) -> Optional[TransactionRecord]:
        statement = select(Transaction).where(Transaction.id == transaction_id)
        if organization_id is not None:
            statement = statement.where(Transaction.organization_id == organization_id)
        async with self.session_factory() as session:
            try:
                result = await session.execute(statement)
            except SQLAlchemyError as e:
                raise StoreError("Failed to read transaction") from e
            row = result.scalar_one_or_none()
            return _to_transaction_record(row) if row is not None else None

    @staticmethod
    def _transaction_conditions(query: TransactionQuery) -> list:
        conditions = []
        if query.organization_id is not None:
            conditions.append(Transaction.organization_id == query.organization_id)
        if query.start_date is not None:
            conditions.append(Transaction.created_at >= query.start_date)
        if query.end_date is not None:
            conditions.append(Transaction.created_at <= query.end_date)
        return conditions

    async def list_transactions(self, query: TransactionQuery) -> Page[TransactionRecord]:
        if query.sort_by not in TRANSACTION_SORT_FIELDS:
            raise StoreError(f"Unsupported transaction sort field: {query.sort_by}")

        conditions = self._transaction_conditions(query)
        sort_column = getattr(Transaction, query.sort_by)
        ordering = sort_column.asc() if query.sort_order == SortOrder.ASC else sort_column.desc()

        async with self.session_factory() as session:
            try:
                total = await session.scalar(
                    select(func.count()).select_from(Transaction).where(*conditions)
                )
                result = await session.execute(
                    select(Transaction)
                    .where(*conditions)
                    .order_by(ordering, Transaction.id)
                    .offset((query.page - 1) * query.limit)
                    .limit(query.limit)
                )
            except SQLAlchemyError as e:
                raise StoreError("Failed to list transactions") from e
            rows = result.scalars().all()
            return Page(items=[_to_transaction_record(r) for r in rows], total=int(total or 0))

    async def summarize_transactions(self, query: TransactionQuery) -> TransactionTotals:
        conditions = self._transaction_conditions(query)
        async with self.session_factory() as session:
            try:
                result = await session.execute(
                    select(
                        func.count(Transaction.id),
                        func.coalesce(func.sum(Transaction.donation_amount), 0),
                    ).where(*conditions)
                )
            except SQLAlchemyError as e:
                raise StoreError("Failed to summarize transactions") from e
            count, donation_sum = result.one()
            return TransactionTotals(
                count=int(count or 0),
                donation_sum=Decimal(str(donation_sum or 0)),
            )

    async def update_transaction_metadata(
        self, transaction_id: str, metadata: Dict[str, Any]
    ) -> TransactionRecord:
        async with self.session_factory() as session:
            transaction = await session.get(Transaction, transaction_id)
            if transaction is None:
                raise RecordNotFound(f"Transaction {transaction_id} not found")
            transaction.metadata_ = metadata
            transaction.updated_at = utcnow()
            try:
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StoreError("Failed to update transaction") from e
            await session.refresh(transaction)
            return _to_transaction_record(transaction)

    async def delete_transaction(self, transaction_id: str) -> None:
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    result = await session.execute(
                        delete(Transaction).where(Transaction.id == transaction_id)
                    )
            except SQLAlchemyError as e:
                raise StoreError("Failed to delete transaction") from e
            if not result.rowcount:
                raise RecordNotFound(f"Transaction {transaction_id} not found")
