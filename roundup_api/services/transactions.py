"""
Transaction Service
Creation with round-up, scoped lookup/listing, reporting, metadata updates
"""

from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Optional

from loguru import logger
from pydantic import ValidationError

from roundup_api.core.errors import InvalidInputError, NotFoundError
from roundup_api.repositories.base import RecordNotFound, Store
from roundup_api.services import access_policy
from roundup_api.services.organizations import pagination, parse_sort_order
from roundup_api.services.round_up import calculate_round_up
from roundup_api.types import (
    CENT,
    OrganizationRecord,
    Transaction,
    TransactionListPayload,
    TransactionQuery,
    TransactionReport,
    TransactionUpdate,
)

# Largest amount whose round-up still fits a NUMERIC(12, 2) column
MAX_AMOUNT = Decimal("999999999.99")

FINANCIAL_FIELDS = ("originalAmount", "roundedAmount", "donationAmount")

# Query parameter name -> record attribute
TRANSACTION_SORT_PARAMS = {
    "createdAt": "created_at",
    "originalAmount": "original_amount",
    "roundedAmount": "rounded_amount",
    "donationAmount": "donation_amount",
}


def parse_amount(value: Any) -> Decimal:
    """
    Parse a caller-supplied purchase amount.

    Strings and numbers are accepted; the result must be a finite, strictly
    positive value. Sub-cent digits are rounded half-up to whole cents.
    """
    if value is None or isinstance(value, bool) or value == "":
        raise InvalidInputError("originalAmount is required")
    if not isinstance(value, (str, int, float, Decimal)):
        raise InvalidInputError("originalAmount must be a number")
    try:
        # str() keeps floats such as 15.75 from picking up binary noise
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidInputError("originalAmount must be a number")
    if not amount.is_finite():
        raise InvalidInputError("originalAmount must be a number")
    if amount <= 0:
        raise InvalidInputError("originalAmount must be a positive number")
    if amount > MAX_AMOUNT:
        raise InvalidInputError(f"originalAmount must not exceed {MAX_AMOUNT}")

    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if amount <= 0:
        raise InvalidInputError("originalAmount must be at least 0.01")
    if amount > MAX_AMOUNT:
        raise InvalidInputError(f"originalAmount must not exceed {MAX_AMOUNT}")
    return amount


def parse_date_bound(value: Optional[str], name: str, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a date filter into a naive UTC datetime.

    A bare date (``2024-01-31``) covers the whole day, so as an upper bound it
    resolves to the last instant of that day.
    """
    if value is None or value.strip() == "":
        return None
    raw = value.strip()
    try:
        if len(raw) == 10:
            day = date.fromisoformat(raw)
            return datetime.combine(day, time.max if end_of_day else time.min)
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidInputError(f"{name} must be a valid ISO 8601 date")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def reject_financial_fields(body: Dict[str, Any]) -> None:
    if any(field in body for field in FINANCIAL_FIELDS):
        raise InvalidInputError("Financial fields are immutable")


def parse_transaction_update(body: Any) -> TransactionUpdate:
    """Validate a metadata update body; financial fields are rejected outright"""
    if not isinstance(body, dict):
        raise InvalidInputError("Request body must be a JSON object")
    reject_financial_fields(body)
    if "metadata" not in body:
        raise InvalidInputError("metadata is required")
    try:
        return TransactionUpdate.model_validate(body)
    except ValidationError as e:
        raise InvalidInputError("metadata must be a JSON object and is the only updatable field") from e


class TransactionService:
    """Transaction operations for an authenticated principal"""

    def __init__(self, store: Store):
        self.store = store

    def _scoped_query(
        self,
        principal: OrganizationRecord,
        start_date: Optional[str],
        end_date: Optional[str],
        **kwargs: Any,
    ) -> TransactionQuery:
        start = parse_date_bound(start_date, "startDate")
        end = parse_date_bound(end_date, "endDate", end_of_day=True)
        if start is not None and end is not None and start > end:
            raise InvalidInputError("startDate must not be after endDate")
        return TransactionQuery(
            organization_id=access_policy.scope_for(principal),
            start_date=start,
            end_date=end,
            **kwargs,
        )

    async def create(
        self,
        principal: OrganizationRecord,
        original_amount: Any,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Transaction:
        amount = parse_amount(original_amount)
        if metadata is not None and not isinstance(metadata, dict):
            raise InvalidInputError("metadata must be a JSON object")

        round_up = calculate_round_up(amount)
        record = await self.store.create_transaction(
            organization_id=principal.id,
            original_amount=amount,
            rounded_amount=round_up.rounded_amount,
            donation_amount=round_up.donation_amount,
            metadata=metadata or {},
        )
        logger.info(
            f"Transaction {record.id} created for organization {principal.id}: "
            f"{record.original_amount} -> donation {record.donation_amount}"
        )
        return Transaction.from_record(record)

    async def get(self, principal: OrganizationRecord, transaction_id: str) -> Transaction:
        # Foreign transactions look exactly like missing ones
        record = await self.store.get_transaction(transaction_id, access_policy.scope_for(principal))
        if record is None:
            raise NotFoundError("Transaction not found")
        return Transaction.from_record(record)

    async def list_transactions(
        self,
        principal: OrganizationRecord,
        *,
        page: int = 1,
        limit: int = 10,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> TransactionListPayload:
        sort_by = sort_by or "createdAt"
        if sort_by not in TRANSACTION_SORT_PARAMS:
            raise InvalidInputError(
                f"Invalid sortBy field. Allowed: {', '.join(TRANSACTION_SORT_PARAMS)}"
            )

        query = self._scoped_query(
            principal,
            start_date,
            end_date,
            page=page,
            limit=limit,
            sort_by=TRANSACTION_SORT_PARAMS[sort_by],
            sort_order=parse_sort_order(sort_order),
        )
        result = await self.store.list_transactions(query)
        return TransactionListPayload(
            transactions=[Transaction.from_record(r) for r in result.items],
            pagination=pagination(page, limit, result.total),
        )

    async def report(
        self,
        principal: OrganizationRecord,
        *,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> TransactionReport:
        query = self._scoped_query(principal, start_date, end_date)
        totals = await self.store.summarize_transactions(query)

        total_donations = totals.donation_sum.quantize(CENT, rounding=ROUND_HALF_UP)
        if totals.count == 0:
            average = Decimal("0").quantize(CENT)
        else:
            average = (totals.donation_sum / totals.count).quantize(CENT, rounding=ROUND_HALF_UP)

        return TransactionReport(
            total_transactions=totals.count,
            total_donations=total_donations,
            average_donation=average,
        )

    async def update_metadata(
        self,
        principal: OrganizationRecord,
        transaction_id: str,
        update: TransactionUpdate,
    ) -> Transaction:
        existing = await self.store.get_transaction(transaction_id)
        if existing is None:
            raise NotFoundError("Transaction not found")
        access_policy.authorize(principal, existing.organization_id, "update transactions of")

        try:
            record = await self.store.update_transaction_metadata(transaction_id, update.metadata)
        except RecordNotFound as e:
            raise NotFoundError("Transaction not found") from e
        return Transaction.from_record(record)

    async def delete(self, principal: OrganizationRecord, transaction_id: str) -> None:
        access_policy.require_admin(principal, "Only administrators can delete transactions")
        try:
            await self.store.delete_transaction(transaction_id)
        except RecordNotFound as e:
            raise NotFoundError("Transaction not found") from e
        logger.info(f"Transaction {transaction_id} deleted by {principal.id}")
