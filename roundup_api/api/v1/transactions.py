"""
Transactions API endpoints
Handle round-up transactions and donation reporting
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from loguru import logger

from roundup_api.api.v1.auth import get_admin_organization, get_current_organization, get_store
from roundup_api.api.v1.params import PageParams, get_page_params
from roundup_api.core.errors import AppError, InternalError
from roundup_api.repositories.base import Store
from roundup_api.services.transactions import TransactionService, parse_transaction_update
from roundup_api.types import (
    ApiResponse,
    DeletedPayload,
    OrganizationRecord,
    TransactionCreate,
    TransactionListPayload,
    TransactionPayload,
    TransactionReport,
)

router = APIRouter()


@router.post("", status_code=201, response_model=ApiResponse[TransactionPayload])
async def create_transaction(
    request: TransactionCreate,
    current_org: OrganizationRecord = Depends(get_current_organization),
    store: Store = Depends(get_store),
) -> ApiResponse[TransactionPayload]:
    """
    Record a purchase and compute its round-up donation
    """
    try:
        transaction = await TransactionService(store).create(
            current_org,
            request.original_amount,
            request.metadata,
        )
        return ApiResponse(data=TransactionPayload(transaction=transaction))

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error creating transaction for {current_org.id}: {e}")
        raise InternalError("Failed to create transaction")


@router.get("/report", response_model=ApiResponse[TransactionReport])
async def get_transaction_report(
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    current_org: OrganizationRecord = Depends(get_current_organization),
    store: Store = Depends(get_store),
) -> ApiResponse[TransactionReport]:
    """
    Donation totals for the caller's organization (all organizations for admin)
    """
    try:
        report = await TransactionService(store).report(
            current_org,
            start_date=start_date,
            end_date=end_date,
        )
        return ApiResponse(data=report)

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error generating transaction report for {current_org.id}: {e}")
        raise InternalError("Internal server error while generating transaction report")


@router.get("", response_model=ApiResponse[TransactionListPayload])
async def list_transactions(
    paging: PageParams = Depends(get_page_params),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    current_org: OrganizationRecord = Depends(get_current_organization),
    store: Store = Depends(get_store),
) -> ApiResponse[TransactionListPayload]:
    """
    List transactions, newest first by default
    """
    try:
        payload = await TransactionService(store).list_transactions(
            current_org,
            page=paging.page,
            limit=paging.limit,
            start_date=start_date,
            end_date=end_date,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return ApiResponse(data=payload)

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error listing transactions for {current_org.id}: {e}")
        raise InternalError("Internal server error while listing transactions")


@router.get("/{transaction_id}", response_model=ApiResponse[TransactionPayload])
async def get_transaction(
    transaction_id: str,
    current_org: OrganizationRecord = Depends(get_current_organization),
    store: Store = Depends(get_store),
) -> ApiResponse[TransactionPayload]:
    """
    Get a single transaction
    """
    try:
        transaction = await TransactionService(store).get(current_org, transaction_id)
        return ApiResponse(data=TransactionPayload(transaction=transaction))

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error getting transaction {transaction_id}: {e}")
        raise InternalError("Failed to get transaction")


@router.put("/{transaction_id}", response_model=ApiResponse[TransactionPayload])
async def update_transaction(
    transaction_id: str,
    body: Dict[str, Any] = Body(...),
    current_org: OrganizationRecord = Depends(get_current_organization),
    store: Store = Depends(get_store),
) -> ApiResponse[TransactionPayload]:
    """
    Replace a transaction's metadata; amounts cannot be changed
    """
    try:
        update = parse_transaction_update(body)
        transaction = await TransactionService(store).update_metadata(current_org, transaction_id, update)
        return ApiResponse(data=TransactionPayload(transaction=transaction))

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error updating transaction {transaction_id}: {e}")
        raise InternalError("Failed to update transaction")


@router.delete("/{transaction_id}", response_model=ApiResponse[DeletedPayload])
async def delete_transaction(
    transaction_id: str,
    current_org: OrganizationRecord = Depends(get_admin_organization),
    store: Store = Depends(get_store),
) -> ApiResponse[DeletedPayload]:
    """
    Delete a transaction (admin only)
    """
    try:
        await TransactionService(store).delete(current_org, transaction_id)
        return ApiResponse(data=DeletedPayload(id=transaction_id))

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error deleting transaction {transaction_id}: {e}")
        raise InternalError("Failed to delete transaction")
