"""
Organizations API endpoints
Handle organization registration, lookup and management
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from loguru import logger

from roundup_api.api.v1.auth import (
    get_admin_organization,
    get_app_settings,
    get_current_organization,
    get_secrets_store,
    get_store,
)
from roundup_api.api.v1.params import PageParams, get_page_params
from roundup_api.core.config import Settings
from roundup_api.core.errors import AppError, InternalError
from roundup_api.core.secrets import SecretsStore
from roundup_api.repositories.base import Store
from roundup_api.services.organizations import OrganizationService
from roundup_api.types import (
    AdminInitPayload,
    AdminInitRequest,
    ApiResponse,
    DeletedPayload,
    OrganizationListPayload,
    OrganizationPayload,
    OrganizationRecord,
    OrganizationRegister,
    OrganizationUpdate,
    RegisteredOrganizationPayload,
)

router = APIRouter()


@router.post("/register", status_code=201, response_model=ApiResponse[RegisteredOrganizationPayload])
async def register_organization(
    request: OrganizationRegister,
    current_org: OrganizationRecord = Depends(get_admin_organization),
    store: Store = Depends(get_store),
) -> ApiResponse[RegisteredOrganizationPayload]:
    """
    Register a new organization (admin only)

    The response is the only place the new organization's API key is shown.
    """
    try:
        organization = await OrganizationService(store).register(current_org, request.name)
        return ApiResponse(data=RegisteredOrganizationPayload(organization=organization))

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error registering organization: {e}")
        raise InternalError("Failed to create organization")


@router.post("/init-admin", status_code=201, response_model=ApiResponse[AdminInitPayload])
async def init_admin(
    request: AdminInitRequest,
    store: Store = Depends(get_store),
    secrets_store: Optional[SecretsStore] = Depends(get_secrets_store),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[AdminInitPayload]:
    """
    Create the admin organization (one time, authorized by the init key)
    """
    try:
        payload = await OrganizationService(store, secrets_store).initialize_admin(
            request.init_key,
            settings.ADMIN_ORGANIZATION_NAME,
        )
        return ApiResponse(data=payload)

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error initializing admin organization: {e}")
        raise InternalError("Failed to initialize admin organization")


@router.get("", response_model=ApiResponse[OrganizationListPayload])
async def list_organizations(
    paging: PageParams = Depends(get_page_params),
    search: Optional[str] = Query(default=None, max_length=255),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    current_org: OrganizationRecord = Depends(get_admin_organization),
    store: Store = Depends(get_store),
) -> ApiResponse[OrganizationListPayload]:
    """
    List organizations (admin only)
    """
    try:
        payload = await OrganizationService(store).list_organizations(
            current_org,
            page=paging.page,
            limit=paging.limit,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return ApiResponse(data=payload)

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error listing organizations: {e}")
        raise InternalError("Internal server error while listing organizations")


@router.get("/{org_id}", response_model=ApiResponse[OrganizationPayload])
async def get_organization(
    org_id: str,
    current_org: OrganizationRecord = Depends(get_current_organization),
    store: Store = Depends(get_store),
) -> ApiResponse[OrganizationPayload]:
    """
    Get organization details
    """
    try:
        organization = await OrganizationService(store).get(current_org, org_id)
        return ApiResponse(data=OrganizationPayload(organization=organization))

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error getting organization {org_id}: {e}")
        raise InternalError("Failed to get organization")


@router.put("/{org_id}", response_model=ApiResponse[OrganizationPayload])
async def update_organization(
    org_id: str,
    request: OrganizationUpdate,
    current_org: OrganizationRecord = Depends(get_current_organization),
    store: Store = Depends(get_store),
) -> ApiResponse[OrganizationPayload]:
    """
    Rename an organization
    """
    try:
        organization = await OrganizationService(store).update(current_org, org_id, request.name)
        return ApiResponse(data=OrganizationPayload(organization=organization))

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error updating organization {org_id}: {e}")
        raise InternalError("Failed to update organization")


@router.delete("/{org_id}", response_model=ApiResponse[DeletedPayload])
async def delete_organization(
    org_id: str,
    current_org: OrganizationRecord = Depends(get_admin_organization),
    store: Store = Depends(get_store),
) -> ApiResponse[DeletedPayload]:
    """
    Delete an organization and all of its transactions (admin only)
    """
    try:
        await OrganizationService(store).delete(current_org, org_id)
        return ApiResponse(data=DeletedPayload(id=org_id))

    except AppError:
        raise
    except Exception as e:
        logger.error(f"Error deleting organization {org_id}: {e}")
        raise InternalError("Failed to delete organization")
