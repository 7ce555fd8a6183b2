"""
Organization Service
Registration, lookup, renaming, listing, deletion and the admin bootstrap
"""

import math
import secrets
from typing import Optional

from loguru import logger

from roundup_api.core.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError, UnauthenticatedError
from roundup_api.core.secrets import ADMIN_API_KEY_SECRET, ADMIN_INIT_KEY_SECRET, SecretsStore
from roundup_api.repositories.base import RecordNotFound, Store, UniqueViolation
from roundup_api.services import access_policy
from roundup_api.services.api_key_manager import generate_api_key, hash_api_key
from roundup_api.types import (
    AdminInitPayload,
    Organization,
    OrganizationListPayload,
    OrganizationQuery,
    OrganizationRecord,
    OrganizationWithKey,
    Pagination,
    SortOrder,
)

# Query parameter name -> record attribute
ORGANIZATION_SORT_PARAMS = {
    "name": "name",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def parse_sort_order(value: Optional[str]) -> SortOrder:
    if value is None or value == "":
        return SortOrder.DESC
    try:
        return SortOrder(value.lower())
    except ValueError:
        raise InvalidInputError("sortOrder must be one of: asc, desc")


def pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


def _conflict(error: UniqueViolation, name: str) -> ConflictError:
    if error.field == "name":
        return ConflictError(f"Organization with name '{name}' already exists")
    if error.field == "is_admin":
        return ConflictError("Admin organization already exists")
    return ConflictError("Organization could not be created, please retry")


class OrganizationService:
    """Organization operations for an authenticated principal"""

    def __init__(self, store: Store, secrets_store: Optional[SecretsStore] = None):
        self.store = store
        self.secrets_store = secrets_store

    async def _create_with_key(self, name: str, is_admin: bool) -> OrganizationWithKey:
        api_key = generate_api_key()
        try:
            record = await self.store.create_organization(
                name=name,
                api_key_hash=hash_api_key(api_key),
                is_admin=is_admin,
            )
        except UniqueViolation as e:
            raise _conflict(e, name) from e

        return OrganizationWithKey(**Organization.from_record(record).model_dump(), api_key=api_key)

    async def register(self, principal: OrganizationRecord, name: str) -> OrganizationWithKey:
        """Register a regular organization; the returned key is never shown again"""
        access_policy.require_admin(principal, "Only administrators can register new organizations")
        name = (name or "").strip()
        if not name:
            raise InvalidInputError("Organization name is required")

        organization = await self._create_with_key(name, is_admin=False)
        logger.info(f"Organization {organization.id} ('{organization.name}') registered by {principal.id}")
        return organization

    async def get(self, principal: OrganizationRecord, organization_id: str) -> Organization:
        access_policy.authorize(principal, organization_id, "access")

        record = await self.store.get_organization(organization_id)
        if record is None:
            raise NotFoundError("Organization not found")
        return Organization.from_record(record)

    async def update(self, principal: OrganizationRecord, organization_id: str, name: str) -> Organization:
        access_policy.authorize(principal, organization_id, "update")
        name = (name or "").strip()
        if not name:
            raise InvalidInputError("Organization name is required")

        try:
            record = await self.store.update_organization(organization_id, name=name)
        except RecordNotFound as e:
            raise NotFoundError("Organization not found") from e
        except UniqueViolation as e:
            raise _conflict(e, name) from e
        return Organization.from_record(record)

    async def list_organizations(
        self,
        principal: OrganizationRecord,
        *,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> OrganizationListPayload:
        access_policy.require_admin(principal, "Only administrators can list organizations")

        sort_by = sort_by or "createdAt"
        if sort_by not in ORGANIZATION_SORT_PARAMS:
            raise InvalidInputError(
                f"Invalid sortBy field. Allowed: {', '.join(ORGANIZATION_SORT_PARAMS)}"
            )

        query = OrganizationQuery(
            page=page,
            limit=limit,
            search=(search or "").strip() or None,
            sort_by=ORGANIZATION_SORT_PARAMS[sort_by],
            sort_order=parse_sort_order(sort_order),
        )
        result = await self.store.list_organizations(query)
        return OrganizationListPayload(
            organizations=[Organization.from_record(r) for r in result.items],
            pagination=pagination(page, limit, result.total),
        )

    async def delete(self, principal: OrganizationRecord, organization_id: str) -> None:
        access_policy.require_admin(principal, "Only administrators can delete organizations")
        if organization_id == principal.id:
            raise ForbiddenError("The admin organization cannot be deleted")

        try:
            await self.store.delete_organization(organization_id)
        except RecordNotFound as e:
            raise NotFoundError("Organization not found") from e
        logger.info(f"Organization {organization_id} deleted by {principal.id}")

    async def initialize_admin(self, init_key: str, name: str) -> AdminInitPayload:
        """
        One-time bootstrap of the admin organization.

        The presented ``init_key`` must match the secret held in the secrets
        store. The new admin key is backed up into the secrets store on a
        best-effort basis: a failed backup is logged and reported, the admin
        organization is kept.
        """
        if self.secrets_store is None:
            raise UnauthenticatedError("Admin initialization is not configured")

        expected = self.secrets_store.get_secret(ADMIN_INIT_KEY_SECRET)
        if not expected or not init_key or not secrets.compare_digest(init_key.encode(), expected.encode()):
            logger.warning("Rejected admin initialization with an invalid key")
            raise UnauthenticatedError("Invalid initialization key")

        if await self.store.get_admin_organization() is not None:
            raise ConflictError("Admin organization already exists")

        organization = await self._create_with_key(name, is_admin=True)
        logger.info(f"Admin organization {organization.id} initialized")

        key_backed_up = True
        try:
            self.secrets_store.put_secret(ADMIN_API_KEY_SECRET, organization.api_key)
        except Exception as e:
            key_backed_up = False
            logger.error(f"Admin organization created but the API key backup failed: {e}")

        return AdminInitPayload(organization=organization, key_backed_up=key_backed_up)
