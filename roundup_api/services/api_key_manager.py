"""
API Key Management Service
Generates organization API keys and resolves presented keys to organizations
"""

import hashlib
import secrets
from typing import Optional

from loguru import logger

from roundup_api.core.errors import ForbiddenError, UnauthenticatedError
from roundup_api.repositories.base import Store
from roundup_api.types import OrganizationRecord

API_KEY_HEADER = "x-api-key"


def generate_api_key() -> str:
    """Fresh random API key, 32 hex characters"""
    return secrets.token_hex(16)


def hash_api_key(api_key: str) -> str:
    """Digest under which a key is stored and looked up"""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


class APIKeyManager:
    """
    Directory of API keys backed by the organization store
    """

    def __init__(self, store: Store):
        self.store = store

    async def authenticate(self, api_key: Optional[str]) -> OrganizationRecord:
        """
        Resolve a presented key to its organization (the request principal)
        """
        api_key = (api_key or "").strip()
        if not api_key:
            raise UnauthenticatedError("API key is required")

        organization = await self.store.get_organization_by_api_key_hash(hash_api_key(api_key))
        if organization is None:
            logger.warning("Rejected request with an unknown API key")
            raise UnauthenticatedError("Invalid API key")

        return organization

    async def authenticate_admin(self, api_key: Optional[str]) -> OrganizationRecord:
        """
        Resolve a key that must belong to the admin organization
        """
        organization = await self.authenticate(api_key)
        if not organization.is_admin:
            raise ForbiddenError("Invalid admin API key")
        return organization
