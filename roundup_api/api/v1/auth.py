"""
Authentication dependencies
Resolve the x-api-key header to the organization making the request
"""

from typing import Optional

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader

from roundup_api.core.config import Settings
from roundup_api.core.secrets import SecretsStore
from roundup_api.repositories.base import Store
from roundup_api.services.api_key_manager import API_KEY_HEADER, APIKeyManager
from roundup_api.types import OrganizationRecord

# auto_error is off so a missing key gets our own 401 message
api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def get_store(request: Request) -> Store:
    """Store injected at application construction"""
    return request.app.state.store


def get_secrets_store(request: Request) -> Optional[SecretsStore]:
    return getattr(request.app.state, "secrets_store", None)


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with"""
    return request.app.state.settings


async def get_current_organization(
    api_key: Optional[str] = Security(api_key_header),
    store: Store = Depends(get_store),
) -> OrganizationRecord:
    """Any valid organization, admin or not"""
    return await APIKeyManager(store).authenticate(api_key)


async def get_admin_organization(
    api_key: Optional[str] = Security(api_key_header),
    store: Store = Depends(get_store),
) -> OrganizationRecord:
    """Only the admin organization"""
    return await APIKeyManager(store).authenticate_admin(api_key)
