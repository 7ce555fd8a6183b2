"""
Authorization rules applied to an authenticated principal
"""

from typing import Optional

from roundup_api.core.errors import ForbiddenError
from roundup_api.types import OrganizationRecord


def is_allowed(principal: OrganizationRecord, target_organization_id: str) -> bool:
    return principal.is_admin or principal.id == target_organization_id


def authorize(principal: OrganizationRecord, target_organization_id: str, action: str = "access") -> None:
    if not is_allowed(principal, target_organization_id):
        raise ForbiddenError(f"Not authorized to {action} this organization")


def require_admin(principal: OrganizationRecord, message: str = "Admin privileges required") -> None:
    if not principal.is_admin:
        raise ForbiddenError(message)


def scope_for(principal: OrganizationRecord) -> Optional[str]:
    """Organization id a query is narrowed to; None means unscoped (admin)"""
    return None if principal.is_admin else principal.id
