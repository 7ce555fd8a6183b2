"""
Shared query parameters
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Query

from roundup_api.api.v1.auth import get_app_settings
from roundup_api.core.config import Settings
from roundup_api.core.errors import InvalidInputError

# Database drivers bind OFFSET as a signed 64-bit integer
MAX_OFFSET = 2**63 - 1


@dataclass
class PageParams:
    page: int
    limit: int


def get_page_params(
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    settings: Settings = Depends(get_app_settings),
) -> PageParams:
    """Page and limit, bounded by the application's settings"""
    if limit is None:
        limit = settings.DEFAULT_PAGE_SIZE
    if limit > settings.MAX_PAGE_SIZE:
        raise InvalidInputError(f"limit must be between 1 and {settings.MAX_PAGE_SIZE}")

    max_page = MAX_OFFSET // limit
    if page > max_page:
        raise InvalidInputError(f"page must be between 1 and {max_page}")
    return PageParams(page=page, limit=limit)
