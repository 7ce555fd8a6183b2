"""
SQLAlchemy models for the Round-Up Donation API
"""

from roundup_api.models.organization import Organization
from roundup_api.models.transaction import Transaction

__all__ = [
    "Organization",
    "Transaction",
]
