"""
Organization SQLAlchemy model
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Index, String, true
from sqlalchemy.orm import relationship

from roundup_api.core.database import Base

if TYPE_CHECKING:
    from roundup_api.models.transaction import Transaction


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every timestamp column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Organization(Base):
    """Organization model"""

    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name = Column(String(255), nullable=False, unique=True, index=True)
    # SHA-256 hex digest of the API key; the plaintext key is never stored
    api_key_hash = Column(String(64), nullable=False, unique=True, index=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow
    )

    # Relationships
    transactions = relationship(
        "Transaction",
        back_populates="organization",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        # At most one admin organization
        Index(
            "uq_organizations_single_admin",
            "is_admin",
            unique=True,
            sqlite_where=is_admin == true(),
            postgresql_where=is_admin == true(),
        ),
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name='{self.name}', is_admin={self.is_admin})>"
