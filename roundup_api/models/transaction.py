"""
Transaction SQLAlchemy model
"""

from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from roundup_api.core.database import Base
from roundup_api.models.organization import utcnow

if TYPE_CHECKING:
    from roundup_api.models.organization import Organization


class Transaction(Base):
    """Purchase transaction with its computed round-up"""

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    organization_id = Column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    original_amount = Column(Numeric(12, 2), nullable=False)
    rounded_amount = Column(Numeric(12, 2), nullable=False)
    donation_amount = Column(Numeric(12, 2), nullable=False)
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON, nullable=False, default=lambda: {})
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow
    )

    # Relationships
    organization = relationship("Organization", back_populates="transactions")

    def __repr__(self) -> str:
        return (
            f"<Transaction(id={self.id}, organization_id={self.organization_id}, "
            f"original_amount={self.original_amount})>"
        )
