"""
Shared types and data models for the Round-Up Donation API
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

T = TypeVar('T')

CENT = Decimal("0.01")


def format_money(value: Decimal) -> str:
    """Fixed two-decimal rendering used for every money field"""
    return str(Decimal(value).quantize(CENT))


# Enums
class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class CamelModel(BaseModel):
    """Model exchanged with API clients; JSON keys are camelCase"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Store records
class OrganizationRecord(BaseModel):
    """Organization as held by a store"""
    id: str
    name: str
    api_key_hash: str
    is_admin: bool = False
    created_at: datetime
    updated_at: datetime


class TransactionRecord(BaseModel):
    """Transaction as held by a store"""
    id: str
    organization_id: str
    original_amount: Decimal
    rounded_amount: Decimal
    donation_amount: Decimal
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class Page(BaseModel, Generic[T]):
    """One page of store results plus the unpaginated total"""
    items: List[T]
    total: int


class OrganizationQuery(BaseModel):
    """Validated parameters of an organization listing"""
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)
    search: Optional[str] = None
    sort_by: str = "created_at"
    sort_order: SortOrder = SortOrder.DESC


class TransactionQuery(BaseModel):
    """Validated parameters of a transaction listing or report"""
    organization_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)
    sort_by: str = "created_at"
    sort_order: SortOrder = SortOrder.DESC


class TransactionTotals(BaseModel):
    count: int = 0
    donation_sum: Decimal = Decimal("0")


# Request models
class OrganizationRegister(CamelModel):
    """Organization registration request"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Organization name is required")
        return v


class OrganizationUpdate(OrganizationRegister):
    """Organization update request; only the name can change"""


class AdminInitRequest(CamelModel):
    """One-time admin bootstrap request"""
    init_key: str = Field(..., min_length=1)


class TransactionCreate(CamelModel):
    """Transaction creation request"""
    original_amount: Any = None
    metadata: Optional[Dict[str, Any]] = None


class TransactionUpdate(CamelModel):
    """Transaction update request; metadata only"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    metadata: Dict[str, Any]


# Response models
class ApiResponse(BaseModel, Generic[T]):
    """Success envelope shared by every endpoint"""
    status: str = "success"
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    """Error envelope; ``fail`` for 4xx, ``error`` for 5xx"""
    status: str
    message: str


class Organization(CamelModel):
    """Organization as returned to callers"""
    id: str
    name: str
    is_admin: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: OrganizationRecord) -> "Organization":
        return cls(
            id=record.id,
            name=record.name,
            is_admin=record.is_admin,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class OrganizationWithKey(Organization):
    """Newly created organization, the only response carrying the API key"""
    api_key: str


class Transaction(CamelModel):
    """Transaction as returned to callers"""
    id: str
    organization_id: str
    original_amount: Decimal
    rounded_amount: Decimal
    donation_amount: Decimal
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    @field_serializer("original_amount", "rounded_amount", "donation_amount")
    def serialize_money(self, value: Decimal) -> str:
        return format_money(value)

    @classmethod
    def from_record(cls, record: TransactionRecord) -> "Transaction":
        return cls(**record.model_dump())


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class OrganizationPayload(CamelModel):
    organization: Organization


class RegisteredOrganizationPayload(CamelModel):
    organization: OrganizationWithKey


class AdminInitPayload(CamelModel):
    organization: OrganizationWithKey
    key_backed_up: bool


class OrganizationListPayload(CamelModel):
    organizations: List[Organization]
    pagination: Pagination


class TransactionPayload(CamelModel):
    transaction: Transaction


class TransactionListPayload(CamelModel):
    transactions: List[Transaction]
    pagination: Pagination


class TransactionReport(CamelModel):
    total_transactions: int
    total_donations: Decimal
    average_donation: Decimal

    @field_serializer("total_donations", "average_donation")
    def serialize_money(self, value: Decimal) -> str:
        return format_money(value)


class DeletedPayload(CamelModel):
    id: str
    deleted: bool = True
