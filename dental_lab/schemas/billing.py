"""
Invoice and payment schemas.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import Field, field_validator

from dental_lab.models.enums import InvoiceStatus, PaymentMethod
from dental_lab.schemas.common import CamelModel, UTCDateTime, reject_null


class InvoiceItemCreate(CamelModel):
    description: str = Field(..., min_length=1, max_length=500)
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class InvoiceCreate(CamelModel):
    """Invoice amount and total are derived from the items and tax."""
    case_id: str = Field(..., min_length=1)
    dentist_id: str = Field(..., min_length=1)
    tax: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    due_date: Optional[UTCDateTime] = None
    items: List[InvoiceItemCreate] = Field(..., min_length=1)
    description: Optional[str] = None
    notes: Optional[str] = None


class InvoiceUpdate(CamelModel):
    """Only these fields may change after creation; totals never do."""
    status: Optional[InvoiceStatus] = None
    due_date: Optional[UTCDateTime] = None
    description: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def status_not_null(cls, v):
        return reject_null(v)


class InvoiceFilters(CamelModel):
    status: Optional[InvoiceStatus] = None
    dentist_id: Optional[str] = None
    case_id: Optional[str] = None


class InvoiceItemResponse(CamelModel):
    id: str
    description: str
    quantity: int
    unit_price: float
    total: float


class PaymentCreate(CamelModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    method: PaymentMethod
    reference: Optional[str] = None
    notes: Optional[str] = None


class PaymentResponse(CamelModel):
    id: str
    invoice_id: str
    amount: float
    method: PaymentMethod
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class InvoiceResponse(CamelModel):
    id: str
    invoice_number: str
    case_id: str
    dentist_id: str
    amount: float
    tax: float
    total: float
    status: InvoiceStatus
    due_date: Optional[datetime] = None
    paid_date: Optional[datetime] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class InvoiceDetailResponse(InvoiceResponse):
    items: List[InvoiceItemResponse] = []
    payments: List[PaymentResponse] = []


class BillingStats(CamelModel):
    total_invoices: int
    paid_amount: float
    pending_amount: float
