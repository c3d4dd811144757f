"""
Billing API endpoints: invoices, payments and stats.
"""
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, Query, status

from dental_lab.dependencies import get_billing_service, pagination_params
from dental_lab.models.enums import InvoiceStatus
from dental_lab.schemas.billing import (
    BillingStats, InvoiceCreate, InvoiceDetailResponse, InvoiceFilters, InvoiceResponse,
    InvoiceUpdate, PaymentCreate, PaymentResponse
)
from dental_lab.schemas.common import ApiResponse, Page
from dental_lab.services.billing_service import BillingService

router = APIRouter()


@router.post("/invoices", response_model=ApiResponse[InvoiceDetailResponse], status_code=status.HTTP_201_CREATED)
async def create_invoice(
    payload: InvoiceCreate,
    billing_service: BillingService = Depends(get_billing_service)
):
    """Create a DRAFT invoice with its line items."""
    invoice = billing_service.create_invoice(payload)
    return ApiResponse(data=InvoiceDetailResponse.model_validate(invoice), message="Invoice created successfully")


@router.get("/invoices", response_model=ApiResponse[Page[InvoiceResponse]])
async def list_invoices(
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    dentist_id: Optional[str] = Query(None, alias="dentistId"),
    case_id: Optional[str] = Query(None, alias="caseId"),
    paging: Tuple[int, int] = Depends(pagination_params),
    billing_service: BillingService = Depends(get_billing_service)
):
    page, limit = paging
    filters = InvoiceFilters(status=status_filter, dentist_id=dentist_id, case_id=case_id)
    invoices, total = billing_service.list_invoices(filters, page, limit)
    return ApiResponse(data=Page.build([InvoiceResponse.model_validate(i) for i in invoices], total, page, limit))


@router.get("/invoices/{invoice_id}", response_model=ApiResponse[InvoiceDetailResponse])
async def get_invoice(
    invoice_id: str,
    billing_service: BillingService = Depends(get_billing_service)
):
    invoice = billing_service.get_invoice(invoice_id)
    return ApiResponse(data=InvoiceDetailResponse.model_validate(invoice))


@router.put("/invoices/{invoice_id}", response_model=ApiResponse[InvoiceResponse])
async def update_invoice(
    invoice_id: str,
    payload: InvoiceUpdate,
    billing_service: BillingService = Depends(get_billing_service)
):
    invoice = billing_service.update_invoice(invoice_id, payload)
    return ApiResponse(data=InvoiceResponse.model_validate(invoice), message="Invoice updated successfully")


@router.delete("/invoices/{invoice_id}", response_model=ApiResponse[None])
async def delete_invoice(
    invoice_id: str,
    billing_service: BillingService = Depends(get_billing_service)
):
    billing_service.delete_invoice(invoice_id)
    return ApiResponse(message="Invoice deleted successfully")


@router.post(
    "/invoices/{invoice_id}/payments",
    response_model=ApiResponse[PaymentResponse],
    status_code=status.HTTP_201_CREATED
)
async def create_payment(
    invoice_id: str,
    payload: PaymentCreate,
    billing_service: BillingService = Depends(get_billing_service)
):
    """Record a payment; the invoice becomes PAID once fully covered."""
    payment = billing_service.create_payment(invoice_id, payload)
    return ApiResponse(data=PaymentResponse.model_validate(payment), message="Payment recorded successfully")


@router.get("/invoices/{invoice_id}/payments", response_model=ApiResponse[List[PaymentResponse]])
async def list_payments(
    invoice_id: str,
    billing_service: BillingService = Depends(get_billing_service)
):
    payments = billing_service.list_payments(invoice_id)
    return ApiResponse(data=[PaymentResponse.model_validate(p) for p in payments])


@router.get("/stats", response_model=ApiResponse[BillingStats])
async def get_billing_stats(
    dentist_id: Optional[str] = Query(None, alias="dentistId"),
    billing_service: BillingService = Depends(get_billing_service)
):
    return ApiResponse(data=billing_service.get_billing_stats(dentist_id))
