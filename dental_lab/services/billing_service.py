"""
Billing: invoices, payments and the one-way PAID ratchet.
"""
from decimal import Decimal
from typing import List, Optional, Tuple

from fastapi import BackgroundTasks
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from dental_lab.core.exceptions import DomainRuleError, NotFoundError
from dental_lab.core.logging import audit_logger, get_logger
from dental_lab.models.billing import Invoice, InvoiceItem, Payment
from dental_lab.models.case import Case
from dental_lab.models.dentist import DentistProfile
from dental_lab.models.enums import InvoiceStatus
from dental_lab.schemas.billing import (
    BillingStats, InvoiceCreate, InvoiceFilters, InvoiceUpdate, PaymentCreate
)
from dental_lab.services.email_service import EmailService, dispatch
from dental_lab.utils.helpers import generate_invoice_number, utcnow

logger = get_logger(__name__)

CENT = Decimal("0.01")
PENDING_STATUSES = (InvoiceStatus.ISSUED, InvoiceStatus.SENT, InvoiceStatus.OVERDUE)


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT)


class BillingService:
    """Service for invoices and payments."""

    def __init__(
        self,
        db: Session,
        email_service: Optional[EmailService] = None,
        background_tasks: Optional[BackgroundTasks] = None
    ):
        self.db = db
        self.email = email_service
        self.background_tasks = background_tasks

    def _get_invoice_or_404(self, invoice_id: str, for_update: bool = False) -> Invoice:
        query = self.db.query(Invoice).filter(Invoice.id == invoice_id)
        if for_update:
            query = query.with_for_update()
        invoice = query.first()
        if not invoice:
            raise NotFoundError("Invoice not found", code="INVOICE_NOT_FOUND")
        return invoice

    def create_invoice(self, data: InvoiceCreate) -> Invoice:
        """Create a DRAFT invoice; ``amount`` is the item sum and ``total`` adds tax."""
        if not self.db.query(Case.id).filter(Case.id == data.case_id).first():
            raise NotFoundError("Case not found", code="CASE_NOT_FOUND")
        if not self.db.query(DentistProfile.id).filter(DentistProfile.id == data.dentist_id).first():
            raise NotFoundError("Dentist not found", code="DENTIST_NOT_FOUND")

        items = [
            InvoiceItem(
                position=index,
                description=item.description,
                quantity=item.quantity,
                unit_price=_money(item.unit_price),
                total=_money(item.unit_price * item.quantity),
            )
            for index, item in enumerate(data.items)
        ]
        amount = sum((item.total for item in items), Decimal("0"))
        tax = _money(data.tax)

        invoice = Invoice(
            invoice_number=generate_invoice_number(),
            case_id=data.case_id,
            dentist_id=data.dentist_id,
            amount=amount,
            tax=tax,
            total=amount + tax,
            status=InvoiceStatus.DRAFT,
            due_date=data.due_date,
            description=data.description,
            notes=data.notes,
            items=items,
        )
        self.db.add(invoice)
        self.db.commit()
        self.db.refresh(invoice)

        audit_logger.log_data_change(None, "invoices", invoice.id, "create", {"total": str(invoice.total)})
        return invoice

    def get_invoice(self, invoice_id: str) -> Invoice:
        invoice = self.db.query(Invoice).options(
            selectinload(Invoice.items),
            selectinload(Invoice.payments)
        ).filter(Invoice.id == invoice_id).first()
        if not invoice:
            raise NotFoundError("Invoice not found", code="INVOICE_NOT_FOUND")
        return invoice

    def list_invoices(self, filters: InvoiceFilters, page: int, limit: int) -> Tuple[List[Invoice], int]:
        query = self.db.query(Invoice)
        if filters.status:
            query = query.filter(Invoice.status == filters.status)
        if filters.dentist_id:
            query = query.filter(Invoice.dentist_id == filters.dentist_id)
        if filters.case_id:
            query = query.filter(Invoice.case_id == filters.case_id)

        total = query.count()
        invoices = query.order_by(Invoice.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return invoices, total

    def update_invoice(self, invoice_id: str, data: InvoiceUpdate) -> Invoice:
        """Update status, due date, description or notes. Totals are never recomputed."""
        invoice = self._get_invoice_or_404(invoice_id, for_update=True)
        changes = data.model_dump(exclude_unset=True)
        old_status = invoice.status

        new_status = changes.get("status")
        if invoice.status == InvoiceStatus.PAID and new_status is not None and new_status != InvoiceStatus.PAID:
            raise DomainRuleError("Invoice has already been paid", code="INVOICE_ALREADY_PAID")

        for field, value in changes.items():
            setattr(invoice, field, value)
        if new_status == InvoiceStatus.PAID and old_status != InvoiceStatus.PAID:
            invoice.paid_date = utcnow()

        self.db.commit()
        self.db.refresh(invoice)
        if new_status and new_status != old_status:
            audit_logger.log_status_transition("invoices", invoice.id, old_status.value, invoice.status.value)
            dentist = invoice.dentist
            if new_status == InvoiceStatus.SENT and self.email and dentist and dentist.user:
                dispatch(
                    self.background_tasks, self.email.send_invoice_email,
                    dentist.user.email, invoice.invoice_number, f"{_money(invoice.total)}"
                )
        return invoice

    def delete_invoice(self, invoice_id: str) -> None:
        invoice = self._get_invoice_or_404(invoice_id)
        self.db.delete(invoice)
        self.db.commit()
        audit_logger.log_data_change(None, "invoices", invoice_id, "delete")

    def create_payment(self, invoice_id: str, data: PaymentCreate) -> Payment:
        """Record a payment and flip the invoice to PAID once it is covered.

        The invoice row stays locked from the read to the commit so concurrent
        payments serialise and the PAID transition happens exactly once.
        """
        invoice = self._get_invoice_or_404(invoice_id, for_update=True)

        payment = Payment(
            invoice_id=invoice.id,
            amount=_money(data.amount),
            method=data.method,
            reference=data.reference,
            notes=data.notes,
        )
        self.db.add(payment)
        self.db.flush()

        paid = self.db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
            Payment.invoice_id == invoice.id
        ).scalar()
        ratchet_fired = False
        if _money(paid) >= _money(invoice.total) and invoice.status != InvoiceStatus.PAID:
            old_status = invoice.status
            invoice.status = InvoiceStatus.PAID
            invoice.paid_date = utcnow()
            ratchet_fired = True

        self.db.commit()
        self.db.refresh(payment)

        audit_logger.log_data_change(None, "payments", payment.id, "create", {"invoiceId": invoice.id, "amount": str(payment.amount)})
        if ratchet_fired:
            audit_logger.log_status_transition("invoices", invoice.id, old_status.value, InvoiceStatus.PAID.value)
            dentist = invoice.dentist
            if self.email and dentist and dentist.user:
                dispatch(
                    self.background_tasks, self.email.send_payment_confirmation_email,
                    dentist.user.email, invoice.invoice_number, f"{_money(invoice.total)}"
                )
        return payment

    def list_payments(self, invoice_id: str) -> List[Payment]:
        self._get_invoice_or_404(invoice_id)
        return self.db.query(Payment).filter(
            Payment.invoice_id == invoice_id
        ).order_by(Payment.created_at.desc()).all()

    def get_billing_stats(self, dentist_id: Optional[str] = None) -> BillingStats:
        def scoped(query):
            if dentist_id:
                query = query.filter(Invoice.dentist_id == dentist_id)
            return query

        total_invoices = scoped(self.db.query(func.count(Invoice.id))).scalar() or 0
        paid_amount = scoped(
            self.db.query(func.coalesce(func.sum(Invoice.total), 0)).filter(Invoice.status == InvoiceStatus.PAID)
        ).scalar()
        pending_amount = scoped(
            self.db.query(func.coalesce(func.sum(Invoice.total), 0)).filter(Invoice.status.in_(PENDING_STATUSES))
        ).scalar()

        return BillingStats(
            total_invoices=total_invoices,
            paid_amount=float(_money(paid_amount)),
            pending_amount=float(_money(pending_amount)),
        )
