"""
Billing models: invoices, line items and payments.
"""
from decimal import Decimal
from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Enum, Integer, Numeric
from sqlalchemy.orm import relationship
from dental_lab.db.base import Base
from dental_lab.models.enums import InvoiceStatus, PaymentMethod
from dental_lab.models.user import new_id
from dental_lab.utils.helpers import utcnow


class Invoice(Base):
    """Invoice raised against a case for a dentist."""
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=new_id)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)
    case_id = Column(String(36), ForeignKey("cases.id"), nullable=False, index=True)
    dentist_id = Column(String(36), ForeignKey("dentists.id"), nullable=False, index=True)

    # Money
    amount = Column(Numeric(12, 2), nullable=False)
    tax = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    total = Column(Numeric(12, 2), nullable=False)

    status = Column(
        Enum(InvoiceStatus, native_enum=False, length=20),
        default=InvoiceStatus.DRAFT,
        nullable=False,
        index=True
    )
    due_date = Column(DateTime)
    paid_date = Column(DateTime)
    description = Column(Text)
    notes = Column(Text)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    case = relationship("Case", back_populates="invoices")
    dentist = relationship("DentistProfile")
    items = relationship(
        "InvoiceItem", back_populates="invoice", cascade="all, delete-orphan",
        order_by="InvoiceItem.position"
    )
    payments = relationship(
        "Payment", back_populates="invoice", cascade="all, delete-orphan",
        order_by="Payment.created_at.desc()"
    )

    def __repr__(self):
        return f"<Invoice(id={self.id}, invoice_number='{self.invoice_number}', status={self.status})>"

    @property
    def is_paid(self) -> bool:
        return self.status == InvoiceStatus.PAID


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(String(36), primary_key=True, default=new_id)
    invoice_id = Column(String(36), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String(500), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)

    invoice = relationship("Invoice", back_populates="items")

    def __repr__(self):
        return f"<InvoiceItem(id={self.id}, description='{self.description}', total={self.total})>"


class Payment(Base):
    """Append-only payment record against an invoice."""
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=new_id)
    invoice_id = Column(String(36), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    method = Column(Enum(PaymentMethod, native_enum=False, length=20), nullable=False)
    reference = Column(String(255))
    notes = Column(Text)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    invoice = relationship("Invoice", back_populates="payments")

    def __repr__(self):
        return f"<Payment(id={self.id}, invoice_id={self.invoice_id}, amount={self.amount})>"
