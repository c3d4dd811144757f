"""
ORM models. Importing this package registers every mapper on ``Base.metadata``.
"""
from dental_lab.models.user import User, Role, Permission, RefreshSession, user_roles, role_permissions
from dental_lab.models.dentist import DentistProfile, DentistApplication
from dental_lab.models.staff import Department, StaffProfile
from dental_lab.models.case import Case, CaseFile, CaseNote
from dental_lab.models.workflow import WorkflowStage
from dental_lab.models.billing import Invoice, InvoiceItem, Payment
from dental_lab.models.setting import Setting

__all__ = [
    "User", "Role", "Permission", "RefreshSession", "user_roles", "role_permissions",
    "DentistProfile", "DentistApplication", "Department", "StaffProfile",
    "Case", "CaseFile", "CaseNote", "WorkflowStage",
    "Invoice", "InvoiceItem", "Payment", "Setting",
]
