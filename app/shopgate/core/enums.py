"""Closed vocabularies shared by storage, services and the HTTP contract.

Grant rows are matched against these values by exact string, so the member
values are part of the published contract and must never be renamed.
"""

from enum import Enum


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    SHOP_OWNER = "SHOP_OWNER"
    SHOP_WORKER = "SHOP_WORKER"


class PrincipalStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    PENDING_VERIFICATION = "PENDING_VERIFICATION"


class ShopStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class SystemModule(str, Enum):
    PRODUCT_MANAGEMENT = "PRODUCT_MANAGEMENT"
    INVENTORY_MANAGEMENT = "INVENTORY_MANAGEMENT"
    POS_SYSTEM = "POS_SYSTEM"
    CUSTOMER_MANAGEMENT = "CUSTOMER_MANAGEMENT"
    SALES_REPORTS = "SALES_REPORTS"
    SUPPLIER_MANAGEMENT = "SUPPLIER_MANAGEMENT"
    PURCHASE_MANAGEMENT = "PURCHASE_MANAGEMENT"
    PAYMENT_PROCESSING = "PAYMENT_PROCESSING"
    DAILY_CLOSING = "DAILY_CLOSING"
    LOAN_MANAGEMENT = "LOAN_MANAGEMENT"
    REPAIR_MANAGEMENT = "REPAIR_MANAGEMENT"
    SERVICE_MANAGEMENT = "SERVICE_MANAGEMENT"
    BUSINESS_ANALYTICS = "BUSINESS_ANALYTICS"


class Permission(str, Enum):
    VIEW = "VIEW"
    CREATE = "CREATE"
    EDIT = "EDIT"
    DELETE = "DELETE"
    MANAGE = "MANAGE"


class ChangeType(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ApprovalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    APPLIED = "APPLIED"
    APPLY_FAILED = "APPLY_FAILED"


class DecisionOutcome(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"
    STATUS_CHANGE = "STATUS_CHANGE"
    ASSIGNMENT_STATUS_CHANGED = "ASSIGNMENT_STATUS_CHANGED"
    PERMISSIONS_UPDATED = "PERMISSIONS_UPDATED"
    REQUEST_SUBMITTED = "REQUEST_SUBMITTED"
    APPROVAL_REJECTED = "APPROVAL_REJECTED"
    APPROVAL_APPLIED = "APPROVAL_APPLIED"
    APPROVAL_APPLY_FAILED = "APPROVAL_APPLY_FAILED"


ACTION_FOR_CHANGE = {
    ChangeType.CREATE: Permission.CREATE,
    ChangeType.UPDATE: Permission.EDIT,
    ChangeType.DELETE: Permission.DELETE,
}

TERMINAL_APPROVAL_STATUSES = frozenset(
    {ApprovalStatus.APPLIED, ApprovalStatus.REJECTED, ApprovalStatus.APPLY_FAILED}
)
