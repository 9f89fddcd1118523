"""
Security Core - role permissions for the voucher workflow.
Authentication lives upstream; this module only answers "may this role do that".
"""

from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    ACCOUNTING_MANAGER = "ACC_MGR"
    ACCOUNTANT = "ACCOUNTANT"
    VIEWER = "VIEWER"
    AUDITOR = "AUDITOR"


class Permission(str, Enum):
    VOUCHER_VIEW = "VOUCHER_VIEW"
    VOUCHER_CREATE = "VOUCHER_CREATE"
    VOUCHER_EDIT = "VOUCHER_EDIT"
    VOUCHER_DELETE = "VOUCHER_DELETE"
    VOUCHER_SUBMIT = "VOUCHER_SUBMIT"
    VOUCHER_APPROVE = "VOUCHER_APPROVE"
    VOUCHER_RESET_APPROVAL = "VOUCHER_RESET_APPROVAL"
    VOUCHER_REVERSE = "VOUCHER_REVERSE"
    LEASE_REVENUE_POST = "LEASE_REVENUE_POST"
    REPORT_VIEW = "REPORT_VIEW"


ROLE_PERMISSIONS: dict[UserRole, list[Permission]] = {
    UserRole.ADMIN: list(Permission),
    UserRole.ACCOUNTING_MANAGER: [
        Permission.VOUCHER_VIEW,
        Permission.VOUCHER_CREATE,
        Permission.VOUCHER_EDIT,
        Permission.VOUCHER_DELETE,
        Permission.VOUCHER_SUBMIT,
        Permission.VOUCHER_APPROVE,
        Permission.VOUCHER_RESET_APPROVAL,
        Permission.VOUCHER_REVERSE,
        Permission.LEASE_REVENUE_POST,
        Permission.REPORT_VIEW,
    ],
    UserRole.ACCOUNTANT: [
        Permission.VOUCHER_VIEW,
        Permission.VOUCHER_CREATE,
        Permission.VOUCHER_EDIT,
        Permission.VOUCHER_DELETE,
        Permission.VOUCHER_SUBMIT,
        Permission.LEASE_REVENUE_POST,
        Permission.REPORT_VIEW,
    ],
    UserRole.VIEWER: [Permission.VOUCHER_VIEW, Permission.REPORT_VIEW],
    UserRole.AUDITOR: [Permission.VOUCHER_VIEW, Permission.REPORT_VIEW],
}


class RBACService:
    def has_permission(self, role: UserRole, permission: Permission) -> bool:
        return permission in ROLE_PERMISSIONS.get(role, [])

    def get_user_permissions(self, role: UserRole) -> list[Permission]:
        return ROLE_PERMISSIONS.get(role, [])

    def can_approve(self, role: UserRole) -> bool:
        return self.has_permission(role, Permission.VOUCHER_APPROVE)

    def can_reverse(self, role: UserRole) -> bool:
        return self.has_permission(role, Permission.VOUCHER_REVERSE)
