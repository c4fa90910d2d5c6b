from brewrewards.auth.permissions import Permission, ALL_PERMISSIONS
from brewrewards.auth.roles import UserRole, StaffRole, STAFF_ROLE_PERMISSIONS, permissions_for_staff_role
from brewrewards.auth.principal import Principal, ExplicitPermissions, DerivedPermissions
from brewrewards.auth.access import (
    can_access_shop, can_modify_shop, has_permission,
    has_any_permission, has_all_permissions, owns_record,
)
from brewrewards.auth.adapter import Authorized, Rejected, RejectionReason, authorize

__all__ = [
    "Permission", "ALL_PERMISSIONS",
    "UserRole", "StaffRole", "STAFF_ROLE_PERMISSIONS", "permissions_for_staff_role",
    "Principal", "ExplicitPermissions", "DerivedPermissions",
    "can_access_shop", "can_modify_shop", "has_permission",
    "has_any_permission", "has_all_permissions", "owns_record",
    "Authorized", "Rejected", "RejectionReason", "authorize",
]
