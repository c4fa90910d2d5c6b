"""Shop-scoped authorization endpoints: staff permission catalogue and caller access."""

from fastapi import APIRouter, Depends

from brewrewards.api.deps import require_roles, require_shop_access
from brewrewards.auth.access import can_access_shop, can_modify_shop, has_permission
from brewrewards.auth.permissions import Permission, PERMISSION_GROUPS
from brewrewards.auth.principal import Principal
from brewrewards.auth.roles import (
    UserRole, StaffRole, STAFF_ROLE_DESCRIPTIONS, STAFF_ROLE_PERMISSIONS,
)

router = APIRouter(prefix="/api/shops/{shop_id}", tags=["shops"])

# Sub-roles a shop admin can hand out; OWNER comes only from the owner invitation
ASSIGNABLE_STAFF_ROLES = (StaffRole.MANAGER, StaffRole.BARISTA, StaffRole.CASHIER)


def _permission_groups() -> list[dict]:
    return [
        {
            "name": group["name"],
            "permissions": [{"id": perm.value, "label": label} for perm, label in group["permissions"]],
        }
        for group in PERMISSION_GROUPS
    ]


def _staff_roles() -> list[dict]:
    roles = []
    for role in ASSIGNABLE_STAFF_ROLES:
        name, description = STAFF_ROLE_DESCRIPTIONS[role]
        roles.append({
            "id": role.value,
            "name": name,
            "description": description,
            "permissions": sorted(p.value for p in STAFF_ROLE_PERMISSIONS[role]),
        })
    return roles


@router.get(
    "/staff/permissions",
    dependencies=[Depends(require_roles(UserRole.SUPER_ADMIN, UserRole.SHOP_ADMIN))],
)
async def staff_permission_catalogue(
    shop_id: str,
    principal: Principal = Depends(require_shop_access),
):
    """Permission groups and staff sub-role defaults for the invitation screens."""
    return {
        "success": True,
        "data": {
            "shopId": shop_id,
            "permissionGroups": _permission_groups(),
            "staffRoles": _staff_roles(),
            "allPermissions": [p.value for p in Permission],
        },
    }


@router.get("/access")
async def shop_access_summary(
    shop_id: str,
    principal: Principal = Depends(require_shop_access),
):
    """What the caller may do in this shop."""
    granted = [p.value for p in Permission if has_permission(principal, p, shop_id)]
    return {
        "success": True,
        "data": {
            "shopId": shop_id,
            "canAccess": can_access_shop(principal, shop_id),
            "canModify": can_modify_shop(principal, shop_id),
            "permissions": granted,
        },
    }
