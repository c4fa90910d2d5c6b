"""
Principal: the "who is asking, in which shop, with what permissions" value.

Every authorized request carries one. It holds:
- id: opaque account identifier
- role: platform role, or None when the forwarded role is not recognised
- shop_id: the single shop a SHOP_ADMIN / SHOP_STAFF belongs to
- staff_role: staff sub-role for SHOP_STAFF
- permission_source: where the staff permissions come from

Permissions are either listed explicitly by the identity provider or derived
from the staff sub-role. The source is a tagged union resolved once, when the
principal is built, with explicit always winning over derived.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Union

from brewrewards.auth.roles import UserRole, parse_user_role, permissions_for_staff_role


@dataclass(frozen=True)
class ExplicitPermissions:
    permissions: frozenset[str] = frozenset()


@dataclass(frozen=True)
class DerivedPermissions:
    staff_role: str | None = None


PermissionSource = Union[ExplicitPermissions, DerivedPermissions]


def resolve_permissions(source: PermissionSource) -> frozenset[str]:
    if isinstance(source, ExplicitPermissions):
        return frozenset(source.permissions)
    return frozenset(p.value for p in permissions_for_staff_role(source.staff_role))


@dataclass(frozen=True)
class Principal:
    id: str
    role: UserRole | None
    shop_id: str | None = None
    staff_role: str | None = None
    permission_source: PermissionSource = field(default_factory=DerivedPermissions)
    permissions: frozenset[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "permissions", resolve_permissions(self.permission_source))

    @classmethod
    def from_claims(
        cls,
        user_id: str,
        role: str | UserRole | None,
        shop_id: str | None = None,
        staff_role: str | None = None,
        permissions: Iterable[str] | None = None,
    ) -> Principal:
        """
        Build a principal from loose identity claims.

        ``permissions=None`` means "not supplied" and derives from the staff
        sub-role; any iterable, even an empty one, is an explicit list.
        """
        if permissions is None:
            source: PermissionSource = DerivedPermissions(staff_role)
        else:
            source = ExplicitPermissions(frozenset(permissions))
        return cls(
            id=user_id,
            role=parse_user_role(role),
            shop_id=shop_id or None,
            staff_role=staff_role or None,
            permission_source=source,
        )

    @property
    def is_explicit(self) -> bool:
        return isinstance(self.permission_source, ExplicitPermissions)

    @property
    def actor(self) -> str:
        """Identity string for audit logging."""
        role = self.role.value if self.role else "UNKNOWN"
        return f"{role}:{self.id}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role.value if self.role else None,
            "shopId": self.shop_id,
            "staffRole": self.staff_role,
            "permissions": sorted(self.permissions),
            "permissionSource": "explicit" if self.is_explicit else "derived",
        }
