"""
Identity provider interface and the in-memory demo directory.

Sign-in, password reset and token issuance belong to a managed user
directory. Routes only talk to ``IdentityProvider``; production wires in
an adapter for the managed directory, while local development and tests use
``InMemoryDirectory``, seeded with the demo accounts below.
"""

from __future__ import annotations

import logging
import secrets
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from passlib.context import CryptContext

from brewrewards.auth.permissions import Permission
from brewrewards.auth.roles import UserRole, StaffRole

logger = logging.getLogger(__name__)

_pwd_ctx = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class IdentityError(Exception):
    """Base class for identity provider failures."""


class InvalidCredentials(IdentityError):
    pass


class UserNotConfirmed(IdentityError):
    pass


class InvalidResetCode(IdentityError):
    pass


@dataclass
class DirectoryUser:
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    shop_id: str | None = None
    staff_role: str | None = None
    permissions: list[str] | None = None
    confirmed: bool = True
    password_hash: str = field(default="", repr=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role,
            "shopId": self.shop_id,
            "staffRole": self.staff_role,
        }


class IdentityProvider(ABC):
    @abstractmethod
    async def authenticate(self, email: str, password: str) -> DirectoryUser:
        """Return the account for valid credentials; raise ``InvalidCredentials`` / ``UserNotConfirmed``."""

    @abstractmethod
    async def request_password_reset(self, email: str) -> None:
        """Start a reset; raises ``IdentityError`` on failure (callers must not reveal it)."""

    @abstractmethod
    async def confirm_password_reset(self, email: str, code: str, new_password: str) -> None:
        """Finish a reset; raises ``InvalidResetCode`` for a wrong or missing code."""


class InMemoryDirectory(IdentityProvider):
    def __init__(self, users: list[DirectoryUser] | None = None):
        self._users: dict[str, DirectoryUser] = {}
        self._reset_codes: dict[str, str] = {}
        self._lock = threading.Lock()
        for user in users or []:
            self.add_user(user)

    def add_user(self, user: DirectoryUser, password: str | None = None) -> DirectoryUser:
        if password is not None:
            user.password_hash = _pwd_ctx.hash(password)
        self._users[user.email.lower()] = user
        return user

    def get(self, email: str) -> DirectoryUser | None:
        return self._users.get(email.lower())

    def pending_reset_code(self, email: str) -> str | None:
        return self._reset_codes.get(email.lower())

    async def authenticate(self, email: str, password: str) -> DirectoryUser:
        user = self.get(email)
        if user is None or not user.password_hash or not _pwd_ctx.verify(password, user.password_hash):
            raise InvalidCredentials("Incorrect username or password")
        if not user.confirmed:
            raise UserNotConfirmed("User is not confirmed")
        return user

    async def request_password_reset(self, email: str) -> None:
        if self.get(email) is None:
            raise IdentityError(f"No account for {email}")
        code = f"{secrets.randbelow(10**6):06d}"
        with self._lock:
            self._reset_codes[email.lower()] = code
        logger.info("Demo directory issued a password reset code for %s", email)

    async def confirm_password_reset(self, email: str, code: str, new_password: str) -> None:
        key = email.lower()
        with self._lock:
            expected = self._reset_codes.get(key)
            user = self._users.get(key)
            if user is None or expected is None or not secrets.compare_digest(expected, code):
                raise InvalidResetCode("Invalid verification code provided")
            del self._reset_codes[key]
        user.password_hash = _pwd_ctx.hash(new_password)


DEMO_PASSWORD = "password"


def demo_directory() -> InMemoryDirectory:
    """Directory with one account per role, all on ``shop_1`` where shop-bound."""
    directory = InMemoryDirectory()
    accounts = [
        DirectoryUser("user_1", "admin@example.com", "Admin", "User", UserRole.SUPER_ADMIN.value),
        DirectoryUser("user_2", "shop@example.com", "Shop", "Admin", UserRole.SHOP_ADMIN.value,
                      shop_id="shop_1"),
        DirectoryUser("user_3", "staff@example.com", "Staff", "User", UserRole.SHOP_STAFF.value,
                      shop_id="shop_1", staff_role=StaffRole.BARISTA.value,
                      permissions=[
                          Permission.CREATE_TRANSACTION.value,
                          Permission.VIEW_TRANSACTIONS.value,
                          Permission.VIEW_CUSTOMERS.value,
                          Permission.MANAGE_CUSTOMER_LOYALTY.value,
                          Permission.VIEW_MENU.value,
                      ]),
        DirectoryUser("user_4", "customer@example.com", "Casey", "Customer", UserRole.CUSTOMER.value),
    ]
    for account in accounts:
        directory.add_user(account, password=DEMO_PASSWORD)
    return directory
