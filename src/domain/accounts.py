"""
Account management: registration, credential checks, profile updates.

Passwords are stored as ``<scrypt hex digest>.<hex salt>`` and compared
in constant time.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from typing import Any, Optional

from .entities import User
from .errors import AuthorizationError, StateError, ValidationError
from .ports import RideStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
PROFILE_FIELDS = {
    "full_name",
    "whatsapp_number",
    "phone_number",
    "payment_handle",
    "company_name",
    "vendor_details",
}


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    digest = hashlib.scrypt(password.encode(), salt=salt, n=2**14, r=8, p=1, dklen=64)
    return f"{digest.hex()}.{salt.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        digest_hex, salt_hex = stored.split(".")
    except ValueError:
        return False
    supplied = hashlib.scrypt(
        password.encode(), salt=bytes.fromhex(salt_hex), n=2**14, r=8, p=1, dklen=64
    )
    return hmac.compare_digest(supplied.hex(), digest_hex)


def _check_password(password: str, field: str = "password") -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            field, f"must be at least {MIN_PASSWORD_LENGTH} characters"
        )


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class AccountService:
    def __init__(self, store: RideStore):
        self.store = store

    async def register(
        self, *, username: str, password: str, **profile: Any
    ) -> User:
        if not username.strip():
            raise ValidationError("username", "must not be empty")
        _check_password(password)
        if await self.store.get_user_by_username(username):
            raise StateError("username_taken", "Username already exists")

        is_vendor = bool(profile.pop("is_vendor", False))
        unknown = set(profile) - PROFILE_FIELDS
        if unknown:
            raise ValidationError(sorted(unknown)[0], "unknown profile field")

        user = await self.store.create_user(
            User(
                username=username,
                password_hash=hash_password(password),
                is_vendor=is_vendor,
                **{k: _blank_to_none(v) for k, v in profile.items()},
            )
        )
        await self.store.commit()
        logger.info("Registered user %d (%s)", user.id, username)
        return user

    async def authenticate(self, username: str, password: str) -> Optional[User]:
        user = await self.store.get_user_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user

    async def update_profile(self, user_id: int, changes: dict[str, Any]) -> User:
        unknown = set(changes) - PROFILE_FIELDS
        if unknown:
            raise ValidationError(sorted(unknown)[0], "field is not editable")
        user = await self.store.get_user(user_id)
        if user is None:
            raise AuthorizationError("Unknown user")
        for key, value in changes.items():
            setattr(user, key, _blank_to_none(value))
        user = await self.store.update_user(user)
        await self.store.commit()
        return user

    async def change_password(
        self, user_id: int, current_password: str, new_password: str
    ) -> None:
        user = await self.store.get_user(user_id)
        if user is None or not verify_password(current_password, user.password_hash):
            raise AuthorizationError("Current password is incorrect")
        _check_password(new_password, "new_password")
        user.password_hash = hash_password(new_password)
        await self.store.update_user(user)
        await self.store.commit()
        logger.info("Password changed for user %d", user_id)
