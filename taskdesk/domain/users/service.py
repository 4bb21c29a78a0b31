from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from taskdesk.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, ROLE_ADMIN, ROLE_USER
from taskdesk.domain.common.errors import Conflict, FieldError, Forbidden, InvalidField, NotFound
from taskdesk.domain.common.models import Page, Principal
from taskdesk.domain.common.ports import Clock, IdGenerator
from taskdesk.domain.common.time import to_iso
from taskdesk.domain.tasks.query import resolve_page
from taskdesk.domain.users.models import User, UserCriteria
from taskdesk.domain.users.ports import AttemptCounter, PasswordHasher, UserRepository
from taskdesk.domain.users.rules import (
    email_errors,
    normalize_email,
    password_errors,
    role_errors,
    username_errors,
)

logger = logging.getLogger(__name__)


def require_admin(principal: Principal) -> None:
    if not principal.is_admin or not principal.is_active:
        logger.warning("Admin-only operation denied for principal=%s", principal.id)
        raise Forbidden("Admin access required.")


class IdentityService:
    """
    Accounts, credentials and roles. No SQL here; the repository does storage.
    """

    def __init__(
        self,
        users: UserRepository,
        hasher: PasswordHasher,
        attempts: AttemptCounter,
        clock: Clock,
        ids: IdGenerator,
        login_max_attempts: int = 5,
        login_window: timedelta = timedelta(minutes=15),
    ) -> None:
        self._users = users
        self._hasher = hasher
        self._attempts = attempts
        self._clock = clock
        self._ids = ids
        self._login_max_attempts = login_max_attempts
        self._login_window = login_window

    # ---- registration / login ----

    async def register(
        self, username: str, email: str, password: str, role: str = ROLE_USER
    ) -> User:
        errors = username_errors(username) + email_errors(email) + password_errors(password) + role_errors(role)
        if errors:
            raise InvalidField(errors)

        username = username.strip()
        email = normalize_email(email)
        if await self._users.email_taken(email):
            raise Conflict("User with this email already exists.")
        if await self._users.username_taken(username):
            raise Conflict("Username already taken.")

        now = self._clock.now()
        user = User(
            id=self._ids.new_id(),
            username=username,
            email=email,
            password_hash=self._hasher.hash(password),
            role=role,
            is_active=True,
            last_login_at=None,
            profile_image=None,
            created_at=now,
            updated_at=now,
        )
        await self._users.insert(user)
        logger.info("User registered id=%s username=%s role=%s", user.id, username, role)
        return await self._get(user.id)

    async def authenticate(
        self, email_or_username: str, password: str, client_key: Optional[str] = None
    ) -> User:
        login = (email_or_username or "").strip()
        key = client_key or login.lower()
        now = self._clock.now()

        recent = await self._attempts.count_since(key, to_iso(now - self._login_window))
        if recent >= self._login_max_attempts:
            logger.warning("Login throttled key=%s attempts=%s", key, recent)
            raise Forbidden("Too many login attempts. Try again later.")

        user = await self._users.find_by_login(login) if login else None
        if user is None or not self._hasher.verify(password or "", user.password_hash):
            await self._attempts.hit(key, to_iso(now))
            logger.warning("Failed login for %s", login)
            raise Forbidden("Invalid credentials.")
        if not user.is_active:
            raise Forbidden("Account is deactivated. Please contact an administrator.")

        await self._attempts.reset(key)
        await self._users.update_fields(user.id, {"last_login_at": to_iso(now)}, to_iso(now))
        logger.info("User logged in id=%s", user.id)
        return await self._get(user.id)

    async def principal_for(self, user_id: str) -> Principal:
        user = await self._users.get(user_id)
        if user is None or not user.is_active:
            raise NotFound(f"User {user_id} not found.")
        return user.to_principal()

    # ---- self-service ----

    async def _get(self, user_id: str) -> User:
        user = await self._users.get(user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found.")
        return user

    async def get_profile(self, principal: Principal) -> User:
        return await self._get(principal.id)

    async def update_profile(
        self,
        principal: Principal,
        username: Optional[str] = None,
        email: Optional[str] = None,
        current_password: Optional[str] = None,
        new_password: Optional[str] = None,
    ) -> User:
        user = await self._get(principal.id)
        errors: list[FieldError] = []
        fields: dict = {}

        if username is not None:
            errors += username_errors(username)
        if email is not None:
            errors += email_errors(email)
        if new_password is not None:
            errors += password_errors(new_password, "new_password")
            if not current_password:
                errors.append(FieldError("current_password", "is required to set a new password"))
            elif not self._hasher.verify(current_password, user.password_hash):
                errors.append(FieldError("current_password", "is incorrect"))
        if errors:
            raise InvalidField(errors)

        if username is not None and username.strip() != user.username:
            if await self._users.username_taken(username.strip(), exclude_id=user.id):
                raise Conflict("Username already taken.")
            fields["username"] = username.strip()
        if email is not None and normalize_email(email) != user.email:
            if await self._users.email_taken(normalize_email(email), exclude_id=user.id):
                raise Conflict("Email already in use.")
            fields["email"] = normalize_email(email)
        if new_password is not None:
            fields["password_hash"] = self._hasher.hash(new_password)

        await self._users.update_fields(user.id, fields, to_iso(self._clock.now()))
        logger.info("Profile updated id=%s fields=%s", user.id, sorted(fields))
        return await self._get(user.id)

    async def deactivate_self(self, principal: Principal) -> User:
        """Soft-delete the caller's own account. The last active admin cannot leave."""
        user = await self._get(principal.id)
        if not user.is_active:
            raise Forbidden("Account is deactivated.")
        if user.is_admin and await self._users.is_last_active_admin(user.id):
            logger.warning("Refused self-deactivation of last active admin id=%s", user.id)
            raise Conflict("At least one active admin must remain.")
        await self._users.update_fields(user.id, {"is_active": False}, to_iso(self._clock.now()))
        logger.info("User id=%s deactivated own account", user.id)
        return await self._get(user.id)

    async def set_profile_image(self, principal: Principal, reference: Optional[str]) -> User:
        """Attach an opaque storage reference (URL or id); its content is never read."""
        await self._get(principal.id)
        await self._users.update_fields(
            principal.id, {"profile_image": reference}, to_iso(self._clock.now())
        )
        return await self._get(principal.id)

    # ---- administration ----

    async def add_user(
        self, admin: Principal, username: str, email: str, password: str, role: str = ROLE_USER
    ) -> User:
        require_admin(admin)
        user = await self.register(username, email, password, role)
        logger.info("User id=%s added by admin=%s", user.id, admin.id)
        return user

    async def list_assignable_users(self, admin: Principal) -> list[User]:
        """Active regular users an admin can assign tasks to, by username."""
        require_admin(admin)
        users = await self._users.find_active_by_role(ROLE_USER)
        return sorted(users, key=lambda u: u.username.casefold())

    async def get_user(self, admin: Principal, user_id: str) -> User:
        require_admin(admin)
        return await self._get(user_id)

    async def list_users(
        self,
        admin: Principal,
        criteria: Optional[UserCriteria] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[User]:
        require_admin(admin)
        page, page_size = resolve_page(page, page_size, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)
        criteria = criteria or UserCriteria()
        total = await self._users.count(criteria)
        items = await self._users.find(criteria, offset=(page - 1) * page_size, limit=page_size)
        return Page(items=list(items), total=total, page=page, page_size=page_size)

    async def update_user(
        self,
        admin: Principal,
        user_id: str,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> User:
        """
        Change role and/or activation. Never leaves the system without an
        active admin, and an admin cannot deactivate their own account.
        """
        require_admin(admin)
        if role is not None and role_errors(role):
            raise InvalidField(role_errors(role))
        user = await self._get(user_id)

        if user_id == admin.id and is_active is False:
            raise Conflict("Cannot deactivate your own account.")

        demoting = role is not None and role != ROLE_ADMIN
        deactivating = is_active is False
        if user.is_admin and user.is_active and (demoting or deactivating):
            if await self._users.is_last_active_admin(user_id):
                logger.warning("Refused to remove last active admin id=%s (by %s)", user_id, admin.id)
                raise Conflict("At least one active admin must remain.")

        fields: dict = {}
        if role is not None:
            fields["role"] = role
        if is_active is not None:
            fields["is_active"] = bool(is_active)
        await self._users.update_fields(user_id, fields, to_iso(self._clock.now()))
        logger.info("User id=%s updated by admin=%s: %s", user_id, admin.id, fields)
        return await self._get(user_id)

    async def ensure_admin(self, username: str, email: str, password: str) -> Optional[User]:
        """Seed an admin account when none is active; used at startup."""
        if await self._users.find_active_by_role(ROLE_ADMIN):
            return None
        user = await self.register(username, email, password, ROLE_ADMIN)
        logger.info("Seeded initial admin id=%s", user.id)
        return user
