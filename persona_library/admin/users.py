"""Directory of account metadata used by the admin layer."""

import logging
from datetime import UTC
from datetime import datetime

from persona_library.models.admin import AdminRole
from persona_library.models.admin import AdminUser
from persona_library.storage.documents import DocumentStore

logger = logging.getLogger(__name__)

USERS_COLLECTION = "admin/users"


class AdminDirectory:
    """Account records at admin/users/{uid}.json.

    Users that have chat data but never logged in through the daemon have no
    record yet; they are listed with default values.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def get_user(self, uid: str) -> AdminUser | None:
        return self.store.read(USERS_COLLECTION, uid, AdminUser)

    def user_exists(self, uid: str) -> bool:
        """True if the user has an account record or any stored chat data."""
        return self.store.exists(USERS_COLLECTION, uid) or uid in self.store.list_children("users")

    def ensure_user(self, uid: str, email: str | None = None, display_name: str | None = None) -> AdminUser:
        """Get the account record, creating it with default role if missing."""
        user = self.get_user(uid)
        if user is not None:
            return user

        user = AdminUser(uid=uid, email=email, display_name=display_name)
        self.store.write(USERS_COLLECTION, uid, user)
        logger.info(f"Created account record for user {uid}")
        return user

    def list_users(self) -> list[AdminUser]:
        """Every known user, newest account first."""
        users = {user.uid: user for user in self.store.list_documents(USERS_COLLECTION, AdminUser)}
        for uid in self.store.list_children("users"):
            users.setdefault(uid, AdminUser(uid=uid))
        return sorted(users.values(), key=lambda u: u.created_at, reverse=True)

    def role_of(self, uid: str) -> AdminRole:
        user = self.get_user(uid)
        return user.role if user is not None else AdminRole.USER

    def is_admin(self, uid: str) -> bool:
        user = self.get_user(uid)
        return user is not None and user.is_admin and not user.is_blocked

    def is_blocked(self, uid: str) -> bool:
        user = self.get_user(uid)
        return user is not None and user.is_blocked

    def record_login(self, uid: str, email: str | None = None, display_name: str | None = None) -> AdminUser:
        """Stamp lastLogin, refreshing email and display name when given."""
        user = self.ensure_user(uid, email=email, display_name=display_name)
        user.last_login = datetime.now(UTC)
        if email:
            user.email = email
        if display_name:
            user.display_name = display_name
        self.store.write(USERS_COLLECTION, uid, user)
        return user

    def set_role(self, uid: str, role: AdminRole) -> AdminUser:
        user = self.ensure_user(uid)
        user.role = role
        self.store.write(USERS_COLLECTION, uid, user)
        return user

    def block_user(self, uid: str, reason: str, blocked_by: str) -> AdminUser:
        user = self.ensure_user(uid)
        user.is_blocked = True
        user.blocked_reason = reason or "No reason provided"
        user.blocked_at = datetime.now(UTC)
        user.blocked_by = blocked_by
        self.store.write(USERS_COLLECTION, uid, user)
        return user

    def unblock_user(self, uid: str) -> AdminUser:
        user = self.ensure_user(uid)
        user.is_blocked = False
        user.blocked_reason = None
        user.blocked_at = None
        user.blocked_by = None
        self.store.write(USERS_COLLECTION, uid, user)
        return user
