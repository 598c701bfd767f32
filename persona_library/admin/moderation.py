"""Moderation actions on characters, chat sessions and users.

Every action checks that the acting user holds an admin role, that the
target exists, mutates the record, then appends an audit entry.
"""

import logging

from persona_library.admin.audit import AuditLog
from persona_library.admin.users import AdminDirectory
from persona_library.characters.manager import CharacterManager
from persona_library.models.admin import AdminRole
from persona_library.models.admin import AdminUser
from persona_library.models.admin import TargetType
from persona_library.models.characters import Character
from persona_library.models.sessions import ChatSession
from persona_library.models.sessions import Message
from persona_library.sessions.legacy import LegacyMessageReader
from persona_library.sessions.legacy import is_legacy_session_id
from persona_library.sessions.manager import SessionManager

logger = logging.getLogger(__name__)


class ModerationService:
    """Admin-facing operations over the character and conversation stores."""

    def __init__(
        self,
        characters: CharacterManager,
        sessions: SessionManager,
        legacy: LegacyMessageReader,
        directory: AdminDirectory,
        audit: AuditLog,
    ) -> None:
        self.characters = characters
        self.sessions = sessions
        self.legacy = legacy
        self.directory = directory
        self.audit = audit

    # --- Characters ---

    def flag_character(self, admin_id: str, user_id: str, character_id: str, reason: str) -> Character:
        """Flag a character for review.

        Raises:
            PermissionError: If admin_id is not an admin
            FileNotFoundError: If the character does not exist
        """
        admin = self._require_admin(admin_id)
        character = self.characters.set_flag(user_id, character_id, True, reason=reason, admin_id=admin_id)
        self._log(admin, "flag_character", TargetType.CHARACTER, character_id, reason, user_id, characterId=character_id)
        return character

    def unflag_character(self, admin_id: str, user_id: str, character_id: str, reason: str = "") -> Character:
        """Clear a character's flag along with its reason, time and author."""
        admin = self._require_admin(admin_id)
        character = self.characters.set_flag(user_id, character_id, False)
        self._log(admin, "unflag_character", TargetType.CHARACTER, character_id, reason, user_id, characterId=character_id)
        return character

    def delete_character(self, admin_id: str, user_id: str, character_id: str, reason: str) -> int:
        """Delete a character and cascade to its sessions and messages.

        Returns:
            Number of sessions removed
        """
        admin = self._require_admin(admin_id)
        removed = self.characters.delete_character(user_id, character_id)
        self._log(
            admin,
            "delete_character",
            TargetType.CHARACTER,
            character_id,
            reason,
            user_id,
            impact="high",
            characterId=character_id,
            sessionsRemoved=removed,
        )
        return removed

    def list_user_characters(self, admin_id: str, user_id: str) -> list[Character]:
        self._require_admin(admin_id)
        return self.characters.list_characters(user_id)

    # --- Chat sessions ---

    def flag_session(self, admin_id: str, user_id: str, session_id: str, reason: str) -> ChatSession:
        """Flag a chat session for review.

        Raises:
            PermissionError: If admin_id is not an admin
            ValueError: If the session is the synthetic legacy session
            FileNotFoundError: If the session does not exist
        """
        admin = self._require_admin(admin_id)
        self._reject_legacy(session_id)
        session = self.sessions.set_flag(user_id, session_id, True, reason=reason, admin_id=admin_id)
        self._log(admin, "flag_chat", TargetType.CHAT, session_id, reason, user_id, chatId=session_id)
        return session

    def unflag_session(self, admin_id: str, user_id: str, session_id: str, reason: str = "") -> ChatSession:
        admin = self._require_admin(admin_id)
        self._reject_legacy(session_id)
        session = self.sessions.set_flag(user_id, session_id, False)
        self._log(admin, "unflag_chat", TargetType.CHAT, session_id, reason, user_id, chatId=session_id)
        return session

    def delete_session(self, admin_id: str, user_id: str, session_id: str, reason: str) -> None:
        """Delete a chat session and its messages."""
        admin = self._require_admin(admin_id)
        self._reject_legacy(session_id)
        if not self.sessions.delete_session(user_id, session_id):
            raise FileNotFoundError(f"Session {session_id} not found")
        self._log(admin, "delete_chat", TargetType.CHAT, session_id, reason, user_id, impact="medium", chatId=session_id)

    def list_user_sessions(self, admin_id: str, user_id: str) -> list[ChatSession]:
        """A user's sessions, plus the synthetic legacy session if any."""
        self._require_admin(admin_id)
        sessions = self.sessions.list_sessions(user_id)
        legacy_session = self.legacy.session_view(user_id)
        if legacy_session is not None:
            sessions.append(legacy_session)
        return sessions

    def get_session_messages(self, admin_id: str, user_id: str, session_id: str) -> list[Message]:
        """Read any session's log, including the legacy one.

        Raises:
            FileNotFoundError: If the session does not exist
        """
        self._require_admin(admin_id)
        if is_legacy_session_id(session_id):
            return self.legacy.list_messages(user_id)
        self.sessions.require_session(user_id, session_id)
        return self.sessions.get_messages(user_id, session_id)

    # --- Users ---

    def block_user(self, admin_id: str, user_id: str, reason: str) -> AdminUser:
        """Block a user from sending messages.

        Raises:
            PermissionError: If admin_id is not an admin
            FileNotFoundError: If the user is unknown
            ValueError: If an admin tries to block themself
        """
        admin = self._require_admin(admin_id)
        if user_id == admin_id:
            raise ValueError("Admins cannot block themselves")
        self._require_user(user_id)

        user = self.directory.block_user(user_id, reason, blocked_by=admin_id)
        self._log(admin, "block_user", TargetType.USER, user_id, reason, user_id, impact="high", duration="permanent")
        return user

    def unblock_user(self, admin_id: str, user_id: str, reason: str = "") -> AdminUser:
        admin = self._require_admin(admin_id)
        self._require_user(user_id)

        user = self.directory.unblock_user(user_id)
        self._log(admin, "unblock_user", TargetType.USER, user_id, reason, user_id, impact="medium")
        return user

    def set_role(self, admin_id: str, user_id: str, role: AdminRole, reason: str = "") -> AdminUser:
        """Change a user's admin role. Only super admins may do this.

        Raises:
            PermissionError: If admin_id is not a super admin
            FileNotFoundError: If the user is unknown
        """
        admin = self._require_admin(admin_id)
        if admin.role != AdminRole.SUPER:
            raise PermissionError(f"User {admin_id} cannot change roles")
        self._require_user(user_id)

        user = self.directory.set_role(user_id, role)
        action = "remove_admin" if role == AdminRole.USER else "make_admin"
        self._log(admin, action, TargetType.USER, user_id, reason, user_id, impact="critical", adminLevel=role.value)
        return user

    # --- Helpers ---

    def _require_admin(self, admin_id: str) -> AdminUser:
        admin = self.directory.get_user(admin_id)
        if admin is None or not admin.is_admin or admin.is_blocked:
            logger.warning(f"Rejected moderation attempt by non-admin {admin_id}")
            raise PermissionError(f"User {admin_id} is not an admin")
        return admin

    def _require_user(self, user_id: str) -> None:
        if not self.directory.user_exists(user_id):
            raise FileNotFoundError(f"User {user_id} not found")

    @staticmethod
    def _reject_legacy(session_id: str) -> None:
        if is_legacy_session_id(session_id):
            raise ValueError("Legacy messages are read-only")

    def _log(
        self,
        admin: AdminUser,
        action: str,
        target_type: TargetType,
        target_id: str,
        reason: str,
        user_id: str,
        impact: str = "low",
        **details,
    ) -> None:
        self.audit.log_action(
            admin.uid,
            action,
            target_type,
            target_id,
            reason=reason,
            details={"userId": user_id, **details},
            admin_email=admin.email,
            impact=impact,
        )
