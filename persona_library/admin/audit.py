"""Append-only audit log of administrative actions."""

import logging
import time
from datetime import UTC
from datetime import datetime
from typing import Any

from persona_library.models.admin import AuditLogEntry
from persona_library.models.admin import TargetType
from persona_library.storage.documents import DocumentStore
from persona_library.storage.documents import new_document_id

logger = logging.getLogger(__name__)

AUDIT_COLLECTION = "admin/actions"


class AuditLog:
    """Records moderation actions at admin/actions/{id}.json."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def log_action(
        self,
        admin_id: str,
        action: str,
        target_type: TargetType,
        target_id: str,
        reason: str = "",
        details: dict[str, Any] | None = None,
        admin_email: str | None = None,
        impact: str = "low",
    ) -> AuditLogEntry | None:
        """Append an audit entry.

        Failures are logged and reported as None: by the time this runs the
        action being audited has already happened.

        Args:
            admin_id: Acting admin
            action: Action name (e.g. "flag_character")
            target_type: Kind of record acted on
            target_id: Id of the record acted on
            reason: Reason given by the admin
            details: Extra context such as the owning userId
            admin_email: Acting admin's email, if known
            impact: Severity label (low, medium, high, critical)

        Returns:
            The stored entry, or None if it could not be written
        """
        entry = AuditLogEntry(
            id=f"{int(time.time() * 1000)}_{new_document_id()[:9]}",
            admin_id=admin_id,
            admin_email=admin_email,
            action=action,
            target_type=target_type,
            target_id=target_id,
            reason=reason,
            details=details or {},
            impact=impact,
            timestamp=datetime.now(UTC),
        )
        try:
            self.store.write(AUDIT_COLLECTION, entry.id, entry)
        except Exception as e:
            logger.error(f"Failed to log admin action {action} on {target_type.value} {target_id}: {e}")
            return None

        logger.info(f"Admin action logged: {action} on {target_type.value} {target_id} by {admin_email or admin_id}")
        return entry

    def list_recent(
        self,
        limit: int = 20,
        target_type: TargetType | None = None,
        admin_id: str | None = None,
    ) -> list[AuditLogEntry]:
        """Most recent entries first, optionally filtered."""
        entries = self.store.list_documents(AUDIT_COLLECTION, AuditLogEntry)
        if target_type is not None:
            entries = [e for e in entries if e.target_type == target_type]
        if admin_id is not None:
            entries = [e for e in entries if e.admin_id == admin_id]

        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries[:limit]
