"""
Unit tests for the admin layer: directory, moderation, audit log, analytics.
"""

from datetime import UTC
from datetime import date
from datetime import datetime

import pytest

from persona_library.admin import AdminDirectory
from persona_library.admin import AnalyticsService
from persona_library.admin import AuditLog
from persona_library.admin import ModerationService
from persona_library.models.admin import AdminRole
from persona_library.models.admin import AnalyticsEventType
from persona_library.models.admin import TargetType
from persona_library.models.sessions import Message
from persona_library.sessions import LegacyMessageReader
from persona_library.sessions import legacy_session_id


@pytest.fixture
def directory(store) -> AdminDirectory:
    directory = AdminDirectory(store)
    directory.set_role("admin-1", AdminRole.MODERATOR)
    directory.set_role("root", AdminRole.SUPER)
    return directory


@pytest.fixture
def audit(store) -> AuditLog:
    return AuditLog(store)


@pytest.fixture
def legacy(store) -> LegacyMessageReader:
    return LegacyMessageReader(store)


@pytest.fixture
def moderation(character_manager, session_manager, legacy, directory, audit) -> ModerationService:
    return ModerationService(character_manager, session_manager, legacy, directory, audit)


@pytest.fixture
def analytics(store, character_manager, session_manager, directory) -> AnalyticsService:
    return AnalyticsService(store, character_manager, session_manager, directory)


def write_legacy_message(store, user_id: str, message_id: str, text: str, minute: int) -> None:
    store.write(
        LegacyMessageReader.collection(user_id),
        message_id,
        Message(
            id=message_id,
            text=text,
            created_at=datetime(2023, 5, 1, 12, minute, tzinfo=UTC),
            uid=user_id,
        ),
    )


@pytest.mark.unit
class TestAdminDirectory:
    def test_unknown_user_defaults(self, directory: AdminDirectory) -> None:
        assert directory.role_of("nobody") == AdminRole.USER
        assert not directory.is_admin("nobody")
        assert not directory.is_blocked("nobody")

    def test_admin_roles(self, directory: AdminDirectory) -> None:
        assert directory.is_admin("admin-1")
        assert directory.is_admin("root")

    def test_record_login_creates_record(self, directory: AdminDirectory) -> None:
        user = directory.record_login("user-9", email="u9@example.com", display_name="Nine")

        assert user.last_login is not None
        assert directory.get_user("user-9").email == "u9@example.com"

    def test_list_users_includes_chat_only_users(self, directory: AdminDirectory, nova) -> None:
        uids = {user.uid for user in directory.list_users()}

        assert {"admin-1", "root", "user-1"} <= uids

    def test_blocked_admin_loses_privileges(self, directory: AdminDirectory) -> None:
        directory.block_user("admin-1", "", blocked_by="root")

        assert not directory.is_admin("admin-1")
        assert directory.get_user("admin-1").blocked_reason == "No reason provided"


@pytest.mark.unit
class TestModeration:
    def test_flag_character_is_audited(self, moderation: ModerationService, audit: AuditLog, nova) -> None:
        character = moderation.flag_character("admin-1", "user-1", nova.id, "inappropriate")

        assert character.is_flagged
        assert character.flagged_by == "admin-1"
        entries = audit.list_recent()
        assert len(entries) == 1
        assert entries[0].action == "flag_character"
        assert entries[0].target_type == TargetType.CHARACTER
        assert entries[0].details == {"userId": "user-1", "characterId": nova.id}

    def test_unflag_character_clears_fields(self, moderation: ModerationService, nova) -> None:
        moderation.flag_character("admin-1", "user-1", nova.id, "x")

        character = moderation.unflag_character("admin-1", "user-1", nova.id)

        assert not character.is_flagged
        assert character.flag_reason is None

    def test_non_admin_is_rejected(self, moderation: ModerationService, audit: AuditLog, nova) -> None:
        with pytest.raises(PermissionError):
            moderation.flag_character("user-1", "user-1", nova.id, "x")

        assert audit.list_recent() == []

    def test_delete_character_cascades(
        self, moderation: ModerationService, session_manager, audit: AuditLog, nova, nova_session
    ) -> None:
        assert moderation.delete_character("admin-1", "user-1", nova.id, "abuse") == 1

        assert session_manager.get_session("user-1", nova_session.id) is None
        entry = audit.list_recent()[0]
        assert entry.impact == "high"
        assert entry.details["sessionsRemoved"] == 1

    def test_flag_and_delete_session(self, moderation: ModerationService, session_manager, nova_session) -> None:
        flagged = moderation.flag_session("admin-1", "user-1", nova_session.id, "spam")
        assert flagged.is_flagged

        moderation.delete_session("admin-1", "user-1", nova_session.id, "spam")

        assert session_manager.get_session("user-1", nova_session.id) is None
        with pytest.raises(FileNotFoundError):
            moderation.delete_session("admin-1", "user-1", nova_session.id, "again")

    def test_legacy_session_listed_and_read_only(self, moderation: ModerationService, store, nova_session) -> None:
        write_legacy_message(store, "user-1", "m2", "second", 2)
        write_legacy_message(store, "user-1", "m1", "first", 1)
        legacy_id = legacy_session_id("user-1")

        sessions = moderation.list_user_sessions("admin-1", "user-1")
        legacy_view = next(s for s in sessions if s.id == legacy_id)

        assert legacy_view.name == "Legacy Messages"
        assert legacy_view.character_data.name == "Legacy Character"
        assert legacy_view.message_count == 2
        assert legacy_view.last_message == "second"
        assert [m.text for m in moderation.get_session_messages("admin-1", "user-1", legacy_id)] == ["first", "second"]
        with pytest.raises(ValueError):
            moderation.flag_session("admin-1", "user-1", legacy_id, "x")
        with pytest.raises(ValueError):
            moderation.delete_session("admin-1", "user-1", legacy_id, "x")

    def test_block_and_unblock_user(self, moderation: ModerationService, directory: AdminDirectory, nova) -> None:
        blocked = moderation.block_user("admin-1", "user-1", "harassment")

        assert blocked.is_blocked
        assert blocked.blocked_by == "admin-1"
        assert directory.is_blocked("user-1")

        moderation.unblock_user("admin-1", "user-1")
        assert not directory.is_blocked("user-1")

    def test_cannot_block_self(self, moderation: ModerationService) -> None:
        with pytest.raises(ValueError):
            moderation.block_user("admin-1", "admin-1", "oops")

    def test_block_unknown_user(self, moderation: ModerationService) -> None:
        with pytest.raises(FileNotFoundError):
            moderation.block_user("admin-1", "ghost", "x")

    def test_only_super_admin_sets_roles(self, moderation: ModerationService, audit: AuditLog, nova) -> None:
        with pytest.raises(PermissionError):
            moderation.set_role("admin-1", "user-1", AdminRole.SUPPORT)

        user = moderation.set_role("root", "user-1", AdminRole.SUPPORT, "new hire")

        assert user.role == AdminRole.SUPPORT
        entry = audit.list_recent()[0]
        assert entry.action == "make_admin"
        assert entry.impact == "critical"

    def test_remove_admin_action_name(self, moderation: ModerationService, audit: AuditLog) -> None:
        moderation.set_role("root", "admin-1", AdminRole.USER)

        assert audit.list_recent()[0].action == "remove_admin"


@pytest.mark.unit
class TestAuditLog:
    def test_list_recent_filters_and_orders(self, audit: AuditLog) -> None:
        audit.log_action("admin-1", "flag_character", TargetType.CHARACTER, "c1")
        audit.log_action("admin-2", "block_user", TargetType.USER, "u1")
        audit.log_action("admin-1", "flag_chat", TargetType.CHAT, "s1")

        assert [e.target_id for e in audit.list_recent()] == ["s1", "u1", "c1"]
        assert [e.target_id for e in audit.list_recent(target_type=TargetType.USER)] == ["u1"]
        assert [e.target_id for e in audit.list_recent(admin_id="admin-1")] == ["s1", "c1"]
        assert len(audit.list_recent(limit=1)) == 1

    def test_write_failure_returns_none(self, audit: AuditLog, monkeypatch: pytest.MonkeyPatch) -> None:
        def fail(*args, **kwargs):
            raise OSError("read-only filesystem")

        monkeypatch.setattr(audit.store, "write", fail)

        assert audit.log_action("admin-1", "flag_chat", TargetType.CHAT, "s1") is None


@pytest.mark.unit
class TestAnalytics:
    def test_events_roll_up_by_day_and_hour(self, analytics: AnalyticsService) -> None:
        at = datetime(2024, 3, 10, 14, 30, tzinfo=UTC)
        analytics.track_event(AnalyticsEventType.USER_SIGNUP, "u1", timestamp=at)
        analytics.track_event(AnalyticsEventType.USER_LOGIN, "u1", timestamp=at)
        analytics.track_event(AnalyticsEventType.MESSAGE_SENT, "u1", timestamp=at.replace(hour=9))

        daily = analytics.get_daily(date(2024, 3, 10))

        assert daily.new_users == 1
        assert daily.active_users == 1
        assert daily.messages_sent == 1
        assert daily.hourly_activity[14] == 2
        assert daily.hourly_activity[9] == 1
        assert daily.peak_hour == 14

    def test_summary_over_window(self, analytics: AnalyticsService) -> None:
        for day in (1, 2, 3):
            analytics.track_event(
                AnalyticsEventType.USER_LOGIN, "u1", timestamp=datetime(2024, 3, day, 8, tzinfo=UTC)
            )
        analytics.track_event(AnalyticsEventType.USER_LOGIN, "u1", timestamp=datetime(2023, 1, 1, tzinfo=UTC))

        summary = analytics.summary(days=30, today=date(2024, 3, 3))

        assert summary.total_active_users == 3
        assert summary.average_daily_users == 1
        assert summary.peak_usage_hours[8] == 3
        assert [d.date for d in summary.daily_trends] == ["2024-03-01", "2024-03-02", "2024-03-03"]

    def test_daily_range_is_inclusive(self, analytics: AnalyticsService) -> None:
        for day in (1, 2, 3, 4):
            analytics.track_event(AnalyticsEventType.CHAT_STARTED, "u1", timestamp=datetime(2024, 3, day, tzinfo=UTC))

        days = analytics.get_daily_range(date(2024, 3, 2), date(2024, 3, 3))

        assert [d.date for d in days] == ["2024-03-02", "2024-03-03"]

    def test_recent_events_filter(self, analytics: AnalyticsService) -> None:
        analytics.track_user_login("u1")
        analytics.track_character_created("u1", "c1", "Nova")

        created = analytics.recent_events(event_type=AnalyticsEventType.CHARACTER_CREATED)

        assert len(created) == 1
        assert created[0].metadata == {"characterId": "c1", "characterName": "Nova"}

    def test_tracking_failure_is_swallowed(self, analytics: AnalyticsService, monkeypatch) -> None:
        def fail(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(analytics.store, "write", fail)

        assert analytics.track_user_login("u1") is None

    def test_system_overview(
        self, analytics: AnalyticsService, moderation: ModerationService, session_manager, nova, nova_session
    ) -> None:
        session_manager.append_message("user-1", nova_session.id, "hi", "user-1")
        session_manager.update_summary("user-1", nova_session.id, "hi")
        moderation.flag_character("admin-1", "user-1", nova.id, "x")

        overview = analytics.system_overview()

        assert overview.total_characters == 1
        assert overview.total_sessions == 1
        assert overview.total_messages == 1
        assert overview.flagged_characters == 1
        assert overview.popular_characters[0].name == "Nova"
        assert overview.popular_characters[0].message_count == 1
