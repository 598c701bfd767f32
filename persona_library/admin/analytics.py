"""Product analytics: raw events, daily rollups and admin summaries.

Tracking is best effort. A failed analytics write is logged and never fails
the user action that triggered it.
"""

import logging
from collections import defaultdict
from datetime import UTC
from datetime import date
from datetime import datetime
from datetime import timedelta
from typing import Any

from persona_library.admin.users import AdminDirectory
from persona_library.characters.manager import CharacterManager
from persona_library.models.admin import AnalyticsEvent
from persona_library.models.admin import AnalyticsEventType
from persona_library.models.admin import AnalyticsSummary
from persona_library.models.admin import DailyAnalytics
from persona_library.models.admin import PopularCharacter
from persona_library.models.admin import SystemOverview
from persona_library.sessions.manager import SessionManager
from persona_library.storage.documents import DocumentStore
from persona_library.storage.documents import new_document_id

logger = logging.getLogger(__name__)

EVENTS_COLLECTION = "analytics/events"
DAILY_COLLECTION = "analytics/daily"

_COUNTERS = {
    AnalyticsEventType.USER_SIGNUP: "new_users",
    AnalyticsEventType.USER_LOGIN: "active_users",
    AnalyticsEventType.CHARACTER_CREATED: "characters_created",
    AnalyticsEventType.MESSAGE_SENT: "messages_sent",
    AnalyticsEventType.CHAT_STARTED: "chats_started",
}


class AnalyticsService:
    """Tracks events and answers the admin dashboard's analytics queries.

    Days and hours are bucketed in UTC.
    """

    def __init__(
        self,
        store: DocumentStore,
        characters: CharacterManager,
        sessions: SessionManager,
        directory: AdminDirectory,
    ) -> None:
        self.store = store
        self.characters = characters
        self.sessions = sessions
        self.directory = directory

    # --- Tracking ---

    def track_event(
        self,
        event_type: AnalyticsEventType,
        user_id: str,
        metadata: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
    ) -> AnalyticsEvent | None:
        """Store a raw event and fold it into its day's rollup.

        Returns:
            The stored event, or None if it could not be written
        """
        event = AnalyticsEvent(
            id=new_document_id(),
            type=event_type,
            user_id=user_id,
            timestamp=timestamp or datetime.now(UTC),
            metadata=metadata or {},
        )
        try:
            self.store.write(EVENTS_COLLECTION, event.id, event)
            self._update_daily(event)
        except Exception as e:
            logger.error(f"Error tracking analytics event {event_type.value} for {user_id}: {e}")
            return None
        return event

    def track_user_login(self, user_id: str) -> AnalyticsEvent | None:
        return self.track_event(AnalyticsEventType.USER_LOGIN, user_id)

    def track_user_signup(self, user_id: str) -> AnalyticsEvent | None:
        return self.track_event(AnalyticsEventType.USER_SIGNUP, user_id)

    def track_character_created(self, user_id: str, character_id: str, character_name: str) -> AnalyticsEvent | None:
        return self.track_event(
            AnalyticsEventType.CHARACTER_CREATED,
            user_id,
            {"characterId": character_id, "characterName": character_name},
        )

    def track_message_sent(self, user_id: str, character_id: str, message_length: int) -> AnalyticsEvent | None:
        return self.track_event(
            AnalyticsEventType.MESSAGE_SENT,
            user_id,
            {"characterId": character_id, "messageLength": message_length},
        )

    def track_chat_started(self, user_id: str, character_id: str, character_name: str) -> AnalyticsEvent | None:
        return self.track_event(
            AnalyticsEventType.CHAT_STARTED,
            user_id,
            {"characterId": character_id, "characterName": character_name},
        )

    # --- Queries ---

    def get_daily(self, day: date) -> DailyAnalytics | None:
        return self.store.read(DAILY_COLLECTION, day.isoformat(), DailyAnalytics)

    def get_daily_range(self, start: date, end: date) -> list[DailyAnalytics]:
        """Daily rollups with start <= date <= end, oldest first."""
        start_key, end_key = start.isoformat(), end.isoformat()
        days = [
            daily
            for daily in self.store.list_documents(DAILY_COLLECTION, DailyAnalytics)
            if start_key <= daily.date <= end_key
        ]
        days.sort(key=lambda d: d.date)
        return days

    def recent_events(self, event_type: AnalyticsEventType | None = None, limit: int = 100) -> list[AnalyticsEvent]:
        """Most recent raw events first."""
        events = self.store.list_documents(EVENTS_COLLECTION, AnalyticsEvent)
        if event_type is not None:
            events = [e for e in events if e.type == event_type]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    def summary(self, days: int = 30, today: date | None = None) -> AnalyticsSummary:
        """Totals over the last N days with hourly usage and a 7-day trend."""
        end = today or datetime.now(UTC).date()
        daily = self.get_daily_range(end - timedelta(days=days), end)

        peak_hours = [0] * 24
        for day in daily:
            for hour, activity in enumerate(day.hourly_activity):
                peak_hours[hour] += activity

        total_active = sum(d.active_users for d in daily)
        return AnalyticsSummary(
            total_new_users=sum(d.new_users for d in daily),
            total_active_users=total_active,
            total_characters_created=sum(d.characters_created for d in daily),
            total_messages_sent=sum(d.messages_sent for d in daily),
            total_chats_started=sum(d.chats_started for d in daily),
            average_daily_users=round(total_active / max(len(daily), 1)),
            peak_usage_hours=peak_hours,
            daily_trends=daily[-7:],
        )

    def system_overview(self, top: int = 10) -> SystemOverview:
        """Point-in-time totals computed from the stores."""
        users = self.directory.list_users()
        overview = SystemOverview(
            total_users=len(users),
            blocked_users=sum(1 for u in users if u.is_blocked),
        )

        popular: list[PopularCharacter] = []
        for user in users:
            characters = self.characters.list_characters(user.uid)
            sessions = self.sessions.list_sessions(user.uid)

            overview.total_characters += len(characters)
            overview.flagged_characters += sum(1 for c in characters if c.is_flagged)
            overview.total_sessions += len(sessions)
            overview.flagged_chats += sum(1 for s in sessions if s.is_flagged)

            per_character: dict[str, int] = defaultdict(int)
            for session in sessions:
                overview.total_messages += session.message_count
                per_character[session.character_id] += session.message_count

            popular.extend(
                PopularCharacter(
                    character_id=character.id,
                    user_id=user.uid,
                    name=character.name,
                    message_count=per_character.get(character.id, 0),
                )
                for character in characters
            )

        popular.sort(key=lambda p: p.message_count, reverse=True)
        overview.popular_characters = popular[:top]
        return overview

    # --- Helpers ---

    def _update_daily(self, event: AnalyticsEvent) -> None:
        timestamp = event.timestamp.astimezone(UTC)
        day = timestamp.date()

        daily = self.get_daily(day) or DailyAnalytics(date=day.isoformat())
        counter = _COUNTERS[event.type]
        setattr(daily, counter, getattr(daily, counter) + 1)

        daily.hourly_activity[timestamp.hour] += 1
        daily.peak_hour = daily.hourly_activity.index(max(daily.hourly_activity))

        self.store.write(DAILY_COLLECTION, daily.date, daily)
