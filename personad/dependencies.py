"""Shared dependency factories for FastAPI endpoints.

Every factory is cached so the daemon holds exactly one instance of each
store and service; listeners registered on the session manager therefore
see writes from every router. Tests replace these through
app.dependency_overrides.
"""

from functools import lru_cache

from persona_library.admin import AdminDirectory
from persona_library.admin import AnalyticsService
from persona_library.admin import AuditLog
from persona_library.admin import ModerationService
from persona_library.characters import CharacterManager
from persona_library.chat import ChatClient
from persona_library.chat import StreamConsumer
from persona_library.config import PersonaSettings
from persona_library.config import load_config
from persona_library.sessions import LegacyMessageReader
from persona_library.sessions import SessionManager
from persona_library.storage import DocumentStore
from persona_library.storage import get_state_dir

from .services.gateway import CompletionGateway
from .services.gateway import GatewayFrameSource
from .services.provider import GeminiProvider
from .services.provider import ModelProvider
from .streaming import SessionEventHub


@lru_cache
def get_settings() -> PersonaSettings:
    """Get daemon settings (YAML + environment)."""
    return load_config()


@lru_cache
def get_document_store() -> DocumentStore:
    """Get the document store rooted at the state directory."""
    return DocumentStore(get_state_dir())


@lru_cache
def get_session_manager() -> SessionManager:
    return SessionManager(get_document_store(), summary_length=get_settings().summary_length)


@lru_cache
def get_character_manager() -> CharacterManager:
    return CharacterManager(get_document_store(), get_session_manager())


@lru_cache
def get_legacy_reader() -> LegacyMessageReader:
    return LegacyMessageReader(get_document_store())


@lru_cache
def get_admin_directory() -> AdminDirectory:
    return AdminDirectory(get_document_store())


@lru_cache
def get_audit_log() -> AuditLog:
    return AuditLog(get_document_store())


@lru_cache
def get_analytics_service() -> AnalyticsService:
    return AnalyticsService(
        get_document_store(),
        get_character_manager(),
        get_session_manager(),
        get_admin_directory(),
    )


@lru_cache
def get_moderation_service() -> ModerationService:
    return ModerationService(
        get_character_manager(),
        get_session_manager(),
        get_legacy_reader(),
        get_admin_directory(),
        get_audit_log(),
    )


@lru_cache
def get_model_provider() -> ModelProvider:
    """Get the Gemini provider.

    Raises:
        ProviderUnavailableError: If no API key is configured (not cached)
    """
    settings = get_settings()
    return GeminiProvider(api_key=settings.gemini_api_key, model=settings.model)


@lru_cache
def get_gateway() -> CompletionGateway:
    """Get the completion gateway. The provider is resolved per request."""
    return CompletionGateway(get_model_provider, temperature=get_settings().temperature)


@lru_cache
def get_chat_client() -> ChatClient:
    """Get the chat client that streams replies through the in-process gateway."""
    sessions = get_session_manager()
    consumer = StreamConsumer(sessions, GatewayFrameSource(get_gateway()))
    return ChatClient(get_character_manager(), sessions, consumer, get_analytics_service())


@lru_cache
def get_event_hub() -> SessionEventHub:
    """Get the hub that bridges store listeners to SSE subscribers."""
    return SessionEventHub(get_session_manager())
