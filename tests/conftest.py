"""
Shared pytest fixtures for the persona chat test suite.

Provides fixtures for:
- Temporary storage directories
- Stores and managers with isolated storage
- Scripted model providers and frame sources
- Sample characters and sessions
"""

import tempfile
from collections.abc import AsyncIterator
from collections.abc import Generator
from pathlib import Path

import pytest

from persona_library.characters import CharacterManager
from persona_library.models.characters import Character
from persona_library.models.characters import CharacterCreate
from persona_library.models.characters import Tone
from persona_library.models.chat import ChatRequest
from persona_library.models.sessions import ChatSession
from persona_library.sessions import SessionManager
from persona_library.storage import DocumentStore


@pytest.fixture
def temp_storage_dir() -> Generator[Path, None, None]:
    """Create temporary storage directory for tests.

    Yields:
        Path to temporary directory that is cleaned up after test
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_storage_env(temp_storage_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point PERSONAD_HOME at a temporary directory.

    Returns:
        Path to temporary storage root
    """
    monkeypatch.setenv("PERSONAD_HOME", str(temp_storage_dir))
    for var in ("PERSONAD_CONFIG_DIR", "PERSONAD_STATE_DIR", "PERSONAD_LOG_DIR"):
        monkeypatch.delenv(var, raising=False)
    return temp_storage_dir


@pytest.fixture
def store(temp_storage_dir: Path) -> DocumentStore:
    return DocumentStore(temp_storage_dir / "state")


@pytest.fixture
def session_manager(store: DocumentStore) -> SessionManager:
    return SessionManager(store)


@pytest.fixture
def character_manager(store: DocumentStore, session_manager: SessionManager) -> CharacterManager:
    return CharacterManager(store, session_manager)


@pytest.fixture
def nova_data() -> CharacterCreate:
    return CharacterCreate(
        name="Nova",
        age=29,
        profession="Starship Pilot",
        tone=Tone.CASUAL,
        description="Grew up on a mining colony.",
    )


@pytest.fixture
def nova(character_manager: CharacterManager, nova_data: CharacterCreate) -> Character:
    """Character 'Nova' owned by user-1."""
    return character_manager.create_character("user-1", nova_data)


@pytest.fixture
def nova_session(session_manager: SessionManager, nova: Character) -> ChatSession:
    return session_manager.create_session("user-1", nova)


class ScriptedProvider:
    """Model provider that yields a fixed list of fragments.

    If ``fail_on_open`` is set, opening the stream raises RuntimeError. If
    ``fail_after`` is set, raises RuntimeError after that many fragments.
    """

    def __init__(self, fragments: list[str], fail_after: int | None = None, fail_on_open: bool = False) -> None:
        self.fragments = fragments
        self.fail_after = fail_after
        self.fail_on_open = fail_on_open
        self.calls: list[tuple[str, list, float]] = []

    async def open_stream(self, system_instruction, turns, temperature) -> AsyncIterator[str]:
        self.calls.append((system_instruction, list(turns), temperature))
        if self.fail_on_open:
            raise RuntimeError("model quota exceeded")
        return self._fragments()

    async def _fragments(self) -> AsyncIterator[str]:
        for index, fragment in enumerate(self.fragments):
            if self.fail_after is not None and index >= self.fail_after:
                raise RuntimeError("model connection reset")
            yield fragment
        if self.fail_after is not None and self.fail_after >= len(self.fragments):
            raise RuntimeError("model connection reset")


class ScriptedSource:
    """Frame source that replays raw event-stream lines."""

    def __init__(self, lines: list[str], error: Exception | None = None) -> None:
        self.lines = lines
        self.error = error
        self.requests: list[ChatRequest] = []
        self.closed = False

    async def open(self, request: ChatRequest) -> AsyncIterator[str]:
        self.requests.append(request)
        try:
            for line in self.lines:
                yield line
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


def frame_lines(*frames: str) -> list[str]:
    """Split formatted frames into the lines a transport would deliver."""
    lines: list[str] = []
    for frame in frames:
        lines.extend(frame.split("\n"))
    return lines


@pytest.fixture
def scripted_provider():
    return ScriptedProvider


@pytest.fixture
def scripted_source():
    return ScriptedSource


@pytest.fixture
def to_lines():
    return frame_lines
