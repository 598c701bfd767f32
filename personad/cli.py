"""personachat CLI for daemon management and terminal chat.

Provides commands to start, stop, and inspect the daemon, manage characters,
and chat with a character from the terminal. Chat replies stream through the
completion gateway at gateway_url and are persisted to the same state
directory the daemon uses.
"""

import asyncio
import builtins
import contextlib
import subprocess
import sys
import time
from pathlib import Path

import click
import psutil
from pydantic import ValidationError

from persona_library.characters import CharacterManager
from persona_library.chat import ChatClient
from persona_library.chat import HttpFrameSource
from persona_library.chat import ReplyStatus
from persona_library.chat import StreamConsumer
from persona_library.config import PersonaSettings
from persona_library.config import load_config
from persona_library.models.characters import CharacterCreate
from persona_library.models.characters import Tone
from persona_library.models.sessions import Message
from persona_library.models.sessions import SenderProfile
from persona_library.sessions import SessionManager
from persona_library.sessions import resolve_chat_context
from persona_library.storage import DocumentStore
from persona_library.storage import get_log_dir
from persona_library.storage import get_state_dir

DAEMON_MODULE = "personad"


def find_daemon_processes() -> list[psutil.Process]:
    """Find all running daemon processes.

    Looks for processes matching 'python -m personad' pattern.
    Excludes the CLI itself and verifies processes are alive.

    Returns:
        List of daemon Process objects
    """
    current_pid = psutil.Process().pid
    daemon_processes = []

    for proc in psutil.process_iter(["pid", "cmdline", "status"]):
        try:
            if proc.info["pid"] == current_pid:
                continue

            if proc.info["status"] in (psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD):
                continue

            cmdline = proc.info["cmdline"]
            if not cmdline or len(cmdline) < 2:
                continue

            is_python = "python" in cmdline[0].lower()
            if not is_python or "-m" not in cmdline:
                continue

            module_index = cmdline.index("-m") + 1
            if module_index < len(cmdline) and cmdline[module_index] == DAEMON_MODULE and proc.is_running():
                daemon_processes.append(proc)

        except (psutil.NoSuchProcess, psutil.AccessDenied, ValueError, IndexError):
            continue

    return daemon_processes


def get_daemon_status() -> tuple[bool, int | None]:
    """Check if daemon is running.

    Returns:
        Tuple of (is_running, pid)
    """
    processes = find_daemon_processes()
    if processes:
        return True, processes[0].pid
    return False, None


def stop_process(proc: psutil.Process, name: str, timeout: int = 5) -> bool:
    """Stop a process gracefully.

    Args:
        proc: Process to stop
        name: Process name for logging
        timeout: Seconds to wait before force kill

    Returns:
        True if stopped successfully
    """
    try:
        click.echo(f"Stopping {name} (PID {proc.pid})...")
        proc.terminate()

        try:
            proc.wait(timeout=timeout)
            click.echo(f"{name} stopped successfully")
            return True
        except psutil.TimeoutExpired:
            click.echo(f"{name} did not stop gracefully, force killing...")
            proc.kill()
            proc.wait(timeout=2)
            click.echo(f"{name} force killed")
            return True

    except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
        click.echo(f"Failed to stop {name}: {e}", err=True)
        return False


def build_chat_client(settings: PersonaSettings) -> ChatClient:
    """Wire a chat client over the local store and the HTTP gateway."""
    store = DocumentStore(get_state_dir())
    sessions = SessionManager(store, summary_length=settings.summary_length)
    characters = CharacterManager(store, sessions)
    source = HttpFrameSource(settings.gateway_url, timeout_seconds=settings.stream_timeout_seconds)
    return ChatClient(characters, sessions, StreamConsumer(sessions, source))


class ReplyPrinter:
    """Echoes a growing AI message to the terminal as its text is overwritten."""

    def __init__(self, seen: set[str]) -> None:
        self.seen = set(seen)
        self.current_id: str | None = None
        self.printed = 0

    def __call__(self, messages: list[Message]) -> None:
        for message in messages:
            if not message.character or message.id in self.seen:
                continue
            if message.id != self.current_id:
                if self.current_id is not None:
                    click.echo()
                self.current_id = message.id
                self.printed = 0
            if len(message.text) > self.printed:
                click.echo(message.text[self.printed :], nl=False)
                self.printed = len(message.text)

    def finish(self) -> None:
        if self.current_id is not None:
            click.echo()
            self.seen.add(self.current_id)
        self.current_id = None
        self.printed = 0


@click.group()
def cli():
    """personachat - Persona chat daemon management and terminal chat."""
    pass


@cli.command()
def start():
    """Start the daemon in the background."""
    try:
        daemon_log = get_log_dir() / "daemon.log"

        daemon_running, daemon_pid = get_daemon_status()
        if daemon_running:
            click.echo(f"Daemon already running (PID {daemon_pid})")
            return

        click.echo("Starting daemon...")
        with builtins.open(str(daemon_log), "a") as log_file:
            subprocess.Popen(
                [sys.executable, "-m", DAEMON_MODULE],
                stdout=log_file,
                stderr=log_file,
                start_new_session=True,
            )

        for _ in range(10):
            time.sleep(0.5)
            daemon_running, daemon_pid = get_daemon_status()
            if daemon_running:
                click.echo(f"Daemon started (PID {daemon_pid}, logs: {daemon_log})")
                break
        else:
            click.echo("Warning: Daemon may not have started successfully", err=True)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.command()
def stop():
    """Stop the daemon."""
    daemon_processes = find_daemon_processes()
    if not daemon_processes:
        click.echo("Daemon not running")
        return

    for proc in daemon_processes:
        stop_process(proc, "daemon")


@cli.command()
@click.pass_context
def restart(ctx):
    """Restart the daemon."""
    click.echo("Restarting daemon...")
    ctx.invoke(stop)
    time.sleep(2)
    ctx.invoke(start)


@cli.command()
def status():
    """Show running status of the daemon."""
    daemon_running, daemon_pid = get_daemon_status()
    settings = load_config()

    click.echo("personad Status:")
    click.echo("-" * 40)

    if daemon_running:
        click.echo(f"Daemon:  ✓ Running (PID {daemon_pid})")
        click.echo(f"URL:     http://{settings.host}:{settings.port}")
    else:
        click.echo("Daemon:  ✗ Not running")
    click.echo(f"Model:   {settings.model}")
    click.echo(f"State:   {get_state_dir()}")


@cli.command()
def serve():
    """Run the daemon in the foreground."""
    from .__main__ import main as run_daemon

    run_daemon()


def show_log_file(log_file: Path, lines: int, follow: bool = False):
    """Display log file contents.

    Args:
        log_file: Path to log file
        lines: Number of lines to show
        follow: Whether to follow log output (like tail -f)
    """
    if not log_file.exists():
        click.echo(f"No logs found at {log_file}")
        return

    if follow:
        with contextlib.suppress(KeyboardInterrupt):
            subprocess.run(["tail", "-f", str(log_file)])
    else:
        with builtins.open(log_file) as f:
            for line in f.readlines()[-lines:]:
                click.echo(line.rstrip())


@cli.command()
@click.option("-f", "--follow", is_flag=True, help="Follow log output (like tail -f)")
@click.option("-n", "--lines", default=50, help="Number of lines to show")
def logs(follow: bool, lines: int):
    """View daemon logs."""
    show_log_file(get_log_dir() / "daemon.log", lines, follow)


@cli.group()
def characters():
    """Manage characters."""
    pass


@characters.command("list")
@click.option("--user", "user_id", required=True, help="Owner user id")
def list_characters(user_id: str):
    """List a user's characters, most recently used first."""
    client = build_chat_client(load_config())
    found = client.characters.list_characters(user_id)
    if not found:
        click.echo("No characters yet")
        return

    for character in found:
        flag = " [flagged]" if character.is_flagged else ""
        click.echo(f"{character.id}  {character.name} ({character.age}, {character.profession}, {character.tone.value}){flag}")


@characters.command("create")
@click.option("--user", "user_id", required=True, help="Owner user id")
@click.option("--name", required=True)
@click.option("--age", required=True, type=int)
@click.option("--profession", required=True)
@click.option("--tone", required=True, type=click.Choice([t.value for t in Tone]))
@click.option("--description", default="")
def create_character(user_id: str, name: str, age: int, profession: str, tone: str, description: str):
    """Create a character."""
    try:
        data = CharacterCreate(name=name, age=age, profession=profession, tone=Tone(tone), description=description)
    except ValidationError as e:
        click.echo(f"Error: invalid character: {e}", err=True)
        sys.exit(1)

    client = build_chat_client(load_config())
    character = client.characters.create_character(user_id, data)
    click.echo(f"Created {character.name} ({character.id})")


async def run_chat(client: ChatClient, user_id: str, session_id: str, character_name: str) -> None:
    """Read lines from stdin and stream each reply until EOF or /quit."""
    seen = {m.id for m in client.sessions.get_messages(user_id, session_id)}
    printer = ReplyPrinter(seen)
    unsubscribe = client.sessions.subscribe(user_id, session_id, printer)

    try:
        while True:
            try:
                text = await asyncio.to_thread(input, "you> ")
            except EOFError:
                break
            if text.strip() in ("/quit", "/exit"):
                break
            if not text.strip():
                continue

            click.echo(f"{character_name}> ", nl=False)
            try:
                result = await client.send_message(
                    user_id,
                    text,
                    session_id=session_id,
                    sender=SenderProfile(display_name=user_id),
                )
            except (ValueError, FileNotFoundError) as e:
                click.echo(f"\nError: {e}", err=True)
                break
            printer.finish()
            printer.seen.add(result.user_message.id)
            if result.reply.message_id is not None:
                printer.seen.add(result.reply.message_id)
            if result.reply.status != ReplyStatus.COMPLETE:
                click.echo(f"[{result.reply.status.value}: {result.reply.error}]", err=True)
    finally:
        unsubscribe()


@cli.command()
@click.option("--user", "user_id", required=True, help="User id to chat as")
@click.option("--character", "character_id", default=None, help="Start a new session with this character")
@click.option("--session", "session_id", default=None, help="Resume this session")
def chat(user_id: str, character_id: str | None, session_id: str | None):
    """Chat with a character in the terminal.

    Without --character or --session, resumes the latest session of the most
    recently used character.
    """
    settings = load_config()
    client = build_chat_client(settings)

    try:
        if character_id is not None and session_id is None:
            session = client.start_session(user_id, character_id)
        else:
            context = resolve_chat_context(client.characters, client.sessions, user_id, session_id=session_id)
            if context is None:
                click.echo("No characters yet. Create one with: personachat characters create", err=True)
                sys.exit(1)
            session = context.session
            if session is None:
                if context.character is None:
                    click.echo("Character not found", err=True)
                    sys.exit(1)
                session = client.start_session(user_id, context.character.id)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"{session.name} (session {session.id}). Type /quit to leave.")
    for message in client.sessions.get_messages(user_id, session.id):
        speaker = session.character_data.name if message.character else "you"
        click.echo(f"{speaker}> {message.text}")

    asyncio.run(run_chat(client, user_id, session.id, session.character_data.name))


def main():
    """Entry point for personachat CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nInterrupted")
        sys.exit(0)


if __name__ == "__main__":
    main()
