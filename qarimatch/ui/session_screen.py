"""Interactive terminal screen driving a recitation session."""

import asyncio
import logging
from dataclasses import replace
from typing import Dict, List, Optional

from pubsub import pub
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from ..audio.playback import ArtifactPlayer
from ..models.events import SessionEvent
from ..models.matches import VoiceMatch
from ..models.session import SessionPhase, SessionStatus
from ..services.session_manager import RecitationSession
from ..storage.file_manager import FileManager
from .keyboard_input import create_input_handler


logger = logging.getLogger(__name__)


def format_time(seconds: int) -> str:
    """Format whole seconds as m:ss."""
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


PHASE_TITLES = {
    SessionPhase.IDLE: ("Ready to Record", "bold green"),
    SessionPhase.RECORDING: ("Recording...", "bold red"),
    SessionPhase.REVIEWING: ("Recording Complete", "bold yellow"),
    SessionPhase.VALIDATING: ("Checking Recording...", "bold yellow"),
    SessionPhase.ANALYZING: ("Analyzing Your Recitation", "bold blue"),
    SessionPhase.RESULTS: ("Your Qari Matches", "bold magenta"),
}

COMMANDS = {
    SessionPhase.IDLE: [("1", "Start recording")],
    SessionPhase.RECORDING: [("2", "Stop recording")],
    SessionPhase.REVIEWING: [("3", "Analyze"), ("1", "Record again"), ("4", "Discard"),
                             ("5", "Export"), ("6", "Play")],
    SessionPhase.VALIDATING: [],
    SessionPhase.ANALYZING: [],
    SessionPhase.RESULTS: [("5", "Export"), ("6", "Play")],
}


def render_level_bar(level: float, width: int = 20) -> str:
    filled = int(round(max(0.0, min(level, 1.0)) * width))
    return "█" * filled + "·" * (width - filled)


def render_matches(matches: List[VoiceMatch]) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Qari")
    table.add_column("Country")
    table.add_column("Match", justify="right")
    table.add_column("About")
    for rank, match in enumerate(matches, start=1):
        table.add_row(str(rank), match.name, match.country,
                      f"{match.rounded_similarity}%", match.description)
    return table


def render_status(status: SessionStatus, notice: Optional[str] = None) -> Panel:
    """Build the renderable for one session snapshot."""
    title, style = PHASE_TITLES[status.phase]
    parts = [Text(title, style=style)]

    if status.phase == SessionPhase.RECORDING:
        parts.append(Text(format_time(status.elapsed_seconds), style="bold green"))
        parts.append(Text(f"Maximum: {format_time(status.max_duration_seconds)} minutes", style="dim"))
        parts.append(Text(f"Level [{render_level_bar(status.current_level)}] {status.current_level:.3f}"))
    elif status.phase == SessionPhase.REVIEWING and status.has_recording:
        parts.append(Text(f"Recorded {format_time(status.elapsed_seconds)} "
                          f"({status.artifact_size_bytes} bytes)"))
    elif status.phase == SessionPhase.ANALYZING:
        parts.append(ProgressBar(total=100, completed=status.analysis_progress, width=40))
        parts.append(Text(f"{int(status.analysis_progress)}% complete"))
    elif status.phase == SessionPhase.RESULTS:
        parts.append(render_matches(status.matches))

    for fault in status.faults:
        parts.append(Text(f"⚠ {fault.message}", style="red"))
    if notice:
        parts.append(Text(notice, style="cyan"))

    commands = COMMANDS[status.phase] + [("r", "Reset"), ("q", "Quit")]
    parts.append(Text("  ".join(f"[{key}] {label}" for key, label in commands), style="dim"))
    return Panel(Group(*parts), title="Surah Al-Fatiha Recitation Analyzer", border_style="green")


class SessionScreen:
    """Terminal front end: renders session state and dispatches keypresses.

    Session events mark the screen for redraw; the live view only repaints
    after an event or a key, not on every poll.
    """

    EVENT_TYPES = ("phase", "level", "timer", "progress", "fault")

    def __init__(self,
                 session: RecitationSession,
                 file_manager: FileManager,
                 player: Optional[ArtifactPlayer] = None,
                 console: Optional[Console] = None,
                 refresh_rate_hz: float = 10.0):
        self.session = session
        self.file_manager = file_manager
        self.player = player or ArtifactPlayer()
        self.console = console or Console()
        self.refresh_rate_hz = refresh_rate_hz
        self.notice: Optional[str] = None
        self.running = False
        self._keys: Optional[asyncio.Queue] = None
        self._background: Optional[asyncio.Task] = None
        self.latest_events: Dict[str, SessionEvent] = {}
        self.needs_redraw = True
        for event_type in self.EVENT_TYPES:
            pub.subscribe(self._on_event, session.publisher.topic(event_type))

    def _on_event(self, event: SessionEvent) -> None:
        if event.session_id != self.session.session_id:
            return
        if event.event_type == "phase":
            # Level and timer readings belong to the phase that produced them
            self.latest_events.pop("level", None)
            self.latest_events.pop("timer", None)
            logger.debug(f"Phase event: {event.metadata}")
        elif event.event_type == "fault":
            logger.info(f"Fault shown: {event.metadata.get('message')}")
        self.latest_events[event.event_type] = event
        self.needs_redraw = True

    def close(self) -> None:
        """Stop listening to session events."""
        for event_type in self.EVENT_TYPES:
            pub.unsubscribe(self._on_event, self.session.publisher.topic(event_type))

    def render(self) -> Panel:
        status = self.session.get_status()
        level_event = self.latest_events.get("level")
        if level_event is not None and status.phase == SessionPhase.RECORDING:
            status = replace(status, current_level=level_event.metadata["level"])
        return render_status(status, self.notice)

    def _run_in_background(self, coro) -> None:
        """Run a long operation (analysis) without blocking key handling."""
        if self._background is not None and not self._background.done():
            self.notice = "Busy, please wait"
            coro.close()
            return
        self._background = asyncio.get_running_loop().create_task(coro)

    async def _analyze(self) -> None:
        result = await self.session.analyze()
        if result["success"]:
            self.notice = f"Found {result['match_count']} matches"

    async def handle_key(self, key: str) -> bool:
        """Dispatch one command key. Returns False to quit."""
        self.notice = None
        session = self.session
        if key == "1":
            result = await session.start_recording()
        elif key == "2":
            result = await session.stop_recording()
        elif key == "3":
            self._run_in_background(self._analyze())
            return True
        elif key == "4":
            result = session.discard_recording()
        elif key == "5":
            result = self.export()
        elif key == "6":
            result = await self.play()
        elif key == "r":
            result = await session.reset()
            self.notice = "Session reset"
        elif key == "q":
            return False
        else:
            self.notice = f"Unknown command: {key}"
            return True

        if not result.get("success") and not session.get_status().faults:
            self.notice = result.get("error")
        return True

    def export(self) -> dict:
        artifact = self.session.artifact
        if artifact is None:
            return {"success": False, "error": "No recording to export"}
        try:
            path = self.file_manager.export_artifact(artifact)
        except OSError as e:
            return {"success": False, "error": f"Export failed: {e}"}
        self.notice = f"Saved to {path}"
        return {"success": True, "path": path}

    async def play(self) -> dict:
        artifact = self.session.artifact
        if artifact is None:
            return {"success": False, "error": "No recording to play"}
        self.notice = "Playing..."
        loop = asyncio.get_running_loop()
        try:
            seconds = await loop.run_in_executor(None, self.player.play, artifact)
        except (OSError, ValueError) as e:
            logger.error(f"Playback failed: {e}")
            return {"success": False, "error": f"Playback failed: {e}"}
        self.notice = f"Played {seconds:.1f}s"
        return {"success": True}

    async def run(self) -> None:
        """Run the interactive loop until the user quits."""
        loop = asyncio.get_running_loop()
        self._keys = asyncio.Queue()
        self.running = True

        def on_key(key: str) -> bool:
            loop.call_soon_threadsafe(self._keys.put_nowait, key)
            return key != "q"

        input_handler = create_input_handler(on_key)
        input_handler.start()
        try:
            with Live(self.render(), console=self.console, auto_refresh=False) as live:
                while self.running:
                    try:
                        key = await asyncio.wait_for(self._keys.get(), timeout=1.0 / self.refresh_rate_hz)
                    except asyncio.TimeoutError:
                        key = None
                    if key is not None:
                        self.running = await self.handle_key(key)
                    elif not self.needs_redraw:
                        continue
                    self.needs_redraw = False
                    live.update(self.render(), refresh=True)
        finally:
            input_handler.stop()
            self.close()
            if self._background is not None and not self._background.done():
                self._background.cancel()
            await self.session.shutdown()
            self.console.print("👋 QariMatch session ended", style="bold blue")
            logger.info("SessionScreen closed")
