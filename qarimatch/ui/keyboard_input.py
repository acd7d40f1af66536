"""Cross-platform keyboard input handling for the terminal UI."""

import sys
import threading
import time
from typing import Optional, Callable
import logging

logger = logging.getLogger(__name__)


class KeyboardInputHandler:
    """Read single keypresses on a background thread."""

    def __init__(self, callback: Callable[[str], bool]):
        """Initialize keyboard handler.

        Args:
            callback: Function that takes a key and returns True to continue, False to quit.
                      Called from the input thread.
        """
        self.callback = callback
        self.running = False
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the keyboard input handler."""
        if self.running:
            return

        self.running = True
        self.thread = threading.Thread(target=self._input_loop, daemon=True)
        self.thread.name = "KeyboardInputThread"
        self.thread.start()
        logger.info("Keyboard input handler started")

    def stop(self) -> None:
        """Stop the keyboard input handler."""
        self.running = False
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        logger.info("Keyboard input handler stopped")

    def _input_loop(self) -> None:
        """Main input handling loop."""
        while self.running:
            key = self._get_key()
            if key:
                logger.debug(f"Key detected: '{key}'")
                if not self.callback(key):
                    logger.info("Callback returned False, ending input loop")
                    self.running = False
                    break
            # Small delay to prevent busy waiting
            time.sleep(0.05)

    def _get_key(self) -> Optional[str]:
        """Get a single keypress in a cross-platform way."""
        try:
            if sys.platform == "win32":
                return self._get_key_windows()
            return self._get_key_unix()
        except Exception as e:
            logger.error(f"Error getting key: {e}")
            return None

    def _get_key_windows(self) -> Optional[str]:
        """Get key on Windows."""
        import msvcrt
        if msvcrt.kbhit():
            return msvcrt.getch().decode('utf-8', errors='ignore').lower()
        return None

    def _get_key_unix(self) -> Optional[str]:
        """Get key on Unix/Linux/macOS."""
        import select
        import termios
        import tty

        if not select.select([sys.stdin], [], [], 0.1)[0]:
            return None
        old_settings = termios.tcgetattr(sys.stdin)
        try:
            tty.setcbreak(sys.stdin.fileno())
            return sys.stdin.read(1).lower()
        finally:
            termios.tcsetattr(sys.stdin, termios.TCSADRAIN, old_settings)


class SimpleInputHandler(KeyboardInputHandler):
    """Line-based fallback for terminals without raw key access."""

    def _input_loop(self) -> None:
        while self.running:
            try:
                user_input = input("> ").strip().lower()
            except (EOFError, KeyboardInterrupt):
                self.callback("q")
                break
            if user_input and not self.callback(user_input[0]):
                self.running = False
                break


def create_input_handler(callback: Callable[[str], bool]) -> KeyboardInputHandler:
    """Create the best available input handler for the current terminal."""
    if sys.stdin.isatty():
        return KeyboardInputHandler(callback)
    logger.warning("stdin is not a terminal, using line-based input")
    return SimpleInputHandler(callback)
