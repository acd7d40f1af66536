"""Terminal user interface."""

from .keyboard_input import KeyboardInputHandler, SimpleInputHandler, create_input_handler
from .session_screen import SessionScreen, format_time, render_status

__all__ = [
    "KeyboardInputHandler",
    "SimpleInputHandler",
    "create_input_handler",
    "SessionScreen",
    "format_time",
    "render_status",
]
