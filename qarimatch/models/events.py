"""Event models for session pub/sub."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict


@dataclass
class SessionEvent:
    """Session lifecycle event."""
    event_type: str  # "phase", "level", "timer", "progress", "fault"
    session_id: str
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)
