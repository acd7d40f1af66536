"""Auto mode: record for a fixed time, analyze and print the matches."""

import asyncio
import logging
from typing import Any, Dict, Optional

from .models.session import SessionPhase
from .services.session_manager import RecitationSession
from .storage.file_manager import FileManager

logger = logging.getLogger(__name__)


async def run_auto_mode(session: RecitationSession,
                        duration_seconds: int = 10,
                        file_manager: Optional[FileManager] = None) -> Dict[str, Any]:
    """Run one session end to end without interaction.

    This mode:
    1. Starts recording
    2. Records for the given duration (or until the ceiling stops it)
    3. Stops and validates the recording
    4. Runs the analysis and reports the ranked matches
    5. Optionally exports the recording

    Returns:
        Result dict of the last step, with ``exported_to`` when exported
    """
    logger.info(f"🤖 Starting auto mode: {duration_seconds}s recording")
    try:
        result = await session.start_recording()
        if not result["success"]:
            print(f"❌ Cannot start recording: {result['error']}")
            return result

        print(f"🔴 Recording for {duration_seconds} seconds...")
        for _ in range(duration_seconds):
            if session.phase != SessionPhase.RECORDING:
                break
            await asyncio.sleep(session.capture.timer_interval)

        if session.phase == SessionPhase.RECORDING:
            result = await session.stop_recording()
            if not result["success"]:
                print(f"❌ Recording failed: {result['error']}")
                return result
        print(f"⏹️  Recorded {session.capture.elapsed_seconds}s")

        exported_to = None
        if file_manager is not None and session.artifact is not None:
            exported_to = file_manager.export_artifact(session.artifact)
            print(f"💾 Saved recording to {exported_to}")

        print("🔍 Analyzing...")
        result = await session.analyze()
        if not result["success"]:
            print(f"❌ {result['error']}")
        else:
            print("✅ Your closest matches:")
            for rank, match in enumerate(session.matches, start=1):
                print(f"   {rank}. {match.name} ({match.country}) - {match.rounded_similarity}%")
        if exported_to:
            result["exported_to"] = exported_to
        return result
    finally:
        await session.shutdown()
