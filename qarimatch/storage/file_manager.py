"""File management for exporting finished recordings."""

import logging
import random
import string
from pathlib import Path
from datetime import datetime
from typing import Optional

from ..models.audio import RecordingArtifact


logger = logging.getLogger(__name__)


class FileManager:
    """Writes recording artifacts to the export directory on request."""

    filename_prefix = "surah-fatiha-recording"

    def __init__(self, export_dir: str = "./recordings"):
        """Initialize file manager with export directory.

        Args:
            export_dir: Directory receiving exported recordings; created on first export
        """
        self.export_dir = Path(export_dir)
        logger.info(f"FileManager initialized with export_dir: {self.export_dir}")

    def build_filename(self, artifact: RecordingArtifact, when: Optional[datetime] = None) -> str:
        """Timestamp-qualified filename with the artifact's native extension."""
        timestamp = (when or datetime.now()).strftime("%Y-%m-%dT%H-%M-%S")
        return f"{self.filename_prefix}-{timestamp}{artifact.extension}"

    def export_artifact(self, artifact: RecordingArtifact, when: Optional[datetime] = None) -> str:
        """Save a recording and return its path.

        Args:
            artifact: Finalized recording to write
            when: Timestamp used for the filename (defaults to now)

        Returns:
            Full path to the exported file
        """
        self.export_dir.mkdir(parents=True, exist_ok=True)
        file_path = self.export_dir / self.build_filename(artifact, when)
        stem = file_path.stem

        # Two exports within the same second get a random suffix
        while file_path.exists():
            random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
            file_path = file_path.with_name(f"{stem}_{random_suffix}{artifact.extension}")

        try:
            with open(file_path, 'xb') as f:
                f.write(artifact.data)
        except OSError as e:
            logger.error(f"Error exporting recording: {e}")
            raise

        logger.info(f"Recording exported: {file_path} ({artifact.size_bytes} bytes)")
        return str(file_path)
