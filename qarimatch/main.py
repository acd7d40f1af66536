"""Main application entry point for QariMatch."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from . import __version__
from .auto_mode import run_auto_mode
from .config import QariMatchConfig
from .services import build_session
from .storage.file_manager import FileManager
from .ui.session_screen import SessionScreen

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None,
                 backend: Optional[str] = None):
        # Load configuration
        self.config = QariMatchConfig(config_path)
        if backend:
            self.config.set('analysis.backend', backend)
        # Set up logging (override config with command line if specified)
        level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, level)

    def init(self):
        logger.info("Initializing session...")
        self.file_manager = FileManager(self.config.get_export_directory())
        self.session = build_session(self.config)
        profile = self.config.get_capture_profile()
        logger.info(f"Audio settings: {profile.sample_rate}Hz, {profile.channels} channel(s), "
                    f"max {self.config.get('recording.max_duration_seconds')}s")

    async def run_auto(self, duration: int, export: bool) -> bool:
        result = await run_auto_mode(
            self.session,
            duration_seconds=duration,
            file_manager=self.file_manager if export else None,
        )
        return bool(result.get("success"))

    async def run_interactive(self) -> None:
        screen = SessionScreen(
            self.session,
            self.file_manager,
            refresh_rate_hz=min(float(self.config.get('ui.refresh_rate_hz', 60)), 30.0),
        )
        await screen.run()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    # Get log file path from config
    log_file_path = config.get('logging.file_path', 'logs/qarimatch.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    # Set up handlers
    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("QariMatch starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="QariMatch - record your recitation and find the Qari you sound like",
        epilog="Commands: 1=Record, 2=Stop, 3=Analyze, 4=Discard, 5=Export, 6=Play, r=Reset, q=Quit"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, INFO)"
    )

    parser.add_argument(
        "--backend",
        type=str,
        choices=["sample", "remote"],
        help="Analysis backend (overrides config)"
    )

    parser.add_argument(
        "--auto",
        action="store_true",
        help="Run in automatic mode: record for the given duration, analyze, print matches and exit"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=10,
        help="Duration in seconds for auto mode recording (default: 10, capped at the maximum)"
    )

    parser.add_argument(
        "--export",
        action="store_true",
        help="In auto mode, also save the recording to the export directory"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"QariMatch v{__version__}"
    )
    return parser


def main() -> None:
    """Main entry point for QariMatch application."""
    args = build_parser().parse_args()

    try:
        server = Server(args.config, args.log_level, args.backend)
        server.init()
        if args.auto:
            ok = asyncio.run(server.run_auto(args.duration, args.export))
            if not ok:
                sys.exit(2)
        else:
            asyncio.run(server.run_interactive())
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except (OSError, ValueError) as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
