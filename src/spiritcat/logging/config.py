"""Console and file logging for Spirit Cat.

Console output always goes to stderr so that command output written to stdout
(JSON payloads, report paths) stays machine-readable. Levels and file output
come from the ``logging`` section of the active profile's settings.
"""

import logging
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CLI_FORMAT = "%(message)s"


@dataclass
class LoggingConfig:
    """Handler options resolved for one process."""

    level: str = "INFO"
    log_to_file: bool = False
    log_file_path: Path = Path("logs/spiritcat.log")
    max_file_size_mb: int = 50
    backup_count: int = 5
    force_reconfigure: bool = False

    @classmethod
    def from_settings(cls, section: Any) -> "LoggingConfig":
        """Build from a ``SpiritCatSettings.logging`` section."""
        return cls(
            level=section.level,
            log_to_file=section.log_to_file,
            log_file_path=section.log_file_path,
            max_file_size_mb=section.max_file_size_mb,
            backup_count=section.backup_count,
        )


def setup_logging(
    config: LoggingConfig | None = None,
    cli_mode: bool = False,
    verbose: bool = False,
) -> None:
    """Install the stderr console handler and, optionally, a rotating log file.

    Handlers are only installed once per process unless
    ``config.force_reconfigure`` is set, but the root level is applied on every
    call so a later ``verbose`` request still takes effect.

    Args:
        config: Handler options. Defaults to INFO on the console only.
        cli_mode: Print bare messages instead of timestamped records
        verbose: Force DEBUG regardless of ``config.level``
    """
    config = config or LoggingConfig()
    level = logging.DEBUG if verbose else getattr(logging, config.level, logging.INFO)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        logging.Formatter(CLI_FORMAT if cli_mode else DETAILED_FORMAT)
    )
    handlers: list[logging.Handler] = [console_handler]

    if config.log_to_file:
        config.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=config.force_reconfigure)
    logging.getLogger().setLevel(level)

    # The Plaid SDK logs every request through urllib3
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("plaid").setLevel(logging.INFO)
