"""Loguru logging configuration.

Call setup_logging() once at application startup to configure sinks.
All other modules simply do `from loguru import logger` and log normally.
Records emitted during a chat turn carry the conversation key in
`extra["thread"]` (see Orchestrator.run); everything else shows "-".
"""

import sys
from pathlib import Path

from loguru import logger

LOG_DIR = Path(__file__).resolve().parents[3] / "logs"
LOG_FILE_NAME = "barista.log"

STDERR_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> <level>{level: <7}</level> "
    "<magenta>[{extra[thread]}]</magenta> "
    "<cyan>{module}.{function}</cyan> <level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <7} | thread={extra[thread]} | "
    "{name}:{function}:{line} | {message}"
)


def setup_logging(
    level: str = "DEBUG", log_dir: Path = LOG_DIR, file_name: str = LOG_FILE_NAME
) -> Path:
    """Configure loguru with a stderr sink and a rotating file sink.

    Returns the path of the log file.
    """
    logger.remove()
    logger.configure(extra={"thread": "-"})

    logger.add(sys.stderr, level=level, format=STDERR_FORMAT)

    # Conversations are short lived; keep a few hours of history on disk
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / file_name
    logger.add(
        log_file,
        level=level,
        rotation="3 hours",
        retention="1 day",
        format=FILE_FORMAT,
    )
    return log_file
