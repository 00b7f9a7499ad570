"""Root logger setup for processes embedding the prompt core."""
import logging
from typing import Optional

from mcp_prompts.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "asyncpg", "aiofiles")


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger. Falls back to LOG_LEVEL from settings."""
    resolved = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger().setLevel(resolved)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
