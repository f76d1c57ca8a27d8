"""
Logging configuration for the portal.

Call setup_logging() once at startup (create_app does this). Modules then
use the standard library logger for their own name:

    logger = logging.getLogger(__name__)
"""
import logging
import os
import sys

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ('urllib3', 'apscheduler', 'werkzeug', 'sqlalchemy.engine')

_configured = False


def setup_logging(level: str = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name. Defaults to LOG_LEVEL env var, then INFO.
    """
    global _configured
    if _configured:
        return

    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
