"""
logging_config.py: Centralized logging setup for the Smartmart backend.

All modules log through the standard ``logging`` package; this module wires
a single stdout handler with a uniform format so that Flask's ``app.logger``
and the module-level service loggers end up in the same stream.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s"

_configured = False


def setup_logging(level: str = "INFO"):
    """
    Configures the root logger once per process.

    Args:
        level (str): Name of the log level, e.g. ``"INFO"`` or ``"DEBUG"``.
    """
    global _configured
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)

    # Driver chatter drowns out request logs at INFO.
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    _configured = True
