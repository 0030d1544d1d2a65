"""Shared logging configuration for the shipment tracker.

Call ``configure_logging()`` once at the CLI entry point so per-vessel
progress lines and the run summary are emitted. The function is idempotent:
if the root logger already has handlers, it does nothing.
"""

import logging
import os

LOG_DIR = "logs"
LOG_FILE = "shiptracker.log"


def configure_logging(level: int = logging.INFO, log_dir: str = LOG_DIR) -> None:
    """Configure root logger with console + optional file handler.

    Only configures if the root logger has no handlers (idempotent).
    """
    root = logging.getLogger()
    if root.handlers:
        return

    fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(fmt)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    # File handler only if the log directory can be created
    try:
        os.makedirs(log_dir, exist_ok=True)
        fh = logging.FileHandler(os.path.join(log_dir, LOG_FILE), mode="a")
        fh.setFormatter(formatter)
        root.addHandler(fh)
    except OSError:
        pass

    root.setLevel(level)

    # urllib3 logs every retry at DEBUG; keep it at WARNING unless asked
    if level > logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
