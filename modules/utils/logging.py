"""Logging helpers."""

from __future__ import annotations

import logging
from pathlib import Path

from config.settings import AppConfig


def setup_logging(config: AppConfig) -> logging.Logger:
    """Send morph request outcomes to ``<log_dir>/application.log`` and the console.

    The service and session modules log under their own module names; this
    installs the root handlers they propagate to and returns the ``morphyface``
    logger used by the entry point.
    """
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_dir / "application.log", encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    # httpx logs every request line at INFO through the genai SDK.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logging.getLogger("morphyface")
