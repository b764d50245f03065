# file: ILIOS/core/logger.py
import logging

import google.cloud.logging

from ILIOS.core.config import LOG_LEVEL, LOG_TO_CLOUD

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = LOG_LEVEL, use_cloud: bool = LOG_TO_CLOUD) -> None:
    """Configure root logging; ship records to Cloud Logging when enabled."""
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    if use_cloud:
        client = google.cloud.logging.Client()
        client.setup_logging(log_level=log_level)
        return
    logging.basicConfig(level=log_level, format=LOG_FORMAT)


def log_to_cloud(category: str, severity: str, message: str, metadata: dict = None):
    logging.log(
        getattr(logging, severity.upper(), logging.INFO),
        f"[{category}] {message}",
        extra={"metadata": metadata or {}}
    )
