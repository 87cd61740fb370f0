from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .constants import (
    DEFAULT_CONNECT_TIMEOUT_S,
    DEFAULT_FIRESTORE_DATABASE,
    DEV_MODE,
    ENV_CONNECT_TIMEOUT_S,
    ENV_FIRESTORE_DATABASE,
    ENV_FIRESTORE_PROJECT,
    ENV_GOOGLE_CLOUD_PROJECT,
    ENV_LOG_LEVEL,
    ENV_MODE,
    ENV_NAMESPACE,
)

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Process configuration relevant to storage selection."""

    mode: str = DEV_MODE
    firestore_project: Optional[str] = None
    firestore_database: str = DEFAULT_FIRESTORE_DATABASE
    namespace: Optional[str] = None
    connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S
    log_level: str = "INFO"

    @property
    def development(self) -> bool:
        return self.mode == DEV_MODE

    @property
    def database_configured(self) -> bool:
        return bool(self.firestore_project)

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from the environment:
          - EVENTHUB_ENV: development | production (default development)
          - EVENTHUB_FIRESTORE_PROJECT or GOOGLE_CLOUD_PROJECT: production database target
          - EVENTHUB_FIRESTORE_DATABASE: Firestore database id
          - EVENTHUB_NAMESPACE: optional collection suffix
          - EVENTHUB_CONNECT_TIMEOUT_S: connection probe timeout
          - EVENTHUB_LOG_LEVEL: root log level for configure_logging()
        """
        mode = (os.getenv(ENV_MODE) or DEV_MODE).strip().lower()
        project = os.getenv(ENV_FIRESTORE_PROJECT) or os.getenv(ENV_GOOGLE_CLOUD_PROJECT) or None
        timeout_env = os.getenv(ENV_CONNECT_TIMEOUT_S)
        timeout = DEFAULT_CONNECT_TIMEOUT_S
        if timeout_env:
            try:
                timeout = float(timeout_env)
            except ValueError:
                _log.warning("%s=%r is not a number; using %s", ENV_CONNECT_TIMEOUT_S, timeout_env, timeout)
        return cls(
            mode=mode,
            firestore_project=project,
            firestore_database=os.getenv(ENV_FIRESTORE_DATABASE) or DEFAULT_FIRESTORE_DATABASE,
            namespace=os.getenv(ENV_NAMESPACE) or None,
            connect_timeout_s=timeout,
            log_level=(os.getenv(ENV_LOG_LEVEL) or "INFO").upper(),
        )


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Install a basic root handler unless the host already configured logging."""
    settings = settings or Settings.from_env()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    root.setLevel(getattr(logging, settings.log_level, logging.INFO))


__all__ = ["Settings", "configure_logging"]
