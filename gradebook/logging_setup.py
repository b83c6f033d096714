"""Custom logging configuration for the gradebook application."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from logging import Logger
from typing import Dict

DEFAULT_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)


@dataclass(slots=True)
class LoggerConfig:
    level: int = logging.INFO
    fmt: str = DEFAULT_FORMAT


def configure_logging(config: LoggerConfig | None = None) -> Dict[str, Logger]:
    config = config or LoggerConfig()
    logging.basicConfig(
        level=config.level,
        format=config.fmt,
        stream=sys.stdout,
    )
    logging.getLogger("gradebook").setLevel(config.level)
    logging.debug("Logging initialized with level %s", config.level)
    return {
        "gradebook": logging.getLogger("gradebook"),
        "cache": logging.getLogger("gradebook.cache"),
        "audit": logging.getLogger("gradebook.audit"),
        "services": logging.getLogger("gradebook.services"),
    }
