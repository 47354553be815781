from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Mapping, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _to_level(level: str | int, default: int = logging.INFO) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), default)


def setup_logging(
    level: str | int = "INFO",
    log_file: Optional[str] = None,
    module_levels: Optional[Mapping[str, str | int]] = None,
) -> None:
    """
    Configure root logging with optional rotating file output.

    `module_levels` maps logger names to levels, e.g. {"core.clustering": "DEBUG"}
    to trace one stage without flooding the console with per-frame output.
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(log_path, maxBytes=2 * 1024 * 1024, backupCount=2, encoding="utf-8")
        )

    logging.basicConfig(level=_to_level(level), format=LOG_FORMAT, handlers=handlers, force=True)

    for name, module_level in (module_levels or {}).items():
        logging.getLogger(name).setLevel(_to_level(module_level))
