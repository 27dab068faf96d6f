"""Central logging utilities for embviz."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

_LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

# Client libraries that chatter at INFO/DEBUG (discovery cache misses, GDAL
# environment setup, font lookups); capped at WARNING unless embviz runs at DEBUG.
_NOISY_LOGGERS = ("googleapiclient", "google.auth", "urllib3", "rasterio", "matplotlib")


def configure_logging(level: Union[int, str] = logging.INFO, log_file: Optional[Path] = None) -> None:
    """Configure root logging handlers for the CLI.

    Parameters
    ----------
    level:
        Logging level (number or name such as ``"DEBUG"``) applied to the root
        logger.
    log_file:
        Optional path to a file where logs should additionally be written. The
        directory is created if required.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(level)

    formatter = logging.Formatter(_LOG_FORMAT)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    third_party_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)
    # every discovery-cache miss is logged at WARNING
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)


__all__ = ["configure_logging"]
