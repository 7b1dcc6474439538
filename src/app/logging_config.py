# -*- coding: utf-8 -*-
"""
Logging Setup

Installs the application's root handlers from the `logging.*` configuration
keys. Library modules only ever call logging.getLogger(__name__).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.protocols import IConfigService

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Marks handlers installed here so repeated calls replace instead of stacking
_HANDLER_TAG = "_music_assistant_player"


def configure_logging(config: "IConfigService") -> logging.Logger:
    """Configure the root logger.

    Args:
        config: Configuration service (`logging.level`, `logging.file`,
            `logging.format`)

    Returns:
        The root logger
    """
    level_name = str(config.get("logging.level", "INFO") or "INFO").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.INFO

    formatter = logging.Formatter(str(config.get("logging.format", DEFAULT_FORMAT) or DEFAULT_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    setattr(console_handler, _HANDLER_TAG, True)
    root.addHandler(console_handler)

    log_file = config.get("logging.file", "")
    if log_file:
        try:
            path = Path(log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path, encoding="utf-8")
        except OSError as e:
            root.warning("Cannot open log file %s: %s", log_file, e)
        else:
            file_handler.setFormatter(formatter)
            setattr(file_handler, _HANDLER_TAG, True)
            root.addHandler(file_handler)

    return root
