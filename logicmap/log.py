"""Progress / warning output for logicmap.

Messages carry a bracketed tag (``[INFO]``, ``[WARN]``, ``[PARSE]`` ...) and are routed
through the stdlib ``logicmap`` logger. The library never installs handlers itself;
``configure_logging`` is called by the CLI.
"""

from __future__ import annotations

import logging
import sys

logger = logging.getLogger("logicmap")

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def log(msg: str, level: str = "info") -> None:
    logger.log(_LEVELS.get(level, logging.INFO), msg)


def configure_logging(verbose: bool = False) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False
