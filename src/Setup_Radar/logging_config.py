"""Centralized logging configuration for the CLI entry point.

The scanner logs every per-strategy skip at DEBUG, so ``-v`` is the switch
for a full gate-by-gate trace. The data layer is floored at INFO because
its DEBUG output is one line per SQL statement; set ``LOG_LEVEL_DATA=DEBUG``
to see it anyway.
"""

from __future__ import annotations

import logging
import os

LOG_FORMAT: str = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_MODULE_LOGGERS: dict[str, str] = {
    "ANALYSIS": "Setup_Radar.analysis",
    "SCANNER": "Setup_Radar.scanner",
    "DATA": "Setup_Radar.data",
    "CLI": "Setup_Radar.cli",
}

# Minimum level per area when no LOG_LEVEL_{AREA} override is set.
_AREA_FLOORS: dict[str, int] = {
    "DATA": logging.INFO,
}

# Third-party loggers that are too chatty below WARNING.
_DEMOTED_LOGGERS: tuple[str, ...] = ("aiosqlite",)


def _parse_level(name: str | None) -> int | None:
    """Map a level name like ``"debug"`` to its number, or None if unknown."""
    if not name:
        return None
    return logging.getLevelNamesMapping().get(name.strip().upper())


def configure_logging(
    *,
    level: str = "",
    verbose: bool = False,
    quiet: bool = False,
) -> None:
    """Configure root logger with a consistent format.

    Priority: verbose > quiet > level param > LOG_LEVEL env > INFO default.
    Uses force=True so repeated CLI invocations in one process reconfigure.

    Each area logger then gets, in order of precedence, its
    LOG_LEVEL_{AREA} override, its floor (never below the root level), or
    no level of its own.
    """
    if verbose:
        effective = logging.DEBUG
    elif quiet:
        effective = logging.WARNING
    else:
        effective = (
            _parse_level(level) or _parse_level(os.environ.get("LOG_LEVEL")) or logging.INFO
        )

    logging.basicConfig(level=effective, format=LOG_FORMAT, force=True)

    for name in _DEMOTED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    for key, logger_name in _MODULE_LOGGERS.items():
        area = logging.getLogger(logger_name)
        override = _parse_level(os.environ.get(f"LOG_LEVEL_{key}"))
        if override is not None:
            area.setLevel(override)
        elif key in _AREA_FLOORS:
            area.setLevel(max(effective, _AREA_FLOORS[key]))
        else:
            area.setLevel(logging.NOTSET)
