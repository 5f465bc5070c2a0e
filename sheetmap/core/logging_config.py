"""
Logging setup for the SheetMap service and library.

Everything logs through ``logging.getLogger(__name__)``; this module wires
those loggers to a single stdout handler once per process.
"""
from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per-cell header mapping decisions are logged at DEBUG by these modules
CELL_TRACE_LOGGERS = (
    "sheetmap.domain.imports.pipeline",
    "sheetmap.domain.imports.headers",
)

_is_configured = False


def _build_config(log_level: str, trace_cells: bool) -> Dict[str, Any]:
    loggers: Dict[str, Any] = {
        "sheetmap": {"level": log_level},
        "uvicorn.access": {"level": "WARNING"},
    }
    if trace_cells:
        for name in CELL_TRACE_LOGGERS:
            loggers[name] = {"level": "DEBUG"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "stream": "ext://sys.stdout",
            }
        },
        "loggers": loggers,
        "root": {"handlers": ["console"], "level": log_level},
    }


def configure_logging(level: Optional[str] = None, trace_cells: bool = False) -> None:
    """
    Configure the root and ``sheetmap`` loggers; later calls are no-ops.

    Args:
        level: Log level name for the package (defaults to INFO).
        trace_cells: Emit the DEBUG line for every mapped header, regardless of ``level``.
    """
    global _is_configured

    if _is_configured:
        return

    log_level = (level or "INFO").upper()
    dictConfig(_build_config(log_level, trace_cells))
    logging.getLogger(__name__).debug("Logging configured at %s (cell trace: %s)", log_level, trace_cells)

    _is_configured = True
