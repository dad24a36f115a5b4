from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

_CONFIGURED_KEY: Optional[str] = None
_STRATUM_HANDLER: Optional[logging.Handler] = None
_JSON_MODE_NULL_HANDLER_INSTALLED: bool = False

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(*, level: str = "WARNING", log_path: Optional[Path] = None) -> None:
    """Install the Stratum handler on the ``stratum`` logger.

    Writes to ``log_path`` when given, otherwise to stderr. Stdout is never
    used so ``--json`` output stays machine-readable.

    Idempotent per-process: if already configured for the same target and level, no-op.
    """
    global _CONFIGURED_KEY, _STRATUM_HANDLER

    target = str(Path(log_path).expanduser().resolve()) if log_path else "<stderr>"
    key = f"{target}:{level.upper()}"
    if _CONFIGURED_KEY == key and _STRATUM_HANDLER is not None:
        return

    logger = logging.getLogger("stratum")
    logger.setLevel(_level_from_name(level))

    # Replace the previously installed handler when switching targets.
    if _STRATUM_HANDLER is not None:
        logger.removeHandler(_STRATUM_HANDLER)
        _STRATUM_HANDLER.close()
        _STRATUM_HANDLER = None

    if log_path:
        Path(target).parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(target, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    _STRATUM_HANDLER = handler
    _CONFIGURED_KEY = key


def reset_logging_for_tests() -> None:
    """Test-only: remove the installed handler."""
    global _CONFIGURED_KEY, _STRATUM_HANDLER
    if _STRATUM_HANDLER is not None:
        logging.getLogger("stratum").removeHandler(_STRATUM_HANDLER)
        _STRATUM_HANDLER.close()
    _CONFIGURED_KEY = None
    _STRATUM_HANDLER = None


def suppress_lastresort_in_json_mode() -> None:
    """Prevent stdlib logging's lastResort handler from polluting JSON output.

    Ensures the root logger has at least one handler (a NullHandler) when it
    otherwise has none, without changing any logger levels.
    """
    global _JSON_MODE_NULL_HANDLER_INSTALLED

    root = logging.getLogger()
    if root.handlers or _JSON_MODE_NULL_HANDLER_INSTALLED:
        return
    root.addHandler(logging.NullHandler())
    _JSON_MODE_NULL_HANDLER_INSTALLED = True


__all__ = ["configure_logging", "reset_logging_for_tests", "suppress_lastresort_in_json_mode"]
