"""Project root and config directory resolution.

Project root priority:
1. ``STRATUM_PROJECT_ROOT`` environment variable
2. ``git rev-parse --show-toplevel`` from the current directory
3. The current directory
"""
from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

from stratum.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

PROJECT_ROOT_ENV = "STRATUM_PROJECT_ROOT"
DEFAULT_PROJECT_CONFIG_DIR = ".stratum"
DEFAULT_USER_CONFIG_DIR = "~/.stratum"


def _git_toplevel(cwd: Path) -> Optional[Path]:
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=str(cwd),
            text=True,
            capture_output=True,
            check=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.CalledProcessError, subprocess.TimeoutExpired):
        return None
    root = (result.stdout or "").strip()
    return Path(root).resolve() if root else None


def resolve_project_root(start: Optional[Path] = None) -> Path:
    """Resolve the project root that document paths are relative to.

    Raises:
        ConfigError: If ``STRATUM_PROJECT_ROOT`` points at a missing directory
    """
    env_root = os.environ.get(PROJECT_ROOT_ENV)
    if env_root:
        path = Path(env_root).expanduser().resolve()
        if not path.is_dir():
            raise ConfigError(f"{PROJECT_ROOT_ENV} points at missing directory: {path}")
        return path

    cwd = (start or Path.cwd()).resolve()
    git_root = _git_toplevel(cwd)
    if git_root is not None:
        return git_root
    logger.debug("No git repository found from %s; using it as project root", cwd)
    return cwd


def expand_dir(raw: str, *, base: Path) -> Path:
    """Expand ``~``/env vars; relative values resolve against ``base``."""
    p = Path(os.path.expandvars(str(raw))).expanduser()
    if not p.is_absolute():
        p = base / p
    return p.resolve()


def get_project_config_dir(repo_root: Path, name: Optional[str] = None) -> Path:
    return expand_dir(name or DEFAULT_PROJECT_CONFIG_DIR, base=Path(repo_root))


def get_user_config_dir(raw: Optional[str] = None) -> Path:
    # Relative user dirs are relative to the home directory, not the CWD.
    return expand_dir(raw or DEFAULT_USER_CONFIG_DIR, base=Path.home())


__all__ = [
    "PROJECT_ROOT_ENV",
    "DEFAULT_PROJECT_CONFIG_DIR",
    "DEFAULT_USER_CONFIG_DIR",
    "resolve_project_root",
    "expand_dir",
    "get_project_config_dir",
    "get_user_config_dir",
]
