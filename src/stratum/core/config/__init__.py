"""Layered YAML configuration."""
from __future__ import annotations

from .manager import ConfigManager, load_config
from .paths import (
    PROJECT_ROOT_ENV,
    get_project_config_dir,
    get_user_config_dir,
    resolve_project_root,
)

__all__ = [
    "ConfigManager",
    "load_config",
    "PROJECT_ROOT_ENV",
    "get_project_config_dir",
    "get_user_config_dir",
    "resolve_project_root",
]
