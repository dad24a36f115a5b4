"""Shared CLI utility functions."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Dict

from stratum.core.bootstrap import Project, load_project
from stratum.core.config import ConfigManager, resolve_project_root
from stratum.core.logging_setup import configure_logging, suppress_lastresort_in_json_mode


def get_repo_root(args: argparse.Namespace) -> Path:
    """Get repository root from ``--repo-root`` or auto-detect."""
    if getattr(args, "repo_root", None):
        return Path(args.repo_root).resolve()
    return resolve_project_root()


def setup_logging(config: Dict[str, Any], *, json_mode: bool) -> None:
    """Apply the ``logging`` config section for a CLI invocation.

    JSON mode never logs to stderr unless a log file is configured.
    """
    section = config.get("logging") or {}
    level = str(section.get("level") or "WARNING")
    log_file = section.get("file")
    if log_file:
        configure_logging(level=level, log_path=Path(log_file))
    elif json_mode:
        suppress_lastresort_in_json_mode()
    else:
        configure_logging(level=level)


def load_project_from_args(args: argparse.Namespace) -> Project:
    """Resolve the repo root, load config, configure logging and discover documents."""
    repo_root = get_repo_root(args)
    config = ConfigManager(repo_root).load_config()
    setup_logging(config, json_mode=bool(getattr(args, "json", False)))
    return load_project(repo_root, config)


__all__ = ["get_repo_root", "setup_logging", "load_project_from_args"]
