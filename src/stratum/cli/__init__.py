"""
Stratum CLI package.

Provides the command-line interface with auto-discovery of commands
from subfolders (context/, documents/).

Framework utilities for building CLI commands:
- _output: Output formatting (JSON/text modes)
- _args: Common argument registration helpers
- _utils: Shared CLI utilities
"""
from ._output import OutputFormatter
from ._args import (
    add_event_flag,
    add_json_flag,
    add_max_tokens_flag,
    add_repo_root_flag,
    add_standard_flags,
    add_tier_flag,
)
from ._utils import get_repo_root, load_project_from_args, setup_logging

__all__ = [
    # Output formatting
    "OutputFormatter",
    # Argument helpers
    "add_event_flag",
    "add_json_flag",
    "add_max_tokens_flag",
    "add_repo_root_flag",
    "add_standard_flags",
    "add_tier_flag",
    # Utilities
    "get_repo_root",
    "load_project_from_args",
    "setup_logging",
]
