"""
Stratum configuration management (layered YAML, schema validated).
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

import jsonschema
import yaml

from stratum.core.exceptions import ConfigError
from stratum.core.utils.io import iter_yaml_files, read_yaml
from stratum.core.utils.merge import deep_merge
from stratum.core.utils.profiling import span
from stratum.data import get_data_path

from .paths import (
    PROJECT_ROOT_ENV,
    get_project_config_dir,
    get_user_config_dir,
    resolve_project_root,
)

logger = logging.getLogger(__name__)


class ConfigManager:
    """Load, merge, and validate Stratum configuration.

    Configuration sources (highest to lowest priority):
    1. Environment variables: STRATUM_<section>__<key>
    2. Project config: <project-config-dir>/config/*.yaml (alphabetical order)
    3. User config: <user-config-dir>/config/*.yaml (alphabetical order)
    4. Bundled defaults: stratum.data/config/*.yaml (alphabetical order)

    The config and user directory names are bootstrapped from bundled defaults
    plus environment overrides only, since they decide where the other layers live.
    """

    ENV_PREFIX = "STRATUM_"
    SCHEMA_NAME = "config.schema.yaml"

    def __init__(self, repo_root: Optional[Path] = None) -> None:
        self.repo_root = Path(repo_root).resolve() if repo_root else resolve_project_root()

        # Bundled defaults from stratum.data package (always available)
        self.core_config_dir = get_data_path("config")
        self.schemas_dir = get_data_path("schemas")

        bootstrap = self._load_directory(self.core_config_dir, {})
        self.apply_env_overrides(bootstrap)
        paths = bootstrap.get("paths") or {}

        self.user_dir = get_user_config_dir(paths.get("user_config_dir"))
        self.project_dir = get_project_config_dir(self.repo_root, paths.get("project_config_dir"))
        self.user_config_dir = self.user_dir / "config"
        self.project_config_dir = self.project_dir / "config"

    # ------------------------------------------------------------------
    # YAML layers
    # ------------------------------------------------------------------
    def load_yaml(self, path: Path) -> Dict[str, Any]:
        # Fail closed: configuration must never silently ignore invalid YAML.
        try:
            data = read_yaml(path, default={}, raise_on_error=True)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}", context={"path": str(path)}) from exc
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a YAML mapping", context={"path": str(path)})
        return data

    def _load_directory(self, directory: Path, cfg: Dict[str, Any]) -> Dict[str, Any]:
        for path in iter_yaml_files(directory):
            cfg = deep_merge(cfg, self.load_yaml(path))
        return cfg

    def load_config(self, *, validate: bool = True) -> Dict[str, Any]:
        """Return the fully merged configuration.

        Raises:
            ConfigError: If a layer is unreadable or the result fails schema validation
        """
        with span("config.load"):
            cfg: Dict[str, Any] = {}
            for directory in (self.core_config_dir, self.user_config_dir, self.project_config_dir):
                cfg = self._load_directory(directory, cfg)
            self.apply_env_overrides(cfg)
            if validate:
                self.validate_schema(cfg)
        return cfg

    def validate_schema(self, cfg: Dict[str, Any]) -> None:
        schema = read_yaml(self.schemas_dir / self.SCHEMA_NAME, raise_on_error=True)
        validator = jsonschema.Draft202012Validator(schema)
        errors = sorted(validator.iter_errors(cfg), key=lambda e: list(e.absolute_path))
        if not errors:
            return
        first = errors[0]
        location = ".".join(str(p) for p in first.absolute_path) or "<root>"
        raise ConfigError(
            f"Invalid configuration at {location}: {first.message}",
            context={"errors": [e.message for e in errors], "location": location},
        )

    # ------------------------------------------------------------------
    # Environment overrides
    # ------------------------------------------------------------------
    def _coerce_type(self, value: str) -> Any:
        s = value.strip()
        low = s.lower()
        if low in {"true", "false"}:
            return low == "true"
        if low in {"null", "none"}:
            return None
        if re.fullmatch(r"[-+]?\d+", s):
            return int(s)
        if re.fullmatch(r"[-+]?\d*\.\d+", s) or re.fullmatch(r"[-+]?\d+\.\d*", s):
            return float(s)
        if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
            try:
                return json.loads(s)
            except json.JSONDecodeError:
                return s
        return s

    def _iter_env_overrides(self) -> Iterator[Tuple[List[str], Any]]:
        reserved = PROJECT_ROOT_ENV[len(self.ENV_PREFIX):]
        for key in sorted(os.environ.keys()):
            if not key.startswith(self.ENV_PREFIX):
                continue
            raw = key[len(self.ENV_PREFIX):]
            if not raw or raw == reserved:
                continue
            segments = raw.split("__")
            if any(not seg for seg in segments):
                logger.warning("Ignoring malformed override %s (empty segment)", key)
                continue
            yield [seg.lower() for seg in segments], self._coerce_type(os.environ[key])

    def apply_env_overrides(self, cfg: Dict[str, Any]) -> None:
        for path, value in self._iter_env_overrides():
            cur = cfg
            for part in path[:-1]:
                nxt = cur.get(part)
                if not isinstance(nxt, dict):
                    nxt = {}
                    cur[part] = nxt
                cur = nxt
            cur[path[-1]] = value


def load_config(repo_root: Optional[Path] = None, *, validate: bool = True) -> Dict[str, Any]:
    """Convenience wrapper around :meth:`ConfigManager.load_config`."""
    return ConfigManager(repo_root).load_config(validate=validate)


__all__ = ["ConfigManager", "load_config"]
