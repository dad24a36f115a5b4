"""Wire configuration, discovery and the resolution service together."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from stratum.core.config import ConfigManager
from stratum.core.documents import DocumentLoader, InstructionDocument
from stratum.core.policy import PrecedencePolicy
from stratum.core.registry import DocumentRegistry
from stratum.core.resolution import Composer, ResolutionService
from stratum.core.tokens import TokenCounter, make_token_counter

logger = logging.getLogger(__name__)


@dataclass
class Project:
    """Everything loaded for one repository, before anything is registered."""

    repo_root: Path
    config: Dict[str, Any]
    token_counter: TokenCounter
    policy: PrecedencePolicy
    composer: Composer
    documents: List[InstructionDocument]

    @property
    def max_tokens(self) -> Optional[int]:
        return (self.config.get("budget") or {}).get("max_tokens")

    def service(self, documents: Optional[List[InstructionDocument]] = None) -> ResolutionService:
        """Register ``documents`` (default: every discovered one) and return a service.

        Raises:
            StratumError: If the document set violates a registration invariant
        """
        registry = DocumentRegistry(
            self.documents if documents is None else documents,
            token_counter=self.token_counter,
            policy=self.policy,
        )
        return ResolutionService(
            registry,
            composer=self.composer,
            default_max_tokens=self.max_tokens,
        )


def load_project(repo_root: Path, config: Optional[Dict[str, Any]] = None) -> Project:
    """Load config and discover documents for ``repo_root``.

    Raises:
        ConfigError: If the configuration is invalid
        DocumentLoadError: If an instruction file is malformed
    """
    repo_root = Path(repo_root).resolve()
    if config is None:
        config = ConfigManager(repo_root).load_config()
    token_counter = make_token_counter(config)
    documents = DocumentLoader(repo_root, config).load()
    logger.debug("Project %s: %d documents discovered", repo_root, len(documents))
    return Project(
        repo_root=repo_root,
        config=config,
        token_counter=token_counter,
        policy=PrecedencePolicy.from_config(config),
        composer=Composer.from_config(config),
        documents=documents,
    )


def build_service(repo_root: Path, config: Optional[Dict[str, Any]] = None) -> ResolutionService:
    """Load ``repo_root`` and return a ready :class:`ResolutionService`."""
    return load_project(repo_root, config).service()


__all__ = ["Project", "load_project", "build_service"]
