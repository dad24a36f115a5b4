"""
Instruction file discovery.

Turns the instruction files configured under ``sources`` into
:class:`InstructionDocument` objects. Each source rule names a tier, a root
(``project``, ``user`` or ``organization``) and a glob relative to that root.
Rules apply in configuration order and files within a rule load in sorted
order, so the resulting document order (and therefore registration order)
is deterministic for a given tree.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple

import jsonschema

from stratum.core.config.paths import expand_dir, get_user_config_dir
from stratum.core.exceptions import DocumentLoadError
from stratum.core.patterns import escape_glob
from stratum.core.tokens import TokenCounter
from stratum.core.utils.frontmatter import parse_frontmatter
from stratum.core.utils.profiling import span
from stratum.data import read_yaml as read_data_yaml

from .models import EventType, InstructionDocument, Tier

logger = logging.getLogger(__name__)

ROOT_KINDS = ("project", "user", "organization")
PROMPT_SUFFIX = ".prompt.md"
AGENTS_FILE = "AGENTS.md"
IGNORED_DIRS = frozenset({".git", "node_modules"})


@dataclass(frozen=True)
class SourceRule:
    """One discovery rule from the ``sources`` config list."""

    tier: Tier
    root: str
    glob: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SourceRule":
        root = str(data.get("root", "project"))
        if root not in ROOT_KINDS:
            raise ValueError(f"Unknown source root {root!r}. Must be one of: {', '.join(ROOT_KINDS)}")
        glob = str(data.get("glob") or "")
        if not glob:
            raise ValueError("Source rule needs a non-empty glob")
        return cls(tier=Tier.parse(data["tier"]), root=root, glob=glob)


def _validator() -> jsonschema.Draft202012Validator:
    return jsonschema.Draft202012Validator(read_data_yaml("schemas", "document.schema.yaml"))


class DocumentLoader:
    """Load instruction documents from the configured source rules."""

    def __init__(
        self,
        repo_root: Path,
        config: Mapping[str, Any],
        token_counter: Optional[TokenCounter] = None,
    ) -> None:
        self.repo_root = Path(repo_root).resolve()
        self.config = config
        self.token_counter = token_counter
        self.rules = [SourceRule.from_dict(r) for r in (config.get("sources") or [])]
        self._schema = _validator()

        paths = config.get("paths") or {}
        org_dir = paths.get("organization_dir")
        self.roots: Dict[str, Optional[Path]] = {
            "project": self.repo_root,
            "user": get_user_config_dir(paths.get("user_config_dir")),
            "organization": expand_dir(org_dir, base=self.repo_root) if org_dir else None,
        }

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    def iter_files(self) -> Iterator[Tuple[SourceRule, Path, Path]]:
        """Yield ``(rule, root, file)`` for every file matched by the rules.

        A file matched by more than one rule belongs to the first rule only.
        """
        seen: Set[Path] = set()
        for rule in self.rules:
            root = self.roots.get(rule.root)
            if root is None or not root.is_dir():
                logger.debug("Skipping source %s: root %s is not available", rule.glob, rule.root)
                continue
            for path in sorted(root.glob(rule.glob)):
                if not path.is_file():
                    continue
                rel = path.relative_to(root)
                if IGNORED_DIRS.intersection(rel.parts[:-1]):
                    continue
                resolved = path.resolve()
                if resolved in seen:
                    continue
                seen.add(resolved)
                yield rule, root, path

    def load(self) -> List[InstructionDocument]:
        """Load every discovered file.

        Raises:
            DocumentLoadError: If a file cannot be read or its frontmatter is invalid
        """
        documents: List[InstructionDocument] = []
        with span("documents.load", rules=len(self.rules)):
            for rule, root, path in self.iter_files():
                doc = self.load_file(path, rule=rule, root=root)
                if doc is not None:
                    documents.append(doc)
        logger.info("Loaded %d instruction documents from %s", len(documents), self.repo_root)
        return documents

    # ------------------------------------------------------------------
    # Single file
    # ------------------------------------------------------------------
    def _display_path(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(self.repo_root).as_posix()
        except ValueError:
            return str(path)

    def _default_id(self, rule: SourceRule, root: Path, path: Path) -> str:
        if rule.tier is Tier.PROMPT_FILE and path.name.endswith(PROMPT_SUFFIX):
            return path.name[: -len(PROMPT_SUFFIX)]
        rel = path.relative_to(root).as_posix()
        return rel if rule.root == "project" else f"{rule.root}:{rel}"

    def _default_applies_to(self, tier: Tier, root: Path, path: Path) -> Tuple[str, ...]:
        # A nested AGENTS.md governs its own directory subtree, taken literally.
        if tier is Tier.AGENT_WORKFLOW and path.name == AGENTS_FILE:
            parent = PurePosixPath(path.relative_to(root).as_posix()).parent
            if str(parent) != ".":
                return (f"{escape_glob(str(parent))}/**",)
        return ()

    def load_file(self, path: Path, *, rule: SourceRule, root: Path) -> Optional[InstructionDocument]:
        """Build a document from one file; returns None for files with an empty body."""
        shown = self._display_path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentLoadError(shown, f"cannot read file: {exc}") from exc

        try:
            parsed = parse_frontmatter(text)
        except ValueError as exc:
            raise DocumentLoadError(shown, str(exc)) from exc

        meta = parsed.frontmatter
        errors = sorted(self._schema.iter_errors(meta), key=lambda e: list(e.absolute_path))
        if errors:
            first = errors[0]
            where = ".".join(str(p) for p in first.absolute_path) or "frontmatter"
            raise DocumentLoadError(shown, f"{where}: {first.message}")

        body = parsed.content.strip()
        if not body:
            logger.warning("Skipping %s: empty instruction body", shown)
            return None

        try:
            tier = Tier.parse(meta["tier"]) if "tier" in meta else rule.tier
            events = frozenset(EventType.parse(e) for e in meta.get("events") or ())
            applies_to = meta.get("applyTo")
            if applies_to is None:
                applies_to = self._default_applies_to(tier, root, path)
            doc = InstructionDocument(
                id=str(meta.get("id") or self._default_id(rule, root, path)),
                tier=tier,
                body=body,
                applies_to=applies_to,
                events=events,
                size_in_tokens=meta.get("sizeInTokens"),
                description=meta.get("description"),
                source=shown,
            )
        except ValueError as exc:
            raise DocumentLoadError(shown, str(exc)) from exc

        if doc.size_in_tokens is None and self.token_counter is not None:
            doc = doc.with_registration(
                size_in_tokens=self.token_counter.count(doc.body),
                registration_order=doc.registration_order,
            )
        logger.debug("Loaded %s as %s (%s)", shown, doc.id, doc.tier.value)
        return doc


__all__ = ["SourceRule", "DocumentLoader", "ROOT_KINDS"]
