"""Tier precedence policy.

The default order (highest precedence first) is:

    personal > repository_wide > path_specific > agent_workflow > prompt_file > organization

The order is declared policy rather than a hard-coded assumption; projects can
override it in the ``precedence`` config section:

    precedence:
      tiers: [personal, repository_wide, path_specific, agent_workflow, prompt_file, organization]
      mandatory: [personal, repository_wide]
      always_applicable: [personal, repository_wide, organization]
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, Mapping, Optional, Tuple

from stratum.core.documents.models import InstructionDocument, Tier

DEFAULT_TIER_ORDER: Tuple[Tier, ...] = (
    Tier.PERSONAL,
    Tier.REPOSITORY_WIDE,
    Tier.PATH_SPECIFIC,
    Tier.AGENT_WORKFLOW,
    Tier.PROMPT_FILE,
    Tier.ORGANIZATION,
)
DEFAULT_MANDATORY: FrozenSet[Tier] = frozenset({Tier.PERSONAL, Tier.REPOSITORY_WIDE})
DEFAULT_ALWAYS_APPLICABLE: FrozenSet[Tier] = frozenset(
    {Tier.PERSONAL, Tier.REPOSITORY_WIDE, Tier.ORGANIZATION}
)


def _parse_tiers(values: Iterable[Any]) -> Tuple[Tier, ...]:
    return tuple(Tier.parse(v) for v in values)


@dataclass(frozen=True)
class PrecedencePolicy:
    """Declared tier order plus the mandatory and always-applicable tier sets."""

    tiers: Tuple[Tier, ...] = DEFAULT_TIER_ORDER
    mandatory: FrozenSet[Tier] = field(default=DEFAULT_MANDATORY)
    always_applicable: FrozenSet[Tier] = field(default=DEFAULT_ALWAYS_APPLICABLE)

    def __post_init__(self) -> None:
        tiers = _parse_tiers(self.tiers)
        if sorted(t.value for t in tiers) != sorted(t.value for t in Tier):
            raise ValueError(
                "precedence.tiers must list every tier exactly once: "
                + ", ".join(t.value for t in Tier)
            )
        mandatory = frozenset(_parse_tiers(self.mandatory))
        always = frozenset(_parse_tiers(self.always_applicable))
        if Tier.PROMPT_FILE in always or Tier.PROMPT_FILE in mandatory:
            raise ValueError("prompt_file documents are only reachable by explicit name")
        if not mandatory <= always:
            raise ValueError("mandatory tiers must also be always-applicable")
        object.__setattr__(self, "tiers", tiers)
        object.__setattr__(self, "mandatory", mandatory)
        object.__setattr__(self, "always_applicable", always)

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]] = None) -> "PrecedencePolicy":
        """Build a policy from the ``precedence`` config section (defaults when absent)."""
        section = (config or {}).get("precedence") or {}

        def configured(key: str, default: Iterable[Tier]) -> Iterable[Tier]:
            # An explicit empty list is a real setting.
            value = section.get(key)
            return default if value is None else _parse_tiers(value)

        return cls(
            tiers=configured("tiers", DEFAULT_TIER_ORDER),
            mandatory=frozenset(configured("mandatory", DEFAULT_MANDATORY)),
            always_applicable=frozenset(configured("always_applicable", DEFAULT_ALWAYS_APPLICABLE)),
        )

    def rank(self, tier: Tier) -> int:
        """Lower rank means higher precedence."""
        return self.tiers.index(tier)

    def sort_key(self, doc: InstructionDocument) -> Tuple[int, int]:
        return (self.rank(doc.tier), doc.registration_order)

    def is_mandatory(self, tier: Tier) -> bool:
        return tier in self.mandatory

    def is_always_applicable(self, tier: Tier) -> bool:
        return tier in self.always_applicable


DEFAULT_POLICY = PrecedencePolicy()


__all__ = [
    "DEFAULT_TIER_ORDER",
    "DEFAULT_MANDATORY",
    "DEFAULT_ALWAYS_APPLICABLE",
    "DEFAULT_POLICY",
    "PrecedencePolicy",
]
