"""Tests for token budget allocation."""
from __future__ import annotations

import pytest

from stratum.core.documents import Tier
from stratum.core.exceptions import BudgetExceededByMandatoryTierError
from stratum.core.policy import PrecedencePolicy
from stratum.core.resolution import allocate, check_mandatory_budget, order_documents
from tests.helpers.documents import make_doc


def _ordered(*docs):
    registered = [d.with_registration(size_in_tokens=d.size_in_tokens, registration_order=i) for i, d in enumerate(docs)]
    return order_documents(registered)


def _ids(docs):
    return [d.id for d in docs]


def test_everything_fits() -> None:
    docs = _ordered(make_doc("a", Tier.REPOSITORY_WIDE, 100), make_doc("b", Tier.PATH_SPECIFIC, 50))
    result = allocate(docs, 1000)
    assert _ids(result.selected) == ["a", "b"]
    assert result.dropped == ()
    assert result.total_tokens == 150


def test_document_that_does_not_fit_is_dropped_whole() -> None:
    docs = _ordered(make_doc("a", Tier.REPOSITORY_WIDE, 100), make_doc("b", Tier.PATH_SPECIFIC, 50))
    result = allocate(docs, 120)
    assert _ids(result.selected) == ["a"]
    assert _ids(result.dropped) == ["b"]


def test_smaller_lower_precedence_document_can_still_fit() -> None:
    docs = _ordered(
        make_doc("repo", Tier.REPOSITORY_WIDE, 50),
        make_doc("big", Tier.PATH_SPECIFIC, 80),
        make_doc("small", Tier.AGENT_WORKFLOW, 20),
        make_doc("org", Tier.ORGANIZATION, 40),
    )
    result = allocate(docs, 100)
    assert _ids(result.selected) == ["repo", "small"]
    assert _ids(result.dropped) == ["big", "org"]


def test_exact_fit_is_included() -> None:
    docs = _ordered(make_doc("a", Tier.PERSONAL, 60), make_doc("b", Tier.ORGANIZATION, 40))
    assert _ids(allocate(docs, 100).selected) == ["a", "b"]


def test_unlimited_budget_selects_everything() -> None:
    docs = _ordered(make_doc("a", Tier.PERSONAL, 10_000), make_doc("b", Tier.ORGANIZATION, 10_000))
    assert _ids(allocate(docs, None).selected) == ["a", "b"]


def test_single_oversized_mandatory_document_is_fatal() -> None:
    docs = _ordered(make_doc("me", Tier.PERSONAL, 10), make_doc("repo", Tier.REPOSITORY_WIDE, 500))
    with pytest.raises(BudgetExceededByMandatoryTierError) as exc_info:
        allocate(docs, 100)
    err = exc_info.value
    assert err.offending == (("repo", 500),)
    assert err.max_tokens == 100
    assert err.context["documents"] == [{"id": "repo", "sizeInTokens": 500}]


def test_mandatory_set_overflow_names_every_mandatory_document() -> None:
    docs = _ordered(make_doc("me", Tier.PERSONAL, 60), make_doc("repo", Tier.REPOSITORY_WIDE, 60))
    with pytest.raises(BudgetExceededByMandatoryTierError) as exc_info:
        allocate(docs, 100)
    assert [doc_id for doc_id, _ in exc_info.value.offending] == ["me", "repo"]
    assert exc_info.value.context["required_tokens"] == 120


def test_non_mandatory_overflow_is_never_fatal() -> None:
    docs = _ordered(make_doc("org", Tier.ORGANIZATION, 5000))
    result = allocate(docs, 100)
    assert result.selected == ()
    assert _ids(result.dropped) == ["org"]


def test_mandatory_documents_are_reserved_before_others() -> None:
    # Organization outranks every mandatory tier here; the mandatory document is still reserved first.
    policy = PrecedencePolicy(
        tiers=(
            Tier.ORGANIZATION,
            Tier.PATH_SPECIFIC,
            Tier.PERSONAL,
            Tier.REPOSITORY_WIDE,
            Tier.AGENT_WORKFLOW,
            Tier.PROMPT_FILE,
        )
    )
    docs = order_documents(
        [
            make_doc("org", Tier.ORGANIZATION, 80).with_registration(size_in_tokens=80, registration_order=0),
            make_doc("repo", Tier.REPOSITORY_WIDE, 50).with_registration(size_in_tokens=50, registration_order=1),
        ],
        policy,
    )
    result = allocate(docs, 100, policy)
    assert _ids(result.selected) == ["repo"]
    assert _ids(result.dropped) == ["org"]


def test_negative_budget_is_rejected() -> None:
    with pytest.raises(ValueError):
        allocate([], -1)


def test_check_mandatory_budget_returns_none_when_it_fits() -> None:
    docs = _ordered(make_doc("me", Tier.PERSONAL, 10))
    assert check_mandatory_budget(docs, 10) is None
    assert check_mandatory_budget(docs, None) is None
