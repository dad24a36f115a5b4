"""Tests for the resolution service (end-to-end over in-memory documents)."""
from __future__ import annotations

import threading

import pytest

from stratum.core.documents import EventType, Tier
from stratum.core.exceptions import (
    BudgetExceededByMandatoryTierError,
    ResolutionCancelledError,
    UnknownExplicitTemplateError,
)
from stratum.core.resolution import ResolutionService
from stratum.core.utils.profiling import Profiler, enable_profiler
from tests.helpers.documents import make_doc, make_registry


@pytest.fixture
def service() -> ResolutionService:
    registry = make_registry(
        make_doc("A", Tier.REPOSITORY_WIDE, 100),
        make_doc("B", Tier.PATH_SPECIFIC, 50, applies_to=["**/*.c"]),
        make_doc("C", Tier.PATH_SPECIFIC, 50, applies_to=["**/*.cpp"]),
    )
    return ResolutionService(registry)


def test_resolve_includes_matching_documents_in_precedence_order(service: ResolutionService) -> None:
    ctx = service.resolve("main.c", EventType.COMPLETION, max_tokens=1000)
    assert ctx.document_ids == ["A", "B"]
    assert ctx.dropped == ()
    assert ctx.total_tokens == 150


def test_resolve_excludes_non_matching_path_documents(service: ResolutionService) -> None:
    assert service.resolve("main.py", EventType.COMPLETION, max_tokens=1000).document_ids == ["A"]


def test_resolve_reports_budget_drops(service: ResolutionService) -> None:
    ctx = service.resolve("main.c", EventType.COMPLETION, max_tokens=120)
    assert ctx.document_ids == ["A"]
    assert ctx.dropped_ids == ["B"]
    assert ctx.dropped[0].size_in_tokens == 50


def test_resolve_uses_service_default_budget() -> None:
    registry = make_registry(
        make_doc("A", Tier.REPOSITORY_WIDE, 100),
        make_doc("B", Tier.PATH_SPECIFIC, 50, applies_to=["**/*.c"]),
    )
    svc = ResolutionService(registry, default_max_tokens=120)
    assert svc.resolve("main.c").dropped_ids == ["B"]
    assert svc.resolve("main.c", max_tokens=1000).dropped_ids == []


def test_resolve_raises_when_mandatory_documents_do_not_fit(service: ResolutionService) -> None:
    with pytest.raises(BudgetExceededByMandatoryTierError) as exc_info:
        service.resolve("main.c", EventType.COMPLETION, max_tokens=99)
    assert exc_info.value.offending == (("A", 100),)


def test_resolution_is_deterministic(service: ResolutionService) -> None:
    first = service.resolve("src/main.c", EventType.CHAT, max_tokens=1000)
    for _ in range(5):
        again = service.resolve("src/main.c", EventType.CHAT, max_tokens=1000)
        assert again.composed_text.encode("utf-8") == first.composed_text.encode("utf-8")
        assert again.entries == first.entries


def test_resolve_against_a_held_snapshot_ignores_reload(service: ResolutionService) -> None:
    held = service.registry.snapshot()
    service.reload([make_doc("Z", Tier.REPOSITORY_WIDE, 10)])

    old = service.resolve("main.c", max_tokens=1000, snapshot=held)
    new = service.resolve("main.c", max_tokens=1000)

    assert old.document_ids == ["A", "B"]
    assert old.generation == held.generation
    assert new.document_ids == ["Z"]
    assert new.generation == held.generation + 1


def test_explicit_prompt_is_resolved_alone() -> None:
    registry = make_registry(
        make_doc("A", Tier.REPOSITORY_WIDE, 100),
        make_doc("fix-bug", Tier.PROMPT_FILE, 30, body="Reproduce first."),
    )
    svc = ResolutionService(registry)
    ctx = svc.resolve_explicit("fix-bug")
    assert ctx.document_ids == ["fix-bug"]
    assert ctx.composed_text == "<!-- prompt_file: fix-bug -->\nReproduce first."


def test_explicit_resolution_is_profiled_under_its_prompt_name() -> None:
    registry = make_registry(make_doc("fix-bug", Tier.PROMPT_FILE, 30))
    profiler = Profiler()
    with enable_profiler(profiler):
        ResolutionService(registry).resolve_explicit("fix-bug")
    explicit = [s for s in profiler.spans if s.name == "resolve.explicit"]
    assert [s.meta for s in explicit] == [{"prompt": "fix-bug"}]


def test_explicit_prompt_can_be_combined_on_request() -> None:
    registry = make_registry(
        make_doc("org", Tier.ORGANIZATION, 10),
        make_doc("A", Tier.REPOSITORY_WIDE, 100),
        make_doc("fix-bug", Tier.PROMPT_FILE, 30),
    )
    svc = ResolutionService(registry)
    assert svc.resolve("main.c").document_ids == ["A", "org"]
    assert svc.resolve("main.c", explicit_name="fix-bug").document_ids == ["A", "fix-bug", "org"]


def test_oversized_explicit_prompt_is_dropped_not_fatal() -> None:
    registry = make_registry(make_doc("fix-bug", Tier.PROMPT_FILE, 300))
    ctx = ResolutionService(registry).resolve_explicit("fix-bug", max_tokens=100)
    assert ctx.document_ids == []
    assert ctx.dropped_ids == ["fix-bug"]


def test_unknown_explicit_name_raises(service: ResolutionService) -> None:
    with pytest.raises(UnknownExplicitTemplateError):
        service.resolve_explicit("nope")
    with pytest.raises(UnknownExplicitTemplateError):
        service.resolve("main.c", explicit_name="nope")


def test_cancelled_resolution_raises(service: ResolutionService) -> None:
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(ResolutionCancelledError) as exc_info:
        service.resolve("main.c", cancel=cancel)
    assert exc_info.value.context["stage"] == "matching"


def test_unset_cancel_token_does_not_interfere(service: ResolutionService) -> None:
    assert service.resolve("main.c", max_tokens=1000, cancel=threading.Event()).document_ids == ["A", "B"]


def test_validate_reports_all_problems_without_raising(service: ResolutionService) -> None:
    findings = service.validate(
        [
            make_doc("dup", Tier.ORGANIZATION),
            make_doc("dup", Tier.ORGANIZATION),
            make_doc("bad", Tier.PATH_SPECIFIC, applies_to=["src/**x"]),
            make_doc("big", Tier.PERSONAL, 500),
        ],
        max_tokens=100,
    )
    kinds = [f.kind for f in findings]
    assert kinds == [
        "DuplicateDocumentIDError",
        "InvalidPatternSyntaxError",
        "BudgetExceededByMandatoryTierError",
    ]
    assert findings[0].document_ids == ("dup",)
    assert findings[1].document_ids == ("bad",)
    assert findings[2].document_ids == ("big",)
    assert all(f.severity == "error" for f in findings)


def test_validate_current_snapshot_is_clean(service: ResolutionService) -> None:
    assert service.validate(max_tokens=1000) == []


def test_validate_does_not_touch_the_registry(service: ResolutionService) -> None:
    before = service.registry.snapshot()
    service.validate([make_doc("new", Tier.ORGANIZATION)])
    assert service.registry.snapshot() is before


def test_concurrent_resolves_during_reload_see_consistent_snapshots(service: ResolutionService) -> None:
    errors = []

    def reader() -> None:
        for _ in range(200):
            ctx = service.resolve("main.c", max_tokens=1000)
            if ctx.document_ids not in (["A", "B"], ["A2", "B2"]):
                errors.append(ctx.document_ids)

    def writer() -> None:
        for i in range(50):
            suffix = "2" if i % 2 == 0 else ""
            service.reload(
                [
                    make_doc(f"A{suffix}", Tier.REPOSITORY_WIDE, 100),
                    make_doc(f"B{suffix}", Tier.PATH_SPECIFIC, 50, applies_to=["**/*.c"]),
                ]
            )

    threads = [threading.Thread(target=reader) for _ in range(4)] + [threading.Thread(target=writer)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
