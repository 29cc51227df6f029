from __future__ import annotations

import json

import pytest

from nerlude_extract.modules.registry.schemas import ServiceRegistryEntry
from nerlude_extract.modules.registry.service import (
    NO_MATCH,
    MatchScores,
    ServiceRegistry,
    load_registry,
)


def _registry() -> ServiceRegistry:
    return ServiceRegistry(
        [
            ServiceRegistryEntry(
                id="vercel", name="Vercel", aliases=frozenset({"vercel inc"}), category="hosting"
            ),
            ServiceRegistryEntry(
                id="aws",
                name="Amazon Web Services",
                aliases=frozenset({"aws.amazon.com"}),
                category="infrastructure",
            ),
            ServiceRegistryEntry(
                id="github", name="GitHub", aliases=frozenset({"github inc"}), category="devtools"
            ),
        ]
    )


def test_resolve_scores_canonical_alias_and_substring():
    registry = _registry()

    assert registry.resolve("Vercel").registry_id == "vercel"
    assert registry.resolve("Vercel").score == 1.0
    assert registry.resolve("Vercel Inc").score == 0.9
    match = registry.resolve("AWS")
    assert match.registry_id == "aws"
    assert match.score == 0.6


def test_resolve_is_case_insensitive_and_idempotent():
    registry = _registry()

    first = registry.resolve("gItHuB")
    assert first == registry.resolve("GITHUB")
    assert first == registry.resolve("  github  ")
    assert first.registry_id == "github"
    assert first.score == 1.0


@pytest.mark.parametrize("name", [None, "", "   ", "xy", "Office coffee subscription"])
def test_resolve_returns_no_match(name):
    assert _registry().resolve(name) == NO_MATCH


def test_short_names_never_substring_match():
    registry = ServiceRegistry(
        [ServiceRegistryEntry(id="fly", name="Fly.io", aliases=frozenset(), category="hosting")],
        scores=MatchScores(min_substring_length=3),
    )

    assert registry.resolve("fl") == NO_MATCH
    assert registry.resolve("Fly.io invoice").registry_id == "fly"


def test_duplicate_ids_are_rejected():
    entry = ServiceRegistryEntry(id="x1", name="X", aliases=frozenset(), category="other")

    with pytest.raises(ValueError):
        ServiceRegistry([entry, entry])


def test_bundled_registry_covers_common_vendors():
    registry = load_registry()

    assert "vercel" in registry
    assert "STRIPE" in registry
    assert registry.resolve("AWS").registry_id == "aws"
    assert registry.resolve("stripe.com").score == 0.9
    assert registry.sender_matches("billing@stripe.com")
    assert not registry.sender_matches("jordan.friend@example.org")
    assert "- vercel: Vercel (aliases:" in registry.prompt_listing()


def test_registry_can_be_loaded_from_json(tmp_path):
    path = tmp_path / "registry.json"
    path.write_text(
        json.dumps(
            [{"id": "acme", "name": "Acme Cloud", "aliases": ["acme.io"], "category": "hosting"}]
        ),
        encoding="utf-8",
    )

    registry = load_registry(path)

    assert len(registry) == 1
    assert registry.resolve("acme.io").registry_id == "acme"
    assert registry.categories() == [("hosting", 1)]
