from __future__ import annotations

import json
from collections import Counter
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from nerlude_extract.core.config import settings
from nerlude_extract.core.logging import get_logger, log_event
from nerlude_extract.modules.registry.data import DEFAULT_SERVICES
from nerlude_extract.modules.registry.schemas import RegistryMatch, ServiceRegistryEntry

logger = get_logger(__name__)

NO_MATCH = RegistryMatch(registry_id=None, score=0.0)


@dataclass(frozen=True)
class MatchScores:
    canonical: float = 1.0
    alias: float = 0.9
    substring: float = 0.6
    min_substring_length: int = 3

    @classmethod
    def from_settings(cls) -> MatchScores:
        return cls(
            canonical=settings.match_score_canonical,
            alias=settings.match_score_alias,
            substring=settings.match_score_substring,
            min_substring_length=settings.match_min_substring_length,
        )


class ServiceRegistry:
    """
    Immutable vendor catalogue with a case-insensitive name/alias index.

    The index is built once in the constructor and only read afterwards, so one instance can be
    shared by every request without locking.
    """

    def __init__(
        self, entries: Iterable[ServiceRegistryEntry], *, scores: MatchScores | None = None
    ) -> None:
        self._entries: tuple[ServiceRegistryEntry, ...] = tuple(entries)
        self._scores = scores or MatchScores()

        by_id: dict[str, ServiceRegistryEntry] = {}
        by_name: dict[str, str] = {}
        by_alias: dict[str, str] = {}
        terms: list[tuple[str, str]] = []
        for entry in self._entries:
            key = entry.id.strip().lower()
            if key in by_id:
                raise ValueError(f"Duplicate registry id: {entry.id}")
            by_id[key] = entry
            name = _norm(entry.name)
            by_name.setdefault(name, entry.id)
            terms.append((name, entry.id))
            for alias in sorted(entry.aliases):
                a = _norm(alias)
                if not a:
                    continue
                by_alias.setdefault(a, entry.id)
                terms.append((a, entry.id))

        self._by_id = by_id
        self._by_name = by_name
        self._by_alias = by_alias
        # Longest terms first so the most specific containment wins.
        self._terms: tuple[tuple[str, str], ...] = tuple(
            sorted(terms, key=lambda t: len(t[0]), reverse=True)
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ServiceRegistryEntry]:
        return iter(self._entries)

    def __contains__(self, registry_id: object) -> bool:
        return isinstance(registry_id, str) and registry_id.strip().lower() in self._by_id

    def get(self, registry_id: str | None) -> ServiceRegistryEntry | None:
        if not registry_id:
            return None
        return self._by_id.get(registry_id.strip().lower())

    def resolve(self, candidate_name: str | None) -> RegistryMatch:
        key = _norm(candidate_name)
        if not key:
            return NO_MATCH

        registry_id = self._by_name.get(key)
        if registry_id:
            return RegistryMatch(registry_id=registry_id, score=self._scores.canonical)

        registry_id = self._by_alias.get(key)
        if registry_id:
            return RegistryMatch(registry_id=registry_id, score=self._scores.alias)

        if len(key) < self._scores.min_substring_length:
            return NO_MATCH
        for term, term_id in self._terms:
            if len(term) < self._scores.min_substring_length:
                continue
            if term in key or key in term:
                return RegistryMatch(registry_id=term_id, score=self._scores.substring)
        return NO_MATCH

    def sender_matches(self, address: str | None) -> bool:
        sender = (address or "").strip().lower()
        if not sender:
            return False
        return any(term in sender for term, _ in self._terms)

    def categories(self) -> list[tuple[str, int]]:
        counts = Counter(entry.category for entry in self._entries)
        return sorted(counts.items())

    def prompt_listing(self) -> str:
        lines: list[str] = []
        for entry in self._entries:
            aliases = ", ".join(sorted(entry.aliases))
            lines.append(f"- {entry.id}: {entry.name} (aliases: {aliases})")
        return "\n".join(lines)


def _norm(value: str | None) -> str:
    return " ".join((value or "").split()).lower()


def load_registry(
    path: Path | None = None, *, scores: MatchScores | None = None
) -> ServiceRegistry:
    """Build the registry from a JSON file when one is configured, else from the bundled list."""
    path = path or settings.registry_path
    scores = scores or MatchScores.from_settings()
    if path is None:
        entries = [
            ServiceRegistryEntry(id=sid, name=name, aliases=frozenset(aliases), category=category)
            for sid, name, aliases, category in DEFAULT_SERVICES
        ]
        source = "bundled"
    else:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValueError(f"Registry file must contain a JSON list: {path}")
        entries = [_entry_from_json(item) for item in raw]
        source = str(path)

    registry = ServiceRegistry(entries, scores=scores)
    log_event(logger, "registry.loaded", source=source, service_count=len(registry))
    return registry


def _entry_from_json(item: object) -> ServiceRegistryEntry:
    if not isinstance(item, dict):
        raise ValueError("Registry entries must be JSON objects")
    sid = item.get("id")
    name = item.get("name")
    if not isinstance(sid, str) or not sid.strip() or not isinstance(name, str) or not name.strip():
        raise ValueError(f"Registry entry needs a non-empty id and name: {item!r}")
    aliases = item.get("aliases") or []
    if not isinstance(aliases, list):
        raise ValueError(f"Registry aliases must be a list: {sid}")
    return ServiceRegistryEntry(
        id=sid.strip(),
        name=name.strip(),
        aliases=frozenset(str(a).strip().lower() for a in aliases if str(a).strip()),
        category=str(item.get("category") or "other"),
    )
