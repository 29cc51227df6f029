from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel


@dataclass(frozen=True)
class ServiceRegistryEntry:
    id: str
    name: str
    aliases: frozenset[str]
    category: str


@dataclass(frozen=True)
class RegistryMatch:
    registry_id: str | None
    score: float


class ServiceEntryOut(BaseModel):
    id: str
    name: str
    aliases: list[str]
    category: str


class CategoryOut(BaseModel):
    slug: str
    service_count: int
