from __future__ import annotations

from fastapi import APIRouter, Depends

from nerlude_extract.api.deps import get_current_user, get_registry
from nerlude_extract.modules.identity.models import User
from nerlude_extract.modules.registry.schemas import CategoryOut, ServiceEntryOut
from nerlude_extract.modules.registry.service import ServiceRegistry

router = APIRouter(tags=["registry"])


@router.get("/registry/services", response_model=list[ServiceEntryOut])
def list_services(
    category: str | None = None,
    q: str | None = None,
    registry: ServiceRegistry = Depends(get_registry),
    _: User = Depends(get_current_user),
) -> list[ServiceEntryOut]:
    wanted = (category or "").strip().lower()
    query = (q or "").strip().lower()
    out: list[ServiceEntryOut] = []
    for entry in registry:
        if wanted and entry.category != wanted:
            continue
        if query:
            haystack = [entry.id, entry.name.lower(), *entry.aliases]
            if not any(query in term for term in haystack):
                continue
        out.append(
            ServiceEntryOut(
                id=entry.id,
                name=entry.name,
                aliases=sorted(entry.aliases),
                category=entry.category,
            )
        )
    return out


@router.get("/registry/categories", response_model=list[CategoryOut])
def list_categories(
    registry: ServiceRegistry = Depends(get_registry),
    _: User = Depends(get_current_user),
) -> list[CategoryOut]:
    return [CategoryOut(slug=slug, service_count=n) for slug, n in registry.categories()]
