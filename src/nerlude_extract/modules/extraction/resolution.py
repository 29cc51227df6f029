from __future__ import annotations

from nerlude_extract.core.logging import get_logger, log_event
from nerlude_extract.modules.extraction.parsing import clamp_confidence
from nerlude_extract.modules.extraction.schemas import AnalysisResult, ExtractedService
from nerlude_extract.modules.registry.service import ServiceRegistry

logger = get_logger(__name__)

PROMOTED_NOTE = "Listed as unmatched by the extraction model; resolved from the service registry."


class _UnmatchedList:
    """Insertion-ordered list of names, deduplicated case-insensitively."""

    def __init__(self) -> None:
        self.items: list[str] = []
        self._seen: set[str] = set()

    def add(self, name: str) -> None:
        key = name.strip().lower()
        if not key or key in self._seen:
            return
        self._seen.add(key)
        self.items.append(name.strip())


def resolve_service(service: ExtractedService, registry: ServiceRegistry) -> ExtractedService:
    """
    Validate or assign ``registry_id`` for one service.

    A model-supplied id that exists in the registry is kept (normalised to its canonical
    spelling). Otherwise the detected name is matched locally and the confidence becomes the
    larger of the model's and the local score.
    """
    model_confidence = clamp_confidence(service.confidence)
    entry = registry.get(service.registry_id)
    if entry is not None:
        return service.model_copy(
            update={"registry_id": entry.id, "confidence": model_confidence}
        )

    match = registry.resolve(service.detected_name)
    return service.model_copy(
        update={
            "registry_id": match.registry_id,
            "confidence": clamp_confidence(max(model_confidence, match.score)),
        }
    )


def resolve_services(result: AnalysisResult, registry: ServiceRegistry) -> AnalysisResult:
    services: list[ExtractedService] = []
    unresolved_names: list[str] = []
    invalid_ids = 0
    for service in result.services:
        if service.registry_id and service.registry_id not in registry:
            invalid_ids += 1
        resolved = resolve_service(service, registry)
        services.append(resolved)
        if resolved.registry_id is None:
            unresolved_names.append(resolved.detected_name)

    matched_names = {s.detected_name.strip().lower() for s in services if s.registry_id}
    covered_ids = {s.registry_id for s in services if s.registry_id}

    unmatched = _UnmatchedList()
    promoted = 0
    for item in result.unmatched_items:
        if item.strip().lower() in matched_names:
            continue
        match = registry.resolve(item)
        if match.registry_id is None:
            unmatched.add(item)
            continue
        if match.registry_id in covered_ids:
            continue
        covered_ids.add(match.registry_id)
        promoted += 1
        services.append(
            ExtractedService(
                registry_id=match.registry_id,
                detected_name=item.strip(),
                confidence=clamp_confidence(match.score),
                notes=PROMOTED_NOTE,
            )
        )
    for name in unresolved_names:
        unmatched.add(name)

    log_event(
        logger,
        "extraction.resolve.finish",
        service_count=len(services),
        matched_count=len(covered_ids),
        unmatched_count=len(unmatched.items),
        invalid_registry_ids=invalid_ids or None,
        promoted_unmatched=promoted or None,
    )
    return result.model_copy(update={"services": services, "unmatched_items": unmatched.items})
