from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from nerlude_extract.core.config import settings
from nerlude_extract.core.errors import BatchLimitExceeded
from nerlude_extract.core.logging import get_logger, log_event, monotonic_ms
from nerlude_extract.modules.audit.schemas import AuditAction, AuditEntry
from nerlude_extract.modules.audit.service import AuditWriter, record_audit_entry
from nerlude_extract.modules.extraction.client import ExtractionClient
from nerlude_extract.modules.extraction.parsing import (
    Unparseable,
    parse_model_output,
    to_analysis_result,
)
from nerlude_extract.modules.extraction.prompt import build_parts
from nerlude_extract.modules.extraction.resolution import resolve_services
from nerlude_extract.modules.extraction.schemas import (
    AnalysisResult,
    DocumentInput,
    DocumentKind,
    DocumentType,
)
from nerlude_extract.modules.registry.service import ServiceRegistry

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExtractionPipeline:
    """
    Documents in, resolved ``AnalysisResult`` out.

    Stages run in a fixed order: batching, the extraction call, parsing, registry resolution.
    Only the extraction call can raise (``ExtractionTransportError``); parse problems come back as
    ``success=False``.
    """

    registry: ServiceRegistry
    client: ExtractionClient
    audit_writer: AuditWriter
    max_documents: int = 10

    def extract(self, documents: Sequence[DocumentInput]) -> AnalysisResult:
        if len(documents) > self.max_documents:
            raise BatchLimitExceeded(count=len(documents), limit=self.max_documents)
        if not documents:
            return empty_result("No documents to analyze")
        return resolve_services(self._extract_raw(documents), self.registry)

    def extract_in_batches(self, documents: Sequence[DocumentInput]) -> AnalysisResult:
        """Split an arbitrarily long document list into ceiling-sized calls and merge them."""
        if not documents:
            return empty_result("No documents to analyze")
        batches = [
            documents[i : i + self.max_documents]
            for i in range(0, len(documents), self.max_documents)
        ]
        merged = merge_results([self._extract_raw(batch) for batch in batches])
        return resolve_services(merged, self.registry)

    def analyze_documents(
        self,
        *,
        actor_id: uuid.UUID,
        documents: Sequence[DocumentInput],
        context_id: str | None = None,
    ) -> AnalysisResult:
        if len(documents) > self.max_documents:
            raise BatchLimitExceeded(count=len(documents), limit=self.max_documents)

        start = time.monotonic()
        log_event(
            logger,
            "extraction.start",
            document_count=len(documents),
            binary_count=sum(1 for d in documents if d.kind == DocumentKind.BINARY),
            context_id=context_id,
        )
        result = self.extract(documents)
        record_audit_entry(
            self.audit_writer,
            AuditEntry(
                actor_id=actor_id,
                action=AuditAction.DOCUMENTS_ANALYZED,
                document_count=len(documents),
                services_detected=len(result.services),
                success=result.success,
                context_id=context_id,
                details={"unmatched_count": len(result.unmatched_items)},
            ),
        )
        log_event(
            logger,
            "extraction.finish",
            status="success" if result.success else "unusable_output",
            document_count=len(documents),
            services_detected=len(result.services),
            unmatched_count=len(result.unmatched_items),
            duration_ms=monotonic_ms(start),
        )
        return result

    def _extract_raw(self, documents: Sequence[DocumentInput]) -> AnalysisResult:
        parts = build_parts(documents, self.registry)
        raw_text = self.client.generate(parts)
        preview_chars = max(0, int(settings.extraction_log_preview_chars or 0))
        log_event(
            logger,
            "extraction.output.received",
            document_count=len(documents),
            output_chars=len(raw_text or ""),
            output_preview=(raw_text or "")[:preview_chars] or None,
        )
        outcome = parse_model_output(raw_text)
        if isinstance(outcome, Unparseable):
            log_event(
                logger,
                "extraction.parse.unparseable",
                level=logging.WARNING,
                reason=outcome.reason,
                document_count=len(documents),
            )
        return to_analysis_result(outcome)


def empty_result(note: str) -> AnalysisResult:
    return AnalysisResult(
        success=True,
        suggested_project_name=None,
        services=[],
        unmatched_items=[],
        document_type=DocumentType.OTHER,
        processing_notes=note,
    )


def merge_results(results: Sequence[AnalysisResult]) -> AnalysisResult:
    """Fold per-batch results into one, keeping batch order."""
    if len(results) == 1:
        return results[0]

    services = [service for result in results for service in result.services]
    unmatched: list[str] = []
    seen: set[str] = set()
    for result in results:
        for item in result.unmatched_items:
            if item.lower() in seen:
                continue
            seen.add(item.lower())
            unmatched.append(item)

    types = {r.document_type for r in results}
    document_type = next(iter(types)) if len(types) == 1 else DocumentType.OTHER
    project_name = next(
        (r.suggested_project_name for r in results if r.suggested_project_name), None
    )
    notes = [
        f"Batch {idx}: {r.processing_notes}"
        for idx, r in enumerate(results, start=1)
        if r.processing_notes
    ]
    return AnalysisResult(
        success=any(r.success for r in results),
        suggested_project_name=project_name,
        services=services,
        unmatched_items=unmatched,
        document_type=document_type,
        processing_notes=" ".join(notes),
    )
