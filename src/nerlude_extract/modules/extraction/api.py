from __future__ import annotations

from fastapi import APIRouter, Depends

from nerlude_extract.api.deps import get_current_user, get_extraction_pipeline
from nerlude_extract.core.logging import get_logger, log_event
from nerlude_extract.modules.extraction.schemas import AnalysisResult, AnalyzeDocumentsRequest
from nerlude_extract.modules.extraction.service import ExtractionPipeline
from nerlude_extract.modules.identity.models import User

router = APIRouter(tags=["extraction"])
logger = get_logger(__name__)


@router.post("/projects/analyze-documents", response_model=AnalysisResult)
def analyze_documents(
    payload: AnalyzeDocumentsRequest,
    user: User = Depends(get_current_user),
    pipeline: ExtractionPipeline = Depends(get_extraction_pipeline),
) -> AnalysisResult:
    log_event(
        logger,
        "analyze_documents.received",
        document_count=len(payload.documents),
        context_id=payload.context_id,
    )
    return pipeline.analyze_documents(
        actor_id=user.id,
        documents=payload.documents,
        context_id=payload.context_id,
    )
