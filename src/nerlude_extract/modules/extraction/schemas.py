from __future__ import annotations

import enum
from datetime import date
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from nerlude_extract.core.config import settings


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DocumentKind(str, enum.Enum):
    TEXT = "text"
    BINARY = "binary"


# Kinds sent by older upload clients, with the mime type they implied.
_LEGACY_BINARY_KINDS: dict[str, str] = {
    "image": "image/png",
    "pdf": "application/pdf",
}


class DocumentInput(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    kind: DocumentKind
    content: str = Field(min_length=1)
    mime_type: str | None = None
    filename: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_kinds(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "kind" not in data and "type" in data:
            data["kind"] = data.pop("type")
        kind = data.get("kind")
        if isinstance(kind, str) and kind.lower() in _LEGACY_BINARY_KINDS:
            legacy = kind.lower()
            data["kind"] = DocumentKind.BINARY.value
            if not (data.get("mimeType") or data.get("mime_type")):
                data["mimeType"] = _LEGACY_BINARY_KINDS[legacy]
        return data

    @model_validator(mode="after")
    def _binary_needs_mime_type(self) -> DocumentInput:
        if self.kind == DocumentKind.BINARY and not (self.mime_type or "").strip():
            raise ValueError("Binary documents must declare a mimeType")
        return self


class AnalyzeDocumentsRequest(CamelModel):
    documents: list[DocumentInput] = Field(min_length=1)
    context_id: str | None = Field(
        default=None,
        max_length=100,
        validation_alias=AliasChoices("contextId", "workspaceId", "context_id"),
    )

    @field_validator("documents")
    @classmethod
    def _enforce_batch_ceiling(cls, value: list[DocumentInput]) -> list[DocumentInput]:
        limit = settings.max_documents_per_request
        if len(value) > limit:
            raise ValueError(f"Maximum {limit} documents per request")
        return value


class BillingFrequency(str, enum.Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"
    ONE_TIME = "one-time"


class DocumentType(str, enum.Enum):
    INVOICE = "invoice"
    RECEIPT = "receipt"
    SPREADSHEET = "spreadsheet"
    SCREENSHOT = "screenshot"
    OTHER = "other"


class Billing(CamelModel):
    amount: float | None = None
    currency: str = "USD"
    frequency: BillingFrequency | None = None


class ExtractedService(CamelModel):
    registry_id: str | None = None
    detected_name: str
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    billing: Billing = Field(default_factory=Billing)
    account_identifier: str | None = None
    renewal_date: date | None = None
    plan_name: str | None = None
    notes: str = ""


class AnalysisResult(CamelModel):
    success: bool
    suggested_project_name: str | None = None
    services: list[ExtractedService] = Field(default_factory=list)
    unmatched_items: list[str] = Field(default_factory=list)
    document_type: DocumentType = DocumentType.OTHER
    processing_notes: str = ""
