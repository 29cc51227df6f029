from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from nerlude_extract.modules.extraction.schemas import DocumentInput, DocumentKind
from nerlude_extract.modules.registry.service import ServiceRegistry

Part = dict[str, Any]

_OUTPUT_SCHEMA = """{
  "success": true,
  "suggestedProjectName": "string - inferred project/company name if detectable, otherwise null",
  "services": [
    {
      "registryId": "string - matched service ID from registry, or null if unknown",
      "detectedName": "string - service name as found in document",
      "confidence": 0.0-1.0,
      "billing": {
        "amount": number or null,
        "currency": "USD" or other ISO-4217 code,
        "frequency": "monthly" | "yearly" | "one-time" | null
      },
      "accountIdentifier": "string - account ID, email, or identifier if found, otherwise null",
      "renewalDate": "YYYY-MM-DD or null",
      "planName": "string - detected plan tier if found, otherwise null",
      "notes": "string - any additional relevant info"
    }
  ],
  "unmatchedItems": ["string - services or items that couldn't be matched to registry"],
  "documentType": "invoice" | "receipt" | "spreadsheet" | "screenshot" | "other",
  "processingNotes": "string - any issues or observations about the documents"
}"""

_RULES = """1. Always return valid JSON - no markdown, no explanations outside the JSON
2. Set confidence based on how certain you are about the match (0.9+ for exact matches, \
0.5-0.8 for partial matches)
3. If you can't identify a service, add it to unmatchedItems
4. Extract ALL services found in the documents, even if they're not in the registry
5. For spreadsheets with multiple rows, extract each service as a separate entry
6. Currency should be a 3-letter ISO code (USD, EUR, GBP, etc.)
7. Dates should be in YYYY-MM-DD format
8. If the documents are unclear or unreadable, set success to false and explain in \
processingNotes"""

CLOSING_INSTRUCTION = (
    "Analyze these documents and extract all service/subscription information. "
    "Return valid JSON only, no markdown formatting and no prose around it."
)


def build_system_instruction(registry: ServiceRegistry) -> str:
    return (
        "You are an expert document analyzer for a product infrastructure management "
        "platform. Analyze the provided documents (invoices, bills, receipts, spreadsheets, "
        "screenshots, billing emails) and extract the software services and subscriptions "
        "being billed.\n\n"
        "## Known Services Registry\n"
        "Match extracted services to these known service IDs when possible:\n"
        f"{registry.prompt_listing()}\n\n"
        "## Output Format\n"
        "You MUST respond with valid JSON in this exact structure:\n"
        f"{_OUTPUT_SCHEMA}\n\n"
        "## Rules\n"
        f"{_RULES}"
    )


def build_task_instruction(document_count: int) -> str:
    return (
        f"Analyze the following {document_count} document(s) and extract all software "
        "services, subscriptions, and billing information. Return a single consolidated "
        "JSON response."
    )


def document_marker(doc: DocumentInput, *, position: int) -> str:
    name = (doc.filename or "").strip() or f"document-{position}"
    return f"[Document: {name}]"


def build_parts(documents: Sequence[DocumentInput], registry: ServiceRegistry) -> list[Part]:
    """
    Assemble the multi-part extraction request.

    Order: system instruction with schema and registry, task instruction, one part per document
    in submission order, closing instruction.
    """
    parts: list[Part] = [
        {"text": build_system_instruction(registry)},
        {"text": build_task_instruction(len(documents))},
    ]
    for position, doc in enumerate(documents, start=1):
        marker = document_marker(doc, position=position)
        if doc.kind == DocumentKind.BINARY:
            parts.append({"inline_data": {"mime_type": doc.mime_type, "data": doc.content}})
            parts.append({"text": marker})
        else:
            parts.append({"text": f"{marker}\n{doc.content}"})
    parts.append({"text": CLOSING_INSTRUCTION})
    return parts
