"""
Parsing of the extraction model's free-text output.

The model is asked for a single JSON object but routinely wraps it in markdown fences, adds prose,
or stops mid-object. ``parse_model_output`` walks a strict-to-lenient ladder and returns a tagged
outcome; ``to_analysis_result`` turns either outcome into a well-formed ``AnalysisResult``. Neither
function raises for any input text.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from nerlude_extract.core.currencies import DEFAULT_CURRENCY, normalize_currency
from nerlude_extract.modules.extraction.schemas import (
    AnalysisResult,
    Billing,
    BillingFrequency,
    DocumentType,
    ExtractedService,
)

_FENCE_OPEN_RE = re.compile(r"^```[A-Za-z0-9_+-]*[ \t]*\r?\n?")
_FENCE_CLOSE_RE = re.compile(r"\r?\n?```\s*$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")

# Top-level keys that mark an object as an analysis payload rather than a nested fragment.
_RESULT_KEYS = frozenset(
    {
        "success",
        "services",
        "unmatchedItems",
        "documentType",
        "suggestedProjectName",
        "processingNotes",
    }
)

_FREQUENCIES: dict[str, BillingFrequency] = {
    "monthly": BillingFrequency.MONTHLY,
    "month": BillingFrequency.MONTHLY,
    "mo": BillingFrequency.MONTHLY,
    "per month": BillingFrequency.MONTHLY,
    "yearly": BillingFrequency.YEARLY,
    "year": BillingFrequency.YEARLY,
    "annual": BillingFrequency.YEARLY,
    "annually": BillingFrequency.YEARLY,
    "yr": BillingFrequency.YEARLY,
    "per year": BillingFrequency.YEARLY,
    "one-time": BillingFrequency.ONE_TIME,
    "one_time": BillingFrequency.ONE_TIME,
    "one time": BillingFrequency.ONE_TIME,
    "onetime": BillingFrequency.ONE_TIME,
    "once": BillingFrequency.ONE_TIME,
}

_MAX_NAME_CHARS = 200
_MAX_NOTES_CHARS = 1000


@dataclass(frozen=True)
class Parsed:
    payload: dict[str, Any]
    repaired: bool = False


@dataclass(frozen=True)
class Unparseable:
    reason: str


ParseOutcome = Parsed | Unparseable


def strip_code_fence(text: str) -> str:
    t = text.strip()
    if not t.startswith("```"):
        return t
    t = _FENCE_OPEN_RE.sub("", t, count=1)
    t = _FENCE_CLOSE_RE.sub("", t, count=1)
    return t.strip()


def parse_model_output(text: str | None) -> ParseOutcome:
    cleaned = strip_code_fence(text or "")
    if not cleaned:
        return Unparseable(reason="empty model output")

    try:
        obj = json.loads(cleaned)
    except (ValueError, RecursionError):
        obj = None
    if isinstance(obj, dict):
        return Parsed(payload=obj)
    if isinstance(obj, list) and obj and all(isinstance(x, dict) for x in obj):
        return Parsed(payload={"services": obj}, repaired=True)

    found = _first_result_object(cleaned)
    if found is not None:
        return Parsed(payload=found, repaired=True)

    return Unparseable(reason=f"no JSON object found in {len(cleaned)} chars of model output")


def _first_result_object(text: str) -> dict[str, Any] | None:
    for start, end in _balanced_spans(text):
        try:
            obj = json.loads(text[start:end])
        except (ValueError, RecursionError):
            continue
        if isinstance(obj, dict) and _RESULT_KEYS.intersection(obj):
            return obj
    return None


def _balanced_spans(text: str) -> list[tuple[int, int]]:
    """
    ``(start, end)`` of every balanced ``{...}`` span, ordered by start.

    A single string-aware pass with a stack of open braces. Quotes only open a string inside a
    span, so prose between objects cannot flip the string state. Opens left on the stack at the
    end belong to truncated output and yield nothing.
    """
    spans: list[tuple[int, int]] = []
    opened: list[int] = []
    in_string = False
    escape = False
    for i, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and opened:
            in_string = True
        elif ch == "{":
            opened.append(i)
        elif ch == "}" and opened:
            spans.append((opened.pop(), i + 1))
    spans.sort()
    return spans


def to_analysis_result(outcome: ParseOutcome) -> AnalysisResult:
    if isinstance(outcome, Unparseable):
        return AnalysisResult(
            success=False,
            suggested_project_name=None,
            services=[],
            unmatched_items=[],
            document_type=DocumentType.OTHER,
            processing_notes=f"Failed to parse AI response: {outcome.reason}",
        )

    obj = outcome.payload
    services: list[ExtractedService] = []
    dropped = 0
    raw_services = obj.get("services")
    if isinstance(raw_services, list):
        for raw in raw_services:
            service = _sanitize_service(raw)
            if service is None:
                dropped += 1
                continue
            services.append(service)

    notes = _clean_str(obj.get("processingNotes"), max_chars=_MAX_NOTES_CHARS) or ""
    if dropped:
        suffix = f"Dropped {dropped} service entr{'y' if dropped == 1 else 'ies'} without a name."
        notes = f"{notes} {suffix}".strip()

    success = obj.get("success")
    return AnalysisResult(
        success=success if isinstance(success, bool) else True,
        suggested_project_name=_clean_str(obj.get("suggestedProjectName")),
        services=services,
        unmatched_items=_unmatched_items(obj.get("unmatchedItems")),
        document_type=_document_type(obj.get("documentType")),
        processing_notes=notes,
    )


def parse_analysis(text: str | None) -> AnalysisResult:
    return to_analysis_result(parse_model_output(text))


def _sanitize_service(raw: Any) -> ExtractedService | None:
    if not isinstance(raw, dict):
        return None
    registry_id = _clean_str(raw.get("registryId") or raw.get("registry_id"), max_chars=100)
    name = _clean_str(
        raw.get("detectedName")
        or raw.get("detected_name")
        or raw.get("name")
        or raw.get("serviceName")
        or raw.get("vendor")
    )
    detected_name = name or registry_id
    if not detected_name:
        return None

    billing_raw = raw.get("billing")
    if not isinstance(billing_raw, dict):
        # Flat shape: {"amount": ..., "currency": ..., "billingCycle": ...}
        billing_raw = {
            "amount": raw.get("amount"),
            "currency": raw.get("currency"),
            "frequency": raw.get("billingCycle") or raw.get("frequency"),
        }

    notes = _clean_str(raw.get("notes"), max_chars=_MAX_NOTES_CHARS) or ""
    billed_on = _parse_date(raw.get("billingDate"))
    if billed_on:
        notes = f"{notes} Billed on {billed_on.isoformat()}.".strip()

    return ExtractedService(
        registry_id=registry_id,
        detected_name=detected_name,
        confidence=clamp_confidence(raw.get("confidence")),
        billing=_billing(billing_raw),
        account_identifier=_clean_str(raw.get("accountIdentifier")),
        renewal_date=_parse_date(raw.get("renewalDate")),
        plan_name=_clean_str(raw.get("planName")),
        notes=notes,
    )


def clamp_confidence(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        conf = float(value)
    except (TypeError, ValueError):
        return 0.0
    if conf != conf:  # NaN
        return 0.0
    if conf < 0.0:
        return 0.0
    if conf > 1.0:
        return 1.0
    return conf


def _billing(raw: dict[str, Any]) -> Billing:
    amount_raw = raw.get("amount")
    currency_raw = raw.get("currency")
    currency = normalize_currency(currency_raw) if isinstance(currency_raw, str) else None
    if not currency and isinstance(amount_raw, str):
        currency = _currency_from_amount_text(amount_raw)
    return Billing(
        amount=_parse_amount(amount_raw),
        currency=currency or DEFAULT_CURRENCY,
        frequency=_frequency(raw.get("frequency")),
    )


def _parse_amount(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        s = str(value)
    elif isinstance(value, str):
        s = re.sub(r"[^\d,.\-]", "", value)
        if "," in s and "." in s:
            # Whichever separator comes last is the decimal point.
            if s.rfind(",") > s.rfind("."):
                s = s.replace(".", "").replace(",", ".")
            else:
                s = s.replace(",", "")
        elif "," in s:
            head, _, tail = s.rpartition(",")
            s = f"{head.replace(',', '')}.{tail}" if len(tail) == 2 else s.replace(",", "")
    else:
        return None
    if not s:
        return None
    try:
        amount = Decimal(s)
        if not amount.is_finite() or amount < 0:
            return None
        # Quantizing past the context precision raises too.
        return float(amount.quantize(Decimal("0.01")))
    except InvalidOperation:
        return None


def _currency_from_amount_text(text: str) -> str | None:
    m = re.search(r"[A-Z]{3}|[$€£¥₹]", text.strip())
    return normalize_currency(m.group(0)) if m else None


def _frequency(value: Any) -> BillingFrequency | None:
    if not isinstance(value, str):
        return None
    return _FREQUENCIES.get(value.strip().lower())


def _document_type(value: Any) -> DocumentType:
    if isinstance(value, str):
        try:
            return DocumentType(value.strip().lower())
        except ValueError:
            pass
    return DocumentType.OTHER


def _parse_date(value: Any) -> date | None:
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not _ISO_DATE_RE.match(s):
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def _unmatched_items(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    out: list[str] = []
    seen: set[str] = set()
    for item in value:
        if isinstance(item, dict):
            item = item.get("name") or item.get("description") or item.get("item")
        s = _clean_str(item, max_chars=300)
        if not s or s.lower() in seen:
            continue
        seen.add(s.lower())
        out.append(s)
    return out


def _clean_str(value: Any, *, max_chars: int = _MAX_NAME_CHARS) -> str | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s or s.lower() in {"null", "none", "n/a"}:
        return None
    return s[:max_chars]
