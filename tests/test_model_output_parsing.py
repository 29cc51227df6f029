from __future__ import annotations

import json
import time

import pytest

from nerlude_extract.modules.extraction.parsing import (
    Parsed,
    Unparseable,
    clamp_confidence,
    parse_analysis,
    parse_model_output,
    strip_code_fence,
)
from nerlude_extract.modules.extraction.schemas import BillingFrequency, DocumentType

_PAYLOAD = {
    "success": True,
    "suggestedProjectName": "Acme Launch",
    "services": [
        {
            "registryId": "vercel",
            "detectedName": "Vercel",
            "confidence": 0.95,
            "billing": {"amount": 20, "currency": "USD", "frequency": "monthly"},
            "renewalDate": "2025-03-01",
        }
    ],
    "unmatchedItems": ["Office coffee subscription"],
    "documentType": "invoice",
    "processingNotes": "",
}


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   \n ",
        None,
        "I could not find any subscriptions in these documents.",
        '{"success": true, "services": [{"detectedName": "Vercel"',
        "```json\n```",
        "[" * 100_000,
        '{"a":' * 100_000,
    ],
)
def test_unusable_output_becomes_failed_result(text):
    result = parse_analysis(text)

    assert result.success is False
    assert result.services == []
    assert result.unmatched_items == []
    assert result.document_type == DocumentType.OTHER
    assert result.processing_notes.startswith("Failed to parse AI response")


def test_fenced_and_bare_output_parse_identically():
    bare = json.dumps(_PAYLOAD)
    fenced = f"```json\n{bare}\n```"

    assert strip_code_fence(fenced) == bare
    assert parse_analysis(fenced) == parse_analysis(bare)


def test_object_is_recovered_from_surrounding_prose():
    text = (
        "Here is what I found {not json} in your files:\n"
        f"{json.dumps(_PAYLOAD)}\n"
        "Let me know if you need anything else."
    )

    outcome = parse_model_output(text)

    assert isinstance(outcome, Parsed)
    assert outcome.repaired is True
    assert outcome.payload["suggestedProjectName"] == "Acme Launch"


def test_braces_inside_strings_do_not_confuse_matching():
    payload = {"success": True, "services": [], "processingNotes": "saw a stray } brace {"}
    outcome = parse_model_output(f"Result: {json.dumps(payload)} done")

    assert isinstance(outcome, Parsed)
    assert outcome.payload["processingNotes"] == "saw a stray } brace {"


def test_empty_output_is_tagged_unparseable():
    assert parse_model_output("") == Unparseable(reason="empty model output")


def test_missing_fields_get_safe_defaults():
    result = parse_analysis('{"services": [{"detectedName": "Linear"}]}')

    assert result.success is True
    assert result.suggested_project_name is None
    assert result.unmatched_items == []
    assert result.document_type == DocumentType.OTHER
    service = result.services[0]
    assert service.registry_id is None
    assert service.confidence == 0.0
    assert service.billing.amount is None
    assert service.billing.currency == "USD"
    assert service.billing.frequency is None
    assert service.renewal_date is None


def test_service_fields_are_sanitised():
    raw = {
        "services": [
            {
                "detectedName": "Figma",
                "confidence": 3.7,
                "billing": {"amount": "€1.234,50", "currency": "€", "frequency": "Annually"},
                "renewalDate": "not a date",
            },
            {
                "detectedName": "Sentry",
                "confidence": -2,
                "billing": {"amount": "-26.00", "currency": "usd", "frequency": "mo"},
                "renewalDate": "2025-02-30",
            },
            {"confidence": 0.9},
        ],
        "documentType": "INVOICE",
    }

    result = parse_analysis(json.dumps(raw))

    figma, sentry = result.services
    assert figma.confidence == 1.0
    assert figma.billing.amount == 1234.5
    assert figma.billing.currency == "EUR"
    assert figma.billing.frequency == BillingFrequency.YEARLY
    assert figma.renewal_date is None
    assert sentry.confidence == 0.0
    assert sentry.billing.amount is None
    assert sentry.billing.currency == "USD"
    assert sentry.billing.frequency == BillingFrequency.MONTHLY
    assert sentry.renewal_date is None
    assert result.document_type == DocumentType.INVOICE
    assert "Dropped 1 service entry without a name." in result.processing_notes


def test_amounts_beyond_decimal_precision_are_dropped():
    raw = {
        "services": [
            {"detectedName": "Vercel", "billing": {"amount": 1e30, "currency": "USD"}},
            {"detectedName": "Sentry", "billing": {"amount": "1" * 40, "currency": "USD"}},
            {"detectedName": "Figma", "billing": {"amount": "12.346", "currency": "USD"}},
        ]
    }

    vercel, sentry, figma = parse_analysis(json.dumps(raw)).services

    assert vercel.billing.amount is None
    assert sentry.billing.amount is None
    assert vercel.billing.currency == "USD"
    assert figma.billing.amount == 12.35


def test_unterminated_nesting_after_prose_is_scanned_once():
    text = 'Summary follows {"x": ' + "{" * 20_000

    start = time.monotonic()
    outcome = parse_model_output(text)

    assert isinstance(outcome, Unparseable)
    assert time.monotonic() - start < 2.0


def test_first_result_object_wins_over_nested_and_later_ones():
    first = {"success": True, "services": [{"detectedName": "Vercel"}]}
    second = {"success": False, "services": []}
    text = f"a {{stray}} then {json.dumps(first)} and {json.dumps(second)}"

    outcome = parse_model_output(text)

    assert isinstance(outcome, Parsed)
    assert outcome.payload == first


def test_flat_mailbox_shape_is_accepted():
    raw = {
        "services": [
            {
                "name": "Stripe",
                "amount": "$49.00",
                "billingCycle": "monthly",
                "billingDate": "2025-01-15",
            }
        ]
    }

    service = parse_analysis(json.dumps(raw)).services[0]

    assert service.detected_name == "Stripe"
    assert service.billing.amount == 49.0
    assert service.billing.currency == "USD"
    assert service.billing.frequency == BillingFrequency.MONTHLY
    assert "Billed on 2025-01-15." in service.notes


def test_bare_service_list_is_wrapped():
    outcome = parse_model_output('[{"detectedName": "Notion"}]')

    assert isinstance(outcome, Parsed)
    assert outcome.payload == {"services": [{"detectedName": "Notion"}]}


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0.5, 0.5), (1.5, 1.0), (-0.1, 0.0), ("0.7", 0.7), ("high", 0.0), (None, 0.0), (True, 0.0)],
)
def test_clamp_confidence(value, expected):
    assert clamp_confidence(value) == expected
