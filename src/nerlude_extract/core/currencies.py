from __future__ import annotations

import re

DEFAULT_CURRENCY = "USD"

# Codes the extraction model is likely to emit for SaaS invoices. Anything else that is still
# shaped like an ISO-4217 code is accepted as-is.
_KNOWN_CODES: frozenset[str] = frozenset(
    {
        "AUD", "BRL", "CAD", "CHF", "CNY", "CZK", "DKK", "EUR", "GBP", "HKD", "INR", "JPY",
        "KRW", "MXN", "NOK", "NZD", "PLN", "SEK", "SGD", "TRY", "USD", "ZAR",
    }
)

_SYMBOLS: dict[str, str] = {
    "$": "USD",
    "US$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₹": "INR",
    "A$": "AUD",
    "C$": "CAD",
    "CA$": "CAD",
    "NZ$": "NZD",
    "S$": "SGD",
    "R$": "BRL",
    "CHF": "CHF",
}

_NAMES: dict[str, str] = {
    "dollar": "USD",
    "dollars": "USD",
    "us dollar": "USD",
    "us dollars": "USD",
    "euro": "EUR",
    "euros": "EUR",
    "pound": "GBP",
    "pounds": "GBP",
    "sterling": "GBP",
    "yen": "JPY",
    "rupee": "INR",
    "rupees": "INR",
}

_CODE_RE = re.compile(r"^[A-Z]{3}$")


def normalize_currency(value: str | None) -> str | None:
    """Map a currency code, symbol or common name to an ISO-4217 code."""
    if not value:
        return None
    raw = value.strip()
    if not raw:
        return None
    symbol = _SYMBOLS.get(raw.upper()) or _SYMBOLS.get(raw)
    if symbol:
        return symbol
    named = _NAMES.get(raw.lower())
    if named:
        return named
    code = raw.upper()
    if code in _KNOWN_CODES or _CODE_RE.match(code):
        return code
    return None
