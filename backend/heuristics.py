"""Deterministic text parsers used when the AI extraction path fails or leaves gaps.

Every pattern compiles with ``re.ASCII`` so case folding and ``\\d`` never depend
on locale or Unicode tables: identical input always yields identical output.
"""
from __future__ import annotations

import re
from typing import Any, Optional

_FLAGS = re.IGNORECASE | re.ASCII

# "$5,000", "₹ 12,500", "INR 4000", "Rs. 1,20,000"
_CURRENCY_RE = re.compile(r"(?:[$₹]|\binr|\brs\.?)\s?(\d[\d,]*(?:\.\d+)?)", _FLAGS)
_DAYS_RE = re.compile(r"(\d+)\s*days?\b", _FLAGS)
_WARRANTY_MONTHS_RE = re.compile(r"(\d+)\s*months?\s*warranty", _FLAGS)
_WARRANTY_YEARS_RE = re.compile(r"(\d+)\s*years?\s*warranty", _FLAGS)
_PAYMENT_TERMS_RE = re.compile(r"\bnet\s*\d+", _FLAGS)

REQUEST_TITLE_PREFIX = "RFP - "
TITLE_CHARS = 40
ITEM_SPECS_CHARS = 140
SCOPE_ITEM_NAME = "Scope described in text"


def parse_amount(text: str) -> Optional[float]:
    m = _CURRENCY_RE.search(text)
    if not m:
        return None
    return float(m.group(1).replace(",", ""))


def parse_days(text: str) -> Optional[int]:
    m = _DAYS_RE.search(text)
    return int(m.group(1)) if m else None


def parse_warranty_months(text: str) -> Optional[int]:
    """Months pattern wins over years pattern when both appear."""
    m = _WARRANTY_MONTHS_RE.search(text)
    if m:
        return int(m.group(1))
    m = _WARRANTY_YEARS_RE.search(text)
    if m:
        return int(m.group(1)) * 12
    return None


def parse_payment_terms(text: str) -> Optional[str]:
    m = _PAYMENT_TERMS_RE.search(text)
    return m.group(0) if m else None


def _title_from(text: str) -> str:
    suffix = "..." if len(text) > TITLE_CHARS else ""
    return REQUEST_TITLE_PREFIX + text[:TITLE_CHARS] + suffix


# ---------------------------------------------------------------------------
# Domain parsers
# ---------------------------------------------------------------------------

def parse_request_text(text: str) -> dict[str, Any]:
    """Structure a buyer's request without AI. Keys are ``RequestFields`` names."""
    return {
        "title": _title_from(text),
        "budget": parse_amount(text),
        "delivery_timeline_days": parse_days(text),
        "warranty_months": parse_warranty_months(text),
        "payment_terms": parse_payment_terms(text) or "",
        "items": [
            {
                "name": SCOPE_ITEM_NAME,
                "quantity": None,
                "specs": text[:ITEM_SPECS_CHARS],
            }
        ],
        "other_requirements": "",
    }


def parse_proposal_text(text: str) -> dict[str, Any]:
    """Structure a vendor reply without AI. Keys are ``ProposalFields`` names."""
    return {
        "price": parse_amount(text),
        "delivery_days": parse_days(text),
        "warranty_months": parse_warranty_months(text),
        "payment_terms": parse_payment_terms(text) or "",
        "notes": text,
    }
