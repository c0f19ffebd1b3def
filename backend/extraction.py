from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

from errors import ExtractionFailure, InferenceError, ValidationFailure
from heuristics import parse_proposal_text, parse_request_text
from llm import InferenceClient
from models import Extraction, ProposalFields, RequestFields
from reconcile import is_missing, normalize, reconcile

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Schema:
    name: str
    model: type
    system_prompt: str
    fallback: Callable[[str], dict[str, Any]]


_REQUEST_PROMPT = """You extract structured procurement request (RFP) data from free text.
Reply with a single JSON object and nothing else: no commentary, no markdown.

Schema:
{
  "title": string,
  "budget": number | null,
  "deliveryTimelineDays": number | null,
  "warrantyMonths": number | null,
  "paymentTerms": string | null,
  "items": [
    { "name": string, "quantity": number | null, "specs": string | null }
  ],
  "otherRequirements": string | null
}
"""

_PROPOSAL_PROMPT = """You read vendor proposal emails and extract their commercial terms.
Reply with a single JSON object and nothing else: no commentary, no markdown.

Schema (every key required):
{
  "price": number | null,
  "deliveryDays": number | null,
  "warrantyMonths": number | null,
  "paymentTerms": string | null,
  "notes": string
}
Fill every key. Use null or an empty string when a value is unknown.
"""

REQUEST_SCHEMA = Schema(
    name="request",
    model=RequestFields,
    system_prompt=_REQUEST_PROMPT,
    fallback=parse_request_text,
)

PROPOSAL_SCHEMA = Schema(
    name="proposal",
    model=ProposalFields,
    system_prompt=_PROPOSAL_PROMPT,
    fallback=parse_proposal_text,
)


_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def decode_json_object(raw: str) -> dict[str, Any]:
    """Decode a model reply into a JSON object, tolerating a surrounding code fence."""
    m = _FENCE_RE.search(raw)
    text = m.group(1) if m else raw
    data = json.loads(text.strip())
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


# ---------------------------------------------------------------------------
# Field Extractor
# ---------------------------------------------------------------------------

class FieldExtractor:
    """AI strategy: free text + schema → decoded record. No semantic validation."""

    def __init__(self, inference: InferenceClient) -> None:
        self.inference = inference

    async def extract(self, text: str, schema: Schema) -> dict[str, Any]:
        try:
            raw = await self.inference.complete(schema.system_prompt, text)
        except InferenceError as exc:
            raise ExtractionFailure(f"{schema.name} extraction call failed: {exc}") from exc

        try:
            return decode_json_object(raw)
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError too.
            logger.debug("Undecodable %s extraction reply: %r", schema.name, raw)
            raise ExtractionFailure(f"{schema.name} extraction reply is not valid JSON: {exc}") from exc


# ---------------------------------------------------------------------------
# Structurer: AI, then heuristic back-fill
# ---------------------------------------------------------------------------

class Structurer:
    def __init__(self, extractor: FieldExtractor) -> None:
        self.extractor = extractor

    async def structure(self, text: str, schema: Schema) -> Extraction:
        if not text or not text.strip():
            raise ValidationFailure(f"{schema.name} text is required")

        ai_record: dict[str, Any] | None
        try:
            ai_record = await self.extractor.extract(text, schema)
            source = "ai"
        except ExtractionFailure as exc:
            logger.warning("AI %s extraction failed, using heuristic parser: %s", schema.name, exc)
            ai_record = None
            source = "fallback"

        if source == "ai" and all(is_missing(v) for v in normalize(ai_record, schema.model).values()):
            logger.warning("AI %s extraction returned no usable fields, using heuristic parser", schema.name)
            source = "fallback"

        merged, backfilled = reconcile(ai_record, schema.fallback(text), schema.model)
        if source == "ai" and backfilled:
            logger.info("Back-filled %s fields from heuristics: %s", schema.name, ", ".join(backfilled))

        return Extraction[schema.model](
            fields=schema.model.model_validate(merged),
            source=source,
            backfilled=backfilled if source == "ai" else [],
        )

    async def extract_request(self, text: str) -> Extraction[RequestFields]:
        return await self.structure(text, REQUEST_SCHEMA)

    async def extract_proposal(self, text: str) -> Extraction[ProposalFields]:
        return await self.structure(text, PROPOSAL_SCHEMA)
