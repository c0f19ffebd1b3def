from __future__ import annotations

import json
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from errors import InferenceError, ScoringFailure
from extraction import decode_json_object
from llm import InferenceClient
from models import ComparisonResult, ProcurementRequest, Proposal, ScoredProposal, Vendor

logger = logging.getLogger(__name__)

PRICE_WEIGHT = 40
DELIVERY_WEIGHT = 35
WARRANTY_WEIGHT = 25
MAX_RATIO = 1.5
MAX_SCORE = 10.0
FALLBACK_REASON = "Score computed using heuristic fallback."

_SCORING_PROMPT = """You help a buyer make procurement decisions.

You receive:
1) The structured RFP: requirements, budget, delivery timeline, warranty, payment terms.
2) Vendor proposals with extracted fields: price, delivery days, warranty months, payment terms and notes.

For every proposal:
- score it from 0 to 10 against the RFP (10 = best fit);
- give one short sentence explaining the score.
Recommend exactly one proposal.

Reply with a single JSON object and nothing else:
{
  "scores": [
    {
      "proposalId": string,
      "score": number,
      "isRecommended": boolean,
      "reason": string
    }
  ]
}
"""


class _AIScore(BaseModel):
    proposalId: str
    score: float
    isRecommended: Optional[bool] = None
    reason: Optional[str] = None


class _AIScores(BaseModel):
    scores: list[_AIScore] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Weighted heuristic
# ---------------------------------------------------------------------------

def _ratio(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return MAX_RATIO if numerator > 0 else 0.0
    return max(0.0, min(MAX_RATIO, numerator / denominator))


def round_score(value: float) -> float:
    # Half-up on the exact binary value, one decimal.
    return float(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def weighted_score(proposal: Proposal, request: ProcurementRequest) -> float:
    """Weighted price, delivery and warranty fit, rounded to one decimal.

    Price and delivery compare request target / proposal value (cheaper and
    faster is better); warranty compares proposal / request (longer is better).
    A request without a target is scored against the proposal's own value, ie
    ratio 1. A component whose proposal value is null is skipped entirely.
    Ratios clamp at 1.5, so the result runs up to 15; ranking uses this value.
    """
    wanted = request.structured
    total = 0.0
    weight_total = 0

    if proposal.price is not None:
        target = wanted.budget or proposal.price
        total += _ratio(target, proposal.price) * PRICE_WEIGHT
        weight_total += PRICE_WEIGHT

    if proposal.delivery_days is not None:
        target = wanted.delivery_timeline_days or proposal.delivery_days
        total += _ratio(target, proposal.delivery_days) * DELIVERY_WEIGHT
        weight_total += DELIVERY_WEIGHT

    if proposal.warranty_months is not None:
        target = wanted.warranty_months or proposal.warranty_months
        total += _ratio(proposal.warranty_months, target) * WARRANTY_WEIGHT
        weight_total += WARRANTY_WEIGHT

    if not weight_total:
        return 0.0
    return round_score(total / weight_total * MAX_SCORE)


def fallback_score(proposal: Proposal, request: ProcurementRequest) -> float:
    """Displayed fallback score: the weighted score capped to [0, 10]."""
    return min(MAX_SCORE, weighted_score(proposal, request))


def pick_best(scores: Sequence[float]) -> Optional[int]:
    """Index of the strictly highest score; earliest wins ties. None if nothing beats 0."""
    best_index = None
    best = 0.0
    for index, score in enumerate(scores):
        if score > best:
            best = score
            best_index = index
    return best_index


def sort_by_score(scored: list[ScoredProposal]) -> list[ScoredProposal]:
    return sorted(scored, key=lambda s: s.score, reverse=True)


# ---------------------------------------------------------------------------
# Scorer
# ---------------------------------------------------------------------------

class ProposalScorer:
    def __init__(self, inference: InferenceClient) -> None:
        self.inference = inference

    async def compare(
        self,
        request: ProcurementRequest,
        proposals: Sequence[Proposal],
        vendors: dict[str, Vendor] | None = None,
    ) -> ComparisonResult:
        vendors = vendors or {}
        if not proposals:
            return ComparisonResult(request_id=request.id, source="none", proposals=[])

        try:
            scored = await self.score_with_ai(request, proposals, vendors)
            source = "ai"
        except ScoringFailure as exc:
            logger.warning("AI scoring failed for request %s, using fallback: %s", request.id, exc)
            scored = self.score_with_fallback(request, proposals, vendors)
            source = "fallback"

        return ComparisonResult(request_id=request.id, source=source, proposals=sort_by_score(scored))

    def _payload(
        self,
        request: ProcurementRequest,
        proposals: Sequence[Proposal],
        vendors: dict[str, Vendor],
    ) -> str:
        payload = {
            "rfp": {
                "title": request.title,
                "description": request.source_text,
                "structured": request.structured.model_dump(mode="json", by_alias=True),
            },
            "proposals": [
                {
                    "proposalId": p.id,
                    "vendorName": vendors[p.vendor_id].name if p.vendor_id in vendors else None,
                    "vendorEmail": vendors[p.vendor_id].email if p.vendor_id in vendors else None,
                    "price": p.price,
                    "deliveryDays": p.delivery_days,
                    "warrantyMonths": p.warranty_months,
                    "paymentTerms": p.payment_terms,
                    "notes": p.notes,
                }
                for p in proposals
            ],
        }
        return json.dumps(payload)

    async def score_with_ai(
        self,
        request: ProcurementRequest,
        proposals: Sequence[Proposal],
        vendors: dict[str, Vendor],
    ) -> list[ScoredProposal]:
        try:
            raw = await self.inference.complete(_SCORING_PROMPT, self._payload(request, proposals, vendors))
        except InferenceError as exc:
            raise ScoringFailure(f"scoring call failed: {exc}") from exc

        try:
            result = _AIScores.model_validate(decode_json_object(raw))
        except (ValueError, ValidationError) as exc:
            raise ScoringFailure(f"scoring reply is not usable: {exc}") from exc
        if not result.scores:
            raise ScoringFailure("empty scores from model")

        by_id: dict[str, _AIScore] = {}
        for entry in result.scores:
            by_id.setdefault(entry.proposalId, entry)

        scored = []
        for p in proposals:
            entry = by_id.get(p.id)
            scored.append(
                ScoredProposal(
                    proposal=p,
                    vendor=vendors.get(p.vendor_id),
                    score=max(0.0, min(MAX_SCORE, entry.score)) if entry else 0.0,
                    is_recommended=False,
                    reason=(entry.reason or "") if entry else "",
                )
            )

        # Exactly one recommendation: first flagged, else the top score.
        flagged = [i for i, p in enumerate(proposals) if p.id in by_id and by_id[p.id].isRecommended]
        best = flagged[0] if flagged else pick_best([s.score for s in scored])
        if best is not None:
            scored[best].is_recommended = True
        return scored

    def score_with_fallback(
        self,
        request: ProcurementRequest,
        proposals: Sequence[Proposal],
        vendors: dict[str, Vendor],
    ) -> list[ScoredProposal]:
        raw = [weighted_score(p, request) for p in proposals]
        scored = [
            ScoredProposal(
                proposal=p,
                vendor=vendors.get(p.vendor_id),
                score=min(MAX_SCORE, value),
                reason=FALLBACK_REASON,
            )
            for p, value in zip(proposals, raw)
        ]
        best = pick_best(raw)
        if best is not None:
            scored[best].is_recommended = True
        # Order by the uncapped value; the later stable sort on the capped
        # score keeps this order among proposals that both show 10.
        order = sorted(range(len(scored)), key=lambda i: raw[i], reverse=True)
        return [scored[i] for i in order]
