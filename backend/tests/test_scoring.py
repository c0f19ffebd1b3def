from __future__ import annotations

import json

import pytest

from models import ProcurementRequest, RequestFields
from scoring import (
    FALLBACK_REASON,
    ProposalScorer,
    fallback_score,
    pick_best,
    round_score,
    weighted_score,
)
from conftest import fake_completion, make_proposal


def _request(**fields) -> ProcurementRequest:
    return ProcurementRequest(id="r1", source_text="Need chairs", structured=RequestFields(**fields))


# ---------------------------------------------------------------------------
# Weighted heuristic
# ---------------------------------------------------------------------------

class TestFallbackScore:
    def test_all_fields(self, rfp):
        p = make_proposal("p1", price=4800, delivery_days=18, warranty_months=12)
        # (5000/4800*40 + 20/18*35 + 12/24*25) / 100 * 10
        assert fallback_score(p, rfp) == 9.3

    def test_no_fields_scores_zero(self, rfp):
        assert fallback_score(make_proposal("p1"), rfp) == 0.0

    def test_only_applicable_components_count(self, rfp):
        p = make_proposal("p1", price=10000)
        assert fallback_score(p, rfp) == 5.0

    def test_request_without_targets_scores_ratio_one(self):
        p = make_proposal("p1", price=999, delivery_days=40, warranty_months=6)
        assert fallback_score(p, _request()) == 10.0

    def test_warranty_ratio_is_proposal_over_request(self, rfp):
        longer = make_proposal("p1", warranty_months=36)
        shorter = make_proposal("p2", warranty_months=12)
        assert fallback_score(longer, rfp) == 10.0
        assert fallback_score(shorter, rfp) == 5.0

    def test_ratios_clamped_and_score_capped_at_ten(self, rfp):
        p = make_proposal("p1", price=100, delivery_days=1, warranty_months=240)
        assert weighted_score(p, rfp) == 15.0
        assert fallback_score(p, rfp) == 10.0

    def test_weighted_score_separates_offers_under_the_cap(self, rfp):
        assert weighted_score(make_proposal("p1", price=4000), rfp) == 12.5
        assert weighted_score(make_proposal("p2", price=3400), rfp) == 14.7

    def test_zero_price_counts_as_best_ratio(self, rfp):
        free = make_proposal("p1", price=0, delivery_days=80)
        # price ratio clamps to 1.5, delivery ratio 0.25
        assert fallback_score(free, rfp) == round_score((1.5 * 40 + 0.25 * 35) / 75 * 10)

    def test_price_monotonic_until_clamp(self, rfp):
        scores = [
            fallback_score(make_proposal("p", price=price, delivery_days=40, warranty_months=12), rfp)
            for price in (10000, 8000, 6000, 5000, 4000, 3000, 2000)
        ]
        assert scores[:6] == sorted(scores[:6])
        assert len(set(scores[:6])) == 6
        # 3000 and 2000 both sit on the 1.5 clamp
        assert scores[5] == scores[6]


class TestRoundScore:
    def test_half_up(self):
        assert round_score(0.25) == 0.3
        assert round_score(6.333333) == 6.3


class TestPickBest:
    def test_first_maximum_wins(self):
        assert pick_best([4.0, 7.5, 7.5]) == 1

    def test_all_zero_recommends_nothing(self):
        assert pick_best([0.0, 0.0]) is None

    def test_empty(self):
        assert pick_best([]) is None


# ---------------------------------------------------------------------------
# ProposalScorer
# ---------------------------------------------------------------------------

def _scores_reply(*entries) -> str:
    return json.dumps({
        "scores": [
            {"proposalId": pid, "score": score, "isRecommended": rec, "reason": f"reason {pid}"}
            for pid, score, rec in entries
        ]
    })


class TestProposalScorerAI:
    @pytest.mark.asyncio
    async def test_ai_scores_sorted_and_tagged(self, mock_openai, scorer, rfp, vendors):
        mock_openai.chat.completions.create.return_value = fake_completion(
            _scores_reply(("p1", 6, False), ("p2", 9, True))
        )
        proposals = [make_proposal("p1", price=5000), make_proposal("p2", vendor_id="v2", price=4000)]
        result = await scorer.compare(rfp, proposals, {v.id: v for v in vendors})

        assert result.source == "ai"
        assert [s.proposal.id for s in result.proposals] == ["p2", "p1"]
        assert result.recommended.proposal.id == "p2"
        assert result.proposals[0].reason == "reason p2"
        assert result.proposals[0].vendor.name == "Globex Furniture"

    @pytest.mark.asyncio
    async def test_payload_carries_request_and_proposal_fields(self, mock_openai, scorer, rfp, vendors):
        mock_openai.chat.completions.create.return_value = fake_completion(_scores_reply(("p1", 5, True)))
        await scorer.compare(rfp, [make_proposal("p1", price=4800, notes="fast")], {v.id: v for v in vendors})
        user = mock_openai.chat.completions.create.call_args.kwargs["messages"][1]["content"]
        payload = json.loads(user)
        assert payload["rfp"]["structured"]["budget"] == 5000
        assert payload["proposals"][0]["proposalId"] == "p1"
        assert payload["proposals"][0]["vendorEmail"] == "sales@acme.test"
        assert payload["proposals"][0]["notes"] == "fast"

    @pytest.mark.asyncio
    async def test_exactly_one_recommendation_when_ai_flags_several(self, mock_openai, scorer, rfp):
        mock_openai.chat.completions.create.return_value = fake_completion(
            _scores_reply(("p1", 7, True), ("p2", 8, True))
        )
        result = await scorer.compare(rfp, [make_proposal("p1"), make_proposal("p2")])
        assert [s.proposal.id for s in result.proposals if s.is_recommended] == ["p1"]

    @pytest.mark.asyncio
    async def test_top_score_recommended_when_ai_flags_none(self, mock_openai, scorer, rfp):
        mock_openai.chat.completions.create.return_value = fake_completion(
            _scores_reply(("p1", 7, False), ("p2", 8, False))
        )
        result = await scorer.compare(rfp, [make_proposal("p1"), make_proposal("p2")])
        assert result.recommended.proposal.id == "p2"

    @pytest.mark.asyncio
    async def test_unscored_proposal_gets_zero_and_scores_are_clamped(self, mock_openai, scorer, rfp):
        mock_openai.chat.completions.create.return_value = fake_completion(_scores_reply(("p1", 12, True)))
        result = await scorer.compare(rfp, [make_proposal("p1"), make_proposal("p2")])
        by_id = {s.proposal.id: s for s in result.proposals}
        assert by_id["p1"].score == 10.0
        assert by_id["p2"].score == 0.0
        assert by_id["p2"].reason == ""

    @pytest.mark.asyncio
    async def test_null_reason_and_flag_keep_ai_result(self, mock_openai, scorer, rfp):
        mock_openai.chat.completions.create.return_value = fake_completion(json.dumps({
            "scores": [
                {"proposalId": "p1", "score": 8, "isRecommended": True, "reason": None},
                {"proposalId": "p2", "score": 6, "isRecommended": None, "reason": "slower"},
            ]
        }))
        result = await scorer.compare(rfp, [make_proposal("p1"), make_proposal("p2")])
        assert result.source == "ai"
        by_id = {s.proposal.id: s for s in result.proposals}
        assert by_id["p1"].reason == ""
        assert by_id["p1"].is_recommended is True
        assert by_id["p2"].is_recommended is False
        assert by_id["p2"].reason == "slower"


class TestProposalScorerFallback:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ['{"scores": []}', "no idea", '{"scores": [{"score": 3}]}'])
    async def test_unusable_reply_falls_back(self, mock_openai, scorer, rfp, reply):
        mock_openai.chat.completions.create.return_value = fake_completion(reply)
        result = await scorer.compare(rfp, [make_proposal("p1", price=5000)])
        assert result.source == "fallback"
        assert result.proposals[0].score == 10.0
        assert result.proposals[0].reason == FALLBACK_REASON

    @pytest.mark.asyncio
    async def test_service_error_falls_back(self, mock_openai, scorer, rfp):
        mock_openai.chat.completions.create.side_effect = Exception("503 Service Unavailable")
        result = await scorer.compare(rfp, [make_proposal("p1", price=10000), make_proposal("p2", price=5000)])
        assert result.source == "fallback"
        assert [s.score for s in result.proposals] == [10.0, 5.0]
        assert result.recommended.proposal.id == "p2"

    @pytest.mark.asyncio
    async def test_ties_keep_arrival_order_and_first_is_recommended(self, mock_openai, scorer, rfp):
        mock_openai.chat.completions.create.side_effect = Exception("down")
        proposals = [
            make_proposal("low", price=12500),      # 4.0
            make_proposal("tie-a", price=5000, delivery_days=40, warranty_months=48),
            make_proposal("tie-b", price=5000, delivery_days=40, warranty_months=48),
        ]
        result = await scorer.compare(rfp, proposals)
        assert [s.proposal.id for s in result.proposals] == ["tie-a", "tie-b", "low"]
        assert result.proposals[0].score == result.proposals[1].score
        assert result.recommended.proposal.id == "tie-a"
        assert sum(s.is_recommended for s in result.proposals) == 1

    @pytest.mark.asyncio
    async def test_capped_scores_still_rank_the_better_offer(self, mock_openai, scorer, rfp):
        mock_openai.chat.completions.create.side_effect = Exception("down")
        # weighted 12.5 and 14.7, both shown as 10
        proposals = [make_proposal("dearer", price=4000), make_proposal("cheaper", price=3400)]
        result = await scorer.compare(rfp, proposals)
        assert [s.score for s in result.proposals] == [10.0, 10.0]
        assert [s.proposal.id for s in result.proposals] == ["cheaper", "dearer"]
        assert result.recommended.proposal.id == "cheaper"

    @pytest.mark.asyncio
    async def test_all_zero_scores_leave_recommendation_unset(self, mock_openai, scorer, rfp):
        mock_openai.chat.completions.create.side_effect = Exception("down")
        result = await scorer.compare(rfp, [make_proposal("p1"), make_proposal("p2")])
        assert result.source == "fallback"
        assert result.recommended is None

    @pytest.mark.asyncio
    async def test_no_proposals(self, scorer, rfp, mock_openai):
        result = await scorer.compare(rfp, [])
        assert result.source == "none"
        assert result.proposals == []
        mock_openai.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_disabled_ai_uses_fallback(self, disabled_inference, rfp):
        result = await ProposalScorer(disabled_inference).compare(rfp, [make_proposal("p1", price=5000)])
        assert result.source == "fallback"
