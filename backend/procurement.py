from __future__ import annotations

import logging
from typing import Optional

from config import Settings
from dispatch import DispatchCoordinator
from errors import ValidationFailure
from extraction import FieldExtractor, Structurer
from llm import InferenceClient
from mailer import Notifier, SmtpNotifier
from models import (
    ComparisonResult,
    DispatchSummary,
    ProcurementRequest,
    Proposal,
    RequestFields,
    Vendor,
)
from scoring import ProposalScorer
from store import InMemoryStore, Store

logger = logging.getLogger(__name__)


class ProcurementService:
    """Wires extraction, scoring and dispatch to the persistence collaborator."""

    def __init__(
        self,
        store: Store,
        structurer: Structurer,
        scorer: ProposalScorer,
        dispatcher: DispatchCoordinator,
    ) -> None:
        self.store = store
        self.structurer = structurer
        self.scorer = scorer
        self.dispatcher = dispatcher

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: Store | None = None,
        inference: InferenceClient | None = None,
        notifier: Notifier | None = None,
    ) -> "ProcurementService":
        store = store or InMemoryStore()
        inference = inference or InferenceClient(settings.llm)
        notifier = notifier or SmtpNotifier(settings.mail)
        return cls(
            store=store,
            structurer=Structurer(FieldExtractor(inference)),
            scorer=ProposalScorer(inference),
            dispatcher=DispatchCoordinator(store, notifier, app_link=settings.mail.app_link),
        )

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    async def create_request(self, text: str) -> ProcurementRequest:
        if not text or not text.strip():
            raise ValidationFailure("naturalLanguageDescription is required")
        extraction = await self.structurer.extract_request(text)
        request = ProcurementRequest(
            source_text=text,
            structured=extraction.fields,
            extraction_source=extraction.source,
        )
        logger.info("Created RFP %s (%s extraction)", request.id, extraction.source)
        return await self.store.create_request(request)

    async def update_request(self, request_id: str, structured: RequestFields) -> ProcurementRequest:
        return await self.store.update_request(request_id, structured)

    # ------------------------------------------------------------------ #
    # Vendors
    # ------------------------------------------------------------------ #

    async def create_vendor(self, name: str, email: str, company: Optional[str] = None) -> Vendor:
        if not name or not email:
            raise ValidationFailure("name and email are required")
        return await self.store.create_vendor(Vendor(name=name, email=email, company=company))

    # ------------------------------------------------------------------ #
    # Proposals
    # ------------------------------------------------------------------ #

    async def send_request(self, request_id: str, vendor_ids: Optional[list[str]] = None) -> DispatchSummary:
        """Send to the given vendors, or to every vendor when none are given."""
        if not request_id:
            raise ValidationFailure("rfpId is required")
        request = await self.store.get_request(request_id)
        vendors = await self.store.list_vendors(vendor_ids or None)
        return await self.dispatcher.dispatch(request, vendors)

    async def record_response(self, proposal_id: str, response_text: str) -> Proposal:
        if not response_text or not response_text.strip():
            raise ValidationFailure("responseText is required")
        await self.store.get_proposal(proposal_id)

        extraction = await self.structurer.extract_proposal(response_text)
        fields = extraction.fields
        logger.info("Recorded response for proposal %s (%s extraction)", proposal_id, extraction.source)
        return await self.store.update_proposal(
            proposal_id,
            status="responded",
            price=fields.price,
            delivery_days=fields.delivery_days,
            warranty_months=fields.warranty_months,
            payment_terms=fields.payment_terms,
            notes=fields.notes or response_text,
            raw_response=response_text,
        )

    async def compare(self, request_id: str) -> ComparisonResult:
        if not request_id:
            raise ValidationFailure("rfpId is required")
        request = await self.store.get_request(request_id)
        proposals = await self.store.list_proposals(request_id=request_id, status="responded")
        vendors = {v.id: v for v in await self.store.list_vendors([p.vendor_id for p in proposals])}
        return await self.scorer.compare(request, proposals, vendors)
