from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from errors import DispatchUnitFailure, ValidationFailure
from mailer import Notifier, compose_request_email
from models import DispatchOutcome, DispatchSummary, ProcurementRequest, Vendor
from store import Store

logger = logging.getLogger(__name__)


class DispatchCoordinator:
    """Send one request to many vendors at once.

    Each vendor gets its own unit of work: create a ``sent`` proposal, then try
    to notify. Units run concurrently and are all awaited; a failing unit is
    recorded in its own outcome and never cancels its siblings.
    """

    def __init__(self, store: Store, notifier: Notifier, app_link: str = "") -> None:
        self.store = store
        self.notifier = notifier
        self.app_link = app_link

    async def _dispatch_one(self, request: ProcurementRequest, vendor: Vendor) -> DispatchOutcome:
        proposal = await self.store.create_proposal(request.id, vendor.id)

        subject, body = compose_request_email(request, vendor, self.app_link)
        try:
            await self.notifier.send(vendor.email, subject, body)
        except Exception as exc:
            # The proposal stays; only the notification failed.
            raise DispatchUnitFailure(vendor.id, str(exc), proposal.id) from exc

        return DispatchOutcome(vendor_id=vendor.id, email=vendor.email, ok=True, proposal_id=proposal.id)

    def _settle(self, vendor: Vendor, result: DispatchOutcome | BaseException) -> DispatchOutcome:
        if isinstance(result, DispatchOutcome):
            return result
        if isinstance(result, DispatchUnitFailure):
            logger.error("Failed to send RFP email to %s: %s", vendor.email, result)
            return DispatchOutcome(
                vendor_id=vendor.id,
                email=vendor.email,
                ok=False,
                error=str(result),
                proposal_id=result.proposal_id,
            )
        logger.error("Dispatch to %s failed before notification: %r", vendor.email, result)
        return DispatchOutcome(
            vendor_id=vendor.id,
            email=vendor.email,
            ok=False,
            error=str(result) or type(result).__name__,
        )

    async def dispatch(self, request: ProcurementRequest, vendors: Sequence[Vendor]) -> DispatchSummary:
        if not vendors:
            raise ValidationFailure("No vendors to send to")

        results = await asyncio.gather(
            *[self._dispatch_one(request, v) for v in vendors],
            return_exceptions=True,
        )
        outcomes = [self._settle(v, r) for v, r in zip(vendors, results)]

        sent = sum(1 for o in outcomes if o.ok)
        summary = DispatchSummary(
            attempted=len(outcomes),
            sent=sent,
            failed=len(outcomes) - sent,
            results=outcomes,
        )
        logger.info("Dispatched RFP %s: %d sent, %d failed", request.id, summary.sent, summary.failed)
        return summary
