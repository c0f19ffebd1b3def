from __future__ import annotations

from typing import Any, Optional, Protocol

from errors import NotFound
from models import ProcurementRequest, Proposal, ProposalStatus, RequestFields, Vendor


class Store(Protocol):
    """Persistence collaborator consumed by the pipeline."""

    async def create_request(self, request: ProcurementRequest) -> ProcurementRequest: ...
    async def get_request(self, request_id: str) -> ProcurementRequest: ...
    async def list_requests(self) -> list[ProcurementRequest]: ...
    async def update_request(self, request_id: str, structured: RequestFields) -> ProcurementRequest: ...

    async def create_vendor(self, vendor: Vendor) -> Vendor: ...
    async def get_vendor(self, vendor_id: str) -> Vendor: ...
    async def list_vendors(
        self, ids: Optional[list[str]] = None, newest_first: bool = False
    ) -> list[Vendor]: ...

    async def create_proposal(self, request_id: str, vendor_id: str) -> Proposal: ...
    async def get_proposal(self, proposal_id: str) -> Proposal: ...
    async def list_proposals(
        self,
        request_id: Optional[str] = None,
        status: Optional[ProposalStatus] = None,
        newest_first: bool = False,
    ) -> list[Proposal]: ...
    async def update_proposal(self, proposal_id: str, **changes: Any) -> Proposal: ...


class InMemoryStore:
    """Dict-backed store. Records are copied in and out so callers cannot alias state."""

    def __init__(self) -> None:
        self.requests: dict[str, ProcurementRequest] = {}
        self.vendors: dict[str, Vendor] = {}
        self.proposals: dict[str, Proposal] = {}

    # -- requests ---------------------------------------------------------

    async def create_request(self, request: ProcurementRequest) -> ProcurementRequest:
        self.requests[request.id] = request.model_copy(deep=True)
        return request

    async def get_request(self, request_id: str) -> ProcurementRequest:
        try:
            return self.requests[request_id].model_copy(deep=True)
        except KeyError:
            raise NotFound(f"RFP {request_id} not found") from None

    async def list_requests(self) -> list[ProcurementRequest]:
        # dicts keep insertion order, so reversed() is newest first
        return [r.model_copy(deep=True) for r in reversed(self.requests.values())]

    async def update_request(self, request_id: str, structured: RequestFields) -> ProcurementRequest:
        current = await self.get_request(request_id)
        # source_text is immutable; only the structured fields are editable.
        updated = current.model_copy(update={"structured": structured.model_copy(deep=True)})
        self.requests[request_id] = updated
        return updated.model_copy(deep=True)

    # -- vendors ----------------------------------------------------------

    async def create_vendor(self, vendor: Vendor) -> Vendor:
        self.vendors[vendor.id] = vendor.model_copy()
        return vendor

    async def get_vendor(self, vendor_id: str) -> Vendor:
        try:
            return self.vendors[vendor_id].model_copy()
        except KeyError:
            raise NotFound(f"Vendor {vendor_id} not found") from None

    async def list_vendors(
        self, ids: Optional[list[str]] = None, newest_first: bool = False
    ) -> list[Vendor]:
        if ids is None:
            found = list(self.vendors.values())
        else:
            found = [self.vendors[i] for i in ids if i in self.vendors]
        if newest_first:
            found.reverse()
        return [v.model_copy() for v in found]

    # -- proposals --------------------------------------------------------

    async def create_proposal(self, request_id: str, vendor_id: str) -> Proposal:
        proposal = Proposal(request_id=request_id, vendor_id=vendor_id, status="sent")
        self.proposals[proposal.id] = proposal
        return proposal.model_copy()

    async def get_proposal(self, proposal_id: str) -> Proposal:
        try:
            return self.proposals[proposal_id].model_copy()
        except KeyError:
            raise NotFound(f"Proposal {proposal_id} not found") from None

    async def list_proposals(
        self,
        request_id: Optional[str] = None,
        status: Optional[ProposalStatus] = None,
        newest_first: bool = False,
    ) -> list[Proposal]:
        found = [
            p.model_copy()
            for p in self.proposals.values()
            if (request_id is None or p.request_id == request_id)
            and (status is None or p.status == status)
        ]
        if newest_first:
            found.reverse()
        return found

    async def update_proposal(self, proposal_id: str, **changes: Any) -> Proposal:
        current = await self.get_proposal(proposal_id)
        updated = Proposal.model_validate({**current.model_dump(), **changes})
        self.proposals[proposal_id] = updated
        return updated.model_copy()
