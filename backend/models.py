from __future__ import annotations

from datetime import datetime, timezone
from typing import Generic, Literal, Optional, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


def _new_id() -> str:
    return uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    # The LLM schemas and the HTTP API both speak camelCase.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Structured fields (shared by the AI and heuristic strategies)
# ---------------------------------------------------------------------------

class LineItem(_CamelModel):
    name: str
    quantity: Optional[int] = None
    specs: Optional[str] = None


class RequestFields(_CamelModel):
    title: str = ""
    budget: Optional[float] = None
    delivery_timeline_days: Optional[int] = None
    warranty_months: Optional[int] = None
    payment_terms: str = ""
    items: list[LineItem] = Field(default_factory=list)
    other_requirements: str = ""


class ProposalFields(_CamelModel):
    price: Optional[float] = None
    delivery_days: Optional[int] = None
    warranty_months: Optional[int] = None
    payment_terms: str = ""
    notes: str = ""


FieldsT = TypeVar("FieldsT", bound=BaseModel)

Provenance = Literal["ai", "fallback"]


class Extraction(BaseModel, Generic[FieldsT]):
    fields: FieldsT
    source: Provenance
    backfilled: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class ProcurementRequest(_CamelModel):
    id: str = Field(default_factory=_new_id)
    source_text: str
    structured: RequestFields
    extraction_source: Provenance = "fallback"
    created_at: datetime = Field(default_factory=_now)

    @computed_field
    @property
    def title(self) -> str:
        return self.structured.title or "Untitled RFP"


class RequestCreate(_CamelModel):
    natural_language_description: str = ""


class RequestUpdate(_CamelModel):
    structured: RequestFields


class Vendor(_CamelModel):
    id: str = Field(default_factory=_new_id)
    name: str
    email: str
    company: Optional[str] = None


class VendorCreate(_CamelModel):
    name: str
    email: str
    company: Optional[str] = None


ProposalStatus = Literal["sent", "responded"]


class Proposal(_CamelModel):
    id: str = Field(default_factory=_new_id)
    request_id: str
    vendor_id: str
    status: ProposalStatus = "sent"
    price: Optional[float] = None
    delivery_days: Optional[int] = None
    warranty_months: Optional[int] = None
    payment_terms: Optional[str] = None
    notes: Optional[str] = None
    raw_response: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)

    def structured_fields(self) -> ProposalFields:
        return ProposalFields(
            price=self.price,
            delivery_days=self.delivery_days,
            warranty_months=self.warranty_months,
            payment_terms=self.payment_terms or "",
            notes=self.notes or "",
        )


class SendRequest(_CamelModel):
    request_id: str = Field("", alias="rfpId")
    vendor_ids: list[str] = Field(default_factory=list)


class ResponseSubmission(_CamelModel):
    response_text: str = ""


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class ScoredProposal(_CamelModel):
    proposal: Proposal
    vendor: Optional[Vendor] = None
    score: float
    is_recommended: bool = False
    reason: str = ""


class ComparisonResult(_CamelModel):
    request_id: str
    source: Literal["ai", "fallback", "none"]
    proposals: list[ScoredProposal] = Field(default_factory=list)

    @property
    def recommended(self) -> Optional[ScoredProposal]:
        return next((p for p in self.proposals if p.is_recommended), None)


class DispatchOutcome(_CamelModel):
    vendor_id: str
    email: Optional[str] = None
    ok: bool
    error: Optional[str] = None
    proposal_id: Optional[str] = None


class DispatchSummary(_CamelModel):
    attempted: int
    sent: int
    failed: int
    results: list[DispatchOutcome]
