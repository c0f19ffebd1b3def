from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import load_settings
from errors import NotFound, ValidationFailure
from models import (
    ComparisonResult,
    DispatchSummary,
    ProcurementRequest,
    Proposal,
    RequestCreate,
    RequestUpdate,
    ResponseSubmission,
    SendRequest,
    Vendor,
    VendorCreate,
)
from procurement import ProcurementService

settings = load_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

service = ProcurementService.from_settings(settings)

app = FastAPI(title="RFP AI Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationFailure)
async def _validation_failure(request: Request, exc: ValidationFailure):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(NotFound)
async def _not_found(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"error": str(exc)})


@app.get("/health")
async def health():
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# RFPs
# ---------------------------------------------------------------------------

@app.post("/api/rfps", response_model=ProcurementRequest, status_code=201)
async def create_rfp(body: RequestCreate):
    return await service.create_request(body.natural_language_description)


@app.get("/api/rfps", response_model=list[ProcurementRequest])
async def list_rfps():
    return await service.store.list_requests()


@app.get("/api/rfps/{rfp_id}", response_model=ProcurementRequest)
async def get_rfp(rfp_id: str):
    return await service.store.get_request(rfp_id)


@app.put("/api/rfps/{rfp_id}", response_model=ProcurementRequest)
async def update_rfp(rfp_id: str, body: RequestUpdate):
    return await service.update_request(rfp_id, body.structured)


# ---------------------------------------------------------------------------
# Vendors
# ---------------------------------------------------------------------------

@app.post("/api/vendors", response_model=Vendor, status_code=201)
async def create_vendor(body: VendorCreate):
    return await service.create_vendor(body.name, body.email, body.company)


@app.get("/api/vendors", response_model=list[Vendor])
async def list_vendors():
    return await service.store.list_vendors(newest_first=True)


# ---------------------------------------------------------------------------
# Proposals
# ---------------------------------------------------------------------------

@app.post("/api/proposals/send", response_model=DispatchSummary, status_code=201)
async def send_rfp(body: SendRequest):
    return await service.send_request(body.request_id, body.vendor_ids)


@app.get("/api/proposals/compare", response_model=ComparisonResult)
async def compare_proposals(rfpId: str = ""):
    return await service.compare(rfpId)


@app.get("/api/proposals", response_model=list[Proposal])
async def list_proposals(rfpId: Optional[str] = None):
    return await service.store.list_proposals(request_id=rfpId, newest_first=True)


@app.patch("/api/proposals/{proposal_id}/respond", response_model=Proposal)
async def record_response(proposal_id: str, body: ResponseSubmission):
    return await service.record_response(proposal_id, body.response_text)
