from __future__ import annotations


class ProcurementError(Exception):
    """Base class for every error raised by the RFP pipeline."""


class InferenceError(ProcurementError):
    """The language-model service was unreachable, failed, or returned nothing."""


class ExtractionFailure(ProcurementError):
    """Free text could not be turned into a structured record by the AI path."""


class ScoringFailure(ProcurementError):
    """The AI scoring call failed or returned an unusable score list."""


class NotificationError(ProcurementError):
    """The notification transport could not deliver a message."""


class DispatchUnitFailure(ProcurementError):
    """One vendor's dispatch unit failed; never propagated past its outcome record."""

    def __init__(self, vendor_id: str, message: str, proposal_id: str | None = None) -> None:
        super().__init__(message)
        self.vendor_id = vendor_id
        self.proposal_id = proposal_id


class ValidationFailure(ProcurementError):
    """A required top-level input is missing."""


class NotFound(ProcurementError):
    """A referenced request, vendor, or proposal does not exist."""
