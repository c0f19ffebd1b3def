from __future__ import annotations

import sys
import pathlib

# Ensure the backend directory is importable when pytest is run from anywhere.
sys.path.insert(0, str(pathlib.Path(__file__).parent.parent))

import pytest
from unittest.mock import AsyncMock, MagicMock

from config import LLMSettings, MailSettings, Settings
from extraction import FieldExtractor, Structurer
from llm import InferenceClient
from models import ProcurementRequest, Proposal, RequestFields, Vendor
from scoring import ProposalScorer
from store import InMemoryStore


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

REQUEST_TEXT = "Need 10 chairs, budget $5000, net 30, delivery in 20 days, 2 years warranty"
RESPONSE_TEXT = "We quote $4800, 18 days delivery, 12 months warranty, Net 45"


def fake_completion(content: str | None) -> MagicMock:
    """Return a minimal mock of an OpenAI ChatCompletion response."""
    choice = MagicMock()
    choice.message.content = content
    completion = MagicMock()
    completion.choices = [choice]
    return completion


def make_proposal(id: str, vendor_id: str = "v1", **fields) -> Proposal:
    return Proposal(id=id, request_id="r1", vendor_id=vendor_id, status="responded", **fields)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_openai():
    """Stand-in for AsyncOpenAI so no test can reach a real inference endpoint."""
    client = AsyncMock()
    client.chat.completions.create.return_value = fake_completion("{}")
    return client


@pytest.fixture
def inference(mock_openai):
    return InferenceClient(LLMSettings(enabled=True, model="test-model"), client=mock_openai)


@pytest.fixture
def disabled_inference(mock_openai):
    return InferenceClient(LLMSettings(enabled=False), client=mock_openai)


@pytest.fixture
def structurer(inference):
    return Structurer(FieldExtractor(inference))


@pytest.fixture
def scorer(inference):
    return ProposalScorer(inference)


@pytest.fixture
def settings():
    return Settings(
        llm=LLMSettings(enabled=False),
        mail=MailSettings(host="smtp.test", user="rfp@test", password="x", app_link="http://app.test"),
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def notifier():
    n = AsyncMock()
    n.send.return_value = None
    return n


@pytest.fixture
def rfp():
    return ProcurementRequest(
        id="r1",
        source_text=REQUEST_TEXT,
        structured=RequestFields(
            title="Office chairs",
            budget=5000,
            delivery_timeline_days=20,
            warranty_months=24,
            payment_terms="net 30",
        ),
    )


@pytest.fixture
def vendors():
    return [
        Vendor(id="v1", name="Acme Seating", email="sales@acme.test", company="Acme"),
        Vendor(id="v2", name="Globex Furniture", email="bids@globex.test"),
        Vendor(id="v3", name="Initech Supply", email="quotes@initech.test"),
    ]
