"""
conftest.py — Shared Test Fixtures for the Journal Lookup API

Provides a temporary journal database on disk, a mocked NLM Catalog
connector, a JournalService wired to both, and a FastAPI TestClient
running the real app (lifespan included) around that service.

Business Rules:
- No test talks to NCBI; the catalog connector is always mocked
- Each test gets its own data directory (no shared state on disk)
- Inbound rate limits are reset between tests

Called by: all test files via pytest autodiscovery
Depends on: app.main, app.services, app.connectors.nlm_catalog
"""

import json
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.connectors.nlm_catalog import NLMCatalogConnector
from app.rate_limit import limiter
from app.schemas.journals import Journal
from app.services.journal_database import JOURNALS_FILE, SPECIALTIES_FILE, JournalDatabase
from app.services.journal_service import JournalService

CIRCULATION = {
    "nlm_id": "0147763",
    "title": "Circulation",
    "medline_abbr": "Circulation",
    "issns": ["0009-7322", "1524-4539"],
    "issn_types": [
        {"type": "Print", "value": "0009-7322"},
        {"type": "Electronic", "value": "1524-4539"},
    ],
    "publisher": "Lippincott Williams & Wilkins",
    "currently_indexed": True,
    "coverage": {"medline": True, "pubmedCentral": False},
}

JACC = {
    "nlm_id": "8301365",
    "title": "Journal of the American College of Cardiology",
    "medline_abbr": "J Am Coll Cardiol",
    "issns": ["0735-1097", "1558-3597"],
    "alternative_titles": ["JACC"],
    "currently_indexed": True,
    "coverage": {"medline": True, "pubmedCentral": True},
}

LANCET = {
    "nlm_id": "2985213R",
    "title": "Lancet (London, England)",
    "medline_abbr": "Lancet",
    "issns": ["0140-6736", "1474-547X"],
    "currently_indexed": True,
    "coverage": {"medline": True},
}

ARCH_DERM = {
    "nlm_id": "0372433",
    "title": "Archives of Dermatology",
    "medline_abbr": "Arch Dermatol",
    "issns": ["0003-987X"],
    "currently_indexed": False,
    "coverage": {"medline": True},
}

ALL_JOURNALS = [CIRCULATION, JACC, LANCET, ARCH_DERM]
SPECIALTIES = {"cardiology": [CIRCULATION, JACC], "dermatology": [ARCH_DERM]}


def make_journal(**overrides) -> Journal:
    data = {"nlm_id": "9999999", "title": "Test Journal", "issns": ["1234-5678"]}
    data.update(overrides)
    return Journal.model_validate(data)


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture()
def data_dir(tmp_path):
    """A journal data directory seeded with four journals and two specialties."""
    (tmp_path / JOURNALS_FILE).write_text(
        json.dumps({"updated_at": "2024-01-01T00:00:00Z", "journals": ALL_JOURNALS})
    )
    (tmp_path / SPECIALTIES_FILE).write_text(
        json.dumps({"updated_at": "2024-01-01T00:00:00Z", "specialties": SPECIALTIES})
    )
    return tmp_path


@pytest.fixture()
def catalog():
    """NLM Catalog connector with every network method mocked."""
    mock = AsyncMock(spec=NLMCatalogConnector)
    mock.search_journals.return_value = []
    mock.fetch_journal_details.return_value = []
    mock.get_journal_by_issn.return_value = None
    mock.get_journal_by_nlm_id.return_value = None
    mock.get_journal_by_exact_title.return_value = None
    return mock


@pytest.fixture()
def database(catalog, data_dir) -> JournalDatabase:
    return JournalDatabase(catalog=catalog, data_dir=data_dir)


@pytest.fixture()
def service(database) -> JournalService:
    return JournalService(database)


@pytest.fixture()
def client(service) -> TestClient:
    """TestClient over a fresh app; the lifespan initializes `service`."""
    from app.main import create_app

    app = create_app(service)
    with TestClient(app) as c:
        yield c
