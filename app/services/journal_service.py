"""
services/journal_service.py — Journal lookup service

The single backend the journal routes talk to. Constructed once in the
app lifespan, initialized before traffic, and injected into handlers.

Business Rules:
- initialize() runs the database load once, even under concurrent calls
- Every operation raises ServiceNotReadyError until initialize() finished
- ISSN lookup checks the local database first, then the NLM Catalog
- An unknown (but well-formed) ISSN is JournalNotFoundError, not a failure
- filter_by_specialty returns a PubMed journal filter, by_specialty the records

Called by: routers/journals.py, main.py (lifespan)
Depends on: services/journal_database.py, connectors/nlm_catalog.py
"""

import asyncio

from loguru import logger

from ..connectors.nlm_catalog import NLMCatalogConnector
from ..exceptions import InvalidRequestError, JournalNotFoundError, ServiceNotReadyError
from ..schemas.journals import CatalogFilters, Journal, JournalSearchParams
from .journal_database import JournalDatabase


class JournalService:
    def __init__(self, database: JournalDatabase | None = None, catalog: NLMCatalogConnector | None = None):
        self.catalog = catalog or (database.catalog if database else NLMCatalogConnector())
        self.database = database or JournalDatabase(self.catalog)
        self._ready = False
        self._init_lock = asyncio.Lock()

    @property
    def ready(self) -> bool:
        return self._ready

    async def initialize(self) -> None:
        async with self._init_lock:
            if self._ready:
                return
            await self.database.initialize()
            self._ready = True
        logger.info("Journal services initialized")

    def _require_ready(self) -> None:
        if not self._ready:
            raise ServiceNotReadyError("Journal database is still loading")

    # ── Local database ───────────────────────────────────────────────

    async def list_all(self) -> list[Journal]:
        self._require_ready()
        return self.database.all_journals()

    async def search(self, criteria: JournalSearchParams) -> list[Journal]:
        self._require_ready()
        return self.database.search(criteria)

    async def by_specialty(self, specialty: str) -> list[Journal]:
        self._require_ready()
        if not specialty:
            raise InvalidRequestError("Specialty is required")
        return self.database.journals_for_specialty(specialty)

    async def list_specialties(self) -> list[dict]:
        self._require_ready()
        return [
            {"name": name, "journal_count": len(self.database.journals_for_specialty(name))}
            for name in self.database.specialties()
        ]

    async def filter_by_specialty(self, specialty: str) -> dict:
        self._require_ready()
        if not specialty:
            raise InvalidRequestError("Specialty is required")
        journals = self.database.journals_for_specialty(specialty)
        if not journals:
            return {"specialty": specialty, "filter": "", "journals": []}
        return {
            "specialty": specialty,
            "filter": self.database.pubmed_filter(journals),
            "journal_count": len(journals),
        }

    async def by_issn(self, issn: str) -> Journal:
        self._require_ready()
        if not issn:
            raise InvalidRequestError("ISSN is required")
        journal = self.database.find_by_issn(issn)
        if journal is None:
            journal = await self.catalog.get_journal_by_issn(issn)
        if journal is None:
            raise JournalNotFoundError(f"Journal with ISSN {issn} not found")
        return journal

    # ── NLM Catalog ──────────────────────────────────────────────────

    async def search_external_catalog(self, query: str, filters: CatalogFilters | None = None) -> list[Journal]:
        self._require_ready()
        if not query:
            raise InvalidRequestError("Query is required")
        return await self.catalog.search_journals(query, filters)

    # ── Management ───────────────────────────────────────────────────

    async def refresh_database(self, query: str = "") -> int:
        self._require_ready()
        return await self.database.update_from_catalog(query)

    async def remap_specialties(self, specialty: str, query: str) -> int:
        self._require_ready()
        if not specialty or not query:
            raise InvalidRequestError("Specialty and query are required")
        journals = await self.catalog.search_journals(query)
        count = await self.database.set_specialty_journals(specialty, journals)
        logger.info(f"Mapped {count} journals to specialty {specialty!r}")
        return count
