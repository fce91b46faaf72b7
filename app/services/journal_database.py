"""
services/journal_database.py — Local journal database

Holds the journal index in memory and persists it to two JSON files in
settings.journals_data_dir:
  journals-database.json      {"updated_at": ..., "journals": [...]}
  journals-by-specialty.json  {"updated_at": ..., "specialties": {name: [...]}}

Business Rules:
- Missing or unreadable files on startup mean an empty database, not a crash
- Reads return new lists; mutations swap whole lists under a lock
- In-memory state changes only after the new state is on disk
- Refresh without a query re-fetches every known journal from the catalog
- Refresh with a query only adds journals whose NLM ID is new
- Specialty mappings are replaced wholesale per specialty

Called by: services/journal_service.py, cli.py
Depends on: connectors/nlm_catalog.py, schemas/journals.py, config.py
"""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from ..config import settings
from ..connectors.nlm_catalog import NLMCatalogConnector
from ..exceptions import CatalogError, DatabaseError, InvalidRequestError
from ..schemas.journals import Journal, JournalSearchParams

JOURNALS_FILE = "journals-database.json"
SPECIALTIES_FILE = "journals-by-specialty.json"


def _read_json(path: Path) -> dict:
    with path.open(encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    tmp.replace(path)


class JournalDatabase:
    def __init__(self, catalog: NLMCatalogConnector | None = None, data_dir: Path | str | None = None):
        self.catalog = catalog or NLMCatalogConnector()
        self.data_dir = Path(data_dir or settings.journals_data_dir)
        self.journals_path = self.data_dir / JOURNALS_FILE
        self.specialties_path = self.data_dir / SPECIALTIES_FILE
        self._journals: list[Journal] = []
        self._by_specialty: dict[str, list[Journal]] = {}
        self._lock = asyncio.Lock()

    # ── Loading / saving ─────────────────────────────────────────────

    async def initialize(self) -> None:
        """Load both database files; fall back to an empty database on any error."""
        try:
            journals = await asyncio.to_thread(self._load_journals)
            by_specialty = await asyncio.to_thread(self._load_specialties)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Could not load journal database from {self.data_dir}, starting empty: {e}")
            self._journals, self._by_specialty = [], {}
            return

        self._journals, self._by_specialty = journals, by_specialty
        if not journals:
            logger.warning("Journal database is empty")
        logger.info(
            f"Loaded {len(journals)} journals and {len(by_specialty)} specialties from {self.data_dir}"
        )

    def _load_journals(self) -> list[Journal]:
        data = _read_json(self.journals_path)
        return [Journal.model_validate(j) for j in data.get("journals") or []]

    def _load_specialties(self) -> dict[str, list[Journal]]:
        data = _read_json(self.specialties_path)
        return {
            name: [Journal.model_validate(j) for j in journals]
            for name, journals in (data.get("specialties") or {}).items()
        }

    async def _save_journals(self, journals: list[Journal]) -> None:
        payload = {
            "updated_at": datetime.now(timezone.utc).isoformat(),
            "journals": [j.dump() for j in journals],
        }
        try:
            await asyncio.to_thread(_write_json, self.journals_path, payload)
        except OSError as e:
            logger.error(f"Failed to save journal database: {e}")
            raise DatabaseError("Failed to save journal database") from e

    async def _save_specialties(self, by_specialty: dict[str, list[Journal]]) -> None:
        payload = {
            "updated_at": datetime.now(timezone.utc).isoformat(),
            "specialties": {
                name: [j.dump() for j in journals] for name, journals in by_specialty.items()
            },
        }
        try:
            await asyncio.to_thread(_write_json, self.specialties_path, payload)
        except OSError as e:
            logger.error(f"Failed to save specialty mappings: {e}")
            raise DatabaseError("Failed to save specialty mappings") from e

    # ── Reads ────────────────────────────────────────────────────────

    def all_journals(self) -> list[Journal]:
        return list(self._journals)

    def search(self, params: JournalSearchParams) -> list[Journal]:
        results = self._journals

        if params.title:
            needle = params.title.lower()
            results = [j for j in results if any(needle in t.lower() for t in j.all_titles())]

        if params.specialty:
            ids = {j.nlm_id for j in self._by_specialty.get(params.specialty, [])}
            results = [j for j in results if j.nlm_id in ids]

        if params.issn:
            results = [j for j in results if any(params.issn in i for i in j.issns)]

        if params.currently_indexed is not None:
            results = [j for j in results if j.currently_indexed == params.currently_indexed]

        if params.medline_coverage:
            results = [j for j in results if j.coverage.medline is True]

        if params.pmc_coverage:
            results = [j for j in results if j.coverage.pubmed_central is True]

        return list(results)

    def journals_for_specialty(self, specialty: str) -> list[Journal]:
        return list(self._by_specialty.get(specialty, []))

    def specialties(self) -> list[str]:
        return list(self._by_specialty)

    def find_by_name(self, name: str) -> list[Journal]:
        return self.search(JournalSearchParams(title=name))

    def find_by_issn(self, issn: str) -> Journal | None:
        return next((j for j in self._journals if issn in j.issns), None)

    def find_by_nlm_id(self, nlm_id: str) -> Journal | None:
        return next((j for j in self._journals if j.nlm_id == nlm_id), None)

    @staticmethod
    def pubmed_filter(journals: list[Journal]) -> str:
        """Build a PubMed OR-filter from journal abbreviations/titles and ISSNs."""
        parts = []
        for j in journals:
            parts.append(f'"{j.medline_abbr or j.title}"[jo]')
            parts.extend(f"{issn}[ISSN]" for issn in j.issns)
        return f"({' OR '.join(parts)})" if parts else ""

    # ── Mutations ────────────────────────────────────────────────────

    async def update_from_catalog(self, query: str = "") -> int:
        """Refresh from the NLM Catalog. Returns journals refreshed or added."""
        logger.info(f"Updating journal database with query: {query or 'all journals'}")
        async with self._lock:
            if not query and self._journals:
                fetched = await self.catalog.fetch_journal_details(
                    [j.nlm_id for j in self._journals]
                )
                by_id = {j.nlm_id: j for j in fetched}
                journals = [by_id.get(j.nlm_id, j) for j in self._journals]
                await self._save_journals(journals)
                self._journals = journals
                return len(fetched)

            found = await self.catalog.search_journals(query)
            known = {j.nlm_id for j in self._journals}
            added = []
            for j in found:
                if j.nlm_id not in known:
                    added.append(j)
                    known.add(j.nlm_id)
            journals = self._journals + added
            await self._save_journals(journals)
            self._journals = journals
            return len(added)

    async def import_from_file(self, path: Path | str) -> int:
        """Resolve a {"journals": [title, ...]} file against the catalog."""
        path = Path(path)
        try:
            data = await asyncio.to_thread(_read_json, path)
        except (OSError, ValueError) as e:
            raise DatabaseError(f"Failed to import journals from {path}") from e

        titles = data.get("journals") if isinstance(data, dict) else None
        if not isinstance(titles, list):
            raise InvalidRequestError("Invalid journal file format")
        logger.info(f"Importing {len(titles)} journals from {path}")

        async with self._lock:
            known = {j.nlm_id for j in self._journals}
            added = []
            for title in titles:
                try:
                    journal = await self.catalog.get_journal_by_exact_title(str(title))
                except CatalogError as e:
                    logger.warning(f"Skipping journal {title!r}: {e}")
                    continue
                if journal and journal.nlm_id not in known:
                    added.append(journal)
                    known.add(journal.nlm_id)
            journals = self._journals + added
            await self._save_journals(journals)
            self._journals = journals
        return len(added)

    async def set_specialty_journals(self, specialty: str, journals: list[Journal]) -> int:
        async with self._lock:
            by_specialty = {**self._by_specialty, specialty: list(journals)}
            await self._save_specialties(by_specialty)
            self._by_specialty = by_specialty
        return len(journals)
