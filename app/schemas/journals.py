"""
schemas/journals.py — Pydantic models for journal records and endpoints

Journal mirrors the NLM Catalog record shape that is persisted in the
journal database files. Request models validate query/body input for the
journal and NLM endpoints; response models document the envelopes.

Business Rules:
- Journal keeps unknown keys (extra="allow") so older database files load
- Journal.dump() uses the persisted key names (pubmedCentral, no nulls)
- Specialty mapping fields are stripped; blank ones are rejected by the service

Called by: routers/journals.py, services/, connectors/nlm_catalog.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IssnType(BaseModel):
    type: str = "Print"
    value: str


class Coverage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    medline: bool | None = None
    pubmed_central: bool | None = Field(default=None, alias="pubmedCentral")
    index_medicus: bool | None = None


class Journal(BaseModel, extra="allow"):
    nlm_id: str
    title: str
    medline_abbr: str | None = None
    issns: list[str] = Field(default_factory=list)
    issn_types: list[IssnType] = Field(default_factory=list)
    alternative_titles: list[str] | None = None
    publisher: str | None = None
    currently_indexed: bool = False
    coverage: Coverage = Field(default_factory=Coverage)

    def all_titles(self) -> list[str]:
        titles = [self.title]
        if self.medline_abbr:
            titles.append(self.medline_abbr)
        titles.extend(self.alternative_titles or [])
        return titles

    def dump(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ── Requests ────────────────────────────────────────────────────────────


class JournalSearchParams(BaseModel):
    title: str | None = None
    specialty: str | None = None
    issn: str | None = None
    currently_indexed: bool | None = None
    medline_coverage: bool = False
    pmc_coverage: bool = False


class CatalogFilters(BaseModel):
    currently_indexed: bool = True
    medline: bool = False
    pubmed_central: bool = False


class SpecialtyMappingRequest(BaseModel):
    """Blank fields pass validation; the service rejects them with a 400."""

    specialty: str = ""
    query: str = ""

    @field_validator("specialty", "query")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()


# ── Responses ───────────────────────────────────────────────────────────


class JournalListResponse(BaseModel):
    count: int = 0
    journals: list[dict] = Field(default_factory=list)


class SpecialtyJournalsResponse(JournalListResponse):
    specialty: str


class SpecialtySummary(BaseModel):
    name: str
    journal_count: int = 0


class SpecialtyListResponse(BaseModel):
    count: int = 0
    specialties: list[SpecialtySummary] = Field(default_factory=list)


class CatalogSearchResponse(JournalListResponse):
    query: str


class UpdateResponse(BaseModel):
    message: str
    count: int = 0


class SpecialtyMappingResponse(UpdateResponse):
    specialty: str
