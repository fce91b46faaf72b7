"""
routers/journals.py — Journal directory & NLM Catalog endpoints

Declares every journal endpoint as one ordered (method, path, handler)
table and registers it most-specific-first, so literal segments such as
/api/journals/search or /api/journals/specialties are never captured by a
{specialty} or {issn} parameter.

Business Rules:
- Handlers only translate HTTP input into JournalService calls
- Errors are raised as JournalLookupError subclasses; main.py renders them
- Unknown ISSN is a 404 with the ISSN in the message
- NLM search and management endpoints carry stricter rate limits

Called by: main.py (router mount)
Depends on: dependencies.py, services/journal_service.py, schemas/journals.py
"""

from fastapi import APIRouter, Body, Depends, Query, Request

from ..config import settings
from ..dependencies import get_journal_service, query_flag
from ..rate_limit import limiter
from ..schemas.journals import (
    CatalogFilters,
    CatalogSearchResponse,
    JournalListResponse,
    JournalSearchParams,
    SpecialtyJournalsResponse,
    SpecialtyListResponse,
    SpecialtyMappingRequest,
    SpecialtyMappingResponse,
    UpdateResponse,
)
from ..services.journal_service import JournalService

router = APIRouter(tags=["journals"])


# ── Journal database ─────────────────────────────────────────────────


async def list_journals(service: JournalService = Depends(get_journal_service)):
    journals = await service.list_all()
    return {"count": len(journals), "journals": [j.dump() for j in journals]}


async def search_journals(
    title: str | None = None,
    specialty: str | None = None,
    issn: str | None = None,
    currently_indexed: str | None = Query(None, alias="currentlyIndexed"),
    medline_coverage: str | None = Query(None, alias="medlineCoverage"),
    pmc_coverage: str | None = Query(None, alias="pmcCoverage"),
    service: JournalService = Depends(get_journal_service),
):
    criteria = JournalSearchParams(
        title=title,
        specialty=specialty,
        issn=issn,
        currently_indexed=query_flag(currently_indexed),
        medline_coverage=query_flag(medline_coverage) is True,
        pmc_coverage=query_flag(pmc_coverage) is True,
    )
    journals = await service.search(criteria)
    return {"count": len(journals), "journals": [j.dump() for j in journals]}


async def journals_by_specialty(specialty: str, service: JournalService = Depends(get_journal_service)):
    journals = await service.by_specialty(specialty)
    return {"specialty": specialty, "count": len(journals), "journals": [j.dump() for j in journals]}


async def list_specialties(service: JournalService = Depends(get_journal_service)):
    specialties = await service.list_specialties()
    return {"count": len(specialties), "specialties": specialties}


async def specialty_filter(specialty: str, service: JournalService = Depends(get_journal_service)):
    """PubMed journal filter string for a specialty (derived summary, not records)."""
    return await service.filter_by_specialty(specialty)


async def journal_by_issn(issn: str, service: JournalService = Depends(get_journal_service)):
    journal = await service.by_issn(issn)
    return journal.dump()


# ── NLM Catalog ──────────────────────────────────────────────────────


@limiter.limit(settings.rate_limit_catalog)
async def search_nlm_catalog(
    request: Request,
    query: str = "",
    currently_indexed: str | None = Query(None, alias="currentlyIndexed"),
    medline: str | None = None,
    pmc: str | None = None,
    service: JournalService = Depends(get_journal_service),
):
    filters = CatalogFilters(
        currently_indexed=query_flag(currently_indexed) is True,
        medline=query_flag(medline) is True,
        pubmed_central=query_flag(pmc) is True,
    )
    journals = await service.search_external_catalog(query.strip(), filters)
    return {"query": query, "count": len(journals), "journals": [j.dump() for j in journals]}


# ── Management ───────────────────────────────────────────────────────


@limiter.limit(settings.rate_limit_management)
async def update_journal_database(
    request: Request,
    query: str = "",
    service: JournalService = Depends(get_journal_service),
):
    count = await service.refresh_database(query.strip())
    return {"message": f"Updated {count} journals in the database", "count": count}


@limiter.limit(settings.rate_limit_management)
async def map_journals_to_specialty(
    request: Request,
    body: SpecialtyMappingRequest | None = Body(None),
    service: JournalService = Depends(get_journal_service),
):
    body = body or SpecialtyMappingRequest()
    count = await service.remap_specialties(body.specialty, body.query)
    return {
        "message": f'Mapped {count} journals to specialty "{body.specialty}"',
        "specialty": body.specialty,
        "count": count,
    }


# ── Route table ──────────────────────────────────────────────────────

ROUTES = [
    ("GET", "/api/journals", list_journals, JournalListResponse),
    ("GET", "/api/journals/search", search_journals, JournalListResponse),
    ("GET", "/api/journals/specialty/{specialty}", journals_by_specialty, SpecialtyJournalsResponse),
    ("GET", "/api/journals/specialties", list_specialties, SpecialtyListResponse),
    ("GET", "/api/journals/filter/{specialty}", specialty_filter, None),
    ("GET", "/api/journals/issn/{issn}", journal_by_issn, None),
    ("GET", "/api/nlm/search", search_nlm_catalog, CatalogSearchResponse),
    ("POST", "/api/journals/update", update_journal_database, UpdateResponse),
    ("POST", "/api/journals/map-specialty", map_journals_to_specialty, SpecialtyMappingResponse),
]


def route_specificity(path: str) -> tuple:
    """Sort key: per segment, literals (0) before {params} (1)."""
    return tuple(1 if seg.startswith("{") else 0 for seg in path.strip("/").split("/"))


def ordered_routes(routes=ROUTES) -> list:
    # sorted() is stable, so equally specific routes keep declaration order
    return sorted(routes, key=lambda r: route_specificity(r[1]))


for method, path, endpoint, response_model in ordered_routes():
    router.add_api_route(
        path,
        endpoint,
        methods=[method],
        response_model=response_model,
        name=endpoint.__name__,
    )
