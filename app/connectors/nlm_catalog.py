"""NLM Catalog connector — journal search and record parsing via E-utilities."""

import re

from loguru import logger

from ..exceptions import CatalogError, InvalidISSNError
from ..schemas.journals import CatalogFilters, Coverage, IssnType, Journal
from .eutils import EUtilitiesConnector

ISSN_RE = re.compile(r"^\d{4}-\d{3}[\dX]$")


def build_search_term(query: str, filters: CatalogFilters | None = None) -> str:
    """Wrap a free-text query with NLM Catalog subset/type filters.

    Queries that already carry a field tag ("[") are left as-is; anything
    else is searched across [All Fields]. Results are always restricted to
    journal[publication type].
    """
    filters = filters or CatalogFilters()
    term = query if "[" in query else f"{query}[All Fields]"

    parts = []
    if filters.currently_indexed:
        parts.append("currentlyindexed")
    if filters.medline:
        parts.append("medline[subset]")
    if filters.pubmed_central:
        parts.append("pubmed pmc[subset]")
    parts.append("journal[publication type]")

    return f"({term}) AND {' AND '.join(parts)}"


def _text(node, tag: str) -> str:
    child = node.find(f".//{tag}")
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def parse_catalog_records(root) -> list[Journal]:
    """Extract Journal records from an efetch nlmcatalog XML document."""
    journals = []
    for rec in root.iter("NCBICatalogRecord"):
        issns, issn_types = [], []
        for node in rec.iter("ISSN"):
            value = (node.text or "").strip()
            if value:
                issns.append(value)
                issn_types.append(IssnType(type=node.get("IssnType") or "Print", value=value))

        alt_titles = [
            n.text.strip() for n in rec.iter("OtherTitle") if n.text and n.text.strip()
        ]

        publisher = ""
        pub_node = rec.find(".//Publisher")
        if pub_node is not None:
            publisher = _text(pub_node, "PublisherName")

        coverage = Coverage()
        for cov in rec.iter("Coverage"):
            coverage = Coverage(
                medline=bool(_text(cov, "MedlineCoverage")),
                pubmed_central=bool(_text(cov, "PMCCoverage")),
                index_medicus=cov.find(".//IndexingHistoryList") is not None,
            )

        journals.append(
            Journal(
                nlm_id=_text(rec, "NlmId"),
                title=_text(rec, "Title"),
                medline_abbr=_text(rec, "MedlineTA"),
                issns=issns,
                issn_types=issn_types,
                alternative_titles=alt_titles or None,
                publisher=publisher,
                currently_indexed=_text(rec, "CurrentlyIndexed") == "Y",
                coverage=coverage,
            )
        )
    logger.debug(f"Parsed {len(journals)} NLM Catalog records")
    return journals


class NLMCatalogConnector:
    """Searches the NLM Catalog and resolves journals by ISSN, NLM ID or title."""

    def __init__(self, eutils: EUtilitiesConnector | None = None):
        self.eutils = eutils or EUtilitiesConnector()

    async def search_journals(
        self, query: str, filters: CatalogFilters | None = None
    ) -> list[Journal]:
        term = build_search_term(query, filters)
        logger.debug(f"NLM Catalog search: {term}")

        data = await self.eutils.esearch(term)
        ids = (data.get("esearchresult") or {}).get("idlist")
        if not ids:
            logger.info(f"NLM Catalog: no journals for {query!r}")
            return []

        logger.debug(f"NLM Catalog: {len(ids)} ids for {query!r}")
        return await self.fetch_journal_details(ids)

    async def fetch_journal_details(self, nlm_ids: list[str]) -> list[Journal]:
        if not nlm_ids:
            return []
        root = await self.eutils.efetch_xml(nlm_ids)
        return parse_catalog_records(root)

    async def get_journal_by_issn(self, issn: str) -> Journal | None:
        if not issn or not ISSN_RE.match(issn):
            raise InvalidISSNError(issn)
        try:
            journals = await self.search_journals(f"{issn}[ISSN]")
        except CatalogError as e:
            logger.warning(f"NLM Catalog ISSN lookup failed for {issn}: {e}")
            return None
        return journals[0] if journals else None

    async def get_journal_by_nlm_id(self, nlm_id: str) -> Journal | None:
        try:
            journals = await self.fetch_journal_details([nlm_id])
        except CatalogError as e:
            logger.warning(f"NLM Catalog lookup failed for NLM ID {nlm_id}: {e}")
            return None
        return journals[0] if journals else None

    async def get_journal_by_exact_title(self, title: str) -> Journal | None:
        try:
            journals = await self.search_journals(f'"{title}"')
        except CatalogError as e:
            logger.warning(f"NLM Catalog title lookup failed for {title!r}: {e}")
            return None
        wanted = title.lower()
        for journal in journals:
            if journal.title.lower() == wanted:
                return journal
        return journals[0] if journals else None
