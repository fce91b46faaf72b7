"""Tests for the NLM Catalog connector — search terms, XML parsing, lookups."""

from unittest.mock import AsyncMock

import pytest
from defusedxml import ElementTree

from app.connectors.eutils import EUtilitiesConnector
from app.connectors.nlm_catalog import NLMCatalogConnector, build_search_term, parse_catalog_records
from app.exceptions import CatalogError, InvalidISSNError
from app.schemas.journals import CatalogFilters

SAMPLE_XML = b"""<?xml version="1.0"?>
<NLMCatalogRecordSet>
  <NCBICatalogRecord>
    <NLMCatalogRecord>
      <NlmId>0147763</NlmId>
      <TitleMain><Title Owner="NCBI">Circulation.</Title></TitleMain>
      <MedlineTA>Circulation</MedlineTA>
      <TitleOther><OtherTitle>Circulation research supplement</OtherTitle></TitleOther>
      <PublicationInfo>
        <Publisher><PublisherName>American Heart Association</PublisherName></Publisher>
      </PublicationInfo>
      <ISSN IssnType="Print">0009-7322</ISSN>
      <ISSN IssnType="Electronic">1524-4539</ISSN>
      <IndexingSourceList>
        <CurrentlyIndexed>Y</CurrentlyIndexed>
      </IndexingSourceList>
      <Coverage>
        <MedlineCoverage>v1n1, 1950-</MedlineCoverage>
        <PMCCoverage></PMCCoverage>
        <IndexingHistoryList><IndexingHistory/></IndexingHistoryList>
      </Coverage>
    </NLMCatalogRecord>
  </NCBICatalogRecord>
  <NCBICatalogRecord>
    <NLMCatalogRecord>
      <NlmId>0372433</NlmId>
      <TitleMain><Title>Archives of dermatology.</Title></TitleMain>
      <ISSN>0003-987X</ISSN>
      <IndexingSourceList><CurrentlyIndexed>N</CurrentlyIndexed></IndexingSourceList>
    </NLMCatalogRecord>
  </NCBICatalogRecord>
</NLMCatalogRecordSet>
"""


@pytest.fixture
def eutils():
    return AsyncMock(spec=EUtilitiesConnector)


@pytest.fixture
def connector(eutils):
    return NLMCatalogConnector(eutils=eutils)


# ── Search terms ──────────────────────────────────────────────────────


def test_term_defaults_to_all_fields_and_currently_indexed():
    assert build_search_term("cardiology") == (
        "(cardiology[All Fields]) AND currentlyindexed AND journal[publication type]"
    )


def test_term_keeps_existing_field_tags():
    term = build_search_term("0009-7322[ISSN]", CatalogFilters(currently_indexed=False))
    assert term == "(0009-7322[ISSN]) AND journal[publication type]"


def test_term_with_all_filters():
    term = build_search_term("heart", CatalogFilters(medline=True, pubmed_central=True))
    assert term == (
        "(heart[All Fields]) AND currentlyindexed AND medline[subset] "
        "AND pubmed pmc[subset] AND journal[publication type]"
    )


# ── XML parsing ───────────────────────────────────────────────────────


def test_parse_full_record():
    journals = parse_catalog_records(ElementTree.fromstring(SAMPLE_XML))
    assert len(journals) == 2
    j = journals[0]
    assert j.nlm_id == "0147763"
    assert j.title == "Circulation."
    assert j.medline_abbr == "Circulation"
    assert j.issns == ["0009-7322", "1524-4539"]
    assert [(t.type, t.value) for t in j.issn_types] == [("Print", "0009-7322"), ("Electronic", "1524-4539")]
    assert j.alternative_titles == ["Circulation research supplement"]
    assert j.publisher == "American Heart Association"
    assert j.currently_indexed is True
    assert j.coverage.medline is True
    assert j.coverage.pubmed_central is False
    assert j.coverage.index_medicus is True


def test_parse_sparse_record_defaults():
    j = parse_catalog_records(ElementTree.fromstring(SAMPLE_XML))[1]
    assert j.issn_types[0].type == "Print"
    assert j.alternative_titles is None
    assert j.currently_indexed is False
    assert j.coverage.medline is None
    assert j.medline_abbr == ""


def test_parse_empty_document():
    assert parse_catalog_records(ElementTree.fromstring(b"<NLMCatalogRecordSet/>")) == []


# ── Search flow ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_search_fetches_details_for_ids(connector, eutils):
    eutils.esearch.return_value = {"esearchresult": {"idlist": ["0147763", "0372433"]}}
    eutils.efetch_xml.return_value = ElementTree.fromstring(SAMPLE_XML)
    journals = await connector.search_journals("cardiology")
    assert [j.nlm_id for j in journals] == ["0147763", "0372433"]
    eutils.efetch_xml.assert_awaited_once_with(["0147763", "0372433"])


@pytest.mark.asyncio
async def test_search_without_ids_skips_fetch(connector, eutils):
    eutils.esearch.return_value = {"esearchresult": {"count": "0"}}
    assert await connector.search_journals("nothing") == []
    eutils.efetch_xml.assert_not_awaited()


@pytest.mark.asyncio
async def test_fetch_details_empty_ids(connector, eutils):
    assert await connector.fetch_journal_details([]) == []
    eutils.efetch_xml.assert_not_awaited()


# ── Lookups ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
@pytest.mark.parametrize("issn", ["", "12345678", "0009-732", "abcd-efgh", "0009-732x"])
async def test_issn_lookup_validates_format(connector, eutils, issn):
    with pytest.raises(InvalidISSNError):
        await connector.get_journal_by_issn(issn)
    eutils.esearch.assert_not_awaited()


@pytest.mark.asyncio
async def test_issn_lookup_uses_issn_field_tag(connector, eutils):
    eutils.esearch.return_value = {"esearchresult": {"idlist": ["0372433"]}}
    eutils.efetch_xml.return_value = ElementTree.fromstring(SAMPLE_XML)
    journal = await connector.get_journal_by_issn("0003-987X")
    assert journal.nlm_id == "0147763"  # first record in the fetched set
    term = eutils.esearch.await_args.args[0]
    assert term.startswith("(0003-987X[ISSN])")


@pytest.mark.asyncio
async def test_issn_lookup_catalog_failure_is_none(connector, eutils):
    eutils.esearch.side_effect = CatalogError("HTTP 500")
    assert await connector.get_journal_by_issn("0003-987X") is None


@pytest.mark.asyncio
async def test_nlm_id_lookup(connector, eutils):
    eutils.efetch_xml.return_value = ElementTree.fromstring(SAMPLE_XML)
    journal = await connector.get_journal_by_nlm_id("0147763")
    assert journal.title == "Circulation."


@pytest.mark.asyncio
async def test_exact_title_prefers_case_insensitive_match(connector, eutils):
    eutils.esearch.return_value = {"esearchresult": {"idlist": ["0147763", "0372433"]}}
    eutils.efetch_xml.return_value = ElementTree.fromstring(SAMPLE_XML)
    journal = await connector.get_journal_by_exact_title("ARCHIVES OF DERMATOLOGY.")
    assert journal.nlm_id == "0372433"
    assert eutils.esearch.await_args.args[0].startswith('("ARCHIVES OF DERMATOLOGY."[All Fields])')


@pytest.mark.asyncio
async def test_exact_title_falls_back_to_first_result(connector, eutils):
    eutils.esearch.return_value = {"esearchresult": {"idlist": ["0147763"]}}
    eutils.efetch_xml.return_value = ElementTree.fromstring(SAMPLE_XML)
    journal = await connector.get_journal_by_exact_title("Circ")
    assert journal.nlm_id == "0147763"
