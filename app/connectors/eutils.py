"""NCBI E-utilities connector — esearch and efetch with pacing and retries."""

import asyncio
import time

import httpx
from defusedxml import DefusedXmlException, ElementTree
from loguru import logger

from ..config import settings
from ..exceptions import CatalogError
from ..http_client import http
from ..utils.rate_limiter import RateLimitTimeout, TokenBucket

ESEARCH = "/esearch.fcgi"
EFETCH = "/efetch.fcgi"

# Statuses NCBI returns when throttling or briefly overloaded
RETRY_STATUSES = {429, 503, 504}


class EUtilitiesConnector:
    """Thin wrapper over the E-utilities endpoints the journal service uses."""

    def __init__(
        self,
        contact_email: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        bucket: TokenBucket | None = None,
    ):
        self.base_url = (base_url or settings.eutils_base_url).rstrip("/")
        self.api_key = settings.pubmed_api_key if api_key is None else api_key
        self.contact_email = contact_email or settings.contact_email
        self.timeout = timeout or settings.eutils_timeout
        self.max_retries = settings.eutils_max_retries if max_retries is None else max_retries
        # NCBI allows 10 requests/second with an API key, 3 without
        rate = 10 if self.api_key else 3
        self.bucket = bucket or TokenBucket(rate, queue_timeout=settings.eutils_queue_timeout)
        logger.debug(
            "E-utilities connector ready",
            base_url=self.base_url,
            api_key_present=bool(self.api_key),
            requests_per_second=rate,
        )

    def _common_params(self, params: dict) -> dict:
        full = {**params, "tool": settings.eutils_tool, "email": self.contact_email}
        if self.api_key:
            full["api_key"] = self.api_key
        return full

    async def _request(self, endpoint: str, params: dict) -> httpx.Response:
        url = f"{self.base_url}{endpoint}"
        retries = 0
        while True:
            try:
                await self.bucket.acquire()
            except RateLimitTimeout as e:
                raise CatalogError(str(e)) from e

            start = time.monotonic()
            try:
                r = await http.get(url, params=params, timeout=self.timeout)
            except httpx.RequestError as e:
                logger.error(f"E-utilities {endpoint} request failed: {e!r}")
                raise CatalogError(
                    f"E-utilities {endpoint} request failed: no response received"
                ) from e

            if r.status_code in RETRY_STATUSES and retries < self.max_retries:
                retries += 1
                wait = 2**retries
                logger.warning(
                    f"E-utilities {endpoint} returned {r.status_code}, "
                    f"retry {retries}/{self.max_retries} in {wait}s"
                )
                await asyncio.sleep(wait)
                continue

            if r.is_error:
                logger.error(
                    f"E-utilities {endpoint} failed",
                    status=r.status_code,
                    has_api_key=bool(self.api_key),
                    rate_limit=self.bucket.status(),
                )
                raise CatalogError(
                    f"E-utilities {endpoint} request failed: HTTP {r.status_code} - "
                    f"{r.reason_phrase or 'Unknown error'}"
                )

            logger.debug(
                f"E-utilities {endpoint} completed in {(time.monotonic() - start) * 1000:.0f}ms"
            )
            return r

    async def esearch(self, term: str, db: str = "nlmcatalog", retmax: int = 1000) -> dict:
        params = self._common_params(
            {"db": db, "term": term, "retmax": retmax, "retmode": "json"}
        )
        r = await self._request(ESEARCH, params)
        try:
            return r.json()
        except ValueError as e:
            raise CatalogError("E-utilities esearch returned invalid JSON") from e

    async def efetch_xml(self, ids: list[str], db: str = "nlmcatalog"):
        """Fetch records as XML and return the parsed root element."""
        params = self._common_params({"db": db, "id": ",".join(ids), "retmode": "xml"})
        r = await self._request(EFETCH, params)
        try:
            return ElementTree.fromstring(r.content)
        except (ElementTree.ParseError, DefusedXmlException) as e:
            raise CatalogError("E-utilities efetch returned malformed XML") from e
