import logging
import requests
from django.conf import settings

from apps.campaigns.circuit_breaker import CircuitBreaker
from apps.campaigns.exceptions import SearchIndexError
from .query_builder import IndexQuery
from .results import DegradedReason, SearchOutcome

logger = logging.getLogger(__name__)

DATABASE_DRIVER = "database"


class SearchIndexClient:
    """
    Thin client for a Meilisearch-compatible campaigns index.

    ``search`` never raises: an empty, unreachable or failing index comes
    back as an empty SearchOutcome carrying a DegradedReason.
    """

    bypassed = False

    def __init__(self, url=None, api_key=None, index_uid=None, timeout=None, session=None, breaker=None):
        conf = settings.SEARCH_INDEX
        self.url = (url or conf["URL"]).rstrip("/")
        self.api_key = conf["API_KEY"] if api_key is None else api_key
        self.index_uid = index_uid or f"{conf['PREFIX']}{conf['INDEX']}"
        self.timeout = timeout or conf["TIMEOUT"]
        self.session = session or requests.Session()
        self.breaker = breaker or CircuitBreaker(
            name=f"search_index:{self.index_uid}",
            failure_threshold=conf["BREAKER_FAILURE_THRESHOLD"],
            recovery_timeout=conf["BREAKER_RECOVERY_TIMEOUT"],
        )

    def _headers(self):
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _request(self, method, path, **kwargs) -> dict:
        try:
            response = self.session.request(
                method, f"{self.url}{path}", headers=self._headers(), timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise SearchIndexError(f"{method} {path} failed: {e}") from e
        if not isinstance(data, dict):
            raise SearchIndexError(f"{method} {path} returned {type(data).__name__}, expected an object")
        return data

    def stats(self) -> dict:
        return self._request("GET", f"/indexes/{self.index_uid}/stats")

    def document_count(self) -> int:
        return int(self.stats().get("numberOfDocuments") or 0)

    def search(self, term="", filters=(), sort=(), page=1, page_size=15) -> SearchOutcome:
        return self.execute(IndexQuery(
            term=term or "",
            filters=tuple(filters),
            sort=tuple(sort) or ("created_at:desc",),
            page=page,
            hits_per_page=page_size,
        ))

    def execute(self, query: IndexQuery) -> SearchOutcome:
        if not self.breaker.allow_request():
            return SearchOutcome.empty(DegradedReason.CIRCUIT_OPEN)

        try:
            documents = self.document_count()
        except (SearchIndexError, TypeError, ValueError) as e:
            self.breaker.record_failure(e)
            logger.warning(
                f"Search index {self.index_uid} unreachable: {e}",
                extra={"index": self.index_uid, "error": str(e)},
            )
            return SearchOutcome.empty(DegradedReason.INDEX_UNREACHABLE)

        if documents == 0:
            self.breaker.record_success()
            logger.info(f"Search index {self.index_uid} has no documents")
            return SearchOutcome.empty(DegradedReason.INDEX_EMPTY)

        try:
            data = self._request("POST", f"/indexes/{self.index_uid}/search", json=query.as_payload())
            outcome = _parse_results(data)
        except SearchIndexError as e:
            self.breaker.record_failure(e)
            logger.warning(
                f"Search index query failed: {e}",
                extra={
                    "index": self.index_uid,
                    "term": query.term,
                    "filter": query.filter_expression,
                    "error": str(e),
                },
            )
            return SearchOutcome.empty(DegradedReason.QUERY_FAILED)

        self.breaker.record_success()
        return outcome


class DatabaseSearchClient:
    """Stand-in used when the index is switched off; callers query the store instead."""

    bypassed = True

    def search(self, term="", filters=(), sort=(), page=1, page_size=15) -> SearchOutcome:
        return SearchOutcome.empty(DegradedReason.BYPASSED)

    def execute(self, query) -> SearchOutcome:
        return SearchOutcome.empty(DegradedReason.BYPASSED)

    def document_count(self) -> int:
        return 0


def _parse_results(data) -> SearchOutcome:
    hits = data.get("hits") or []
    if not isinstance(hits, list):
        raise SearchIndexError(f"Malformed hits: {hits!r}")
    total = data.get("totalHits")
    if total is None:
        total = data.get("estimatedTotalHits")
    try:
        total = int(total or 0)
    except (TypeError, ValueError) as e:
        raise SearchIndexError(f"Malformed hit total: {total!r}") from e
    return SearchOutcome(ids=tuple(_hit_ids(hits)), total=total)


def _hit_ids(hits):
    for hit in hits:
        try:
            yield int(hit["id"])
        except (KeyError, TypeError, ValueError):
            logger.debug(f"Skipping malformed search hit: {hit!r}")


def get_search_client():
    if settings.SEARCH_INDEX.get("DRIVER") == DATABASE_DRIVER:
        return DatabaseSearchClient()
    return SearchIndexClient()
