"""
openalex provider - async client for works and authors.
https://docs.openalex.org/

bulk lookups are split into id groups that fit the filter length limit and
issued in waves of at most max_parallel_requests. a wave settles before the
next one starts. a failed group is logged and contributes nothing.
"""

import asyncio
import logging
from typing import Any, Callable, Awaitable, Dict, List, Optional, Set, TypeVar

import httpx

from .base import MetadataProvider, BatchCallback, Record
from ..core.config import ProviderConfig
from ..core.identifiers import extract_id
from ..core.models import (
    Author, AuthorProfile, CitationPercentile, FetchProfile, FullRecord,
    PaperMetadata, PrimaryTopic, SDG, SlimRecord, TopicClassification
)
from ..core.resilience import BatchFetchError, FetchStats, current_build_calls, safe_execute

logger = logging.getLogger("refgraph.openalex")

T = TypeVar('T')

MAX_AUTHORS_IN_PAPER = 5

# displayed in the UI
FULL_FIELDS = ",".join([
    "id",
    "doi",
    "title",
    "authorships",
    "publication_year",
    "cited_by_count",
    "referenced_works",
    "type",
    "language",
    "open_access",
    "primary_location",
    "abstract_inverted_index",
    "fwci",
    "citation_normalized_percentile",
    "primary_topic",
    "sustainable_development_goals",
    "keywords",
    "is_retracted",
])

# ranking only
SLIM_FIELDS = "id,publication_year,cited_by_count,referenced_works"


def chunked(items: List[T], size: int) -> List[List[T]]:
    """split items into consecutive groups of at most size."""
    return [items[i:i + size] for i in range(0, len(items), size)]


# payload parsing

def reconstruct_abstract(inverted_index: Optional[Dict[str, List[int]]]) -> str:
    """rebuild abstract text from openalex's inverted index."""
    if not inverted_index:
        return ""
    words = []
    for word, positions in inverted_index.items():
        for pos in positions:
            words.append((pos, word))
    words.sort(key=lambda w: w[0])
    return " ".join(word for _, word in words)


def _parse_authors(authorships: List[Dict]) -> List[Author]:
    authors = []
    for authorship in authorships[:MAX_AUTHORS_IN_PAPER]:
        author = authorship.get("author") or {}
        aid = author.get("id")
        info = Author(
            name=author.get("display_name") or "",
            id=aid.split("/")[-1] if aid else None,
            orcid=author.get("orcid")
        )
        institutions = authorship.get("institutions") or []
        if institutions and institutions[0]:
            info.affiliation = institutions[0].get("display_name") or ""
            info.affiliation_country = institutions[0].get("country_code") or ""
        authors.append(info)
    return authors


def _parse_primary_topic(topic: Optional[Dict]) -> Optional[PrimaryTopic]:
    if not topic or not topic.get("display_name"):
        return None

    def classification(key: str) -> TopicClassification:
        part = topic.get(key) or {}
        return TopicClassification(
            id=part.get("id") or "",
            name=part.get("display_name") or ""
        )

    return PrimaryTopic(
        id=topic.get("id") or "",
        name=topic["display_name"],
        subfield=classification("subfield"),
        field=classification("field"),
        domain=classification("domain")
    )


def _parse_percentile(percentile: Optional[Dict]) -> Optional[CitationPercentile]:
    if not percentile or percentile.get("value") is None:
        return None
    value = percentile["value"]
    return CitationPercentile(
        value=value,
        is_in_top_1_percent=bool(percentile.get("is_in_top_1_percent")) or value >= 99,
        is_in_top_10_percent=bool(percentile.get("is_in_top_10_percent")) or value >= 90
    )


def format_full_work(work: Dict[str, Any]) -> FullRecord:
    """parse an openalex work into a FullRecord."""
    refs = work.get("referenced_works") or []
    authors = _parse_authors(work.get("authorships") or [])

    sdgs = [
        SDG(id=s.get("id") or "", name=s["display_name"], score=s.get("score") or 0)
        for s in work.get("sustainable_development_goals") or []
        if s.get("display_name") and s.get("score") is not None
    ]
    keywords = [k["keyword"] for k in work.get("keywords") or [] if k.get("keyword")]

    location = work.get("primary_location") or {}
    source = location.get("source") or {}
    open_access = work.get("open_access") or {}

    metadata = PaperMetadata(
        title=work.get("title") or "",
        authors=[a.name for a in authors],
        authors_detailed=authors,
        citation_count=work.get("cited_by_count") or 0,
        references_count=len(refs),
        doi=work.get("doi"),
        openalex_url=work.get("id"),
        type=work.get("type"),
        source_type=source.get("type"),
        source_name=source.get("display_name"),
        open_access=open_access.get("is_oa"),
        language=work.get("language"),
        abstract=reconstruct_abstract(work.get("abstract_inverted_index")),
        fwci=work.get("fwci"),
        citation_percentile=_parse_percentile(work.get("citation_normalized_percentile")),
        primary_topic=_parse_primary_topic(work.get("primary_topic")),
        sdgs=sdgs or None,
        keywords=keywords or None,
        is_retracted=work.get("is_retracted")
    )

    return FullRecord(
        id=extract_id(work.get("id")),
        year=work.get("publication_year") or 0,
        references=[extract_id(r) for r in refs],
        metadata=metadata
    )


def format_slim_work(work: Dict[str, Any]) -> SlimRecord:
    """parse an openalex work selected with SLIM_FIELDS."""
    return SlimRecord(
        id=extract_id(work.get("id")),
        year=work.get("publication_year") or 0,
        citation_count=work.get("cited_by_count") or 0,
        references=[extract_id(r) for r in work.get("referenced_works") or []]
    )


def format_author(author: Dict[str, Any]) -> AuthorProfile:
    """parse an openalex author."""
    affiliation = None
    institutions = author.get("last_known_institutions") or []
    if institutions:
        affiliation = institutions[0].get("display_name")
    elif author.get("last_known_institution"):
        affiliation = author["last_known_institution"].get("display_name")

    orcid = author.get("orcid")
    if orcid and orcid.startswith("https://orcid.org/"):
        orcid = orcid[18:]

    summary = author.get("summary_stats") or {}
    return AuthorProfile(
        id=extract_id(author.get("id")),
        display_name=author.get("display_name") or "",
        orcid=orcid,
        affiliation=affiliation,
        works_count=author.get("works_count") or 0,
        cited_by_count=author.get("cited_by_count") or 0,
        h_index=summary.get("h_index") or 0,
        i10_index=summary.get("i10_index") or 0
    )


class OpenAlexProvider(MetadataProvider):
    """
    openalex.org API client.
    async, single event loop, bounded parallelism.
    """

    def __init__(
        self,
        config: Optional[ProviderConfig] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.config = config or ProviderConfig()
        self._client = client
        self._owns_client = client is None
        self.stats = FetchStats()

    @property
    def client(self) -> httpx.AsyncClient:
        """lazy client initialization."""
        if self._client is None or self._client.is_closed:
            kwargs: Dict[str, Any] = {
                "headers": {"User-Agent": self.config.user_agent},
            }
            if self.config.timeout is not None:
                kwargs["timeout"] = self.config.timeout
            self._client = httpx.AsyncClient(**kwargs)
            self._owns_client = True
        return self._client

    async def close(self):
        """close the http client if we created it."""
        if self._client is not None and self._owns_client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    @property
    def name(self) -> str:
        return "openalex"

    @property
    def max_filter_ids(self) -> int:
        return self.config.max_filter_ids

    def supports_authors(self) -> bool:
        return True

    # transport

    def _record(self, ok: bool):
        """count a call on the provider totals and on the running build, if any."""
        self.stats.record(ok)
        build_calls = current_build_calls()
        if build_calls is not None:
            build_calls.record(ok)

    async def _get_json(self, endpoint: str, params: Optional[Dict] = None) -> Dict:
        """
        GET an endpoint and decode JSON.
        raises BatchFetchError on non-2xx, httpx errors on transport failure.
        """
        params = dict(params or {})
        params["mailto"] = self.config.email

        try:
            resp = await self.client.get(f"{self.config.base_url}/{endpoint}", params=params)
        except httpx.HTTPError:
            self._record(False)
            raise

        if resp.status_code != 200:
            self._record(False)
            if resp.status_code == 404:
                logger.debug(f"[openalex] 404 for {endpoint}")
            else:
                filter_val = str(params.get("filter", ""))[:100]
                logger.warning(
                    f"[openalex] {resp.status_code} for {endpoint} (filter: {filter_val})"
                )
            raise BatchFetchError(f"HTTP {resp.status_code} for {endpoint}")

        self._record(True)
        return resp.json()

    async def _request(self, endpoint: str, params: Optional[Dict] = None) -> Optional[Dict]:
        """GET that logs and returns None on any failure."""
        try:
            return await self._get_json(endpoint, params)
        except (httpx.HTTPError, BatchFetchError, ValueError) as e:
            logger.warning(f"[openalex] request to {endpoint} failed: {e}")
            return None

    async def _in_waves(
        self,
        groups: List[List[str]],
        fetch_group: Callable[[List[str]], Awaitable[T]],
        on_batch_complete: Optional[BatchCallback] = None
    ) -> List[T]:
        """
        run fetch_group over groups, at most max_parallel_requests at once.
        the whole wave must settle before the next wave is issued.
        """
        results: List[T] = []
        wave_size = max(1, self.config.max_parallel_requests)

        for i in range(0, len(groups), wave_size):
            wave = groups[i:i + wave_size]
            results.extend(await asyncio.gather(*(fetch_group(g) for g in wave)))

            if on_batch_complete:
                for _ in wave:
                    safe_execute(on_batch_complete, error_msg="[openalex] progress callback failed")

        return results

    # works

    async def fetch_one(self, work_id: str) -> Optional[FullRecord]:
        """single work by id or DOI url, full metadata."""
        data = await self._request(f"works/{work_id}")
        if not data:
            logger.error(f"[openalex] could not fetch {work_id[:60]}")
            return None
        return format_full_work(data)

    async def _fetch_works_group(self, batch: List[str], profile: FetchProfile) -> Dict[str, Record]:
        params = {
            "filter": f"openalex:{'|'.join(batch)}",
            "select": FULL_FIELDS if profile == FetchProfile.FULL else SLIM_FIELDS,
            "per_page": self.config.max_per_page,
        }
        try:
            data = await self._get_json("works", params)
        except (httpx.HTTPError, BatchFetchError, ValueError) as e:
            logger.warning(f"[openalex] {profile.value} batch of {len(batch)} ids failed: {e}")
            return {}

        formatter = format_full_work if profile == FetchProfile.FULL else format_slim_work
        papers: Dict[str, Record] = {}
        for work in data.get("results") or []:
            paper = formatter(work)
            if paper.id:
                papers[paper.id] = paper
        return papers

    async def fetch_bulk(
        self,
        work_ids: List[str],
        profile: FetchProfile = FetchProfile.SLIM,
        on_batch_complete: Optional[BatchCallback] = None
    ) -> Dict[str, Record]:
        """works by id in groups of max_filter_ids."""
        if not work_ids:
            return {}

        groups = chunked(list(work_ids), self.config.max_filter_ids)
        logger.debug(
            f"[openalex] {profile.value} fetch: {len(work_ids)} ids in {len(groups)} groups"
        )

        async def fetch_group(batch: List[str]) -> Dict[str, Record]:
            return await self._fetch_works_group(batch, profile)

        papers: Dict[str, Record] = {}
        for result in await self._in_waves(groups, fetch_group, on_batch_complete):
            papers.update(result)
        return papers

    async def fetch_citing_ids(self, work_id: str, limit: int) -> List[str]:
        """ids of works citing work_id, one page of at most limit."""
        data = await self._request("works", {
            "filter": f"cites:{work_id}",
            "select": "id",
            "per_page": min(limit, self.config.max_per_page),
        })
        if not data:
            return []
        return [extract_id(w.get("id")) for w in data.get("results") or [] if w.get("id")]

    async def _fetch_citers_group(self, batch: List[str]) -> Set[str]:
        try:
            data = await self._get_json("works", {
                "filter": f"cites:{'|'.join(batch)}",
                "select": "id",
                "per_page": self.config.max_per_page,
            })
        except (httpx.HTTPError, BatchFetchError, ValueError) as e:
            logger.warning(f"[openalex] citations batch of {len(batch)} ids failed: {e}")
            return set()
        return {extract_id(w.get("id")) for w in data.get("results") or [] if w.get("id")}

    async def fetch_citers_of(
        self,
        work_ids: List[str],
        on_batch_complete: Optional[BatchCallback] = None
    ) -> Set[str]:
        """ids of works citing any of work_ids."""
        if not work_ids:
            return set()

        # cites: filters take more url length per id
        groups = chunked(list(work_ids), max(1, self.config.max_filter_ids // 2))

        citing: Set[str] = set()
        for result in await self._in_waves(groups, self._fetch_citers_group, on_batch_complete):
            citing.update(result)
        return citing

    # authors

    async def fetch_author(self, author_id: str) -> Optional[AuthorProfile]:
        """author summary by openalex id."""
        data = await self._request(f"authors/{extract_id(author_id)}")
        if not data:
            return None
        return format_author(data)

    async def fetch_author_works(
        self,
        author_id: str,
        max_works: int = 100,
        on_page_complete: Optional[BatchCallback] = None
    ) -> Dict[str, FullRecord]:
        """
        works by an author, most cited first, cursor-paginated.
        stops at max_works or when pages run out. a failed page ends paging.
        """
        oa_author_id = extract_id(author_id)
        works: Dict[str, FullRecord] = {}
        cursor: Optional[str] = "*"

        while cursor and len(works) < max_works:
            data = await self._request("works", {
                "filter": f"authorships.author.id:{oa_author_id}",
                "select": FULL_FIELDS,
                "sort": "cited_by_count:desc",
                "per_page": min(max_works, self.config.max_per_page),
                "cursor": cursor,
            })
            if on_page_complete:
                safe_execute(on_page_complete, error_msg="[openalex] progress callback failed")
            if not data:
                break

            results = data.get("results") or []
            for work in results:
                if len(works) >= max_works:
                    break
                paper = format_full_work(work)
                if paper.id:
                    works[paper.id] = paper

            if not results:
                break
            cursor = (data.get("meta") or {}).get("next_cursor")

        return works
