"""
shared fixtures - an in-memory openalex served through httpx.MockTransport.
"""

import asyncio
from typing import Dict, List, Optional, Set

import httpx
import pytest

from refgraph.core.config import ProviderConfig
from refgraph.providers.openalex import OpenAlexProvider

OA = "https://openalex.org/"


def work(
    wid: str,
    year: int,
    refs: Optional[List[str]] = None,
    cited_by: int = 10,
    title: Optional[str] = None,
    doi: Optional[str] = None,
    authors: Optional[List[str]] = None
) -> Dict:
    """openalex-shaped work payload."""
    return {
        "id": OA + wid,
        "doi": f"https://doi.org/{doi}" if doi else None,
        "title": title or f"Paper {wid}",
        "publication_year": year,
        "cited_by_count": cited_by,
        "referenced_works": [OA + r for r in (refs or [])],
        "authorships": [
            {"author": {"id": OA + a, "display_name": f"Author {a}"}, "institutions": []}
            for a in (authors or [])
        ],
        "type": "article",
        "open_access": {"is_oa": True},
    }


class FakeOpenAlex:
    """
    minimal openalex: /works/{id}, /works?filter=openalex:|cites:|authorships.author.id:,
    /authors/{id}. ids in fail_ids make their whole request return 500,
    ids in raise_ids make it raise a transport error.
    """

    def __init__(self, works: List[Dict], authors: Optional[List[Dict]] = None):
        self.works = {w["id"].split("/")[-1]: w for w in works}
        self.authors = {a["id"].split("/")[-1]: a for a in (authors or [])}
        self.fail_ids: Set[str] = set()
        self.raise_ids: Set[str] = set()
        # only fail requests whose select param contains this, e.g. "title"
        self.fail_select: Optional[str] = None
        self.requests: List[httpx.Request] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def _json(self, data, status: int = 200) -> httpx.Response:
        return httpx.Response(status, json=data)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            return self._route(request)
        finally:
            self.in_flight -= 1

    def _route(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        params = request.url.params

        if path.startswith("/authors/"):
            author = self.authors.get(path.split("/")[-1])
            return self._json(author) if author else self._json({"error": "not found"}, 404)

        if path.startswith("/works/"):
            key = path[len("/works/"):]
            if "doi.org/" in key:
                doi = key.split("doi.org/", 1)[1]
                found = [w for w in self.works.values() if w.get("doi", "") and w["doi"].endswith(doi)]
                return self._json(found[0]) if found else self._json({"error": "not found"}, 404)
            w = self.works.get(key)
            return self._json(w) if w else self._json({"error": "not found"}, 404)

        if path == "/works":
            return self._works_query(request, params)

        return self._json({"error": "unknown"}, 404)

    def _works_query(self, request: httpx.Request, params) -> httpx.Response:
        flt = params.get("filter", "")
        per_page = int(params.get("per_page", 25))
        kind, _, value = flt.partition(":")
        ids = value.split("|") if value else []

        failing = self.fail_select is None or self.fail_select in params.get("select", "")
        if failing and self.raise_ids & set(ids):
            raise httpx.ConnectError("connection reset", request=request)
        if failing and self.fail_ids & set(ids):
            return self._json({"error": "server error"}, 500)

        if kind == "openalex":
            results = [self.works[i] for i in ids if i in self.works]
            return self._json({"results": results[:per_page]})

        if kind == "cites":
            targets = {OA + i for i in ids}
            results = [
                w for w in self.works.values()
                if targets & set(w.get("referenced_works") or [])
            ]
            return self._json({"results": [{"id": w["id"]} for w in results[:per_page]]})

        if kind == "authorships.author.id":
            author_url = OA + value
            results = [
                w for w in self.works.values()
                if any((a.get("author") or {}).get("id") == author_url for a in w.get("authorships") or [])
            ]
            results.sort(key=lambda w: -w.get("cited_by_count", 0))
            offset = 0 if params.get("cursor") in (None, "*") else int(params["cursor"])
            page = results[offset:offset + per_page]
            next_offset = offset + per_page
            next_cursor = str(next_offset) if next_offset < len(results) else None
            return self._json({"results": page, "meta": {"next_cursor": next_cursor}})

        return self._json({"error": "bad filter"}, 400)

    def provider(self, **config_overrides) -> OpenAlexProvider:
        config = ProviderConfig(**config_overrides)
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return OpenAlexProvider(config, client=client)


@pytest.fixture
def small_world():
    """
    seed W100 (2020) cites W1 and W3, which both cite W2.
    W10, W11, W12 and W20 cite the seed. W21 is cited by W10 and W12 only,
    so it is the one shared ref that survives the frequency prune.
    """
    works = [
        work("W100", 2020, ["W1", "W3"], title="Seed Paper", doi="10.1234/seed.2020"),
        work("W1", 2018, ["W2"]),
        work("W2", 2017, []),
        work("W3", 2019, ["W2"]),
        work("W10", 2021, ["W100", "W20", "W21"]),
        work("W11", 2022, ["W100", "W20", "W3"]),
        work("W12", 2022, ["W100", "W21"]),
        work("W20", 2021, ["W100", "W1"]),
        work("W21", 2021, []),
    ]
    return FakeOpenAlex(works)


def run(coro):
    """drive a coroutine from a sync test."""
    return asyncio.run(coro)
