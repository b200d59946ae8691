"""
graph build orchestrator - seed to finished citation graph.

usage:
    graph = await build_graph("10.1038/s41586-021-03819-2", n_roots=25)
    for node in graph.nodes[:10]:
        print(node.order, node.metadata.title)

    # or, holding on to a provider across builds
    async with OpenAlexProvider() as provider:
        builder = GraphBuilder(provider)
        graph = await builder.build("W2741809807")
        metadata = await builder.hydrate(graph.node_ids)

stages run strictly one after another:
1. normalize the identifier and fetch the seed (the only fatal step)
2. expand and rank roots
3. expand and rank branches
4. fetch full metadata for seeds and selected papers
5. build edges and assemble nodes
"""

import dataclasses
import logging
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..core.config import RefgraphConfig
from ..core.identifiers import normalize_id
from ..core.models import (
    FetchProfile, FullRecord, Graph, GraphMetadata, PaperMetadata, PaperRole,
    ProgressCallback
)
from ..core.progress import ProgressTracker, batch_count
from ..core.resilience import (
    FetchStats, RefgraphError, SourceFetchError, safe_execute, track_calls
)
from ..graph.assembler import assemble_nodes
from ..graph.edges import build_edges, build_internal_edges
from ..graph.expansion import expand_branches, expand_roots
from ..providers.base import MetadataProvider
from ..providers.openalex import OpenAlexProvider

logger = logging.getLogger("refgraph.pipeline")

HydrationCallback = Callable[[int, int], None]


class GraphBuilder:
    """
    builds citation graphs with one provider.
    holds no state between builds besides the provider and config.
    """

    def __init__(
        self,
        provider: MetadataProvider,
        config: Optional[RefgraphConfig] = None
    ):
        self.provider = provider
        self.config = config or RefgraphConfig.default()

    @property
    def provider_page_size(self) -> int:
        return self.config.provider.max_per_page

    async def build(
        self,
        source_identifier: str,
        n_roots: Optional[int] = None,
        n_branches: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
        current_year: Optional[int] = None
    ) -> Graph:
        """
        build the graph around one paper.
        raises SourceFetchError if the seed can't be fetched.
        safe to run concurrently on one builder.
        """
        with track_calls() as calls:
            return await self._build(
                source_identifier, n_roots, n_branches, on_progress, current_year, calls
            )

    async def _build(
        self,
        source_identifier: str,
        n_roots: Optional[int],
        n_branches: Optional[int],
        on_progress: Optional[ProgressCallback],
        current_year: Optional[int],
        calls: FetchStats
    ) -> Graph:
        ranking = self.config.ranking
        n_roots = ranking.n_roots if n_roots is None else n_roots
        n_branches = ranking.n_branches if n_branches is None else n_branches
        group = self.provider.max_filter_ids

        start = time.perf_counter()
        progress = ProgressTracker(on_progress, total=1)

        source_key = normalize_id(source_identifier)
        if not source_key:
            raise SourceFetchError(source_identifier or "")

        # seed
        progress.report("Fetching source paper...")
        source = await self.provider.fetch_one(source_key)
        if source is None:
            raise SourceFetchError(source_key)
        source = dataclasses.replace(source, role=PaperRole.SOURCE)
        progress.set_completed(1)

        ref_count = len(source.references)
        progress.reestimate(
            batch_count(ref_count, group),
            batch_count(ref_count * ranking.root_expansion_factor, group),
            1,
            batch_count(ranking.branch_seeds_limit, group),
            batch_count(ranking.branch_seeds_limit * 2, group)
        )
        progress.report(f"Source: {source.metadata.title} ({source.year})")
        logger.info(f"[pipeline] seed {source.id} ({source.year}), {ref_count} references")

        roots = await expand_roots(
            self.provider, source, progress, ranking, n_roots=n_roots
        )
        branches = await expand_branches(
            self.provider, source, progress, ranking,
            n_branches=n_branches, current_year=current_year
        )

        # full metadata only for what ends up in the graph
        seed_ids = list(roots.seeds) + list(branches.seeds)
        top_ids = roots.top_ids + branches.top_ids
        needs_full = list(dict.fromkeys(seed_ids + top_ids))
        progress.reestimate(batch_count(len(needs_full), group))
        progress.report(f"Fetching full metadata for {len(needs_full)} papers...")
        full = await self.provider.fetch_bulk(needs_full, FetchProfile.FULL, progress.batch_complete)

        top_papers: Dict[str, FullRecord] = {}
        for pid in roots.top_ids:
            if pid in full:
                top_papers[pid] = dataclasses.replace(full[pid], role=PaperRole.ROOT)
        for pid in branches.top_ids:
            if pid in full:
                top_papers[pid] = dataclasses.replace(full[pid], role=PaperRole.BRANCH)

        full_root_seeds = {pid: full[pid] for pid in roots.seeds if pid in full}
        full_branch_seeds = {pid: full[pid] for pid in branches.seeds if pid in full}
        all_seeds = {**full_root_seeds, **full_branch_seeds}

        edges = build_edges(source, all_seeds, top_papers)
        nodes = assemble_nodes(
            source,
            root_seeds=full_root_seeds.values(),
            branch_seeds=full_branch_seeds.values(),
            papers=top_papers.values()
        )

        all_ranks = {**roots.ranks, **branches.ranks}
        ranks = {pid: all_ranks[pid] for pid in top_papers if pid in all_ranks}

        elapsed = round(time.perf_counter() - start, 2)
        metadata = GraphMetadata(
            papers_in_graph=len(top_papers),
            edges_in_graph=len(edges),
            build_time_seconds=elapsed,
            timestamp=datetime.now().isoformat(),
            api_calls=calls.total_calls,
            graph_type="paper",
            source_id=source.id,
            source_year=source.year,
            total_root_seeds=len(roots.seeds),
            total_root_papers=len(roots.candidates),
            total_branch_seeds=len(branches.seeds),
            total_branch_papers=len(branches.candidates),
            n_roots=len(roots.top_ids),
            n_branches=len(branches.top_ids)
        )

        progress.finish(f"Complete in {elapsed}s")
        logger.info(
            f"[pipeline] built graph for {source.id}: {len(nodes)} nodes, "
            f"{len(edges)} edges, {calls.total_calls} api calls "
            f"({calls.success_rate:.0%} ok) in {elapsed}s"
        )
        return Graph(nodes=nodes, edges=edges, metadata=metadata, ranks=ranks)

    async def build_author(
        self,
        author_id: str,
        max_works: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> Graph:
        """
        graph of an author's works and the citations between them.
        raises SourceFetchError if the author can't be fetched, RefgraphError
        if the provider has no author lookups.
        """
        if not self.provider.supports_authors():
            raise RefgraphError(f"provider {self.provider.name} does not support author graphs")
        with track_calls() as calls:
            return await self._build_author(author_id, max_works, on_progress, calls)

    async def _build_author(
        self,
        author_id: str,
        max_works: Optional[int],
        on_progress: Optional[ProgressCallback],
        calls: FetchStats
    ) -> Graph:
        max_works = self.config.author.max_works if max_works is None else max_works

        start = time.perf_counter()
        progress = ProgressTracker(on_progress, total=2)

        author_key = normalize_id(author_id)
        if not author_key:
            raise SourceFetchError(author_id or "", kind="author")

        progress.report("Fetching author info...")
        author = await self.provider.fetch_author(author_key)
        if author is None:
            raise SourceFetchError(author_key, kind="author")
        progress.advance(1, f"Fetching works by {author.display_name}...")
        progress.reestimate(batch_count(max_works, self.provider_page_size))

        works = await self.provider.fetch_author_works(
            author_key, max_works, progress.batch_complete
        )
        works = {
            pid: dataclasses.replace(paper, role=PaperRole.AUTHOR_WORK)
            for pid, paper in works.items()
        }

        progress.report("Building citation network...")
        edges = build_internal_edges(works)
        nodes = assemble_nodes(None, papers=works.values())

        elapsed = round(time.perf_counter() - start, 2)
        metadata = GraphMetadata(
            papers_in_graph=len(works),
            edges_in_graph=len(edges),
            build_time_seconds=elapsed,
            timestamp=datetime.now().isoformat(),
            api_calls=calls.total_calls,
            graph_type="author",
            author_id=author.id,
            author_name=author.display_name,
            author_orcid=author.orcid,
            author_affiliation=author.affiliation,
            author_works_count=author.works_count,
            author_cited_by_count=author.cited_by_count,
            author_h_index=author.h_index,
            author_i10_index=author.i10_index
        )

        progress.finish(f"Complete in {elapsed}s")
        logger.info(f"[pipeline] author graph for {author.id}: {len(nodes)} works, {len(edges)} edges")
        return Graph(nodes=nodes, edges=edges, metadata=metadata)

    async def hydrate(
        self,
        node_ids: List[str],
        on_progress: Optional[HydrationCallback] = None
    ) -> Dict[str, PaperMetadata]:
        """
        full display metadata for bare node ids, e.g. from a cached skeleton.
        on_progress(completed_groups, total_groups) after each request group.
        """
        ids = [normalize_id(pid) for pid in node_ids]
        ids = [pid for pid in dict.fromkeys(ids) if pid]
        total = batch_count(len(ids), self.provider.max_filter_ids)
        completed = 0

        def on_batch_complete():
            nonlocal completed
            completed += 1
            if on_progress:
                safe_execute(
                    lambda: on_progress(completed, total),
                    error_msg="[pipeline] hydration progress callback failed"
                )

        full = await self.provider.fetch_bulk(ids, FetchProfile.FULL, on_batch_complete)
        logger.info(f"[pipeline] hydrated {len(full)}/{len(ids)} nodes")
        return {pid: paper.metadata for pid, paper in full.items()}


def _builder(
    provider: Optional[MetadataProvider],
    config: Optional[RefgraphConfig]
) -> GraphBuilder:
    config = config or RefgraphConfig.default()
    return GraphBuilder(provider or OpenAlexProvider(config.provider), config)


async def build_graph(
    source_identifier: str,
    n_roots: Optional[int] = None,
    n_branches: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
    provider: Optional[MetadataProvider] = None,
    config: Optional[RefgraphConfig] = None
) -> Graph:
    """build a citation graph around a paper (openalex id, url or DOI)."""
    builder = _builder(provider, config)
    try:
        return await builder.build(
            source_identifier, n_roots=n_roots, n_branches=n_branches, on_progress=on_progress
        )
    finally:
        if provider is None:
            await builder.provider.close()


async def build_author_graph(
    author_id: str,
    max_works: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
    provider: Optional[MetadataProvider] = None,
    config: Optional[RefgraphConfig] = None
) -> Graph:
    """build a citation graph of an author's works."""
    builder = _builder(provider, config)
    try:
        return await builder.build_author(author_id, max_works=max_works, on_progress=on_progress)
    finally:
        if provider is None:
            await builder.provider.close()


async def hydrate_metadata(
    node_ids: List[str],
    on_progress: Optional[HydrationCallback] = None,
    provider: Optional[MetadataProvider] = None,
    config: Optional[RefgraphConfig] = None
) -> Dict[str, PaperMetadata]:
    """re-fetch display metadata for bare node ids."""
    builder = _builder(provider, config)
    try:
        return await builder.hydrate(node_ids, on_progress=on_progress)
    finally:
        if provider is None:
            await builder.provider.close()
