"""
citation edges among the papers that make the final graph.
"""

import logging
from typing import Iterable, List, Mapping

from ..core.models import Edge, EdgeType, FullRecord

logger = logging.getLogger("refgraph.edges")


def _edges_from(
    citer_id: str,
    references: Iterable[str],
    member_ids: set
) -> List[Edge]:
    return [
        Edge(source=citer_id, target=ref_id, edge_type=EdgeType.CITES)
        for ref_id in references
        if ref_id in member_ids and ref_id != citer_id
    ]


def build_edges(
    source: FullRecord,
    all_seeds: Mapping[str, FullRecord],
    top_papers: Mapping[str, FullRecord]
) -> List[Edge]:
    """
    one cites edge per reference from source, seeds or top papers to any
    member of that same set. parallel edges are kept, self-loops dropped.
    """
    member_ids = {source.id, *all_seeds, *top_papers}

    edges = _edges_from(source.id, source.references, member_ids)
    for seed_id, seed in all_seeds.items():
        edges.extend(_edges_from(seed_id, seed.references, member_ids))
    for paper_id, paper in top_papers.items():
        edges.extend(_edges_from(paper_id, paper.references, member_ids))

    logger.debug(f"[edges] {len(edges)} edges among {len(member_ids)} papers")
    return edges


def build_internal_edges(papers: Mapping[str, FullRecord]) -> List[Edge]:
    """cites edges between papers of one collection, e.g. an author's works."""
    member_ids = set(papers)
    edges: List[Edge] = []
    for paper_id, paper in papers.items():
        edges.extend(_edges_from(paper_id, paper.references, member_ids))
    return edges
