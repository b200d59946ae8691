"""
graph assembly - merges the build's records into output nodes.

merge order decides the role of a paper that shows up in several sets:
source, root seeds, branch seeds, then ranked papers. first write wins.
connections only name papers inside the graph; cited_by is their exact
reverse.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from ..core.identifiers import extract_id
from ..core.models import FullRecord, GraphNode, PaperMetadata, PaperRole

logger = logging.getLogger("refgraph.assembler")


def merge_records(
    source: Optional[FullRecord],
    root_seeds: Iterable[FullRecord] = (),
    branch_seeds: Iterable[FullRecord] = (),
    papers: Iterable[FullRecord] = ()
) -> Dict[str, Tuple[FullRecord, Optional[PaperRole]]]:
    """records keyed by canonical id, first write wins."""
    merged: Dict[str, Tuple[FullRecord, Optional[PaperRole]]] = {}

    if source is not None and source.id:
        merged[extract_id(source.id)] = (source, PaperRole.SOURCE)

    for group, default_role in (
        (root_seeds, PaperRole.ROOT_SEED),
        (branch_seeds, PaperRole.BRANCH_SEED),
        (papers, None),
    ):
        for paper in group:
            pid = extract_id(paper.id)
            if pid and pid not in merged:
                merged[pid] = (paper, paper.role or default_role)

    return merged


def assemble_nodes(
    source: Optional[FullRecord],
    root_seeds: Iterable[FullRecord] = (),
    branch_seeds: Iterable[FullRecord] = (),
    papers: Iterable[FullRecord] = ()
) -> List[GraphNode]:
    """
    build output nodes with connections and the cited_by index.
    sorted by year descending, then id ascending.
    """
    merged = merge_records(source, root_seeds, branch_seeds, papers)
    node_ids = set(merged)

    cited_by: Dict[str, List[str]] = {pid: [] for pid in merged}
    connections: Dict[str, List[str]] = {}
    for pid, (paper, _) in merged.items():
        conns = []
        for ref in paper.references:
            ref_id = extract_id(ref)
            # refs to papers outside the graph are dropped
            if ref_id in node_ids and ref_id != pid and ref_id not in conns:
                conns.append(ref_id)
        connections[pid] = conns
        for ref_id in conns:
            cited_by[ref_id].append(pid)

    nodes: List[GraphNode] = []
    for pid, (paper, role) in merged.items():
        metadata = paper.metadata
        if role == PaperRole.SOURCE and not metadata.is_source:
            metadata = _with_source_flag(metadata)
        nodes.append(GraphNode(
            id=pid,
            order=paper.year or 0,
            connections=connections[pid],
            cited_by=cited_by[pid],
            metadata=metadata,
            role=role
        ))

    nodes.sort(key=lambda n: (-(n.order or 0), n.id))
    logger.debug(f"[assembler] {len(nodes)} nodes")
    return nodes


def _with_source_flag(metadata: PaperMetadata) -> PaperMetadata:
    copy = PaperMetadata(**metadata.__dict__)
    copy.is_source = True
    return copy
