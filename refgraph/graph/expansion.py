"""
root and branch expansion around a seed paper.

roots: the seed's references (root seeds), then everything they cite
(root candidates), ranked against the root seeds.

branches: up to branch_seeds_limit works citing the seed (branch seeds),
then the refs that at least min_branch_ref_frequency of them share
(branch candidates), ranked against the seed. both sets keep only later,
cited work.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from ..core.config import RankingConfig
from ..core.models import FetchProfile, FullRecord, RankInfo, SlimRecord
from ..core.progress import ProgressTracker, batch_count
from ..providers.base import MetadataProvider
from .ranking import compute_branch_ranks, compute_root_ranks, select_frequent_refs, top_ranked

logger = logging.getLogger("refgraph.expansion")


@dataclass
class ExpansionResult:
    """seeds, candidates and the ranking outcome of one expansion stage."""
    seeds: Dict[str, SlimRecord] = field(default_factory=dict)
    candidates: Dict[str, SlimRecord] = field(default_factory=dict)
    ranks: Dict[str, RankInfo] = field(default_factory=dict)
    top_ids: List[str] = field(default_factory=list)


def later_and_cited(papers: Mapping[str, SlimRecord], min_year: int) -> Dict[str, SlimRecord]:
    """keep papers published in min_year or later with at least one citation."""
    return {
        pid: paper for pid, paper in papers.items()
        if (paper.citation_count or 0) > 0 and (paper.year or 0) >= min_year
    }


def collect_root_candidate_ids(root_seeds: Mapping[str, SlimRecord]) -> List[str]:
    """union of the root seeds' refs, minus the root seeds themselves."""
    candidate_ids = set()
    for seed in root_seeds.values():
        candidate_ids.update(seed.references)
    candidate_ids.difference_update(root_seeds)
    candidate_ids.discard("")
    return sorted(candidate_ids)


async def expand_roots(
    provider: MetadataProvider,
    source: FullRecord,
    progress: ProgressTracker,
    config: Optional[RankingConfig] = None,
    n_roots: Optional[int] = None
) -> ExpansionResult:
    """fetch root seeds and candidates, rank candidates, pick the top n_roots."""
    config = config or RankingConfig()
    n_roots = config.n_roots if n_roots is None else n_roots
    group = provider.max_filter_ids

    progress.report("Building roots...")
    root_seeds = await provider.fetch_bulk(
        source.references, FetchProfile.SLIM, progress.batch_complete
    )

    candidate_ids = collect_root_candidate_ids(root_seeds)
    progress.reestimate(
        batch_count(len(candidate_ids), group),
        1,
        batch_count(config.branch_seeds_limit, group),
        batch_count(config.branch_seeds_limit * 2, group)
    )

    progress.report(f"Expanding roots: {len(candidate_ids)} papers...")
    root_papers = await provider.fetch_bulk(
        candidate_ids, FetchProfile.SLIM, progress.batch_complete
    )

    progress.report("Ranking roots...")
    ranks = compute_root_ranks(root_seeds, root_papers)
    top_ids = top_ranked(ranks, n_roots)

    logger.info(
        f"[roots] {len(root_seeds)} seeds, {len(root_papers)} candidates, "
        f"{len(top_ids)} selected"
    )
    return ExpansionResult(seeds=root_seeds, candidates=root_papers, ranks=ranks, top_ids=top_ids)


async def expand_branches(
    provider: MetadataProvider,
    source: FullRecord,
    progress: ProgressTracker,
    config: Optional[RankingConfig] = None,
    n_branches: Optional[int] = None,
    current_year: Optional[int] = None
) -> ExpansionResult:
    """fetch branch seeds, prune their refs by frequency, rank, pick the top n_branches."""
    config = config or RankingConfig()
    n_branches = config.n_branches if n_branches is None else n_branches
    group = provider.max_filter_ids

    progress.report("Fetching citing papers...")
    citing_ids = await provider.fetch_citing_ids(source.id, config.branch_seeds_limit)
    progress.advance(1, f"Fetching {len(citing_ids)} branch seeds...")

    branch_seeds_raw = await provider.fetch_bulk(
        citing_ids, FetchProfile.SLIM, progress.batch_complete
    )

    min_year = (source.year or 0) + 1
    branch_seeds = later_and_cited(branch_seeds_raw, min_year)

    candidate_ids = select_frequent_refs(
        branch_seeds,
        config.min_branch_ref_frequency,
        exclude=[source.id]
    )
    progress.reestimate(batch_count(len(candidate_ids), group))

    progress.report(f"Expanding branches: {len(candidate_ids)} refs...")
    branch_papers_raw = await provider.fetch_bulk(
        candidate_ids, FetchProfile.SLIM, progress.batch_complete
    )
    branch_papers = later_and_cited(branch_papers_raw, min_year)

    progress.report("Ranking branches...")
    ranks = compute_branch_ranks(
        source, branch_seeds, branch_papers,
        current_year=current_year,
        half_life=config.citation_half_life
    )
    top_ids = top_ranked(ranks, n_branches)

    logger.info(
        f"[branches] {len(citing_ids)} citing, {len(branch_seeds)} seeds kept, "
        f"{len(candidate_ids)} refs expanded, {len(branch_papers)} candidates, "
        f"{len(top_ids)} selected"
    )
    return ExpansionResult(
        seeds=branch_seeds, candidates=branch_papers, ranks=ranks, top_ids=top_ids
    )
