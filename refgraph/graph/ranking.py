"""
ranking of root and branch candidates.

roots are scored relative to the seed's references (root seeds):
    cited      - how many root seeds cite the candidate
    co-cited   - weight from works that cite a root seed and the candidate
    co-citing  - refs the candidate shares with the root seeds' refs

branches are scored relative to the seed and the works citing it:
    citing     - how many branch seeds the candidate cites
    co-citing  - refs the candidate shares with the seed (coupling)
    co-cited   - recency weighted count of works citing both seed and candidate
"""

import math
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Set

from ..core.models import RankInfo

CITATION_HALF_LIFE = 4.0


class Rankable(Protocol):
    id: str
    year: int
    references: List[str]


def recency_weight(
    paper_year: int,
    current_year: Optional[int] = None,
    half_life: float = CITATION_HALF_LIFE
) -> float:
    """1 + ln(1 + half_life / years_since). recent citers count for more."""
    if current_year is None:
        current_year = date.today().year
    years_since = max(1, current_year - paper_year)
    return 1 + math.log(1 + half_life / years_since)


def compute_root_ranks(
    root_seeds: Mapping[str, Rankable],
    root_papers: Mapping[str, Rankable]
) -> Dict[str, RankInfo]:
    """rank every root candidate. rank = cited + co_cited + co_citing."""
    all_papers = {**root_seeds, **root_papers}
    seed_ids = set(root_seeds)

    cited_counts: Dict[str, int] = {}
    for seed in root_seeds.values():
        for ref_id in seed.references:
            if ref_id in root_papers:
                cited_counts[ref_id] = cited_counts.get(ref_id, 0) + 1

    # a work citing k root seeds lends k to each other candidate it cites
    co_cited_counts: Dict[str, int] = {}
    for paper in all_papers.values():
        refs = set(paper.references)
        seeds_in_refs = len(refs & seed_ids)
        if not seeds_in_refs:
            continue
        for ref_id in refs:
            if ref_id not in seed_ids and ref_id in all_papers:
                co_cited_counts[ref_id] = co_cited_counts.get(ref_id, 0) + seeds_in_refs

    seed_refs: Set[str] = set()
    for seed in root_seeds.values():
        seed_refs.update(seed.references)

    co_citing_counts: Dict[str, int] = {}
    for paper_id, paper in all_papers.items():
        if paper_id in seed_ids:
            continue
        shared = len(set(paper.references) & seed_refs)
        if shared:
            co_citing_counts[paper_id] = shared

    ranks: Dict[str, RankInfo] = {}
    for paper_id in root_papers:
        cited = cited_counts.get(paper_id, 0)
        co_cited = co_cited_counts.get(paper_id, 0)
        co_citing = co_citing_counts.get(paper_id, 0)
        ranks[paper_id] = RankInfo(
            rank=cited + co_cited + co_citing,
            cited_count=cited,
            co_cited_count=co_cited,
            co_citing_count=co_citing
        )

    return ranks


def compute_branch_ranks(
    source: Rankable,
    branch_seeds: Mapping[str, Rankable],
    branch_papers: Mapping[str, Rankable],
    current_year: Optional[int] = None,
    half_life: float = CITATION_HALF_LIFE
) -> Dict[str, RankInfo]:
    """rank every branch candidate. rank = citing + co_citing + round(co_cited, 2)."""
    if current_year is None:
        current_year = date.today().year

    subject_refs = set(source.references)
    subject_id = source.id
    all_papers = {**branch_seeds, **branch_papers}
    branch_seed_ids = set(branch_seeds)

    citing_counts: Dict[str, int] = {}
    co_citing_counts: Dict[str, int] = {}
    for paper_id, paper in branch_papers.items():
        refs = set(paper.references)
        citing = len(refs & branch_seed_ids)
        if citing:
            citing_counts[paper_id] = citing
        shared = len(refs & subject_refs)
        if shared:
            co_citing_counts[paper_id] = shared

    co_cited_counts: Dict[str, float] = {}
    for paper in all_papers.values():
        refs = set(paper.references)
        if subject_id not in refs:
            continue
        weight = recency_weight(paper.year or current_year, current_year, half_life)
        for ref_id in refs:
            if ref_id and ref_id != subject_id and ref_id in branch_papers:
                co_cited_counts[ref_id] = co_cited_counts.get(ref_id, 0.0) + weight

    ranks: Dict[str, RankInfo] = {}
    for paper_id in branch_papers:
        citing = citing_counts.get(paper_id, 0)
        co_citing = co_citing_counts.get(paper_id, 0)
        co_cited = round(co_cited_counts.get(paper_id, 0.0), 2)
        ranks[paper_id] = RankInfo(
            rank=citing + co_citing + co_cited,
            citing_count=citing,
            co_citing_count=co_citing,
            co_cited_count=co_cited
        )

    return ranks


def top_ranked(ranks: Mapping[str, RankInfo], n: int = 50) -> List[str]:
    """top n ids by rank descending, ties by ascending id."""
    if n <= 0:
        return []
    ordered = sorted(ranks.items(), key=lambda item: (-item[1].rank, item[0]))
    return [paper_id for paper_id, _ in ordered[:n]]


def reference_frequency(papers: Iterable[Rankable]) -> Dict[str, int]:
    """how many of the papers cite each reference (each paper counted once)."""
    frequency: Dict[str, int] = {}
    for paper in papers:
        for ref_id in set(paper.references):
            frequency[ref_id] = frequency.get(ref_id, 0) + 1
    return frequency


def select_frequent_refs(
    branch_seeds: Mapping[str, Rankable],
    min_frequency: int,
    exclude: Sequence[str] = ()
) -> List[str]:
    """
    refs cited by at least min_frequency branch seeds.
    branch seeds themselves and anything in exclude are never selected.
    """
    excluded = set(branch_seeds) | set(exclude)
    frequency = reference_frequency(branch_seeds.values())
    return sorted(
        ref_id for ref_id, count in frequency.items()
        if count >= min_frequency and ref_id not in excluded
    )
