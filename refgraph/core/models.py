"""
core data models for refgraph.
slim records for ranking, full records for display, graph output types.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Callable
from enum import Enum


class EdgeType(Enum):
    """types of edges in the graph."""
    CITES = "cites"                      # P -> R (P cites R)


class FetchProfile(Enum):
    """which fields to request for bulk lookups."""
    SLIM = "slim"    # id, year, citations, references; ranking only
    FULL = "full"    # everything shown to a user


class PaperRole(Enum):
    """why a paper is in the graph."""
    SOURCE = "source"
    ROOT_SEED = "root_seed"
    BRANCH_SEED = "branch_seed"
    ROOT = "root"
    BRANCH = "branch"
    AUTHOR_WORK = "author_work"


@dataclass
class Author:
    """author as listed on a paper."""
    name: str
    id: Optional[str] = None
    orcid: Optional[str] = None
    affiliation: Optional[str] = None
    affiliation_country: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "orcid": self.orcid,
            "affiliation": self.affiliation,
            "affiliation_country": self.affiliation_country
        }


@dataclass
class TopicClassification:
    id: str = ""
    name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class PrimaryTopic:
    """openalex topic with its subfield/field/domain hierarchy."""
    id: str
    name: str
    # "field" is an attribute name here, so the helper is spelled out
    subfield: TopicClassification = dataclasses.field(default_factory=TopicClassification)
    field: TopicClassification = dataclasses.field(default_factory=TopicClassification)
    domain: TopicClassification = dataclasses.field(default_factory=TopicClassification)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "subfield": self.subfield.to_dict(),
            "field": self.field.to_dict(),
            "domain": self.domain.to_dict()
        }


@dataclass
class SDG:
    """sustainable development goal classification."""
    id: str
    name: str
    score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "score": self.score}


@dataclass
class CitationPercentile:
    value: float
    is_in_top_1_percent: bool = False
    is_in_top_10_percent: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "is_in_top_1_percent": self.is_in_top_1_percent,
            "is_in_top_10_percent": self.is_in_top_10_percent
        }


@dataclass
class PaperMetadata:
    """
    display metadata for a paper.
    every field beyond title is optional, missing data is never an error.
    """
    title: str = ""
    authors: List[str] = field(default_factory=list)
    authors_detailed: List[Author] = field(default_factory=list)
    citation_count: int = 0
    references_count: Optional[int] = None
    doi: Optional[str] = None
    openalex_url: Optional[str] = None
    is_source: bool = False

    type: Optional[str] = None           # article, preprint, book-chapter
    source_type: Optional[str] = None    # journal, conference, repository
    source_name: Optional[str] = None    # Nature, arXiv
    open_access: Optional[bool] = None
    language: Optional[str] = None
    abstract: Optional[str] = None

    fwci: Optional[float] = None         # field-weighted citation impact
    citation_percentile: Optional[CitationPercentile] = None
    primary_topic: Optional[PrimaryTopic] = None
    sdgs: Optional[List[SDG]] = None
    keywords: Optional[List[str]] = None
    is_retracted: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        """serialize for export."""
        return {
            "title": self.title,
            "authors": self.authors,
            "authors_detailed": [a.to_dict() for a in self.authors_detailed],
            "citation_count": self.citation_count,
            "references_count": self.references_count,
            "doi": self.doi,
            "openalex_url": self.openalex_url,
            "is_source": self.is_source,
            "type": self.type,
            "source_type": self.source_type,
            "source_name": self.source_name,
            "open_access": self.open_access,
            "language": self.language,
            "abstract": self.abstract,
            "fwci": self.fwci,
            "citation_percentile": (
                self.citation_percentile.to_dict() if self.citation_percentile else None
            ),
            "primary_topic": self.primary_topic.to_dict() if self.primary_topic else None,
            "sdgs": [s.to_dict() for s in self.sdgs] if self.sdgs else None,
            "keywords": self.keywords,
            "is_retracted": self.is_retracted
        }


@dataclass
class SlimRecord:
    """
    minimal paper shape used only for ranking.
    never shown to a user.
    """
    id: str
    year: int = 0
    citation_count: int = 0
    references: List[str] = field(default_factory=list)


@dataclass
class FullRecord:
    """paper with display metadata. fetched only for papers that make the graph."""
    id: str
    year: int = 0
    references: List[str] = field(default_factory=list)
    metadata: PaperMetadata = field(default_factory=PaperMetadata)
    role: Optional[PaperRole] = None

    @property
    def citation_count(self) -> int:
        return self.metadata.citation_count


@dataclass
class RankInfo:
    """ranking score and the components it is built from."""
    rank: float = 0.0
    cited_count: Optional[int] = None
    co_cited_count: Optional[float] = None
    co_citing_count: Optional[int] = None
    citing_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"rank": self.rank}
        for key in ("cited_count", "co_cited_count", "co_citing_count", "citing_count"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result


@dataclass
class Edge:
    """directed citation edge, source cites target."""
    source: str
    target: str
    edge_type: EdgeType = EdgeType.CITES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "type": self.edge_type.value
        }


@dataclass
class GraphNode:
    """
    node in the output graph.
    connections and cited_by only ever name other nodes of the same graph.
    """
    id: str
    order: int
    connections: List[str] = field(default_factory=list)
    cited_by: List[str] = field(default_factory=list)
    metadata: PaperMetadata = field(default_factory=PaperMetadata)
    role: Optional[PaperRole] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order": self.order,
            "connections": self.connections,
            "cited_by": self.cited_by,
            "role": self.role.value if self.role else None,
            "metadata": self.metadata.to_dict()
        }


@dataclass
class GraphMetadata:
    """counts and timings for one build."""
    papers_in_graph: int = 0
    edges_in_graph: int = 0
    build_time_seconds: float = 0.0
    timestamp: str = ""
    api_calls: int = 0
    graph_type: str = "paper"

    # paper graphs
    source_id: Optional[str] = None
    source_year: Optional[int] = None
    total_root_seeds: Optional[int] = None
    total_root_papers: Optional[int] = None
    total_branch_seeds: Optional[int] = None
    total_branch_papers: Optional[int] = None
    n_roots: Optional[int] = None
    n_branches: Optional[int] = None

    # author graphs
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    author_orcid: Optional[str] = None
    author_affiliation: Optional[str] = None
    author_works_count: Optional[int] = None
    author_cited_by_count: Optional[int] = None
    author_h_index: Optional[int] = None
    author_i10_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class Graph:
    """output of a build. owned by the caller."""
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    metadata: GraphMetadata = field(default_factory=GraphMetadata)
    ranks: Dict[str, RankInfo] = field(default_factory=dict)

    @property
    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes]

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "ranks": {pid: r.to_dict() for pid, r in self.ranks.items()},
            "metadata": self.metadata.to_dict()
        }


@dataclass
class AuthorProfile:
    """openalex author summary, used as the seed of an author graph."""
    id: str
    display_name: str = ""
    orcid: Optional[str] = None
    affiliation: Optional[str] = None
    works_count: int = 0
    cited_by_count: int = 0
    h_index: int = 0
    i10_index: int = 0


@dataclass
class BuildProgress:
    """
    coarse progress report.
    total is re-estimated during a build, so percent may move backwards.
    """
    message: str
    percent: int
    completed: int
    total: int


ProgressCallback = Callable[[BuildProgress], None]
