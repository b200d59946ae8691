"""
refgraph - bounded citation graphs around a seed paper or author.
"""

from .core.config import RefgraphConfig
from .core.models import (
    Graph, GraphNode, Edge, EdgeType, PaperMetadata, RankInfo, BuildProgress
)
from .core.identifiers import normalize_id
from .core.resilience import RefgraphError, SourceFetchError
from .providers.openalex import OpenAlexProvider
from .pipeline import GraphBuilder, build_graph, build_author_graph, hydrate_metadata
from .export.formats import GraphExporter

__version__ = "0.1.0"

__all__ = [
    "RefgraphConfig",
    "Graph",
    "GraphNode",
    "Edge",
    "EdgeType",
    "PaperMetadata",
    "RankInfo",
    "BuildProgress",
    "normalize_id",
    "RefgraphError",
    "SourceFetchError",
    "OpenAlexProvider",
    "GraphBuilder",
    "build_graph",
    "build_author_graph",
    "hydrate_metadata",
    "GraphExporter"
]
