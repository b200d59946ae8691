from .models import (
    Author, PaperMetadata, SlimRecord, FullRecord, RankInfo, Edge, EdgeType,
    GraphNode, GraphMetadata, Graph, AuthorProfile, BuildProgress, FetchProfile, PaperRole
)
from .config import RefgraphConfig, ProviderConfig, RankingConfig, AuthorGraphConfig
from .identifiers import normalize_id, extract_id, parse_doi
from .resilience import (
    RefgraphError, SourceFetchError, BatchFetchError, FetchStats, safe_execute, setup_logging,
    track_calls
)
