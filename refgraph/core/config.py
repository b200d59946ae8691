"""
configuration for refgraph.
all settings in one place, easily tunable.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger("refgraph.config")


@dataclass
class ProviderConfig:
    """openalex provider settings."""
    base_url: str = "https://api.openalex.org"
    email: str = "user@example.com"
    user_agent: str = "refgraph/0.1 (mailto:user@example.com)"

    # filter expressions are length limited, ids per request
    max_filter_ids: int = 100
    max_per_page: int = 200

    # fixed concurrency cap, not adaptive
    max_parallel_requests: int = 10

    # None keeps the httpx default
    timeout: Optional[float] = None


@dataclass
class RankingConfig:
    """expansion and ranking settings."""
    n_roots: int = 25
    n_branches: int = 25

    # how many citing works seed the branches
    branch_seeds_limit: int = 200

    # refs cited by fewer branch seeds than this are not expanded
    min_branch_ref_frequency: int = 2

    # years; recency weight for co-citation
    citation_half_life: float = 4.0

    # progress estimate: assumed refs per root seed
    root_expansion_factor: int = 25


@dataclass
class AuthorGraphConfig:
    """author graph settings."""
    max_works: int = 100


@dataclass
class RefgraphConfig:
    """master configuration for refgraph."""
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    ranking: RankingConfig = field(default_factory=RankingConfig)
    author: AuthorGraphConfig = field(default_factory=AuthorGraphConfig)

    @classmethod
    def default(cls) -> 'RefgraphConfig':
        """return default configuration."""
        return cls()

    @classmethod
    def minimal(cls) -> 'RefgraphConfig':
        """small graphs, few requests. useful for quick checks."""
        config = cls()
        config.ranking.n_roots = 10
        config.ranking.n_branches = 10
        config.ranking.branch_seeds_limit = 50
        config.author.max_works = 25
        return config

    @classmethod
    def from_env(cls, config: Optional['RefgraphConfig'] = None) -> 'RefgraphConfig':
        """config (default if None) with overrides from REFGRAPH_* env vars."""
        config = config or cls()
        email = os.environ.get("REFGRAPH_OPENALEX_EMAIL")
        if email:
            config.provider.email = email
            config.provider.user_agent = f"refgraph/0.1 (mailto:{email})"
        parallel = os.environ.get("REFGRAPH_MAX_PARALLEL")
        if parallel:
            try:
                config.provider.max_parallel_requests = max(1, int(parallel))
            except ValueError:
                logger.warning(
                    f"[config] ignoring REFGRAPH_MAX_PARALLEL={parallel!r}, not an integer"
                )
        return config
