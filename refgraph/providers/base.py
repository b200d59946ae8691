"""
base provider interface for bibliographic metadata sources.
the graph pipeline only talks to this interface.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Set, Union

from ..core.models import FullRecord, SlimRecord, AuthorProfile, FetchProfile
from ..core.resilience import FetchStats

BatchCallback = Callable[[], None]
Record = Union[SlimRecord, FullRecord]


class MetadataProvider(ABC):
    """
    abstract base class for async metadata providers.
    bulk methods degrade per request group instead of raising.
    """

    stats: FetchStats

    @property
    @abstractmethod
    def name(self) -> str:
        """provider name for logging."""
        pass

    @property
    @abstractmethod
    def max_filter_ids(self) -> int:
        """ids per bulk request, used for progress estimates."""
        pass

    @abstractmethod
    async def fetch_one(self, work_id: str) -> Optional[FullRecord]:
        """
        single work with full metadata.
        returns None on any failure.
        """
        pass

    @abstractmethod
    async def fetch_bulk(
        self,
        work_ids: List[str],
        profile: FetchProfile = FetchProfile.SLIM,
        on_batch_complete: Optional[BatchCallback] = None
    ) -> Dict[str, Record]:
        """many works by id. failed groups are simply missing from the result."""
        pass

    @abstractmethod
    async def fetch_citing_ids(self, work_id: str, limit: int) -> List[str]:
        """ids of up to `limit` works citing work_id. single page."""
        pass

    @abstractmethod
    async def fetch_citers_of(
        self,
        work_ids: List[str],
        on_batch_complete: Optional[BatchCallback] = None
    ) -> Set[str]:
        """ids of works citing any of work_ids."""
        pass

    # author methods (optional - default implementations)

    async def fetch_author(self, author_id: str) -> Optional[AuthorProfile]:
        """author summary by id."""
        return None

    async def fetch_author_works(
        self,
        author_id: str,
        max_works: int = 100,
        on_page_complete: Optional[BatchCallback] = None
    ) -> Dict[str, FullRecord]:
        """works by an author with full metadata."""
        return {}

    def supports_authors(self) -> bool:
        """does this provider support author queries?"""
        return False

    async def close(self):
        """release network resources."""
        pass
