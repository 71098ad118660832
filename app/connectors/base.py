"""RECON — Abstract Collaborator Sources."""

from abc import ABC, abstractmethod
from datetime import date
from typing import FrozenSet, List, Optional

from app.core.dates import DateRange
from app.models.attribution_models import AttributionFeed, FeedKind
from app.models.performance_models import PerformanceRow


class SyncSource(ABC):
    """Supplies a full replacement row set for one ad account.

    The engine never talks to an ad platform directly; whatever worker pulls
    from the platform API hands its rows over through this interface.
    """

    @abstractmethod
    async def fetch_rows(self, account_id: str, date_range: DateRange) -> List[PerformanceRow]:
        """Return every row for the account and window.

        Raises:
            SourceUnavailableError: the upstream could not deliver. The row
                store is left untouched in that case.
        """
        ...


class FeedSource(ABC):
    """Supplies one independent attribution feed for a window."""

    kind: FeedKind

    @abstractmethod
    async def fetch_feed(
        self, account_ids: FrozenSet[str], since: date, until: date
    ) -> Optional[AttributionFeed]:
        """Return the feed, or None when the feed is not configured.

        None and an empty feed mean the same thing to the reconciler.
        """
        ...

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this feed is configured and ready."""
        ...
