"""RECON — Performance Row Store.

In-memory daily rows per account. Every update is a full replacement of one
account's rows; there is no partial-row mutation.
"""

from datetime import date
from typing import Dict, Iterable, List, Tuple

from app.core.scope import Scope
from app.models.performance_models import PerformanceRow
from app.core.logging import get_logger

logger = get_logger("store.rows")


class PerformanceRowStore:
    """Holds the latest sync generation of rows for each account."""

    def __init__(self):
        self._rows: Dict[str, Tuple[PerformanceRow, ...]] = {}
        self._generations: Dict[str, int] = {}

    def replace(self, account_id: str, rows: Iterable[PerformanceRow]) -> int:
        """Atomically swap the full row set for an account.

        Later duplicates of the same (entity_id, date) win, so a sync
        generation never holds two rows for one ad-day.
        """
        deduped: Dict[Tuple[str, date], PerformanceRow] = {}
        for row in rows:
            deduped[(row.entity_id, row.date)] = row
        self._rows[account_id] = tuple(deduped.values())
        self._generations[account_id] = self._generations.get(account_id, 0) + 1
        logger.info(
            f"Replaced rows for {account_id}: {len(deduped)} rows "
            f"(generation {self._generations[account_id]})",
            extra={"account_id": account_id},
        )
        return len(deduped)

    def rows_for(self, scope: Scope, since: date, until: date) -> List[PerformanceRow]:
        """Rows in the scope whose account-local date lies in [since, until]."""
        result: List[PerformanceRow] = []
        for account_id in sorted(scope.account_ids):
            for row in self._rows.get(account_id, ()):
                if since <= row.date <= until:
                    result.append(row)
        return result

    def all_rows(self, scope: Scope) -> List[PerformanceRow]:
        """Every stored row in the scope, ignoring dates."""
        result: List[PerformanceRow] = []
        for account_id in sorted(scope.account_ids):
            result.extend(self._rows.get(account_id, ()))
        return result

    def accounts(self) -> List[str]:
        return sorted(self._rows)

    def generation(self, account_id: str) -> int:
        return self._generations.get(account_id, 0)
