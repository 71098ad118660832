"""RECON — Account / Workspace Scope.

A report is computed either for one ad account or for a workspace that groups
several. Cache keys are namespaced by which of the two a scope is, so an
account query and a one-account workspace query never alias.
"""

from typing import FrozenSet, Iterable, Optional

from pydantic import BaseModel

ACCOUNT_PREFIX = "account:"
WORKSPACE_PREFIX = "workspace:"


class Scope(BaseModel):
    """The current account, or the set of account ids in the current workspace."""

    model_config = {"frozen": True}

    account_id: Optional[str] = None
    workspace_account_ids: FrozenSet[str] = frozenset()

    @classmethod
    def account(cls, account_id: str) -> "Scope":
        return cls(account_id=account_id)

    @classmethod
    def workspace(cls, account_ids: Iterable[str]) -> "Scope":
        return cls(workspace_account_ids=frozenset(account_ids))

    @property
    def is_workspace(self) -> bool:
        return bool(self.workspace_account_ids)

    @property
    def account_ids(self) -> FrozenSet[str]:
        if self.is_workspace:
            return self.workspace_account_ids
        if self.account_id:
            return frozenset({self.account_id})
        return frozenset()

    @property
    def cache_key(self) -> str:
        if self.is_workspace:
            return WORKSPACE_PREFIX + ",".join(sorted(self.workspace_account_ids))
        return ACCOUNT_PREFIX + (self.account_id or "none")

    def contains(self, account_id: str) -> bool:
        return account_id in self.account_ids
