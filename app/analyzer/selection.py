"""RECON — Selection Cascade.

Tracks which campaigns and ABO ad sets participate in totals. Keys are either a
campaign key or a composite `campaign::adset` key (ABO ad sets only). The
"some selected" state is never stored: it is derived from which child keys are
present.
"""

from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Set

from app.models.performance_models import PerformanceRow, is_adset_key, split_adset_key
from app.models.report_models import SelectionSummary
from app.core.logging import get_logger

logger = get_logger("analyzer.selection")


class TriState(str, Enum):
    ALL = "all"
    SOME = "some"
    NONE = "none"


class SelectionTree:
    """Campaigns in the current data and the ABO ad-set keys under each."""

    def __init__(self, campaigns: List[str], abo_adsets: Dict[str, FrozenSet[str]]):
        self.campaigns = campaigns
        self.abo_adsets = abo_adsets

    @classmethod
    def from_rows(cls, rows: Iterable[PerformanceRow]) -> "SelectionTree":
        campaigns: List[str] = []
        seen: Set[str] = set()
        abo: Dict[str, Set[str]] = {}
        for row in rows:
            campaign = row.campaign_key
            if campaign not in seen:
                seen.add(campaign)
                campaigns.append(campaign)
            if row.is_abo:
                abo.setdefault(campaign, set()).add(row.adset_key)
        return cls(campaigns, {c: frozenset(keys) for c, keys in abo.items()})

    @classmethod
    def empty(cls) -> "SelectionTree":
        return cls([], {})

    def adsets_of(self, campaign: str) -> FrozenSet[str]:
        return self.abo_adsets.get(campaign, frozenset())

    def has_campaign(self, campaign: str) -> bool:
        return campaign in self.campaigns

    def has_adset(self, key: str) -> bool:
        campaign, _ = split_adset_key(key)
        return key in self.adsets_of(campaign)

    def full_selection(self) -> Set[str]:
        keys: Set[str] = set(self.campaigns)
        for campaign in self.campaigns:
            keys.update(self.adsets_of(campaign))
        return keys


# ─────────────────────────────────────────────
# PURE DERIVED STATE
# ─────────────────────────────────────────────


def campaign_state(keys: Set[str], tree: SelectionTree, campaign: str) -> TriState:
    """all/some/none for one campaign, from its ABO children when it has any."""
    children = tree.adsets_of(campaign)
    if not children:
        return TriState.ALL if campaign in keys else TriState.NONE
    present = sum(1 for k in children if k in keys)
    if present == len(children):
        return TriState.ALL
    if present == 0:
        return TriState.NONE
    return TriState.SOME


def header_state(keys: Set[str], tree: SelectionTree) -> TriState:
    """State of the select-all checkbox across visible campaigns."""
    if not tree.campaigns:
        return TriState.NONE
    states = [campaign_state(keys, tree, c) for c in tree.campaigns]
    if all(s == TriState.ALL for s in states):
        return TriState.ALL
    if all(s == TriState.NONE for s in states):
        return TriState.NONE
    return TriState.SOME


def includes_row(keys: Set[str], row: PerformanceRow) -> bool:
    """ABO rows follow their ad-set key; everything else follows the campaign key."""
    if row.is_abo:
        return row.adset_key in keys
    return row.campaign_key in keys


# ─────────────────────────────────────────────
# STATEFUL CASCADE
# ─────────────────────────────────────────────


class SelectionCascade:
    """Selection set plus the sticky "user cleared it" gate on auto-select."""

    def __init__(self):
        self.keys: Set[str] = set()
        self.tree = SelectionTree.empty()
        self.auto_select_enabled = True

    # ── Data lifecycle ──

    def on_data_loaded(self, rows: Iterable[PerformanceRow]) -> None:
        """Apply auto-select / new-campaign rules when a fresh row set arrives."""
        previous = self.tree
        self.tree = SelectionTree.from_rows(rows)

        # Composite keys may only name ABO ad sets that still exist.
        stale = {k for k in self.keys if is_adset_key(k) and not self.tree.has_adset(k)}
        self.keys -= stale

        if not self.keys:
            if self.auto_select_enabled:
                self.keys = self.tree.full_selection()
                logger.info(f"Auto-selected {len(self.tree.campaigns)} campaigns")
            return

        added = 0
        known = set(previous.campaigns)
        for campaign in self.tree.campaigns:
            if campaign not in known:
                self.keys.add(campaign)
                self.keys.update(self.tree.adsets_of(campaign))
                added += 1
            elif campaign in self.keys:
                # Fully selected campaigns pick up ABO ad sets that appeared since.
                new_children = self.tree.adsets_of(campaign) - previous.adsets_of(campaign)
                self.keys.update(new_children)
        if added:
            logger.info(f"Added {added} newly-appeared campaigns to selection")

    def reset_for_context_change(self) -> None:
        """Account or workspace switched: start empty and allow auto-select again."""
        self.keys = set()
        self.tree = SelectionTree.empty()
        self.auto_select_enabled = True

    # ── User actions ──

    def toggle(self, key: str) -> bool:
        """Toggle a campaign or ABO ad-set key. Returns False for unknown keys."""
        if is_adset_key(key):
            if not self.tree.has_adset(key):
                logger.debug(f"Ignoring toggle of unknown ad set {key}")
                return False
            self._toggle_adset(key)
        else:
            if not self.tree.has_campaign(key):
                logger.debug(f"Ignoring toggle of unknown campaign {key}")
                return False
            self._toggle_campaign(key)

        if self.keys:
            self.auto_select_enabled = True
        return True

    def _toggle_campaign(self, campaign: str) -> None:
        children = self.tree.adsets_of(campaign)
        if campaign in self.keys:
            self.keys.discard(campaign)
            self.keys -= children
        else:
            self.keys.add(campaign)
            self.keys |= children

    def _toggle_adset(self, key: str) -> None:
        if key in self.keys:
            self.keys.discard(key)
        else:
            self.keys.add(key)

        # The campaign key stays only while every sibling is selected; a
        # partial campaign reads as "some" from its children alone.
        campaign, _ = split_adset_key(key)
        siblings = self.tree.adsets_of(campaign)
        if all(k in self.keys for k in siblings):
            self.keys.add(campaign)
        else:
            self.keys.discard(campaign)

    def select_all(self) -> None:
        self.keys = self.tree.full_selection()
        self.auto_select_enabled = True

    def deselect_all(self) -> None:
        self.keys = set()
        self.auto_select_enabled = False

    def toggle_all(self) -> None:
        """Header checkbox: clear when every campaign is selected, else select all."""
        if self.tree.campaigns and all(c in self.keys for c in self.tree.campaigns):
            self.deselect_all()
        else:
            self.select_all()

    # ── Derived views ──

    def filter_rows(self, rows: Iterable[PerformanceRow]) -> List[PerformanceRow]:
        return [r for r in rows if includes_row(self.keys, r)]

    def campaign_state(self, campaign: str) -> TriState:
        return campaign_state(self.keys, self.tree, campaign)

    def header_state(self) -> TriState:
        return header_state(self.keys, self.tree)

    def summary(self) -> SelectionSummary:
        return SelectionSummary(
            keys=sorted(self.keys),
            header_state=self.header_state().value,
            campaign_states={
                c: self.campaign_state(c).value for c in self.tree.campaigns
            },
            auto_select_enabled=self.auto_select_enabled,
        )
