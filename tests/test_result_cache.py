"""
Result cache tests.

The cache has no wall-clock expiry: an entry lives until a sync evicts it or
a request asks for a window it does not contain.
"""
from datetime import date, datetime, timedelta, timezone

from app.core.dates import DateRange
from app.core.scope import Scope
from app.models.performance_models import PerformanceRow
from app.store.result_cache import ResultCache, is_valid


def _row(entity_id="A", account_id="act_1", day=1):
    return PerformanceRow(entity_id=entity_id, account_id=account_id, date=date(2026, 3, day))


class _Clock:
    def __init__(self):
        self.now = datetime(2026, 3, 10, 10, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


# ────────────────────────────────────────────
# VALIDITY
# ────────────────────────────────────────────


class TestValidity:
    """is_valid(entry, requested) containment rules."""

    def _entry(self, date_range):
        return ResultCache().put("account:act_1", [_row()], date_range)

    def test_same_preset_is_valid(self):
        assert is_valid(self._entry(DateRange(preset="last_30d")), DateRange(preset="last_30d"))

    def test_wider_preset_serves_narrower(self):
        entry = self._entry(DateRange(preset="last_30d"))
        assert is_valid(entry, DateRange(preset="last_7d"))
        assert is_valid(entry, DateRange(preset="last_14d"))

    def test_narrower_preset_cannot_serve_wider(self):
        entry = self._entry(DateRange(preset="last_7d"))
        assert not is_valid(entry, DateRange(preset="last_30d"))

    def test_containment_is_monotone(self):
        """Valid for a preset ⇒ valid for every shorter known preset."""
        entry = self._entry(DateRange(preset="last_90d"))
        for preset in ("last_90d", "last_30d", "last_14d", "last_7d", "yesterday", "today"):
            assert is_valid(entry, DateRange(preset=preset)), preset

    def test_custom_requires_exact_match(self):
        cached = DateRange.custom(date(2026, 3, 1), date(2026, 3, 5))
        entry = self._entry(cached)
        assert is_valid(entry, DateRange.custom(date(2026, 3, 1), date(2026, 3, 5)))
        assert not is_valid(entry, DateRange.custom(date(2026, 3, 2), date(2026, 3, 5)))

    def test_unknown_span_never_served_by_containment(self):
        entry = self._entry(DateRange(preset="last_90d"))
        assert not is_valid(entry, DateRange(preset="maximum"))
        assert not is_valid(entry, DateRange.custom(date(2026, 3, 1), date(2026, 3, 2)))

    def test_equal_span_elsewhere_in_time_is_not_valid(self):
        """last_month and last_7d share nothing on 20 March."""
        today = date(2026, 3, 20)
        entry = ResultCache().put(
            "account:act_1", [_row()], DateRange(preset="last_month"), today
        )
        assert not is_valid(entry, DateRange(preset="last_7d"), today)
        assert is_valid(entry, DateRange(preset="last_month"), today)

    def test_yesterday_does_not_serve_today(self):
        today = date(2026, 3, 20)
        entry = ResultCache().put("account:act_1", [_row()], DateRange(preset="yesterday"), today)
        assert not is_valid(entry, DateRange(preset="today"), today)

    def test_window_fetched_days_ago_no_longer_covers_today(self):
        entry = ResultCache().put(
            "account:act_1", [_row()], DateRange(preset="last_30d"), date(2026, 3, 10)
        )
        assert is_valid(entry, DateRange(preset="last_7d"), date(2026, 3, 10))
        assert not is_valid(entry, DateRange(preset="last_7d"), date(2026, 3, 20))


# ────────────────────────────────────────────
# LOOKUP / EVICTION
# ────────────────────────────────────────────


class TestResultCache:
    def test_no_time_based_expiry(self):
        """Fetched at 10am, asked again at 5pm: still a hit."""
        clock = _Clock()
        cache = ResultCache(clock=clock)
        scope = Scope.account("act_1")
        cache.put(scope.cache_key, [_row()], DateRange(preset="last_30d"))

        clock.now += timedelta(hours=7)
        assert cache.lookup(scope, DateRange(preset="last_30d")) is not None

        clock.now += timedelta(days=3)
        assert cache.lookup(scope, DateRange(preset="last_30d")) is not None

    def test_miss_when_absent(self):
        assert ResultCache().lookup(Scope.account("act_1"), DateRange(preset="last_7d")) is None

    def test_account_and_workspace_do_not_alias(self):
        cache = ResultCache()
        account = Scope.account("act_1")
        workspace = Scope.workspace(["act_1"])
        assert account.cache_key != workspace.cache_key

        cache.put(account.cache_key, [_row()], DateRange(preset="last_30d"))
        assert cache.lookup(workspace, DateRange(preset="last_30d")) is None

    def test_workspace_key_is_order_independent(self):
        assert (
            Scope.workspace(["act_2", "act_1"]).cache_key
            == Scope.workspace(["act_1", "act_2"]).cache_key
        )

    def test_sync_evicts_account_and_containing_workspaces(self):
        cache = ResultCache()
        r = DateRange(preset="last_30d")
        cache.put(Scope.account("act_1").cache_key, [], r)
        cache.put(Scope.account("act_2").cache_key, [], r)
        cache.put(Scope.workspace(["act_1", "act_2"]).cache_key, [], r)
        cache.put(Scope.workspace(["act_2", "act_3"]).cache_key, [], r)
        cache.put(Scope.workspace(["act_10"]).cache_key, [], r)

        evicted = cache.evict_for_sync("act_1")

        assert sorted(evicted) == ["account:act_1", "workspace:act_1,act_2"]
        assert cache.keys() == ["account:act_2", "workspace:act_10", "workspace:act_2,act_3"]

    def test_storage_failure_is_a_miss(self):
        class _Broken(dict):
            def get(self, key, default=None):
                raise RuntimeError("storage offline")

        cache = ResultCache(storage=_Broken())
        assert cache.lookup(Scope.account("act_1"), DateRange(preset="last_7d")) is None

    def test_entry_rows_are_immutable_tuple(self):
        cache = ResultCache()
        entry = cache.put("account:act_1", [_row("A"), _row("B")], DateRange(preset="last_7d"))
        assert isinstance(entry.rows, tuple)
        assert len(entry.rows) == 2
