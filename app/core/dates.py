"""RECON — Date-Range Descriptors.

Named presets and custom bounds, resolved against the account-local calendar.
Dates are plain calendar dates; nothing here is shifted to UTC because the ad
platforms report in the account's own timezone.
"""

from datetime import date, timedelta
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, model_validator

from app.core.errors import InvalidDateRangeError

CUSTOM = "custom"
MAXIMUM = "maximum"

# Calendar-day span of each preset, used for cache containment.
PRESET_DAYS: Dict[str, int] = {
    "today": 1,
    "yesterday": 1,
    "last_7d": 7,
    "last_14d": 14,
    "last_30d": 30,
    "last_90d": 90,
    "this_month": 31,
    "last_month": 31,
}

KNOWN_PRESETS = set(PRESET_DAYS) | {MAXIMUM, CUSTOM}

# Earliest date the platforms will return for "maximum".
MAXIMUM_LOOKBACK_DAYS = 37 * 30


class DateRange(BaseModel):
    """A requested reporting window: a named preset or explicit custom bounds."""

    preset: str = "last_30d"
    since: Optional[date] = None
    until: Optional[date] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_bounds(self) -> "DateRange":
        if self.preset not in KNOWN_PRESETS:
            raise ValueError(f"Unknown date preset: {self.preset}")
        if self.preset == CUSTOM:
            if self.since is None or self.until is None:
                raise ValueError("Custom date range requires since and until")
            if self.since > self.until:
                raise ValueError("Custom date range since is after until")
        return self

    @classmethod
    def custom(cls, since: date, until: date) -> "DateRange":
        return cls(preset=CUSTOM, since=since, until=until)

    @property
    def is_custom(self) -> bool:
        return self.preset == CUSTOM

    @property
    def span_days(self) -> int:
        """Calendar days covered by the preset (0 for custom and maximum)."""
        return PRESET_DAYS.get(self.preset, 0)

    def same_window(self, other: "DateRange") -> bool:
        if self.preset != other.preset:
            return False
        if self.is_custom:
            return self.since == other.since and self.until == other.until
        return True

    def resolve(self, today: Optional[date] = None) -> Tuple[date, date]:
        """Resolve into inclusive (since, until) calendar dates."""
        return resolve_dates(self, today)

    def label(self) -> str:
        if self.is_custom:
            return f"{self.since.isoformat()}..{self.until.isoformat()}"
        return self.preset


def resolve_dates(date_range: DateRange, today: Optional[date] = None) -> Tuple[date, date]:
    """Resolve a descriptor into (since, until) relative to the account-local today."""
    today = today or date.today()
    preset = date_range.preset

    if preset == CUSTOM:
        return date_range.since, date_range.until

    if preset == "today":
        return today, today
    if preset == "yesterday":
        y = today - timedelta(days=1)
        return y, y
    if preset in ("last_7d", "last_14d", "last_30d", "last_90d"):
        return today - timedelta(days=PRESET_DAYS[preset] - 1), today
    if preset == "this_month":
        return today.replace(day=1), today
    if preset == "last_month":
        last_day = today.replace(day=1) - timedelta(days=1)
        return last_day.replace(day=1), last_day
    if preset == MAXIMUM:
        return today - timedelta(days=MAXIMUM_LOOKBACK_DAYS), today

    raise InvalidDateRangeError(f"Cannot resolve date preset: {preset}")


def parse_date_range(
    preset: Optional[str] = None,
    since: Optional[str] = None,
    until: Optional[str] = None,
    default_preset: str = "last_30d",
) -> DateRange:
    """Build a DateRange from loose request parameters.

    Explicit since/until win over a preset, matching how the date picker
    switches to "custom" once both bounds are chosen.
    """
    try:
        if since and until:
            return DateRange.custom(date.fromisoformat(since), date.fromisoformat(until))
        return DateRange(preset=preset or default_preset)
    except ValueError as e:
        raise InvalidDateRangeError(str(e)) from e
