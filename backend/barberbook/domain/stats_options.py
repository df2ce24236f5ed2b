"""Options for provider booking statistics queries."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping

from barberbook.core.exceptions import ValidationException

STATS_GROUPINGS: tuple[str, ...] = ("day", "week", "month")

# Filters the repository knows how to apply
SUPPORTED_STATS_FILTERS: frozenset[str] = frozenset({"status", "booking_source", "service_category"})


@dataclass(frozen=True)
class StatsQueryOptions:
    from_date: datetime
    to_date: datetime
    group_by: str = "day"
    include_revenue: bool = True
    filters: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def create(cls, from_date: datetime, to_date: datetime) -> "StatsQueryOptions":
        if to_date <= from_date:
            raise ValidationException(
                "Stats range end must be after its start",
                code="INVALID_STATS_RANGE",
            )
        return cls(from_date=from_date, to_date=to_date)

    def with_grouping(self, group_by: str) -> "StatsQueryOptions":
        if group_by not in STATS_GROUPINGS:
            raise ValidationException(
                f"Unsupported grouping: {group_by}",
                code="INVALID_STATS_GROUPING",
                details={"allowed": list(STATS_GROUPINGS)},
            )
        return replace(self, group_by=group_by)

    def with_revenue_breakdown(self, include: bool = True) -> "StatsQueryOptions":
        return replace(self, include_revenue=include)

    def with_filter(self, key: str, value: Any) -> "StatsQueryOptions":
        if key not in SUPPORTED_STATS_FILTERS:
            raise ValidationException(
                f"Unsupported stats filter: {key}",
                code="INVALID_STATS_FILTER",
                details={"allowed": sorted(SUPPORTED_STATS_FILTERS)},
            )
        merged = dict(self.filters)
        merged[key] = value
        return replace(self, filters=MappingProxyType(merged))
