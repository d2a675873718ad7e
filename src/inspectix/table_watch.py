"""Which cache keys each watched table invalidates and reloads."""

from __future__ import annotations

from dataclasses import dataclass

from inspectix.metric_keys import MetricKey
from inspectix.priority import Priority


@dataclass(frozen=True)
class TableWatch:
    table: str
    invalidates: tuple[str, ...]
    reloads: tuple[str, ...]
    priority: Priority = Priority.NORMAL
    skip_cache: bool = False


# The aggregate load rewrites every slice and the KPIs, so any table feeding
# a slice also reloads the aggregate.
DEFAULT_TABLE_WATCHES: tuple[TableWatch, ...] = (
    TableWatch(
        table="inspections",
        invalidates=(
            MetricKey.DASHBOARD_METRICS,
            MetricKey.AI_METRICS,
            MetricKey.TRENDS,
            MetricKey.REGIONAL,
        ),
        reloads=(MetricKey.DASHBOARD_METRICS,),
        priority=Priority.HIGH,
        skip_cache=True,
    ),
    TableWatch(
        table="checklist_items",
        invalidates=(MetricKey.AI_METRICS, MetricKey.DASHBOARD_METRICS),
        reloads=(MetricKey.DASHBOARD_METRICS,),
    ),
    TableWatch(
        table="users",
        invalidates=(MetricKey.USER_METRICS, MetricKey.DASHBOARD_METRICS),
        reloads=(MetricKey.DASHBOARD_METRICS,),
    ),
)
