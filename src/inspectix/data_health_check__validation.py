"""Sanity checks over consolidated metrics."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import ValidationError

from inspectix.errors import MetricValidationError
from inspectix.models import DashboardHealth, DashboardMetrics
from inspectix.transform_raw_metrics__validation import coerce_payload

_MAX_REASONABLE_DURATION_MINUTES = 480


@dataclass(frozen=True)
class DataHealthReport:
    issues: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_healthy(self) -> bool:
        return not self.issues


def _negative_count_issues(metrics: DashboardMetrics) -> list[str]:
    issues: list[str] = []
    sections = {
        "inspection_counts": metrics.inspection_counts,
        "user_metrics": metrics.user_metrics,
        "revenue_metrics": metrics.revenue_metrics,
    }
    for section_name, section in sections.items():
        for field_name, value in section.model_dump().items():
            if isinstance(value, int | float) and value < 0:
                issues.append(f"Negative value for {section_name}.{field_name}: {value}")
    return issues


def _percentage_issues(metrics: DashboardMetrics) -> list[str]:
    if metrics.ai_metrics is None:
        return []
    issues: list[str] = []
    for field_name in ("accuracy_rate", "ai_pass_rate", "human_pass_rate"):
        value = getattr(metrics.ai_metrics, field_name)
        if value < 0 or value > 100:
            issues.append(f"Invalid AI {field_name.replace('_', ' ')}: {value}%")
    return issues


def perform_data_health_check(metrics: DashboardMetrics) -> DataHealthReport:
    """Return consistency issues; an empty report means the data looks sane."""
    issues = _negative_count_issues(metrics)

    counts = metrics.inspection_counts
    expected_total = counts.draft + counts.in_progress + counts.completed + counts.auditing
    if expected_total != counts.total:
        issues.append(
            f"Inspection count mismatch: expected {expected_total}, got {counts.total}"
        )

    if (
        metrics.time_analytics is not None
        and metrics.time_analytics.avg_duration_minutes > _MAX_REASONABLE_DURATION_MINUTES
    ):
        issues.append(
            "Unusually long average inspection time: "
            f"{metrics.time_analytics.avg_duration_minutes} minutes"
        )

    issues.extend(_percentage_issues(metrics))

    users = metrics.user_metrics
    if users.active_inspectors > users.total_users:
        issues.append(
            "More active inspectors than total users: "
            f"{users.active_inspectors} > {users.total_users}"
        )
    return DataHealthReport(issues=tuple(issues))


def validate_dashboard_health(raw: object) -> DashboardHealth:
    """Validate the health RPC body.

    Raises:
        MetricValidationError: If required health fields are missing.
    """
    payload = coerce_payload(raw, name="dashboard health")
    try:
        return DashboardHealth.model_validate(payload)
    except ValidationError as exc:
        raise MetricValidationError("Invalid dashboard health data", details=exc.errors()) from exc
