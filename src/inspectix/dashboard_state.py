"""Mutable per-session dashboard state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from inspectix.models import HealthSnapshot


@dataclass
class DashboardState:
    """Latest metric values and per-key load bookkeeping for one session.

    Only the session's metric loader writes to this object.
    """

    metrics: dict[str, Any] = field(default_factory=dict)
    loading_states: dict[str, bool] = field(default_factory=dict)
    errors: dict[str, str | None] = field(default_factory=dict)
    last_updated: dict[str, datetime] = field(default_factory=dict)
    is_initial_load: bool = True
    health: HealthSnapshot | None = None
    data_issues: tuple[str, ...] = ()

    @property
    def is_loading(self) -> bool:
        return any(self.loading_states.values())

    @property
    def has_errors(self) -> bool:
        return any(self.errors.values())

    def failed_keys(self) -> list[str]:
        return [key for key, error in self.errors.items() if error]
