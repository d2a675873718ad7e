import time
from datetime import UTC, datetime


class Now:
    @staticmethod
    def as_datetime() -> datetime:
        """Return the current UTC time as a datetime object."""

        return datetime.now(UTC)

    @staticmethod
    def monotonic() -> float:
        """Return a monotonic clock reading in seconds, for TTLs and durations."""

        return time.monotonic()
