"""Custom error types used in inspectix."""

import requests


class InspectixError(Exception):
    """Base class for dashboard data-layer errors."""


class GatewayError(InspectixError):
    """A remote procedure call failed or returned an error payload."""

    def __init__(self, message: str, *, rpc: str | None = None) -> None:
        super().__init__(message)
        self.rpc = rpc


class RateLimitError(requests.HTTPError):
    """HTTP rate limit error."""


class MetricValidationError(InspectixError, ValueError):
    """A payload could not be coerced into its typed shape."""

    def __init__(self, message: str, *, details: object | None = None) -> None:
        super().__init__(message)
        self.details = details


class ChannelError(InspectixError):
    """A change-notification channel could not be opened or dropped."""

    def __init__(self, message: str, *, table: str | None = None) -> None:
        super().__init__(message)
        self.table = table


class StaleValueError(InspectixError):
    """A refetch failed and the cache fell back to its expired value."""

    def __init__(self, value: object, cause: BaseException) -> None:
        super().__init__(str(cause) or type(cause).__name__)
        self.value = value
        self.cause = cause
