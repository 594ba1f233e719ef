"""Realtime channel exceptions."""


class TransportError(Exception):
    """Publishing to or reading from an event channel failed."""

    def __init__(self, message: str, backend: str | None = None) -> None:
        self.message = message
        self.backend = backend
        super().__init__(message)


class SubscriptionClosedError(TransportError):
    """The subscription was closed while a reader was waiting on it."""


class FetchError(Exception):
    """An observer could not re-query authoritative order state."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)
