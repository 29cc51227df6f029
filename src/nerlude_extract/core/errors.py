from __future__ import annotations


class BatchLimitExceeded(ValueError):
    """More documents were handed to a single extraction call than the configured ceiling."""

    def __init__(self, *, count: int, limit: int) -> None:
        super().__init__(f"Maximum {limit} documents per request (got {count})")
        self.count = count
        self.limit = limit


class UpstreamServiceError(Exception):
    """An external collaborator was unreachable or answered with a non-success status."""

    service: str = "upstream"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ExtractionTransportError(UpstreamServiceError):
    service = "extraction"


class MailboxTransportError(UpstreamServiceError):
    service = "mailbox"
