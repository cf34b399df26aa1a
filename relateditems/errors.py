from __future__ import annotations


class RelatedItemsError(Exception):
    """Base error carrying the failing operation and the underlying detail."""

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation}: {detail}")


class ConfigError(RelatedItemsError):
    """Missing/invalid endpoint settings or unresolvable site identity. Not retryable."""


class TransportError(RelatedItemsError):
    """Network or HTTP failure while talking to the search engine. Callers may retry."""


class EngineError(RelatedItemsError):
    """The search engine answered with an error envelope or a failed bulk result."""
