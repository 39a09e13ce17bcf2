"""Error hierarchy for Frontdesk.

Errors that cross a component boundary are wrapped in one of these classes,
keeping the original exception on ``cause``.
"""


class FrontdeskError(Exception):
    """Base exception for all Frontdesk errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConfigurationError(FrontdeskError):
    """Raised when tenant configuration is missing or structurally invalid.

    Examples:
        - Governance payload without a ``version``
        - Unknown configuration keys
        - A capture field declared in two goal tiers
    """

    pass


class StoreError(FrontdeskError):
    """Base exception for session and archive store errors.

    Store implementations wrap backend-specific errors in a subclass.
    """

    pass


class StoreConnectionError(StoreError):
    """Raised when the backing store cannot be reached.

    Examples:
        - Redis server unavailable
        - Network timeouts
    """

    pass


class SourceError(FrontdeskError):
    """Base exception for knowledge source failures."""

    def __init__(
        self,
        message: str,
        source_id: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.source_id = source_id


class SourceTimeoutError(SourceError):
    """Raised when a source query exceeds its hard timeout."""

    pass


class SourceUnavailableError(SourceError):
    """Raised when a source cannot serve queries (backend down, not loaded)."""

    pass


class InterpreterError(FrontdeskError):
    """Raised when the fallback interpreter fails or times out."""

    pass
