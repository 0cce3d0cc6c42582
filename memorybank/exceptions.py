"""Memory bank exception hierarchy.

All custom exceptions inherit from MemoryBankError, allowing callers
to catch broad or specific error categories as needed. Every error
carries the component id and the operation it came from so transport
layers can report something actionable.
"""


class MemoryBankError(Exception):
    """Base exception for all memory bank errors."""

    def __init__(
        self,
        message: str = "",
        component_id: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.component_id = component_id
        self.operation = operation
        super().__init__(message)


class UnknownComponentError(MemoryBankError):
    """Raised when a component id is not one of the known components.

    Local validation failure. Never retried.
    """


class VersionNotFoundError(MemoryBankError):
    """Raised when a requested history version does not exist."""

    def __init__(
        self,
        message: str = "",
        component_id: str | None = None,
        operation: str | None = None,
        version_id: str | None = None,
    ) -> None:
        self.version_id = version_id
        super().__init__(message, component_id, operation)


class BackendError(MemoryBankError):
    """Raised when the storage backend fails.

    Examples: unreadable component file, locked SQLite database,
    missing permissions on the base directory.
    """


class HistoryWriteError(MemoryBankError):
    """Raised when a history version cannot be persisted or pruned.

    The component store logs and swallows this during updates: the
    primary content write still succeeds.
    """


class SubscriberCallbackError(MemoryBankError):
    """Raised (and caught) when a notification callback fails.

    Never propagates to the publisher. Collected in the delivery report.
    """

    def __init__(
        self,
        message: str = "",
        component_id: str | None = None,
        operation: str | None = "publish",
        subscription_id: str | None = None,
        event_type: str | None = None,
    ) -> None:
        self.subscription_id = subscription_id
        self.event_type = event_type
        super().__init__(message, component_id, operation)
