"""Error taxonomy for the knowledge base.

Read and search paths swallow these and degrade to empty results.
Mutation paths roll back optimistic state and re-raise them.
"""


class KnowledgeBaseError(Exception):
    """Base class for knowledge base failures."""


class StoreUnavailable(KnowledgeBaseError):
    """No reachable backing store.

    ``reason`` is ``"unconfigured"`` when the URL/key are missing and
    ``"unreachable"`` when a client could not be created or contacted.
    """

    UNCONFIGURED = "unconfigured"
    UNREACHABLE = "unreachable"

    def __init__(self, reason: str = UNREACHABLE, detail: str | None = None):
        self.reason = reason
        self.detail = detail
        message = f"Knowledge store unavailable ({reason})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class WriteFailed(KnowledgeBaseError):
    """The store rejected or could not complete a mutation."""

    def __init__(self, operation: str, entry_id: str | None = None, detail: str | None = None):
        self.operation = operation
        self.entry_id = entry_id
        message = f"Failed to {operation} knowledge entry"
        if entry_id:
            message = f"{message} {entry_id}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class NotFound(KnowledgeBaseError):
    """An operation referenced an id absent from the view or the store."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Knowledge entry not found: {entry_id}")


class SearchFailed(KnowledgeBaseError):
    """The query path failed for a reason other than plain unavailability."""
