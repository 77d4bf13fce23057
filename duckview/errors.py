"""Error taxonomy for the query session.

Every error is local and recoverable: none of them require re-creating the
engine connection.
"""


class SessionError(Exception):
    """Base class for failures reported by a session action."""


class LoadError(SessionError):
    """A file could not be materialized as a relation."""


class QueryError(SessionError):
    """The engine rejected or failed to execute a statement."""

    def __init__(self, message: str, duration_ms: float = 0.0):
        super().__init__(message)
        self.duration_ms = duration_ms


class EmptyInputError(SessionError):
    """Query text was blank after trimming."""


class ExportError(SessionError):
    """An export could not produce bytes for the host."""


class SessionBusyError(SessionError):
    """Another engine action is still in flight."""
