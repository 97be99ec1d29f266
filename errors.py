"""
Error taxonomy for query resolution

Every failure that can reach a caller carries a stable code, a human-readable
reason and whether retrying the whole request may succeed. Nothing here is
retried internally; callers decide.
"""

from typing import Any, Optional


class GraphQueryError(Exception):
    """Base class for all resolution failures."""

    code = "INTERNAL_ERROR"
    retryable = False

    def __init__(self, reason: str, *, detail: Optional[dict[str, Any]] = None):
        super().__init__(reason)
        self.reason = reason
        self.detail = detail or {}

    @property
    def extensions(self) -> dict[str, Any]:
        """GraphQL error extensions; picked up when the error is located in a response."""
        ext = {"code": self.code, "retryable": self.retryable}
        ext.update(self.detail)
        return ext

    def to_dict(self) -> dict[str, Any]:
        """Structured error entry, same shape as validation errors."""
        return {"error": True, "message": self.reason, **self.extensions}


class PoolExhausted(GraphQueryError):
    """No connection became free within the caller's wait bound."""

    code = "POOL_EXHAUSTED"
    retryable = True


class ConnectionFailure(GraphQueryError):
    """A new database session could not be opened."""

    code = "CONNECTION_FAILURE"
    retryable = True


class QueryError(GraphQueryError):
    """The database rejected or could not execute a statement."""

    code = "QUERY_ERROR"

    def __init__(self, reason: str, *, connection_lost: bool = False, detail: Optional[dict[str, Any]] = None):
        super().__init__(reason, detail=detail)
        self.connection_lost = connection_lost


class UpstreamUnavailable(GraphQueryError):
    """The pool could not supply a connection for a resolution."""

    code = "UPSTREAM_UNAVAILABLE"
    retryable = True


class QueryFailed(GraphQueryError):
    """Executing the planned statement failed."""

    code = "QUERY_FAILED"


class MalformedRow(GraphQueryError):
    """A returned row does not match the entity shape the plan promised."""

    code = "MALFORMED_ROW"


class UnplannableRequest(GraphQueryError):
    """A field tree names no field the planner recognizes."""

    code = "UNPLANNABLE_REQUEST"
