"""Failure taxonomy for the realtime core.

Every error here is scoped to a single session; none of them ends the
process or tears down other connections.
"""

from __future__ import annotations


class RealtimeError(Exception):
    """Base class for realtime session errors."""

    code = "REALTIME_ERROR"


class AuthenticationFailure(RealtimeError):
    """Token rejected or bound user missing. Reported as ``auth_error``."""

    code = "AUTH_FAILED"


class PreconditionViolation(RealtimeError):
    """Chat operation attempted on a session that is not authenticated."""

    code = "NOT_AUTHENTICATED"


class MalformedPayload(RealtimeError):
    """Inbound frame is not valid JSON or does not fit its declared type."""

    code = "MALFORMED_PAYLOAD"


class CollaboratorFailure(RealtimeError):
    """A store call returned nothing where a record was expected."""

    code = "MESSAGE_NOT_SENT"
