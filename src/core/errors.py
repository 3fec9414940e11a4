"""
Invite Relay - Error Taxonomy
=============================

Exception types raised across the relay pipeline.

DESIGN:
    Every failure is contained at the event-handling boundary, so these
    types exist to classify what went wrong in logs, not to drive retries.

    - FetchError: invite listing unavailable (degrade to Unknown attribution)
    - MalformedEventError: event cannot be normalized (drop the event)
    - DeliveryRejected: sink answered with a non-2xx status
    - DeliveryTransportFailure: sink unreachable (timeout, connection, DNS)
    - RoleGrantFailure: default role could not be added

Author: Invite Relay maintainers
Project: invite-relay
"""

from typing import Optional


class RelayError(Exception):
    """Base class for all relay pipeline errors."""


class FetchError(RelayError):
    """
    Raised when the invite listing for a community cannot be fetched.

    Attributes:
        community_id: Community whose listing failed.
    """

    def __init__(self, community_id: int, reason: str) -> None:
        super().__init__(f"Invite fetch failed for community {community_id}: {reason}")
        self.community_id = community_id
        self.reason = reason


class MalformedEventError(RelayError):
    """Raised when a platform event lacks data the canonical payload requires."""


class DeliveryRejected(RelayError):
    """
    The sink was reachable but answered with a non-2xx status.

    Attributes:
        status: HTTP status code returned by the sink.
        body: Response body (possibly truncated).
    """

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Sink rejected payload with HTTP {status}")
        self.status = status
        self.body = body


class DeliveryTransportFailure(RelayError):
    """
    The sink could not be reached.

    Attributes:
        cause: Underlying transport exception.
    """

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"Sink unreachable: {type(cause).__name__}: {cause}")
        self.cause = cause


class RoleGrantFailure(RelayError):
    """Raised when the default role cannot be added to a new member."""

    def __init__(self, member_id: int, role_id: int, reason: Optional[str] = None) -> None:
        message = f"Could not grant role {role_id} to member {member_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.member_id = member_id
        self.role_id = role_id


__all__ = [
    "RelayError",
    "FetchError",
    "MalformedEventError",
    "DeliveryRejected",
    "DeliveryTransportFailure",
    "RoleGrantFailure",
]
