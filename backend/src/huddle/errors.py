"""Typed errors surfaced at the engine boundary."""

from __future__ import annotations

from typing import Any, Sequence


class HuddleError(Exception):
    """Base class for all errors raised by the conversation engine."""


class NotFound(HuddleError):
    """Raised when a server, channel, user or conversation target does not resolve."""

    def __init__(self, kind: str, identifier: str | None = None) -> None:
        self.kind = kind
        self.identifier = identifier
        label = f"{kind} {identifier}" if identifier is not None else kind
        super().__init__(f"{label} not found")


class Unauthenticated(HuddleError):
    """Raised when the identity provider cannot resolve the current user."""


class Unavailable(HuddleError):
    """Raised when a round-trip to the entity access layer fails in transport."""


class Rejected(HuddleError):
    """Raised when the entity access layer refuses a well-formed request."""

    def __init__(self, status_code: int, detail: Any = None) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Request rejected with status {status_code}: {detail}")


class Busy(HuddleError):
    """Raised when a send is already outstanding for the same conversation target."""

    def __init__(self, target: Any) -> None:
        self.target = target
        super().__init__(f"A send is already in flight for {target}")


class PartialCreate(HuddleError):
    """Raised when server creation stops after the server record already exists.

    The partially created server is left in place. ``completed_steps`` lists the
    steps that finished so the remaining ones can be resumed.
    """

    def __init__(
        self,
        server: Any,
        owner_id: str,
        completed_steps: Sequence[str],
    ) -> None:
        self.server = server
        self.owner_id = owner_id
        self.completed_steps = tuple(completed_steps)
        super().__init__(
            f"Server {server.id} was created but setup stopped after: "
            f"{', '.join(self.completed_steps)}"
        )
