"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines the shared error taxonomy for the pollagent runtime.

"Not ready yet" is never an error: pollers receive `False`/`None` for pending
work and retry on their own schedule. Everything raised here is surfaced to
the caller and never retried internally.
"""

from __future__ import annotations


class PollAgentError(Exception):
    """Base exception for all pollagent errors."""

    pass


class NotFoundError(PollAgentError, LookupError):
    """Raised when a run/handoff/validation/registry/request id is unknown."""

    pass


class UnauthorizedError(PollAgentError):
    """Raised when the calling principal may not perform the operation."""

    pass


class DuplicateNameError(PollAgentError):
    """Raised when a display name is already mapped to a live registry entry."""

    pass


class IndexOutOfBoundsError(PollAgentError, IndexError):
    pass


class AlreadyFulfilledError(PollAgentError):
    """
    Raised on a second fulfilment attempt for the same pending request.

    This signals an integration bug in a responder; it is not expected in
    normal operation.
    """

    pass


class IdentityExhaustedError(PollAgentError):
    """Raised when an identity allocator's counter would overflow. Always fatal."""

    pass


class RunnerClosedError(PollAgentError):
    """Raised when a closed runner is used."""

    pass


class DriverExhaustedError(PollAgentError):
    """Raised when a polling driver gives up before a run completes."""

    pass
