"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Core primitives: identities, principals, pending requests, registries,
telemetry and configuration. The runner and drivers are loaded lazily because
they depend on the agent, tool and guardrail layers built on these primitives.
"""

from .auth import Principal, require_principal
from .config import DEFAULT_FOLLOW_UP_TEMPLATE, RunConfig, RunnerConfig, ToolUseBehavior
from .errors import (
    AlreadyFulfilledError,
    DriverExhaustedError,
    DuplicateNameError,
    IdentityExhaustedError,
    IndexOutOfBoundsError,
    NotFoundError,
    PollAgentError,
    RunnerClosedError,
    UnauthorizedError,
)
from .ids import IdentityAllocator
from .pending import PendingPoll, PendingRequest, PendingRequestTable, RequestKind
from .registry import NamedHandle, Registry
from .telemetry import (
    InMemoryTelemetrySink,
    NullTelemetrySink,
    OpenTelemetrySink,
    TelemetryEvent,
    TelemetrySink,
    emit,
    now_ms,
)
from .types import JSONObject, JSONPrimitive, JSONValue, to_json_value


def __getattr__(name: str):
    if name in ("Runner", "RunResult"):
        from . import runner

        return getattr(runner, name)
    if name in ("drive", "drive_many"):
        from . import driver

        return getattr(driver, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "Principal",
    "require_principal",
    "RunnerConfig",
    "RunConfig",
    "ToolUseBehavior",
    "DEFAULT_FOLLOW_UP_TEMPLATE",
    "PollAgentError",
    "NotFoundError",
    "UnauthorizedError",
    "DuplicateNameError",
    "IndexOutOfBoundsError",
    "AlreadyFulfilledError",
    "IdentityExhaustedError",
    "RunnerClosedError",
    "DriverExhaustedError",
    "IdentityAllocator",
    "PendingRequest",
    "PendingPoll",
    "PendingRequestTable",
    "RequestKind",
    "NamedHandle",
    "Registry",
    "TelemetryEvent",
    "TelemetrySink",
    "NullTelemetrySink",
    "InMemoryTelemetrySink",
    "OpenTelemetrySink",
    "emit",
    "now_ms",
    "JSONPrimitive",
    "JSONValue",
    "JSONObject",
    "to_json_value",
    "Runner",
    "RunResult",
    "drive",
    "drive_many",
]
