"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Telemetry sinks for run, registry, guardrail and handoff notifications.

The default sink is a no-op. `InMemoryTelemetrySink` keeps everything for
tests and debugging. `OpenTelemetrySink` can be used when `opentelemetry-api`
and `opentelemetry-sdk` are installed (`pip install pollagent[otel]`).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from .types import JSONValue, to_json_value


@dataclass(frozen=True, slots=True)
class TelemetryEvent:
    """
    Point-in-time notification.

    Attributes:
        name: Event name (for example `step.completed`).
        timestamp_ms: Epoch milliseconds at emission time.
        attributes: JSON-safe event attributes.
    """

    name: str
    timestamp_ms: int
    attributes: dict[str, JSONValue] = field(default_factory=dict)


class TelemetrySink(Protocol):
    """Protocol implemented by telemetry backends."""

    def record_event(self, event: TelemetryEvent) -> None:
        """
        Record a single event.

        Args:
            event: Event payload to emit.
        """
        ...

    def increment_counter(
        self,
        name: str,
        value: int = 1,
        *,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None:
        """
        Increment a named counter.

        Args:
            name: Counter name.
            value: Increment value.
            attributes: Optional counter attributes.
        """
        ...


@dataclass(slots=True)
class NullTelemetrySink:
    """No-op telemetry sink used as safe default."""

    def record_event(self, event: TelemetryEvent) -> None:
        _ = event
        return None

    def increment_counter(
        self,
        name: str,
        value: int = 1,
        *,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None:
        _ = name
        _ = value
        _ = attributes
        return None


@dataclass(slots=True)
class InMemoryTelemetrySink:
    """Test/debug telemetry sink that stores emitted events and counters."""

    _events: list[TelemetryEvent] = field(default_factory=list)
    _counters: dict[str, int] = field(default_factory=dict)

    def record_event(self, event: TelemetryEvent) -> None:
        self._events.append(event)

    def increment_counter(
        self,
        name: str,
        value: int = 1,
        *,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None:
        _ = attributes
        self._counters[name] = self._counters.get(name, 0) + int(value)

    def events(self, name: str | None = None) -> list[TelemetryEvent]:
        """
        Return captured events, optionally filtered by name.

        Args:
            name: Exact event name to keep.

        Returns:
            Snapshot of captured events in emission order.
        """
        if name is None:
            return list(self._events)
        return [event for event in self._events if event.name == name]

    def event_names(self) -> list[str]:
        return [event.name for event in self._events]

    def counter(self, name: str) -> int:
        return self._counters.get(name, 0)


@dataclass(slots=True)
class OpenTelemetrySink:
    """
    OpenTelemetry sink using the global meter provider.

    Every event increments the `pollagent.events` counter tagged with the
    event name. Imports are lazy so pollagent runs without OTel installed.
    """

    meter_name: str = "pollagent.core"

    _meter: Any = field(default=None, init=False, repr=False)
    _counters: dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    def _ensure_meter(self) -> None:
        if self._meter is not None:
            return
        try:
            from opentelemetry import metrics
        except ImportError as e:
            raise RuntimeError(
                "OpenTelemetrySink requires 'opentelemetry-api'/'opentelemetry-sdk'"
            ) from e
        self._meter = metrics.get_meter(self.meter_name)

    def record_event(self, event: TelemetryEvent) -> None:
        self.increment_counter(
            "pollagent.events",
            value=1,
            attributes={"event_name": event.name, **event.attributes},
        )

    def increment_counter(
        self,
        name: str,
        value: int = 1,
        *,
        attributes: dict[str, JSONValue] | None = None,
    ) -> None:
        self._ensure_meter()
        counter = self._counters.get(name)
        if counter is None:
            counter = self._meter.create_counter(name)
            self._counters[name] = counter
        counter.add(int(value), attributes=_otel_attributes(attributes))


def now_ms() -> int:
    """Return current Unix epoch time in milliseconds."""
    return int(time.time() * 1000)


def emit(sink: TelemetrySink, name: str, /, **attributes: Any) -> None:
    """
    Record a named event and bump its counter on `sink`.

    Args:
        sink: Destination sink.
        name: Event name.
        **attributes: Event attributes; converted to JSON-safe values.
    """
    attrs = {key: to_json_value(value) for key, value in attributes.items()}
    sink.record_event(TelemetryEvent(name=name, timestamp_ms=now_ms(), attributes=attrs))
    sink.increment_counter(name)


def _otel_attributes(value: dict[str, JSONValue] | None) -> dict[str, Any]:
    """Flatten JSON attributes into OpenTelemetry-compatible primitives."""
    attrs: dict[str, Any] = {}
    for key, item in (value or {}).items():
        if item is None:
            continue
        if isinstance(item, (str, int, float, bool)):
            attrs[str(key)] = item
        elif isinstance(item, list):
            attrs[str(key)] = tuple(str(v) for v in item)
        else:
            attrs[str(key)] = str(item)
    return attrs
