"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Generic owner-gated registry used for tools, agents and guardrails.

Ids are an append-only arena: unregistering nulls the handle and frees the
display name, but the id stays enumerable forever and is never reused.
"""

from __future__ import annotations

from typing import Generic, Iterator, Protocol, TypeVar

from .auth import Principal, require_principal
from .errors import DuplicateNameError, IndexOutOfBoundsError, NotFoundError
from .ids import IdentityAllocator
from .telemetry import NullTelemetrySink, TelemetrySink, emit
from .types import JSONValue


class NamedHandle(Protocol):
    @property
    def display_name(self) -> str: ...


HandleT = TypeVar("HandleT", bound=NamedHandle)


class Registry(Generic[HandleT]):
    """
    Name → id → handle lookup with uniqueness and existence invariants.

    Subclasses set `kind` and may override `metadata()` to attach capability
    details to registration notifications.
    """

    kind: str = "entry"

    def __init__(
        self,
        *,
        owner: Principal,
        ids: IdentityAllocator,
        telemetry: TelemetrySink | None = None,
    ) -> None:
        self._owner = owner
        self._ids = ids
        self._telemetry = telemetry or NullTelemetrySink()
        self._order: list[str] = []
        self._handles: dict[str, HandleT | None] = {}
        self._by_name: dict[str, str] = {}
        self._registered_names: dict[str, str] = {}

    @property
    def owner(self) -> Principal:
        return self._owner

    # ''''''''''''''''''''''''''''''''''''''
    # Mutation (owner only)
    # ''''''''''''''''''''''''''''''''''''''

    def register(self, handle: HandleT, *, caller: Principal | None) -> str:
        """
        Register a handle under its display name.

        Returns:
            The new permanent id.

        Raises:
            UnauthorizedError: If `caller` is not the registry owner.
            DuplicateNameError: If the name is mapped to a live entry.
        """
        require_principal(caller, [self._owner], action=f"register {self.kind}")
        name = handle.display_name
        if not name:
            raise ValueError(f"{self.kind} display_name must be a non-empty string")
        if name in self._by_name:
            raise DuplicateNameError(f"{self.kind} already registered: {name}")

        entry_id = self._ids.next(
            f"{self.kind}:{type(handle).__name__}:{id(handle)}:{len(self._order)}",
            requester=self._owner.name,
            prefix=self.kind,
        )
        self._order.append(entry_id)
        self._handles[entry_id] = handle
        self._by_name[name] = entry_id
        self._registered_names[entry_id] = name
        emit(
            self._telemetry,
            "registry.registered",
            kind=self.kind,
            id=entry_id,
            name=name,
            metadata=self.metadata(handle),
        )
        return entry_id

    def unregister(self, entry_id: str, *, caller: Principal | None) -> None:
        """
        Null the handle for `entry_id` and free the name it was registered under.

        Raises:
            UnauthorizedError: If `caller` is not the registry owner.
            NotFoundError: If the id is unknown or already unregistered.
        """
        require_principal(caller, [self._owner], action=f"unregister {self.kind}")
        self.resolve(entry_id)
        # Registered name, not the handle's current display_name.
        name = self._registered_names[entry_id]
        if self._by_name.get(name) == entry_id:
            del self._by_name[name]
        self._handles[entry_id] = None
        emit(self._telemetry, "registry.unregistered", kind=self.kind, id=entry_id, name=name)

    # ''''''''''''''''''''''''''''''''''''''
    # Reads
    # ''''''''''''''''''''''''''''''''''''''

    def resolve(self, entry_id: str) -> HandleT:
        handle = self._handles.get(entry_id)
        if handle is None:
            raise NotFoundError(f"Unknown {self.kind}: {entry_id}")
        return handle

    def resolve_by_name(self, name: str) -> str:
        try:
            return self._by_name[name]
        except KeyError as e:
            raise NotFoundError(f"Unknown {self.kind} name: {name}") from e

    def count(self) -> int:
        """Number of ids ever issued, including unregistered ones."""
        return len(self._order)

    def id_at(self, index: int) -> str:
        if index < 0 or index >= len(self._order):
            raise IndexOutOfBoundsError(f"{self.kind} index {index} out of range (count={len(self._order)})")
        return self._order[index]

    def is_live(self, entry_id: str) -> bool:
        return self._handles.get(entry_id) is not None

    def ids(self) -> list[str]:
        return list(self._order)

    def live_items(self) -> list[tuple[str, HandleT]]:
        """Live `(id, handle)` pairs in registration order."""
        out: list[tuple[str, HandleT]] = []
        for entry_id in self._order:
            handle = self._handles[entry_id]
            if handle is not None:
                out.append((entry_id, handle))
        return out

    def names(self) -> list[str]:
        """Registered names of live entries, in registration order."""
        return [self._registered_names[entry_id] for entry_id, _ in self.live_items()]

    def metadata(self, handle: HandleT) -> dict[str, JSONValue]:
        _ = handle
        return {}

    def __iter__(self) -> Iterator[HandleT]:
        return iter([handle for _, handle in self.live_items()])

    def __len__(self) -> int:
        return len(self._by_name)
