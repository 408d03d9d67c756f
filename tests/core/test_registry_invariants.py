from __future__ import annotations

from dataclasses import dataclass

import pytest

from pollagent.core import (
    DuplicateNameError,
    IdentityAllocator,
    IndexOutOfBoundsError,
    InMemoryTelemetrySink,
    NotFoundError,
    Principal,
    Registry,
    UnauthorizedError,
)


@dataclass(eq=False)
class _Handle:
    name: str

    @property
    def display_name(self) -> str:
        return self.name


def _registry(telemetry=None) -> tuple[Registry[_Handle], Principal]:
    owner = Principal(name="owner")
    return Registry(owner=owner, ids=IdentityAllocator(), telemetry=telemetry), owner


def test_register_resolve_and_enumerate():
    registry, owner = _registry()
    alpha = _Handle("alpha")
    beta = _Handle("beta")
    alpha_id = registry.register(alpha, caller=owner)
    beta_id = registry.register(beta, caller=owner)

    assert alpha_id.startswith("entry_")
    assert registry.resolve(alpha_id) is alpha
    assert registry.resolve_by_name("beta") == beta_id
    assert registry.count() == 2
    assert registry.id_at(0) == alpha_id
    assert registry.id_at(1) == beta_id
    assert list(registry) == [alpha, beta]
    assert registry.names() == ["alpha", "beta"]
    assert len(registry) == 2


def test_live_names_are_unique():
    registry, owner = _registry()
    registry.register(_Handle("alpha"), caller=owner)

    with pytest.raises(DuplicateNameError):
        registry.register(_Handle("alpha"), caller=owner)
    assert registry.count() == 1


def test_unregister_frees_name_but_never_reuses_ids():
    registry, owner = _registry()
    old_id = registry.register(_Handle("alpha"), caller=owner)
    registry.unregister(old_id, caller=owner)

    assert registry.is_live(old_id) is False
    with pytest.raises(NotFoundError):
        registry.resolve(old_id)
    with pytest.raises(NotFoundError):
        registry.resolve_by_name("alpha")

    new_id = registry.register(_Handle("alpha"), caller=owner)
    assert new_id != old_id
    assert registry.count() == 2
    assert registry.ids() == [old_id, new_id]
    assert registry.id_at(0) == old_id
    assert [entry_id for entry_id, _ in registry.live_items()] == [new_id]


def test_unregister_twice_raises_not_found():
    registry, owner = _registry()
    entry_id = registry.register(_Handle("alpha"), caller=owner)
    registry.unregister(entry_id, caller=owner)

    with pytest.raises(NotFoundError):
        registry.unregister(entry_id, caller=owner)


def test_mutations_require_owner():
    registry, owner = _registry()
    entry_id = registry.register(_Handle("alpha"), caller=owner)
    stranger = Principal(name="owner")

    with pytest.raises(UnauthorizedError):
        registry.register(_Handle("beta"), caller=stranger)
    with pytest.raises(UnauthorizedError):
        registry.unregister(entry_id, caller=stranger)
    with pytest.raises(UnauthorizedError):
        registry.register(_Handle("beta"), caller=None)
    assert registry.is_live(entry_id)
    assert registry.count() == 1


def test_id_at_out_of_range():
    registry, owner = _registry()
    registry.register(_Handle("alpha"), caller=owner)

    with pytest.raises(IndexOutOfBoundsError):
        registry.id_at(1)
    with pytest.raises(IndexError):
        registry.id_at(-1)


def test_empty_display_name_is_rejected():
    registry, owner = _registry()

    with pytest.raises(ValueError):
        registry.register(_Handle(""), caller=owner)


def test_registry_notifications():
    sink = InMemoryTelemetrySink()
    registry, owner = _registry(sink)
    entry_id = registry.register(_Handle("alpha"), caller=owner)
    registry.unregister(entry_id, caller=owner)

    registered = sink.events("registry.registered")[0]
    assert registered.attributes["id"] == entry_id
    assert registered.attributes["name"] == "alpha"
    assert registered.attributes["kind"] == "entry"
    assert registered.attributes["metadata"] == {}
    assert sink.events("registry.unregistered")[0].attributes["id"] == entry_id


def test_unregister_frees_the_registered_name_after_a_rename():
    registry, owner = _registry()
    handle = _Handle("alpha")
    entry_id = registry.register(handle, caller=owner)
    handle.name = "renamed"

    assert registry.names() == ["alpha"]
    registry.unregister(entry_id, caller=owner)

    with pytest.raises(NotFoundError):
        registry.resolve_by_name("alpha")
    replacement_id = registry.register(_Handle("alpha"), caller=owner)
    assert registry.resolve_by_name("alpha") == replacement_id
