"""Tests for the in-memory session registry."""

from __future__ import annotations

import pytest

from puzzle_svc.errors import SessionNotFoundError
from puzzle_svc.registry import SessionRegistry

from .conftest import ADMIN


def test_create_assigns_short_hex_ids(registry):
    ids = {registry.create(ADMIN, 1).id for _ in range(20)}
    assert len(ids) == 20
    for sid in ids:
        assert len(sid) == 6
        int(sid, 16)
    assert len(registry) == 20


def test_sessions_share_the_registry_clock(registry, clock):
    s = registry.create(ADMIN, 2)
    assert s.total_puzzles == 2
    assert s._clock is clock


def test_get_and_remove(registry):
    s = registry.create(ADMIN, 1)
    assert registry.get(s.id) is s
    assert s.id in registry
    assert registry.remove(s.id) is s
    assert s.id not in registry
    with pytest.raises(SessionNotFoundError) as exc:
        registry.get(s.id)
    assert exc.value.code == "not_found"
    with pytest.raises(SessionNotFoundError):
        registry.remove(s.id)


def test_sessions_for_connection(registry):
    a = registry.create(ADMIN, 1)
    b = registry.create("other-admin", 1)
    b.join("p1", "alice")
    assert registry.sessions_for(ADMIN) == [a]
    assert registry.sessions_for("p1") == [b]
    assert registry.sessions_for("nobody") == []
    assert list(registry) == [a, b]


def test_independent_registries():
    one, two = SessionRegistry(), SessionRegistry()
    s = one.create(ADMIN, 1)
    assert s.id not in two
