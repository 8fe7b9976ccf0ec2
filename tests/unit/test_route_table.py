"""
Unit tests for the route table.
"""

import pytest

from httprouter.errors import RouteTableFrozenError
from httprouter.routing.matcher import PathPattern, RouterMethod
from httprouter.routing.table import ActionKind, RouteEntry, RouteTable


def dummy_action(request, response, next):
    next()


def entry(path=None, method=RouterMethod.GET, kind=ActionKind.HANDLER) -> RouteEntry:
    pattern = PathPattern.compile(path) if path is not None else None
    return RouteEntry(method, pattern, dummy_action, kind)


class TestRouteTable:
    """Tests for RouteTable."""

    def test_starts_empty(self):
        """Test a new table has no entries."""
        table = RouteTable()
        assert len(table) == 0
        assert table.entries() == ()

    def test_preserves_registration_order(self):
        """Test entries come back in the order they were registered."""
        table = RouteTable()
        paths = ["/c", "/a", "/b", "/a"]
        for path in paths:
            table.register(entry(path))

        assert [e.path for e in table.entries()] == paths

    def test_duplicates_are_kept(self):
        """Test identical entries are not merged."""
        table = RouteTable()
        table.register(entry("/same"))
        table.register(entry("/same"))
        assert len(table) == 2

    def test_entries_is_a_snapshot(self):
        """Test a later registration does not change an earlier snapshot."""
        table = RouteTable()
        table.register(entry("/one"))
        snapshot = table.entries()
        table.register(entry("/two"))

        assert len(snapshot) == 1
        assert len(table.entries()) == 2

    def test_freeze_rejects_registration(self):
        """Test registering after freeze() raises."""
        table = RouteTable()
        table.register(entry("/"))
        table.freeze()

        assert table.frozen
        with pytest.raises(RouteTableFrozenError):
            table.register(entry("/late"))
        assert len(table) == 1


class TestRouteEntry:
    """Tests for RouteEntry."""

    def test_name_and_path(self):
        """Test display helpers."""
        e = entry("/users/:id")
        assert e.name == "dummy_action"
        assert e.path == "/users/:id"
        assert entry().path is None

    def test_matches_delegates(self):
        """Test matching binds parameters."""
        assert entry("/users/:id").matches("GET", "/users/3") == {"id": "3"}
        assert entry("/users/:id").matches("POST", "/users/3") is None

    def test_describe(self):
        """Test the one-line description used by print_routes()."""
        line = entry("/x", kind=ActionKind.MIDDLEWARE, method=RouterMethod.ALL).describe()
        assert "ALL" in line
        assert "/x" in line
        assert "middleware" in line
        assert "dummy_action" in line
