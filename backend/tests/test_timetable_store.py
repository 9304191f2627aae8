"""Tests for TimetableStore against a fake async session factory."""

import asyncio
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from app.core.schedule_matcher import BusEntry
from app.core.timetable_store import RouteEndpoints, TimetableStore


class FakeResult:
    def __init__(self, value) -> None:
        self.value = value

    def scalar_one_or_none(self):
        return self.value

    def scalars(self):
        return self

    def first(self):
        return self.value


class FakeSession:
    def __init__(self, factory: "FakeSessionFactory") -> None:
        self.factory = factory

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc) -> bool:
        return False

    async def execute(self, statement):
        self.factory.statements.append(statement)
        if self.factory.delay:
            await asyncio.sleep(self.factory.delay)
        if self.factory.error is not None:
            raise self.factory.error
        return FakeResult(self.factory.value)


class FakeSessionFactory:
    """Stands in for ``async_sessionmaker``: every call opens a FakeSession."""

    def __init__(self, value=None, delay: float = 0, error: Exception | None = None) -> None:
        self.value = value
        self.delay = delay
        self.error = error
        self.statements = []

    def __call__(self) -> FakeSession:
        return FakeSession(self)


def make_schedule():
    return SimpleNamespace(
        halt_key="wakwella junction",
        display_name="Wakwella Junction",
        entries=[
            SimpleNamespace(bus_number="350", expected_time="07:00"),
            SimpleNamespace(bus_number="12", expected_time="08:10"),
        ],
    )


def bound_values(statement) -> list:
    return list(statement.compile().params.values())


@pytest.mark.asyncio
async def test_lookup_uses_normalized_key():
    factory = FakeSessionFactory(value=make_schedule())
    store = TimetableStore(factory, timeout=1.0)
    entries = await store.lookup("  Wakwella   JUNCTION ")
    assert entries == [BusEntry("350", "07:00"), BusEntry("12", "08:10")]
    [statement] = factory.statements
    assert bound_values(statement) == ["wakwella junction"]


@pytest.mark.asyncio
async def test_lookup_unknown_halt_returns_none():
    store = TimetableStore(FakeSessionFactory(value=None), timeout=1.0)
    assert await store.lookup("Nowhere") is None


@pytest.mark.asyncio
async def test_lookup_blank_name_skips_query():
    factory = FakeSessionFactory(value=make_schedule())
    store = TimetableStore(factory, timeout=1.0)
    assert await store.lookup("   ") is None
    assert factory.statements == []


@pytest.mark.asyncio
async def test_lookup_timeout_returns_none():
    store = TimetableStore(FakeSessionFactory(value=make_schedule(), delay=0.5), timeout=0.05)
    assert await store.lookup("Wakwella Junction") is None


@pytest.mark.asyncio
async def test_lookup_database_error_returns_none():
    error = OperationalError("SELECT 1", {}, ConnectionRefusedError("db down"))
    store = TimetableStore(FakeSessionFactory(error=error), timeout=1.0)
    assert await store.lookup("Wakwella Junction") is None


@pytest.mark.asyncio
async def test_route_endpoints():
    route = SimpleNamespace(route_no="2", starting_halt="Matara", ending_halt="Galle")
    factory = FakeSessionFactory(value=route)
    store = TimetableStore(factory, timeout=1.0)
    assert await store.route_endpoints("12") == RouteEndpoints("2", "Matara", "Galle")
    assert "12" in bound_values(factory.statements[0])


@pytest.mark.asyncio
async def test_route_endpoints_unknown_bus():
    store = TimetableStore(FakeSessionFactory(value=None), timeout=1.0)
    assert await store.route_endpoints("999") is None


@pytest.mark.asyncio
async def test_route_endpoints_failure_returns_none():
    store = TimetableStore(FakeSessionFactory(error=RuntimeError("pool closed")), timeout=1.0)
    assert await store.route_endpoints("12") is None


@pytest.mark.asyncio
async def test_route_endpoints_timeout_returns_none():
    store = TimetableStore(FakeSessionFactory(delay=0.5), timeout=0.05)
    assert await store.route_endpoints("12") is None
