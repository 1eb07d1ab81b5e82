"""Shared fixtures for the fish log test-suite."""
from datetime import datetime, timedelta, timezone

import pytest

from core.clock import FixedClock
from core.error_handler import RetryPolicy
from models.catch import NewCatch
from models.formula import WeightFormula
from sessions.manager import SessionLifecycleManager
from storage.memory import InMemoryStatsAggregator, InMemoryStore

T0 = datetime(2025, 3, 14, 6, 0, tzinfo=timezone.utc)

FORMULA_ROWS = [
    {"catalogue_name": "Geelbek (F)", "measure_type": "FL", "coefficient": 0.0108, "exponent": 3.05},
    {"catalogue_name": "Geelbek (M)", "measure_type": "FL", "coefficient": 0.0121, "exponent": 3.01},
    {"catalogue_name": "Shad", "measure_type": "FL", "coefficient": 0.015, "exponent": 3.0},
    {
        "catalogue_name": "Dusky Kob",
        "measure_type": "TL",
        "coefficient": 0.0000067,
        "exponent": 3.08,
        "formula_type": "mm",
    },
    {
        "catalogue_name": "Blue Stingray",
        "measure_type": "DW",
        "coefficient": 0.0000291,
        "exponent": 3.1,
        "result_unit": "kg",
    },
]


@pytest.fixture
def clock():
    return FixedClock(T0)


@pytest.fixture
def formulas():
    return [WeightFormula.from_row(row) for row in FORMULA_ROWS]


@pytest.fixture
def store(formulas):
    return InMemoryStore(formulas)


@pytest.fixture
def aggregator(store):
    return InMemoryStatsAggregator(store)


@pytest.fixture
def fast_policy():
    return RetryPolicy(max_attempts=1, initial_delay=0.01)


@pytest.fixture
def manager(store, aggregator, clock, fast_policy):
    return SessionLifecycleManager(
        "angler-1",
        store,
        aggregator,
        clock=clock,
        settle_policy=fast_policy,
        tick_interval=0.01,
    )


def make_catch(minutes=0, **overrides):
    """NewCatch for ``angler-1`` landed ``minutes`` after T0."""
    fields = {
        "owner_id": "angler-1",
        "species_id": "geelbek",
        "caught_at": T0 + timedelta(minutes=minutes),
    }
    fields.update(overrides)
    return NewCatch(**fields)
