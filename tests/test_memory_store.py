"""Tests for the in-memory store and statistics aggregator."""
import asyncio
from datetime import timedelta

import pytest

from core.exceptions import (
    AggregatorError,
    ForeignKeyError,
    SessionConflictError,
    SessionNotFoundError,
    ValidationError,
)
from models.formula import MeasureType
from storage.base import CatchFilter
from storage.memory import InMemoryStatsAggregator, InMemoryStore

from conftest import T0, make_catch


def _fields(minutes=0, **extra):
    fields = {"start_time": T0 + timedelta(minutes=minutes)}
    fields.update(extra)
    return fields


class TestSessions:
    @pytest.mark.asyncio
    async def test_create_and_fetch(self, store):
        # Act
        session = await store.create_session("angler-1", _fields(boat_name="Seeker", wind_direction="sw"))

        # Assert
        assert session.is_active
        assert session.details.boat_name == "Seeker"
        assert session.details.wind_direction == "SW"
        assert session.session_date == T0.date()
        assert await store.fetch_session(session.id) == session
        assert await store.fetch_active_session("angler-1") == session

    @pytest.mark.asyncio
    async def test_one_active_session_per_owner(self, store):
        # Arrange
        await store.create_session("angler-1", _fields())

        # Assert
        with pytest.raises(SessionConflictError):
            await store.create_session("angler-1", _fields(5))

    @pytest.mark.asyncio
    async def test_concurrent_creates_yield_one_session(self, store):
        # Act
        results = await asyncio.gather(
            *(store.create_session("angler-1", _fields(i)) for i in range(5)),
            return_exceptions=True,
        )

        # Assert
        created = [r for r in results if not isinstance(r, Exception)]
        assert len(created) == 1
        assert all(isinstance(r, SessionConflictError) for r in results if isinstance(r, Exception))

    @pytest.mark.asyncio
    async def test_update_with_expected_active(self, store):
        # Arrange
        session = await store.create_session("angler-1", _fields())
        await store.update_session(session.id, {"is_active": False}, expected_active=True)

        # Assert
        with pytest.raises(SessionConflictError):
            await store.update_session(session.id, {"is_active": False}, expected_active=True)

    @pytest.mark.asyncio
    async def test_update_unknown_session(self, store):
        with pytest.raises(SessionNotFoundError):
            await store.update_session("missing", {"is_active": False})

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, store):
        session = await store.create_session("angler-1", _fields())
        with pytest.raises(ValidationError):
            await store.update_session(session.id, {"colour": "blue"})

    @pytest.mark.asyncio
    async def test_fetch_sessions_newest_first(self, store):
        # Arrange
        first = await store.create_session("angler-1", _fields(0))
        await store.update_session(first.id, {"is_active": False})
        second = await store.create_session("angler-1", _fields(60))

        # Act
        sessions = await store.fetch_sessions("angler-1")

        # Assert
        assert [s.id for s in sessions] == [second.id, first.id]


class TestCatches:
    @pytest.mark.asyncio
    async def test_insert_with_unknown_session_violates_foreign_key(self, store):
        with pytest.raises(ForeignKeyError, match="foreign key"):
            await store.insert_catch(make_catch(session_id="gone"))

    @pytest.mark.asyncio
    async def test_fetch_catches_filters(self, store):
        # Arrange
        session = await store.create_session("angler-1", _fields())
        await store.insert_catch(make_catch(minutes=1, session_id=session.id, grid_reference="15217"))
        await store.insert_catch(make_catch(minutes=2))
        await store.insert_catch(make_catch(minutes=3, owner_id="angler-2", grid_reference="15217"))

        # Act
        everything = await store.fetch_catches("angler-1")
        linked = await store.fetch_catches("angler-1", CatchFilter(session_id=session.id))
        gridded = await store.fetch_catches("angler-1", CatchFilter(grid_only=True))
        recent = await store.fetch_catches("angler-1", CatchFilter(since=T0 + timedelta(minutes=2)))

        # Assert
        assert len(everything) == 2
        assert everything[0].caught_at > everything[1].caught_at
        assert len(linked) == 1
        assert len(gridded) == 1
        assert len(recent) == 1


class TestFormulas:
    @pytest.mark.asyncio
    async def test_exact_lookup(self, store):
        formula = await store.fetch_formula("Shad", "FL")
        assert formula.measure_type is MeasureType.FL
        assert await store.fetch_formula("Shad", "TL") is None

    @pytest.mark.asyncio
    async def test_any_measure_type_lookup(self, store):
        formula = await store.fetch_formula("Blue Stingray")
        assert formula.measure_type is MeasureType.DW

    def test_malformed_rows_skipped(self):
        # Arrange
        store = InMemoryStore()

        # Act
        loaded = store.load_formula_rows(
            [
                {"catalogue_name": "Shad", "measure_type": "FL", "coefficient": 0.0137, "exponent": 3},
                {"catalogue_name": "Broken", "measure_type": "FL", "coefficient": "n/a", "exponent": 3},
                {"catalogue_name": "Incomplete"},
            ]
        )

        # Assert
        assert loaded == 1


class TestStatsAggregator:
    @pytest.mark.asyncio
    async def test_aggregate_unknown_session(self, store):
        aggregator = InMemoryStatsAggregator(store)
        with pytest.raises(AggregatorError):
            await aggregator.aggregate("missing")

    @pytest.mark.asyncio
    async def test_aggregate_runs_in_background(self, store):
        # Arrange
        aggregator = InMemoryStatsAggregator(store, lag_seconds=0.05)
        session = await store.create_session("angler-1", _fields())
        await store.insert_catch(make_catch(minutes=5, weight_kg=1.25, session_id=session.id))
        await store.update_session(session.id, {"end_time": T0 + timedelta(minutes=60), "is_active": False})

        # Act
        await aggregator.aggregate(session.id)
        pending = aggregator.pending
        before = await store.fetch_session(session.id)
        await aggregator.drain()
        after = await store.fetch_session(session.id)

        # Assert
        assert pending == 1
        assert not before.is_settled
        assert after.is_settled
        assert after.total_catches == 1
        assert after.cpue_kg_per_hour == pytest.approx(1.25)

    @pytest.mark.asyncio
    async def test_aclose_cancels_pending(self, store):
        # Arrange
        aggregator = InMemoryStatsAggregator(store, lag_seconds=10.0)
        session = await store.create_session("angler-1", _fields())
        await aggregator.aggregate(session.id)

        # Act
        await aggregator.aclose()

        # Assert
        assert aggregator.pending == 0
        assert not (await store.fetch_session(session.id)).is_settled
