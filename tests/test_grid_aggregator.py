"""Tests for per-grid aggregation."""
import itertools

import pytest

from grid import aggregate_by_grid, is_valid_grid_reference, top_grid
from models.catch import Catch

from conftest import T0, make_catch


def _stored(index, **fields):
    return Catch.from_new(f"c{index}", make_catch(**fields))


@pytest.fixture
def grid_catches():
    return [
        _stored(1, minutes=10, weight_kg=1.0, grid_reference="15217", session_id="A"),
        _stored(2, minutes=30, weight_kg=2.0, grid_reference="15217", session_id="A", species_id="kob"),
        _stored(3, minutes=80, weight_kg=1.5, grid_reference="15217", session_id="B"),
    ]


class TestAggregateByGrid:
    def test_single_grid_statistics(self, grid_catches):
        # Act
        stats = aggregate_by_grid(grid_catches)

        # Assert
        assert len(stats) == 1
        grid = stats[0]
        assert grid.grid_reference == "15217"
        assert grid.total_catches == 3
        assert grid.total_weight == pytest.approx(4.5)
        assert grid.avg_weight == pytest.approx(1.5)
        assert grid.session_count == 2
        assert grid.cpue == pytest.approx(1.5)
        assert grid.species_count == 2
        assert grid.first_catch.minute == 10
        assert grid.last_catch == grid_catches[2].caught_at

    def test_permutation_invariant(self, grid_catches):
        expected = aggregate_by_grid(grid_catches)
        for permutation in itertools.permutations(grid_catches):
            assert aggregate_by_grid(list(permutation)) == expected

    def test_grid_without_sessions_counts_as_one_session(self):
        # Arrange
        catches = [_stored(i, grid_reference="20001", weight_kg=2.0) for i in range(4)]

        # Act
        (grid,) = aggregate_by_grid(catches)

        # Assert
        assert grid.session_count == 0
        assert grid.cpue == 4.0

    def test_catches_without_grid_are_ignored(self, grid_catches):
        # Arrange
        catches = grid_catches + [_stored(9, weight_kg=9.0)]

        # Act
        stats = aggregate_by_grid(catches)

        # Assert
        assert [s.total_catches for s in stats] == [3]

    def test_unknown_weights_count_towards_catches_only(self):
        # Arrange
        catches = [
            _stored(1, grid_reference="30000", weight_kg=3.0),
            _stored(2, grid_reference="30000"),
        ]

        # Act
        (grid,) = aggregate_by_grid(catches)

        # Assert
        assert grid.total_weight == 3.0
        assert grid.avg_weight == 1.5

    def test_sorted_by_descending_count(self, grid_catches):
        # Arrange
        catches = grid_catches + [
            _stored(4, grid_reference="99999"),
            _stored(5, grid_reference="11111"),
            _stored(6, grid_reference="11111"),
        ]

        # Act
        stats = aggregate_by_grid(catches)

        # Assert
        assert [s.grid_reference for s in stats] == ["15217", "11111", "99999"]
        assert top_grid(stats).grid_reference == "15217"

    def test_empty_snapshot(self):
        assert aggregate_by_grid([]) == []
        assert top_grid([]) is None


class TestGridReferences:
    @pytest.mark.parametrize("code", ["15217", "00001"])
    def test_valid(self, code):
        assert is_valid_grid_reference(code)

    @pytest.mark.parametrize("code", ["1521", "152177", "15a17", 15217, None])
    def test_invalid(self, code):
        assert not is_valid_grid_reference(code)

    def test_catch_rejects_bad_grid(self):
        from core.exceptions import ValidationError

        with pytest.raises(ValidationError):
            make_catch(grid_reference="1234")

    def test_blank_grid_means_none(self):
        assert make_catch(grid_reference="  ").grid_reference is None

    def test_catch_timestamps_follow_t0(self):
        assert make_catch(minutes=5).caught_at > T0
