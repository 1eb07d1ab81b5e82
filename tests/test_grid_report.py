"""Tests for the grid performance report."""
import pandas as pd
import pytest
from openpyxl import Workbook

from core.exceptions import FishLogException, ValidationError
from logger import ExcelCatchLogger
from models.catch import Catch
from reports import GridReportGenerator

from conftest import make_catch


@pytest.fixture
def catch_log(tmp_path):
    path = tmp_path / "catches.xlsx"
    xl = ExcelCatchLogger(str(path))
    rows = [
        (1, dict(weight_kg=1.0, grid_reference="15217", session_id="A"), "Geelbek"),
        (2, dict(weight_kg=2.0, grid_reference="15217", session_id="A"), "Geelbek"),
        (3, dict(weight_kg=1.5, grid_reference="15217", session_id="B"), "Kob"),
        (4, dict(weight_kg=0.7, grid_reference="01234"), "Shad"),
        (5, dict(weight_kg=9.0), "Shad"),
    ]
    for index, fields, species in rows:
        xl.log_catch(Catch.from_new(f"c{index}", make_catch(minutes=index, **fields)), species)
    return path


def test_generate_report(catch_log):
    # Act
    report = GridReportGenerator(catch_log).generate_report()

    # Assert
    stats = report["grid_statistics"]
    assert [s.grid_reference for s in stats] == ["15217", "01234"]
    top = stats[0]
    assert top.total_catches == 3
    assert top.avg_weight == pytest.approx(1.5)
    assert top.cpue == pytest.approx(1.5)
    assert stats[1].session_count == 0
    assert stats[1].cpue == 1.0
    assert report["metadata"]["total_catches"] == 5
    assert report["metadata"]["grid_catches"] == 4

    table = report["grid_table"]
    assert list(table["Grid"]) == ["15217", "01234"]
    assert list(table["Catches"]) == [3, 1]

    species = report["species_summary"]
    assert list(species["Species"]) == ["Geelbek", "Kob", "Shad"]
    assert list(species["Catches"]) == [2, 1, 1]


def test_export_writes_both_sheets(catch_log, tmp_path):
    # Act
    report = GridReportGenerator(catch_log).generate_report(tmp_path / "out")

    # Assert
    exported = report["exported_file"]
    assert exported.exists()
    sheets = pd.read_excel(exported, sheet_name=None)
    assert set(sheets) == {"Grids", "Species"}
    assert len(sheets["Grids"]) == 2


def test_missing_log(tmp_path):
    with pytest.raises(FileNotFoundError):
        GridReportGenerator(tmp_path / "nothing.xlsx").load_data()


def test_empty_log(tmp_path):
    # Arrange
    path = tmp_path / "catches.xlsx"
    xl = ExcelCatchLogger(str(path))
    xl.log_catch(Catch.from_new("c1", make_catch(weight_kg=1.0)), "Shad")

    # Act
    report = GridReportGenerator(path).generate_report()

    # Assert
    assert report["grid_statistics"] == []
    assert report["grid_table"].empty
    assert report["species_summary"].empty


def test_log_without_grid_column(tmp_path):
    # Arrange
    path = tmp_path / "catches.xlsx"
    wb = Workbook()
    wb.active.append(["Date", "Time", "Species", "Weight (kg)"])
    wb.active.append(["2025-03-14", "06:10:00", "Shad", 0.7])
    wb.save(path)

    # Act / Assert
    with pytest.raises(ValidationError, match="Grid"):
        GridReportGenerator(path).load_data()


def test_corrupt_log(tmp_path):
    path = tmp_path / "catches.xlsx"
    path.write_bytes(b"not a workbook")
    with pytest.raises(FishLogException, match="Failed to read catch log"):
        GridReportGenerator(path).load_data()
