from pathlib import Path

from loguru import logger
from openpyxl import load_workbook

from logger import CATCH_LOG_HEADER, ExcelCatchLogger, RunLogger
from models.catch import Catch

from conftest import make_catch


def _catch(index, **fields):
    return Catch.from_new(f"catch-{index}", make_catch(minutes=index, **fields))


def test_logger_append_and_cancel(tmp_path):
    log_path = tmp_path / "catches" / "test_catches.xlsx"
    xl = ExcelCatchLogger(str(log_path))
    xl.log_catch(_catch(1, length_cm=27.5, weight_kg=0.4, grid_reference="15217"), "Shad")
    xl.log_catch(_catch(2, length_cm=30.0, session_id=None))

    wb = load_workbook(log_path)
    ws = wb.active
    assert ws.max_row == 3  # header + 2 rows
    assert [c.value for c in ws[1]] == CATCH_LOG_HEADER

    ok = xl.cancel_last()
    assert ok
    wb = load_workbook(log_path)
    ws = wb.active
    assert ws.max_row == 2  # header + 1 row


def test_cancel_on_empty_log(tmp_path):
    xl = ExcelCatchLogger(str(tmp_path / "empty.xlsx"))
    assert xl.cancel_last() is False


def test_read_rows(tmp_path):
    xl = ExcelCatchLogger(str(tmp_path / "catches.xlsx"))
    xl.log_catch(_catch(5, weight_kg=1.5, grid_reference="15217", released=True), "Geelbek")

    (row,) = xl.read_rows()
    assert row["Catch ID"] == "catch-5"
    assert row["Species"] == "Geelbek"
    assert row["Weight (kg)"] == 1.5
    assert row["Grid"] == "15217"
    assert row["Released"] == "yes"
    assert row["Time"] == "06:05:00"


def test_read_rows_missing_file(tmp_path):
    assert ExcelCatchLogger(str(tmp_path / "none.xlsx")).read_rows() == []


def test_run_logger_mirrors_loguru(tmp_path):
    run_logger = RunLogger(str(tmp_path / "runs"))
    logger.info("[session] started s-1")
    run_logger.log_kv("CONFIG", {"settle_attempts": 1})
    run_logger.close()
    run_logger.close()

    text = Path(run_logger.log_path).read_text(encoding="utf-8")
    assert "=== RUN START ===" in text
    assert "[session] started s-1" in text
    assert '"settle_attempts": 1' in text
    assert text.count("=== RUN END ===") == 1

    logger.info("after close")
    assert "after close" not in Path(run_logger.log_path).read_text(encoding="utf-8")


def test_run_logger_errors_after_close_still_reach_file(tmp_path):
    run_logger = RunLogger(str(tmp_path / "runs"))
    run_logger.close()

    run_logger.log_error("Uncaught exception:\nTraceback {with braces}")

    text = Path(run_logger.log_path).read_text(encoding="utf-8")
    assert "ERROR: Uncaught exception:" in text
    assert "{with braces}" in text
