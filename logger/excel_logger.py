from __future__ import annotations

from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional

from core.exceptions import LoggingError
from models.catch import Catch

CATCH_LOG_HEADER = [
    "Date",
    "Time",
    "Catch ID",
    "Session ID",
    "Species",
    "Length (cm)",
    "Length Type",
    "Weight (kg)",
    "Weight Source",
    "Grid",
    "Released",
]


class ExcelCatchLogger:
    """Mirrors logged catches into an Excel workbook, one row per catch."""

    def __init__(self, file_path: Optional[str] = None) -> None:
        default_path = Path("logs/catches/") / "catches.xlsx"
        self.file_path = Path(file_path).absolute() if file_path else default_path.absolute()
        self.lock = Lock()

    def _ensure_workbook(self) -> None:
        with self.lock:
            if not self.file_path.exists():
                self._create_new_workbook()

    def _create_new_workbook(self) -> None:
        """Create a new workbook with the catch log header.

        Raises:
            LoggingError: If workbook creation fails
        """
        from openpyxl import Workbook  # type: ignore

        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            wb = Workbook()
            ws = wb.active
            ws.title = "Catches"
            ws.append(CATCH_LOG_HEADER)
            wb.save(self.file_path)
        except Exception as e:
            raise LoggingError(f"Failed to create workbook: {e}") from e

    def log_catch(self, catch: Catch, species_name: Optional[str] = None) -> None:
        try:
            self._ensure_workbook()
            from openpyxl import load_workbook  # type: ignore

            caught = catch.caught_at
            with self.lock:
                wb = load_workbook(self.file_path)
                ws = wb.active
                ws.append([
                    caught.strftime("%Y-%m-%d"),
                    caught.strftime("%H:%M:%S"),
                    catch.id,
                    catch.session_id or "",
                    species_name or str(catch.species_id),
                    catch.length_cm,
                    catch.length_type.value,
                    catch.weight_kg,
                    catch.weight_source.value,
                    catch.grid_reference or "",
                    "yes" if catch.released else "no",
                ])
                wb.save(self.file_path)
        except LoggingError:
            raise
        except Exception as e:
            raise LoggingError(f"Failed to log catch: {e}") from e

    def cancel_last(self) -> bool:
        try:
            self._ensure_workbook()
            from openpyxl import load_workbook  # type: ignore

            with self.lock:
                wb = load_workbook(self.file_path)
                ws = wb.active
                if ws.max_row <= 1:
                    return False
                ws.delete_rows(ws.max_row, 1)
                wb.save(self.file_path)
                return True
        except Exception as e:
            raise LoggingError(f"Failed to cancel last entry: {e}") from e

    def read_rows(self) -> List[Dict[str, Any]]:
        """Return logged rows as dictionaries keyed by header names."""
        if not self.file_path.exists():
            return []
        try:
            from openpyxl import load_workbook  # type: ignore

            with self.lock:
                wb = load_workbook(self.file_path, read_only=True)
                ws = wb.active
                rows = list(ws.iter_rows(values_only=True))
                wb.close()
        except Exception as e:
            raise LoggingError(f"Failed to read catch log: {e}") from e
        if not rows:
            return []
        header = [str(h) for h in rows[0]]
        return [dict(zip(header, row)) for row in rows[1:]]
