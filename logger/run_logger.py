import json
import os
from datetime import datetime
from typing import Any, Optional

from loguru import logger as loguru_logger


class RunLogger:
    """Per-run log file for the fish log application.

    Mirrors every loguru message of the run into one file, so a single file
    holds the history of session starts, ends, settlements, and errors.
    """

    def __init__(self, log_dir: str = "logs/runs", auto_start: bool = True, level: str = "INFO"):
        """Initialize the run logger.

        Args:
            log_dir: Directory for run logs
            auto_start: Whether to write the start marker immediately
            level: Minimum level mirrored into the file
        """
        self.log_dir = log_dir
        os.makedirs(self.log_dir, exist_ok=True)

        # Filename uses minute_hour_day_month_year
        timestamp = datetime.now().strftime("%M_%H_%d_%m_%Y")
        self.log_path = os.path.join(self.log_dir, f"fishlog_run_{timestamp}.log")
        self.level = level

        self._sink_id: Optional[int] = None
        self.attach_loguru_sink()

        # Track state to avoid duplicate end entries
        self._ended: bool = False

        if auto_start:
            self.log("=== RUN START ===")

    # ---------- Wiring ----------
    def attach_loguru_sink(self) -> None:
        """Attach a loguru sink to mirror all loguru logs to the run file."""
        if self._sink_id is None:
            self._sink_id = loguru_logger.add(
                self.log_path,
                format="[{time:YYYY-MM-DD HH:mm:ss}] {level}: {message}",
                level=self.level,
                encoding="utf-8",
            )

    def detach_loguru_sink(self) -> None:
        if self._sink_id is not None:
            try:
                loguru_logger.remove(self._sink_id)
            except ValueError:
                pass
            finally:
                self._sink_id = None

    # ---------- Public API ----------
    def log(self, message: str) -> None:
        """Log a message to the run file (and any other loguru sinks)."""
        loguru_logger.info(message)

    def log_kv(self, key: str, value: Any) -> None:
        """Log a key-value pair (e.g., configuration)."""
        try:
            value_str = json.dumps(value, indent=2, default=str) if isinstance(value, (dict, list)) else str(value)
        except (TypeError, ValueError):
            value_str = str(value)
        self.log(f"{key}: {value_str}")

    def log_error(self, message: str) -> None:
        """Log an error; written straight to the file once the sink is detached."""
        loguru_logger.error("{}", message)
        if self._sink_id is None:
            stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(f"[{stamp}] ERROR: {message}\n")

    def log_end(self) -> None:
        """Mark run end (idempotent)."""
        if not self._ended:
            self._ended = True
            self.log("=== RUN END ===")
            self.detach_loguru_sink()

    def close(self) -> None:
        self.log_end()
