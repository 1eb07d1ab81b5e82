"""
Grid Performance Report Generator

Builds per-grid catch statistics from the Excel catch log
(logs/catches/catches.xlsx) and exports them, together with a per-species
summary, to an xlsx workbook.
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from loguru import logger

from core.error_handler import log_execution_time
from core.exceptions import FishLogException, ValidationError
from grid.aggregator import GridStatistic, aggregate_by_grid
from models.catch import Catch

GRID_COLUMNS = {
    "grid_reference": "Grid",
    "total_catches": "Catches",
    "total_weight": "Total Weight (kg)",
    "species_count": "Species",
    "session_count": "Sessions",
    "first_catch": "First Catch",
    "last_catch": "Last Catch",
    "avg_weight": "Avg Weight (kg)",
    "cpue": "Catches / Session",
}

REQUIRED_COLUMNS = ["Date", "Time", "Species", "Weight (kg)", "Grid"]

LOCAL_OWNER = "local"


class GridReportGenerator:
    def __init__(self, data_path: Optional[Path] = None, owner_id: str = LOCAL_OWNER) -> None:
        self.data_path = Path(data_path) if data_path else Path("logs/catches/catches.xlsx")
        self.owner_id = owner_id

    # Data loading/cleaning
    def load_data(self) -> pd.DataFrame:
        if not self.data_path.exists():
            raise FileNotFoundError(f"Data file not found: {self.data_path}")
        try:
            df = pd.read_excel(
                self.data_path,
                dtype={"Grid": str, "Session ID": str, "Catch ID": str, "Species": str},
            )
        except Exception as e:
            raise FishLogException(f"Failed to read catch log {self.data_path}: {e}") from e
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValidationError(f"Missing required columns in {self.data_path.name}: {missing}")

        caught = pd.to_datetime(
            df["Date"].astype(str) + " " + df["Time"].astype(str), errors="coerce"
        )
        df = df[~caught.isna()].copy()
        df["Caught At"] = caught.loc[df.index]
        for column in ("Grid", "Session ID", "Catch ID", "Species"):
            if column in df.columns:
                df[column] = df[column].fillna("").astype(str).str.strip()
        df["Weight (kg)"] = pd.to_numeric(df["Weight (kg)"], errors="coerce")
        return df

    def to_catches(self, df: pd.DataFrame) -> List[Catch]:
        """Convert log rows into catch records, skipping rows that fail validation."""
        catches: List[Catch] = []
        for idx, row in df.iterrows():
            weight = row.get("Weight (kg)")
            try:
                catches.append(
                    Catch(
                        owner_id=self.owner_id,
                        species_id=row["Species"],
                        caught_at=row["Caught At"].to_pydatetime(),
                        weight_kg=None if pd.isna(weight) else float(weight),
                        grid_reference=row["Grid"] or None,
                        session_id=row.get("Session ID") or None,
                        id=row.get("Catch ID") or str(idx),
                    )
                )
            except ValidationError as e:
                logger.warning(f"[report] skipping catch log row {idx + 2}: {e}")
        return catches

    # Analytics
    def grid_table(self, stats: List[GridStatistic]) -> pd.DataFrame:
        if not stats:
            return pd.DataFrame(columns=list(GRID_COLUMNS.values()))
        df = pd.DataFrame([s.to_dict() for s in stats]).rename(columns=GRID_COLUMNS)
        return df.round({"Total Weight (kg)": 2, "Avg Weight (kg)": 2, "Catches / Session": 2})

    def species_summary(self, df: pd.DataFrame) -> pd.DataFrame:
        part = df[df["Grid"] != ""]
        if part.empty:
            return pd.DataFrame(columns=["Species", "Catches", "Grids", "Total Weight (kg)"])
        agg = part.groupby("Species").agg(
            **{
                "Catches": ("Grid", "count"),
                "Grids": ("Grid", "nunique"),
                "Total Weight (kg)": ("Weight (kg)", "sum"),
            }
        )
        return agg.reset_index().sort_values(["Catches", "Species"], ascending=[False, True]).round(2)

    # Orchestration
    @log_execution_time()
    def generate_report(self, output_dir: Optional[Path] = None) -> Dict:
        """Aggregate the catch log; export an xlsx when ``output_dir`` is given."""
        df = self.load_data()
        stats = aggregate_by_grid(self.to_catches(df))
        report_data: Dict = {
            "grid_statistics": stats,
            "grid_table": self.grid_table(stats),
            "species_summary": self.species_summary(df),
            "metadata": {
                "generation_date": datetime.now(),
                "total_catches": int(len(df)),
                "grid_catches": int(sum(s.total_catches for s in stats)),
                "grid_count": len(stats),
            },
        }
        if output_dir is not None:
            report_data["exported_file"] = self.export_xlsx(report_data, Path(output_dir))
        return report_data

    def export_xlsx(self, report_data: Dict, output_dir: Path) -> Path:
        output_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        out_path = output_dir / f"grid_report_{stamp}.xlsx"
        try:
            with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
                report_data["grid_table"].to_excel(writer, sheet_name="Grids", index=False)
                report_data["species_summary"].to_excel(writer, sheet_name="Species", index=False)
        except Exception as e:
            raise FishLogException(f"Failed to export grid report: {e}") from e
        logger.info(f"[report] grid report written to {out_path}")
        return out_path
