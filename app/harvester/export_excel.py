"""Excel export helpers for harvested listing files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import pandas as pd

from . import config
from .telemetry import prune_old_exports


def load_listings_frame(csv_path: Path) -> pd.DataFrame:
    """Read a harvested CSV with every cell kept as text."""

    return pd.read_csv(csv_path, dtype=str, keep_default_na=False)


def export_listings_to_excel(csv_path: Path, dest_path: Optional[str] = None) -> str:
    """Create an Excel workbook from a harvested listings CSV."""

    csv_path = Path(csv_path)
    if not csv_path.is_file():
        raise FileNotFoundError(f"No harvested file at {csv_path}")

    df = load_listings_frame(csv_path)
    if df.empty:
        df = pd.DataFrame([{"info": "No listings in file"}])

    with_mobile = df[df["Mobile"] != ""].copy() if "Mobile" in df.columns else pd.DataFrame()

    def safe_pivot(frame, by):
        if frame.empty or by not in frame.columns:
            return pd.DataFrame()
        return frame.groupby(by).size().reset_index(name="count").sort_values("count", ascending=False)

    summary_industry = safe_pivot(df, "Industry")
    summary_location = safe_pivot(df, "Location")

    os.makedirs(config.EXPORTS_DIR, exist_ok=True)
    if not dest_path:
        dest_path = os.path.join(config.EXPORTS_DIR, f"{csv_path.stem}.xlsx")

    with pd.ExcelWriter(dest_path, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="All")
        with_mobile.to_excel(writer, index=False, sheet_name="With_Mobile")
        if not summary_industry.empty:
            summary_industry.to_excel(writer, index=False, sheet_name="Summary_Industry")
        if not summary_location.empty:
            summary_location.to_excel(writer, index=False, sheet_name="Summary_Location")

    prune_old_exports(keep=Path(dest_path))
    return dest_path


__all__ = ["export_listings_to_excel", "load_listings_frame"]
