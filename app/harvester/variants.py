"""Reshape a Shopify product export so variants sit under their product.

Columns are addressed by position, as in the Shopify export layout: A is the
Handle, B the Title, B–I the product-level fields that variant rows must leave
blank, AF the image source and AG the image position.
"""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .utils import log_line

HANDLE_COL = 0
TITLE_COL = 1
CLEARED_COLS = range(1, 9)
IMAGE_SRC_COL = 31
IMAGE_POS_COL = 32
MISSING_POSITION = 999

_QUOTE_TRIGGERS = (",", '"', "\n", "\r", "<", ">", "&")


def default_output_path(csv_path: Path) -> Path:
    csv_path = Path(csv_path)
    return csv_path.with_name(f"{csv_path.stem}_processed{csv_path.suffix or '.csv'}")


def quote_cell(value: Optional[str]) -> str:
    text = value or ""
    escaped = text.replace('"', '""')
    if any(trigger in text for trigger in _QUOTE_TRIGGERS) or text.strip() == "":
        return f'"{escaped}"'
    return escaped


def _position_key(value: str) -> int:
    try:
        return int(str(value).strip())
    except ValueError:
        return MISSING_POSITION


def _group_rows_by_title(titles: pd.Series) -> Dict[str, List[int]]:
    groups: Dict[str, List[int]] = {}
    for position, title in enumerate(titles):
        if title:
            groups.setdefault(title, []).append(position)
    return groups


def _number_images(df: pd.DataFrame, rows: List[int]) -> None:
    sources = [df.iat[r, IMAGE_SRC_COL] for r in rows if df.iat[r, IMAGE_SRC_COL].strip()]
    first_src = sources[0] if sources else ""

    counter = 1
    for i, row in enumerate(rows):
        if df.iat[row, IMAGE_SRC_COL].strip():
            df.iat[row, IMAGE_POS_COL] = str(counter)
            counter += 1
        elif first_src and i > 0:
            df.iat[row, IMAGE_SRC_COL] = first_src
            df.iat[row, IMAGE_POS_COL] = str(counter)
            counter += 1


def reshape_variants(df: pd.DataFrame) -> pd.DataFrame:
    """Return ``df`` reordered with each product's variants directly below it."""

    df = df.astype(str).copy()
    handles = df.columns[HANDLE_COL]
    df = df.sort_values(by=handles, key=lambda col: col.str.casefold(), kind="stable").reset_index(drop=True)

    titles = df.iloc[:, TITLE_COL].str.strip() if df.shape[1] > TITLE_COL else pd.Series([""] * len(df))
    groups = _group_rows_by_title(titles)
    log_line(f"[VARIANTS] Found {len(groups)} unique product groups")

    has_images = df.shape[1] > IMAGE_POS_COL
    cleared = [c for c in CLEARED_COLS if c < df.shape[1]]
    arranged: Dict[str, List[int]] = {}

    for title, rows in groups.items():
        first, variants = rows[0], rows[1:]
        for row in variants:
            df.iat[row, HANDLE_COL] = df.iat[first, HANDLE_COL]
            for col in cleared:
                df.iat[row, col] = ""
        if has_images:
            _number_images(df, rows)
            variants = sorted(variants, key=lambda r: _position_key(df.iat[r, IMAGE_POS_COL]))
        arranged[title] = [first] + variants

    order: List[int] = []
    for position, title in enumerate(titles):
        if not title:
            order.append(position)
        elif arranged[title][0] == position:
            order.extend(arranged[title])
    return df.iloc[order].reset_index(drop=True)


def write_processed_csv(df: pd.DataFrame, output_path: Path) -> None:
    lines = [",".join(quote_cell(str(col)) for col in df.columns)]
    for row in df.itertuples(index=False, name=None):
        lines.append(",".join(quote_cell(cell) for cell in row))
    with open(output_path, "w", encoding="utf-8", newline="") as handle:
        handle.write("\n".join(lines))


def process_product_variants(csv_path: Path, output_path: Optional[Path] = None) -> Path:
    """Reshape the export at ``csv_path`` and write it next to the input."""

    csv_path = Path(csv_path)
    destination = Path(output_path) if output_path else default_output_path(csv_path)
    try:
        df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
    except (OSError, pd.errors.ParserError) as exc:
        raise ValueError(f"Failed to read CSV file {csv_path}: {exc}") from exc
    log_line(f"[VARIANTS] Loaded {len(df)} data rows from {csv_path}")

    processed = reshape_variants(df)
    write_processed_csv(processed, destination)
    log_line(f"[VARIANTS] Processing complete; output saved to {destination}")
    return destination


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Group Shopify product variants under their product row.")
    parser.add_argument("csv_path", type=Path)
    parser.add_argument("--output", type=Path, default=None)
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        process_product_variants(args.csv_path, args.output)
    except ValueError as exc:
        log_line(f"[VARIANTS] Error processing products: {exc}")
        return 1
    return 0


__all__ = [
    "process_product_variants",
    "reshape_variants",
    "write_processed_csv",
    "quote_cell",
    "default_output_path",
]


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
