#!/usr/bin/env python3
"""Dataset generation script for import performance checks.

Generates a synthetic task export the way spreadsheets and project tools
actually produce them: non-canonical headers, currency formatted rates,
free-text statuses, a share of broken rows and an extra column the importer
does not know about.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

HEADERS = ["Task Name", "Page Count", "Price", "Status", "Payment", "Start Date", "Due Date", "Remarks", "Tags"]

WORK_STATUSES = ["Pending", "in progress", "Done", "working", "not started", "completed"]
PAYMENT_STATUSES = ["Unpaid", "paid", "Partially Paid", "", "due"]
PROJECTS = ["Website Redesign", "Logo Design", "Mobile App UI", "Brochure", "Landing Page", "Pitch Deck"]


def generate_task_frame(rows: int, invalid_ratio: float = 0.05, seed: int = 42) -> pd.DataFrame:
    """Generate `rows` task rows; about `invalid_ratio` of them have unusable pages.

    Args:
        rows: Number of data rows
        invalid_ratio: Share of rows whose page count is not a number
        seed: Random seed for reproducible data

    Returns:
        DataFrame with the HEADERS columns, every cell a string
    """
    rng = np.random.default_rng(seed)

    pages = rng.integers(1, 40, rows).astype(str).astype(object)
    broken = rng.random(rows) < invalid_ratio
    pages[broken] = "tbd"

    rates = rng.integers(50, 500, rows)
    accepted = pd.Timestamp("2024-01-01") + pd.to_timedelta(rng.integers(0, 300, rows), unit="D")
    due = accepted + pd.to_timedelta(rng.integers(3, 30, rows), unit="D")

    data = {
        "Task Name": [f"{PROJECTS[i % len(PROJECTS)]} #{i + 1}" for i in range(rows)],
        "Page Count": pages,
        "Price": [f"${r:,}" for r in rates],
        "Status": rng.choice(WORK_STATUSES, rows),
        "Payment": rng.choice(PAYMENT_STATUSES, rows),
        "Start Date": accepted.strftime("%Y-%m-%d"),
        "Due Date": due.strftime("%d %b %Y"),
        "Remarks": [f"Generated task {i + 1}, see brief" for i in range(rows)],
        "Tags": rng.choice(["print", "web", "mobile", ""], rows),
    }
    return pd.DataFrame(data, columns=HEADERS)


def write_dataset(output_path: Path, df: pd.DataFrame) -> None:
    """Write as .csv (default) or .xlsx depending on the suffix."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if output_path.suffix.lower() == ".xlsx":
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            df.to_excel(writer, index=False)
    else:
        df.to_csv(output_path, index=False)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate synthetic task exports for import performance checks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s data/tasks.csv
  %(prog)s data/tasks.xlsx --rows 20000 --invalid-ratio 0.1 --seed 7
        """,
    )
    parser.add_argument("output", type=Path, help="Output .csv or .xlsx path")
    parser.add_argument("--rows", type=int, default=5_000, help="Number of data rows (default: 5,000)")
    parser.add_argument(
        "--invalid-ratio", type=float, default=0.05, help="Share of rows with a broken page count (default: 0.05)"
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if not 0 <= args.invalid_ratio <= 1:
        print("Error: --invalid-ratio must be between 0 and 1", file=sys.stderr)
        return 1

    df = generate_task_frame(args.rows, args.invalid_ratio, args.seed)
    try:
        write_dataset(args.output, df)
    except OSError as e:
        print(f"Error writing dataset: {e}", file=sys.stderr)
        return 1
    print(f"Created {args.output}: {args.rows:,} rows, {len(HEADERS)} columns")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
