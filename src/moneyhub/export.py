"""Tabular export of the merged transaction feed."""

import logging
from collections.abc import Sequence
from pathlib import Path

import polars as pl

from .schemas import MergedTransaction

logger = logging.getLogger(__name__)

FEED_SCHEMA: dict[str, pl.DataType | type[pl.DataType]] = {
    "id": pl.Utf8,
    "name": pl.Utf8,
    "amount": pl.Float64,
    "date": pl.Date,
    "payment_channel": pl.Utf8,
    "category": pl.Utf8,
    "source": pl.Utf8,
    "direction": pl.Utf8,
    "account_id": pl.Utf8,
    "pending": pl.Boolean,
    "image": pl.Utf8,
    "created_at": pl.Datetime("us"),
}


def transactions_to_frame(transactions: Sequence[MergedTransaction]) -> pl.DataFrame:
    """Convert merged feed rows to a DataFrame, preserving feed order."""
    rows = []
    for tx in transactions:
        row = tx.model_dump(mode="python")
        row["amount"] = float(tx.amount)
        rows.append(row)
    return pl.DataFrame(rows, schema=FEED_SCHEMA)


def write_transactions(
    transactions: Sequence[MergedTransaction], output_path: Path
) -> Path:
    """Write the feed as Parquet or CSV, chosen by the file extension.

    Raises:
        ValueError: If the extension is neither .parquet nor .csv
    """
    suffix = output_path.suffix.lower()
    if suffix not in (".parquet", ".csv"):
        raise ValueError(f"Unsupported export format: {output_path.suffix or '(none)'}")

    df = transactions_to_frame(transactions)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".parquet":
        df.write_parquet(output_path)
    else:
        df.write_csv(output_path)

    logger.info(f"Saved {df.height} transactions to {output_path}")
    return output_path
