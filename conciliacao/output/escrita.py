# conciliacao/output/escrita.py
#
# Standardised Parquet/CSV read and write for the batch outputs.
#
# Design decisions:
#   - Thin wrappers around Polars I/O so the rest of the batch never calls
#     polars directly for file I/O.
#   - Writers create parent directories automatically.
#   - CSV is written with the configured output delimiter (';' by default,
#     which spreadsheet tools in pt-BR locales open directly) and dd/mm/yyyy
#     dates, matching the input extracts.
from __future__ import annotations

from pathlib import Path

import polars as pl


def write_parquet(df: pl.DataFrame, path: Path) -> Path:
    """Write a DataFrame to a Parquet file, creating parent directories as needed.

    Args:
        df:   DataFrame to persist. May have any schema.
        path: Destination file path.

    Returns:
        The path written to, for call-chain convenience.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    df.write_parquet(path)
    return path


def write_csv(df: pl.DataFrame, path: Path, delimitador: str = ";") -> Path:
    """Write a DataFrame to a CSV file with a header row.

    Args:
        df:          DataFrame to persist. Must not contain nested (list) columns.
        path:        Destination file path.
        delimitador: Single-character field separator.

    Returns:
        The path written to.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    df.write_csv(path, separator=delimitador, date_format="%d/%m/%Y")
    return path


def read_parquet(path: Path) -> pl.DataFrame:
    """Read a Parquet file into a DataFrame.

    Raises:
        FileNotFoundError: if ``path`` does not exist (raised by Polars).
    """
    return pl.read_parquet(path)
