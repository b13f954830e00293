# conciliacao/sources/normalizacao.py
#
# Shared CSV reading and value normalisation for the EFD and NF-e extracts.
#
# Design decisions:
#   - Everything is read as strings first (infer_schema_length=0) and then
#     cast non-strictly to the registry dtype. A malformed cell becomes null
#     instead of aborting the read. Null values reaching the matcher are
#     dropped there with a warning.
#   - The physical row number is attached right after reading, before any
#     filter, so it always maps 1:1 back to a data line of the source file
#     (0 is the first data line after the header).
#   - Document keys keep digits only. A key with no digit at all is null,
#     never the empty string, so it can never group unrelated rows together.
#   - Amounts may come with pt-BR decimals ('1.234,56') or plain ('1234.56').
#   - NCM codes are normalised to the dotted 'NNNN.NN.NN' form whatever the
#     input ('22071000', '2207.10.00', '2207100').
#
# Invariants:
#   - The row-number column is UInt64, unique and gap-free in parse output.
#   - Every Float64 column is rounded to the configured number of decimals.
from __future__ import annotations

from pathlib import Path

import polars as pl

from conciliacao.colunas import REGISTRO, Lado
from conciliacao.erros import EntradaIncompletaError

NULL_VALUES: list[str] = [" ", "<N/D>", "*DIVERSOS*"]

DATE_FORMAT = "%d/%m/%Y"


def ler_csv(raw_path: Path, delimitador: str, coluna_linhas: str) -> pl.DataFrame:
    """Read an extract as all-string columns and attach the physical row number.

    Args:
        raw_path:      Path to the CSV extract.
        delimitador:   Single-character field separator.
        coluna_linhas: Name of the row-number column to add.

    Returns:
        DataFrame with stripped header names, every column Utf8 except the
        leading row-number column (UInt64).
    """
    raw = pl.read_csv(
        raw_path,
        separator=delimitador,
        encoding="utf8-lossy",
        infer_schema_length=0,
        null_values=NULL_VALUES,
        truncate_ragged_lines=True,
    )
    raw = raw.rename({col: col.strip() for col in raw.columns})
    return raw.with_row_index(coluna_linhas).with_columns(pl.col(coluna_linhas).cast(pl.UInt64))


def exigir_colunas(df: pl.DataFrame, colunas: list[str], raw_path: Path) -> None:
    """Raise EntradaIncompletaError naming the first required column absent from df."""
    for nome in colunas:
        if nome not in df.columns:
            raise EntradaIncompletaError(f"Missing required column {nome!r} in {raw_path}")


def somente_digitos(coluna: str) -> pl.Expr:
    """Keep only the digits of a string column; an empty result becomes null."""
    digitos = pl.col(coluna).str.replace_all(r"[^0-9]", "")
    return pl.when(digitos.str.len_chars() > 0).then(digitos).otherwise(None).alias(coluna)


def formatar_ncm(coluna: str) -> pl.Expr:
    """Format an NCM column as 'NNNN.NN.NN'. Codes longer than 8 digits stay as digits."""
    digitos = pl.col(coluna).str.replace_all(r"[^0-9]", "")
    preenchido = digitos.str.zfill(8)
    pontuado = pl.concat_str(
        [preenchido.str.slice(0, 4), preenchido.str.slice(4, 2), preenchido.str.slice(6, 2)],
        separator=".",
    )
    return (
        pl.when(digitos.str.len_chars() == 0)
        .then(None)
        .when(digitos.str.len_chars() <= 8)
        .then(pontuado)
        .otherwise(digitos)
        .alias(coluna)
    )


def decimal_br(texto: pl.Expr) -> pl.Expr:
    """Turn '1.234,56' into '1234.56'. Values without a comma are left unchanged."""
    return (
        pl.when(texto.str.contains(","))
        .then(texto.str.replace_all(".", "", literal=True).str.replace(",", ".", literal=True))
        .otherwise(texto)
    )


def tipar_colunas(df: pl.DataFrame, lado: Lado) -> pl.DataFrame:
    """Cast every registered column of *lado* present in df to its registry dtype.

    Strings are stripped. Dates use the dd/mm/yyyy format. Numeric and date
    casts are non-strict: unparseable cells become null.
    """
    exprs: list[pl.Expr] = []
    for coluna in REGISTRO.do_lado(lado):
        if coluna.nome not in df.columns or df.schema[coluna.nome] != pl.Utf8:
            continue
        texto = pl.col(coluna.nome).str.strip_chars()
        if coluna.dtype == pl.Utf8:
            exprs.append(texto.alias(coluna.nome))
        elif coluna.dtype == pl.Date:
            exprs.append(texto.str.strptime(pl.Date, DATE_FORMAT, strict=False).alias(coluna.nome))
        elif coluna.dtype == pl.Float64:
            exprs.append(decimal_br(texto).cast(pl.Float64, strict=False).alias(coluna.nome))
        else:
            exprs.append(texto.cast(coluna.dtype, strict=False).alias(coluna.nome))
    return df.with_columns(exprs) if exprs else df


def arredondar_floats(df: pl.DataFrame, casas_decimais: int) -> pl.DataFrame:
    """Round every Float64 column to *casas_decimais* decimals."""
    return df.with_columns(pl.col(pl.Float64).round(casas_decimais))
