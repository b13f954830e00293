# conciliacao/sources/efd/validate.py
#
# Validate and clean the EFD DataFrame.
#
# Design decisions:
#   - Only blank lines are dropped (every source column null). Rows with a
#     null key or value are kept: the final table must contain every EFD row,
#     correlated or not. Filtering for the matcher happens in agrupar_efd.
#   - The apuração year/quarter/month are derived from "Período de Apuração"
#     when the extract does not carry them, so the period filter and the
#     consolidation always have them.
#
# Invariants:
#   - "Linhas EFD" values are unchanged by validation.
from __future__ import annotations

import polars as pl

from conciliacao.colunas import Lado, coluna
from conciliacao.log import log


def _derivar_periodo(df: pl.DataFrame) -> pl.DataFrame:
    """Fill year, quarter and month of apuração from "Período de Apuração".

    Accepted period formats: 'yyyymm', 'mm/yyyy', 'dd/mm/yyyy' and 'yyyy-mm-dd'.
    """
    pa = coluna(Lado.EFD, "pa")
    pa_ano = coluna(Lado.EFD, "pa_ano")
    pa_trim = coluna(Lado.EFD, "pa_trim")
    pa_mes = coluna(Lado.EFD, "pa_mes")

    texto = pl.col(pa).str.strip_chars()
    ano = (
        pl.when(texto.str.contains(r"^\d{4}-\d{2}"))
        .then(texto.str.slice(0, 4))
        .when(texto.str.contains(r"^\d{6}$"))
        .then(texto.str.slice(0, 4))
        .otherwise(texto.str.extract(r"(\d{4})$", 1))
        .cast(pl.Int64, strict=False)
    )
    mes = (
        pl.when(texto.str.contains(r"^\d{4}-\d{2}"))
        .then(texto.str.slice(5, 2))
        .when(texto.str.contains(r"^\d{6}$"))
        .then(texto.str.slice(4, 2))
        .otherwise(texto.str.extract(r"(\d{1,2})/\d{4}$", 1))
        .cast(pl.Int64, strict=False)
    )

    exprs: list[pl.Expr] = []
    if pa_ano not in df.columns:
        exprs.append(ano.alias(pa_ano))
    if pa_mes not in df.columns:
        exprs.append(mes.alias(pa_mes))
    if exprs:
        df = df.with_columns(exprs)
    if pa_trim not in df.columns:
        df = df.with_columns(((pl.col(pa_mes) - 1) // 3 + 1).alias(pa_trim))
    return df


def validate_efd(df: pl.DataFrame) -> pl.DataFrame:
    """Validate and clean the EFD DataFrame from parse_efd.

    Steps applied:
        1. Drop blank lines (every column other than "Linhas EFD" null).
        2. Derive apuração year, quarter and month when missing.

    Args:
        df: DataFrame returned by parse_efd().

    Returns:
        Cleaned DataFrame.
    """
    linhas = coluna(Lado.EFD, "count_lines")

    # Step 1: drop blank lines.
    antes = len(df)
    df = df.filter(~pl.all_horizontal(pl.exclude(linhas).is_null()))
    if len(df) < antes:
        log(f"  EFD: {antes - len(df):,} blank lines dropped")

    # Step 2: apuração year / quarter / month.
    return _derivar_periodo(df)
