# conciliacao/sources/nfe/parse.py
#
# Parse the NF-e / CT-e item extract (side B) into a typed DataFrame.
#
# Design decisions:
#   - The extract is semicolon-delimited by default; headers carry the
#     " : NF Item (Todos)" suffixes of the reporting tool and are kept as-is so
#     the final table reads like the extract the auditor already knows.
#   - "Linhas NFE" is the physical row number, added before any filter. The
#     correlation table joins back to this table on (chave, Linhas NFE).
#   - Same key / NCM / rounding normalisation as the EFD side, so keys and
#     values of both sides are comparable.
#
# Invariants:
#   - Output always contains "Linhas NFE", the key and the proportional item
#     value column (EntradaIncompletaError otherwise).
from __future__ import annotations

from pathlib import Path

import polars as pl

from conciliacao.colunas import Lado, coluna
from conciliacao.sources.normalizacao import (
    arredondar_floats,
    exigir_colunas,
    formatar_ncm,
    ler_csv,
    somente_digitos,
    tipar_colunas,
)


def parse_nfe(raw_path: Path, delimitador: str = ";", casas_decimais: int = 2) -> pl.DataFrame:
    """Parse the NF-e / CT-e item extract.

    Args:
        raw_path:       Path to the CSV extract.
        delimitador:    Field separator of the extract.
        casas_decimais: Decimals kept in every Float64 column.

    Returns:
        DataFrame with "Linhas NFE" (UInt64) first and registered columns cast
        to their registry dtype.

    Raises:
        EntradaIncompletaError: if a required column is missing.
    """
    linhas = coluna(Lado.NFE, "count_lines")
    chave = coluna(Lado.NFE, "chave")
    ncm = coluna(Lado.NFE, "ncm")

    df = ler_csv(raw_path, delimitador, linhas)
    exigir_colunas(df, [chave, coluna(Lado.NFE, "valor_item")], raw_path)

    df = tipar_colunas(df, Lado.NFE)
    df = df.with_columns(somente_digitos(chave))
    if ncm in df.columns:
        df = df.with_columns(formatar_ncm(ncm))

    return arredondar_floats(df, casas_decimais)
