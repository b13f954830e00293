# conciliacao/sources/efd/parse.py
#
# Parse the EFD Contribuições item extract (side A) into a typed DataFrame.
#
# Design decisions:
#   - The extract is pipe-delimited by default ('|'); the delimiter is passed
#     in from ConciliacaoConfig so other exports can be read unchanged.
#   - "Linhas EFD" is the physical row number, added before any filter. The
#     correlation table joins back to this table on (chave, Linhas EFD).
#   - The document key is reduced to digits; NCM is formatted; floats are
#     rounded so sums and tolerance checks compare like with like.
#
# Invariants:
#   - Output always contains "Linhas EFD", the key, the apuração period and the
#     item value column (EntradaIncompletaError otherwise).
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


def parse_efd(raw_path: Path, delimitador: str = "|", casas_decimais: int = 2) -> pl.DataFrame:
    """Parse the EFD Contribuições extract.

    Args:
        raw_path:       Path to the CSV extract.
        delimitador:    Field separator of the extract.
        casas_decimais: Decimals kept in every Float64 column.

    Returns:
        DataFrame with "Linhas EFD" (UInt64) first, registered columns cast to
        their registry dtype and any other column kept as a string.

    Raises:
        EntradaIncompletaError: if a required column is missing.
    """
    linhas = coluna(Lado.EFD, "count_lines")
    chave = coluna(Lado.EFD, "chave")
    ncm = coluna(Lado.EFD, "ncm")

    df = ler_csv(raw_path, delimitador, linhas)
    exigir_colunas(df, [chave, coluna(Lado.EFD, "pa"), coluna(Lado.EFD, "valor_item")], raw_path)

    df = tipar_colunas(df, Lado.EFD)
    df = df.with_columns(somente_digitos(chave))
    if ncm in df.columns:
        df = df.with_columns(formatar_ncm(ncm))

    return arredondar_floats(df, casas_decimais)
