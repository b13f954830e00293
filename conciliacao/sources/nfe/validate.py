# conciliacao/sources/nfe/validate.py
#
# Validate and clean the NF-e / CT-e DataFrame.
#
# Design decisions:
#   - Only blank lines are dropped. Duplicated item lines are legitimate (the
#     same product twice on one invoice) and must stay, otherwise the matcher
#     would see fewer NF-e lines than the EFD bookkeeping.
#   - The NFe-only "value > 0" rule belongs to agrupar_nfe, not here: rows
#     filtered out of the matcher still join back as plain NF-e data.
#
# Invariants:
#   - "Linhas NFE" values are unchanged by validation.
from __future__ import annotations

import polars as pl

from conciliacao.colunas import Lado, coluna
from conciliacao.log import log


def validate_nfe(df: pl.DataFrame) -> pl.DataFrame:
    """Drop blank lines from the DataFrame returned by parse_nfe()."""
    linhas = coluna(Lado.NFE, "count_lines")

    antes = len(df)
    df = df.filter(~pl.all_horizontal(pl.exclude(linhas).is_null()))
    if len(df) < antes:
        log(f"  NFE: {antes - len(df):,} blank lines dropped")
    return df
