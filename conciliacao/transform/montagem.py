# conciliacao/transform/montagem.py
#
# Flatten the per-key correlations into a table and join both extracts back
# onto it at row level.
#
# Design decisions:
#   - The correlation table has exactly three columns: chave, "Linhas EFD",
#     "Linhas NFE". It is the only bridge between the two extracts.
#   - Join 1: correlation LEFT JOIN NF-e on (key, "Linhas NFE"), pulling every
#     NF-e field onto the pair. The NF-e key column is kept, so "no
#     correlation" later reads as a null NF-e key.
#   - Join 2: EFD LEFT JOIN (join 1) on (key, "Linhas EFD"). EFD rows without
#     a counterpart keep null NF-e fields; this is expected, not an error.
#   - The two annotation columns are added to the EFD side as typed nulls
#     before join 2, ready for the verification and rule stages.
#   - Join keys go through a temporary _chave column on each side. The real
#     key columns of both extracts stay untouched in the output.
#
# Invariants:
#   - Every EFD row appears exactly once, in its original order ("Linhas EFD").
#   - Output columns: all EFD columns, the two annotation columns, then the
#     NF-e columns (including "Linhas NFE").
from __future__ import annotations

from collections.abc import Sequence

import polars as pl

from conciliacao.colunas import CHAVE_AGRUPADA, Lado, coluna
from conciliacao.matching.correlacao import LinhasCorrelacionadas

_CHAVE_JUNCAO = "_chave"


def tabela_de_correlacao(
    todas: Sequence[Sequence[LinhasCorrelacionadas] | None],
) -> pl.DataFrame:
    """Flatten all per-key correlations into a typed three-column table.

    Args:
        todas: One entry per key; None entries are skipped.

    Returns:
        DataFrame with columns chave (str), "Linhas EFD" (u64), "Linhas NFE"
        (u64). Empty but typed when nothing was correlated.
    """
    chaves: list[str] = []
    linhas_efd: list[int] = []
    linhas_nfe: list[int] = []
    for correlacoes in todas:
        if not correlacoes:
            continue
        for correlacao in correlacoes:
            chaves.append(correlacao.chave)
            linhas_efd.append(correlacao.linha_efd)
            linhas_nfe.append(correlacao.linha_nfe)

    return pl.DataFrame(
        {
            CHAVE_AGRUPADA: pl.Series(chaves, dtype=pl.Utf8),
            coluna(Lado.EFD, "count_lines"): pl.Series(linhas_efd, dtype=pl.UInt64),
            coluna(Lado.NFE, "count_lines"): pl.Series(linhas_nfe, dtype=pl.UInt64),
        }
    )


def adicionar_colunas_de_anotacao(df: pl.DataFrame) -> pl.DataFrame:
    """Add the verification and glosa columns as null strings."""
    return df.with_columns(
        pl.lit(None, dtype=pl.Utf8).alias(coluna(Lado.MEIO, "verificar")),
        pl.lit(None, dtype=pl.Utf8).alias(coluna(Lado.MEIO, "glosar")),
    )


def juntar_correlacoes(
    efd_df: pl.DataFrame,
    nfe_df: pl.DataFrame,
    correlacao: pl.DataFrame,
) -> pl.DataFrame:
    """Join the EFD and NF-e extracts through the correlation table.

    Args:
        efd_df:     Validated EFD rows (side A).
        nfe_df:     Validated NF-e rows (side B).
        correlacao: Output of tabela_de_correlacao().

    Returns:
        One row per EFD row with the correlated NF-e fields (or nulls).
    """
    linhas_efd = coluna(Lado.EFD, "count_lines")
    linhas_nfe = coluna(Lado.NFE, "count_lines")

    # Join 1: correlation x NF-e on (key, Linhas NFE).
    nfe_chaveado = nfe_df.with_columns(pl.col(coluna(Lado.NFE, "chave")).alias(_CHAVE_JUNCAO))
    nfe_correlacionado = correlacao.rename({CHAVE_AGRUPADA: _CHAVE_JUNCAO}).join(
        nfe_chaveado,
        on=[_CHAVE_JUNCAO, linhas_nfe],
        how="left",
    )

    # Join 2: EFD x (join 1) on (key, Linhas EFD).
    efd_chaveado = adicionar_colunas_de_anotacao(efd_df).with_columns(
        pl.col(coluna(Lado.EFD, "chave")).alias(_CHAVE_JUNCAO)
    )
    resultado = efd_chaveado.join(
        nfe_correlacionado,
        on=[_CHAVE_JUNCAO, linhas_efd],
        how="left",
    )

    return resultado.sort(linhas_efd).drop(_CHAVE_JUNCAO)
