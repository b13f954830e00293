# conciliacao/transform/agrupar.py
#
# Group both extracts by document key into the list-valued tables consumed by
# the per-key matcher.
#
# Design decisions:
#   - EFD rows are grouped by (Período de Apuração, key): the same invoice can
#     be booked in more than one period, and each booking is matched on its
#     own. relatar_chaves_multiplos_periodos reports those keys.
#   - NF-e rows are grouped by key only.
#   - Rows with a null key or a null value never enter a group. NF-e items
#     (origin matching "NFe") must also have a positive value; CT-e and other
#     origins are kept whatever their value.
#   - group_by uses maintain_order=True so the groups, and therefore the
#     correlation run, are in first-seen order and reproducible.
#   - The EFD and NF-e keys are both renamed to CHAVE_AGRUPADA so the two
#     grouped tables join on a single column.
#
# Invariants:
#   - Within a group, the row-number list and the value list are aligned.
#   - juntar_grupos keeps only keys present on both sides (inner join).
from __future__ import annotations

import polars as pl

from conciliacao.colunas import CHAVE_AGRUPADA, VALORES_EFD, VALORES_NFE, Lado, coluna

PERIODOS = "Nº de Períodos"
SOMA_DOS_VALORES = "Soma dos Valores dos Itens"


def agrupar_efd(efd_df: pl.DataFrame) -> pl.DataFrame:
    """Group EFD items by (apuração period, key).

    Returns:
        DataFrame with columns: "Período de Apuração", chave, "Linhas EFD"
        (list[u64]) and "Valores dos Itens da Nota Fiscal EFD" (list[f64]).
    """
    pa = coluna(Lado.EFD, "pa")
    chave = coluna(Lado.EFD, "chave")
    linhas = coluna(Lado.EFD, "count_lines")
    valor = coluna(Lado.EFD, "valor_item")

    return (
        efd_df.select([pa, chave, linhas, valor])
        .filter(pl.col(pa).is_not_null() & pl.col(chave).is_not_null() & pl.col(valor).is_not_null())
        .group_by([pa, chave], maintain_order=True)
        .agg(
            pl.col(linhas),
            pl.col(valor).alias(VALORES_EFD),
        )
        .rename({chave: CHAVE_AGRUPADA})
    )


def relatar_chaves_multiplos_periodos(efd_agrupado: pl.DataFrame) -> pl.DataFrame:
    """Return the keys booked in more than one apuração period.

    Args:
        efd_agrupado: Output of agrupar_efd().

    Returns:
        DataFrame with columns: chave, "Nº de Períodos", "Soma dos Valores dos
        Itens". Empty when every key belongs to a single period.
    """
    pa = coluna(Lado.EFD, "pa")
    return (
        efd_agrupado.group_by(CHAVE_AGRUPADA, maintain_order=True)
        .agg(
            pl.col(pa).n_unique().alias(PERIODOS),
            pl.col(VALORES_EFD).explode().sum().alias(SOMA_DOS_VALORES),
        )
        .filter(pl.col(PERIODOS) > 1)
    )


def agrupar_nfe(nfe_df: pl.DataFrame) -> pl.DataFrame:
    """Group NF-e / CT-e items by key.

    Returns:
        DataFrame with columns: chave, "Linhas NFE" (list[u64]) and
        "Valores dos Itens da Nota Fiscal NFE" (list[f64]).
    """
    chave = coluna(Lado.NFE, "chave")
    linhas = coluna(Lado.NFE, "count_lines")
    valor = coluna(Lado.NFE, "valor_item")
    origem = coluna(Lado.NFE, "origem")

    df = nfe_df.filter(pl.col(chave).is_not_null() & pl.col(valor).is_not_null())

    if origem in df.columns:
        # NF-e items need a positive value; other origins (CT-e) are kept.
        df = df.filter(
            pl.when(pl.col(origem).str.contains(r"(?i)NFe"))
            .then(pl.col(valor) > 0)
            .otherwise(pl.lit(True))
        )

    return (
        df.group_by(chave, maintain_order=True)
        .agg(
            pl.col(linhas),
            pl.col(valor).alias(VALORES_NFE),
        )
        .rename({chave: CHAVE_AGRUPADA})
    )


def juntar_grupos(efd_agrupado: pl.DataFrame, nfe_agrupado: pl.DataFrame) -> pl.DataFrame:
    """Inner-join the grouped EFD and NF-e tables on the key.

    The EFD group order is preserved.
    """
    return (
        efd_agrupado.with_row_index("_ordem")
        .join(nfe_agrupado, on=CHAVE_AGRUPADA, how="inner")
        .sort("_ordem")
        .drop("_ordem")
    )
