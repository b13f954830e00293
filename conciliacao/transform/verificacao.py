# conciliacao/transform/verificacao.py
#
# Advisory check of the correlated rows: does an EFD amount agree with an
# NF-e amount within a small tolerance?
#
# Design decisions:
#   - Four comparisons are tried in a fixed priority order; the first one
#     within tolerance names the annotation. The order goes from the most
#     specific agreement (declared tax base == proportional invoice value) to
#     the loosest (item value == ICMS base).
#   - Rows without a correlated NF-e row (null NF-e key) get null, as do rows
#     where nothing agrees. This is information for the auditor and the rule
#     stage, never an error.
#   - A comparison whose columns are absent from the extracts is skipped, so
#     trimmed extracts still get the comparisons they can support.
#
# Invariants:
#   - Only the verification column is written; every other column is unchanged.
from __future__ import annotations

import polars as pl

from conciliacao.colunas import Lado, coluna

TOLERANCIA_PADRAO = 0.05

# (annotation, EFD column nickname, NF-e column nickname), highest priority first.
VERIFICACOES: tuple[tuple[str, str, str], ...] = (
    ("Base de Cálculo das Contribuições == Nota Proporcional", "valor_bc", "valor_item"),
    ("Base de Cálculo das Contribuições == Base de Cálculo do ICMS", "valor_bc", "valor_bc_icms"),
    ("Valor Total do Item == Nota Proporcional", "valor_item", "valor_item"),
    ("Valor Total do Item == Base de Cálculo do ICMS", "valor_item", "valor_bc_icms"),
)


def verificar_valores(df: pl.DataFrame, tolerancia: float = TOLERANCIA_PADRAO) -> pl.DataFrame:
    """Fill the verification column of the joined table.

    Args:
        df:         Output of juntar_correlacoes().
        tolerancia: Absolute difference below which two amounts agree.

    Returns:
        ``df`` with "Verificação dos Valores: EFD x Docs Fiscais" filled with
        the first agreeing comparison, or null.
    """
    verificar = coluna(Lado.MEIO, "verificar")
    chave_nfe = coluna(Lado.NFE, "chave")

    expr: pl.Expr = pl.lit(None, dtype=pl.Utf8)
    # Built from the lowest priority up so the first comparison ends outermost.
    for descricao, apelido_efd, apelido_nfe in reversed(VERIFICACOES):
        col_efd = coluna(Lado.EFD, apelido_efd)
        col_nfe = coluna(Lado.NFE, apelido_nfe)
        if col_efd not in df.columns or col_nfe not in df.columns:
            continue
        iguais = (pl.col(col_efd) - pl.col(col_nfe)).abs() < tolerancia
        expr = pl.when(iguais.fill_null(False)).then(pl.lit(descricao)).otherwise(expr)

    if chave_nfe in df.columns:
        expr = pl.when(pl.col(chave_nfe).is_null()).then(pl.lit(None, dtype=pl.Utf8)).otherwise(expr)
    else:
        expr = pl.lit(None, dtype=pl.Utf8)

    return df.with_columns(expr.alias(verificar))


def resumo_verificacao(df: pl.DataFrame) -> pl.DataFrame:
    """Count rows per verification outcome (null included), most frequent first."""
    verificar = coluna(Lado.MEIO, "verificar")
    return (
        df.group_by(verificar)
        .agg(pl.len().alias("Linhas"))
        .sort(["Linhas", verificar], descending=[True, False], nulls_last=True)
    )
