# conciliacao/transform/consolidacao.py
#
# Consolidation of the reconciled items by contributor, period and tax
# category.
#
# Design decisions:
#   - Only entrada/saída operations are consolidated. Ajustes, descontos and
#     detalhamento lines are not item amounts and would double count.
#   - The natureza of the credit base only means something for credit CSTs
#     (50 to 66); it is nulled elsewhere so non-credit lines group together.
#   - The contributor is identified by the CNPJ base (first 8 digits), so the
#     branches of one company consolidate into a single block.
#   - One "Total do Trimestre" row per (CNPJ base, year, quarter) follows the
#     detail rows of that quarter. Detail rows have a null "Descrição".
#   - Grouping and sum columns missing from the extract are skipped rather
#     than failing; the consolidation is a report, not a contract.
#
# Invariants:
#   - Sums are rounded to casas_decimais.
#   - Row order: CNPJ base, year, quarter, details before the total, then the
#     remaining grouping columns (nulls last).
from __future__ import annotations

import polars as pl

from conciliacao.colunas import Lado, coluna
from conciliacao.filtros import cst_de_credito, operacoes_de_entrada_ou_saida

CNPJ_BASE = "CNPJ Base do Contribuinte"
DESCRICAO = "Descrição"
TOTAL_DO_TRIMESTRE = "Total do Trimestre"

_AGRUPAMENTO = (
    "pa_ano",
    "pa_trim",
    "pa_mes",
    "tipo_operacao",
    "tipo_cred",
    "cst",
    "aliq_pis",
    "aliq_cof",
    "natureza",
)

_SOMAS = ("valor_item", "valor_bc", "valor_pis", "valor_cof")


def consolidar_natureza(df: pl.DataFrame, casas_decimais: int = 2) -> pl.DataFrame:
    """Sum item values, credit base and contributions per period and category.

    Args:
        df:             Joined table (EFD columns are the ones used).
        casas_decimais: Decimals kept in the sums.

    Returns:
        Consolidated DataFrame: CNPJ base, the grouping columns present in
        ``df``, "Descrição", and one sum per amount column present in ``df``.
    """
    cnpj = coluna(Lado.EFD, "contribuinte_cnpj")
    natureza = coluna(Lado.EFD, "natureza")

    agrupamento = [coluna(Lado.EFD, a) for a in _AGRUPAMENTO if coluna(Lado.EFD, a) in df.columns]
    somas = [coluna(Lado.EFD, a) for a in _SOMAS if coluna(Lado.EFD, a) in df.columns]

    base = df
    if coluna(Lado.EFD, "tipo_operacao") in base.columns:
        base = base.filter(operacoes_de_entrada_ou_saida())

    cnpj_base = (
        pl.col(cnpj).str.replace_all(r"[^0-9]", "").str.slice(0, 8)
        if cnpj in base.columns
        else pl.lit(None, dtype=pl.Utf8)
    )
    base = base.with_columns(cnpj_base.alias(CNPJ_BASE))
    if natureza in base.columns and coluna(Lado.EFD, "cst") in base.columns:
        base = base.with_columns(pl.when(cst_de_credito()).then(pl.col(natureza)).otherwise(None).alias(natureza))

    agregacoes = [pl.col(nome).sum().round(casas_decimais) for nome in somas]

    detalhe = (
        base.group_by([CNPJ_BASE, *agrupamento])
        .agg(agregacoes)
        .with_columns(pl.lit(None, dtype=pl.Utf8).alias(DESCRICAO), pl.lit(0).alias("_total"))
    )

    trimestre = [c for c in (coluna(Lado.EFD, "pa_ano"), coluna(Lado.EFD, "pa_trim")) if c in agrupamento]
    totais = (
        base.group_by([CNPJ_BASE, *trimestre])
        .agg(agregacoes)
        .with_columns(pl.lit(TOTAL_DO_TRIMESTRE).alias(DESCRICAO), pl.lit(1).alias("_total"))
    )

    ordem = [CNPJ_BASE, *trimestre, "_total", *[c for c in agrupamento if c not in trimestre]]
    return (
        pl.concat([detalhe, totais], how="diagonal")
        .sort(ordem, nulls_last=True)
        .drop("_total")
        .select([CNPJ_BASE, *agrupamento, DESCRICAO, *somas])
    )
