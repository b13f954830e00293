# conciliacao/filtros.py
#
# Reusable row filters over the EFD side of the joined table.
#
# Design decisions:
#   - Filters are plain Polars expressions (or functions returning a filtered
#     DataFrame) so transforms compose them without copying conditions around.
#   - "Tipo de Operação" codes: 1 entrada, 2 saída, 3 and 4 ajustes, 5 and 6
#     descontos, 7 detalhamento. CST 50..66 are the credit-bearing CSTs.
#   - Null codes never satisfy a positive condition (is_not_null guard), so
#     negating a condition keeps rows whose code is unknown.
from __future__ import annotations

import polars as pl

from conciliacao.colunas import Lado, coluna
from conciliacao.log import log

CST_DE_CREDITO: tuple[int, ...] = tuple(range(50, 67))


def operacoes(*tipos: int) -> pl.Expr:
    """Rows whose "Tipo de Operação" is one of *tipos*."""
    top = coluna(Lado.EFD, "tipo_operacao")
    return pl.col(top).is_not_null() & pl.col(top).is_in(list(tipos))


def operacoes_de_entrada_ou_saida() -> pl.Expr:
    return operacoes(1, 2)


def operacoes_de_saida() -> pl.Expr:
    return operacoes(2)


def cst_de_credito() -> pl.Expr:
    """Rows with a credit-bearing CST (50 to 66)."""
    cst = coluna(Lado.EFD, "cst")
    return pl.col(cst).is_not_null() & pl.col(cst).is_in(list(CST_DE_CREDITO))


def filtrar_periodo(df: pl.DataFrame, inicial: int | None, final: int | None) -> pl.DataFrame:
    """Keep rows whose apuração period (yyyymm) lies in [inicial, final].

    A None bound is open. When any bound is set, rows without a known period
    are dropped.
    """
    if inicial is None and final is None:
        return df

    periodo = pl.col(coluna(Lado.EFD, "pa_ano")) * 100 + pl.col(coluna(Lado.EFD, "pa_mes"))
    condicao = periodo.is_not_null()
    if inicial is not None:
        condicao = condicao & (periodo >= inicial)
    if final is not None:
        condicao = condicao & (periodo <= final)

    filtrado = df.filter(condicao)
    log(f"  Period filter [{inicial}, {final}]: {len(filtrado):,} of {len(df):,} rows kept")
    return filtrado


def aplicar_filtro(df: pl.DataFrame, operacoes_de_creditos: bool) -> pl.DataFrame:
    """Drop saída operations when only credit operations are wanted."""
    if not operacoes_de_creditos:
        return df
    return df.filter(~operacoes_de_saida())


def remover_colunas_nulas(df: pl.DataFrame) -> pl.DataFrame:
    """Drop columns in which every value is null. An empty frame is returned as-is."""
    if df.is_empty():
        return df
    return df.select([nome for nome in df.columns if df[nome].null_count() < len(df)])
