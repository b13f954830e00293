# conciliacao/matching/correlacao.py
#
# Per-key correlation: pair the EFD rows and NF-e rows sharing a document key
# and map the solver's local indices back to physical row numbers.
#
# Design decisions:
#   - Each key goes through the same steps independently:
#       missing side        -> None
#       extract vectors     (null/NaN values dropped with a warning)
#       empty after drop    -> None
#       cost matrix -> padding -> solve -> reproject -> list of tuples
#     Nothing is shared between keys, so one bad key never blocks the others.
#   - Keys run in a ThreadPoolExecutor (fork-join). pool.map keeps the input
#     order, so the result list is index-aligned with the grouped table.
#     numpy and scipy do the heavy lifting outside the interpreter loop.
#   - Recoverable conditions are warn()ed and absorbed at the key (or pair)
#     level. ConciliacaoError subclasses are fatal and propagate out of
#     correlacionar_chaves, aborting the run.
#
# Invariants:
#   - Every emitted tuple references a real EFD row and a real NF-e row of the
#     same key; padding assignments are never emitted.
#   - correlacionar_chaves returns exactly one entry per input row.
from __future__ import annotations

import math
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

import polars as pl

from conciliacao.colunas import CHAVE_AGRUPADA, VALORES_EFD, VALORES_NFE, Lado, coluna
from conciliacao.log import warn
from conciliacao.matching.munkres import atribuicoes_munkres


class LinhasCorrelacionadas(NamedTuple):
    """One established correspondence between an EFD row and an NF-e row."""

    chave: str
    linha_efd: int
    linha_nfe: int


def _ausente(valor: object) -> bool:
    return valor is None or (isinstance(valor, float) and math.isnan(valor))


def _extrair(
    chave: str,
    lado: str,
    linhas: Sequence[int | None] | None,
    valores: Sequence[object] | None,
) -> tuple[list[int], list[object]] | None:
    """Return the (row numbers, values) of one side without missing entries.

    None when the side is absent, inconsistent or empty after dropping nulls.
    """
    if not linhas or not valores:
        warn(f"key {chave}: no {lado} items, key skipped")
        return None
    if len(linhas) != len(valores):
        warn(f"key {chave}: {len(linhas)} {lado} row numbers for {len(valores)} values, key skipped")
        return None

    pares = [(linha, valor) for linha, valor in zip(linhas, valores) if linha is not None and not _ausente(valor)]
    descartados = len(linhas) - len(pares)
    if descartados:
        warn(f"key {chave}: {descartados} {lado} item(s) with missing value dropped")
    if not pares:
        warn(f"key {chave}: no {lado} value left after dropping missing ones, key skipped")
        return None

    return [int(linha) for linha, _ in pares], [valor for _, valor in pares]


def reprojetar(
    chave: str,
    linhas_efd: Sequence[int],
    linhas_nfe: Sequence[int],
    atribuicao: Sequence[int],
) -> list[LinhasCorrelacionadas] | None:
    """Map an assignment vector back to physical row numbers.

    A tuple is emitted for row ``r`` assigned to column ``c`` only when both
    ``linhas_efd[r]`` and ``linhas_nfe[c]`` exist. Pairs landing on padding
    are skipped with a warning.

    Returns:
        The correlated tuples, or None when no real pair remains.
    """
    correlacoes: list[LinhasCorrelacionadas] = []
    ignorados = 0
    for linha, col in enumerate(atribuicao):
        if linha < len(linhas_efd) and col < len(linhas_nfe):
            correlacoes.append(LinhasCorrelacionadas(chave, int(linhas_efd[linha]), int(linhas_nfe[col])))
        else:
            ignorados += 1

    if ignorados:
        warn(f"key {chave}: {ignorados} assignment(s) without counterpart (padding) skipped")

    return correlacoes or None


def correlacionar_chave(
    chave: str,
    linhas_efd: Sequence[int | None] | None,
    valores_efd: Sequence[object] | None,
    linhas_nfe: Sequence[int | None] | None,
    valores_nfe: Sequence[object] | None,
    verbose: bool = False,
) -> list[LinhasCorrelacionadas] | None:
    """Correlate the EFD and NF-e items of a single document key.

    Args:
        chave:       Document key (digits only).
        linhas_efd:  Physical EFD row numbers, aligned with ``valores_efd``.
        valores_efd: EFD item values.
        linhas_nfe:  Physical NF-e row numbers, aligned with ``valores_nfe``.
        valores_nfe: NF-e item values.
        verbose:     Log the cost matrix and the chosen pairs.

    Returns:
        The correlated row pairs of this key, or None when either side is
        missing, empty, or nothing real could be paired.

    Raises:
        conciliacao.erros.ConciliacaoError: on a fatal conversion or matrix
            error. Never caught here.
    """
    efd = _extrair(chave, "EFD", linhas_efd, valores_efd)
    if efd is None:
        return None
    nfe = _extrair(chave, "NFE", linhas_nfe, valores_nfe)
    if nfe is None:
        return None

    linhas_a, valores_a = efd
    linhas_b, valores_b = nfe

    atribuicao = atribuicoes_munkres(valores_a, valores_b, verbose=verbose)
    return reprojetar(chave, linhas_a, linhas_b, atribuicao)


def correlacionar_chaves(
    agrupado: pl.DataFrame,
    max_workers: int | None = None,
    verbose: bool = False,
) -> list[list[LinhasCorrelacionadas] | None]:
    """Correlate every key of the joined grouped table in parallel.

    Args:
        agrupado:    Output of juntar_grupos(): one row per (period, key) with
                     the EFD and NF-e row-number and value lists.
        max_workers: Thread pool size; None lets the executor decide.
        verbose:     Log the cost matrix and pairs of every key.

    Returns:
        One entry per row of ``agrupado``, in the same order.
    """
    colunas = [
        CHAVE_AGRUPADA,
        coluna(Lado.EFD, "count_lines"),
        VALORES_EFD,
        coluna(Lado.NFE, "count_lines"),
        VALORES_NFE,
    ]
    linhas = agrupado.select(colunas).iter_rows()

    def _correlacionar(linha: tuple[object, ...]) -> list[LinhasCorrelacionadas] | None:
        chave, linhas_efd, valores_efd, linhas_nfe, valores_nfe = linha
        return correlacionar_chave(chave, linhas_efd, valores_efd, linhas_nfe, valores_nfe, verbose=verbose)

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(_correlacionar, linhas))
