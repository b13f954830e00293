# conciliacao/matching/munkres.py
#
# Minimum-cost assignment (Kuhn-Munkres / Hungarian method) between the items
# of one document key on both sides.
#
# Design decisions:
#   - The solver itself is scipy.optimize.linear_sum_assignment. This module
#     owns what surrounds it: validating the square matrix, composing
#     conversion -> cost matrix -> padding -> solve, and making the result
#     deterministic.
#   - Deterministic padding. Padding cells all cost 0, so any permutation of
#     the padding assignments is equally optimal. After solving, real rows
#     left without a real column receive the padding columns in ascending row
#     order, and padding rows receive the leftover real columns in ascending
#     order. The total cost is unchanged and the same input always yields the
#     same vector.
#   - A malformed matrix is fatal (MatrizMalformadaError): it is an internal
#     invariant violation, not bad user input.
#
# Invariants:
#   - atribuicoes_munkres(a, b) returns a permutation of range(max(len(a), len(b))).
from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import polars as pl
from scipy.optimize import linear_sum_assignment

from conciliacao.erros import MatrizMalformadaError
from conciliacao.log import log
from conciliacao.matching.conversao import para_float
from conciliacao.matching.custos import matriz_de_custos, matriz_quadrada


def _validar(matriz: list[list[int]]) -> np.ndarray:
    """Return the matrix as an int64 array or raise MatrizMalformadaError."""
    n = len(matriz)
    if n == 0:
        raise MatrizMalformadaError(0, 0, "empty matrix")
    for linha in matriz:
        if len(linha) != n:
            raise MatrizMalformadaError(n, len(linha), "matrix is not square")

    try:
        custos = np.array(matriz)
    except (OverflowError, ValueError) as exc:
        raise MatrizMalformadaError(n, n, str(exc)) from exc
    if custos.dtype.kind not in "iu":
        raise MatrizMalformadaError(n, n, f"costs must be int64, got {custos.dtype}")
    if (custos < 0).any():
        raise MatrizMalformadaError(n, n, "negative cost")
    return custos.astype(np.int64)


def _canonizar_padding(atribuicao: list[int], linhas_reais: int, colunas_reais: int) -> list[int]:
    """Reorder zero-cost padding assignments so that they ascend.

    Only assignments touching a padding row or a padding column are moved;
    real-to-real pairs are untouched.
    """
    n = len(atribuicao)
    resultado = list(atribuicao)

    # Real rows assigned to padding columns.
    linhas = [r for r in range(linhas_reais) if resultado[r] >= colunas_reais]
    colunas = sorted(resultado[r] for r in linhas)
    for linha, col in zip(linhas, colunas):
        resultado[linha] = col

    # Padding rows take whatever columns remain, in ascending order.
    linhas = list(range(linhas_reais, n))
    colunas = sorted(resultado[r] for r in linhas)
    for linha, col in zip(linhas, colunas):
        resultado[linha] = col

    return resultado


def resolver_atribuicao(
    matriz: list[list[int]],
    linhas_reais: int | None = None,
    colunas_reais: int | None = None,
) -> tuple[int, list[int]]:
    """Solve the minimum-cost perfect matching of a square cost matrix.

    Args:
        matriz:        Square matrix of non-negative integer costs.
        linhas_reais:  Number of real (non-padding) rows; defaults to all.
        colunas_reais: Number of real (non-padding) columns; defaults to all.

    Returns:
        (custo_total, atribuicao) where atribuicao[row] is the column assigned
        to that row.

    Raises:
        MatrizMalformadaError: if the matrix is empty, not square, not integer
            or has a negative cost.
    """
    custos = _validar(matriz)
    n = custos.shape[0]

    linhas, colunas = linear_sum_assignment(custos)
    atribuicao = [0] * n
    for linha, col in zip(linhas.tolist(), colunas.tolist()):
        atribuicao[linha] = col

    atribuicao = _canonizar_padding(
        atribuicao,
        n if linhas_reais is None else linhas_reais,
        n if colunas_reais is None else colunas_reais,
    )
    custo_total = int(sum(int(custos[linha, col]) for linha, col in enumerate(atribuicao)))
    return custo_total, atribuicao


def _exibir_atribuicoes(
    valores_a: np.ndarray,
    valores_b: np.ndarray,
    matriz: list[list[int]],
    custo_total: int,
    atribuicao: list[int],
) -> None:
    """Log the padded cost matrix and the pairing chosen for each row."""
    n = len(matriz)
    tabela_custos = pl.DataFrame(matriz, schema=[f"col_{j}" for j in range(n)], orient="row")
    log(f"Cost matrix ({len(valores_a)} x {len(valores_b)}, padded to {n} x {n}):\n{tabela_custos}")

    pares = pl.DataFrame(
        {
            "linha": list(range(n)),
            "coluna": atribuicao,
            "valor_a": [float(valores_a[i]) if i < len(valores_a) else None for i in range(n)],
            "valor_b": [float(valores_b[j]) if j < len(valores_b) else None for j in atribuicao],
            "custo": [matriz[i][j] for i, j in enumerate(atribuicao)],
        }
    )
    log(f"Assignments (total cost {custo_total}):\n{pares}")

    soma = int(pares["custo"].sum())
    assert soma == custo_total, f"sum of assigned costs {soma} != solver total {custo_total}"


def atribuicoes_munkres(
    valores_a: Sequence[object] | np.ndarray | pl.Series,
    valores_b: Sequence[object] | np.ndarray | pl.Series,
    verbose: bool = False,
) -> list[int]:
    """Pair side-A values with side-B values at minimum total cost.

    Args:
        valores_a: Side-A values (matrix rows). Non-empty, finite.
        valores_b: Side-B values (matrix columns). Non-empty, finite.
        verbose:   Log the cost matrix and the chosen pairs.

    Returns:
        Assignment vector of length ``max(len(valores_a), len(valores_b))``.
        Entry ``r`` is the column assigned to row ``r``; row indices >=
        len(valores_a) and column indices >= len(valores_b) are padding.

    Raises:
        ConversaoNumericaError: if a value is not a finite number.
        MatrizMalformadaError: if a slice is empty.
        CustoForaDoLimiteError: if a scaled cost exceeds the int64 range.
    """
    a = para_float(valores_a)
    b = para_float(valores_b)

    matriz = matriz_quadrada(matriz_de_custos(a, b))
    custo_total, atribuicao = resolver_atribuicao(matriz, len(a), len(b))

    if verbose:
        _exibir_atribuicoes(a, b, matriz, custo_total, atribuicao)

    return atribuicao
