# conciliacao/matching/custos.py
#
# Cost matrix for pairing EFD item values with NF-e item values, and the
# zero-cost padding that makes it square for the assignment solver.
#
# Design decisions:
#   - Two-tier cost. gap is the largest magnitude seen on either side. A pair
#     whose difference is below 1.0 costs delta * (1 + gap); any other pair
#     costs delta + gap. Every non-near pair is therefore dearer than every
#     near pair, so the solver pairs equal amounts first and only then falls
#     back to nearest-value pairing.
#   - Costs are scaled by 100 and truncated toward zero, which keeps two
#     decimal digits of resolution in an integer matrix.
#   - The whole m x n matrix is computed in one numpy broadcast; rows are
#     independent of each other.
#   - Padding cells cost 0, so padding never competes with a real pairing.
#
# Invariants:
#   - matriz_de_custos returns non-negative Python ints that fit in int64
#     (CustoForaDoLimiteError otherwise).
#   - matriz_quadrada never mutates its input.
from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from conciliacao.erros import CustoForaDoLimiteError, MatrizMalformadaError

ESCALA = 100

MAX_INT64 = 2**63 - 1


def matriz_de_custos(
    valores_a: Sequence[float] | np.ndarray,
    valores_b: Sequence[float] | np.ndarray,
) -> list[list[int]]:
    """Build the m x n integer cost matrix between two value slices.

    Args:
        valores_a: Side-A (EFD) values, one per matrix row. Must be finite.
        valores_b: Side-B (NF-e) values, one per matrix column. Must be finite.

    Returns:
        Row-major list of lists, ``len(valores_a)`` rows of
        ``len(valores_b)`` ints.

    Raises:
        MatrizMalformadaError: if either slice is empty.
        CustoForaDoLimiteError: if a scaled cost exceeds the int64 range.
    """
    a = np.asarray(valores_a, dtype=np.float64)
    b = np.asarray(valores_b, dtype=np.float64)
    if a.size == 0 or b.size == 0:
        raise MatrizMalformadaError(int(a.size), int(b.size), "empty slice")

    gap = float(max(np.abs(a).max(), np.abs(b).max()))

    delta = np.abs(a[:, np.newaxis] - b[np.newaxis, :])
    delta = np.where(delta < 1.0, delta + gap * delta, delta + gap)
    escalado = np.trunc(delta * ESCALA)

    maior = float(escalado.max())
    if maior > MAX_INT64:
        raise CustoForaDoLimiteError(maior)

    return [[int(custo) for custo in linha] for linha in escalado]


def matriz_quadrada(matriz: list[list[int]]) -> list[list[int]]:
    """Pad a rectangular cost matrix with zeros until it is square.

    Rows < columns: zero rows are appended. Columns < rows: zeros are appended
    to every row. Square input is returned as a copy.

    Raises:
        MatrizMalformadaError: if the matrix is empty or its rows differ in length.
    """
    linhas = len(matriz)
    colunas = len(matriz[0]) if linhas else 0
    if linhas == 0 or colunas == 0:
        raise MatrizMalformadaError(linhas, colunas, "empty matrix")
    if any(len(linha) != colunas for linha in matriz):
        raise MatrizMalformadaError(linhas, colunas, "rows of different lengths")

    if linhas < colunas:
        return [list(linha) for linha in matriz] + [[0] * colunas for _ in range(colunas - linhas)]
    if colunas < linhas:
        return [list(linha) + [0] * (linhas - colunas) for linha in matriz]
    return [list(linha) for linha in matriz]
