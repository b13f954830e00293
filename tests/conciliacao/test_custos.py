# tests/conciliacao/test_custos.py
#
# Tests for the two-tier cost matrix and the zero-cost padding.
from __future__ import annotations

import pytest

from conciliacao.erros import CustoForaDoLimiteError, MatrizMalformadaError
from conciliacao.matching.custos import matriz_de_custos, matriz_quadrada


def test_custo_de_par_proximo_e_de_par_distante() -> None:
    """gap=3.0: delta 0.5 costs 0.5*(1+3)=2.0; delta 2.0 costs 2.0+3=5.0; both x100."""
    assert matriz_de_custos([1.0], [1.5, 3.0]) == [[200, 500]]


def test_valores_iguais_custam_zero() -> None:
    # gap=7.0; delta 5.0 costs 5 + 7 = 12
    assert matriz_de_custos([2.0, 7.0], [2.0]) == [[0], [1200]]


def test_custo_e_truncado() -> None:
    """0.123 * (1 + 0.123) = 0.138129 -> 13.8129 -> 13."""
    assert matriz_de_custos([0.0], [0.123]) == [[13]]


def test_gap_usa_magnitude_de_valores_negativos() -> None:
    """gap is max |v| over both slices, so -10 sets it to 10."""
    # delta 2.0 -> 2 + 10 = 12
    assert matriz_de_custos([-10.0], [-8.0]) == [[1200]]


def test_qualquer_par_distante_custa_mais_que_qualquer_par_proximo() -> None:
    matriz = matriz_de_custos([100.0, 100.5], [100.9, 250.0])
    proximos = [matriz[0][0], matriz[1][0]]
    distantes = [matriz[0][1], matriz[1][1]]
    assert max(proximos) < min(distantes)


def test_dimensoes_da_matriz() -> None:
    matriz = matriz_de_custos([1.0, 2.0, 3.0], [1.0, 2.0])
    assert len(matriz) == 3
    assert all(len(linha) == 2 for linha in matriz)
    assert all(isinstance(custo, int) for linha in matriz for custo in linha)


def test_fatia_vazia_e_fatal() -> None:
    with pytest.raises(MatrizMalformadaError, match="length 0 and 2"):
        matriz_de_custos([], [1.0, 2.0])


def test_custo_fora_do_limite_int64_e_fatal() -> None:
    """gap=1e17, delta=2e17: (2e17 + 1e17) * 100 = 3e19 > 2**63 - 1."""
    with pytest.raises(CustoForaDoLimiteError) as exc_info:
        matriz_de_custos([1e17], [-1e17])
    assert exc_info.value.value > 2**63 - 1


# ---------------------------------------------------------------------------
# matriz_quadrada
# ---------------------------------------------------------------------------


def test_preenche_linhas_quando_ha_mais_colunas() -> None:
    assert matriz_quadrada([[1, 2, 3]]) == [[1, 2, 3], [0, 0, 0], [0, 0, 0]]


def test_preenche_colunas_quando_ha_mais_linhas() -> None:
    assert matriz_quadrada([[1], [2]]) == [[1, 0], [2, 0]]


def test_matriz_quadrada_retorna_copia() -> None:
    original = [[1, 2], [3, 4]]
    result = matriz_quadrada(original)
    result[0][0] = 99
    assert original == [[1, 2], [3, 4]]


def test_preenchimento_nao_altera_a_entrada() -> None:
    original = [[5, 6, 7]]
    matriz_quadrada(original)
    assert original == [[5, 6, 7]]


def test_matriz_vazia_ou_irregular_e_fatal() -> None:
    with pytest.raises(MatrizMalformadaError):
        matriz_quadrada([])
    with pytest.raises(MatrizMalformadaError, match="different lengths"):
        matriz_quadrada([[1, 2], [3]])
