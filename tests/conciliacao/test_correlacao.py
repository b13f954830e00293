# tests/conciliacao/test_correlacao.py
#
# Tests for the per-key correlation: reprojection to physical row numbers,
# degenerate keys and the parallel run over all keys.
from __future__ import annotations

import math

import polars as pl
import pytest

from conciliacao.colunas import CHAVE_AGRUPADA, VALORES_EFD, VALORES_NFE
from conciliacao.erros import ConversaoNumericaError
from conciliacao.matching.correlacao import (
    LinhasCorrelacionadas,
    correlacionar_chave,
    correlacionar_chaves,
    reprojetar,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_agrupado(linhas: list[dict]) -> pl.DataFrame:
    """Build a grouped table shaped like the output of juntar_grupos()."""
    return pl.DataFrame(
        {
            CHAVE_AGRUPADA: [linha["chave"] for linha in linhas],
            "Linhas EFD": pl.Series([linha["linhas_efd"] for linha in linhas], dtype=pl.List(pl.UInt64)),
            VALORES_EFD: pl.Series([linha["valores_efd"] for linha in linhas], dtype=pl.List(pl.Float64)),
            "Linhas NFE": pl.Series([linha["linhas_nfe"] for linha in linhas], dtype=pl.List(pl.UInt64)),
            VALORES_NFE: pl.Series([linha["valores_nfe"] for linha in linhas], dtype=pl.List(pl.Float64)),
        }
    )


# ---------------------------------------------------------------------------
# reprojetar
# ---------------------------------------------------------------------------


def test_reprojeta_indices_para_linhas_fisicas() -> None:
    """Row 30 maps to a padding column and produces no tuple."""
    result = reprojetar("k", [10, 20, 30], [7, 8], [1, 0, 2])

    assert result == [
        LinhasCorrelacionadas("k", 10, 8),
        LinhasCorrelacionadas("k", 20, 7),
    ]


def test_reprojeta_ignorando_linhas_de_padding(capsys: pytest.CaptureFixture[str]) -> None:
    """Padding rows (beyond side A) are skipped with a warning."""
    result = reprojetar("k", [4], [1, 2, 3], [2, 0, 1])

    assert result == [LinhasCorrelacionadas("k", 4, 3)]
    assert "2 assignment(s) without counterpart" in capsys.readouterr().err


def test_reprojeta_sem_pares_reais_retorna_none() -> None:
    assert reprojetar("k", [], [], [0]) is None


# ---------------------------------------------------------------------------
# correlacionar_chave
# ---------------------------------------------------------------------------


def test_correlaciona_itens_de_uma_chave() -> None:
    result = correlacionar_chave("k", [100, 101], [10.0, 250.5], [7, 8], [250.5, 10.0])

    assert sorted(result) == [
        LinhasCorrelacionadas("k", 100, 8),
        LinhasCorrelacionadas("k", 101, 7),
    ]


def test_chave_sem_lado_nfe_retorna_none(capsys: pytest.CaptureFixture[str]) -> None:
    """A key on one side only is not an error."""
    assert correlacionar_chave("k", [1, 2], [10.0, 20.0], None, None) is None
    assert "no NFE items" in capsys.readouterr().err


def test_chave_sem_lado_efd_retorna_none() -> None:
    assert correlacionar_chave("k", [], [], [1], [10.0]) is None


def test_valores_nulos_sao_descartados_com_aviso(capsys: pytest.CaptureFixture[str]) -> None:
    """Rows with a missing value are dropped; the others are still paired."""
    result = correlacionar_chave("k", [1, 2, 3], [10.0, None, 30.0], [5, 6], [30.0, 10.0])

    assert sorted(result) == [
        LinhasCorrelacionadas("k", 1, 6),
        LinhasCorrelacionadas("k", 3, 5),
    ]
    assert "1 EFD item(s) with missing value dropped" in capsys.readouterr().err


def test_nan_e_tratado_como_ausente() -> None:
    result = correlacionar_chave("k", [1, 2], [math.nan, 5.0], [9], [5.0])
    assert result == [LinhasCorrelacionadas("k", 2, 9)]


def test_lado_todo_nulo_retorna_none(capsys: pytest.CaptureFixture[str]) -> None:
    assert correlacionar_chave("k", [1], [10.0], [5, 6], [None, None]) is None
    assert "no NFE value left" in capsys.readouterr().err


def test_listas_desalinhadas_retornam_none() -> None:
    assert correlacionar_chave("k", [1, 2], [10.0], [5], [10.0]) is None


def test_valor_nao_numerico_e_fatal() -> None:
    """Type errors are not absorbed at the key level."""
    with pytest.raises(ConversaoNumericaError):
        correlacionar_chave("k", [1], ["dez"], [5], [10.0])


# ---------------------------------------------------------------------------
# correlacionar_chaves
# ---------------------------------------------------------------------------


def test_resultado_alinhado_com_as_chaves() -> None:
    """One entry per grouped row, in input order; degenerate keys give None."""
    agrupado = _make_agrupado(
        [
            {"chave": "A", "linhas_efd": [0, 1], "valores_efd": [10.0, 20.0], "linhas_nfe": [5, 6], "valores_nfe": [20.0, 10.0]},
            {"chave": "B", "linhas_efd": [2], "valores_efd": [None], "linhas_nfe": [7], "valores_nfe": [3.0]},
            {"chave": "C", "linhas_efd": [3], "valores_efd": [3.0], "linhas_nfe": [8], "valores_nfe": [3.0]},
        ]
    )

    result = correlacionar_chaves(agrupado, max_workers=2)

    assert len(result) == 3
    assert sorted(result[0]) == [
        LinhasCorrelacionadas("A", 0, 6),
        LinhasCorrelacionadas("A", 1, 5),
    ]
    assert result[1] is None
    assert result[2] == [LinhasCorrelacionadas("C", 3, 8)]


def test_execucao_paralela_e_deterministica() -> None:
    linhas = [
        {
            "chave": f"K{i}",
            "linhas_efd": [10 * i, 10 * i + 1, 10 * i + 2],
            "valores_efd": [1.0 + i, 2.5, 99.9],
            "linhas_nfe": [10 * i + 5, 10 * i + 6],
            "valores_nfe": [2.5, 1.0 + i],
        }
        for i in range(20)
    ]
    agrupado = _make_agrupado(linhas)

    primeira = correlacionar_chaves(agrupado, max_workers=4)
    segunda = correlacionar_chaves(agrupado, max_workers=1)

    assert primeira == segunda
    assert all(len(correlacoes) == 2 for correlacoes in primeira)


def test_tabela_vazia_retorna_lista_vazia() -> None:
    assert correlacionar_chaves(_make_agrupado([])) == []
