# tests/conciliacao/test_agrupar.py
#
# Tests for grouping both extracts by document key.
from __future__ import annotations

import polars as pl

from conciliacao.colunas import CHAVE_AGRUPADA, VALORES_EFD, VALORES_NFE, Lado, coluna
from conciliacao.transform.agrupar import (
    PERIODOS,
    SOMA_DOS_VALORES,
    agrupar_efd,
    agrupar_nfe,
    juntar_grupos,
    relatar_chaves_multiplos_periodos,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_efd(pa: list, chaves: list, valores: list) -> pl.DataFrame:
    return pl.DataFrame(
        {
            coluna(Lado.EFD, "count_lines"): pl.Series(range(len(chaves)), dtype=pl.UInt64),
            coluna(Lado.EFD, "pa"): pl.Series(pa, dtype=pl.Utf8),
            coluna(Lado.EFD, "chave"): pl.Series(chaves, dtype=pl.Utf8),
            coluna(Lado.EFD, "valor_item"): pl.Series(valores, dtype=pl.Float64),
        }
    )


def _make_nfe(origens: list, chaves: list, valores: list) -> pl.DataFrame:
    return pl.DataFrame(
        {
            coluna(Lado.NFE, "count_lines"): pl.Series(range(len(chaves)), dtype=pl.UInt64),
            coluna(Lado.NFE, "origem"): pl.Series(origens, dtype=pl.Utf8),
            coluna(Lado.NFE, "chave"): pl.Series(chaves, dtype=pl.Utf8),
            coluna(Lado.NFE, "valor_item"): pl.Series(valores, dtype=pl.Float64),
        }
    )


# ---------------------------------------------------------------------------
# EFD
# ---------------------------------------------------------------------------


def test_agrupa_efd_por_periodo_e_chave() -> None:
    efd = _make_efd(
        ["01/2023", "01/2023", "02/2023"],
        ["K1", "K1", "K1"],
        [10.0, 20.0, 30.0],
    )

    result = agrupar_efd(efd)

    assert result.columns == [coluna(Lado.EFD, "pa"), CHAVE_AGRUPADA, "Linhas EFD", VALORES_EFD]
    assert result[CHAVE_AGRUPADA].to_list() == ["K1", "K1"]
    assert result["Linhas EFD"].to_list() == [[0, 1], [2]]
    assert result[VALORES_EFD].to_list() == [[10.0, 20.0], [30.0]]


def test_agrupa_efd_descarta_chave_valor_ou_periodo_nulos() -> None:
    efd = _make_efd(
        ["01/2023", "01/2023", None, "01/2023"],
        ["K1", None, "K2", "K3"],
        [10.0, 5.0, 7.0, None],
    )

    result = agrupar_efd(efd)

    assert result[CHAVE_AGRUPADA].to_list() == ["K1"]


def test_agrupa_efd_na_ordem_de_aparicao() -> None:
    efd = _make_efd(["01/2023"] * 3, ["K9", "K1", "K9"], [1.0, 2.0, 3.0])

    result = agrupar_efd(efd)

    assert result[CHAVE_AGRUPADA].to_list() == ["K9", "K1"]
    assert result["Linhas EFD"].to_list() == [[0, 2], [1]]


def test_relata_chaves_em_mais_de_um_periodo() -> None:
    efd = _make_efd(
        ["01/2023", "01/2023", "02/2023", "01/2023"],
        ["K1", "K1", "K1", "K2"],
        [10.0, 20.0, 30.0, 1.0],
    )

    result = relatar_chaves_multiplos_periodos(agrupar_efd(efd))

    assert result[CHAVE_AGRUPADA].to_list() == ["K1"]
    assert result[PERIODOS].to_list() == [2]
    assert result[SOMA_DOS_VALORES].to_list() == [60.0]


def test_relatorio_vazio_quando_cada_chave_tem_um_periodo() -> None:
    efd = _make_efd(["01/2023", "02/2023"], ["K1", "K2"], [1.0, 2.0])
    assert relatar_chaves_multiplos_periodos(agrupar_efd(efd)).is_empty()


# ---------------------------------------------------------------------------
# NF-e
# ---------------------------------------------------------------------------


def test_agrupa_nfe_por_chave() -> None:
    nfe = _make_nfe(["NFe Item"] * 3, ["K1", "K2", "K1"], [10.0, 20.0, 30.0])

    result = agrupar_nfe(nfe)

    assert result.columns == [CHAVE_AGRUPADA, "Linhas NFE", VALORES_NFE]
    assert result[CHAVE_AGRUPADA].to_list() == ["K1", "K2"]
    assert result["Linhas NFE"].to_list() == [[0, 2], [1]]


def test_itens_nfe_exigem_valor_positivo() -> None:
    """NF-e items need a positive value; CT-e items are kept whatever their value."""
    nfe = _make_nfe(
        ["NFe Item", "NFe Item", "CTe", "nfe item"],
        ["K1", "K1", "K2", "K3"],
        [10.0, 0.0, 0.0, -5.0],
    )

    result = agrupar_nfe(nfe)

    assert result[CHAVE_AGRUPADA].to_list() == ["K1", "K2"]
    assert result["Linhas NFE"].to_list() == [[0], [2]]


def test_agrupa_nfe_sem_coluna_de_origem() -> None:
    nfe = _make_nfe(["x"], ["K1"], [0.0]).drop(coluna(Lado.NFE, "origem"))
    assert agrupar_nfe(nfe)[CHAVE_AGRUPADA].to_list() == ["K1"]


# ---------------------------------------------------------------------------
# juntar_grupos
# ---------------------------------------------------------------------------


def test_junta_apenas_chaves_dos_dois_lados_na_ordem_da_efd() -> None:
    efd = agrupar_efd(_make_efd(["01/2023"] * 3, ["K3", "K2", "K1"], [1.0, 2.0, 3.0]))
    nfe = agrupar_nfe(_make_nfe(["NFe"] * 3, ["K1", "K2", "K9"], [3.0, 2.0, 9.0]))

    result = juntar_grupos(efd, nfe)

    assert result[CHAVE_AGRUPADA].to_list() == ["K2", "K1"]
    assert {"Linhas EFD", VALORES_EFD, "Linhas NFE", VALORES_NFE} <= set(result.columns)
