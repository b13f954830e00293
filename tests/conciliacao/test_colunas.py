# tests/conciliacao/test_colunas.py
#
# Tests for the column registry.
from __future__ import annotations

import polars as pl
import pytest

from conciliacao.colunas import REGISTRO, Coluna, Lado, RegistroDeColunas, coluna


def test_resolve_rotulos_por_lado_e_apelido() -> None:
    assert coluna(Lado.EFD, "chave") == "Chave do Documento"
    assert coluna(Lado.NFE, "chave") == "Chave da Nota Fiscal Eletrônica : NF Item (Todos)"
    assert coluna(Lado.MEIO, "verificar") == "Verificação dos Valores: EFD x Docs Fiscais"


def test_mesmo_apelido_em_lados_diferentes() -> None:
    assert coluna(Lado.EFD, "valor_item") != coluna(Lado.NFE, "valor_item")


def test_apelido_desconhecido() -> None:
    with pytest.raises(KeyError, match="EFD/inexistente"):
        coluna(Lado.EFD, "inexistente")


def test_rotulos_unicos_em_todo_o_registro() -> None:
    nomes = [c.nome for lado in Lado for c in REGISTRO.do_lado(lado)]
    assert len(nomes) == len(set(nomes)) == len(REGISTRO)


def test_colunas_de_linha_sao_as_primeiras_de_cada_lado() -> None:
    assert REGISTRO.do_lado(Lado.EFD)[0].nome == "Linhas EFD"
    assert REGISTRO.do_lado(Lado.NFE)[0].nome == "Linhas NFE"
    assert REGISTRO.coluna(Lado.EFD, "count_lines").dtype == pl.UInt64


def test_apelido_duplicado_e_rejeitado() -> None:
    with pytest.raises(ValueError, match="nickname"):
        RegistroDeColunas(
            (
                Coluna(Lado.EFD, "x", "Coluna X", pl.Utf8),
                Coluna(Lado.EFD, "x", "Outra Coluna", pl.Utf8),
            )
        )


def test_rotulo_duplicado_e_rejeitado() -> None:
    with pytest.raises(ValueError, match="label"):
        RegistroDeColunas(
            (
                Coluna(Lado.EFD, "x", "Coluna X", pl.Utf8),
                Coluna(Lado.NFE, "y", "Coluna X", pl.Utf8),
            )
        )
