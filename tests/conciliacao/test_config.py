# tests/conciliacao/test_config.py
#
# Tests for loading the batch configuration from environment variables.
from __future__ import annotations

from pathlib import Path

import pytest

from conciliacao.config import load_config

_VARIAVEIS = (
    "CONCILIACAO_EFD_PATH",
    "CONCILIACAO_NFE_PATH",
    "CONCILIACAO_OUTPUT_DIR",
    "DELIMITER_INPUT_1",
    "DELIMITER_INPUT_2",
    "DELIMITER_OUTPUT",
    "CONCILIACAO_TOLERANCIA",
    "CONCILIACAO_CASAS_DECIMAIS",
    "CONCILIACAO_MAX_WORKERS",
    "CONCILIACAO_PERIODO_INICIAL",
    "CONCILIACAO_PERIODO_FINAL",
    "CONCILIACAO_OPERACOES_DE_CREDITOS",
    "CONCILIACAO_ESCREVER_CSV",
    "CONCILIACAO_ESCREVER_PARQUET",
    "CONCILIACAO_REMOVER_COLUNAS_NULAS",
    "CONCILIACAO_VERBOSE",
)


@pytest.fixture(autouse=True)
def _ambiente_limpo(monkeypatch: pytest.MonkeyPatch) -> None:
    for nome in _VARIAVEIS:
        monkeypatch.delenv(nome, raising=False)
    monkeypatch.setenv("CONCILIACAO_EFD_PATH", "efd.csv")
    monkeypatch.setenv("CONCILIACAO_NFE_PATH", "nfe.csv")


def test_valores_padrao() -> None:
    config = load_config()

    assert config.efd_path == Path("efd.csv")
    assert config.nfe_path == Path("nfe.csv")
    assert config.delimitador_efd == "|"
    assert config.delimitador_nfe == ";"
    assert config.delimitador_saida == ";"
    assert config.tolerancia == 0.05
    assert config.casas_decimais == 2
    assert config.max_workers is None
    assert config.periodo_inicial is None
    assert config.operacoes_de_creditos is False
    assert config.escrever_csv is True
    assert config.escrever_parquet is True
    assert config.output_dir.parts[-2:] == ("data", "output")


def test_caminhos_de_entrada_obrigatorios(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CONCILIACAO_NFE_PATH")
    with pytest.raises(ValueError, match="CONCILIACAO_NFE_PATH"):
        load_config()


def test_valores_do_ambiente(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CONCILIACAO_OUTPUT_DIR", str(tmp_path))
    monkeypatch.setenv("DELIMITER_INPUT_1", ";")
    monkeypatch.setenv("DELIMITER_OUTPUT", "|")
    monkeypatch.setenv("CONCILIACAO_TOLERANCIA", "0.1")
    monkeypatch.setenv("CONCILIACAO_MAX_WORKERS", "4")
    monkeypatch.setenv("CONCILIACAO_PERIODO_INICIAL", "202301")
    monkeypatch.setenv("CONCILIACAO_PERIODO_FINAL", "202312")
    monkeypatch.setenv("CONCILIACAO_OPERACOES_DE_CREDITOS", "sim")
    monkeypatch.setenv("CONCILIACAO_ESCREVER_CSV", "false")

    config = load_config()

    assert config.output_dir == tmp_path
    assert config.delimitador_efd == ";"
    assert config.delimitador_saida == "|"
    assert config.tolerancia == 0.1
    assert config.max_workers == 4
    assert (config.periodo_inicial, config.periodo_final) == (202301, 202312)
    assert config.operacoes_de_creditos is True
    assert config.escrever_csv is False


def test_delimitador_com_mais_de_um_caractere(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DELIMITER_INPUT_2", ";;")
    with pytest.raises(ValueError, match="DELIMITER_INPUT_2"):
        load_config()


@pytest.mark.parametrize("periodo", ["2023", "2023-01", "202313", "abcdef"])
def test_periodo_invalido(monkeypatch: pytest.MonkeyPatch, periodo: str) -> None:
    monkeypatch.setenv("CONCILIACAO_PERIODO_INICIAL", periodo)
    with pytest.raises(ValueError, match="CONCILIACAO_PERIODO_INICIAL"):
        load_config()


def test_periodo_inicial_depois_do_final(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONCILIACAO_PERIODO_INICIAL", "202312")
    monkeypatch.setenv("CONCILIACAO_PERIODO_FINAL", "202301")
    with pytest.raises(ValueError, match="is after"):
        load_config()


def test_tolerancia_negativa(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONCILIACAO_TOLERANCIA", "-0.01")
    with pytest.raises(ValueError, match="CONCILIACAO_TOLERANCIA"):
        load_config()


def test_max_workers_invalido(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONCILIACAO_MAX_WORKERS", "0")
    with pytest.raises(ValueError, match="CONCILIACAO_MAX_WORKERS"):
        load_config()
