# conciliacao/config.py
#
# Batch configuration loaded from environment variables.
#
# Design decisions:
#   - Uses a frozen dataclass because the batch is a standalone offline process;
#     the configuration is built once at start-up and passed down explicitly.
#   - The two input extracts have no default: the batch must refuse to run
#     without them instead of silently reading a stale file.
#   - Delimiters default to the formats the extracts are exported in: the EFD
#     bookkeeping extract uses '|', the NF-e/CT-e item extract uses ';'.
#   - Periods are given as yyyymm integers (e.g. 202301). None means open.
#   - The output directory defaults to conciliacao/data/output relative to this
#     file's directory so the batch works out of the box after a fresh checkout.
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

_PACKAGE_DIR = Path(__file__).parent

_TRUE_VALUES = frozenset({"1", "true", "yes", "sim", "s", "y"})


@dataclass(frozen=True)
class ConciliacaoConfig:
    """Immutable batch configuration.

    Invariants:
      - efd_path / nfe_path are always set (enforced by load_config).
      - Every delimiter is exactly one character.
      - tolerancia >= 0; casas_decimais and max_workers are positive.
      - periodo_inicial <= periodo_final when both are set.
    """

    efd_path: Path
    nfe_path: Path
    output_dir: Path = _PACKAGE_DIR / "data" / "output"
    delimitador_efd: str = "|"
    delimitador_nfe: str = ";"
    delimitador_saida: str = ";"
    tolerancia: float = 0.05
    casas_decimais: int = 2
    max_workers: int | None = None
    periodo_inicial: int | None = None
    periodo_final: int | None = None
    operacoes_de_creditos: bool = False
    escrever_csv: bool = True
    escrever_parquet: bool = True
    remover_colunas_nulas: bool = False
    verbose: bool = False


def _bool_env(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _delimitador_env(name: str, default: str) -> str:
    value = os.environ.get(name, default)
    if len(value) != 1:
        raise ValueError(f"{name} must be a single character, got {value!r}.")
    return value


def _periodo_env(name: str) -> int | None:
    """Parse a yyyymm period; None when the variable is unset or blank."""
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    if len(raw) != 6 or not raw.isdigit():
        raise ValueError(f"{name} must use the yyyymm format, got {raw!r}.")
    mes = int(raw[4:])
    if not 1 <= mes <= 12:
        raise ValueError(f"{name} has an invalid month: {raw!r}.")
    return int(raw)


def load_config() -> ConciliacaoConfig:
    """Build ConciliacaoConfig from environment variables.

    Raises:
        ValueError: if an input path is missing or any value is out of range.
            The message names the offending variable.
    """
    efd_raw = os.environ.get("CONCILIACAO_EFD_PATH")
    nfe_raw = os.environ.get("CONCILIACAO_NFE_PATH")
    if not efd_raw or not nfe_raw:
        raise ValueError(
            "CONCILIACAO_EFD_PATH and CONCILIACAO_NFE_PATH environment variables are required. "
            "See .env.example for instructions."
        )

    output_dir = Path(os.environ.get("CONCILIACAO_OUTPUT_DIR", str(_PACKAGE_DIR / "data" / "output")))

    tolerancia = float(os.environ.get("CONCILIACAO_TOLERANCIA", "0.05"))
    if tolerancia < 0:
        raise ValueError(f"CONCILIACAO_TOLERANCIA must be >= 0, got {tolerancia}.")

    casas_decimais = int(os.environ.get("CONCILIACAO_CASAS_DECIMAIS", "2"))
    if casas_decimais < 1:
        raise ValueError(f"CONCILIACAO_CASAS_DECIMAIS must be positive, got {casas_decimais}.")

    max_workers_raw = os.environ.get("CONCILIACAO_MAX_WORKERS", "").strip()
    max_workers = int(max_workers_raw) if max_workers_raw else None
    if max_workers is not None and max_workers < 1:
        raise ValueError(f"CONCILIACAO_MAX_WORKERS must be positive, got {max_workers}.")

    periodo_inicial = _periodo_env("CONCILIACAO_PERIODO_INICIAL")
    periodo_final = _periodo_env("CONCILIACAO_PERIODO_FINAL")
    if periodo_inicial is not None and periodo_final is not None and periodo_inicial > periodo_final:
        raise ValueError(
            f"CONCILIACAO_PERIODO_INICIAL ({periodo_inicial}) is after "
            f"CONCILIACAO_PERIODO_FINAL ({periodo_final})."
        )

    return ConciliacaoConfig(
        efd_path=Path(efd_raw),
        nfe_path=Path(nfe_raw),
        output_dir=output_dir,
        delimitador_efd=_delimitador_env("DELIMITER_INPUT_1", "|"),
        delimitador_nfe=_delimitador_env("DELIMITER_INPUT_2", ";"),
        delimitador_saida=_delimitador_env("DELIMITER_OUTPUT", ";"),
        tolerancia=tolerancia,
        casas_decimais=casas_decimais,
        max_workers=max_workers,
        periodo_inicial=periodo_inicial,
        periodo_final=periodo_final,
        operacoes_de_creditos=_bool_env("CONCILIACAO_OPERACOES_DE_CREDITOS", False),
        escrever_csv=_bool_env("CONCILIACAO_ESCREVER_CSV", True),
        escrever_parquet=_bool_env("CONCILIACAO_ESCREVER_PARQUET", True),
        remover_colunas_nulas=_bool_env("CONCILIACAO_REMOVER_COLUNAS_NULAS", False),
        verbose=_bool_env("CONCILIACAO_VERBOSE", False),
    )
