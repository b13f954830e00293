# conciliacao/output/completude.py
#
# Completude validation: asserts that both input extracts are present and
# carry at least one data row before any work starts.
#
# Design decisions:
#   - Pure guard: reads the files but never writes. Raising is the only side
#     effect.
#   - A file with a header and no data rows counts as missing. Correlating
#     against an empty side would silently produce a table with no NF-e data,
#     which is worse than an explicit failure.
#   - The error message always names the offending extract and its path.
from __future__ import annotations

from pathlib import Path

import polars as pl

from conciliacao.config import ConciliacaoConfig
from conciliacao.erros import EntradaIncompletaError


def _contar_linhas(path: Path, delimitador: str) -> int:
    return (
        pl.scan_csv(path, separator=delimitador, infer_schema_length=0, encoding="utf8-lossy")
        .select(pl.len())
        .collect()
        .item()
    )


def validar_entradas(config: ConciliacaoConfig) -> None:
    """Assert that the EFD and NF-e extracts exist and have data rows.

    Raises:
        EntradaIncompletaError: if an extract is absent or has zero data rows.
            The message names the extract.
    """
    entradas = (
        ("EFD", config.efd_path, config.delimitador_efd),
        ("NFE", config.nfe_path, config.delimitador_nfe),
    )
    for nome, path, delimitador in entradas:
        if not path.exists():
            raise EntradaIncompletaError(f"Missing {nome} extract (expected at {path})")
        if _contar_linhas(path, delimitador) == 0:
            raise EntradaIncompletaError(f"Empty {nome} extract: {path} has no data rows")
