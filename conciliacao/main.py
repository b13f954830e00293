# conciliacao/main.py
#
# Batch orchestrator: reads the EFD and NF-e extracts, correlates their items
# per document key and writes the reconciled and consolidated tables.
#
# Design decisions:
#   - run_pipeline is the single entry point. It takes a ConciliacaoConfig and
#     returns the paths written, keyed by output name, so tests can inspect
#     the results without guessing file names.
#   - The orchestration follows a strict dependency order:
#       1. Validate completude of both extracts
#       2. Parse + validate both extracts (in parallel)
#       3. Group by key, join the groups, correlate every key
#       4. Join the extracts back through the correlation table
#       5. Verify amounts, resolve special regimes
#       6. Filter (period, credit operations), consolidate
#       7. Write Parquet and/or CSV
#   - Each step logs progress to stdout. No structured logging framework is
#     used because the batch is a single offline run, not a service.
#   - Fatal errors (ConciliacaoError subclasses) propagate and abort the run
#     before anything is written.
#
# Invariant: no output file is written unless every step completed.
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import polars as pl

from conciliacao.config import ConciliacaoConfig, load_config
from conciliacao.filtros import aplicar_filtro, filtrar_periodo, remover_colunas_nulas
from conciliacao.log import log
from conciliacao.matching.correlacao import correlacionar_chaves
from conciliacao.output.completude import validar_entradas
from conciliacao.output.escrita import write_csv, write_parquet
from conciliacao.sources.efd.parse import parse_efd
from conciliacao.sources.efd.validate import validate_efd
from conciliacao.sources.nfe.parse import parse_nfe
from conciliacao.sources.nfe.validate import validate_nfe
from conciliacao.transform.agrupar import (
    agrupar_efd,
    agrupar_nfe,
    juntar_grupos,
    relatar_chaves_multiplos_periodos,
)
from conciliacao.transform.consolidacao import consolidar_natureza
from conciliacao.transform.montagem import juntar_correlacoes, tabela_de_correlacao
from conciliacao.transform.regimes_fiscais import adicionar_regimes
from conciliacao.transform.verificacao import resumo_verificacao, verificar_valores

ITENS_DE_DOCS_FISCAIS = "df_itens_de_docs_fiscais_result"
CONSOLIDACAO_NATUREZA = "df_consolidacao_natureza_da_bcalc"


def run_pipeline(config: ConciliacaoConfig) -> dict[str, Path]:
    """Execute the full reconciliation batch.

    Args:
        config: Batch configuration with input paths, delimiters and options.

    Returns:
        Paths written, keyed by "<output name>.<extension>", e.g.
        "df_itens_de_docs_fiscais_result.parquet".

    Raises:
        conciliacao.erros.EntradaIncompletaError: if an extract is missing,
            empty or lacks a required column.
        conciliacao.erros.ConciliacaoError: on any other fatal error of the
            correlation core.
    """
    # ---- Validate inputs ----
    log("Validating input extracts...")
    validar_entradas(config)

    # ---- Parse + validate ----
    # Both extracts are independent; Polars CSV parsing releases the GIL.
    log("Parsing EFD and NFE extracts in parallel...")
    with ThreadPoolExecutor(max_workers=2) as pool:
        efd_future = pool.submit(
            lambda: validate_efd(parse_efd(config.efd_path, config.delimitador_efd, config.casas_decimais))
        )
        nfe_future = pool.submit(
            lambda: validate_nfe(parse_nfe(config.nfe_path, config.delimitador_nfe, config.casas_decimais))
        )
    efd_df = efd_future.result()
    log(f"  Parsed EFD: {len(efd_df):,} rows")
    nfe_df = nfe_future.result()
    log(f"  Parsed NFE: {len(nfe_df):,} rows")

    # ---- Group and correlate ----
    log("Grouping items by document key...")
    efd_agrupado = agrupar_efd(efd_df)
    nfe_agrupado = agrupar_nfe(nfe_df)
    multiplos = relatar_chaves_multiplos_periodos(efd_agrupado)
    if not multiplos.is_empty():
        log(f"  {len(multiplos):,} keys booked in more than one apuração period")
    agrupado = juntar_grupos(efd_agrupado, nfe_agrupado)
    log(f"  EFD keys: {len(efd_agrupado):,} | NFE keys: {len(nfe_agrupado):,} | on both sides: {len(agrupado):,}")

    log("Correlating items per key...")
    correlacoes = correlacionar_chaves(agrupado, max_workers=config.max_workers, verbose=config.verbose)
    tabela = tabela_de_correlacao(correlacoes)
    log(f"  Correlated pairs: {len(tabela):,}")

    # ---- Join back and annotate ----
    log("Joining extracts through the correlation table...")
    resultado = juntar_correlacoes(efd_df, nfe_df, tabela)
    resultado = verificar_valores(resultado, config.tolerancia)
    log(f"  Verification summary:\n{resumo_verificacao(resultado)}")
    resultado = adicionar_regimes(resultado)

    # ---- Filter and consolidate ----
    resultado = filtrar_periodo(resultado, config.periodo_inicial, config.periodo_final)
    resultado = aplicar_filtro(resultado, config.operacoes_de_creditos)
    log("Consolidating by contributor, period and natureza...")
    consolidacao = consolidar_natureza(resultado, config.casas_decimais)
    log(f"  Consolidation: {len(consolidacao):,} rows")

    if config.remover_colunas_nulas:
        resultado = remover_colunas_nulas(resultado)

    # ---- Write outputs ----
    log("Writing outputs...")
    escritos = _escrever(
        {ITENS_DE_DOCS_FISCAIS: resultado, CONSOLIDACAO_NATUREZA: consolidacao},
        config,
    )
    for caminho in escritos.values():
        log(f"  Written: {caminho}")
    log("Done.")
    return escritos


def _escrever(tabelas: dict[str, pl.DataFrame], config: ConciliacaoConfig) -> dict[str, Path]:
    """Write every table in the formats enabled by the configuration."""
    escritos: dict[str, Path] = {}
    for nome, df in tabelas.items():
        if config.escrever_parquet:
            caminho = config.output_dir / f"{nome}.parquet"
            escritos[caminho.name] = write_parquet(df, caminho)
        if config.escrever_csv:
            caminho = config.output_dir / f"{nome}.csv"
            escritos[caminho.name] = write_csv(df, caminho, config.delimitador_saida)
    return escritos


def main() -> None:
    """Console entry point: load the configuration from the environment and run."""
    run_pipeline(load_config())


if __name__ == "__main__":
    main()
