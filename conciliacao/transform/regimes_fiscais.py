# conciliacao/transform/regimes_fiscais.py
#
# Legal basis of special PIS/COFINS regimes by NCM code and item description.
#
# Design decisions:
#   - RegimeFiscal is an enum; each member carries its output column name and
#     a pure base_legal(ncm, descricao) lookup. Adding a regime means adding a
#     member and its table, nothing else.
#   - The lookup runs once per distinct (NCM, description) pair of the batch,
#     not once per row, and the result is joined back. Extracts repeat the same
#     product on thousands of lines.
#   - NCM codes are compared as integers of the dotted code without dots, so
#     '0102.29.00' is 1022900. Tables below are written in that form.
#   - The output reads "NCM 2207.10.00 : <legal basis>", taken from the EFD
#     side first and from the NF-e side otherwise, and only for entrada/saída
#     operations.
#
# Invariants:
#   - base_legal never raises; unknown or unparsable codes yield None.
from __future__ import annotations

import re
from enum import Enum

import polars as pl

from conciliacao.colunas import Lado, coluna
from conciliacao.filtros import operacoes_de_entrada_ou_saida

# ---------------------------------------------------------------------------
# Incidência Monofásica
# ---------------------------------------------------------------------------

_MONOFASICA_EXCECOES: frozenset[int] = frozenset({30039056, 30049046})

_FARMACEUTICOS = "Incidência Monofásica - Lei 10.147/2000, Art. 1º, Inciso I, alínea A (Produtos Farmacêuticos)."
_PERFUMARIA = (
    "Incidência Monofásica - Lei 10.147/2000, Art. 1º, Inciso I, alínea B "
    "(Produtos de Perfumaria ou de Higiene Pessoal)."
)
_ALCOOL = "Incidência Monofásica - Lei 9.718/1998, Art. 5º (Álcool, Inclusive para Fins Carburantes)."
_PNEUS = "Incidência Monofásica - Lei 10.485/2002, Art. 5º (Pneumáticos)."

# (first, last, legal basis), inclusive ranges.
_MONOFASICA: tuple[tuple[int, int, str], ...] = (
    (27101259, 27101259, "Incidência Monofásica - Lei 9.718/1998, Art. 4º, Inciso I (Gasolinas, exceto Gasolina de Aviação)."),
    (27101921, 27101921, "Incidência Monofásica - Lei 9.718/1998, Art. 4º, Inciso II (Óleo Diesel)."),
    (27111910, 27111910, "Incidência Monofásica - Lei 9.718/1998, Art. 4º, Inciso III (Gás Liquefeito de Petróleo - GLP)."),
    (27101911, 27101911, "Incidência Monofásica - Lei 10.560/2002, Art. 2º (Querosene de Aviação)."),
    (38260000, 38260000, "Incidência Monofásica - Lei 11.116/2005, Art. 3º (Biodiesel)."),
    (22071000, 22071099, _ALCOOL),
    (22072010, 22072019, _ALCOOL),
    (22089000, 22089000, _ALCOOL),
    (30010000, 30019999, _FARMACEUTICOS),
    (30030000, 30039999, _FARMACEUTICOS),
    (30040000, 30049999, _FARMACEUTICOS),
    (30021010, 30021039, _FARMACEUTICOS),
    (30022010, 30022029, _FARMACEUTICOS),
    (30063010, 30063029, _FARMACEUTICOS),
    (30029020, 30029020, _FARMACEUTICOS),
    (30029092, 30029092, _FARMACEUTICOS),
    (30051010, 30051010, _FARMACEUTICOS),
    (30066000, 30066000, _FARMACEUTICOS),
    (33030000, 33059999, _PERFUMARIA),
    (33070000, 33079999, _PERFUMARIA),
    (34012010, 34012010, _PERFUMARIA),
    (96032100, 96032100, _PERFUMARIA),
    (40110000, 40119999, _PNEUS),
    (40130000, 40139999, _PNEUS),
)

# ---------------------------------------------------------------------------
# Crédito Presumido
# ---------------------------------------------------------------------------

_PRESUMIDO_EXCECOES: frozenset[int] = frozenset({3029000})

_LEITE_IN_NATURA = re.compile(r"Leite (In Natura|Cru)", re.IGNORECASE)

_LEITE = (
    "Crédito Presumido - Decreto 8.533/2015, Art. 4º, Inciso I "
    "(Leite In Natura Utilizado como Insumo - Programa Mais Leite Saudável)."
)
_BOVINOS = "Crédito Presumido - Lei 12.058/2009, Art. 33 (Animais vivos: bovino, ovino ou caprino)."
_SUINOS_AVES = "Crédito Presumido - Lei 12.350/2010, Art. 55 (Animais vivos: Suíno ou Frango)."

_PRESUMIDO: tuple[tuple[int, int, str], ...] = (
    (1020000, 1029999, _BOVINOS),
    (1040000, 1049999, _BOVINOS),
    (1030000, 1039999, _SUINOS_AVES),
    (1050000, 1059999, _SUINOS_AVES),
)


def _procurar(tabela: tuple[tuple[int, int, str], ...], ncm: int) -> str | None:
    for inicio, fim, texto in tabela:
        if inicio <= ncm <= fim:
            return texto
    return None


def base_legal_incidencia_monofasica(ncm: int, descricao: str) -> str | None:
    """Legal basis of single-phase taxation for an NCM code, or None."""
    if ncm in _MONOFASICA_EXCECOES:
        return None
    return _procurar(_MONOFASICA, ncm)


def base_legal_credito_presumido(ncm: int, descricao: str) -> str | None:
    """Legal basis of presumed credit for an NCM code and item description, or None.

    Chapter 04.01 to 04.04 (dairy) qualifies only for raw milk, which is
    recognised from the description.
    """
    if ncm in _PRESUMIDO_EXCECOES:
        return None
    if 4010000 <= ncm <= 4049999:
        return _LEITE if _LEITE_IN_NATURA.search(descricao) else None
    return _procurar(_PRESUMIDO, ncm)


class RegimeFiscal(Enum):
    """Special PIS/COFINS regimes recognised from NCM and description."""

    CREDITO_PRESUMIDO = "Crédito Presumido"
    INCIDENCIA_MONOFASICA = "Incidência Monofásica"

    @property
    def coluna(self) -> str:
        """Name of the output column written by adicionar_regimes()."""
        return self.value

    def base_legal(self, ncm: int, descricao: str) -> str | None:
        if self is RegimeFiscal.CREDITO_PRESUMIDO:
            return base_legal_credito_presumido(ncm, descricao)
        return base_legal_incidencia_monofasica(ncm, descricao)

    def rotulo(self, ncm: str | None, descricao: str | None) -> str | None:
        """Return "NCM <ncm> : <legal basis>" or None."""
        if not ncm:
            return None
        digitos = ncm.replace(".", "").strip()
        if not digitos.isdigit():
            return None
        base = self.base_legal(int(digitos), descricao or "")
        if base is None:
            return None
        return f"NCM {ncm} : {base}"


def _resolver_lado(
    df: pl.DataFrame,
    regime: RegimeFiscal,
    col_ncm: str,
    col_descricao: str,
    alias: str,
) -> pl.Series:
    """Resolve one regime for one side, once per distinct (NCM, description)."""
    if col_ncm not in df.columns:
        return pl.Series(alias, [None] * len(df), dtype=pl.Utf8)

    descricao = pl.col(col_descricao) if col_descricao in df.columns else pl.lit(None)
    # Nulls become "" so they join like any other value.
    pares = df.select(
        pl.col(col_ncm).cast(pl.Utf8).fill_null(""),
        descricao.cast(pl.Utf8).fill_null("").alias(col_descricao),
    )

    distintos = pares.unique(maintain_order=True)
    rotulos = [regime.rotulo(ncm, descricao) for ncm, descricao in distintos.iter_rows()]
    mapa = distintos.with_columns(pl.Series(alias, rotulos, dtype=pl.Utf8))

    resolvido = (
        pares.with_row_index("_ordem")
        .join(mapa, on=[col_ncm, col_descricao], how="left")
        .sort("_ordem")
    )
    return resolvido[alias]


def adicionar_regimes(
    df: pl.DataFrame,
    regimes: tuple[RegimeFiscal, ...] = tuple(RegimeFiscal),
) -> pl.DataFrame:
    """Add one legal-basis column per regime to the joined table.

    Args:
        df:      Output of juntar_correlacoes() (EFD and NF-e columns).
        regimes: Regimes to resolve; all by default.

    Returns:
        ``df`` with one extra Utf8 column per regime (RegimeFiscal.coluna).
    """
    efd_ncm = coluna(Lado.EFD, "ncm")
    efd_descricao = coluna(Lado.EFD, "item_desc")
    nfe_ncm = coluna(Lado.NFE, "ncm")
    nfe_descricao = coluna(Lado.NFE, "descricao_mercadoria")
    tem_operacao = coluna(Lado.EFD, "tipo_operacao") in df.columns

    for regime in regimes:
        lado_a = _resolver_lado(df, regime, efd_ncm, efd_descricao, "_regime_a")
        lado_b = _resolver_lado(df, regime, nfe_ncm, nfe_descricao, "_regime_b")
        df = df.with_columns(lado_a, lado_b)

        valor = pl.coalesce(pl.col("_regime_a"), pl.col("_regime_b"))
        if tem_operacao:
            valor = pl.when(operacoes_de_entrada_ou_saida()).then(valor).otherwise(pl.lit(None, dtype=pl.Utf8))

        df = df.with_columns(valor.alias(regime.coluna)).drop(["_regime_a", "_regime_b"])

    return df
