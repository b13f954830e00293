# conciliacao/colunas.py
#
# Column registry for the two extracts and the annotation columns between them.
#
# Design decisions:
#   - Column headers of the extracts are long Portuguese labels. Code refers to
#     them by (lado, apelido), e.g. (Lado.EFD, "chave"), and resolves the label
#     through the registry, so a header rename touches one line.
#   - The registry is an immutable object built once at import (REGISTRO) and
#     passed or imported explicitly. No lazily-mutated global state.
#   - Duplicates are rejected at construction time: two columns with the same
#     (lado, apelido), or two columns with the same label, would make the
#     final joined table ambiguous.
#   - dtype is the target Polars type used by the parsers' non-strict casts.
#     Columns of the extracts not listed here are kept as strings.
#
# Invariants:
#   - Labels are unique across all sides, so the joined table never needs
#     suffixes for registered columns.
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import polars as pl


class Lado(Enum):
    """Origin of a column in the final joined table."""

    EFD = "efd"
    MEIO = "meio"
    NFE = "nfe"


@dataclass(frozen=True)
class Coluna:
    """One registered column: origin side, short nickname, header label, dtype."""

    lado: Lado
    apelido: str
    nome: str
    dtype: type[pl.DataType] | pl.DataType


class RegistroDeColunas:
    """Immutable lookup of column labels by (lado, apelido).

    Raises:
        ValueError: at construction, on a duplicated (lado, apelido) pair or a
            duplicated label.
    """

    def __init__(self, colunas: tuple[Coluna, ...]) -> None:
        por_apelido: dict[tuple[Lado, str], Coluna] = {}
        nomes: set[str] = set()
        for coluna in colunas:
            chave = (coluna.lado, coluna.apelido)
            if chave in por_apelido:
                raise ValueError(f"Duplicated column nickname: {coluna.lado.name}/{coluna.apelido}")
            if coluna.nome in nomes:
                raise ValueError(f"Duplicated column label: {coluna.nome!r}")
            por_apelido[chave] = coluna
            nomes.add(coluna.nome)
        self._colunas = colunas
        self._por_apelido = por_apelido

    def coluna(self, lado: Lado, apelido: str) -> Coluna:
        try:
            return self._por_apelido[(lado, apelido)]
        except KeyError:
            raise KeyError(f"Unknown column: {lado.name}/{apelido}") from None

    def nome(self, lado: Lado, apelido: str) -> str:
        """Return the header label registered for (lado, apelido)."""
        return self.coluna(lado, apelido).nome

    def do_lado(self, lado: Lado) -> tuple[Coluna, ...]:
        return tuple(c for c in self._colunas if c.lado is lado)

    def __len__(self) -> int:
        return len(self._colunas)


_EFD = Lado.EFD
_MEIO = Lado.MEIO
_NFE = Lado.NFE

_COLUNAS: tuple[Coluna, ...] = (
    # ---- EFD Contribuições (side A) ----
    Coluna(_EFD, "count_lines", "Linhas EFD", pl.UInt64),
    Coluna(_EFD, "efd_arquivo", "Arquivo da EFD Contribuições", pl.Utf8),
    Coluna(_EFD, "efd_linha", "Nº da Linha da EFD", pl.UInt64),
    Coluna(_EFD, "contribuinte_cnpj", "CNPJ dos Estabelecimentos do Contribuinte", pl.Utf8),
    Coluna(_EFD, "contribuinte_nome", "Nome do Contribuinte", pl.Utf8),
    Coluna(_EFD, "pa", "Período de Apuração", pl.Utf8),
    Coluna(_EFD, "pa_ano", "Ano do Período de Apuração", pl.Int64),
    Coluna(_EFD, "pa_trim", "Trimestre do Período de Apuração", pl.Int64),
    Coluna(_EFD, "pa_mes", "Mês do Período de Apuração", pl.Int64),
    Coluna(_EFD, "tipo_operacao", "Tipo de Operação", pl.Int64),
    Coluna(_EFD, "origem", "Indicador de Origem", pl.Int64),
    Coluna(_EFD, "cod_cred", "Código do Tipo de Crédito", pl.Int64),
    Coluna(_EFD, "tipo_cred", "Tipo de Crédito", pl.Int64),
    Coluna(_EFD, "registro", "Registro", pl.Utf8),
    Coluna(_EFD, "cst", "Código de Situação Tributária (CST)", pl.Int64),
    Coluna(_EFD, "cfop", "Código Fiscal de Operações e Prestações (CFOP)", pl.Int64),
    Coluna(_EFD, "natureza", "Natureza da Base de Cálculo dos Créditos", pl.Int64),
    Coluna(_EFD, "cnpj_particip", "CNPJ do Participante", pl.Utf8),
    Coluna(_EFD, "nome_particip", "Nome do Participante", pl.Utf8),
    Coluna(_EFD, "num_doc", "Nº do Documento Fiscal", pl.Int64),
    Coluna(_EFD, "chave", "Chave do Documento", pl.Utf8),
    Coluna(_EFD, "doc_modelo", "Modelo do Documento Fiscal", pl.Utf8),
    Coluna(_EFD, "item_num", "Nº do Item do Documento Fiscal", pl.Int64),
    Coluna(_EFD, "item_desc", "Descrição do Item", pl.Utf8),
    Coluna(_EFD, "ncm", "Código NCM", pl.Utf8),
    Coluna(_EFD, "data_emissao", "Data da Emissão do Documento Fiscal", pl.Date),
    Coluna(_EFD, "valor_item", "Valor Total do Item", pl.Float64),
    Coluna(_EFD, "valor_bc", "Valor da Base de Cálculo das Contribuições", pl.Float64),
    Coluna(_EFD, "aliq_pis", "Alíquota de PIS/PASEP (em percentual)", pl.Float64),
    Coluna(_EFD, "aliq_cof", "Alíquota de COFINS (em percentual)", pl.Float64),
    Coluna(_EFD, "valor_pis", "Valor de PIS/PASEP", pl.Float64),
    Coluna(_EFD, "valor_cof", "Valor de COFINS", pl.Float64),
    Coluna(_EFD, "valor_bc_icms", "Valor da Base de Cálculo de ICMS", pl.Float64),
    Coluna(_EFD, "aliq_icms", "Alíquota de ICMS (em percentual)", pl.Float64),
    Coluna(_EFD, "valor_icms", "Valor de ICMS", pl.Float64),
    # ---- Annotation columns, filled by the verification and rule stages ----
    Coluna(_MEIO, "verificar", "Verificação dos Valores: EFD x Docs Fiscais", pl.Utf8),
    Coluna(_MEIO, "glosar", "Glosar Base de Cálculo de PIS/PASEP e COFINS", pl.Utf8),
    # ---- NF-e / CT-e items (side B) ----
    Coluna(_NFE, "count_lines", "Linhas NFE", pl.UInt64),
    Coluna(_NFE, "contribuinte_cnpj", "CNPJ do Contribuinte : NF Item (Todos)", pl.Utf8),
    Coluna(_NFE, "contribuinte_nome", "Nome do Contribuinte : NF Item (Todos)", pl.Utf8),
    Coluna(_NFE, "entrada_ou_saida", "Entrada/Saída : NF (Todos)", pl.Utf8),
    Coluna(_NFE, "participante_cnpj", "CPF/CNPJ do Participante : NF (Todos)", pl.Utf8),
    Coluna(_NFE, "participante_nome", "Nome do Participante : NF (Todos)", pl.Utf8),
    Coluna(_NFE, "regime_tributario", "CRT : NF (Todos)", pl.Int64),
    Coluna(_NFE, "cancelada", "Cancelada : NF (Todos)", pl.Utf8),
    Coluna(_NFE, "origem", "Registro de Origem do Item : NF Item (Todos)", pl.Utf8),
    Coluna(_NFE, "natureza", "Natureza da Base de Cálculo do Crédito Descrição : NF Item (Todos)", pl.Utf8),
    Coluna(_NFE, "modelo", "Modelo - Descrição : NF Item (Todos)", pl.Utf8),
    Coluna(_NFE, "num_doc", "Número da Nota : NF Item (Todos)", pl.Int64),
    Coluna(_NFE, "chave", "Chave da Nota Fiscal Eletrônica : NF Item (Todos)", pl.Utf8),
    Coluna(_NFE, "dia_emissao", "Dia da Emissão : NF Item (Todos)", pl.Date),
    Coluna(_NFE, "numero_item", "Número do Item : NF Item (Todos)", pl.Int64),
    Coluna(_NFE, "cfop", "Código CFOP : NF Item (Todos)", pl.Int64),
    Coluna(_NFE, "descricao_cfop", "Descrição CFOP : NF Item (Todos)", pl.Utf8),
    Coluna(_NFE, "descricao_mercadoria", "Descrição da Mercadoria/Serviço : NF Item (Todos)", pl.Utf8),
    Coluna(_NFE, "ncm", "Código NCM : NF Item (Todos)", pl.Utf8),
    Coluna(_NFE, "descricao_ncm", "Descrição NCM : NF Item (Todos)", pl.Utf8),
    Coluna(_NFE, "valor_total", "Valor Total : NF (Todos) SOMA", pl.Float64),
    Coluna(_NFE, "valor_item", "Valor da Nota Proporcional : NF Item (Todos) SOMA", pl.Float64),
    Coluna(_NFE, "valor_desconto", "Valor dos Descontos : NF Item (Todos) SOMA", pl.Float64),
    Coluna(_NFE, "aliq_pis", "PIS: Alíquota ad valorem - Atributo : NF Item (Todos)", pl.Float64),
    Coluna(_NFE, "aliq_cof", "COFINS: Alíquota ad valorem - Atributo : NF Item (Todos)", pl.Float64),
    Coluna(_NFE, "valor_pis", "PIS: Valor do Tributo : NF Item (Todos) SOMA", pl.Float64),
    Coluna(_NFE, "valor_cof", "COFINS: Valor do Tributo : NF Item (Todos) SOMA", pl.Float64),
    Coluna(_NFE, "valor_ipi", "IPI: Valor do Tributo : NF Item (Todos) SOMA", pl.Float64),
    Coluna(_NFE, "aliq_icms", "ICMS: Alíquota : NF Item (Todos) NOISE OR", pl.Float64),
    Coluna(_NFE, "valor_bc_icms", "ICMS: Base de Cálculo : NF Item (Todos) SOMA", pl.Float64),
    Coluna(_NFE, "valor_icms", "ICMS: Valor do Tributo : NF Item (Todos) SOMA", pl.Float64),
)

REGISTRO = RegistroDeColunas(_COLUNAS)


def coluna(lado: Lado, apelido: str) -> str:
    """Shorthand for ``REGISTRO.nome(lado, apelido)``."""
    return REGISTRO.nome(lado, apelido)


# Columns of the grouped-by-key tables handed to the matcher.
CHAVE_AGRUPADA = "chave"
VALORES_EFD = "Valores dos Itens da Nota Fiscal EFD"
VALORES_NFE = "Valores dos Itens da Nota Fiscal NFE"
