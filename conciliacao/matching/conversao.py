# conciliacao/matching/conversao.py
#
# Strict conversion of monetary slices to float64 before cost computation.
#
# Design decisions:
#   - Conversion failure is fatal (ConversaoNumericaError). A value that is not
#     a finite number here means the loader let something through that it
#     should not have; coercing it would corrupt every cost derived from it.
#   - bool is rejected even though it subclasses int: a boolean in a monetary
#     column is a schema error, not the number 0 or 1.
#   - Missing values (None/NaN) are the orchestrator's business: it drops them
#     with a warning before calling this module. Any that still arrive here
#     are treated as contract violations.
from __future__ import annotations

import math
import numbers
from collections.abc import Sequence
from decimal import Decimal

import numpy as np
import polars as pl

from conciliacao.erros import ConversaoNumericaError


def _converter(valor: object, posicao: int) -> float:
    tipo = type(valor).__name__
    if isinstance(valor, bool) or not isinstance(valor, (numbers.Real, Decimal)):
        raise ConversaoNumericaError(tipo, "float64", f"value {valor!r} at position {posicao} is not a number")
    try:
        convertido = float(valor)
    except (OverflowError, ValueError) as exc:
        raise ConversaoNumericaError(tipo, "float64", f"value {valor!r} at position {posicao}: {exc}") from exc
    if not math.isfinite(convertido):
        raise ConversaoNumericaError(tipo, "float64", f"value {valor!r} at position {posicao} is not finite")
    return convertido


def para_float(valores: Sequence[object] | np.ndarray | pl.Series) -> np.ndarray:
    """Convert a slice of numeric values to a float64 array.

    Args:
        valores: ints, floats, Decimals or numpy scalars, as a list, tuple,
            numpy array or Polars Series.

    Returns:
        1-D float64 array with the same length and order as ``valores``.

    Raises:
        ConversaoNumericaError: if any element is not a finite real number.
    """
    if isinstance(valores, pl.Series):
        valores = valores.to_list()
    elif isinstance(valores, np.ndarray):
        valores = valores.tolist()

    convertidos = np.empty(len(valores), dtype=np.float64)
    for posicao, valor in enumerate(valores):
        convertidos[posicao] = _converter(valor, posicao)
    return convertidos
