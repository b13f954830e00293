# conciliacao/erros.py
#
# Fatal error taxonomy of the correlation engine.
#
# Design decisions:
#   - Every exception here aborts the whole run. They signal that the data
#     contract upstream of the matcher (finite, well-typed, in-range monetary
#     values and well-formed matrices) was broken, which cannot be contained to
#     a single document key.
#   - Recoverable conditions (a key on only one side, all values null, a pair
#     landing on padding) are NOT exceptions: they are logged with warn() and
#     reduce to None for that key.
#   - Each exception keeps the offending inputs as attributes and repeats them
#     in the message so a failed run can be reproduced from the traceback.
from __future__ import annotations


class ConciliacaoError(Exception):
    """Base class for fatal errors raised by the reconciliation core."""


class ConversaoNumericaError(ConciliacaoError):
    """Raised when a value cannot be converted to a finite float.

    Attributes:
        from_type: Python type name of the offending value.
        to_type:   Target representation (always ``"float64"`` today).
        reason:    Human-readable cause, including the offending value.
    """

    def __init__(self, from_type: str, to_type: str, reason: str) -> None:
        self.from_type = from_type
        self.to_type = to_type
        self.reason = reason
        super().__init__(f"Failed to convert {from_type} to {to_type}: {reason}")


class CustoForaDoLimiteError(ConciliacaoError):
    """Raised when a scaled cost does not fit in a signed 64-bit integer."""

    def __init__(self, value: float) -> None:
        self.value = value
        super().__init__(
            f"Scaled cost {value!r} exceeds the signed 64-bit integer range; "
            "check the magnitude of the monetary values."
        )


class MatrizMalformadaError(ConciliacaoError):
    """Raised when a cost matrix cannot be handed to the assignment solver.

    Attributes:
        len_a:  Number of side-A items (matrix rows) involved.
        len_b:  Number of side-B items (matrix columns) involved.
        detalhe: What exactly is wrong with the matrix.
    """

    def __init__(self, len_a: int, len_b: int, detalhe: str = "") -> None:
        self.len_a = len_a
        self.len_b = len_b
        self.detalhe = detalhe
        message = f"Malformed cost matrix for slices of length {len_a} and {len_b}"
        if detalhe:
            message = f"{message}: {detalhe}"
        super().__init__(message)


class EntradaIncompletaError(ConciliacaoError):
    """Raised when an input extract is missing, empty, or lacks a required column.

    The message always names the offending file or column.
    """
