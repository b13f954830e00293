# conciliacao/log.py
#
# Shared logger with elapsed time for the reconciliation batch.
#
# Design decisions:
#   - log() reports progress to stdout; warn() reports recoverable per-key
#     conditions (missing side, dropped nulls, padding pairs) to stderr so the
#     operator can separate them from the normal progress stream.
#   - No external dependencies: plain stdout/stderr with flush for immediate
#     visibility. The batch is a single offline run, not a service.
#   - Thread-safe enough for the per-key worker pool: each call issues a
#     single write of one complete line.
from __future__ import annotations

import sys
import time

_start = time.monotonic()


def _prefixo() -> str:
    elapsed = time.monotonic() - _start
    minutes, seconds = divmod(int(elapsed), 60)
    return f"[conciliacao {minutes:02d}:{seconds:02d}]"


def log(message: str) -> None:
    """Write a timestamped log line to stdout."""
    sys.stdout.write(f"{_prefixo()} {message}\n")
    sys.stdout.flush()


def warn(message: str) -> None:
    """Write a timestamped warning line to stderr."""
    sys.stderr.write(f"{_prefixo()} WARNING: {message}\n")
    sys.stderr.flush()
