"""Progress and timing output.

Lines are printed with a bracketed component prefix. When a tqdm progress
bar is active, output goes through tqdm.write so the bar is not broken.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from tqdm.auto import tqdm

__all__ = ["log", "warn", "timed"]


def log(msg: str, *, prefix: str = "CA-SFISTA", use_tqdm: bool = False) -> None:
    line = f"[{prefix}] {msg}"
    if use_tqdm:
        tqdm.write(line)
    else:
        print(line, flush=True)


def warn(msg: str, *, prefix: str = "CA-SFISTA", use_tqdm: bool = False) -> None:
    log(f"WARNING: {msg}", prefix=prefix, use_tqdm=use_tqdm)


@contextmanager
def timed(section: str, *, prefix: str = "CA-SFISTA", use_tqdm: bool = False) -> Iterator[None]:
    """Report the wall-clock time spent inside the block in milliseconds."""
    tick = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - tick) * 1000)
        log(
            f"Code section {section} took {elapsed_ms} milliseconds to run",
            prefix=prefix,
            use_tqdm=use_tqdm,
        )
