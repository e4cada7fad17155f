"""Tests for error kinds, RNG helpers, logging and the collection protocol."""

from __future__ import annotations

import numpy as np
import pytest

from core.errors import DimensionMismatch, InvalidSampleSize, MalformedInput
from core.logging import log, timed, warn
from core.protocols import KeyedCollection
from core.rng import make_rng
from distributed.collection import PartitionedCollection


@pytest.mark.parametrize("exc_type", [DimensionMismatch, InvalidSampleSize, MalformedInput])
def test_errors_are_value_errors(exc_type: type[Exception]) -> None:
    with pytest.raises(ValueError, match="boom"):
        raise exc_type("boom")


def test_make_rng_is_reproducible() -> None:
    a = make_rng(7).integers(0, 1000, size=5)
    b = make_rng(7).integers(0, 1000, size=5)
    np.testing.assert_array_equal(a, b)


def test_make_rng_passes_generator_through() -> None:
    rng = np.random.default_rng(0)
    assert make_rng(rng) is rng
    assert isinstance(make_rng(None), np.random.Generator)


def test_log_and_warn_prefix(capsys: pytest.CaptureFixture[str]) -> None:
    log("hello", prefix="Test")
    warn("careful")
    out = capsys.readouterr().out.splitlines()
    assert out == ["[Test] hello", "[CA-SFISTA] WARNING: careful"]


def test_timed_reports_section(capsys: pytest.CaptureFixture[str]) -> None:
    with timed("Loop 1"):
        pass
    out = capsys.readouterr().out
    assert out.startswith("[CA-SFISTA] Code section Loop 1 took ")
    assert out.rstrip().endswith("milliseconds to run")


def test_timed_reports_on_error(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(RuntimeError):
        with timed("Broken"):
            raise RuntimeError("fail")
    assert "Code section Broken took" in capsys.readouterr().out


def test_partitioned_collection_satisfies_protocol() -> None:
    assert isinstance(PartitionedCollection.parallelize([1, 2, 3]), KeyedCollection)
