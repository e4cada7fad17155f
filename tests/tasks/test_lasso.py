"""Tests for LASSO problem helpers."""

from __future__ import annotations

import numpy as np
import pytest

from core.errors import DimensionMismatch
from distributed.matrix import DistributedMatrix
from tasks.lasso import (
    LassoProblem,
    lasso_objective,
    least_squares_solution,
    make_sparse_regression,
    relative_error,
)


def _dense_objective(x: np.ndarray, y: np.ndarray, w: np.ndarray, lam: float) -> float:
    r = x @ w - y
    return float(np.sum(r * r)) / (2 * x.shape[0]) + lam * float(np.abs(w).sum())


class TestObjective:
    def test_matches_dense_formula(self) -> None:
        rng = np.random.default_rng(0)
        x = rng.standard_normal((15, 4))
        y = rng.standard_normal((15, 1))
        w = rng.standard_normal((4, 1))
        value = lasso_objective(
            DistributedMatrix.from_dense(x), DistributedMatrix.from_dense(y), w, 0.3
        )
        assert value == pytest.approx(_dense_objective(x, y, w, 0.3))

    def test_zero_weights(self) -> None:
        y = np.array([[1.0], [-2.0], [0.0], [3.0]])
        x = np.ones((4, 2))
        value = lasso_objective(
            DistributedMatrix.from_dense(x), DistributedMatrix.from_dense(y), np.zeros((2, 1)), 1.0
        )
        assert value == pytest.approx(14.0 / 8.0)

    def test_dimension_mismatch(self) -> None:
        x = DistributedMatrix.from_dense(np.ones((3, 2)))
        y = DistributedMatrix.from_dense(np.ones((3, 1)))
        with pytest.raises(DimensionMismatch):
            lasso_objective(x, y, np.ones((3, 1)), 0.1)

    def test_problem_wrapper(self) -> None:
        rng = np.random.default_rng(1)
        observations, labels, w_true = make_sparse_regression(n=10, d=3, nnz=2, rng=rng)
        problem = LassoProblem(observations, labels, lam=0.5)
        assert (problem.num_samples, problem.dim) == (10, 3)
        # Noiseless data: only the penalty remains at the true weights
        assert problem.objective(w_true) == pytest.approx(0.5 * np.abs(w_true).sum())

    def test_problem_validation(self) -> None:
        x = DistributedMatrix.from_dense(np.ones((3, 2)))
        with pytest.raises(DimensionMismatch, match="Labels"):
            LassoProblem(x, DistributedMatrix.from_dense(np.ones((2, 1))), lam=0.1)
        with pytest.raises(ValueError, match="lam"):
            LassoProblem(x, DistributedMatrix.from_dense(np.ones((3, 1))), lam=-1.0)


class TestRelativeError:
    def test_relative(self) -> None:
        w_opt = np.array([[3.0], [4.0]])
        assert relative_error(np.array([[3.0], [4.0]]), w_opt) == 0.0
        assert relative_error(np.zeros((2, 1)), w_opt) == pytest.approx(1.0)
        assert relative_error(np.array([[3.0], [4.5]]), w_opt) == pytest.approx(0.1)

    def test_zero_reference_uses_absolute_error(self) -> None:
        assert relative_error(np.array([[3.0], [4.0]]), np.zeros((2, 1))) == pytest.approx(5.0)

    def test_shape_mismatch(self) -> None:
        with pytest.raises(DimensionMismatch, match="Reference optimum"):
            relative_error(np.zeros((2, 1)), np.zeros((3, 1)))


class TestLeastSquares:
    def test_recovers_noiseless_weights(self) -> None:
        rng = np.random.default_rng(2)
        observations, labels, w_true = make_sparse_regression(n=30, d=4, nnz=3, rng=rng)
        w_ls = least_squares_solution(observations, labels)
        assert w_ls.shape == (4, 1)
        np.testing.assert_allclose(w_ls, w_true, atol=1e-8)


class TestMakeSparseRegression:
    def test_shapes_and_support(self) -> None:
        rng = np.random.default_rng(0)
        observations, labels, w_true = make_sparse_regression(
            n=25, d=6, nnz=2, rng=rng, density=0.5, num_partitions=3
        )
        assert observations.shape == (25, 6)
        assert labels.shape == (25, 1)
        assert w_true.shape == (6, 1)
        assert np.count_nonzero(w_true) == 2
        assert np.all(np.abs(w_true[w_true != 0]) >= 1.0)
        assert observations.num_partitions == 3
        assert observations.nnz() < 25 * 6
        np.testing.assert_allclose(
            labels.to_dense(), observations.to_dense() @ w_true, atol=1e-12
        )

    def test_reproducible(self) -> None:
        a = make_sparse_regression(n=5, d=3, nnz=1, rng=np.random.default_rng(9))
        b = make_sparse_regression(n=5, d=3, nnz=1, rng=np.random.default_rng(9))
        np.testing.assert_array_equal(a[0].to_dense(), b[0].to_dense())
        np.testing.assert_array_equal(a[2], b[2])

    @pytest.mark.parametrize(
        ("kwargs", "match"),
        [
            ({"n": 0, "d": 3, "nnz": 1}, "n and d"),
            ({"n": 3, "d": 3, "nnz": 4}, "nnz"),
            ({"n": 3, "d": 3, "nnz": 1, "density": 0.0}, "density"),
        ],
    )
    def test_invalid_arguments(self, kwargs: dict[str, float], match: str) -> None:
        with pytest.raises(ValueError, match=match):
            make_sparse_regression(rng=np.random.default_rng(0), **kwargs)  # type: ignore[arg-type]
