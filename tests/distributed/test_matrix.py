"""Tests for DistributedMatrix arithmetic and the dense bridge."""

from __future__ import annotations

import numpy as np
import pytest

from core.errors import DimensionMismatch
from core.protocols import KeyedCollection
from core.types import MatrixEntry
from distributed.matrix import DistributedMatrix


def _random_sparse(rng: np.random.Generator, shape: tuple[int, int], density: float = 0.5):
    arr = rng.standard_normal(shape)
    arr[rng.random(shape) >= density] = 0.0
    return arr


class TestDenseBridge:
    """from_dense / to_dense / from_entries."""

    def test_round_trip(self) -> None:
        arr = np.array([[1.0, 0.0, 2.0], [0.0, 0.0, -3.0]])
        mat = DistributedMatrix.from_dense(arr, num_partitions=3)
        assert mat.shape == (2, 3)
        assert mat.nnz() == 3
        np.testing.assert_array_equal(mat.to_dense(), arr)

    def test_from_dense_vector_is_column(self) -> None:
        mat = DistributedMatrix.from_dense(np.array([0.0, 5.0, 0.0]))
        assert mat.shape == (3, 1)
        assert mat.entries.collect() == [MatrixEntry(1, 0, 5.0)]

    def test_from_dense_rejects_3d(self) -> None:
        with pytest.raises(ValueError, match="1D or 2D"):
            DistributedMatrix.from_dense(np.zeros((2, 2, 2)))

    def test_to_dense_sums_duplicates(self) -> None:
        mat = DistributedMatrix.from_entries([(0, 0, 1.0), (0, 0, 2.5), (1, 1, 4.0)], 2, 2)
        np.testing.assert_array_equal(mat.to_dense(), [[3.5, 0.0], [0.0, 4.0]])

    def test_to_dense_explicit_shape(self) -> None:
        mat = DistributedMatrix.from_entries([(1, 0, 2.0)], 2, 1)
        np.testing.assert_array_equal(mat.to_dense(3, 2), [[0, 0], [2, 0], [0, 0]])

    def test_to_dense_of_empty(self) -> None:
        mat = DistributedMatrix.from_entries([], 2, 3)
        np.testing.assert_array_equal(mat.to_dense(), np.zeros((2, 3)))

    def test_from_entries_out_of_range(self) -> None:
        with pytest.raises(DimensionMismatch, match="outside the declared shape"):
            DistributedMatrix.from_entries([(2, 0, 1.0)], 2, 2)

    def test_negative_dimensions_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            DistributedMatrix.from_entries([], -1, 2)


class TestMultiply:
    """Join-and-reduce matrix product."""

    def test_matches_numpy(self) -> None:
        rng = np.random.default_rng(0)
        a = _random_sparse(rng, (6, 4))
        b = _random_sparse(rng, (4, 3))
        product = DistributedMatrix.from_dense(a).multiply(DistributedMatrix.from_dense(b))
        assert product.shape == (6, 3)
        np.testing.assert_allclose(product.to_dense(), a @ b)

    def test_dimension_mismatch(self) -> None:
        a = DistributedMatrix.from_dense(np.ones((2, 3)))
        b = DistributedMatrix.from_dense(np.ones((2, 3)))
        with pytest.raises(DimensionMismatch, match="inner dimensions"):
            a.multiply(b)

    def test_one_entry_per_output_cell(self) -> None:
        a = DistributedMatrix.from_dense(np.ones((3, 5)))
        b = DistributedMatrix.from_dense(np.ones((5, 2)))
        cells = [(e.row, e.col) for e in a.multiply(b).entries.collect()]
        assert len(cells) == len(set(cells)) == 6

    def test_gram_of_transpose(self) -> None:
        rng = np.random.default_rng(1)
        x = _random_sparse(rng, (8, 3), density=0.7)
        mat = DistributedMatrix.from_dense(x)
        gram = mat.transpose().multiply(mat).to_dense()
        np.testing.assert_allclose(gram, x.T @ x)

    def test_empty_operand_gives_zero(self) -> None:
        a = DistributedMatrix.from_entries([], 2, 2)
        b = DistributedMatrix.from_dense(np.eye(2))
        np.testing.assert_array_equal(a.multiply(b).to_dense(), np.zeros((2, 2)))


class TestAdd:
    """Union-and-reduce addition."""

    def test_add_and_subtract(self) -> None:
        rng = np.random.default_rng(2)
        a = _random_sparse(rng, (4, 4))
        b = _random_sparse(rng, (4, 4))
        da, db = DistributedMatrix.from_dense(a), DistributedMatrix.from_dense(b)
        np.testing.assert_allclose(da.add(db).to_dense(), a + b)
        np.testing.assert_allclose(da.add(db, subtract=True).to_dense(), a - b)

    def test_subtract_entry_only_in_right(self) -> None:
        a = DistributedMatrix.from_entries([(0, 0, 1.0)], 2, 2)
        b = DistributedMatrix.from_entries([(1, 1, 3.0)], 2, 2)
        np.testing.assert_array_equal(
            a.add(b, subtract=True).to_dense(), [[1.0, 0.0], [0.0, -3.0]]
        )

    def test_subtract_self_is_zero(self) -> None:
        a = DistributedMatrix.from_dense(np.arange(6.0).reshape(2, 3))
        np.testing.assert_array_equal(a.add(a, subtract=True).to_dense(), np.zeros((2, 3)))

    def test_add_is_associative(self) -> None:
        rng = np.random.default_rng(3)
        a, b, c = (DistributedMatrix.from_dense(_random_sparse(rng, (3, 3))) for _ in range(3))
        np.testing.assert_allclose(a.add(b).add(c).to_dense(), a.add(b.add(c)).to_dense())

    def test_add_merges_duplicates(self) -> None:
        a = DistributedMatrix.from_entries([(0, 1, 1.0), (0, 1, 1.0)], 1, 2)
        b = DistributedMatrix.from_entries([(0, 1, 0.5)], 1, 2)
        summed = a.add(b)
        assert summed.entries.collect() == [MatrixEntry(0, 1, 2.5)]

    def test_shape_mismatch(self) -> None:
        a = DistributedMatrix.from_dense(np.ones((2, 2)))
        b = DistributedMatrix.from_dense(np.ones((2, 3)))
        with pytest.raises(DimensionMismatch, match="Cannot add"):
            a.add(b)


class TestReshaping:
    """shift, transpose, scale, union, canonicalize."""

    def test_shift_default_shape(self) -> None:
        mat = DistributedMatrix.from_entries([(0, 0, 1.0), (1, 2, 2.0)], 2, 3)
        moved = mat.shift(2, 3)
        assert moved.shape == (4, 6)
        assert sorted(moved.entries.collect()) == [MatrixEntry(2, 3, 1.0), MatrixEntry(3, 5, 2.0)]

    def test_shift_explicit_shape_and_negative(self) -> None:
        mat = DistributedMatrix.from_entries([(3, 3, 1.0)], 4, 4)
        moved = mat.shift(-3, -2, num_rows=1, num_cols=2)
        assert moved.shape == (1, 2)
        np.testing.assert_array_equal(moved.to_dense(), [[0.0, 1.0]])

    def test_shifted_blocks_form_block_diagonal(self) -> None:
        block = np.array([[1.0, 2.0], [3.0, 4.0]])
        mat = DistributedMatrix.from_dense(block)
        stacked = mat.shift(0, 0, num_rows=4, num_cols=4).union(mat.shift(2, 2))
        expected = np.zeros((4, 4))
        expected[:2, :2] = block
        expected[2:, 2:] = block
        assert stacked.shape == (4, 4)
        np.testing.assert_array_equal(stacked.to_dense(), expected)

    def test_transpose_and_scale(self) -> None:
        arr = np.array([[1.0, 0.0, 2.0]])
        mat = DistributedMatrix.from_dense(arr)
        assert mat.transpose().shape == (3, 1)
        np.testing.assert_array_equal(mat.transpose().to_dense(), arr.T)
        np.testing.assert_array_equal(mat.scale(-2.0).to_dense(), -2.0 * arr)

    def test_canonicalize_and_squared_norm(self) -> None:
        mat = DistributedMatrix.from_entries([(0, 0, 1.0), (0, 0, 2.0), (1, 0, -2.0)], 2, 1)
        canon = mat.canonicalize()
        assert canon.nnz() == 2
        np.testing.assert_array_equal(canon.to_dense(), mat.to_dense())
        assert mat.squared_norm() == pytest.approx(9.0 + 4.0)

    def test_immutability(self) -> None:
        mat = DistributedMatrix.from_dense(np.eye(2))
        before = mat.entries.collect()
        mat.add(mat)
        mat.multiply(mat)
        mat.shift(1, 1)
        assert mat.entries.collect() == before

    def test_shift_out_of_declared_shape(self) -> None:
        mat = DistributedMatrix.from_entries([(0, 1, 1.0)], 2, 2)
        with pytest.raises(DimensionMismatch, match="outside the declared shape"):
            mat.shift(-1, 0)
        with pytest.raises(DimensionMismatch, match="outside the declared shape"):
            mat.shift(0, 0, num_rows=2, num_cols=1)
        with pytest.raises(DimensionMismatch, match="outside the declared shape"):
            mat.shift(2, 0, num_rows=2, num_cols=2)

    def test_results_are_keyed_collections(self) -> None:
        mat = DistributedMatrix.from_dense(np.array([[1.0, 2.0], [0.0, 3.0]]))
        results = [
            mat,
            mat.multiply(mat),
            mat.add(mat, subtract=True),
            mat.shift(1, 1),
            mat.transpose(),
            mat.canonicalize(),
        ]
        for result in results:
            assert isinstance(result.entries, KeyedCollection)
