"""Tests for the statistics module."""

import numpy as np
import pytest

from fda_permtest.statistics import (
    batch_statistics,
    center_rows,
    membership_matrix,
    pooled_totals,
    studentized_statistic,
)

# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _make_groups(n=25, m1=5, m2=7, shift=0.0, seed=42):
    rng = np.random.default_rng(seed)
    x = np.linspace(0, 1, n)
    base = np.sin(2 * np.pi * x)[:, np.newaxis]
    g1 = base + rng.standard_normal((n, m1))
    g2 = base + shift + rng.standard_normal((n, m2)) * 1.5
    return g1, g2


def _reference(g1, g2, use_tbar):
    """Direct two-pass computation of T / Tbar."""
    m1, m2 = g1.shape[1], g2.shape[1]
    diff2 = (g1.mean(axis=1) - g2.mean(axis=1)) ** 2
    # (SXX - SX²/m) · m/(m-1) equals m times the unbiased variance.
    ss1 = m1 * g1.var(axis=1, ddof=1)
    ss2 = m2 * g2.var(axis=1, ddof=1)
    if use_tbar:
        return diff2.sum() / (ss1 + ss2).sum()
    return np.mean(diff2 / (ss1 + ss2))


def _evaluate(g1, g2, subset, use_tbar):
    pooled = np.hstack([g1, g2])
    total_sum, total_sumsq = pooled_totals(pooled)
    return studentized_statistic(
        pooled, subset, g1.shape[1], g2.shape[1], use_tbar, total_sum, total_sumsq
    )


# ------------------------------------------------------------------ #
# Single-subset evaluation
# ------------------------------------------------------------------ #


class TestStudentizedStatistic:
    @pytest.mark.parametrize("use_tbar", [False, True])
    def test_matches_two_pass_reference(self, use_tbar):
        g1, g2 = _make_groups()
        value = _evaluate(g1, g2, np.arange(5), use_tbar)
        assert value == pytest.approx(_reference(g1, g2, use_tbar), rel=1e-10)

    @pytest.mark.parametrize("use_tbar", [False, True])
    def test_permuted_subset_matches_reference(self, use_tbar):
        g1, g2 = _make_groups()
        pooled = np.hstack([g1, g2])
        subset = np.array([1, 4, 6, 8, 11])
        rest = np.setdiff1d(np.arange(12), subset)
        value = _evaluate(g1, g2, subset, use_tbar)
        expected = _reference(pooled[:, subset], pooled[:, rest], use_tbar)
        assert value == pytest.approx(expected, rel=1e-10)

    @pytest.mark.parametrize("use_tbar", [False, True])
    def test_symmetric_in_groups(self, use_tbar):
        g1, g2 = _make_groups()
        forward = _evaluate(g1, g2, np.arange(5), use_tbar)
        backward = _evaluate(g2, g1, np.arange(7), use_tbar)
        assert forward == pytest.approx(backward, rel=1e-10)

    def test_complement_gives_same_value_for_equal_sizes(self):
        g1, g2 = _make_groups(m1=4, m2=4)
        subset = np.array([0, 2, 5, 7])
        complement = np.array([1, 3, 4, 6])
        assert _evaluate(g1, g2, subset, False) == pytest.approx(
            _evaluate(g1, g2, complement, False), rel=1e-10
        )

    def test_order_within_subset_irrelevant(self):
        g1, g2 = _make_groups()
        a = _evaluate(g1, g2, np.array([0, 3, 5, 8, 9]), False)
        b = _evaluate(g1, g2, np.array([9, 5, 0, 8, 3]), False)
        assert a == pytest.approx(b, rel=1e-12)

    def test_shift_increases_statistic(self):
        g1, g2 = _make_groups(shift=0.0)
        h1, h2 = _make_groups(shift=3.0)
        assert _evaluate(h1, h2, np.arange(5), False) > _evaluate(
            g1, g2, np.arange(5), False
        )

    def test_nonnegative(self):
        g1, g2 = _make_groups(seed=7)
        assert _evaluate(g1, g2, np.arange(5), False) >= 0
        assert _evaluate(g1, g2, np.arange(5), True) >= 0


class TestZeroSpreadPoints:
    """Grid points where every curve takes the same value."""

    @staticmethod
    def _with_constant_rows(seed=3):
        rng = np.random.default_rng(seed)
        g1 = rng.integers(0, 10, size=(8, 4)).astype(float)
        g2 = rng.integers(0, 10, size=(8, 5)).astype(float)
        # Rows 0 and 5 are constant across all nine curves.
        g1[[0, 5], :] = 4.0
        g2[[0, 5], :] = 4.0
        return g1, g2

    def test_t_excludes_zero_denominator_points(self):
        g1, g2 = self._with_constant_rows()
        keep = [1, 2, 3, 4, 6, 7]
        full = _evaluate(g1, g2, np.arange(4), False)
        reduced = _evaluate(g1[keep], g2[keep], np.arange(4), False)
        assert np.isfinite(full)
        assert full == pytest.approx(reduced, rel=1e-12)

    def test_tbar_keeps_all_points_in_aggregate(self):
        g1, g2 = self._with_constant_rows()
        keep = [1, 2, 3, 4, 6, 7]
        full = _evaluate(g1, g2, np.arange(4), True)
        # Constant rows add zero to both integrals.
        reduced = _evaluate(g1[keep], g2[keep], np.arange(4), True)
        assert full == pytest.approx(reduced, rel=1e-12)

    @pytest.mark.parametrize("use_tbar", [False, True])
    def test_all_points_constant_gives_nan(self, use_tbar):
        g1 = np.ones((6, 3))
        g2 = np.ones((6, 4))
        assert np.isnan(_evaluate(g1, g2, np.arange(3), use_tbar))

    @staticmethod
    def _float_constant_rows(value, seed=11):
        rng = np.random.default_rng(seed)
        g1 = rng.standard_normal((8, 4))
        g2 = rng.standard_normal((8, 5))
        g1[[0, 5], :] = value
        g2[[0, 5], :] = value
        return g1, g2

    @pytest.mark.parametrize("value", [0.1, 0.3, 1.1, -2.7])
    def test_t_excludes_inexact_constant_points(self, value):
        # SXX - SX²/m is not exactly zero for these values.
        g1, g2 = self._float_constant_rows(value)
        keep = [1, 2, 3, 4, 6, 7]
        full = _evaluate(g1, g2, np.arange(4), False)
        reduced = _evaluate(g1[keep], g2[keep], np.arange(4), False)
        assert full == pytest.approx(reduced, rel=1e-12)

    @pytest.mark.parametrize("value", [0.1, 0.3, 1.1])
    @pytest.mark.parametrize("use_tbar", [False, True])
    def test_all_points_inexact_constant_gives_nan(self, value, use_tbar):
        g1 = np.full((6, 3), value)
        g2 = np.full((6, 4), value)
        assert np.isnan(_evaluate(g1, g2, np.arange(3), use_tbar))

    @pytest.mark.parametrize("value", [0.1, 0.3, 1.1])
    def test_batch_matches_reduced_grid(self, value):
        g1, g2 = self._float_constant_rows(value)
        keep = [1, 2, 3, 4, 6, 7]
        rng = np.random.default_rng(5)
        indices = np.vstack(
            [np.arange(4)] + [np.sort(rng.permutation(9)[:4]) for _ in range(30)]
        )

        def run(pooled):
            total_sum, total_sumsq = pooled_totals(pooled)
            return batch_statistics(
                pooled, indices, 4, 5, False, total_sum, total_sumsq,
                backend="numpy",
            )

        full = run(np.hstack([g1, g2]))
        reduced = run(np.hstack([g1[keep], g2[keep]]))
        np.testing.assert_allclose(full, reduced, rtol=1e-12)


class TestCenterRows:
    def test_constant_rows_become_exact_zeros(self):
        pooled = np.array([[0.1] * 5, [0.3] * 5, [1.0, 2.0, 3.0, 4.0, 5.0]])
        centered = center_rows(pooled)
        np.testing.assert_array_equal(centered[:2], 0.0)
        np.testing.assert_array_equal(centered[2], [-2.0, -1.0, 0.0, 1.0, 2.0])

    @pytest.mark.parametrize("use_tbar", [False, True])
    def test_statistic_unchanged(self, use_tbar):
        g1, g2 = _make_groups(shift=0.4)
        pooled = np.hstack([g1, g2]) + 1e3
        centered = center_rows(pooled)
        raw = studentized_statistic(
            pooled, np.arange(5), 5, 7, use_tbar, *pooled_totals(pooled)
        )
        shifted = studentized_statistic(
            centered, np.arange(5), 5, 7, use_tbar, *pooled_totals(centered)
        )
        assert shifted == pytest.approx(raw, rel=1e-8)
        expected = _reference(g1 + 1e3, g2 + 1e3, use_tbar)
        assert shifted == pytest.approx(expected, rel=1e-10)


# ------------------------------------------------------------------ #
# Batch evaluation
# ------------------------------------------------------------------ #


class TestPooledTotals:
    def test_values(self):
        pooled = np.array([[1.0, 2.0, 3.0], [0.0, -1.0, 4.0]])
        total_sum, total_sumsq = pooled_totals(pooled)
        np.testing.assert_allclose(total_sum, [6.0, 3.0])
        np.testing.assert_allclose(total_sumsq, [14.0, 17.0])


class TestMembershipMatrix:
    def test_columns_mark_subset_members(self):
        indices = np.array([[0, 1], [1, 3], [2, 3]])
        membership = membership_matrix(indices, 4)
        expected = np.array(
            [
                [1, 0, 0],
                [1, 1, 0],
                [0, 0, 1],
                [0, 1, 1],
            ],
            dtype=float,
        )
        np.testing.assert_array_equal(membership, expected)


class TestBatchStatistics:
    @staticmethod
    def _loop(pooled, indices, m1, m2, use_tbar):
        total_sum, total_sumsq = pooled_totals(pooled)
        return np.array(
            [
                studentized_statistic(
                    pooled, row, m1, m2, use_tbar, total_sum, total_sumsq
                )
                for row in indices
            ]
        )

    @pytest.mark.parametrize("use_tbar", [False, True])
    def test_matches_single_subset_loop(self, use_tbar):
        g1, g2 = _make_groups()
        pooled = np.hstack([g1, g2])
        rng = np.random.default_rng(0)
        indices = np.vstack(
            [np.arange(5)] + [np.sort(rng.permutation(12)[:5]) for _ in range(40)]
        )
        total_sum, total_sumsq = pooled_totals(pooled)
        batch = batch_statistics(
            pooled, indices, 5, 7, use_tbar, total_sum, total_sumsq,
            backend="numpy", chunk_size=7,
        )
        np.testing.assert_allclose(
            batch, self._loop(pooled, indices, 5, 7, use_tbar), rtol=1e-10
        )

    def test_threaded_chunks_preserve_order(self):
        g1, g2 = _make_groups()
        pooled = np.hstack([g1, g2])
        rng = np.random.default_rng(1)
        indices = np.vstack(
            [np.arange(5)] + [np.sort(rng.permutation(12)[:5]) for _ in range(100)]
        )
        total_sum, total_sumsq = pooled_totals(pooled)
        serial = batch_statistics(
            pooled, indices, 5, 7, False, total_sum, total_sumsq,
            backend="numpy", n_jobs=1, chunk_size=9,
        )
        threaded = batch_statistics(
            pooled, indices, 5, 7, False, total_sum, total_sumsq,
            backend="numpy", n_jobs=2, chunk_size=9,
        )
        np.testing.assert_array_equal(serial, threaded)

    def test_zero_spread_points_excluded_in_batch(self):
        g1, g2 = TestZeroSpreadPoints._with_constant_rows()
        pooled = np.hstack([g1, g2])
        indices = np.array([[0, 1, 2, 3], [0, 4, 6, 8], [1, 2, 5, 7]])
        total_sum, total_sumsq = pooled_totals(pooled)
        batch = batch_statistics(
            pooled, indices, 4, 5, False, total_sum, total_sumsq, backend="numpy"
        )
        assert np.all(np.isfinite(batch))
        np.testing.assert_allclose(
            batch, self._loop(pooled, indices, 4, 5, False), rtol=1e-12
        )

    def test_rejects_bad_chunk_size(self):
        pooled = np.ones((3, 4))
        total_sum, total_sumsq = pooled_totals(pooled)
        with pytest.raises(ValueError, match="chunk_size"):
            batch_statistics(
                pooled, np.array([[0, 1]]), 2, 2, False, total_sum, total_sumsq,
                backend="numpy", chunk_size=0,
            )
