"""Tests for the FunctionalSample container."""

import numpy as np
import pandas as pd
import pytest

from fda_permtest.samples import FunctionalSample


class TestConstruction:
    def test_shapes_and_sizes(self):
        sample = FunctionalSample(np.linspace(0, 1, 12), np.zeros((12, 5)), name="a")
        assert sample.dimarg == 12
        assert sample.groupsize == 5
        assert len(sample) == 5
        assert sample.name == "a"

    def test_values_copied_to_float64(self):
        fvals = np.arange(6, dtype=np.int32).reshape(3, 2)
        sample = FunctionalSample([0, 1, 2], fvals)
        assert sample.fvals.dtype == np.float64
        assert sample.args.dtype == np.float64
        fvals[0, 0] = 99
        assert sample.fvals[0, 0] == 0.0

    def test_arrays_are_read_only(self):
        sample = FunctionalSample(np.arange(3.0), np.ones((3, 2)))
        with pytest.raises(ValueError):
            sample.fvals[0, 0] = 5.0
        with pytest.raises(ValueError):
            sample.args[0] = 5.0

    def test_one_dimensional_values_are_one_curve(self):
        sample = FunctionalSample(np.arange(4.0), np.array([1.0, 2.0, 3.0, 4.0]))
        assert sample.fvals.shape == (4, 1)
        assert sample.groupsize == 1
        assert not sample.fvals.flags.writeable

    def test_frozen(self):
        sample = FunctionalSample(np.arange(3.0), np.ones((3, 2)))
        with pytest.raises(AttributeError):
            sample.name = "other"


class TestValidation:
    def test_row_count_must_match_grid(self):
        with pytest.raises(ValueError, match="rows must correspond"):
            FunctionalSample(np.arange(4.0), np.ones((5, 2)))

    def test_grid_must_be_one_dimensional(self):
        with pytest.raises(ValueError, match="one-dimensional"):
            FunctionalSample(np.ones((2, 2)), np.ones((2, 2)))

    def test_empty_grid(self):
        with pytest.raises(ValueError, match="at least one grid point"):
            FunctionalSample(np.array([]), np.empty((0, 2)))

    def test_non_finite_grid(self):
        with pytest.raises(ValueError, match="finite"):
            FunctionalSample(np.array([0.0, np.inf]), np.ones((2, 2)))

    def test_three_dimensional_values(self):
        with pytest.raises(ValueError, match=r"shape \(N, m\)"):
            FunctionalSample(np.arange(2.0), np.ones((2, 2, 2)))

    def test_no_curves(self):
        with pytest.raises(ValueError, match="at least one curve"):
            FunctionalSample(np.arange(3.0), np.empty((3, 0)))

    def test_non_numeric_values(self):
        with pytest.raises(TypeError, match="'fvals' must be numeric"):
            FunctionalSample(np.arange(2.0), [["a", "b"], ["c", "d"]])


class TestFromFrame:
    @staticmethod
    def _frame():
        grid = np.linspace(0.0, 1.0, 5)
        return pd.DataFrame(
            {
                "day": grid,
                "s1": grid**2,
                "s2": grid + 1.0,
                "s3": -grid,
            }
        )

    def test_grid_from_column(self):
        sample = FunctionalSample.from_frame(self._frame(), args_column="day", name="x")
        np.testing.assert_allclose(sample.args, np.linspace(0.0, 1.0, 5))
        assert sample.groupsize == 3
        np.testing.assert_allclose(sample.fvals[:, 1], np.linspace(0.0, 1.0, 5) + 1.0)
        assert sample.name == "x"

    def test_grid_from_index(self):
        frame = self._frame().set_index("day")
        sample = FunctionalSample.from_frame(frame)
        np.testing.assert_allclose(sample.args, frame.index.to_numpy())
        assert sample.groupsize == 3

    def test_column_selection(self):
        sample = FunctionalSample.from_frame(
            self._frame(), args_column="day", columns=["s3", "s1"]
        )
        assert sample.groupsize == 2
        np.testing.assert_allclose(sample.fvals[:, 0], -np.linspace(0.0, 1.0, 5))

    def test_missing_args_column(self):
        with pytest.raises(ValueError, match="not found"):
            FunctionalSample.from_frame(self._frame(), args_column="time")

    def test_rejects_non_frame(self):
        with pytest.raises(TypeError, match="must be a pandas DataFrame"):
            FunctionalSample.from_frame(np.ones((3, 3)))
