"""Tests for the display module."""

import dataclasses

import numpy as np

from fda_permtest import FunctionalSample, tL2_permtest
from fda_permtest._results import PermutationTestResult
from fda_permtest.display import (
    _permutations_to_resolve,
    _row,
    _straddled_threshold,
    print_results_table,
)
from fda_permtest.pvalues import compute_pvalue_ci


def _make_result(*, exact=True, p_value=0.032, p_value_ci=None):
    n = 126 if exact else 201
    return PermutationTestResult(
        statistic=0.8731,
        statistic_name="T",
        p_value=p_value,
        alternative="samples not exchangeable",
        method=(
            "Studentized two sample permutation test for fda, using T",
            "exact test, using all 126 permutations (combinations)"
            if exact
            else "using 200 randomly selected permutations",
        ),
        data_name="Atlantic and Continental",
        n_permutations=n,
        exact=exact,
        permuted_statistics=np.zeros(n),
        backend="numpy",
        p_value_ci=p_value_ci,
    )


class TestRow:
    def test_value_starts_at_label_column(self):
        assert _row("Data:", "a and b") == "Data:           a and b"

    def test_long_value_wraps_under_value_column(self):
        lines = _row("Alternative:", "word " * 30).splitlines()
        assert len(lines) > 1
        assert all(len(line) <= 80 for line in lines)
        assert lines[1].startswith(" " * 16 + "word")

    def test_max_lines_clips_with_ellipsis(self):
        text = _row("Data:", "word " * 30, max_lines=1)
        assert "\n" not in text
        assert len(text) <= 80
        assert text.endswith("...")


class TestStraddledThreshold:
    def test_straddles_threshold(self):
        assert _straddled_threshold(0.04, 0.06, [0.05, 0.01, 0.001]) == 0.05

    def test_no_straddle(self):
        assert _straddled_threshold(0.02, 0.04, [0.05, 0.01, 0.001]) is None

    def test_entirely_above(self):
        assert _straddled_threshold(0.2, 0.4, [0.05, 0.01, 0.001]) is None

    def test_first_inside_wins(self):
        assert _straddled_threshold(0.0005, 0.06, [0.05, 0.01, 0.001]) == 0.05

    def test_ci_equals_threshold_boundary(self):
        # The interval must contain the threshold strictly.
        assert _straddled_threshold(0.05, 0.07, [0.05]) is None


class TestPermutationsToResolve:
    def test_returns_power_of_two_multiple_of_100(self):
        b = _permutations_to_resolve(0.03, 0.05)
        assert isinstance(b, int)
        assert b % 100 == 0
        assert (b // 100) & (b // 100 - 1) == 0

    def test_interval_at_recommendation_excludes_threshold(self):
        b = _permutations_to_resolve(0.03, 0.05)
        ci_lo, ci_hi = compute_pvalue_ci(round(0.03 * b), b)
        assert not ci_lo < 0.05 < ci_hi
        # Half as many would still straddle.
        ci_lo, ci_hi = compute_pvalue_ci(round(0.03 * b / 2), b // 2)
        assert ci_lo < 0.05 < ci_hi

    def test_small_gap_needs_more(self):
        assert _permutations_to_resolve(0.045, 0.05) > _permutations_to_resolve(
            0.03, 0.05
        )

    def test_p_value_on_threshold_gives_limit(self):
        assert _permutations_to_resolve(0.05, 0.05) == 10_000_000

    def test_far_from_threshold_gives_minimum(self):
        assert _permutations_to_resolve(0.9, 0.05) == 100



class TestPrintResultsTable:
    def test_exact_report(self, capsys):
        print_results_table(_make_result())
        out = capsys.readouterr().out
        assert "Atlantic and Continental" in out
        assert "T = 0.8731" in out
        assert "0.032" in out
        assert "samples not exchangeable" in out
        assert "exact test, using all 126 permutations (combinations)" in out
        assert "numpy" in out
        assert "p-Value CI" not in out

    def test_sampled_report_shows_interval(self, capsys):
        print_results_table(
            _make_result(exact=False, p_value=0.3, p_value_ci=(0.24, 0.37))
        )
        out = capsys.readouterr().out
        assert "using 200 randomly selected permutations" in out
        assert "[0.2400, 0.3700] (Clopper-Pearson)" in out
        assert "[!]" not in out

    def test_borderline_note(self, capsys):
        print_results_table(
            _make_result(exact=False, p_value=0.048, p_value_ci=(0.04, 0.06))
        )
        out = capsys.readouterr().out
        assert "Notes" in out
        assert "[!]" in out
        assert "straddles 0.05" in out
        assert "nperm >=" in out

    def test_custom_title_and_thresholds(self, capsys):
        print_results_table(
            _make_result(exact=False, p_value=0.3, p_value_ci=(0.24, 0.37)),
            title="Temperature curves",
            thresholds=(0.25,),
        )
        out = capsys.readouterr().out
        assert "Temperature curves" in out
        assert "straddles 0.25" in out

    def test_long_data_name_truncated(self, capsys):
        data_name = " and ".join(["Continental station"] * 20)
        result = dataclasses.replace(_make_result(), data_name=data_name)
        print_results_table(result)
        out = capsys.readouterr().out
        assert data_name not in out
        assert "Data:           Continental station and" in out
        assert "..." in out

    def test_end_to_end(self, capsys):
        rng = np.random.default_rng(0)
        args = np.linspace(0, 1, 10)
        s1 = FunctionalSample(args, rng.standard_normal((10, 3)), name="left")
        s2 = FunctionalSample(args, rng.standard_normal((10, 4)), name="right")
        print_results_table(tL2_permtest(s1, s2, nperm=None, backend="numpy"))
        out = capsys.readouterr().out
        assert "left and right" in out
        assert "35" in out
