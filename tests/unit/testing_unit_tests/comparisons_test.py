# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Unit tests for compare_vecs and compare_floats

Tests cover:
1. Passing comparisons and the report header
2. Length mismatch (no coefficient compared)
3. Per-index failure reports and the aggregate scan
4. Exact equality with zero tolerances, NaN handling
5. Vector, ndarray and list operands
"""

import io

import numpy as np
import pytest

from adjointsym.testing import compare_floats, compare_vecs
from adjointsym.vectors import Vector

RTOL = 1.0e-4
ATOL = 1.0e-5


@pytest.fixture
def out():
    return io.StringIO()


# ============================================================================
# Test Class 1: compare_vecs
# ============================================================================


class TestCompareVecs:
    """Test the tolerant vector comparison"""

    def test_equal_vectors_pass(self, out):
        """Test that identical vectors pass."""
        assert compare_vecs([0.1, 0.2], "a", [0.1, 0.2], "b", RTOL, ATOL, out)
        assert out.getvalue() == "Comparing a == b ... passed\n"

    @pytest.mark.parametrize("rtol,atol", [(0.0, 0.0), (1e-4, 0.0), (0.0, 1e-5), (1.0, 1.0)])
    def test_equal_vectors_pass_for_any_tolerance(self, out, rtol, atol):
        """Test that identical vectors pass for every tolerance."""
        a = np.linspace(-1.0, 1.0, 5)
        assert compare_vecs(a, "a", a.copy(), "b", rtol, atol, out)

    def test_single_failure_reported(self, out):
        """Test the report line of a failing index."""
        assert not compare_vecs([0.1, 0.2], "a", [0.1, 0.30001], "b", RTOL, ATOL, out)

        report = out.getvalue()
        assert "relErr(a[1],b[1]) = relErr(0.2,0.30001) = 0.10001 <= tol = 4.0001e-05: failed!" in report
        assert "a[0]" not in report
        assert "a = [ 0.1 0.2 ]" in report
        assert "b = [ 0.1 0.30001 ]" in report
        assert not report.endswith("passed\n")

    def test_every_failure_reported(self, out):
        """Test that all failing indices are reported."""
        assert not compare_vecs([0.0, 0.0, 0.0], "u", [1.0, 0.0, 1.0], "v", RTOL, ATOL, out)

        report = out.getvalue()
        assert report.count("failed!") == 2
        assert "u[0]" in report
        assert "u[2]" in report
        assert "u[1]" not in report

    def test_within_absolute_tolerance(self, out):
        """Test a difference within the absolute tolerance."""
        assert compare_vecs([0.0], "a", [5e-6], "b", RTOL, ATOL, out)

    def test_within_relative_tolerance(self, out):
        """Test a difference within the relative tolerance."""
        assert compare_vecs([1000.0], "a", [1000.05], "b", RTOL, 0.0, out)

    def test_length_mismatch(self, out):
        """Test the size mismatch report."""
        assert not compare_vecs([0.1, 0.2], "a", [0.1, 0.2, 0.3], "b", RTOL, ATOL, out)

        report = out.getvalue()
        assert "a.size() = 2 == b.size() = 3 : failed!" in report
        assert "relErr" not in report

    def test_length_mismatch_ignores_contents(self, out):
        """Test that a size mismatch fails whatever the tolerance."""
        assert not compare_vecs([], "a", [0.0], "b", 1.0, 1.0, out)

    def test_zero_tolerance_is_exact(self, out):
        """Test exact comparison with zero tolerances."""
        assert compare_vecs([1.0, 2.0], "a", [1.0, 2.0], "b", 0.0, 0.0, out)
        assert not compare_vecs([1.0], "a", [1.0 + 1e-15], "b", 0.0, 0.0, out)

    def test_nan_pair_passes(self, out):
        """Test that a NaN pair passes."""
        assert compare_vecs([np.nan, 1.0], "a", [np.nan, 1.0], "b", RTOL, ATOL, out)

    def test_nan_against_number_fails(self, out):
        """Test that a NaN never matches a finite coefficient"""
        assert not compare_vecs([np.nan], "a", [1.0], "b", RTOL, ATOL, out)
        assert not compare_vecs([1.0, 2.0], "a", [1.0, np.nan], "b", RTOL, ATOL, out)
        assert "relErr(a[1],b[1]) = relErr(2,nan)" in out.getvalue()

    def test_infinities(self, out):
        """Test that only equal infinities match"""
        assert compare_vecs([-np.inf], "a", [-np.inf], "b", RTOL, ATOL, out)
        assert not compare_vecs([np.inf], "a", [-np.inf], "b", RTOL, ATOL, out)
        assert not compare_vecs([np.inf], "a", [1.0], "b", RTOL, ATOL, out)

    def test_vector_operands(self, out):
        """Test Vector and ndarray operands."""
        u = Vector([0.1, 0.2])
        assert compare_vecs(u, "u", np.array([0.1, 0.2]), "v", RTOL, ATOL, out)

    def test_empty_vectors_pass(self, out):
        """Test that two empty vectors pass."""
        assert compare_vecs(Vector(), "u", [], "v", RTOL, ATOL, out)

    def test_default_stream_is_stdout(self, capsys):
        """Test reporting to stdout by default."""
        compare_vecs([1.0], "a", [1.0], "b", RTOL, ATOL)
        assert capsys.readouterr().out == "Comparing a == b ... passed\n"


# ============================================================================
# Test Class 2: compare_floats
# ============================================================================


class TestCompareFloats:
    """Test the scalar comparison"""

    def test_pass(self, out):
        """Test a passing scalar comparison and its report."""
        assert compare_floats(1.0, "lhs", 1.0 + 1e-12, "rhs", 1e-10, 0.0, out)
        assert out.getvalue().startswith("Comparing lhs = 1 == rhs = 1.000000000001 ... ")
        assert out.getvalue().endswith("passed\n")

    def test_fail(self, out):
        """Test a failing scalar comparison."""
        assert not compare_floats(1.0, "lhs", 1.1, "rhs", 1e-6, 0.0, out)
        assert "failed!" in out.getvalue()

    def test_absolute_tolerance(self, out):
        """Test the scalar absolute tolerance."""
        assert compare_floats(0.0, "lhs", 1e-9, "rhs", 0.0, 1e-8, out)

    def test_nan_handling(self, out):
        """Test that a NaN pair passes and a NaN against a number fails"""
        assert compare_floats(np.nan, "lhs", np.nan, "rhs", 1e-6, 0.0, out)
        assert not compare_floats(np.nan, "lhs", 0.0, "rhs", 1e-6, 1e-6, out)
