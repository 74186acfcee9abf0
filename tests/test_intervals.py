"""
Test suite for interval arithmetic and G-function inclusions.

Tests cover:
- Construction, ordering and NaN rejection
- Set operations: containment, intersection, separation
- Conservative arithmetic and tight squaring
- Integer-in-residue-class detection
- BoundingBox differences, norms and dot products
- Soundness of the G0/G1/G2 inclusions against dense sampling
"""

import math

import numpy as np
import pytest

from apsis import Interval, BoundingBox
from apsis.intervals import g0_inclusion, g1_inclusion, g2_inclusion
from apsis.stumpff import stumpff_G


class TestIntervalConstruction:
    """Test construction and basic properties."""

    def test_endpoints_sorted(self):
        interval = Interval(3.0, -1.0)
        assert interval.lo == -1.0
        assert interval.hi == 3.0

    def test_nan_rejected(self):
        with pytest.raises(ValueError, match="NaN"):
            Interval(math.nan, 1.0)

    def test_point(self):
        p = Interval.point(2.5)
        assert p.width() == 0.0
        assert p.midpoint() == 2.5

    def test_width_midpoint_norm(self):
        interval = Interval(-4.0, 2.0)
        assert interval.width() == 6.0
        assert interval.midpoint() == -1.0
        assert interval.norm() == 4.0

    def test_infinite_endpoint(self):
        interval = Interval(1.0, math.inf)
        assert interval.contains(1e300)


class TestIntervalSets:
    """Test containment and set operations."""

    def test_contains(self):
        interval = Interval(0.0, 1.0)
        assert 0.0 in interval
        assert 1.0 in interval
        assert 1.5 not in interval

    def test_include(self):
        assert Interval(0.0, 1.0).include(3.0) == Interval(0.0, 3.0)
        assert Interval(0.0, 1.0).include(0.5) == Interval(0.0, 1.0)

    def test_intersect(self):
        assert Interval(0.0, 2.0).intersect(Interval(1.0, 3.0)) == Interval(1.0, 2.0)
        assert Interval(0.0, 1.0).intersect(Interval(2.0, 3.0)) is None

    def test_intersect_touching(self):
        assert Interval(0.0, 1.0).intersect(Interval(1.0, 2.0)) == Interval.point(1.0)

    def test_subset(self):
        assert Interval(0.2, 0.8).is_subset_of(Interval(0.0, 1.0))
        assert not Interval(-0.2, 0.8).is_subset_of(Interval(0.0, 1.0))

    def test_separated_by(self):
        a = Interval(0.0, 1.0)
        b = Interval(3.0, 4.0)
        assert a.separated_by(b, 1.5)
        assert b.separated_by(a, 1.5)
        assert not a.separated_by(b, 2.5)

    def test_negative_threshold(self):
        with pytest.raises(ValueError):
            Interval(0.0, 1.0).separated_by(Interval(2.0, 3.0), -1.0)

    def test_widen(self):
        assert Interval(0.0, 1.0).widen(-0.5) == Interval(-0.5, 1.5)

    def test_bisect_and_split(self):
        left, right = Interval(0.0, 4.0).bisect()
        assert left == Interval(0.0, 2.0)
        assert right == Interval(2.0, 4.0)
        assert Interval(0.0, 4.0).split_left(1.0) == Interval(0.0, 1.0)
        assert Interval(0.0, 4.0).split_right(1.0) == Interval(1.0, 4.0)

    def test_split_outside(self):
        with pytest.raises(ValueError):
            Interval(0.0, 1.0).split_left(2.0)


class TestIntervalArithmetic:
    """Test arithmetic operators."""

    def test_add_sub(self):
        a = Interval(1.0, 2.0)
        b = Interval(-1.0, 3.0)
        assert a + b == Interval(0.0, 5.0)
        assert a - b == Interval(-2.0, 3.0)
        assert a + 1.0 == Interval(2.0, 3.0)
        assert 1.0 + a == Interval(2.0, 3.0)
        assert 5.0 - a == Interval(3.0, 4.0)
        assert -a == Interval(-2.0, -1.0)

    def test_mul(self):
        a = Interval(-1.0, 2.0)
        b = Interval(-3.0, 4.0)
        assert a * b == Interval(-6.0, 8.0)
        assert -2.0 * a == Interval(-4.0, 2.0)

    def test_div_by_scalar(self):
        assert Interval(2.0, 4.0) / 2.0 == Interval(1.0, 2.0)
        assert Interval(2.0, 4.0) / -2.0 == Interval(-2.0, -1.0)

    def test_div_by_interval_rejected(self):
        with pytest.raises(TypeError):
            Interval(1.0, 2.0) / Interval(1.0, 2.0)

    def test_square_is_tight(self):
        assert Interval(-2.0, 3.0).square() == Interval(0.0, 9.0)
        assert Interval(-3.0, -2.0).square() == Interval(4.0, 9.0)
        # the naive product would give [-6, 9]
        assert (Interval(-2.0, 3.0) * Interval(-2.0, 3.0)).lo == -6.0

    def test_monotone_map_decreasing(self):
        assert Interval(1.0, 4.0).monotone_map(lambda x: 1.0 / x) == Interval(0.25, 1.0)

    def test_unpack(self):
        lo, hi = Interval(1.0, 2.0)
        assert (lo, hi) == (1.0, 2.0)


class TestModConstraint:
    """Test detection of integers in a residue class."""

    @pytest.mark.parametrize("lo, hi, m, a, expected", [
        (0.5, 1.5, 2, 1, True),
        (0.5, 1.5, 2, 0, False),
        (1.5, 2.5, 4, 2, True),
        (3.1, 4.9, 4, 1, False),
        (-1.5, -0.5, 4, 3, True),
        (2.0, 2.0, 2, 0, True),
    ])
    def test_residues(self, lo, hi, m, a, expected):
        assert Interval(lo, hi).contains_integer_with_mod_constraint(m, a) is expected

    def test_infinite_interval(self):
        assert Interval(0.0, math.inf).contains_integer_with_mod_constraint(7, 3)


class TestBoundingBox:
    """Test 3-D boxes."""

    def test_sub(self):
        a = BoundingBox(Interval(0.0, 1.0), Interval(0.0, 1.0), Interval(0.0, 1.0))
        b = BoundingBox(Interval(1.0, 2.0), Interval(0.0, 0.0), Interval(-1.0, 1.0))
        d = a - b
        assert d[0] == Interval(-2.0, 0.0)
        assert d[1] == Interval(0.0, 1.0)
        assert d[2] == Interval(-1.0, 2.0)

    def test_squared_norm(self):
        box = BoundingBox(Interval(-1.0, 2.0), Interval(3.0, 4.0), Interval.point(0.0))
        assert box.squared_norm() == Interval(9.0, 20.0)

    def test_dot(self):
        box = BoundingBox(Interval(1.0, 2.0), Interval.point(0.0), Interval.point(1.0))
        other = BoundingBox(Interval.point(3.0), Interval(5.0, 6.0), Interval(-1.0, 1.0))
        assert box.dot(other) == Interval(2.0, 7.0)

    def test_separated_by(self):
        a = BoundingBox(Interval(0.0, 1.0), Interval(0.0, 1.0), Interval(0.0, 1.0))
        b = BoundingBox(Interval(5.0, 6.0), Interval(0.0, 1.0), Interval(0.0, 1.0))
        assert a.separated_by(b, 3.0)
        assert not a.separated_by(b, 5.0)


class TestGInclusions:
    """Test that inclusions contain every sampled value."""

    @pytest.mark.parametrize("beta", [2.0, 0.0, -0.5])
    @pytest.mark.parametrize("lo, hi", [
        (-0.3, 0.4),
        (0.1, 0.2),
        (1.0, 6.5),
        (-5.0, -2.0),
        (2.0, 2.0),
    ])
    def test_sound(self, beta, lo, hi):
        s_interval = Interval(lo, hi)
        inclusions = (
            g0_inclusion(beta, s_interval),
            g1_inclusion(beta, s_interval),
            g2_inclusion(beta, s_interval),
        )
        for s in np.linspace(lo, hi, 401):
            G = stumpff_G(beta, s)
            for k, inclusion in enumerate(inclusions):
                tol = 1e-12 * max(1.0, abs(G[k]))
                assert inclusion.lo - tol <= G[k] <= inclusion.hi + tol

    def test_g0_full_period(self):
        # s sqrt(beta) spans [0, 2 pi], so G0 spans [-1, 1]
        inclusion = g0_inclusion(1.0, Interval(0.0, 2.0 * math.pi))
        assert inclusion.lo == pytest.approx(-1.0)
        assert inclusion.hi == pytest.approx(1.0)

    def test_g2_contains_zero_for_open_orbits(self):
        # G2 >= 0 with its minimum at s = 0
        inclusion = g2_inclusion(-1.0, Interval(-1.0, 2.0))
        assert inclusion.lo == 0.0

    def test_g1_monotone_for_open_orbits(self):
        inclusion = g1_inclusion(-1.0, Interval(-1.0, 2.0))
        assert inclusion.lo == pytest.approx(math.sinh(-1.0))
        assert inclusion.hi == pytest.approx(math.sinh(2.0))
