"""
Test suite for the Stumpff and G-function kernel.

Tests cover:
- Values at zero and closed forms on both sides of zero
- Series accuracy of c3 near the origin
- Continuity of c3 where the Chebyshev branch hands over
- Identities linking the functions
- Overflow and NaN behaviour
- G-functions against their trigonometric and hyperbolic closed forms
"""

import math

import numpy as np
import pytest

from apsis.stumpff import c0, c1, c2, c3, stumpff_c, stumpff_G, evaluate_chebyshev


def c3_series(x, terms=12):
    # c3(x) = sum_k (-x)^k / (2k + 3)!
    return sum((-x) ** k / math.factorial(2 * k + 3) for k in range(terms))


def c2_series(x, terms=12):
    return sum((-x) ** k / math.factorial(2 * k + 2) for k in range(terms))


class TestStumpffValues:
    """Test individual Stumpff functions."""

    def test_at_zero(self):
        assert stumpff_c(0.0) == pytest.approx([1.0, 1.0, 0.5, 1.0 / 6.0], rel=1e-12)

    @pytest.mark.parametrize("x", [0.3, 4.0, 25.0])
    def test_positive_closed_forms(self, x):
        u = math.sqrt(x)
        assert c0(x) == pytest.approx(math.cos(u))
        assert c1(x) == pytest.approx(math.sin(u) / u)
        assert c2(x) == pytest.approx((1.0 - math.cos(u)) / x)

    @pytest.mark.parametrize("x", [-0.3, -4.0, -25.0])
    def test_negative_closed_forms(self, x):
        u = math.sqrt(-x)
        assert c0(x) == pytest.approx(math.cosh(u))
        assert c1(x) == pytest.approx(math.sinh(u) / u)
        assert c2(x) == pytest.approx((math.cosh(u) - 1.0) / -x)

    @pytest.mark.parametrize("x", [-0.9, -0.5, -1e-3, 1e-8, 0.25, 0.75, 0.99])
    def test_c3_near_origin(self, x):
        assert c3(x) == pytest.approx(c3_series(x), rel=1e-13)

    @pytest.mark.parametrize("x", [1e-10, -1e-6, 0.5])
    def test_c2_near_origin(self, x):
        assert c2(x) == pytest.approx(c2_series(x), rel=1e-12)

    @pytest.mark.parametrize("edge", [1.0, -1.0])
    def test_c3_continuous_at_branch_switch(self, edge):
        below = c3(edge * (1.0 - 1e-12))
        above = c3(edge * (1.0 + 1e-12))
        assert below == pytest.approx(above, rel=1e-10)

    @pytest.mark.parametrize("x", [-30.0, -2.0, -0.4, 0.4, 2.0, 30.0])
    def test_recurrence(self, x):
        # c_k(x) = 1/k! - x c_(k+2)(x)
        assert c0(x) == pytest.approx(1.0 - x * c2(x), rel=1e-12, abs=1e-14)
        assert c1(x) == pytest.approx(1.0 - x * c3(x), rel=1e-12, abs=1e-14)


class TestStumpffEdgeCases:
    """Test overflow and invalid input."""

    def test_large_negative_saturates(self):
        assert c0(-1e7) == math.inf
        assert c1(-1e7) == math.inf
        assert c2(-1e7) == math.inf

    def test_nan_rejected(self):
        for func in (c0, c1, c2, c3):
            with pytest.raises(ValueError, match="NaN"):
                func(math.nan)


class TestChebyshev:
    """Test Clenshaw evaluation."""

    def test_matches_numpy(self):
        coeffs = [0.5, -1.25, 2.0, 0.125, -0.75]
        for x in np.linspace(-1.0, 1.0, 9):
            expected = np.polynomial.chebyshev.chebval(x, coeffs)
            assert evaluate_chebyshev(x, coeffs) == pytest.approx(expected, abs=1e-14)

    def test_constant_series(self):
        assert evaluate_chebyshev(0.3, [2.5]) == 2.5


class TestGFunctions:
    """Test G_k(beta, s) = s^k c_k(beta s^2)."""

    def test_elliptic(self):
        beta, s = 4.0, 0.7
        G = stumpff_G(beta, s)
        w = math.sqrt(beta)
        assert G[0] == pytest.approx(math.cos(w * s))
        assert G[1] == pytest.approx(math.sin(w * s) / w)
        assert G[2] == pytest.approx((1.0 - math.cos(w * s)) / beta)
        assert G[3] == pytest.approx((s - math.sin(w * s) / w) / beta)

    def test_hyperbolic(self):
        beta, s = -2.0, 1.3
        G = stumpff_G(beta, s)
        w = math.sqrt(-beta)
        assert G[0] == pytest.approx(math.cosh(w * s))
        assert G[1] == pytest.approx(math.sinh(w * s) / w)
        assert G[2] == pytest.approx((math.cosh(w * s) - 1.0) / -beta)

    def test_parabolic(self):
        s = 2.0
        assert stumpff_G(0.0, s) == pytest.approx([1.0, s, s ** 2 / 2.0, s ** 3 / 6.0])

    def test_odd_and_even(self):
        beta, s = 0.3, 1.7
        plus = stumpff_G(beta, s)
        minus = stumpff_G(beta, -s)
        assert minus[0] == pytest.approx(plus[0])
        assert minus[1] == pytest.approx(-plus[1])
        assert minus[2] == pytest.approx(plus[2])
        assert minus[3] == pytest.approx(-plus[3])

    @pytest.mark.parametrize("beta", [-1.5, 0.0, 2.5])
    def test_identity(self, beta):
        # G0 + beta G2 = 1
        s = 0.9
        G = stumpff_G(beta, s)
        assert G[0] + beta * G[2] == pytest.approx(1.0)

    def test_zero_anomaly(self):
        assert stumpff_G(3.0, 0.0) == [1.0, 0.0, 0.0, 0.0]
