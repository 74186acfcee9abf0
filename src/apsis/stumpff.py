'''Universal-variable Kepler propagation package
Stumpff function kernel

The Stumpff functions c0..c3 and the universal-variable G-functions
G_k(beta, s) = s^k c_k(beta s^2) built from them.'''

import math

# Chebyshev coefficients of c3 on [-1, 1]
C3_CHEBYSHEV = (
    1.6676588241065263e-1,
    -8.335400232645692e-3,
    9.921887561900632e-5,
    -6.889831660341532e-7,
    3.1316569342984595e-9,
    -1.0037209903903158e-11,
    2.3897900455039615e-14,
    -4.392970771382075e-17,
    6.422446836919863e-20,
)


def _reject_nan(x):
    if math.isnan(x):
        raise ValueError(f"Stumpff function evaluated at NaN: {x}")


# math.cosh/sinh raise on overflow; saturate to infinity instead
def _cosh(u):
    try:
        return math.cosh(u)
    except OverflowError:
        return math.inf


def _sinh(u):
    try:
        return math.sinh(u)
    except OverflowError:
        return math.copysign(math.inf, u)


def c0(x):
    """cos(sqrt(x)), continued analytically to x <= 0."""
    _reject_nan(x)
    if x > 0.0:
        return math.cos(math.sqrt(x))
    elif x < 0.0:
        return _cosh(math.sqrt(-x))
    return 1.0


def c1(x):
    """sin(sqrt(x)) / sqrt(x), continued analytically to x <= 0."""
    _reject_nan(x)
    if x > 0.0:
        sqrt_x = math.sqrt(x)
        return math.sin(sqrt_x) / sqrt_x
    elif x < 0.0:
        sqrt_x = math.sqrt(-x)
        return _sinh(sqrt_x) / sqrt_x
    return 1.0


def c2(x):
    """(1 - c0(x)) / x, written with half-angle forms to keep precision."""
    _reject_nan(x)
    if x > 0.0:
        # 1 - cos u = 2 sin^2(u/2)
        return 2.0 * math.sin(math.sqrt(x) / 2.0) ** 2 / x
    elif x < 0.0:
        # 1 - cosh u = -2 sinh^2(u/2)
        half = _sinh(math.sqrt(-x) / 2.0)
        return -2.0 * half * half / x
    return 0.5


def c3(x):
    """
    (1 - c1(x)) / x.

    For |x| < 1 the direct formula cancels catastrophically, so a
    Chebyshev expansion is evaluated there instead.
    """
    _reject_nan(x)
    if abs(x) < 1.0:
        return evaluate_chebyshev(x, C3_CHEBYSHEV)
    return (1.0 - c1(x)) / x


def evaluate_chebyshev(x, coeffs):
    """
    Evaluate a Chebyshev series with Clenshaw's recurrence.

    Parameters
    ----------
    x : float
        Evaluation point, nominally in [-1, 1]
    coeffs : sequence of float
        Series coefficients a_0 .. a_n

    Returns
    -------
    float
        sum_k a_k T_k(x)
    """
    b_k_plus_2 = 0.0
    b_k_plus_1 = 0.0

    # b_k = a_k + 2x b_(k+1) - b_(k+2), for k = n .. 1
    for a_k in reversed(coeffs[1:]):
        b_k = a_k + 2.0 * x * b_k_plus_1 - b_k_plus_2
        b_k_plus_2 = b_k_plus_1
        b_k_plus_1 = b_k

    return coeffs[0] + x * b_k_plus_1 - b_k_plus_2


def stumpff_c(x):
    """Return [c0(x), c1(x), c2(x), c3(x)]."""
    return [c0(x), c1(x), c2(x), c3(x)]


def stumpff_G(beta, s):
    """
    Universal-variable G-functions.

    Parameters
    ----------
    beta : float
        mu * alpha, i.e. -2 * specific energy. Positive for closed orbits.
    s : float
        Universal anomaly

    Returns
    -------
    list of float
        [G0, G1, G2, G3] with G_k = s^k c_k(beta s^2)
    """
    c_0, c_1, c_2, c_3 = stumpff_c(beta * s * s)
    # powers by repeated multiplication, not pow()
    return [c_0, c_1 * s, c_2 * (s * s), c_3 * (s * s * s)]
