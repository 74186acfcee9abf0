'''Universal-variable Kepler propagation package
Anomaly conversions

Closed-form conversions between true, eccentric, hyperbolic, parabolic,
mean and universal anomaly, plus the OrbitRegime classification that
decides which family applies to a given orbit.'''

import math
from enum import Enum

from .config import config
from .root_finding import find_root_bracket, newton_plus_bisection


# define an enumerated list of conic regimes
class OrbitRegime(Enum):
    ELLIPTIC = 'elliptic'       # 0 <= e < 1
    PARABOLIC = 'parabolic'     # e == 1, slr > 0
    HYPERBOLIC = 'hyperbolic'   # e > 1
    RADIAL = 'radial'           # slr == 0, straight-line fall

    @classmethod
    def classify(cls, eccentricity, slr):
        """Pick the regime for an orbit with the given shape."""
        if slr == 0.0:
            return cls.RADIAL
        if eccentricity < 1.0:
            return cls.ELLIPTIC
        if eccentricity > 1.0:
            return cls.HYPERBOLIC
        return cls.PARABOLIC


# ========== KEPLER'S EQUATION ==========
def mean_to_eccentric(mean_anomaly, e):
    """
    Solve Kepler's equation M = E - e sin E for E.

    Raises
    ------
    ValueError
        If e >= 1
    """
    if not e < 1.0:
        raise ValueError(f"Kepler's equation requires an elliptic orbit, got e = {e}")

    def kepler(x):
        return x - e * math.sin(x) - mean_anomaly

    def kepler_der(x):
        return 1.0 - e * math.cos(x)

    iterations = config.NUM_ITERATIONS_KEPLER
    bracket = find_root_bracket(kepler, mean_anomaly, e + 0.1, iterations)
    return newton_plus_bisection(lambda x: (kepler(x), kepler_der(x)), bracket, iterations)


def eccentric_to_mean(eccentric_anomaly, e):
    if not e < 1.0:
        raise ValueError(f"Mean anomaly requires an elliptic orbit, got e = {e}")
    return eccentric_anomaly - e * math.sin(eccentric_anomaly)


# ========== TRUE <-> ECCENTRIC / HYPERBOLIC / PARABOLIC ==========
def _eccentric_factor(e):
    return math.sqrt((1.0 - e) / (1.0 + e))


def _hyperbolic_factor(e):
    return math.sqrt((e - 1.0) / (e + 1.0))


def eccentric_to_true(eccentric_anomaly, e):
    # tan(E/2) = sqrt((1-e)/(1+e)) tan(theta/2)
    tan_half_theta = math.tan(eccentric_anomaly / 2.0) / _eccentric_factor(e)
    return 2.0 * math.atan(tan_half_theta)


def true_to_eccentric(true_anomaly, e):
    tan_half_ecc = math.tan(true_anomaly / 2.0) * _eccentric_factor(e)
    return 2.0 * math.atan(tan_half_ecc)


def hyperbolic_to_true(hyperbolic_anomaly, e):
    # tanh(H/2) = sqrt((e-1)/(e+1)) tan(theta/2)
    tan_half_theta = math.tanh(hyperbolic_anomaly / 2.0) / _hyperbolic_factor(e)
    return 2.0 * math.atan(tan_half_theta)


def true_to_hyperbolic(true_anomaly, e):
    """
    Hyperbolic anomaly for a true anomaly on a hyperbolic orbit.

    Raises
    ------
    ValueError
        If true_anomaly lies beyond the asymptote, acos(-1/e)
    """
    tanh_half_hyp = math.tan(true_anomaly / 2.0) * _hyperbolic_factor(e)
    if abs(tanh_half_hyp) >= 1.0:
        raise ValueError(
            f"True anomaly {true_anomaly} is beyond the asymptote of a hyperbola with e = {e}"
        )
    return 2.0 * math.atanh(tanh_half_hyp)


def parabolic_to_true(parabolic_anomaly):
    # D = tan(theta/2)
    return 2.0 * math.atan(parabolic_anomaly)


def true_to_parabolic(true_anomaly):
    return math.tan(true_anomaly / 2.0)


# ========== UNIVERSAL ANOMALY ==========
def eccentric_to_universal(eccentric_anomaly, energy):
    return eccentric_anomaly / math.sqrt(-2.0 * energy)


def universal_to_eccentric(universal_anomaly, energy):
    return universal_anomaly * math.sqrt(-2.0 * energy)


def hyperbolic_to_universal(hyperbolic_anomaly, energy):
    return hyperbolic_anomaly / math.sqrt(2.0 * energy)


def universal_to_hyperbolic(universal_anomaly, energy):
    return universal_anomaly * math.sqrt(2.0 * energy)


def parabolic_to_universal(parabolic_anomaly, angular_momentum, mu):
    return parabolic_anomaly * angular_momentum / mu


def universal_to_parabolic(universal_anomaly, angular_momentum, mu):
    return universal_anomaly / angular_momentum * mu


# ========== MEAN <-> TRUE ==========
def mean_to_true(mean_anomaly, e):
    return eccentric_to_true(mean_to_eccentric(mean_anomaly, e), e)


def true_to_mean(true_anomaly, e):
    return eccentric_to_mean(true_to_eccentric(true_anomaly, e), e)


# ========== REGIME DISPATCH ==========
def true_to_universal(true_anomaly, regime, eccentricity, energy, angular_momentum, mu):
    """
    Convert true anomaly to universal anomaly for any non-radial regime.

    Parameters
    ----------
    true_anomaly : float
        Angle from periapsis [rad]
    regime : OrbitRegime
        Regime of the orbit, from OrbitRegime.classify
    eccentricity, energy, angular_momentum, mu : float
        Shape and physical constants of the orbit

    Raises
    ------
    ValueError
        For radial orbits, where true anomaly is undefined
    """
    if regime is OrbitRegime.ELLIPTIC:
        ecc = true_to_eccentric(true_anomaly, eccentricity)
        return eccentric_to_universal(ecc, energy)
    elif regime is OrbitRegime.HYPERBOLIC:
        hyp = true_to_hyperbolic(true_anomaly, eccentricity)
        return hyperbolic_to_universal(hyp, energy)
    elif regime is OrbitRegime.PARABOLIC:
        para = true_to_parabolic(true_anomaly)
        return parabolic_to_universal(para, angular_momentum, mu)
    raise ValueError("True anomaly is undefined on a radial orbit")


def universal_to_true(universal_anomaly, regime, eccentricity, energy, angular_momentum, mu):
    """Inverse of true_to_universal."""
    if regime is OrbitRegime.ELLIPTIC:
        ecc = universal_to_eccentric(universal_anomaly, energy)
        return eccentric_to_true(ecc, eccentricity)
    elif regime is OrbitRegime.HYPERBOLIC:
        hyp = universal_to_hyperbolic(universal_anomaly, energy)
        return hyperbolic_to_true(hyp, eccentricity)
    elif regime is OrbitRegime.PARABOLIC:
        para = universal_to_parabolic(universal_anomaly, angular_momentum, mu)
        return parabolic_to_true(para)
    raise ValueError("True anomaly is undefined on a radial orbit")
