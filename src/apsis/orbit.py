'''Universal-variable Kepler propagation package
Orbit, CartesianState and TimedOrbit class definitions

An Orbit is stored as an orientation plus alpha = 1/a and the semi-latus
rectum; every other element is derived on demand. All three classes are
immutable: propagating produces new instances.'''

import math

import numpy as np

from . import anomaly
from .anomaly import OrbitRegime
from .config import config
from .geometry import (
    X_AXIS, Z_AXIS, always_find_rotation, angle_between, directed_angle, dot, norm, rotate,
    rotation_from_angles,
)
from .root_finding import find_root_bracket, newton_plus_bisection
from .stumpff import stumpff_G
from .utils import InvalidOrbitError


def _frozen_vector(values):
    array = np.array(values, dtype=float)
    if array.shape != (3,):
        raise ValueError(f"Expected a 3-vector, got shape {array.shape}")
    array.flags.writeable = False
    return array


class PointMass:
    """A gravitating point with mass parameter mu [m^3/s^2]."""
    __slots__ = ('_mu',)

    def __init__(self, mu):
        self._mu = float(mu)

    @property
    def mu(self):
        return self._mu

    def __eq__(self, other):
        if not isinstance(other, PointMass):
            return NotImplemented
        return self._mu == other.mu

    def __hash__(self):
        return hash(self._mu)

    def __repr__(self):
        return f"PointMass(mu={self._mu!r})"


class Orbit:
    """
    A conic orbit about a primary.

    The orientation is a rotation taking the canonical orbit (in the
    xy-plane, periapsis along +x) into world space. Shape is stored as
    alpha = 1/a, which stays finite for parabolic orbits, and the
    semi-latus rectum slr.

    The primary (and optional secondary) only need a ``mu`` attribute; both
    may be None for purely geometric use.
    """
    # ========== CLASS CONSTANTS ==========
    _EQUALITY_RTOL = 1e-12
    _EQUALITY_ATOL = 1e-14
    # radial orbits: radii this close (relatively) to apoapsis count as reaching it
    _APSIS_SNAP = 1e-12

    # ========== CONSTRUCTION ==========
    def __init__(self, primary, rotation, alpha, slr, secondary=None):
        """
        Parameters
        ----------
        primary : object with ``mu`` or None
            Gravitating body at the focus
        rotation : array-like
            3x3 rotation from the canonical frame to world space
        alpha : float
            Reciprocal of the semimajor axis [1/m]
        slr : float
            Semi-latus rectum [m]
        secondary : object with ``mu`` or None, optional
            Orbiting body; only needed for soi_radius()

        Raises
        ------
        InvalidOrbitError
            If alpha and slr do not describe a conic, i.e.
            1 - slr*alpha < -ECCENTRICITY_SNAP_TOLERANCE
        """
        self._primary = primary
        self._secondary = secondary
        self._rotation = np.array(rotation, dtype=float)
        if self._rotation.shape != (3, 3):
            raise ValueError(f"Rotation must be 3x3, got shape {self._rotation.shape}")
        self._rotation.flags.writeable = False
        self._alpha = float(alpha)
        self._slr = float(slr)
        self._eccentricity = self._compute_eccentricity()
        self._regime = OrbitRegime.classify(self._eccentricity, self._slr)

    @classmethod
    def from_kepler(cls, primary, a, ecc, incl, lan, argp, secondary=None):
        """
        Build an orbit from classical elements.

        Parameters
        ----------
        primary : object with ``mu`` or None
        a : float
            Semimajor axis [m]; negative for hyperbolic orbits
        ecc : float
            Eccentricity
        incl, lan, argp : float
            Inclination, longitude of ascending node and argument of
            periapsis [rad]
        secondary : object with ``mu`` or None, optional
        """
        return cls(
            primary,
            rotation_from_angles(incl, lan, argp),
            1.0 / a,
            a * (1.0 - ecc * ecc),
            secondary=secondary,
        )

    @classmethod
    def from_cartesian(cls, primary, position, velocity, secondary=None):
        """
        Build an orbit from a position and velocity relative to the primary.

        Orientation comes from the angular momentum and Laplace-Runge-Lenz
        vectors, either of which may vanish (radial or circular orbits).
        """
        position = np.asarray(position, dtype=float)
        velocity = np.asarray(velocity, dtype=float)
        mu = primary.mu
        r = norm(position)
        energy = dot(velocity, velocity) / 2.0 - mu / r
        ang_mom = np.cross(position, velocity)

        # LRL vector = v x h / mu - r/|r|
        lrl = np.cross(velocity, ang_mom) / mu - position / r

        rotation = always_find_rotation(ang_mom, lrl, config.ROTATION_TOLERANCE)

        return cls(
            primary,
            rotation,
            -2.0 * energy / mu,
            dot(ang_mom, ang_mom) / mu,
            secondary=secondary,
        )

    def with_primary(self, primary):
        return Orbit(primary, self._rotation, self._alpha, self._slr, self._secondary)

    def with_secondary(self, secondary):
        return Orbit(self._primary, self._rotation, self._alpha, self._slr, secondary)

    # ========== VALIDATION ==========
    def _compute_eccentricity(self):
        # l = a(1 - e^2), so e^2 = 1 - l/a
        e_squared = 1.0 - self._slr * self._alpha
        if e_squared >= 0.0:
            return math.sqrt(e_squared)
        elif e_squared > -config.ECCENTRICITY_SNAP_TOLERANCE:
            return 0.0
        raise InvalidOrbitError(
            f"Illegal orbit configuration: alpha = {self._alpha}, slr = {self._slr}, "
            f"e^2 computed as {e_squared}"
        )

    # ========== PROPERTY ACCESS ==========
    @property
    def primary(self):
        return self._primary

    @property
    def secondary(self):
        return self._secondary

    @property
    def rotation(self):
        return self._rotation

    @property
    def alpha(self):
        return self._alpha

    @property
    def mu(self):
        """Mass parameter of the primary."""
        if self._primary is None:
            raise AttributeError("Orbit has no primary, so no mass parameter")
        return self._primary.mu

    @property
    def regime(self):
        return self._regime

    # ========== GEOMETRY ==========
    def periapse_vector(self):
        return self._rotation[:, 0].copy()

    def normal_vector(self):
        return self._rotation[:, 2].copy()

    def asc_node_vector(self):
        """Unit vector towards the ascending node, or periapsis for equatorial orbits."""
        v = np.cross(Z_AXIS, self.normal_vector())
        length = norm(v)
        if length < config.ROTATION_TOLERANCE:
            return self.periapse_vector()
        return v / length

    def semimajor_axis(self):
        if self._alpha == 0.0:
            return math.inf
        return 1.0 / self._alpha

    def semilatus_rectum(self):
        return self._slr

    def eccentricity(self):
        return self._eccentricity

    def inclination(self):
        return angle_between(self.normal_vector(), Z_AXIS)

    def long_asc_node(self):
        return directed_angle(X_AXIS, self.asc_node_vector(), Z_AXIS)

    def arg_periapse(self):
        return directed_angle(self.asc_node_vector(), self.periapse_vector(), self.normal_vector())

    def is_closed(self):
        return self._alpha > 0.0

    def periapsis(self):
        # a(1-e) breaks down at e = 1; a(1-e^2)/(1+e) does not
        return self._slr / (1.0 + self._eccentricity)

    def apoapsis(self):
        """Apoapsis distance, or None for open orbits."""
        if self.is_closed():
            return 2.0 * self.semimajor_axis() - self.periapsis()
        return None

    # ========== PHYSICAL PROPERTIES ==========
    def soi_radius(self):
        """
        Sphere-of-influence radius of the secondary, a (mu2/mu1)^0.4.

        Raises
        ------
        InvalidOrbitError
            If the orbit has no secondary or is not elliptical
        """
        if self._secondary is None:
            raise InvalidOrbitError(
                f"SOI radius needs a secondary body, but {self!r} has none"
            )
        sma = self.semimajor_axis()
        if not (sma > 0.0 and math.isfinite(sma)):
            raise InvalidOrbitError(
                f"SOI radius approximation only works with elliptical orbits (a = {sma})"
            )
        return sma * (self._secondary.mu / self.mu) ** 0.4

    def energy(self):
        # -2E = mu / a
        return -self.mu * self._alpha / 2.0

    def beta(self):
        return self.mu * self._alpha

    def angular_momentum(self):
        # l = h^2 / mu
        return math.sqrt(self._slr * self.mu)

    def period(self):
        """Orbital period [s], or None for open orbits."""
        if self.is_closed():
            a = self.semimajor_axis()
            return 2.0 * math.pi * math.sqrt(a * a * a / self.mu)
        return None

    def periapsis_velocity(self):
        # h = r v at the apses, where r and v are perpendicular
        return self.angular_momentum() / self.periapsis()

    def apoapsis_velocity(self):
        r_a = self.apoapsis()
        if r_a is None:
            return None
        return self.angular_momentum() / r_a

    def excess_velocity(self):
        """Hyperbolic excess velocity, or None for closed orbits."""
        if self.is_closed():
            return None
        return math.sqrt(2.0 * self.energy())

    # ========== ANOMALY CONVERSIONS ==========
    def true_to_universal(self, true_anomaly):
        return anomaly.true_to_universal(
            true_anomaly, self._regime, self._eccentricity,
            self.energy(), self.angular_momentum(), self.mu,
        )

    def universal_to_true(self, universal_anomaly):
        return anomaly.universal_to_true(
            universal_anomaly, self._regime, self._eccentricity,
            self.energy(), self.angular_momentum(), self.mu,
        )

    # ========== STATE EVALUATION ==========
    def get_position_at_theta(self, theta):
        """
        World-space position at true anomaly theta.

        Returns None for radial orbits, and for open orbits when theta lies
        beyond the asymptote.
        """
        if self._regime is OrbitRegime.RADIAL:
            return None
        denominator = 1.0 + self._eccentricity * math.cos(theta)
        if denominator <= 0.0:
            return None
        radius = self._slr / denominator
        return rotate(self._rotation, radius * np.array([math.cos(theta), math.sin(theta), 0.0]))

    def get_state_at_theta(self, theta):
        """
        World-space (position, velocity) at true anomaly theta.

        Returns None wherever get_position_at_theta does.
        """
        position = self.get_position_at_theta(theta)
        if position is None:
            return None
        speed_scale = math.sqrt(self.mu / self._slr)
        velocity = rotate(
            self._rotation,
            speed_scale * np.array([-math.sin(theta), self._eccentricity + math.cos(theta), 0.0]),
        )
        return position, velocity

    def get_state_native_frame(self, s):
        """State at universal anomaly s, in the orbit's own frame."""
        mu = self.mu
        beta = mu * self._alpha
        h = self.angular_momentum()
        G = stumpff_G(beta, s)

        x = self.periapsis() - mu * G[2]
        y = h * G[1]
        r = math.sqrt(x * x + y * y)
        vx = -mu / r * G[1]
        vy = h / r * G[0]

        return CartesianState(self._primary, [x, y, 0.0], [vx, vy, 0.0])

    def get_state_at_universal_anomaly(self, s):
        native_state = self.get_state_native_frame(s)
        return CartesianState(
            self._primary,
            rotate(self._rotation, native_state.position),
            rotate(self._rotation, native_state.velocity),
        )

    def get_state_at_tsp(self, time_since_periapsis):
        return self.get_state_at_universal_anomaly(self.tsp_to_s(time_since_periapsis))

    # ========== TIME <-> ANOMALY ==========
    def _ts_and_derivative(self, s):
        # t(s) = r_p G1 + mu G3, t'(s) = r_p G0 + mu G2 = r(s)
        beta = self.beta()
        mu = self.mu
        r_p = self.periapsis()
        G = stumpff_G(beta, s)
        return r_p * G[1] + mu * G[3], r_p * G[0] + mu * G[2]

    def s_to_tsp(self, s):
        """Time since periapsis at universal anomaly s."""
        return self._ts_and_derivative(s)[0]

    def tsp_to_s(self, time_since_periapsis):
        """
        Universal anomaly reached time_since_periapsis after periapsis.

        t(s) is monotonically increasing, so the root is unique. It is not
        reduced modulo the period.

        Raises
        ------
        ConvergenceError
            If bracketing or refinement runs out of iterations
        """
        if time_since_periapsis == 0.0:
            return 0.0

        def f_and_f_prime(s):
            t, t_prime = self._ts_and_derivative(s)
            return t - time_since_periapsis, t_prime

        r_p = self.periapsis()
        if r_p > 0.0:
            center = time_since_periapsis / r_p
        else:
            # radial orbits: t ~ mu s^3 / 6 near s = 0
            center = float(np.cbrt(6.0 * time_since_periapsis / self.mu))

        iterations = config.NUM_ITERATIONS_DELTA_T
        bracket = find_root_bracket(lambda s: f_and_f_prime(s)[0], center, abs(center), iterations)
        return newton_plus_bisection(f_and_f_prime, bracket, iterations)

    def get_s_at_radius(self, radius):
        """
        Smallest non-negative universal anomaly at which the orbit reaches radius.

        Inverts r = slr / (1 + e cos theta) for a true anomaly in [0, pi].
        Radial orbits have no true anomaly; there r(s) = r_p + mu e G2(beta, s)
        is inverted instead.

        Returns
        -------
        float or None
            None if the radius is never reached (or, for circular orbits,
            if the radius is constant)
        """
        e = self._eccentricity
        if e == 0.0:
            return None
        if self._regime is OrbitRegime.RADIAL:
            return self._radial_s_at_radius(radius)

        cos_theta = (self._slr / radius - 1.0) / e
        if abs(cos_theta) > 1.0:
            return None
        return self.true_to_universal(math.acos(cos_theta))

    def _radial_s_at_radius(self, radius):
        mu = self.mu
        beta = self.beta()
        desired_g2 = radius / mu
        if desired_g2 < 0.0:
            return None

        if beta > 0.0:
            # G2 = (1 - cos(sqrt(beta) s)) / beta
            cos_term = 1.0 - beta * desired_g2
            if abs(cos_term) > 1.0 + self._APSIS_SNAP:
                return None
            cos_term = max(-1.0, min(1.0, cos_term))
            return math.acos(cos_term) / math.sqrt(beta)
        elif beta < 0.0:
            # G2 = (cosh(sqrt(-beta) s) - 1) / -beta
            return math.acosh(1.0 - beta * desired_g2) / math.sqrt(-beta)
        # G2 = s^2 / 2
        return math.sqrt(2.0 * desired_g2)

    # ========== SPECIAL METHODS ==========
    def __eq__(self, other):
        if not isinstance(other, Orbit):
            return NotImplemented
        return (
            self._primary == other.primary
            and np.isclose(self._alpha, other.alpha,
                           rtol=self._EQUALITY_RTOL, atol=self._EQUALITY_ATOL)
            and np.isclose(self._slr, other.semilatus_rectum(),
                           rtol=self._EQUALITY_RTOL, atol=self._EQUALITY_ATOL)
            and np.allclose(self._rotation, other.rotation,
                            rtol=self._EQUALITY_RTOL, atol=self._EQUALITY_ATOL)
        )

    __hash__ = None

    def __repr__(self):
        return (
            f"Orbit(primary={self._primary!r}, alpha={self._alpha!r}, "
            f"slr={self._slr!r}, regime={self._regime.value})"
        )

    def __str__(self):
        lines = [f"Orbit ({self._regime.value}):"]
        lines.append(f"  a    = {self.semimajor_axis():.6e} m")
        lines.append(f"  e    = {self._eccentricity:.6f}")
        lines.append(f"  i    = {np.degrees(self.inclination()):.4f} deg")
        lines.append(f"  Ω    = {np.degrees(self.long_asc_node()):.4f} deg")
        lines.append(f"  ω    = {np.degrees(self.arg_periapse()):.4f} deg")
        lines.append(f"  r_p  = {self.periapsis():.6e} m")
        return "\n".join(lines)


class CartesianState:
    """
    Position and velocity relative to a primary, in the primary's inertial frame.

    CartesianState is immutable; update_s returns a new state.
    """

    def __init__(self, primary, position, velocity):
        self._primary = primary
        self._position = _frozen_vector(position)
        self._velocity = _frozen_vector(velocity)

    # ========== PROPERTY ACCESS ==========
    @property
    def primary(self):
        return self._primary

    @property
    def position(self):
        return self._position

    @property
    def velocity(self):
        return self._velocity

    # ========== ORBITAL PROPERTIES ==========
    def energy(self):
        # KE = v^2/2, PE = -mu/r
        return (dot(self._velocity, self._velocity) / 2.0
                - self._primary.mu / norm(self._position))

    def get_orbit(self):
        return Orbit.from_cartesian(self._primary, self._position, self._velocity)

    def get_universal_anomaly(self):
        """Universal anomaly of this state on its own orbit."""
        orbit = self.get_orbit()
        if orbit.regime is OrbitRegime.RADIAL:
            # the radius alone fixes |s|; the direction of travel fixes its sign
            radius = norm(self._position)
            s = orbit.get_s_at_radius(radius)
            if s is None:
                raise InvalidOrbitError(
                    f"Radial state at r = {radius} does not lie on its own orbit {orbit!r}"
                )
            if dot(self._position, self._velocity) < 0.0:
                s = -s
            return s
        theta = directed_angle(orbit.periapse_vector(), self._position, orbit.normal_vector())
        return orbit.true_to_universal(theta)

    # ========== PROPAGATION ==========
    def update_s(self, delta_s):
        """
        Advance along the orbit by delta_s of universal anomaly.

        Uses the Lagrange f and g functions written with G-functions.

        Returns
        -------
        tuple of (CartesianState, float)
            New state and elapsed time [s]
        """
        beta = -2.0 * self.energy()
        mu = self._primary.mu
        G = stumpff_G(beta, delta_s)

        r_0 = norm(self._position)
        r_dot_0 = dot(self._position, self._velocity) / r_0

        f = 1.0 - mu / r_0 * G[2]
        g = r_0 * G[1] + r_0 * r_dot_0 * G[2]
        new_position = f * self._position + g * self._velocity
        new_r = norm(new_position)

        f_dot = -mu / r_0 / new_r * G[1]
        g_dot = r_0 / new_r * (G[0] + r_dot_0 * G[1])
        new_velocity = f_dot * self._position + g_dot * self._velocity

        delta_t = r_0 * G[1] + r_0 * r_dot_0 * G[2] + mu * G[3]
        return CartesianState(self._primary, new_position, new_velocity), delta_t

    # ========== SPECIAL METHODS ==========
    def __repr__(self):
        return (
            f"CartesianState(primary={self._primary!r}, "
            f"position={self._position.tolist()}, velocity={self._velocity.tolist()})"
        )


class TimedOrbit:
    """
    An Orbit together with its epoch of periapsis passage.

    This is the handle used for bodies and ships: it converts between
    simulation time and universal anomaly.
    """

    def __init__(self, orbit, time_at_periapsis):
        self._orbit = orbit
        self._time_at_periapsis = float(time_at_periapsis)

    @classmethod
    def from_orbit(cls, orbit, time_at_periapsis):
        return cls(orbit, time_at_periapsis)

    @classmethod
    def from_state(cls, state, current_time, secondary=None):
        """
        Orbit through `state`, timed so that it is at `state` at current_time.
        """
        orbit = state.get_orbit()
        if secondary is not None:
            orbit = orbit.with_secondary(secondary)
        time_since_periapsis = orbit.s_to_tsp(state.get_universal_anomaly())
        return cls(orbit, current_time - time_since_periapsis)

    # ========== PROPERTY ACCESS ==========
    @property
    def orbit(self):
        return self._orbit

    @property
    def time_at_periapsis(self):
        return self._time_at_periapsis

    @property
    def primary(self):
        return self._orbit.primary

    def with_primary(self, primary):
        return TimedOrbit(self._orbit.with_primary(primary), self._time_at_periapsis)

    def with_secondary(self, secondary):
        return TimedOrbit(self._orbit.with_secondary(secondary), self._time_at_periapsis)

    # ========== TIME EVALUATION ==========
    def state_at_time(self, time):
        return self._orbit.get_state_at_tsp(time - self._time_at_periapsis)

    def s_at_time(self, time):
        return self._orbit.tsp_to_s(time - self._time_at_periapsis)

    def time_at_s(self, s):
        return self._time_at_periapsis + self._orbit.s_to_tsp(s)

    def __repr__(self):
        return f"TimedOrbit({self._orbit!r}, time_at_periapsis={self._time_at_periapsis!r})"
