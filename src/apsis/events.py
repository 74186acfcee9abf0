'''Universal-variable Kepler propagation package
SOI events and event search

Event records, the tri-state SearchResult, and the two searches that
produce them: leaving the current parent's sphere of influence (escape)
and entering a co-orbiting body's sphere of influence (encounter).'''

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from .config import config
from .geometry import dot, norm
from .intervals import BoundingBox, Interval, g0_inclusion, g1_inclusion, g2_inclusion
from .orrery import BodyID, ShipID
from .root_finding import bisection
from .utils import InvalidOrbitError, convergence_failure

logger = logging.getLogger(__name__)


# ========== EVENT RECORDS ==========
@dataclass(frozen=True)
class SOIChange:
    old: BodyID
    new: BodyID


class EventKind(Enum):
    ENTERING_SOI = 'entering_soi'
    EXITING_SOI = 'exiting_soi'


@dataclass(frozen=True)
class EventTag:
    """
    Key under which search progress is cached.

    Escape has a single tag per ship; encounters are tracked per target body.
    """
    kind: EventKind
    body: Optional[BodyID] = None

    @classmethod
    def escape_soi(cls):
        return cls(EventKind.EXITING_SOI)

    @classmethod
    def encounter_soi(cls, body_id):
        return cls(EventKind.ENTERING_SOI, body_id)

    def __repr__(self):
        if self.kind is EventKind.EXITING_SOI:
            return "EscapeSOI"
        return f"EncounterSOI({self.body!r})"


@dataclass(frozen=True)
class EventData:
    """What happens at an event: the ship enters or exits an SOI."""
    kind: EventKind
    soi_change: SOIChange

    @classmethod
    def entering_soi(cls, old, new):
        return cls(EventKind.ENTERING_SOI, SOIChange(old, new))

    @classmethod
    def exiting_soi(cls, old, new):
        return cls(EventKind.EXITING_SOI, SOIChange(old, new))

    def tag(self):
        if self.kind is EventKind.ENTERING_SOI:
            return EventTag.encounter_soi(self.soi_change.new)
        return EventTag.escape_soi()

    def __repr__(self):
        name = "EnteringSOI" if self.kind is EventKind.ENTERING_SOI else "ExitingSOI"
        return f"{name}(old={self.soi_change.old!r}, new={self.soi_change.new!r})"


@dataclass(frozen=True, eq=False)
class EventPoint:
    """Where and when an event happens, in the frame of the ship's old parent."""
    time: float
    anomaly: float
    location: np.ndarray


@dataclass(frozen=True, eq=False)
class Event:
    ship_id: ShipID
    data: EventData
    point: EventPoint

    @property
    def time(self):
        return self.point.time

    def __repr__(self):
        return f"Event({self.ship_id!r}, {self.data!r}, t={self.point.time!r})"


def first_event(events):
    """Earliest event in an iterable, or None. Ties go to the first one seen."""
    best = None
    for event in events:
        if best is None or event.point.time < best.point.time:
            best = event
    return best


# ========== SEARCH RESULTS ==========
class SearchStatus(Enum):
    FOUND = 'found'
    NOT_FOUND = 'not_found'
    NEVER = 'never'


@dataclass(frozen=True)
class SearchResult:
    """
    Outcome of a bounded search for one (ship, tag).

    - found(event): the event happens
    - not_found(horizon): nothing up to `horizon`; the search may resume there
    - never(): the event provably cannot happen
    """
    status: SearchStatus
    event: Optional[Event] = None
    horizon: Optional[float] = None

    @classmethod
    def found(cls, event):
        return cls(SearchStatus.FOUND, event=event)

    @classmethod
    def not_found(cls, horizon):
        return cls(SearchStatus.NOT_FOUND, horizon=horizon)

    @classmethod
    def never(cls):
        return cls(SearchStatus.NEVER)

    @property
    def is_found(self):
        return self.status is SearchStatus.FOUND

    @property
    def is_never(self):
        return self.status is SearchStatus.NEVER

    @property
    def is_not_found(self):
        return self.status is SearchStatus.NOT_FOUND


# ========== ESCAPE ==========
def search_for_soi_escape(orrery, ship_id):
    """
    Find when a ship leaves its parent's sphere of influence.

    The exit radius is reached at a closed-form anomaly, so no time window
    is needed.

    Returns
    -------
    SearchResult
        found(ExitingSOI) or never() if the parent is the fixed root body or
        the orbit never reaches the SOI radius
    """
    ship_orbit = orrery.orbit_of_ship(ship_id)
    current_body = ship_orbit.primary.id

    current_body_orbit = orrery.orbit_of_body(current_body)
    if current_body_orbit is None:
        # nothing to escape to from the root body
        return SearchResult.never()

    soi_radius = current_body_orbit.orbit.soi_radius()
    parent_body = current_body_orbit.primary.id

    escape_s = ship_orbit.orbit.get_s_at_radius(soi_radius)
    if escape_s is None:
        return SearchResult.never()

    escape_time = ship_orbit.time_at_s(escape_s)
    new_state = ship_orbit.orbit.get_state_at_universal_anomaly(escape_s)

    event = Event(
        ship_id,
        EventData.exiting_soi(current_body, parent_body),
        EventPoint(escape_time, escape_s, new_state.position),
    )
    logger.debug("Escape for ship %d from body %d at t = %.6f",
                 ship_id.index, current_body.index, escape_time)
    return SearchResult.found(event)


# ========== ENCOUNTER ==========
def get_apsis_interval(timed_orbit):
    """Range of radii an orbit can reach: [periapsis, apoapsis or inf]."""
    orbit = timed_orbit.orbit
    apoapsis = orbit.apoapsis()
    return Interval(orbit.periapsis(), math.inf if apoapsis is None else apoapsis)


def _s_interval(timed_orbit, time_interval):
    # s(t) is increasing, so the endpoints map to the endpoints
    return time_interval.monotone_map(timed_orbit.s_at_time)


def _rotate_box(rotation, x_interval, y_interval):
    # world_i = R[i, 0] * x + R[i, 1] * y for a point in the orbital plane
    return BoundingBox(*(
        x_interval * rotation[i, 0] + y_interval * rotation[i, 1] for i in range(3)
    ))


def get_position_bbox(timed_orbit, s_interval):
    """Box containing every position the orbit takes for s in s_interval."""
    orbit = timed_orbit.orbit
    beta = orbit.beta()
    r_p = orbit.periapsis()
    mu = orbit.mu
    h = orbit.angular_momentum()

    g1 = g1_inclusion(beta, s_interval)
    g2 = g2_inclusion(beta, s_interval)

    # native frame: x = r_p - mu G2, y = h G1
    return _rotate_box(orbit.rotation, r_p - mu * g2, h * g1)


def get_velocity_bbox(timed_orbit, s_interval):
    """
    Box containing every velocity the orbit takes for s in s_interval.

    Raises
    ------
    InvalidOrbitError
        If the radius enclosure reaches zero (radial orbits through the primary)
    """
    orbit = timed_orbit.orbit
    beta = orbit.beta()
    r_p = orbit.periapsis()
    mu = orbit.mu
    h = orbit.angular_momentum()

    g0 = g0_inclusion(beta, s_interval)
    g1 = g1_inclusion(beta, s_interval)
    g2 = g2_inclusion(beta, s_interval)

    # r = r_p + mu e G2
    r = r_p + mu * orbit.eccentricity() * g2
    if r.lo <= 0.0:
        raise InvalidOrbitError(
            f"Radius enclosure {r} reaches the primary; cannot bound velocity of {orbit!r}"
        )
    inv_r = r.monotone_map(lambda value: 1.0 / value)

    # native frame: vx = -mu/r G1, vy = h/r G0
    return _rotate_box(orbit.rotation, -mu * inv_r * g1, h * inv_r * g0)


class _EncounterFunction:
    """
    f(t) = |p_ship(t) - p_target(t)|^2 - R^2 and its time derivative,
    evaluated exactly at points and enclosed over intervals.
    """

    def __init__(self, ship_orbit, target_orbit, soi_radius):
        self.ship_orbit = ship_orbit
        self.target_orbit = target_orbit
        self.soi_radius = soi_radius
        self.r_squared = soi_radius * soi_radius

    def relative_state(self, t):
        ship_state = self.ship_orbit.state_at_time(t)
        target_state = self.target_orbit.state_at_time(t)
        return (ship_state.position - target_state.position,
                ship_state.velocity - target_state.velocity)

    def distance(self, t):
        return norm(self.relative_state(t)[0])

    def value_and_derivative(self, t):
        dp, dv = self.relative_state(t)
        return dot(dp, dp) - self.r_squared, 2.0 * dot(dp, dv)

    def value(self, t):
        dp, _ = self.relative_state(t)
        return dot(dp, dp) - self.r_squared

    def enclosures(self, time_interval):
        """(f(X), f'(X)) enclosures over a time interval X."""
        ship_s = _s_interval(self.ship_orbit, time_interval)
        target_s = _s_interval(self.target_orbit, time_interval)

        dp = get_position_bbox(self.ship_orbit, ship_s) - get_position_bbox(self.target_orbit, target_s)
        f_x = dp.squared_norm() - self.r_squared

        # only build velocity boxes when f(X) can vanish
        if not f_x.contains(0.0):
            return f_x, None
        dv = get_velocity_bbox(self.ship_orbit, ship_s) - get_velocity_bbox(self.target_orbit, target_s)
        return f_x, 2.0 * dp.dot(dv)


def search_for_soi_encounter(orrery, ship_id, target_id, start_time, end_time):
    """
    Find the first time in [start_time, end_time] the ship enters the
    target body's sphere of influence.

    Parameters
    ----------
    orrery : Orrery
    ship_id : ShipID
    target_id : BodyID
    start_time, end_time : float
        Search window [s]

    Returns
    -------
    SearchResult
        found(EnteringSOI), never() if the target is the root body, does not
        share the ship's parent, or its apsis range is out of reach, and
        otherwise not_found(end_time)

    Raises
    ------
    InvalidOrbitError
        If the window is reversed
    ConvergenceError
        If the subdivision budget is exhausted
    """
    if start_time > end_time:
        raise InvalidOrbitError(f"Reversed window: {start_time} > {end_time}")

    ship_orbit = orrery.orbit_of_ship(ship_id)
    parent_id = ship_orbit.primary.id

    target_orbit = orrery.orbit_of_body(target_id)
    if target_orbit is None:
        # the root body's SOI contains everything already
        return SearchResult.never()
    if target_orbit.primary.id != parent_id:
        return SearchResult.never()

    soi_radius = target_orbit.orbit.soi_radius()

    # quick check: radial ranges too far apart to ever come within R
    if get_apsis_interval(ship_orbit).separated_by(get_apsis_interval(target_orbit), soi_radius):
        return SearchResult.never()

    entry_time = find_encounter_time(ship_orbit, target_orbit, soi_radius, start_time, end_time)
    if entry_time is None:
        return SearchResult.not_found(end_time)

    new_state = ship_orbit.state_at_time(entry_time)
    event = Event(
        ship_id,
        EventData.entering_soi(parent_id, target_id),
        EventPoint(entry_time, new_state.get_universal_anomaly(), new_state.position),
    )
    return SearchResult.found(event)


def _narrow_entry_window(func, window, width):
    # window holds exactly one root, an entry: keep the half it falls in
    while window.width() >= width:
        first, second = window.bisect()
        window = first if func.distance(first.hi) <= func.soi_radius else second
    return window


def find_encounter_time(ship_orbit, target_orbit, soi_radius, start_time, end_time):
    """
    Earliest time in the window at which the distance between two
    co-orbiting bodies drops to soi_radius.

    Candidate windows are kept on a stack, earliest on top, and split in
    half until they are narrower than ENCOUNTER_WINDOW_WIDTH. A window is
    discarded if the enclosure of f excludes zero, if f cannot decrease on
    it, or if the Krawczyk operator K at its midpoint proves it holds no
    root or only an exit; a half that misses K is never pushed. A window
    the operator certifies to hold one entry is narrowed straight down to
    the sub-window containing it. The first narrow window whose end lies
    inside the SOI is refined by bisection on d(t) - R.

    Returns
    -------
    float or None
        None if no entry occurs in the window

    Raises
    ------
    InvalidOrbitError
        If the orbits do not share a primary
    ConvergenceError
        If more than MAX_ENCOUNTER_SUBDIVISIONS windows are examined
    """
    if ship_orbit.primary.id != target_orbit.primary.id:
        raise InvalidOrbitError(
            f"Encounter search needs co-orbiting bodies, got primaries "
            f"{ship_orbit.primary.id} and {target_orbit.primary.id}"
        )

    func = _EncounterFunction(ship_orbit, target_orbit, soi_radius)
    window_width = config.ENCOUNTER_WINDOW_WIDTH
    max_subdivisions = config.MAX_ENCOUNTER_SUBDIVISIONS

    interval_stack = [Interval(start_time, end_time)]
    root_interval = None
    num_processed = 0

    while interval_stack:
        num_processed += 1
        if num_processed > max_subdivisions:
            convergence_failure(
                f"Encounter search exceeded {max_subdivisions} subdivisions in "
                f"[{start_time}, {end_time}] with R = {soi_radius}"
            )

        X = interval_stack.pop()
        f_x, f_prime_x = func.enclosures(X)
        if f_prime_x is None:
            continue

        if X.width() < window_width:
            if func.distance(X.hi) > soi_radius:
                continue
            root_interval = X
            break

        # Krawczyk operator at the midpoint
        y = X.midpoint()
        f_y, f_prime_y = func.value_and_derivative(y)
        K = None
        if f_prime_y != 0.0:
            Y = 1.0 / f_prime_y
            contraction = 1.0 - Y * f_prime_x
            K = (y - Y * f_y) + contraction * (X - y)

            if K.is_subset_of(X) and contraction.norm() < 1.0:
                # exactly one root in X, and f' keeps the sign of f'(y) on it
                if f_prime_y > 0.0:
                    continue
                root_interval = _narrow_entry_window(func, X, window_width)
                break

            if X.intersect(K) is None:
                continue

        if f_prime_x.lo >= 0.0:
            # distance only grows here: an exit, not an entry
            continue

        # every root in X lies in K, so a half that misses K holds none
        first, second = X.bisect()
        for half in (second, first):
            if K is None or half.intersect(K) is not None:
                interval_stack.append(half)

    logger.debug("Encounter search in [%.6f, %.6f] examined %d windows",
                 start_time, end_time, num_processed)

    if root_interval is None:
        return None

    logger.debug("Suspected encounter window %s", root_interval)
    return bisection(
        lambda t: func.distance(t) - soi_radius,
        root_interval,
        config.NUM_ITERATIONS_SOI_ENCOUNTER,
    )
