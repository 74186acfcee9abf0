'''Universal-variable Kepler propagation package
Orrery class definition

The Orrery is a registry of bodies and ships addressed by integer ids. A
body either sits fixed at the origin of the root frame or follows a timed
orbit around its parent body; ships always orbit a body.'''

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .orbit import CartesianState, TimedOrbit
from .utils import InvalidOrbitError, validation_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class BodyID:
    index: int

    def __repr__(self):
        return f"BodyID({self.index})"


@dataclass(frozen=True, order=True)
class ShipID:
    index: int

    def __repr__(self):
        return f"ShipID({self.index})"


@dataclass(frozen=True)
class BodyInfo:
    """
    Immutable descriptive data for a body.

    Attributes
    ----------
    name : str
    mu : float
        Gravitational parameter [m^3/s^2]
    radius : float
        Physical radius [m]
    color : tuple of float
        RGB components in [0, 1]
    """
    name: str
    mu: float
    radius: float
    color: Tuple[float, float, float] = (1.0, 1.0, 1.0)


@dataclass(frozen=True)
class Body:
    id: BodyID
    info: BodyInfo

    @property
    def mu(self):
        return self.info.mu

    @property
    def name(self):
        return self.info.name


@dataclass(frozen=True)
class Ship:
    id: ShipID
    orbit: TimedOrbit

    @property
    def parent_id(self):
        return self.orbit.primary.id


class Orrery:
    """
    Registry of bodies and ships at a point in the simulation.

    Bodies, ships and their orbits are immutable values, so copy() is cheap
    and copies never share mutable state. Iteration order is insertion
    order, which keeps event searches over an Orrery deterministic.
    """

    def __init__(self):
        self._bodies = {}         # BodyID -> (Body, TimedOrbit or None)
        self._ships = {}          # ShipID -> Ship
        self._next_body_id = 0
        self._next_ship_id = 0

    def copy(self):
        new = Orrery()
        new._bodies = dict(self._bodies)
        new._ships = dict(self._ships)
        new._next_body_id = self._next_body_id
        new._next_ship_id = self._next_ship_id
        return new

    # ========== BODIES ==========
    def add_fixed_body(self, body_info):
        """Add a body pinned at the root-frame origin. Returns its BodyID."""
        return self._insert_new_body(body_info, None)

    def add_body(self, body_info, orbit, time_at_periapsis, parent_id):
        """
        Add a body orbiting an existing body.

        Parameters
        ----------
        body_info : BodyInfo
        orbit : Orbit
            Orbit around the parent; its primary is replaced by the parent
            body, and must carry the parent's mass parameter if set
        time_at_periapsis : float
            Epoch of periapsis passage [s]
        parent_id : BodyID

        Returns
        -------
        BodyID
        """
        if parent_id not in self._bodies:
            raise KeyError(f"Unknown parent body {parent_id} for {body_info.name}")
        parent = self._bodies[parent_id][0]
        if orbit.primary is not None and orbit.primary.mu != parent.mu:
            validation_error(
                f"Orbit of {body_info.name} has primary mu = {orbit.primary.mu}, "
                f"but parent {parent.name} has mu = {parent.mu}"
            )

        body = Body(BodyID(self._next_body_id), body_info)
        timed_orbit = TimedOrbit(orbit.with_primary(parent).with_secondary(body), time_at_periapsis)
        return self._insert_new_body(body_info, timed_orbit, body)

    def _insert_new_body(self, info, orbit, body=None):
        if info.mu <= 0.0:
            validation_error(f"Body {info.name} must have positive mu, got {info.mu}")
        body_id = BodyID(self._next_body_id)
        self._next_body_id += 1
        if body is None:
            body = Body(body_id, info)
        self._bodies[body_id] = (body, orbit)
        return body_id

    def get_body(self, body_id) -> Body:
        return self._bodies[body_id][0]

    def bodies(self):
        """Iterate over all bodies in id order."""
        return (body for body, _ in self._bodies.values())

    def body_orbits(self):
        """Iterate over the timed orbits of all non-fixed bodies."""
        return (orbit for _, orbit in self._bodies.values() if orbit is not None)

    def orbit_of_body(self, body_id) -> Optional[TimedOrbit]:
        """Timed orbit of a body around its parent, or None for a fixed body."""
        return self._bodies[body_id][1]

    def get_parent(self, body_id) -> Optional[BodyID]:
        orbit = self.orbit_of_body(body_id)
        if orbit is None:
            return None
        return orbit.primary.id

    def get_soi_radius(self, body_id) -> Optional[float]:
        """SOI radius of a body, or None for a fixed body (unbounded)."""
        orbit = self.orbit_of_body(body_id)
        if orbit is None:
            return None
        return orbit.orbit.soi_radius()

    def get_body_position(self, body_id, time):
        """Position of a body in the root frame at the given time."""
        orbit = self.orbit_of_body(body_id)
        if orbit is None:
            return np.zeros(3)
        relative = orbit.state_at_time(time).position
        return self.get_body_position(orbit.primary.id, time) + relative

    def get_body_velocity(self, body_id, time):
        """Velocity of a body in the root frame at the given time."""
        orbit = self.orbit_of_body(body_id)
        if orbit is None:
            return np.zeros(3)
        relative = orbit.state_at_time(time).velocity
        return self.get_body_velocity(orbit.primary.id, time) + relative

    def _ancestors(self, body_id):
        """[body_id, parent, grandparent, ..., root]"""
        chain = [body_id]
        parent_id = self.get_parent(body_id)
        while parent_id is not None:
            chain.append(parent_id)
            parent_id = self.get_parent(parent_id)
        return chain

    def _frame_from_root(self, body_id, time):
        # (translation, velocity) taking root-frame states into the body's
        # frame, accumulated from the root downwards
        translation = np.zeros(3)
        velocity = np.zeros(3)
        for chain_id in reversed(self._ancestors(body_id)):
            orbit = self.orbit_of_body(chain_id)
            if orbit is None:
                continue
            state = orbit.state_at_time(time)
            translation = translation + (-state.position)
            velocity = state.velocity + velocity
        return translation, velocity

    # ========== SHIPS ==========
    def add_ship(self, position, velocity, current_time, parent_id):
        """
        Add a ship from a state relative to its parent body.

        Parameters
        ----------
        position, velocity : array-like
            State relative to the parent [m, m/s]
        current_time : float
            Time at which the ship has this state [s]
        parent_id : BodyID

        Returns
        -------
        ShipID
        """
        if parent_id not in self._bodies:
            raise KeyError(f"Unknown parent body {parent_id} for new ship")
        ship_id = ShipID(self._next_ship_id)
        self._next_ship_id += 1

        primary = self.get_body(parent_id)
        orbit = TimedOrbit.from_state(CartesianState(primary, position, velocity), current_time)
        self._ships[ship_id] = Ship(ship_id, orbit)
        return ship_id

    def get_ship(self, ship_id) -> Ship:
        return self._ships[ship_id]

    def ships(self):
        """Iterate over all ships in id order."""
        return iter(self._ships.values())

    def orbit_of_ship(self, ship_id) -> TimedOrbit:
        return self._ships[ship_id].orbit

    def get_ship_position(self, ship_id, time):
        """Position of a ship in the root frame at the given time."""
        ship = self._ships[ship_id]
        relative = ship.orbit.state_at_time(time).position
        return self.get_body_position(ship.parent_id, time) + relative

    def get_ship_velocity(self, ship_id, time):
        """Velocity of a ship in the root frame at the given time."""
        ship = self._ships[ship_id]
        relative = ship.orbit.state_at_time(time).velocity
        return self.get_body_velocity(ship.parent_id, time) + relative

    # ========== EVENTS ==========
    def change_soi(self, ship_id, new_parent_id, event_time):
        """
        Re-root a ship onto a new parent body at event_time.

        The ship keeps the same root-frame position and velocity; only the
        frame its orbit is expressed in changes.
        """
        ship = self._ships[ship_id]
        old_parent_id = ship.parent_id

        if self._ancestors(old_parent_id)[-1] != self._ancestors(new_parent_id)[-1]:
            raise InvalidOrbitError(
                f"Bodies {old_parent_id} and {new_parent_id} share no common ancestor"
            )

        # both frames are composed from the root, then differenced
        old_translation, old_velocity = self._frame_from_root(old_parent_id, event_time)
        new_translation, new_velocity = self._frame_from_root(new_parent_id, event_time)
        state = ship.orbit.state_at_time(event_time)
        position = state.position + (new_translation - old_translation)
        velocity = state.velocity - (new_velocity - old_velocity)

        new_parent = self.get_body(new_parent_id)
        new_orbit = TimedOrbit.from_state(CartesianState(new_parent, position, velocity), event_time)
        self._ships[ship_id] = Ship(ship_id, new_orbit)

        logger.info(
            "Rerooted ship %d from %s to %s at t = %.6f",
            ship_id.index, self.get_body(old_parent_id).name, new_parent.name, event_time,
        )

    def process_event(self, event):
        """Apply an SOI-change event: move the ship to the event's new body."""
        self.change_soi(event.ship_id, event.data.soi_change.new, event.point.time)

    def revert_event(self, event):
        """Undo an SOI-change event: move the ship back to the event's old body."""
        self.change_soi(event.ship_id, event.data.soi_change.old, event.point.time)

    # ========== SPECIAL METHODS ==========
    def __len__(self):
        return len(self._bodies)

    def __repr__(self):
        return f"Orrery({len(self._bodies)} bodies, {len(self._ships)} ships)"

    def __str__(self):
        lines = [repr(self)]
        for body, orbit in self._bodies.values():
            parent = "-" if orbit is None else orbit.primary.name
            lines.append(f"  {body.id.index:3d} {body.name:<12} parent: {parent}")
        for ship in self._ships.values():
            lines.append(f"  ship {ship.id.index} parent: {self.get_body(ship.parent_id).name}")
        return "\n".join(lines)
