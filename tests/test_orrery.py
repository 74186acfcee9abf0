"""
Test suite for the Orrery registry.

Tests cover:
- Body hierarchy loaded from the KSP table
- Root-frame positions and velocities of bodies and ships
- SOI radii
- Adding bodies and ships, and their validation
- Re-rooting a ship while preserving its root-frame state
- Copies not sharing state
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from apsis import (
    Orrery, Orbit, PointMass, BodyInfo, BodyID, ShipID, InvalidOrbitError,
    EventData, EventPoint, Event,
)
from apsis.defaults import KERBIN_ORBIT_RADIUS

KERBOL = BodyID(0)
KERBIN = BodyID(4)
MUN = BodyID(5)
MINMUS = BodyID(6)
DUNA = BodyID(7)


def add_test_ship(orrery, time=0.0):
    return orrery.add_ship([6e6, 0.0, 0.0], [0.0, 1000.0, 0.0], time, KERBIN)


class TestHierarchy:
    """Test the loaded body tree."""

    def test_ids_follow_file_order(self, orrery):
        names = [body.name for body in orrery.bodies()]
        assert names[:6] == ['Kerbol', 'Moho', 'Eve', 'Gilly', 'Kerbin', 'Mun']
        assert len(orrery) == 17

    def test_parents(self, orrery):
        assert orrery.get_parent(KERBOL) is None
        assert orrery.get_parent(KERBIN) == KERBOL
        assert orrery.get_parent(MUN) == KERBIN

    def test_soi_radius(self, orrery):
        assert orrery.get_soi_radius(KERBOL) is None
        assert orrery.get_soi_radius(KERBIN) == pytest.approx(84_159_286.0, rel=1e-7)
        assert orrery.get_soi_radius(MUN) < 12e6

    def test_body_orbits(self, orrery):
        assert len(list(orrery.body_orbits())) == 16
        assert orrery.orbit_of_body(KERBOL) is None


class TestPositions:
    """Test root-frame positions."""

    def test_root_at_origin(self, orrery):
        assert_allclose(orrery.get_body_position(KERBOL, 1234.0), np.zeros(3))

    def test_kerbin_circular(self, orrery):
        for t in (0.0, 1e5, 3e6):
            position = orrery.get_body_position(KERBIN, t)
            assert np.linalg.norm(position) == pytest.approx(KERBIN_ORBIT_RADIUS, rel=1e-12)

    def test_mun_relative_to_kerbin(self, orrery):
        t = 5e4
        relative = orrery.get_body_position(MUN, t) - orrery.get_body_position(KERBIN, t)
        assert np.linalg.norm(relative) == pytest.approx(12e6, rel=1e-9)

    def test_velocity_adds_parent(self, orrery):
        t = 2e4
        relative = orrery.get_body_velocity(MUN, t) - orrery.get_body_velocity(KERBIN, t)
        expected = orrery.orbit_of_body(MUN).state_at_time(t).velocity
        assert_allclose(relative, expected, rtol=1e-6)

    def test_ship_position(self, orrery):
        ship_id = add_test_ship(orrery)
        expected = orrery.get_body_position(KERBIN, 0.0) + np.array([6e6, 0.0, 0.0])
        assert_allclose(orrery.get_ship_position(ship_id, 0.0), expected, rtol=1e-12, atol=1e-3)
        expected_v = orrery.get_body_velocity(KERBIN, 0.0) + np.array([0.0, 1000.0, 0.0])
        assert_allclose(orrery.get_ship_velocity(ship_id, 0.0), expected_v, rtol=1e-9, atol=1e-6)


class TestAdding:
    """Test adding bodies and ships."""

    def test_ship_ids(self, orrery):
        assert add_test_ship(orrery) == ShipID(0)
        assert add_test_ship(orrery) == ShipID(1)
        assert orrery.get_ship(ShipID(1)).parent_id == KERBIN
        assert len(list(orrery.ships())) == 2

    def test_ship_unknown_parent(self, orrery):
        with pytest.raises(KeyError):
            orrery.add_ship([1.0, 0.0, 0.0], [0.0, 1.0, 0.0], 0.0, BodyID(99))

    def test_body_unknown_parent(self):
        orrery = Orrery()
        orbit = Orbit.from_kepler(PointMass(1.0), 10.0, 0.0, 0.0, 0.0, 0.0)
        with pytest.raises(KeyError):
            orrery.add_body(BodyInfo("Moon", 0.01, 1.0), orbit, 0.0, BodyID(0))

    def test_body_mu_mismatch(self):
        orrery = Orrery()
        root = orrery.add_fixed_body(BodyInfo("Sun", 1.0, 1.0))
        orbit = Orbit.from_kepler(PointMass(2.0), 10.0, 0.0, 0.0, 0.0, 0.0)
        with pytest.raises(ValueError, match="mu"):
            orrery.add_body(BodyInfo("Planet", 0.01, 1.0), orbit, 0.0, root)

    def test_non_positive_mu(self):
        with pytest.raises(ValueError, match="positive mu"):
            Orrery().add_fixed_body(BodyInfo("Void", 0.0, 1.0))

    def test_body_orbit_knows_both_bodies(self):
        orrery = Orrery()
        root = orrery.add_fixed_body(BodyInfo("Sun", 1.0, 1.0))
        orbit = Orbit.from_kepler(PointMass(1.0), 10.0, 0.0, 0.0, 0.0, 0.0)
        planet = orrery.add_body(BodyInfo("Planet", 0.01, 0.1), orbit, 0.0, root)
        timed = orrery.orbit_of_body(planet)
        assert timed.primary.id == root
        assert timed.orbit.secondary.id == planet
        assert orrery.get_soi_radius(planet) == pytest.approx(10.0 * 0.01 ** 0.4)


class TestChangeSOI:
    """Test re-rooting ships."""

    @pytest.mark.parametrize("new_parent", [KERBOL, MUN, DUNA])
    def test_root_frame_state_preserved(self, orrery, new_parent):
        ship_id = add_test_ship(orrery)
        t = 3600.0
        position = orrery.get_ship_position(ship_id, t)
        velocity = orrery.get_ship_velocity(ship_id, t)

        orrery.change_soi(ship_id, new_parent, t)

        assert orrery.get_ship(ship_id).parent_id == new_parent
        assert_allclose(orrery.get_ship_position(ship_id, t), position, rtol=1e-9, atol=1e-2)
        assert_allclose(orrery.get_ship_velocity(ship_id, t), velocity, rtol=1e-7, atol=1e-5)

    def test_moon_relative_state(self, orrery):
        # the frames are composed through Kerbol, so only heliocentric rounding is lost
        ship_id = add_test_ship(orrery)
        t = 3600.0
        state = orrery.orbit_of_ship(ship_id).state_at_time(t)
        mun_state = orrery.orbit_of_body(MUN).state_at_time(t)

        orrery.change_soi(ship_id, MUN, t)

        rerooted = orrery.orbit_of_ship(ship_id).state_at_time(t)
        assert_allclose(rerooted.position, state.position - mun_state.position, rtol=1e-10, atol=1e-4)
        assert_allclose(rerooted.velocity, state.velocity - mun_state.velocity, rtol=1e-10, atol=1e-8)

    def test_disjoint_trees(self, orrery):
        ship_id = add_test_ship(orrery)
        other = orrery.add_fixed_body(BodyInfo("Rogue", 1e10, 1000.0))
        with pytest.raises(InvalidOrbitError, match="common ancestor"):
            orrery.change_soi(ship_id, other, 0.0)

    def test_process_and_revert(self, orrery):
        ship_id = add_test_ship(orrery)
        t = 100.0
        position = orrery.get_ship_position(ship_id, t)
        event = Event(
            ship_id,
            EventData.exiting_soi(KERBIN, KERBOL),
            EventPoint(t, 0.0, np.zeros(3)),
        )
        orrery.process_event(event)
        assert orrery.get_ship(ship_id).parent_id == KERBOL
        orrery.revert_event(event)
        assert orrery.get_ship(ship_id).parent_id == KERBIN
        assert_allclose(orrery.get_ship_position(ship_id, t), position, rtol=1e-9, atol=1e-2)

    def test_logs_reroot(self, orrery, caplog):
        ship_id = add_test_ship(orrery)
        with caplog.at_level("INFO", logger="apsis.orrery"):
            orrery.change_soi(ship_id, KERBOL, 0.0)
        assert "Rerooted ship 0 from Kerbin to Kerbol" in caplog.text


class TestCopy:
    """Test that copies are independent."""

    def test_copy_does_not_share_ships(self, orrery):
        ship_id = add_test_ship(orrery)
        clone = orrery.copy()
        clone.change_soi(ship_id, KERBOL, 0.0)
        assert orrery.get_ship(ship_id).parent_id == KERBIN
        assert clone.get_ship(ship_id).parent_id == KERBOL

    def test_copy_keeps_id_counters(self, orrery):
        add_test_ship(orrery)
        clone = orrery.copy()
        assert add_test_ship(clone) == ShipID(1)
