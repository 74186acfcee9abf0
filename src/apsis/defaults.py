"""
Reference Bodies and Orrery Factories
=====================================

Constants for the Kerbol system and a factory that builds an Orrery from the
bundled body table. The table is read on demand, so importing this module
costs nothing until ksp_orrery() is called.

Values taken from the Kerbal Space Program body table shipped in
``apsis/data/ksp-bodies.txt``. Units are SI (m, s, m^3/s^2).

Examples
--------
>>> from apsis import ksp_orrery, BodyID
>>> orrery = ksp_orrery()
>>> orrery.get_body(BodyID(4)).name
'Kerbin'
"""
import math
from pathlib import Path

from .fileio import read_file

KSP_BODIES_FILE = Path(__file__).parent / "data" / "ksp-bodies.txt"

KERBOL_MU = 1.1723328e18
KERBIN_ORBIT_RADIUS = 13_599_840_256.0
KERBIN_ORBIT_PERIOD = 9_203_544.6


def get_circular_velocity(radius, mu):
    """Speed of a circular orbit of the given radius [m/s]."""
    return math.sqrt(mu / radius)


def get_period(a, mu):
    """Period of an elliptic orbit with semimajor axis a [s]."""
    return 2.0 * math.pi * math.sqrt(a * a * a / mu)


def ksp_orrery():
    """
    Orrery of the seventeen stock Kerbol-system bodies.

    Ids follow table order: Kerbol is BodyID(0), Kerbin BodyID(4) and the
    Mun BodyID(5).
    """
    return read_file(KSP_BODIES_FILE)
