"""
Apsis: Universal-Variable Kepler Propagation and SOI Event Search

A Python package for patched-conic orbit propagation: Kepler orbits in
universal variables, certified search for sphere-of-influence transitions,
and a segmented timeline of the resulting history.
"""

# Configuration
from .config import config, temp_config

# Errors
from .utils import InvalidOrbitError, ConvergenceError, Timer

# Numerical kernels
from .stumpff import stumpff_c, stumpff_G
from .root_finding import find_root_bracket, bisection, newton_plus_bisection
from .intervals import Interval, BoundingBox

# Orbits
from .anomaly import OrbitRegime
from .orbit import PointMass, Orbit, CartesianState, TimedOrbit

# Bodies, ships and events
from .orrery import BodyID, ShipID, BodyInfo, Body, Ship, Orrery
from .events import (
    SOIChange, EventKind, EventTag, EventData, EventPoint, Event,
    SearchResult, SearchStatus, search_for_soi_escape, search_for_soi_encounter,
)
from .timeline import EventSearchHorizons, Timeline

# Loading
from .fileio import read_file
from .defaults import ksp_orrery

# Package metadata
__version__ = "0.1.0"
__author__ = "Shane Billingsley"

# Define what gets imported with "from apsis import *"
__all__ = [
    # Configuration
    "config",
    "temp_config",
    # Errors
    "InvalidOrbitError",
    "ConvergenceError",
    "Timer",
    # Kernels
    "stumpff_c",
    "stumpff_G",
    "find_root_bracket",
    "bisection",
    "newton_plus_bisection",
    "Interval",
    "BoundingBox",
    # Orbits
    "OrbitRegime",
    "PointMass",
    "Orbit",
    "CartesianState",
    "TimedOrbit",
    # Orrery
    "BodyID",
    "ShipID",
    "BodyInfo",
    "Body",
    "Ship",
    "Orrery",
    # Events
    "SOIChange",
    "EventKind",
    "EventTag",
    "EventData",
    "EventPoint",
    "Event",
    "SearchResult",
    "SearchStatus",
    "search_for_soi_escape",
    "search_for_soi_encounter",
    # Timeline
    "EventSearchHorizons",
    "Timeline",
    # Loading
    "read_file",
    "ksp_orrery",
]
