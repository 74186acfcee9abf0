'''Universal-variable Kepler propagation package
Body table loader

Reads a whitespace-delimited table of bodies into an Orrery. The first line
is a header naming the columns:

    name mu radius color parent a ecc incl lan argp maae

`parent` is "-" for the fixed root body, whose orbit columns may be left
out. Angles are in degrees, except `maae` (mean anomaly at epoch), which is
in radians. `color` is a 6-digit hex RGB string. Parents must appear before
their children.'''

import math

import pandas as pd

from .orbit import Orbit, PointMass
from .orrery import BodyInfo, Orrery
from .utils import validation_error

COLUMNS = ['name', 'mu', 'radius', 'color', 'parent', 'a', 'ecc', 'incl', 'lan', 'argp', 'maae']
ORBIT_COLUMNS = ['a', 'ecc', 'incl', 'lan', 'argp', 'maae']
ROOT_PARENT = '-'


def parse_color(text):
    """
    Convert a 6-digit hex RGB string to a tuple of floats in [0, 1].

    Raises
    ------
    ValueError
        If the string is not 6 hex digits
    """
    text = str(text)
    if len(text) != 6:
        raise ValueError(f"Color must be 6 hex digits, got '{text}'")
    return tuple(int(text[i:i + 2], 16) / 255.0 for i in (0, 2, 4))


def read_table(path):
    """
    Read a body table into a DataFrame without building any orbits.

    Text columns are kept as strings so colors such as '000000' survive.
    """
    df = pd.read_csv(
        path,
        sep=r'\s+',
        dtype={'name': str, 'color': str, 'parent': str},
    )
    missing = [col for col in COLUMNS[:5] if col not in df.columns]
    if missing:
        raise ValueError(f"Body table {path} is missing columns {missing}")
    return df


def read_file(path):
    """
    Load a body table into a new Orrery.

    Body ids are assigned in file order, starting at 0. Each orbiting body
    is timed so that it passed periapsis maae * period / (2 pi) seconds
    before t = 0.

    Parameters
    ----------
    path : str or path-like
        Location of the table

    Returns
    -------
    Orrery

    Raises
    ------
    ValueError
        If a row names an unknown parent, has a missing orbit column, or
        describes an open orbit (only elliptic orbits can be loaded)
    """
    df = read_table(path)
    orrery = Orrery()
    name_to_id = {}

    for row in df.itertuples(index=False):
        info = BodyInfo(
            name=row.name,
            mu=float(row.mu),
            radius=float(row.radius),
            color=parse_color(row.color),
        )

        if row.parent == ROOT_PARENT:
            name_to_id[row.name] = orrery.add_fixed_body(info)
            continue

        if row.parent not in name_to_id:
            validation_error(f"Body {row.name} has unknown parent '{row.parent}'")
            continue

        values = [getattr(row, col, math.nan) for col in ORBIT_COLUMNS]
        if any(pd.isna(value) for value in values):
            validation_error(f"Body {row.name} is missing orbital elements")
            continue
        a, ecc, incl, lan, argp, maae = (float(value) for value in values)

        if ecc >= 1.0:
            validation_error(
                f"Body {row.name} has eccentricity {ecc}; only elliptic orbits can be loaded"
            )
            continue

        parent_id = name_to_id[row.parent]
        parent_mu = orrery.get_body(parent_id).mu
        orbit = Orbit.from_kepler(
            PointMass(parent_mu), a, ecc,
            math.radians(incl), math.radians(lan), math.radians(argp),
        )
        # maae is the mean anomaly at epoch, so periapsis passed maae / n seconds ago
        time_since_periapsis = maae * orbit.period() / 2.0 / math.pi
        time_at_periapsis = -time_since_periapsis

        name_to_id[row.name] = orrery.add_body(info, orbit, time_at_periapsis, parent_id)

    return orrery
