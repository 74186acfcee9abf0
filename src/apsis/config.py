"""
Global Configuration for Apsis Package
======================================

This module provides package-wide configuration settings that users can modify
to control numerical tolerances, iteration budgets, and validation behavior.

Examples
--------
View current configuration:

>>> import apsis
>>> print(apsis.config)

Modify settings:

>>> apsis.config.NUM_ITERATIONS_DELTA_T = 5000  # Larger root-finding budget

Reset to defaults:

>>> apsis.config.reset()

Temporarily modify settings:

>>> with apsis.temp_config(ENCOUNTER_WINDOW_WIDTH=1.0):
...     timeline.extend_end_time(86400.0)

Notes
-----
These settings affect package-wide behavior. Modifying them will impact
all subsequent operations until changed again or reset. Event search
results depend on these values, so a timeline should be extended under a
single, fixed configuration if its history must be reproducible.
"""

from dataclasses import dataclass
from contextlib import contextmanager


@dataclass
class ApsisConfig:
    """
    Global configuration for Apsis package.

    Attributes
    ----------
    ECCENTRICITY_SNAP_TOLERANCE : float
        Squared eccentricity in (-tol, 0) is treated as exactly circular.
        Anything below -tol is an invalid orbit configuration.
        Default: 1e-9
    ROTATION_TOLERANCE : float
        Vectors shorter than this are considered degenerate when building
        an orbit orientation.
        Default: 1e-20
    NUM_ITERATIONS_DELTA_T : int
        Iteration budget for bracketing and solving the time-of-flight
        equation (time since periapsis -> universal anomaly).
        Default: 2000
    NUM_ITERATIONS_KEPLER : int
        Iteration budget for bracketing and solving Kepler's equation.
        Default: 100
    NUM_ITERATIONS_SOI_ENCOUNTER : int
        Bisection budget for refining an SOI encounter time.
        Default: 1000
    MAX_ENCOUNTER_SUBDIVISIONS : int
        Maximum number of time intervals the encounter search may examine
        in a single call before giving up.
        Default: 100000
    ENCOUNTER_WINDOW_WIDTH : float
        Width [s] below which a candidate window is no longer split. The
        earliest such window whose end lies inside the SOI brackets the
        entry time that bisection then refines.
        Default: 10.0
    STRICT_VALIDATION : bool
        If True, input validation failures raise exceptions.
        If False, validation failures issue warnings.
        Default: True
    """

    # Orbit shape
    ECCENTRICITY_SNAP_TOLERANCE: float = 1e-9
    ROTATION_TOLERANCE: float = 1e-20

    # Root-finding budgets
    NUM_ITERATIONS_DELTA_T: int = 2000
    NUM_ITERATIONS_KEPLER: int = 100
    NUM_ITERATIONS_SOI_ENCOUNTER: int = 1000

    # Encounter search
    MAX_ENCOUNTER_SUBDIVISIONS: int = 100000
    ENCOUNTER_WINDOW_WIDTH: float = 10.0

    # Validation behavior
    STRICT_VALIDATION: bool = True

    def reset(self):
        """
        Reset all configuration values to package defaults.

        Examples
        --------
        >>> import apsis
        >>> apsis.config.NUM_ITERATIONS_KEPLER = 10  # Modify
        >>> apsis.config.reset()  # Back to defaults
        >>> apsis.config.NUM_ITERATIONS_KEPLER
        100
        """
        defaults = ApsisConfig()
        for key in self.__dataclass_fields__:
            setattr(self, key, getattr(defaults, key))

    def __repr__(self):
        """Return formatted string showing all configuration values."""
        lines = ["ApsisConfig:"]
        lines.append("  Orbit Shape:")
        lines.append(f"    ECCENTRICITY_SNAP_TOLERANCE = {self.ECCENTRICITY_SNAP_TOLERANCE}")
        lines.append(f"    ROTATION_TOLERANCE = {self.ROTATION_TOLERANCE}")
        lines.append("  Root Finding:")
        lines.append(f"    NUM_ITERATIONS_DELTA_T = {self.NUM_ITERATIONS_DELTA_T}")
        lines.append(f"    NUM_ITERATIONS_KEPLER = {self.NUM_ITERATIONS_KEPLER}")
        lines.append(f"    NUM_ITERATIONS_SOI_ENCOUNTER = {self.NUM_ITERATIONS_SOI_ENCOUNTER}")
        lines.append("  Encounter Search:")
        lines.append(f"    MAX_ENCOUNTER_SUBDIVISIONS = {self.MAX_ENCOUNTER_SUBDIVISIONS}")
        lines.append(f"    ENCOUNTER_WINDOW_WIDTH = {self.ENCOUNTER_WINDOW_WIDTH}")
        lines.append("  Behavior:")
        lines.append(f"    STRICT_VALIDATION = {self.STRICT_VALIDATION}")
        return "\n".join(lines)


# Global configuration instance
config = ApsisConfig()


@contextmanager
def temp_config(**kwargs):
    """
    Context manager for temporarily modifying configuration values.

    Configuration is automatically restored when the context exits,
    even if an exception occurs.

    Parameters
    ----------
    **kwargs
        Configuration attributes to temporarily modify.

    Examples
    --------
    >>> import apsis
    >>> with apsis.temp_config(STRICT_VALIDATION=False):
    ...     orrery = apsis.read_file("bodies.txt")  # warn on bad rows
    >>> apsis.config.STRICT_VALIDATION
    True

    Raises
    ------
    AttributeError
        If an invalid configuration attribute is specified.
    """
    old_values = {}
    for key, value in kwargs.items():
        if not hasattr(config, key):
            raise AttributeError(
                f"ApsisConfig has no attribute '{key}'. "
                f"Valid attributes: {list(config.__dataclass_fields__.keys())}"
            )
        old_values[key] = getattr(config, key)
        setattr(config, key, value)

    try:
        yield config
    finally:
        for key, value in old_values.items():
            setattr(config, key, value)
