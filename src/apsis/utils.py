"""
Utility functions and classes for the Apsis package.
"""

import logging
from time import perf_counter
import warnings
from typing import Type
from .config import config

logger = logging.getLogger(__name__)


class InvalidOrbitError(ValueError):
    """
    Raised when inputs describe a configuration the engine cannot represent.

    Examples include a squared eccentricity meaningfully below zero, an SOI
    radius requested for an open orbit, or a reversed search window.
    """


class ConvergenceError(RuntimeError):
    """
    Raised when an iterative method exhausts its iteration budget.

    The numerical kernels are built to converge whenever they are given a
    valid bracket, so this always indicates an edge case worth reporting.
    The message carries the inputs that triggered it.
    """


class Timer:
    """
    Context manager that measures wall-clock time and logs it on exit.

    Parameters
    ----------
    label : str
        What is being timed; leads the log message
    log : logging.Logger, optional
        Logger to report to. Defaults to this module's logger
    level : int, optional
        Level of the report. Default: logging.DEBUG

    Examples
    --------
    >>> with Timer("Extension", logging.getLogger("apsis.timeline")) as timer:
    ...     timeline.extend_end_time(86400.0)
    >>> timer.elapsed
    0.123456
    """
    def __init__(self, label, log=None, level=logging.DEBUG):
        self.label = label
        self.log = logger if log is None else log
        self.level = level
        self.elapsed = None
        self._start = None

    def __enter__(self):
        self._start = perf_counter()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.elapsed = perf_counter() - self._start
        outcome = "took" if exc_type is None else "failed after"
        self.log.log(self.level, "%s %s %.6f s", self.label, outcome, self.elapsed)
        return False


def validation_error(message: str, error_class: Type[Exception] = ValueError):
    """
    Raise error or warn based on config.STRICT_VALIDATION.

    This function provides consistent validation behavior across the package.
    When STRICT_VALIDATION is True (default), raises the specified exception.
    When False, issues a UserWarning instead.

    Parameters
    ----------
    message : str
        Validation error message
    error_class : Type[Exception], optional
        Exception class to raise if STRICT_VALIDATION is True.
        Default: ValueError

    Raises
    ------
    Exception (of type error_class)
        If config.STRICT_VALIDATION is True

    Warns
    -----
    UserWarning
        If config.STRICT_VALIDATION is False
    """
    if config.STRICT_VALIDATION:
        raise error_class(message)
    else:
        warnings.warn(message, UserWarning, stacklevel=2)


def convergence_failure(message: str):
    """Log a non-convergence at ERROR level, then raise ConvergenceError."""
    logger.error(message)
    raise ConvergenceError(message)
