"""Shared fixtures for the apsis test suite."""

import pytest

from apsis import BodyID, ksp_orrery, config
from apsis.defaults import KSP_BODIES_FILE

KERBOL = BodyID(0)
KERBIN = BodyID(4)
MUN = BodyID(5)


@pytest.fixture
def bodies_file():
    """Path of the bundled KSP body table."""
    return KSP_BODIES_FILE


@pytest.fixture
def orrery():
    """Fresh Orrery of the stock Kerbol system."""
    return ksp_orrery()


@pytest.fixture
def kerbin(orrery):
    return orrery.get_body(KERBIN)


@pytest.fixture(autouse=True)
def restore_config():
    """Put the global configuration back after every test."""
    yield
    config.reset()
