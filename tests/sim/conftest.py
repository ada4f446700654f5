"""Fixtures for simulation tests."""

from __future__ import annotations

import pytest
from sim_harness import Harness, make_harness


@pytest.fixture
def harness() -> Harness:
    return make_harness()
