"""Test configuration for pytest.

Ensure the repository root is on sys.path so tests can import the `tracecache`
package without needing it installed or PYTHONPATH set externally, and
provide small builders shared by the test modules.
"""
import os
import sys

import pytest

# Compute project root: two directories above this file (tracecache/tests -> tracecache -> project root)
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from tracecache.core.cache import Cache, CacheGeometry  # noqa: E402
from tracecache.core.ram import RAM  # noqa: E402
from tracecache.core.simulator import CacheSimulator  # noqa: E402


def pattern_image(size: int = 1024) -> bytes:
    """RAM content where every byte equals the low 8 bits of its address."""
    return bytes(i & 0xFF for i in range(size))


@pytest.fixture
def ram():
    return RAM(image=pattern_image())


@pytest.fixture
def make_sim():
    """Factory: make_sim(l1=(s, E, b), l2=(s, E, b), ram=None) -> CacheSimulator."""
    def _make(l1=(1, 2, 4), l2=(2, 2, 4), ram=None):
        if ram is None:
            ram = RAM(image=pattern_image())
        return CacheSimulator(
            Cache(CacheGeometry(*l1), name='L1D'),
            Cache(CacheGeometry(*l1), name='L1I'),
            Cache(CacheGeometry(*l2), name='L2'),
            ram,
        )
    return _make
