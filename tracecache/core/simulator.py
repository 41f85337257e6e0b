"""CacheSimulator drives LOAD / STORE / MODIFY / INST accesses through
the two cache levels and the backing RAM.

Policy:
- reads: an L1 miss consults L2; an L2 miss fills L2 from RAM. L1 is always
  filled after an L1 miss, whatever L2 reported.
- writes: write-through, no-write-allocate at L1. An L1 hit updates the line
  in place; L2 is always probed (hit updates in place, miss fills then
  updates) and RAM is always written. A store is cut at the end of its L1
  block; bytes that spill into a following L2 block only update that block
  if it is already resident.
- MODIFY is a LOAD immediately followed by a STORE, each with its own result.

Counters are plain `Statistics` objects passed into each access, so callers
decide which L1 tally (data or instruction) an access lands in.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .cache import Cache
from .ram import RAM
from ..data.stats_export import Statistics

logger = logging.getLogger(__name__)


@dataclass
class AccessResult:
    """What happened during one access, for logging only."""

    l1_hit: bool = False
    l1_miss: bool = False
    l1_evict: bool = False
    l2_hit: bool = False
    l2_miss: bool = False
    l2_evict: bool = False
    placed_in_l1: bool = False
    placed_in_l2: bool = False
    set_l1: Optional[int] = None
    set_l2: Optional[int] = None
    wrote_to_ram: bool = False


class CacheSimulator:
    def __init__(self, l1d: Cache, l1i: Cache, l2: Cache, ram: RAM,
                 stats: Optional[Dict[str, Statistics]] = None):
        self.l1d = l1d
        self.l1i = l1i
        self.l2 = l2
        self.ram = ram
        self.stats = stats or {'L1D': Statistics(), 'L1I': Statistics(), 'L2': Statistics()}

    def reset(self):
        # clear stats and cache contents; RAM is left to its owner
        for s in self.stats.values():
            s.reset()
        for c in (self.l1d, self.l1i, self.l2):
            c.reset()

    def _resolve_l2(self, address: int, result: AccessResult, l2_stats: Statistics):
        """Probe L2, filling it from RAM on a miss. Returns the resident probe."""
        probe = self.l2.probe(address)
        result.set_l2 = probe.set_index
        l2_stats.record_access(probe.hit)
        if probe.hit:
            result.l2_hit = True
            return probe

        result.l2_miss = True
        if self.l2.fill(probe, self.ram.read_block(address, self.l2.block_size)):
            l2_stats.record_eviction()
            result.l2_evict = True
        result.placed_in_l2 = True
        return probe

    def load(self, l1: Cache, address: int, l1_stats: Statistics, l2_stats: Statistics) -> AccessResult:
        result = AccessResult()
        probe = l1.probe(address)
        result.set_l1 = probe.set_index
        l1_stats.record_access(probe.hit)
        if probe.hit:
            result.l1_hit = True
            return result

        result.l1_miss = True
        self._resolve_l2(address, result, l2_stats)

        # L1 is filled on every miss, whichever level supplied the block
        if l1.fill(probe, self.ram.read_block(address, l1.block_size)):
            l1_stats.record_eviction()
            result.l1_evict = True
        result.placed_in_l1 = True
        return result

    def store(self, address: int, data: bytes, l1_stats: Statistics, l2_stats: Statistics) -> AccessResult:
        result = AccessResult()
        # a store never reaches past its L1 block; RAM is written at that granularity
        l1_block = self.l1d.block_size
        limit = l1_block - (address & (l1_block - 1))
        if len(data) > limit:
            logger.debug("store at %#x truncated from %d to %d bytes", address, len(data), limit)
        data = bytes(data[:limit])

        probe = self.l1d.probe(address)
        result.set_l1 = probe.set_index
        l1_stats.record_access(probe.hit)
        if probe.hit:
            result.l1_hit = True
            self.l1d.write_bytes(probe, data)
        else:
            # no-write-allocate: the L1 victim is left alone
            result.l1_miss = True

        l2_probe = self._resolve_l2(address, result, l2_stats)
        written = self.l2.write_bytes(l2_probe, data)
        # bytes spilling into following L2 blocks update resident lines only
        while written < len(data):
            written += self.l2.update_resident(address + written, data[written:])

        self.ram.write_through(address, data, l1_block)
        result.wrote_to_ram = True
        return result

    def modify(self, address: int, data: bytes, l1_stats: Statistics,
               l2_stats: Statistics) -> Tuple[AccessResult, AccessResult]:
        load_res = self.load(self.l1d, address, l1_stats, l2_stats)
        store_res = self.store(address, data, l1_stats, l2_stats)
        return load_res, store_res
