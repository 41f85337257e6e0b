"""Simulation driver.

Builds the L1D / L1I / L2 caches from a `SimulationConfig`, feeds decoded
trace operations into the `CacheSimulator` one at a time and writes a short
report block per operation:

    L 10, 1
      L1D miss, L2 miss
      Place in L2 set 1, L1D set 1
"""
import logging
from typing import Dict, Iterable, List, Optional, TextIO

from tracecache.core.cache import Cache
from tracecache.core.ram import RAM
from tracecache.core.simulator import AccessResult, CacheSimulator
from tracecache.data.stats_export import Exporter, Statistics, summary_lines
from tracecache.simulation.config import SimulationConfig
from tracecache.simulation.trace import OpKind, TraceOp, read_trace

logger = logging.getLogger(__name__)


def _lookup_line(l1_name: str, res: AccessResult) -> str:
    parts = [f"{l1_name} hit" if res.l1_hit else f"{l1_name} miss"]
    if res.l2_hit:
        parts.append("L2 hit")
    elif res.l2_miss:
        parts.append("L2 miss")
    return ", ".join(parts)


def _place_line(l1_name: str, res: AccessResult) -> Optional[str]:
    parts = []
    if res.placed_in_l2:
        parts.append(f"L2 set {res.set_l2}" + (" (evict)" if res.l2_evict else ""))
    if res.placed_in_l1:
        parts.append(f"{l1_name} set {res.set_l1}" + (" (evict)" if res.l1_evict else ""))
    if not parts:
        return None
    return "Place in " + ", ".join(parts)


def _store_line(res: AccessResult) -> str:
    targets = []
    if res.l1_hit:
        targets.append("L1D")
    if res.l2_hit or res.placed_in_l2:
        targets.append("L2")
    if res.wrote_to_ram:
        targets.append("RAM")
    return "Store in " + ", ".join(targets)


def format_operation(op: TraceOp, results: List[AccessResult]) -> List[str]:
    """Report lines for one operation (header first, details indented)."""
    l1_name = 'L1I' if op.kind is OpKind.INST else 'L1D'
    lines = [str(op)]
    if op.kind in (OpKind.LOAD, OpKind.INST, OpKind.MODIFY):
        load_res = results[0]
        lines.append("  " + _lookup_line(l1_name, load_res))
        place = _place_line(l1_name, load_res)
        if place:
            lines.append("  " + place)
    if op.kind in (OpKind.STORE, OpKind.MODIFY):
        store_res = results[-1]
        lines.append("  " + _lookup_line(l1_name, store_res))
        place = _place_line(l1_name, store_res)
        if place:
            lines.append("  " + place)
        lines.append("  " + _store_line(store_res))
    return lines


class Simulation:
    def __init__(self, config: SimulationConfig, ram: Optional[RAM] = None, out: Optional[TextIO] = None):
        self.config = config
        self.ram = ram if ram is not None else RAM.from_file(config.ram_path)
        self.l1d = Cache(config.l1, name='L1D')
        self.l1i = Cache(config.l1, name='L1I')
        self.l2 = Cache(config.l2, name='L2')
        self.simulator = CacheSimulator(self.l1d, self.l1i, self.l2, self.ram)
        # per-operation report stream; None keeps the run silent
        self.out = out
        self.operations = 0
        logger.debug("built caches %r %r %r over %d bytes of RAM", self.l1d, self.l1i, self.l2, self.ram.size)

    @property
    def stats(self) -> Dict[str, Statistics]:
        return self.simulator.stats

    @property
    def caches(self) -> Dict[str, Cache]:
        return {'L1D': self.l1d, 'L1I': self.l1i, 'L2': self.l2}

    def reset(self):
        """Clear caches and counters and restore RAM to its starting image."""
        self.simulator.reset()
        self.ram.reset()
        self.operations = 0

    def run_operation(self, op: TraceOp) -> List[AccessResult]:
        sim = self.simulator
        l2_stats = self.stats['L2']
        if op.kind is OpKind.INST:
            results = [sim.load(self.l1i, op.address, self.stats['L1I'], l2_stats)]
        elif op.kind is OpKind.LOAD:
            results = [sim.load(self.l1d, op.address, self.stats['L1D'], l2_stats)]
        elif op.kind is OpKind.STORE:
            results = [sim.store(op.address, op.data, self.stats['L1D'], l2_stats)]
        else:
            results = list(sim.modify(op.address, op.data, self.stats['L1D'], l2_stats))
        self.operations += 1

        if self.out is not None:
            print(file=self.out)
            for line in format_operation(op, results):
                print(line, file=self.out)
        return results

    def run(self, ops: Optional[Iterable[TraceOp]] = None) -> Dict[str, Statistics]:
        """Replay `ops` (default: the configured trace file) and return the counters."""
        if ops is None:
            if not self.config.trace_path:
                raise ValueError("no operations given and no trace_path configured")
            ops = read_trace(self.config.trace_path)
        for op in ops:
            self.run_operation(op)
        logger.info("replayed %d operations", self.operations)
        return self.stats

    def summary(self) -> List[str]:
        return summary_lines(self.stats)

    def write_final_state(self, output_dir: Optional[str] = None) -> List[str]:
        return Exporter.write_final_state(self.caches, output_dir or self.config.output_dir)
