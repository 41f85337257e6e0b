"""Run configuration: cache geometries plus the files a replay needs."""
import os
from dataclasses import dataclass
from typing import Optional

from tracecache.core.cache import CacheGeometry


@dataclass
class SimulationConfig:
    """Geometry for L1 (shared by L1D and L1I) and L2, and run file locations."""

    l1: CacheGeometry
    l2: CacheGeometry
    trace_path: Optional[str] = None
    ram_path: str = 'RAM.dat'
    output_dir: str = '.'

    def __post_init__(self):
        if not isinstance(self.l1, CacheGeometry) or not isinstance(self.l2, CacheGeometry):
            raise ValueError("l1 and l2 must be CacheGeometry instances")

    @classmethod
    def from_params(cls, L1s: int, L1E: int, L1b: int, L2s: int, L2E: int, L2b: int,
                    **kwargs) -> "SimulationConfig":
        """Build a config from the six geometry integers (raises ValueError)."""
        return cls(l1=CacheGeometry(L1s, L1E, L1b), l2=CacheGeometry(L2s, L2E, L2b), **kwargs)

    def check_files(self, need_ram: bool = True):
        if not self.trace_path or not os.path.isfile(self.trace_path):
            raise ValueError(f"trace file not found: {self.trace_path}")
        if need_ram and not os.path.isfile(self.ram_path):
            raise ValueError(f"RAM image not found: {self.ram_path}")
