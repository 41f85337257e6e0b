"""Core cache implementation

Set-associative cache model used three times by the simulator (L1 data,
L1 instruction and the shared L2).
Behavior:
- Geometry is given in bits: `s` set-index bits, `E` lines per set,
  `b` block-offset bits. S = 2**s sets, B = 2**b bytes per block.
  block_offset = address & (B - 1)
  set_index = (address >> b) & (S - 1)
  tag = address >> (s + b)
- Each set owns one contiguous bytearray of E * B bytes; every line's
  `block` is a memoryview into its slot of that arena.
- `probe(address)` decodes and resolves an address and returns a `Probe`
  (hit flag, set/line index, tag, offset). On a miss `line_index` is the
  FIFO victim, and `fill(probe, block)` installs a fresh block there.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from tracecache.core.replacement_policies import FIFOReplacement


def decode_address(address: int, s: int, b: int) -> Tuple[int, int, int]:
    """Split `address` into (tag, set_index, block_offset) for a geometry."""
    block_offset = address & ((1 << b) - 1)
    set_index = (address >> b) & ((1 << s) - 1)
    tag = address >> (s + b)
    return tag, set_index, block_offset


@dataclass(frozen=True)
class CacheGeometry:
    """Immutable cache shape: set-index bits, associativity, block-offset bits."""

    s: int
    E: int
    b: int

    def __post_init__(self):
        for name in ("s", "E", "b"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        if self.s < 0:
            raise ValueError("s (set index bits) must be >= 0")
        if self.b < 0:
            raise ValueError("b (block offset bits) must be >= 0")
        if self.E < 1:
            raise ValueError("E (associativity) must be >= 1")

    @property
    def num_sets(self) -> int:
        return 1 << self.s

    @property
    def block_size(self) -> int:
        return 1 << self.b


@dataclass
class CacheLine:
    """One way of a set.

    Fields:
    - block: view of this line's B bytes inside the set arena
    - valid: whether the line holds a filled block
    - tag: the tag stored in the line
    - fifo_sequence: fill order stamp, used for FIFO eviction
    """

    block: memoryview
    valid: bool = False
    tag: int = 0
    fifo_sequence: int = 0


class CacheSet:
    """E lines sharing one preallocated byte arena."""

    def __init__(self, associativity: int, block_size: int):
        self.data = bytearray(associativity * block_size)
        view = memoryview(self.data)
        self.lines: List[CacheLine] = [
            CacheLine(block=view[i * block_size:(i + 1) * block_size])
            for i in range(associativity)
        ]

    def __len__(self):
        return len(self.lines)

    def __getitem__(self, index: int) -> CacheLine:
        return self.lines[index]

    def __iter__(self):
        return iter(self.lines)


@dataclass
class Probe:
    """Outcome of resolving one address against one cache."""

    hit: bool
    tag: int
    set_index: int
    offset: int
    # matching line on a hit, victim line on a miss
    line_index: int
    # whether the victim currently holds a valid block (always False on hits)
    evicts: bool = False


class Cache:
    """Set-associative cache with FIFO replacement."""

    def __init__(self, geometry: CacheGeometry, name: str = "cache"):
        self.geometry = geometry
        self.name = name
        self.s = geometry.s
        self.associativity = geometry.E
        self.b = geometry.b
        self.num_sets = geometry.num_sets
        self.block_size = geometry.block_size
        self.replacement_policy = FIFOReplacement()

        # allocate the sets matrix: num_sets x associativity
        self.sets: List[CacheSet] = [
            CacheSet(self.associativity, self.block_size) for _ in range(self.num_sets)
        ]

    def decode(self, address: int) -> Tuple[int, int, int]:
        """Decode address into (tag, set_index, block_offset)."""
        return decode_address(address, self.s, self.b)

    def lookup(self, set_index: int, tag: int) -> Tuple[bool, int]:
        """Resolve `tag` in a set.

        Returns (True, matching line) on a hit, otherwise (False, victim line).
        """
        lines = self.sets[set_index].lines
        for i, line in enumerate(lines):
            if line.valid and line.tag == tag:
                return True, i
        return False, self.replacement_policy.victim(lines)

    def probe(self, address: int) -> Probe:
        tag, set_index, offset = self.decode(address)
        hit, line_index = self.lookup(set_index, tag)
        evicts = not hit and self.sets[set_index][line_index].valid
        return Probe(hit=hit, tag=tag, set_index=set_index, offset=offset,
                     line_index=line_index, evicts=evicts)

    def line(self, probe: Probe) -> CacheLine:
        return self.sets[probe.set_index][probe.line_index]

    def fill(self, probe: Probe, block: bytes) -> bool:
        """Install `block` in the probe's victim line.

        Returns True when a valid line was evicted to make room.
        """
        if len(block) != self.block_size:
            raise ValueError(f"{self.name}: fill needs {self.block_size} bytes, got {len(block)}")
        line = self.line(probe)
        evicted = line.valid
        line.valid = True
        line.tag = probe.tag
        line.fifo_sequence = self.replacement_policy.stamp()
        line.block[:] = block
        return evicted

    def write_bytes(self, probe: Probe, data: bytes) -> int:
        """Overwrite bytes of a resident line starting at the probe's offset.

        Data running past the end of the block is dropped. Returns the number
        of bytes written.
        """
        line = self.line(probe)
        n = min(len(data), self.block_size - probe.offset)
        line.block[probe.offset:probe.offset + n] = data[:n]
        return n

    def update_resident(self, address: int, data: bytes) -> int:
        """Write `data` into the line holding `address` if it is resident.

        Never allocates and never counts as an access. Returns how many bytes
        fall inside that block, whether or not they were written.
        """
        p = self.probe(address)
        n = min(len(data), self.block_size - p.offset)
        if p.hit:
            self.line(p).block[p.offset:p.offset + n] = data[:n]
        return n

    def read_bytes(self, address: int, size: int) -> Optional[bytes]:
        """Return cached bytes for `address` without touching state, or None on a miss."""
        p = self.probe(address)
        if not p.hit:
            return None
        return bytes(self.line(p).block[p.offset:p.offset + size])

    def contains(self, address: int) -> bool:
        return self.probe(address).hit

    def snapshot(self) -> List[List[dict]]:
        """Full dump of every set's lines."""
        out = []
        for s in self.sets:
            row = []
            for line in s:
                row.append({
                    "valid": line.valid,
                    "tag": line.tag,
                    "fifo_sequence": line.fifo_sequence,
                    "data": line.block.hex(),
                })
            out.append(row)
        return out

    def reset(self):
        """Invalidate every line, zero the arenas and restart the fill counter."""
        for s in self.sets:
            s.data[:] = bytes(len(s.data))
            for line in s:
                line.valid = False
                line.tag = 0
                line.fifo_sequence = 0
        self.replacement_policy.reset()

    def __repr__(self):
        return (f"Cache({self.name!r}, s={self.s}, E={self.associativity}, b={self.b})")
