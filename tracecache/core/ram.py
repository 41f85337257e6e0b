"""Simple RAM model.

Byte-addressable backing store for the cache hierarchy. The whole image of
the RAM file (normally `RAM.dat`) is held in a bytearray; `flush()` writes it
back so stores persist between runs.

Parameters:
- RAM(size_bytes, image=None, path=None)
- RAM.from_file(path) -> RAM loaded from a file, flushed back to it
- read_block(address, size) -> the aligned block containing `address`
- write_through(address, data, block_size) -> partial write, bytes outside
  the written range are preserved
- read(address) / write(address, value) -> single bytes

Used as a context manager the image is flushed on a clean exit.
"""
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


class RAM:
    def __init__(self, size_bytes: int = 1024, image: Optional[bytes] = None, path: Optional[str] = None):
        if image is not None:
            self.storage = bytearray(image)
        else:
            if size_bytes < 1:
                raise ValueError("RAM size must be >= 1 byte")
            self.storage = bytearray(size_bytes)
        self.path = path
        self._initial = bytes(self.storage)
        self.dirty = False
        self.block_reads = 0
        self.block_writes = 0

    @classmethod
    def from_file(cls, path: str) -> "RAM":
        with open(path, 'rb') as fh:
            image = fh.read()
        if not image:
            raise ValueError(f"RAM image {path} is empty")
        logger.debug("loaded %d bytes of RAM from %s", len(image), path)
        return cls(image=image, path=path)

    @property
    def size(self) -> int:
        return len(self.storage)

    def _check_range(self, address: int, length: int = 1) -> int:
        if not isinstance(address, int):
            raise TypeError(f"address must be int, got {type(address).__name__}")
        if address < 0 or address + length > self.size:
            raise IndexError(f"address range [{address:#x}, {address + length:#x}) outside RAM of {self.size} bytes")
        return address

    def read(self, address: int) -> int:
        """Read the byte at `address`."""
        return self.storage[self._check_range(address)]

    def write(self, address: int, value: int = 0):
        """Write one byte at `address`."""
        self.storage[self._check_range(address)] = value & 0xFF
        self.dirty = True

    def read_block(self, address: int, size: int) -> bytes:
        """Return `size` bytes starting at the `size`-aligned boundary below `address`."""
        start = self._check_range(address & ~(size - 1), size)
        self.block_reads += 1
        return bytes(self.storage[start:start + size])

    def write_through(self, address: int, data: bytes, block_size: int) -> int:
        """Merge `data` into the block containing `address` and store the block.

        Only [address, address + len(data)) changes; data running past the
        end of the block is dropped. Returns the number of bytes written.
        """
        start = address & ~(block_size - 1)
        offset = address - start
        block = bytearray(self.read_block(start, block_size))
        n = min(len(data), block_size - offset)
        block[offset:offset + n] = data[:n]
        self.storage[start:start + block_size] = block
        self.block_writes += 1
        self.dirty = True
        return n

    def flush(self, path: Optional[str] = None) -> Optional[str]:
        """Write the image back to `path` (default: the file it came from)."""
        target = path or self.path
        if target is None:
            return None
        if target == self.path and not self.dirty:
            return target
        tmp = target + '.tmp'
        with open(tmp, 'wb') as fh:
            fh.write(self.storage)
        os.replace(tmp, target)
        if target == self.path:
            self.dirty = False
        logger.debug("flushed %d bytes of RAM to %s", self.size, target)
        return target

    def reset(self):
        """Restore the image the RAM was created with."""
        self.storage[:] = self._initial
        self.dirty = False
        self.block_reads = 0
        self.block_writes = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.flush()
        return False
