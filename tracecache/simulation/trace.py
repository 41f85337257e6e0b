"""Trace file decoding.

Each line of a trace is one operation:

    I 0, 2
    L 10, 1
    S 18, 1, 3f
    M 20, 2, 0a0b

The letter selects the kind, the address is hex, size is decimal and the
optional data field (STORE/MODIFY) is an even-length hex string.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


class TraceFormatError(ValueError):
    """A trace line that cannot be turned into an operation."""


class OpKind(Enum):
    LOAD = 'L'
    STORE = 'S'
    MODIFY = 'M'
    INST = 'I'


@dataclass(frozen=True)
class TraceOp:
    kind: OpKind
    address: int
    size: int
    data: bytes = b''

    def __str__(self):
        text = f"{self.kind.value} {self.address:x}, {self.size}"
        if self.kind in (OpKind.STORE, OpKind.MODIFY):
            text += f", {self.data.hex()}"
        return text


def decode_data(text: str) -> bytes:
    """Turn a hex-pair string into bytes."""
    if len(text) % 2:
        raise TraceFormatError(f"data {text!r} has odd length")
    try:
        return bytes.fromhex(text)
    except ValueError:
        raise TraceFormatError(f"data {text!r} is not hex") from None


def parse_trace_line(line: str) -> Optional[TraceOp]:
    """Decode one trace line. Blank lines and `#` comments give None."""
    text = line.strip()
    if not text or text.startswith('#'):
        return None

    letter, rest = text[0].upper(), text[1:]
    try:
        kind = OpKind(letter)
    except ValueError:
        raise TraceFormatError(f"unknown operation {text[0]!r} in {text!r}") from None

    fields = [f.strip() for f in rest.split(',')]
    if len(fields) < 2 or not fields[0] or not fields[1]:
        raise TraceFormatError(f"expected '<op> <address>, <size>' in {text!r}")
    if len(fields) > 3:
        raise TraceFormatError(f"too many fields in {text!r}")

    try:
        address = int(fields[0], 16)
    except ValueError:
        raise TraceFormatError(f"bad address {fields[0]!r} in {text!r}") from None
    try:
        size = int(fields[1], 10)
    except ValueError:
        raise TraceFormatError(f"bad size {fields[1]!r} in {text!r}") from None
    if address < 0 or size < 0:
        raise TraceFormatError(f"negative address or size in {text!r}")

    data = b''
    if len(fields) == 3:
        if kind not in (OpKind.STORE, OpKind.MODIFY):
            raise TraceFormatError(f"{kind.name} takes no data: {text!r}")
        data = decode_data(fields[2])
    return TraceOp(kind=kind, address=address, size=size, data=data)


def iter_trace(lines, source: str = '<trace>') -> Iterator[TraceOp]:
    """Yield operations from an iterable of lines, skipping malformed ones."""
    for lineno, line in enumerate(lines, 1):
        try:
            op = parse_trace_line(line)
        except TraceFormatError as e:
            logger.warning("%s:%d: skipping line: %s", source, lineno, e)
            continue
        if op is not None:
            yield op


def read_trace(path: str) -> Iterator[TraceOp]:
    with open(path, 'r', encoding='utf-8') as fh:
        yield from iter_trace(fh, source=path)
