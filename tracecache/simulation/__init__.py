"""Simulation package shim.

Exposes the driver, its config and the trace decoder at
`tracecache.simulation` so callers can write
`from tracecache.simulation import Simulation`.
"""
from .config import SimulationConfig
from .simulation import Simulation, format_operation
from .trace import OpKind, TraceFormatError, TraceOp, parse_trace_line, read_trace

__all__ = [
    "Simulation",
    "SimulationConfig",
    "format_operation",
    "OpKind",
    "TraceFormatError",
    "TraceOp",
    "parse_trace_line",
    "read_trace",
]
