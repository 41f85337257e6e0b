"""Command line entry point.

Usage:
    tracecache -L1s 1 -L1E 2 -L1b 4 -L2s 2 -L2E 2 -L2b 4 -t test_small.trace
    python run.py -L1s 1 -L1E 2 -L1b 4 -L2s 2 -L2E 2 -L2b 4 -t test_small.trace --ram RAM.dat

Replays the trace against RAM.dat (written back in place), prints one report
block per operation, the three summary lines, and writes L1D_final.txt,
L1I_final.txt and L2_final.txt.
"""
import argparse
import logging
import sys
from typing import List, Optional

from tracecache import __version__
from tracecache.core.ram import RAM
from tracecache.data.stats_export import Exporter, export_chart_pdf, export_stats_json
from tracecache.simulation.config import SimulationConfig
from tracecache.simulation.simulation import Simulation

logger = logging.getLogger(__name__)

GEOMETRY_FLAGS = (
    ('-L1s', 'number of set index bits for L1 (S = 2^s)'),
    ('-L1E', 'lines per set (associativity) for L1'),
    ('-L1b', 'number of block offset bits for L1 (B = 2^b)'),
    ('-L2s', 'number of set index bits for L2'),
    ('-L2E', 'lines per set (associativity) for L2'),
    ('-L2b', 'number of block offset bits for L2'),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='tracecache',
        description='Replay a memory trace through L1D/L1I and a shared L2 '
                    '(write-through, no-write-allocate, FIFO).')
    for flag, text in GEOMETRY_FLAGS:
        parser.add_argument(flag, dest=flag[1:], type=int, required=True, metavar='N', help=text)
    parser.add_argument('-t', dest='trace', required=True, metavar='TRACE', help='trace file to replay')
    parser.add_argument('--ram', default='RAM.dat', help='RAM image file (default: %(default)s)')
    parser.add_argument('--output-dir', default='.', help='where the *_final.txt dumps go')
    parser.add_argument('--log-file', help='write the per-operation report here instead of stdout')
    parser.add_argument('--quiet', action='store_true', help='do not print the per-operation report')
    parser.add_argument('--no-dump', action='store_true', help='skip the *_final.txt dumps')
    parser.add_argument('--stats-csv', metavar='PATH', help='export counters as CSV')
    parser.add_argument('--stats-json', metavar='PATH', help='export counters as JSON')
    parser.add_argument('--chart-pdf', metavar='PATH', help='bar chart of the counters as PDF')
    parser.add_argument('-v', '--verbose', action='store_true', help='debug logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    try:
        config = SimulationConfig.from_params(
            args.L1s, args.L1E, args.L1b, args.L2s, args.L2E, args.L2b,
            trace_path=args.trace, ram_path=args.ram, output_dir=args.output_dir)
        config.check_files()
    except ValueError as e:
        parser.error(str(e))

    try:
        ram = RAM.from_file(config.ram_path)
        log_fh = open(args.log_file, 'w', encoding='utf-8') if args.log_file else None
    except (ValueError, OSError) as e:
        parser.error(str(e))

    try:
        out = None if args.quiet else (log_fh or sys.stdout)
        with ram:
            sim = Simulation(config, ram=ram, out=out)
            stats = sim.run()
    finally:
        if log_fh is not None:
            log_fh.close()

    print()
    for line in sim.summary():
        print(line)

    if not args.no_dump:
        for path in sim.write_final_state():
            logger.debug("wrote %s", path)
    if args.stats_csv:
        Exporter.export_stats_csv(args.stats_csv, stats)
    if args.stats_json:
        export_stats_json(stats, args.stats_json)
    if args.chart_pdf:
        export_chart_pdf(stats, args.chart_pdf, title=f'Trace: {args.trace}')
    return 0


if __name__ == '__main__':
    sys.exit(main())
