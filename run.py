"""Entry point for the cache hierarchy trace replayer.

Usage:
    python run.py -L1s <s> -L1E <E> -L1b <b> -L2s <s> -L2E <E> -L2b <b> -t <tracefile>
    python run.py --demo    # replays a tiny built-in trace against an in-memory RAM
"""
import sys

from tracecache.cli import main
from tracecache.core.ram import RAM
from tracecache.simulation import Simulation, SimulationConfig
from tracecache.simulation.trace import iter_trace


def headless_demo():
    # Simple scenario to validate the hierarchy end to end
    config = SimulationConfig.from_params(1, 2, 4, 2, 2, 4)
    ram = RAM(image=bytes(range(256)))
    sim = Simulation(config, ram=ram, out=sys.stdout)
    sim.run(iter_trace(['L 10, 1', 'L 20, 1', 'L 10, 1', 'S 18, 1, ff', 'M 40, 2, abcd', 'I 0, 4']))
    print()
    for line in sim.summary():
        print(line)


if __name__ == '__main__':
    if '--demo' in sys.argv:
        headless_demo()
    else:
        sys.exit(main())
