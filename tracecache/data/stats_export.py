"""Statistics and exporter.

Per-cache hit/miss/eviction counters plus the run-end outputs: the summary
lines, the final-state dump of each cache and optional CSV/JSON/PDF exports.
"""
import csv
import json
import os
from typing import Dict, List, Mapping, Optional

# report order of the summary lines and exports
CACHE_NAMES = ('L1I', 'L1D', 'L2')


class Statistics:
    def __init__(self):
        self.reset()

    def reset(self):
        # counters start from zero
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def record_access(self, hit: bool):
        # simple counter update: call this for every lookup at this level
        if hit:
            self.hits += 1
        else:
            self.misses += 1

    def record_eviction(self):
        self.evictions += 1

    @property
    def accesses(self):
        return self.hits + self.misses

    @property
    def hit_rate(self):
        return (self.hits / self.accesses) if self.accesses else 0.0

    @property
    def miss_rate(self):
        return (self.misses / self.accesses) if self.accesses else 0.0

    def as_dict(self) -> Dict[str, float]:
        return {
            'hits': self.hits,
            'misses': self.misses,
            'evictions': self.evictions,
            'accesses': self.accesses,
            'hit_rate': self.hit_rate,
            'miss_rate': self.miss_rate,
        }

    def __eq__(self, other):
        if not isinstance(other, Statistics):
            return NotImplemented
        return (self.hits, self.misses, self.evictions) == (other.hits, other.misses, other.evictions)

    def __repr__(self):
        return f"Statistics(hits={self.hits}, misses={self.misses}, evictions={self.evictions})"


def summary_lines(stats: Mapping[str, Statistics]) -> List[str]:
    """One `<name>-hits:N <name>-misses:N <name>-evictions:N` line per cache."""
    lines = []
    for name in CACHE_NAMES:
        s = stats[name]
        lines.append(f"{name}-hits:{s.hits} {name}-misses:{s.misses} {name}-evictions:{s.evictions}")
    return lines


def format_cache_dump(cache) -> List[str]:
    """Render every set and line of `cache` in the final-state file format."""
    out = []
    for set_index, row in enumerate(cache.snapshot()):
        out.append(f"Set {set_index}:")
        for j, line in enumerate(row):
            if line['valid']:
                out.append(f"  Line {j}: Valid=1, Tag=0x{line['tag']:x}, "
                           f"Time={line['fifo_sequence']}, Data={line['data']}")
            else:
                out.append(f"  Line {j}: Valid=0, Tag=-")
    return out


def write_cache_dump(cache, fpath: str) -> str:
    with open(fpath, 'w', encoding='utf-8') as fh:
        for line in format_cache_dump(cache):
            fh.write(line + '\n')
    return fpath


def export_stats_json(stats: Mapping[str, Statistics], fpath: str) -> str:
    """Export per-cache stats to a JSON file. Returns the saved path."""
    data = {name: stats[name].as_dict() for name in CACHE_NAMES}
    with open(fpath, 'w', encoding='utf-8') as fh:
        json.dump(data, fh, indent=2)
    return fpath


def export_chart_pdf(stats: Mapping[str, Statistics], fpath: str, title: Optional[str] = None) -> str:
    """Render hits/misses/evictions per cache as a grouped bar chart PDF."""
    import matplotlib
    matplotlib.use('Agg')
    import matplotlib.pyplot as plt

    names = list(CACHE_NAMES)
    series = (
        ('hits', '#2E8B57'),
        ('misses', '#FFA500'),
        ('evictions', '#B22222'),
    )
    width = 0.25
    fig, ax = plt.subplots(figsize=(6, 3))
    for k, (field, color) in enumerate(series):
        xs = [i + (k - 1) * width for i in range(len(names))]
        ax.bar(xs, [getattr(stats[n], field) for n in names], width=width, color=color, label=field)
    ax.set_xticks(range(len(names)))
    ax.set_xticklabels(names)
    ax.set_ylabel('Count')
    if title:
        ax.set_title(title)
    ax.legend()
    fig.tight_layout()
    fig.savefig(fpath, format='pdf', dpi=150)
    plt.close(fig)
    return fpath


class Exporter:
    @staticmethod
    def export_stats_csv(path: str, stats: Mapping[str, Statistics]):
        with open(path, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(['cache', 'hits', 'misses', 'evictions', 'hit_rate', 'miss_rate'])
            for name in CACHE_NAMES:
                s = stats[name]
                writer.writerow([name, s.hits, s.misses, s.evictions, s.hit_rate, s.miss_rate])

    @staticmethod
    def write_final_state(caches: Mapping[str, object], output_dir: str) -> List[str]:
        """Write `<name>_final.txt` for each cache into `output_dir`."""
        os.makedirs(output_dir, exist_ok=True)
        paths = []
        for name in ('L1D', 'L1I', 'L2'):
            paths.append(write_cache_dump(caches[name], os.path.join(output_dir, f"{name}_final.txt")))
        return paths
