"""End-to-end runs: the Simulation driver over trace files, the per-operation
report, run-end dumps and exports, and the command line.
"""
import csv
import io
import json
import os

import pytest

from tracecache.cli import main
from tracecache.core.ram import RAM
from tracecache.data.stats_export import (
    Exporter,
    Statistics,
    export_chart_pdf,
    export_stats_json,
    format_cache_dump,
    summary_lines,
)
from tracecache.simulation import Simulation, SimulationConfig, format_operation
from tracecache.simulation.trace import OpKind, TraceOp, iter_trace

from conftest import pattern_image

SMALL_TRACE = """\
I 0, 2
L 10, 1
L 20, 1
L 10, 1
S 35, 2, aabb
M 50, 2, 0102
I 0, 2
"""


def _config(**kw):
    return SimulationConfig.from_params(1, 2, 4, 2, 2, 4, **kw)


def test_format_operation_load_and_store():
    sim = Simulation(_config(), ram=RAM(image=pattern_image()))
    op = TraceOp(OpKind.LOAD, 0x10, 1)
    assert format_operation(op, sim.run_operation(op)) == [
        'L 10, 1',
        '  L1D miss, L2 miss',
        '  Place in L2 set 1, L1D set 1',
    ]
    assert format_operation(op, sim.run_operation(op)) == ['L 10, 1', '  L1D hit']

    st = TraceOp(OpKind.STORE, 0x30, 2, b'\xaa\xbb')
    assert format_operation(st, sim.run_operation(st)) == [
        'S 30, 2, aabb',
        '  L1D miss, L2 miss',
        '  Place in L2 set 3',
        '  Store in L2, RAM',
    ]


def test_format_operation_modify_and_inst():
    sim = Simulation(_config(), ram=RAM(image=pattern_image()))
    m = TraceOp(OpKind.MODIFY, 0x50, 2, b'\x01\x02')
    assert format_operation(m, sim.run_operation(m)) == [
        'M 50, 2, 0102',
        '  L1D miss, L2 miss',
        '  Place in L2 set 1, L1D set 1',
        '  L1D hit, L2 hit',
        '  Store in L1D, L2, RAM',
    ]
    i = TraceOp(OpKind.INST, 0x50, 4)
    assert format_operation(i, sim.run_operation(i)) == [
        'I 50, 4',
        '  L1I miss, L2 hit',
        '  Place in L1I set 1',
    ]


def test_run_writes_report_and_counts():
    out = io.StringIO()
    sim = Simulation(_config(), ram=RAM(image=pattern_image()), out=out)
    stats = sim.run(iter_trace(SMALL_TRACE.splitlines()))
    assert sim.operations == 7
    assert (stats['L1I'].hits, stats['L1I'].misses, stats['L1I'].evictions) == (1, 1, 0)
    # L 10, L 20 miss; L 10 hit; S 35 misses L1; M 50 miss then hit
    assert (stats['L1D'].hits, stats['L1D'].misses, stats['L1D'].evictions) == (2, 4, 0)
    # I 0, L 10, L 20, S 35, M-load 50 miss; M-store 50 hits
    assert (stats['L2'].hits, stats['L2'].misses, stats['L2'].evictions) == (1, 5, 0)
    text = out.getvalue()
    assert '\nI 0, 2\n  L1I miss, L2 miss\n' in text
    assert '\nL 10, 1\n  L1D hit\n' in text
    assert sim.summary() == [
        'L1I-hits:1 L1I-misses:1 L1I-evictions:0',
        'L1D-hits:2 L1D-misses:4 L1D-evictions:0',
        'L2-hits:1 L2-misses:5 L2-evictions:0',
    ]


def test_run_from_trace_file_and_reset_is_deterministic(tmp_path):
    trace = tmp_path / 'small.trace'
    trace.write_text(SMALL_TRACE)
    sim = Simulation(_config(trace_path=str(trace)), ram=RAM(image=pattern_image()))
    sim.run()
    first = (sim.summary(), [c.snapshot() for c in sim.caches.values()], bytes(sim.ram.storage))
    sim.reset()
    assert sim.stats['L2'].accesses == 0
    sim.run()
    second = (sim.summary(), [c.snapshot() for c in sim.caches.values()], bytes(sim.ram.storage))
    assert first == second


def test_run_without_trace_path_raises():
    sim = Simulation(_config(), ram=RAM(size_bytes=64))
    with pytest.raises(ValueError):
        sim.run()


def test_write_final_state(tmp_path):
    sim = Simulation(_config(output_dir=str(tmp_path / 'out')), ram=RAM(image=pattern_image()))
    sim.run(iter_trace(['L 10, 1']))
    paths = sim.write_final_state()
    assert [os.path.basename(p) for p in paths] == [
        'L1D_final.txt', 'L1I_final.txt', 'L2_final.txt']
    l1d = (tmp_path / 'out' / 'L1D_final.txt').read_text().splitlines()
    assert l1d == [
        'Set 0:',
        '  Line 0: Valid=0, Tag=-',
        '  Line 1: Valid=0, Tag=-',
        'Set 1:',
        '  Line 0: Valid=1, Tag=0x0, Time=0, Data=' + bytes(range(0x10, 0x20)).hex(),
        '  Line 1: Valid=0, Tag=-',
    ]
    l2 = (tmp_path / 'out' / 'L2_final.txt').read_text().splitlines()
    assert len(l2) == 4 * 3
    assert format_cache_dump(sim.l1i)[0] == 'Set 0:'


def test_config_validation():
    with pytest.raises(ValueError):
        SimulationConfig.from_params(1, 0, 4, 2, 2, 4)
    with pytest.raises(ValueError):
        SimulationConfig.from_params(1, 2, 4, -1, 2, 4)
    with pytest.raises(ValueError):
        SimulationConfig(l1=(1, 2, 4), l2=(2, 2, 4))
    with pytest.raises(ValueError):
        _config(trace_path='does-not-exist.trace').check_files()


def test_statistics_rates_and_exports(tmp_path):
    stats = {'L1I': Statistics(), 'L1D': Statistics(), 'L2': Statistics()}
    for hit in (True, True, False, True):
        stats['L1D'].record_access(hit)
    stats['L2'].record_access(False)
    stats['L2'].record_eviction()
    assert stats['L1D'].hit_rate == 0.75
    assert stats['L1D'].miss_rate == 0.25
    assert stats['L1I'].hit_rate == 0.0
    assert summary_lines(stats)[2] == 'L2-hits:0 L2-misses:1 L2-evictions:1'

    csv_path = tmp_path / 'stats.csv'
    Exporter.export_stats_csv(str(csv_path), stats)
    rows = list(csv.reader(csv_path.open()))
    assert rows[0] == ['cache', 'hits', 'misses', 'evictions', 'hit_rate', 'miss_rate']
    assert rows[2][:4] == ['L1D', '3', '1', '0']

    json_path = tmp_path / 'stats.json'
    export_stats_json(stats, str(json_path))
    data = json.loads(json_path.read_text())
    assert data['L2']['evictions'] == 1
    assert data['L1D']['accesses'] == 4


def test_export_chart_pdf(tmp_path):
    pytest.importorskip('matplotlib')
    stats = {'L1I': Statistics(), 'L1D': Statistics(), 'L2': Statistics()}
    stats['L1D'].record_access(True)
    path = export_chart_pdf(stats, str(tmp_path / 'chart.pdf'), title='t')
    with open(path, 'rb') as fh:
        assert fh.read(4) == b'%PDF'


def _write_run_files(tmp_path):
    trace = tmp_path / 'small.trace'
    trace.write_text(SMALL_TRACE)
    ram = tmp_path / 'RAM.dat'
    ram.write_bytes(pattern_image(1024))
    return trace, ram


def test_cli_end_to_end(tmp_path, capsys):
    trace, ram = _write_run_files(tmp_path)
    out_dir = tmp_path / 'out'
    rc = main(['-L1s', '1', '-L1E', '2', '-L1b', '4', '-L2s', '2', '-L2E', '2', '-L2b', '4',
               '-t', str(trace), '--ram', str(ram), '--output-dir', str(out_dir),
               '--stats-json', str(tmp_path / 's.json')])
    assert rc == 0
    stdout = capsys.readouterr().out
    assert 'L1D-hits:2 L1D-misses:4 L1D-evictions:0' in stdout
    assert 'M 50, 2, 0102' in stdout
    # RAM.dat persisted with both stores
    data = ram.read_bytes()
    assert data[0x35:0x37] == b'\xaa\xbb'
    assert data[0x50:0x52] == b'\x01\x02'
    assert data[0x34] == 0x34
    for name in ('L1D', 'L1I', 'L2'):
        assert (out_dir / f'{name}_final.txt').exists()
    assert json.loads((tmp_path / 's.json').read_text())['L1I']['misses'] == 1


def test_cli_log_file_and_no_dump(tmp_path, capsys):
    trace, ram = _write_run_files(tmp_path)
    log = tmp_path / 'ops.log'
    rc = main(['-L1s', '1', '-L1E', '2', '-L1b', '4', '-L2s', '2', '-L2E', '2', '-L2b', '4',
               '-t', str(trace), '--ram', str(ram), '--no-dump', '--log-file', str(log),
               '--output-dir', str(tmp_path / 'none')])
    assert rc == 0
    assert 'L 20, 1' in log.read_text()
    stdout = capsys.readouterr().out
    assert 'L 20, 1' not in stdout
    assert 'L2-hits:1 L2-misses:5 L2-evictions:0' in stdout
    assert not (tmp_path / 'none').exists()


@pytest.mark.parametrize('args', [
    ['-L1s', '1', '-L1E', '0', '-L1b', '4', '-L2s', '2', '-L2E', '2', '-L2b', '4'],
    ['-L1s', '1', '-L1E', '2', '-L1b', '4', '-L2s', '2', '-L2E', '2'],
    ['-L1s', '-1', '-L1E', '2', '-L1b', '4', '-L2s', '2', '-L2E', '2', '-L2b', '4'],
])
def test_cli_rejects_bad_geometry(tmp_path, args):
    trace, ram = _write_run_files(tmp_path)
    with pytest.raises(SystemExit) as exc:
        main(args + ['-t', str(trace), '--ram', str(ram)])
    assert exc.value.code == 2


def test_cli_missing_ram_file(tmp_path):
    trace, _ = _write_run_files(tmp_path)
    with pytest.raises(SystemExit) as exc:
        main(['-L1s', '1', '-L1E', '2', '-L1b', '4', '-L2s', '2', '-L2E', '2', '-L2b', '4',
              '-t', str(trace), '--ram', str(tmp_path / 'missing.dat')])
    assert exc.value.code == 2


def test_cli_quiet_prints_only_summary(tmp_path, capsys):
    trace, ram = _write_run_files(tmp_path)
    rc = main(['-L1s', '1', '-L1E', '2', '-L1b', '4', '-L2s', '2', '-L2E', '2', '-L2b', '4',
               '-t', str(trace), '--ram', str(ram), '--quiet', '--no-dump'])
    assert rc == 0
    lines = [line for line in capsys.readouterr().out.splitlines() if line]
    assert lines == [
        'L1I-hits:1 L1I-misses:1 L1I-evictions:0',
        'L1D-hits:2 L1D-misses:4 L1D-evictions:0',
        'L2-hits:1 L2-misses:5 L2-evictions:0',
    ]


def test_cli_empty_ram_file(tmp_path):
    trace, ram = _write_run_files(tmp_path)
    ram.write_bytes(b'')
    with pytest.raises(SystemExit) as exc:
        main(['-L1s', '1', '-L1E', '2', '-L1b', '4', '-L2s', '2', '-L2E', '2', '-L2b', '4',
              '-t', str(trace), '--ram', str(ram)])
    assert exc.value.code == 2


def test_cli_unwritable_log_file(tmp_path):
    # a directory cannot be opened as the log file
    trace, ram = _write_run_files(tmp_path)
    with pytest.raises(SystemExit) as exc:
        main(['-L1s', '1', '-L1E', '2', '-L1b', '4', '-L2s', '2', '-L2E', '2', '-L2b', '4',
              '-t', str(trace), '--ram', str(ram), '--log-file', str(tmp_path)])
    assert exc.value.code == 2
    # the RAM image is left untouched
    assert ram.read_bytes() == pattern_image(1024)
