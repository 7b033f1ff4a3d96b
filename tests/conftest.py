"""
Shared pytest fixtures for symdetect tests.

Circuits are written as snapshots with net names, so each fixture reads like
a small SPICE deck: instance name, kind, drain/gate/source/bulk nets.
"""

from pathlib import Path

import pytest

from symdetect.loader import build_from_snapshot

SAMPLE_DIR = Path(__file__).parent.parent / "sample_netlists"


def make_netlist(net_names, instances, width=1.0, length=0.1):
    """Build a NetlistModel from ``(name, kind, nets[, width, length])`` tuples."""
    snapshot_instances = []
    for entry in instances:
        name, kind, nets = entry[:3]
        inst_width = entry[3] if len(entry) > 3 else width
        inst_length = entry[4] if len(entry) > 4 else length
        snapshot_instances.append({
            "name": name,
            "type": kind,
            "nets": list(nets),
            "width": inst_width,
            "length": inst_length,
        })
    return build_from_snapshot({"nets": list(net_names), "instances": snapshot_instances})


def inst_id(netlist, name):
    for inst in netlist.instances:
        if inst.name == name:
            return inst.id
    raise KeyError(name)


def net_id(netlist, name):
    for net in netlist.nets:
        if net.name == name:
            return net.id
    raise KeyError(name)


def group_names(detector):
    """Symmetry groups as lists of (name1, name2) tuples."""
    result = []
    for group in detector.sym_groups:
        result.append([
            (detector.netlist.inst(p.mos_id1).name, detector.netlist.inst(p.mos_id2).name)
            for p in group
        ])
    return result


def net_pair_names(detector):
    return {
        frozenset((detector.netlist.net(p.net_id1).name, detector.netlist.net(p.net_id2).name))
        for p in detector.sym_nets
    }


@pytest.fixture
def diff_pair():
    return make_netlist(
        ["VTAIL", "ING1", "ING2", "OUTP", "OUTN", "GND"],
        [
            ("M1", "nmos", ["OUTP", "ING1", "VTAIL", "GND"]),
            ("M2", "nmos", ["OUTN", "ING2", "VTAIL", "GND"]),
        ],
    )


@pytest.fixture
def cross_load():
    return make_netlist(
        ["VDD", "X", "Y"],
        [
            ("P1", "pmos", ["X", "Y", "VDD", "VDD"]),
            ("P2", "pmos", ["Y", "X", "VDD", "VDD"]),
        ],
    )


@pytest.fixture
def cascode_stack():
    return make_netlist(
        ["VTAIL", "INP", "INN", "D1", "D2", "OUTP", "OUTN", "VB", "GND"],
        [
            ("M1", "nmos", ["D1", "INP", "VTAIL", "GND"]),
            ("M2", "nmos", ["D2", "INN", "VTAIL", "GND"]),
            ("M3", "nmos", ["OUTP", "VB", "D1", "GND"]),
            ("M4", "nmos", ["OUTN", "VB", "D2", "GND"]),
            ("MB", "nmos", ["VB", "VB", "GND", "GND"], 2.0, 0.1),
        ],
    )


@pytest.fixture
def tail_pair():
    return make_netlist(
        ["VTAIL", "INP", "INN", "OUTP", "OUTN", "VBN", "GND"],
        [
            ("M1", "nmos", ["OUTP", "INP", "VTAIL", "GND"]),
            ("M2", "nmos", ["OUTN", "INN", "VTAIL", "GND"]),
            ("M5", "nmos", ["VTAIL", "VBN", "GND", "GND"], 4.0, 0.5),
        ],
    )


@pytest.fixture
def two_stage():
    return make_netlist(
        ["VT1", "VT2", "INP", "INN", "X1", "X2", "O1", "O2", "GND"],
        [
            ("M1", "nmos", ["X1", "INP", "VT1", "GND"]),
            ("M2", "nmos", ["X2", "INN", "VT1", "GND"]),
            ("M6", "nmos", ["O1", "X1", "VT2", "GND"]),
            ("M7", "nmos", ["O2", "X2", "VT2", "GND"]),
        ],
    )


@pytest.fixture
def latch_comparator():
    # Input pair under a cross-coupled NMOS latch, with a tail and a PMOS reset pair.
    return make_netlist(
        ["VDD", "GND", "INP", "INN", "VTAIL", "CLK", "DP", "DN", "OUTP", "OUTN"],
        [
            ("M1", "nmos", ["DP", "INP", "VTAIL", "GND"], 2.0, 0.1),
            ("M2", "nmos", ["DN", "INN", "VTAIL", "GND"], 2.0, 0.1),
            ("M3", "nmos", ["OUTP", "OUTN", "DP", "GND"]),
            ("M4", "nmos", ["OUTN", "OUTP", "DN", "GND"]),
            ("M5", "pmos", ["OUTP", "OUTN", "VDD", "VDD"]),
            ("M6", "pmos", ["OUTN", "OUTP", "VDD", "VDD"]),
            ("M7", "nmos", ["VTAIL", "CLK", "GND", "GND"], 4.0, 0.1),
            ("M8", "pmos", ["OUTP", "CLK", "VDD", "VDD"], 0.5, 0.1),
            ("M9", "pmos", ["OUTN", "CLK", "VDD", "VDD"], 0.5, 0.1),
        ],
    )


@pytest.fixture
def ota5t_path():
    return SAMPLE_DIR / "ota5t.json"


@pytest.fixture
def telescopic_path():
    return SAMPLE_DIR / "telescopic.json"
