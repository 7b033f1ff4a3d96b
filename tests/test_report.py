"""
Tests for symmetry report rendering.
"""

from symdetect.report import format_symmetry, symmetry_to_dict
from symdetect.sym_detect import SymDetect

from conftest import make_netlist


def test_format_symmetry(tail_pair):
    text = format_symmetry(SymDetect(tail_pair))
    lines = text.splitlines()
    assert lines[:3] == [
        "Symmetry group 0:",
        "- M1 <-> M2 [DIFF_SOURCE]",
        "- M5 (self)",
    ]
    assert "Symmetric nets:" in lines
    assert "- OUTP <-> OUTN" in lines
    assert "- INP <-> INN" in lines
    assert "- VTAIL (self)" in lines
    assert not any(line.startswith("Bias for group") for line in lines)


def test_format_symmetry_with_bias(cascode_stack):
    text = format_symmetry(SymDetect(cascode_stack))
    assert "- M3 <-> M4 [CASCODE]" in text
    assert text.splitlines()[-1] == "Bias for group 0: MB"


def test_format_symmetry_empty():
    netlist = make_netlist(["A", "B", "C", "D"], [("M1", "nmos", ["A", "B", "C", "D"])])
    assert format_symmetry(SymDetect(netlist)) == ""


def test_symmetry_to_dict(cascode_stack):
    data = symmetry_to_dict(SymDetect(cascode_stack))
    assert data["groups"] == [[
        {"a": "M1", "b": "M2", "pattern": "DIFF_SOURCE"},
        {"a": "M3", "b": "M4", "pattern": "CASCODE"},
    ]]
    assert {"a": "VB", "b": "VB"} in data["net_pairs"]
    assert data["bias_groups"] == [{"group": 0, "instances": ["MB"]}]


def test_symmetry_to_dict_marks_self(tail_pair):
    data = symmetry_to_dict(SymDetect(tail_pair))
    assert data["groups"][0][-1] == {"a": "M5", "b": "M5", "pattern": "SELF"}
