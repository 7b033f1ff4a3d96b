"""
Pairwise symmetry pattern classification for transistor pairs.

``classify`` only reads terminal nets, kinds and declared sizes from the
netlist, and gives the same answer for (a, b) and (b, a).
"""

from enum import Enum

from .netlist import MosType


class MosPattern(Enum):
    INVALID = "INVALID"
    CROSS_CASCODE = "CROSS_CASCODE"
    CROSS_LOAD = "CROSS_LOAD"
    CASCODE = "CASCODE"
    LOAD = "LOAD"
    DIFF_SOURCE = "DIFF_SOURCE"
    DIFF_CASCODE = "DIFF_CASCODE"


_CURRENT_MOS_TYPES = {MosType.DIFF, MosType.DIODE}


def classify(netlist, mos_id1, mos_id2):
    if not _matched_type(netlist, mos_id1, mos_id2) or not _matched_size(netlist, mos_id1, mos_id2):
        return MosPattern.INVALID
    if not netlist.is_mos(mos_id1):
        return MosPattern.INVALID
    if _cross_pair_cascode(netlist, mos_id1, mos_id2):
        return MosPattern.CROSS_CASCODE
    if _cross_pair_load(netlist, mos_id1, mos_id2):
        return MosPattern.CROSS_LOAD
    if _valid_pair_cascode(netlist, mos_id1, mos_id2):
        return MosPattern.CASCODE
    if _valid_pair_load(netlist, mos_id1, mos_id2):
        return MosPattern.LOAD
    if _diff_pair_input(netlist, mos_id1, mos_id2):
        return MosPattern.DIFF_SOURCE
    if _diff_pair_cascode(netlist, mos_id1, mos_id2):
        return MosPattern.DIFF_CASCODE
    return MosPattern.INVALID


def _matched_type(netlist, mos_id1, mos_id2):
    return netlist.inst(mos_id1).type == netlist.inst(mos_id2).type


def _matched_size(netlist, mos_id1, mos_id2):
    inst1 = netlist.inst(mos_id1)
    inst2 = netlist.inst(mos_id2)
    return inst1.width == inst2.width and inst1.length == inst2.length


def _both_diff(netlist, mos_id1, mos_id2):
    return (
        netlist.mos_type(mos_id1) == MosType.DIFF
        and netlist.mos_type(mos_id2) == MosType.DIFF
    )


def _both_current(netlist, mos_id1, mos_id2):
    return (
        netlist.mos_type(mos_id1) in _CURRENT_MOS_TYPES
        and netlist.mos_type(mos_id2) in _CURRENT_MOS_TYPES
    )


def _crossed(netlist, mos_id1, mos_id2):
    # gate of each side driven by the drain of the other
    return (
        netlist.gate_net_id(mos_id1) == netlist.drain_net_id(mos_id2)
        and netlist.drain_net_id(mos_id1) == netlist.gate_net_id(mos_id2)
    )


def _same_src(netlist, mos_id1, mos_id2):
    return netlist.src_net_id(mos_id1) == netlist.src_net_id(mos_id2)


def _same_gate(netlist, mos_id1, mos_id2):
    return netlist.gate_net_id(mos_id1) == netlist.gate_net_id(mos_id2)


def _same_drain(netlist, mos_id1, mos_id2):
    return netlist.drain_net_id(mos_id1) == netlist.drain_net_id(mos_id2)


def _cross_pair_cascode(netlist, mos_id1, mos_id2):
    return (
        _both_diff(netlist, mos_id1, mos_id2)
        and not _same_src(netlist, mos_id1, mos_id2)
        and _crossed(netlist, mos_id1, mos_id2)
    )


def _cross_pair_load(netlist, mos_id1, mos_id2):
    return (
        _both_diff(netlist, mos_id1, mos_id2)
        and _same_src(netlist, mos_id1, mos_id2)
        and _crossed(netlist, mos_id1, mos_id2)
    )


def _valid_pair_cascode(netlist, mos_id1, mos_id2):
    return (
        _both_current(netlist, mos_id1, mos_id2)
        and not _same_src(netlist, mos_id1, mos_id2)
        and _same_gate(netlist, mos_id1, mos_id2)
        and not _same_drain(netlist, mos_id1, mos_id2)
    )


def _valid_pair_load(netlist, mos_id1, mos_id2):
    if not _both_current(netlist, mos_id1, mos_id2):
        return False
    if (
        _same_src(netlist, mos_id1, mos_id2)
        and _same_gate(netlist, mos_id1, mos_id2)
        and not _same_drain(netlist, mos_id1, mos_id2)
    ):
        return True
    # Diode loads need not share a gate.
    return (
        netlist.mos_type(mos_id1) == MosType.DIODE
        and netlist.mos_type(mos_id2) == MosType.DIODE
        and _same_src(netlist, mos_id1, mos_id2)
        and not _same_drain(netlist, mos_id1, mos_id2)
    )


def _diff_pair_input(netlist, mos_id1, mos_id2):
    return (
        _both_diff(netlist, mos_id1, mos_id2)
        and _same_src(netlist, mos_id1, mos_id2)
        and not _same_gate(netlist, mos_id1, mos_id2)
        and not _same_drain(netlist, mos_id1, mos_id2)
    )


def _diff_pair_cascode(netlist, mos_id1, mos_id2):
    return (
        _both_diff(netlist, mos_id1, mos_id2)
        and not _same_src(netlist, mos_id1, mos_id2)
        and not _same_gate(netlist, mos_id1, mos_id2)
        and not _same_drain(netlist, mos_id1, mos_id2)
    )
