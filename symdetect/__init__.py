"""Analog netlist symmetry detection."""

from .netlist import (
    InstanceType,
    MalformedInput,
    MosType,
    NetlistModel,
    PinType,
    format_netlist,
)
from .pattern import MosPattern, classify
from .sym_detect import MosPair, NetPair, SymDetect
from .loader import build_from_snapshot, load_netlist
from .extract_skidl_design import snapshot_from_circuit
from .report import format_symmetry, symmetry_to_dict
