"""
Snapshot extraction from SKiDL circuits.

Parts and pins are read duck-typed, so SKiDL itself is only needed to build
the circuit, not to import this module.
"""

import json
import logging

from .loader import infer_instance_type
from .netlist import MOS_TYPES, PASSIVE_PIN_TYPES, PASSIVE_TYPES, InstanceType, MalformedInput

logger = logging.getLogger(__name__)

MOS_PIN_NAMES = {
    "D": 0, "DRAIN": 0,
    "G": 1, "GATE": 1,
    "S": 2, "SOURCE": 2,
    "B": 3, "BULK": 3, "SUB": 3,
}


class ERCTagFilter(logging.Filter):
    def filter(self, record):
        return "Tag" not in record.getMessage()


def _pin_net_name(pin):
    nets = []
    if hasattr(pin, "nets") and pin.nets:
        nets = list(pin.nets)
    elif hasattr(pin, "net") and pin.net is not None:
        nets = [pin.net]
    if not nets:
        return None
    name = getattr(nets[0], "name", None)
    if name is None:
        name = str(nets[0])
    return str(name)


def _part_id_from_part(part):
    for attr in ("name", "value", "part_num", "device"):
        val = getattr(part, attr, None)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return ""


def _pin_number(pin):
    num = getattr(pin, "num", None)
    try:
        return int(num)
    except (TypeError, ValueError):
        return 0


def _ordered_pins(part, inst_type):
    pins = list(getattr(part, "pins", []))
    if inst_type not in MOS_TYPES:
        return sorted(pins, key=_pin_number)

    by_role = {}
    for pin in pins:
        role = MOS_PIN_NAMES.get(str(getattr(pin, "name", "") or "").strip().upper())
        if role is not None:
            by_role.setdefault(role, pin)
    if len(by_role) == len(set(MOS_PIN_NAMES.values())):
        return [by_role[role] for role in sorted(by_role)]
    # Unnamed transistor pins follow the D, G, S, B numbering.
    return sorted(pins, key=_pin_number)


def _part_size(part, *attrs):
    for attr in attrs:
        val = getattr(part, attr, None)
        if val is not None:
            return val
    return None


def snapshot_from_circuit(circuit):
    net_ids = {}
    nets = []
    instances = []

    for part in getattr(circuit, "parts", []):
        ref = getattr(part, "ref", "")
        inst_type = infer_instance_type(_part_id_from_part(part), ref)

        inst_nets = []
        for pin in _ordered_pins(part, inst_type):
            net_name = _pin_net_name(pin)
            if net_name is None:
                if inst_type in MOS_TYPES or inst_type in PASSIVE_TYPES:
                    raise MalformedInput(
                        f"Part '{ref}' pin {getattr(pin, 'num', '?')} is not connected"
                    )
                continue
            if net_name not in net_ids:
                net_ids[net_name] = len(nets)
                nets.append({"id": net_ids[net_name], "name": net_name})
            inst_nets.append(net_ids[net_name])

        if inst_type in PASSIVE_TYPES and len(inst_nets) < len(PASSIVE_PIN_TYPES):
            # Two-pin passives carry no body terminal; keep them as generic devices.
            logger.debug("Part %s has %d pins, treated as generic", ref, len(inst_nets))
            inst_type = InstanceType.OTHER

        instances.append({
            "name": ref,
            "type": inst_type.value,
            "nets": inst_nets,
            "width": _part_size(part, "width", "W"),
            "length": _part_size(part, "length", "L"),
        })

    return {"nets": nets, "instances": instances}


def snapshot_from_default_circuit():
    import builtins

    logging.getLogger("skidl").addFilter(ERCTagFilter())
    circuit = getattr(builtins, "default_circuit", None)
    if circuit is None:
        raise RuntimeError("default_circuit not found in builtins")
    return snapshot_from_circuit(circuit)


def serialize_snapshot(snapshot):
    return json.dumps(snapshot, ensure_ascii=False)
