import json

from .netlist import InstanceType, MalformedInput, NetlistModel

TYPE_ALIASES = {
    "nmos": InstanceType.NMOS,
    "nfet": InstanceType.NMOS,
    "nch": InstanceType.NMOS,
    "pmos": InstanceType.PMOS,
    "pfet": InstanceType.PMOS,
    "pch": InstanceType.PMOS,
    "res": InstanceType.RES,
    "r": InstanceType.RES,
    "resistor": InstanceType.RES,
    "cap": InstanceType.CAP,
    "c": InstanceType.CAP,
    "capacitor": InstanceType.CAP,
}


def _load_json(path):
    with open(path, "r") as f:
        return json.load(f)


def infer_instance_type(type_tag, name=None):
    """Map a device tag (or, failing that, the instance name) to an InstanceType."""
    if isinstance(type_tag, InstanceType):
        return type_tag
    tag = str(type_tag or "").strip().lower()
    if tag in TYPE_ALIASES:
        return TYPE_ALIASES[tag]

    upper = tag.upper()
    if upper == InstanceType.OTHER.value:
        return InstanceType.OTHER
    for marker in ("PMOS", "PFET", "PCH"):
        if marker in upper:
            return InstanceType.PMOS
    for marker in ("NMOS", "NFET", "NCH"):
        if marker in upper:
            return InstanceType.NMOS

    prefix = (name or "").strip()[:1].upper()
    if prefix == "R":
        return InstanceType.RES
    if prefix == "C":
        return InstanceType.CAP
    return InstanceType.OTHER


def _raw_nets(snapshot):
    raw_nets = []
    for position, net in enumerate(snapshot.get("nets", [])):
        if isinstance(net, str):
            raw_nets.append({"id": position, "name": net})
        elif isinstance(net, dict):
            raw_net = {"name": str(net.get("name", position))}
            if "id" in net:
                raw_net["id"] = net["id"]
            raw_nets.append(raw_net)
        else:
            raise MalformedInput(f"Net entry {position} is not an object: {net!r}")
    return raw_nets


def _resolve_net(ref, net_ids_by_name, inst_name):
    if isinstance(ref, str):
        if ref not in net_ids_by_name:
            raise MalformedInput(f"Instance '{inst_name}' references unknown net '{ref}'")
        return net_ids_by_name[ref]
    return ref


def raw_from_snapshot(snapshot):
    """Split a snapshot dict into the ``(raw_nets, raw_instances)`` lists
    accepted by :meth:`NetlistModel.build`.

    Net references may be ids or net names; names are resolved here.
    """
    if not isinstance(snapshot, dict):
        raise MalformedInput("Snapshot must be a JSON object")

    raw_nets = _raw_nets(snapshot)
    net_ids_by_name = {}
    for position, raw_net in enumerate(raw_nets):
        net_ids_by_name.setdefault(raw_net["name"], position)

    raw_instances = []
    for position, inst in enumerate(snapshot.get("instances", [])):
        if not isinstance(inst, dict):
            raise MalformedInput(f"Instance entry {position} is not an object: {inst!r}")
        name = str(inst.get("name", f"I{position}"))
        nets = inst.get("nets")
        if not isinstance(nets, list):
            raise MalformedInput(f"Instance '{name}' has no net list")
        raw_instances.append({
            "name": name,
            "type": infer_instance_type(inst.get("type"), name),
            "nets": [_resolve_net(ref, net_ids_by_name, name) for ref in nets],
            "width": inst.get("width"),
            "length": inst.get("length"),
        })
    return raw_nets, raw_instances


def build_from_snapshot(snapshot):
    raw_nets, raw_instances = raw_from_snapshot(snapshot)
    return NetlistModel.build(raw_nets, raw_instances)


def load_snapshot(path):
    return _load_json(path)


def load_netlist(path):
    return build_from_snapshot(load_snapshot(path))
