"""
Netlist graph model for transistor-level circuits.

Nets, instances and pins live in flat lists addressed by integer id. A pin
binds one instance terminal to one net, and both the instance and the net keep
the pin id, so connectivity can be walked in either direction.
"""

import logging
from enum import Enum

import networkx as nx

logger = logging.getLogger(__name__)

# Absent terminal lookups return None. A None net id never equals a real net id.
NO_NET = None
NO_PIN = None


class MalformedInput(ValueError):
    pass


class InstanceType(Enum):
    NMOS = "NMOS"
    PMOS = "PMOS"
    RES = "RES"
    CAP = "CAP"
    OTHER = "OTHER"


class PinType(Enum):
    DRAIN = "DRAIN"
    GATE = "GATE"
    SOURCE = "SOURCE"
    BULK = "BULK"
    THIS = "THIS"
    THAT = "THAT"
    OTHER = "OTHER"


class MosType(Enum):
    DUMMY = "DUMMY"
    DIODE = "DIODE"
    CAP = "CAP"
    DIFF = "DIFF"


MOS_TYPES = {InstanceType.NMOS, InstanceType.PMOS}
PASSIVE_TYPES = {InstanceType.RES, InstanceType.CAP}

MOS_PIN_TYPES = (PinType.DRAIN, PinType.GATE, PinType.SOURCE, PinType.BULK)
PASSIVE_PIN_TYPES = (PinType.THIS, PinType.THAT, PinType.OTHER)

_NEXT_PIN_TYPE = {
    PinType.SOURCE: PinType.DRAIN,
    PinType.DRAIN: PinType.SOURCE,
    PinType.THIS: PinType.THAT,
    PinType.THAT: PinType.THIS,
}


def next_pin_type(pin_type):
    """Terminal on the far side of the channel from ``pin_type``.

    A device reached through its source is left through its drain and the
    other way round. Gates, bulks and generic terminals have no far side.
    """
    return _NEXT_PIN_TYPE.get(pin_type, PinType.OTHER)


class Net:
    def __init__(self, net_id, name):
        self.id = net_id
        self.name = name
        self.pin_ids = []


class Pin:
    def __init__(self, pin_id, instance_id, net_id, pin_type):
        self.id = pin_id
        self.instance_id = instance_id
        self.net_id = net_id
        self.pin_type = pin_type


class Instance:
    def __init__(self, inst_id, name, inst_type, width=None, length=None):
        self.id = inst_id
        self.name = name
        self.type = inst_type
        self.width = width
        self.length = length
        self.pin_ids = []


def _coerce_instance_type(value):
    if isinstance(value, InstanceType):
        return value
    try:
        return InstanceType(str(value).strip().upper())
    except ValueError:
        return InstanceType.OTHER


def _pin_types_for(inst_type, net_ids, name):
    if inst_type in MOS_TYPES:
        if len(net_ids) < len(MOS_PIN_TYPES):
            raise MalformedInput(
                f"Instance '{name}' ({inst_type.value}) needs {len(MOS_PIN_TYPES)} nets, "
                f"got {len(net_ids)}"
            )
        return list(zip(MOS_PIN_TYPES, net_ids))
    if inst_type in PASSIVE_TYPES:
        if len(net_ids) < len(PASSIVE_PIN_TYPES):
            raise MalformedInput(
                f"Instance '{name}' ({inst_type.value}) needs {len(PASSIVE_PIN_TYPES)} nets, "
                f"got {len(net_ids)}"
            )
        return list(zip(PASSIVE_PIN_TYPES, net_ids))
    return [(PinType.OTHER, net_id) for net_id in net_ids]


class NetlistModel:
    """Device/net/pin graph. Built once by :meth:`build`, read-only afterwards."""

    def __init__(self):
        self.nets = []
        self.instances = []
        self.pins = []

    @classmethod
    def build(cls, raw_nets, raw_instances):
        """Build the model from a raw description.

        ``raw_nets`` is a list of ``{"name": ..., "id": ...}`` dicts (``id`` is
        optional and must match the position). ``raw_instances`` is a list of
        ``{"name", "type", "nets", "width", "length"}`` dicts where ``nets``
        holds net ids in terminal order.

        Raises:
            MalformedInput: too few nets for the instance kind, a net id
            outside the net list, or an inconsistent net id.
        """
        model = cls()

        for position, raw_net in enumerate(raw_nets):
            net_id = raw_net.get("id", position)
            if net_id != position:
                raise MalformedInput(
                    f"Net '{raw_net.get('name')}' has id {net_id}, expected {position}"
                )
            model.nets.append(Net(position, raw_net.get("name", str(position))))

        for raw_inst in raw_instances:
            name = raw_inst.get("name", "")
            inst_type = _coerce_instance_type(raw_inst.get("type"))
            net_ids = list(raw_inst.get("nets", []))
            for net_id in net_ids:
                if isinstance(net_id, bool) or not isinstance(net_id, int):
                    raise MalformedInput(f"Instance '{name}' references non-integer net {net_id!r}")
                if net_id < 0 or net_id >= len(model.nets):
                    raise MalformedInput(f"Instance '{name}' references unknown net {net_id}")

            terminals = _pin_types_for(inst_type, net_ids, name)
            inst = Instance(
                len(model.instances),
                name,
                inst_type,
                width=raw_inst.get("width"),
                length=raw_inst.get("length"),
            )
            for pin_type, net_id in terminals:
                pin_id = len(model.pins)
                inst.pin_ids.append(pin_id)
                model.nets[net_id].pin_ids.append(pin_id)
                model.pins.append(Pin(pin_id, inst.id, net_id, pin_type))
            model.instances.append(inst)

        logger.debug(
            "Built netlist: %d nets, %d instances, %d pins",
            len(model.nets), len(model.instances), len(model.pins),
        )
        return model

    def net(self, net_id):
        return self.nets[net_id]

    def inst(self, inst_id):
        return self.instances[inst_id]

    def pin(self, pin_id):
        return self.pins[pin_id]

    def is_mos(self, inst_id):
        return self.instances[inst_id].type in MOS_TYPES

    def is_passive(self, inst_id):
        # passives and generic devices alike
        return not self.is_mos(inst_id)

    # ------------------------------------------------------------------
    # Connectivity queries
    # ------------------------------------------------------------------

    def devices_on_net(self, net_id):
        return {self.pins[pin_id].instance_id for pin_id in self.nets[net_id].pin_ids}

    def devices_on_net_excluding(self, net_id, excluded_id):
        return self.devices_on_net(net_id) - {excluded_id}

    def filter_by_pin_type_on_net(self, inst_ids, net_id, pin_type):
        return {
            inst_id for inst_id in inst_ids
            if self.instance_net_id(inst_id, pin_type) == net_id
        }

    def filter_by_mos_type(self, inst_ids, mos_type):
        return {
            inst_id for inst_id in inst_ids
            if self.is_mos(inst_id) and self.mos_type(inst_id) == mos_type
        }

    def pin_type_between(self, inst_id, net_id):
        for pin_id in self.instances[inst_id].pin_ids:
            pin = self.pins[pin_id]
            if pin.net_id == net_id:
                return pin.pin_type
        return PinType.OTHER

    def instance_net_id(self, inst_id, pin_type):
        for pin_id in self.instances[inst_id].pin_ids:
            pin = self.pins[pin_id]
            if pin.pin_type == pin_type:
                return pin.net_id
        return NO_NET

    def instance_pin_id(self, inst_id, pin_type):
        for pin_id in self.instances[inst_id].pin_ids:
            if self.pins[pin_id].pin_type == pin_type:
                return pin_id
        return NO_PIN

    def src_net_id(self, inst_id):
        return self.instance_net_id(inst_id, PinType.SOURCE)

    def gate_net_id(self, inst_id):
        return self.instance_net_id(inst_id, PinType.GATE)

    def drain_net_id(self, inst_id):
        return self.instance_net_id(inst_id, PinType.DRAIN)

    def mos_type(self, inst_id):
        """Classify a transistor from its terminal net equalities.

        Returns None for non-transistor instances.
        """
        if not self.is_mos(inst_id):
            return None
        source = self.src_net_id(inst_id)
        gate = self.gate_net_id(inst_id)
        drain = self.drain_net_id(inst_id)
        if source == drain:
            return MosType.DUMMY
        if gate == drain:
            return MosType.DIODE
        if gate == source:
            return MosType.CAP
        return MosType.DIFF

    def pin_instance_ids(self, pin_id):
        """Other instances sharing the net of ``pin_id``, in pin order."""
        owner = self.pins[pin_id].instance_id
        result = []
        for other_pin_id in self.nets[self.pins[pin_id].net_id].pin_ids:
            inst_id = self.pins[other_pin_id].instance_id
            if inst_id == owner or inst_id in result:
                continue
            result.append(inst_id)
        return result

    def net_mosfet_ids(self, net_id, pin_type, mos_type):
        """Transistors of ``mos_type`` whose ``pin_type`` terminal sits on ``net_id``."""
        result = []
        for pin_id in self.nets[net_id].pin_ids:
            pin = self.pins[pin_id]
            if pin.pin_type != pin_type:
                continue
            inst_id = pin.instance_id
            if inst_id in result or not self.is_mos(inst_id):
                continue
            if self.mos_type(inst_id) == mos_type:
                result.append(inst_id)
        return result

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def to_nx_graph(self):
        """Bipartite instance/net MultiGraph, one edge per pin."""
        g = nx.MultiGraph()
        for net in self.nets:
            g.add_node(f"net:{net.id}", node_type="net", net_id=net.id, name=net.name)
        for inst in self.instances:
            g.add_node(
                f"inst:{inst.id}",
                node_type="instance",
                inst_id=inst.id,
                name=inst.name,
                kind=inst.type.value,
            )
            for pin_id in inst.pin_ids:
                pin = self.pins[pin_id]
                g.add_edge(
                    f"inst:{inst.id}",
                    f"net:{pin.net_id}",
                    pin_id=pin_id,
                    pin_type=pin.pin_type.value,
                )
        return g


def format_netlist(model):
    lines = []
    for net in model.nets:
        lines.append(f"Net {net.id}, {net.name}")
    for inst in model.instances:
        lines.append(f"Instance {inst.id}, {inst.name}")
        for pin_id in inst.pin_ids:
            pin = model.pins[pin_id]
            net = model.nets[pin.net_id]
            lines.append(
                f"Pin {pin_id}, from Instance {inst.name} to net {net.id}:{net.name}"
            )
    return "\n".join(lines)
