"""
Hierarchical symmetry detection over a transistor netlist.

Symmetry groups grow from seed pairs (differential inputs and cross-coupled
loads) by an explicit-stack depth-first search. Each group is then completed
with self-symmetric devices below its differential pairs, and the devices
left over are clustered into bias groups attached to the structural groups
they feed.

The result has two levels: ``sym_groups`` is a list of groups, each a list of
``MosPair``. Symmetric nets found along the way are collected in
``sym_nets``.
"""

import logging
from dataclasses import dataclass

import networkx as nx

from .netlist import MosType, PinType, next_pin_type
from .pattern import MosPattern, classify

logger = logging.getLogger(__name__)

SEED_PATTERNS = (MosPattern.DIFF_SOURCE, MosPattern.CROSS_LOAD)
TERMINAL_PATTERNS = {MosPattern.LOAD, MosPattern.CROSS_LOAD}

# Bulk terminals tie every same-polarity device to one rail; never searched.
SKIPPED_PIN_TYPES = {PinType.BULK}


def pair_key(id1, id2):
    return (id1, id2) if id1 <= id2 else (id2, id1)


@dataclass
class MosPair:
    """Two instances found symmetric, plus the pins each side was reached by.

    A self-symmetric instance is stored with ``mos_id1 == mos_id2``.
    """
    mos_id1: int
    mos_id2: int
    srch_pin_id1: int = None
    srch_pin_id2: int = None

    @property
    def key(self):
        return pair_key(self.mos_id1, self.mos_id2)

    @property
    def is_self(self):
        return self.mos_id1 == self.mos_id2


@dataclass
class NetPair:
    net_id1: int
    net_id2: int

    @property
    def key(self):
        return pair_key(self.net_id1, self.net_id2)

    @property
    def is_self(self):
        return self.net_id1 == self.net_id2


def flatten_groups(sym_groups):
    return [pair for group in sym_groups for pair in group]


class SymDetect:
    """Run the full symmetry detection pipeline over ``netlist`` on construction."""

    def __init__(self, netlist):
        self.netlist = netlist
        self.sym_groups = []
        self.sym_nets = []
        self.flat_pairs = []
        self.bias_groups = []
        self.bias_owners = []
        self.bias_match = {}
        self._net_keys = set()

        self.detect_groups()
        self.flat_pairs = flatten_groups(self.sym_groups)
        self.bias_groups, self.bias_owners = self.group_bias()
        self.bias_match = self.match_bias(self.bias_groups, self.bias_owners)

        logger.info(
            "Symmetry detection: %d groups, %d pairs, %d net pairs, %d bias groups",
            len(self.sym_groups), len(self.flat_pairs), len(self.sym_nets), len(self.bias_groups),
        )

    def pattern(self, pair):
        return classify(self.netlist, pair.mos_id1, pair.mos_id2)

    def _pin_type(self, pin_id):
        if pin_id is None:
            return None
        return self.netlist.pin(pin_id).pin_type

    # ------------------------------------------------------------------
    # Seeds
    # ------------------------------------------------------------------

    def collect_seeds(self, srch_pattern):
        """Pairs of DIFF transistors sharing a source net and matching ``srch_pattern``."""
        seeds = []
        seen = set()
        for net in self.netlist.nets:
            mos_ids = sorted(self.netlist.net_mosfet_ids(net.id, PinType.SOURCE, MosType.DIFF))
            for i, mos_id1 in enumerate(mos_ids):
                for mos_id2 in mos_ids[i + 1:]:
                    key = pair_key(mos_id1, mos_id2)
                    if key in seen:
                        continue
                    if classify(self.netlist, mos_id1, mos_id2) != srch_pattern:
                        continue
                    seen.add(key)
                    seeds.append(MosPair(
                        mos_id1,
                        mos_id2,
                        self.netlist.instance_pin_id(mos_id1, PinType.SOURCE),
                        self.netlist.instance_pin_id(mos_id2, PinType.SOURCE),
                    ))
        return seeds

    # ------------------------------------------------------------------
    # Search rules
    # ------------------------------------------------------------------

    def valid_expansion(self, inst_id1, inst_id2, srch_pin_id1, srch_pin_id2):
        if inst_id1 == inst_id2:
            return False
        if self.netlist.is_passive(inst_id1) or self.netlist.is_passive(inst_id2):
            return False
        pin_type = self._pin_type(srch_pin_id1)
        if pin_type != self._pin_type(srch_pin_id2):
            return False
        if pin_type == PinType.GATE:
            return False
        return classify(self.netlist, inst_id1, inst_id2) != MosPattern.INVALID

    def valid_gate_carry(self, inst_id1, inst_id2, srch_pin_id1, srch_pin_id2):
        """Second-stage input pair driven through its gates by the current pair."""
        if inst_id1 == inst_id2:
            return False
        if self._pin_type(srch_pin_id1) != PinType.GATE or self._pin_type(srch_pin_id2) != PinType.GATE:
            return False
        return classify(self.netlist, inst_id1, inst_id2) == MosPattern.DIFF_SOURCE

    def is_terminal(self, pair):
        if self.netlist.is_passive(pair.mos_id1) or self.netlist.is_passive(pair.mos_id2):
            return True
        pattern = self.pattern(pair)
        if pattern in TERMINAL_PATTERNS:
            return True
        srch_type = self._pin_type(pair.srch_pin_id1)
        if pattern == MosPattern.DIFF_SOURCE and srch_type == PinType.DRAIN:
            return True
        return srch_type == PinType.GATE

    def valid_net_pair(self, net_id1, net_id2):
        # Only pin counts are compared.
        return len(self.netlist.net(net_id1).pin_ids) == len(self.netlist.net(net_id2).pin_ids)

    # ------------------------------------------------------------------
    # Depth-first group search
    # ------------------------------------------------------------------

    def _expansion_pin_types(self, inst_id, srch_type):
        pin_types = [self.netlist.pin(pin_id).pin_type for pin_id in self.netlist.inst(inst_id).pin_ids]
        ordered = []
        preferred = next_pin_type(srch_type)
        if preferred in pin_types and preferred != srch_type:
            ordered.append(preferred)
        for pin_type in pin_types:
            if pin_type == srch_type or pin_type in SKIPPED_PIN_TYPES or pin_type in ordered:
                continue
            ordered.append(pin_type)
        return ordered

    def push_next_candidates(self, curr, visited, stack, remaining_seeds):
        """Push every unvisited valid pair reachable from ``curr`` onto ``stack``.

        Pairs formed here are dropped from ``remaining_seeds`` so they cannot
        start a group of their own.
        """
        netlist = self.netlist
        srch_type = self._pin_type(curr.srch_pin_id1)
        candidates = []
        found = set()
        for pin_type in self._expansion_pin_types(curr.mos_id1, srch_type):
            net_id1 = netlist.instance_net_id(curr.mos_id1, pin_type)
            net_id2 = netlist.instance_net_id(curr.mos_id2, pin_type)
            if net_id1 is None or net_id2 is None:
                continue
            for pin_id1 in sorted(netlist.net(net_id1).pin_ids):
                inst_id1 = netlist.pin(pin_id1).instance_id
                if inst_id1 == curr.mos_id1:
                    continue
                for pin_id2 in sorted(netlist.net(net_id2).pin_ids):
                    inst_id2 = netlist.pin(pin_id2).instance_id
                    if inst_id2 == curr.mos_id2 or inst_id2 == inst_id1:
                        continue
                    key = pair_key(inst_id1, inst_id2)
                    if key in visited or key in found:
                        continue
                    if not (
                        self.valid_expansion(inst_id1, inst_id2, pin_id1, pin_id2)
                        or self.valid_gate_carry(inst_id1, inst_id2, pin_id1, pin_id2)
                    ):
                        continue
                    found.add(key)
                    candidates.append(MosPair(inst_id1, inst_id2, pin_id1, pin_id2))
                    if remaining_seeds.pop(key, None) is not None:
                        logger.debug("Seed %s reached from %s, invalidated", key, curr.key)

        # Reversed so that candidates pop in discovery order.
        stack.extend(reversed(candidates))

    def dfs_group(self, seed, remaining_seeds, claimed):
        visited = set()
        group = []
        stack = [seed]
        while stack:
            curr = stack.pop()
            key = curr.key
            if key in visited or key in claimed:
                continue
            visited.add(key)
            claimed.add(key)
            group.append(curr)
            self.add_sym_net(curr)
            if not self.is_terminal(curr):
                self.push_next_candidates(curr, visited, stack, remaining_seeds)
        return group

    def detect_groups(self):
        seeds = []
        for srch_pattern in SEED_PATTERNS:
            seeds.extend(self.collect_seeds(srch_pattern))
        logger.debug("Found %d seed pairs", len(seeds))

        remaining_seeds = {}
        for seed in seeds:
            remaining_seeds.setdefault(seed.key, seed)

        claimed = set()
        while remaining_seeds:
            key = next(iter(remaining_seeds))
            seed = remaining_seeds.pop(key)
            if key in claimed:
                continue
            group = self.dfs_group(seed, remaining_seeds, claimed)
            self.add_self_sym(group, claimed)
            logger.debug(
                "Group %d from seed %s: %d members",
                len(self.sym_groups), key, len(group),
            )
            self.sym_groups.append(group)
        return self.sym_groups

    # ------------------------------------------------------------------
    # Self symmetry
    # ------------------------------------------------------------------

    def valid_drain_mos(self, net_id):
        return sorted(self.netlist.net_mosfet_ids(net_id, PinType.DRAIN, MosType.DIFF))

    def add_self_sym(self, group, claimed):
        for pair in list(group):
            if pair.is_self or self.pattern(pair) != MosPattern.DIFF_SOURCE:
                continue
            self.self_sym_search(group, pair, claimed)

    def self_sym_search(self, group, diff_pair, claimed):
        """Fold devices stacked under the common source of ``diff_pair`` into ``group``.

        Starting at the pair's source net, every DIFF transistor whose drain
        sits on the net is added as a self-symmetric single, and the search
        continues from that transistor's source net.
        """
        members = {inst_id for pair in group for inst_id in (pair.mos_id1, pair.mos_id2)}
        src_nets = {
            self.netlist.src_net_id(diff_pair.mos_id1),
            self.netlist.src_net_id(diff_pair.mos_id2),
        }
        net_ids = sorted(net_id for net_id in src_nets if net_id is not None)
        searched = set()
        while net_ids:
            next_net_ids = []
            for net_id in net_ids:
                if net_id in searched:
                    continue
                searched.add(net_id)
                for mos_id in self.valid_drain_mos(net_id):
                    key = pair_key(mos_id, mos_id)
                    if mos_id in members or key in claimed:
                        continue
                    members.add(mos_id)
                    claimed.add(key)
                    drain_pin = self.netlist.instance_pin_id(mos_id, PinType.DRAIN)
                    single = MosPair(mos_id, mos_id, drain_pin, drain_pin)
                    group.append(single)
                    self.add_sym_net(single)
                    logger.debug("Self-symmetric %s under %s", self.netlist.inst(mos_id).name, diff_pair.key)
                    next_net_ids.append(self.netlist.src_net_id(mos_id))
            net_ids = next_net_ids

    # ------------------------------------------------------------------
    # Symmetric nets
    # ------------------------------------------------------------------

    def _add_net_pair(self, net_id1, net_id2):
        key = pair_key(net_id1, net_id2)
        if key in self._net_keys:
            return
        self._net_keys.add(key)
        self.sym_nets.append(NetPair(*key))

    def add_sym_net(self, pair):
        """Record the nets on matching non-via terminals of ``pair`` as symmetric.

        Self-symmetric singles record every one of their nets.
        """
        netlist = self.netlist
        for pin_id in netlist.inst(pair.mos_id1).pin_ids:
            if not pair.is_self and pin_id == pair.srch_pin_id1:
                continue
            pin = netlist.pin(pin_id)
            other_net_id = netlist.instance_net_id(pair.mos_id2, pin.pin_type)
            if other_net_id is None:
                continue
            if pin.net_id == other_net_id:
                self._add_net_pair(pin.net_id, pin.net_id)
            elif self.valid_net_pair(pin.net_id, other_net_id):
                self._add_net_pair(pin.net_id, other_net_id)

    # ------------------------------------------------------------------
    # Bias devices
    # ------------------------------------------------------------------

    def com_bias(self, pair):
        """True if both sides of ``pair`` take their gate from the same net."""
        if not self.netlist.is_mos(pair.mos_id1) or not self.netlist.is_mos(pair.mos_id2):
            return False
        gate_net_id = self.netlist.gate_net_id(pair.mos_id1)
        return gate_net_id is not None and gate_net_id == self.netlist.gate_net_id(pair.mos_id2)

    def _bias_devices(self, net_id, claimed_ids):
        result = []
        for inst_id in sorted(self.netlist.devices_on_net(net_id)):
            if inst_id in claimed_ids:
                continue
            pin_types = {
                self.netlist.pin(pin_id).pin_type
                for pin_id in self.netlist.inst(inst_id).pin_ids
                if self.netlist.pin(pin_id).net_id == net_id
            }
            if pin_types <= SKIPPED_PIN_TYPES:
                continue
            result.append(inst_id)
        return result

    def group_bias(self):
        """Cluster unclaimed devices hanging on the bias nets of grouped pairs.

        Returns ``(bias_groups, bias_owners)``: sorted instance id lists, and
        for each bias group the indices of the structural groups it feeds.
        """
        claimed_ids = {inst_id for pair in self.flat_pairs for inst_id in (pair.mos_id1, pair.mos_id2)}

        owners = {}
        for group_idx, group in enumerate(self.sym_groups):
            for pair in group:
                if self.com_bias(pair):
                    owners.setdefault(self.netlist.gate_net_id(pair.mos_id1), set()).add(group_idx)

        g = nx.Graph()
        for net_id in sorted(owners):
            net_node = f"net:{net_id}"
            g.add_node(net_node, node_type="net", net_id=net_id)
            for inst_id in self._bias_devices(net_id, claimed_ids):
                inst_node = f"inst:{inst_id}"
                g.add_node(inst_node, node_type="instance", inst_id=inst_id)
                g.add_edge(net_node, inst_node)

        clusters = []
        for component in nx.connected_components(g):
            inst_ids = sorted(g.nodes[n]["inst_id"] for n in component if g.nodes[n]["node_type"] == "instance")
            if not inst_ids:
                continue
            group_ids = set()
            for n in component:
                if g.nodes[n]["node_type"] == "net":
                    group_ids |= owners[g.nodes[n]["net_id"]]
            clusters.append((inst_ids, group_ids))
        clusters.sort(key=lambda item: item[0][0])

        for inst_ids, group_ids in clusters:
            logger.debug("Bias group %s feeds groups %s", inst_ids, sorted(group_ids))
        return [inst_ids for inst_ids, _ in clusters], [group_ids for _, group_ids in clusters]

    def match_bias(self, bias_groups, bias_owners):
        """Map each structural group index to the bias devices feeding it."""
        matched = {}
        for inst_ids, group_ids in zip(bias_groups, bias_owners):
            for group_idx in sorted(group_ids):
                matched.setdefault(group_idx, set()).update(inst_ids)
        return matched
