def _pair_label(detector, pair):
    netlist = detector.netlist
    name1 = netlist.inst(pair.mos_id1).name
    if pair.is_self:
        return f"{name1} (self)"
    name2 = netlist.inst(pair.mos_id2).name
    return f"{name1} <-> {name2} [{detector.pattern(pair).value}]"


def format_symmetry(detector):
    if not detector.sym_groups:
        return ""
    netlist = detector.netlist
    lines = []
    for group_idx, group in enumerate(detector.sym_groups):
        lines.append(f"Symmetry group {group_idx}:")
        for pair in group:
            lines.append(f"- {_pair_label(detector, pair)}")

    if detector.sym_nets:
        lines.append("Symmetric nets:")
        for net_pair in detector.sym_nets:
            name1 = netlist.net(net_pair.net_id1).name
            if net_pair.is_self:
                lines.append(f"- {name1} (self)")
            else:
                lines.append(f"- {name1} <-> {netlist.net(net_pair.net_id2).name}")

    for group_idx in sorted(detector.bias_match):
        names = [netlist.inst(inst_id).name for inst_id in sorted(detector.bias_match[group_idx])]
        lines.append(f"Bias for group {group_idx}: {', '.join(names)}")
    return "\n".join(lines)


def symmetry_to_dict(detector):
    netlist = detector.netlist
    groups = []
    for group in detector.sym_groups:
        entries = []
        for pair in group:
            entries.append({
                "a": netlist.inst(pair.mos_id1).name,
                "b": netlist.inst(pair.mos_id2).name,
                "pattern": "SELF" if pair.is_self else detector.pattern(pair).value,
            })
        groups.append(entries)

    net_pairs = [
        {"a": netlist.net(np.net_id1).name, "b": netlist.net(np.net_id2).name}
        for np in detector.sym_nets
    ]

    bias_groups = []
    for group_idx in sorted(detector.bias_match):
        bias_groups.append({
            "group": group_idx,
            "instances": [netlist.inst(inst_id).name for inst_id in sorted(detector.bias_match[group_idx])],
        })

    return {"groups": groups, "net_pairs": net_pairs, "bias_groups": bias_groups}
