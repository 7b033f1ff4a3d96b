import argparse
import csv
import json
import logging
import os
import sys

import pandas as pd

from . import loader, report
from .netlist import MalformedInput, format_netlist
from .sym_detect import SymDetect

logger = logging.getLogger("symdetect")

SUMMARY_HEADER = ["id", "netlist", "status", "groups", "pairs", "net_pairs", "bias_groups"]


def _configure_logging(verbosity):
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def analyze(path):
    netlist = loader.load_netlist(path)
    return netlist, SymDetect(netlist)


def _render(netlist, detector, as_json=False, dump=False):
    sections = []
    if dump:
        sections.append(format_netlist(netlist))
    if as_json:
        sections.append(json.dumps(report.symmetry_to_dict(detector), indent=2))
    else:
        text = report.format_symmetry(detector)
        sections.append(text or "No symmetry groups found.")
    return "\n".join(sections)


def _summary_row(task_id, netlist_path, status, detector=None):
    row = {
        "id": task_id,
        "netlist": netlist_path,
        "status": status,
        "groups": "",
        "pairs": "",
        "net_pairs": "",
        "bias_groups": "",
    }
    if detector is not None:
        row.update({
            "groups": len(detector.sym_groups),
            "pairs": len(detector.flat_pairs),
            "net_pairs": len(detector.sym_nets),
            "bias_groups": len(detector.bias_groups),
        })
    return row


def run_batch(manifest_path, summary_path=None):
    """Analyse every netlist listed in a tab-separated manifest.

    The manifest needs a ``netlist`` column (paths relative to the manifest)
    and may carry an ``Id`` column. Returns the summary rows.
    """
    df = pd.read_csv(manifest_path, delimiter="\t")
    if "netlist" not in df.columns:
        raise ValueError(f"{manifest_path}: manifest has no 'netlist' column")
    base_dir = os.path.dirname(os.path.abspath(manifest_path))

    rows = []
    for idx, entry in df.iterrows():
        task_id = entry["Id"] if "Id" in df.columns else idx + 1
        netlist_path = str(entry["netlist"])
        full_path = os.path.join(base_dir, netlist_path)
        try:
            _, detector = analyze(full_path)
        except MalformedInput as e:
            logger.error("%s: malformed netlist: %s", netlist_path, e)
            rows.append(_summary_row(task_id, netlist_path, "malformed"))
            continue
        except (OSError, json.JSONDecodeError) as e:
            logger.error("%s: cannot read netlist: %s", netlist_path, e)
            rows.append(_summary_row(task_id, netlist_path, "error"))
            continue
        rows.append(_summary_row(task_id, netlist_path, "ok", detector))

    if summary_path:
        with open(summary_path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=SUMMARY_HEADER)
            writer.writeheader()
            writer.writerows(rows)
    return rows


def main(argv=None):
    parser = argparse.ArgumentParser(description="Detect symmetric device pairs in an analog netlist.")
    parser.add_argument("netlist", nargs="?", help="Netlist snapshot (JSON).")
    parser.add_argument("--batch", type=str, default=None, help="Tab-separated manifest with a 'netlist' column.")
    parser.add_argument("--summary", type=str, default=None, help="Batch summary CSV path.")
    parser.add_argument("--json", action="store_true", default=False, help="Print results as JSON.")
    parser.add_argument("--dump", action="store_true", default=False, help="Also print the netlist listing.")
    parser.add_argument("--output", type=str, default=None, help="Write the report here instead of stdout.")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if args.batch:
        try:
            rows = run_batch(args.batch, summary_path=args.summary)
        except (OSError, ValueError) as e:
            logger.error("Cannot run batch %s: %s", args.batch, e)
            return 1
        ok = sum(1 for row in rows if row["status"] == "ok")
        print(f"{ok}/{len(rows)} netlists analysed")
        return 0

    if not args.netlist:
        parser.error("a netlist path or --batch is required")

    try:
        netlist, detector = analyze(args.netlist)
    except MalformedInput as e:
        logger.error("%s: malformed netlist: %s", args.netlist, e)
        return 1
    except (OSError, json.JSONDecodeError) as e:
        logger.error("%s: cannot read netlist: %s", args.netlist, e)
        return 1

    text = _render(netlist, detector, as_json=args.json, dump=args.dump)
    if args.output:
        with open(args.output, "w") as f:
            f.write(text + "\n")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
