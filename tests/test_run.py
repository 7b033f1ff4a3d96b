"""
Tests for the command line entry point.
"""

import csv
import json

from symdetect import run

from conftest import SAMPLE_DIR


def _write_json(path, data):
    path.write_text(json.dumps(data))
    return path


def test_main_text(ota5t_path, capsys):
    assert run.main([str(ota5t_path)]) == 0
    out = capsys.readouterr().out
    assert "Symmetry group 0:" in out
    assert "- M3 <-> M4 [LOAD]" in out
    assert "Bias for group 0: MB" in out


def test_main_json(ota5t_path, capsys):
    assert run.main([str(ota5t_path), "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["groups"][0][0] == {"a": "M1", "b": "M2", "pattern": "DIFF_SOURCE"}
    assert data["groups"][0][-1]["pattern"] == "SELF"


def test_main_dump(ota5t_path, capsys):
    assert run.main([str(ota5t_path), "--dump"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("Net 0, VDD")
    assert "Instance 5, MB" in out


def test_main_output_file(ota5t_path, tmp_path, capsys):
    target = tmp_path / "report.txt"
    assert run.main([str(ota5t_path), "--output", str(target)]) == 0
    assert capsys.readouterr().out == ""
    assert target.read_text().startswith("Symmetry group 0:")


def test_main_no_groups(tmp_path, capsys):
    path = _write_json(tmp_path / "one.json", {
        "nets": ["A", "B", "C", "D"],
        "instances": [{"name": "M1", "type": "nmos", "nets": ["A", "B", "C", "D"]}],
    })
    assert run.main([str(path)]) == 0
    assert capsys.readouterr().out.strip() == "No symmetry groups found."


def test_main_malformed(tmp_path):
    path = _write_json(tmp_path / "bad.json", {
        "nets": ["D", "G", "S"],
        "instances": [{"name": "M1", "type": "nmos", "nets": ["D", "G", "S"]}],
    })
    assert run.main([str(path)]) == 1


def test_main_missing_file(tmp_path):
    assert run.main([str(tmp_path / "absent.json")]) == 1


def test_main_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    assert run.main([str(path)]) == 1


def test_batch_samples(tmp_path, capsys):
    summary = tmp_path / "summary.csv"
    assert run.main(["--batch", str(SAMPLE_DIR / "manifest.tsv"), "--summary", str(summary)]) == 0
    assert capsys.readouterr().out.strip() == "2/2 netlists analysed"

    with open(summary, newline="") as f:
        rows = list(csv.DictReader(f))
    assert [row["id"] for row in rows] == ["1", "2"]
    assert [row["status"] for row in rows] == ["ok", "ok"]
    assert rows[0]["groups"] == "1"
    assert rows[0]["pairs"] == "3"
    assert rows[1]["pairs"] == "5"
    assert rows[1]["bias_groups"] == "2"


def test_batch_statuses(tmp_path):
    _write_json(tmp_path / "bad.json", {
        "nets": ["A", "B"],
        "instances": [{"name": "C1", "type": "cap", "nets": ["A", "B"]}],
    })
    manifest = tmp_path / "manifest.tsv"
    manifest.write_text("netlist\nbad.json\nmissing.json\n")
    rows = run.run_batch(str(manifest))
    assert [row["id"] for row in rows] == [1, 2]
    assert [row["status"] for row in rows] == ["malformed", "error"]
    assert rows[0]["groups"] == ""


def test_batch_without_netlist_column(tmp_path):
    manifest = tmp_path / "manifest.tsv"
    manifest.write_text("Id\tpath\n1\tx.json\n")
    assert run.main(["--batch", str(manifest)]) == 1
