"""Tests for CSV loader functions."""

import csv
import tempfile
from pathlib import Path

from titleflow.adapters.csv_loader.loader import load_assignments, load_fulfillers, load_hubs
from titleflow.domain.value_objects.enums import WorkCategory


def _write_csv(rows: list[dict], path: Path, encoding: str = "utf-8-sig", delimiter: str = ",") -> None:
    """Helper to write a test CSV file."""
    if not rows:
        return
    with open(path, "w", encoding=encoding, newline="") as f:
        writer = csv.DictWriter(f, fieldnames=rows[0].keys(), delimiter=delimiter)
        writer.writeheader()
        writer.writerows(rows)


def test_load_hubs_basic():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "hubs.csv"
        _write_csv([
            {"Hub Code": "MUM01", "Hub Name": "Mumbai Central", "State": "Maharashtra", "District": "Mumbai"},
            {"Hub Code": "BLR01", "Hub Name": "MG Road", "State": "Karnataka", "District": "Bangalore"},
        ], csv_path)

        hubs = load_hubs(csv_path)
        assert len(hubs) == 2
        assert hubs[0]["code"] == "MUM01"
        assert hubs[0]["name"] == "Mumbai Central"
        assert hubs[0]["id"] is None
        assert hubs[1]["district"] == "Bangalore"


def test_load_hubs_skips_rows_without_code():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "hubs.csv"
        _write_csv([
            {"code": "", "name": "Nameless", "state": "Kerala", "district": "Kochi"},
            {"code": "KOC01", "name": "", "state": "Kerala", "district": "Kochi"},
        ], csv_path)

        hubs = load_hubs(csv_path)
        assert len(hubs) == 1
        assert hubs[0]["name"] == "KOC01"


def test_load_fulfillers_semicolon_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "advocates.csv"
        _write_csv([
            {
                "Advocate Name": "Asha Kulkarni",
                "States": "Maharashtra",
                "Districts": "Pune | Satara",
                "Expertise": "HL, LAP",
                "Tags": "Fast TAT",
                "Hub Code": "MUM01",
            },
        ], csv_path, delimiter=";")

        fulfillers = load_fulfillers(csv_path)
        assert len(fulfillers) == 1
        f = fulfillers[0]
        assert f["name"] == "Asha Kulkarni"
        assert f["districts"] == ["Pune", "Satara"]
        assert f["specializations"] == {WorkCategory.HOME_LOAN, WorkCategory.LOAN_AGAINST_PROPERTY}
        assert f["tags"] == ["Fast TAT"]
        assert f["hub_code"] == "MUM01"


def test_load_assignments_skips_incomplete():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "assignments.csv"
        _write_csv([
            {"Hub Code": "MUM01", "Product Type": "Home Loan", "State": "Maharashtra",
             "District": "Pune", "LAN": "LAN-1", "Priority": "Urgent"},
            {"Hub Code": "MUM01", "Product Type": "Gold Loan", "State": "Maharashtra",
             "District": "Pune", "LAN": "LAN-2", "Priority": ""},
            {"Hub Code": "", "Product Type": "BL", "State": "Maharashtra",
             "District": "Pune", "LAN": "LAN-3", "Priority": ""},
        ], csv_path)

        rows = load_assignments(csv_path)
        assert len(rows) == 1
        assert rows[0]["category"] == WorkCategory.HOME_LOAN
        assert rows[0]["account_number"] == "LAN-1"
        assert rows[0]["priority"] == "Urgent"
        assert rows[0]["requester_state"] is None
