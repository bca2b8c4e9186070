"""CSV loader — reads and normalizes hub, fulfiller and assignment files."""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from titleflow.adapters.csv_loader.normalizer import (
    clean_string,
    normalize_column_name,
    parse_categories,
    parse_category,
    parse_list,
)

logger = logging.getLogger(__name__)


def _sniff_dialect(sample: str) -> type[csv.Dialect]:
    """Pick the delimiter (comma/semicolon/tab) that dominates the header row."""
    if not sample:
        return csv.excel

    first_line = sample.splitlines()[0]
    delims = [",", ";", "\t"]
    counts = {d: first_line.count(d) for d in delims}
    best_delim = max(counts, key=counts.get)

    if counts[best_delim] > 0:
        class DynamicDialect(csv.excel):
            delimiter = best_delim
        return DynamicDialect
    return csv.excel


def _read_csv(file_path: Path, encoding: str = "utf-8-sig") -> list[dict[str, str | None]]:
    """Read a CSV file with BOM handling and column normalization."""
    with open(file_path, encoding=encoding, newline="") as f:
        sample = f.read(4096)
        f.seek(0)
        reader = csv.DictReader(f, dialect=_sniff_dialect(sample))
        if reader.fieldnames is None:
            raise ValueError(f"CSV file {file_path} has no header row")

        col_map = {col: normalize_column_name(col) for col in reader.fieldnames}
        rows = [
            {col_map[k]: clean_string(v) for k, v in raw_row.items() if k is not None}
            for raw_row in reader
        ]

    logger.info(
        "Loaded %d rows from %s (columns: %s)", len(rows), file_path.name, list(col_map.values())
    )
    return rows


def _first(row: dict[str, str | None], *keys: str) -> str | None:
    for key in keys:
        value = row.get(key)
        if value:
            return value
    return None


def load_hubs(file_path: Path) -> list[dict]:
    """Expected columns: code, name, state, district, [id], [email]."""
    hubs = []
    for row in _read_csv(file_path):
        code = _first(row, "code", "hub_code")
        if not code:
            logger.warning("Skipping hub row without code: %s", row)
            continue
        hubs.append({
            "id": _first(row, "id", "hub_id"),
            "code": code,
            "name": _first(row, "name", "hub_name") or code,
            "state": _first(row, "state") or "",
            "district": _first(row, "district", "city") or "",
            "email": _first(row, "email"),
        })
    logger.info("Parsed %d hubs", len(hubs))
    return hubs


def load_fulfillers(file_path: Path) -> list[dict]:
    """Expected columns: name, states, districts, specializations/expertise,
    [id], [tags], [hub_code], [firm_name], [email]."""
    fulfillers = []
    for row in _read_csv(file_path):
        name = _first(row, "name", "advocate_name", "fulfiller_name")
        if not name:
            logger.warning("Skipping fulfiller row without name: %s", row)
            continue
        fulfillers.append({
            "id": _first(row, "id", "fulfiller_id", "advocate_id"),
            "name": name,
            "firm_name": _first(row, "firm_name", "firm"),
            "email": _first(row, "email"),
            "states": parse_list(_first(row, "states", "state")),
            "districts": parse_list(_first(row, "districts", "district")),
            "specializations": parse_categories(
                _first(row, "specializations", "expertise", "product_types")
            ),
            "tags": parse_list(_first(row, "tags")),
            "hub_code": _first(row, "hub_code", "hub", "home_hub"),
        })
    logger.info("Parsed %d fulfillers", len(fulfillers))
    return fulfillers


def load_assignments(file_path: Path) -> list[dict]:
    """Expected columns: hub_code, category/product_type, state, district,
    [requester_state], [requester_district], [priority], [scope],
    [borrower_name], [account_number/lan], [address], [pincode]."""
    assignments = []
    for row in _read_csv(file_path):
        category = parse_category(_first(row, "category", "product_type", "product"))
        state = _first(row, "state", "property_state")
        district = _first(row, "district", "property_district")
        hub_code = _first(row, "hub_code", "hub")
        if category is None or not state or not district or not hub_code:
            logger.warning("Skipping incomplete assignment row: %s", row)
            continue
        assignments.append({
            "hub_code": hub_code,
            "category": category,
            "state": state,
            "district": district,
            "address": _first(row, "address", "property_address"),
            "pincode": _first(row, "pincode", "pin"),
            "requester_state": _first(row, "requester_state", "branch_state"),
            "requester_district": _first(row, "requester_district", "branch_district"),
            "priority": _first(row, "priority"),
            "scope": _first(row, "scope"),
            "borrower_name": _first(row, "borrower_name", "borrower"),
            "account_number": _first(row, "account_number", "lan"),
        })
    logger.info("Parsed %d assignments", len(assignments))
    return assignments
