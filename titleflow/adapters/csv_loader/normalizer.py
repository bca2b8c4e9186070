"""CSV column normalization — handles BOM, trailing spaces, encoding quirks."""

from __future__ import annotations

import re

from titleflow.domain.value_objects.enums import WorkCategory


def normalize_column_name(name: str) -> str:
    """Normalize a CSV column name.

    - Removes BOM characters (\\ufeff)
    - Replaces runs of spaces / non-breaking spaces / hyphens with one underscore
    - Lowercases
    - Strips non-alphanumeric characters (except underscore)
    """
    name = name.replace("\ufeff", "").strip()
    name = re.sub(r"[\s\u00a0\-]+", "_", name)
    name = name.lower()
    name = re.sub(r"[^\w]", "", name, flags=re.UNICODE)
    return name


def clean_string(value: str | None) -> str | None:
    """Strip whitespace and return None for empty strings."""
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def parse_list(raw: str | None) -> list[str]:
    """Split 'Pune; Thane | Navi Mumbai' into ['Pune', 'Thane', 'Navi Mumbai'].

    Separators are comma, semicolon and pipe; spaces inside an item are kept,
    duplicates are dropped, first occurrence wins.
    """
    if not raw:
        return []
    seen: dict[str, None] = {}
    for part in re.split(r"[,;|]", raw):
        item = re.sub(r"\s+", " ", part).strip()
        if item:
            seen.setdefault(item, None)
    return list(seen)


_CATEGORY_ALIASES = {
    "hl": WorkCategory.HOME_LOAN,
    "lap": WorkCategory.LOAN_AGAINST_PROPERTY,
    "bl": WorkCategory.BUSINESS_LOAN,
}


def parse_category(raw: str | None) -> WorkCategory | None:
    """Map 'Home Loan', 'home loan' or 'HL' to a WorkCategory; None if unknown."""
    value = clean_string(raw)
    if value is None:
        return None
    lowered = value.lower()
    for category in WorkCategory:
        if category.value.lower() == lowered:
            return category
    return _CATEGORY_ALIASES.get(lowered)


def parse_categories(raw: str | None) -> set[WorkCategory]:
    return {c for c in (parse_category(p) for p in parse_list(raw)) if c is not None}
