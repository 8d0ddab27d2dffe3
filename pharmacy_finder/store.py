"""
Pharmacy Finder — JSON fallback table store.

When PostgreSQL is unreachable the service reads (and appends to) in-memory
copies of its tables, loaded from `<PF_DATA_DIR>/<table>.json` at startup.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.environ.get("PF_DATA_DIR", str(ROOT / "data")))

# Read-side tables, loaded from disk
DIRECTORY_TABLES = (
    "pharmacies",
    "medme_pharmacy_links",
    "us_pharmacy_data",
    "ca_pharmacy_data",
)
# Write-side tables, start empty in fallback mode
WRITE_TABLES = (
    "appointments",
    "user_analytics_events",
    "pharmacy_impressions",
)

# ---------------------------------------------------------------------------
# Fallback state (populated by load_tables)
# ---------------------------------------------------------------------------

_TABLES: dict[str, list[dict[str, Any]]] = {name: [] for name in DIRECTORY_TABLES + WRITE_TABLES}


def load_tables(data_dir: Path | None = None) -> None:
    """
    Load directory table snapshots from JSON files.

    A missing file leaves that table empty; the directory rows are
    de-duplicated by `id` as a safety net.
    """
    global _TABLES  # noqa: PLW0603

    base = data_dir or DATA_DIR
    tables: dict[str, list[dict[str, Any]]] = {name: [] for name in DIRECTORY_TABLES + WRITE_TABLES}

    for name in DIRECTORY_TABLES:
        fpath = base / f"{name}.json"
        if not fpath.exists():
            logger.warning("No snapshot for table %s at %s", name, fpath)
            continue
        with open(fpath, "r", encoding="utf-8") as f:
            rows = json.load(f)
        if not isinstance(rows, list):
            logger.warning("Snapshot %s is not a JSON list, ignoring", fpath)
            continue

        seen: set[str] = set()
        unique: list[dict] = []
        for r in rows:
            key = str(r.get("id") or r.get("pharmacy_id") or "")
            if key and key in seen:
                continue
            seen.add(key)
            unique.append(r)
        tables[name] = unique
        logger.info("Loaded %d rows for table %s from %s", len(unique), name, fpath)

    _TABLES = tables


def get_table(name: str) -> list[dict[str, Any]]:
    """Access a fallback table by name."""
    if name not in _TABLES:
        raise KeyError(f"Unknown table: {name}")
    return _TABLES[name]


def set_table(name: str, rows: list[dict[str, Any]]) -> None:
    """Replace a fallback table's rows (used by tests and loaders)."""
    if name not in _TABLES:
        raise KeyError(f"Unknown table: {name}")
    _TABLES[name] = rows


def reset() -> None:
    """Empty every fallback table."""
    for name in _TABLES:
        _TABLES[name] = []


def record_count() -> int:
    """Total directory rows across all read-side tables."""
    return sum(len(_TABLES[name]) for name in DIRECTORY_TABLES if name != "medme_pharmacy_links")
