"""Shared helpers for the Pharmacy Finder API."""

from __future__ import annotations

from datetime import datetime


def iso(dt) -> str | None:
    """Convert a datetime to ISO string."""
    if dt is None:
        return None
    if isinstance(dt, datetime):
        return dt.isoformat()
    return str(dt)
