"""Deterministic snapshot merge policy."""

from __future__ import annotations

from datetime import datetime


def should_accept_update(
    *,
    cached_ts: datetime | None,
    incoming_ts: datetime,
    skew_allowance_seconds: float,
) -> bool:
    """Decide whether an incoming update should replace the cached one.

    Accept when nothing is cached yet, or when the incoming timestamp is not
    older than the cached one by more than the skew allowance.
    """
    if cached_ts is None:
        return True
    return (incoming_ts - cached_ts).total_seconds() >= -skew_allowance_seconds
