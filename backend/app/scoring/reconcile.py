from __future__ import annotations

import re
from typing import Iterable

from .types import EditableAssignment, PointType, StoredLedgerEntry

_INSTANCES_PATTERN = re.compile(r"(\d+)\s+instances")


def parse_instance_count(notes: str | None) -> int:
    if not notes:
        return 1
    match = _INSTANCES_PATTERN.search(notes)
    if not match:
        return 1
    return int(match.group(1))


def entry_count(entry: StoredLedgerEntry) -> int:
    if entry.count is not None:
        return entry.count
    return parse_instance_count(entry.notes)


def _entry_order(entry: StoredLedgerEntry) -> tuple[int, int, int]:
    # TEAM rows come first so they win ties on count.
    return (entry.player_id, entry.rule_id, 0 if entry.point_type is PointType.TEAM else 1)


def reconcile_entries(entries: Iterable[StoredLedgerEntry]) -> list[EditableAssignment]:
    """Collapse TEAM and CLUB rows of manual assignments into one count each.

    When the two profiles disagree on the count the larger one wins, and the
    editor shows that row's points (its per-instance value times the count).
    """
    winners: dict[tuple[int, int], tuple[int, StoredLedgerEntry]] = {}

    for entry in sorted((entry for entry in entries if entry.is_manual), key=_entry_order):
        group = (entry.player_id, entry.rule_id)
        count = entry_count(entry)
        current = winners.get(group)
        if current is None or count > current[0]:
            winners[group] = (count, entry)

    return [
        EditableAssignment(rule_id=rule_id, player_id=player_id, count=count, points=entry.points)
        for (player_id, rule_id), (count, entry) in sorted(winners.items())
    ]
