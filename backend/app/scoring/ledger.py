"""Build the point ledger for one completed match.

The ledger is always produced as a complete batch in memory; persistence
swaps it in for whatever the match had before.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Mapping, Sequence

from .engine import evaluate_all
from .types import (
    LedgerRow,
    ManualAssignment,
    MatchFacts,
    PerformanceRule,
    PlayerFacts,
    ProfileView,
    ResultRule,
    Rule,
)
from .variables import DEFAULT_REGISTRY, VariableRegistry

logger = logging.getLogger(__name__)


def manual_notes(count: int) -> str:
    return f"Manual assignment: {count} instances"


def assignment_key(assignment: ManualAssignment) -> str:
    return f"{assignment.player_id}:{assignment.rule_id}"


def rules_for_profile(rules: Iterable[Rule], profile: ProfileView) -> list[Rule]:
    """Active rules enabled in the profile, carrying the profile's point values."""
    selected: list[Rule] = []
    for rule in rules:
        if not rule.is_active or not profile.enables(rule.id):
            continue
        selected.append(replace(rule, points_awarded=profile.points_for(rule)))
    return selected


def build_manual_rows(
    rules_by_id: Mapping[int, Rule],
    profiles: Sequence[ProfileView],
    assignments: Iterable[ManualAssignment],
) -> list[LedgerRow]:
    rows: list[LedgerRow] = []
    for assignment in assignments:
        if assignment.count <= 0:
            continue

        rule = rules_by_id.get(assignment.rule_id)
        if rule is None:
            continue

        for profile in profiles:
            if not profile.enables(rule.id):
                continue
            rows.append(
                LedgerRow(
                    player_id=assignment.player_id,
                    rule_id=rule.id,
                    points=assignment.count * profile.points_for(rule),
                    point_type=profile.point_type,
                    profile_id=profile.id,
                    is_manual=True,
                    count=assignment.count,
                    assignment_key=assignment_key(assignment),
                    notes=manual_notes(assignment.count),
                )
            )
    return rows


def build_automatic_rows(
    rules: Sequence[Rule],
    profiles: Sequence[ProfileView],
    match_facts: MatchFacts,
    players: Sequence[PlayerFacts],
    skip: set[tuple[int, int]] | None = None,
    registry: VariableRegistry = DEFAULT_REGISTRY,
) -> list[LedgerRow]:
    skip = skip or set()
    automatic = [rule for rule in rules if isinstance(rule, (ResultRule, PerformanceRule))]

    rows: list[LedgerRow] = []
    for profile in profiles:
        results = evaluate_all(rules_for_profile(automatic, profile), match_facts, players, registry)
        for result in results:
            if (result.player_id, result.rule_id) in skip:
                continue
            rows.append(
                LedgerRow(
                    player_id=result.player_id,
                    rule_id=result.rule_id,
                    points=result.points,
                    point_type=profile.point_type,
                    profile_id=profile.id,
                    is_manual=False,
                    count=1,
                    notes=result.reason,
                )
            )
    return rows


def build_ledger(
    rules: Sequence[Rule],
    profiles: Sequence[ProfileView],
    assignments: Sequence[ManualAssignment],
    match_facts: MatchFacts,
    players: Sequence[PlayerFacts],
    include_automatic: bool = True,
    registry: VariableRegistry = DEFAULT_REGISTRY,
) -> list[LedgerRow]:
    rules_by_id = {rule.id: rule for rule in rules}
    rows = build_manual_rows(rules_by_id, profiles, assignments)

    if include_automatic:
        manual_pairs = {(assignment.player_id, assignment.rule_id) for assignment in assignments if assignment.count > 0}
        rows.extend(build_automatic_rows(rules, profiles, match_facts, players, manual_pairs, registry))

    rows.sort(key=lambda row: (row.point_type.value, row.player_id, row.rule_id, not row.is_manual))
    logger.info(
        "Assembled %d ledger rows across %d profiles (%d manual assignments)",
        len(rows),
        len(profiles),
        len(assignments),
    )
    return rows
