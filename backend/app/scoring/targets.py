from __future__ import annotations

from typing import Sequence

from .types import PlayerFacts, RuleBase, TargetScope


def resolve_targets(rule: RuleBase, players: Sequence[PlayerFacts]) -> list[PlayerFacts]:
    if rule.target_scope is TargetScope.ALL_PLAYERS:
        return list(players)

    if rule.target_scope is TargetScope.BY_POSITION:
        return [player for player in players if player.position in rule.target_positions]

    if rule.target_scope is TargetScope.INDIVIDUAL_PLAYER:
        if rule.target_player_id is None:
            return []
        return [player for player in players if player.player_id == rule.target_player_id]

    return []
