from collections.abc import Iterable

from . import models, schemas
from .scoring.engine import points_mode
from .scoring.types import (
    Condition,
    DataType,
    ManualAssignment,
    ManualRule,
    MatchFacts,
    Operator,
    PerformanceRule,
    PlayerFacts,
    PointType,
    ProfileOverride,
    ProfileView,
    ResultRule,
    Rule,
    RuleCategory,
    Scope,
    StoredLedgerEntry,
    TargetScope,
    VariableDescriptor,
    parse_position,
)
from .scoring.variables import VariableRegistry


def _literal(value: float | None) -> float | int:
    if value is None:
        return 0
    return int(value) if float(value).is_integer() else value


def condition_from_model(condition: models.RuleCondition) -> Condition:
    return Condition(
        variable=condition.variable,
        operator=Operator(condition.operator),
        value=_literal(condition.value),
        scope=Scope(condition.scope),
        compare_variable=condition.compare_variable or None,
    )


def rule_from_model(rule: models.Rule) -> Rule:
    conditions = tuple(condition_from_model(condition) for condition in rule.conditions)
    common = dict(
        id=rule.id,
        name=rule.name,
        description=rule.description or "",
        points_awarded=rule.points_awarded,
        target_scope=TargetScope(rule.target_scope),
        target_positions=frozenset(parse_position(item) for item in (rule.target_positions or [])),
        target_player_id=rule.target_player_id,
        conditions=conditions,
        is_active=rule.is_active,
    )

    category = RuleCategory(rule.category)
    if category is RuleCategory.RESULT:
        return ResultRule(**common)
    if category is RuleCategory.PERFORMANCE:
        return PerformanceRule(
            points=points_mode(rule.is_multiplier, rule.multiplier_variable, conditions),
            **common,
        )
    return ManualRule(**common)


def variable_from_model(variable: models.Variable) -> VariableDescriptor:
    data_type = DataType(variable.data_type)
    default = bool(variable.default_value) if data_type is DataType.BOOLEAN else variable.default_value
    return VariableDescriptor(
        key=variable.key,
        label=variable.label,
        scope=Scope(variable.scope),
        data_type=data_type,
        default_value=default,
        is_built_in=False,
        is_active=variable.is_active,
        description=variable.description or "",
    )


def registry_from_models(variables: Iterable[models.Variable]) -> VariableRegistry:
    return VariableRegistry(variable_from_model(variable) for variable in variables)


def profile_view(profile: models.RulesProfile, point_type: PointType) -> ProfileView:
    overrides = {
        item.rule_id: ProfileOverride(
            rule_id=item.rule_id,
            custom_points=item.custom_points,
            is_enabled=item.is_enabled,
        )
        for item in profile.rules
    }
    return ProfileView(id=profile.id, point_type=point_type, overrides=overrides)


def match_facts_from_payload(payload: schemas.MatchFactsPayload) -> MatchFacts:
    return MatchFacts(
        goals_for=payload.goals_for,
        goals_against=payload.goals_against,
        values=dict(payload.custom_values),
    )


def player_facts_from_stat(stat: schemas.PlayerStatPayload, position: str | None) -> PlayerFacts:
    values: dict[str, object] = dict(stat.custom_values)
    values.update(
        goalsScored=stat.goals_scored,
        goalAssists=stat.goal_assists,
        greenCards=stat.green_cards,
        yellowCards=stat.yellow_cards,
        redCards=stat.red_cards,
        saves=stat.saves,
        tackles=stat.tackles,
        passes=stat.passes,
    )
    return PlayerFacts(
        player_id=stat.player_id,
        position=parse_position(position),
        played=stat.played,
        values=values,
    )


def manual_assignment_from_payload(payload: schemas.ManualAssignmentPayload) -> ManualAssignment:
    return ManualAssignment(rule_id=payload.rule_id, player_id=payload.player_id, count=payload.count)


def stored_entry_from_model(entry: models.PointLedgerEntry) -> StoredLedgerEntry:
    return StoredLedgerEntry(
        player_id=entry.player_id,
        rule_id=entry.rule_id,
        point_type=PointType(entry.point_type),
        points=entry.points,
        is_manual=entry.is_manual,
        count=entry.count,
        notes=entry.notes,
    )


def variable_to_read(variable: VariableDescriptor, record: models.Variable | None = None) -> schemas.VariableRead:
    return schemas.VariableRead(
        id=record.id if record else None,
        team_id=record.team_id if record else None,
        key=variable.key,
        label=variable.label,
        description=variable.description,
        scope=variable.scope.value,
        data_type=variable.data_type.value,
        default_value=variable.default_value,
        is_built_in=variable.is_built_in,
        is_active=variable.is_active,
    )


def completed_match_to_read(match: models.Match) -> schemas.CompletedMatchRead:
    ledger = sorted(match.ledger, key=lambda entry: (entry.point_type, entry.player_id, entry.rule_id, entry.id))
    stats = sorted(match.stats, key=lambda stat: stat.player_id)

    return schemas.CompletedMatchRead(
        id=match.id,
        team_id=match.team_id,
        opponent=match.opponent,
        status=match.status,
        goals_for=match.goals_for,
        goals_against=match.goals_against,
        custom_values=match.custom_values or {},
        stats=[schemas.PlayerStatRead.model_validate(stat) for stat in stats],
        ledger=[schemas.LedgerEntryRead.model_validate(entry) for entry in ledger],
        team_points=sum(entry.points for entry in ledger if entry.point_type == PointType.TEAM.value),
        club_points=sum(entry.points for entry in ledger if entry.point_type == PointType.CLUB.value),
    )
