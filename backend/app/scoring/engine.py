"""Rule evaluation over one match's facts.

Rules are evaluated independently of one another and the output is sorted,
so the same rules and facts always produce the same results whatever order
the rules arrive in.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from .conditions import describe_condition, evaluate_condition
from .targets import resolve_targets
from .types import (
    Condition,
    DataType,
    Flat,
    ManualRule,
    MatchFacts,
    MultipliedBy,
    Operator,
    PerformanceRule,
    PlayerFacts,
    PlayerRuleResult,
    ResultRule,
    Rule,
    RuleCategory,
    Scope,
    TargetScope,
)
from .variables import DEFAULT_REGISTRY, VariableRegistry

logger = logging.getLogger(__name__)


class RuleValidationError(ValueError):
    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


def _result_sort_key(result: PlayerRuleResult) -> tuple[int, int, int, str]:
    return (result.player_id, result.rule_id, result.points, result.reason)


def _reason(rule: Rule, match_facts: MatchFacts, player: PlayerFacts | None, registry: VariableRegistry) -> str:
    parts = [describe_condition(condition, match_facts, player, registry) for condition in rule.conditions]
    parts = [part for part in parts if part]
    if not parts:
        return rule.name
    return f"{rule.name}: {' AND '.join(parts)}"


def _multiplier_value(mode: MultipliedBy, match_facts: MatchFacts, player: PlayerFacts, registry: VariableRegistry) -> int:
    facts = match_facts if mode.scope is Scope.MATCH else player
    value = registry.lookup(mode.variable, mode.scope, facts)
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _evaluate_result_rule(
    rule: ResultRule,
    match_facts: MatchFacts,
    players: Sequence[PlayerFacts],
    registry: VariableRegistry,
) -> list[PlayerRuleResult]:
    # Result rules only look at match facts; a player-scope condition never passes here.
    conditions_met = all(
        condition.scope is Scope.MATCH and evaluate_condition(condition, match_facts, None, registry)
        for condition in rule.conditions
    )
    if not conditions_met:
        return []

    reason = _reason(rule, match_facts, None, registry)
    return [
        PlayerRuleResult(
            player_id=player.player_id,
            rule_id=rule.id,
            rule_name=rule.name,
            points=rule.points_awarded,
            reason=reason,
        )
        for player in resolve_targets(rule, players)
    ]


def _evaluate_performance_rule(
    rule: PerformanceRule,
    match_facts: MatchFacts,
    players: Sequence[PlayerFacts],
    registry: VariableRegistry,
) -> list[PlayerRuleResult]:
    results: list[PlayerRuleResult] = []

    for player in resolve_targets(rule, players):
        conditions_met = all(
            evaluate_condition(
                condition,
                match_facts,
                player if condition.scope is Scope.PLAYER else None,
                registry,
            )
            for condition in rule.conditions
        )
        if not conditions_met:
            continue

        points = rule.points_awarded
        if isinstance(rule.points, MultipliedBy):
            points = rule.points_awarded * _multiplier_value(rule.points, match_facts, player, registry)

        results.append(
            PlayerRuleResult(
                player_id=player.player_id,
                rule_id=rule.id,
                rule_name=rule.name,
                points=points,
                reason=_reason(rule, match_facts, player, registry),
            )
        )

    return results


def evaluate_rule(
    rule: Rule,
    match_facts: MatchFacts,
    players: Sequence[PlayerFacts],
    registry: VariableRegistry = DEFAULT_REGISTRY,
) -> list[PlayerRuleResult]:
    if isinstance(rule, ResultRule):
        return _evaluate_result_rule(rule, match_facts, players, registry)
    if isinstance(rule, PerformanceRule):
        return _evaluate_performance_rule(rule, match_facts, players, registry)
    if isinstance(rule, ManualRule):
        # Manual points only come from explicit per-player counts at completion.
        return []
    raise TypeError(f"Unsupported rule type: {type(rule).__name__}")


def evaluate_all(
    rules: Iterable[Rule],
    match_facts: MatchFacts,
    players: Sequence[PlayerFacts],
    registry: VariableRegistry = DEFAULT_REGISTRY,
) -> list[PlayerRuleResult]:
    results: list[PlayerRuleResult] = []
    for rule in rules:
        if not rule.is_active:
            continue
        results.extend(evaluate_rule(rule, match_facts, players, registry))

    results.sort(key=_result_sort_key)
    logger.debug("Evaluated rules for %d players: %d results", len(players), len(results))
    return results


def preview_rule(
    rule: Rule,
    match_facts: MatchFacts,
    players: Sequence[PlayerFacts],
    registry: VariableRegistry = DEFAULT_REGISTRY,
) -> list[PlayerRuleResult]:
    """Evaluate a single rule whether or not it is active."""
    return sorted(evaluate_rule(rule, match_facts, players, registry), key=_result_sort_key)


def infer_multiplier_variable(conditions: Sequence[Condition]) -> str | None:
    """Name the multiplier of a rule stored without an explicit one.

    Older rules marked as multipliers were written as ``<stat> > 0`` and
    multiplied by that stat, so the first player condition of that shape wins.
    """
    for condition in conditions:
        if (
            condition.scope is Scope.PLAYER
            and condition.operator is Operator.GREATER_THAN
            and condition.compare_variable is None
            and condition.value == 0
        ):
            return condition.variable
    return None


def points_mode(is_multiplier: bool, multiplier_variable: str | None, conditions: Sequence[Condition]) -> Flat | MultipliedBy:
    if not is_multiplier:
        return Flat()
    variable = multiplier_variable or infer_multiplier_variable(conditions)
    if not variable:
        return Flat()
    return MultipliedBy(variable=variable, scope=Scope.PLAYER)


def _field(source: Any, name: str, default: Any = None) -> Any:
    if isinstance(source, dict):
        return source.get(name, default)
    return getattr(source, name, default)


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _legacy_multiplier_source(conditions: Sequence[Any]) -> str | None:
    for condition in conditions:
        if (
            _enum_value(_field(condition, "operator")) == Operator.GREATER_THAN.value
            and _field(condition, "value") == 0
            and _enum_value(_field(condition, "scope")) == Scope.PLAYER.value
            and not _field(condition, "compare_variable")
        ):
            return _field(condition, "variable") or None
    return None


def validate_rule(draft: Any, registry: VariableRegistry = DEFAULT_REGISTRY) -> list[str]:
    """Collect every authoring problem in a rule draft.

    ``draft`` may be a mapping or any object exposing the rule fields
    (``name``, ``description``, ``category``, ``target_scope``,
    ``target_positions``, ``target_player_id``, ``is_multiplier``,
    ``multiplier_variable`` and ``conditions``). Returns an empty list when
    the draft can be saved. Multiplier variables are checked against
    ``registry``, which should be the owning team's.
    """
    errors: list[str] = []

    name = _field(draft, "name") or ""
    description = _field(draft, "description") or ""
    category = _field(draft, "category")
    target_scope = _field(draft, "target_scope") or TargetScope.ALL_PLAYERS.value
    target_positions = _field(draft, "target_positions") or []
    conditions = list(_field(draft, "conditions") or [])

    category_value = _enum_value(category)
    scope_value = _enum_value(target_scope)

    if not str(name).strip():
        errors.append("Rule name is required")

    if not str(description).strip():
        errors.append("Rule description is required")

    if category_value not in {item.value for item in RuleCategory}:
        errors.append("Rule category must be one of RESULT, PERFORMANCE, MANUAL")

    if category_value != RuleCategory.MANUAL.value and not conditions:
        errors.append("At least one condition is required")

    if scope_value == TargetScope.BY_POSITION.value and not target_positions:
        errors.append("Target positions must be specified when using BY_POSITION scope")

    if scope_value == TargetScope.INDIVIDUAL_PLAYER.value and _field(draft, "target_player_id") is None:
        errors.append("Target player must be specified when using INDIVIDUAL_PLAYER scope")

    if _field(draft, "is_multiplier") and category_value == RuleCategory.PERFORMANCE.value:
        source = _field(draft, "multiplier_variable") or _legacy_multiplier_source(conditions)
        if not source:
            errors.append("Multiplier rules must name the variable to multiply by")
        else:
            descriptor = registry.resolve(source, Scope.PLAYER)
            if descriptor is None or descriptor.data_type is not DataType.NUMBER:
                errors.append("Multiplier variable must be a player number variable")

    for index, condition in enumerate(conditions, start=1):
        if not _field(condition, "variable"):
            errors.append(f"Condition {index}: Variable is required")
        if not _field(condition, "operator"):
            errors.append(f"Condition {index}: Operator is required")
        if _field(condition, "value") is None and not _field(condition, "compare_variable"):
            errors.append(f"Condition {index}: Value is required")

        condition_scope = _enum_value(_field(condition, "scope"))
        if category_value == RuleCategory.RESULT.value and condition_scope == Scope.PLAYER.value:
            errors.append(f"Condition {index}: Result rules only accept MATCH conditions")

    return errors


def ensure_valid_rule(draft: Any, registry: VariableRegistry = DEFAULT_REGISTRY) -> None:
    errors = validate_rule(draft, registry)
    if errors:
        raise RuleValidationError(errors)
