from __future__ import annotations

from typing import Any

from .types import Condition, MatchFacts, Operator, PlayerFacts, Position, Scope, decode_position
from .variables import DEFAULT_REGISTRY, VariableRegistry

_EQUALITY_ONLY = {Operator.EQUAL, Operator.NOT_EQUAL}


def _facts_for_scope(
    scope: Scope,
    match_facts: MatchFacts,
    player_facts: PlayerFacts | None,
) -> MatchFacts | PlayerFacts | None:
    if scope is Scope.MATCH:
        return match_facts
    return player_facts


def compare_values(actual: Any, operator: Operator, expected: Any) -> bool:
    if isinstance(actual, (bool, str)) or isinstance(expected, (bool, str)):
        if operator not in _EQUALITY_ONLY:
            return False
        if operator is Operator.EQUAL:
            return actual == expected
        return actual != expected

    try:
        left = float(actual)
        right = float(expected)
    except (TypeError, ValueError):
        return False

    if operator is Operator.GREATER_THAN:
        return left > right
    if operator is Operator.EQUAL:
        return left == right
    if operator is Operator.LESS_THAN:
        return left < right
    if operator is Operator.GREATER_EQUAL:
        return left >= right
    if operator is Operator.LESS_EQUAL:
        return left <= right
    if operator is Operator.NOT_EQUAL:
        return left != right
    return False


def resolve_operands(
    condition: Condition,
    match_facts: MatchFacts,
    player_facts: PlayerFacts | None = None,
    registry: VariableRegistry = DEFAULT_REGISTRY,
) -> tuple[Any, Any] | None:
    """Return ``(actual, expected)`` for a condition.

    ``None`` means the condition cannot hold: there is no player for a
    player-scope condition, or one of its variables does not resolve.
    """
    facts = _facts_for_scope(condition.scope, match_facts, player_facts)
    if facts is None:
        return None

    if registry.resolve(condition.variable, condition.scope) is None:
        return None
    if condition.compare_variable and registry.resolve(condition.compare_variable, condition.scope) is None:
        return None

    actual = registry.lookup(condition.variable, condition.scope, facts)

    if condition.compare_variable:
        expected = registry.lookup(condition.compare_variable, condition.scope, facts)
    elif condition.variable == "position":
        expected = decode_position(condition.value)
    else:
        expected = condition.value

    return actual, expected


def evaluate_condition(
    condition: Condition,
    match_facts: MatchFacts,
    player_facts: PlayerFacts | None = None,
    registry: VariableRegistry = DEFAULT_REGISTRY,
) -> bool:
    operands = resolve_operands(condition, match_facts, player_facts, registry)
    if operands is None:
        return False
    actual, expected = operands
    return compare_values(actual, condition.operator, expected)


def describe_condition(
    condition: Condition,
    match_facts: MatchFacts,
    player_facts: PlayerFacts | None = None,
    registry: VariableRegistry = DEFAULT_REGISTRY,
) -> str:
    symbol = condition.operator.value
    operands = resolve_operands(condition, match_facts, player_facts, registry)
    if operands is None:
        return ""

    actual, expected = operands
    actual_text = actual.value if isinstance(actual, Position) else actual
    if condition.compare_variable:
        expected_text = expected.value if isinstance(expected, Position) else expected
        return (
            f"{condition.variable} {symbol} {condition.compare_variable} "
            f"({actual_text} {symbol} {expected_text})"
        )

    shown = expected.value if isinstance(expected, Position) else condition.value
    return f"{condition.variable} {symbol} {shown} (actual: {actual_text})"
