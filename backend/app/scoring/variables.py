from __future__ import annotations

from typing import Any, Iterable

from .types import DataType, MatchFacts, PlayerFacts, Scope, VariableDescriptor

UNRESOLVED_VALUE = 0


def _built_in(key: str, label: str, scope: Scope, description: str, data_type: DataType = DataType.NUMBER) -> VariableDescriptor:
    default: Any = 0
    if data_type is DataType.BOOLEAN:
        default = True
    elif data_type is DataType.STRING:
        default = None
    return VariableDescriptor(
        key=key,
        label=label,
        scope=scope,
        data_type=data_type,
        default_value=default,
        is_built_in=True,
        is_active=True,
        description=description,
    )


BUILT_IN_VARIABLES: tuple[VariableDescriptor, ...] = (
    _built_in("goalsFor", "Goals For", Scope.MATCH, "Number of goals scored by the team"),
    _built_in("goalsAgainst", "Goals Against", Scope.MATCH, "Number of goals conceded by the team"),
    _built_in("goalsScored", "Goals Scored", Scope.PLAYER, "Number of goals scored by the player"),
    _built_in("goalAssists", "Goal Assists", Scope.PLAYER, "Number of assists by the player"),
    _built_in("greenCards", "Green Cards", Scope.PLAYER, "Number of green cards received"),
    _built_in("yellowCards", "Yellow Cards", Scope.PLAYER, "Number of yellow cards received"),
    _built_in("redCards", "Red Cards", Scope.PLAYER, "Number of red cards received"),
    _built_in("saves", "Saves", Scope.PLAYER, "Number of saves made (goalkeepers)"),
    _built_in("tackles", "Tackles", Scope.PLAYER, "Number of successful tackles"),
    _built_in("passes", "Passes Completed", Scope.PLAYER, "Number of successful passes"),
    _built_in("position", "Player Position", Scope.PLAYER, "Player's position category", DataType.STRING),
    _built_in("played", "Played", Scope.PLAYER, "Whether the player participated in the match", DataType.BOOLEAN),
)

BUILT_IN_KEYS: frozenset[str] = frozenset(variable.key for variable in BUILT_IN_VARIABLES)

_BUILT_INS_BY_SCOPE: dict[tuple[str, Scope], VariableDescriptor] = {
    (variable.key, variable.scope): variable for variable in BUILT_IN_VARIABLES
}


def is_built_in_key(key: str) -> bool:
    return key in BUILT_IN_KEYS


class VariableRegistry:
    """Built-in variables merged with one team's custom variables.

    Lookups never raise: a key that does not resolve for the requested scope
    reads as ``UNRESOLVED_VALUE`` so one orphaned condition cannot stop the
    rest of a rule set from being evaluated.
    """

    def __init__(self, custom: Iterable[VariableDescriptor] = ()) -> None:
        self._custom: dict[tuple[str, Scope], VariableDescriptor] = {}
        for variable in custom:
            if variable.key in BUILT_IN_KEYS or not variable.is_active:
                continue
            self._custom[(variable.key, variable.scope)] = variable

    def resolve(self, key: str, scope: Scope) -> VariableDescriptor | None:
        built_in = _BUILT_INS_BY_SCOPE.get((key, scope))
        if built_in is not None:
            return built_in
        return self._custom.get((key, scope))

    def lookup(self, key: str, scope: Scope, facts: MatchFacts | PlayerFacts) -> Any:
        descriptor = self.resolve(key, scope)
        if descriptor is None:
            return UNRESOLVED_VALUE

        value = facts.get(key)
        if value is None:
            return descriptor.default_value if descriptor.default_value is not None else UNRESOLVED_VALUE
        return value

    def describe(self, scope: Scope | None = None) -> list[VariableDescriptor]:
        variables = list(BUILT_IN_VARIABLES) + list(self._custom.values())
        if scope is not None:
            variables = [variable for variable in variables if variable.scope is scope]
        return variables


DEFAULT_REGISTRY = VariableRegistry()
