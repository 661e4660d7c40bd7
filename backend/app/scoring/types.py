from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class Scope(str, Enum):
    MATCH = "MATCH"
    PLAYER = "PLAYER"


class DataType(str, Enum):
    NUMBER = "number"
    BOOLEAN = "boolean"
    STRING = "string"


class Operator(str, Enum):
    GREATER_THAN = ">"
    EQUAL = "=="
    LESS_THAN = "<"
    GREATER_EQUAL = ">="
    LESS_EQUAL = "<="
    NOT_EQUAL = "!="


class RuleCategory(str, Enum):
    RESULT = "RESULT"
    PERFORMANCE = "PERFORMANCE"
    MANUAL = "MANUAL"


class TargetScope(str, Enum):
    ALL_PLAYERS = "ALL_PLAYERS"
    BY_POSITION = "BY_POSITION"
    INDIVIDUAL_PLAYER = "INDIVIDUAL_PLAYER"


class PointType(str, Enum):
    TEAM = "TEAM"
    CLUB = "CLUB"


class Position(str, Enum):
    GOALKEEPER = "GOALKEEPER"
    DEFENDER = "DEFENDER"
    MIDFIELDER = "MIDFIELDER"
    FORWARD = "FORWARD"


POSITION_CODES: dict[Position, int] = {
    Position.GOALKEEPER: 1,
    Position.DEFENDER: 2,
    Position.MIDFIELDER: 3,
    Position.FORWARD: 4,
}

CODE_TO_POSITION: dict[int, Position] = {code: position for position, code in POSITION_CODES.items()}

FALLBACK_POSITION = Position.MIDFIELDER


def decode_position(code: object) -> Position:
    if isinstance(code, bool):
        return FALLBACK_POSITION
    try:
        number = float(code)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return FALLBACK_POSITION
    if not number.is_integer():
        return FALLBACK_POSITION
    return CODE_TO_POSITION.get(int(number), FALLBACK_POSITION)


def encode_position(position: Position | str) -> int:
    return POSITION_CODES[Position(position)]


def parse_position(value: object) -> Position:
    """Accept a position name or a 1..4 code; anything else is a midfielder."""
    if isinstance(value, Position):
        return value
    if isinstance(value, str):
        try:
            return Position(value.strip().upper())
        except ValueError:
            return FALLBACK_POSITION
    return decode_position(value)


@dataclass(frozen=True, slots=True)
class VariableDescriptor:
    key: str
    label: str
    scope: Scope
    data_type: DataType = DataType.NUMBER
    default_value: Any = 0
    is_built_in: bool = False
    is_active: bool = True
    description: str = ""


@dataclass(frozen=True, slots=True)
class Condition:
    variable: str
    operator: Operator
    value: float | int = 0
    scope: Scope = Scope.PLAYER
    compare_variable: str | None = None


@dataclass(frozen=True, slots=True)
class Flat:
    pass


@dataclass(frozen=True, slots=True)
class MultipliedBy:
    variable: str
    scope: Scope = Scope.PLAYER


PointsMode = Flat | MultipliedBy


@dataclass(frozen=True, slots=True)
class RuleBase:
    id: int
    name: str
    points_awarded: int
    description: str = ""
    target_scope: TargetScope = TargetScope.ALL_PLAYERS
    target_positions: frozenset[Position] = frozenset()
    target_player_id: int | None = None
    conditions: tuple[Condition, ...] = ()
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class ResultRule(RuleBase):
    category = RuleCategory.RESULT


@dataclass(frozen=True, slots=True)
class PerformanceRule(RuleBase):
    points: PointsMode = field(default_factory=Flat)

    category = RuleCategory.PERFORMANCE


@dataclass(frozen=True, slots=True)
class ManualRule(RuleBase):
    category = RuleCategory.MANUAL


Rule = ResultRule | PerformanceRule | ManualRule


@dataclass(frozen=True, slots=True)
class MatchFacts:
    goals_for: int = 0
    goals_against: int = 0
    values: Mapping[str, Any] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        if key == "goalsFor":
            return self.goals_for
        if key == "goalsAgainst":
            return self.goals_against
        return self.values.get(key)


@dataclass(frozen=True, slots=True)
class PlayerFacts:
    player_id: int
    position: Position = FALLBACK_POSITION
    played: bool = True
    values: Mapping[str, Any] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        if key == "position":
            return self.position
        if key == "played":
            return self.played
        return self.values.get(key)


@dataclass(frozen=True, slots=True)
class PlayerRuleResult:
    player_id: int
    rule_id: int
    rule_name: str
    points: int
    reason: str = ""


@dataclass(frozen=True, slots=True)
class ManualAssignment:
    rule_id: int
    player_id: int
    count: int


@dataclass(frozen=True, slots=True)
class ProfileOverride:
    rule_id: int
    custom_points: int | None = None
    is_enabled: bool = True


@dataclass(frozen=True, slots=True)
class ProfileView:
    id: int
    point_type: PointType
    overrides: Mapping[int, ProfileOverride] = field(default_factory=dict)

    def enables(self, rule_id: int) -> bool:
        override = self.overrides.get(rule_id)
        return override is not None and override.is_enabled

    def points_for(self, rule: RuleBase) -> int:
        override = self.overrides.get(rule.id)
        if override is not None and override.custom_points is not None:
            return override.custom_points
        return rule.points_awarded


@dataclass(frozen=True, slots=True)
class LedgerRow:
    player_id: int
    rule_id: int
    points: int
    point_type: PointType
    profile_id: int
    is_manual: bool
    count: int = 1
    assignment_key: str | None = None
    notes: str = ""


@dataclass(frozen=True, slots=True)
class StoredLedgerEntry:
    player_id: int
    rule_id: int
    point_type: PointType
    points: int
    is_manual: bool = True
    count: int | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class EditableAssignment:
    rule_id: int
    player_id: int
    count: int
    points: int
