from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ORMBaseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


MatchStatus = Literal["pending", "live", "completed"]
PositionName = Literal["GOALKEEPER", "DEFENDER", "MIDFIELDER", "FORWARD"]
ScopeName = Literal["MATCH", "PLAYER"]
OperatorSymbol = Literal[">", "==", "<", ">=", "<=", "!="]
RuleCategoryName = Literal["RESULT", "PERFORMANCE", "MANUAL"]
TargetScopeName = Literal["ALL_PLAYERS", "BY_POSITION", "INDIVIDUAL_PLAYER"]
PointTypeName = Literal["TEAM", "CLUB"]
FactValue = float | int | bool


# ---------------------------------------------------------------------------
# Clubs, teams, players, matches
# ---------------------------------------------------------------------------


class ClubCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)


class ClubRead(ORMBaseModel):
    id: int
    name: str


class TeamCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    club_id: int = Field(gt=0)


class TeamRead(ORMBaseModel):
    id: int
    name: str
    club_id: int
    default_profile_id: int | None = None


class TeamProfileUpdate(BaseModel):
    profile_id: int | None = Field(default=None, gt=0)


class PlayerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    position: PositionName = "MIDFIELDER"
    team_id: int = Field(gt=0)


class PlayerRead(ORMBaseModel):
    id: int
    name: str
    position: str
    team_id: int


class MatchCreate(BaseModel):
    team_id: int = Field(gt=0)
    opponent: str = Field(min_length=1, max_length=100)


class MatchRead(ORMBaseModel):
    id: int
    team_id: int
    opponent: str
    status: MatchStatus
    goals_for: int
    goals_against: int
    custom_values: dict[str, FactValue] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------


class VariableCreate(BaseModel):
    team_id: int = Field(gt=0)
    key: str = Field(min_length=1, max_length=64, pattern=r"^[A-Za-z][A-Za-z0-9_]*$")
    label: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1)
    scope: ScopeName
    data_type: Literal["number", "boolean"] = "number"
    default_value: float = 0


class VariableRead(BaseModel):
    id: int | None = None
    team_id: int | None = None
    key: str
    label: str
    description: str
    scope: ScopeName
    data_type: Literal["number", "boolean", "string"]
    default_value: FactValue | str | None = None
    is_built_in: bool
    is_active: bool


class ActiveUpdate(BaseModel):
    is_active: bool


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class ConditionPayload(BaseModel):
    variable: str | None = None
    operator: OperatorSymbol | None = None
    value: float | None = None
    compare_variable: str | None = None
    scope: ScopeName = "PLAYER"


class RuleCreate(BaseModel):
    team_id: int = Field(gt=0)
    name: str = ""
    description: str = ""
    category: RuleCategoryName
    points_awarded: int
    is_multiplier: bool = False
    multiplier_variable: str | None = None
    target_scope: TargetScopeName = "ALL_PLAYERS"
    target_positions: list[PositionName] = Field(default_factory=list)
    target_player_id: int | None = None
    conditions: list[ConditionPayload] = Field(default_factory=list)
    is_active: bool = True


class ConditionRead(ORMBaseModel):
    id: int
    variable: str
    operator: OperatorSymbol
    value: float
    compare_variable: str | None = None
    scope: ScopeName


class RuleRead(ORMBaseModel):
    id: int
    team_id: int
    name: str
    description: str
    category: RuleCategoryName
    points_awarded: int
    is_multiplier: bool
    multiplier_variable: str | None = None
    target_scope: TargetScopeName
    target_positions: list[PositionName] = Field(default_factory=list)
    target_player_id: int | None = None
    conditions: list[ConditionRead] = Field(default_factory=list)
    is_active: bool


class RuleValidationResult(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Rules profiles
# ---------------------------------------------------------------------------


class ProfileRulePayload(BaseModel):
    rule_id: int = Field(gt=0)
    custom_points: int | None = None
    is_enabled: bool = True


class ProfileCreate(BaseModel):
    club_id: int = Field(gt=0)
    name: str = Field(min_length=1, max_length=100)
    description: str = ""
    is_club_default: bool = False
    rules: list[ProfileRulePayload] = Field(default_factory=list)


class ProfileRuleRead(ORMBaseModel):
    rule_id: int
    custom_points: int | None = None
    is_enabled: bool


class ProfileRead(ORMBaseModel):
    id: int
    club_id: int
    name: str
    description: str
    is_club_default: bool
    is_active: bool
    rules: list[ProfileRuleRead] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Match completion and scoring
# ---------------------------------------------------------------------------


class PlayerStatPayload(BaseModel):
    player_id: int = Field(gt=0)
    goals_scored: int = Field(default=0, ge=0)
    goal_assists: int = Field(default=0, ge=0)
    green_cards: int = Field(default=0, ge=0)
    yellow_cards: int = Field(default=0, ge=0)
    red_cards: int = Field(default=0, ge=0)
    saves: int = Field(default=0, ge=0)
    tackles: int = Field(default=0, ge=0)
    passes: int = Field(default=0, ge=0)
    played: bool = True
    custom_values: dict[str, FactValue] = Field(default_factory=dict)


class ManualAssignmentPayload(BaseModel):
    rule_id: int = Field(gt=0)
    player_id: int = Field(gt=0)
    count: int = Field(ge=0, le=99)


class MatchFactsPayload(BaseModel):
    goals_for: int = Field(default=0, ge=0)
    goals_against: int = Field(default=0, ge=0)
    custom_values: dict[str, FactValue] = Field(default_factory=dict)
    player_stats: list[PlayerStatPayload] = Field(default_factory=list)


class MatchCompletion(MatchFactsPayload):
    status: Literal["completed"]
    manual_assignments: list[ManualAssignmentPayload] = Field(default_factory=list)


class PlayerStatRead(ORMBaseModel):
    player_id: int
    goals_scored: int
    goal_assists: int
    green_cards: int
    yellow_cards: int
    red_cards: int
    saves: int
    tackles: int
    passes: int
    played: bool
    custom_values: dict[str, FactValue] = Field(default_factory=dict)


class LedgerEntryRead(ORMBaseModel):
    id: int
    player_id: int
    rule_id: int
    profile_id: int
    points: int
    point_type: PointTypeName
    is_manual: bool
    count: int | None = None
    notes: str | None = None


class CompletedMatchRead(MatchRead):
    stats: list[PlayerStatRead] = Field(default_factory=list)
    ledger: list[LedgerEntryRead] = Field(default_factory=list)
    team_points: int = 0
    club_points: int = 0


class PlayerRuleResultRead(BaseModel):
    player_id: int
    rule_id: int
    rule_name: str
    points: int
    reason: str


class EditableAssignmentRead(BaseModel):
    rule_id: int
    player_id: int
    count: int
    points: int


class LeaderboardRow(BaseModel):
    rank: int
    player_id: int
    player_name: str
    team_id: int
    team: str
    position: str
    total_points: int
    matches_played: int
    points_per_match: float
