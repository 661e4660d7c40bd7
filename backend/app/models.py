from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base

POSITION_CHECK = "('GOALKEEPER', 'DEFENDER', 'MIDFIELDER', 'FORWARD')"


class Club(Base):
    __tablename__ = "clubs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)

    teams = relationship("Team", back_populates="club", cascade="all, delete-orphan")
    profiles = relationship(
        "RulesProfile",
        back_populates="club",
        cascade="all, delete-orphan",
        foreign_keys="RulesProfile.club_id",
    )


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    club_id = Column(Integer, ForeignKey("clubs.id"), nullable=False, index=True)
    default_profile_id = Column(Integer, ForeignKey("rules_profiles.id"), nullable=True)

    club = relationship("Club", back_populates="teams")
    default_profile = relationship("RulesProfile", foreign_keys=[default_profile_id])
    players = relationship("Player", back_populates="team", cascade="all, delete-orphan")
    matches = relationship("Match", back_populates="team", cascade="all, delete-orphan")
    rules = relationship("Rule", back_populates="team", cascade="all, delete-orphan")
    variables = relationship("Variable", back_populates="team", cascade="all, delete-orphan")

    __table_args__ = (UniqueConstraint("club_id", "name", name="uq_team_club_name"),)


class Player(Base):
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    position = Column(String(16), nullable=False, default="MIDFIELDER")
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)

    team = relationship("Team", back_populates="players")

    __table_args__ = (
        UniqueConstraint("name", "team_id", name="uq_player_name_team"),
        CheckConstraint(f"position in {POSITION_CHECK}", name="ck_player_position_valid"),
    )


class Match(Base):
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    opponent = Column(String(100), nullable=False)
    status = Column(String(16), default="pending", nullable=False, index=True)

    goals_for = Column(Integer, default=0, nullable=False)
    goals_against = Column(Integer, default=0, nullable=False)
    custom_values = Column(JSON, nullable=False, default=dict)

    team = relationship("Team", back_populates="matches")
    stats = relationship("PlayerStat", back_populates="match", cascade="all, delete-orphan")
    ledger = relationship("PointLedgerEntry", back_populates="match", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("goals_for >= 0", name="ck_match_goals_for_nonnegative"),
        CheckConstraint("goals_against >= 0", name="ck_match_goals_against_nonnegative"),
        CheckConstraint("status in ('pending', 'live', 'completed')", name="ck_match_status_valid"),
    )


class PlayerStat(Base):
    __tablename__ = "player_stats"

    id = Column(Integer, primary_key=True, index=True)
    match_id = Column(Integer, ForeignKey("matches.id"), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False, index=True)

    goals_scored = Column(Integer, default=0, nullable=False)
    goal_assists = Column(Integer, default=0, nullable=False)
    green_cards = Column(Integer, default=0, nullable=False)
    yellow_cards = Column(Integer, default=0, nullable=False)
    red_cards = Column(Integer, default=0, nullable=False)
    saves = Column(Integer, default=0, nullable=False)
    tackles = Column(Integer, default=0, nullable=False)
    passes = Column(Integer, default=0, nullable=False)
    played = Column(Boolean, default=True, nullable=False)
    custom_values = Column(JSON, nullable=False, default=dict)

    match = relationship("Match", back_populates="stats")
    player = relationship("Player")

    __table_args__ = (UniqueConstraint("match_id", "player_id", name="uq_stat_match_player"),)


class Variable(Base):
    __tablename__ = "variables"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    key = Column(String(64), nullable=False)
    label = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    scope = Column(String(8), nullable=False)
    data_type = Column(String(16), nullable=False, default="number")
    default_value = Column(Float, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    team = relationship("Team", back_populates="variables")

    __table_args__ = (
        UniqueConstraint("team_id", "key", name="uq_variable_team_key"),
        CheckConstraint("scope in ('MATCH', 'PLAYER')", name="ck_variable_scope_valid"),
        CheckConstraint("data_type in ('number', 'boolean')", name="ck_variable_data_type_valid"),
    )


class Rule(Base):
    __tablename__ = "rules"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(16), nullable=False)
    points_awarded = Column(Integer, nullable=False)
    is_multiplier = Column(Boolean, default=False, nullable=False)
    multiplier_variable = Column(String(64), nullable=True)
    target_scope = Column(String(24), nullable=False, default="ALL_PLAYERS")
    target_positions = Column(JSON, nullable=False, default=list)
    target_player_id = Column(Integer, ForeignKey("players.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    team = relationship("Team", back_populates="rules")
    conditions = relationship(
        "RuleCondition",
        back_populates="rule",
        cascade="all, delete-orphan",
        order_by="RuleCondition.position_index",
    )

    __table_args__ = (
        CheckConstraint("category in ('RESULT', 'PERFORMANCE', 'MANUAL')", name="ck_rule_category_valid"),
        CheckConstraint(
            "target_scope in ('ALL_PLAYERS', 'BY_POSITION', 'INDIVIDUAL_PLAYER')",
            name="ck_rule_target_scope_valid",
        ),
    )


class RuleCondition(Base):
    __tablename__ = "rule_conditions"

    id = Column(Integer, primary_key=True, index=True)
    rule_id = Column(Integer, ForeignKey("rules.id"), nullable=False, index=True)
    position_index = Column(Integer, nullable=False, default=0)
    variable = Column(String(64), nullable=False)
    operator = Column(String(2), nullable=False)
    value = Column(Float, nullable=False, default=0)
    compare_variable = Column(String(64), nullable=True)
    scope = Column(String(8), nullable=False)

    rule = relationship("Rule", back_populates="conditions")

    __table_args__ = (
        CheckConstraint("operator in ('>', '==', '<', '>=', '<=', '!=')", name="ck_condition_operator_valid"),
        CheckConstraint("scope in ('MATCH', 'PLAYER')", name="ck_condition_scope_valid"),
    )


class RulesProfile(Base):
    __tablename__ = "rules_profiles"

    id = Column(Integer, primary_key=True, index=True)
    club_id = Column(Integer, ForeignKey("clubs.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    is_club_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    club = relationship("Club", back_populates="profiles", foreign_keys=[club_id])
    rules = relationship("ProfileRule", back_populates="profile", cascade="all, delete-orphan")


class ProfileRule(Base):
    __tablename__ = "profile_rules"

    id = Column(Integer, primary_key=True, index=True)
    profile_id = Column(Integer, ForeignKey("rules_profiles.id"), nullable=False, index=True)
    rule_id = Column(Integer, ForeignKey("rules.id"), nullable=False, index=True)
    custom_points = Column(Integer, nullable=True)
    is_enabled = Column(Boolean, default=True, nullable=False)

    profile = relationship("RulesProfile", back_populates="rules")
    rule = relationship("Rule")

    __table_args__ = (UniqueConstraint("profile_id", "rule_id", name="uq_profile_rule"),)


class PointLedgerEntry(Base):
    __tablename__ = "point_ledger"

    id = Column(Integer, primary_key=True, index=True)
    match_id = Column(Integer, ForeignKey("matches.id"), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False, index=True)
    rule_id = Column(Integer, ForeignKey("rules.id"), nullable=False, index=True)
    profile_id = Column(Integer, ForeignKey("rules_profiles.id"), nullable=False, index=True)

    points = Column(Integer, nullable=False)
    point_type = Column(String(8), nullable=False, index=True)
    is_manual = Column(Boolean, default=False, nullable=False)
    count = Column(Integer, nullable=True)
    assignment_key = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)

    match = relationship("Match", back_populates="ledger")
    player = relationship("Player")
    rule = relationship("Rule")
    profile = relationship("RulesProfile")

    __table_args__ = (
        CheckConstraint("point_type in ('TEAM', 'CLUB')", name="ck_ledger_point_type_valid"),
        CheckConstraint("count is null or count >= 1", name="ck_ledger_count_positive"),
    )
