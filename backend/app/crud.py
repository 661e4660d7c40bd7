import logging
from collections import defaultdict

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from . import models, schemas, serializers
from .config import get_settings
from .scoring.engine import (
    ensure_valid_rule,
    evaluate_all,
    infer_multiplier_variable,
    preview_rule,
    validate_rule,
)
from .scoring.ledger import build_ledger, rules_for_profile
from .scoring.reconcile import reconcile_entries
from .scoring.types import (
    Condition,
    EditableAssignment,
    ManualAssignment,
    Operator,
    PlayerFacts,
    PlayerRuleResult,
    PointType,
    ProfileView,
    Scope,
)
from .scoring.variables import BUILT_IN_VARIABLES, VariableRegistry, is_built_in_key

logger = logging.getLogger(__name__)


class CompletionError(RuntimeError):
    pass


def _normalize_text(value: str) -> str:
    return " ".join(value.split())


# ---------------------------------------------------------------------------
# Clubs, teams and players
# ---------------------------------------------------------------------------


def get_clubs(db: Session) -> list[models.Club]:
    return db.query(models.Club).order_by(models.Club.name.asc()).all()


def create_club(db: Session, payload: schemas.ClubCreate) -> models.Club:
    name = _normalize_text(payload.name)
    if not name:
        raise ValueError("Club name cannot be empty.")

    existing = db.query(models.Club).filter(func.lower(models.Club.name) == name.lower()).first()
    if existing:
        raise ValueError("A club with this name already exists.")

    club = models.Club(name=name)
    db.add(club)
    db.commit()
    db.refresh(club)
    return club


def get_teams(db: Session, club_id: int | None = None) -> list[models.Team]:
    query = db.query(models.Team)
    if club_id is not None:
        query = query.filter(models.Team.club_id == club_id)
    return query.order_by(models.Team.name.asc()).all()


def get_team_or_raise(db: Session, team_id: int) -> models.Team:
    team = (
        db.query(models.Team)
        .options(
            selectinload(models.Team.club),
            selectinload(models.Team.players),
            selectinload(models.Team.rules).selectinload(models.Rule.conditions),
            selectinload(models.Team.variables),
            selectinload(models.Team.default_profile).selectinload(models.RulesProfile.rules),
        )
        .filter(models.Team.id == team_id)
        .first()
    )
    if not team:
        raise LookupError("Team not found.")
    return team


def create_team(db: Session, payload: schemas.TeamCreate) -> models.Team:
    name = _normalize_text(payload.name)
    if not name:
        raise ValueError("Team name cannot be empty.")

    if not db.get(models.Club, payload.club_id):
        raise LookupError("Club not found.")

    existing = (
        db.query(models.Team)
        .filter(models.Team.club_id == payload.club_id, func.lower(models.Team.name) == name.lower())
        .first()
    )
    if existing:
        raise ValueError("A team with this name already exists in this club.")

    team = models.Team(name=name, club_id=payload.club_id)
    db.add(team)
    db.commit()
    db.refresh(team)
    return team


def set_team_profile(db: Session, team_id: int, profile_id: int | None) -> models.Team:
    team = db.get(models.Team, team_id)
    if not team:
        raise LookupError("Team not found.")

    if profile_id is not None:
        profile = db.get(models.RulesProfile, profile_id)
        if not profile:
            raise LookupError("Rules profile not found.")
        if profile.club_id != team.club_id:
            raise ValueError("Rules profile belongs to a different club.")

    team.default_profile_id = profile_id
    db.commit()
    db.refresh(team)
    return team


def get_players(db: Session, team_id: int | None = None) -> list[models.Player]:
    query = db.query(models.Player)
    if team_id is not None:
        query = query.filter(models.Player.team_id == team_id)
    return query.order_by(models.Player.team_id.asc(), models.Player.name.asc()).all()


def create_player(db: Session, payload: schemas.PlayerCreate) -> models.Player:
    name = _normalize_text(payload.name)
    if not name:
        raise ValueError("Player name cannot be empty.")

    team = db.get(models.Team, payload.team_id)
    if not team:
        raise LookupError("Team not found.")

    existing = (
        db.query(models.Player)
        .filter(
            models.Player.team_id == payload.team_id,
            func.lower(models.Player.name) == name.lower(),
        )
        .first()
    )
    if existing:
        raise ValueError("A player with this name already exists for this team.")

    player = models.Player(name=name, position=payload.position, team_id=payload.team_id)
    db.add(player)
    db.commit()
    db.refresh(player)
    return player


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------


def list_matches(
    db: Session,
    team_id: int | None = None,
    status: schemas.MatchStatus | None = None,
) -> list[models.Match]:
    query = db.query(models.Match)
    if team_id is not None:
        query = query.filter(models.Match.team_id == team_id)
    if status:
        query = query.filter(models.Match.status == status)
    return query.order_by(models.Match.id.asc()).all()


def create_match(db: Session, payload: schemas.MatchCreate) -> models.Match:
    opponent = _normalize_text(payload.opponent)
    if not opponent:
        raise ValueError("Opponent cannot be empty.")
    if not db.get(models.Team, payload.team_id):
        raise LookupError("Team not found.")

    match = models.Match(team_id=payload.team_id, opponent=opponent, status="pending", custom_values={})
    db.add(match)
    db.commit()
    db.refresh(match)
    return match


def get_match_or_raise(db: Session, match_id: int) -> models.Match:
    match = (
        db.query(models.Match)
        .options(
            selectinload(models.Match.stats),
            selectinload(models.Match.ledger),
        )
        .filter(models.Match.id == match_id)
        .first()
    )
    if not match:
        raise LookupError("Match not found.")
    return match


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------


def team_registry(team: models.Team) -> VariableRegistry:
    return serializers.registry_from_models(team.variables)


def list_variables(db: Session, team_id: int) -> list[schemas.VariableRead]:
    team = get_team_or_raise(db, team_id)
    built_ins = [serializers.variable_to_read(variable) for variable in BUILT_IN_VARIABLES]
    custom = [
        serializers.variable_to_read(serializers.variable_from_model(record), record)
        for record in sorted(team.variables, key=lambda item: item.key)
    ]
    return built_ins + custom


def create_variable(db: Session, payload: schemas.VariableCreate) -> models.Variable:
    if not db.get(models.Team, payload.team_id):
        raise LookupError("Team not found.")

    if is_built_in_key(payload.key):
        raise ValueError(f"'{payload.key}' is a built-in variable and cannot be redefined.")

    existing = (
        db.query(models.Variable)
        .filter(models.Variable.team_id == payload.team_id, models.Variable.key == payload.key)
        .first()
    )
    if existing:
        raise ValueError("A variable with this key already exists for this team.")

    variable = models.Variable(
        team_id=payload.team_id,
        key=payload.key,
        label=_normalize_text(payload.label),
        description=payload.description.strip(),
        scope=payload.scope,
        data_type=payload.data_type,
        default_value=payload.default_value,
        is_active=True,
    )
    db.add(variable)
    db.commit()
    db.refresh(variable)
    return variable


def _rules_using_variable(db: Session, team_id: int, key: str) -> list[str]:
    rows = (
        db.query(models.Rule.name)
        .join(models.RuleCondition, models.RuleCondition.rule_id == models.Rule.id)
        .filter(
            models.Rule.team_id == team_id,
            (models.RuleCondition.variable == key) | (models.RuleCondition.compare_variable == key),
        )
        .distinct()
        .all()
    )
    names = {row[0] for row in rows}
    multiplier_rows = (
        db.query(models.Rule.name)
        .filter(models.Rule.team_id == team_id, models.Rule.multiplier_variable == key)
        .all()
    )
    names.update(row[0] for row in multiplier_rows)
    return sorted(names)


def set_variable_active(db: Session, variable_id: int, is_active: bool) -> models.Variable:
    variable = db.get(models.Variable, variable_id)
    if not variable:
        raise LookupError("Variable not found.")

    variable.is_active = is_active
    db.commit()
    db.refresh(variable)
    return variable


def delete_variable(db: Session, variable_id: int) -> None:
    variable = db.get(models.Variable, variable_id)
    if not variable:
        raise LookupError("Variable not found.")

    used_by = _rules_using_variable(db, variable.team_id, variable.key)
    if used_by:
        raise ValueError(f"Variable '{variable.key}' is used by rules: {', '.join(used_by)}.")

    db.delete(variable)
    db.commit()


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def list_rules(db: Session, team_id: int) -> list[models.Rule]:
    return (
        db.query(models.Rule)
        .options(selectinload(models.Rule.conditions))
        .filter(models.Rule.team_id == team_id)
        .order_by(models.Rule.name.asc(), models.Rule.id.asc())
        .all()
    )


def get_rule_or_raise(db: Session, rule_id: int) -> models.Rule:
    rule = (
        db.query(models.Rule)
        .options(selectinload(models.Rule.conditions))
        .filter(models.Rule.id == rule_id)
        .first()
    )
    if not rule:
        raise LookupError("Rule not found.")
    return rule


def validate_rule_draft(db: Session, payload: schemas.RuleCreate) -> list[str]:
    team = get_team_or_raise(db, payload.team_id)
    return validate_rule(payload, team_registry(team))


def create_rule(db: Session, payload: schemas.RuleCreate) -> models.Rule:
    team = get_team_or_raise(db, payload.team_id)
    ensure_valid_rule(payload, team_registry(team))

    if payload.target_player_id is not None:
        player = db.get(models.Player, payload.target_player_id)
        if not player or player.team_id != payload.team_id:
            raise ValueError("Target player must belong to the rule's team.")

    multiplier_variable = None
    if payload.is_multiplier and payload.category == "PERFORMANCE":
        conditions = [
            Condition(
                variable=item.variable or "",
                operator=Operator(item.operator),
                value=item.value if item.value is not None else 0,
                scope=Scope(item.scope),
                compare_variable=item.compare_variable,
            )
            for item in payload.conditions
        ]
        multiplier_variable = payload.multiplier_variable or infer_multiplier_variable(conditions)

    rule = models.Rule(
        team_id=payload.team_id,
        name=_normalize_text(payload.name),
        description=payload.description.strip(),
        category=payload.category,
        points_awarded=payload.points_awarded,
        is_multiplier=payload.is_multiplier and payload.category == "PERFORMANCE",
        multiplier_variable=multiplier_variable,
        target_scope=payload.target_scope,
        target_positions=list(payload.target_positions) if payload.target_scope == "BY_POSITION" else [],
        target_player_id=payload.target_player_id if payload.target_scope == "INDIVIDUAL_PLAYER" else None,
        is_active=payload.is_active,
        conditions=[
            models.RuleCondition(
                position_index=index,
                variable=item.variable,
                operator=item.operator,
                value=item.value if item.value is not None else 0,
                compare_variable=item.compare_variable or None,
                scope=item.scope,
            )
            for index, item in enumerate(payload.conditions)
        ],
    )
    db.add(rule)
    db.commit()
    logger.info("Created %s rule '%s' for team %s", rule.category, rule.name, rule.team_id)
    return get_rule_or_raise(db, rule.id)


def set_rule_active(db: Session, rule_id: int, is_active: bool) -> models.Rule:
    rule = db.get(models.Rule, rule_id)
    if not rule:
        raise LookupError("Rule not found.")

    rule.is_active = is_active
    db.commit()
    return get_rule_or_raise(db, rule_id)


# ---------------------------------------------------------------------------
# Rules profiles
# ---------------------------------------------------------------------------


def _profile_query(db: Session):
    return db.query(models.RulesProfile).options(selectinload(models.RulesProfile.rules))


def list_profiles(db: Session, club_id: int | None = None) -> list[models.RulesProfile]:
    query = _profile_query(db)
    if club_id is not None:
        query = query.filter(models.RulesProfile.club_id == club_id)
    return query.order_by(models.RulesProfile.is_club_default.desc(), models.RulesProfile.name.asc()).all()


def get_profile_or_raise(db: Session, profile_id: int) -> models.RulesProfile:
    profile = _profile_query(db).filter(models.RulesProfile.id == profile_id).first()
    if not profile:
        raise LookupError("Rules profile not found.")
    return profile


def get_club_default_profile(db: Session, club_id: int) -> models.RulesProfile | None:
    return (
        _profile_query(db)
        .filter(
            models.RulesProfile.club_id == club_id,
            models.RulesProfile.is_club_default.is_(True),
            models.RulesProfile.is_active.is_(True),
        )
        .first()
    )


def create_profile(db: Session, payload: schemas.ProfileCreate) -> models.RulesProfile:
    if not db.get(models.Club, payload.club_id):
        raise LookupError("Club not found.")

    seen: set[int] = set()
    for item in payload.rules:
        if item.rule_id in seen:
            raise ValueError("Each rule can appear only once in a profile.")
        seen.add(item.rule_id)

        rule = db.get(models.Rule, item.rule_id)
        if not rule:
            raise LookupError(f"Rule {item.rule_id} not found.")
        if rule.team.club_id != payload.club_id:
            raise ValueError(f"Rule {item.rule_id} belongs to a different club.")

    if payload.is_club_default:
        (
            db.query(models.RulesProfile)
            .filter(models.RulesProfile.club_id == payload.club_id, models.RulesProfile.is_club_default.is_(True))
            .update({models.RulesProfile.is_club_default: False}, synchronize_session=False)
        )

    profile = models.RulesProfile(
        club_id=payload.club_id,
        name=_normalize_text(payload.name),
        description=payload.description.strip(),
        is_club_default=payload.is_club_default,
        is_active=True,
        rules=[
            models.ProfileRule(rule_id=item.rule_id, custom_points=item.custom_points, is_enabled=item.is_enabled)
            for item in payload.rules
        ],
    )
    db.add(profile)
    db.commit()
    return get_profile_or_raise(db, profile.id)


def resolve_scoring_profiles(db: Session, team: models.Team) -> list[ProfileView]:
    views: list[ProfileView] = []

    team_profile = team.default_profile
    if team_profile is not None and team_profile.is_active:
        views.append(serializers.profile_view(team_profile, PointType.TEAM))

    club_profile = get_club_default_profile(db, team.club_id)
    if club_profile is not None:
        views.append(serializers.profile_view(club_profile, PointType.CLUB))

    return views


# ---------------------------------------------------------------------------
# Scoring: preview, completion, re-completion
# ---------------------------------------------------------------------------


def _player_facts(team: models.Team, stats: list[schemas.PlayerStatPayload]) -> list[PlayerFacts]:
    roster = {player.id: player for player in team.players}

    seen: set[int] = set()
    facts: list[PlayerFacts] = []
    for stat in stats:
        player = roster.get(stat.player_id)
        if player is None:
            raise ValueError(f"Player {stat.player_id} is not on this team.")
        if stat.player_id in seen:
            raise ValueError(f"Duplicate stats supplied for player {stat.player_id}.")
        seen.add(stat.player_id)
        facts.append(serializers.player_facts_from_stat(stat, player.position))
    return facts


def preview_match_points(
    db: Session,
    match_id: int,
    payload: schemas.MatchFactsPayload,
    profile_id: int | None = None,
) -> list[PlayerRuleResult]:
    match = db.get(models.Match, match_id)
    if not match:
        raise LookupError("Match not found.")

    team = get_team_or_raise(db, match.team_id)
    rules = [serializers.rule_from_model(rule) for rule in team.rules]

    if profile_id is not None:
        profile = get_profile_or_raise(db, profile_id)
        if profile.club_id != team.club_id:
            raise ValueError("Rules profile belongs to a different club.")
        rules = rules_for_profile(rules, serializers.profile_view(profile, PointType.TEAM))

    return evaluate_all(
        rules,
        serializers.match_facts_from_payload(payload),
        _player_facts(team, payload.player_stats),
        team_registry(team),
    )


def preview_single_rule(db: Session, rule_id: int, payload: schemas.MatchFactsPayload) -> list[PlayerRuleResult]:
    rule = get_rule_or_raise(db, rule_id)
    team = get_team_or_raise(db, rule.team_id)
    return preview_rule(
        serializers.rule_from_model(rule),
        serializers.match_facts_from_payload(payload),
        _player_facts(team, payload.player_stats),
        team_registry(team),
    )


def _manual_assignments(team: models.Team, payload: schemas.MatchCompletion) -> list[ManualAssignment]:
    roster_ids = {player.id for player in team.players}
    team_rule_ids = {rule.id for rule in team.rules}

    seen: set[tuple[int, int]] = set()
    assignments: list[ManualAssignment] = []
    for item in payload.manual_assignments:
        if item.player_id not in roster_ids:
            raise ValueError(f"Player {item.player_id} is not on this team.")
        if item.rule_id not in team_rule_ids:
            raise ValueError(f"Rule {item.rule_id} does not belong to this team.")
        key = (item.player_id, item.rule_id)
        if key in seen:
            raise ValueError(f"Duplicate manual assignment for player {item.player_id} and rule {item.rule_id}.")
        seen.add(key)
        assignments.append(serializers.manual_assignment_from_payload(item))
    return assignments


def complete_match(
    db: Session,
    match_id: int,
    payload: schemas.MatchCompletion,
    include_automatic: bool | None = None,
) -> models.Match:
    # Row lock serializes concurrent completions of the same match.
    match = db.query(models.Match).filter(models.Match.id == match_id).with_for_update().first()
    if not match:
        raise LookupError("Match not found.")

    if include_automatic is None:
        include_automatic = get_settings().persist_automatic_points

    is_recompletion = match.status == "completed"
    team = get_team_or_raise(db, match.team_id)

    players = _player_facts(team, payload.player_stats)
    assignments = _manual_assignments(team, payload)
    profiles = resolve_scoring_profiles(db, team)
    rules = [serializers.rule_from_model(rule) for rule in team.rules]

    rows = build_ledger(
        rules,
        profiles,
        assignments,
        serializers.match_facts_from_payload(payload),
        players,
        include_automatic=include_automatic,
        registry=team_registry(team),
    )

    try:
        match.goals_for = payload.goals_for
        match.goals_against = payload.goals_against
        match.custom_values = dict(payload.custom_values)
        match.status = "completed"

        # Unique (match, player) stats need the old rows gone before the new ones land.
        match.stats.clear()
        match.ledger.clear()
        db.flush()

        match.stats.extend(
            models.PlayerStat(
                player_id=stat.player_id,
                goals_scored=stat.goals_scored,
                goal_assists=stat.goal_assists,
                green_cards=stat.green_cards,
                yellow_cards=stat.yellow_cards,
                red_cards=stat.red_cards,
                saves=stat.saves,
                tackles=stat.tackles,
                passes=stat.passes,
                played=stat.played,
                custom_values=dict(stat.custom_values),
            )
            for stat in payload.player_stats
        )
        match.ledger.extend(
            models.PointLedgerEntry(
                player_id=row.player_id,
                rule_id=row.rule_id,
                profile_id=row.profile_id,
                points=row.points,
                point_type=row.point_type.value,
                is_manual=row.is_manual,
                count=row.count,
                assignment_key=row.assignment_key,
                notes=row.notes,
            )
            for row in rows
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Completing match %s failed; changes rolled back", match_id)
        raise CompletionError(f"Failed to complete match {match_id}.") from exc

    logger.info(
        "%s match %s: %d stat rows, %d ledger rows",
        "Re-completed" if is_recompletion else "Completed",
        match_id,
        len(payload.player_stats),
        len(rows),
    )
    return get_match_or_raise(db, match_id)


def get_match_ledger(db: Session, match_id: int, point_type: schemas.PointTypeName | None = None) -> list[models.PointLedgerEntry]:
    match = get_match_or_raise(db, match_id)
    entries = [entry for entry in match.ledger if point_type is None or entry.point_type == point_type]
    return sorted(entries, key=lambda entry: (entry.point_type, entry.player_id, entry.rule_id, entry.id))


def get_editable_assignments(db: Session, match_id: int) -> list[EditableAssignment]:
    match = get_match_or_raise(db, match_id)
    entries = [serializers.stored_entry_from_model(entry) for entry in match.ledger if entry.is_manual]
    return reconcile_entries(entries)


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------


def build_leaderboard(
    db: Session,
    point_type: schemas.PointTypeName = "TEAM",
    club_id: int | None = None,
    team_id: int | None = None,
) -> list[schemas.LeaderboardRow]:
    query = (
        db.query(models.PointLedgerEntry, models.Player, models.Team)
        .join(models.Player, models.Player.id == models.PointLedgerEntry.player_id)
        .join(models.Team, models.Team.id == models.Player.team_id)
        .filter(models.PointLedgerEntry.point_type == point_type)
    )
    if club_id is not None:
        query = query.filter(models.Team.club_id == club_id)
    if team_id is not None:
        query = query.filter(models.Team.id == team_id)

    totals: dict[int, int] = defaultdict(int)
    matches: dict[int, set[int]] = defaultdict(set)
    players: dict[int, tuple[models.Player, models.Team]] = {}

    for entry, player, team in query.all():
        totals[player.id] += entry.points
        matches[player.id].add(entry.match_id)
        players[player.id] = (player, team)

    ranked = sorted(totals.items(), key=lambda item: (-item[1], players[item[0]][0].name))

    rows: list[schemas.LeaderboardRow] = []
    for rank, (player_id, total) in enumerate(ranked, start=1):
        player, team = players[player_id]
        played = len(matches[player_id])
        rows.append(
            schemas.LeaderboardRow(
                rank=rank,
                player_id=player_id,
                player_name=player.name,
                team_id=team.id,
                team=team.name,
                position=player.position,
                total_points=total,
                matches_played=played,
                points_per_match=total / played if played else 0.0,
            )
        )
    return rows
