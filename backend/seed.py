from __future__ import annotations

import argparse

from app import crud, models, schemas
from app.database import Base, SessionLocal, engine

CLUB_NAME = "Riverside Hockey Club"

TEAM_SQUADS = {
    "Riverside Firsts": {
        "GOALKEEPER": ["Sam Okafor"],
        "DEFENDER": ["Priya Nair", "Tom Lewis", "Hana Sato", "Jack Byrne"],
        "MIDFIELDER": ["Ali Hassan", "Maya Cohen", "Ben Carter"],
        "FORWARD": ["Leo Silva", "Nina Petrova", "Omar Haddad"],
    },
    "Riverside Seconds": {
        "GOALKEEPER": ["Ella Brooks"],
        "DEFENDER": ["Ravi Patel", "Chloe Martin", "Dan Walsh"],
        "MIDFIELDER": ["Zoe Adams", "Kai Jensen", "Lily Evans"],
        "FORWARD": ["Finn Murphy", "Ivy Chen"],
    },
}

# (name, description, category, points, multiplier variable, target positions, conditions)
RULE_TEMPLATES = [
    (
        "Win",
        "Every player in the squad scores when the team wins.",
        "RESULT",
        3,
        None,
        [],
        [{"variable": "goalsFor", "operator": ">", "compare_variable": "goalsAgainst", "scope": "MATCH"}],
    ),
    (
        "Clean Sheet",
        "Goalkeepers score when the team concedes nothing.",
        "RESULT",
        4,
        None,
        ["GOALKEEPER"],
        [{"variable": "goalsAgainst", "operator": "==", "value": 0, "scope": "MATCH"}],
    ),
    (
        "Goal Scored",
        "Points for every goal a player scores.",
        "MANUAL",
        3,
        None,
        [],
        [],
    ),
    (
        "Assist",
        "Points for every assist.",
        "PERFORMANCE",
        1,
        "goalAssists",
        [],
        [{"variable": "goalAssists", "operator": ">", "value": 0, "scope": "PLAYER"}],
    ),
    (
        "Yellow Card",
        "Deduction for each yellow card.",
        "PERFORMANCE",
        -2,
        "yellowCards",
        [],
        [{"variable": "yellowCards", "operator": ">", "value": 0, "scope": "PLAYER"}],
    ),
    (
        "Player of the Match",
        "Awarded by the captain after the match.",
        "MANUAL",
        5,
        None,
        [],
        [],
    ),
]

TEAM_OVERRIDES = {"Goal Scored": 4}


def reset_database() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def _create_rules(db, team: models.Team) -> dict[str, models.Rule]:
    created: dict[str, models.Rule] = {}
    for name, description, category, points, multiplier, positions, conditions in RULE_TEMPLATES:
        payload = schemas.RuleCreate(
            team_id=team.id,
            name=name,
            description=description,
            category=category,
            points_awarded=points,
            is_multiplier=multiplier is not None,
            multiplier_variable=multiplier,
            target_scope="BY_POSITION" if positions else "ALL_PLAYERS",
            target_positions=positions,
            conditions=[schemas.ConditionPayload(**condition) for condition in conditions],
        )
        created[name] = crud.create_rule(db, payload)
    return created


def _complete_demo_match(db, team: models.Team, rules: dict[str, models.Rule]) -> None:
    match = crud.create_match(db, schemas.MatchCreate(team_id=team.id, opponent="Harbour Town"))
    players = {player.name: player for player in crud.get_players(db, team_id=team.id)}

    stats = [schemas.PlayerStatPayload(player_id=player.id) for player in players.values()]
    for stat in stats:
        if stat.player_id == players["Leo Silva"].id:
            stat.goals_scored = 2
        if stat.player_id == players["Maya Cohen"].id:
            stat.goal_assists = 1

    crud.complete_match(
        db,
        match.id,
        schemas.MatchCompletion(
            status="completed",
            goals_for=2,
            goals_against=0,
            player_stats=stats,
            manual_assignments=[
                schemas.ManualAssignmentPayload(
                    rule_id=rules["Goal Scored"].id,
                    player_id=players["Leo Silva"].id,
                    count=2,
                ),
                schemas.ManualAssignmentPayload(
                    rule_id=rules["Player of the Match"].id,
                    player_id=players["Sam Okafor"].id,
                    count=1,
                ),
            ],
        ),
    )


def seed(*, demo_progress: bool = False) -> None:
    reset_database()

    db = SessionLocal()
    try:
        club = crud.create_club(db, schemas.ClubCreate(name=CLUB_NAME))

        teams: dict[str, models.Team] = {}
        for team_name, squad in TEAM_SQUADS.items():
            team = crud.create_team(db, schemas.TeamCreate(name=team_name, club_id=club.id))
            teams[team_name] = team
            for position, names in squad.items():
                for name in names:
                    crud.create_player(db, schemas.PlayerCreate(name=name, position=position, team_id=team.id))

        firsts = teams["Riverside Firsts"]
        rules = _create_rules(db, firsts)

        crud.create_profile(
            db,
            schemas.ProfileCreate(
                club_id=club.id,
                name="Club Standard",
                description="Club-wide scoring used for the club leaderboard.",
                is_club_default=True,
                rules=[schemas.ProfileRulePayload(rule_id=rule.id) for rule in rules.values()],
            ),
        )
        team_profile = crud.create_profile(
            db,
            schemas.ProfileCreate(
                club_id=club.id,
                name="Firsts Scoring",
                description="Firsts squad scoring with boosted goals.",
                rules=[
                    schemas.ProfileRulePayload(rule_id=rule.id, custom_points=TEAM_OVERRIDES.get(name))
                    for name, rule in rules.items()
                ],
            ),
        )
        crud.set_team_profile(db, firsts.id, team_profile.id)

        if demo_progress:
            _complete_demo_match(db, firsts, rules)
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed club scoring data.")
    parser.add_argument(
        "--demo-progress",
        action="store_true",
        help="Seed with a completed match so leaderboards have data.",
    )
    args = parser.parse_args()

    seed(demo_progress=args.demo_progress)
    mode = "demo" if args.demo_progress else "fresh"
    print(f"Seed completed ({mode})")
