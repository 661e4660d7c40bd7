import random

import pytest

from app.scoring.conditions import compare_values, evaluate_condition
from app.scoring.engine import (
    RuleValidationError,
    ensure_valid_rule,
    evaluate_all,
    infer_multiplier_variable,
    points_mode,
    preview_rule,
    validate_rule,
)
from app.scoring.ledger import build_ledger, rules_for_profile
from app.scoring.reconcile import parse_instance_count, reconcile_entries
from app.scoring.types import (
    Condition,
    DataType,
    Flat,
    ManualAssignment,
    ManualRule,
    MatchFacts,
    MultipliedBy,
    Operator,
    PerformanceRule,
    PlayerFacts,
    PointType,
    Position,
    ProfileOverride,
    ProfileView,
    ResultRule,
    Scope,
    StoredLedgerEntry,
    TargetScope,
    VariableDescriptor,
    decode_position,
    encode_position,
)
from app.scoring.variables import VariableRegistry


def goals_rule(*, multiplier: bool) -> PerformanceRule:
    return PerformanceRule(
        id=10,
        name="Goal Scored",
        points_awarded=3,
        conditions=(Condition("goalsScored", Operator.GREATER_THAN, 0, Scope.PLAYER),),
        points=MultipliedBy("goalsScored") if multiplier else Flat(),
    )


def clean_sheet_rule() -> ResultRule:
    return ResultRule(
        id=20,
        name="Clean Sheet",
        points_awarded=4,
        target_scope=TargetScope.BY_POSITION,
        target_positions=frozenset({Position.GOALKEEPER}),
        conditions=(Condition("goalsAgainst", Operator.EQUAL, 0, Scope.MATCH),),
    )


def win_rule() -> ResultRule:
    return ResultRule(
        id=30,
        name="Win",
        points_awarded=2,
        conditions=(Condition("goalsFor", Operator.GREATER_THAN, 0, Scope.MATCH, compare_variable="goalsAgainst"),),
    )


def squad() -> list[PlayerFacts]:
    players = [PlayerFacts(player_id=1, position=Position.GOALKEEPER)]
    positions = [Position.DEFENDER] * 4 + [Position.MIDFIELDER] * 3 + [Position.FORWARD] * 3
    for offset, position in enumerate(positions, start=2):
        players.append(PlayerFacts(player_id=offset, position=position))
    return players


# ---------------------------------------------------------------------------
# Positions and operands
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("code", [1, 2, 3, 4])
def test_position_codes_round_trip(code):
    assert encode_position(decode_position(code)) == code


@pytest.mark.parametrize("code", [0, 5, -1, 1.5, 3.9, None, "x", True])
def test_out_of_range_position_code_falls_back_to_midfielder(code):
    assert decode_position(code) is Position.MIDFIELDER


def test_booleans_and_strings_only_support_equality():
    assert compare_values(True, Operator.EQUAL, True)
    assert compare_values(True, Operator.NOT_EQUAL, False)
    assert not compare_values(True, Operator.GREATER_THAN, False)
    assert compare_values(Position.FORWARD, Operator.EQUAL, Position.FORWARD)
    assert not compare_values(Position.FORWARD, Operator.LESS_THAN, Position.GOALKEEPER)


def test_numbers_support_all_operators():
    assert compare_values(3, Operator.GREATER_THAN, 2)
    assert compare_values(2, Operator.GREATER_EQUAL, 2)
    assert compare_values(1, Operator.LESS_THAN, 2)
    assert compare_values(2, Operator.LESS_EQUAL, 2)
    assert compare_values(2, Operator.EQUAL, 2.0)
    assert compare_values(2, Operator.NOT_EQUAL, 3)


def test_position_literal_is_decoded_before_comparison():
    keeper = PlayerFacts(player_id=1, position=Position.GOALKEEPER)
    condition = Condition("position", Operator.EQUAL, 1, Scope.PLAYER)

    assert evaluate_condition(condition, MatchFacts(), keeper)
    assert not evaluate_condition(Condition("position", Operator.EQUAL, 4, Scope.PLAYER), MatchFacts(), keeper)
    assert evaluate_condition(Condition("position", Operator.EQUAL, 1.0, Scope.PLAYER), MatchFacts(), keeper)
    assert not evaluate_condition(Condition("position", Operator.EQUAL, 1.5, Scope.PLAYER), MatchFacts(), keeper)


def test_player_condition_without_player_context_is_false():
    condition = Condition("goalsScored", Operator.GREATER_EQUAL, 0, Scope.PLAYER)
    assert not evaluate_condition(condition, MatchFacts(), None)


def test_compare_variable_reads_from_the_condition_scope():
    condition = Condition("goalsFor", Operator.GREATER_THAN, 99, Scope.MATCH, compare_variable="goalsAgainst")

    assert evaluate_condition(condition, MatchFacts(goals_for=2, goals_against=1))
    assert not evaluate_condition(condition, MatchFacts(goals_for=1, goals_against=1))


def test_played_flag_is_a_boolean_variable():
    condition = Condition("played", Operator.EQUAL, 1, Scope.PLAYER)
    benched = PlayerFacts(player_id=7, played=False)

    # A numeric literal never equals a boolean fact.
    assert not evaluate_condition(condition, MatchFacts(), benched)
    assert not evaluate_condition(Condition("played", Operator.GREATER_THAN, 0, Scope.PLAYER), MatchFacts(), benched)


# ---------------------------------------------------------------------------
# Variable registry
# ---------------------------------------------------------------------------


def test_custom_variable_default_is_used_when_fact_missing():
    corners = VariableDescriptor(key="corners", label="Corners", scope=Scope.MATCH, default_value=5)
    registry = VariableRegistry([corners])
    condition = Condition("corners", Operator.EQUAL, 5, Scope.MATCH)

    assert evaluate_condition(condition, MatchFacts(), None, registry)
    assert evaluate_condition(
        Condition("corners", Operator.GREATER_THAN, 8, Scope.MATCH),
        MatchFacts(values={"corners": 9}),
        None,
        registry,
    )


def test_inactive_or_shadowing_custom_variables_do_not_resolve():
    registry = VariableRegistry(
        [
            VariableDescriptor(key="blocks", label="Blocks", scope=Scope.PLAYER, is_active=False),
            VariableDescriptor(key="goalsFor", label="Fake", scope=Scope.PLAYER),
        ]
    )

    assert registry.resolve("blocks", Scope.PLAYER) is None
    assert registry.resolve("goalsFor", Scope.PLAYER) is None
    assert registry.resolve("goalsFor", Scope.MATCH).is_built_in
    assert registry.resolve("played", Scope.PLAYER).data_type is DataType.BOOLEAN


def test_unresolved_variable_fails_open_without_breaking_other_rules():
    orphan = PerformanceRule(
        id=99,
        name="Orphan",
        points_awarded=10,
        conditions=(Condition("doesNotExist", Operator.EQUAL, 5, Scope.PLAYER),),
    )
    striker = PlayerFacts(player_id=9, position=Position.FORWARD, values={"goalsScored": 1, "doesNotExist": 5})

    assert not evaluate_condition(orphan.conditions[0], MatchFacts(), striker)
    assert not evaluate_condition(Condition("doesNotExist", Operator.NOT_EQUAL, 5, Scope.PLAYER), MatchFacts(), striker)
    assert not evaluate_condition(
        Condition("goalsScored", Operator.NOT_EQUAL, 0, Scope.PLAYER, compare_variable="doesNotExist"),
        MatchFacts(),
        striker,
    )

    not_equal_orphan = PerformanceRule(
        id=98,
        name="Orphan Not Equal",
        points_awarded=10,
        conditions=(Condition("doesNotExist", Operator.NOT_EQUAL, 5, Scope.PLAYER),),
    )
    results = evaluate_all([orphan, not_equal_orphan, goals_rule(multiplier=False)], MatchFacts(), [striker])
    assert [(result.rule_id, result.points) for result in results] == [(10, 3)]


# ---------------------------------------------------------------------------
# Rule evaluation
# ---------------------------------------------------------------------------


def test_flat_and_multiplied_points():
    scorer = PlayerFacts(player_id=5, position=Position.FORWARD, values={"goalsScored": 2})

    flat = evaluate_all([goals_rule(multiplier=False)], MatchFacts(), [scorer])
    multiplied = evaluate_all([goals_rule(multiplier=True)], MatchFacts(), [scorer])

    assert [result.points for result in flat] == [3]
    assert [result.points for result in multiplied] == [6]


def test_by_position_rule_only_reaches_matching_players():
    results = evaluate_all([clean_sheet_rule()], MatchFacts(goals_for=1, goals_against=0), squad())

    assert len(results) == 1
    assert results[0].player_id == 1
    assert results[0].points == 4
    assert "goalsAgainst == 0 (actual: 0)" in results[0].reason


def test_result_rule_awards_every_target_once():
    results = evaluate_all([win_rule()], MatchFacts(goals_for=3, goals_against=1), squad())

    assert len(results) == 11
    assert {result.points for result in results} == {2}


def test_result_rule_with_player_condition_never_fires():
    rule = ResultRule(
        id=40,
        name="Broken",
        points_awarded=1,
        conditions=(Condition("goalsScored", Operator.GREATER_EQUAL, 0, Scope.PLAYER),),
    )
    assert evaluate_all([rule], MatchFacts(), squad()) == []


def test_performance_rule_can_mix_match_and_player_conditions():
    rule = PerformanceRule(
        id=50,
        name="Winning Goal",
        points_awarded=2,
        conditions=(
            Condition("goalsScored", Operator.GREATER_THAN, 0, Scope.PLAYER),
            Condition("goalsFor", Operator.GREATER_THAN, 0, Scope.MATCH, compare_variable="goalsAgainst"),
        ),
    )
    scorer = PlayerFacts(player_id=3, values={"goalsScored": 1})

    assert len(evaluate_all([rule], MatchFacts(goals_for=2, goals_against=1), [scorer])) == 1
    assert evaluate_all([rule], MatchFacts(goals_for=1, goals_against=1), [scorer]) == []


def test_manual_and_inactive_rules_produce_nothing():
    manual = ManualRule(id=60, name="Player of the Match", points_awarded=5)
    inactive = ResultRule(
        id=61,
        name="Inactive Win",
        points_awarded=2,
        conditions=win_rule().conditions,
        is_active=False,
    )

    assert evaluate_all([manual, inactive], MatchFacts(goals_for=3), squad()) == []
    assert len(preview_rule(inactive, MatchFacts(goals_for=3), squad())) == 11


def test_individual_player_rule_targets_only_that_player():
    rule = ResultRule(
        id=70,
        name="Captain Win Bonus",
        points_awarded=1,
        target_scope=TargetScope.INDIVIDUAL_PLAYER,
        target_player_id=4,
        conditions=win_rule().conditions,
    )

    results = evaluate_all([rule], MatchFacts(goals_for=1), squad())
    assert [result.player_id for result in results] == [4]


def test_results_do_not_depend_on_rule_order():
    rules = [goals_rule(multiplier=True), clean_sheet_rule(), win_rule()]
    players = squad()
    players[9] = PlayerFacts(player_id=10, position=Position.FORWARD, values={"goalsScored": 2})
    facts = MatchFacts(goals_for=2, goals_against=0)

    expected = evaluate_all(rules, facts, players)
    shuffled = list(rules)
    for seed in range(5):
        random.Random(seed).shuffle(shuffled)
        assert evaluate_all(shuffled, facts, players) == expected


def test_multiplier_source_is_inferred_for_older_rules():
    conditions = (
        Condition("goalsFor", Operator.GREATER_THAN, 0, Scope.MATCH),
        Condition("saves", Operator.GREATER_THAN, 0, Scope.PLAYER),
    )

    assert infer_multiplier_variable(conditions) == "saves"
    assert points_mode(True, None, conditions) == MultipliedBy("saves")
    assert points_mode(True, "tackles", conditions) == MultipliedBy("tackles")
    assert points_mode(False, "tackles", conditions) == Flat()


# ---------------------------------------------------------------------------
# Rule validation
# ---------------------------------------------------------------------------


def test_validate_rule_collects_every_problem():
    errors = validate_rule(
        {
            "name": " ",
            "description": "",
            "category": "PERFORMANCE",
            "target_scope": "BY_POSITION",
            "target_positions": [],
            "conditions": [],
        }
    )

    assert errors == [
        "Rule name is required",
        "Rule description is required",
        "At least one condition is required",
        "Target positions must be specified when using BY_POSITION scope",
    ]


def test_validate_rule_checks_conditions_and_targets():
    errors = validate_rule(
        {
            "name": "Keeper",
            "description": "Saves",
            "category": "RESULT",
            "target_scope": "INDIVIDUAL_PLAYER",
            "conditions": [{"variable": "saves", "operator": None, "value": None, "scope": "PLAYER"}],
        }
    )

    assert "Target player must be specified when using INDIVIDUAL_PLAYER scope" in errors
    assert "Condition 1: Operator is required" in errors
    assert "Condition 1: Value is required" in errors
    assert "Condition 1: Result rules only accept MATCH conditions" in errors


def test_manual_rules_need_no_conditions():
    assert validate_rule({"name": "MOTM", "description": "Captain's pick", "category": "MANUAL"}) == []

    with pytest.raises(RuleValidationError) as excinfo:
        ensure_valid_rule({"name": "", "description": "x", "category": "MANUAL"})
    assert excinfo.value.errors == ["Rule name is required"]


def _multiplier_draft(multiplier_variable, conditions=None):
    return {
        "name": "Per unit",
        "description": "Points per unit",
        "category": "PERFORMANCE",
        "is_multiplier": True,
        "multiplier_variable": multiplier_variable,
        "conditions": conditions or [{"variable": "goalsFor", "operator": ">", "value": 0, "scope": "MATCH"}],
    }


@pytest.mark.parametrize("key", ["goalsFor", "nope", "played", "position"])
def test_multiplier_must_be_a_player_number_variable(key):
    assert validate_rule(_multiplier_draft(key)) == ["Multiplier variable must be a player number variable"]


def test_multiplier_accepts_team_player_variables():
    registry = VariableRegistry(
        [
            VariableDescriptor(key="blocks", label="Blocks", scope=Scope.PLAYER),
            VariableDescriptor(key="corners", label="Corners", scope=Scope.MATCH),
        ]
    )

    assert validate_rule(_multiplier_draft("saves")) == []
    assert validate_rule(_multiplier_draft("blocks"), registry) == []
    assert validate_rule(_multiplier_draft("blocks")) == ["Multiplier variable must be a player number variable"]
    assert validate_rule(_multiplier_draft("corners"), registry) == ["Multiplier variable must be a player number variable"]


def test_inferred_multiplier_source_is_checked_too():
    legacy = [{"variable": "goalsScored", "operator": ">", "value": 0, "scope": "PLAYER"}]
    orphaned = [{"variable": "oldStat", "operator": ">", "value": 0, "scope": "PLAYER"}]

    assert validate_rule(_multiplier_draft(None, legacy)) == []
    assert validate_rule(_multiplier_draft(None, orphaned)) == ["Multiplier variable must be a player number variable"]
    assert validate_rule(_multiplier_draft(None)) == ["Multiplier rules must name the variable to multiply by"]


# ---------------------------------------------------------------------------
# Ledger assembly
# ---------------------------------------------------------------------------


GOAL = ManualRule(id=1, name="Goal Scored", points_awarded=3)
CLEAN_SHEET = ResultRule(
    id=2,
    name="Clean Sheet",
    points_awarded=4,
    target_scope=TargetScope.BY_POSITION,
    target_positions=frozenset({Position.GOALKEEPER}),
    conditions=(Condition("goalsAgainst", Operator.EQUAL, 0, Scope.MATCH),),
)

TEAM_PROFILE = ProfileView(
    id=100,
    point_type=PointType.TEAM,
    overrides={1: ProfileOverride(rule_id=1, custom_points=4), 2: ProfileOverride(rule_id=2)},
)
CLUB_PROFILE = ProfileView(
    id=200,
    point_type=PointType.CLUB,
    overrides={1: ProfileOverride(rule_id=1), 2: ProfileOverride(rule_id=2)},
)
KEEPER = PlayerFacts(player_id=1, position=Position.GOALKEEPER)
STRIKER = PlayerFacts(player_id=9, position=Position.FORWARD, values={"goalsScored": 2})


def _totals(rows, point_type, manual=None):
    return sum(
        row.points
        for row in rows
        if row.point_type is point_type and (manual is None or row.is_manual is manual)
    )


def test_ledger_writes_each_profile_with_its_own_points():
    rows = build_ledger(
        [GOAL, CLEAN_SHEET],
        [TEAM_PROFILE, CLUB_PROFILE],
        [ManualAssignment(rule_id=1, player_id=9, count=2)],
        MatchFacts(goals_for=2, goals_against=0),
        [KEEPER, STRIKER],
    )

    assert _totals(rows, PointType.TEAM, manual=True) == 8
    assert _totals(rows, PointType.CLUB, manual=True) == 6

    clean_sheets = [row for row in rows if row.rule_id == 2]
    assert {(row.point_type, row.player_id, row.points) for row in clean_sheets} == {
        (PointType.TEAM, 1, 4),
        (PointType.CLUB, 1, 4),
    }

    manual = [row for row in rows if row.is_manual]
    assert {row.notes for row in manual} == {"Manual assignment: 2 instances"}
    assert {row.count for row in manual} == {2}
    assert len({row.assignment_key for row in manual}) == 1


def test_disabled_or_missing_profile_rules_write_nothing():
    club_without_goals = ProfileView(
        id=300,
        point_type=PointType.CLUB,
        overrides={1: ProfileOverride(rule_id=1, is_enabled=False)},
    )

    rows = build_ledger(
        [GOAL, CLEAN_SHEET],
        [club_without_goals],
        [ManualAssignment(rule_id=1, player_id=9, count=2)],
        MatchFacts(goals_against=0),
        [KEEPER, STRIKER],
    )
    assert rows == []
    assert build_ledger([GOAL], [], [ManualAssignment(1, 9, 2)], MatchFacts(), [STRIKER]) == []


def test_manual_assignment_replaces_automatic_result_for_same_rule():
    rows = build_ledger(
        [GOAL, CLEAN_SHEET],
        [CLUB_PROFILE],
        [ManualAssignment(rule_id=2, player_id=1, count=1), ManualAssignment(rule_id=1, player_id=9, count=0)],
        MatchFacts(goals_against=0),
        [KEEPER, STRIKER],
    )

    assert [(row.rule_id, row.player_id, row.is_manual) for row in rows] == [(2, 1, True)]


def test_automatic_results_can_be_left_out():
    rows = build_ledger(
        [GOAL, CLEAN_SHEET],
        [TEAM_PROFILE],
        [],
        MatchFacts(goals_against=0),
        [KEEPER],
        include_automatic=False,
    )
    assert rows == []


def test_rules_for_profile_applies_custom_points():
    selected = rules_for_profile([GOAL, CLEAN_SHEET], TEAM_PROFILE)
    assert [(rule.id, rule.points_awarded) for rule in selected] == [(1, 4), (2, 4)]


# ---------------------------------------------------------------------------
# Re-completion reconciliation
# ---------------------------------------------------------------------------


def test_instance_count_parsing():
    assert parse_instance_count("Manual assignment: 3 instances") == 3
    assert parse_instance_count("Manual assignment") == 1
    assert parse_instance_count(None) == 1


def test_reconcile_takes_the_larger_count_across_profiles():
    entries = [
        StoredLedgerEntry(player_id=9, rule_id=1, point_type=PointType.TEAM, points=8, notes="Manual assignment: 2 instances"),
        StoredLedgerEntry(player_id=9, rule_id=1, point_type=PointType.CLUB, points=9, notes="Manual assignment: 3 instances"),
        StoredLedgerEntry(player_id=1, rule_id=2, point_type=PointType.TEAM, points=4, is_manual=False, count=1),
    ]

    assignments = reconcile_entries(entries)
    assert [(item.player_id, item.rule_id, item.count, item.points) for item in assignments] == [(9, 1, 3, 9)]


def test_reconcile_prefers_structured_count_over_notes():
    entries = [
        StoredLedgerEntry(player_id=4, rule_id=5, point_type=PointType.TEAM, points=10, count=2, notes="edited by hand"),
        StoredLedgerEntry(player_id=4, rule_id=6, point_type=PointType.CLUB, points=5, notes="unparseable"),
    ]

    assignments = reconcile_entries(entries)
    assert [(item.rule_id, item.count, item.points) for item in assignments] == [(5, 2, 10), (6, 1, 5)]


def test_reconcile_keeps_the_winning_rows_own_points():
    entries = [
        StoredLedgerEntry(player_id=9, rule_id=1, point_type=PointType.CLUB, points=6, count=2),
        StoredLedgerEntry(player_id=9, rule_id=1, point_type=PointType.TEAM, points=8, count=2),
        StoredLedgerEntry(player_id=3, rule_id=1, point_type=PointType.TEAM, points=4, count=1),
        StoredLedgerEntry(player_id=3, rule_id=1, point_type=PointType.CLUB, points=9, count=3),
    ]

    assignments = reconcile_entries(entries)
    assert [(item.player_id, item.count, item.points) for item in assignments] == [(3, 3, 9), (9, 2, 8)]
