from types import SimpleNamespace

from porra.services.aggregation import (
    build_season_snapshot,
    compute_player_stats,
    compute_standings,
    current_bets,
    last_scored_race_id,
    locked_votes,
    player_vote_history,
)


def player(player_id):
    return SimpleNamespace(id=player_id)


def vote(player_id, race_id, rider_id, is_locked=False):
    return SimpleNamespace(
        player_id=player_id, race_id=race_id, rider_id=rider_id, is_locked=is_locked
    )


def point(player_id, race_id, rider_id, points):
    return SimpleNamespace(
        player_id=player_id, race_id=race_id, rider_id=rider_id, points=points
    )


PLAYERS = [player(1), player(2), player(3)]

VOTES = [
    vote(1, 1, 10),
    vote(1, 2, 10),
    vote(1, 3, 20, is_locked=True),
    vote(2, 1, 20),
    vote(2, 2, 30),
    vote(2, 3, 30),
]

POINTS = [
    point(1, 1, 10, 25),
    point(2, 1, 20, 20),
    point(1, 2, 10, 12),
    point(2, 2, 30, 9),
    point(2, 2, 30, 16),
]


def test_player_totals_and_last_race():
    stats = {s.player_id: s for s in compute_player_stats(PLAYERS, VOTES, POINTS)}

    assert stats[1].points == 37
    assert stats[2].points == 45
    assert stats[3].points == 0

    # Race 2 is the highest race id holding points
    assert stats[1].last_race_points == 12
    assert stats[2].last_race_points == 25

    assert stats[1].vote_history == {10: 2, 20: 1}
    assert stats[2].total_votes == 3


def test_last_scored_race_id():
    assert last_scored_race_id(POINTS) == 2
    assert last_scored_race_id([]) is None


def test_standings_order_and_gap():
    standings = compute_standings(compute_player_stats(PLAYERS, VOTES, POINTS))

    assert [row["player_id"] for row in standings] == [2, 1, 3]
    assert [row["position"] for row in standings] == [1, 2, 3]
    assert [row["gap"] for row in standings] == [0, 8, 45]


def test_bets_and_locks_for_next_race():
    assert current_bets(VOTES, 3) == {1: 20, 2: 30}
    assert locked_votes(VOTES, 3) == {1: True, 2: False}
    assert current_bets(VOTES, None) == {}


def test_snapshot_highlights():
    snapshot = build_season_snapshot(PLAYERS, VOTES, POINTS, next_race_id=3)

    assert snapshot["most_voted_rider"] == (10, 2)
    assert snapshot["top_scoring_rider"] == (10, 37)
    # Player 3 never voted and is not eligible
    assert snapshot["best_player"] == (2, 15.0)
    assert snapshot["last_scored_race_id"] == 2


def test_ties_go_to_first_entry():
    votes = [vote(1, 1, 20), vote(2, 1, 10)]
    snapshot = build_season_snapshot([player(1), player(2)], votes, [])
    assert snapshot["most_voted_rider"] == (20, 1)
    assert snapshot["top_scoring_rider"] is None
    assert snapshot["best_player"] == (1, 0.0)


def test_empty_season():
    snapshot = build_season_snapshot(PLAYERS, [], [])
    assert snapshot["most_voted_rider"] is None
    assert snapshot["best_player"] is None
    assert [row["points"] for row in snapshot["standings"]] == [0, 0, 0]


def test_player_vote_history_sorted_and_filtered():
    stats = compute_player_stats(PLAYERS, VOTES, POINTS)[1]
    assert player_vote_history(stats) == [(30, 2), (20, 1)]
    assert player_vote_history(stats, known_rider_ids={20}) == [(20, 1)]
