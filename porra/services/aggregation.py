"""
Season aggregation for the Porra

Everything here is derived from the Player, Vote and Point collections and
recomputed in full on every change; nothing is persisted. Record arguments
only need the attributes used (``player_id``, ``race_id``, ``rider_id``,
``points``, ``is_locked``, ``id``).

Ties in every "best of" statistic go to the first entry encountered.
"""


class PlayerStats:
    """Derived totals for one player"""

    __slots__ = ("player_id", "points", "last_race_points", "vote_history")

    def __init__(self, player_id):
        self.player_id = player_id
        self.points = 0
        self.last_race_points = 0
        self.vote_history = {}  # rider_id -> votes cast

    @property
    def total_votes(self):
        return sum(self.vote_history.values())

    def to_dict(self):
        return {
            "player_id": self.player_id,
            "points": self.points,
            "last_race_points": self.last_race_points,
            "vote_history": dict(self.vote_history),
            "total_votes": self.total_votes,
        }


def last_scored_race_id(points):
    """Highest race id holding any Point row (None when nothing is scored)"""
    race_ids = [point.race_id for point in points]
    return max(race_ids) if race_ids else None


def compute_player_stats(players, votes, points):
    """Build PlayerStats for every player, in player order"""
    stats = [PlayerStats(player.id) for player in players]
    stats_by_id = {s.player_id: s for s in stats}

    last_race_id = last_scored_race_id(points)

    for point in points:
        player_stats = stats_by_id.get(point.player_id)
        if player_stats is None:
            continue
        player_stats.points += point.points
        if point.race_id == last_race_id:
            player_stats.last_race_points += point.points

    for vote in votes:
        player_stats = stats_by_id.get(vote.player_id)
        if player_stats is None:
            continue
        history = player_stats.vote_history
        history[vote.rider_id] = history.get(vote.rider_id, 0) + 1

    return stats


def compute_standings(player_stats):
    """
    Rank players by total points.

    Returns:
        list[dict]: entries with ``position`` (1-based), ``player_id``,
        ``points``, ``last_race_points`` and ``gap`` to the leader
    """
    ordered = sorted(player_stats, key=lambda s: s.points, reverse=True)
    leader_points = ordered[0].points if ordered else 0

    return [
        {
            "position": index + 1,
            "player_id": stats.player_id,
            "points": stats.points,
            "last_race_points": stats.last_race_points,
            "gap": leader_points - stats.points,
        }
        for index, stats in enumerate(ordered)
    ]


def current_bets(votes, next_race_id):
    """player_id -> rider_id for votes on the next race"""
    if next_race_id is None:
        return {}
    return {v.player_id: v.rider_id for v in votes if v.race_id == next_race_id}


def locked_votes(votes, next_race_id):
    """player_id -> is_locked for votes on the next race"""
    if next_race_id is None:
        return {}
    return {v.player_id: bool(v.is_locked) for v in votes if v.race_id == next_race_id}


def _argmax(counts):
    best_key, best_value = None, None
    for key, value in counts.items():
        if best_value is None or value > best_value:
            best_key, best_value = key, value
    return best_key, best_value


def rider_vote_counts(votes):
    """rider_id -> votes received from all players across all races"""
    counts = {}
    for vote in votes:
        counts[vote.rider_id] = counts.get(vote.rider_id, 0) + 1
    return counts


def most_voted_rider(votes):
    """(rider_id, count) of the most popular rider, or None"""
    counts = rider_vote_counts(votes)
    if not counts:
        return None
    return _argmax(counts)


def rider_points(points):
    """rider_id -> points awarded to players through that rider"""
    totals = {}
    for point in points:
        totals[point.rider_id] = totals.get(point.rider_id, 0) + point.points
    return totals


def top_scoring_rider(points):
    """(rider_id, total_points) of the rider that earned players most points, or None"""
    totals = rider_points(points)
    if not totals:
        return None
    return _argmax(totals)


def player_efficiency(player_stats, votes):
    """player_id -> points per vote, only for players who voted at least once"""
    vote_totals = {}
    for vote in votes:
        vote_totals[vote.player_id] = vote_totals.get(vote.player_id, 0) + 1

    efficiency = {}
    for stats in player_stats:
        total = vote_totals.get(stats.player_id, 0)
        if total > 0:
            efficiency[stats.player_id] = stats.points / total
    return efficiency


def best_player(player_stats, votes):
    """(player_id, average) of the best points-per-vote player, or None"""
    efficiency = player_efficiency(player_stats, votes)
    if not efficiency:
        return None
    return _argmax(efficiency)


def player_vote_history(stats, known_rider_ids=None):
    """Vote histogram for one player as [(rider_id, count)] sorted by count desc"""
    entries = [
        (rider_id, count)
        for rider_id, count in stats.vote_history.items()
        if known_rider_ids is None or rider_id in known_rider_ids
    ]
    return sorted(entries, key=lambda item: item[1], reverse=True)


def build_season_snapshot(players, votes, points, next_race_id=None):
    """Derive every season statistic from the three collections at once"""
    stats = compute_player_stats(players, votes, points)

    return {
        "player_stats": stats,
        "standings": compute_standings(stats),
        "bets": current_bets(votes, next_race_id),
        "locked": locked_votes(votes, next_race_id),
        "last_scored_race_id": last_scored_race_id(points),
        "most_voted_rider": most_voted_rider(votes),
        "top_scoring_rider": top_scoring_rider(points),
        "best_player": best_player(stats, votes),
    }
