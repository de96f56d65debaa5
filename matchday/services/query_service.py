"""
Read-only queries behind the player views: results, fixtures, league table
and a player's own recent predictions.
"""

from matchday.errors import ConflictError, NotFoundError
from matchday.models import Match, Prediction, Tournament, get_or_none
from matchday.models.match import FINISHED, UPCOMING

MATCH_LIST_LIMIT = 50
DEFAULT_RECENT_LIMIT = 20
MAX_RECENT_LIMIT = 50

POINTS_FOR_WIN = 3
POINTS_FOR_DRAW = 1


def _get_tournament(tournament_id):
    tournament = get_or_none(Tournament, tournament_id)
    if tournament is None:
        raise NotFoundError("Tournament not found")
    return tournament


def latest_results(tournament_id, limit=MATCH_LIST_LIMIT):
    """Finished matches, most recent kickoff first"""
    tournament = _get_tournament(tournament_id)
    matches = (
        Match.query.filter_by(tournament_id=tournament.id, status=FINISHED)
        .order_by(Match.kickoff.desc())
        .limit(limit)
        .all()
    )
    return [match.to_dict() for match in matches]


def upcoming_matches(tournament_id, limit=MATCH_LIST_LIMIT):
    """Upcoming matches, soonest kickoff first"""
    tournament = _get_tournament(tournament_id)
    matches = (
        Match.query.filter_by(tournament_id=tournament.id, status=UPCOMING)
        .order_by(Match.kickoff.asc())
        .limit(limit)
        .all()
    )
    return [match.to_dict() for match in matches]


def _empty_row(team):
    return {
        "team_id": team.id,
        "team_name": team.name,
        "flag_code": team.flag_code,
        "played": 0,
        "won": 0,
        "drawn": 0,
        "lost": 0,
        "goals_for": 0,
        "goals_against": 0,
        "goal_diff": 0,
        "points": 0,
    }


def _record(row, scored, conceded):
    row["played"] += 1
    row["goals_for"] += scored
    row["goals_against"] += conceded
    if scored > conceded:
        row["won"] += 1
        row["points"] += POINTS_FOR_WIN
    elif scored == conceded:
        row["drawn"] += 1
        row["points"] += POINTS_FOR_DRAW
    else:
        row["lost"] += 1
    row["goal_diff"] = row["goals_for"] - row["goals_against"]


def standings(tournament_id):
    """
    League table from finished matches.

    Sorted by points, goal difference, then goals scored (all descending).
    Teams entered in the tournament appear even before their first match.

    Raises:
        NotFoundError: no such tournament
        ConflictError: tournament is not a league
    """
    tournament = _get_tournament(tournament_id)
    if not tournament.is_league:
        raise ConflictError("Standings are only available for league tournaments")

    rows = {}
    for entry in tournament.entries.all():
        if entry.team is not None:
            rows[entry.team_id] = _empty_row(entry.team)

    finished = Match.query.filter_by(tournament_id=tournament.id, status=FINISHED).all()
    for match in finished:
        if match.home_score is None or match.away_score is None:
            continue
        home = rows.setdefault(match.home_team_id, _empty_row(match.home_team))
        away = rows.setdefault(match.away_team_id, _empty_row(match.away_team))
        _record(home, match.home_score, match.away_score)
        _record(away, match.away_score, match.home_score)

    table = sorted(
        rows.values(),
        key=lambda r: (-r["points"], -r["goal_diff"], -r["goals_for"], r["team_name"]),
    )
    for position, row in enumerate(table, start=1):
        row["position"] = position
    return table


def clamp_recent_limit(limit):
    if limit is None:
        return DEFAULT_RECENT_LIMIT
    return max(1, min(int(limit), MAX_RECENT_LIMIT))


def recent_predictions(player_id, limit=None):
    """A player's predictions, latest submission first, with match details"""
    if player_id is None:
        return []

    predictions = (
        Prediction.query.filter_by(player_id=player_id)
        .order_by(Prediction.submitted_at.desc(), Prediction.id.desc())
        .limit(clamp_recent_limit(limit))
        .all()
    )

    results = []
    for prediction in predictions:
        data = prediction.to_dict()
        data["match"] = prediction.match.to_dict() if prediction.match else None
        results.append(data)
    return results
