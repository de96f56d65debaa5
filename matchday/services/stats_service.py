"""
Player statistics aggregation

apply_scoring_event() is the single update rule for running totals.
Result entry applies it once per scored prediction; leaderboard rebuilds fold
it over a player's whole scored history through aggregate_stats(), so the
incremental and the full path can never disagree on the formula. Streaks
step through scoring.advance_streak, the same rule calculate_streaks() uses.
"""

import logging

from matchday import db
from matchday.errors import NotFoundError
from matchday.models import Player, PlayerTournamentStats
from matchday.utils.scoring import advance_streak, scored_order_key

logger = logging.getLogger(__name__)

EMPTY_STATS = {
    "total_points": 0,
    "total_correct": 0,
    "total_predictions": 0,
    "current_streak": 0,
    "best_streak": 0,
}


def apply_scoring_event(stats, points, is_correct):
    """Return new running totals after one scored prediction"""
    current_streak, best_streak = advance_streak(
        stats.get("current_streak"), stats.get("best_streak"), is_correct
    )
    return {
        "total_points": (stats.get("total_points") or 0) + (points or 0),
        "total_correct": (stats.get("total_correct") or 0) + (1 if is_correct else 0),
        "total_predictions": (stats.get("total_predictions") or 0) + 1,
        "current_streak": current_streak,
        "best_streak": best_streak,
    }


def aggregate_stats(predictions):
    """Totals and streaks over scored predictions, oldest first"""
    stats = dict(EMPTY_STATS)
    for prediction in sorted(predictions, key=scored_order_key):
        stats = apply_scoring_event(
            stats, prediction.points_earned, bool(prediction.is_correct)
        )
    return stats


def _apply_to_row(row, points, is_correct):
    row.set_stats(apply_scoring_event(row.stats_dict(), points, is_correct))


def record_scoring_event(player_id, tournament_id, points, is_correct):
    """
    Apply one scored prediction to the player's global and tournament stats.

    Rows are read FOR UPDATE so two scoring runs touching the same player
    serialize on the database. A missing tournament row is created from this
    single event.

    Args:
        player_id: Player ID
        tournament_id: Tournament ID, or None for matches outside a tournament
        points: points earned by the prediction
        is_correct: whether the pick matched the outcome
    """
    player = Player.query.filter_by(id=player_id).with_for_update().first()
    if player is None:
        raise NotFoundError(f"Player {player_id} not found")

    _apply_to_row(player, points, is_correct)

    if tournament_id is None:
        return player, None

    tournament_stats = (
        PlayerTournamentStats.query.filter_by(
            player_id=player_id, tournament_id=tournament_id
        )
        .with_for_update()
        .first()
    )

    if tournament_stats is None:
        tournament_stats = PlayerTournamentStats(
            player_id=player_id, tournament_id=tournament_id
        )
        tournament_stats.set_stats(
            apply_scoring_event(EMPTY_STATS, points, is_correct)
        )
        db.session.add(tournament_stats)
        logger.debug(
            f"Enrolled player {player_id} in tournament {tournament_id} stats"
        )
    else:
        _apply_to_row(tournament_stats, points, is_correct)

    return player, tournament_stats
