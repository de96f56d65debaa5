"""
Leaderboard recalculation

Stats columns on Player and PlayerTournamentStats are rebuilt from scored
prediction history with the same aggregation used for incremental updates,
then ranked. Rebuilding twice without new scores yields identical ranks.
"""

import logging
from collections import defaultdict

from sqlalchemy.exc import SQLAlchemyError

from matchday import db
from matchday.errors import ConflictError, NotFoundError
from matchday.models import (
    ChampionPredictionConfig,
    Match,
    Player,
    PlayerTournamentStats,
    Prediction,
    Tournament,
    get_or_none,
)
from matchday.models.prediction import SCORED
from matchday.models.scoring_config import LOCKED
from matchday.services.stats_service import aggregate_stats
from matchday.utils.cache_utils import invalidate_model_cache
from matchday.utils.logging_config import ContextualLogger
from matchday.utils.performance import timer

logger = logging.getLogger(__name__)

MAX_LEADERBOARD_LIMIT = 100


def clamp_leaderboard_limit(limit):
    """None keeps the whole board; other values are clamped to 1..MAX"""
    if limit is None:
        return None
    return max(1, min(int(limit), MAX_LEADERBOARD_LIMIT))


def global_rank_key(player):
    return (-(player.total_points or 0), player.id)


def tournament_rank_key(stats):
    display_name = stats.player.display_name if stats.player else ""
    return (-(stats.total_points or 0), (display_name or "").lower(), stats.player_id)


def assign_ranks(rows, key):
    """Sort rows by key and number them 1..N"""
    ordered = sorted(rows, key=key)
    for position, row in enumerate(ordered, start=1):
        row.rank = position
    return ordered


def _group_by_player(predictions):
    grouped = defaultdict(list)
    for prediction in predictions:
        grouped[prediction.player_id].append(prediction)
    return grouped


class LeaderboardService:
    """Rebuild and read rankings"""

    @timer
    def recalculate(self, tournament_id=None):
        """
        Full rebuild of stats and ranks.

        Without a tournament every Player is rebuilt and ranked by points,
        ties broken by player ID. With a tournament every
        PlayerTournamentStats row of that tournament is rebuilt and ranked by
        points, ties broken by display name (case-insensitive).
        """
        if tournament_id is None:
            count = self._recalculate_global()
            message = f"Global leaderboard recalculated for {count} player(s)"
        else:
            count = self._recalculate_tournament(tournament_id)
            message = (
                f"Tournament leaderboard recalculated for {count} player(s)"
            )

        self._commit()
        invalidate_model_cache("leaderboard")

        return {"success": True, "message": message, "count": count}

    def _recalculate_global(self):
        log = ContextualLogger(__name__, {"scope": "global"})

        scored = Prediction.query.filter_by(status=SCORED).all()
        history = _group_by_player(scored)

        players = Player.query.all()
        for player in players:
            player.set_stats(aggregate_stats(history.get(player.id, [])))

        assign_ranks(players, global_rank_key)
        log.info(f"Rebuilt stats for {len(players)} players from {len(scored)} scored predictions")
        return len(players)

    def _recalculate_tournament(self, tournament_id):
        tournament = get_or_none(Tournament, tournament_id)
        if tournament is None:
            raise NotFoundError("Tournament not found")
        tournament_id = tournament.id

        log = ContextualLogger(__name__, {"tournament_id": tournament_id})

        scored = (
            Prediction.query.join(Match, Prediction.match_id == Match.id)
            .filter(Match.tournament_id == tournament_id, Prediction.status == SCORED)
            .all()
        )
        history = _group_by_player(scored)

        rows = PlayerTournamentStats.query.filter_by(tournament_id=tournament_id).all()
        for row in rows:
            row.set_stats(aggregate_stats(history.get(row.player_id, [])))

        assign_ranks(rows, tournament_rank_key)
        log.info(f"Rebuilt stats for {len(rows)} players from {len(scored)} scored predictions")
        return len(rows)

    def tournament_leaderboard(self, tournament_id, limit=None):
        """Tournament standings of players, ranked like the rebuild"""
        tournament = get_or_none(Tournament, tournament_id)
        if tournament is None:
            raise NotFoundError("Tournament not found")

        rows = PlayerTournamentStats.query.filter_by(tournament_id=tournament.id).all()
        ordered = sorted(rows, key=tournament_rank_key)
        limit = clamp_leaderboard_limit(limit)
        if limit is not None:
            ordered = ordered[:limit]

        entries = []
        for position, row in enumerate(ordered, start=1):
            entry = row.to_dict()
            entry["rank"] = position
            entries.append(entry)
        return entries

    def global_leaderboard(self, limit=None):
        players = Player.get_global_leaderboard(clamp_leaderboard_limit(limit))
        return [player.to_dict() for player in players]

    def lock_champion_predictions(self, tournament_id):
        """Close the champion pick window of a tournament"""
        config = ChampionPredictionConfig.query.filter_by(
            tournament_id=tournament_id
        ).first()
        if config is None:
            raise NotFoundError("Champion prediction config not found")

        if config.betting_status == LOCKED:
            raise ConflictError("Champion predictions are already locked")

        config.betting_status = LOCKED
        self._commit()

        logger.info(f"Champion predictions locked for tournament {tournament_id}")
        return {"success": True, "message": "Champion predictions locked"}

    def _commit(self):
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error during commit: {e}")
            db.session.rollback()
            raise
