"""
Player submissions: win/draw/lose predictions, exact-score bets and
champion picks.

Every submission runs its admissibility checks in a fixed order and raises
the first violated rule (see matchday/errors.py) before anything is written.
Batch prediction submissions check each item on its own; a rejected item is
reported and its siblings are still saved.
"""

import logging
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from matchday import db
from matchday.errors import (
    ConflictError,
    DisabledError,
    InvalidArgumentError,
    NotFoundError,
    PredictionError,
)
from matchday.models import (
    ChampionPick,
    ChampionPredictionConfig,
    Match,
    Player,
    Prediction,
    ScoreBet,
    ScorePredictionConfig,
    Team,
    Tournament,
    get_or_none,
)
from matchday.models.match import UPCOMING
from matchday.models.prediction import SUBMITTED
from matchday.models.score_bet import MAX_SCORE, MIN_SCORE, PENDING
from matchday.models.scoring_config import OPEN
from matchday.services.identity import resolve_or_create_player
from matchday.utils.scoring import OUTCOMES
from matchday.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 5


def validate_pick(pick):
    if pick not in OUTCOMES:
        raise InvalidArgumentError(
            f'Invalid pick "{pick}". Must be: {", ".join(OUTCOMES)}'
        )


def validate_score(value):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError("Score must be a whole number")
    if value < MIN_SCORE or value > MAX_SCORE:
        raise InvalidArgumentError(
            f"Score must be between {MIN_SCORE} and {MAX_SCORE}"
        )


def is_valid_score(value):
    try:
        validate_score(value)
    except InvalidArgumentError:
        return False
    return True


class SubmissionService:
    """Admissibility gates and writes for player submissions

    Args:
        resolve_player: callable mapping an identity to a Player ID,
            provisioning the player when needed
        clock: callable returning the current aware UTC datetime
    """

    def __init__(self, resolve_player=resolve_or_create_player, clock=get_utc_time):
        self.resolve_player = resolve_player
        self.clock = clock

    # ── Predictions (win/draw/lose) ─────────────────────────

    def submit_predictions(self, identity, predictions):
        """
        Save a batch of outcome predictions.

        Args:
            identity: caller identity
            predictions: list of {"match_id": ..., "pick": ...}

        Returns:
            dict: success, message, count and up to five item errors
        """
        if not predictions:
            raise InvalidArgumentError("No predictions provided")

        player_id = self.resolve_player(identity)
        now = self.clock()
        saved_count = 0
        errors = []

        for item in predictions:
            match_id = item.get("match_id")
            try:
                with db.session.begin_nested():
                    self._save_prediction(player_id, match_id, item.get("pick"), now)
                saved_count += 1
            except PredictionError as e:
                logger.debug(f"Prediction for match {match_id} rejected: {e.message}")
                errors.append(e.message)

        self._commit()

        return {
            "success": saved_count > 0,
            "message": f"{saved_count} prediction(s) saved",
            "count": saved_count,
            "errors": errors[:MAX_REPORTED_ERRORS],
        }

    def _save_prediction(self, player_id, match_id, pick, now):
        match = self._get_open_match(match_id, now, "predictions")
        validate_pick(pick)
        self._upsert_prediction(player_id, match, pick, now)

    def _upsert_prediction(self, player_id, match, pick, now):
        existing = Prediction.query.filter_by(
            player_id=player_id, match_id=match.id
        ).first()

        if existing:
            if existing.is_frozen:
                raise ConflictError(
                    f"Prediction for match {match.id} is already locked"
                )
            existing.pick = pick
            existing.submitted_at = now
            return existing

        prediction = Prediction(
            player_id=player_id,
            match_id=match.id,
            tournament_id=match.tournament_id,
            pick=pick,
            status=SUBMITTED,
            submitted_at=now,
        )
        db.session.add(prediction)
        return prediction

    def _get_open_match(self, match_id, now, purpose):
        match = get_or_none(Match, match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found")

        if match.status != UPCOMING:
            raise ConflictError(
                f"Match {match_id} is no longer open for {purpose}"
            )

        if match.has_kicked_off(now):
            raise ConflictError(f"Match {match_id} has already kicked off")

        return match

    # ── Score bets (exact score) ────────────────────────────

    def submit_score_bet(self, identity, match_id, home_score, away_score):
        """Place one exact-score bet"""
        match = get_or_none(Match, match_id)

        settings, _ = ScorePredictionConfig.settings_for_match(
            match.id if match else None
        )
        if not settings.enabled:
            raise DisabledError(
                "Score predictions are currently disabled for this match"
            )

        if match is None:
            raise NotFoundError("Match not found")
        if match.status != UPCOMING:
            raise ConflictError("Match is no longer open for bets")

        now = self.clock()
        self._check_betting_window(match, settings, now)

        validate_score(home_score)
        validate_score(away_score)

        player_id = self.resolve_player(identity)
        self._lock_player(player_id)

        existing_bets = ScoreBet.query.filter_by(
            player_id=player_id, match_id=match.id
        ).all()

        if len(existing_bets) >= settings.max_bets_per_match:
            raise ConflictError(
                f"Maximum {settings.max_bets_per_match} bets per match reached"
            )

        identical = [
            bet
            for bet in existing_bets
            if bet.predicted_home_score == home_score
            and bet.predicted_away_score == away_score
        ]
        if not settings.allow_duplicate_bets:
            if identical:
                raise ConflictError(
                    f"You already placed a bet on {home_score}-{away_score} for this match"
                )
        elif settings.max_duplicates is not None and len(identical) >= settings.max_duplicates:
            raise ConflictError(
                f"Maximum {settings.max_duplicates} identical bets on "
                f"{home_score}-{away_score} reached"
            )

        bet = ScoreBet(
            player_id=player_id,
            match_id=match.id,
            predicted_home_score=home_score,
            predicted_away_score=away_score,
            bet_amount=settings.base_price,
            status=PENDING,
            submitted_at=now,
        )
        db.session.add(bet)
        self._commit()

        logger.info(
            f"Player {player_id} bet {home_score}-{away_score} on match {match.id}"
        )
        return {
            "success": True,
            "message": f"Score bet {home_score}-{away_score} placed successfully",
            "bet": bet.to_dict(),
        }

    def _check_betting_window(self, match, settings, now):
        closes_at = match.kickoff_utc - timedelta(minutes=settings.lock_before_match)
        if now >= closes_at:
            raise ConflictError("Betting window has closed for this match")

    def _lock_player(self, player_id):
        """Serialize concurrent bets by the same player"""
        Player.query.filter_by(id=player_id).with_for_update().first()

    # ── Combined pick + score bets ──────────────────────────

    def submit_match_prediction(self, identity, match_id, pick=None, scores=None):
        """
        Save the outcome pick and replace the player's score bets for a match.

        Out-of-range scores are dropped; the rest are capped at the match's
        bet limit (and de-duplicated when duplicate bets are off).
        """
        now = self.clock()
        match = self._get_open_match(match_id, now, "predictions")

        if pick is not None:
            validate_pick(pick)

        settings = None
        if scores:
            settings, match_config = ScorePredictionConfig.settings_for_match(match.id)
            if match_config is None or not settings.enabled:
                raise DisabledError(
                    "Score predictions are not available for this match"
                )
            self._check_betting_window(match, settings, now)

        player_id = self.resolve_player(identity)

        try:
            if pick is not None:
                self._upsert_prediction(player_id, match, pick, now)

            saved_bets = 0
            if scores:
                saved_bets = self._replace_score_bets(
                    player_id, match, scores, settings, now
                )

            self._commit()
        except PredictionError:
            db.session.rollback()
            raise

        return {
            "success": True,
            "message": "Prediction saved successfully",
            "score_bets": saved_bets,
        }

    def _replace_score_bets(self, player_id, match, scores, settings, now):
        ScoreBet.query.filter_by(player_id=player_id, match_id=match.id).delete(
            synchronize_session=False
        )

        accepted = []
        for entry in scores:
            home_score = entry.get("home_score")
            away_score = entry.get("away_score")
            if not (is_valid_score(home_score) and is_valid_score(away_score)):
                continue
            if not settings.allow_duplicate_bets and (home_score, away_score) in accepted:
                continue
            accepted.append((home_score, away_score))

        accepted = accepted[: settings.max_bets_per_match]
        for home_score, away_score in accepted:
            db.session.add(
                ScoreBet(
                    player_id=player_id,
                    match_id=match.id,
                    predicted_home_score=home_score,
                    predicted_away_score=away_score,
                    bet_amount=settings.base_price,
                    status=PENDING,
                    submitted_at=now,
                )
            )
        return len(accepted)

    def cancel_match_prediction(self, identity, match_id):
        """Remove the player's prediction and score bets for an open match"""
        now = self.clock()
        match = self._get_open_match(match_id, now, "changes")
        player_id = self.resolve_player(identity)

        existing = Prediction.query.filter_by(
            player_id=player_id, match_id=match.id
        ).first()

        if not existing:
            return {"success": True, "message": "No prediction to cancel"}

        if existing.is_frozen:
            raise ConflictError(
                "Prediction is already locked and cannot be cancelled"
            )

        db.session.delete(existing)
        ScoreBet.query.filter_by(player_id=player_id, match_id=match.id).delete(
            synchronize_session=False
        )
        self._commit()

        return {"success": True, "message": "Prediction cancelled successfully"}

    # ── Champion pick ───────────────────────────────────────

    def pick_champion(self, identity, team_id, tournament_id=None):
        """Create or change the player's tournament champion pick"""
        config = self._get_champion_config(tournament_id)
        settings = config.to_settings()

        if not settings.enabled:
            raise DisabledError("Champion predictions are disabled")

        if settings.betting_status != OPEN:
            raise ConflictError(
                f"Champion predictions are {settings.betting_status}"
            )

        team = get_or_none(Team, team_id)
        if team is None:
            raise NotFoundError("Team not found")

        eliminated = team.is_eliminated_from(config.tournament_id)
        if eliminated:
            raise ConflictError(f"{team.name} has been eliminated")
        if eliminated is None and config.tournament.get_team_ids():
            raise InvalidArgumentError(
                f"{team.name} is not playing in this tournament"
            )

        player_id = self.resolve_player(identity)
        now = self.clock()

        existing = ChampionPick.query.filter_by(
            player_id=player_id, tournament_id=config.tournament_id
        ).first()

        if existing:
            if not settings.allow_change_prediction:
                raise ConflictError("Champion pick cannot be changed")
            if settings.change_deadline and now > settings.change_deadline:
                raise ConflictError("Champion pick change deadline has passed")

            existing.team_id = team.id
            existing.picked_at = now
            self._commit()
            return {
                "success": True,
                "message": f"Champion pick updated to {team.name}",
            }

        db.session.add(
            ChampionPick(
                player_id=player_id,
                tournament_id=config.tournament_id,
                team_id=team.id,
                submitted_at=now,
                picked_at=now,
            )
        )
        self._commit()

        return {
            "success": True,
            "message": f"{team.name} selected as your champion prediction",
        }

    def _get_champion_config(self, tournament_id):
        if tournament_id is not None:
            tournament = get_or_none(Tournament, tournament_id)
            if tournament is None:
                raise NotFoundError("Tournament not found")
            config = ChampionPredictionConfig.query.filter_by(
                tournament_id=tournament.id
            ).first()
            if config is None:
                raise NotFoundError("Champion prediction config not found")
            return config

        open_configs = ChampionPredictionConfig.query.filter_by(
            betting_status=OPEN
        ).all()
        if not open_configs:
            raise ConflictError(
                "No tournament with open champion predictions found"
            )
        if len(open_configs) > 1:
            raise InvalidArgumentError(
                "Several tournaments are open for champion predictions; "
                "specify tournamentId"
            )
        return open_configs[0]

    # ── Helpers ─────────────────────────────────────────────

    def _commit(self):
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error during commit: {e}")
            db.session.rollback()
            raise
