"""
Match result entry

Entering a result is a one-way transition: the match becomes finished, every
prediction on it is scored, score bets are settled and untouched predictions
are locked. Results are write-once; a second entry is rejected.
"""

import logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from matchday import db
from matchday.errors import ConflictError, NotFoundError, PredictionError
from matchday.models import (
    Match,
    MatchOutcomeConfig,
    Prediction,
    ScoreBet,
    ScorePredictionConfig,
    get_or_none,
)
from matchday.models.match import FINISHED
from matchday.models.prediction import DRAFT, LOCKED, SCORED, SUBMITTED
from matchday.models.score_bet import LOST, PENDING, WON
from matchday.services.stats_service import record_scoring_event
from matchday.services.submission_service import validate_score
from matchday.utils.cache_utils import invalidate_model_cache
from matchday.utils.logging_config import ContextualLogger
from matchday.utils.performance import PerformanceMonitor
from matchday.utils.scoring import (
    FLAT_POLICY,
    WEIGHTED_POLICY,
    ScoringEngine,
    calculate_score_bet_payout,
    determine_outcome,
    is_exact_score,
)
from matchday.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)


class ResultService:
    """Enter final scores and score everything attached to the match

    Args:
        policy: outcome scoring policy, "flat" or "weighted"; defaults to the
            OUTCOME_SCORING_POLICY setting
        clock: callable returning the current aware UTC datetime
    """

    def __init__(self, policy=None, clock=get_utc_time):
        self.policy = policy
        self.clock = clock

    def _engine(self):
        policy = self.policy or current_app.config.get(
            "OUTCOME_SCORING_POLICY", FLAT_POLICY
        )
        outcome_settings = (
            MatchOutcomeConfig.current_settings() if policy == WEIGHTED_POLICY else None
        )
        return ScoringEngine(policy, outcome_settings)

    def enter_match_result(self, match_id, home_score, away_score):
        """
        Record the final score of a match and score its predictions and bets.

        Each prediction (with its stats update) and each bet is written in its
        own savepoint. An item that fails is rolled back, logged and listed
        under "failures"; the other items are still scored.

        Returns:
            dict: success, message, predictions_scored, score_bets_scored,
            predictions_locked, failures

        Raises:
            InvalidArgumentError: score not a whole number in [0, 99]
            NotFoundError: no such match
            ConflictError: result already entered
        """
        validate_score(home_score)
        validate_score(away_score)

        match = get_or_none(Match, match_id)
        if match is None:
            raise NotFoundError("Match not found")

        if match.status == FINISHED:
            raise ConflictError("Match result has already been entered")

        engine = self._engine()
        log = ContextualLogger(
            __name__, {"match_id": match.id, "policy": engine.policy}
        )

        with PerformanceMonitor(f"enter_match_result match={match.id}"):
            outcome = determine_outcome(home_score, away_score)
            self._finish_match(match, home_score, away_score, outcome)

            now = self.clock()
            failures = []
            predictions_scored = self._score_predictions(
                match, outcome, engine, now, failures, log
            )
            score_bets_scored = self._settle_score_bets(
                match, home_score, away_score, failures, log
            )
            predictions_locked = self._lock_remaining_predictions(match, now)

            try:
                db.session.commit()
            except SQLAlchemyError as e:
                log.error(f"Error committing match result: {e}")
                db.session.rollback()
                raise

        invalidate_model_cache("leaderboard")

        log.info(
            f"Result {home_score}-{away_score} ({outcome}) entered: "
            f"{predictions_scored} predictions scored, "
            f"{score_bets_scored} score bets settled, "
            f"{len(failures)} failures"
        )

        home_name = match.home_team.name if match.home_team else "Home"
        away_name = match.away_team.name if match.away_team else "Away"
        return {
            "success": True,
            "message": (
                f"Result saved: {home_name} {home_score}-{away_score} {away_name}. "
                f"{predictions_scored} prediction(s) scored, "
                f"{score_bets_scored} score bet(s) settled."
            ),
            "outcome": outcome,
            "predictions_scored": predictions_scored,
            "score_bets_scored": score_bets_scored,
            "predictions_locked": predictions_locked,
            "failures": failures,
        }

    def _finish_match(self, match, home_score, away_score, outcome):
        """Conditional update so only one concurrent entry can finish the match"""
        updated = Match.query.filter(
            Match.id == match.id, Match.status != FINISHED
        ).update(
            {
                Match.home_score: home_score,
                Match.away_score: away_score,
                Match.outcome: outcome,
                Match.status: FINISHED,
            },
            synchronize_session=False,
        )

        if updated == 0:
            db.session.rollback()
            raise ConflictError("Match result has already been entered")

        db.session.expire(match)

    def _score_predictions(self, match, outcome, engine, now, failures, log):
        predictions = (
            Prediction.query.filter(
                Prediction.match_id == match.id, Prediction.status != SCORED
            )
            .order_by(Prediction.id)
            .all()
        )

        scored = 0
        for prediction in predictions:
            prediction_id = prediction.id
            try:
                with db.session.begin_nested():
                    is_correct = prediction.pick == outcome
                    points = engine.points_for(prediction.pick, outcome, match)

                    prediction.is_correct = is_correct
                    prediction.points_earned = points
                    prediction.status = SCORED
                    prediction.scored_at = now

                    record_scoring_event(
                        prediction.player_id, match.tournament_id, points, is_correct
                    )
                scored += 1
            except (SQLAlchemyError, PredictionError) as e:
                log.error(f"Failed to score prediction {prediction_id}: {e}")
                failures.append({"prediction_id": prediction_id, "error": str(e)})

        return scored

    def _settle_score_bets(self, match, home_score, away_score, failures, log):
        all_bets = ScoreBet.query.filter_by(match_id=match.id).all()
        pending = sorted(
            (bet for bet in all_bets if bet.status == PENDING), key=lambda b: b.id
        )
        if not pending:
            return 0

        settings, match_config = ScorePredictionConfig.settings_for_match(match.id)

        settled = 0
        for bet in pending:
            bet_id = bet.id
            try:
                with db.session.begin_nested():
                    is_correct = is_exact_score(bet, home_score, away_score)
                    payout = 0
                    if is_correct and match_config is not None:
                        payout = calculate_score_bet_payout(bet, all_bets, settings)

                    bet.is_correct = is_correct
                    bet.payout = payout
                    bet.status = WON if is_correct else LOST
                settled += 1
            except SQLAlchemyError as e:
                log.error(f"Failed to settle score bet {bet_id}: {e}")
                failures.append({"score_bet_id": bet_id, "error": str(e)})

        return settled

    def _lock_remaining_predictions(self, match, now):
        """Predictions left unscored are frozen so they can no longer change"""
        return Prediction.query.filter(
            Prediction.match_id == match.id,
            Prediction.status.in_([DRAFT, SUBMITTED]),
        ).update(
            {Prediction.status: LOCKED, Prediction.locked_at: now},
            synchronize_session=False,
        )
