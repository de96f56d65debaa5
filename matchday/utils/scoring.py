"""
Scoring Engine for the Matchday predictor

This module holds the pure scoring rules: match outcome, win/draw/lose
prediction points, exact-score bet payouts and streaks. Nothing in here
touches the database. For persisted aggregates and rankings, see
matchday/services/stats_service.py and matchday/services/leaderboard_service.py
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from matchday.utils.timezone_utils import ensure_utc

HOME = "home"
DRAW = "draw"
AWAY = "away"
OUTCOMES = (HOME, DRAW, AWAY)

# Outcome scoring policies (two call sites, two rules)
FLAT_POLICY = "flat"
WEIGHTED_POLICY = "weighted"
POLICIES = (FLAT_POLICY, WEIGHTED_POLICY)


@dataclass(frozen=True)
class OutcomeScoringSettings:
    """Points for a win/draw/lose prediction before the match weight is applied

    Defaults: 3 points for the exact outcome, 1 point when either the pick or
    the result is a draw, 0 otherwise.
    """

    points_for_win: float = 3
    points_for_draw: float = 1
    points_for_lose: float = 0


@dataclass(frozen=True)
class ScoreBetSettings:
    """Exact-score betting parameters

    enabled:              score betting accepted at all (default True)
    base_price:           stake recorded on each bet (default 50000)
    lock_before_match:    minutes before kickoff the window closes (default 30)
    max_bets_per_match:   bets per player and match (default 3)
    allow_duplicate_bets: same score may be bet more than once (default True)
    max_duplicates:       cap on identical bets when duplicates are allowed
                          (default None, no cap)
    base_reward:          reward for an exact hit (default 200000)
    bonus_multiplier:     multiplier applied to every hit (default 1.5)
    platform_fee:         percent withheld from the payout (default 5)
    duplicate_multiplier: multiplier when the same score was bet more than
                          once (default 2.0)
    """

    enabled: bool = True
    base_price: int = 50000
    lock_before_match: int = 30
    max_bets_per_match: int = 3
    allow_duplicate_bets: bool = True
    max_duplicates: Optional[int] = None
    base_reward: float = 200000
    bonus_multiplier: float = 1.5
    platform_fee: float = 5
    duplicate_multiplier: float = 2.0


@dataclass(frozen=True)
class ChampionSettings:
    """Tournament champion pick parameters

    enabled:                 champion picks accepted at all (default True)
    betting_status:          "open", "locked" or "closed" (default "open")
    allow_change_prediction: an existing pick may be replaced (default True)
    change_deadline:         no changes after this instant (default None)
    """

    enabled: bool = True
    betting_status: str = "open"
    allow_change_prediction: bool = True
    change_deadline: Optional[datetime] = None


def determine_outcome(home_score, away_score):
    """Return "home", "away" or "draw" for a final score"""
    if home_score > away_score:
        return HOME
    if home_score < away_score:
        return AWAY
    return DRAW


def score_prediction(pick, actual_outcome, match_weight=1, config=None):
    """
    Weighted win/draw/lose points for a single prediction.

    Returns:
        points_for_win * weight when the pick matches the outcome
        points_for_draw * weight when the pick or the outcome is a draw
        points_for_lose * weight otherwise

    Args:
        pick: "home", "draw" or "away"
        actual_outcome: outcome of the finished match
        match_weight: per-match multiplier, falsy values count as 1
        config: OutcomeScoringSettings, defaults when None
    """
    config = config or OutcomeScoringSettings()
    weight = match_weight or 1

    if pick == actual_outcome:
        return config.points_for_win * weight

    # Partial credit: any draw on either side, correct or not
    if pick == DRAW or actual_outcome == DRAW:
        return config.points_for_draw * weight

    return config.points_for_lose * weight


def score_prediction_flat(pick, actual_outcome, outcome_points):
    """Flat policy used by result entry: full match points or nothing"""
    return outcome_points if pick == actual_outcome else 0


def is_exact_score(bet, home_score, away_score):
    return (
        bet.predicted_home_score == home_score
        and bet.predicted_away_score == away_score
    )


def count_duplicates(bet, all_bets_for_match):
    """Bets by the same player on the same score, the bet itself included"""
    return sum(
        1
        for other in all_bets_for_match
        if other.player_id == bet.player_id
        and other.predicted_home_score == bet.predicted_home_score
        and other.predicted_away_score == bet.predicted_away_score
    )


def _round_half_up(value):
    return int(math.floor(value + 0.5))


def calculate_score_bet_payout(bet, all_bets_for_match, config=None):
    """
    Payout for an exact-score hit.

    payout = base_reward * effective_multiplier * bonus_multiplier
             * (1 - platform_fee / 100)

    effective_multiplier is duplicate_multiplier when the player bet this
    score more than once for the match, otherwise 1. Callers only pass bets
    that hit the final score.
    """
    config = config or ScoreBetSettings()

    duplicate_count = count_duplicates(bet, all_bets_for_match)
    effective_multiplier = config.duplicate_multiplier if duplicate_count > 1 else 1

    gross = config.base_reward * effective_multiplier * config.bonus_multiplier
    net = gross * (1 - config.platform_fee / 100)

    return _round_half_up(net)


def scored_order_key(prediction):
    """Sort key putting scored predictions oldest first (unscored first of all)"""
    scored_at = ensure_utc(getattr(prediction, "scored_at", None))
    return scored_at.timestamp() if scored_at else 0.0


def advance_streak(current_streak, best_streak, is_correct):
    """Streaks after one more scored prediction"""
    current_streak = (current_streak or 0) + 1 if is_correct else 0
    return current_streak, max(best_streak or 0, current_streak)


def calculate_streaks(predictions: Iterable):
    """
    Current and best streak of correct predictions.

    Predictions are ordered by scored_at ascending (missing timestamps sort
    first). The current streak is the run still open after the most recent
    prediction, so it is 0 when that one was wrong.

    Returns:
        dict with "current_streak" and "best_streak"
    """
    running = 0
    best = 0
    for prediction in sorted(predictions, key=scored_order_key):
        running, best = advance_streak(running, best, prediction.is_correct)

    return {"current_streak": running, "best_streak": best}


class ScoringEngine:
    """Outcome scoring with a selectable policy

    "flat" awards the match's outcome_points for a correct pick and nothing
    otherwise. "weighted" applies score_prediction() with the match weight.
    """

    def __init__(self, policy=FLAT_POLICY, outcome_settings=None):
        if policy not in POLICIES:
            raise ValueError(f"Unknown scoring policy: {policy}")
        self.policy = policy
        self.outcome_settings = outcome_settings or OutcomeScoringSettings()

    determine_outcome = staticmethod(determine_outcome)
    calculate_score_bet_payout = staticmethod(calculate_score_bet_payout)
    calculate_streaks = staticmethod(calculate_streaks)

    def points_for(self, pick, outcome, match):
        """Points for a pick on a finished match under the active policy"""
        if self.policy == WEIGHTED_POLICY:
            return score_prediction(
                pick, outcome, match.weight, self.outcome_settings
            )
        return score_prediction_flat(pick, outcome, match.outcome_points)
