"""
Admin-controlled scoring parameters

Each model converts itself to the matching settings dataclass from
matchday.utils.scoring; a missing row means the dataclass defaults apply.
"""

from dataclasses import replace
from datetime import datetime, timezone

from matchday import db
from matchday.utils.scoring import (
    ChampionSettings,
    OutcomeScoringSettings,
    ScoreBetSettings,
)
from matchday.utils.timezone_utils import ensure_utc

OPEN = "open"
LOCKED = "locked"
CLOSED = "closed"


class ScorePredictionConfig(db.Model):
    """Global exact-score betting rules and payout formula parameters"""

    __tablename__ = "score_prediction_configs"

    id = db.Column(db.Integer, primary_key=True)

    enabled = db.Column(db.Boolean, default=True)
    base_price = db.Column(db.Integer, default=50000)
    lock_before_match = db.Column(db.Integer, default=30)  # minutes
    max_bets_per_match = db.Column(db.Integer, default=3)
    allow_duplicate_bets = db.Column(db.Boolean, default=True)
    max_duplicates = db.Column(db.Integer, nullable=True)

    base_reward = db.Column(db.Float, default=200000)
    bonus_multiplier = db.Column(db.Float, default=1.5)
    platform_fee = db.Column(db.Float, default=5)  # percent
    duplicate_multiplier = db.Column(db.Float, default=2.0)

    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_settings(self):
        defaults = ScoreBetSettings()
        return ScoreBetSettings(
            enabled=self.enabled is not False,
            base_price=_or_default(self.base_price, defaults.base_price),
            lock_before_match=_or_default(
                self.lock_before_match, defaults.lock_before_match
            ),
            max_bets_per_match=_or_default(
                self.max_bets_per_match, defaults.max_bets_per_match
            ),
            allow_duplicate_bets=self.allow_duplicate_bets is not False,
            max_duplicates=self.max_duplicates,
            base_reward=_or_default(self.base_reward, defaults.base_reward),
            bonus_multiplier=_or_default(
                self.bonus_multiplier, defaults.bonus_multiplier
            ),
            platform_fee=_or_default(self.platform_fee, defaults.platform_fee),
            duplicate_multiplier=_or_default(
                self.duplicate_multiplier, defaults.duplicate_multiplier
            ),
        )

    @staticmethod
    def current_settings():
        config = ScorePredictionConfig.query.first()
        return config.to_settings() if config else ScoreBetSettings()

    @staticmethod
    def settings_for_match(match_id):
        """Global settings overlaid with the match's own config row

        Returns:
            tuple: (ScoreBetSettings, MatchScoreBetConfig or None)
        """
        settings = ScorePredictionConfig.current_settings()
        match_config = MatchScoreBetConfig.query.filter_by(match_id=match_id).first()
        if match_config is None:
            return settings, None

        overrides = {"enabled": settings.enabled and match_config.enabled is not False}
        if match_config.max_bets is not None:
            overrides["max_bets_per_match"] = match_config.max_bets
        if match_config.prize is not None:
            overrides["base_reward"] = match_config.prize
        return replace(settings, **overrides), match_config


class MatchScoreBetConfig(db.Model):
    """Per-match exact-score betting switch and overrides"""

    __tablename__ = "match_score_bet_configs"

    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(
        db.Integer, db.ForeignKey("matches.id"), nullable=False, unique=True
    )

    enabled = db.Column(db.Boolean, default=True)
    max_bets = db.Column(db.Integer, nullable=True)
    prize = db.Column(db.Float, nullable=True)  # replaces base_reward when set

    def __repr__(self):
        return f"<MatchScoreBetConfig match_id={self.match_id} enabled={self.enabled}>"


class MatchOutcomeConfig(db.Model):
    """Win/draw/lose points for the weighted outcome policy"""

    __tablename__ = "match_outcome_configs"

    id = db.Column(db.Integer, primary_key=True)
    points_for_win = db.Column(db.Float, default=3)
    points_for_draw = db.Column(db.Float, default=1)
    points_for_lose = db.Column(db.Float, default=0)

    def to_settings(self):
        defaults = OutcomeScoringSettings()
        return OutcomeScoringSettings(
            points_for_win=_or_default(self.points_for_win, defaults.points_for_win),
            points_for_draw=_or_default(
                self.points_for_draw, defaults.points_for_draw
            ),
            points_for_lose=_or_default(
                self.points_for_lose, defaults.points_for_lose
            ),
        )

    @staticmethod
    def current_settings():
        config = MatchOutcomeConfig.query.first()
        return config.to_settings() if config else OutcomeScoringSettings()


class ChampionPredictionConfig(db.Model):
    """Champion pick window for one tournament"""

    __tablename__ = "champion_prediction_configs"

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(
        db.Integer, db.ForeignKey("tournaments.id"), nullable=False, unique=True
    )

    enabled = db.Column(db.Boolean, default=True)
    betting_status = db.Column(db.String(20), default=OPEN)  # open, locked, closed
    allow_change_prediction = db.Column(db.Boolean, default=True)
    change_deadline = db.Column(db.DateTime(timezone=True), nullable=True)
    prize_pool = db.Column(db.String(200))

    tournament = db.relationship(
        "Tournament",
        backref=db.backref("champion_config", uselist=False),
    )

    def __repr__(self):
        return f"<ChampionPredictionConfig tournament_id={self.tournament_id} {self.betting_status}>"

    def to_settings(self):
        return ChampionSettings(
            enabled=self.enabled is not False,
            betting_status=self.betting_status or OPEN,
            allow_change_prediction=self.allow_change_prediction is not False,
            change_deadline=ensure_utc(self.change_deadline),
        )


def _or_default(value, default):
    return default if value is None else value
