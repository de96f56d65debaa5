from datetime import datetime, timezone

from matchday import db
from matchday.utils.timezone_utils import (
    convert_to_app_timezone,
    ensure_utc,
    format_kickoff,
)

UPCOMING = "upcoming"
LIVE = "live"
FINISHED = "finished"


class Match(db.Model):
    __tablename__ = "matches"

    id = db.Column(db.Integer, primary_key=True)

    # Match identification
    tournament_id = db.Column(
        db.Integer, db.ForeignKey("tournaments.id"), nullable=True
    )
    stage = db.Column(db.String(20), default="group")  # group, roundOf16, ..., final
    matchday = db.Column(db.Integer)
    venue = db.Column(db.String(120))

    # Teams
    home_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    away_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)

    # Match timing
    kickoff = db.Column(db.DateTime(timezone=True), nullable=False)

    # Lifecycle: upcoming -> live -> finished (terminal)
    status = db.Column(db.String(20), nullable=False, default=UPCOMING)

    # Result, written once when the match finishes
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)
    outcome = db.Column(db.String(10))  # home, draw, away

    # Scoring parameters
    weight = db.Column(db.Float, default=1.0)
    outcome_points = db.Column(db.Float, default=1.0)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    predictions = db.relationship(
        "Prediction", backref="match", lazy="dynamic", cascade="all, delete-orphan"
    )
    score_bets = db.relationship(
        "ScoreBet", backref="match", lazy="dynamic", cascade="all, delete-orphan"
    )
    score_bet_config = db.relationship(
        "MatchScoreBetConfig",
        backref="match",
        uselist=False,
        cascade="all, delete-orphan",
    )

    # Indexes
    __table_args__ = (
        db.Index("idx_match_tournament_status", "tournament_id", "status"),
        db.Index("idx_match_kickoff", "kickoff"),
        db.CheckConstraint("home_team_id != away_team_id", name="different_teams"),
    )

    def __repr__(self):
        return f'<Match {self.home_team.name if self.home_team else "TBD"} vs {self.away_team.name if self.away_team else "TBD"}>'

    @property
    def kickoff_utc(self):
        return ensure_utc(self.kickoff)

    def has_kicked_off(self, now=None):
        """Check if kickoff time has been reached"""
        now = ensure_utc(now) or datetime.now(timezone.utc)
        return now >= self.kickoff_utc

    def to_dict(self):
        """Convert match to dictionary for API responses"""
        return {
            "id": self.id,
            "tournament_id": self.tournament_id,
            "home_team": self.home_team.to_dict() if self.home_team else None,
            "away_team": self.away_team.to_dict() if self.away_team else None,
            "kickoff": self.kickoff_utc.isoformat() if self.kickoff else None,
            "kickoff_local": (
                convert_to_app_timezone(self.kickoff).isoformat()
                if self.kickoff
                else None
            ),
            "kickoff_display": format_kickoff(self.kickoff),
            "venue": self.venue,
            "stage": self.stage,
            "matchday": self.matchday,
            "status": self.status,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "outcome": self.outcome,
            "weight": self.weight,
            "outcome_points": self.outcome_points,
        }
