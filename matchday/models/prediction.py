from datetime import datetime, timezone

from matchday import db

DRAFT = "draft"
SUBMITTED = "submitted"
LOCKED = "locked"
SCORED = "scored"

# Once in one of these states the pick cannot change
FROZEN_STATUSES = (LOCKED, SCORED)


class Prediction(db.Model):
    """Win/draw/lose pick for one match"""

    __tablename__ = "predictions"

    id = db.Column(db.Integer, primary_key=True)

    # Prediction identification
    player_id = db.Column(db.Integer, db.ForeignKey("players.id"), nullable=False)
    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"), nullable=False)
    tournament_id = db.Column(
        db.Integer, db.ForeignKey("tournaments.id"), nullable=True
    )

    # Prediction details
    pick = db.Column(db.String(10), nullable=False)  # home, draw, away
    status = db.Column(db.String(20), nullable=False, default=SUBMITTED)

    # Results (calculated after the match finishes)
    is_correct = db.Column(db.Boolean)
    points_earned = db.Column(db.Float, default=0.0)

    # Timestamps
    submitted_at = db.Column(db.DateTime(timezone=True))
    scored_at = db.Column(db.DateTime(timezone=True))
    locked_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Constraints and indexes
    __table_args__ = (
        db.UniqueConstraint("player_id", "match_id", name="unique_player_match_prediction"),
        db.Index("idx_prediction_match_status", "match_id", "status"),
        db.Index("idx_prediction_player_status", "player_id", "status"),
        db.Index("idx_prediction_tournament", "tournament_id"),
    )

    def __repr__(self):
        return f"<Prediction player_id={self.player_id} match_id={self.match_id} pick={self.pick} status={self.status}>"

    @property
    def is_frozen(self):
        """Locked or scored predictions keep their pick"""
        return self.status in FROZEN_STATUSES

    def to_dict(self):
        """Convert prediction to dictionary for API responses"""
        return {
            "id": self.id,
            "player_id": self.player_id,
            "match_id": self.match_id,
            "tournament_id": self.tournament_id,
            "pick": self.pick,
            "status": self.status,
            "is_correct": self.is_correct,
            "points_earned": self.points_earned or 0,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "scored_at": self.scored_at.isoformat() if self.scored_at else None,
        }
