from datetime import datetime, timezone

from matchday import db

PENDING = "pending"
WON = "won"
LOST = "lost"

MIN_SCORE = 0
MAX_SCORE = 99


class ScoreBet(db.Model):
    """Exact final score wager on one match"""

    __tablename__ = "score_bets"

    id = db.Column(db.Integer, primary_key=True)

    player_id = db.Column(db.Integer, db.ForeignKey("players.id"), nullable=False)
    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"), nullable=False)

    # Bet details
    predicted_home_score = db.Column(db.Integer, nullable=False)
    predicted_away_score = db.Column(db.Integer, nullable=False)
    bet_amount = db.Column(db.Integer, default=0)

    # Results
    status = db.Column(db.String(20), nullable=False, default=PENDING)
    is_correct = db.Column(db.Boolean)
    payout = db.Column(db.Integer, default=0)

    # Timestamps
    submitted_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    player = db.relationship("Player", backref=db.backref("score_bets", lazy="dynamic"))

    __table_args__ = (
        db.Index("idx_score_bet_player_match", "player_id", "match_id"),
        db.Index("idx_score_bet_match_status", "match_id", "status"),
        db.CheckConstraint(
            f"predicted_home_score BETWEEN {MIN_SCORE} AND {MAX_SCORE}",
            name="home_score_range",
        ),
        db.CheckConstraint(
            f"predicted_away_score BETWEEN {MIN_SCORE} AND {MAX_SCORE}",
            name="away_score_range",
        ),
    )

    def __repr__(self):
        return f"<ScoreBet player_id={self.player_id} match_id={self.match_id} {self.predicted_home_score}-{self.predicted_away_score} {self.status}>"

    @property
    def score_label(self):
        return f"{self.predicted_home_score}-{self.predicted_away_score}"

    def to_dict(self):
        """Convert score bet to dictionary for API responses"""
        return {
            "id": self.id,
            "player_id": self.player_id,
            "match_id": self.match_id,
            "predicted_home_score": self.predicted_home_score,
            "predicted_away_score": self.predicted_away_score,
            "bet_amount": self.bet_amount,
            "status": self.status,
            "is_correct": self.is_correct,
            "payout": self.payout or 0,
        }
