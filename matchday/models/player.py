from datetime import datetime, timezone

from matchday import db


class AggregateStatsMixin:
    """Running totals derived from scored predictions

    These columns are a cache: they can always be rebuilt from the player's
    scored Prediction rows (see LeaderboardService).
    """

    total_points = db.Column(db.Float, default=0.0, nullable=False)
    total_correct = db.Column(db.Integer, default=0, nullable=False)
    total_predictions = db.Column(db.Integer, default=0, nullable=False)
    current_streak = db.Column(db.Integer, default=0, nullable=False)
    best_streak = db.Column(db.Integer, default=0, nullable=False)
    rank = db.Column(db.Integer)

    def stats_dict(self):
        return {
            "total_points": self.total_points or 0,
            "total_correct": self.total_correct or 0,
            "total_predictions": self.total_predictions or 0,
            "current_streak": self.current_streak or 0,
            "best_streak": self.best_streak or 0,
        }

    def set_stats(self, stats):
        """Copy an aggregate dict (see stats_service.aggregate_stats) onto the row"""
        self.total_points = stats["total_points"]
        self.total_correct = stats["total_correct"]
        self.total_predictions = stats["total_predictions"]
        self.current_streak = stats["current_streak"]
        self.best_streak = stats["best_streak"]


class Player(AggregateStatsMixin, db.Model):
    __tablename__ = "players"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    display_name = db.Column(db.String(100), nullable=False)
    avatar_url = db.Column(db.String(500))

    # Account status
    is_active = db.Column(db.Boolean, default=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    predictions = db.relationship(
        "Prediction", backref="player", lazy="dynamic", cascade="all, delete-orphan"
    )
    tournament_stats = db.relationship(
        "PlayerTournamentStats",
        backref="player",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.Index("idx_player_total_points", "total_points"),
        db.Index("idx_player_rank", "rank"),
    )

    def __repr__(self):
        return f"<Player {self.email}>"

    @property
    def accuracy(self):
        if not self.total_predictions:
            return 0
        return self.total_correct / self.total_predictions * 100

    @staticmethod
    def get_global_leaderboard(limit=None):
        """Players ordered by their last computed rank"""
        query = Player.query.order_by(
            Player.rank.is_(None), Player.rank.asc(), Player.id.asc()
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def to_dict(self):
        """Convert player to dictionary for API responses"""
        data = {
            "id": self.id,
            "display_name": self.display_name,
            "avatar_url": self.avatar_url,
            "rank": self.rank,
            "accuracy": self.accuracy,
        }
        data.update(self.stats_dict())
        return data


class PlayerTournamentStats(AggregateStatsMixin, db.Model):
    """Per-tournament running totals, created on the first scoring event"""

    __tablename__ = "player_tournament_stats"

    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey("players.id"), nullable=False)
    tournament_id = db.Column(
        db.Integer, db.ForeignKey("tournaments.id"), nullable=False
    )

    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint("player_id", "tournament_id", name="unique_player_tournament_stats"),
        db.Index("idx_tournament_stats_points", "tournament_id", "total_points"),
    )

    def __repr__(self):
        return f"<PlayerTournamentStats player_id={self.player_id} tournament_id={self.tournament_id}>"

    def to_dict(self):
        data = {
            "player_id": self.player_id,
            "tournament_id": self.tournament_id,
            "display_name": self.player.display_name if self.player else "",
            "avatar_url": self.player.avatar_url if self.player else None,
            "rank": self.rank,
        }
        data.update(self.stats_dict())
        return data
