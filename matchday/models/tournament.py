from datetime import datetime, timezone

from matchday import db


class Tournament(db.Model):
    __tablename__ = "tournaments"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    season = db.Column(db.String(20))  # e.g. "2026"
    description = db.Column(db.String(500))

    # Tournament dates
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)

    # Status and format
    status = db.Column(
        db.String(20), nullable=False, default="upcoming"
    )  # upcoming, active, completed, cancelled
    format = db.Column(
        db.String(20), nullable=False, default="knockout"
    )  # knockout, league, groupKnockout, cup

    # Prize descriptions shown to players
    outcome_prize = db.Column(db.String(200))

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    matches = db.relationship("Match", backref="tournament", lazy="dynamic")
    entries = db.relationship(
        "TournamentTeam",
        backref="tournament",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    __table_args__ = (db.Index("idx_tournament_status", "status"),)

    def __repr__(self):
        return f"<Tournament {self.name}>"

    @property
    def is_league(self):
        return self.format == "league"

    def get_team_ids(self):
        """IDs of the teams entered in this tournament"""
        return [entry.team_id for entry in self.entries.all()]

    def to_dict(self):
        """Convert tournament to dictionary for API responses"""
        return {
            "id": self.id,
            "name": self.name,
            "season": self.season,
            "status": self.status,
            "format": self.format,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }


class TournamentTeam(db.Model):
    __tablename__ = "tournament_teams"

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(
        db.Integer, db.ForeignKey("tournaments.id"), nullable=False
    )
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)

    group_name = db.Column(db.String(10))  # "A", "B", ... for group stages
    is_eliminated = db.Column(db.Boolean, default=False)

    team = db.relationship("Team")

    __table_args__ = (
        db.UniqueConstraint("tournament_id", "team_id", name="unique_tournament_team"),
    )

    def __repr__(self):
        return f"<TournamentTeam tournament_id={self.tournament_id} team_id={self.team_id}>"
