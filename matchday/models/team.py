from datetime import datetime, timezone

from matchday import db


class Team(db.Model):
    __tablename__ = "teams"

    id = db.Column(db.Integer, primary_key=True)

    # Team identification
    name = db.Column(db.String(100), nullable=False, unique=True, index=True)
    flag_code = db.Column(db.String(10))  # ISO country code e.g. "ar", "fr"

    # Team details
    confederation = db.Column(db.String(20))
    fifa_ranking = db.Column(db.Integer)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    home_matches = db.relationship(
        "Match",
        foreign_keys="Match.home_team_id",
        backref=db.backref("home_team", lazy="joined"),
        lazy="dynamic",
    )
    away_matches = db.relationship(
        "Match",
        foreign_keys="Match.away_team_id",
        backref=db.backref("away_team", lazy="joined"),
        lazy="dynamic",
    )

    def __repr__(self):
        return f"<Team {self.name}>"

    def is_eliminated_from(self, tournament_id):
        """Check if the team is out of a tournament (None if not entered)"""
        from .tournament import TournamentTeam

        entry = TournamentTeam.query.filter_by(
            tournament_id=tournament_id, team_id=self.id
        ).first()
        if entry is None:
            return None
        return bool(entry.is_eliminated)

    def to_dict(self):
        """Convert team to dictionary for API responses"""
        return {
            "id": self.id,
            "name": self.name,
            "flag_code": self.flag_code,
            "confederation": self.confederation,
            "fifa_ranking": self.fifa_ranking,
        }
