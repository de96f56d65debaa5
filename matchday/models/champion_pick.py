from matchday import db


class ChampionPick(db.Model):
    """A player's pick for the eventual tournament winner"""

    __tablename__ = "champion_picks"

    id = db.Column(db.Integer, primary_key=True)

    player_id = db.Column(db.Integer, db.ForeignKey("players.id"), nullable=False)
    tournament_id = db.Column(
        db.Integer, db.ForeignKey("tournaments.id"), nullable=False
    )
    team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)

    # Timestamps
    submitted_at = db.Column(db.DateTime(timezone=True))
    picked_at = db.Column(db.DateTime(timezone=True))

    team = db.relationship("Team")
    player = db.relationship(
        "Player", backref=db.backref("champion_picks", lazy="dynamic")
    )

    # One active pick per player and tournament
    __table_args__ = (
        db.UniqueConstraint("player_id", "tournament_id", name="unique_player_champion_pick"),
    )

    def __repr__(self):
        return f"<ChampionPick player_id={self.player_id} team_id={self.team_id}>"

    def to_dict(self):
        return {
            "id": self.id,
            "player_id": self.player_id,
            "tournament_id": self.tournament_id,
            "team": self.team.to_dict() if self.team else None,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "picked_at": self.picked_at.isoformat() if self.picked_at else None,
        }
