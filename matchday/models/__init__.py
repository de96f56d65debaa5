from matchday import db  # noqa: F401 - imported for model imports

from .champion_pick import ChampionPick
from .match import Match
from .player import Player, PlayerTournamentStats
from .prediction import Prediction
from .score_bet import ScoreBet
from .scoring_config import (
    ChampionPredictionConfig,
    MatchOutcomeConfig,
    MatchScoreBetConfig,
    ScorePredictionConfig,
)
from .team import Team
from .tournament import Tournament, TournamentTeam

__all__ = [
    "get_or_none",
    "Player",
    "PlayerTournamentStats",
    "Team",
    "Tournament",
    "TournamentTeam",
    "Match",
    "Prediction",
    "ScoreBet",
    "ChampionPick",
    "ScorePredictionConfig",
    "MatchScoreBetConfig",
    "MatchOutcomeConfig",
    "ChampionPredictionConfig",
]


def get_or_none(model, ident):
    """Primary key lookup that treats malformed IDs as missing rows"""
    try:
        ident = int(ident)
    except (TypeError, ValueError):
        return None
    return db.session.get(model, ident)
