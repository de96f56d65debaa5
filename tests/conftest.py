"""Shared pytest fixtures for the Matchday predictor tests."""
from datetime import datetime, timedelta, timezone

import pytest
from flask import g, request_started

from matchday import create_app, db
from matchday.models import (
    ChampionPredictionConfig,
    Match,
    MatchScoreBetConfig,
    Player,
    Prediction,
    Team,
    Tournament,
    TournamentTeam,
)
from matchday.models.prediction import SCORED
from matchday.services.identity import Identity

PLAYER_HEADERS = {"X-User-Email": "alice@example.com", "X-User-Name": "Alice"}
ADMIN_HEADERS = {
    "X-User-Email": "referee@example.com",
    "X-User-Name": "Referee",
    "X-User-Roles": "admin",
}


@pytest.fixture(scope="function")
def app():
    """Application on a fresh in-memory database for every test."""
    app = create_app("testing")

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


def _forget_login_user(sender, **extra):
    g.pop("_login_user", None)


@pytest.fixture
def client(app):
    """Test client; each request resolves its caller from its own headers.

    Requests share the fixture's app context, so Flask-Login's cached user
    is dropped when every request starts.
    """
    request_started.connect(_forget_login_user, app)
    yield app.test_client()
    request_started.disconnect(_forget_login_user, app)


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def alice():
    return Identity("alice@example.com", "Alice")


@pytest.fixture
def bob():
    return Identity("bob@example.com", "Bob")


@pytest.fixture
def make_team(app):
    def _make(name, **kwargs):
        team = Team(name=name, **kwargs)
        db.session.add(team)
        db.session.commit()
        return team

    return _make


@pytest.fixture
def make_tournament(app):
    def _make(name="World Cup", teams=(), **kwargs):
        tournament = Tournament(name=name, **kwargs)
        db.session.add(tournament)
        db.session.flush()
        for team in teams:
            db.session.add(TournamentTeam(tournament_id=tournament.id, team_id=team.id))
        db.session.commit()
        return tournament

    return _make


@pytest.fixture
def make_match(app, make_team, now):
    """Upcoming match two days out unless overridden."""
    counter = {"n": 0}

    def _make(home=None, away=None, tournament=None, kickoff=None, **kwargs):
        counter["n"] += 1
        home = home or make_team(f"Home {counter['n']}")
        away = away or make_team(f"Away {counter['n']}")
        match = Match(
            home_team_id=home.id,
            away_team_id=away.id,
            tournament_id=tournament.id if tournament else None,
            kickoff=kickoff or now + timedelta(days=2),
            **kwargs,
        )
        db.session.add(match)
        db.session.commit()
        return match

    return _make


@pytest.fixture
def make_player(app):
    def _make(email, display_name=None, **kwargs):
        player = Player(email=email, display_name=display_name or email, **kwargs)
        db.session.add(player)
        db.session.commit()
        return player

    return _make


@pytest.fixture
def make_scored_prediction(app, now):
    """Insert an already scored prediction, bypassing result entry."""

    def _make(player, match, is_correct, points, scored_at=None, pick="home"):
        prediction = Prediction(
            player_id=player.id,
            match_id=match.id,
            tournament_id=match.tournament_id,
            pick=pick,
            status=SCORED,
            is_correct=is_correct,
            points_earned=points,
            scored_at=scored_at or now,
        )
        db.session.add(prediction)
        db.session.commit()
        return prediction

    return _make


@pytest.fixture
def enable_score_bets(app):
    def _enable(match, **kwargs):
        config = MatchScoreBetConfig(match_id=match.id, **kwargs)
        db.session.add(config)
        db.session.commit()
        return config

    return _enable


@pytest.fixture
def champion_config(app):
    def _make(tournament, **kwargs):
        config = ChampionPredictionConfig(tournament_id=tournament.id, **kwargs)
        db.session.add(config)
        db.session.commit()
        return config

    return _make
