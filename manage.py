#!/usr/bin/env python3
"""
Matchday Management CLI

Command-line management for the Matchday predictor: database setup, result
entry, leaderboard rebuilds and champion pick locking.
"""

import logging

import click
from flask.cli import with_appcontext
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from matchday import create_app, db
from matchday.errors import PredictionError
from matchday.models import ChampionPredictionConfig, Match, Player, Prediction, Tournament
from matchday.models.match import FINISHED, UPCOMING
from matchday.models.prediction import SCORED
from matchday.services.leaderboard_service import LeaderboardService
from matchday.services.result_service import ResultService
from matchday.utils.scoring import POLICIES


@click.group()
def cli():
    """Matchday Management CLI"""
    pass


# Result Commands
@cli.group()
def results():
    """Match result commands"""
    pass


@results.command()
@click.argument("match_id", type=int)
@click.argument("home_score", type=int)
@click.argument("away_score", type=int)
@click.option(
    "--policy",
    type=click.Choice(POLICIES),
    help="Outcome scoring policy (default: OUTCOME_SCORING_POLICY setting)",
)
@with_appcontext
def enter(match_id, home_score, away_score, policy):
    """Enter the final score of a match and score it"""
    try:
        result = ResultService(policy=policy).enter_match_result(
            match_id, home_score, away_score
        )
        click.echo(f"✅ {result['message']}")
        for failure in result["failures"]:
            click.echo(f"   ⚠️  {failure}")
    except PredictionError as e:
        click.echo(f"❌ {e.message}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error entering result: {str(e)}")
        logging.error(f"Result entry failed - SQL error: {e}")


# Leaderboard Commands
@cli.group()
def leaderboard():
    """Leaderboard commands"""
    pass


@leaderboard.command()
@click.option("--tournament", "tournament_id", type=int, help="Tournament ID")
@with_appcontext
def recalculate(tournament_id):
    """Rebuild stats and ranks from scored predictions"""
    try:
        result = LeaderboardService().recalculate(tournament_id)
        click.echo(f"✅ {result['message']}")
    except PredictionError as e:
        click.echo(f"❌ {e.message}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error recalculating leaderboard: {str(e)}")
        logging.error(f"Leaderboard recalculation failed - SQL error: {e}")


# Champion Commands
@cli.group()
def champion():
    """Champion prediction commands"""
    pass


@champion.command()
@click.argument("tournament_id", type=int)
@with_appcontext
def lock(tournament_id):
    """Lock champion predictions for a tournament"""
    try:
        result = LeaderboardService().lock_champion_predictions(tournament_id)
        click.echo(f"✅ {result['message']}")
    except PredictionError as e:
        click.echo(f"❌ {e.message}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error locking champion predictions: {str(e)}")
        logging.error(f"Champion lock failed - SQL error: {e}")


# Player Commands
@cli.group()
def player():
    """Player commands"""
    pass


@player.command("list")
@with_appcontext
def list_players():
    """List players by rank"""
    players = Player.get_global_leaderboard()

    if not players:
        click.echo("No players found.")
        return

    click.echo("Players:")
    for p in players:
        status = "🟢" if p.is_active else "🔴"
        rank = f"#{p.rank}" if p.rank else "-"
        click.echo(
            f"  {status} {rank} {p.display_name} ({p.email}) - "
            f"{p.total_points:g} pts, {p.total_correct}/{p.total_predictions} correct"
        )


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("⚽ Matchday Application Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    tournament_count = Tournament.query.count()
    click.echo(f"🏆 Tournaments: {tournament_count}")

    match_count = Match.query.count()
    finished_count = Match.query.filter_by(status=FINISHED).count()
    upcoming_count = Match.query.filter_by(status=UPCOMING).count()
    click.echo(
        f"⚽ Matches: {finished_count}/{match_count} finished, {upcoming_count} upcoming"
    )

    player_count = Player.query.filter_by(is_active=True).count()
    click.echo(f"👥 Active Players: {player_count}")

    scored_count = Prediction.query.filter_by(status=SCORED).count()
    click.echo(f"📊 Predictions: {Prediction.query.count()} ({scored_count} scored)")

    for config in ChampionPredictionConfig.query.all():
        name = config.tournament.name if config.tournament else config.tournament_id
        click.echo(f"👑 Champion picks for {name}: {config.betting_status}")


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        cli()
