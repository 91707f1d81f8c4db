#!/usr/bin/env python3
"""
Porra Management CLI

Command-line management for the MotoGP Porra: seeding, calendar import,
scoring and database maintenance.
"""

import logging
import os

import click
from flask.cli import with_appcontext
from flask_migrate import upgrade
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

# Background jobs are not needed for one-off commands
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from porra import create_app, db  # noqa: E402
from porra.models import Player, Point, Race, Rider, Vote  # noqa: E402
from porra.seed_data import PLAYERS, RIDERS  # noqa: E402
from porra.services.auto_scoring import score_finished_races  # noqa: E402
from porra.services.record_store import (  # noqa: E402
    load_season_snapshot,
    seed_reference_data,
    today_iso,
)
from porra.services.scoring_engine import ScoringEngine, SessionInfo  # noqa: E402
from porra.utils.results_feed import (  # noqa: E402
    CalendarImport,
    ResultsFeed,
    ResultsFeedError,
)

app = create_app()


@click.group()
def cli():
    """Porra Management CLI"""
    pass


@cli.command()
@click.option("--skip-calendar", is_flag=True, help="Do not import the race calendar")
@with_appcontext
def seed(skip_calendar):
    """Load players and riders, then import the current calendar"""
    success, message = seed_reference_data(PLAYERS, RIDERS)
    if not success:
        click.echo(f"❌ Error seeding reference data: {message}")
        return
    click.echo(f"✅ {message}")

    if skip_calendar:
        return

    success, message = CalendarImport().sync_calendar()
    if success:
        click.echo(f"✅ {message}")
    else:
        click.echo(f"❌ Calendar import failed: {message}")


# Data Sync Commands
@cli.group()
def sync():
    """Data synchronization commands"""
    pass


@sync.command()
@with_appcontext
def calendar():
    """Import the current season's calendar from the results feed"""
    success, message = CalendarImport().sync_calendar()
    if success:
        click.echo(f"✅ {message}")
    else:
        click.echo(f"❌ Calendar import failed: {message}")


# Scoring Commands
@cli.group()
def score():
    """Scoring commands"""
    pass


@score.command("session")
@click.argument("event_id")
@click.argument("session_id")
@click.option("--type", "session_type", help="Session type (looked up when omitted)")
@click.option("--number", type=int, help="Session number")
@with_appcontext
def score_session(event_id, session_id, session_type, number):
    """Award points for one session of an event"""
    feed = ResultsFeed.from_config()

    try:
        if session_type:
            session = SessionInfo(session_id, session_type, number)
        else:
            season = feed.get_current_season()
            category = feed.find_category(
                season["id"], app.config["RESULTS_CATEGORY_NAME"]
            )
            if not category:
                click.echo("❌ Category not found in the current season")
                return
            sessions = feed.get_sessions(event_id, category["id"])
            session = next((s for s in sessions if str(s["id"]) == session_id), None)
            if session is None:
                click.echo(f"❌ Session {session_id} not found for event {event_id}")
                return

        classification = feed.get_classification(session_id)
    except ResultsFeedError as e:
        click.echo(f"❌ Results feed error: {e}")
        return

    result = ScoringEngine().award_session_points(event_id, session, classification)
    icon = "✅" if result.success else "❌"
    click.echo(f"{icon} {result.message}")


@score.command("auto")
@with_appcontext
def score_auto():
    """Score every finished session that has not been scored yet"""
    summary = score_finished_races(ResultsFeed.from_config(), ScoringEngine())

    click.echo(f"🏁 Races checked: {summary['races_checked']}")
    click.echo(f"✅ Sessions scored: {summary['sessions_scored']}")
    click.echo(f"⏭️  Already scored: {summary['already_scored']}")
    click.echo(f"🎯 Points rows written: {summary['points_awarded']}")
    for error in summary["errors"]:
        click.echo(f"❌ {error}")


# Info Commands
@cli.command()
@with_appcontext
def standings():
    """Print the current leaderboard"""
    snapshot = load_season_snapshot(today_iso())
    if snapshot["needs_seeding"]:
        click.echo("⚠️  No players yet. Run 'python manage.py seed' first.")
        return

    names = {p.id: p.name for p in Player.query.all()}
    click.echo("🏆 Standings")
    click.echo("=" * 40)
    for row in snapshot["standings"]:
        click.echo(
            f"{row['position']:>2}. {names.get(row['player_id'], '?'):<10} "
            f"{row['points']:>4} pts  (last race {row['last_race_points']:>3}, "
            f"gap {row['gap']})"
        )


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("🏍️  Porra Application Status")
    click.echo("=" * 40)

    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    click.echo(f"👥 Players: {Player.query.count()}")
    click.echo(f"🏍️  Riders: {Rider.query.count()}")
    click.echo(f"📅 Races: {Race.query.count()}")
    click.echo(f"🗳️  Votes: {Vote.query.count()}")
    click.echo(f"🎯 Point rows: {Point.query.count()}")

    next_race = Race.get_next_race()
    if next_race:
        state = "open" if next_race.is_voting_open() else "closed"
        click.echo(
            f"🏁 Next race: {next_race.name} ({next_race.race_date}) - voting {state} "
            f"until {next_race.voting_deadline.isoformat()}"
        )
    else:
        click.echo("⚠️  Next race: none (import the calendar)")


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command("init")
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


# Database Migration Commands
@cli.group()
def db_migrate():
    """Database migration commands"""
    pass


@db_migrate.command("upgrade")
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    try:
        upgrade(revision=revision)
        click.echo(f"✅ Migrations applied to {revision}")
    except Exception as e:
        logging.error(f"Migration upgrade failed: {e}")
        click.echo(f"❌ Error applying migrations: {str(e)}")


if __name__ == "__main__":
    with app.app_context():
        cli()
