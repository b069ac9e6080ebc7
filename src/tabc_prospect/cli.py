"""
TABC Prospect - CLI Interface

Main entry point for the tabc-prospect command line tool.
"""

import asyncio
import logging
import sys
import signal
import os

import click

from .config import config
from .analysis.leaderboard import leaderboard_frame, ranked
from .analysis.revenue import list_archetypes, resolve_venue_type
from .data.api_client import TexasComptrollerAPI
from .data.records import EstablishmentKey, EstablishmentProfile, history_frame
from .storage.database import DatabaseManager
from .workflow import ProspectingWorkflow
from .web import run_server

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stderr),
        logging.FileHandler('tabc_prospect.log')
    ]
)

logger = logging.getLogger(__name__)

VENUE_CHOICES = [a.key.value for a in list_archetypes()]


def format_currency(value: float) -> str:
    """Whole-dollar currency string, e.g. $12,345"""
    return f"${value:,.0f}" if value >= 0 else f"-${-value:,.0f}"


def format_period(period) -> str:
    return period.strftime('%b %Y') if period else 'unknown'


async def _load_profile(api_client: TexasComptrollerAPI, key: EstablishmentKey):
    rows = await api_client.get_history_rows(key)
    if not rows:
        return None
    return EstablishmentProfile.from_record(rows[-1])


@click.group()
@click.version_option(version='1.0.0')
def cli():
    """
    TABC Prospect

    Revenue estimates and prospect tracking for Texas mixed beverage
    permit holders, built on Comptroller gross receipts data.
    """
    pass


@cli.command()
@click.argument('name')
@click.option('--city', '-c', help='Exact city filter')
def search(name, city):
    """
    Search establishments by name
    """
    async def _async_search():
        workflow = ProspectingWorkflow()
        profiles = await workflow.search(name, city)
        if workflow.state.error:
            raise click.ClickException(workflow.state.error)
        if not profiles:
            click.echo("No matching establishments")
            return
        for profile in profiles:
            click.echo(f"{profile.key}  {profile.location_name}  ({profile.location_address}, {profile.location_city} {profile.location_zip})")

    try:
        asyncio.run(_async_search())
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='NAME')


@cli.command()
@click.argument('taxpayer_number')
@click.argument('location_number')
@click.option('--venue-type', '-v', type=click.Choice(VENUE_CHOICES), default=None,
              help='Revenue model (defaults to configured archetype)')
@click.option('--ownership/--no-ownership', default=False, help='Run the AI ownership lookup')
@click.option('--csv', 'csv_path', type=click.Path(dir_okay=False), help='Write the monthly breakdown to a CSV file')
def analyze(taxpayer_number, location_number, venue_type, ownership, csv_path):
    """
    Project monthly revenue for one establishment
    """
    async def _async_analyze():
        workflow = ProspectingWorkflow()
        if venue_type:
            workflow.set_venue_type(venue_type)

        key = EstablishmentKey(taxpayer_number, location_number)
        profile = await _load_profile(workflow.api_client, key)
        if profile is None:
            raise click.ClickException(f"No receipts found for {key}")

        state = await workflow.select(profile, with_ownership=ownership)
        if state.error:
            raise click.ClickException(state.error)

        projection = state.projection
        click.echo(f"{profile.location_name} - {profile.full_address}")
        click.echo(f"Taxpayer: {profile.taxpayer_name} ({profile.taxpayer_number})")
        if profile.permit_number:
            click.echo(f"Permit: {profile.permit_number}")
        click.echo(f"Revenue model: {projection.archetype.label} - {projection.archetype.description}")
        click.echo(f"   • Avg alcohol (actual):  {format_currency(projection.average_alcohol)}")
        click.echo(f"   • Avg food (projected):  {format_currency(projection.estimated_food)}")
        click.echo(f"   • Avg monthly volume:    {format_currency(projection.estimated_total)}")
        click.echo(f"   • Based on {projection.active_month_count} active months")

        click.echo("History:")
        for receipt in reversed(state.history):
            click.echo(f"   {format_period(receipt.period_end_date):>9}  liquor {format_currency(receipt.liquor_receipts):>10}"
                       f"  wine {format_currency(receipt.wine_receipts):>10}  beer {format_currency(receipt.beer_receipts):>10}"
                       f"  total {format_currency(receipt.total_receipts):>10}")

        if csv_path:
            history_frame(state.history).to_csv(csv_path, index=False)
            click.echo(f"[DATA] History written to {csv_path}")

        if state.ownership:
            report = state.ownership
            click.echo(f"Ownership ({report.source}):")
            click.echo(f"   • Owners: {report.owners}")
            click.echo(f"   • Locations: {report.locations}")
            click.echo(f"   • Details: {report.details}")
            for citation in report.citations:
                click.echo(f"   - {citation.title}: {citation.uri}")

    asyncio.run(_async_analyze())


@cli.command()
@click.argument('area')
@click.option('--top', '-n', type=int, default=25, help='Number of entries to show')
@click.option('--csv', 'csv_path', type=click.Path(dir_okay=False), help='Write the full leaderboard to a CSV file')
def leaderboard(area, top, csv_path):
    """
    Rank establishments in a city or ZIP code by trailing annual sales
    """
    async def _async_leaderboard():
        workflow = ProspectingWorkflow()
        entries = await workflow.leaderboard(area)
        if workflow.state.error:
            raise click.ClickException(workflow.state.error)
        for rank, entry in ranked(entries[:top]):
            click.echo(f"{rank:>3}. {entry.profile.location_name:<40} {format_currency(entry.annual_sales):>14}"
                       f"  avg/mo {format_currency(entry.avg_monthly_volume):>12}")
        if csv_path:
            leaderboard_frame(entries).to_csv(csv_path, index=False)
            click.echo(f"[DATA] {len(entries)} entries written to {csv_path}")

    try:
        asyncio.run(_async_leaderboard())
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='AREA')


@cli.command('venue-types')
def venue_types():
    """List revenue model archetypes"""
    default = resolve_venue_type(config.analysis.default_venue_type)
    for archetype in list_archetypes():
        marker = '*' if archetype.key == default else ' '
        click.echo(f"{marker} {archetype.key.value:<15} {archetype.label:<24} {archetype.description}")


@cli.command('save-prospect')
@click.argument('taxpayer_number')
@click.argument('location_number')
@click.option('--database-url', help='Database URL override')
def save_prospect(taxpayer_number, location_number, database_url):
    """Save an establishment as a prospect"""
    profile = asyncio.run(_load_profile(TexasComptrollerAPI(), EstablishmentKey(taxpayer_number, location_number)))
    if profile is None:
        raise click.ClickException(f"No receipts found for {taxpayer_number}-{location_number}")

    created = DatabaseManager(database_url).save_prospect_profile(profile)
    if created:
        click.echo(f"Saved {profile.location_name} as a prospect")
    else:
        click.echo(f"{profile.location_name} is already a prospect")


@cli.command('add-note')
@click.argument('location_number')
@click.argument('note_text')
@click.option('--database-url', help='Database URL override')
def add_note(location_number, note_text, database_url):
    """Attach a note to a saved prospect"""
    try:
        note = DatabaseManager(database_url).save_note(location_number, note_text)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='NOTE_TEXT')
    if note is None:
        raise click.ClickException(f"Prospect {location_number} is not saved")
    click.echo(f"Note {note['id']} added")


@cli.command()
@click.argument('location_number', required=False)
@click.option('--database-url', help='Database URL override')
def prospect(location_number, database_url):
    """Show whether a location is saved, with its notes (all prospects if omitted)"""
    db_manager = DatabaseManager(database_url)
    if not location_number:
        for saved in db_manager.list_prospects():
            click.echo(f"{saved['location_number']:<12} {saved['location_name']} ({saved['city']})")
        return

    status = db_manager.get_prospect_status(location_number)
    if not status['exists']:
        click.echo(f"{location_number} is not a saved prospect")
        return
    details = status['prospect']
    click.echo(f"{details['location_name']} ({details['taxpayer_name']}) - {details['address']}, {details['city']}")
    for note in status['notes']:
        click.echo(f"   [{note['created_at']}] {note['note_text']}")


@cli.command()
def status():
    """
    Show current system status
    """
    click.echo("System Status")
    click.echo("=" * 50)

    db_manager = DatabaseManager()
    stats = db_manager.get_stats()
    click.echo("Database:")
    click.echo(f"   • Saved prospects: {stats['total_prospects']:,}")
    click.echo(f"   • Notes: {stats['total_notes']:,}")

    db_ok = db_manager.test_connection()
    api_ok = asyncio.run(TexasComptrollerAPI().test_connection())
    click.echo("Connections:")
    click.echo(f"   • Database: {'OK' if db_ok else 'ERROR'}")
    click.echo(f"   • Texas open data: {'OK' if api_ok else 'ERROR'}")
    click.echo(f"   • Ownership lookup: {'configured' if config.enrichment.is_configured else 'unavailable (no API key)'}")


@cli.command()
@click.option('--host', default='0.0.0.0', help='Host to bind to')
@click.option('--port', default=5000, type=int, help='Port to bind to')
@click.option('--debug', is_flag=True, help='Run in debug mode')
def serve(host, port, debug):
    """
    Run the web server for the prospecting API
    """
    click.echo(f"Starting web server on {host}:{port}")

    def signal_handler(signum, frame):
        click.echo("Shutting down gracefully...")
        os._exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        run_server(host=host, port=port, debug=debug)
    except Exception as e:
        logger.error(f"Error running server: {e}")
        raise click.ClickException(f"Server failed: {e}")


if __name__ == '__main__':
    cli()
