"""
CLI Commands for the points ledger.

These commands can be run manually or via cron jobs:

# Bulk award from a spreadsheet export
flask points upload members.csv --dry-run --verbose

# Points expiry (run daily if the background scheduler is off)
0 2 * * * cd /app && flask points expire

# A booking was confirmed in the booking system
flask points booking-confirmed BK-12345
"""
import sys

import click
from flask.cli import with_appcontext

from ..models import Booking
from ..services.points_service import PointsService
from ..services.points_upload import parse_points_csv, upload_points
from ..services.referral_service import ReferralService


@click.group('points')
def points_cli():
    """Points ledger commands."""
    pass


@points_cli.command('upload')
@click.argument('csv_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--dry-run', is_flag=True, help='Preview without awarding points')
@click.option('--verbose', is_flag=True, help='Show every row')
@with_appcontext
def upload(csv_file, dry_run, verbose):
    """Award points to clients listed in CSV_FILE (email, points)."""
    with open(csv_file, encoding='utf-8-sig') as f:
        rows, warnings = parse_points_csv(f.read())

    for warning in warnings:
        click.secho(f'WARNING: {warning}', fg='yellow')

    if not rows:
        click.secho('No valid data found in CSV file', fg='red')
        sys.exit(1)

    prefix = '[DRY RUN] ' if dry_run else ''
    click.echo(f'{prefix}Processing {len(rows)} clients...')

    results = upload_points(rows, dry_run=dry_run)

    if verbose:
        for entry in results['success']:
            click.echo(f"  {entry['email']}: +{entry['points']} (was {entry['old_balance']})")

    click.echo(f"\n{prefix}Successfully processed: {len(results['success'])}")
    click.echo(f"Errors: {len(results['errors'])}")
    click.echo(f"Not found in database: {len(results['not_found'])}")
    if results['would_enroll']:
        click.echo(f"Would enroll: {len(results['would_enroll'])}")
    click.echo(f"Total points: {results['total_points']:,}")

    for error in results['errors'][:10]:
        click.secho(f"  {error['email']}: {error['error']}", fg='red')
    for item in results['not_found'][:20]:
        click.secho(f"  Not found: {item['email']} ({item['points']} points)", fg='yellow')

    if results['errors'] or len(results['not_found']) == len(rows):
        sys.exit(1)


@points_cli.command('expire')
@click.option('--dry-run', is_flag=True, help='Preview without expiring points')
@with_appcontext
def expire(dry_run):
    """Expire balances past their expiry date."""
    result = PointsService().expire_points(dry_run=dry_run)

    prefix = '[DRY RUN] ' if dry_run else ''
    for detail in result['details']:
        click.echo(f"  {detail['email']}: {detail['points']} points (expired {detail['expired_at'][:10]})")
    click.echo(f"{prefix}Expired {result['points_expired']:,} points from {result['clients_expired']} clients")


@points_cli.command('expiry-warnings')
@click.option('--dry-run', is_flag=True, help='Preview without creating notifications')
@with_appcontext
def expiry_warnings(dry_run):
    """Notify clients whose points expire soon."""
    result = PointsService().send_expiry_warnings(dry_run=dry_run)
    prefix = '[DRY RUN] ' if dry_run else ''
    click.echo(f"{prefix}Notified {result['notified']} clients")


@points_cli.command('booking-confirmed')
@click.argument('booking_reference')
@with_appcontext
def booking_confirmed(booking_reference):
    """Award purchase points and complete any pending referral for a booking."""
    booking = Booking.query.filter_by(booking_reference=booking_reference).first()
    if not booking:
        click.secho(f'Booking {booking_reference} not found', fg='red')
        sys.exit(1)

    points = PointsService()
    transaction = points.award_booking_points(booking)
    if transaction:
        click.echo(f'Awarded {transaction.points} points to client {booking.client_id}')
    else:
        click.echo('No purchase points awarded (not confirmed, zero total, or already awarded)')

    referral = ReferralService(points).complete_referral_for_booking(booking)
    if referral:
        click.echo(f'Referral completed: {referral.referrer_booking_points} points to the referrer')


def init_app(app):
    app.cli.add_command(points_cli)
