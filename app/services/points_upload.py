"""
Bulk points upload from a spreadsheet export.

The CSV needs an email column (Email, email, Email Address, email_address, or
Row Labels) and a points column (Points, points, Points to Award, or
points_to_award). Bad rows are skipped with a warning. When an email appears
more than once, the highest points value wins.
"""
import csv
import io
import logging
from datetime import datetime
from typing import Any, Dict, List, Tuple

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Client, SourceType, TransactionType
from ..utils.exceptions import PortalError
from ..utils.validation import is_valid_email
from .points_service import PointsService

logger = logging.getLogger(__name__)

EMAIL_COLUMNS = ('Row Labels', 'Email', 'email', 'Email Address', 'email_address')
POINTS_COLUMNS = ('Points', 'points', 'Points to Award', 'points_to_award')


def _first(row: Dict[str, str], columns) -> str:
    for column in columns:
        value = (row.get(column) or '').strip()
        if value:
            return value
    return ''


def clean_email(raw: str):
    email = raw.strip().strip('"\'').replace('\n', '').replace('\r', '').strip().lower()
    return email if is_valid_email(email) else None


def parse_points(raw: str):
    try:
        points = int(raw.strip())
    except ValueError:
        return None
    return points if points >= 0 else None


def parse_points_csv(content: str) -> Tuple[List[Dict[str, Any]], List[str]]:
    """
    Parse upload rows.

    Returns:
        (rows, warnings) where rows are {email, points, row_number}, one per email
    """
    reader = csv.DictReader(io.StringIO(content.lstrip('\ufeff')))
    warnings = []
    by_email: Dict[str, Dict[str, Any]] = {}
    duplicates = set()

    # Row 1 is the header
    for row_number, row in enumerate(reader, start=2):
        email_raw = _first(row, EMAIL_COLUMNS)
        points_raw = _first(row, POINTS_COLUMNS)

        if not email_raw or not points_raw:
            warnings.append(f'Row {row_number}: Missing email or points (skipping)')
            continue

        email = clean_email(email_raw)
        if not email:
            warnings.append(f'Row {row_number}: Invalid email "{email_raw}" (skipping)')
            continue

        points = parse_points(points_raw)
        if points is None:
            warnings.append(f'Row {row_number}: Invalid points value "{points_raw}" (skipping)')
            continue

        existing = by_email.get(email)
        if existing:
            duplicates.add(email)
            if points > existing['points']:
                by_email[email] = {'email': email, 'points': points, 'row_number': row_number}
        else:
            by_email[email] = {'email': email, 'points': points, 'row_number': row_number}

    if duplicates:
        warnings.append(f'Found {len(duplicates)} duplicate emails (using highest points value)')

    return list(by_email.values()), warnings


def upload_points(rows: List[Dict[str, Any]], dry_run: bool = False) -> Dict[str, Any]:
    """
    Award points to matching clients as manual adjustments.

    Unenrolled clients are enrolled first (source auto_enrolled).
    """
    service = PointsService()
    results = {'success': [], 'errors': [], 'not_found': [], 'would_enroll': [], 'dry_run': dry_run}

    for item in rows:
        client = Client.query.filter(db.func.lower(Client.email) == item['email']).first()
        if not client:
            results['not_found'].append(item)
            continue

        entry = {
            'email': item['email'],
            'client_id': client.id,
            'name': client.full_name,
            'points': item['points'],
            'old_balance': client.points_balance or 0,
            'row_number': item['row_number'],
        }

        if not client.loyalty_enrolled:
            if dry_run:
                results['would_enroll'].append(entry)
            else:
                client.loyalty_enrolled = True
                client.loyalty_enrolled_at = datetime.utcnow()
                client.loyalty_signup_source = 'auto_enrolled'

        if dry_run or item['points'] == 0:
            results['success'].append(entry)
            continue

        try:
            transaction = service.update_client_points(
                client.id,
                item['points'],
                TransactionType.EARN,
                SourceType.MANUAL_ADJUSTMENT,
                description=f"Bulk points upload - {item['points']} points awarded",
            )
            entry['transaction_id'] = transaction.id
            results['success'].append(entry)
        except (PortalError, SQLAlchemyError) as e:
            db.session.rollback()
            logger.error('Bulk upload failed for %s: %s', item['email'], e)
            results['errors'].append({**item, 'error': str(e)})

    if not dry_run:
        # Enrolments for zero-point rows
        db.session.commit()

    results['total_points'] = sum(entry['points'] for entry in results['success'])
    return results
