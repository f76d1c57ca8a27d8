"""
Points Service for the loyalty portal.

Points ledger operations and the numbers the points pages display:
- Ledger writes (earn, spend, refund, adjustment, expire)
- Available balance, redeemable discount, and next redemption threshold
- Year-over-year stats, lifetime breakdown, and monthly activity
- Points expiry

ARCHITECTURE:
- LoyaltyTransaction is the ledger; every row stores balance_after
- Client.points_balance is a cached running total updated in the same commit
- Pending redemptions reserve points without debiting them
"""
import logging
import math
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import (
    Booking,
    Client,
    LoyaltySettings,
    LoyaltyTransaction,
    Notification,
    Redemption,
    SourceType,
    TransactionType,
)
from ..utils.cache_invalidation import LOYALTY_DATA, invalidate_booking_caches, revalidate_tag
from ..utils.exceptions import ClientNotFoundError, InsufficientPointsError, ValidationError

logger = logging.getLogger(__name__)

# Source types shown in the lifetime breakdown
BREAKDOWN_SOURCES = {
    'purchase': SourceType.PURCHASE,
    'referral': SourceType.REFERRAL,
    'refund': SourceType.REFUND,
    'adjustment': SourceType.MANUAL_ADJUSTMENT,
}

# Ledger rows linked to a booking
BOOKING_SOURCES = (SourceType.PURCHASE, SourceType.REDEMPTION)

EXPIRY_WARNING_TYPE = 'points_expiring'


def get_loyalty_settings() -> Dict[str, Any]:
    """Program settings (row id=1), with defaults when not configured."""
    settings = db.session.get(LoyaltySettings, 1)
    if settings is None:
        data = dict(LoyaltySettings.DEFAULTS)
        data['currency'] = current_app.config.get('DEFAULT_CURRENCY', 'GBP')
        return data
    return settings.to_dict()


def percent_change(current: float, previous: float) -> float:
    """Relative change in percent. With no previous value, 100 if anything happened."""
    if previous > 0:
        return ((current - previous) / previous) * 100
    return 100 if current > 0 else 0


def _year_bounds(year: int):
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)


class PointsService:
    """
    Points ledger and display calculations.

    Usage:
        service = PointsService()

        service.update_client_points(client.id, 250, 'earn', 'purchase', booking.id)
        discount = service.calculate_available_discount(client)
    """

    def __init__(self, settings: Optional[Dict[str, Any]] = None):
        self._settings = settings

    @property
    def settings(self) -> Dict[str, Any]:
        if self._settings is None:
            self._settings = get_loyalty_settings()
        return self._settings

    # ==================== Ledger ====================

    def update_client_points(
        self,
        client_id: str,
        delta: int,
        transaction_type: str,
        source_type: str,
        reference: Optional[str] = None,
        description: Optional[str] = None,
        purchase_amount: Optional[Decimal] = None,
        purchase_currency: Optional[str] = None,
        commit: bool = True
    ) -> LoyaltyTransaction:
        """
        Apply a signed points change and record it in the ledger.

        Raises:
            ValidationError: zero delta or unknown type
            ClientNotFoundError: no such client
            InsufficientPointsError: debit would take the balance below zero
        """
        if not delta:
            raise ValidationError('Points change must be non-zero', field='points')
        if transaction_type not in TransactionType.ALL:
            raise ValidationError(f'Unknown transaction type: {transaction_type}', field='transaction_type')
        if source_type not in SourceType.ALL:
            raise ValidationError(f'Unknown source type: {source_type}', field='source_type')

        client = db.session.get(Client, client_id)
        if not client:
            raise ClientNotFoundError(client_id)

        current = client.points_balance or 0
        new_balance = current + delta
        if new_balance < 0:
            raise InsufficientPointsError(current, -delta)

        transaction = LoyaltyTransaction(
            client_id=client.id,
            transaction_type=transaction_type,
            points=delta,
            balance_after=new_balance,
            source_type=source_type,
            source_reference_id=str(reference) if reference is not None else None,
            description=description,
            purchase_amount=purchase_amount,
            purchase_currency=purchase_currency,
            created_at=datetime.utcnow(),
        )
        db.session.add(transaction)

        client.points_balance = new_balance
        if transaction_type == TransactionType.EARN and delta > 0:
            client.lifetime_points_earned = (client.lifetime_points_earned or 0) + delta

        if commit:
            try:
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                raise

        revalidate_tag(LOYALTY_DATA)
        logger.info('Points %s: client %s %+d (%s) balance=%d',
                    transaction_type, client.id, delta, source_type, new_balance)
        return transaction

    def award_booking_points(self, booking: Booking, now: Optional[datetime] = None) -> Optional[LoyaltyTransaction]:
        """
        Award purchase points for a confirmed booking.

        Points are points_per_currency_unit per unit of the booking total,
        rounded down. Marks the client's first loyalty booking. Returns None
        when the booking is not confirmed or was already awarded.
        """
        if booking.status not in ('confirmed', 'completed'):
            return None

        already_awarded = LoyaltyTransaction.query.filter_by(
            client_id=booking.client_id,
            source_type=SourceType.PURCHASE,
            source_reference_id=booking.id
        ).first()
        if already_awarded:
            return None

        now = now or datetime.utcnow()
        client = db.session.get(Client, booking.client_id)
        if not client:
            raise ClientNotFoundError(booking.client_id)

        total = Decimal(str(booking.total_price or 0))
        points = int(math.floor(total * Decimal(str(self.settings['points_per_currency_unit']))))

        booking.confirmed_at = booking.confirmed_at or now
        if not client.first_loyalty_booking_at:
            client.first_loyalty_booking_at = booking.confirmed_at
            booking.is_first_loyalty_booking = True

        if points <= 0:
            booking.points_earned = 0
            db.session.commit()
            invalidate_booking_caches(client.user_id)
            return None

        booking.points_earned = points
        transaction = self.update_client_points(
            client.id,
            points,
            TransactionType.EARN,
            SourceType.PURCHASE,
            reference=booking.id,
            description=f'Points earned on booking {booking.booking_reference}',
            purchase_amount=total,
            purchase_currency=booking.currency,
        )
        invalidate_booking_caches(client.user_id)
        return transaction

    # ==================== Balances ====================

    def get_pending_redemptions_sum(self, client_id: str) -> int:
        total = db.session.query(func.coalesce(func.sum(Redemption.points_redeemed), 0)).filter(
            Redemption.client_id == client_id,
            Redemption.status == 'pending'
        ).scalar()
        return int(total or 0)

    def get_available_points(self, client: Client) -> int:
        return (client.points_balance or 0) - self.get_pending_redemptions_sum(client.id)

    def calculate_available_discount(self, client: Client) -> Dict[str, Any]:
        """
        Discount the client can redeem now, in the program's base currency.

        Only whole redemption increments are usable.
        """
        increment = self.settings['redemption_increment'] or 100
        point_value = self.settings['point_value']

        available = self.get_available_points(client)
        usable_points = max(0, math.floor(available / increment) * increment)

        return {
            'points_balance': client.points_balance or 0,
            'available_points': available,
            'usable_points': usable_points,
            'discount_amount': usable_points * point_value,
            'currency': self.settings['currency'],
        }

    def next_redemption_threshold(self, available_points: int) -> int:
        increment = self.settings['redemption_increment'] or 100
        level = math.floor(available_points / increment)
        if level < 1:
            return self.settings['min_redemption_points']
        return (level + 1) * increment

    def points_to_discount(self, points: int) -> float:
        return points * self.settings['point_value']

    def calculate_redemption(self, booking_amount: float, points: int) -> Dict[str, Any]:
        """Preview of a booking total after redeeming points."""
        if points < 0:
            raise ValidationError('Points must be zero or more', field='points')
        if booking_amount < 0:
            raise ValidationError('Booking amount must be zero or more', field='booking_amount')

        discount = self.points_to_discount(points)
        return {
            'booking_amount': booking_amount,
            'points': points,
            'discount': discount,
            'final_amount': max(0, booking_amount - discount),
            'currency': self.settings['currency'],
        }

    def get_total_saved(self, client_id: str) -> float:
        total = db.session.query(func.coalesce(func.sum(Redemption.discount_amount), 0)).filter(
            Redemption.client_id == client_id,
            Redemption.status == 'applied'
        ).scalar()
        return float(total or 0)

    # ==================== Stats ====================

    def _sum_points(self, client_id: str, *criteria) -> int:
        total = db.session.query(func.coalesce(func.sum(LoyaltyTransaction.points), 0)).filter(
            LoyaltyTransaction.client_id == client_id,
            *criteria
        ).scalar()
        return int(total or 0)

    def _year_stats(self, client_id: str, year: int) -> Dict[str, int]:
        start, end = _year_bounds(year)
        in_year = (LoyaltyTransaction.created_at >= start, LoyaltyTransaction.created_at < end)

        spent = self._sum_points(client_id, LoyaltyTransaction.transaction_type == TransactionType.SPEND, *in_year)
        earned = self._sum_points(
            client_id,
            LoyaltyTransaction.transaction_type == TransactionType.EARN,
            LoyaltyTransaction.points > 0,
            *in_year
        )
        purchase = self._sum_points(
            client_id,
            LoyaltyTransaction.transaction_type == TransactionType.EARN,
            LoyaltyTransaction.source_type == SourceType.PURCHASE,
            *in_year
        )
        return {'points_spent': abs(spent), 'points_earned': earned, 'purchase_points': purchase}

    def get_points_stats(self, client_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Current vs last calendar year, plus lifetime points by source.
        """
        now = now or datetime.utcnow()
        current = self._year_stats(client_id, now.year)
        previous = self._year_stats(client_id, now.year - 1)

        breakdown = {
            name: self._sum_points(client_id, LoyaltyTransaction.source_type == source, LoyaltyTransaction.points > 0)
            for name, source in BREAKDOWN_SOURCES.items()
        }

        return {
            'current_year': current,
            'last_year': previous,
            'percent_change': {
                key: percent_change(current[key], previous[key]) for key in current
            },
            'lifetime_breakdown': breakdown,
        }

    def get_monthly_activity(self, client_id: str, months: int = 6, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Earned and spent totals per calendar month, oldest first."""
        now = now or datetime.utcnow()

        # First day of the oldest month in the window
        year, month = now.year, now.month - (months - 1)
        while month < 1:
            month += 12
            year -= 1
        window_start = datetime(year, month, 1)

        rows = LoyaltyTransaction.query.filter(
            LoyaltyTransaction.client_id == client_id,
            LoyaltyTransaction.created_at >= window_start
        ).all()

        buckets = []
        y, m = year, month
        for _ in range(months):
            buckets.append({'month': f'{y:04d}-{m:02d}', 'earned': 0, 'spent': 0})
            m += 1
            if m > 12:
                m, y = 1, y + 1
        by_month = {b['month']: b for b in buckets}

        for tx in rows:
            bucket = by_month.get(tx.created_at.strftime('%Y-%m'))
            if not bucket:
                continue
            if tx.transaction_type == TransactionType.EARN and tx.points > 0:
                bucket['earned'] += tx.points
            elif tx.transaction_type == TransactionType.SPEND:
                bucket['spent'] += abs(tx.points)

        return buckets

    # ==================== Transactions ====================

    def get_transaction_count(self, client_id: str) -> int:
        return LoyaltyTransaction.query.filter_by(client_id=client_id).count()

    def get_transactions_paginated(self, client_id: str, page: int = 1, page_size: int = 10) -> Dict[str, Any]:
        """
        Newest-first ledger page. Booking-linked rows carry the booking
        reference and event name, looked up in one query for the page.
        """
        page = max(1, page)
        total = self.get_transaction_count(client_id)

        transactions = LoyaltyTransaction.query.filter_by(client_id=client_id).order_by(
            LoyaltyTransaction.created_at.desc(), LoyaltyTransaction.id.desc()
        ).offset((page - 1) * page_size).limit(page_size).all()

        booking_ids = {
            tx.source_reference_id for tx in transactions
            if tx.source_type in BOOKING_SOURCES and tx.source_reference_id
        }
        bookings = {}
        if booking_ids:
            for booking in Booking.query.filter(Booking.id.in_(booking_ids)).all():
                bookings[booking.id] = booking

        items = []
        for tx in transactions:
            data = tx.to_dict()
            booking = bookings.get(tx.source_reference_id)
            data['booking_reference'] = booking.booking_reference if booking else None
            data['event_name'] = booking.event.name if booking and booking.event else None
            items.append(data)

        return {
            'transactions': items,
            'page': page,
            'page_size': page_size,
            'total': total,
            'total_pages': math.ceil(total / page_size) if total else 0,
        }

    # ==================== Expiry ====================

    def _last_earn_at(self, client_id: str) -> Optional[datetime]:
        return db.session.query(func.max(LoyaltyTransaction.created_at)).filter(
            LoyaltyTransaction.client_id == client_id,
            LoyaltyTransaction.transaction_type == TransactionType.EARN
        ).scalar()

    def get_expiry_date(self, client: Client) -> Optional[datetime]:
        days = self.settings.get('points_expire_after_days')
        if not days:
            return None
        last_earn = self._last_earn_at(client.id)
        if not last_earn:
            return None
        return last_earn + timedelta(days=days)

    def get_expiring_points(self, client: Client, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        """
        Balance at risk and days left, or None when expiry is off or nothing is at risk.
        """
        balance = client.points_balance or 0
        if balance <= 0:
            return None

        expires_at = self.get_expiry_date(client)
        if not expires_at:
            return None

        now = now or datetime.utcnow()
        days_remaining = max(0, (expires_at - now).days)
        warning_days = current_app.config.get('POINTS_EXPIRY_WARNING_DAYS', 30)

        return {
            'points': balance,
            'expires_at': expires_at.isoformat(),
            'days_remaining': days_remaining,
            'warning': days_remaining <= warning_days,
        }

    def expire_points(self, now: Optional[datetime] = None, dry_run: bool = False) -> Dict[str, Any]:
        """
        Zero out balances whose expiry date has passed.

        Returns:
            Dict with clients_expired, points_expired, and per-client details
        """
        now = now or datetime.utcnow()
        result = {'clients_expired': 0, 'points_expired': 0, 'details': [], 'dry_run': dry_run}

        if not self.settings.get('points_expire_after_days'):
            logger.info('Points expiry disabled, nothing to do')
            return result

        for client in Client.query.filter(Client.points_balance > 0).all():
            expires_at = self.get_expiry_date(client)
            if not expires_at or expires_at > now:
                continue

            points = client.points_balance
            result['details'].append({
                'client_id': client.id,
                'email': client.email,
                'points': points,
                'expired_at': expires_at.isoformat(),
            })
            result['clients_expired'] += 1
            result['points_expired'] += points

            if not dry_run:
                self.update_client_points(
                    client.id,
                    -points,
                    TransactionType.EXPIRE,
                    SourceType.EXPIRY,
                    description=f'{points} points expired after inactivity',
                )

        logger.info('Points expiry: %d clients, %d points%s', result['clients_expired'],
                    result['points_expired'], ' (dry run)' if dry_run else '')
        return result

    def send_expiry_warnings(self, now: Optional[datetime] = None, dry_run: bool = False) -> Dict[str, Any]:
        """
        Notify clients whose points expire within POINTS_EXPIRY_WARNING_DAYS.

        A client is notified at most once per warning window.
        """
        now = now or datetime.utcnow()
        result = {'notified': 0, 'details': [], 'dry_run': dry_run}

        if not self.settings.get('points_expire_after_days'):
            return result

        window_start = now - timedelta(days=current_app.config.get('POINTS_EXPIRY_WARNING_DAYS', 30))

        for client in Client.query.filter(Client.points_balance > 0).all():
            expiring = self.get_expiring_points(client, now=now)
            if not expiring or not expiring['warning']:
                continue

            already_sent = Notification.query.filter(
                Notification.client_id == client.id,
                Notification.notification_type == EXPIRY_WARNING_TYPE,
                Notification.created_at >= window_start
            ).first()
            if already_sent:
                continue

            result['notified'] += 1
            result['details'].append({'client_id': client.id, **expiring})

            if not dry_run:
                db.session.add(Notification(
                    client_id=client.id,
                    notification_type=EXPIRY_WARNING_TYPE,
                    title='Your points are expiring soon',
                    message=(
                        f"{expiring['points']} points expire in {expiring['days_remaining']} days. "
                        f"Book or redeem to keep them."
                    ),
                    link='/points',
                ))

        if not dry_run and result['notified']:
            db.session.commit()
        return result
