"""
Database models for the loyalty portal.
Clients, the points ledger, referrals, bookings, and reference data.
"""
from .client import User, Client, TeamMember, PortalAccess, generate_uuid
from .loyalty import (
    LoyaltySettings,
    LoyaltyTransaction,
    Redemption,
    TransactionType,
    SourceType,
)
from .referral import Referral, ReferralStatus
from .booking import (
    Venue,
    Event,
    Booking,
    BookingTraveler,
    BookingPayment,
    BookingComponent,
    BookingFlight,
)
from .notification import Notification
from .reference import Airport, Airline, AirlineCode

__all__ = [
    'User',
    'Client',
    'TeamMember',
    'PortalAccess',
    'generate_uuid',
    # Loyalty
    'LoyaltySettings',
    'LoyaltyTransaction',
    'Redemption',
    'TransactionType',
    'SourceType',
    # Referrals
    'Referral',
    'ReferralStatus',
    # Bookings
    'Venue',
    'Event',
    'Booking',
    'BookingTraveler',
    'BookingPayment',
    'BookingComponent',
    'BookingFlight',
    'Notification',
    # Reference data
    'Airport',
    'Airline',
    'AirlineCode',
]
