"""
Business logic services for the loyalty portal.
"""
from .auth_service import AuthService
from .client_service import ClientService, get_client
from .currency_service import CurrencyService
from .notification_service import NotificationService
from .points_service import PointsService
from .profile_service import ProfileService
from .referral_service import ReferralService
from .trip_service import TripService

__all__ = [
    'AuthService',
    'ClientService',
    'get_client',
    'CurrencyService',
    'NotificationService',
    'PointsService',
    'ProfileService',
    'ReferralService',
    'TripService',
]
