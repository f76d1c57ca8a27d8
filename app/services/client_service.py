"""
Client resolution for authenticated users.

Every portal page needs the caller's Client row. A user who was a customer
before signing up already has one (matched by email); a brand new user gets
one created on first access.
"""
import logging
from datetime import datetime
from typing import Optional, Tuple

from flask import g, has_request_context
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Client, User
from ..utils.cache_invalidation import get_cached_client_id, invalidate_all_caches, set_cached_client_id

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = 'not_authenticated'
NO_EMAIL = 'no_email'
SETUP_FAILED = 'setup_failed'


def link_client_to_user(client: Client, user: User, source: Optional[str] = None) -> Client:
    """Attach an existing client record to a login, enrolling it if needed."""
    client.user_id = user.id
    if client.loyalty_enrolled is None or not client.loyalty_enrolled:
        client.loyalty_enrolled = True
    if not client.loyalty_enrolled_at:
        client.loyalty_enrolled_at = datetime.utcnow()
    if source and not client.loyalty_signup_source:
        client.loyalty_signup_source = source
    client.updated_at = datetime.utcnow()
    return client


def find_client_by_email(email: str) -> Optional[Client]:
    if not email:
        return None
    return Client.query.filter(db.func.lower(Client.email) == email.lower()).first()


def create_or_link_signup_client(
    user: User,
    first_name: str,
    last_name: str,
    phone: Optional[str] = None,
    source: str = 'self_signup'
) -> Client:
    """
    Client for a new signup: an existing customer record with the same email
    is taken over (keeping its points), otherwise a new one is created.

    Does not commit.
    """
    now = datetime.utcnow()
    client = find_client_by_email(user.email)

    if client:
        client.user_id = user.id
        client.loyalty_enrolled = True
        client.loyalty_enrolled_at = client.loyalty_enrolled_at or now
        client.loyalty_signup_source = source
        if first_name:
            client.first_name = first_name
        if last_name:
            client.last_name = last_name
        if phone:
            client.phone = phone
        client.updated_at = now
        return client

    client = Client(
        user_id=user.id,
        email=user.email.lower(),
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        status='active',
        loyalty_enrolled=True,
        loyalty_enrolled_at=now,
        loyalty_signup_source=source,
        preferences={},
    )
    db.session.add(client)
    return client


class ClientService:
    """Look up, link, or create the Client for a User."""

    def _by_user(self, user: User) -> Optional[Client]:
        cached_id = get_cached_client_id(user.id)
        if cached_id:
            client = db.session.get(Client, cached_id)
            if client and client.user_id == user.id:
                return client
        return Client.query.filter_by(user_id=user.id).first()

    def _link_by_email(self, user: User) -> Optional[Client]:
        existing = find_client_by_email(user.email)
        if not existing:
            return None
        link_client_to_user(existing, user)
        db.session.commit()
        invalidate_all_caches(user.id)
        logger.info('Linked existing client %s to user %s', existing.id, user.id)
        return existing

    def _create(self, user: User) -> Client:
        client = Client(
            user_id=user.id,
            email=user.email.lower(),
            first_name=user.first_name or user.email.split('@')[0] or 'Customer',
            last_name=user.last_name or 'User',
            status='active',
            loyalty_enrolled=True,
            loyalty_enrolled_at=datetime.utcnow(),
            loyalty_signup_source='self_signup',
            preferences={},
        )
        db.session.add(client)
        db.session.commit()
        logger.info('Created client %s for user %s', client.id, user.id)
        return client

    def resolve(self, user: Optional[User]) -> Tuple[Optional[Client], Optional[str]]:
        """
        Find or set up the client for a user.

        Returns:
            (client, error) where error is one of 'not_authenticated',
            'no_email', 'setup_failed', or None
        """
        if user is None:
            return None, NOT_AUTHENTICATED

        client = self._by_user(user)
        if client:
            set_cached_client_id(user.id, client.id)
            return client, None

        if not user.email:
            return None, NO_EMAIL

        try:
            client = self._link_by_email(user) or self._create(user)
        except IntegrityError:
            # Another request created the client first
            db.session.rollback()
            logger.warning('Client insert raced for user %s, re-reading by email', user.id)
            client = find_client_by_email(user.email)
            if client and client.user_id != user.id:
                link_client_to_user(client, user)
                db.session.commit()

        if not client:
            return None, SETUP_FAILED

        set_cached_client_id(user.id, client.id)
        return client, None


def get_client(user: Optional[User]) -> Tuple[Optional[Client], Optional[str]]:
    """
    Resolve the user's client once per request.
    """
    if has_request_context() and user is not None:
        cached = getattr(g, '_resolved_client', None)
        if cached is not None and cached[0] == user.id:
            return cached[1], cached[2]

    client, error = ClientService().resolve(user)

    if has_request_context() and user is not None:
        g._resolved_client = (user.id, client, error)
    return client, error
