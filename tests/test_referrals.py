"""
Tests for the referral program.

Covers:
- Referral code generation
- Invites (validation, duplicates, site URL)
- Referral completion on the referee's first booking
- Counts and summary
- /api/referrals endpoints
"""
from datetime import datetime
from unittest.mock import patch

import pytest

from app.extensions import db
from app.models import Referral, ReferralStatus, SourceType, User
from app.services.referral_service import (
    CODE_ALPHABET,
    ReferralService,
    generate_referral_code,
)
from app.utils.exceptions import ConfigurationError, DuplicateError, PortalError, ValidationError


def make_referee(make_client, referrer, email='friend@example.com', status=ReferralStatus.SIGNED_UP,
                 signed_up_at=None):
    referee = make_client(email, first_name='Friend')
    referral = Referral(
        referrer_client_id=referrer.id,
        referee_email=email,
        referee_client_id=referee.id,
        referral_code=referrer.referral_code or 'JANEAAAA',
        status=status,
        signed_up_at=signed_up_at or datetime.utcnow(),
    )
    db.session.add(referral)
    db.session.commit()
    return referee, referral


class TestReferralCodes:
    """Tests for code generation."""

    def test_code_format(self):
        code = generate_referral_code('Sarah-Jane')
        assert code.startswith('SARAHJ')
        assert len(code) == 10
        assert all(ch in CODE_ALPHABET for ch in code[6:])

    def test_code_without_name(self):
        code = generate_referral_code(None)
        assert len(code) == 4

    def test_unambiguous_alphabet(self):
        for ch in '01OIL':
            assert ch not in CODE_ALPHABET

    def test_code_is_persistent(self, app, loyalty_settings, sample_client):
        service = ReferralService()
        first = service.get_or_create_referral_code(sample_client)
        assert service.get_or_create_referral_code(sample_client) == first
        assert sample_client.referral_code == first

    def test_gives_up_after_collisions(self, app, loyalty_settings, sample_client, make_client):
        make_client('taken@example.com', referral_code='JANEAAAA')

        with patch('app.services.referral_service.generate_referral_code', return_value='JANEAAAA'):
            with pytest.raises(PortalError):
                ReferralService().get_or_create_referral_code(sample_client)

    def test_referral_link(self, app, loyalty_settings, sample_client):
        sample_client.referral_code = 'JANE7K2P'
        db.session.commit()
        assert ReferralService().get_referral_link(sample_client) == 'http://portal.test/signup?ref=JANE7K2P'


class TestReferralInvites:
    """Tests for ReferralService.submit_invite."""

    def test_invite_recorded(self, app, loyalty_settings, sample_client):
        referral = ReferralService().submit_invite(sample_client, '  Friend@Example.com ')

        assert referral.referee_email == 'friend@example.com'
        assert referral.status == ReferralStatus.PENDING
        assert referral.referral_link.endswith(f'?ref={sample_client.referral_code}')

    def test_invalid_email(self, app, loyalty_settings, sample_client):
        with pytest.raises(ValidationError) as exc:
            ReferralService().submit_invite(sample_client, 'not-an-email')
        assert exc.value.message == 'Please enter a valid email address.'

    def test_duplicate_invite(self, app, loyalty_settings, sample_client):
        service = ReferralService()
        service.submit_invite(sample_client, 'friend@example.com')

        with pytest.raises(DuplicateError) as exc:
            service.submit_invite(sample_client, 'FRIEND@example.com')
        assert exc.value.message == 'Looks like you already invited this email.'

    def test_missing_site_url(self, app, loyalty_settings, sample_client):
        app.config['SITE_URL'] = ''
        with pytest.raises(ConfigurationError):
            ReferralService().submit_invite(sample_client, 'friend@example.com')
        assert Referral.query.count() == 0


class TestReferralSignup:
    """Tests for process_referral_signup guards."""

    def test_self_referral_rejected(self, app, loyalty_settings, sample_client, sample_user):
        sample_client.referral_code = 'JANE7K2P'
        db.session.commit()

        with pytest.raises(ValidationError) as exc:
            ReferralService().process_referral_signup(
                'JANE7K2P', sample_user, 'jane@example.com', 'Jane', 'Doe'
            )
        assert exc.value.message == 'You cannot use your own referral code'

    def test_program_disabled(self, app, loyalty_settings, sample_client):
        loyalty_settings.referral_program_enabled = False
        sample_client.referral_code = 'JANE7K2P'
        db.session.commit()
        user = User(email='new@example.com', password_hash='x')
        db.session.add(user)
        db.session.commit()

        with pytest.raises(ValidationError):
            ReferralService().process_referral_signup('JANE7K2P', user, 'new@example.com', 'New', 'Person')

    def test_existing_invite_is_reused(self, app, loyalty_settings, sample_client):
        service = ReferralService()
        service.submit_invite(sample_client, 'new@example.com')
        user = User(email='new@example.com', password_hash='x')
        db.session.add(user)
        db.session.commit()

        client = service.process_referral_signup(
            sample_client.referral_code, user, 'new@example.com', 'New', 'Person'
        )

        referral = Referral.query.one()
        assert referral.referee_client_id == client.id
        assert referral.status == ReferralStatus.SIGNED_UP
        assert referral.referee_signup_points == 100


class TestReferralCompletion:
    """Tests for complete_referral_for_booking."""

    def test_first_booking_pays_referrer(self, app, loyalty_settings, sample_client, sample_booking, make_client):
        referee, referral = make_referee(make_client, sample_client)
        sample_booking.client_id = referee.id
        db.session.commit()

        completed = ReferralService().complete_referral_for_booking(sample_booking)

        assert completed.id == referral.id
        assert completed.status == ReferralStatus.COMPLETED
        assert completed.booking_id == sample_booking.id
        assert sample_client.points_balance == 100
        assert sample_client.transactions.filter_by(source_type=SourceType.REFERRAL).count() == 1

    def test_completed_only_once(self, app, loyalty_settings, sample_client, sample_booking, make_client):
        referee, _ = make_referee(make_client, sample_client)
        sample_booking.client_id = referee.id
        db.session.commit()
        service = ReferralService()

        service.complete_referral_for_booking(sample_booking)
        assert service.complete_referral_for_booking(sample_booking) is None
        assert sample_client.points_balance == 100

    def test_unconfirmed_booking_ignored(self, app, loyalty_settings, sample_client, sample_booking, make_client):
        referee, _ = make_referee(make_client, sample_client)
        sample_booking.client_id = referee.id
        sample_booking.status = 'provisional'
        db.session.commit()

        assert ReferralService().complete_referral_for_booking(sample_booking) is None


class TestReferralStats:
    """Tests for counts and the summary payload."""

    def test_counts_by_year(self, app, loyalty_settings, sample_client, make_client):
        now = datetime(2025, 6, 1)
        make_referee(make_client, sample_client, 'a@example.com', signed_up_at=datetime(2025, 2, 1))
        make_referee(make_client, sample_client, 'b@example.com', ReferralStatus.COMPLETED,
                     signed_up_at=datetime(2024, 8, 1))
        db.session.add(Referral(referrer_client_id=sample_client.id, referee_email='c@example.com',
                                referral_code='X', status=ReferralStatus.PENDING))
        db.session.commit()

        counts = ReferralService().get_referral_counts(sample_client.id, now=now)

        assert counts == {'total': 2, 'current_year': 1, 'last_year': 1}

    def test_summary(self, app, loyalty_settings, sample_client):
        service = ReferralService()
        service.submit_invite(sample_client, 'one@example.com')
        service.submit_invite(sample_client, 'two@example.com')

        summary = service.get_referral_summary(sample_client)

        assert summary['total_invites'] == 2
        assert summary['pending'] == 2
        assert summary['completed'] == 0
        assert summary['referee_bonus'] == 100
        assert summary['referral_link'].startswith('http://portal.test/signup?ref=')


class TestReferralsAPI:
    """Tests for /api/referrals endpoints."""

    def test_summary_endpoint(self, client, loyalty_settings, auth_headers):
        response = client.get('/api/referrals', headers=auth_headers)
        assert response.status_code == 200
        data = response.get_json()
        assert data['referral_code']
        assert data['counts'] == {'total': 0, 'current_year': 0, 'last_year': 0}

    def test_invite_endpoint(self, client, loyalty_settings, auth_headers):
        response = client.post('/api/referrals/invite', headers=auth_headers, json={'email': 'pal@example.com'})
        assert response.status_code == 201
        assert response.get_json()['referral']['referee_email'] == 'pal@example.com'

    def test_invite_duplicate_is_409(self, client, loyalty_settings, auth_headers):
        client.post('/api/referrals/invite', headers=auth_headers, json={'email': 'pal@example.com'})
        response = client.post('/api/referrals/invite', headers=auth_headers, json={'email': 'pal@example.com'})
        assert response.status_code == 409

    def test_invite_bad_email_is_400(self, client, loyalty_settings, auth_headers):
        response = client.post('/api/referrals/invite', headers=auth_headers, json={'email': 'nope'})
        assert response.status_code == 400
        assert response.get_json()['error']['errors'] == {'email': 'Please enter a valid email address.'}

    def test_validate_requires_code(self, client):
        response = client.get('/api/referrals/validate')
        assert response.status_code == 400

    def test_invite_requires_auth(self, client):
        response = client.post('/api/referrals/invite', json={'email': 'pal@example.com'})
        assert response.status_code == 401
