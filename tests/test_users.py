"""
Registration, referral links between accounts and role permissions
"""
import pytest
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError

from notifications.models import Notification

from .conftest import PASSWORD

User = get_user_model()


@pytest.mark.django_db
class TestRegistration:

    def _payload(self, **overrides):
        payload = {
            'username': 'newbie',
            'email': 'newbie@example.com',
            'password': PASSWORD,
            'password_confirmation': PASSWORD,
            'first_name': 'New',
            'last_name': 'Comer',
        }
        payload.update(overrides)
        return payload

    def test_register_with_referral_code(self, api_client, referrer):
        response = api_client.post(
            '/api/v1/auth/register/',
            self._payload(referred_by_code=referrer.referral_code.lower()),
            format='json'
        )

        assert response.status_code == 201
        assert 'access' in response.data['tokens']

        user = User.objects.get(email='newbie@example.com')
        assert user.referred_by == referrer
        assert len(user.referral_code) == 8
        assert user.referral_code != referrer.referral_code

    def test_unknown_referral_code_is_ignored(self, api_client):
        response = api_client.post('/api/v1/auth/register/', self._payload(referred_by_code='NOPE1234'), format='json')

        assert response.status_code == 201
        assert User.objects.get(email='newbie@example.com').referred_by is None

    def test_password_mismatch(self, api_client):
        response = api_client.post(
            '/api/v1/auth/register/',
            self._payload(password_confirmation='Different!123'),
            format='json'
        )

        assert response.status_code == 400
        assert 'password_confirmation' in response.data['details']

    def test_welcome_notification_and_email(self, api_client, mailoutbox):
        api_client.post('/api/v1/auth/register/', self._payload(), format='json')

        user = User.objects.get(email='newbie@example.com')
        assert Notification.objects.filter(user=user, notification_type=Notification.Type.SYSTEM).count() == 1
        assert any(user.email in message.to for message in mailoutbox)

    def test_login_with_email_or_username(self, api_client, make_user):
        user = make_user('login@example.com')

        by_email = api_client.post('/api/v1/auth/login/', {'login': user.email, 'password': PASSWORD}, format='json')
        by_username = api_client.post('/api/v1/auth/login/', {'login': user.username, 'password': PASSWORD}, format='json')

        assert by_email.status_code == 200
        assert by_username.status_code == 200
        assert 'access' in by_email.data['tokens']


@pytest.mark.django_db
class TestReferralLink:

    def test_referrer_is_permanent(self, make_user, referrer, referred):
        other = make_user('other@example.com')
        referred.referred_by = other

        with pytest.raises(ValidationError):
            referred.save()

        referred.refresh_from_db()
        assert referred.referred_by == referrer

    def test_referrer_can_be_set_once(self, make_user, referrer):
        user = make_user('late@example.com')
        user.referred_by = referrer
        user.save()

        user.refresh_from_db()
        assert user.referred_by == referrer

    def test_unrelated_updates_still_allowed(self, referred):
        referred.country = 'Kenya'
        referred.save(update_fields=['country'])

        referred.refresh_from_db()
        assert referred.country == 'Kenya'

    def test_referral_summary(self, client_for, referrer, referred, settings):
        response = client_for(referrer).get('/api/v1/referrals/')

        assert response.status_code == 200
        assert response.data['referralCode'] == referrer.referral_code
        assert response.data['referralLink'] == f'{settings.FRONTEND_URL}/auth/sign-up?ref={referrer.referral_code}'
        assert response.data['totalReferrals'] == 1

    def test_referral_history_status(self, client_for, referrer, referred):
        response = client_for(referrer).get('/api/v1/referrals/history/')

        assert response.status_code == 200
        assert len(response.data) == 1
        assert response.data[0]['email'] == referred.email
        assert response.data[0]['status'] == 'PENDING'


@pytest.mark.django_db
class TestPermissions:

    def test_anonymous_gets_401(self, api_client):
        assert api_client.get('/api/v1/auth/me/').status_code == 401
        assert api_client.get('/api/admin/dashboard').status_code == 401

    def test_user_cannot_reach_admin_endpoints(self, client_for, referred):
        client = client_for(referred)

        assert client.get('/api/admin/dashboard').status_code == 403
        assert client.get('/api/v1/admin/users/').status_code == 403
        assert client.post('/api/admin/reports', {'type': 'users'}, format='json').status_code == 403

    def test_admin_cannot_set_token_price(self, client_for, admin_user):
        response = client_for(admin_user).post('/api/admin/token-price', {'price': '3.10'}, format='json')

        assert response.status_code == 403

    def test_only_superadmin_changes_roles(self, client_for, admin_user, superadmin, referred):
        response = client_for(admin_user).patch(
            f'/api/v1/admin/users/{referred.id}/', {'role': User.Role.ADMIN}, format='json'
        )
        assert response.status_code == 403

        response = client_for(superadmin).patch(
            f'/api/v1/admin/users/{referred.id}/', {'role': User.Role.ADMIN}, format='json'
        )
        assert response.status_code == 200
        referred.refresh_from_db()
        assert referred.is_admin

    def test_profile_shows_balances(self, client_for, referred):
        response = client_for(referred).get('/api/v1/auth/me/')

        assert response.status_code == 200
        assert response.data['user']['email'] == referred.email
        assert 'balances' in response.data['user']
