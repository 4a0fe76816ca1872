"""
Pytest configuration and fixtures for the DITokens platform tests
"""
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from funds.services.payment_service import PaymentService
from tokens.services.price_service import TokenPriceService

User = get_user_model()

PASSWORD = 'Str0ng!Passw0rd'


@pytest.fixture
def api_client():
    """Unauthenticated API client"""
    return APIClient()


@pytest.fixture
def client_for():
    """
    Build an API client authenticated as the given user
    """
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client


@pytest.fixture
def make_user(db):
    """
    User factory. Every user gets a unique username and email.
    """
    created = []

    def _make(email=None, role=User.Role.USER, **extra):
        n = len(created) + 1
        email = email or f'user{n}@example.com'
        user = User.objects.create_user(
            username=f"{email.split('@')[0]}_{n}",
            email=email,
            password=PASSWORD,
            role=role,
            **extra
        )
        created.append(user)
        return user
    return _make


@pytest.fixture
def referrer(make_user):
    return make_user('referrer@example.com', first_name='Rita', last_name='Referrer')


@pytest.fixture
def referred(make_user, referrer):
    return make_user('buyer@example.com', first_name='Bob', last_name='Buyer', referred_by=referrer)


@pytest.fixture
def admin_user(make_user):
    return make_user('admin@example.com', role=User.Role.ADMIN)


@pytest.fixture
def superadmin(make_user):
    return make_user('owner@example.com', role=User.Role.SUPERADMIN)


@pytest.fixture
def token_price(db):
    """Today's DIT price fixed at $2.00"""
    return TokenPriceService().set_price(Decimal('2.00'))


@pytest.fixture
def pending_purchase(referred, token_price):
    """A $200 purchase by a referred user, awaiting admin confirmation"""
    return PaymentService().create_purchase_request(referred, Decimal('200'))
