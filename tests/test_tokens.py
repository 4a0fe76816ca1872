"""
Token price lookup, staking and locked withdrawals
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from core.tasks import unlock_matured_withdrawals
from funds.models import Transaction, WithdrawalRequest
from tokens.models import StakingRecord, TokenPrice
from tokens.services.price_service import TokenPriceService


@pytest.mark.django_db
class TestTokenPrice:

    def test_falls_back_to_configured_default(self, settings):
        settings.DEFAULT_TOKEN_PRICE = Decimal('2.80')

        assert TokenPriceService().get_current_price() == Decimal('2.80')

    def test_uses_latest_price_when_today_is_unset(self):
        today = timezone.localdate()
        TokenPrice.objects.create(date=today - timedelta(days=5), price=Decimal('2.10'))
        TokenPrice.objects.create(date=today - timedelta(days=1), price=Decimal('2.40'))

        assert TokenPriceService().get_current_price() == Decimal('2.40')

    def test_today_wins(self):
        today = timezone.localdate()
        TokenPrice.objects.create(date=today - timedelta(days=1), price=Decimal('2.40'))
        TokenPrice.objects.create(date=today, price=Decimal('2.55'))

        assert TokenPriceService().get_current_price() == Decimal('2.55')

    def test_set_price_replaces_same_day(self):
        service = TokenPriceService()
        service.set_price(Decimal('2.00'))
        service.set_price(Decimal('2.20'))

        assert TokenPrice.objects.count() == 1
        assert service.get_current_price() == Decimal('2.20')

    def test_tokens_for(self):
        assert TokenPriceService().tokens_for(Decimal('1000'), Decimal('2.80')) == Decimal('357.14285714')

    def test_current_price_is_public(self, api_client, token_price):
        response = api_client.get('/api/tokens/current-price')

        assert response.status_code == 200
        assert response.data['price'] == Decimal('2.00')

    def test_superadmin_sets_price(self, client_for, superadmin):
        client = client_for(superadmin)

        response = client.post('/api/admin/token-price', {'price': '3.10'}, format='json')
        assert response.status_code == 201

        response = client.get('/api/admin/token-price')
        assert response.status_code == 200
        assert response.data['currentPrice'] == Decimal('3.10')
        assert len(response.data['prices']) == 1


@pytest.mark.django_db
class TestStaking:

    def test_stake(self, client_for, make_user):
        holder = make_user('holder@example.com', total_tokens=Decimal('100'), available_tokens=Decimal('100'))

        response = client_for(holder).post('/api/tokens/stake', {'amount': '40'}, format='json')

        assert response.status_code == 201
        holder.refresh_from_db()
        assert holder.available_tokens == Decimal('60')
        assert holder.staked_tokens == Decimal('40')
        assert holder.total_tokens == Decimal('100')

        record = StakingRecord.objects.get(user=holder)
        assert record.status == StakingRecord.Status.ACTIVE
        assert (record.end_date - record.start_date).days == 1095
        assert Transaction.objects.filter(user=holder, transaction_type=Transaction.Type.STAKE).exists()

        listing = client_for(holder).get('/api/tokens/staking')
        assert listing.status_code == 200

    def test_cannot_stake_more_than_available(self, client_for, make_user):
        holder = make_user('small@example.com', total_tokens=Decimal('10'), available_tokens=Decimal('10'))

        response = client_for(holder).post('/api/tokens/stake', {'amount': '40'}, format='json')

        assert response.status_code == 400
        assert StakingRecord.objects.count() == 0


@pytest.mark.django_db
class TestWithdrawals:

    @pytest.fixture
    def holder(self, make_user):
        return make_user('withdraw@example.com', total_tokens=Decimal('100'), available_tokens=Decimal('100'))

    @pytest.fixture
    def withdrawal(self, client_for, holder, token_price):
        response = client_for(holder).post('/api/tokens/withdraw', {
            'amount': '20',
            'network': 'ERC20',
            'walletAddress': '0x1234',
        }, format='json')
        assert response.status_code == 201
        return WithdrawalRequest.objects.get(pk=response.data['withdrawal']['id'])

    def _backdate(self, withdrawal, days):
        WithdrawalRequest.objects.filter(pk=withdrawal.pk).update(
            created_at=timezone.now() - timedelta(days=days)
        )

    def test_request_reserves_tokens(self, holder, withdrawal):
        holder.refresh_from_db()

        assert withdrawal.token_amount == Decimal('10')
        assert withdrawal.status == WithdrawalRequest.Status.PENDING
        assert withdrawal.lock_period_days == 1095
        assert withdrawal.transaction.status == Transaction.Status.PENDING
        assert holder.available_tokens == Decimal('90')
        assert holder.total_tokens == Decimal('100')

    def test_one_pending_request_at_a_time(self, client_for, holder, withdrawal):
        response = client_for(holder).post('/api/tokens/withdraw', {
            'amount': '20', 'network': 'ERC20', 'walletAddress': '0x1234',
        }, format='json')

        assert response.status_code == 400
        assert response.data == {'error': 'You already have a pending withdrawal request'}

    def test_locked_withdrawal_cannot_be_approved(self, client_for, admin_user, withdrawal):
        response = client_for(admin_user).post('/api/admin/withdrawals/approve', {
            'withdrawalId': withdrawal.id, 'action': 'approve',
        }, format='json')

        assert response.status_code == 400
        assert response.data['error'].startswith('Withdrawal is locked until')

    def test_approve_after_lock(self, client_for, admin_user, holder, withdrawal):
        self._backdate(withdrawal, 1096)

        response = client_for(admin_user).post('/api/admin/withdrawals/approve', {
            'withdrawalId': withdrawal.id, 'action': 'approve',
        }, format='json')

        assert response.status_code == 200
        withdrawal.refresh_from_db()
        holder.refresh_from_db()
        assert withdrawal.status == WithdrawalRequest.Status.APPROVED
        assert withdrawal.can_withdraw is True
        assert withdrawal.transaction.status == Transaction.Status.COMPLETED
        assert holder.total_tokens == Decimal('90')
        assert holder.available_tokens == Decimal('90')

    def test_reject_returns_tokens(self, client_for, admin_user, holder, withdrawal):
        response = client_for(admin_user).post('/api/admin/withdrawals/approve', {
            'withdrawalId': withdrawal.id, 'action': 'reject', 'reason': 'Wrong network',
        }, format='json')

        assert response.status_code == 200
        withdrawal.refresh_from_db()
        holder.refresh_from_db()
        assert withdrawal.status == WithdrawalRequest.Status.REJECTED
        assert withdrawal.rejection_reason == 'Wrong network'
        assert withdrawal.transaction.status == Transaction.Status.FAILED
        assert holder.available_tokens == Decimal('100')

    def test_unlock_task(self, withdrawal):
        assert unlock_matured_withdrawals() == 0

        self._backdate(withdrawal, 1096)

        assert unlock_matured_withdrawals() == 1
        withdrawal.refresh_from_db()
        assert withdrawal.can_withdraw is True
        assert withdrawal.status == WithdrawalRequest.Status.PENDING
