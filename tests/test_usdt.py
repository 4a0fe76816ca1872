"""
Selling DIT into the USDT balance and paying that balance out
"""
from decimal import Decimal

import pytest

from funds.models import Transaction, WithdrawalRequest
from notifications.models import Notification


@pytest.mark.django_db
class TestConvertToUsdt:

    @pytest.fixture
    def holder(self, make_user):
        return make_user('seller@example.com', total_tokens=Decimal('100'), available_tokens=Decimal('60'),
                         staked_tokens=Decimal('40'), usdt_balance=Decimal('5'))

    def test_conversion_at_current_price(self, client_for, holder, token_price):
        response = client_for(holder).post('/api/tokens/convert-to-usdt', {'tokenAmount': '25'}, format='json')

        assert response.status_code == 200
        assert response.data['message'] == 'DIT tokens converted to USDT successfully'
        conversion = response.data['conversion']
        assert conversion['tokenAmount'] == Decimal('25')
        assert conversion['usdtAmount'] == Decimal('50')
        assert conversion['currentPrice'] == Decimal('2.00')
        assert conversion['newUsdtBalance'] == Decimal('55')
        assert conversion['newAvailableTokens'] == Decimal('35')

        holder.refresh_from_db()
        assert holder.total_tokens == Decimal('75')
        assert holder.staked_tokens == Decimal('40')

        sale = Transaction.objects.get(user=holder, transaction_type=Transaction.Type.SALE)
        assert sale.status == Transaction.Status.COMPLETED
        assert sale.payment_method == 'internal_conversion'
        assert sale.reference_id.startswith('SAL-')
        assert sale.description == 'DIT to USDT conversion: 25 DIT → $50.00 USDT'
        assert Notification.objects.filter(user=holder, title='Tokens Converted to USDT').exists()

    def test_staked_tokens_cannot_be_converted(self, client_for, holder, token_price):
        response = client_for(holder).post('/api/tokens/convert-to-usdt', {'tokenAmount': '80'}, format='json')

        assert response.status_code == 400
        assert response.data == {'error': 'Insufficient available DIT tokens'}
        holder.refresh_from_db()
        assert holder.available_tokens == Decimal('60')
        assert holder.usdt_balance == Decimal('5')

    def test_minimum_one_token(self, client_for, holder, token_price):
        response = client_for(holder).post('/api/tokens/convert-to-usdt', {'tokenAmount': '0.5'}, format='json')

        assert response.status_code == 400
        assert response.data == {'error': 'Minimum conversion amount is 1 DIT token'}

    def test_inactive_account(self, client_for, make_user, token_price):
        frozen = make_user('frozen-seller@example.com', available_tokens=Decimal('10'),
                           total_tokens=Decimal('10'), is_active=False)

        response = client_for(frozen).post('/api/tokens/convert-to-usdt', {'tokenAmount': '5'}, format='json')

        assert response.status_code == 403
        assert response.data == {'error': 'Account is not active'}

    def test_amount_must_be_positive(self, client_for, holder):
        response = client_for(holder).post('/api/tokens/convert-to-usdt', {'tokenAmount': '0'}, format='json')

        assert response.status_code == 400
        assert 'tokenAmount' in response.data['details']

    def test_history_lists_own_conversions(self, client_for, holder, make_user, token_price):
        client = client_for(holder)
        client.post('/api/tokens/convert-to-usdt', {'tokenAmount': '5'}, format='json')
        client.post('/api/tokens/convert-to-usdt', {'tokenAmount': '10'}, format='json')

        other = make_user('other-seller@example.com', total_tokens=Decimal('10'), available_tokens=Decimal('10'))
        client_for(other).post('/api/tokens/convert-to-usdt', {'tokenAmount': '2'}, format='json')

        response = client.get('/api/tokens/conversions')

        assert response.status_code == 200
        assert len(response.data['conversions']) == 2
        assert Decimal(response.data['conversions'][0]['token_amount']) == Decimal('10')


@pytest.mark.django_db
class TestUsdtWithdrawals:

    @pytest.fixture
    def earner(self, make_user):
        return make_user('earner@example.com', usdt_balance=Decimal('120'), available_tokens=Decimal('50'),
                         total_tokens=Decimal('50'))

    @pytest.fixture
    def payout(self, client_for, earner):
        response = client_for(earner).post('/api/usdt/withdraw', {
            'amount': '100',
            'walletAddress': '0xabcd',
        }, format='json')
        assert response.status_code == 201
        return WithdrawalRequest.objects.get(pk=response.data['withdrawalRequest']['id'])

    def test_request_takes_amount_from_balance(self, client_for, earner):
        response = client_for(earner).post('/api/usdt/withdraw', {
            'amount': '100',
            'walletAddress': '0xabcd',
        }, format='json')

        assert response.status_code == 201
        assert response.data['message'] == 'USDT withdrawal request created successfully'
        assert response.data['withdrawalRequest']['status'] == WithdrawalRequest.Status.PENDING
        assert response.data['withdrawalRequest']['walletAddress'] == '0xabcd'

        earner.refresh_from_db()
        assert earner.usdt_balance == Decimal('20')
        assert earner.available_tokens == Decimal('50')

        withdrawal = WithdrawalRequest.objects.get(user=earner)
        assert withdrawal.asset == WithdrawalRequest.Asset.USDT
        assert withdrawal.network == 'USDT'
        assert withdrawal.token_amount == Decimal('0')
        assert withdrawal.can_withdraw is True
        assert withdrawal.transaction.transaction_type == Transaction.Type.WITHDRAWAL
        assert withdrawal.transaction.status == Transaction.Status.PENDING
        assert withdrawal.transaction.payment_method == 'USDT'

    def test_insufficient_balance(self, client_for, earner):
        response = client_for(earner).post('/api/usdt/withdraw', {
            'amount': '500', 'walletAddress': '0xabcd',
        }, format='json')

        assert response.status_code == 400
        assert response.data == {'error': 'Insufficient USDT balance'}
        assert WithdrawalRequest.objects.count() == 0

    def test_minimum_ten_dollars(self, client_for, earner):
        response = client_for(earner).post('/api/usdt/withdraw', {
            'amount': '9.99', 'walletAddress': '0xabcd',
        }, format='json')

        assert response.status_code == 400
        assert response.data == {'error': 'Minimum withdrawal amount is $10'}

    def test_token_withdrawal_can_run_alongside(self, client_for, earner, payout, token_price):
        response = client_for(earner).post('/api/tokens/withdraw', {
            'amount': '20', 'network': 'ERC20', 'walletAddress': '0x1234',
        }, format='json')

        assert response.status_code == 201

        response = client_for(earner).post('/api/usdt/withdraw', {
            'amount': '10', 'walletAddress': '0xabcd',
        }, format='json')
        assert response.status_code == 400
        assert response.data == {'error': 'You already have a pending withdrawal request'}

    def test_approval_needs_no_lock_period(self, client_for, admin_user, earner, payout):
        response = client_for(admin_user).post('/api/admin/withdrawals/approve', {
            'withdrawalId': payout.id, 'action': 'approve',
        }, format='json')

        assert response.status_code == 200
        payout.refresh_from_db()
        earner.refresh_from_db()
        assert payout.status == WithdrawalRequest.Status.APPROVED
        assert payout.transaction.status == Transaction.Status.COMPLETED
        assert earner.usdt_balance == Decimal('20')
        assert earner.total_tokens == Decimal('50')

    def test_rejection_refunds_balance(self, client_for, admin_user, earner, payout, mailoutbox):
        response = client_for(admin_user).post('/api/admin/withdrawals/approve', {
            'withdrawalId': payout.id, 'action': 'reject', 'reason': 'Unverified wallet',
        }, format='json')

        assert response.status_code == 200
        earner.refresh_from_db()
        assert earner.usdt_balance == Decimal('120')
        assert earner.available_tokens == Decimal('50')
        assert any('$100.00 USDT' in message.body for message in mailoutbox)

    def test_list_shows_usdt_requests_only(self, client_for, earner, payout, token_price):
        client = client_for(earner)
        client.post('/api/tokens/withdraw', {
            'amount': '20', 'network': 'ERC20', 'walletAddress': '0x1234',
        }, format='json')

        response = client.get('/api/usdt/withdrawals')

        assert response.status_code == 200
        assert [w['id'] for w in response.data['withdrawals']] == [payout.id]
        assert response.data['withdrawals'][0]['asset'] == WithdrawalRequest.Asset.USDT
