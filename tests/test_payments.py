"""
Purchase requests, admin confirmation, manual deposits and balance purchases
"""
from decimal import Decimal

import pytest
from django.conf import settings

from funds.models import Transaction
from notifications.models import Notification
from referrals.models import ReferralCommission


@pytest.mark.django_db
class TestPurchaseRequest:

    def test_creates_pending_purchase(self, client_for, referred, token_price):
        response = client_for(referred).post('/api/tokens/purchase', {'amount': '200'}, format='json')

        assert response.status_code == 201
        assert response.data['walletAddress'] == settings.PAYMENT_WALLET_ADDRESS
        assert response.data['transaction']['status'] == Transaction.Status.PENDING
        assert Decimal(response.data['transaction']['token_amount']) == Decimal('100')
        assert response.data['transaction']['reference_id'].startswith('PUR-')

        referred.refresh_from_db()
        assert referred.total_tokens == Decimal('0')

    def test_below_minimum(self, client_for, referred, token_price):
        response = client_for(referred).post('/api/tokens/purchase', {'amount': '5'}, format='json')

        assert response.status_code == 400
        assert 'Minimum purchase amount' in response.data['error']

    def test_requires_authentication(self, api_client, token_price):
        response = api_client.post('/api/tokens/purchase', {'amount': '200'}, format='json')

        assert response.status_code == 401


@pytest.mark.django_db
class TestConfirmPayment:

    def test_confirm(self, client_for, admin_user, referred, pending_purchase, mailoutbox):
        response = client_for(admin_user).post('/api/admin/confirm-payment', {
            'transactionId': str(pending_purchase.id),
            'action': 'confirm',
            'adminNotes': 'Seen on chain',
        }, format='json')

        assert response.status_code == 200
        assert response.data['message'] == 'Payment confirmed successfully'
        assert response.data['transactionId'] == str(pending_purchase.id)
        assert Decimal(str(response.data['tokensCredited'])) == Decimal('100')
        assert response.data['userEmail'] == referred.email

        pending_purchase.refresh_from_db()
        assert pending_purchase.status == Transaction.Status.COMPLETED
        assert pending_purchase.admin_notes == 'Seen on chain'
        assert pending_purchase.processed_by == admin_user
        assert pending_purchase.completed_at is not None
        assert any(referred.email in message.to for message in mailoutbox)

    def test_double_confirm_is_rejected(self, client_for, admin_user, referred, pending_purchase):
        client = client_for(admin_user)
        payload = {'transactionId': str(pending_purchase.id), 'action': 'confirm'}

        assert client.post('/api/admin/confirm-payment', payload, format='json').status_code == 200
        response = client.post('/api/admin/confirm-payment', payload, format='json')

        assert response.status_code == 400
        assert response.data == {'error': 'Transaction is already COMPLETED'}

        referred.refresh_from_db()
        assert referred.total_tokens == Decimal('100')
        assert ReferralCommission.objects.count() == 1

    def test_reject(self, client_for, admin_user, referred, pending_purchase):
        response = client_for(admin_user).post('/api/admin/confirm-payment', {
            'transactionId': str(pending_purchase.id),
            'action': 'reject',
        }, format='json')

        assert response.status_code == 200
        assert response.data['message'] == 'Payment rejected'

        pending_purchase.refresh_from_db()
        referred.refresh_from_db()
        assert pending_purchase.status == Transaction.Status.FAILED
        assert referred.total_tokens == Decimal('0')
        assert ReferralCommission.objects.count() == 0

    def test_unknown_transaction(self, client_for, admin_user):
        response = client_for(admin_user).post('/api/admin/confirm-payment', {
            'transactionId': '00000000-0000-0000-0000-000000000000',
            'action': 'confirm',
        }, format='json')

        assert response.status_code == 404
        assert response.data == {'error': 'Transaction not found'}

    def test_invalid_action(self, client_for, admin_user, pending_purchase):
        response = client_for(admin_user).post('/api/admin/confirm-payment', {
            'transactionId': str(pending_purchase.id),
            'action': 'approve',
        }, format='json')

        assert response.status_code == 400
        assert 'action' in response.data['details']

    def test_regular_user_forbidden(self, client_for, referred, pending_purchase):
        response = client_for(referred).post('/api/admin/confirm-payment', {
            'transactionId': str(pending_purchase.id),
            'action': 'confirm',
        }, format='json')

        assert response.status_code == 403
        pending_purchase.refresh_from_db()
        assert pending_purchase.status == Transaction.Status.PENDING

    def test_trailing_slash_is_optional(self, client_for, admin_user, pending_purchase):
        response = client_for(admin_user).post('/api/admin/confirm-payment/', {
            'transactionId': str(pending_purchase.id),
            'action': 'confirm',
        }, format='json')

        assert response.status_code == 200


@pytest.mark.django_db
class TestManualDeposit:

    def _payload(self, email, tx_hash='0xabc123'):
        return {
            'userEmail': email,
            'usdtAmount': '200',
            'txHash': tx_hash,
            'fromWallet': '0xfeedbeef',
        }

    def test_records_completed_purchase(self, client_for, admin_user, referrer, referred, token_price):
        response = client_for(admin_user).post('/api/admin/manual-deposit', self._payload(referred.email), format='json')

        assert response.status_code == 201
        assert response.data['success'] is True
        assert Decimal(str(response.data['transaction']['tokenAmount'])) == Decimal('100')
        assert response.data['transaction']['txHash'] == '0xabc123'

        purchase = Transaction.objects.get(tx_hash='0xabc123')
        assert purchase.status == Transaction.Status.COMPLETED
        assert purchase.transaction_type == Transaction.Type.PURCHASE
        assert purchase.processed_by == admin_user

        referred.refresh_from_db()
        referrer.refresh_from_db()
        assert referred.total_tokens == Decimal('100')
        assert referrer.referral_earnings == Decimal('10')

        assert Notification.objects.filter(
            user=admin_user, title='Manual USDT Deposit Processed'
        ).exists()
        assert Notification.objects.filter(
            user=referred, notification_type=Notification.Type.DEPOSIT
        ).exists()

    def test_duplicate_tx_hash(self, client_for, admin_user, referred, token_price):
        client = client_for(admin_user)
        assert client.post('/api/admin/manual-deposit', self._payload(referred.email), format='json').status_code == 201

        response = client.post('/api/admin/manual-deposit', self._payload(referred.email), format='json')

        assert response.status_code == 400
        assert Transaction.objects.filter(tx_hash='0xabc123').count() == 1

    def test_unknown_user(self, client_for, admin_user, token_price):
        response = client_for(admin_user).post(
            '/api/admin/manual-deposit', self._payload('nobody@example.com'), format='json'
        )

        assert response.status_code == 404
        assert response.data == {'error': 'User not found'}

    def test_inactive_user(self, client_for, admin_user, make_user, token_price):
        dormant = make_user('dormant@example.com', is_active=False)

        response = client_for(admin_user).post('/api/admin/manual-deposit', self._payload(dormant.email), format='json')

        assert response.status_code == 400
        assert Transaction.objects.filter(user=dormant).count() == 0


@pytest.mark.django_db
class TestBalancePurchase:

    def test_spends_usdt_balance(self, client_for, make_user, referrer, token_price):
        buyer = make_user('wallet@example.com', referred_by=referrer, usdt_balance=Decimal('100'))

        response = client_for(buyer).post('/api/tokens/purchase-from-balance', {'amount': '50'}, format='json')

        assert response.status_code == 200
        assert response.data['success'] is True
        balances = response.data['newBalances']
        assert balances['usdtBalance'] == Decimal('50')
        assert balances['totalTokens'] == Decimal('25')
        assert balances['availableTokens'] == Decimal('25')

        purchase = Transaction.objects.get(user=buyer, transaction_type=Transaction.Type.PURCHASE)
        assert purchase.status == Transaction.Status.COMPLETED
        assert purchase.payment_method == 'usdt_balance'

        referrer.refresh_from_db()
        assert referrer.referral_earnings == Decimal('2.5')

    def test_insufficient_balance(self, client_for, make_user, token_price):
        buyer = make_user('broke@example.com', usdt_balance=Decimal('10'))

        response = client_for(buyer).post('/api/tokens/purchase-from-balance', {'amount': '50'}, format='json')

        assert response.status_code == 400
        assert response.data == {'error': 'Insufficient USDT balance. Available: $10.00'}

        buyer.refresh_from_db()
        assert buyer.usdt_balance == Decimal('10')
        assert Transaction.objects.filter(user=buyer).count() == 0

    def test_inactive_account(self, client_for, make_user, token_price):
        buyer = make_user('frozen@example.com', usdt_balance=Decimal('100'), is_active=False)

        response = client_for(buyer).post('/api/tokens/purchase-from-balance', {'amount': '50'}, format='json')

        assert response.status_code == 403

    def test_amount_validation(self, client_for, make_user, token_price):
        buyer = make_user('tiny@example.com', usdt_balance=Decimal('100'))

        response = client_for(buyer).post('/api/tokens/purchase-from-balance', {'amount': '0'}, format='json')

        assert response.status_code == 400
        assert response.data['error'] == 'Invalid request data'
