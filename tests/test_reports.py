"""
Admin reports and dashboard
"""
import csv
import io
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from funds.services.payment_service import PaymentService
from referrals.models import ReferralCommission
from referrals.services.commission_service import CommissionSettlementService


@pytest.fixture
def settled_purchase(admin_user, pending_purchase):
    return PaymentService().confirm_payment(pending_purchase.id, admin_user)


@pytest.mark.django_db
class TestReports:

    def test_json_commission_report(self, client_for, admin_user, referrer, referred, settled_purchase):
        response = client_for(admin_user).post('/api/admin/reports', {'type': 'commissions'}, format='json')

        assert response.status_code == 200
        assert response.data['message'] == 'commissions report generated successfully'
        assert response.data['totalRecords'] == 1
        assert response.data['generatedBy'] == admin_user.email
        assert response.data['dateRange']['filterApplied'] is False

        row = response.data['data'][0]
        assert row['referrerEmail'] == referrer.email
        assert row['referredUserEmail'] == referred.email
        assert row['amount'] == Decimal('10')
        assert row['isPaid'] is False

    def test_csv_transaction_report(self, client_for, admin_user, settled_purchase):
        response = client_for(admin_user).post(
            '/api/admin/reports', {'type': 'transactions', 'format': 'csv'}, format='json'
        )

        assert response.status_code == 200
        assert response['Content-Type'].startswith('text/csv')
        today = timezone.localdate().isoformat()
        assert f'transactions_report_{today}.csv' in response['Content-Disposition']

        rows = list(csv.DictReader(io.StringIO(response.content.decode())))
        assert len(rows) == 1
        assert rows[0]['referenceId'] == settled_purchase.reference_id
        assert rows[0]['status'] == 'COMPLETED'

    def test_date_range_covers_whole_days(self, client_for, admin_user, settled_purchase):
        client = client_for(admin_user)
        today = timezone.localdate()

        same_day = client.post('/api/admin/reports', {
            'type': 'transactions',
            'startDate': today.isoformat(),
            'endDate': today.isoformat(),
        }, format='json')
        tomorrow = client.post('/api/admin/reports', {
            'type': 'transactions',
            'startDate': (today + timedelta(days=1)).isoformat(),
        }, format='json')

        assert same_day.data['totalRecords'] == 1
        assert same_day.data['dateRange']['filterApplied'] is True
        assert tomorrow.data['totalRecords'] == 0

    def test_referral_report_lists_referred_users_only(self, client_for, admin_user, referrer, referred):
        response = client_for(admin_user).post('/api/admin/reports', {'type': 'referrals'}, format='json')

        assert response.data['totalRecords'] == 1
        assert response.data['data'][0]['email'] == referred.email
        assert response.data['data'][0]['referrerEmail'] == referrer.email

    def test_empty_csv(self, client_for, admin_user):
        response = client_for(admin_user).post(
            '/api/admin/reports', {'type': 'withdrawals', 'format': 'csv'}, format='json'
        )

        assert response.status_code == 200
        assert response.content == b''

    def test_unknown_report_type(self, client_for, admin_user):
        response = client_for(admin_user).post('/api/admin/reports', {'type': 'payroll'}, format='json')

        assert response.status_code == 400
        assert 'type' in response.data['details']


@pytest.mark.django_db
class TestDashboard:

    def test_headline_numbers(self, client_for, admin_user, referred, settled_purchase):
        PaymentService().create_purchase_request(referred, Decimal('50'))

        response = client_for(admin_user).get('/api/admin/dashboard')

        assert response.status_code == 200
        assert response.data['revenue'] == Decimal('200')
        assert response.data['tokensSold'] == Decimal('100')
        assert response.data['completedPurchases'] == 1
        assert response.data['pendingPayments'] == 1
        assert response.data['commissions']['unpaid'] == Decimal('10')
        assert response.data['currentPrice'] == Decimal('2.00')
        assert response.data['users']['referred'] == 1

    def test_rejected_commissions_are_not_owed(self, client_for, admin_user, superadmin, referrer, settled_purchase):
        commission = ReferralCommission.objects.get(referrer=referrer)
        CommissionSettlementService().reject(commission, superadmin, 'Duplicate account')

        response = client_for(admin_user).get('/api/admin/dashboard')

        assert response.data['commissions']['unpaid'] == Decimal('0')
        assert response.data['commissions']['rejected'] == Decimal('10')

        report = client_for(admin_user).post('/api/admin/reports', {'type': 'commissions'}, format='json')
        assert report.data['data'][0]['isRejected'] is True
        assert report.data['data'][0]['rejectionReason'] == 'Duplicate account'
