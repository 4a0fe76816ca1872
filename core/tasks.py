# tasks.py
import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task
def retry_failed_commission_settlements():
    """Re-run referral commission settlements that failed after their purchase completed"""
    from referrals.services.commission_service import CommissionSettlementService

    resolved = CommissionSettlementService().retry_pending()
    logger.info(f"Commission retry pass resolved {resolved} settlement(s)")
    return resolved


@shared_task
def unlock_matured_withdrawals():
    """Flag pending withdrawals whose lock period has elapsed"""
    from funds.services.withdrawal_service import WithdrawalService

    unlocked = WithdrawalService().unlock_matured()
    logger.info(f"Unlocked {unlocked} withdrawal request(s)")
    return unlocked
