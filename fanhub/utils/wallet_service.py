"""
Wallet Service

FLOW OVERVIEW
- purchase_coins(user, reference, amount, coins)
  • coins ≥ 100, amount ≈ coins × ₦0.5 (±₦1), claimable reference → verify → credit.
- apply_successful_charge(reference, charge)
  • Webhook path: mark a pending PaymentTransaction paid exactly once; only coin payments
    are fulfilled here, other contexts wait for the fan to redeem the reference.
- claim_payment / fulfil_payment
  • Shared by every paid flow: reuse the caller's own unfulfilled transaction for the
    reference (e.g. one opened by /api/payments/initialize) or start a new one.
- initialize_payment(user, context, amount, coins)
  • Create a pending PaymentTransaction and ask Paystack for a checkout URL.
- request_withdrawal(user, coin_amount, bank_details)
  • Limits, bank validation, fee = max(₦25, 1%) → debit coins → pending Withdrawal.
- process_withdrawal(admin, withdrawal_id, action, note)
  • approve, or reject with a refund; only pending withdrawals move.
"""

import logging
from datetime import datetime

from flask import current_app

from ..models import db, PaymentTransaction, Withdrawal
from ..models.utils import generate_reference
from .coin_ledger import coin_ledger, coins_to_naira, MIN_COIN_PURCHASE, NAIRA_PER_COIN
from .errors import APIError
from .paystack import get_client, is_preview_mode, verify_payment
from .validators import validate_bank_details

MIN_WITHDRAWAL_COINS = 10000
MAX_WITHDRAWAL_COINS = 1000000
MIN_WITHDRAWAL_FEE_NAIRA = 25
WITHDRAWAL_FEE_RATE = 0.01
PAYMENT_CONTEXTS = ('coins', 'ticket', 'membership', 'meet_greet')


def withdrawal_fee(naira_amount):
    return max(MIN_WITHDRAWAL_FEE_NAIRA, int(round(naira_amount * WITHDRAWAL_FEE_RATE)))


def claim_payment(user, reference, context):
    """Lock the transaction behind `reference` for redemption.

    Returns None for a reference never seen before. A transaction the same user opened
    for the same context and that has not been fulfilled yet is returned locked, even
    when the webhook already marked it paid. Anything else is a reused reference.
    """
    transaction = (
        PaymentTransaction.query.filter_by(reference=reference)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if transaction is None:
        return None
    if (transaction.user_id != user.id or transaction.context != context
            or transaction.is_fulfilled or transaction.status == 'failed'):
        raise APIError('Payment reference already used', 400, 'DUPLICATE_REFERENCE')
    return transaction


def fulfil_payment(transaction, user, reference, context, amount_naira, charge, coins_credited=0):
    """Record a verified charge as paid and handed over. Does not commit."""
    now = datetime.utcnow()
    if transaction is None:
        transaction = PaymentTransaction(user_id=user.id, reference=reference, context=context)
        db.session.add(transaction)
    transaction.amount_naira = amount_naira
    transaction.coins_credited = coins_credited
    transaction.status = 'success'
    transaction.provider_data = charge
    transaction.verified_at = transaction.verified_at or now
    transaction.fulfilled_at = now
    return transaction


class WalletService:
    """Coin purchases, gateway settlement and cash-outs."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def purchase_coins(self, user, reference, amount, coins):
        if not isinstance(coins, int) or isinstance(coins, bool) or coins < MIN_COIN_PURCHASE:
            raise APIError(f'Minimum purchase is {MIN_COIN_PURCHASE} coins', 400, 'VALIDATION_ERROR')
        if not isinstance(amount, (int, float)) or isinstance(amount, bool) or amount <= 0:
            raise APIError('Invalid amount', 400, 'VALIDATION_ERROR')

        expected = int(coins * NAIRA_PER_COIN)
        if abs(amount - expected) > 1:
            raise APIError("Amount doesn't match expected exchange rate", 400, 'AMOUNT_MISMATCH')

        pending = claim_payment(user, reference, 'coins')
        charge = verify_payment(reference, int(amount), 'coins')

        fulfil_payment(pending, user, reference, 'coins', int(amount), charge, coins_credited=coins)
        entry = coin_ledger.credit(
            user, coins, 'purchase',
            description=f'Purchased {coins:,} coins',
            reference=reference,
            metadata={'naira_amount': int(amount)},
            commit=False,
        )
        db.session.commit()
        return entry

    def initialize_payment(self, user, context, amount, coins=0):
        if context not in PAYMENT_CONTEXTS:
            raise APIError('Unknown payment context', 400, 'VALIDATION_ERROR')
        if context == 'coins':
            if coins < MIN_COIN_PURCHASE:
                raise APIError(f'Minimum purchase is {MIN_COIN_PURCHASE} coins', 400, 'VALIDATION_ERROR')
            amount = coins_to_naira(coins)
        if amount <= 0:
            raise APIError('Invalid amount', 400, 'VALIDATION_ERROR')

        reference = generate_reference(context, user.user_id)
        transaction = PaymentTransaction(
            user_id=user.id,
            reference=reference,
            context=context,
            amount_naira=amount,
            coins_credited=coins if context == 'coins' else 0,
            status='pending',
        )
        db.session.add(transaction)
        db.session.commit()

        if is_preview_mode():
            authorization_url = f"{current_app.config.get('FRONTEND_BASE_URL', '')}/payments/preview?reference={reference}"
            access_code = None
        else:
            data = get_client().initialize_transaction(
                user.email, amount * 100, reference,
                metadata={'context': context, 'user_id': user.user_id},
            )
            authorization_url = data.get('authorization_url')
            access_code = data.get('access_code')

        return {
            'reference': reference,
            'authorization_url': authorization_url,
            'access_code': access_code,
            'amount': amount,
            'context': context,
        }

    def apply_successful_charge(self, reference, charge):
        """Settle a pending transaction from a webhook; returns (transaction, already_processed)"""
        transaction = (
            PaymentTransaction.query.filter_by(reference=reference)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if transaction is None:
            raise APIError('Transaction not found', 404, 'TRANSACTION_NOT_FOUND')
        if transaction.status == 'success':
            self.logger.info(f"Webhook for {reference} already processed")
            return transaction, True

        transaction.status = 'success'
        transaction.provider_data = charge
        transaction.verified_at = datetime.utcnow()
        # tickets, memberships and bookings are handed over when the fan redeems the reference
        if transaction.context == 'coins':
            transaction.fulfilled_at = transaction.verified_at
            if transaction.coins_credited:
                coin_ledger.credit(
                    transaction.user, transaction.coins_credited, 'purchase',
                    description=f'Purchased {transaction.coins_credited:,} coins',
                    reference=reference,
                    metadata={'naira_amount': transaction.amount_naira, 'source': 'webhook'},
                    commit=False,
                )
        db.session.commit()
        self.logger.info(f"Webhook settled {reference} for user {transaction.user.user_id}")
        return transaction, False

    def request_withdrawal(self, user, coin_amount, bank_details):
        if not isinstance(coin_amount, int) or isinstance(coin_amount, bool):
            raise APIError('Amount must be a whole number of coins', 400, 'VALIDATION_ERROR')
        if coin_amount < MIN_WITHDRAWAL_COINS:
            raise APIError(f'Minimum withdrawal is {MIN_WITHDRAWAL_COINS:,} coins', 400, 'VALIDATION_ERROR')
        if coin_amount > MAX_WITHDRAWAL_COINS:
            raise APIError(f'Maximum withdrawal is {MAX_WITHDRAWAL_COINS:,} coins', 400, 'VALIDATION_ERROR')

        bank_details = bank_details or {}
        bank_code = str(bank_details.get('bankCode') or '')
        account_number = str(bank_details.get('accountNumber') or '')
        account_name = (bank_details.get('accountName') or '').strip()
        validation = validate_bank_details(bank_code, account_number, account_name)
        if not validation.is_valid:
            raise APIError(validation.error_message, 400, 'INVALID_BANK_DETAILS')

        naira_amount = coins_to_naira(coin_amount)
        fee = withdrawal_fee(naira_amount)
        reference = generate_reference('withdrawal', user.user_id)

        withdrawal = Withdrawal(
            user_id=user.id,
            coin_amount=coin_amount,
            naira_amount=naira_amount,
            processing_fee=fee,
            net_amount=naira_amount - fee,
            bank_code=bank_code,
            bank_name=validation.sanitized_value,
            account_number=account_number,
            account_name=account_name,
            reference=reference,
            status='pending',
        )
        db.session.add(withdrawal)
        coin_ledger.debit(
            user, coin_amount, 'withdrawal',
            description=f'Withdrawal to {validation.sanitized_value} {account_number[-4:]}',
            reference=reference,
            metadata={'naira_amount': naira_amount, 'fee': fee},
            commit=False,
        )
        db.session.commit()
        self.logger.info(f"User {user.user_id} requested withdrawal {reference} of {coin_amount} coins")
        return withdrawal

    def list_withdrawals(self, status=None):
        query = Withdrawal.query
        if status:
            query = query.filter_by(status=status)
        return query.order_by(Withdrawal.created_at.desc()).all()

    def process_withdrawal(self, admin, withdrawal_id, action, note=None):
        if action not in ('approve', 'reject'):
            raise APIError('Action must be approve or reject', 400, 'VALIDATION_ERROR')

        withdrawal = (
            Withdrawal.query.filter_by(id=withdrawal_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if withdrawal is None:
            raise APIError('Withdrawal not found', 404, 'WITHDRAWAL_NOT_FOUND')
        if withdrawal.status != 'pending':
            raise APIError(f'Withdrawal already {withdrawal.status}', 400, 'ALREADY_PROCESSED')

        withdrawal.status = 'approved' if action == 'approve' else 'rejected'
        withdrawal.processed_by = admin.id
        withdrawal.processed_at = datetime.utcnow()
        withdrawal.admin_note = note

        if action == 'reject':
            coin_ledger.credit(
                withdrawal.user, withdrawal.coin_amount, 'refund',
                description='Withdrawal rejected',
                reference=withdrawal.reference,
                metadata={'withdrawal_id': withdrawal.id},
                commit=False,
            )

        db.session.commit()
        self.logger.info(f"Admin {admin.user_id} {withdrawal.status} withdrawal {withdrawal.reference}")
        return withdrawal


wallet_service = WalletService()
