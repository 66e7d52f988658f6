"""
Wallet Models

FLOW OVERVIEW
- CoinTransaction: append-only ledger of signed coin movements with the balance after each one.
- PaymentTransaction: gateway payments keyed by their unique reference; fulfilled once.
- Withdrawal: coin cash-out requests awaiting admin approval.
"""

from datetime import datetime
from .database import db


class CoinTransaction(db.Model):
    __tablename__ = 'coin_transactions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    amount = db.Column(db.Integer, nullable=False)  # negative for debits
    # purchase, withdrawal, vote, post_reward, bonus, ticket_purchase, refund, admin_adjustment
    transaction_type = db.Column(db.String(30), nullable=False)
    description = db.Column(db.String(255))
    reference = db.Column(db.String(120), index=True)
    balance_after = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), default='completed')
    details = db.Column('metadata', db.JSON, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user = db.relationship('User')

    __table_args__ = (
        db.Index('idx_coin_transactions_user_time', 'user_id', 'created_at'),
    )

    def __repr__(self):
        return f'<CoinTransaction {self.transaction_type} {self.amount} for user {self.user_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'amount': self.amount,
            'transaction_type': self.transaction_type,
            'description': self.description,
            'reference': self.reference,
            'balance_after': self.balance_after,
            'status': self.status,
            'metadata': self.details or {},
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class PaymentTransaction(db.Model):
    __tablename__ = 'payment_transactions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    reference = db.Column(db.String(120), unique=True, nullable=False)
    context = db.Column(db.String(20), nullable=False)  # coins, ticket, membership, meet_greet
    amount_naira = db.Column(db.Integer, nullable=False)
    coins_credited = db.Column(db.Integer, default=0)
    status = db.Column(db.String(20), nullable=False, default='pending')  # pending, success, failed
    provider_data = db.Column(db.JSON)
    verified_at = db.Column(db.DateTime)
    # set once the coins, ticket, membership or booking has been handed over
    fulfilled_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user = db.relationship('User')

    @property
    def is_fulfilled(self):
        return self.fulfilled_at is not None

    def to_dict(self):
        return {
            'id': self.id,
            'reference': self.reference,
            'context': self.context,
            'amount_naira': self.amount_naira,
            'coins_credited': self.coins_credited,
            'status': self.status,
            'verified_at': self.verified_at.isoformat() if self.verified_at else None,
            'fulfilled_at': self.fulfilled_at.isoformat() if self.fulfilled_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Withdrawal(db.Model):
    __tablename__ = 'withdrawals'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    coin_amount = db.Column(db.Integer, nullable=False)
    naira_amount = db.Column(db.Integer, nullable=False)
    processing_fee = db.Column(db.Integer, nullable=False)
    net_amount = db.Column(db.Integer, nullable=False)
    bank_code = db.Column(db.String(10), nullable=False)
    bank_name = db.Column(db.String(80), nullable=False)
    account_number = db.Column(db.String(10), nullable=False)
    account_name = db.Column(db.String(120), nullable=False)
    reference = db.Column(db.String(120), unique=True, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='pending')  # pending, approved, rejected
    processed_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    processed_at = db.Column(db.DateTime)
    admin_note = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user = db.relationship('User', foreign_keys=[user_id])

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user.user_id if self.user else None,
            'coin_amount': self.coin_amount,
            'naira_amount': self.naira_amount,
            'processing_fee': self.processing_fee,
            'net_amount': self.net_amount,
            'bank_code': self.bank_code,
            'bank_name': self.bank_name,
            'account_number': self.account_number,
            'account_name': self.account_name,
            'reference': self.reference,
            'status': self.status,
            'admin_note': self.admin_note,
            'processed_at': self.processed_at.isoformat() if self.processed_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
