"""
Membership Model

One row per purchased membership period. A user has at most one `active` row;
subscribing again cancels the previous one.
"""

from datetime import datetime
from .database import db


class Membership(db.Model):
    __tablename__ = 'memberships'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    tier = db.Column(db.String(20), nullable=False)
    billing_interval = db.Column(db.String(20), nullable=False)  # monthly, yearly
    status = db.Column(db.String(20), nullable=False, default='active')  # active, expired, cancelled
    started_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    expires_at = db.Column(db.DateTime)
    months_purchased = db.Column(db.Integer, default=0)
    payment_reference = db.Column(db.String(120), unique=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', backref=db.backref('memberships', lazy='dynamic'))

    def __repr__(self):
        return f'<Membership {self.tier} for user {self.user_id}>'

    @classmethod
    def active_for(cls, user_id):
        return cls.query.filter_by(user_id=user_id, status='active').order_by(cls.started_at.desc()).first()

    def to_dict(self):
        return {
            'id': self.id,
            'tier': self.tier,
            'billing_interval': self.billing_interval,
            'status': self.status,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'months_purchased': self.months_purchased,
            'payment_reference': self.payment_reference,
        }
