"""
Meet & Greet Booking Model

Paid one-to-one video sessions. Only the session bookkeeping lives here; media
transport belongs to the video vendor.
"""

from datetime import datetime
from .database import db


class MeetGreetBooking(db.Model):
    __tablename__ = 'meet_greet_bookings'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    payment_reference = db.Column(db.String(120), unique=True, nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(3), default='NGN', nullable=False)
    payment_status = db.Column(db.String(20), default='pending', nullable=False)  # pending, completed, failed
    session_status = db.Column(db.String(20), default='scheduled', nullable=False)  # scheduled, active, ended
    session_room_id = db.Column(db.String(40), nullable=False)
    scheduled_at = db.Column(db.DateTime, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    admin_user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    requires_admin_approval = db.Column(db.Boolean, default=False)
    started_at = db.Column(db.DateTime)
    ended_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship('User', foreign_keys=[user_id])
    admin_user = db.relationship('User', foreign_keys=[admin_user_id])

    def to_dict(self):
        return {
            'id': self.id,
            'reference': self.payment_reference,
            'amount': self.amount,
            'currency': self.currency,
            'payment_status': self.payment_status,
            'session_status': self.session_status,
            'session_room_id': self.session_room_id,
            'scheduled_at': self.scheduled_at.isoformat() if self.scheduled_at else None,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'requires_admin_approval': self.requires_admin_approval,
            'user': self.user.to_dict() if self.user else None,
            'admin': self.admin_user.to_dict() if self.admin_user else None,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'ended_at': self.ended_at.isoformat() if self.ended_at else None,
        }
