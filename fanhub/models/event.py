"""
Event Ticketing Models

FLOW OVERVIEW
- Event: a show with capacity, naira/coin prices and a lifecycle status.
- Ticket: one admission for one user; only the hash of the QR token is stored.
- ScanLog: every admission attempt, successful or not, for audit and check-in dashboards.
"""

from datetime import datetime
from .database import db


class Event(db.Model):
    __tablename__ = 'events'

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(120), unique=True, nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    venue = db.Column(db.String(200), nullable=False)
    event_date = db.Column(db.DateTime, nullable=False)
    capacity = db.Column(db.Integer, nullable=False, default=0)
    current_attendance = db.Column(db.Integer, nullable=False, default=0)
    ticket_price_naira = db.Column(db.Integer, nullable=False, default=0)
    ticket_price_coins = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default='draft')  # draft, active, cancelled, completed
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tickets = db.relationship('Ticket', back_populates='event', lazy='dynamic')

    def __repr__(self):
        return f'<Event {self.slug}>'

    def is_open(self):
        return self.status == 'active'

    def to_dict(self, tickets_sold=None):
        data = {
            'id': self.id,
            'slug': self.slug,
            'title': self.title,
            'description': self.description,
            'venue': self.venue,
            'event_date': self.event_date.isoformat() if self.event_date else None,
            'capacity': self.capacity,
            'current_attendance': self.current_attendance,
            'ticket_price_naira': self.ticket_price_naira,
            'ticket_price_coins': self.ticket_price_coins,
            'status': self.status,
        }
        if tickets_sold is not None:
            data['tickets_sold'] = tickets_sold
            data['capacity_remaining'] = max(0, self.capacity - tickets_sold)
        return data


class Ticket(db.Model):
    __tablename__ = 'tickets'

    id = db.Column(db.Integer, primary_key=True)
    ticket_number = db.Column(db.String(40), unique=True, nullable=False)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    qr_code = db.Column(db.String(80), unique=True, nullable=False)
    qr_token_hash = db.Column(db.String(64), nullable=False)
    ticket_type = db.Column(db.String(20), default='regular')
    price_paid_naira = db.Column(db.Integer)
    price_paid_coins = db.Column(db.Integer)
    payment_method = db.Column(db.String(20), nullable=False)  # paystack, coins
    payment_reference = db.Column(db.String(120))
    status = db.Column(db.String(20), nullable=False, default='valid')  # valid, used, expired, cancelled
    admission_status = db.Column(db.String(20), nullable=False, default='pending')  # pending, admitted
    admitted_at = db.Column(db.DateTime)
    admitted_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    check_in_location = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    event = db.relationship('Event', back_populates='tickets')
    holder = db.relationship('User', foreign_keys=[user_id])
    admitted_by_user = db.relationship('User', foreign_keys=[admitted_by])

    __table_args__ = (
        db.Index('idx_tickets_event_status', 'event_id', 'status'),
    )

    def __repr__(self):
        return f'<Ticket {self.ticket_number}>'

    def summary(self):
        """Short view used in scan responses"""
        return {
            'ticket_number': self.ticket_number,
            'event_title': self.event.title if self.event else None,
            'holder_name': (self.holder.full_name or self.holder.username) if self.holder else None,
        }

    def to_dict(self):
        return {
            'id': self.id,
            'ticket_number': self.ticket_number,
            'event_id': self.event_id,
            'event_title': self.event.title if self.event else None,
            'qr_code': self.qr_code,
            'ticket_type': self.ticket_type,
            'price_paid_naira': self.price_paid_naira,
            'price_paid_coins': self.price_paid_coins,
            'payment_method': self.payment_method,
            'status': self.status,
            'admission_status': self.admission_status,
            'admitted_at': self.admitted_at.isoformat() if self.admitted_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class ScanLog(db.Model):
    __tablename__ = 'scan_logs'

    id = db.Column(db.Integer, primary_key=True)
    ticket_id = db.Column(db.Integer, db.ForeignKey('tickets.id'), nullable=True)
    event_id = db.Column(db.Integer, db.ForeignKey('events.id'), nullable=True)
    scanned_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    # valid, invalid, wrong_event, already_admitted, already_used, expired
    scan_result = db.Column(db.String(30), nullable=False)
    scan_location = db.Column(db.String(120))
    user_agent = db.Column(db.Text)
    ip_address = db.Column(db.String(45))
    scanned_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.Index('idx_scan_logs_event_time', 'event_id', 'scanned_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'ticket_id': self.ticket_id,
            'event_id': self.event_id,
            'scanned_by': self.scanned_by,
            'scan_result': self.scan_result,
            'scan_location': self.scan_location,
            'ip_address': self.ip_address,
            'scanned_at': self.scanned_at.isoformat() if self.scanned_at else None,
        }
