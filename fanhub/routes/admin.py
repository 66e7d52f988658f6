"""
Admin Routes

FLOW OVERVIEW
- /api/admin/stats [GET]
  • Users, tickets, posts, coins in circulation, pending withdrawals.
- /api/admin/events [POST], /api/admin/events/<id> [PATCH]
  • Event creation and edits (status, prices, capacity).
- /api/admin/events/<id>/checkins [GET]
  • Admission counters and recent scans.
- /api/admin/tickets/scan [POST]
  • {ticketId, qrCode?, eventId?, scanLocation?} → manual admission.
- /api/admin/users/<user_id>/coins [POST]
  • {amount, reason} signed adjustment.
- /api/admin/withdrawals [GET], /api/admin/withdrawals/<id> [POST]
  • Review queue; {action: approve|reject, note}.
- /api/admin/memberships/expire [POST]
  • Expire lapsed memberships now.
"""

import logging
import re
from datetime import datetime

from flask import Blueprint, g, jsonify, request
from sqlalchemy import func

from ..models import db, Event, Post, Ticket, User, Withdrawal
from ..utils.api_utils import request_validator
from ..utils.auth_utils import admin_required
from ..utils.coin_ledger import coin_ledger
from ..utils.errors import APIError
from ..utils.membership_service import membership_service
from ..utils.meet_greet_service import parse_timestamp
from ..utils.ticketing import ticket_service
from ..utils.wallet_service import wallet_service

admin_bp = Blueprint('admin', __name__)
logger = logging.getLogger(__name__)

EVENT_STATUSES = ('draft', 'active', 'cancelled', 'completed')


def slugify(value):
    return re.sub(r'[^a-z0-9]+', '-', value.lower()).strip('-')


def apply_event_fields(event, data):
    if 'title' in data:
        title = (data.get('title') or '').strip()
        if not title:
            raise APIError('Title is required', 400, 'VALIDATION_ERROR')
        event.title = title
    if 'description' in data:
        event.description = data.get('description')
    if 'venue' in data:
        venue = (data.get('venue') or '').strip()
        if not venue:
            raise APIError('Venue is required', 400, 'VALIDATION_ERROR')
        event.venue = venue
    if 'eventDate' in data:
        event.event_date = parse_timestamp(data['eventDate'], 'eventDate')
    if 'capacity' in data:
        event.capacity = request_validator.get_int(data, 'capacity', minimum=0)
    if 'ticketPriceNaira' in data:
        event.ticket_price_naira = request_validator.get_int(data, 'ticketPriceNaira', minimum=0)
    if 'ticketPriceCoins' in data:
        event.ticket_price_coins = request_validator.get_int(data, 'ticketPriceCoins', minimum=0)
    if 'status' in data:
        if data['status'] not in EVENT_STATUSES:
            raise APIError(f"status must be one of {', '.join(EVENT_STATUSES)}", 400, 'VALIDATION_ERROR')
        event.status = data['status']


@admin_bp.route('/admin/stats', methods=['GET'])
@admin_required
def stats():
    coins_in_circulation = db.session.query(func.coalesce(func.sum(User.coins), 0)).scalar()
    return jsonify({
        'success': True,
        'stats': {
            'users': User.query.count(),
            'active_events': Event.query.filter_by(status='active').count(),
            'tickets_sold': Ticket.query.filter(Ticket.status != 'cancelled').count(),
            'tickets_admitted': Ticket.query.filter_by(admission_status='admitted').count(),
            'posts': Post.query.filter_by(is_deleted=False).count(),
            'coins_in_circulation': int(coins_in_circulation or 0),
            'pending_withdrawals': Withdrawal.query.filter_by(status='pending').count(),
        },
    })


@admin_bp.route('/admin/events', methods=['POST'])
@admin_required
def create_event():
    data = request_validator.get_json_object()
    request_validator.require_fields(data, ['title', 'venue', 'eventDate', 'capacity'])

    slug = slugify(data.get('slug') or data['title'])
    if Event.query.filter_by(slug=slug).first() is not None:
        raise APIError('An event with this slug already exists', 409, 'EVENT_EXISTS')

    event = Event(slug=slug, status='draft', current_attendance=0, ticket_price_naira=0, ticket_price_coins=0)
    apply_event_fields(event, data)
    db.session.add(event)
    db.session.commit()
    logger.info(f"Admin {g.current_user.user_id} created event {event.slug}")
    return jsonify({'success': True, 'event': event.to_dict(tickets_sold=0)}), 201


@admin_bp.route('/admin/events/<int:event_id>', methods=['PATCH'])
@admin_required
def update_event(event_id):
    event = db.session.get(Event, event_id)
    if event is None:
        raise APIError('Event not found', 404, 'EVENT_NOT_FOUND')

    apply_event_fields(event, request_validator.get_json_object())
    event.updated_at = datetime.utcnow()
    db.session.commit()
    return jsonify({'success': True, 'event': event.to_dict(tickets_sold=ticket_service.tickets_sold(event))})


@admin_bp.route('/admin/events/<int:event_id>/checkins', methods=['GET'])
@admin_required
def event_checkins(event_id):
    return jsonify({'success': True, **ticket_service.checkin_summary(event_id)})


@admin_bp.route('/admin/tickets/scan', methods=['POST'])
@admin_required
def scan_ticket():
    data = request_validator.get_json_object()
    ticket_id = request_validator.get_int(data, 'ticketId')
    if ticket_id is None:
        raise APIError('ticketId is required', 400, 'MISSING_FIELDS')

    result = ticket_service.admit_by_id(
        g.current_user,
        ticket_id,
        qr_code=data.get('qrCode'),
        event_id=data.get('eventId'),
        location=data.get('scanLocation'),
        user_agent=request.headers.get('User-Agent'),
        ip_address=request_validator.client_ip(),
    )
    return jsonify(result.to_dict()), result.status_code


@admin_bp.route('/admin/users/<user_id>/coins', methods=['POST'])
@admin_required
def adjust_coins(user_id):
    user = User.query.filter_by(user_id=user_id).first()
    if user is None:
        raise APIError('User not found', 404, 'USER_NOT_FOUND')

    data = request_validator.get_json_object()
    amount = request_validator.get_int(data, 'amount')
    reason = (data.get('reason') or '').strip()
    if not amount:
        raise APIError('amount must be a non-zero integer', 400, 'VALIDATION_ERROR')
    if not reason:
        raise APIError('reason is required', 400, 'VALIDATION_ERROR')

    metadata = {'admin_id': g.current_user.user_id}
    if amount > 0:
        entry = coin_ledger.credit(user, amount, 'admin_adjustment', description=reason, metadata=metadata)
    else:
        entry = coin_ledger.debit(user, -amount, 'admin_adjustment', description=reason, metadata=metadata)

    logger.info(f"Admin {g.current_user.user_id} adjusted {user.user_id} by {amount} coins: {reason}")
    return jsonify({'success': True, 'transaction': entry.to_dict(), 'new_balance': user.coins})


@admin_bp.route('/admin/withdrawals', methods=['GET'])
@admin_required
def list_withdrawals():
    withdrawals = wallet_service.list_withdrawals(request.args.get('status'))
    return jsonify({'success': True, 'withdrawals': [withdrawal.to_dict() for withdrawal in withdrawals]})


@admin_bp.route('/admin/withdrawals/<int:withdrawal_id>', methods=['POST'])
@admin_required
def process_withdrawal(withdrawal_id):
    data = request_validator.get_json_object()
    withdrawal = wallet_service.process_withdrawal(
        g.current_user, withdrawal_id, data.get('action'), note=data.get('note'),
    )
    return jsonify({'success': True, 'withdrawal': withdrawal.to_dict()})


@admin_bp.route('/admin/memberships/expire', methods=['POST'])
@admin_required
def expire_memberships():
    expired = membership_service.expire_memberships()
    return jsonify({'success': True, 'expired': expired})
