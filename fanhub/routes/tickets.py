"""
Event & Ticket Routes

FLOW OVERVIEW
- /api/events [GET], /api/events/<id> [GET]
  • Active events with tickets sold and remaining capacity.
- /api/tickets/purchase-with-coins [POST]
  • {eventId} → coin debit + ticket; raw QR token returned once.
- /api/tickets/purchase [POST]
  • {eventId, reference, amount} → gateway verification + ticket.
- /api/tickets [GET]
  • Caller's tickets.
- /api/tickets/validate [POST] (admin)
  • {qrCode, qrToken, eventId?, scanLocation?} → admission chain, every attempt logged.
"""

from flask import Blueprint, g, jsonify, request

from ..models import db, Event, Ticket
from ..utils.api_utils import rate_limited, request_validator
from ..utils.auth_utils import admin_required, login_required
from ..utils.errors import APIError
from ..utils.ticketing import ticket_service

tickets_bp = Blueprint('tickets', __name__)


def issued_ticket_response(ticket, qr_token, user):
    data = ticket.to_dict()
    data['qr_token'] = qr_token
    return jsonify({
        'success': True,
        'message': 'Ticket purchased successfully',
        'ticket': data,
        'new_balance': user.coins,
    }), 201


@tickets_bp.route('/events', methods=['GET'])
def list_events():
    events = Event.query.filter_by(status='active').order_by(Event.event_date.asc()).all()
    return jsonify({
        'success': True,
        'events': [event.to_dict(tickets_sold=ticket_service.tickets_sold(event)) for event in events],
    })


@tickets_bp.route('/events/<int:event_id>', methods=['GET'])
def get_event(event_id):
    event = db.session.get(Event, event_id)
    if event is None or event.status == 'draft':
        raise APIError('Event not found', 404, 'EVENT_NOT_FOUND')
    return jsonify({'success': True, 'event': event.to_dict(tickets_sold=ticket_service.tickets_sold(event))})


@tickets_bp.route('/tickets/purchase-with-coins', methods=['POST'])
@login_required
def purchase_with_coins():
    data = request_validator.get_json_object()
    event_id = request_validator.get_int(data, 'eventId')
    if event_id is None:
        raise APIError('eventId is required', 400, 'MISSING_FIELDS')

    ticket, qr_token = ticket_service.purchase_with_coins(g.current_user, event_id)
    return issued_ticket_response(ticket, qr_token, g.current_user)


@tickets_bp.route('/tickets/purchase', methods=['POST'])
@rate_limited('payments')
@login_required
def purchase_with_payment():
    data = request_validator.get_json_object()
    request_validator.require_fields(data, ['eventId', 'reference', 'amount'])
    event_id = request_validator.get_int(data, 'eventId')
    amount = request_validator.get_int(data, 'amount', minimum=0)

    ticket, qr_token = ticket_service.purchase_with_payment(g.current_user, event_id, str(data['reference']), amount)
    return issued_ticket_response(ticket, qr_token, g.current_user)


@tickets_bp.route('/tickets', methods=['GET'])
@login_required
def my_tickets():
    tickets = (
        Ticket.query.filter_by(user_id=g.current_user.id)
        .order_by(Ticket.created_at.desc())
        .all()
    )
    return jsonify({'success': True, 'tickets': [ticket.to_dict() for ticket in tickets]})


@tickets_bp.route('/tickets/validate', methods=['POST'])
@admin_required
def validate_ticket():
    """Scan a ticket at the gate"""
    data = request_validator.get_json_object()
    request_validator.require_fields(data, ['qrCode', 'qrToken'])

    result = ticket_service.validate_scan(
        g.current_user,
        str(data['qrCode']),
        str(data['qrToken']),
        event_id=data.get('eventId'),
        location=data.get('scanLocation'),
        user_agent=request.headers.get('User-Agent'),
        ip_address=request_validator.client_ip(),
    )
    return jsonify(result.to_dict()), result.status_code
