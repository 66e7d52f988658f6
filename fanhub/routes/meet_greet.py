"""
Meet & Greet Routes

FLOW OVERVIEW
- /api/meet-greet/packages [GET]
- /api/meet-greet/book [POST]
  • {packageId, reference, scheduledAt, amount?} → paid booking with a room id.
- /api/meet-greet/verify-payment [POST]
  • {reference} → joinable booking or 404 valid=false.
- /api/meet-greet/bookings [GET]
  • Caller's bookings.
- /api/admin/video-calls [GET], /api/admin/video-calls/<id>/start|end [POST]
"""

from flask import Blueprint, g, jsonify, request

from ..models import MeetGreetBooking
from ..utils.api_utils import rate_limited, request_validator
from ..utils.auth_utils import admin_required, login_required
from ..utils.meet_greet_service import PACKAGES, meet_greet_service

meet_greet_bp = Blueprint('meet_greet', __name__)


@meet_greet_bp.route('/meet-greet/packages', methods=['GET'])
def list_packages():
    return jsonify({'success': True, 'packages': [{'id': key, **value} for key, value in PACKAGES.items()]})


@meet_greet_bp.route('/meet-greet/book', methods=['POST'])
@rate_limited('payments')
@login_required
def book_session():
    data = request_validator.get_json_object()
    request_validator.require_fields(data, ['packageId', 'reference', 'scheduledAt'])

    booking = meet_greet_service.book(
        g.current_user,
        data['packageId'],
        str(data['reference']),
        data['scheduledAt'],
        amount=request_validator.get_int(data, 'amount', minimum=0),
    )
    return jsonify({'success': True, 'booking': booking.to_dict()}), 201


@meet_greet_bp.route('/meet-greet/verify-payment', methods=['POST'])
@login_required
def verify_payment():
    data = request_validator.get_json_object()
    request_validator.require_fields(data, ['reference'])

    booking = meet_greet_service.verify_booking(str(data['reference']))
    return jsonify({'success': True, 'valid': True, 'payment': booking.to_dict()})


@meet_greet_bp.route('/meet-greet/bookings', methods=['GET'])
@login_required
def my_bookings():
    bookings = (
        MeetGreetBooking.query.filter_by(user_id=g.current_user.id)
        .order_by(MeetGreetBooking.scheduled_at.desc())
        .all()
    )
    return jsonify({'success': True, 'bookings': [booking.to_dict() for booking in bookings]})


@meet_greet_bp.route('/admin/video-calls', methods=['GET'])
@admin_required
def list_calls():
    query = MeetGreetBooking.query.filter_by(payment_status='completed')
    status = request.args.get('status')
    if status:
        query = query.filter_by(session_status=status)
    bookings = query.order_by(MeetGreetBooking.scheduled_at.asc()).all()
    return jsonify({'success': True, 'calls': [booking.to_dict() for booking in bookings]})


@meet_greet_bp.route('/admin/video-calls/<int:booking_id>/start', methods=['POST'])
@admin_required
def start_call(booking_id):
    booking = meet_greet_service.start_call(g.current_user, booking_id)
    return jsonify({'success': True, 'call': booking.to_dict()})


@meet_greet_bp.route('/admin/video-calls/<int:booking_id>/end', methods=['POST'])
@admin_required
def end_call(booking_id):
    booking = meet_greet_service.end_call(g.current_user, booking_id)
    return jsonify({'success': True, 'call': booking.to_dict()})
