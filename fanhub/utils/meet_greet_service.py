"""
Meet & Greet Service

FLOW OVERVIEW
- book(user, package_id, reference, scheduled_at): verify payment for the package price,
  create a completed booking that stays joinable for 24 hours after the slot.
- verify_booking(reference): booking must be paid and unexpired; assigns a host admin if unset.
- start_call / end_call: scheduled → active → ended, driven by the host.
"""

import logging
from datetime import datetime, timedelta, timezone

from ..models import db, MeetGreetBooking, User
from ..models.utils import generate_room_id
from .errors import APIError
from .paystack import verify_payment
from .wallet_service import claim_payment, fulfil_payment

BOOKING_VALIDITY = timedelta(hours=24)

PACKAGES = {
    'video-15': {'name': '15-Min Video Call', 'duration': 15, 'price': 5000, 'type': 'video'},
    'audio-20': {'name': '20-Min Audio Call', 'duration': 20, 'price': 3000, 'type': 'audio'},
    'group-30': {'name': '30-Min Group Session', 'duration': 30, 'price': 2000, 'type': 'group'},
}


def parse_timestamp(value, field='scheduledAt'):
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise APIError(f'{field} must be an ISO 8601 timestamp', 400, 'VALIDATION_ERROR')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class MeetGreetService:
    """Paid video-call bookings and their session state."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def book(self, user, package_id, reference, scheduled_at, amount=None):
        package = PACKAGES.get(package_id)
        if package is None:
            raise APIError('Unknown meet & greet package', 400, 'INVALID_PACKAGE')
        if amount is not None and int(amount) != package['price']:
            raise APIError('Amount does not match package price', 400, 'AMOUNT_MISMATCH')

        scheduled = parse_timestamp(scheduled_at)
        if scheduled <= datetime.utcnow():
            raise APIError('scheduledAt must be in the future', 400, 'VALIDATION_ERROR')

        pending = claim_payment(user, reference, 'meet_greet')
        if MeetGreetBooking.query.filter_by(payment_reference=reference).first() is not None:
            raise APIError('Payment reference already exists', 400, 'DUPLICATE_REFERENCE')

        charge = verify_payment(reference, package['price'], 'meet_greet')

        booking = MeetGreetBooking(
            user_id=user.id,
            payment_reference=reference,
            amount=package['price'],
            currency='NGN',
            payment_status='completed',
            session_status='scheduled',
            session_room_id=generate_room_id(),
            scheduled_at=scheduled,
            expires_at=scheduled + BOOKING_VALIDITY,
        )
        db.session.add(booking)
        fulfil_payment(pending, user, reference, 'meet_greet', package['price'], charge)
        db.session.commit()
        self.logger.info(f"User {user.user_id} booked {package_id} for {scheduled.isoformat()}")
        return booking

    def verify_booking(self, reference, now=None):
        now = now or datetime.utcnow()
        booking = MeetGreetBooking.query.filter(
            MeetGreetBooking.payment_reference == reference,
            MeetGreetBooking.payment_status == 'completed',
            MeetGreetBooking.expires_at >= now,
        ).first()
        if booking is None:
            raise APIError('Invalid or expired payment', 404, 'INVALID_PAYMENT', details={'valid': False})

        if booking.admin_user_id is None:
            host = User.query.filter_by(role='admin', status='active').order_by(User.id).first()
            if host is not None:
                booking.admin_user_id = host.id
                booking.requires_admin_approval = True
                db.session.commit()
            else:
                self.logger.warning(f"No admin available to host booking {booking.id}")

        return booking

    def _get(self, booking_id):
        booking = (
            MeetGreetBooking.query.filter_by(id=booking_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if booking is None:
            raise APIError('Booking not found', 404, 'BOOKING_NOT_FOUND')
        return booking

    def start_call(self, admin, booking_id):
        booking = self._get(booking_id)
        if booking.payment_status != 'completed':
            raise APIError('Booking has not been paid', 400, 'INVALID_STATE')
        if booking.session_status != 'scheduled':
            raise APIError(f'Call is {booking.session_status}, cannot start', 400, 'INVALID_STATE')

        booking.session_status = 'active'
        booking.started_at = datetime.utcnow()
        booking.admin_user_id = booking.admin_user_id or admin.id
        db.session.commit()
        self.logger.info(f"Admin {admin.user_id} started call {booking.session_room_id}")
        return booking

    def end_call(self, admin, booking_id):
        booking = self._get(booking_id)
        if booking.session_status != 'active':
            raise APIError(f'Call is {booking.session_status}, cannot end', 400, 'INVALID_STATE')

        booking.session_status = 'ended'
        booking.ended_at = datetime.utcnow()
        db.session.commit()
        self.logger.info(f"Admin {admin.user_id} ended call {booking.session_room_id}")
        return booking


meet_greet_service = MeetGreetService()
