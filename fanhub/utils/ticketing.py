"""
Ticketing Service

FLOW OVERVIEW
- issue_ticket(event, user, payment_method, ...)
  • Build qr_code + HMAC qr_token, store only the token hash, return (ticket, qr_token).
- purchase_with_coins(user, event_id)
  • Event open and not sold out → debit ticket_price_coins → issue.
- purchase_with_payment(user, event_id, reference, amount)
  • Reference unused or the caller's own unredeemed payment → gateway verification → issue.
- validate_scan(admin, qr_code, qr_token, event_id, location, ...)
  • Admission chain, first failing check wins:
    invalid → invalid token → wrong_event → already_admitted → already_used
    → expired ticket → event no longer running → admit.
  • Admission is a conditional UPDATE on valid/pending, so concurrent scans admit once;
    the losing scan is logged as already_admitted.
  • Every attempt writes a ScanLog; admission increments event attendance in SQL.
- admit_by_id(admin, ticket_id, qr_code, ...)
  • Same chain for manual lookups from the admin dashboard (no token check).
- checkin_summary(event_id)
  • Admitted count, capacity and the most recent scan logs.
"""

import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

from ..models import db, Event, Ticket, ScanLog
from ..models.utils import generate_ticket_number
from .coin_ledger import coin_ledger
from .errors import APIError
from .paystack import verify_payment
from .prom_metrics import observe_ticket_scan
from .qr_tokens import build_qr_code, generate_qr_token, hash_qr_token, verify_qr_token
from .wallet_service import claim_payment, fulfil_payment

SCAN_STATUS_CODES = {
    'valid': 200,
    'invalid': 400,
    'wrong_event': 400,
    'already_admitted': 400,
    'already_used': 400,
    'expired': 400,
}

SCAN_MESSAGES = {
    'valid': 'Ticket admitted',
    'invalid': 'Invalid ticket',
    'wrong_event': 'Ticket is for a different event',
    'already_admitted': 'Ticket holder already admitted',
    'already_used': 'Ticket already used',
    'expired': 'Ticket is no longer valid',
}


class ScanResult:
    """Outcome of one admission attempt."""

    def __init__(self, result: str, ticket: Optional[Ticket] = None, status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.result = result
        self.ticket = ticket
        self.status_code = status_code or SCAN_STATUS_CODES[result]
        self.details = details or {}

    @property
    def admitted(self) -> bool:
        return self.result == 'valid'

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'success': self.admitted,
            'valid': self.admitted,
            'result': self.result,
            'message': SCAN_MESSAGES[self.result],
        }
        if self.ticket is not None:
            data['ticket'] = self.ticket.summary()
        data.update(self.details)
        return data


class TicketService:
    """Ticket issuing and admission."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def tickets_sold(event: Event) -> int:
        return event.tickets.filter(Ticket.status != 'cancelled').count()

    def _get_open_event(self, event_id) -> Event:
        event = db.session.get(Event, event_id)
        if event is None:
            raise APIError('Event not found', 404, 'EVENT_NOT_FOUND')
        if not event.is_open():
            raise APIError('Event is not open for ticket sales', 400, 'EVENT_NOT_OPEN')
        if self.tickets_sold(event) >= event.capacity:
            raise APIError('Event is sold out', 400, 'SOLD_OUT')
        return event

    def issue_ticket(self, event: Event, user, payment_method: str, price_paid_naira: int = None,
                     price_paid_coins: int = None, payment_reference: str = None,
                     ticket_type: str = 'regular'):
        """Create a ticket row; returns (ticket, raw qr_token). Does not commit."""
        timestamp = int(time.time() * 1000)
        ticket_number = generate_ticket_number()
        qr_code = build_qr_code(event.id, user.user_id, timestamp, nonce=ticket_number[-4:])
        qr_token = generate_qr_token(event.id, user.user_id, ticket_number, timestamp)

        ticket = Ticket(
            ticket_number=ticket_number,
            event_id=event.id,
            user_id=user.id,
            qr_code=qr_code,
            qr_token_hash=hash_qr_token(qr_token),
            ticket_type=ticket_type,
            price_paid_naira=price_paid_naira,
            price_paid_coins=price_paid_coins,
            payment_method=payment_method,
            payment_reference=payment_reference,
            status='valid',
            admission_status='pending',
        )
        db.session.add(ticket)
        return ticket, qr_token

    def purchase_with_coins(self, user, event_id):
        event = self._get_open_event(event_id)
        price = event.ticket_price_coins or 0
        if price <= 0:
            raise APIError('This event cannot be purchased with coins', 400, 'COINS_NOT_ACCEPTED')

        ticket, qr_token = self.issue_ticket(event, user, 'coins', price_paid_coins=price)
        coin_ledger.debit(
            user, price, 'ticket_purchase',
            description=f'Ticket for {event.title}',
            reference=ticket.ticket_number,
            metadata={'event_id': event.id},
            commit=False,
        )
        db.session.commit()
        self.logger.info(f"User {user.user_id} bought ticket {ticket.ticket_number} with {price} coins")
        return ticket, qr_token

    def purchase_with_payment(self, user, event_id, reference, amount):
        event = self._get_open_event(event_id)
        pending = claim_payment(user, reference, 'ticket')
        if int(amount) != event.ticket_price_naira:
            raise APIError('Amount does not match ticket price', 400, 'AMOUNT_MISMATCH')

        charge = verify_payment(reference, event.ticket_price_naira, 'ticket')

        fulfil_payment(pending, user, reference, 'ticket', event.ticket_price_naira, charge)
        ticket, qr_token = self.issue_ticket(
            event, user, 'paystack',
            price_paid_naira=event.ticket_price_naira,
            payment_reference=reference,
        )
        db.session.commit()
        self.logger.info(f"User {user.user_id} bought ticket {ticket.ticket_number} via Paystack {reference}")
        return ticket, qr_token

    def _log_scan(self, result, admin, ticket=None, event_id=None, location=None,
                  user_agent=None, ip_address=None):
        db.session.add(ScanLog(
            ticket_id=ticket.id if ticket else None,
            event_id=ticket.event_id if ticket else event_id,
            scanned_by=admin.id,
            scan_result=result,
            scan_location=location,
            user_agent=user_agent,
            ip_address=ip_address,
        ))
        observe_ticket_scan(result)

    def _reject(self, result, admin, ticket=None, status_code=None, **context) -> ScanResult:
        self._log_scan(result, admin, ticket=ticket, **context)
        db.session.commit()
        self.logger.warning(
            f"Scan rejected ({result}) by admin {admin.user_id} for ticket "
            f"{ticket.ticket_number if ticket else 'unknown'}"
        )
        return ScanResult(result, ticket=ticket, status_code=status_code)

    def _run_admission(self, ticket, admin, qr_token=None, check_token=True, event_id=None,
                       location=None, user_agent=None, ip_address=None) -> ScanResult:
        context = {'location': location, 'user_agent': user_agent, 'ip_address': ip_address}

        if ticket is None:
            return self._reject('invalid', admin, status_code=404, event_id=event_id, **context)

        if check_token and not verify_qr_token(qr_token, ticket.qr_token_hash):
            return self._reject('invalid', admin, ticket, **context)

        if event_id is not None and str(ticket.event_id) != str(event_id):
            return self._reject('wrong_event', admin, ticket, **context)

        if ticket.admission_status == 'admitted':
            return self._reject('already_admitted', admin, ticket, **context)

        if ticket.status == 'used':
            return self._reject('already_used', admin, ticket, **context)

        if ticket.status in ('expired', 'cancelled'):
            return self._reject('expired', admin, ticket, **context)

        event = Event.query.filter_by(id=ticket.event_id).with_for_update().populate_existing().one()
        if event.status in ('cancelled', 'completed'):
            return self._reject('expired', admin, ticket, **context)

        # Only one scan can move the row out of valid/pending; a concurrent loser matches nothing.
        now = datetime.utcnow()
        admitted = Ticket.query.filter_by(id=ticket.id, status='valid', admission_status='pending').update({
            Ticket.status: 'used',
            Ticket.admission_status: 'admitted',
            Ticket.admitted_at: now,
            Ticket.admitted_by: admin.id,
            Ticket.check_in_location: location,
        }, synchronize_session=False)
        if not admitted:
            return self._reject('already_admitted', admin, ticket, **context)

        Event.query.filter_by(id=event.id).update(
            {Event.current_attendance: Event.current_attendance + 1}, synchronize_session=False,
        )
        self._log_scan('valid', admin, ticket=ticket, **context)
        db.session.commit()

        self.logger.info(f"Admitted ticket {ticket.ticket_number} to event {event.id} by admin {admin.user_id}")
        return ScanResult('valid', ticket=ticket, details={
            'admitted_at': now.isoformat(),
            'current_attendance': event.current_attendance,
        })

    def validate_scan(self, admin, qr_code, qr_token, event_id=None, location=None,
                      user_agent=None, ip_address=None) -> ScanResult:
        ticket = (
            Ticket.query.filter_by(qr_code=qr_code)
            .with_for_update()
            .populate_existing()
            .first()
        )
        return self._run_admission(
            ticket, admin, qr_token=qr_token, event_id=event_id, location=location,
            user_agent=user_agent, ip_address=ip_address,
        )

    def admit_by_id(self, admin, ticket_id, qr_code=None, event_id=None, location=None,
                    user_agent=None, ip_address=None) -> ScanResult:
        ticket = (
            Ticket.query.filter_by(id=ticket_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if ticket is not None and qr_code and ticket.qr_code != qr_code:
            ticket = None
        return self._run_admission(
            ticket, admin, check_token=False, event_id=event_id, location=location,
            user_agent=user_agent, ip_address=ip_address,
        )

    def checkin_summary(self, event_id, recent_limit=20):
        event = db.session.get(Event, event_id)
        if event is None:
            raise APIError('Event not found', 404, 'EVENT_NOT_FOUND')

        admitted = event.tickets.filter(Ticket.admission_status == 'admitted').count()
        recent = (
            ScanLog.query.filter_by(event_id=event.id)
            .order_by(ScanLog.scanned_at.desc(), ScanLog.id.desc())
            .limit(recent_limit)
            .all()
        )
        return {
            'event': event.to_dict(tickets_sold=self.tickets_sold(event)),
            'admitted': admitted,
            'capacity': event.capacity,
            'current_attendance': event.current_attendance,
            'recent_scans': [log.to_dict() for log in recent],
        }


ticket_service = TicketService()
