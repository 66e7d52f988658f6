"""
Tests for the Paystack client, webhook signatures and gateway-backed flows.
"""

import hashlib
import hmac
import json
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
import requests

from fanhub.models import db, MeetGreetBooking, PaymentTransaction, Ticket, User
from fanhub.utils.errors import PaymentVerificationError
from fanhub.utils.paystack import PaystackClient, validate_webhook_signature, verify_payment

SECRET = 'sk_test_secret'


def mock_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = body if body is not None else {}
    return response


def sign(payload):
    return hmac.new(SECRET.encode('utf-8'), payload, hashlib.sha512).hexdigest()


class TestWebhookSignature:

    def test_valid_signature(self):
        payload = b'{"event": "charge.success"}'
        assert validate_webhook_signature(payload, sign(payload), SECRET)

    def test_tampered_payload(self):
        payload = b'{"event": "charge.success"}'
        assert not validate_webhook_signature(b'{"event": "charge.failed"}', sign(payload), SECRET)

    def test_missing_signature_or_secret(self):
        assert not validate_webhook_signature(b'{}', None, SECRET)
        assert not validate_webhook_signature(b'{}', 'abc', '')


class TestPaystackClient:
    """HTTP calls are mocked; no network access"""

    def test_verify_transaction(self):
        client = PaystackClient(SECRET, 'https://api.paystack.test')
        body = {'status': True, 'data': {'status': 'success', 'amount': 50000, 'reference': 'ref_1'}}
        with patch('fanhub.utils.paystack.requests.get', return_value=mock_response(200, body)) as mock_get:
            data = client.verify_transaction('ref_1')

        assert data['amount'] == 50000
        url = mock_get.call_args[0][0]
        assert url == 'https://api.paystack.test/transaction/verify/ref_1'
        assert mock_get.call_args[1]['headers']['Authorization'] == f'Bearer {SECRET}'

    def test_verify_transaction_http_error(self):
        client = PaystackClient(SECRET)
        with patch('fanhub.utils.paystack.requests.get',
                   return_value=mock_response(404, {'status': False, 'message': 'Transaction reference not found'})):
            with pytest.raises(PaymentVerificationError) as excinfo:
                client.verify_transaction('missing')
        assert 'not found' in excinfo.value.message

    def test_network_error(self):
        client = PaystackClient(SECRET)
        with patch('fanhub.utils.paystack.requests.get', side_effect=requests.ConnectionError('down')):
            with pytest.raises(PaymentVerificationError):
                client.verify_transaction('ref_1')

    def test_initialize_transaction(self):
        client = PaystackClient(SECRET, 'https://api.paystack.test')
        body = {'status': True, 'data': {'authorization_url': 'https://checkout.paystack.com/abc', 'access_code': 'abc'}}
        with patch('fanhub.utils.paystack.requests.post', return_value=mock_response(200, body)) as mock_post:
            data = client.initialize_transaction('fan@example.com', 50000, 'ref_2', metadata={'context': 'coins'})

        assert data['access_code'] == 'abc'
        sent = mock_post.call_args[1]['json']
        assert sent == {'email': 'fan@example.com', 'amount': 50000, 'reference': 'ref_2', 'metadata': {'context': 'coins'}}


class TestVerifyPayment:
    """verify_payment outside preview mode"""

    @pytest.fixture(autouse=True)
    def live_mode(self, app):
        app.config['PAYMENT_PREVIEW_MODE'] = False

    def test_success_within_tolerance(self, app_context):
        body = {'status': True, 'data': {'status': 'success', 'amount': 50050, 'reference': 'r'}}
        with patch('fanhub.utils.paystack.requests.get', return_value=mock_response(200, body)):
            data = verify_payment('r', 500, 'coins')
        assert data['amount'] == 50050

    def test_amount_mismatch(self, app_context):
        body = {'status': True, 'data': {'status': 'success', 'amount': 40000, 'reference': 'r'}}
        with patch('fanhub.utils.paystack.requests.get', return_value=mock_response(200, body)):
            with pytest.raises(PaymentVerificationError) as excinfo:
                verify_payment('r', 500, 'coins')
        assert excinfo.value.message == 'Payment amount mismatch'

    def test_unsuccessful_charge(self, app_context):
        body = {'status': True, 'data': {'status': 'abandoned', 'amount': 50000, 'reference': 'r'}}
        with patch('fanhub.utils.paystack.requests.get', return_value=mock_response(200, body)):
            with pytest.raises(PaymentVerificationError):
                verify_payment('r', 500, 'coins')

    def test_purchase_route_reports_failed_verification(self, client, test_user, auth_headers):
        body = {'status': True, 'data': {'status': 'failed', 'amount': 50000}}
        with patch('fanhub.utils.paystack.requests.get', return_value=mock_response(200, body)):
            response = client.post('/api/coins/purchase', headers=auth_headers, json={
                'reference': 'live_ref', 'amount': 500, 'coins': 1000,
            })
        assert response.status_code == 400
        assert response.get_json()['code'] == 'PAYMENT_VERIFICATION_FAILED'
        assert db.session.get(User, test_user.id).coins == 0
        assert PaymentTransaction.query.count() == 0


class TestPreviewMode:

    def test_preview_returns_expected_amount(self, app_context):
        data = verify_payment('preview_ref', 2500, 'membership')
        assert data['status'] == 'success'
        assert data['amount'] == 250000
        assert data['preview'] is True


class TestInitializeRoute:

    def test_initialize_coins_payment(self, client, test_user, auth_headers):
        response = client.post('/api/payments/initialize', headers=auth_headers, json={'context': 'coins', 'coins': 2000})
        assert response.status_code == 201
        data = response.get_json()
        assert data['amount'] == 1000
        assert data['reference'].startswith('coins_')
        assert 'preview' in data['authorization_url']

        payment = PaymentTransaction.query.filter_by(reference=data['reference']).first()
        assert payment.status == 'pending'
        assert payment.coins_credited == 2000

    def test_initialize_unknown_context(self, client, auth_headers):
        response = client.post('/api/payments/initialize', headers=auth_headers, json={'context': 'merch', 'amount': 100})
        assert response.status_code == 400

    def test_initialize_live_calls_paystack(self, app, client, test_user, auth_headers):
        app.config['PAYMENT_PREVIEW_MODE'] = False
        body = {'status': True, 'data': {'authorization_url': 'https://checkout.paystack.com/xyz', 'access_code': 'xyz'}}
        with patch('fanhub.utils.paystack.requests.post', return_value=mock_response(200, body)) as mock_post:
            response = client.post('/api/payments/initialize', headers=auth_headers, json={'context': 'coins', 'coins': 200})
        assert response.status_code == 201
        assert response.get_json()['authorization_url'] == 'https://checkout.paystack.com/xyz'
        assert mock_post.call_args[1]['json']['amount'] == 10000


class TestWebhook:
    """Test /api/payments/webhook"""

    def _pending(self, user, reference='hook_ref', coins=2000):
        db.session.add(PaymentTransaction(
            user_id=user.id, reference=reference, context='coins',
            amount_naira=coins // 2, coins_credited=coins, status='pending',
        ))
        db.session.commit()

    def _post(self, client, event, signature=None):
        payload = json.dumps(event).encode('utf-8')
        return client.post('/api/payments/webhook', data=payload, content_type='application/json',
                           headers={'x-paystack-signature': signature or sign(payload)})

    def test_charge_success_credits_once(self, client, test_user):
        self._pending(test_user)
        event = {'event': 'charge.success', 'data': {'reference': 'hook_ref', 'amount': 100000, 'status': 'success'}}

        first = self._post(client, event)
        second = self._post(client, event)

        assert first.status_code == 200
        assert first.get_json()['message'] == 'Payment processed'
        assert second.get_json()['message'] == 'Already processed'
        assert db.session.get(User, test_user.id).coins == 2000
        assert PaymentTransaction.query.filter_by(reference='hook_ref').first().status == 'success'

    def test_invalid_signature(self, client, test_user):
        self._pending(test_user)
        event = {'event': 'charge.success', 'data': {'reference': 'hook_ref'}}
        response = self._post(client, event, signature='0' * 128)
        assert response.status_code == 401
        assert db.session.get(User, test_user.id).coins == 0

    def test_unknown_reference(self, client, db_session):
        response = self._post(client, {'event': 'charge.success', 'data': {'reference': 'nope'}})
        assert response.status_code == 404

    def test_other_events_ignored(self, client, db_session):
        response = self._post(client, {'event': 'transfer.success', 'data': {}})
        assert response.status_code == 200
        assert response.get_json()['message'] == 'Event not handled'

    def test_non_object_payload(self, client, db_session):
        response = self._post(client, ['charge.success'])
        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_JSON'

    def test_non_object_data(self, client, db_session):
        response = self._post(client, {'event': 'charge.success', 'data': 'hook_ref'})
        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_JSON'


class TestRedeemInitializedPayment:
    """A reference opened by /api/payments/initialize is redeemed by the matching purchase route"""

    def _initialize(self, client, headers, context, amount):
        response = client.post('/api/payments/initialize', headers=headers, json={'context': context, 'amount': amount})
        assert response.status_code == 201
        return response.get_json()['reference']

    def _settle(self, client, reference, amount):
        payload = json.dumps({
            'event': 'charge.success',
            'data': {'reference': reference, 'amount': amount * 100, 'status': 'success'},
        }).encode('utf-8')
        response = client.post('/api/payments/webhook', data=payload, content_type='application/json',
                               headers={'x-paystack-signature': sign(payload)})
        assert response.get_json()['message'] == 'Payment processed'

    def test_webhook_leaves_non_coin_payment_unfulfilled(self, client, test_user, auth_headers):
        reference = self._initialize(client, auth_headers, 'ticket', 20000)
        self._settle(client, reference, 20000)
        payment = PaymentTransaction.query.filter_by(reference=reference).first()
        assert payment.status == 'success'
        assert payment.fulfilled_at is None
        assert db.session.get(User, test_user.id).coins == 0

    def test_ticket(self, client, test_user, auth_headers, active_event):
        reference = self._initialize(client, auth_headers, 'ticket', 20000)
        self._settle(client, reference, 20000)

        response = client.post('/api/tickets/purchase', headers=auth_headers, json={
            'eventId': active_event.id, 'reference': reference, 'amount': 20000,
        })
        assert response.status_code == 201
        assert Ticket.query.filter_by(payment_reference=reference).count() == 1
        payments = PaymentTransaction.query.filter_by(reference=reference).all()
        assert len(payments) == 1
        assert payments[0].fulfilled_at is not None

        again = client.post('/api/tickets/purchase', headers=auth_headers, json={
            'eventId': active_event.id, 'reference': reference, 'amount': 20000,
        })
        assert again.status_code == 400
        assert again.get_json()['code'] == 'DUPLICATE_REFERENCE'
        assert Ticket.query.count() == 1

    def test_ticket_before_webhook(self, client, test_user, auth_headers, active_event):
        reference = self._initialize(client, auth_headers, 'ticket', 20000)
        response = client.post('/api/tickets/purchase', headers=auth_headers, json={
            'eventId': active_event.id, 'reference': reference, 'amount': 20000,
        })
        assert response.status_code == 201

        payload = json.dumps({'event': 'charge.success', 'data': {'reference': reference}}).encode('utf-8')
        late = client.post('/api/payments/webhook', data=payload, content_type='application/json',
                           headers={'x-paystack-signature': sign(payload)})
        assert late.get_json()['message'] == 'Already processed'

    def test_membership(self, client, test_user, auth_headers):
        reference = self._initialize(client, auth_headers, 'membership', 2500)
        self._settle(client, reference, 2500)

        response = client.post('/api/membership/subscribe', headers=auth_headers, json={
            'tierSlug': 'pioneer', 'reference': reference, 'amount': 2500, 'billingPeriod': 'monthly',
        })
        assert response.status_code == 200
        assert response.get_json()['bonus_coins'] == 1000
        assert db.session.get(User, test_user.id).tier == 'pioneer'
        assert PaymentTransaction.query.filter_by(reference=reference).one().coins_credited == 1000

    def test_meet_greet(self, client, test_user, auth_headers):
        reference = self._initialize(client, auth_headers, 'meet_greet', 5000)
        self._settle(client, reference, 5000)

        scheduled = (datetime.utcnow() + timedelta(days=2)).isoformat() + 'Z'
        response = client.post('/api/meet-greet/book', headers=auth_headers, json={
            'packageId': 'video-15', 'reference': reference, 'scheduledAt': scheduled, 'amount': 5000,
        })
        assert response.status_code == 201
        assert MeetGreetBooking.query.filter_by(payment_reference=reference).count() == 1
        assert PaymentTransaction.query.filter_by(reference=reference).one().fulfilled_at is not None

    def test_other_context_rejected(self, client, test_user, auth_headers):
        reference = self._initialize(client, auth_headers, 'meet_greet', 2500)
        response = client.post('/api/membership/subscribe', headers=auth_headers, json={
            'tierSlug': 'pioneer', 'reference': reference, 'amount': 2500,
        })
        assert response.status_code == 400
        assert response.get_json()['code'] == 'DUPLICATE_REFERENCE'

    def test_other_user_rejected(self, client, test_user, auth_headers, rich_headers, active_event):
        reference = self._initialize(client, auth_headers, 'ticket', 20000)
        self._settle(client, reference, 20000)
        response = client.post('/api/tickets/purchase', headers=rich_headers, json={
            'eventId': active_event.id, 'reference': reference, 'amount': 20000,
        })
        assert response.status_code == 400
        assert response.get_json()['code'] == 'DUPLICATE_REFERENCE'
        assert Ticket.query.count() == 0

    def test_coin_purchase_after_webhook_not_credited_twice(self, client, test_user, auth_headers):
        response = client.post('/api/payments/initialize', headers=auth_headers, json={'context': 'coins', 'coins': 2000})
        reference = response.get_json()['reference']
        self._settle(client, reference, 1000)

        again = client.post('/api/coins/purchase', headers=auth_headers, json={
            'reference': reference, 'amount': 1000, 'coins': 2000,
        })
        assert again.status_code == 400
        assert again.get_json()['code'] == 'DUPLICATE_REFERENCE'
        assert db.session.get(User, test_user.id).coins == 2000
