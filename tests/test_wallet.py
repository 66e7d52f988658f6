"""
Tests for wallet routes: coin purchase, wallet views, withdrawals and admin review.
"""

from fanhub.models import db, PaymentTransaction, User, Withdrawal
from fanhub.utils.wallet_service import withdrawal_fee


BANK_DETAILS = {'bankCode': '058', 'accountNumber': '0123456789', 'accountName': 'Ada Obi'}


class TestCoinPurchase:
    """Test /api/coins/purchase in preview mode"""

    def test_purchase_credits_coins(self, client, test_user, auth_headers):
        response = client.post('/api/coins/purchase', headers=auth_headers, json={
            'reference': 'coins_ref_1', 'amount': 500, 'coins': 1000,
        })
        assert response.status_code == 200
        data = response.get_json()
        assert data['new_balance'] == 1000
        assert data['transaction']['transaction_type'] == 'purchase'

        payment = PaymentTransaction.query.filter_by(reference='coins_ref_1').first()
        assert payment.status == 'success'
        assert payment.coins_credited == 1000

    def test_minimum_purchase(self, client, auth_headers):
        response = client.post('/api/coins/purchase', headers=auth_headers, json={
            'reference': 'coins_ref_2', 'amount': 49, 'coins': 99,
        })
        assert response.status_code == 400
        assert response.get_json()['code'] == 'VALIDATION_ERROR'

    def test_amount_must_match_rate(self, client, auth_headers):
        response = client.post('/api/coins/purchase', headers=auth_headers, json={
            'reference': 'coins_ref_3', 'amount': 400, 'coins': 1000,
        })
        assert response.status_code == 400
        assert response.get_json()['code'] == 'AMOUNT_MISMATCH'

    def test_amount_within_one_naira_tolerance(self, client, auth_headers):
        response = client.post('/api/coins/purchase', headers=auth_headers, json={
            'reference': 'coins_ref_4', 'amount': 51, 'coins': 100,
        })
        assert response.status_code == 200

    def test_reference_cannot_be_reused(self, client, test_user, auth_headers):
        payload = {'reference': 'coins_ref_5', 'amount': 500, 'coins': 1000}
        assert client.post('/api/coins/purchase', headers=auth_headers, json=payload).status_code == 200
        response = client.post('/api/coins/purchase', headers=auth_headers, json=payload)
        assert response.status_code == 400
        assert response.get_json()['code'] == 'DUPLICATE_REFERENCE'
        assert db.session.get(User, test_user.id).coins == 1000

    def test_requires_login(self, client, db_session):
        response = client.post('/api/coins/purchase', json={'reference': 'x', 'amount': 50, 'coins': 100})
        assert response.status_code == 401


class TestWalletViews:

    def test_wallet_summary(self, client, rich_user, rich_headers):
        response = client.get('/api/wallet', headers=rich_headers)
        assert response.status_code == 200
        data = response.get_json()
        assert data['balance'] == 50000
        assert data['naira_value'] == 25000
        assert data['recent_transactions'] == []

    def test_transactions_limit(self, client, test_user, auth_headers):
        for index in range(3):
            client.post('/api/coins/purchase', headers=auth_headers, json={
                'reference': f'hist_{index}', 'amount': 50, 'coins': 100,
            })
        response = client.get('/api/wallet/transactions?limit=2', headers=auth_headers)
        transactions = response.get_json()['transactions']
        assert len(transactions) == 2
        assert transactions[0]['balance_after'] == 300

    def test_banks_list(self, client, db_session):
        banks = client.get('/api/coins/banks').get_json()['banks']
        assert {'code': '044', 'name': 'Access Bank'} in banks


class TestWithdrawal:
    """Test /api/coins/withdraw"""

    def test_fee_rules(self):
        assert withdrawal_fee(2000) == 25
        assert withdrawal_fee(5000) == 50
        assert withdrawal_fee(100000) == 1000

    def test_withdraw_success(self, client, rich_user, rich_headers):
        response = client.post('/api/coins/withdraw', headers=rich_headers, json={
            'amount': 10000, 'bankDetails': BANK_DETAILS,
        })
        assert response.status_code == 201
        withdrawal = response.get_json()['withdrawal']
        assert withdrawal['naira_amount'] == 5000
        assert withdrawal['processing_fee'] == 50
        assert withdrawal['net_amount'] == 4950
        assert withdrawal['bank_name'] == 'Guaranty Trust Bank'
        assert withdrawal['status'] == 'pending'
        assert db.session.get(User, rich_user.id).coins == 40000

    def test_withdraw_below_minimum(self, client, rich_headers):
        response = client.post('/api/coins/withdraw', headers=rich_headers, json={
            'amount': 9999, 'bankDetails': BANK_DETAILS,
        })
        assert response.status_code == 400

    def test_withdraw_above_maximum(self, client, rich_headers):
        response = client.post('/api/coins/withdraw', headers=rich_headers, json={
            'amount': 1000001, 'bankDetails': BANK_DETAILS,
        })
        assert response.status_code == 400

    def test_withdraw_insufficient_balance(self, client, test_user, auth_headers):
        response = client.post('/api/coins/withdraw', headers=auth_headers, json={
            'amount': 10000, 'bankDetails': BANK_DETAILS,
        })
        assert response.status_code == 400
        assert response.get_json()['code'] == 'INSUFFICIENT_BALANCE'
        assert Withdrawal.query.count() == 0

    def test_withdraw_bad_account_number(self, client, rich_headers):
        response = client.post('/api/coins/withdraw', headers=rich_headers, json={
            'amount': 10000, 'bankDetails': dict(BANK_DETAILS, accountNumber='12345'),
        })
        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_BANK_DETAILS'

    def test_withdraw_unknown_bank(self, client, rich_headers):
        response = client.post('/api/coins/withdraw', headers=rich_headers, json={
            'amount': 10000, 'bankDetails': dict(BANK_DETAILS, bankCode='000'),
        })
        assert response.status_code == 400


class TestWithdrawalReview:
    """Test admin approve/reject"""

    def _request(self, client, headers):
        response = client.post('/api/coins/withdraw', headers=headers, json={
            'amount': 20000, 'bankDetails': BANK_DETAILS,
        })
        return response.get_json()['withdrawal']['id']

    def test_reject_refunds_coins(self, client, rich_user, rich_headers, admin_headers):
        withdrawal_id = self._request(client, rich_headers)
        assert db.session.get(User, rich_user.id).coins == 30000

        response = client.post(f'/api/admin/withdrawals/{withdrawal_id}', headers=admin_headers, json={
            'action': 'reject', 'note': 'Name mismatch',
        })
        assert response.status_code == 200
        assert response.get_json()['withdrawal']['status'] == 'rejected'
        assert db.session.get(User, rich_user.id).coins == 50000

    def test_approve_keeps_coins_debited(self, client, rich_user, rich_headers, admin_headers):
        withdrawal_id = self._request(client, rich_headers)
        response = client.post(f'/api/admin/withdrawals/{withdrawal_id}', headers=admin_headers, json={
            'action': 'approve',
        })
        assert response.status_code == 200
        assert db.session.get(User, rich_user.id).coins == 30000

    def test_only_pending_can_be_processed(self, client, rich_headers, admin_headers):
        withdrawal_id = self._request(client, rich_headers)
        client.post(f'/api/admin/withdrawals/{withdrawal_id}', headers=admin_headers, json={'action': 'approve'})
        response = client.post(f'/api/admin/withdrawals/{withdrawal_id}', headers=admin_headers, json={'action': 'reject'})
        assert response.status_code == 400
        assert response.get_json()['code'] == 'ALREADY_PROCESSED'

    def test_list_filter_by_status(self, client, rich_headers, admin_headers):
        self._request(client, rich_headers)
        pending = client.get('/api/admin/withdrawals?status=pending', headers=admin_headers).get_json()
        approved = client.get('/api/admin/withdrawals?status=approved', headers=admin_headers).get_json()
        assert len(pending['withdrawals']) == 1
        assert approved['withdrawals'] == []

    def test_invalid_action(self, client, rich_headers, admin_headers):
        withdrawal_id = self._request(client, rich_headers)
        response = client.post(f'/api/admin/withdrawals/{withdrawal_id}', headers=admin_headers, json={'action': 'maybe'})
        assert response.status_code == 400
