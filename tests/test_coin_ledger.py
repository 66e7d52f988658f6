"""
Tests for the coin ledger: balance moves always paired with a ledger row.
"""

import threading

import pytest

from conftest import make_user
from fanhub.models import db, CoinTransaction, User
from fanhub.utils.coin_ledger import coin_ledger, coins_to_naira, naira_to_coins
from fanhub.utils.errors import InsufficientBalanceError


class TestConversion:

    def test_rate(self):
        assert coins_to_naira(100) == 50
        assert coins_to_naira(10000) == 5000
        assert naira_to_coins(50) == 100


class TestCredit:

    def test_credit_updates_balance_and_writes_entry(self, test_user):
        entry = coin_ledger.credit(test_user, 500, 'bonus', description='Welcome')
        assert db.session.get(User, test_user.id).coins == 500
        assert entry.amount == 500
        assert entry.balance_after == 500
        assert entry.transaction_type == 'bonus'

    def test_credit_rejects_non_positive(self, test_user):
        with pytest.raises(ValueError):
            coin_ledger.credit(test_user, 0, 'bonus')
        with pytest.raises(ValueError):
            coin_ledger.credit(test_user, -5, 'bonus')


class TestDebit:

    def test_debit_updates_balance(self, rich_user):
        entry = coin_ledger.debit(rich_user, 1500, 'ticket_purchase', reference='FH123')
        assert db.session.get(User, rich_user.id).coins == 48500
        assert entry.amount == -1500
        assert entry.balance_after == 48500
        assert entry.reference == 'FH123'

    def test_debit_to_exactly_zero(self, rich_user):
        coin_ledger.debit(rich_user, 50000, 'withdrawal')
        assert db.session.get(User, rich_user.id).coins == 0

    def test_debit_below_zero_raises(self, test_user):
        with pytest.raises(InsufficientBalanceError) as excinfo:
            coin_ledger.debit(test_user, 1, 'vote')
        assert excinfo.value.status_code == 400
        assert excinfo.value.details == {'balance': 0, 'required': 1}
        assert CoinTransaction.query.count() == 0

    def test_debit_rejects_non_positive(self, rich_user):
        with pytest.raises(ValueError):
            coin_ledger.debit(rich_user, 0, 'vote')


class TestTransfer:

    def test_transfer_moves_coins_both_ways(self, rich_user, test_user):
        debit_entry, credit_entry = coin_ledger.transfer(rich_user, test_user, 300, 'vote')
        assert db.session.get(User, rich_user.id).coins == 49700
        assert db.session.get(User, test_user.id).coins == 300
        assert debit_entry.amount == -300
        assert credit_entry.amount == 300

    def test_transfer_insufficient(self, test_user, rich_user):
        with pytest.raises(InsufficientBalanceError):
            coin_ledger.transfer(test_user, rich_user, 10, 'vote')


class TestHistory:

    def test_history_newest_first_with_limit(self, test_user):
        for amount in (10, 20, 30):
            coin_ledger.credit(test_user, amount, 'bonus')
        history = coin_ledger.history(test_user, limit=2)
        assert [entry.amount for entry in history] == [30, 20]
        assert history[0].balance_after == 60


class TestConcurrentDebits:

    def test_parallel_spends_never_overdraw(self, file_app):
        with file_app.app_context():
            user_id = make_user('rich@example.com', 'rich_fan', coins=50000).id
            db.session.remove()

        barrier = threading.Barrier(3)
        outcomes = []

        def spend():
            with file_app.app_context():
                user = db.session.get(User, user_id)
                barrier.wait(timeout=10)
                try:
                    coin_ledger.debit(user, 20000, 'ticket_purchase')
                    outcomes.append('debited')
                except InsufficientBalanceError:
                    db.session.rollback()
                    outcomes.append('insufficient')
                finally:
                    db.session.remove()

        spenders = [threading.Thread(target=spend) for _ in range(3)]
        for spender in spenders:
            spender.start()
        for spender in spenders:
            spender.join(timeout=30)

        assert sorted(outcomes) == ['debited', 'debited', 'insufficient']
        with file_app.app_context():
            assert db.session.get(User, user_id).coins == 10000
            balances = sorted(entry.balance_after for entry in CoinTransaction.query.all())
            assert balances == [10000, 30000]
