"""
Coin Ledger

FLOW OVERVIEW
- CoinLedger.credit / debit
  • Move the balance with a single conditional UPDATE, then append a CoinTransaction
    with balance_after read back inside the same transaction.
  • Debits only apply while coins >= amount, so concurrent spends never take a
    balance below zero (InsufficientBalanceError).
- CoinLedger.transfer
  • Debit one user and credit another inside the same transaction.
- Conversion helpers: coins_to_naira / naira_to_coins at 1 coin = ₦0.5.

Callers that combine several writes pass commit=False and commit once at the end.
"""

import logging
from typing import Any, Dict, Optional

from ..models import db, User, CoinTransaction
from .errors import InsufficientBalanceError
from .prom_metrics import observe_coin_movement

NAIRA_PER_COIN = 0.5
MIN_COIN_PURCHASE = 100


def coins_to_naira(coins: int) -> int:
    return int(coins * NAIRA_PER_COIN)


def naira_to_coins(naira: int) -> int:
    return int(naira / NAIRA_PER_COIN)


class CoinLedger:
    """Balance changes for users, always paired with a ledger row"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def reload_user(user_id: int) -> User:
        """Reload the user row, refreshing any copy already in the session"""
        return (
            User.query.filter_by(id=user_id)
            .with_for_update()
            .populate_existing()
            .one()
        )

    def _record(self, user: User, amount: int, transaction_type: str, description: Optional[str],
                reference: Optional[str], metadata: Optional[Dict[str, Any]]) -> CoinTransaction:
        entry = CoinTransaction(
            user_id=user.id,
            amount=amount,
            transaction_type=transaction_type,
            description=description,
            reference=reference,
            balance_after=user.coins,
            status='completed',
            details=metadata or {},
        )
        db.session.add(entry)
        return entry

    def credit(self, user: User, amount: int, transaction_type: str, description: str = None,
               reference: str = None, metadata: Dict[str, Any] = None, commit: bool = True) -> CoinTransaction:
        if amount is None or amount <= 0:
            raise ValueError("Credit amount must be positive")

        User.query.filter_by(id=user.id).update(
            {User.coins: User.coins + amount}, synchronize_session=False,
        )
        account = self.reload_user(user.id)
        entry = self._record(account, amount, transaction_type, description, reference, metadata)

        if commit:
            db.session.commit()
        observe_coin_movement('credit', transaction_type, amount)
        self.logger.info(f"Credited {amount} coins to user {account.user_id} ({transaction_type}), balance {account.coins}")
        return entry

    def debit(self, user: User, amount: int, transaction_type: str, description: str = None,
              reference: str = None, metadata: Dict[str, Any] = None, commit: bool = True) -> CoinTransaction:
        if amount is None or amount <= 0:
            raise ValueError("Debit amount must be positive")

        moved = User.query.filter(User.id == user.id, User.coins >= amount).update(
            {User.coins: User.coins - amount}, synchronize_session=False,
        )
        account = self.reload_user(user.id)
        if not moved:
            balance = account.coins or 0
            self.logger.warning(f"Insufficient balance for user {account.user_id}: has {balance}, needs {amount}")
            raise InsufficientBalanceError(balance, amount)

        entry = self._record(account, -amount, transaction_type, description, reference, metadata)

        if commit:
            db.session.commit()
        observe_coin_movement('debit', transaction_type, amount)
        self.logger.info(f"Debited {amount} coins from user {account.user_id} ({transaction_type}), balance {account.coins}")
        return entry

    def transfer(self, sender: User, recipient: User, amount: int, transaction_type: str,
                 description: str = None, reference: str = None, metadata: Dict[str, Any] = None,
                 commit: bool = True):
        debit_entry = self.debit(sender, amount, transaction_type, description, reference, metadata, commit=False)
        credit_entry = self.credit(recipient, amount, transaction_type, description, reference, metadata, commit=False)
        if commit:
            db.session.commit()
        return debit_entry, credit_entry

    @staticmethod
    def history(user: User, limit: int = 50):
        return (
            CoinTransaction.query.filter_by(user_id=user.id)
            .order_by(CoinTransaction.created_at.desc(), CoinTransaction.id.desc())
            .limit(limit)
            .all()
        )


coin_ledger = CoinLedger()
