"""
Wallet Routes

FLOW OVERVIEW
- /api/coins/purchase [POST]
  • {reference, amount, coins} → verified coin purchase.
- /api/coins/withdraw [POST]
  • {amount, bankDetails{bankCode, accountNumber, accountName}} → pending withdrawal.
- /api/wallet [GET]
  • Balance, naira value and the most recent ledger rows.
- /api/wallet/transactions [GET]
  • Ledger history, newest first (?limit=, max 100).
- /api/coins/banks [GET]
  • Supported withdrawal banks.
"""

from flask import Blueprint, g, jsonify, request

from ..utils.api_utils import rate_limited, request_validator
from ..utils.auth_utils import login_required
from ..utils.coin_ledger import coin_ledger, coins_to_naira
from ..utils.validators import NIGERIAN_BANKS
from ..utils.wallet_service import wallet_service

wallet_bp = Blueprint('wallet', __name__)


@wallet_bp.route('/coins/purchase', methods=['POST'])
@rate_limited('payments')
@login_required
def purchase_coins():
    data = request_validator.get_json_object()
    request_validator.require_fields(data, ['reference', 'amount', 'coins'])

    entry = wallet_service.purchase_coins(g.current_user, str(data['reference']), data['amount'], data['coins'])
    return jsonify({
        'success': True,
        'message': f"Successfully purchased {data['coins']:,} coins",
        'transaction': entry.to_dict(),
        'new_balance': g.current_user.coins,
    })


@wallet_bp.route('/coins/withdraw', methods=['POST'])
@rate_limited('payments')
@login_required
def withdraw_coins():
    data = request_validator.get_json_object()
    request_validator.require_fields(data, ['amount', 'bankDetails'])

    withdrawal = wallet_service.request_withdrawal(g.current_user, data['amount'], data['bankDetails'])
    return jsonify({
        'success': True,
        'message': 'Withdrawal request submitted',
        'withdrawal': withdrawal.to_dict(),
        'new_balance': g.current_user.coins,
    }), 201


@wallet_bp.route('/coins/banks', methods=['GET'])
def list_banks():
    banks = [{'code': code, 'name': name} for code, name in sorted(NIGERIAN_BANKS.items(), key=lambda item: item[1])]
    return jsonify({'success': True, 'banks': banks})


@wallet_bp.route('/wallet', methods=['GET'])
@login_required
def wallet_summary():
    user = g.current_user
    return jsonify({
        'success': True,
        'balance': user.coins,
        'naira_value': coins_to_naira(user.coins),
        'recent_transactions': [entry.to_dict() for entry in coin_ledger.history(user, limit=10)],
    })


@wallet_bp.route('/wallet/transactions', methods=['GET'])
@login_required
def wallet_transactions():
    limit = request_validator.get_int(request.args, 'limit', minimum=1, default=50)
    limit = min(limit, 100)
    entries = coin_ledger.history(g.current_user, limit=limit)
    return jsonify({'success': True, 'transactions': [entry.to_dict() for entry in entries]})
