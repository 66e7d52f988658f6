"""
Membership Routes

FLOW OVERVIEW
- /api/membership/tiers [GET]
  • Tier list with pricing; flags the caller's current tier and possible upgrades.
- /api/membership/subscribe [POST]
  • {tierSlug, reference, amount, billingPeriod} → verified subscription + bonus coins.
- /api/membership/me [GET]
  • Active membership, or the free grassroot default.
"""

from flask import Blueprint, g, jsonify

from ..utils.api_utils import rate_limited, request_validator
from ..utils.auth_utils import get_current_user, login_required
from ..utils.membership_service import membership_service

membership_bp = Blueprint('membership', __name__)


@membership_bp.route('/membership/tiers', methods=['GET'])
def list_tiers():
    return jsonify({'success': True, 'tiers': membership_service.list_tiers(get_current_user())})


@membership_bp.route('/membership/subscribe', methods=['POST'])
@rate_limited('payments')
@login_required
def subscribe():
    data = request_validator.get_json_object()
    request_validator.require_fields(data, ['tierSlug', 'reference', 'amount'])

    membership, bonus = membership_service.subscribe(
        g.current_user,
        data['tierSlug'],
        str(data['reference']),
        data['amount'],
        data.get('billingPeriod') or 'monthly',
    )
    return jsonify({
        'success': True,
        'message': f"Welcome to {membership.tier}!",
        'membership': membership.to_dict(),
        'bonus_coins': bonus,
        'new_balance': g.current_user.coins,
    })


@membership_bp.route('/membership/me', methods=['GET'])
@login_required
def my_membership():
    return jsonify({'success': True, 'membership': membership_service.current_membership(g.current_user)})
