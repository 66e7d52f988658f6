"""
Membership Service

FLOW OVERVIEW
- TIER_PRICING: naira prices per paid tier and billing interval (grassroot is free).
- has_tier_access(user_tier, required_tier): rank comparison.
- list_tiers(user): pricing plus can_upgrade / is_current_tier for the caller.
- subscribe(user, tier_slug, reference, amount, billing_period)
  • Validate tier/interval → amount within ₦1 → claimable reference → gateway verification
  • Cancel the active membership → create the new one → set user tier → bonus coins.
- expire_memberships(now): downgrade users whose paid period has lapsed.
"""

import calendar
import logging
from datetime import datetime

from ..models import db, Membership, User, TIER_RANKS
from .coin_ledger import coin_ledger
from .errors import APIError
from .paystack import verify_payment
from .wallet_service import claim_payment, fulfil_payment

BONUS_COINS_PER_MONTH = 1000
AMOUNT_TOLERANCE_NAIRA = 1

TIER_PRICING = {
    'grassroot': {'name': 'Grassroot', 'monthly': 0, 'yearly': 0},
    'pioneer': {'name': 'Pioneer', 'monthly': 2500, 'yearly': 25000},
    'elder': {'name': 'Elder', 'monthly': 5000, 'yearly': 50000},
    'blood': {'name': 'Blood', 'monthly': 10000, 'yearly': 100000},
    'enterprise': {'name': 'Enterprise', 'monthly': None, 'yearly': 500000},
}

BILLING_MONTHS = {'monthly': 1, 'yearly': 12}


def add_months(start, months):
    """Same day-of-month `months` later, clamped to the end of shorter months"""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def has_tier_access(user_tier, required_tier):
    return TIER_RANKS.get(user_tier, 0) >= TIER_RANKS.get(required_tier, 0)


def tier_price(tier_slug, billing_period):
    pricing = TIER_PRICING.get(tier_slug)
    if pricing is None:
        return None
    return pricing.get(billing_period)


def is_membership_active(membership, now=None):
    """Grassroot never lapses; paid tiers are active until expires_at"""
    if membership is None:
        return True
    if membership.tier == 'grassroot':
        return True
    now = now or datetime.utcnow()
    return membership.status == 'active' and (membership.expires_at is None or membership.expires_at > now)


class MembershipService:
    """Tier subscriptions and their lifecycle."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def list_tiers(self, user=None):
        current = user.tier if user else 'grassroot'
        current_rank = user.tier_rank if user else 0
        tiers = []
        for slug, pricing in TIER_PRICING.items():
            tiers.append({
                'slug': slug,
                'name': pricing['name'],
                'rank': TIER_RANKS[slug],
                'price_monthly': pricing['monthly'],
                'price_yearly': pricing['yearly'],
                'bonus_coins_monthly': BONUS_COINS_PER_MONTH if slug != 'grassroot' else 0,
                'is_current_tier': slug == current,
                'can_upgrade': TIER_RANKS[slug] > current_rank,
            })
        return tiers

    def current_membership(self, user):
        membership = Membership.active_for(user.id)
        if membership is None:
            return {
                'tier': user.tier or 'grassroot',
                'status': 'active',
                'billing_interval': None,
                'expires_at': None,
                'is_active': True,
            }
        data = membership.to_dict()
        data['is_active'] = is_membership_active(membership)
        return data

    def subscribe(self, user, tier_slug, reference, amount, billing_period='monthly'):
        if tier_slug not in TIER_PRICING:
            raise APIError('Membership tier not found', 404, 'TIER_NOT_FOUND')
        if tier_slug == 'grassroot':
            raise APIError('Grassroot membership is free', 400, 'FREE_TIER')
        if billing_period not in BILLING_MONTHS:
            raise APIError('Billing period must be monthly or yearly', 400, 'INVALID_BILLING_PERIOD')

        price = tier_price(tier_slug, billing_period)
        if price is None:
            raise APIError(f'{tier_slug} is not available {billing_period}', 400, 'INVALID_BILLING_PERIOD')

        try:
            amount = float(amount)
        except (TypeError, ValueError):
            raise APIError('Amount must be a number', 400, 'VALIDATION_ERROR')
        if abs(amount - price) > AMOUNT_TOLERANCE_NAIRA:
            raise APIError("Amount doesn't match tier price", 400, 'AMOUNT_MISMATCH')

        pending = claim_payment(user, reference, 'membership')
        if Membership.query.filter_by(payment_reference=reference).first() is not None:
            raise APIError('Payment reference already exists', 400, 'DUPLICATE_REFERENCE')

        charge = verify_payment(reference, price, 'membership')

        now = datetime.utcnow()
        months = BILLING_MONTHS[billing_period]

        previous = Membership.query.filter_by(user_id=user.id, status='active').all()
        for membership in previous:
            membership.status = 'cancelled'

        membership = Membership(
            user_id=user.id,
            tier=tier_slug,
            billing_interval=billing_period,
            status='active',
            started_at=now,
            expires_at=add_months(now, months),
            months_purchased=months,
            payment_reference=reference,
        )
        db.session.add(membership)
        fulfil_payment(pending, user, reference, 'membership', price, charge,
                       coins_credited=BONUS_COINS_PER_MONTH * months)
        user.tier = tier_slug

        bonus = BONUS_COINS_PER_MONTH * months
        coin_ledger.credit(
            user, bonus, 'bonus',
            description=f'{TIER_PRICING[tier_slug]["name"]} membership bonus',
            reference=reference,
            metadata={'tier': tier_slug, 'billing_period': billing_period},
            commit=False,
        )
        db.session.commit()

        self.logger.info(f"User {user.user_id} subscribed to {tier_slug} ({billing_period}), {bonus} bonus coins")
        return membership, bonus

    def expire_memberships(self, now=None):
        """Mark lapsed memberships expired and drop their users to grassroot"""
        now = now or datetime.utcnow()
        lapsed = Membership.query.filter(
            Membership.status == 'active',
            Membership.expires_at.isnot(None),
            Membership.expires_at <= now,
        ).all()

        for membership in lapsed:
            membership.status = 'expired'
            user = db.session.get(User, membership.user_id)
            if user is not None and user.tier == membership.tier:
                user.tier = 'grassroot'

        db.session.commit()
        if lapsed:
            self.logger.info(f"Expired {len(lapsed)} memberships")
        return len(lapsed)


membership_service = MembershipService()
