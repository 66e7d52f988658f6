"""
Feature Flag Evaluation

FLOW OVERVIEW
- evaluate_flag(flag, user, environment, now)
  1. disabled → off
  2. environment mismatch (flag env 'all' matches everything) → off
  3. expired → off
  4. segments set and caller's tier not among them → off
  5. rollout 100 → on, 0 → off
  6. otherwise stable bucket sha256("{key}:{user_id}") % 100 < rollout
  Anonymous callers only see flags at 100% rollout with no segments.
- evaluate_all(user, environment): {key: bool} for every flag.
- FeatureFlagService: admin create / update / delete with range checks.
"""

import hashlib
import logging
from datetime import datetime, timezone

from ..models import db, FeatureFlag, TIERS
from ..models.feature_flag import ENVIRONMENTS
from .errors import APIError

EDITABLE_FIELDS = ('name', 'description', 'enabled', 'rollout_percentage', 'environment', 'user_segments', 'expires_at')


def rollout_bucket(flag_key, user_id):
    digest = hashlib.sha256(f"{flag_key}:{user_id}".encode('utf-8')).hexdigest()
    return int(digest, 16) % 100


def evaluate_flag(flag, user=None, environment='production', now=None):
    if not flag.enabled:
        return False

    if flag.environment != 'all' and flag.environment != environment:
        return False

    now = now or datetime.utcnow()
    if flag.expires_at is not None and flag.expires_at <= now:
        return False

    segments = flag.user_segments or []
    if segments:
        if user is None or user.tier not in segments:
            return False

    rollout = flag.rollout_percentage or 0
    if rollout >= 100:
        return True
    if rollout <= 0 or user is None:
        return False

    return rollout_bucket(flag.key, user.user_id) < rollout


def evaluate_all(user=None, environment='production', now=None):
    return {
        flag.key: evaluate_flag(flag, user, environment, now)
        for flag in FeatureFlag.query.order_by(FeatureFlag.key).all()
    }


class FeatureFlagService:
    """Admin management of feature flags."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _parse_expiry(value):
        if value in (None, ''):
            return None
        if isinstance(value, datetime):
            return value
        try:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except ValueError:
            raise APIError('expires_at must be an ISO 8601 timestamp', 400, 'INVALID_EXPIRY')
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed

    def _apply(self, flag, data):
        for field in EDITABLE_FIELDS:
            if field not in data:
                continue
            value = data[field]

            if field == 'rollout_percentage':
                if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
                    raise APIError('rollout_percentage must be an integer between 0 and 100', 400, 'INVALID_ROLLOUT')
            elif field == 'environment':
                if value not in ENVIRONMENTS:
                    raise APIError(f"environment must be one of {', '.join(ENVIRONMENTS)}", 400, 'INVALID_ENVIRONMENT')
            elif field == 'user_segments':
                if value is None:
                    value = []
                if not isinstance(value, list) or any(segment not in TIERS for segment in value):
                    raise APIError('user_segments must be a list of membership tiers', 400, 'INVALID_SEGMENTS')
            elif field == 'enabled':
                value = bool(value)
            elif field == 'expires_at':
                value = self._parse_expiry(value)

            setattr(flag, field, value)

    def create(self, data):
        key = (data.get('key') or '').strip()
        if not key:
            raise APIError('Flag key is required', 400, 'MISSING_FIELDS')
        if FeatureFlag.query.filter_by(key=key).first() is not None:
            raise APIError('Flag already exists', 409, 'FLAG_EXISTS')

        flag = FeatureFlag(key=key, name=data.get('name') or key, enabled=False,
                           rollout_percentage=100, environment='all', user_segments=[])
        self._apply(flag, data)
        db.session.add(flag)
        db.session.commit()
        self.logger.info(f"Created feature flag {key}")
        return flag

    def get(self, key):
        flag = FeatureFlag.query.filter_by(key=key).first()
        if flag is None:
            raise APIError('Flag not found', 404, 'FLAG_NOT_FOUND')
        return flag

    def update(self, key, data):
        flag = self.get(key)
        self._apply(flag, data)
        db.session.commit()
        self.logger.info(f"Updated feature flag {key}")
        return flag

    def delete(self, key):
        flag = self.get(key)
        db.session.delete(flag)
        db.session.commit()
        self.logger.info(f"Deleted feature flag {key}")


flag_service = FeatureFlagService()
