"""
Feature Flag Model

Admin-managed switches with an environment scope, optional tier segments, an
expiry and a percentage rollout. Evaluation lives in `utils.feature_flags`.
"""

from datetime import datetime
from .database import db

ENVIRONMENTS = ('development', 'staging', 'production', 'all')


class FeatureFlag(db.Model):
    __tablename__ = 'feature_flags'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(80), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text)
    enabled = db.Column(db.Boolean, default=False, nullable=False)
    rollout_percentage = db.Column(db.Integer, default=100, nullable=False)
    environment = db.Column(db.String(20), default='all', nullable=False)
    user_segments = db.Column(db.JSON, default=list)
    expires_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<FeatureFlag {self.key}>'

    def to_dict(self):
        return {
            'key': self.key,
            'name': self.name,
            'description': self.description,
            'enabled': self.enabled,
            'rollout_percentage': self.rollout_percentage,
            'environment': self.environment,
            'user_segments': self.user_segments or [],
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
