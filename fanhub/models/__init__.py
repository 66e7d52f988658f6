"""
Database Models Package

FLOW OVERVIEW
- Centralizes the SQLAlchemy DB instance and model imports.
- Exposes: db, User, PasswordResetToken, Event, Ticket, ScanLog, CoinTransaction,
  PaymentTransaction, Withdrawal, Membership, FeatureFlag, Category, Post, PostVote,
  Comment, Bookmark, MeetGreetBooking.
"""

from .database import db
from .user import User, PasswordResetToken, TIERS, TIER_RANKS
from .event import Event, Ticket, ScanLog
from .wallet import CoinTransaction, PaymentTransaction, Withdrawal
from .membership import Membership
from .feature_flag import FeatureFlag
from .community import Category, Post, PostVote, Comment, Bookmark
from .meet_greet import MeetGreetBooking

__all__ = [
    'db',
    'User',
    'PasswordResetToken',
    'TIERS',
    'TIER_RANKS',
    'Event',
    'Ticket',
    'ScanLog',
    'CoinTransaction',
    'PaymentTransaction',
    'Withdrawal',
    'Membership',
    'FeatureFlag',
    'Category',
    'Post',
    'PostVote',
    'Comment',
    'Bookmark',
    'MeetGreetBooking',
]
