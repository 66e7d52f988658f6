"""
Community Models

FLOW OVERVIEW
- Category: feed sections posts are filed under.
- Post: user content with denormalised vote/comment counters.
- PostVote / Bookmark: one row per (post, user), toggled on and off.
- Comment: replies under a post.
"""

from datetime import datetime
from .database import db


class Category(db.Model):
    __tablename__ = 'community_categories'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(80), nullable=False)
    slug = db.Column(db.String(80), unique=True, nullable=False)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'slug': self.slug}


class Post(db.Model):
    __tablename__ = 'community_posts'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey('community_categories.id'), nullable=False)
    content = db.Column(db.Text, nullable=False)
    vote_count = db.Column(db.Integer, default=0, nullable=False)
    comment_count = db.Column(db.Integer, default=0, nullable=False)
    is_published = db.Column(db.Boolean, default=True, nullable=False)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = db.relationship('User')
    category = db.relationship('Category')

    def __repr__(self):
        return f'<Post {self.id} by user {self.user_id}>'

    def to_dict(self, viewer=None):
        data = {
            'id': self.id,
            'content': self.content,
            'vote_count': self.vote_count,
            'comment_count': self.comment_count,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'user': self.author.to_dict() if self.author else None,
            'category': self.category.to_dict() if self.category else None,
        }
        if viewer is not None:
            data['has_voted'] = PostVote.query.filter_by(post_id=self.id, user_id=viewer.id).first() is not None
            data['is_bookmarked'] = Bookmark.query.filter_by(post_id=self.id, user_id=viewer.id).first() is not None
        return data


class PostVote(db.Model):
    __tablename__ = 'community_post_votes'

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('community_posts.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    coin_amount = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('post_id', 'user_id', name='unique_post_vote'),)


class Comment(db.Model):
    __tablename__ = 'community_comments'

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('community_posts.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    content = db.Column(db.Text, nullable=False)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    author = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'post_id': self.post_id,
            'content': self.content,
            'user': self.author.to_dict() if self.author else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Bookmark(db.Model):
    __tablename__ = 'community_bookmarks'

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('community_posts.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('post_id', 'user_id', name='unique_post_bookmark'),)
